"""Compose the text read aloud for a diagnosis result."""

from typing import List

from models.diagnosis_models import DiagnosisResult, DiagnosisStatus, Language
from services.strings import translate


def build_speech_text(result: DiagnosisResult, language: Language) -> str:
    """Join the labelled parts of a result into one utterance.

    Irrelevant results only speak the name and description.
    """
    if result.status == DiagnosisStatus.IRRELEVANT:
        parts: List[str] = [result.disease_name, result.description]
    else:
        healthy = result.status == DiagnosisStatus.HEALTHY
        parts = [
            translate(language, "plantStatus" if healthy else "identifiedDisease"),
            result.disease_name,
            translate(language, "descriptionLabel"),
            result.description,
        ]
        if healthy and result.preventative_measures:
            parts.append(translate(language, "preventativeMeasuresLabel"))
            parts.extend(result.preventative_measures)
        if not healthy and result.control_measures:
            parts.append(translate(language, "controlMeasuresLabel"))
            parts.extend(result.control_measures)
    return ". ".join(part for part in parts if part)
