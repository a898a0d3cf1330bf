"""Crop disease diagnosis using OpenAI's Responses API with a JSON schema."""

import json
import logging
import os
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from openai import AsyncOpenAI

from models.diagnosis_models import DiagnosisResult, DiagnosisStatus, Language
from services.openai.diagnosis_prompts import build_diagnosis_prompt
from services.openai.diagnosis_schema import RESPONSE_FORMAT
from services.openai.media_inputs import build_diagnosis_inputs
from services.openai.response_parser import extract_block_reason, extract_text, extract_usage

LOGGER = logging.getLogger(__name__)
DIAGNOSIS_MODEL = os.getenv("CROP_DOCTOR_DIAGNOSIS_MODEL", "gpt-4.1-mini")


class DiagnosisErrorKind(str, Enum):
    CONTENT_BLOCKED = "content_blocked"
    NO_ANALYSIS = "no_analysis"
    INVALID_RESPONSE = "invalid_response"
    API_FAILURE = "api_failure"


ERROR_MESSAGES = {
    DiagnosisErrorKind.CONTENT_BLOCKED: (
        "The image could not be analyzed due to our safety policies. Please use a different image."
    ),
    DiagnosisErrorKind.NO_ANALYSIS: (
        "The model could not analyze this image. Please try a clear, well-lit photo."
    ),
    DiagnosisErrorKind.INVALID_RESPONSE: (
        "Received an unexpected response from the model. Please try again later."
    ),
    DiagnosisErrorKind.API_FAILURE: (
        "Analysis failed due to a network or server issue. Please check your internet "
        "connection and try again."
    ),
}


class DiagnosisError(Exception):
    """A failed analysis, tagged with the reason it failed."""

    def __init__(self, kind: DiagnosisErrorKind, message: Optional[str] = None) -> None:
        self.kind = kind
        self.message = ERROR_MESSAGES[kind] if message is None else message
        super().__init__(self.message)


def _measures(payload: Dict[str, Any], key: str) -> Optional[Tuple[str, ...]]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        LOGGER.warning("Ignoring non-list %s in diagnosis payload", key)
        return None
    return tuple(str(item) for item in value)


def normalize_diagnosis(payload: Any) -> DiagnosisResult:
    """Validate a structured payload and enforce the status/measures invariant.

    Control measures survive only for diseased plants and preventative
    measures only for healthy ones, whatever the upstream payload holds.

    Raises:
        DiagnosisError: With kind INVALID_RESPONSE when required fields are
            missing or the status is unknown.
    """
    if not isinstance(payload, dict):
        raise DiagnosisError(DiagnosisErrorKind.INVALID_RESPONSE)
    try:
        status = DiagnosisStatus(payload.get("status"))
    except ValueError as exc:
        raise DiagnosisError(DiagnosisErrorKind.INVALID_RESPONSE) from exc

    disease_name = payload.get("diseaseName")
    description = payload.get("description")
    if not isinstance(disease_name, str) or not isinstance(description, str):
        raise DiagnosisError(DiagnosisErrorKind.INVALID_RESPONSE)

    control = _measures(payload, "controlMeasures")
    preventative = _measures(payload, "preventativeMeasures")
    return DiagnosisResult(
        status=status,
        disease_name=disease_name,
        description=description,
        control_measures=control if status == DiagnosisStatus.DISEASED else None,
        preventative_measures=preventative if status == DiagnosisStatus.HEALTHY else None,
    )


class DiagnosisClient:
    """Classify crop images as healthy, diseased, or irrelevant."""

    def __init__(self, client: AsyncOpenAI, model: str = DIAGNOSIS_MODEL) -> None:
        """Initialize the client with a shared OpenAI async client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model

    async def analyze(self, image_bytes: bytes, mime_type: str, language: Language) -> DiagnosisResult:
        """Send one image with the language-specific prompt and return the diagnosis.

        Raises:
            DiagnosisError: CONTENT_BLOCKED, NO_ANALYSIS, INVALID_RESPONSE, or
                API_FAILURE. Nothing is retried.
        """
        start_time = time.time()
        try:
            inputs = build_diagnosis_inputs(image_bytes, mime_type, build_diagnosis_prompt(language))
            response = await self._create_response(inputs)
            result = self._parse_response(response)
        except DiagnosisError:
            raise
        except Exception as exc:
            LOGGER.error("Error analyzing crop disease: %s", exc)
            raise DiagnosisError(DiagnosisErrorKind.API_FAILURE) from exc

        usage = extract_usage(response)
        LOGGER.info(
            "Diagnosis %s in %.3fs (input_tokens=%s, output_tokens=%s)",
            result.status.value,
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return result

    async def _create_response(self, inputs: List[Dict[str, Any]]) -> Any:
        """Send the multimodal request to the OpenAI Responses API."""
        try:
            return await self.client.responses.create(
                model=self.model,
                input=inputs,
                text={"format": RESPONSE_FORMAT},
            )
        except Exception as exc:
            LOGGER.error("Error during OpenAI Responses API call: %s", exc)
            raise

    def _parse_response(self, response: Any) -> DiagnosisResult:
        """Turn the response text into a normalized diagnosis."""
        text = extract_text(response).strip()
        if not text:
            block_reason = extract_block_reason(response)
            if block_reason:
                LOGGER.warning("Diagnosis blocked by the service: %s", block_reason)
                raise DiagnosisError(DiagnosisErrorKind.CONTENT_BLOCKED)
            raise DiagnosisError(DiagnosisErrorKind.NO_ANALYSIS)

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            LOGGER.error("Error parsing JSON from the model: %s", text)
            raise DiagnosisError(DiagnosisErrorKind.INVALID_RESPONSE) from exc
        return normalize_diagnosis(payload)
