"""Domain models for crop diagnoses and follow-up conversations."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Language(str, Enum):
	"""Languages supported by prompts, voices, and the string table."""

	BENGALI = "bn"
	ENGLISH = "en"


class DiagnosisStatus(str, Enum):
	"""Outcome of a single image analysis."""

	HEALTHY = "healthy"
	DISEASED = "diseased"
	IRRELEVANT = "irrelevant"


@dataclass(frozen=True)
class DiagnosisResult:
	"""Structured classification of one uploaded image.

	Attributes:
		status: Healthy, diseased, or irrelevant.
		disease_name: Short label; for healthy or irrelevant images this is a fixed phrase.
		description: Free-text explanation of the findings.
		control_measures: Remediation steps, only for diseased plants.
		preventative_measures: Prevention tips, only for healthy plants.
	"""

	status: DiagnosisStatus
	disease_name: str
	description: str
	control_measures: Optional[Tuple[str, ...]] = None
	preventative_measures: Optional[Tuple[str, ...]] = None

	def to_payload(self) -> Dict[str, Any]:
		"""Return the camelCase payload used by prompts and the browser."""
		payload: Dict[str, Any] = {
			"status": self.status.value,
			"diseaseName": self.disease_name,
			"description": self.description,
		}
		if self.control_measures is not None:
			payload["controlMeasures"] = list(self.control_measures)
		if self.preventative_measures is not None:
			payload["preventativeMeasures"] = list(self.preventative_measures)
		return payload


@dataclass(frozen=True)
class Citation:
	"""A web source the assistant used to ground an answer."""

	uri: str
	title: str


@dataclass(frozen=True)
class ConversationTurn:
	"""One message in a chat transcript."""

	role: str
	text: str
	citations: Tuple[Citation, ...] = ()
	created_at: float = field(default_factory=lambda: time.time())


USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"


def user_turn(text: str) -> ConversationTurn:
	return ConversationTurn(role=USER_ROLE, text=text)


def assistant_turn(text: str, citations: Optional[List[Citation]] = None) -> ConversationTurn:
	return ConversationTurn(role=ASSISTANT_ROLE, text=text, citations=tuple(citations or ()))
