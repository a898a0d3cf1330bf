"""State records owned by the diagnosis workflow."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class WorkflowStatus(str, Enum):
	"""Top-level states of the diagnosis workflow."""

	NO_IMAGE = "no_image"
	UPLOADING = "uploading"
	READY = "ready"
	ANALYZING = "analyzing"
	HEALTHY = "healthy"
	DISEASED = "diseased"
	IRRELEVANT = "irrelevant"
	ERROR = "error"


class AudioState(str, Enum):
	IDLE = "idle"
	LOADING = "loading"
	PLAYING = "playing"
	ERROR = "error"


@dataclass(frozen=True)
class AudioPlaybackState:
	"""Audio playback state; `message` is only set while in the error state."""

	state: AudioState = AudioState.IDLE
	message: Optional[str] = None

	@classmethod
	def idle(cls) -> "AudioPlaybackState":
		return cls()

	@classmethod
	def loading(cls) -> "AudioPlaybackState":
		return cls(AudioState.LOADING)

	@classmethod
	def playing(cls) -> "AudioPlaybackState":
		return cls(AudioState.PLAYING)

	@classmethod
	def error(cls, message: str) -> "AudioPlaybackState":
		return cls(AudioState.ERROR, message)


@dataclass
class UploadState:
	"""Selected image while it is read and once its preview is ready.

	Attributes:
		filename: Original name of the uploaded file.
		mime_type: Declared MIME type (png, jpeg, or webp).
		progress: Read progress 0-100 while reading; None once the preview is ready.
		preview_data_url: Data URL preview, set when reading completes.
		image_bytes: Raw image bytes, kept for analysis.
	"""

	filename: str
	mime_type: str
	progress: Optional[int] = 0
	preview_data_url: Optional[str] = None
	image_bytes: Optional[bytes] = None


class ErrorCategory(str, Enum):
	"""Visual and semantic classification of a fatal error."""

	CONTENT = "content"
	ANALYSIS = "analysis"
	PARSING = "parsing"
	NETWORK = "network"
	GENERIC = "generic"


@dataclass(frozen=True)
class ErrorState:
	"""Full-screen error panel content, expressed as string-table keys."""

	title_key: str
	message_key: str
	category: ErrorCategory
