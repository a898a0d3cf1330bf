"""End-to-end diagnosis workflow for one browser session.

The workflow owns every piece of UI state: the selected image, the
diagnosis result or error, the follow-up conversation and the audio
playback state. Remote calls run on the event loop without blocking
other requests; results that arrive after the user moved on (new image,
reset, stopped audio) are dropped rather than applied.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Callable, Optional

from openai import AsyncOpenAI

from models.diagnosis_models import ConversationTurn, DiagnosisResult, DiagnosisStatus, Language
from models.workflow_models import (
	AudioPlaybackState,
	AudioState,
	ErrorCategory,
	ErrorState,
	UploadState,
	WorkflowStatus,
)
from services.audio.pcm_decoder import AudioDecodeError, decode_speech_payload
from services.audio.playback import AudioContextNotReadyError, AudioOutput, PlaybackHandle
from services.openai.chat_session import ConversationSession
from services.openai.diagnosis_client import DiagnosisClient, DiagnosisError, DiagnosisErrorKind
from services.openai.speech_client import NUM_CHANNELS, SAMPLE_RATE, SpeechClient, SpeechSynthesisError
from services.preview_generator import PreviewGenerator
from services.speech_text import build_speech_text
from services.strings import translate
from services.upload_reader import AsyncReadable, FileReadError, read_with_progress
from services.workflow.guards import OperationInProgressError, SingleFlight

LOGGER = logging.getLogger(__name__)

AUDIO_ERROR_CLEAR_SECONDS = float(os.getenv("CROP_DOCTOR_AUDIO_ERROR_CLEAR_SECONDS", "5"))

DIAGNOSIS_ERRORS = {
	DiagnosisErrorKind.CONTENT_BLOCKED: ("errorContentBlocked", ErrorCategory.CONTENT),
	DiagnosisErrorKind.NO_ANALYSIS: ("errorAnalysisFailed", ErrorCategory.ANALYSIS),
	DiagnosisErrorKind.INVALID_RESPONSE: ("errorInvalidResponse", ErrorCategory.PARSING),
	DiagnosisErrorKind.API_FAILURE: ("errorConnection", ErrorCategory.NETWORK),
}

RESULT_STATUSES = {
	DiagnosisStatus.HEALTHY: WorkflowStatus.HEALTHY,
	DiagnosisStatus.DISEASED: WorkflowStatus.DISEASED,
	DiagnosisStatus.IRRELEVANT: WorkflowStatus.IRRELEVANT,
}

ChatFactory = Callable[[DiagnosisResult, Language], ConversationSession]


class NoActiveChatError(RuntimeError):
	"""Raised when a chat message is sent without a diseased diagnosis."""


class DiagnosisWorkflow:
	"""Drive upload, analysis, follow-up chat and spoken playback.

	Args:
		diagnosis_client: Classifies uploaded images.
		speech_client: Synthesizes spoken summaries.
		chat_factory: Builds a conversation seeded with a diseased diagnosis.
		audio_output: Audio context; initialized on the first user gesture.
		language: Initial language for prompts, voices, and strings.
		preview_generator: Validates uploads and builds their previews.
		audio_error_clear_seconds: Delay before an audio error returns to idle.
	"""

	def __init__(
		self,
		diagnosis_client: DiagnosisClient,
		speech_client: SpeechClient,
		chat_factory: ChatFactory,
		audio_output: Optional[AudioOutput] = None,
		language: Language = Language.BENGALI,
		preview_generator: Optional[PreviewGenerator] = None,
		audio_error_clear_seconds: float = AUDIO_ERROR_CLEAR_SECONDS,
	) -> None:
		self.diagnosis_client = diagnosis_client
		self.speech_client = speech_client
		self.chat_factory = chat_factory
		self.audio_output = audio_output or AudioOutput()
		self.language = Language(language)
		self.preview_generator = preview_generator or PreviewGenerator()
		self.audio_error_clear_seconds = audio_error_clear_seconds

		self.status = WorkflowStatus.NO_IMAGE
		self.upload: Optional[UploadState] = None
		self.result: Optional[DiagnosisResult] = None
		self.error: Optional[ErrorState] = None
		self.soft_error: Optional[ErrorState] = None
		self.chat: Optional[ConversationSession] = None
		self.audio = AudioPlaybackState.idle()

		self._image_generation = 0
		self._audio_generation = 0
		self._analysis_guard = SingleFlight("analysis")
		self._speech_guard = SingleFlight("speech")
		self._audio_clear_handle: Optional[asyncio.TimerHandle] = None

	@classmethod
	def from_client(cls, client: AsyncOpenAI, language: Language = Language.BENGALI, **kwargs) -> "DiagnosisWorkflow":
		"""Build a workflow whose services share one OpenAI client."""
		return cls(
			diagnosis_client=DiagnosisClient(client),
			speech_client=SpeechClient(client),
			chat_factory=lambda result, lang: ConversationSession(client, result, lang),
			language=language,
			**kwargs,
		)

	@property
	def analysis_pending(self) -> bool:
		return self._analysis_guard.busy

	@property
	def chat_pending(self) -> bool:
		return self.chat is not None and self.chat.pending

	def set_language(self, language: Language) -> None:
		self.language = Language(language)

	# Image selection and analysis

	async def select_image(
		self,
		source: AsyncReadable,
		filename: str,
		mime_type: str,
		total_size: Optional[int] = None,
	) -> None:
		"""Replace the current image, reading it with progress updates."""
		self.stop_audio()
		self._image_generation += 1
		generation = self._image_generation
		self._clear_outcome()
		self.upload = UploadState(filename=filename, mime_type=mime_type, progress=0)
		self.status = WorkflowStatus.UPLOADING

		def on_progress(percent: int) -> None:
			if generation == self._image_generation and self.upload is not None:
				self.upload.progress = percent

		try:
			image_bytes = await read_with_progress(source, total_size, on_progress)
			preview = await asyncio.to_thread(self.preview_generator.create_preview, image_bytes, mime_type)
		except (FileReadError, ValueError) as exc:
			if generation != self._image_generation:
				return
			LOGGER.error("Could not read uploaded image %s: %s", filename, exc)
			self.upload = None
			self.error = ErrorState("errorFileRead", "errorFileReadMessage", ErrorCategory.GENERIC)
			self.status = WorkflowStatus.ERROR
			return

		if generation != self._image_generation:
			LOGGER.warning("Dropping stale upload of %s", filename)
			return
		self.upload.image_bytes = image_bytes
		self.upload.preview_data_url = preview
		self.upload.progress = None
		self.error = None
		self.status = WorkflowStatus.READY

	async def analyze(self) -> None:
		"""Diagnose the selected image and branch on the outcome.

		Raises:
			OperationInProgressError: If an analysis is already running.
		"""
		if self.upload is None or self.upload.image_bytes is None:
			self.error = ErrorState("errorNoImage", "errorNoImageMessage", ErrorCategory.GENERIC)
			self.status = WorkflowStatus.ERROR
			return

		with self._analysis_guard.claim():
			self.stop_audio()
			generation = self._image_generation
			self._clear_outcome()
			self.status = WorkflowStatus.ANALYZING
			upload = self.upload

			try:
				result = await self.diagnosis_client.analyze(upload.image_bytes, upload.mime_type, self.language)
			except DiagnosisError as exc:
				if self._is_stale(generation):
					return
				self._apply_diagnosis_error(exc)
				return
			except Exception as exc:
				if self._is_stale(generation):
					return
				LOGGER.error("Unexpected analysis failure: %s", exc)
				self.error = ErrorState("errorUnexpected", "errorUnexpected", ErrorCategory.GENERIC)
				self.status = WorkflowStatus.ERROR
				return

			if self._is_stale(generation):
				return
			self._apply_result(result)

	def _is_stale(self, generation: int) -> bool:
		if generation != self._image_generation:
			LOGGER.warning("Dropping analysis result for a replaced image")
			return True
		return False

	def _apply_result(self, result: DiagnosisResult) -> None:
		self.result = result
		self.status = RESULT_STATUSES[result.status]
		if result.status == DiagnosisStatus.DISEASED:
			self.chat = self.chat_factory(result, self.language)

	def _apply_diagnosis_error(self, exc: DiagnosisError) -> None:
		title_key, category = DIAGNOSIS_ERRORS[exc.kind]
		error = ErrorState(title_key, "errorUnexpected", category)
		LOGGER.warning("Analysis failed (%s): %s", exc.kind.value, exc.message)
		# Failures that carry an explanation are shown as an irrelevant-style
		# result rather than the error panel.
		if exc.message:
			self.soft_error = error
			self.result = DiagnosisResult(
				status=DiagnosisStatus.IRRELEVANT,
				disease_name=translate(self.language, title_key),
				description=exc.message,
			)
			self.status = WorkflowStatus.IRRELEVANT
		else:
			self.error = error
			self.status = WorkflowStatus.ERROR

	def _clear_outcome(self) -> None:
		self.result = None
		self.error = None
		self.soft_error = None
		self.chat = None

	def reset(self) -> None:
		"""Start a new analysis from scratch."""
		self.stop_audio()
		self._image_generation += 1
		self._clear_outcome()
		self.upload = None
		self.status = WorkflowStatus.NO_IMAGE

	# Conversation

	async def send_chat(self, text: str) -> ConversationTurn:
		if self.chat is None:
			raise NoActiveChatError("Chat is only available for a diseased diagnosis.")
		return await self.chat.send(text)

	def clear_chat(self) -> None:
		if self.chat is None:
			raise NoActiveChatError("Chat is only available for a diseased diagnosis.")
		self.chat.reset(self.language)

	# Audio playback

	def initialize_audio(self) -> None:
		"""Create the audio context in response to a user gesture."""
		self.audio_output.initialize()

	async def toggle_audio(self, text: Optional[str] = None) -> None:
		"""Play the spoken summary, or stop it if it is already playing."""
		if self.audio.state == AudioState.PLAYING:
			self.stop_audio()
			return
		if self.audio.state == AudioState.LOADING:
			return

		if text is None:
			if self.result is None:
				raise ValueError("There is no result to read aloud.")
			text = build_speech_text(self.result, self.language)

		self._cancel_audio_clear()
		if not self.audio_output.is_ready:
			LOGGER.error("AudioContext not initialized. Please click on the page first.")
			self._set_audio_error(translate(self.language, "audioContextNotReady"))
			return

		self.audio = AudioPlaybackState.loading()
		generation = self._audio_generation
		try:
			with self._speech_guard.claim():
				payload = await self.speech_client.synthesize(text, self.language)
			if generation != self._audio_generation:
				LOGGER.warning("Dropping speech for a cancelled playback request")
				return
			buffer = decode_speech_payload(payload, self.audio_output.sink, SAMPLE_RATE, NUM_CHANNELS)
			self.audio_output.play(buffer, self._on_audio_ended)
		except (SpeechSynthesisError, AudioDecodeError, AudioContextNotReadyError, OperationInProgressError) as exc:
			if generation == self._audio_generation:
				LOGGER.error("Audio playback failed: %s", exc)
				self._set_audio_error(str(exc) or translate(self.language, "audioPlaybackFailed"))
			return
		except Exception as exc:
			if generation == self._audio_generation:
				LOGGER.error("Unexpected audio playback failure: %s", exc)
				self._set_audio_error(translate(self.language, "audioPlaybackFailed"))
			return
		self.audio = AudioPlaybackState.playing()

	def _on_audio_ended(self, source: PlaybackHandle) -> None:
		if not self.audio_output.is_current(source):
			return
		self.audio_output.release(source)
		self.audio = AudioPlaybackState.idle()

	def stop_audio(self) -> None:
		"""Hard-stop playback and forget any pending synthesis."""
		self._audio_generation += 1
		self._cancel_audio_clear()
		self.audio_output.stop()
		self.audio = AudioPlaybackState.idle()

	def _set_audio_error(self, message: str) -> None:
		self.audio = AudioPlaybackState.error(message)
		loop = asyncio.get_running_loop()
		self._audio_clear_handle = loop.call_later(self.audio_error_clear_seconds, self._clear_audio_error)

	def _clear_audio_error(self) -> None:
		self._audio_clear_handle = None
		if self.audio.state == AudioState.ERROR:
			self.audio = AudioPlaybackState.idle()

	def _cancel_audio_clear(self) -> None:
		if self._audio_clear_handle is not None:
			self._audio_clear_handle.cancel()
			self._audio_clear_handle = None

	def teardown(self) -> None:
		"""Stop playback and dispose of the audio context."""
		self.stop_audio()
		self.audio_output.close()
