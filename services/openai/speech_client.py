"""Speech synthesis helper built on OpenAI's text-to-speech models."""

import base64
import logging
import os

from openai import AsyncOpenAI

from models.diagnosis_models import Language

TTS_MODEL = os.getenv("CROP_DOCTOR_TTS_MODEL", "gpt-4o-mini-tts")
VOICES = {
    Language.BENGALI: os.getenv("CROP_DOCTOR_VOICE_BN", "sage"),
    Language.ENGLISH: os.getenv("CROP_DOCTOR_VOICE_EN", "alloy"),
}

# The "pcm" response format is raw 16-bit little-endian mono at 24 kHz.
SAMPLE_RATE = 24000
NUM_CHANNELS = 1


class SpeechSynthesisError(RuntimeError):
    """Raised when no audio could be produced for the requested text."""


class SpeechClient:
    """Create spoken audio for diagnosis summaries."""

    def __init__(self, client: AsyncOpenAI, model: str = TTS_MODEL) -> None:
        """Initialize the service with a shared OpenAI client."""
        if client is None:
            raise ValueError("OpenAI client is required for speech synthesis.")
        self.client = client
        self.model = model

    async def synthesize(self, text: str, language: Language) -> str:
        """Return base64-encoded 24 kHz mono PCM audio for `text`."""
        if not text or not text.strip():
            raise SpeechSynthesisError("There is no text to read aloud.")

        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=VOICES[Language(language)],
                input=text,
                response_format="pcm",
            )
            audio_bytes = response.content
        except Exception as exc:
            logging.error("Error generating speech: %s", exc)
            raise SpeechSynthesisError(
                "An error occurred while generating audio. Please try again."
            ) from exc

        if not audio_bytes:
            logging.error("Speech response did not include audio data.")
            raise SpeechSynthesisError("Could not retrieve audio data from the API.")
        return base64.b64encode(audio_bytes).decode("ascii")
