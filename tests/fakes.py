"""Test doubles for the OpenAI client, uploads and slow services."""

import asyncio
import io
from types import SimpleNamespace

from PIL import Image

from models.diagnosis_models import DiagnosisResult, DiagnosisStatus, Language


class FakeResponses:
    """Stand-in for `client.responses` that replays queued results."""

    def __init__(self):
        self.calls = []
        self.queue = []

    def enqueue(self, *items):
        self.queue.extend(items)

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeSpeech:
    """Stand-in for `client.audio.speech`."""

    def __init__(self):
        self.calls = []
        self.audio = b"\x00\x00\xff\x7f"
        self.error = None

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.audio)


class FakeOpenAI:
    def __init__(self):
        self.responses = FakeResponses()
        self.audio = SimpleNamespace(speech=FakeSpeech())


class FakeUpload:
    """Async file-like object mimicking FastAPI's UploadFile.read."""

    def __init__(self, data: bytes, fail: bool = False):
        self._io = io.BytesIO(data)
        self.fail = fail

    async def read(self, size: int = -1) -> bytes:
        if self.fail:
            raise OSError("disk went away")
        return self._io.read(size)


class GatedDiagnosisClient:
    """Diagnosis client that waits for the test to release it."""

    def __init__(self, result):
        self.gate = asyncio.Event()
        self.calls = 0
        self.result = result

    async def analyze(self, image_bytes, mime_type, language):
        self.calls += 1
        await self.gate.wait()
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class GatedSpeechClient:
    def __init__(self, payload="AAD/fw=="):
        self.gate = asyncio.Event()
        self.calls = 0
        self.payload = payload

    async def synthesize(self, text, language):
        self.calls += 1
        await self.gate.wait()
        return self.payload


def text_response(text, *, annotations=(), response_id="resp_1"):
    content = SimpleNamespace(type="output_text", text=text, annotations=list(annotations))
    return SimpleNamespace(
        id=response_id,
        status="completed",
        output=[SimpleNamespace(type="message", content=[content])],
        usage=SimpleNamespace(input_tokens=12, output_tokens=34),
    )


def refusal_response(reason="I can't help with that."):
    content = SimpleNamespace(type="refusal", refusal=reason)
    return SimpleNamespace(
        id="resp_refusal",
        status="completed",
        output=[SimpleNamespace(type="message", content=[content])],
        usage=None,
    )


def empty_response():
    return SimpleNamespace(id="resp_empty", status="completed", output=[], usage=None)


def url_citation(url, title):
    return SimpleNamespace(type="url_citation", url=url, title=title, start_index=0, end_index=1)


LATE_BLIGHT_JSON = (
    '{"status": "diseased", "diseaseName": "Late Blight", "description": "Dark lesions on leaves.", '
    '"controlMeasures": ["Apply fungicide X", "Remove infected leaves", "Improve drainage"]}'
)

HEALTHY_JSON = (
    '{"status": "healthy", "diseaseName": "Healthy Plant", "description": "Looks great.", '
    '"preventativeMeasures": ["Rotate crops"], "controlMeasures": ["Should be dropped"]}'
)

LATE_BLIGHT = DiagnosisResult(
    status=DiagnosisStatus.DISEASED,
    disease_name="Late Blight",
    description="Dark lesions on leaves.",
    control_measures=("Apply fungicide X", "Remove infected leaves", "Improve drainage"),
)


def make_png(size=(8, 8), color=(0, 128, 0)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="PNG")
    return out.getvalue()


def workflow_with(client, diagnosis_client=None, speech_client=None, **kwargs):
    """Build an English workflow with selected services swapped for test doubles."""
    from services.openai.chat_session import ConversationSession
    from services.openai.diagnosis_client import DiagnosisClient
    from services.openai.speech_client import SpeechClient
    from services.workflow.orchestrator import DiagnosisWorkflow

    return DiagnosisWorkflow(
        diagnosis_client=diagnosis_client or DiagnosisClient(client),
        speech_client=speech_client or SpeechClient(client),
        chat_factory=lambda result, language: ConversationSession(client, result, language),
        language=Language.ENGLISH,
        **kwargs,
    )


def make_truncated_jpeg(size=(2000, 2000), keep=4000) -> bytes:
    """Return a large noisy JPEG cut short so its header still parses."""
    out = io.BytesIO()
    Image.effect_noise(size, 64).convert("RGB").save(out, format="JPEG", quality=95)
    return out.getvalue()[:keep]
