import pytest

from models.diagnosis_models import Language
from services.workflow.orchestrator import DiagnosisWorkflow
from tests.fakes import FakeOpenAI, make_png


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def workflow(fake_openai):
    return DiagnosisWorkflow.from_client(fake_openai, Language.ENGLISH, audio_error_clear_seconds=0.05)
