import io
import wave

import pytest
from fastapi.testclient import TestClient

from main import app
from models.diagnosis_models import Language
from services.workflow.orchestrator import DiagnosisWorkflow
from services.workflow.workflow_store import WorkflowStore
from tests.fakes import LATE_BLIGHT_JSON, text_response, url_citation


@pytest.fixture
def client(fake_openai):
    app.state.openai_client = fake_openai
    app.state.default_language = Language.ENGLISH
    app.state.workflow_store = WorkflowStore(lambda language: DiagnosisWorkflow.from_client(fake_openai, language))
    yield TestClient(app)
    app.state.workflow_store.close_all()


def _create(client, **payload):
    response = client.post("/workflows", json=payload or None)
    assert response.status_code == 200
    return response.json()


def _upload(client, workflow_id, data, filename="leaf.png", content_type="image/png"):
    return client.post(
        f"/workflows/{workflow_id}/image",
        files={"image": (filename, data, content_type)},
    )


def test_health_reports_active_workflows(client):
    _create(client)
    body = client.get("/health").json()
    assert body == {"ok": True, "openai_available": True, "active_workflows": 1}


def test_create_uses_default_language(client):
    body = _create(client)
    assert body["status"] == "no_image"
    assert body["language"] == "en"
    assert body["audio"] == {"state": "idle", "message": None, "context_ready": False}


def test_create_with_explicit_language(client):
    assert _create(client, language="bn")["language"] == "bn"


def test_unknown_workflow_is_404(client):
    assert client.get("/workflows/missing").status_code == 404
    assert client.post("/workflows/missing/analyze").status_code == 404


def test_analyze_without_image_returns_error_state(client):
    workflow_id = _create(client)["workflow_id"]

    body = client.post(f"/workflows/{workflow_id}/analyze").json()

    assert body["status"] == "error"
    assert body["error"]["title_key"] == "errorNoImage"


def test_unsupported_upload_is_415(client):
    workflow_id = _create(client)["workflow_id"]
    response = _upload(client, workflow_id, b"hello", filename="notes.txt", content_type="text/plain")
    assert response.status_code == 415


def test_empty_upload_sets_file_read_error(client):
    workflow_id = _create(client)["workflow_id"]
    body = _upload(client, workflow_id, b"").json()
    assert body["status"] == "error"
    assert body["error"]["title_key"] == "errorFileRead"


def test_late_blight_end_to_end(client, fake_openai, png_bytes):
    workflow_id = _create(client)["workflow_id"]

    body = _upload(client, workflow_id, png_bytes).json()
    assert body["status"] == "ready"
    assert body["upload"]["preview_data_url"].startswith("data:image/png;base64,")

    fake_openai.responses.enqueue(text_response(LATE_BLIGHT_JSON))
    body = client.post(f"/workflows/{workflow_id}/analyze").json()
    assert body["status"] == "diseased"
    assert body["result"]["diseaseName"] == "Late Blight"
    assert "preventativeMeasures" not in body["result"]
    assert len(body["chat"]["turns"]) == 1

    fake_openai.responses.enqueue(
        text_response(
            "### Where to buy\n* Visit the **upazila** office",
            annotations=[url_citation("https://dae.gov.bd", "DAE")],
        )
    )
    body = client.post(f"/workflows/{workflow_id}/chat", json={"text": "Where can I buy fungicide X?"}).json()
    assert [turn["role"] for turn in body["chat"]["turns"]] == ["assistant", "user", "assistant"]
    assert body["reply"]["citations"] == [{"uri": "https://dae.gov.bd", "title": "DAE"}]
    assert [block["kind"] for block in body["reply"]["blocks"]] == ["heading", "list"]

    body = client.post(f"/workflows/{workflow_id}/chat/clear").json()
    assert len(body["chat"]["turns"]) == 1

    body = client.post(f"/workflows/{workflow_id}/reset").json()
    assert body["status"] == "no_image"
    assert body["chat"] is None


def test_chat_without_diagnosis_is_409(client):
    workflow_id = _create(client)["workflow_id"]
    response = client.post(f"/workflows/{workflow_id}/chat", json={"text": "hi"})
    assert response.status_code == 409


def test_blank_chat_message_is_400(client, fake_openai, png_bytes):
    workflow_id = _create(client)["workflow_id"]
    _upload(client, workflow_id, png_bytes)
    fake_openai.responses.enqueue(text_response(LATE_BLIGHT_JSON))
    client.post(f"/workflows/{workflow_id}/analyze")

    response = client.post(f"/workflows/{workflow_id}/chat", json={"text": "   "})
    assert response.status_code == 400


def test_audio_requires_context(client):
    workflow_id = _create(client)["workflow_id"]

    body = client.post(f"/workflows/{workflow_id}/audio/toggle", json={"text": "hello"}).json()

    assert body["audio"]["state"] == "error"
    assert body["audio"]["message"].startswith("Audio context not ready")


def test_audio_without_anything_to_read_is_400(client):
    workflow_id = _create(client)["workflow_id"]
    client.post(f"/workflows/{workflow_id}/audio/context")
    assert client.post(f"/workflows/{workflow_id}/audio/toggle").status_code == 400


def test_audio_playback_round_trip(client):
    workflow_id = _create(client)["workflow_id"]

    body = client.post(f"/workflows/{workflow_id}/audio/context").json()
    assert body["audio"]["context_ready"] is True

    body = client.post(f"/workflows/{workflow_id}/audio/toggle", json={"text": "hello"}).json()
    assert body["audio"]["state"] == "playing"

    response = client.get(f"/workflows/{workflow_id}/audio/current")
    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/wav"
    with wave.open(io.BytesIO(response.content), "rb") as wf:
        assert wf.getframerate() == 24000
        assert wf.getnframes() == 2

    body = client.post(f"/workflows/{workflow_id}/audio/ended").json()
    assert body["audio"]["state"] == "idle"
    assert client.get(f"/workflows/{workflow_id}/audio/current").status_code == 404


def test_language_can_be_switched(client):
    workflow_id = _create(client)["workflow_id"]
    body = client.put(f"/workflows/{workflow_id}/language", json={"language": "bn"}).json()
    assert body["language"] == "bn"


def test_delete_workflow(client):
    workflow_id = _create(client)["workflow_id"]
    assert client.delete(f"/workflows/{workflow_id}").json() == {"workflow_id": workflow_id, "deleted": True}
    assert client.get(f"/workflows/{workflow_id}").status_code == 404
