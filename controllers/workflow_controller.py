"""Workflow lifecycle helpers for the browser-facing API."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, UploadFile
from fastapi.responses import Response

from models.diagnosis_models import ASSISTANT_ROLE, ConversationTurn, Language
from services.audio.playback import AudioContextNotReadyError, BufferedAudioSink, encode_wav
from services.markup import parse_markup
from services.workflow.guards import OperationInProgressError
from services.workflow.orchestrator import DiagnosisWorkflow, NoActiveChatError
from services.workflow.workflow_store import WorkflowStore
from utils.media_validation import resolve_image_type


def _store(request: Request) -> WorkflowStore:
	store = getattr(request.app.state, "workflow_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Workflow store unavailable")
	return store


def _workflow(request: Request, workflow_id: str) -> DiagnosisWorkflow:
	try:
		return _store(request).get(workflow_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc


def serialize_turn(turn: ConversationTurn) -> Dict[str, Any]:
	"""Return a transcript entry with its markup pre-parsed for assistant turns."""
	blocks = [block.to_dict() for block in parse_markup(turn.text)] if turn.role == ASSISTANT_ROLE else []
	return {
		"role": turn.role,
		"text": turn.text,
		"citations": [{"uri": c.uri, "title": c.title} for c in turn.citations],
		"blocks": blocks,
	}


def workflow_snapshot(workflow_id: str, workflow: DiagnosisWorkflow) -> Dict[str, Any]:
	"""Return the serializable state of a workflow."""
	upload = workflow.upload
	error = workflow.error
	soft_error = workflow.soft_error
	return {
		"workflow_id": workflow_id,
		"status": workflow.status.value,
		"language": workflow.language.value,
		"upload": None
		if upload is None
		else {
			"filename": upload.filename,
			"mime_type": upload.mime_type,
			"progress": upload.progress,
			"preview_data_url": upload.preview_data_url,
		},
		"analysis_pending": workflow.analysis_pending,
		"result": workflow.result.to_payload() if workflow.result else None,
		"error": None
		if error is None
		else {"title_key": error.title_key, "message_key": error.message_key, "category": error.category.value},
		"soft_error_category": soft_error.category.value if soft_error else None,
		"chat": None
		if workflow.chat is None
		else {
			"pending": workflow.chat_pending,
			"turns": [serialize_turn(turn) for turn in workflow.chat.turns],
		},
		"audio": {
			"state": workflow.audio.state.value,
			"message": workflow.audio.message,
			"context_ready": workflow.audio_output.is_ready,
		},
	}


async def create_workflow(request: Request, language: Optional[Language]) -> Dict[str, Any]:
	"""Create a new workflow and return its initial snapshot."""
	store = _store(request)
	workflow_id, workflow = store.create(language or request.app.state.default_language)
	return workflow_snapshot(workflow_id, workflow)


async def get_workflow(request: Request, workflow_id: str) -> Dict[str, Any]:
	return workflow_snapshot(workflow_id, _workflow(request, workflow_id))


async def delete_workflow(request: Request, workflow_id: str) -> Dict[str, Any]:
	try:
		_store(request).remove(workflow_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc
	return {"workflow_id": workflow_id, "deleted": True}


async def set_language(request: Request, workflow_id: str, language: Language) -> Dict[str, Any]:
	workflow = _workflow(request, workflow_id)
	workflow.set_language(language)
	return workflow_snapshot(workflow_id, workflow)


async def select_image(request: Request, workflow_id: str, image: UploadFile) -> Dict[str, Any]:
	"""Read an uploaded image into the workflow and build its preview."""
	workflow = _workflow(request, workflow_id)
	mime_type = resolve_image_type(image)
	await workflow.select_image(
		image,
		filename=image.filename or "uploaded_image",
		mime_type=mime_type,
		total_size=getattr(image, "size", None),
	)
	return workflow_snapshot(workflow_id, workflow)


async def analyze(request: Request, workflow_id: str) -> Dict[str, Any]:
	workflow = _workflow(request, workflow_id)
	try:
		await workflow.analyze()
	except OperationInProgressError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	return workflow_snapshot(workflow_id, workflow)


async def send_chat(request: Request, workflow_id: str, text: str) -> Dict[str, Any]:
	"""Forward a chat message and return the reply with the updated state."""
	workflow = _workflow(request, workflow_id)
	try:
		reply = await workflow.send_chat(text)
	except (NoActiveChatError, OperationInProgressError) as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	result = workflow_snapshot(workflow_id, workflow)
	result["reply"] = serialize_turn(reply)
	return result


async def clear_chat(request: Request, workflow_id: str) -> Dict[str, Any]:
	workflow = _workflow(request, workflow_id)
	try:
		workflow.clear_chat()
	except NoActiveChatError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	return workflow_snapshot(workflow_id, workflow)


async def reset(request: Request, workflow_id: str) -> Dict[str, Any]:
	workflow = _workflow(request, workflow_id)
	workflow.reset()
	return workflow_snapshot(workflow_id, workflow)


async def initialize_audio(request: Request, workflow_id: str) -> Dict[str, Any]:
	"""Create the audio context after the browser's first user gesture."""
	workflow = _workflow(request, workflow_id)
	try:
		workflow.initialize_audio()
	except RuntimeError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	return workflow_snapshot(workflow_id, workflow)


async def toggle_audio(request: Request, workflow_id: str, text: Optional[str]) -> Dict[str, Any]:
	workflow = _workflow(request, workflow_id)
	try:
		await workflow.toggle_audio(text)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	return workflow_snapshot(workflow_id, workflow)


def _sink(workflow: DiagnosisWorkflow) -> BufferedAudioSink:
	try:
		sink = workflow.audio_output.sink
	except AudioContextNotReadyError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	if not isinstance(sink, BufferedAudioSink):
		raise HTTPException(status_code=500, detail="Audio sink does not expose buffers")
	return sink


async def audio_ended(request: Request, workflow_id: str) -> Dict[str, Any]:
	"""Record that the browser finished playing the scheduled audio."""
	workflow = _workflow(request, workflow_id)
	_sink(workflow).notify_ended()
	return workflow_snapshot(workflow_id, workflow)


async def current_audio(request: Request, workflow_id: str) -> Response:
	"""Return the scheduled buffer as WAV bytes."""
	workflow = _workflow(request, workflow_id)
	source = _sink(workflow).active_source()
	if source is None:
		raise HTTPException(status_code=404, detail="No audio is playing")
	return Response(content=encode_wav(source.buffer), media_type="audio/wav")
