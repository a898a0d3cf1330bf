"""FastAPI routes for diagnosis workflows."""

from typing import Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers import workflow_controller as controller
from models.diagnosis_models import Language

router = APIRouter(prefix="/workflows", tags=["workflows"])


class CreatePayload(BaseModel):
	language: Optional[Language] = None


class LanguagePayload(BaseModel):
	language: Language


class ChatPayload(BaseModel):
	text: str


class AudioPayload(BaseModel):
	text: Optional[str] = None


@router.post("")
async def create_workflow_route(request: Request, payload: Optional[CreatePayload] = None):
	try:
		return await controller.create_workflow(request, payload.language if payload else None)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{workflow_id}")
async def get_workflow_route(request: Request, workflow_id: str):
	try:
		return await controller.get_workflow(request, workflow_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/{workflow_id}")
async def delete_workflow_route(request: Request, workflow_id: str):
	try:
		return await controller.delete_workflow(request, workflow_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.put("/{workflow_id}/language")
async def set_language_route(request: Request, workflow_id: str, payload: LanguagePayload):
	try:
		return await controller.set_language(request, workflow_id, payload.language)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{workflow_id}/image", summary="Select a crop image for analysis")
async def select_image_route(request: Request, workflow_id: str, image: UploadFile = File(...)):
	"""Read the uploaded image and return the workflow with its preview."""
	try:
		return await controller.select_image(request, workflow_id, image)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{workflow_id}/analyze", summary="Diagnose the selected image")
async def analyze_route(request: Request, workflow_id: str):
	try:
		return await controller.analyze(request, workflow_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{workflow_id}/chat")
async def chat_route(request: Request, workflow_id: str, payload: ChatPayload):
	try:
		return await controller.send_chat(request, workflow_id, payload.text)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{workflow_id}/chat/clear")
async def clear_chat_route(request: Request, workflow_id: str):
	try:
		return await controller.clear_chat(request, workflow_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{workflow_id}/reset")
async def reset_route(request: Request, workflow_id: str):
	try:
		return await controller.reset(request, workflow_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{workflow_id}/audio/context")
async def audio_context_route(request: Request, workflow_id: str):
	try:
		return await controller.initialize_audio(request, workflow_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{workflow_id}/audio/toggle")
async def audio_toggle_route(request: Request, workflow_id: str, payload: Optional[AudioPayload] = None):
	try:
		return await controller.toggle_audio(request, workflow_id, payload.text if payload else None)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{workflow_id}/audio/ended")
async def audio_ended_route(request: Request, workflow_id: str):
	try:
		return await controller.audio_ended(request, workflow_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{workflow_id}/audio/current")
async def current_audio_route(request: Request, workflow_id: str):
	"""Return the currently scheduled speech as a WAV file."""
	try:
		return await controller.current_audio(request, workflow_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
