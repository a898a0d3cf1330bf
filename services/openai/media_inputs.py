"""Utilities to build multimodal input payloads for the Responses API."""

import base64
from typing import Any, Dict, List


def to_image_data_url(image_bytes: bytes, mime_type: str) -> str:
    """Convert raw image bytes into a data URL suitable for vision input."""
    if not image_bytes:
        raise ValueError("Image bytes are required.")
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def build_diagnosis_inputs(image_bytes: bytes, mime_type: str, prompt: str) -> List[Dict[str, Any]]:
    """Build a single user message holding the image part and the instruction part."""
    return [
        {
            "type": "message",
            "role": "user",
            "content": [
                {"type": "input_image", "image_url": to_image_data_url(image_bytes, mime_type)},
                {"type": "input_text", "text": prompt},
            ],
        }
    ]


def build_text_input(text: str) -> List[Dict[str, Any]]:
    """Wrap a single user text turn."""
    return [{"type": "message", "role": "user", "content": [{"type": "input_text", "text": text}]}]
