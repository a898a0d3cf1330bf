"""Validation helpers for uploaded images."""

from fastapi import HTTPException, UploadFile

ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
}

EXTENSION_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


def resolve_image_type(image_file: UploadFile) -> str:
    """Return the MIME type of an uploaded image, rejecting unsupported files.

    The declared content type is used when present; otherwise the
    filename extension decides.
    """
    if image_file.content_type and image_file.content_type != "application/octet-stream":
        content_type = image_file.content_type.lower().split(";", 1)[0].strip()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise HTTPException(status_code=415, detail=f"Unsupported image content type: {image_file.content_type}")
        return content_type

    filename = (image_file.filename or "").lower()
    for extension, content_type in EXTENSION_TYPES.items():
        if filename.endswith(extension):
            return content_type
    raise HTTPException(status_code=415, detail="Unsupported or missing image content type.")
