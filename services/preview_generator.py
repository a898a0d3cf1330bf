"""Preview generator service.

Validates uploaded image bytes with Pillow and produces the data URL
shown as the upload preview. Images larger than `max_size` are
downscaled (preserving aspect ratio) so previews stay light; smaller
images are passed through untouched.

Public class: `PreviewGenerator`

Example:
    pg = PreviewGenerator(max_size=(1024, 1024))
    data_url = pg.create_preview(image_bytes, "image/jpeg")
"""
from __future__ import annotations

import base64
import io
from typing import Tuple

from PIL import Image

SUPPORTED_FORMATS = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


class PreviewGenerator:
    """Build data-URL previews from uploaded image bytes.

    Args:
        max_size: Maximum width and height of the preview. Defaults to (1024, 1024).
        background: Color used when flattening transparent images for JPEG output.
    """

    def __init__(self, max_size: Tuple[int, int] = (1024, 1024), background: Tuple[int, int, int] | None = None):
        self.max_size = max_size
        self.background = background or (255, 255, 255)

    def detect_mime_type(self, image_bytes: bytes) -> str:
        """Return the MIME type of a supported image.

        Raises:
            ValueError: If the bytes are not a PNG, JPEG, or WEBP image.
        """
        try:
            with Image.open(io.BytesIO(image_bytes)) as src:
                src.verify()
                image_format = src.format
        except Exception as exc:
            raise ValueError("Uploaded bytes are not a supported image format") from exc

        if image_format not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported image format: {image_format}")
        return SUPPORTED_FORMATS[image_format]

    def create_preview(self, image_bytes: bytes, mime_type: str | None = None) -> str:
        """Return a data URL preview for the image.

        Args:
            image_bytes: Raw bytes of the uploaded image.
            mime_type: Declared MIME type; the detected type is used when omitted.

        Raises:
            ValueError: If the bytes cannot be opened or decoded as a supported image.
        """
        detected = self.detect_mime_type(image_bytes)
        mime = mime_type or detected

        try:
            with Image.open(io.BytesIO(image_bytes)) as src:
                width, height = src.size
                if width <= self.max_size[0] and height <= self.max_size[1]:
                    return self._data_url(image_bytes, mime)

                src = src.convert("RGBA")
                src.thumbnail(self.max_size, Image.LANCZOS)

                # Flatten alpha against the background color
                flattened = Image.new("RGB", src.size, self.background)
                flattened.paste(src, mask=src.split()[3])

                out_io = io.BytesIO()
                flattened.save(out_io, format="JPEG", quality=85)
        except OSError as exc:
            # verify() does not decode pixel data, so truncated files fail here
            raise ValueError("Uploaded image could not be decoded") from exc
        return self._data_url(out_io.getvalue(), "image/jpeg")

    @staticmethod
    def _data_url(data: bytes, mime_type: str) -> str:
        encoded = base64.b64encode(data).decode("utf-8")
        return f"data:{mime_type};base64,{encoded}"
