"""Chunked reading of uploaded images with progress reporting."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

LOGGER = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class FileReadError(Exception):
	"""Raised when an uploaded file cannot be read."""


class AsyncReadable(Protocol):
	async def read(self, size: int = -1) -> bytes: ...


async def read_with_progress(
	source: AsyncReadable,
	total_size: Optional[int],
	on_progress: Callable[[int], None],
	chunk_size: int = CHUNK_SIZE,
) -> bytes:
	"""Read `source` to the end, reporting integer progress from 0 to 100.

	Progress is only reported when `total_size` is known; the final
	value is always 100 once the read completes.

	Raises:
		FileReadError: If the source raises or yields no data.
	"""
	chunks = []
	loaded = 0
	on_progress(0)
	try:
		while True:
			chunk = await source.read(chunk_size)
			if not chunk:
				break
			chunks.append(chunk)
			loaded += len(chunk)
			if total_size:
				on_progress(min(100, round(loaded / total_size * 100)))
	except Exception as exc:
		LOGGER.error("File reading error: %s", exc)
		raise FileReadError("The uploaded file could not be read.") from exc

	if not loaded:
		raise FileReadError("The uploaded file is empty.")
	on_progress(100)
	return b"".join(chunks)
