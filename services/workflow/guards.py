"""Single-flight guards for operations that must not overlap."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


class OperationInProgressError(RuntimeError):
	"""Raised when an operation of the same kind is already in flight."""


class SingleFlight:
	"""Allow at most one in-flight operation of a given kind.

	All callers share one event loop, so a plain flag is enough.
	"""

	def __init__(self, name: str) -> None:
		self.name = name
		self.busy = False

	@contextmanager
	def claim(self) -> Iterator[None]:
		if self.busy:
			raise OperationInProgressError(f"A {self.name} request is already in progress.")
		self.busy = True
		try:
			yield
		finally:
			self.busy = False
