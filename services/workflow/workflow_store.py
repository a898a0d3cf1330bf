"""Simple in-memory store for diagnosis workflows."""

from __future__ import annotations

import logging
from typing import Callable, Dict
from uuid import uuid4

from models.diagnosis_models import Language
from services.workflow.orchestrator import DiagnosisWorkflow

LOGGER = logging.getLogger(__name__)


class WorkflowStore:
	"""Manage one diagnosis workflow per browser session."""

	def __init__(self, factory: Callable[[Language], DiagnosisWorkflow]) -> None:
		self._factory = factory
		self._workflows: Dict[str, DiagnosisWorkflow] = {}

	def __len__(self) -> int:
		return len(self._workflows)

	def create(self, language: Language) -> tuple[str, DiagnosisWorkflow]:
		"""Create a new workflow in the requested language."""
		workflow_id = uuid4().hex
		workflow = self._factory(Language(language))
		self._workflows[workflow_id] = workflow
		LOGGER.info("Created workflow %s", workflow_id)
		return workflow_id, workflow

	def get(self, workflow_id: str) -> DiagnosisWorkflow:
		"""Return a workflow or raise KeyError if missing."""
		workflow = self._workflows.get(workflow_id)
		if workflow is None:
			raise KeyError(f"Workflow {workflow_id} not found")
		return workflow

	def remove(self, workflow_id: str) -> None:
		"""Tear down and forget a workflow."""
		workflow = self.get(workflow_id)
		workflow.teardown()
		del self._workflows[workflow_id]
		LOGGER.info("Removed workflow %s", workflow_id)

	def close_all(self) -> None:
		for workflow_id in list(self._workflows):
			self.remove(workflow_id)
