"""Follow-up conversation about a diagnosed crop disease.

Each session wraps a remote Responses API conversation chain that is
seeded with the diagnosis and allowed to search the web. Transport
failures never escape `send`; they become an apology turn in the
transcript instead.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from openai import AsyncOpenAI

from models.diagnosis_models import (
    ConversationTurn,
    DiagnosisResult,
    Language,
    assistant_turn,
    user_turn,
)
from services.openai.diagnosis_prompts import build_chat_instructions
from services.openai.media_inputs import build_text_input
from services.openai.response_parser import extract_citations, extract_text
from services.strings import translate
from services.workflow.guards import SingleFlight

LOGGER = logging.getLogger(__name__)
CHAT_MODEL = os.getenv("CROP_DOCTOR_CHAT_MODEL", "gpt-4.1-mini")
SEARCH_TOOL: Dict[str, Any] = {"type": "web_search"}


@dataclass
class RemoteChatContext:
    """Handle on one remote conversation chain."""

    context_id: str
    instructions: str
    previous_response_id: Optional[str] = None


class ConversationSession:
    """Stateful dialogue tied to a completed diagnosis."""

    def __init__(
        self,
        client: AsyncOpenAI,
        diagnosis: DiagnosisResult,
        language: Language,
        model: str = CHAT_MODEL,
    ) -> None:
        if client is None:
            raise ValueError("OpenAI client is required for chat.")
        self.client = client
        self.diagnosis = diagnosis
        self.language = Language(language)
        self.model = model
        self.instructions = build_chat_instructions(diagnosis.to_payload(), self.language)
        self.context = self._create_context()
        self.transcript: List[ConversationTurn] = [self._greeting()]
        self._guard = SingleFlight("chat")

    @property
    def turns(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self.transcript)

    @property
    def pending(self) -> bool:
        return self._guard.busy

    def _create_context(self) -> RemoteChatContext:
        context = RemoteChatContext(context_id=uuid4().hex, instructions=self.instructions)
        LOGGER.info("Created chat context %s", context.context_id)
        return context

    def _greeting(self) -> ConversationTurn:
        return assistant_turn(translate(self.language, "chatInitialMessage"))

    async def send(self, text: str) -> ConversationTurn:
        """Append the user's turn, ask the assistant, and append its reply.

        Raises:
            ValueError: If the message is blank.
            OperationInProgressError: If another message is still awaiting a reply.
        """
        message = (text or "").strip()
        if not message:
            raise ValueError("Chat message must not be empty.")

        guard = self._guard
        with guard.claim():
            context = self.context
            transcript = self.transcript
            transcript.append(user_turn(message))
            reply = await self._ask(context, message)
            if context is not self.context:
                LOGGER.warning("Dropping reply for discarded chat context %s", context.context_id)
                return reply
            transcript.append(reply)
            return reply

    async def _ask(self, context: RemoteChatContext, message: str) -> ConversationTurn:
        request: Dict[str, Any] = {
            "model": self.model,
            "instructions": context.instructions,
            "input": build_text_input(message),
            "tools": [SEARCH_TOOL],
        }
        if context.previous_response_id:
            request["previous_response_id"] = context.previous_response_id

        try:
            response = await self.client.responses.create(**request)
        except Exception as exc:
            LOGGER.error("Chat error: %s", exc)
            return assistant_turn(translate(self.language, "chatErrorMessage"))

        reply_text = extract_text(response).strip()
        if not reply_text:
            LOGGER.warning("Chat response for context %s had no text", context.context_id)
            return assistant_turn(translate(self.language, "chatErrorMessage"))

        response_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        context.previous_response_id = response_id
        return assistant_turn(reply_text, extract_citations(response))

    def reset(self, language: Optional[Language] = None) -> None:
        """Start over with a single greeting and a freshly seeded remote context.

        When `language` is given, the instructions and greeting are rebuilt in it.
        """
        LOGGER.info("Discarding chat context %s", self.context.context_id)
        if language is not None:
            self.language = Language(language)
            self.instructions = build_chat_instructions(self.diagnosis.to_payload(), self.language)
        self.context = self._create_context()
        self.transcript = [self._greeting()]
        self._guard = SingleFlight("chat")
