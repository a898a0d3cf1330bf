import asyncio

import pytest

from models.diagnosis_models import ASSISTANT_ROLE, USER_ROLE, Citation, Language
from services.openai.chat_session import SEARCH_TOOL, ConversationSession
from services.strings import translate
from services.workflow.guards import OperationInProgressError
from tests.fakes import LATE_BLIGHT, text_response, url_citation


@pytest.fixture
def session(fake_openai):
    return ConversationSession(fake_openai, LATE_BLIGHT, Language.ENGLISH, model="chat-model")


def test_new_session_holds_only_the_greeting(session):
    assert len(session.turns) == 1
    assert session.turns[0].role == ASSISTANT_ROLE
    assert session.turns[0].text == translate(Language.ENGLISH, "chatInitialMessage")


def test_instructions_embed_the_diagnosis(session):
    assert "Late Blight" in session.instructions
    assert "Apply fungicide X" in session.instructions


@pytest.mark.asyncio
async def test_send_appends_user_and_assistant_turns_with_citations(session, fake_openai):
    fake_openai.responses.enqueue(
        text_response(
            "You can buy **fungicide X** at the district agri office.",
            annotations=[
                url_citation("https://dae.gov.bd/shops", "DAE shops"),
                url_citation("https://dae.gov.bd/shops", "DAE shops again"),
                url_citation("https://example.org/x", ""),
            ],
            response_id="resp_42",
        )
    )

    reply = await session.send("  Where can I buy fungicide X?  ")

    assert [turn.role for turn in session.turns] == [ASSISTANT_ROLE, USER_ROLE, ASSISTANT_ROLE]
    assert session.turns[1].text == "Where can I buy fungicide X?"
    assert reply is session.turns[2]
    assert reply.citations == (
        Citation(uri="https://dae.gov.bd/shops", title="DAE shops"),
        Citation(uri="https://example.org/x", title="https://example.org/x"),
    )

    call = fake_openai.responses.calls[0]
    assert call["model"] == "chat-model"
    assert call["tools"] == [SEARCH_TOOL]
    assert call["instructions"] == session.instructions
    assert "previous_response_id" not in call
    assert session.context.previous_response_id == "resp_42"


@pytest.mark.asyncio
async def test_follow_up_continues_the_remote_conversation(session, fake_openai):
    fake_openai.responses.enqueue(
        text_response("First answer", response_id="resp_1"),
        text_response("Second answer", response_id="resp_2"),
    )

    await session.send("first")
    await session.send("second")

    assert fake_openai.responses.calls[1]["previous_response_id"] == "resp_1"
    assert len(session.turns) == 5


@pytest.mark.asyncio
async def test_transport_failure_becomes_an_apology_turn(session, fake_openai):
    fake_openai.responses.enqueue(RuntimeError("network down"))

    reply = await session.send("hello?")

    assert reply.role == ASSISTANT_ROLE
    assert reply.text == translate(Language.ENGLISH, "chatErrorMessage")
    assert reply.citations == ()
    assert len(session.turns) == 3
    assert session.context.previous_response_id is None


@pytest.mark.asyncio
async def test_blank_message_is_rejected(session, fake_openai):
    with pytest.raises(ValueError):
        await session.send("   ")
    assert len(session.turns) == 1
    assert fake_openai.responses.calls == []


class SlowResponses:
    def __init__(self):
        self.gate = asyncio.Event()
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        await self.gate.wait()
        return text_response("late reply")


@pytest.mark.asyncio
async def test_second_message_while_pending_is_rejected(session):
    session.client.responses = SlowResponses()
    first = asyncio.create_task(session.send("first"))
    await asyncio.sleep(0)
    assert session.pending

    with pytest.raises(OperationInProgressError):
        await session.send("second")

    session.client.responses.gate.set()
    await first
    assert not session.pending
    assert session.client.responses.calls == 1


@pytest.mark.asyncio
async def test_reset_discards_in_flight_reply(session):
    session.client.responses = SlowResponses()
    old_context = session.context
    pending = asyncio.create_task(session.send("question"))
    await asyncio.sleep(0)

    session.reset()
    session.client.responses.gate.set()
    await pending

    assert len(session.turns) == 1
    assert session.turns[0].text == translate(Language.ENGLISH, "chatInitialMessage")
    assert session.context is not old_context
    assert not session.pending


def test_reset_returns_to_a_single_greeting(session):
    session.transcript.append(session.turns[0])
    session.reset()
    assert len(session.turns) == 1


def test_bengali_session_greets_in_bengali(fake_openai):
    session = ConversationSession(fake_openai, LATE_BLIGHT, Language.BENGALI)
    assert session.turns[0].text == translate(Language.BENGALI, "chatInitialMessage")


def test_reset_in_another_language_reseeds_the_conversation(session):
    old_context = session.context

    session.reset(Language.BENGALI)

    assert session.language == Language.BENGALI
    assert session.turns[0].text == translate(Language.BENGALI, "chatInitialMessage")
    assert "Bangladesh" in session.instructions
    assert "Late Blight" in session.instructions
    assert session.context.instructions == session.instructions
    assert session.context is not old_context
