"""Chapter-bound study assistant conversations.

A ``ChatSession`` is created per chapter and handed to every send call; there
is no process-wide "current conversation".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, List, Optional

from study_companion.core.logging import get_logger
from study_companion.core.models import ChapterIdentifier, ChatMessage
from study_companion.core.ports import EnrichmentPort

logger = get_logger(__name__)

CHAT_ERROR_MESSAGE = "Sorry, an error occurred."

SYSTEM_INSTRUCTION_TEMPLATE = """You are a kind, encouraging, and scholarly Bible study assistant. Your purpose is to help users deepen their understanding of the Bible in a way that is loving, honest, and fact-based.
You must avoid expressing personal opinions or denominational bias.
When answering questions, your responses should be based directly on the biblical text. ALWAYS cite the specific book, chapter, and verse(s) that support your explanation (e.g., John 3:16).
Be aware of the nuances between different parts of the Bible, such as the Old and New Testaments.
Your current user is studying the Christian Bible chapter of {book} {chapter}. Keep your tone caring and your answers rooted in scripture."""

UpdateCallback = Callable[[ChatMessage], None]


@dataclass(slots=True)
class ChatSession:
    """One conversation: its system instruction, AI collaborator and turn history."""

    chapter: ChapterIdentifier
    system_instruction: str
    client: EnrichmentPort
    history: List[ChatMessage] = field(default_factory=list)


def initialize_chat(chapter: ChapterIdentifier, client: EnrichmentPort) -> ChatSession:
    """Start a fresh conversation bound to ``chapter``."""
    logger.info("[chat] new session for %s", chapter.label())
    return ChatSession(
        chapter=chapter,
        system_instruction=SYSTEM_INSTRUCTION_TEMPLATE.format(
            book=chapter.book, chapter=chapter.chapter
        ),
        client=client,
    )


async def send_message(session: ChatSession, text: str) -> AsyncIterator[str]:
    """Send ``text`` and yield the reply as ordered text deltas.

    The user turn is recorded before the request; the model turn is recorded
    only once the stream completes.
    """
    session.history.append(ChatMessage(role="user", content=text))
    parts: List[str] = []
    async for delta in session.client.stream_chat(session.system_instruction, list(session.history)):
        parts.append(delta)
        yield delta
    session.history.append(ChatMessage(role="model", content="".join(parts)))


async def stream_reply(
    session: ChatSession,
    text: str,
    on_update: Optional[UpdateCallback] = None,
) -> Optional[ChatMessage]:
    """Drive ``send_message`` into one in-progress model message.

    Each delta extends the message and is reported through ``on_update``. An
    upstream failure replaces the content with ``CHAT_ERROR_MESSAGE``, which is
    also recorded as the model turn. Blank input is ignored and returns ``None``.
    """
    if not text.strip():
        return None
    reply = ChatMessage(role="model", content="")
    if on_update is not None:
        on_update(reply)
    try:
        async for delta in send_message(session, text):
            reply.content += delta
            if on_update is not None:
                on_update(reply)
    except Exception:  # pylint: disable=broad-except
        logger.error("[chat] reply stream failed for %s", session.chapter.label(), exc_info=True)
        reply.content = CHAT_ERROR_MESSAGE
        # history alternates user/model turns
        if session.history and session.history[-1].role == "user":
            session.history.append(ChatMessage(role="model", content=CHAT_ERROR_MESSAGE))
        if on_update is not None:
            on_update(reply)
    return reply


__all__ = [
    "ChatSession",
    "initialize_chat",
    "send_message",
    "stream_reply",
    "CHAT_ERROR_MESSAGE",
    "SYSTEM_INSTRUCTION_TEMPLATE",
]
