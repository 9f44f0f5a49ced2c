"""Tests for chapter-bound chat sessions."""

from __future__ import annotations

import asyncio
from typing import List

from study_companion.core.exceptions import EnrichmentError
from study_companion.core.models import ChapterIdentifier
from study_companion.services.chat import (
    CHAT_ERROR_MESSAGE,
    initialize_chat,
    send_message,
    stream_reply,
)

# pylint: disable=missing-function-docstring

JOHN_3 = ChapterIdentifier(book="John", chapter=3)


def test_initialize_chat_binds_chapter(enrichment) -> None:
    session = initialize_chat(JOHN_3, enrichment)
    assert "John 3" in session.system_instruction
    assert session.history == []


def test_send_message_yields_deltas_and_records_turns(enrichment) -> None:
    session = initialize_chat(JOHN_3, enrichment)

    async def collect() -> List[str]:
        return [delta async for delta in send_message(session, "Who was Nicodemus?")]

    assert asyncio.run(collect()) == ["In the ", "beginning."]
    assert [(m.role, m.content) for m in session.history] == [
        ("user", "Who was Nicodemus?"),
        ("model", "In the beginning."),
    ]
    system, history = enrichment.chat_calls[0]
    assert system == session.system_instruction
    assert history[-1].content == "Who was Nicodemus?"


def test_stream_reply_reports_progress(enrichment) -> None:
    session = initialize_chat(JOHN_3, enrichment)
    snapshots: List[str] = []

    reply = asyncio.run(stream_reply(session, "Explain verse 16", lambda m: snapshots.append(m.content)))

    assert reply is not None
    assert reply.role == "model"
    assert reply.content == "In the beginning."
    assert snapshots == ["", "In the ", "In the beginning."]


def test_stream_reply_replaces_content_on_failure(enrichment) -> None:
    enrichment.chat_error = EnrichmentError("stream dropped")
    session = initialize_chat(JOHN_3, enrichment)

    reply = asyncio.run(stream_reply(session, "Explain verse 16"))

    assert reply is not None
    assert reply.content == CHAT_ERROR_MESSAGE
    assert [(m.role, m.content) for m in session.history] == [
        ("user", "Explain verse 16"),
        ("model", CHAT_ERROR_MESSAGE),
    ]


def test_send_after_failure_keeps_turns_alternating(enrichment) -> None:
    enrichment.chat_error = EnrichmentError("stream dropped")
    session = initialize_chat(JOHN_3, enrichment)
    asyncio.run(stream_reply(session, "Explain verse 16"))

    enrichment.chat_error = None
    reply = asyncio.run(stream_reply(session, "Try again"))

    assert reply is not None and reply.content == "In the beginning."
    _, history = enrichment.chat_calls[-1]
    assert [m.role for m in history] == ["user", "model", "user"]
    assert [m.role for m in session.history] == ["user", "model", "user", "model"]


def test_blank_input_is_ignored(enrichment) -> None:
    session = initialize_chat(JOHN_3, enrichment)
    assert asyncio.run(stream_reply(session, "   ")) is None
    assert enrichment.chat_calls == []


def test_sessions_are_independent(enrichment) -> None:
    first = initialize_chat(JOHN_3, enrichment)
    second = initialize_chat(ChapterIdentifier(book="Ruth", chapter=1), enrichment)
    asyncio.run(stream_reply(first, "hello"))
    assert second.history == []
    assert "Ruth 1" in second.system_instruction
