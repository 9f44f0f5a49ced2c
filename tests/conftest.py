"""Pytest configuration: ensure env vars and import path are set early.

This runs before any tests, so modules can import without local path hacks.
Also load .env before setting defaults so real keys are used when present.
"""
from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional, Sequence

import pytest
from dotenv import load_dotenv

# Ensure repository root is on sys.path for local package imports
sys.path.append(str(Path(__file__).resolve().parents[1]))

# Load .env first so real credentials are available when present
load_dotenv(override=False)

# Ensure required env vars exist for config import (fallbacks only)
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-test-key")
os.environ.setdefault("OPENAI_API_KEY", "test")
os.environ.setdefault("LOG_PSEUDONYM_SECRET", "test-secret")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="study-companion-data-"))
os.environ.setdefault("STUDY_COMPANION_LOG_DIR", tempfile.mkdtemp(prefix="study-companion-logs-"))

# pylint: disable=wrong-import-position,missing-function-docstring
from study_companion.core.auth_models import AuthEvent, AuthSession, AuthUser, SignUpResult
from study_companion.core.exceptions import AuthError
from study_companion.core.models import ChapterIdentifier, ChatMessage
from study_companion.core.ports import AuthListener


class FakeLocalStore:
    """Dict-backed stand-in for the local key-value store."""

    def __init__(self, items: Optional[Dict[str, str]] = None) -> None:
        self.items: Dict[str, str] = dict(items or {})
        self.removed: List[str] = []

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.removed.append(key)
        self.items.pop(key, None)


class FakeProfileBackend:
    """In-memory profile table with scriptable select outcomes.

    ``select_script`` entries are consumed one per select: a dict or None is
    returned, an exception is raised, and a callable is awaited. Once the
    script runs out, selects read ``rows``.
    """

    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.select_script: List[Any] = []
        self.insert_script: List[Any] = []
        self.select_calls: List[str] = []
        self.insert_calls: List[Dict[str, Any]] = []
        self.update_calls: List[tuple[str, Dict[str, Any]]] = []
        self.update_error: Optional[Exception] = None

    async def select_profile_row(self, user_id: str) -> dict[str, Any] | None:
        self.select_calls.append(user_id)
        if self.select_script:
            outcome = self.select_script.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            if callable(outcome):
                return await outcome()
            return outcome
        row = self.rows.get(user_id)
        return dict(row) if row is not None else None

    async def insert_profile_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        self.insert_calls.append(dict(row))
        if self.insert_script:
            outcome = self.insert_script.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
        stored = {**row, "updated_at": "2024-01-01T00:00:00+00:00"}
        self.rows[str(row["id"])] = stored
        return dict(stored)

    async def update_profile_row(self, user_id: str, patch: Mapping[str, Any]) -> None:
        self.update_calls.append((user_id, dict(patch)))
        if self.update_error is not None:
            raise self.update_error
        self.rows.setdefault(user_id, {"id": user_id}).update(patch)


def genesis_one_verses() -> List[Dict[str, Any]]:
    return [
        {
            "book_id": "GEN",
            "book_name": "Genesis",
            "chapter": 1,
            "verse": 1,
            "text": "In the beginning, God created the heavens and the earth.",
        },
        {
            "book_id": "GEN",
            "book_name": "Genesis",
            "chapter": 1,
            "verse": 2,
            "text": "The earth was formless and empty.",
        },
    ]


def sample_deep_dive() -> Dict[str, Any]:
    return {
        "summaryAndThemes": "Creation of the world.",
        "historicalContext": "Ancient Near East.",
        "keyVerses": [{"verse": "Genesis 1:1", "analysis": "God as creator."}],
        "reflectionQuestions": ["What does creation reveal about God?"],
    }


def sample_enrichments() -> Dict[str, Any]:
    return {
        "crossReferences": [
            {"reference": "John 1:1", "explanation": "In the beginning was the Word.", "verse": 1}
        ],
        "wordStudies": [
            {
                "originalWord": "בָּרָא",
                "transliteration": "bara",
                "strongsNumber": "H1254",
                "meaning": "to create",
                "contextualUse": "Divine creation.",
                "verse": 1,
            }
        ],
        "historicalContext": {
            "geography": "Mesopotamia",
            "customs": "Oral tradition",
            "politicalClimate": "Tribal",
        },
        "literaryAnalysis": {"structure": "Seven days", "themes": ["order", "goodness"]},
        "interpretations": [{"viewpoint": "Literary framework", "summary": "Topical days.", "verse": 3}],
    }


class FakeScripture:
    """Scripture port double recording calls; ``error`` raises instead of answering."""

    def __init__(self) -> None:
        self.chapter_calls: List[tuple[ChapterIdentifier, str]] = []
        self.passage_calls: List[tuple[str, str]] = []
        self.verses: List[Dict[str, Any]] = genesis_one_verses()
        self.error: Optional[Exception] = None
        self.passage_errors: Dict[str, Exception] = {}

    async def get_chapter_text(
        self, chapter: ChapterIdentifier, translation: str
    ) -> list[Mapping[str, Any]]:
        self.chapter_calls.append((chapter, translation))
        if self.error is not None:
            raise self.error
        return [dict(v) for v in self.verses]

    async def get_passage(self, reference: str, translation: str) -> Mapping[str, Any]:
        self.passage_calls.append((reference, translation))
        if translation in self.passage_errors:
            raise self.passage_errors[translation]
        return {
            "reference": reference,
            "verses": genesis_one_verses()[:1],
            "text": "In the beginning, God created the heavens and the earth.\n",
            "translation_id": translation,
            "translation_name": translation.upper(),
        }


class FakeEnrichment:
    """AI port double; set ``*_error`` to make a call fail."""

    def __init__(self) -> None:
        self.deep_dive_calls: List[ChapterIdentifier] = []
        self.enrichment_calls: List[ChapterIdentifier] = []
        self.chat_calls: List[tuple[str, List[ChatMessage]]] = []
        self.deep_dive: Any = sample_deep_dive()
        self.enrichments: Any = sample_enrichments()
        self.deep_dive_error: Optional[Exception] = None
        self.enrichments_error: Optional[Exception] = None
        self.chat_deltas: List[str] = ["In the ", "beginning."]
        self.chat_error: Optional[Exception] = None

    async def get_chapter_deep_dive(self, chapter: ChapterIdentifier) -> Mapping[str, Any]:
        self.deep_dive_calls.append(chapter)
        if self.deep_dive_error is not None:
            raise self.deep_dive_error
        return self.deep_dive

    async def get_all_chapter_enrichments(self, chapter: ChapterIdentifier) -> Mapping[str, Any]:
        self.enrichment_calls.append(chapter)
        if self.enrichments_error is not None:
            raise self.enrichments_error
        return self.enrichments

    async def stream_chat(
        self, system_instruction: str, history: Sequence[ChatMessage]
    ) -> AsyncIterator[str]:
        self.chat_calls.append((system_instruction, list(history)))
        for delta in self.chat_deltas:
            yield delta
        if self.chat_error is not None:
            raise self.chat_error


def make_auth_session(user_id: str = "user-1234567890", email: str = "reader@example.com") -> AuthSession:
    return AuthSession(
        access_token="access",
        refresh_token="refresh",
        expires_at=4_000_000_000.0,
        user=AuthUser(id=user_id, email=email),
    )


class FakeAuth:
    """Auth port double that broadcasts events like the real adapter."""

    def __init__(self) -> None:
        self.session: Optional[AuthSession] = None
        self.listeners: List[AuthListener] = []
        self.sign_out_calls = 0
        self.sign_up_calls: List[tuple[str, Dict[str, Any]]] = []
        self.sign_up_result = SignUpResult()
        self.sign_in_error: Optional[AuthError] = None
        self.get_session_hook: Optional[Callable[[], Any]] = None

    async def sign_up(
        self, email: str, password: str, profile_defaults: Mapping[str, Any]
    ) -> SignUpResult:
        del password
        self.sign_up_calls.append((email, dict(profile_defaults)))
        return self.sign_up_result

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        del password
        if self.sign_in_error is not None:
            raise self.sign_in_error
        self.session = make_auth_session(email=email)
        for listener in list(self.listeners):
            await listener(AuthEvent.SIGNED_IN, self.session)
        return self.session

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.session = None
        for listener in list(self.listeners):
            await listener(AuthEvent.SIGNED_OUT, None)

    async def get_session(self) -> AuthSession | None:
        if self.get_session_hook is not None:
            return await self.get_session_hook()
        return self.session

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)


class RecordingSleep:
    """Injected ``sleep`` that records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(name="local_store")
def _local_store() -> FakeLocalStore:
    return FakeLocalStore()


@pytest.fixture(name="profile_backend")
def _profile_backend() -> FakeProfileBackend:
    return FakeProfileBackend()


@pytest.fixture(name="scripture")
def _scripture() -> FakeScripture:
    return FakeScripture()


@pytest.fixture(name="enrichment")
def _enrichment() -> FakeEnrichment:
    return FakeEnrichment()


@pytest.fixture(name="auth")
def _auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture(name="recording_sleep")
def _recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture(name="sample_payloads")
def _sample_payloads() -> Dict[str, Callable[[], Any]]:
    return {
        "verses": genesis_one_verses,
        "deep_dive": sample_deep_dive,
        "enrichments": sample_enrichments,
        "auth_session": make_auth_session,
    }
