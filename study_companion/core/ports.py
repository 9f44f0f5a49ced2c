"""Protocol definitions for infrastructure adapters."""

# pylint: disable=unnecessary-ellipsis

from __future__ import annotations

from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional, Protocol, Sequence

from study_companion.core.auth_models import AuthEvent, AuthSession, SignUpResult
from study_companion.core.models import ChapterIdentifier, ChatMessage

AuthListener = Callable[[AuthEvent, Optional[AuthSession]], Awaitable[None]]


class AuthPort(Protocol):
    """Port exposing account sign-up, sign-in and session state."""

    async def sign_up(
        self, email: str, password: str, profile_defaults: Mapping[str, Any]
    ) -> SignUpResult:
        """Create an account; ``profile_defaults`` seed the server-side profile row."""
        ...

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Exchange credentials for a session."""
        ...

    async def sign_out(self) -> None:
        """End the current session."""
        ...

    async def get_session(self) -> AuthSession | None:
        """Return the current session, refreshing it when expired."""
        ...

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""
        ...


class ProfileBackendPort(Protocol):
    """Port exposing the per-user profile rows."""

    async def select_profile_row(self, user_id: str) -> dict[str, Any] | None:
        """Return the row for ``user_id`` or ``None`` when no row exists (yet)."""
        ...

    async def insert_profile_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """Insert ``row`` and return the stored representation."""
        ...

    async def update_profile_row(self, user_id: str, patch: Mapping[str, Any]) -> None:
        """Merge ``patch`` into the row for ``user_id``."""
        ...


class ScripturePort(Protocol):
    """Port exposing the public scripture text API."""

    async def get_passage(self, reference: str, translation: str) -> Mapping[str, Any]:
        """Return the raw passage payload for ``reference``."""
        ...

    async def get_chapter_text(
        self, chapter: ChapterIdentifier, translation: str
    ) -> list[Mapping[str, Any]]:
        """Return the raw verse records of a whole chapter."""
        ...


class EnrichmentPort(Protocol):
    """Port exposing the generative AI study content service."""

    async def get_chapter_deep_dive(self, chapter: ChapterIdentifier) -> Mapping[str, Any]:
        """Return the deep-dive study guide payload."""
        ...

    async def get_all_chapter_enrichments(
        self, chapter: ChapterIdentifier
    ) -> Mapping[str, Any]:
        """Return the five enrichment categories payload."""
        ...

    def stream_chat(
        self, system_instruction: str, history: Sequence[ChatMessage]
    ) -> AsyncIterator[str]:
        """Yield the assistant reply to ``history`` as ordered text deltas."""
        ...


class LocalStorePort(Protocol):
    """Port exposing a string-keyed local key-value store."""

    def get_item(self, key: str) -> str | None:
        """Return the raw stored string or ``None``."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""
        ...

    def remove_item(self, key: str) -> None:
        """Delete ``key`` if present."""
        ...


__all__ = [
    "AuthListener",
    "AuthPort",
    "ProfileBackendPort",
    "ScripturePort",
    "EnrichmentPort",
    "LocalStorePort",
]
