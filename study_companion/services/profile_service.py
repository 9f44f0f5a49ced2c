"""Profile lifecycle: resilient reads, the create path, and partial updates."""

from __future__ import annotations

import random
import string
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

from study_companion.core.exceptions import ProfileConflictError, ProfileQueryError
from study_companion.core.identifiers import get_log_safe_user_id
from study_companion.core.logging import get_logger
from study_companion.core.models import UserData, UserDataUpdate
from study_companion.core.ports import ProfileBackendPort
from study_companion.services.profile_codec import decode, encode, initial_profile_defaults
from study_companion.services.profile_fetch import ResilientProfileFetch

logger = get_logger(__name__)

USERNAME_CONSTRAINT = "profiles_username_key"
MIN_USERNAME_LENGTH = 3
_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase


def base_username(user_id: str, candidate: Optional[str]) -> str:
    """Return the trimmed candidate when long enough, else ``user_<id prefix>``."""
    trimmed = (candidate or "").strip()
    if len(trimmed) >= MIN_USERNAME_LENGTH:
        return trimmed
    return f"user_{user_id[:8]}"


def random_suffix(length: int = 4) -> str:
    return "".join(random.choices(_SUFFIX_ALPHABET, k=length))


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProfileService:
    """Reads, creates and patches profile rows through the backend port."""

    def __init__(
        self,
        backend: ProfileBackendPort,
        fetcher: Optional[ResilientProfileFetch] = None,
        *,
        suffix: Callable[[], str] = random_suffix,
        clock: Callable[[], str] = _utc_now_iso,
    ) -> None:
        self._backend = backend
        self.fetcher = fetcher or ResilientProfileFetch(backend)
        self._suffix = suffix
        self._clock = clock

    async def fetch_profile(self, user_id: str) -> UserData | None:
        return await self.fetcher.fetch_profile(user_id)

    async def create_profile_for_user(
        self, user_id: str, username: Optional[str]
    ) -> UserData | None:
        """Insert a default profile row for an account that has none.

        A taken username is retried once with a random suffix. Any remaining
        uniqueness violation means the row exists already, so the profile is
        fetched instead. Other failures are logged and yield ``None``.
        """
        log_user = get_log_safe_user_id(user_id)
        base = base_username(user_id, username)
        row: dict[str, Any] = {"id": user_id, "username": base, **initial_profile_defaults()}
        try:
            try:
                stored = await self._backend.insert_profile_row(row)
            except ProfileConflictError as exc:
                if exc.constraint != USERNAME_CONSTRAINT:
                    raise
                fallback = f"{base}_{self._suffix()}"
                logger.warning(
                    "[session] username taken for user=%s; retrying with suffixed name", log_user
                )
                stored = await self._backend.insert_profile_row({**row, "username": fallback})
        except ProfileConflictError:
            logger.warning(
                "[session] profile insert conflicted for user=%s; fetching existing row", log_user
            )
            return await self.fetch_profile(user_id)
        except ProfileQueryError as exc:
            logger.error(
                "[session] failed to create profile for user=%s code=%s: %s",
                log_user,
                exc.code,
                exc,
            )
            return None
        logger.info("[session] created profile for user=%s", log_user)
        return decode(stored)

    async def update_profile(
        self, user_id: str, update: Union[UserDataUpdate, Mapping[str, Any]]
    ) -> None:
        """Send the encoded partial patch stamped with ``updated_at``.

        Raises:
            ProfileQueryError: the backend rejected the update.
        """
        patch = encode(update)
        if not patch:
            return
        patch["updated_at"] = self._clock()
        await self._backend.update_profile_row(user_id, patch)
        logger.info(
            "[session] updated profile user=%s fields=%s",
            get_log_safe_user_id(user_id),
            sorted(k for k in patch if k != "updated_at"),
        )


__all__ = [
    "ProfileService",
    "base_username",
    "random_suffix",
    "USERNAME_CONSTRAINT",
    "MIN_USERNAME_LENGTH",
]
