"""Profile reads that absorb replication lag right after account creation.

A profile row is written by a server-side trigger when an account is created,
and it may not be visible to the first read that follows. Reads therefore retry
"not found" a few times with linear backoff, while any other failure or an
attempt that hangs ends the fetch immediately.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from study_companion.core.config import config
from study_companion.core.exceptions import ProfileFetchError, ProfileQueryError
from study_companion.core.identifiers import get_log_safe_user_id
from study_companion.core.logging import get_logger
from study_companion.core.models import UserData
from study_companion.core.ports import ProfileBackendPort
from study_companion.services.profile_codec import decode

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ResilientProfileFetch:
    """Fetch a profile with bounded retries on "not found"."""

    def __init__(
        self,
        backend: ProfileBackendPort,
        *,
        max_attempts: Optional[int] = None,
        attempt_timeout: Optional[float] = None,
        backoff: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._backend = backend
        self.max_attempts = max_attempts or config.PROFILE_FETCH_MAX_ATTEMPTS
        self.attempt_timeout = attempt_timeout or config.PROFILE_FETCH_TIMEOUT_SECONDS
        self.backoff = config.PROFILE_FETCH_BACKOFF_SECONDS if backoff is None else backoff
        self._sleep = sleep

    async def fetch_profile(self, user_id: str) -> UserData | None:
        """Return the decoded profile, or ``None`` when no row appeared in time.

        Raises:
            ProfileFetchError: an attempt timed out or the backend reported an
                error other than "not found".
        """
        log_user = get_log_safe_user_id(user_id)
        for attempt in range(1, self.max_attempts + 1):
            try:
                row = await asyncio.wait_for(
                    self._backend.select_profile_row(user_id), timeout=self.attempt_timeout
                )
            except asyncio.TimeoutError as exc:
                logger.warning(
                    "[profile-fetch] timeout after %.1fs on attempt %d user=%s",
                    self.attempt_timeout,
                    attempt,
                    log_user,
                )
                raise ProfileFetchError(
                    f"Profile read timed out after {self.attempt_timeout}s"
                ) from exc
            except ProfileQueryError as exc:
                logger.error(
                    "[profile-fetch] query error on attempt %d user=%s code=%s: %s",
                    attempt,
                    log_user,
                    exc.code,
                    exc,
                )
                raise ProfileFetchError(str(exc)) from exc

            if row is not None:
                logger.info("[profile-fetch] found on attempt %d user=%s", attempt, log_user)
                return decode(row)

            if attempt < self.max_attempts:
                delay = attempt * self.backoff
                logger.info(
                    "[profile-fetch] not found yet on attempt %d user=%s; retrying in %.1fs",
                    attempt,
                    log_user,
                    delay,
                )
                await self._sleep(delay)

        logger.warning(
            "[profile-fetch] no profile for user=%s after %d attempts", log_user, self.max_attempts
        )
        return None


__all__ = ["ResilientProfileFetch", "Sleep"]
