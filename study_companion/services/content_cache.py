"""Per-chapter content cache held in the profile and mirrored locally.

The profile copy is authoritative because it follows the user across devices;
the local mirror only keeps lookups fast across restarts of the same install.
Writes merge one key into the existing mapping and never drop other entries.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from study_companion.core.identifiers import get_log_safe_user_id
from study_companion.core.logging import get_logger
from study_companion.core.models import ChapterContentBundle, UserData, UserDataUpdate
from study_companion.services.defensive import coerce_cached_content
from study_companion.services.local_guard import LocalCorruptionGuard
from study_companion.services.profile_service import ProfileService

logger = get_logger(__name__)

MIRROR_KEY_PREFIX = "cachedContent"

ProfileListener = Callable[[UserData], None]


class ChapterContentCache:
    """Lookup and write-through persistence of chapter content bundles."""

    def __init__(
        self,
        guard: LocalCorruptionGuard,
        profiles: ProfileService,
        *,
        on_profile_change: Optional[ProfileListener] = None,
    ) -> None:
        self._guard = guard
        self._profiles = profiles
        self._on_profile_change = on_profile_change
        self._user: Optional[UserData] = None

    @property
    def user(self) -> Optional[UserData]:
        return self._user

    def _mirror_key(self) -> str:
        owner = self._user.id if self._user is not None else "anonymous"
        return f"{MIRROR_KEY_PREFIX}:{owner}"

    def _read_mirror(self) -> Dict[str, ChapterContentBundle]:
        return coerce_cached_content(self._guard.safe_read(self._mirror_key(), {}))

    def _write_mirror(self, content: Dict[str, ChapterContentBundle]) -> None:
        self._guard.write(
            self._mirror_key(),
            {key: bundle.model_dump(by_alias=True) for key, bundle in content.items()},
        )

    def sync_from_profile(self, user: Optional[UserData]) -> None:
        """Adopt a new profile snapshot and fold its cache into the local mirror."""
        self._user = user
        if user is None or not user.cached_content:
            return
        mirror = self._read_mirror()
        merged = {**mirror, **user.cached_content}
        if merged != mirror:
            self._write_mirror(merged)

    def get(self, key: str) -> ChapterContentBundle | None:
        """Return the bundle under ``key`` from the mirror, else from the profile."""
        bundle = self._read_mirror().get(key)
        if bundle is not None:
            logger.info("[content-cache] hit (local) key=%s", key)
            return bundle
        if self._user is not None:
            bundle = self._user.cached_content.get(key)
            if bundle is not None and bundle.is_complete():
                logger.info("[content-cache] hit (profile) key=%s", key)
                return bundle
        logger.info("[content-cache] miss key=%s", key)
        return None

    async def put(self, key: str, bundle: ChapterContentBundle) -> None:
        """Merge ``bundle`` under ``key`` and persist the mapping.

        With a signed-in user this performs exactly one profile update; the
        local mirror is written once that update succeeded.

        Raises:
            ProfileQueryError: the backend rejected the update.
        """
        if self._user is None:
            mirror = self._read_mirror()
            mirror[key] = bundle
            self._write_mirror(mirror)
            logger.info("[content-cache] stored locally key=%s (no profile)", key)
            return

        user = self._user
        merged = {**user.cached_content, key: bundle}
        await self._profiles.update_profile(user.id, UserDataUpdate(cached_content=merged))
        self._user = user.model_copy(update={"cached_content": merged})
        mirror = self._read_mirror()
        mirror[key] = bundle
        self._write_mirror(mirror)
        logger.info(
            "[content-cache] stored key=%s user=%s entries=%d",
            key,
            get_log_safe_user_id(user.id),
            len(merged),
        )
        if self._on_profile_change is not None:
            self._on_profile_change(self._user)


__all__ = ["ChapterContentCache", "MIRROR_KEY_PREFIX", "ProfileListener"]
