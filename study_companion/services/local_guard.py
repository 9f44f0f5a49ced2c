"""Safe JSON access to the local key-value store.

Local blobs can be truncated or hand-edited. Reads through this guard never
raise: an unparseable entry is deleted, the corruption callback fires, and the
caller receives its fallback.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, TypeVar

from study_companion.core.logging import get_logger
from study_companion.core.ports import LocalStorePort

logger = get_logger(__name__)

T = TypeVar("T")
CorruptionCallback = Callable[[str], None]


class LocalCorruptionGuard:
    """Wraps a ``LocalStorePort`` with JSON encoding and self-healing reads."""

    def __init__(
        self, store: LocalStorePort, *, on_corrupt: Optional[CorruptionCallback] = None
    ) -> None:
        self._store = store
        self.on_corrupt = on_corrupt

    def safe_read(
        self,
        key: str,
        fallback: T,
        on_corrupt: Optional[CorruptionCallback] = None,
    ) -> Any | T:
        """Return the parsed value under ``key`` or ``fallback``.

        A missing or empty entry returns ``fallback`` untouched. A corrupt one is removed
        and reported once, to ``on_corrupt`` when given, otherwise to the
        callback supplied at construction.
        """
        raw = self._store.get_item(key)
        if not raw:
            return fallback
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("[local-store] corrupted entry key=%s; resetting", key, exc_info=True)
            self._store.remove_item(key)
            callback = on_corrupt or self.on_corrupt
            if callback is not None:
                callback(key)
            return fallback

    def write(self, key: str, value: Any) -> None:
        """Serialize ``value`` as JSON and store it under ``key``."""
        self._store.set_item(key, json.dumps(value))

    def remove(self, key: str) -> None:
        self._store.remove_item(key)


__all__ = ["LocalCorruptionGuard", "CorruptionCallback"]
