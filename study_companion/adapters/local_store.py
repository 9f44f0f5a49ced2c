"""Local key-value store adapter backed by TinyDB.

Values are opaque strings, the same contract browser local storage offers;
parsing and corruption handling belong to ``LocalCorruptionGuard``.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, cast

from tinydb import Query, TinyDB

from study_companion.core.config import config
from study_companion.core.logging import get_logger
from study_companion.core.ports import LocalStorePort

# Provide a QueryLike alias for static checkers; at runtime use Any.
if TYPE_CHECKING:  # pragma: no cover - typing only
    from tinydb.queries import QueryLike  # type: ignore
else:
    QueryLike = Any  # type: ignore[misc,assignment]

logger = get_logger(__name__)

DATA_DIR = Path(getattr(config, "DATA_DIR", Path("/data")))
DB_PATH = DATA_DIR / "local_storage.json"
TABLE_NAME = "local_storage"


class LocalStoreAdapter(LocalStorePort):
    """String-keyed store persisted to a TinyDB table of ``{key, value}`` documents."""

    def __init__(self, db: Optional[TinyDB] = None, *, path: Optional[Path] = None) -> None:
        if db is None:
            db_path = path or DB_PATH
            db_path.parent.mkdir(parents=True, exist_ok=True)
            db = TinyDB(str(db_path))
        self._db = db

    @property
    def db(self) -> TinyDB:
        return self._db

    def get_item(self, key: str) -> str | None:
        q = Query()
        cond = cast(QueryLike, q.key == key)
        raw = cast(Optional[Dict[str, Any]], self._db.table(TABLE_NAME).get(cond))
        if not raw:
            return None
        value = raw.get("value")
        # Anything written outside set_item surfaces as a string for the guard to judge.
        return value if isinstance(value, str) else str(value)

    def set_item(self, key: str, value: str) -> None:
        q = Query()
        cond = cast(QueryLike, q.key == key)
        self._db.table(TABLE_NAME).upsert({"key": key, "value": value}, cond)
        logger.debug("[local-store] set key=%s bytes=%d", key, len(value))

    def remove_item(self, key: str) -> None:
        q = Query()
        cond = cast(QueryLike, q.key == key)
        removed = self._db.table(TABLE_NAME).remove(cond)
        if removed:
            logger.debug("[local-store] removed key=%s", key)

    def close(self) -> None:
        self._db.close()


__all__ = ["LocalStoreAdapter", "DB_PATH", "TABLE_NAME"]
