"""Conversion between backend profile rows and validated ``UserData`` records."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Tuple, Union

from study_companion.core.models import (
    DEFAULT_USERNAME,
    PROFILE_COLUMNS,
    StudyMode,
    UserData,
    UserDataUpdate,
)
from study_companion.services.defensive import (
    coerce_cached_content,
    coerce_chapter_identifier,
    coerce_int,
    coerce_mapping,
    coerce_str,
    coerce_str_dict,
    coerce_str_list,
    coerce_study_mode,
    coerce_translation,
)

WIRE_FIELDS: Tuple[str, ...] = PROFILE_COLUMNS


def decode(row: Any) -> UserData:
    """Build a ``UserData`` from a wire row; never raises.

    Missing or malformed fields fall back to defaults: a blank name becomes
    ``"User"``, an unknown mode becomes read-through, non-lists become empty
    lists, non-objects become empty mappings, and a chapter selection without a
    string book and numeric in-canon chapter becomes no selection.
    """
    data = coerce_mapping(row)
    username = coerce_str(data.get("username"))
    updated_at = data.get("updated_at")
    return UserData(
        id=coerce_str(data.get("id")),
        username=username if username.strip() else DEFAULT_USERNAME,
        study_mode=coerce_study_mode(data.get("study_mode")),
        read_through_index=max(0, coerce_int(data.get("read_through_index"), 0) or 0),
        user_selected_chapter=coerce_chapter_identifier(data.get("user_selected_chapter")),
        completed_chapters=coerce_str_list(data.get("completed_chapters"), unique=True),
        bookmarks=coerce_str_list(data.get("bookmarks"), unique=True),
        notes=coerce_str_dict(data.get("notes")),
        cached_content=coerce_cached_content(data.get("cached_content")),
        translation=coerce_translation(data.get("translation")),
        updated_at=updated_at if isinstance(updated_at, str) and updated_at else None,
    )


def _wire_value(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name == "study_mode":
        return StudyMode(value).value
    if name == "user_selected_chapter":
        return value.model_dump()
    if name == "cached_content":
        return {key: bundle.model_dump(by_alias=True) for key, bundle in value.items()}
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


def encode(update: Union[UserDataUpdate, Mapping[str, Any]]) -> Dict[str, Any]:
    """Return the wire patch for exactly the fields assigned in ``update``.

    A plain mapping is validated first; its keys become the assigned fields.
    Fields never assigned are omitted, so the patch cannot clobber columns the
    caller did not mean to touch.
    """
    if not isinstance(update, UserDataUpdate):
        update = UserDataUpdate.model_validate(dict(update))
    return {
        name: _wire_value(name, getattr(update, name))
        for name in UserDataUpdate.model_fields
        if name in update.model_fields_set
    }


def initial_profile_defaults() -> Dict[str, Any]:
    """Default column values for a brand-new profile row."""
    return {
        "study_mode": StudyMode.READ_THROUGH.value,
        "read_through_index": 0,
        "completed_chapters": [],
        "bookmarks": [],
        "notes": {},
        "cached_content": {},
        "translation": "web",
    }


__all__ = ["WIRE_FIELDS", "decode", "encode", "initial_profile_defaults"]
