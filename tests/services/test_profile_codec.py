"""Tests for profile row decoding and partial-update encoding."""

from __future__ import annotations

from typing import Any

import pytest

from study_companion.core.models import ChapterIdentifier, StudyMode, UserDataUpdate
from study_companion.services.profile_codec import (
    WIRE_FIELDS,
    decode,
    encode,
    initial_profile_defaults,
)

# pylint: disable=missing-function-docstring


@pytest.mark.parametrize(
    "row",
    [
        {},
        None,
        "not a row",
        {"id": "u1", "completed_chapters": {}, "bookmarks": None, "notes": [], "cached_content": "x"},
        {"id": "u1", "study_mode": "Nonsense", "read_through_index": "7", "translation": 5},
        {"id": "u1", "user_selected_chapter": {"book": "Genesis"}, "username": ""},
    ],
)
def test_decode_is_total_for_malformed_rows(row: Any) -> None:
    user = decode(row)
    assert isinstance(user.completed_chapters, list)
    assert isinstance(user.bookmarks, list)
    assert isinstance(user.notes, dict)
    assert isinstance(user.cached_content, dict)
    assert isinstance(user.study_mode, StudyMode)
    assert user.username == "User"
    assert user.read_through_index == 0
    assert user.translation == "web"
    assert user.user_selected_chapter is None


def test_decode_keeps_valid_fields(sample_payloads) -> None:
    row = {
        "id": "u1",
        "username": "anna",
        "study_mode": "Book Study",
        "read_through_index": 12,
        "user_selected_chapter": {"book": "Ruth", "chapter": 2},
        "completed_chapters": ["Ruth-1"],
        "bookmarks": ["Ruth-2"],
        "notes": {"Ruth-1": "loyalty", "Ruth-2": 5},
        "cached_content": {
            "Ruth-1-kjv": {
                "verses": sample_payloads["verses"](),
                "deepDiveData": sample_payloads["deep_dive"](),
                "allEnrichmentData": sample_payloads["enrichments"](),
            }
        },
        "translation": "kjv",
        "updated_at": "2024-05-01T12:00:00Z",
    }
    user = decode(row)
    assert user.study_mode is StudyMode.BOOK
    assert user.user_selected_chapter == ChapterIdentifier(book="Ruth", chapter=2)
    assert user.notes == {"Ruth-1": "loyalty"}
    assert user.cached_content["Ruth-1-kjv"].deep_dive_data is not None
    assert user.translation == "kjv"
    assert user.updated_at == "2024-05-01T12:00:00Z"


def test_encode_emits_only_assigned_fields() -> None:
    assert encode(UserDataUpdate(bookmarks=["John-3"])) == {"bookmarks": ["John-3"]}
    assert encode(UserDataUpdate(study_mode=StudyMode.RANDOM)) == {"study_mode": "Random Chapter"}
    assert encode(UserDataUpdate()) == {}


def test_encode_explicit_none_clears_selection() -> None:
    assert encode(UserDataUpdate(user_selected_chapter=None)) == {"user_selected_chapter": None}


def test_encode_accepts_mapping_and_serializes_nested() -> None:
    patch = encode({"user_selected_chapter": {"book": "Mark", "chapter": 4}, "unknown": 1})
    assert patch == {"user_selected_chapter": {"book": "Mark", "chapter": 4}}


def test_encode_cached_content_uses_wire_aliases(sample_payloads) -> None:
    update = UserDataUpdate.model_validate(
        {
            "cached_content": {
                "Genesis-1-web": {
                    "verses": sample_payloads["verses"](),
                    "deepDiveData": sample_payloads["deep_dive"](),
                    "allEnrichmentData": sample_payloads["enrichments"](),
                }
            }
        }
    )
    bundle = encode(update)["cached_content"]["Genesis-1-web"]
    assert set(bundle) == {"verses", "deepDiveData", "allEnrichmentData"}
    assert bundle["allEnrichmentData"]["historicalContext"]["politicalClimate"] == "Tribal"


def test_initial_defaults_cover_every_mutable_column() -> None:
    defaults = initial_profile_defaults()
    assert defaults["study_mode"] == "Read Through"
    assert set(defaults) <= set(WIRE_FIELDS)
    assert decode({"id": "x", **defaults}).completed_chapters == []
