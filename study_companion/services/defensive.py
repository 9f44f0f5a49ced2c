"""Total, idempotent normalizers applied wherever outside data enters the core.

Every function here accepts anything (raw JSON, ``None``, a model instance)
and returns a fully typed value, substituting defaults instead of raising.
Running a normalizer on its own output returns an equal value, so callers may
apply them again at later boundaries without changing anything.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from study_companion.core.canon import is_valid_chapter
from study_companion.core.models import (
    AVAILABLE_TRANSLATIONS,
    DEFAULT_TRANSLATION,
    AllEnrichmentData,
    ChapterContentBundle,
    ChapterIdentifier,
    CrossReference,
    DeepDiveData,
    HistoricalContext,
    Interpretation,
    KeyVerse,
    LiteraryAnalysis,
    Passage,
    StudyMode,
    Verse,
    WordStudy,
)

T = TypeVar("T")


def _as_mapping(raw: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(raw, BaseModel):
        return raw.model_dump()
    if isinstance(raw, Mapping):
        return raw
    return None


def _field(data: Mapping[str, Any], name: str) -> Any:
    """Look up ``name`` in snake_case first, then in its camelCase wire form."""
    if name in data:
        return data[name]
    return data.get(to_camel(name))


def coerce_str(raw: Any, default: str = "") -> str:
    return raw if isinstance(raw, str) else default


def coerce_int(raw: Any, default: Optional[int] = None) -> Optional[int]:
    """Return ``raw`` as an int; integral floats are accepted, bools are not."""
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    return default


def coerce_mapping(raw: Any) -> dict[str, Any]:
    data = _as_mapping(raw)
    return {str(k): v for k, v in data.items()} if data is not None else {}


def coerce_list(raw: Any, item: Callable[[Any], Optional[T]]) -> list[T]:
    """Coerce to a list, keeping only entries that ``item`` accepts (returns non-None)."""
    if not isinstance(raw, (list, tuple)):
        return []
    out: list[T] = []
    for entry in raw:
        value = item(entry)
        if value is not None:
            out.append(value)
    return out


def coerce_str_list(raw: Any, *, unique: bool = False) -> list[str]:
    """Coerce to a list of strings; ``unique`` drops repeats keeping first occurrence."""
    items = coerce_list(raw, lambda v: v if isinstance(v, str) else None)
    if not unique:
        return items
    return list(dict.fromkeys(items))


def coerce_str_dict(raw: Any) -> dict[str, str]:
    return {k: v for k, v in coerce_mapping(raw).items() if isinstance(v, str)}


def coerce_study_mode(raw: Any) -> StudyMode:
    """Accept a member, its value or its name; default to sequential read-through."""
    if isinstance(raw, StudyMode):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        for mode in StudyMode:
            if text == mode.value or text.upper() == mode.name:
                return mode
    return StudyMode.READ_THROUGH


def coerce_translation(raw: Any) -> str:
    if isinstance(raw, str) and raw.strip().lower() in AVAILABLE_TRANSLATIONS:
        return raw.strip().lower()
    return DEFAULT_TRANSLATION


def coerce_chapter_identifier(raw: Any) -> Optional[ChapterIdentifier]:
    """Trust a chapter reference only with a string book and a numeric in-canon chapter."""
    if isinstance(raw, ChapterIdentifier):
        return raw
    data = _as_mapping(raw)
    if data is None:
        return None
    book = data.get("book")
    chapter = coerce_int(data.get("chapter"))
    if not isinstance(book, str) or chapter is None or not is_valid_chapter(book, chapter):
        return None
    return ChapterIdentifier(book=book, chapter=chapter)


def coerce_verse(raw: Any) -> Optional[Verse]:
    data = _as_mapping(raw)
    if data is None:
        return None
    number = coerce_int(data.get("verse"))
    text = data.get("text")
    if number is None or not isinstance(text, str):
        return None
    return Verse(
        book_id=coerce_str(data.get("book_id")),
        book_name=coerce_str(data.get("book_name")),
        chapter=coerce_int(data.get("chapter"), 0) or 0,
        verse=number,
        text=text,
    )


def coerce_verses(raw: Any) -> list[Verse]:
    return coerce_list(raw, coerce_verse)


def _coerce_key_verse(raw: Any) -> Optional[KeyVerse]:
    data = _as_mapping(raw)
    if data is None:
        return None
    return KeyVerse(verse=coerce_str(data.get("verse")), analysis=coerce_str(data.get("analysis")))


def coerce_deep_dive(raw: Any) -> Optional[DeepDiveData]:
    """Return a deep-dive with every sub-field defaulted, or None for non-objects."""
    data = _as_mapping(raw)
    if data is None:
        return None
    return DeepDiveData(
        summary_and_themes=coerce_str(_field(data, "summary_and_themes")),
        historical_context=coerce_str(_field(data, "historical_context")),
        key_verses=coerce_list(_field(data, "key_verses"), _coerce_key_verse),
        reflection_questions=coerce_str_list(_field(data, "reflection_questions")),
    )


def _coerce_cross_reference(raw: Any) -> Optional[CrossReference]:
    data = _as_mapping(raw)
    if data is None:
        return None
    return CrossReference(
        reference=coerce_str(data.get("reference")),
        explanation=coerce_str(data.get("explanation")),
        verse=coerce_int(data.get("verse")),
    )


def _coerce_word_study(raw: Any) -> Optional[WordStudy]:
    data = _as_mapping(raw)
    if data is None:
        return None
    return WordStudy(
        original_word=coerce_str(_field(data, "original_word")),
        transliteration=coerce_str(data.get("transliteration")),
        strongs_number=coerce_str(_field(data, "strongs_number")),
        meaning=coerce_str(data.get("meaning")),
        contextual_use=coerce_str(_field(data, "contextual_use")),
        verse=coerce_int(data.get("verse")),
    )


def _coerce_interpretation(raw: Any) -> Optional[Interpretation]:
    data = _as_mapping(raw)
    if data is None:
        return None
    return Interpretation(
        viewpoint=coerce_str(data.get("viewpoint")),
        summary=coerce_str(data.get("summary")),
        verse=coerce_int(data.get("verse")),
    )


def coerce_historical_context(raw: Any) -> HistoricalContext:
    data = _as_mapping(raw) or {}
    return HistoricalContext(
        geography=coerce_str(data.get("geography")),
        customs=coerce_str(data.get("customs")),
        political_climate=coerce_str(_field(data, "political_climate")),
    )


def coerce_literary_analysis(raw: Any) -> LiteraryAnalysis:
    data = _as_mapping(raw) or {}
    return LiteraryAnalysis(
        structure=coerce_str(data.get("structure")),
        themes=coerce_str_list(data.get("themes")),
    )


def coerce_enrichments(raw: Any) -> AllEnrichmentData:
    """Return all five enrichment categories, each defaulted independently."""
    data = _as_mapping(raw) or {}
    return AllEnrichmentData(
        cross_references=coerce_list(_field(data, "cross_references"), _coerce_cross_reference),
        word_studies=coerce_list(_field(data, "word_studies"), _coerce_word_study),
        historical_context=coerce_historical_context(_field(data, "historical_context")),
        literary_analysis=coerce_literary_analysis(_field(data, "literary_analysis")),
        interpretations=coerce_list(data.get("interpretations"), _coerce_interpretation),
    )


def coerce_bundle(raw: Any) -> Optional[ChapterContentBundle]:
    data = _as_mapping(raw)
    if data is None:
        return None
    return ChapterContentBundle(
        verses=coerce_verses(data.get("verses")),
        deep_dive_data=coerce_deep_dive(_field(data, "deep_dive_data")),
        all_enrichment_data=coerce_enrichments(_field(data, "all_enrichment_data")),
    )


def coerce_cached_content(raw: Any) -> dict[str, ChapterContentBundle]:
    """Coerce a cache mapping, dropping entries that are not complete bundles.

    An entry without verses or without a deep-dive could never have been
    written by a successful fetch, so it is discarded and reads as a miss.
    """
    out: dict[str, ChapterContentBundle] = {}
    for key, value in coerce_mapping(raw).items():
        bundle = value if isinstance(value, ChapterContentBundle) else coerce_bundle(value)
        if bundle is not None and bundle.is_complete():
            out[key] = bundle
    return out


def coerce_passage(raw: Any) -> Passage:
    data = _as_mapping(raw) or {}
    return Passage(
        reference=coerce_str(data.get("reference")),
        verses=coerce_verses(data.get("verses")),
        text=coerce_str(data.get("text")),
        translation_id=coerce_str(data.get("translation_id")),
        translation_name=coerce_str(data.get("translation_name")),
        translation_note=coerce_str(data.get("translation_note")),
    )


__all__ = [
    "coerce_str",
    "coerce_int",
    "coerce_mapping",
    "coerce_list",
    "coerce_str_list",
    "coerce_str_dict",
    "coerce_study_mode",
    "coerce_translation",
    "coerce_chapter_identifier",
    "coerce_verse",
    "coerce_verses",
    "coerce_deep_dive",
    "coerce_historical_context",
    "coerce_literary_analysis",
    "coerce_enrichments",
    "coerce_bundle",
    "coerce_cached_content",
    "coerce_passage",
]
