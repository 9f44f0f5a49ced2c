"""Core data transfer objects shared across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from study_companion.core.canon import is_valid_chapter
from study_companion.core.config import config

DEFAULT_USERNAME = "User"

# Columns of the backend `profiles` table, in select order.
PROFILE_COLUMNS: Tuple[str, ...] = (
    "id",
    "updated_at",
    "username",
    "study_mode",
    "read_through_index",
    "user_selected_chapter",
    "completed_chapters",
    "bookmarks",
    "notes",
    "cached_content",
    "translation",
)

DEFAULT_TRANSLATION = config.DEFAULT_TRANSLATION

AVAILABLE_TRANSLATIONS: Dict[str, str] = {
    "web": "World English Bible",
    "kjv": "King James Version",
}

# The side-by-side reader offers one more translation than study mode does.
READER_TRANSLATIONS: Dict[str, str] = {
    "kjv": "King James Version",
    "web": "World English Bible",
    "bbe": "Bible in Basic English",
}


class StudyMode(str, Enum):
    """How the user moves through scripture."""

    RANDOM = "Random Chapter"
    BOOK = "Book Study"
    READ_THROUGH = "Read Through"
    BOOKMARKS = "Bookmarks"
    SCRIPTURE_READER = "Scripture Reader"


class ChapterIdentifier(BaseModel):
    """A canonical (book, chapter) pair."""

    model_config = ConfigDict(frozen=True)

    book: str
    chapter: int

    @field_validator("chapter")
    @classmethod
    def _chapter_in_canon(cls, chapter: int, info: ValidationInfo) -> int:
        book = info.data.get("book")
        if not isinstance(book, str) or not is_valid_chapter(book, chapter):
            raise ValueError(f"{book} {chapter} is not a chapter of the canon")
        return chapter

    def label(self) -> str:
        """Human readable reference, e.g. ``Genesis 1``."""
        return f"{self.book} {self.chapter}"


class Verse(BaseModel):
    """A single verse as returned by the scripture text API."""

    book_id: str
    book_name: str
    chapter: int
    verse: int
    text: str


class Passage(BaseModel):
    """A passage lookup result from the scripture text API."""

    reference: str
    verses: List[Verse]
    text: str
    translation_id: str
    translation_name: str
    translation_note: str = ""


class _CamelModel(BaseModel):
    """Study content persisted in the profile JSON with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeyVerse(_CamelModel):
    """A quoted key verse with its analysis."""

    verse: str
    analysis: str


class DeepDiveData(_CamelModel):
    """AI-generated long-form study guide for a chapter."""

    summary_and_themes: str
    historical_context: str
    key_verses: List[KeyVerse]
    reflection_questions: List[str]


class CrossReference(_CamelModel):
    reference: str
    explanation: str
    verse: Optional[int]


class WordStudy(_CamelModel):
    original_word: str
    transliteration: str
    strongs_number: str
    meaning: str
    contextual_use: str
    verse: Optional[int]


class HistoricalContext(_CamelModel):
    geography: str
    customs: str
    political_climate: str


class LiteraryAnalysis(_CamelModel):
    structure: str
    themes: List[str]


class Interpretation(_CamelModel):
    viewpoint: str
    summary: str
    verse: Optional[int]


class AllEnrichmentData(_CamelModel):
    """The five enrichment categories for one chapter."""

    cross_references: List[CrossReference]
    word_studies: List[WordStudy]
    historical_context: HistoricalContext
    literary_analysis: LiteraryAnalysis
    interpretations: List[Interpretation]

    @classmethod
    def empty(cls) -> "AllEnrichmentData":
        """Return an enrichment object with every category empty."""
        return cls(
            cross_references=[],
            word_studies=[],
            historical_context=HistoricalContext(geography="", customs="", political_climate=""),
            literary_analysis=LiteraryAnalysis(structure="", themes=[]),
            interpretations=[],
        )


class ChapterContentBundle(_CamelModel):
    """Cached unit of per-chapter content: verses, deep-dive and enrichments."""

    verses: List[Verse]
    deep_dive_data: Optional[DeepDiveData]
    all_enrichment_data: AllEnrichmentData

    def is_complete(self) -> bool:
        """True when the bundle has verses and a deep-dive, the bar for caching it."""
        return bool(self.verses) and self.deep_dive_data is not None


class UserData(BaseModel):
    """Validated in-memory profile of one account.

    Attribute names match the backend row columns.
    """

    id: str
    username: str = DEFAULT_USERNAME
    study_mode: StudyMode = StudyMode.READ_THROUGH
    read_through_index: int = 0
    user_selected_chapter: Optional[ChapterIdentifier] = None
    completed_chapters: List[str] = Field(default_factory=list)
    bookmarks: List[str] = Field(default_factory=list)
    notes: Dict[str, str] = Field(default_factory=dict)
    cached_content: Dict[str, ChapterContentBundle] = Field(default_factory=dict)
    translation: str = DEFAULT_TRANSLATION
    updated_at: Optional[str] = None


class UserDataUpdate(BaseModel):
    """Partial profile update; only explicitly assigned fields are sent.

    ``model_fields_set`` is the source of truth, so ``user_selected_chapter=None``
    clears the selection while leaving the field out leaves it untouched.
    """

    username: Optional[str] = None
    study_mode: Optional[StudyMode] = None
    read_through_index: Optional[int] = None
    user_selected_chapter: Optional[ChapterIdentifier] = None
    completed_chapters: Optional[List[str]] = None
    bookmarks: Optional[List[str]] = None
    notes: Optional[Dict[str, str]] = None
    cached_content: Optional[Dict[str, ChapterContentBundle]] = None
    translation: Optional[str] = None

    def is_empty(self) -> bool:
        """True when no field was assigned."""
        return not self.model_fields_set


@dataclass(slots=True)
class ChatMessage:
    """One turn of the study assistant conversation."""

    role: Literal["user", "model"]
    content: str


@dataclass(slots=True)
class ChapterView:
    """Everything the study screen renders for one chapter."""

    chapter: ChapterIdentifier
    translation: str
    verses: List[Verse]
    deep_dive: Optional[DeepDiveData]
    enrichments: AllEnrichmentData
    from_cache: bool = False
    cached: bool = False
    superseded: bool = False
    errors: List[str] = field(default_factory=list)

    def has_text_error(self) -> bool:
        """True when the verse list is the synthesized error placeholder."""
        return len(self.verses) == 1 and self.verses[0].verse == 0


__all__ = [
    "DEFAULT_USERNAME",
    "PROFILE_COLUMNS",
    "DEFAULT_TRANSLATION",
    "AVAILABLE_TRANSLATIONS",
    "READER_TRANSLATIONS",
    "StudyMode",
    "ChapterIdentifier",
    "Verse",
    "Passage",
    "KeyVerse",
    "DeepDiveData",
    "CrossReference",
    "WordStudy",
    "HistoricalContext",
    "LiteraryAnalysis",
    "Interpretation",
    "AllEnrichmentData",
    "ChapterContentBundle",
    "UserData",
    "UserDataUpdate",
    "ChatMessage",
    "ChapterView",
]
