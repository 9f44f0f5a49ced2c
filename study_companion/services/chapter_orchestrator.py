"""Per-chapter fetch pipeline: cache lookup, upstream fetches, fallbacks, cache write.

Verse text is fetched first since nothing renders without it. The deep-dive and
the enrichments are then requested concurrently, even when the text failed,
because commentary is still useful on its own. A bundle is written back only
when all three fetches succeeded, so one flaky upstream call never lands a
partial bundle in the cache.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import List, Optional, Tuple

from study_companion.core.canon import cache_key
from study_companion.core.exceptions import is_quota_error
from study_companion.core.logging import correlation_id_context, get_logger
from study_companion.core.models import (
    AllEnrichmentData,
    ChapterContentBundle,
    ChapterIdentifier,
    ChapterView,
    DeepDiveData,
    Verse,
)
from study_companion.core.ports import EnrichmentPort, ScripturePort
from study_companion.services.content_cache import ChapterContentCache
from study_companion.services.defensive import (
    coerce_deep_dive,
    coerce_enrichments,
    coerce_translation,
    coerce_verses,
)

logger = get_logger(__name__)

QUOTA_MESSAGE = "Failed to load chapter data: Daily API quota exceeded. Please try again tomorrow."
EMPTY_TEXT_MESSAGE = "Passage not found or API returned empty/malformed verses."
ERROR_VERSE_NUMBER = 0


def text_error_message(exc: BaseException) -> str:
    """User-facing message for a failed verse-text fetch."""
    if is_quota_error(exc):
        return QUOTA_MESSAGE
    detail = str(exc) or exc.__class__.__name__
    return f"There was an error loading the chapter text: {detail}. Please try again."


def error_verse(chapter: ChapterIdentifier, message: str) -> Verse:
    """Placeholder verse carrying ``message`` at the sentinel verse number."""
    return Verse(
        book_id="",
        book_name=chapter.book,
        chapter=chapter.chapter,
        verse=ERROR_VERSE_NUMBER,
        text=message,
    )


class ChapterDataOrchestrator:
    """Assemble the content of one chapter for the study screen."""

    def __init__(
        self,
        scripture: ScripturePort,
        enrichment: EnrichmentPort,
        cache: ChapterContentCache,
    ) -> None:
        self._scripture = scripture
        self._enrichment = enrichment
        self._cache = cache
        self._sequence = 0

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    async def _fetch_text(
        self, chapter: ChapterIdentifier, translation: str
    ) -> Tuple[List[Verse], Optional[str]]:
        try:
            raw = await self._scripture.get_chapter_text(chapter, translation)
        except Exception as exc:  # pylint: disable=broad-except
            message = text_error_message(exc)
            logger.error(
                "[chapter] text fetch failed for %s (%s): %s",
                chapter.label(),
                translation,
                exc,
                exc_info=True,
            )
            return [error_verse(chapter, message)], message
        verses = coerce_verses(raw)
        if not verses:
            logger.error("[chapter] text for %s had no usable verses", chapter.label())
            message = text_error_message(ValueError(EMPTY_TEXT_MESSAGE))
            return [error_verse(chapter, message)], message
        return verses, None

    async def _fetch_deep_dive(self, chapter: ChapterIdentifier) -> Optional[DeepDiveData]:
        try:
            raw = await self._enrichment.get_chapter_deep_dive(chapter)
        except Exception:  # pylint: disable=broad-except
            logger.error("[chapter] deep dive failed for %s", chapter.label(), exc_info=True)
            return None
        return coerce_deep_dive(raw)

    async def _fetch_enrichments(
        self, chapter: ChapterIdentifier
    ) -> Tuple[AllEnrichmentData, bool]:
        try:
            raw = await self._enrichment.get_all_chapter_enrichments(chapter)
        except Exception:  # pylint: disable=broad-except
            logger.error("[chapter] enrichments failed for %s", chapter.label(), exc_info=True)
            return AllEnrichmentData.empty(), False
        return coerce_enrichments(raw), True

    async def load_chapter(self, chapter: ChapterIdentifier, translation: str) -> ChapterView:
        """Return the view for ``chapter`` in ``translation``.

        A call that finishes after a newer call started returns its view marked
        ``superseded`` and leaves the cache alone. Every log line of the call
        carries one correlation id.
        """
        self._sequence += 1
        with correlation_id_context(uuid.uuid4().hex):
            return await self._load(chapter, translation, self._sequence)

    async def _load(
        self, chapter: ChapterIdentifier, translation: str, sequence: int
    ) -> ChapterView:
        translation = coerce_translation(translation)
        key = cache_key(chapter.book, chapter.chapter, translation)

        cached = self._cache.get(key)
        if cached is not None:
            logger.info("[chapter] serving %s from cache", key)
            return ChapterView(
                chapter=chapter,
                translation=translation,
                verses=list(cached.verses),
                deep_dive=cached.deep_dive_data,
                enrichments=cached.all_enrichment_data,
                from_cache=True,
            )

        logger.info("[chapter] cache miss for %s; fetching (request #%d)", key, sequence)
        verses, text_error = await self._fetch_text(chapter, translation)
        deep_dive, (enrichments, enrichments_ok) = await asyncio.gather(
            self._fetch_deep_dive(chapter), self._fetch_enrichments(chapter)
        )

        view = ChapterView(
            chapter=chapter,
            translation=translation,
            verses=verses,
            deep_dive=deep_dive,
            enrichments=enrichments,
        )
        if text_error is not None:
            view.errors.append(text_error)
        if deep_dive is None:
            view.errors.append("Deep dive is unavailable right now.")
        if not enrichments_ok:
            view.errors.append("Study enrichments are unavailable right now.")

        if sequence != self._sequence:
            logger.info(
                "[chapter] request #%d for %s superseded by #%d; discarding",
                sequence,
                key,
                self._sequence,
            )
            view.superseded = True
            return view

        if text_error is None and verses and deep_dive is not None and enrichments_ok:
            bundle = ChapterContentBundle(
                verses=verses, deep_dive_data=deep_dive, all_enrichment_data=enrichments
            )
            try:
                await self._cache.put(key, bundle)
                view.cached = True
            except Exception:  # pylint: disable=broad-except
                logger.error("[chapter] failed to persist %s; content still shown", key, exc_info=True)
        else:
            logger.info("[chapter] partial result for %s; not caching", key)
        return view


__all__ = [
    "ChapterDataOrchestrator",
    "QUOTA_MESSAGE",
    "ERROR_VERSE_NUMBER",
    "text_error_message",
    "error_verse",
]
