"""Side-by-side passage lookup across several translations."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from study_companion.core.logging import get_logger
from study_companion.core.models import READER_TRANSLATIONS, Passage
from study_companion.core.ports import ScripturePort
from study_companion.services.defensive import coerce_passage

logger = get_logger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch passage."


@dataclass(slots=True)
class PassageResult:
    """Outcome for one translation: a passage or an error message, never both."""

    translation: str
    passage: Optional[Passage] = None
    error: Optional[str] = None


def passage_reference(book: str, chapter: int, verses: str = "") -> str:
    """Build ``Book chapter[:verses]`` for the reader's lookup form."""
    verses = verses.strip()
    return f"{book} {chapter}:{verses}" if verses else f"{book} {chapter}"


async def compare_passage(
    scripture: ScripturePort, reference: str, translations: Sequence[str]
) -> Dict[str, PassageResult]:
    """Fetch ``reference`` in every translation concurrently.

    One translation failing does not affect the others. Results keep the order
    of ``translations``.

    Raises:
        ValueError: ``translations`` is empty or names an unsupported code.
    """
    if not translations:
        raise ValueError("At least one translation is required")
    unknown = [t for t in translations if t not in READER_TRANSLATIONS]
    if unknown:
        raise ValueError(f"Unsupported translations: {', '.join(unknown)}")

    outcomes = await asyncio.gather(
        *(scripture.get_passage(reference, t) for t in translations), return_exceptions=True
    )
    results: Dict[str, PassageResult] = {}
    for translation, outcome in zip(translations, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning(
                "[scripture-api] compare failed reference=%s translation=%s: %s",
                reference,
                translation,
                outcome,
            )
            results[translation] = PassageResult(
                translation=translation, error=str(outcome) or FETCH_FAILED_MESSAGE
            )
        else:
            results[translation] = PassageResult(
                translation=translation, passage=coerce_passage(outcome)
            )
    return results


__all__ = ["PassageResult", "compare_passage", "passage_reference", "FETCH_FAILED_MESSAGE"]
