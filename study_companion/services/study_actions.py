"""Study screen actions expressed as partial profile updates.

Each action reads a ``UserData`` snapshot and returns the ``UserDataUpdate``
to apply, or ``None`` when nothing changes. Applying the update is the
session's job, so these stay pure and easy to test.
"""

from __future__ import annotations

import random
from typing import Any, Dict, Optional

from study_companion.core.canon import (
    BIBLE_BOOKS,
    BOOK_INDEX,
    BOOKS_BY_NAME,
    READING_PLAN,
    all_chapter_keys,
    chapter_key,
    parse_chapter_key,
)
from study_companion.core.models import (
    AVAILABLE_TRANSLATIONS,
    ChapterIdentifier,
    StudyMode,
    UserData,
    UserDataUpdate,
)


def current_chapter(user: UserData) -> Optional[ChapterIdentifier]:
    """Return the chapter the study screen should show, if any."""
    if user.study_mode is StudyMode.SCRIPTURE_READER:
        return None
    if user.study_mode is StudyMode.READ_THROUGH:
        if 0 <= user.read_through_index < len(READING_PLAN):
            book, chapter = READING_PLAN[user.read_through_index]
            return ChapterIdentifier(book=book, chapter=chapter)
        return None
    return user.user_selected_chapter


def current_chapter_key(user: UserData) -> Optional[str]:
    chapter = current_chapter(user)
    return chapter_key(chapter.book, chapter.chapter) if chapter is not None else None


def mark_chapter_complete(user: UserData) -> Optional[UserDataUpdate]:
    key = current_chapter_key(user)
    if key is None or key in user.completed_chapters:
        return None
    return UserDataUpdate(completed_chapters=[*user.completed_chapters, key])


def next_chapter(user: UserData) -> Optional[UserDataUpdate]:
    """Mark the current chapter complete and step forward.

    Read-through advances the plan index up to its last entry; other modes
    step to the next chapter, crossing into the first chapter of the next book.
    """
    chapter = current_chapter(user)
    if chapter is None:
        return None
    fields: Dict[str, Any] = {}
    completed = mark_chapter_complete(user)
    if completed is not None:
        fields["completed_chapters"] = completed.completed_chapters

    if user.study_mode is StudyMode.READ_THROUGH:
        if user.read_through_index < len(READING_PLAN) - 1:
            fields["read_through_index"] = user.read_through_index + 1
    elif chapter.chapter < BOOKS_BY_NAME[chapter.book].chapters:
        fields["user_selected_chapter"] = ChapterIdentifier(
            book=chapter.book, chapter=chapter.chapter + 1
        )
    else:
        index = BOOK_INDEX[chapter.book]
        if index < len(BIBLE_BOOKS) - 1:
            fields["user_selected_chapter"] = ChapterIdentifier(
                book=BIBLE_BOOKS[index + 1].name, chapter=1
            )
    return UserDataUpdate(**fields) if fields else None


def previous_chapter(user: UserData) -> Optional[UserDataUpdate]:
    """Step back one chapter, crossing into the last chapter of the previous book."""
    if user.study_mode is StudyMode.READ_THROUGH:
        if user.read_through_index > 0:
            return UserDataUpdate(read_through_index=user.read_through_index - 1)
        return None
    chapter = current_chapter(user)
    if chapter is None:
        return None
    if chapter.chapter > 1:
        return UserDataUpdate(
            user_selected_chapter=ChapterIdentifier(book=chapter.book, chapter=chapter.chapter - 1)
        )
    index = BOOK_INDEX[chapter.book]
    if index == 0:
        return None
    previous = BIBLE_BOOKS[index - 1]
    return UserDataUpdate(
        user_selected_chapter=ChapterIdentifier(book=previous.name, chapter=previous.chapters)
    )


def random_chapter(user: UserData, rng: Optional[random.Random] = None) -> UserDataUpdate:
    """Pick an unread chapter at random; once all are read, start over."""
    rng = rng or random.Random()
    every_key = all_chapter_keys()
    completed = set(user.completed_chapters)
    unread = [key for key in every_key if key not in completed]
    fields: Dict[str, Any] = {}
    if unread:
        picked = rng.choice(unread)
    else:
        fields["completed_chapters"] = []
        picked = rng.choice(every_key)
    parsed = parse_chapter_key(picked)
    assert parsed is not None  # nosec B101 - keys come from the canon
    book, chapter = parsed
    fields["user_selected_chapter"] = ChapterIdentifier(book=book, chapter=chapter)
    return UserDataUpdate(**fields)


def toggle_bookmark(user: UserData) -> Optional[UserDataUpdate]:
    key = current_chapter_key(user)
    if key is None:
        return None
    if key in user.bookmarks:
        return UserDataUpdate(bookmarks=[b for b in user.bookmarks if b != key])
    return UserDataUpdate(bookmarks=[*user.bookmarks, key])


def set_note(user: UserData, note: str) -> Optional[UserDataUpdate]:
    key = current_chapter_key(user)
    if key is None:
        return None
    return UserDataUpdate(notes={**user.notes, key: note})


def select_chapter(book: str, chapter: int) -> UserDataUpdate:
    """Select ``book`` ``chapter``; raises ``ValueError`` for chapters outside the canon."""
    return UserDataUpdate(user_selected_chapter=ChapterIdentifier(book=book, chapter=chapter))


def set_study_mode(mode: StudyMode) -> UserDataUpdate:
    return UserDataUpdate(study_mode=mode)


def set_translation(translation: str) -> UserDataUpdate:
    code = translation.strip().lower()
    if code not in AVAILABLE_TRANSLATIONS:
        raise ValueError(f"Unsupported translation: {translation}")
    return UserDataUpdate(translation=code)


__all__ = [
    "current_chapter",
    "current_chapter_key",
    "mark_chapter_complete",
    "next_chapter",
    "previous_chapter",
    "random_chapter",
    "toggle_bookmark",
    "set_note",
    "select_chapter",
    "set_study_mode",
    "set_translation",
]
