"""The fixed 66-book canon, the read-through plan, and chapter key helpers.

Chapter keys identify a chapter independent of translation and are what the
profile stores for completed chapters, bookmarks and notes. Cache keys add the
translation code. Both collapse whitespace in book names to a single ``_`` so
that every call site builds and looks up the same string.
"""

from __future__ import annotations

from typing import Dict, List, Literal, NamedTuple, Tuple


class BookInfo(NamedTuple):
    """Canonical book name, chapter count, and testament."""

    name: str
    chapters: int
    testament: Literal["Old", "New"]


_OLD = "Old"
_NEW = "New"

BIBLE_BOOKS: Tuple[BookInfo, ...] = (
    # Pentateuch
    BookInfo("Genesis", 50, _OLD),
    BookInfo("Exodus", 40, _OLD),
    BookInfo("Leviticus", 27, _OLD),
    BookInfo("Numbers", 36, _OLD),
    BookInfo("Deuteronomy", 34, _OLD),
    # History
    BookInfo("Joshua", 24, _OLD),
    BookInfo("Judges", 21, _OLD),
    BookInfo("Ruth", 4, _OLD),
    BookInfo("1 Samuel", 31, _OLD),
    BookInfo("2 Samuel", 24, _OLD),
    BookInfo("1 Kings", 22, _OLD),
    BookInfo("2 Kings", 25, _OLD),
    BookInfo("1 Chronicles", 29, _OLD),
    BookInfo("2 Chronicles", 36, _OLD),
    BookInfo("Ezra", 10, _OLD),
    BookInfo("Nehemiah", 13, _OLD),
    BookInfo("Esther", 10, _OLD),
    # Poetry/Wisdom
    BookInfo("Job", 42, _OLD),
    BookInfo("Psalms", 150, _OLD),
    BookInfo("Proverbs", 31, _OLD),
    BookInfo("Ecclesiastes", 12, _OLD),
    BookInfo("Song of Solomon", 8, _OLD),
    # Major Prophets
    BookInfo("Isaiah", 66, _OLD),
    BookInfo("Jeremiah", 52, _OLD),
    BookInfo("Lamentations", 5, _OLD),
    BookInfo("Ezekiel", 48, _OLD),
    BookInfo("Daniel", 12, _OLD),
    # Minor Prophets
    BookInfo("Hosea", 14, _OLD),
    BookInfo("Joel", 3, _OLD),
    BookInfo("Amos", 9, _OLD),
    BookInfo("Obadiah", 1, _OLD),
    BookInfo("Jonah", 4, _OLD),
    BookInfo("Micah", 7, _OLD),
    BookInfo("Nahum", 3, _OLD),
    BookInfo("Habakkuk", 3, _OLD),
    BookInfo("Zephaniah", 3, _OLD),
    BookInfo("Haggai", 2, _OLD),
    BookInfo("Zechariah", 14, _OLD),
    BookInfo("Malachi", 4, _OLD),
    # Gospels/Acts
    BookInfo("Matthew", 28, _NEW),
    BookInfo("Mark", 16, _NEW),
    BookInfo("Luke", 24, _NEW),
    BookInfo("John", 21, _NEW),
    BookInfo("Acts", 28, _NEW),
    # Paul’s Epistles
    BookInfo("Romans", 16, _NEW),
    BookInfo("1 Corinthians", 16, _NEW),
    BookInfo("2 Corinthians", 13, _NEW),
    BookInfo("Galatians", 6, _NEW),
    BookInfo("Ephesians", 6, _NEW),
    BookInfo("Philippians", 4, _NEW),
    BookInfo("Colossians", 4, _NEW),
    BookInfo("1 Thessalonians", 5, _NEW),
    BookInfo("2 Thessalonians", 3, _NEW),
    BookInfo("1 Timothy", 6, _NEW),
    BookInfo("2 Timothy", 4, _NEW),
    BookInfo("Titus", 3, _NEW),
    BookInfo("Philemon", 1, _NEW),
    # General Epistles + Revelation
    BookInfo("Hebrews", 13, _NEW),
    BookInfo("James", 5, _NEW),
    BookInfo("1 Peter", 5, _NEW),
    BookInfo("2 Peter", 3, _NEW),
    BookInfo("1 John", 5, _NEW),
    BookInfo("2 John", 1, _NEW),
    BookInfo("3 John", 1, _NEW),
    BookInfo("Jude", 1, _NEW),
    BookInfo("Revelation", 22, _NEW),
)

BOOKS_BY_NAME: Dict[str, BookInfo] = {book.name: book for book in BIBLE_BOOKS}
BOOK_INDEX: Dict[str, int] = {book.name: i for i, book in enumerate(BIBLE_BOOKS)}

# Common alias/abbreviation normalization to canonical names
BOOK_ALIASES: Dict[str, str] = {
    "gen": "Genesis", "ex": "Exodus", "exo": "Exodus", "lev": "Leviticus",
    "num": "Numbers", "deut": "Deuteronomy", "deu": "Deuteronomy",
    "ps": "Psalms", "psa": "Psalms", "psalm": "Psalms",
    "prov": "Proverbs", "eccl": "Ecclesiastes",
    "sos": "Song of Solomon", "song": "Song of Solomon", "song of songs": "Song of Solomon",
    "isa": "Isaiah", "jer": "Jeremiah",
    "mt": "Matthew", "matt": "Matthew", "mk": "Mark", "mrk": "Mark",
    "lk": "Luke", "luk": "Luke", "jn": "John", "jhn": "John",
    "rom": "Romans", "gal": "Galatians", "eph": "Ephesians", "phil": "Philippians",
    "heb": "Hebrews", "jas": "James", "rev": "Revelation",
    "1sam": "1 Samuel", "2sam": "2 Samuel", "1ki": "1 Kings", "2ki": "2 Kings",
    "1 chron": "1 Chronicles", "2 chron": "2 Chronicles",
    "1cor": "1 Corinthians", "2cor": "2 Corinthians",
    "1 thes": "1 Thessalonians", "2 thes": "2 Thessalonians",
    "1 tim": "1 Timothy", "2 tim": "2 Timothy",
    "1pet": "1 Peter", "2pet": "2 Peter", "1jn": "1 John", "2jn": "2 John", "3jn": "3 John",
}

TOTAL_CHAPTERS = sum(book.chapters for book in BIBLE_BOOKS)

READING_PLAN: Tuple[Tuple[str, int], ...] = tuple(
    (book.name, chapter) for book in BIBLE_BOOKS for chapter in range(1, book.chapters + 1)
)


def normalize_book_name(name: str) -> str | None:
    """Normalize aliases, spacing and case to a canonical book name.

    Returns None if the name cannot be normalized to a canonical key.
    """
    collapsed = " ".join(name.split())
    key = collapsed.lower()
    if key in BOOK_ALIASES:
        return BOOK_ALIASES[key]
    for book in BIBLE_BOOKS:
        if book.name.lower() == key:
            return book.name
    return None


def is_valid_chapter(book: str, chapter: int) -> bool:
    """True when ``book`` is canonical and ``chapter`` lies within its chapter count."""
    info = BOOKS_BY_NAME.get(book)
    return info is not None and 1 <= chapter <= info.chapters


def _book_token(book: str) -> str:
    return "_".join(book.split())


def chapter_key(book: str, chapter: int) -> str:
    """Return the translation-independent key for a chapter, e.g. ``Song_of_Solomon-2``."""
    return f"{_book_token(book)}-{chapter}"


def cache_key(book: str, chapter: int, translation: str) -> str:
    """Return the content cache key for a chapter in a translation."""
    return f"{chapter_key(book, chapter)}-{translation.strip()}"


def parse_chapter_key(key: str) -> Tuple[str, int] | None:
    """Reverse ``chapter_key``; returns None for keys that do not parse."""
    book_token, sep, chapter_text = key.rpartition("-")
    if not sep or not book_token:
        return None
    try:
        chapter = int(chapter_text)
    except ValueError:
        return None
    return book_token.replace("_", " "), chapter


def all_chapter_keys() -> List[str]:
    """Return the chapter key of every chapter in canonical order."""
    return [chapter_key(book, chapter) for book, chapter in READING_PLAN]


__all__ = [
    "BookInfo",
    "BIBLE_BOOKS",
    "BOOKS_BY_NAME",
    "BOOK_INDEX",
    "BOOK_ALIASES",
    "READING_PLAN",
    "TOTAL_CHAPTERS",
    "normalize_book_name",
    "is_valid_chapter",
    "chapter_key",
    "cache_key",
    "parse_chapter_key",
    "all_chapter_keys",
]
