"""Verse identifiers and chapter tokens."""

import re

ID_PAD = 3
ID_LIMIT = 10**ID_PAD

EXTRA_CHAPTER_RE = re.compile(r"(\d+)_(\d+)")


def make_verse_id(book: int, chapter: int, order: int) -> str:
    """
    Build the composite verse ID.

    The book is not padded; chapter and order are zero-padded to 3 digits,
    so ``make_verse_id(1, 1, 1) == "1001001"``. Values of 1000 or more are
    rendered wider and no longer decode with ``parse_verse_id``.
    """
    return f"{book}{chapter:0{ID_PAD}d}{order:0{ID_PAD}d}"


def fits_id(chapter: int, order: int) -> bool:
    """True if both fields fit the fixed-width ID."""
    return 0 <= chapter < ID_LIMIT and 0 <= order < ID_LIMIT


def parse_verse_id(verse_id) -> tuple[int, int, int]:
    """
    Split a verse ID back into (book, chapter, order).

    Accepts strings or the numeric IDs of the PouchDB layout.
    """
    text = str(verse_id)
    if not text.isdigit() or len(text) <= 2 * ID_PAD:
        raise ValueError(f"invalid verse id: {verse_id!r}")

    book = text[: -2 * ID_PAD]
    chapter = text[-2 * ID_PAD : -ID_PAD]
    order = text[-ID_PAD:]
    return int(book), int(chapter), int(order)


def chapter_number(token: str) -> int:
    """
    Numeric chapter from a chapter token.

    ``"5"`` gives 5; non-standard chapters such as ``"23_1"`` give the
    prefix before the underscore (23).
    """
    match = EXTRA_CHAPTER_RE.search(token)
    if match:
        return int(match.group(1))
    return int(token)
