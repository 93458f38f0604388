"""Data models for Bible.com scraping."""

import json
from dataclasses import dataclass, field, asdict
from typing import Optional


@dataclass(frozen=True)
class Verse:
    """One emitted scripture unit.

    Serialized with the compact keys used by the verses files:
    ``id, b, c, v, t, h, o, l``.
    """

    id: str  # e.g. "1001001" (book + 3-digit chapter + 3-digit order)
    book: int  # 1-based book discovery index
    chapter: int
    verse: int  # verse number from the last-seen reference
    text: str
    heading: str = ""
    order: int = 0  # 1-based position within the chapter
    label: str = ""  # sub-verse label, e.g. "a" or "4b"

    def to_dict(self) -> dict:
        """Convert to the compact dictionary form."""
        return {
            "id": self.id,
            "b": self.book,
            "c": self.chapter,
            "v": self.verse,
            "t": self.text,
            "h": self.heading,
            "o": self.order,
            "l": self.label,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Verse":
        return cls(
            id=str(data["id"]),
            book=int(data["b"]),
            chapter=int(data["c"]),
            verse=int(data["v"]),
            text=data.get("t", ""),
            heading=data.get("h", ""),
            order=int(data.get("o", 0)),
            label=data.get("l", ""),
        )

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


@dataclass
class HeaderItem:
    """A pending heading waiting for the verse at ``target_order``."""

    target_order: int
    text: str


@dataclass
class ChapterVerseCount:
    """Per-book chapter tally: last chapter number and verses per chapter."""

    chapter: int = 0
    verse_counts: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"c": self.chapter, "v": list(self.verse_counts)}


@dataclass
class BookResult:
    """Verses of one book plus its chapter tally.

    ``chapter_orders`` maps chapter number to the running verse order used
    to build ``cv_count`` once the book is complete.
    """

    verses: list[Verse] = field(default_factory=list)
    cv_count: ChapterVerseCount = field(default_factory=ChapterVerseCount)
    chapter_orders: dict[int, int] = field(default_factory=dict)
    chapters_processed: int = 0

    def add_chapter_total(self, chapter: int, order: int):
        """Add a finished chapter's final order to the running tally."""
        if chapter in self.chapter_orders:
            self.chapter_orders[chapter] += order
        else:
            self.chapter_orders[chapter] = order

    def finalize(self, last_chapter: int) -> ChapterVerseCount:
        """Convert the running tally into the book's ``cv_count``."""
        self.cv_count = ChapterVerseCount(
            chapter=last_chapter,
            verse_counts=list(self.chapter_orders.values()),
        )
        return self.cv_count


@dataclass
class BookListing:
    """Books discovered from the version's navigation menu."""

    names: list[str] = field(default_factory=list)
    codes: list[str] = field(default_factory=list)
    chapter_counts: list[int] = field(default_factory=list)

    def expected_chapters(self) -> dict[str, int]:
        return dict(zip(self.codes, self.chapter_counts))


@dataclass
class BibleDetail:
    """Metadata for one Bible version, written to ``<VERSION>_detail.json``."""

    name: str = ""
    abbreviation: str = ""
    language: str = ""
    books: list[str] = field(default_factory=list)
    books_usfm: list[str] = field(default_factory=list)
    cv_count: dict[int, ChapterVerseCount] = field(default_factory=dict)
    _id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = asdict(self)
        data["cv_count"] = {
            str(book): count.to_dict() for book, count in self.cv_count.items()
        }
        if self._id is None:
            del data["_id"]
        else:
            # PouchDB expects _id first
            data = {"_id": self._id, **{k: v for k, v in data.items() if k != "_id"}}
        return data

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
