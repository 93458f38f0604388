"""Writing scraped books and post-processing verses files."""

import json
import logging
import threading
from pathlib import Path
from typing import Optional, Union

from .config import ascii_abbreviation
from .ids import parse_verse_id
from .models import BibleDetail, BookResult, ChapterVerseCount, Verse

logger = logging.getLogger(__name__)


def _write_json(path: Path, data, indent: Optional[int] = 2):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)


def numeric_ids(verses: list[dict]) -> list[dict]:
    """Copies of verse dicts with string ids converted to integers."""
    converted = []
    for verse in verses:
        if isinstance(verse, dict) and isinstance(verse.get("id"), str):
            verse = {**verse, "id": int(verse["id"], 10)}
        converted.append(verse)
    return converted


# =============================================================================
# Thread-Safe Book Writer
# =============================================================================

class BookWriter:
    """Thread-safe writer for per-book files and the consolidated output."""

    def __init__(self, output_dir: str, version: str, pouchdb: bool = False):
        self.output_dir = Path(output_dir)
        self.version = version
        self.pouchdb = pouchdb
        self.lock = threading.Lock()

    @property
    def book_dir(self) -> Path:
        return self.output_dir / self.version

    @property
    def detail_path(self) -> Path:
        return self.output_dir / f"{self.version}_detail.json"

    @property
    def verses_path(self) -> Path:
        return self.output_dir / f"{self.version}_verses.json"

    def book_path(self, book_number: int, book_code: str) -> Path:
        return self.book_dir / f"{book_number}_{book_code}.json"

    def init_output(self):
        self.book_dir.mkdir(parents=True, exist_ok=True)

    def book_payload(self, book_code: str, result: BookResult) -> Union[list, dict]:
        verses = [v.to_dict() for v in result.verses]
        if not self.pouchdb:
            return verses
        return {
            "_id": f"{ascii_abbreviation(self.version)}.{book_code}",
            "verses": numeric_ids(verses),
        }

    def write_book(self, book_number: int, book_code: str, result: BookResult) -> Path:
        """Save one finished book; called from worker threads."""
        path = self.book_path(book_number, book_code)
        payload = self.book_payload(book_code, result)
        with self.lock:
            _write_json(path, payload)
        logger.info("Book %s (%d verses) saved to %s", book_code, len(result.verses), path)
        return path

    def write_results(
        self,
        results: list[tuple[int, str, BookResult]],
        detail: BibleDetail,
    ) -> list[Verse]:
        """
        Write the detail and consolidated verses files.

        ``results`` may arrive in completion order; they are written sorted
        by book number.
        """
        all_verses: list[Verse] = []
        cv_count: dict[int, ChapterVerseCount] = {}

        for book_number, book_code, result in sorted(results, key=lambda r: r[0]):
            all_verses.extend(result.verses)
            cv_count[book_number] = result.cv_count

        detail.cv_count = cv_count

        with self.lock:
            logger.info("Writing Bible details to %s", self.detail_path)
            _write_json(self.detail_path, detail.to_dict())

            logger.info("Writing consolidated verses to %s", self.verses_path)
            _write_json(self.verses_path, [v.to_dict() for v in all_verses], indent=None)

        return all_verses


# =============================================================================
# Post-processing
# =============================================================================

def load_verses(path: Union[str, Path]) -> tuple[list[dict], Optional[str]]:
    """
    Read a verses file; returns (verses, existing _id).

    Accepts a plain list or the ``{"_id": ..., "verses": [...]}`` envelope.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, list):
        return data, None
    if isinstance(data, dict) and isinstance(data.get("verses"), list):
        return data["verses"], data.get("_id")
    raise ValueError(f"{path}: not a verses array or verses envelope")


def restructure_verses(path: Union[str, Path], id_value: str) -> dict:
    """Rewrite a verses file in place as an envelope with numeric ids."""
    verses, existing_id = load_verses(path)
    if existing_id is not None:
        logger.info("%s already has the wrapped structure (_id=%s)", path, existing_id)

    envelope = {"_id": id_value, "verses": numeric_ids(verses)}
    _write_json(Path(path), envelope)
    return envelope


def recount_chapter_verses(verses: list[dict]) -> dict[int, ChapterVerseCount]:
    """
    Rebuild each book's ``cv_count`` from verse ids.

    Verses must be in book/chapter/order sequence. A chapter's count is the
    order of its last verse.
    """
    counts: dict[int, ChapterVerseCount] = {}
    last: dict[int, tuple[int, int]] = {}  # book -> (chapter, order)

    for verse in verses:
        book, chapter, order = parse_verse_id(verse["id"])
        count = counts.setdefault(book, ChapterVerseCount())

        previous = last.get(book)
        if previous is not None and previous[0] != chapter:
            count.verse_counts.append(previous[1])
        count.chapter = chapter
        last[book] = (chapter, order)

    for book, (chapter, order) in last.items():
        counts[book].verse_counts.append(order)

    return counts


def recount_files(
    verses_path: Union[str, Path],
    detail_path: Union[str, Path],
    output_dir: Union[str, Path],
) -> dict[int, ChapterVerseCount]:
    """
    Write corrected copies of a detail file and its verses file.

    Logs every book whose recomputed counts differ from the original.
    """
    verses, _ = load_verses(verses_path)
    with open(detail_path, "r", encoding="utf-8") as f:
        detail = json.load(f)

    counts = recount_chapter_verses(verses)
    original = detail.get("cv_count", {})
    total = 0
    for book, count in counts.items():
        total += sum(count.verse_counts)
        before = original.get(str(book))
        if before != count.to_dict():
            logger.warning("Book %d: cv_count %s -> %s", book, before, count.to_dict())

    detail["cv_count"] = {str(book): count.to_dict() for book, count in counts.items()}

    output_dir = Path(output_dir)
    _write_json(output_dir / Path(detail_path).name, detail)
    _write_json(output_dir / Path(verses_path).name, verses, indent=None)
    logger.info("Recounted %d books, %d verses in total", len(counts), total)
    return counts
