"""Walk a rendered chapter container and collect its verses."""

import logging
from typing import Optional

from . import classify
from .assembler import VerseAssembler, VerseFragment
from .dom import CELL_SPANS, GROUPS, SPANS, Node, parse_container
from .errors import StructuralMiss
from .headers import HeaderAccumulator
from .models import BookResult, Verse

logger = logging.getLogger(__name__)


def verse_fragment(span: Node) -> VerseFragment:
    """Read a verse span's reference and the text of its child spans."""
    parts = [
        (classify.classify(child.tag), child.text())
        for child in span.children(SPANS)
    ]
    return VerseFragment(reference=span.attribute("data-usfm"), parts=parts)


class ChapterDriver:
    """
    Feeds one chapter's groups to a VerseAssembler.

    Owns the chapter's assembler and header accumulator; both are discarded
    once ``walk`` returns.
    """

    def __init__(self, book: int, chapter: int):
        self.book = book
        self.chapter = chapter
        self.headers = HeaderAccumulator()
        self.assembler = VerseAssembler(book, self.headers)

    @property
    def verse_count(self) -> int:
        """Final order reached, i.e. verses emitted for this chapter."""
        return self.assembler.state.verse_order

    def walk(self, container: Node) -> list[Verse]:
        groups = container.children(GROUPS)
        logger.debug("Walking book %d chapter %d: %d groups", self.book, self.chapter, len(groups))

        for i, group in enumerate(groups):
            last_group = i == len(groups) - 1
            group_type = classify.classify(group.tag)

            if classify.is_heading_top_container(group_type):
                self.headers.mark_container_break()

            spans = group.children(CELL_SPANS if group_type == classify.TABLE else SPANS)

            for j, span in enumerate(spans):
                span_type = classify.classify(span.tag)

                if span_type in (classify.HEADING, classify.NAME_EMPHASIS):
                    self.assembler.feed_heading(span_type, span.text())
                elif span_type == classify.VERSE:
                    self.assembler.feed_verse(verse_fragment(span))
                    if last_group and j == len(spans) - 1:
                        self.assembler.finish()

            if last_group and group_type == classify.BLANK_PARAGRAPH:
                self.assembler.finish()

        # Chapters ending on a heading or note still emit their last verse.
        self.assembler.finish()
        return self.assembler.verses


def process_chapter(
    container: Node, book: int, chapter: int, book_result: BookResult
) -> list[Verse]:
    """Walk ``container`` and append its verses and tally to ``book_result``."""
    driver = ChapterDriver(book, chapter)
    verses = driver.walk(container)

    book_result.verses.extend(verses)
    if verses:
        book_result.add_chapter_total(chapter, driver.verse_count)
    book_result.chapters_processed += 1

    logger.debug("Book %d chapter %d: %d verses", book, chapter, len(verses))
    return verses


def process_chapter_html(
    html: str, book: int, chapter: int, book_result: BookResult
) -> list[Verse]:
    """``process_chapter`` on the outer HTML of a chapter container."""
    container = parse_container(html)
    if container is None:
        raise StructuralMiss(f"no chapter container in content for book {book} chapter {chapter}")
    return process_chapter(container, book, chapter, book_result)


def check_chapter_count(book_code: str, expected: Optional[int], processed: int) -> bool:
    """Warn when the processed chapter count differs from the discovered one."""
    if expected is None or expected == processed:
        return True
    logger.warning(
        "Book %s: expected %d chapters but processed %d",
        book_code,
        expected,
        processed,
    )
    return False
