"""
Bible.com scraper - Extracts ordered, addressable verse records from rendered chapters.
"""

from .assembler import VerseAssembler, VerseFragment, clean_text, parse_reference
from .chapter import ChapterDriver, process_chapter, process_chapter_html
from .classify import classify, is_heading_top_container
from .config import BIBLE_VERSION_IDS, DEFAULT_CONFIG, ScraperConfig
from .headers import HeaderAccumulator
from .ids import chapter_number, make_verse_id, parse_verse_id
from .models import BibleDetail, BookResult, ChapterVerseCount, HeaderItem, Verse

__all__ = [
    "VerseAssembler",
    "VerseFragment",
    "clean_text",
    "parse_reference",
    "ChapterDriver",
    "process_chapter",
    "process_chapter_html",
    "classify",
    "is_heading_top_container",
    "BIBLE_VERSION_IDS",
    "DEFAULT_CONFIG",
    "ScraperConfig",
    "HeaderAccumulator",
    "chapter_number",
    "make_verse_id",
    "parse_verse_id",
    "BibleDetail",
    "BookResult",
    "ChapterVerseCount",
    "HeaderItem",
    "Verse",
]

__version__ = "0.1.0"
