"""Book scheduling and chapter walking for one Bible version."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .browser import BrowserSession, chapter_url, is_intro
from .chapter import check_chapter_count, process_chapter_html
from .config import BASE_URL, DEFAULT_CONFIG, ScraperConfig, validate_version
from .errors import AcquisitionError, ContentUnavailable, StructuralMiss
from .ids import chapter_number
from .models import BibleDetail, BookListing, BookResult
from .output import BookWriter
from .progress import MetricsTracker

logger = logging.getLogger(__name__)


class BookQueue:
    """Shared cursor over the books to process; each book is claimed once."""

    def __init__(self, books: list[str]):
        self.books = list(books)
        self._next = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self.books)

    def claim(self) -> Optional[tuple[int, str]]:
        """Next (index, book code), or None when the queue is drained."""
        with self._lock:
            if self._next >= len(self.books):
                return None
            index = self._next
            self._next += 1
        return index, self.books[index]


class BibleScraper:
    """
    Scrape every book of one Bible version.

    Args:
        version: Key of ``BIBLE_VERSION_IDS`` (e.g. 'ESV')
        config: Runtime settings
        books: Optional USFM codes to restrict the run to
        session_factory: Builds a browser session for a worker thread
    """

    def __init__(
        self,
        version: str,
        config: ScraperConfig = DEFAULT_CONFIG,
        books: Optional[list[str]] = None,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
    ):
        self.version_id = validate_version(version)
        self.version = version
        self.config = config.validate()
        self.books = [b.upper() for b in books] if books else None
        self.session_factory = session_factory
        self.writer = BookWriter(config.output_directory, version, pouchdb=config.pouchdb)

    @property
    def base_url(self) -> str:
        return chapter_url(self.version_id, self.version, "REV", "1")

    def book_url(self, book_code: str, chapter: str = "1") -> str:
        return chapter_url(self.version_id, self.version, book_code, chapter)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def discover(self) -> tuple[BibleDetail, BookListing]:
        """Read version metadata and the book list from the version page."""
        with self.session_factory(self.config, name="discovery") as session:
            tab = session.new_tab()
            logger.info("Navigating to %s", self.base_url)
            tab.open(self.base_url)
            tab.close_cookie_banner()

            detail = tab.bible_details()
            tab.wait_until_rendered()
            listing = tab.book_list()

        detail.books = listing.names
        detail.books_usfm = listing.codes
        if self.config.pouchdb and detail.abbreviation:
            detail._id = detail.abbreviation
        return detail, listing

    def select_books(self, available: list[str]) -> list[str]:
        """Filter ``available`` down to the requested books, in discovery order."""
        if not self.books:
            return list(available)

        upper = [code.upper() for code in available]
        missing = [book for book in self.books if book not in upper]
        if missing:
            logger.warning(
                "Some requested books were not found in this Bible version: %s",
                ", ".join(missing),
            )
            logger.info("Available books in this version: %s", ", ".join(available))

        selected = [code for code in available if code.upper() in self.books]
        if selected:
            logger.info("Processing only specified books: %s", ", ".join(selected))
        return selected

    # -------------------------------------------------------------------------
    # Book processing
    # -------------------------------------------------------------------------

    def process_book(
        self,
        tab,
        book_code: str,
        book_number: int,
        expected_chapters: Optional[int] = None,
    ) -> BookResult:
        """Walk a book chapter by chapter, following next-chapter links."""
        context = f"{book_code} (book {book_number})"
        logger.info(
            "Starting %s%s",
            context,
            f", expecting {expected_chapters} chapters" if expected_chapters else "",
        )
        result = BookResult()

        tab.open(self.book_url(book_code, "1"))
        if tab.not_available(1000):
            logger.info("Chapter 1 not available for %s, trying chapter 1_1", book_code)
            tab.open(self.book_url(book_code, "1_1"))

        current_chapter = 0
        while True:
            _, token = tab.location()
            try:
                current_chapter = self._process_current_chapter(tab, book_code, book_number, token, result)
            except (ContentUnavailable, StructuralMiss) as e:
                logger.warning("Skipped page %s.%s: %s", book_code, token, e)

            if expected_chapters and result.chapters_processed >= expected_chapters:
                logger.info("Reached expected chapter count (%d) for %s", expected_chapters, book_code)
                break

            href = tab.next_chapter_href()
            if not href:
                logger.debug("No more chapters found, %s completed", book_code)
                break
            try:
                tab.open(f"{BASE_URL}/{href.lstrip('/')}")
            except AcquisitionError as e:
                logger.debug("Next chapter navigation failed for %s, treating book as complete: %s", book_code, e)
                break

            next_book, _ = tab.location()
            if next_book != book_code:
                logger.info("Book transition detected: %s -> %s, finalizing book", book_code, next_book)
                break

        result.finalize(current_chapter)
        check_chapter_count(book_code, expected_chapters, result.chapters_processed)
        logger.info(
            "Completed %s with %d verses (%d chapters)",
            context,
            len(result.verses),
            result.chapters_processed,
        )
        return result

    def _process_current_chapter(
        self, tab, book_code: str, book_number: int, token: str, result: BookResult
    ) -> int:
        """Parse the chapter the tab is on; returns its chapter number."""
        if is_intro(token):
            raise ContentUnavailable("introduction page")
        try:
            chapter = chapter_number(token)
        except ValueError:
            raise StructuralMiss(f"unrecognised chapter token {token!r}")
        if tab.not_available(500):
            raise ContentUnavailable("chapter content not available")

        html = tab.chapter_html(book_code, token)
        process_chapter_html(html, book_number, chapter, result)
        tab.pause()
        return chapter

    def process_book_with_retry(
        self,
        tab,
        book_code: str,
        book_number: int,
        expected_chapters: Optional[int] = None,
    ) -> BookResult:
        delay = self.config.delay_between_operations / 1000
        retrying = Retrying(
            stop=stop_after_attempt(self.config.retry_attempts),
            wait=wait_exponential(multiplier=delay, min=0, max=max(delay * 10, 1)),
            retry=retry_if_exception_type(AcquisitionError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self.process_book, tab, book_code, book_number, expected_chapters)

    # -------------------------------------------------------------------------
    # Worker pool
    # -------------------------------------------------------------------------

    def _worker(
        self,
        worker_id: int,
        queue: BookQueue,
        expected: dict[str, int],
        results: list[tuple[int, str, BookResult]],
        results_lock: threading.Lock,
        metrics: Optional[MetricsTracker],
    ):
        with self.session_factory(self.config, name=f"worker-{worker_id}") as session:
            tab = session.new_tab()
            while True:
                claimed = queue.claim()
                if claimed is None:
                    break
                index, book_code = claimed
                book_number = index + 1

                if metrics:
                    metrics.start_book(book_code)
                try:
                    result = self.process_book_with_retry(
                        tab, book_code, book_number, expected.get(book_code)
                    )
                except Exception:
                    logger.exception(
                        "Worker %d failed to process book %d: %s", worker_id, book_number, book_code
                    )
                    if metrics:
                        metrics.record_error(book_code)
                    continue
                finally:
                    tab = session.recycle(tab)

                self.writer.write_book(book_number, book_code, result)
                with results_lock:
                    results.append((book_number, book_code, result))
                if metrics:
                    metrics.complete_book(book_code, len(result.verses))

        logger.info("Worker %d finished all assigned work", worker_id)

    def scrape_books(
        self, books: list[str], expected: dict[str, int]
    ) -> list[tuple[int, str, BookResult]]:
        """Process ``books`` on a pool of tabs; results sorted by book number."""
        queue = BookQueue(books)
        workers = min(self.config.max_concurrent_tabs, len(queue))
        metrics = MetricsTracker(len(queue)) if self.config.enable_metrics else None
        results: list[tuple[int, str, BookResult]] = []
        results_lock = threading.Lock()

        logger.info("Total books to process: %d with %d tabs", len(queue), workers)

        with ThreadPoolExecutor(max_workers=max(workers, 1)) as executor:
            futures = [
                executor.submit(self._worker, i + 1, queue, expected, results, results_lock, metrics)
                for i in range(workers)
            ]
            for future in as_completed(futures):
                future.result()

        if metrics:
            print(metrics.summary())

        return sorted(results, key=lambda r: r[0])

    def run(self) -> list[tuple[int, str, BookResult]]:
        """Discover the version's books, scrape them and write the output."""
        logger.info("Starting scrape process for Bible version: %s", self.version)
        self.writer.init_output()

        detail, listing = self.discover()
        books = self.select_books(listing.codes)
        if not books:
            logger.error("None of the requested books were found in this Bible version.")
            return []

        results = self.scrape_books(books, listing.expected_chapters())
        verses = self.writer.write_results(results, detail)
        logger.info("Total verses scraped: %d", len(verses))
        return results
