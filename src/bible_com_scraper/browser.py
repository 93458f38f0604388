"""
Content acquisition from Bible.com with Playwright.

Each worker thread owns one ``BrowserSession`` (Playwright's sync API is
bound to the thread that started it) and drives one ``ChapterPage`` tab.
Playwright failures are re-raised as ``AcquisitionError`` so the scraper
can retry them.
"""

import logging
import time
from typing import Optional
from urllib.parse import urlparse

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from .config import BASE_URL, ScraperConfig, ascii_abbreviation
from .errors import AcquisitionError, BrowserInitError, StructuralMiss
from .models import BibleDetail, BookListing

logger = logging.getLogger(__name__)


# =============================================================================
# Selectors
# =============================================================================

NOT_AVAILABLE = "span[class*='ChapterContent_not-avaliable']"
COOKIE_BUTTON = "button[data-testid='close-cookie-banner']"
BIBLE_INFO = "main div.max-w-full.w-full a h2"
BOOKS_BUTTON = "button[id*='headlessui-popover-button-:r0']"
POPOVER_LIST = 'div[id^="headlessui-popover-panel-"] > div[class*="overflow-y-auto"] > ul'
POPOVER_BACK = 'div[id^="headlessui-popover-panel-"] > div > div > button'
NEXT_CHAPTER = "main > div:nth-child(1) > div:nth-last-child(1) > div:nth-last-child(1) > a"

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


# =============================================================================
# URL and metadata helpers
# =============================================================================

def chapter_url(version_id: int, version: str, book_code: str, chapter: str = "1") -> str:
    return f"{BASE_URL}/bible/{version_id}/{book_code}.{chapter}.{version}"


def parse_location(url: str) -> tuple[str, str]:
    """
    Book code and chapter token from a chapter URL.

    ``https://www.bible.com/bible/59/GEN.1_1.ESV`` gives ("GEN", "1_1").
    """
    segments = [s for s in urlparse(url).path.split("/") if s]
    if not segments:
        return "", ""
    parts = segments[-1].split(".")
    book = parts[0]
    chapter = parts[1] if len(parts) > 1 else ""
    return book, chapter


def is_intro(chapter_token: str) -> bool:
    return chapter_token[:5].upper() == "INTRO"


def parse_bible_info(info: list[Optional[str]]) -> Optional[tuple[str, str, str]]:
    """
    (name, abbreviation, language) from the version page's header texts.

    The language and version entries sit at fixed positions depending on
    how many breadcrumb headers the page renders; other shapes give None.
    """
    positions = {7: (4, 5), 6: (3, 4), 5: (2, 3)}
    if len(info) not in positions:
        return None
    language_index, version_index = positions[len(info)]

    language = (info[language_index] or "").lower()
    name, abbreviation = "", ""
    version_text = info[version_index]
    if version_text:
        pieces = version_text.replace("Version: ", "").split("-")
        name = pieces[0].strip()
        abbreviation = ascii_abbreviation(pieces[1]) if len(pieces) > 1 else ""
    return name, abbreviation, language


def book_code_from_href(href: str) -> tuple[str, bool]:
    """Book code of a chapter link and whether it points at an intro page."""
    last = href.rstrip("/").split("/")[-1]
    parts = last.split(".")
    intro = len(parts) > 1 and "intro" in parts[1].lower()
    return parts[0], intro


# =============================================================================
# Tab
# =============================================================================

class ChapterPage:
    """One browser tab navigating chapter pages."""

    def __init__(self, page: Page, config: ScraperConfig, name: str = "tab"):
        self.page = page
        self.config = config
        self.name = name

        page.set_default_timeout(config.page_timeout)
        page.set_default_navigation_timeout(config.navigation_timeout)
        page.on("pageerror", lambda err: logger.error("Page script error in %s: %s", name, err))
        page.on("console", self._on_console)

    def _on_console(self, message):
        if message.type == "error":
            logger.debug("Browser console error in %s: %s", self.name, message.text)

    @property
    def url(self) -> str:
        return self.page.url

    def location(self) -> tuple[str, str]:
        return parse_location(self.page.url)

    def open(self, url: str):
        """Navigate and wait until the rendered HTML stops changing."""
        logger.debug("%s: opening %s", self.name, url)
        try:
            self.page.goto(url, wait_until="networkidle")
        except PlaywrightError as e:
            raise AcquisitionError(f"navigation to {url} failed: {e}") from e
        self.wait_until_rendered()

    def wait_until_rendered(self, timeout: Optional[int] = None, interval: int = 500):
        """Poll the page size until it is unchanged for three checks in a row."""
        timeout = timeout or self.config.page_timeout
        last_size = 0
        stable = 0
        for _ in range(max(timeout // interval, 1)):
            try:
                size = len(self.page.content())
            except PlaywrightError as e:
                raise AcquisitionError(f"page content unavailable: {e}") from e
            if last_size and size == last_size:
                stable += 1
                if stable >= 3:
                    return
            else:
                stable = 0
            last_size = size
            time.sleep(interval / 1000)

    def pause(self, ms: Optional[int] = None):
        time.sleep((self.config.delay_between_operations if ms is None else ms) / 1000)

    def not_available(self, timeout: int = 500) -> bool:
        """True if the chapter shows the "not available" marker."""
        try:
            return self.page.wait_for_selector(NOT_AVAILABLE, timeout=timeout) is not None
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as e:
            raise AcquisitionError(f"availability check failed: {e}") from e

    def chapter_html(self, book_code: str, chapter: str, timeout: int = 5000) -> str:
        """Outer HTML of the chapter container."""
        selector = f"div[data-usfm*='{book_code}.{chapter}']"
        try:
            container = self.page.wait_for_selector(selector, timeout=timeout)
            if container is None:
                raise StructuralMiss(f"{book_code}.{chapter}: container not found")
            return container.evaluate("el => el.outerHTML")
        except PlaywrightTimeoutError as e:
            raise StructuralMiss(f"{book_code}.{chapter}: container not found") from e
        except PlaywrightError as e:
            raise AcquisitionError(f"{book_code}.{chapter}: reading container failed: {e}") from e

    def next_chapter_href(self) -> Optional[str]:
        try:
            return self.page.eval_on_selector(NEXT_CHAPTER, "a => a.getAttribute('href')")
        except PlaywrightError:
            return None

    def close_cookie_banner(self):
        try:
            button = self.page.wait_for_selector(COOKIE_BUTTON, timeout=5000)
            if button:
                button.click()
                logger.debug("Cookies banner closed")
        except PlaywrightTimeoutError:
            logger.debug("No cookies banner found or already closed")
        except PlaywrightError as e:
            logger.debug("Could not close cookies banner: %s", e)

    def bible_details(self) -> BibleDetail:
        try:
            info = self.page.eval_on_selector_all(BIBLE_INFO, "els => els.map(el => el.textContent)")
        except PlaywrightError as e:
            raise AcquisitionError(f"bible details unavailable: {e}") from e

        detail = BibleDetail()
        parsed = parse_bible_info(info)
        if parsed:
            detail.name, detail.abbreviation, detail.language = parsed
        logger.info(
            "Bible details extracted - %s (%s) in %s",
            detail.name,
            detail.abbreviation,
            detail.language,
        )
        return detail

    def book_list(self) -> BookListing:
        """Open the book menu and read every book's code and chapter count."""
        try:
            self.page.wait_for_selector(BOOKS_BUTTON).click()
            self.page.wait_for_selector(POPOVER_LIST)
        except PlaywrightError as e:
            raise AcquisitionError(f"book menu unavailable: {e}") from e

        try:
            return self._read_book_menu()
        except PlaywrightError as e:
            raise AcquisitionError(f"reading book menu failed: {e}") from e

    def _read_book_menu(self) -> BookListing:
        listing = BookListing()
        listing.names = self.page.eval_on_selector_all(
            f"{POPOVER_LIST} li", "els => els.map(el => el.textContent || '')"
        )
        logger.info("Found %d books available", len(listing.names))

        button_count = len(self.page.query_selector_all(f"{POPOVER_LIST} button"))
        for i in range(button_count):
            # Buttons detach after every click, so select them again
            buttons = self.page.query_selector_all(f"{POPOVER_LIST} button")
            buttons[i].click()
            self.pause(100)

            chapters = self.page.query_selector_all(f"{POPOVER_LIST} li")
            link = chapters[0].query_selector("a") if chapters else None
            href = link.get_attribute("href") if link else None
            if href:
                code, intro = book_code_from_href(href)
                count = len(chapters) - 1 if intro else len(chapters)
                logger.debug("Book %s has %d chapters", code, count)
                listing.codes.append(code)
                listing.chapter_counts.append(count)

            back = self.page.query_selector(POPOVER_BACK)
            if back:
                back.click()
                self.pause(150)

        return listing

    def close(self):
        try:
            self.page.close()
        except PlaywrightError as e:
            logger.warning("Error closing %s: %s", self.name, e)


# =============================================================================
# Session
# =============================================================================

class BrowserSession:
    """A Playwright browser owned by a single thread."""

    def __init__(self, config: ScraperConfig, name: str = "session"):
        self.config = config
        self.name = name
        self._playwright = None
        self.browser = None
        self.tabs: list[ChapterPage] = []

    def __enter__(self) -> "BrowserSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def start(self):
        logger.info("Launching browser for %s", self.name)
        try:
            self._playwright = sync_playwright().start()
            self.browser = self._playwright.chromium.launch(
                headless=self.config.headless, args=LAUNCH_ARGS
            )
        except PlaywrightError as e:
            self.close()
            raise BrowserInitError(f"could not launch browser: {e}") from e

    def new_tab(self) -> ChapterPage:
        if self.browser is None:
            raise BrowserInitError("browser not initialized")
        tab = ChapterPage(self.browser.new_page(), self.config, name=f"{self.name}-tab{len(self.tabs) + 1}")
        self.tabs.append(tab)
        return tab

    def recycle(self, tab: ChapterPage) -> ChapterPage:
        """Close ``tab`` and return a fresh one; the old tab on failure."""
        try:
            tab.page.close()
            fresh = ChapterPage(self.browser.new_page(), self.config, name=tab.name)
        except PlaywrightError as e:
            logger.warning("Failed to recreate %s: %s", tab.name, e)
            return tab
        self.tabs[self.tabs.index(tab)] = fresh
        return fresh

    def close(self):
        for tab in self.tabs:
            tab.close()
        self.tabs = []
        if self.browser is not None:
            try:
                self.browser.close()
                logger.info("Browser for %s closed", self.name)
            except PlaywrightError as e:
                logger.error("Error closing browser for %s: %s", self.name, e)
            self.browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
