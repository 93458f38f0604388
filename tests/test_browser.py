"""
Tests for page helpers and tab error handling (bible_com_scraper/browser.py)

Pages are small stand-ins for Playwright's ``Page``; no browser is launched.

Run: python -m pytest tests/test_browser.py -q
"""

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from bible_com_scraper.browser import (
    BOOKS_BUTTON,
    NOT_AVAILABLE,
    POPOVER_BACK,
    POPOVER_LIST,
    ChapterPage,
    book_code_from_href,
    chapter_url,
    is_intro,
    parse_bible_info,
    parse_location,
)
from bible_com_scraper.config import ScraperConfig
from bible_com_scraper.errors import AcquisitionError, StructuralMiss


# ---------------------------------------------------------------------------
# URL and metadata helpers
# ---------------------------------------------------------------------------

def test_chapter_url():
    assert chapter_url(59, "ESV", "GEN", "1_1") == "https://www.bible.com/bible/59/GEN.1_1.ESV"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.bible.com/bible/59/GEN.1.ESV", ("GEN", "1")),
        ("https://www.bible.com/bible/59/EST.1_1.ESV", ("EST", "1_1")),
        ("https://www.bible.com/bible/306/MAT.INTRO1.TB", ("MAT", "INTRO1")),
        ("https://www.bible.com/", ("", "")),
    ],
)
def test_parse_location(url, expected):
    assert parse_location(url) == expected


@pytest.mark.parametrize(
    "token, expected",
    [("INTRO1", True), ("intro", True), ("1", False), ("1_1", False), ("", False)],
)
def test_is_intro(token, expected):
    assert is_intro(token) is expected


class TestParseBibleInfo:
    VERSION = "Version: English Standard Version 2016 - ESV"

    def test_seven_headers(self):
        info = ["Home", "Bible", "Versions", "Languages", "English", self.VERSION, "Publisher"]
        assert parse_bible_info(info) == ("English Standard Version 2016", "ESV", "english")

    def test_six_headers(self):
        info = ["Bible", "Versions", "Languages", "Bahasa Indonesia", "Version: Terjemahan Baru - TB", "Publisher"]
        assert parse_bible_info(info) == ("Terjemahan Baru", "TB", "bahasa indonesia")

    def test_five_headers(self):
        info = ["Versions", "Languages", "English", self.VERSION, "Publisher"]
        assert parse_bible_info(info) == ("English Standard Version 2016", "ESV", "english")

    def test_unicode_abbreviation_converted(self):
        info = ["Versions", "Languages", "中文", "Version: 新標點和合本 - 神", "Publisher"]
        assert parse_bible_info(info) == ("新標點和合本", "SHEN", "中文")

    def test_missing_texts(self):
        assert parse_bible_info(["a", "b", None, None, "e"]) == ("", "", "")

    def test_version_without_abbreviation(self):
        info = ["a", "b", "English", "Version: Unnamed", "e"]
        assert parse_bible_info(info) == ("Unnamed", "", "english")

    @pytest.mark.parametrize("size", [0, 4, 8])
    def test_unknown_layout(self, size):
        assert parse_bible_info(["x"] * size) is None


@pytest.mark.parametrize(
    "href, expected",
    [
        ("/bible/59/GEN.1.ESV", ("GEN", False)),
        ("/bible/59/MAT.INTRO1.ESV", ("MAT", True)),
        ("https://www.bible.com/bible/306/1CO.intro.TB/", ("1CO", True)),
    ],
)
def test_book_code_from_href(href, expected):
    assert book_code_from_href(href) == expected


# ---------------------------------------------------------------------------
# Tab over stand-in pages
# ---------------------------------------------------------------------------

class Element:
    def __init__(self, html="", on_click=None, error=None, children=None, href=None):
        self.html = html
        self.on_click = on_click
        self.error = error
        self.children = children or {}
        self.href = href

    def evaluate(self, expression):
        if self.error:
            raise self.error
        return self.html

    def click(self):
        if self.on_click:
            self.on_click()

    def query_selector(self, selector):
        return self.children.get(selector)

    def get_attribute(self, name):
        return self.href


class StubPage:
    """Records timeouts and listeners; selector lookups come from ``selectors``."""

    def __init__(self, selectors=None, info=None):
        self.selectors = selectors or {}
        self.info = info
        self.url = "about:blank"

    def set_default_timeout(self, timeout):
        self.timeout = timeout

    def set_default_navigation_timeout(self, timeout):
        self.navigation_timeout = timeout

    def on(self, event, handler):
        pass

    def wait_for_selector(self, selector, timeout=None):
        result = self.selectors.get(selector)
        if isinstance(result, Exception):
            raise result
        return result

    def eval_on_selector_all(self, selector, expression):
        if isinstance(self.info, Exception):
            raise self.info
        return self.info


def make_tab(page):
    return ChapterPage(page, ScraperConfig(delay_between_operations=0), name="test-tab")


CONTAINER = "div[data-usfm*='GEN.1']"


class TestChapterHtml:
    def test_returns_outer_html(self):
        page = StubPage({CONTAINER: Element('<div data-usfm="GEN.1"></div>')})
        assert make_tab(page).chapter_html("GEN", "1") == '<div data-usfm="GEN.1"></div>'

    def test_timeout_is_structural_miss(self):
        page = StubPage({CONTAINER: PlaywrightTimeoutError("Timeout 5000ms exceeded")})
        with pytest.raises(StructuralMiss):
            make_tab(page).chapter_html("GEN", "1")

    def test_missing_container_is_structural_miss(self):
        with pytest.raises(StructuralMiss):
            make_tab(StubPage()).chapter_html("GEN", "1")

    def test_destroyed_context_is_retryable(self):
        handle = Element(error=PlaywrightError("Execution context was destroyed"))
        with pytest.raises(AcquisitionError):
            make_tab(StubPage({CONTAINER: handle})).chapter_html("GEN", "1")

    def test_closed_target_is_retryable(self):
        page = StubPage({CONTAINER: PlaywrightError("Target page, context or browser has been closed")})
        with pytest.raises(AcquisitionError):
            make_tab(page).chapter_html("GEN", "1")


class TestNotAvailable:
    def test_marker_present(self):
        assert make_tab(StubPage({NOT_AVAILABLE: Element()})).not_available()

    def test_timeout_means_available(self):
        page = StubPage({NOT_AVAILABLE: PlaywrightTimeoutError("Timeout 500ms exceeded")})
        assert not make_tab(page).not_available()

    def test_browser_error_is_retryable(self):
        page = StubPage({NOT_AVAILABLE: PlaywrightError("Target closed")})
        with pytest.raises(AcquisitionError):
            make_tab(page).not_available()


class TestBibleDetails:
    def test_parsed_from_headers(self):
        info = ["Versions", "Languages", "English", "Version: King James Version - KJV", "Publisher"]
        detail = make_tab(StubPage(info=info)).bible_details()
        assert (detail.name, detail.abbreviation, detail.language) == ("King James Version", "KJV", "english")

    def test_browser_error_is_retryable(self):
        page = StubPage(info=PlaywrightError("Execution context was destroyed"))
        with pytest.raises(AcquisitionError):
            make_tab(page).bible_details()


class MenuPage(StubPage):
    """Book menu: top level lists books; clicking one lists its chapters."""

    def __init__(self, books, fail_on_chapters=False):
        super().__init__({BOOKS_BUTTON: Element(), POPOVER_LIST: Element()})
        self.books = books
        self.fail_on_chapters = fail_on_chapters
        self.open_book = None

    def eval_on_selector_all(self, selector, expression):
        return [name for name, _, _ in self.books]

    def _open(self, index):
        self.open_book = index

    def _back(self):
        self.open_book = None

    def query_selector_all(self, selector):
        if selector == f"{POPOVER_LIST} button":
            return [Element(on_click=lambda i=i: self._open(i)) for i in range(len(self.books))]
        if selector == f"{POPOVER_LIST} li":
            if self.fail_on_chapters:
                raise PlaywrightError("Element is not attached to the DOM")
            _, code, tokens = self.books[self.open_book]
            return [
                Element(children={"a": Element(href=f"/bible/59/{code}.{token}.ESV")})
                for token in tokens
            ]
        return []

    def query_selector(self, selector):
        if selector == POPOVER_BACK:
            return Element(on_click=self._back)
        return None


class TestBookList:
    def test_reads_codes_and_chapter_counts(self):
        page = MenuPage([
            ("Genesis", "GEN", ["1", "2", "3"]),
            ("Matthew", "MAT", ["INTRO1", "1", "2"]),
        ])
        listing = make_tab(page).book_list()

        assert listing.names == ["Genesis", "Matthew"]
        assert listing.codes == ["GEN", "MAT"]
        # The introduction entry is not a chapter
        assert listing.chapter_counts == [3, 2]
        assert page.open_book is None

    def test_menu_missing(self):
        page = MenuPage([])
        page.selectors[BOOKS_BUTTON] = PlaywrightTimeoutError("Timeout 30000ms exceeded")
        with pytest.raises(AcquisitionError):
            make_tab(page).book_list()

    def test_detached_menu_is_retryable(self):
        page = MenuPage([("Genesis", "GEN", ["1"])], fail_on_chapters=True)
        with pytest.raises(AcquisitionError):
            make_tab(page).book_list()
