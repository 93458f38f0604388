"""
Tests for pending heading bookkeeping (bible_com_scraper/headers.py)
"""

from bible_com_scraper.headers import HeaderAccumulator


def test_record_creates_and_merges():
    headers = HeaderAccumulator()
    headers.record(1, "The ")
    headers.record(1, "Creation")
    headers.record(2, "Rest")

    assert len(headers) == 2
    assert headers.pending(1) == "The Creation"
    assert headers.pending(2) == "Rest"


def test_record_uppercases_name_style():
    headers = HeaderAccumulator()
    headers.record(1, "Praise the ")
    headers.record(1, "Lord", uppercase=True)
    assert headers.pending(1) == "Praise the LORD"


def test_record_ignores_empty_text():
    headers = HeaderAccumulator()
    headers.record(1, "")
    assert not headers


def test_take_consumes_and_trims():
    headers = HeaderAccumulator()
    headers.record(3, "  Psalm 23 \n")

    assert headers.take(2) is None
    assert headers.take(3) == "Psalm 23"
    assert headers.take(3) is None
    assert not headers


def test_take_either_prefers_first_order():
    headers = HeaderAccumulator()
    headers.record(5, "ahead")
    headers.record(4, "current")

    assert headers.take_either(4, 5) == "current"
    assert headers.take_either(4, 5) == "ahead"
    assert headers.take_either(4, 5) is None


def test_take_either_falls_back_to_next_slot():
    headers = HeaderAccumulator()
    headers.record(8, "Trailing")
    assert headers.take_either(7, 8) == "Trailing"


def test_mark_container_break_targets_earliest_item():
    headers = HeaderAccumulator()
    headers.mark_container_break()
    assert not headers

    headers.record(1, "Book One")
    headers.record(2, "Later")
    headers.mark_container_break()
    headers.record(1, "The Creation")

    assert headers.pending(1) == "Book One\nThe Creation"
    assert headers.pending(2) == "Later"
