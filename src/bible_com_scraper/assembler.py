"""
Verse assembly for one chapter.

The assembler consumes classified fragments in document order and turns
them into ``Verse`` records. Verse text arrives in runs that do not line up
with verses: one verse can span several fragments (across paragraphs or
poetry lines), and one reference can cover two verses that the source
splits with labels ("4a", "4b"). A verse is only finalized when the next
boundary shows up, or when the chapter ends.

Headings are recorded against the order of the verse they precede and are
attached when that verse is finalized.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from . import classify
from .headers import HeaderAccumulator
from .ids import chapter_number, fits_id, make_verse_id
from .models import Verse

logger = logging.getLogger(__name__)


def clean_text(text: str) -> str:
    """Collapse whitespace and drop spaces before periods and commas."""
    return " ".join(text.split()).replace(" .", ".").replace(" ,", ",")


def parse_reference(reference: str) -> tuple[int, int]:
    """
    Chapter and verse numbers from a USFM reference.

    ``"GEN.1.2"`` gives (1, 2). Combined references such as
    ``"PSA.9.1+PSA.9.2"`` keep the first pair; ``"EST.1_1.3"`` gives chapter 1.
    Raises ``ValueError`` when the reference has no usable chapter/verse.
    """
    parts = reference.replace("+", ".").split(".")
    if len(parts) < 3:
        raise ValueError(f"malformed reference: {reference!r}")
    return chapter_number(parts[1]), int(parts[2])


@dataclass
class VerseFragment:
    """A verse span: its reference and the (category, text) of its child spans."""

    reference: Optional[str]
    parts: list[tuple[str, str]] = field(default_factory=list)

    def label(self) -> str:
        """First non-empty label among the child spans."""
        for category, text in self.parts:
            if category == classify.LABEL and text:
                return text
        return ""


@dataclass(frozen=True)
class AssemblerState:
    """Counters and boundary-tracking fields threaded through transitions."""

    verse_order: int = 0  # order of the last finalized verse
    header_order: int = 0  # headings are recorded at header_order + 1
    last_reference: str = ""
    last_label: str = ""
    closed: bool = False  # end-of-chapter finalize already ran

    @property
    def active(self) -> bool:
        return self.last_reference != "" and not self.closed

    @property
    def heading_target(self) -> int:
        return self.header_order + 1


@dataclass
class _Draft:
    """Mutable scratch for the verse being accumulated."""

    chapter: int = 0
    verse: int = 0
    text: str = ""
    label: str = ""

    def reset(self):
        self.text = ""
        self.label = ""


class VerseAssembler:
    """State machine turning one chapter's fragments into verses."""

    def __init__(self, book: int, headers: Optional[HeaderAccumulator] = None):
        self.book = book
        self.headers = headers if headers is not None else HeaderAccumulator()
        self.state = AssemblerState()
        self.verses: list[Verse] = []
        self._draft = _Draft()

    @property
    def active(self) -> bool:
        return self.state.active

    def feed_heading(self, category: str, text: str):
        """Queue heading text for the next verse to be finalized."""
        self.state = record_heading(self.state, self.headers, category, text)

    def feed_verse(self, fragment: VerseFragment) -> bool:
        """
        Process one verse span.

        Returns True if the fragment finalized the previous verse.
        """
        self.state, finalized = advance(
            self.state, self._draft, self.headers, fragment, self.book, self.verses
        )
        return finalized

    def finish(self) -> Optional[Verse]:
        """
        Force the end-of-chapter finalize.

        The last verse has no following boundary, so it is emitted here with
        order ``verse_order + 1``. Runs at most once per chapter and does
        nothing when no verse was seen.
        """
        self.state, verse = finish(
            self.state, self._draft, self.headers, self.book, self.verses
        )
        return verse


def record_heading(
    state: AssemblerState, headers: HeaderAccumulator, category: str, text: str
) -> AssemblerState:
    headers.record(
        state.heading_target, text, uppercase=classify.is_uppercase_category(category)
    )
    return state


def advance(
    state: AssemblerState,
    draft: _Draft,
    headers: HeaderAccumulator,
    fragment: VerseFragment,
    book: int,
    out: list[Verse],
) -> tuple[AssemblerState, bool]:
    reference = fragment.reference
    if not reference:
        return state, False
    try:
        chapter, verse = parse_reference(reference)
    except ValueError:
        logger.warning("Ignoring verse fragment with malformed reference %r", reference)
        return state, False

    label = fragment.label()
    finalized = False

    if state.last_reference == "":
        state = replace(
            state,
            last_reference=reference,
            last_label=label,
            header_order=state.header_order + 1,
        )
    elif reference != state.last_reference or (label and label != state.last_label):
        if reference == state.last_reference:
            logger.debug(
                "Same reference %s with new label %r -> %r, starting a new verse",
                reference,
                state.last_label,
                label,
            )
        order = state.verse_order + 1
        _emit(draft, book, order, headers.take(order), out)
        state = replace(
            state,
            verse_order=order,
            header_order=state.header_order + 1,
            last_reference=reference,
            last_label=label,
        )
        finalized = True
    else:
        state = replace(state, last_label=label or state.last_label)

    # Later fragments may restate the reference; last write wins.
    draft.chapter = chapter
    draft.verse = verse
    _append_parts(draft, fragment.parts)
    return state, finalized


def finish(
    state: AssemblerState,
    draft: _Draft,
    headers: HeaderAccumulator,
    book: int,
    out: list[Verse],
) -> tuple[AssemblerState, Optional[Verse]]:
    if not state.active:
        return state, None
    order = state.verse_order + 1
    verse = _emit(draft, book, order, headers.take_either(order, order + 1), out)
    return replace(state, verse_order=order, closed=True), verse


def _append_parts(draft: _Draft, parts: list[tuple[str, str]]):
    for category, text in parts:
        if category == classify.NOTE or not text:
            continue
        if category == classify.LABEL:
            draft.label = text
        elif classify.is_uppercase_category(category):
            draft.text += text.upper()
        else:
            draft.text += " " + text


def _emit(
    draft: _Draft, book: int, order: int, heading: Optional[str], out: list[Verse]
) -> Verse:
    if not fits_id(draft.chapter, order):
        logger.warning(
            "Chapter %d / order %d exceeds the 3-digit verse id width",
            draft.chapter,
            order,
        )
    verse = Verse(
        id=make_verse_id(book, draft.chapter, order),
        book=book,
        chapter=draft.chapter,
        verse=draft.verse,
        text=clean_text(draft.text),
        heading=heading or "",
        order=order,
        label=draft.label,
    )
    out.append(verse)
    draft.reset()
    return verse
