"""Map Bible.com ChapterContent CSS classes to semantic categories."""

import re

NAMESPACE = "chaptercontent"

# Inline categories
VERSE = "verse"
HEADING = "heading"
LABEL = "label"
NOTE = "note"
NAME_EMPHASIS = "nd"  # divine name, rendered in small caps
SMALL_CAPS = "sc"
CONTENT = "content"

# Structural group categories
TABLE = "table"
BLANK_PARAGRAPH = "b"

UPPERCASE_CATEGORIES = frozenset({NAME_EMPHASIS, SMALL_CAPS})

# mt, mte, ms, mr, s, sr, r, d, sp, sd; each optionally numbered
HEADING_CONTAINER_RE = re.compile(r"(?:mte?|ms|mr|sr?|r|d|sp|sd)\d*")

_class_patterns: dict[str, re.Pattern] = {}


def _class_pattern(namespace: str) -> re.Pattern:
    pattern = _class_patterns.get(namespace)
    if pattern is None:
        pattern = re.compile(rf"{re.escape(namespace.lower())}_(\w+)__[a-z0-9]+")
        _class_patterns[namespace] = pattern
    return pattern


def classify(raw_tag: str, namespace: str = NAMESPACE) -> str:
    """
    Extract the category from a class string.

    ``"ChapterContent_verse__57FEA ChapterContent_v1__x"`` gives ``"verse"``;
    anything without a ``<namespace>_<category>__<hash>`` class gives ``""``.
    """
    if not raw_tag:
        return ""
    match = _class_pattern(namespace).search(raw_tag.lower())
    if match:
        return match.group(1)
    return ""


def is_heading_top_container(category: str) -> bool:
    """True for title, section heading, reference, descriptive and speaker groups."""
    return bool(category) and HEADING_CONTAINER_RE.fullmatch(category) is not None


def is_uppercase_category(category: str) -> bool:
    return category in UPPERCASE_CATEGORIES
