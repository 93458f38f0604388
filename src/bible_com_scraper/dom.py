"""Minimal element interface the chapter parser walks."""

from typing import Optional, Protocol

from bs4 import BeautifulSoup, Tag

# Kinds accepted by Node.children
GROUPS = "groups"  # direct div/table children of a chapter container
SPANS = "spans"  # direct span children
CELL_SPANS = "cell_spans"  # spans directly inside table cells


class Node(Protocol):
    """The four things the parser needs from an element."""

    @property
    def tag(self) -> str: ...

    def text(self) -> str: ...

    def attribute(self, name: str) -> Optional[str]: ...

    def children(self, kind: str) -> list["Node"]: ...


class SoupNode:
    """``Node`` over a BeautifulSoup tag."""

    def __init__(self, element: Tag):
        self.element = element

    def __repr__(self) -> str:
        return f"SoupNode(<{self.element.name} class={self.tag!r}>)"

    @property
    def tag(self) -> str:
        classes = self.element.get("class", [])
        if isinstance(classes, str):
            return classes
        return " ".join(classes)

    def text(self) -> str:
        return self.element.get_text()

    def attribute(self, name: str) -> Optional[str]:
        value = self.element.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def children(self, kind: str) -> list["SoupNode"]:
        if kind == GROUPS:
            found = self.element.find_all(["div", "table"], recursive=False)
        elif kind == SPANS:
            found = self.element.find_all("span", recursive=False)
        elif kind == CELL_SPANS:
            found = self.element.select("td.cell > span")
        else:
            raise ValueError(f"unknown child kind: {kind}")
        return [SoupNode(el) for el in found]


def parse_container(html: str) -> Optional[SoupNode]:
    """Parse a chapter container's outer HTML; None if it holds no container."""
    soup = BeautifulSoup(html, "html.parser")
    element = soup.find("div", attrs={"data-usfm": True})
    if element is None:
        element = soup.find("div")
    if element is None:
        return None
    return SoupNode(element)
