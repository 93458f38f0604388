"""Pending headings for one chapter walk."""

from typing import Optional

from .models import HeaderItem


class HeaderAccumulator:
    """
    Buffers heading text until the verse it precedes is finalized.

    Headings are keyed by the order of the verse they will attach to.
    Fragments arriving for an order that already has a pending item are
    appended to it. Items nobody takes by the end of the chapter are dropped
    with the accumulator.
    """

    def __init__(self):
        self.items: list[HeaderItem] = []

    def __len__(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)

    def _find(self, target_order: int) -> Optional[HeaderItem]:
        for item in self.items:
            if item.target_order == target_order:
                return item
        return None

    def pending(self, target_order: int) -> Optional[str]:
        """Text waiting for ``target_order`` without consuming it."""
        item = self._find(target_order)
        return item.text if item else None

    def record(self, target_order: int, text: str, uppercase: bool = False):
        """Add heading text for the verse at ``target_order``."""
        if not text:
            return
        if uppercase:
            text = text.upper()

        item = self._find(target_order)
        if item:
            item.text += text
        else:
            self.items.append(HeaderItem(target_order=target_order, text=text))

    def take(self, target_order: int) -> Optional[str]:
        """Remove and return the heading for ``target_order``, trimmed."""
        item = self._find(target_order)
        if item is None:
            return None
        self.items.remove(item)
        return item.text.strip()

    def take_either(self, order_a: int, order_b: int) -> Optional[str]:
        """
        Chapter-end lookup: the first pending item targeting either order.

        A trailing heading can be queued one slot ahead of the final verse
        when no later verse fragment flushes it, so the last verse accepts
        headings for ``order`` or ``order + 1``.
        """
        text = self.take(order_a)
        if text is None:
            text = self.take(order_b)
        return text

    def mark_container_break(self):
        """Separate text from a new heading container with a newline."""
        if self.items and self.items[0].text != "":
            self.items[0].text += "\n"
