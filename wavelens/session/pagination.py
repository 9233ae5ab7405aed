"""
WaveLens Packet Pagination
===========================

Fixed-size page view over the packet buffer of a capture session. The
view holds a reference to the buffer, so pages always reflect its
current contents; the page index is clamped whenever the buffer shrinks.
"""

from __future__ import annotations

import math
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


class PacketPage(Generic[T]):
    """1-based page cursor over a sequence.

    ``total_pages`` is never below 1, so an empty buffer still has one
    (empty) page. Moving past either end is a no-op.

    Usage::

        page = PacketPage(buffer, page_size=10)
        page.next_page()
        for packet in page.items:
            ...
    """

    def __init__(self, buffer: Sequence[T], page_size: int = 10) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._buffer = buffer
        self._page_size = page_size
        self._page = 1

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(len(self._buffer) / self._page_size))

    @property
    def page(self) -> int:
        """Current page number, clamped to the buffer's current size."""
        if self._page > self.total_pages:
            self._page = self.total_pages
        return self._page

    @property
    def items(self) -> list[T]:
        start = (self.page - 1) * self._page_size
        return list(self._buffer[start:start + self._page_size])

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def next_page(self) -> int:
        if self.has_next:
            self._page += 1
        return self.page

    def prev_page(self) -> int:
        if self.has_prev:
            self._page -= 1
        return self.page

    def goto(self, page: int) -> int:
        """Jump to *page*, clamped into ``[1, total_pages]``."""
        self._page = min(max(1, page), self.total_pages)
        return self._page

    def reset(self) -> None:
        self._page = 1
