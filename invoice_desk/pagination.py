"""Vertical cursor and page-break rules shared by the layout engine and page estimates."""

from __future__ import annotations

from typing import Callable, Optional

from .pdf_constants import (
    FIRST_PAGE_ROWS,
    ITEMS_START_Y_CONT,
    ITEMS_START_Y_FIRST,
    LAST_PAGE_ROWS,
    MID_PAGE_ROWS,
    PAGE_USABLE_BOTTOM,
    POST_TABLE_SPACE,
    ROW_LINE_H,
    ROW_MIN_H,
    ROW_PAD,
    SINGLE_PAGE_ROWS,
    TOP_Y,
)


def row_height(line_count: int) -> float:
    return max(ROW_MIN_H, line_count * ROW_LINE_H + ROW_PAD)


def lines_fitting(available: float) -> int:
    """Number of wrapped description lines whose row fits in ``available`` mm (at least one)."""
    return max(1, int((available - ROW_PAD) // ROW_LINE_H))


class PageCursor:
    """Tracks the vertical position and the number of pages opened so far.

    ``on_new_page`` is called after every page break, once the cursor has been
    reset to the top margin.
    """

    def __init__(self, y: float, on_new_page: Optional[Callable[[], None]] = None) -> None:
        self.y = y
        self.pages = 1
        self.on_new_page = on_new_page

    def new_page(self) -> None:
        self.pages += 1
        self.y = TOP_Y
        if self.on_new_page is not None:
            self.on_new_page()

    def fits(self, required: float, bottom: float = PAGE_USABLE_BOTTOM) -> bool:
        return self.y + required <= bottom

    def ensure_space(self, required: float, bottom: float = PAGE_USABLE_BOTTOM) -> bool:
        """Break the page when ``required`` mm do not fit above ``bottom``; report whether it did."""
        if self.fits(required, bottom):
            return False
        self.new_page()
        return True

    def advance(self, height: float) -> None:
        self.y += height


def estimate_page_count(item_count: int) -> int:
    """Pages produced by ``item_count`` single-line rows.

    Longer descriptions only add pages, so this is a lower bound for real invoices.
    """
    if item_count <= 0:
        return 1

    pages = 1
    start_y = ITEMS_START_Y_FIRST
    capacity = FIRST_PAGE_ROWS
    remaining = item_count - 1
    while remaining > capacity:
        remaining -= capacity
        pages += 1
        start_y = ITEMS_START_Y_CONT
        capacity = MID_PAGE_ROWS

    last_row_y = start_y + remaining * ROW_MIN_H
    if last_row_y + max(ROW_MIN_H, POST_TABLE_SPACE) > PAGE_USABLE_BOTTOM:
        pages += 1
    return pages


def max_items_for_pages(page_count: int) -> int:
    if page_count <= 1:
        return SINGLE_PAGE_ROWS
    return FIRST_PAGE_ROWS + MID_PAGE_ROWS * (page_count - 2) + LAST_PAGE_ROWS
