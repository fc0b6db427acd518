"""Page slicing and pager-window helpers for list views."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from careplans.core.config import settings

T = TypeVar("T")

PAGE_SIZE_CHOICES: tuple[int, ...] = (10, 25, 50)
PAGE_WINDOW_WIDTH = 5


def _parse_int(raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def default_page_size() -> int:
    if settings.default_page_size in PAGE_SIZE_CHOICES:
        return settings.default_page_size
    return PAGE_SIZE_CHOICES[0]


def total_pages(count: int, page_size: int) -> int:
    """Return the number of pages needed for ``count`` items (at least one)."""

    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return max(1, math.ceil(count / page_size))


def paginate(items: Sequence[T], page_index: int, page_size: int) -> list[T]:
    """Return the 1-based ``page_index`` slice of ``items``.

    Pages past the end yield an empty list rather than an error.
    """

    if page_size <= 0:
        raise ValueError("page_size must be positive")
    if page_index < 1:
        raise ValueError("page_index is 1-based")
    start = (page_index - 1) * page_size
    return list(items[start : start + page_size])


def page_window(current: int, total: int, width: int = PAGE_WINDOW_WIDTH) -> list[int]:
    """Return up to ``width`` contiguous page numbers centred on ``current``.

    Near either end the window shifts instead of shrinking, so page 1 of 10
    shows ``[1..5]`` and page 10 shows ``[6..10]``.
    """

    total = max(1, total)
    current = min(max(1, current), total)
    size = min(width, total)
    first = current - size // 2
    first = max(1, min(first, total - size + 1))
    return list(range(first, first + size))


@dataclass(frozen=True)
class PageState:
    """The page currently displayed by a paginated view."""

    page_index: int = 1
    page_size: int = PAGE_SIZE_CHOICES[0]

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "PageState":
        page = _parse_int(params.get("page")) or 1
        size = _parse_int(params.get("page_size"))
        if size not in PAGE_SIZE_CHOICES:
            size = default_page_size()
        return cls(page_index=max(page, 1), page_size=size)

    def total_pages(self, count: int) -> int:
        return total_pages(count, self.page_size)

    def clamp(self, count: int) -> "PageState":
        """Return a copy whose page index lies within ``[1, total_pages]``."""

        clamped = min(max(1, self.page_index), self.total_pages(count))
        if clamped == self.page_index:
            return self
        return replace(self, page_index=clamped)

    def first_page(self) -> "PageState":
        return replace(self, page_index=1)


def reconcile_page(state: PageState, count: int, *, filters_changed: bool) -> PageState:
    """Return the page to show after the filtered set was recomputed.

    A change of filters always restarts at page 1; otherwise the requested
    page is clamped to the pages that still exist.
    """

    if filters_changed:
        return state.first_page()
    return state.clamp(count)


def page_range(state: PageState, count: int) -> tuple[int, int]:
    """Return the 1-based ``(first, last)`` item numbers shown on the page."""

    if count <= 0:
        return 0, 0
    first = (state.page_index - 1) * state.page_size + 1
    if first > count:
        return 0, 0
    return first, min(state.page_index * state.page_size, count)


def pagination_context(state: PageState, count: int) -> dict[str, object]:
    """Return template context for pager controls."""

    pages = state.total_pages(count)
    first, last = page_range(state, count)
    return {
        "page": state.page_index,
        "page_size": state.page_size,
        "page_size_choices": PAGE_SIZE_CHOICES,
        "total_pages": pages,
        "total_items": count,
        "window": page_window(state.page_index, pages),
        "first_item": first,
        "last_item": last,
        "has_previous": state.page_index > 1,
        "has_next": state.page_index < pages,
        "previous_page": state.page_index - 1 if state.page_index > 1 else None,
        "next_page": state.page_index + 1 if state.page_index < pages else None,
    }
