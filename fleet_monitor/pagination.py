"""
Offset pagination bookkeeping for list views.

The upstream only reports the offset of its last page, so total item and
page counts derived here are upper-bound estimates, not exact counts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import parse_qs, urlsplit

ELLIPSIS = "ellipsis"
LIMIT_OPTIONS = (12, 24, 48, 96)

PageNumber = Union[int, str]


def parse_offset_from_url(url: Optional[str]) -> int:
    """
    Return the integer ``page[offset]`` of a pagination link.

    Malformed URLs, a missing parameter, or a non-numeric value all give 0.
    """
    if not url:
        return 0
    try:
        parts = urlsplit(url)
    except ValueError:
        return 0
    if not parts.scheme or not parts.netloc:
        return 0
    values = parse_qs(parts.query).get("page[offset]")
    if not values:
        return 0
    try:
        return int(values[0])
    except ValueError:
        return 0


def generate_page_numbers(current_page: int, total_pages: int) -> list[PageNumber]:
    """
    Build a "first ... neighbourhood ... last" window of zero-based pages.

    Up to 5 pages are listed in full. Beyond that the first and last pages
    are always shown, the current page is flanked by its neighbours, and an
    ELLIPSIS marker stands in for each skipped run.
    """
    if total_pages <= 5:
        return list(range(total_pages))

    pages: list[PageNumber] = [0]
    if current_page > 2:
        pages.append(ELLIPSIS)

    start = max(1, current_page - 1)
    end = min(total_pages - 2, current_page + 1)
    pages.extend(range(start, end + 1))

    if current_page < total_pages - 3:
        pages.append(ELLIPSIS)
    pages.append(total_pages - 1)
    return pages


@dataclass
class PageState:
    """Current page and page size of a paginated list. Pages are zero-based."""

    current_page: int = 0
    limit_per_page: int = LIMIT_OPTIONS[0]

    def __post_init__(self) -> None:
        if self.current_page < 0:
            raise ValueError("current_page must be >= 0")
        if self.limit_per_page < 1:
            raise ValueError("limit_per_page must be >= 1")

    @property
    def offset(self) -> int:
        return self.current_page * self.limit_per_page

    @property
    def start_item(self) -> int:
        return self.offset + 1

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 0

    def go_to(self, page: int) -> None:
        self.current_page = max(0, page)

    def next_page(self) -> None:
        self.current_page += 1

    def prev_page(self) -> None:
        if self.has_prev_page:
            self.current_page -= 1

    def set_limit(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit_per_page = limit
        self.current_page = 0

    def reset(self) -> None:
        self.current_page = 0


@dataclass(frozen=True)
class PaginationSummary:
    offset: int
    start_item: int
    end_item: int
    limit_per_page: int
    current_page: int
    has_next_page: bool
    has_prev_page: bool
    total_items: Optional[int] = None
    total_pages: Optional[int] = None
    page_numbers: Optional[list[PageNumber]] = None


def summarize(page: PageState, item_count: int, links=None) -> PaginationSummary:
    """
    Combine page state with a fetched page's size and links.

    ``links`` is a PaginationLinks model, a plain dict, or None.
    """
    if links is not None and not isinstance(links, dict):
        links = links.model_dump()
    links = links or {}

    total_items = None
    total_pages = None
    page_numbers = None
    last = links.get("last")
    if last:
        last_offset = parse_offset_from_url(last)
        total_items = last_offset + page.limit_per_page
        total_pages = last_offset // page.limit_per_page + 1
        page_numbers = generate_page_numbers(page.current_page, total_pages)

    return PaginationSummary(
        offset=page.offset,
        start_item=page.start_item,
        end_item=page.offset + item_count,
        limit_per_page=page.limit_per_page,
        current_page=page.current_page,
        has_next_page=links.get("next") is not None,
        has_prev_page=page.has_prev_page,
        total_items=total_items,
        total_pages=total_pages,
        page_numbers=page_numbers,
    )
