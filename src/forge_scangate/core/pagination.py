"""Cursor-driven collection of paginated results."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Optional, Sequence

from forge_scangate.exceptions import BackendError

logger = logging.getLogger(__name__)

PageFetcher = Callable[[Optional[str]], tuple[Sequence[Any], Optional[str]]]


def iter_pages(fetch_page: PageFetcher) -> Iterator[Any]:
    """
    Lazily walk every page returned by ``fetch_page``.

    The first request is made with ``None`` (no cursor), which is distinct from
    an empty-string cursor. The walk ends when a page comes back without a
    cursor or with an empty one. Items are yielded in the order the backend
    returns them. Errors raised by ``fetch_page`` propagate unchanged.

    Raises:
        BackendError: If the backend hands back a cursor that was already followed.
    """
    cursor: Optional[str] = None
    seen: set[str] = set()
    page_number = 0

    while True:
        items, next_cursor = fetch_page(cursor)
        page_number += 1
        logger.debug(f"Fetched page {page_number} with {len(items)} items")
        yield from items

        if not next_cursor:
            return
        if next_cursor in seen:
            raise BackendError(
                "pagination", f"backend returned already-visited cursor on page {page_number}"
            )
        seen.add(next_cursor)
        cursor = next_cursor


def collect_pages(fetch_page: PageFetcher) -> list[Any]:
    """Collect every item across all pages into a single ordered list."""
    return list(iter_pages(fetch_page))
