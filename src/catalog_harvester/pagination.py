"""
PageWalker module for exhausting cursor-based GraphQL pagination
"""

import logging
from typing import Any, Callable, List, Optional, TypeVar

from .fetch_result import HarvestError


logger = logging.getLogger(__name__)

Page = TypeVar('Page')


class PaginationError(HarvestError):
    """Raised when a page sequence fails to advance or exceeds its safety limit"""
    pass


class PageWalker:
    """Walks a cursor-paginated sequence strictly page by page"""

    def __init__(self, max_pages: Optional[int] = None):
        self.max_pages = max_pages

    def walk_pages(self,
                   first_cursor: Optional[str],
                   fetch_page: Callable[[Optional[str]], Page],
                   extract_items: Callable[[Page], List[Any]],
                   extract_next_cursor: Callable[[Page], Optional[str]]) -> List[Any]:
        """
        Fetch pages until the server reports no further pages

        Args:
            first_cursor: Cursor to start after, or None for the first page
            fetch_page: Fetches the page following a cursor
            extract_items: Flattens a page into items, in edge order
            extract_next_cursor: Cursor for the next page, or None when done

        Returns:
            Items from every page in page order

        Raises:
            PaginationError: If a cursor repeats or max_pages is exceeded
        """
        items: List[Any] = []
        requested_cursors = set()
        cursor = first_cursor
        page_num = 0

        while True:
            if cursor in requested_cursors:
                raise PaginationError(f"Cursor {cursor!r} was already requested; pagination is not advancing")
            requested_cursors.add(cursor)

            page_num += 1
            if self.max_pages is not None and page_num > self.max_pages:
                raise PaginationError(f"Exceeded maximum page limit ({self.max_pages})")

            logger.debug(f"Fetching page {page_num} (cursor: {cursor})")
            page = fetch_page(cursor)

            page_items = extract_items(page)
            items.extend(page_items)
            logger.debug(f"Page {page_num} returned {len(page_items)} items")

            cursor = extract_next_cursor(page)
            if cursor is None:
                break

        logger.debug(f"Found {len(items)} items across {page_num} pages")
        return items
