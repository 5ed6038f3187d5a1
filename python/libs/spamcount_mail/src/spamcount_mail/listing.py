"""Continuation-token pagination over the message listing."""

import logging
from collections.abc import Callable

from .connectors.gmail_connector import MessagePage
from .retry import RetryingCaller

logger = logging.getLogger(__name__)

ListPageFn = Callable[[str, str | None], MessagePage]


def build_query(label: str, cutoff_date: str) -> str:
    """Combine the category constraint and the lower date bound."""
    return f"in:{label.lower()} after:{cutoff_date}"


class PaginatedLister:
    """Walk every page of a listing, one page at a time."""

    def __init__(self, list_page: ListPageFn, caller: RetryingCaller) -> None:
        self._list_page = list_page
        self._caller = caller

    def list_all(self, query: str, on_page: Callable[[MessagePage], None]) -> int:
        """Visit pages in continuation order, calling ``on_page`` for each.

        ``on_page`` must finish before the next page is requested.

        Returns:
            Number of message references seen; 0 means nothing matched.

        Raises:
            RemoteError: a page failed permanently
            OperationCancelled: the run was cancelled
        """
        page_token: str | None = None
        page_number = 0
        total = 0

        while True:
            page_number += 1
            token = page_token
            page = self._caller.call(
                lambda: self._list_page(query, token),
                description=f"list page {page_number}",
            )

            if not page.messages and page_token is None and not page.next_page_token:
                logger.info("No messages matched query: %s", query)
                return total

            total += len(page.messages)
            logger.debug(
                "Page %d: %d messages (%d so far)", page_number, len(page.messages), total
            )
            if page.messages:
                on_page(page)

            page_token = page.next_page_token
            if not page_token:
                logger.info("Listed %d messages across %d pages", total, page_number)
                return total
