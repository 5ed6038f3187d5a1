"""Paginated fetch-and-aggregate pipeline for spam counts."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, tzinfo
from typing import Protocol

from spamcount_common.config import SpamCountConfig

from .aggregator import DailyCountAggregator
from .connectors.gmail_connector import MessageDetail, MessagePage
from .errors import NoMatchesError
from .fetcher import DetailFetcher
from .listing import PaginatedLister, build_query
from .result_queue import ResultQueue
from .retry import ExponentialBackoff, RetryingCaller
from .timeout_guard import run_with_timeout

logger = logging.getLogger(__name__)


class MessageSource(Protocol):
    """The two remote operations the pipeline depends on."""

    def list_messages(
        self,
        query: str,
        label_ids: list[str] | None = None,
        page_token: str | None = None,
        max_results: int = 100,
    ) -> MessagePage: ...

    def get_message_minimal(self, message_id: str) -> MessageDetail: ...


def compute_cutoff(days: int, tz: tzinfo | None = None, now: datetime | None = None) -> str:
    """Date string (YYYY-MM-DD) ``days`` before now in ``tz``."""
    current = now.astimezone(tz) if now is not None else datetime.now(tz)
    return (current - timedelta(days=days)).strftime("%Y-%m-%d")


class SpamCountPipeline:
    """List matching messages, fetch their dates and count them per day.

    One run:
      1. an aggregator thread starts draining the result queue
      2. pages are listed one at a time under the operation timeout, each
         page's messages fetched in parallel into the queue
      3. the queue is closed and the aggregator joined

    If the deadline passes, in-flight work is cancelled and
    OperationTimeoutError propagates; no partial counts are returned.
    """

    def __init__(
        self,
        source: MessageSource,
        config: SpamCountConfig,
        tz: tzinfo | None = None,
        backoff: ExponentialBackoff | None = None,
    ) -> None:
        self.source = source
        self.config = config
        self.tz = tz
        self.backoff = backoff or ExponentialBackoff.from_config(config.backoff)

    def collect(self, cutoff_date: str) -> dict[str, int]:
        """Return the daily count map for messages after ``cutoff_date``.

        Raises:
            NoMatchesError: the listing matched nothing at all
            OperationTimeoutError: the run exceeded timeout_seconds
            RemoteError: a listing page failed permanently
        """
        query = build_query(self.config.label, cutoff_date)
        logger.info("Gmail query: %s", query)

        cancel_event = threading.Event()
        caller = RetryingCaller(self.backoff, cancel_event)
        queue: ResultQueue[MessageDetail] = ResultQueue(self.config.queue_capacity)
        aggregator = DailyCountAggregator(self.tz)
        fetcher = DetailFetcher(self.source.get_message_minimal, caller)
        lister = PaginatedLister(self._list_page, caller)

        def list_and_fetch() -> int:
            return lister.list_all(query, lambda page: fetcher.fetch_page(page.messages, queue))

        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="aggregator") as pool:
            drained = pool.submit(aggregator.drain, queue)
            try:
                listed = run_with_timeout(self.config.timeout_seconds, list_and_fetch, cancel_event)
            finally:
                queue.close()
            counts = drained.result()

        logger.info(
            "Fetched %d of %d messages (%d dropped, %d with invalid dates)",
            fetcher.fetched,
            listed,
            fetcher.dropped,
            aggregator.rejected,
        )
        if listed == 0:
            raise NoMatchesError(query)
        return counts

    def _list_page(self, query: str, page_token: str | None) -> MessagePage:
        return self.source.list_messages(
            query,
            label_ids=[self.config.label],
            page_token=page_token,
            max_results=self.config.page_size,
        )
