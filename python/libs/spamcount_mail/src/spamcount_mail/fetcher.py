"""Concurrent per-page detail fetching into the result queue."""

import logging
import threading
from collections.abc import Callable, Sequence

from .connectors.gmail_connector import MessageDetail, MessageRef
from .errors import OperationCancelled, QueueClosed
from .result_queue import ResultQueue
from .retry import RetryingCaller

logger = logging.getLogger(__name__)

FetchDetailFn = Callable[[str], MessageDetail]


class DetailFetcher:
    """Fetch every message on a page in parallel, one daemon thread per message.

    ``fetch_page`` returns only after all of the page's tasks have
    finished, so at most one page of fetches is ever in flight.
    """

    def __init__(
        self,
        fetch_detail: FetchDetailFn,
        caller: RetryingCaller,
    ) -> None:
        self._fetch_detail = fetch_detail
        self._caller = caller
        self._lock = threading.Lock()
        self.fetched = 0
        self.dropped = 0

    def fetch_page(self, items: Sequence[MessageRef], queue: ResultQueue[MessageDetail]) -> None:
        workers = []
        for item in items:
            logger.debug("Spawning task to fetch message ID: %s", item.id)
            worker = threading.Thread(
                target=self._fetch_one,
                args=(item, queue),
                name=f"fetch-{item.id}",
                daemon=True,
            )
            worker.start()
            workers.append(worker)
        for worker in workers:
            worker.join()

    def _fetch_one(self, item: MessageRef, queue: ResultQueue[MessageDetail]) -> None:
        try:
            detail = self._caller.call(
                lambda: self._fetch_detail(item.id),
                description=f"fetch message {item.id}",
            )
        except OperationCancelled:
            logger.debug("Fetch of message %s abandoned: run cancelled", item.id)
            return
        except Exception as e:
            # One unfetchable message never aborts the run
            logger.warning("Dropping message %s: %s", item.id, e)
            self._count(dropped=True)
            return

        try:
            queue.put(detail)
        except QueueClosed:
            logger.warning("Result queue closed; discarding message %s", item.id)
            return
        self._count(dropped=False)

    def _count(self, dropped: bool) -> None:
        with self._lock:
            if dropped:
                self.dropped += 1
            else:
                self.fetched += 1
