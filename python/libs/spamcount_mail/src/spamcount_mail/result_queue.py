"""Bounded multi-producer, single-consumer queue with close-then-drain."""

import threading
from collections import deque
from typing import Generic, TypeVar

from .errors import QueueClosed

T = TypeVar("T")

DEFAULT_CAPACITY = 200


class ResultQueue(Generic[T]):
    """Bounded conduit between fetch tasks and the aggregator.

    ``put`` blocks while the queue is full. After ``close`` no new item
    is accepted, but items already queued are still handed out by
    ``get`` until the queue is empty.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._items: deque[T] = deque()
        self._closed = False
        self._cond = threading.Condition()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def put(self, item: T) -> None:
        """Enqueue ``item``, waiting for space.

        Raises:
            QueueClosed: the queue was closed before the item fit
        """
        with self._cond:
            self._cond.wait_for(lambda: self._closed or len(self._items) < self.capacity)
            if self._closed:
                raise QueueClosed("result queue is closed")
            self._items.append(item)
            self._cond.notify_all()

    def get(self) -> T | None:
        """Dequeue the next item, waiting for one; None once closed and drained."""
        with self._cond:
            self._cond.wait_for(lambda: self._closed or self._items)
            if self._items:
                item = self._items.popleft()
                self._cond.notify_all()
                return item
            return None

    def close(self) -> None:
        """Stop accepting items and wake every waiter. Idempotent."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
