"""Shared fixtures: an in-memory Gmail stand-in and fast-retry config."""

import threading
from datetime import UTC, datetime

import pytest

from spamcount_common.config import BackoffConfig, SpamCountConfig
from spamcount_mail.connectors.gmail_connector import MessageDetail, MessagePage, MessageRef


def ms(iso: str) -> int:
    """Epoch milliseconds for an ISO-8601 UTC instant."""
    return int(datetime.fromisoformat(iso).replace(tzinfo=UTC).timestamp() * 1000)


class FakeGmail:
    """Serves pages keyed by continuation token and details keyed by ID.

    A detail value that is an exception (or a list of exceptions ending in
    a detail) is raised on the corresponding call.
    """

    def __init__(
        self,
        pages: dict[str | None, MessagePage],
        details: dict[str, object] | None = None,
    ) -> None:
        self.pages = pages
        self.details = details or {}
        self.list_calls: list[tuple[str, str | None]] = []
        self.fetch_calls: list[str] = []
        self._lock = threading.Lock()

    def list_messages(
        self,
        query: str,
        label_ids: list[str] | None = None,
        page_token: str | None = None,
        max_results: int = 100,
    ) -> MessagePage:
        self.list_calls.append((query, page_token))
        return self.pages[page_token]

    def get_message_minimal(self, message_id: str) -> MessageDetail:
        with self._lock:
            self.fetch_calls.append(message_id)
            value = self.details[message_id]
            if isinstance(value, list):
                value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, BaseException):
            raise value
        return value  # type: ignore[return-value]


def page(ids: list[str], next_token: str | None = None) -> MessagePage:
    return MessagePage(messages=[MessageRef(id=i) for i in ids], next_page_token=next_token)


@pytest.fixture
def fast_config() -> SpamCountConfig:
    """Config with near-zero backoff so retries finish quickly."""
    return SpamCountConfig(
        timeout_seconds=10,
        backoff=BackoffConfig(initial_interval=0.001, max_interval=0.01, randomization_factor=0.0),
    )


@pytest.fixture
def utc():
    return UTC
