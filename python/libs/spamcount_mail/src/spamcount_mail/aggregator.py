"""Per-day aggregation of fetched message timestamps."""

import logging
from datetime import UTC, datetime, tzinfo

from .connectors.gmail_connector import MessageDetail
from .result_queue import ResultQueue

logger = logging.getLogger(__name__)


def to_local_date(timestamp_ms: int, tz: tzinfo | None = None) -> str:
    """Convert epoch millis (UTC) to a YYYY-MM-DD date in ``tz``.

    ``tz`` None means the process's local timezone. Returns "" for
    non-positive or out-of-range timestamps.
    """
    if timestamp_ms <= 0:
        return ""
    try:
        instant = datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)
        return instant.astimezone(tz).strftime("%Y-%m-%d")
    except (OverflowError, OSError, ValueError):
        return ""


class DailyCountAggregator:
    """Sole writer of the daily count map."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz
        self.counts: dict[str, int] = {}
        self.rejected = 0

    def add(self, detail: MessageDetail) -> bool:
        """Count one message; False when its timestamp is unusable."""
        timestamp_ms = detail.internal_date_ms
        if timestamp_ms is None or timestamp_ms <= 0:
            logger.warning(
                "Invalid internalDate (%s) for message ID %s", timestamp_ms, detail.id
            )
            self.rejected += 1
            return False

        day = to_local_date(timestamp_ms, self.tz)
        if not day:
            logger.warning(
                "Could not convert internalDate (%s) for message ID %s", timestamp_ms, detail.id
            )
            self.rejected += 1
            return False

        self.counts[day] = self.counts.get(day, 0) + 1
        return True

    def drain(self, queue: ResultQueue[MessageDetail]) -> dict[str, int]:
        """Consume the queue until it is closed and empty."""
        try:
            while True:
                detail = queue.get()
                if detail is None:
                    break
                self.add(detail)
        finally:
            # Producers still waiting on a full queue must not block forever
            queue.close()

        logger.debug(
            "Aggregated %d messages into %d days (%d rejected)",
            sum(self.counts.values()),
            len(self.counts),
            self.rejected,
        )
        return dict(self.counts)
