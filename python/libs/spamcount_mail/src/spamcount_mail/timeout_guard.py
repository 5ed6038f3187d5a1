"""Single deadline around a whole operation."""

import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from .errors import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_timeout(
    timeout_seconds: float,
    operation: Callable[[], T],
    cancel_event: threading.Event,
) -> T:
    """Run ``operation`` in a daemon thread and wait at most ``timeout_seconds``.

    On expiry ``cancel_event`` is set, which stops pending retries and
    fetch tasks that share it, and OperationTimeoutError is raised. The
    worker is abandoned; being a daemon it never holds up process exit.
    Errors raised by ``operation`` propagate unchanged.
    """
    outcome: dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["value"] = operation()
        except BaseException as e:
            # Re-raised in the waiting thread below
            outcome["error"] = e

    worker = threading.Thread(target=target, name="operation", daemon=True)
    worker.start()
    worker.join(timeout_seconds)

    if worker.is_alive():
        cancel_event.set()
        logger.debug("Deadline of %ss reached; abandoning in-flight work", timeout_seconds)
        raise OperationTimeoutError(timeout_seconds)
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]
