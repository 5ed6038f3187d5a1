"""Exponential backoff policy and a cancellable retrying caller."""

import enum
import logging
import random
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from spamcount_common.config import BackoffConfig

from .errors import OperationCancelled, RemoteError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Retry(enum.Enum):
    """Retry classification of a failure."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class ExponentialBackoff:
    """Exponential backoff with a cap and randomized jitter.

    Delays grow as initial_interval * multiplier^(attempt - 1), capped at
    max_interval, then spread uniformly by +/- randomization_factor.
    There is no attempt limit.
    """

    initial_interval: float = 0.5
    multiplier: float = 1.5
    max_interval: float = 60.0
    randomization_factor: float = 0.5
    max_elapsed: float | None = None
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    @classmethod
    def from_config(cls, config: BackoffConfig) -> "ExponentialBackoff":
        return cls(
            initial_interval=config.initial_interval,
            multiplier=config.multiplier,
            max_interval=config.max_interval,
            randomization_factor=config.randomization_factor,
            max_elapsed=config.max_elapsed,
        )

    def next_delay(self, attempt: int) -> float:
        """Delay in seconds before retry number ``attempt`` (1-based)."""
        exponent = max(attempt, 1) - 1
        try:
            base = self.initial_interval * (self.multiplier**exponent)
        except OverflowError:
            base = self.max_interval
        base = min(base, self.max_interval)
        if not self.randomization_factor:
            return base
        spread = base * self.randomization_factor
        return self.rng.uniform(base - spread, base + spread)

    def classify(self, error: BaseException) -> Retry:
        """Server, redirect, informational and transport failures are transient."""
        if isinstance(error, RemoteError) and (
            error.is_server_error
            or error.is_redirect
            or error.is_informational
            or error.is_transport_error
        ):
            return Retry.TRANSIENT
        return Retry.PERMANENT


class RetryingCaller:
    """Invoke remote operations under a backoff policy.

    Sleeps wait on ``cancel_event`` so an expired operation timeout
    interrupts a pending retry immediately.
    """

    def __init__(
        self,
        policy: ExponentialBackoff,
        cancel_event: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy
        self.cancel_event = cancel_event or threading.Event()
        self._clock = clock

    def call(self, operation: Callable[[], T], description: str = "remote call") -> T:
        """Run ``operation`` until it succeeds or fails permanently.

        Raises:
            OperationCancelled: the run was cancelled before success
            Exception: the permanent (or out-of-time) error from operation
        """
        started = self._clock()
        attempt = 0
        while True:
            if self.cancel_event.is_set():
                raise OperationCancelled(f"{description} cancelled")
            attempt += 1
            try:
                return operation()
            except Exception as e:
                if self.policy.classify(e) is Retry.PERMANENT:
                    raise
                if self.policy.max_elapsed is not None and (
                    self._clock() - started >= self.policy.max_elapsed
                ):
                    logger.debug(
                        "%s giving up after %d attempts (%.1fs): %s",
                        description,
                        attempt,
                        self._clock() - started,
                        e,
                    )
                    raise
                delay = self.policy.next_delay(attempt)
                logger.debug(
                    "%s attempt %d failed: %s. Retrying in %.2fs",
                    description,
                    attempt,
                    e,
                    delay,
                )
                if self.cancel_event.wait(delay):
                    raise OperationCancelled(f"{description} cancelled") from e
