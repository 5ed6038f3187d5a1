"""Error taxonomy for spam count runs.

Each failure class a caller may need to tell apart has its own exception
type, so handlers can dispatch on the class instead of parsing messages.
"""


class SpamCountError(Exception):
    """Base class for all spamcount failures."""


class AuthError(SpamCountError):
    """Credential acquisition or refresh failed."""


class RemoteError(SpamCountError):
    """A call to the remote message store failed.

    The classification surface (server error, redirect, informational,
    transport) lets the backoff policy decide retryability without
    knowing about HTTP.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        transport: bool = False,
        redirect_loop: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transport = transport
        self.redirect_loop = redirect_loop

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and 500 <= self.status_code < 600

    @property
    def is_redirect(self) -> bool:
        if self.redirect_loop:
            return True
        return self.status_code is not None and 300 <= self.status_code < 400

    @property
    def is_informational(self) -> bool:
        return self.status_code is not None and 100 <= self.status_code < 200

    @property
    def is_transport_error(self) -> bool:
        return self.transport


class OperationTimeoutError(SpamCountError):
    """The list-and-fetch run exceeded its deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"operation timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class NoMatchesError(SpamCountError):
    """The listing returned nothing at all. Not a failure."""

    def __init__(self, query: str = "") -> None:
        super().__init__(f"No messages matched query: {query}" if query else "No messages matched")
        self.query = query


class DateParseError(SpamCountError):
    """A date key could not be parsed while building the report."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid date string: {value!r}")
        self.value = value


class OperationCancelled(SpamCountError):
    """The run was cancelled while this task was still working."""


class QueueClosed(SpamCountError):
    """The result queue no longer accepts items."""
