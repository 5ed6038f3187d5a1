"""Gmail API connector for listing messages and fetching minimal details."""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests
from pydantic import BaseModel

from spamcount_mail.errors import RemoteError

logger = logging.getLogger(__name__)

GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1"


class CredentialSource(Protocol):
    """Supplies bearer tokens to the connector."""

    def get_access_token(self) -> str: ...

    def invalidate(self) -> None: ...


class GmailConfig(BaseModel):
    """Gmail connector configuration."""

    user_email: str = "me"  # 'me' refers to authenticated user
    request_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class MessageRef:
    """Message handle returned by a listing page."""

    id: str


@dataclass(frozen=True)
class MessageDetail:
    """Minimal message projection: only the receive instant matters."""

    id: str
    # Epoch milliseconds (UTC); None when Gmail sent nothing parsable
    internal_date_ms: int | None


@dataclass
class MessagePage:
    """One page of a message listing."""

    messages: list[MessageRef] = field(default_factory=list)
    next_page_token: str | None = None
    result_size_estimate: int | None = None


class GmailConnector:
    """Connector for the Gmail REST API.

    Every request is authorized with a token from ``credentials``. All
    failures surface as RemoteError with enough classification for the
    retry policy to decide what to do.
    """

    def __init__(self, credentials: CredentialSource, config: GmailConfig | None = None) -> None:
        """Initialize Gmail connector."""
        self.credentials = credentials
        self.config = config or GmailConfig()

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make authenticated request to Gmail API."""
        token = self.credentials.get_access_token()
        url = f"{GMAIL_API_BASE}/users/{self.config.user_email}/{endpoint}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                params=params,
                timeout=self.config.request_timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 401:
                # Token was rejected; force a refresh on the next call
                self.credentials.invalidate()
            raise RemoteError(
                f"Gmail API error on {endpoint} (status {status}): {_error_detail(e.response)}",
                status_code=status,
            ) from e
        except requests.TooManyRedirects as e:
            raise RemoteError(f"Redirect loop on {endpoint}: {e}", redirect_loop=True) from e
        except requests.RequestException as e:
            raise RemoteError(f"Transport error on {endpoint}: {e}", transport=True) from e

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(
                f"Malformed response body on {endpoint} (status {response.status_code})",
                status_code=response.status_code,
                transport=True,
            ) from e
        if not isinstance(data, dict):
            raise RemoteError(
                f"Unexpected {type(data).__name__} response body on {endpoint} "
                f"(status {response.status_code})",
                status_code=response.status_code,
                transport=True,
            )
        return data

    def list_messages(
        self,
        query: str,
        label_ids: list[str] | None = None,
        page_token: str | None = None,
        max_results: int = 100,
    ) -> MessagePage:
        """
        List one page of messages matching a query.

        Args:
            query: Gmail search query (e.g., 'in:spam after:2024-05-01')
            label_ids: Only return messages carrying all of these labels
            page_token: Token for pagination
            max_results: Maximum messages per page

        Returns:
            MessagePage with message handles and the next page token
        """
        params: dict[str, Any] = {
            "q": query,
            "maxResults": max_results,
        }
        if label_ids:
            params["labelIds"] = label_ids
        if page_token:
            params["pageToken"] = page_token

        data = self._make_request("GET", "messages", params)

        refs = [MessageRef(id=m["id"]) for m in data.get("messages") or [] if m.get("id")]
        page = MessagePage(
            messages=refs,
            next_page_token=data.get("nextPageToken") or None,
            result_size_estimate=data.get("resultSizeEstimate"),
        )
        logger.debug(
            "Listed %d messages (estimate %s) for query: %s",
            len(refs),
            page.result_size_estimate,
            query,
        )
        return page

    def get_message_minimal(self, message_id: str) -> MessageDetail:
        """
        Fetch the minimal projection of a message.

        Args:
            message_id: Gmail message ID

        Returns:
            MessageDetail carrying the parsed internalDate
        """
        data = self._make_request("GET", f"messages/{message_id}", {"format": "minimal"})
        return MessageDetail(
            id=data.get("id", message_id),
            internal_date_ms=parse_internal_date(data.get("internalDate")),
        )


def parse_internal_date(value: Any) -> int | None:
    """Parse Gmail's internalDate (decimal string of epoch millis)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug("Unparsable internalDate: %r", value)
        return None


def _error_detail(response: requests.Response | None) -> str:
    """Extract Gmail's error message from a failed response."""
    if response is None:
        return "no response"
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or response.reason or ""
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return f"{error['message']} ({error.get('status', 'N/A')})"
    return response.text[:500]
