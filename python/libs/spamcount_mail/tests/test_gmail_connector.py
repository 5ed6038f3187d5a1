"""Tests for the Gmail REST connector."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

REQUEST = "spamcount_mail.connectors.gmail_connector.requests.request"


def _response(status: int, body: object = None, raw: bytes | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.reason = "reason"
    response.url = "https://gmail.googleapis.com/gmail/v1/users/me/messages"
    response._content = raw if raw is not None else json.dumps(body or {}).encode()
    return response


def _connector(credentials=None):  # type: ignore[no-untyped-def]
    from spamcount_mail.connectors.gmail_connector import GmailConfig, GmailConnector

    if credentials is None:
        credentials = MagicMock()
        credentials.get_access_token.return_value = "token-123"
    return GmailConnector(credentials, GmailConfig(request_timeout_seconds=7))


class TestListMessages:
    """Tests for GmailConnector.list_messages."""

    def test_sends_query_label_and_token(self) -> None:
        """Test request parameters and authorization header."""
        connector = _connector()
        body = {
            "messages": [{"id": "a", "threadId": "t"}, {"id": "b", "threadId": "t"}],
            "nextPageToken": "next",
            "resultSizeEstimate": 2,
        }

        with patch(REQUEST, return_value=_response(200, body)) as mock_request:
            result = connector.list_messages(
                "in:spam after:2024-05-01", label_ids=["SPAM"], page_token="p1", max_results=50
            )

        assert [m.id for m in result.messages] == ["a", "b"]
        assert result.next_page_token == "next"
        assert result.result_size_estimate == 2

        method, url = mock_request.call_args.args
        kwargs = mock_request.call_args.kwargs
        assert method == "GET"
        assert url.endswith("/users/me/messages")
        assert kwargs["headers"]["Authorization"] == "Bearer token-123"
        assert kwargs["params"] == {
            "q": "in:spam after:2024-05-01",
            "maxResults": 50,
            "labelIds": ["SPAM"],
            "pageToken": "p1",
        }
        assert kwargs["timeout"] == 7

    def test_logs_result_size_estimate(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test the page's size estimate is reported in the debug log."""
        import logging

        body = {"messages": [{"id": "a"}], "resultSizeEstimate": 42}

        with patch(REQUEST, return_value=_response(200, body)):
            with caplog.at_level(logging.DEBUG, logger="spamcount_mail.connectors.gmail_connector"):
                _connector().list_messages("in:spam after:2024-05-01")

        assert "estimate 42" in caplog.text

    def test_empty_listing(self) -> None:
        """Test a response without messages or token is an empty final page."""
        connector = _connector()

        with patch(REQUEST, return_value=_response(200, {"resultSizeEstimate": 0})):
            result = connector.list_messages("in:spam after:2024-05-01")

        assert result.messages == []
        assert result.next_page_token is None


class TestGetMessageMinimal:
    """Tests for GmailConnector.get_message_minimal."""

    def test_parses_internal_date(self) -> None:
        """Test the decimal-string internalDate becomes an integer."""
        connector = _connector()
        body = {"id": "a", "internalDate": "1714557600000", "labelIds": ["SPAM"]}

        with patch(REQUEST, return_value=_response(200, body)) as mock_request:
            detail = connector.get_message_minimal("a")

        assert detail.id == "a"
        assert detail.internal_date_ms == 1714557600000
        assert mock_request.call_args.args[1].endswith("/messages/a")
        assert mock_request.call_args.kwargs["params"] == {"format": "minimal"}

    @pytest.mark.parametrize("value", [None, "not-a-number", ""])
    def test_unparsable_internal_date(self, value: str | None) -> None:
        """Test a missing or garbled internalDate yields None, not an error."""
        connector = _connector()
        body = {"id": "a"} if value is None else {"id": "a", "internalDate": value}

        with patch(REQUEST, return_value=_response(200, body)):
            detail = connector.get_message_minimal("a")

        assert detail.internal_date_ms is None


class TestErrorMapping:
    """Tests for how HTTP and transport failures surface."""

    def test_http_error_carries_status_and_message(self) -> None:
        """Test Gmail's error payload ends up in the RemoteError."""
        from spamcount_mail.errors import RemoteError

        connector = _connector()
        body = {"error": {"code": 404, "message": "Requested entity was not found.", "status": "NOT_FOUND"}}

        with patch(REQUEST, return_value=_response(404, body)):
            with pytest.raises(RemoteError) as exc_info:
                connector.get_message_minimal("gone")

        assert exc_info.value.status_code == 404
        assert "Requested entity was not found." in str(exc_info.value)
        assert not exc_info.value.is_server_error

    def test_server_error(self) -> None:
        """Test a 5xx is flagged as a server error."""
        from spamcount_mail.errors import RemoteError

        with patch(REQUEST, return_value=_response(503, raw=b"Service Unavailable")):
            with pytest.raises(RemoteError) as exc_info:
                _connector().get_message_minimal("a")

        assert exc_info.value.is_server_error

    def test_unauthorized_invalidates_token(self) -> None:
        """Test a 401 makes the credential source drop its access token."""
        from spamcount_mail.errors import RemoteError

        credentials = MagicMock()
        credentials.get_access_token.return_value = "stale"

        with patch(REQUEST, return_value=_response(401, {"error": {"message": "Invalid Credentials"}})):
            with pytest.raises(RemoteError) as exc_info:
                _connector(credentials).list_messages("in:spam after:2024-05-01")

        assert exc_info.value.status_code == 401
        credentials.invalidate.assert_called_once()

    def test_transport_error(self) -> None:
        """Test connection failures are transport errors."""
        from spamcount_mail.errors import RemoteError

        with patch(REQUEST, side_effect=requests.ConnectionError("connection reset")):
            with pytest.raises(RemoteError) as exc_info:
                _connector().get_message_minimal("a")

        assert exc_info.value.is_transport_error
        assert exc_info.value.status_code is None

    def test_redirect_loop(self) -> None:
        """Test too many redirects are flagged as a redirect failure."""
        from spamcount_mail.errors import RemoteError

        with patch(REQUEST, side_effect=requests.TooManyRedirects("Exceeded 30 redirects.")):
            with pytest.raises(RemoteError) as exc_info:
                _connector().get_message_minimal("a")

        assert exc_info.value.is_redirect

    @pytest.mark.parametrize("raw", [b"[]", b'"ok"', b"null"])
    def test_non_object_body(self, raw: bytes) -> None:
        """Test a 200 whose JSON body is not an object is a transport-level failure."""
        from spamcount_mail.errors import RemoteError

        with patch(REQUEST, return_value=_response(200, raw=raw)):
            with pytest.raises(RemoteError) as exc_info:
                _connector().list_messages("in:spam after:2024-05-01")

        assert exc_info.value.is_transport_error
        assert exc_info.value.status_code == 200

    def test_malformed_body(self) -> None:
        """Test a 200 with an unparsable body is a transport-level failure."""
        from spamcount_mail.errors import RemoteError

        with patch(REQUEST, return_value=_response(200, raw=b"<html>oops</html>")):
            with pytest.raises(RemoteError) as exc_info:
                _connector().get_message_minimal("a")

        assert exc_info.value.is_transport_error
