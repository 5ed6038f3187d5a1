"""OAuth2 credential provider for the Gmail API.

Tokens are cached in a JSON file next to the client secrets. A cached
access token is reused until shortly before it expires, then refreshed
with the stored refresh token. When no refresh token exists at all the
interactive installed-app flow runs once to obtain one.
"""

import json
import logging
import os
import secrets
import sys
import threading
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from .errors import AuthError

logger = logging.getLogger(__name__)

OAUTH_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
GMAIL_READONLY_SCOPE = "https://www.googleapis.com/auth/gmail.readonly"
DEFAULT_REDIRECT_URI = "http://localhost:8080"
EXPIRY_MARGIN = timedelta(seconds=60)


@dataclass(frozen=True)
class ClientSecrets:
    """OAuth client identity from credentials.json."""

    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI

    @classmethod
    def from_file(cls, path: str | Path) -> "ClientSecrets":
        """Load an 'installed' or 'web' client from a Google credentials file."""
        try:
            data = json.loads(Path(path).read_text())
        except FileNotFoundError as e:
            raise AuthError(f"Client credentials file not found: {path}") from e
        except (OSError, ValueError) as e:
            raise AuthError(f"Client credentials file invalid: {path}: {e}") from e

        block = (data.get("installed") or data.get("web")) if isinstance(data, dict) else None
        if not isinstance(block, dict):
            raise AuthError(f"Missing 'installed' or 'web' object in {path}")
        if not block.get("client_id") or not block.get("client_secret"):
            raise AuthError(f"client_id/client_secret missing in {path}")

        redirect_uris = block.get("redirect_uris") or [DEFAULT_REDIRECT_URI]
        return cls(
            client_id=block["client_id"],
            client_secret=block["client_secret"],
            redirect_uri=redirect_uris[0],
        )

    @classmethod
    def load(cls, path: str | Path) -> "ClientSecrets":
        """Load from ``path``, falling back to GMAIL_CLIENT_ID/SECRET env vars."""
        if not Path(path).exists():
            client_id = os.getenv("GMAIL_CLIENT_ID", "")
            client_secret = os.getenv("GMAIL_CLIENT_SECRET", "")
            if client_id and client_secret:
                return cls(client_id=client_id, client_secret=client_secret)
        return cls.from_file(path)


@dataclass
class OAuthToken:
    """Token cache entry."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expiry: datetime | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        """True while the access token has not (nearly) expired."""
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        now = now or datetime.now(UTC)
        return now < self.expiry - EXPIRY_MARGIN

    def to_json(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expiry": self.expiry.isoformat() if self.expiry else None,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "OAuthToken":
        """Create from JSON dict; a naive expiry is read as UTC."""
        expiry = datetime.fromisoformat(data["expiry"]) if data.get("expiry") else None
        if expiry is not None and expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return cls(
            access_token=data.get("access_token", ""),
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type", "Bearer"),
            expiry=expiry,
        )

    @classmethod
    def from_token_response(
        cls, data: dict[str, Any], refresh_token: str | None = None
    ) -> "OAuthToken":
        """Build from a token endpoint response; keeps ``refresh_token`` if none is returned."""
        expires_in = int(data.get("expires_in", 3600))
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or refresh_token,
            token_type=data.get("token_type", "Bearer"),
            expiry=datetime.now(UTC) + timedelta(seconds=expires_in),
        )


class OAuthCredentialProvider:
    """Thread-safe source of Gmail access tokens backed by a token cache file."""

    def __init__(
        self,
        credentials_file: str | Path = "credentials.json",
        token_file: str | Path = "token.json",
        interactive: bool = True,
        prompt: Callable[[str], str] = input,
    ) -> None:
        self.credentials_file = Path(credentials_file)
        self.token_file = Path(token_file)
        self.interactive = interactive
        self._prompt = prompt
        self._secrets: ClientSecrets | None = None
        self._token: OAuthToken | None = None
        self._lock = threading.Lock()

    @property
    def client_secrets(self) -> ClientSecrets:
        if self._secrets is None:
            self._secrets = ClientSecrets.load(self.credentials_file)
        return self._secrets

    def get_access_token(self) -> str:
        """Get valid access token, refreshing or authorizing if necessary."""
        with self._lock:
            if self._token is None:
                self._token = self._load_token()

            if self._token is not None and self._token.is_valid():
                return self._token.access_token

            refresh_token = self._token.refresh_token if self._token is not None else None
            if refresh_token:
                try:
                    self._token = self._refresh(refresh_token)
                except AuthError as e:
                    if not self.interactive:
                        raise
                    logger.warning("%s; starting a new authorization", e)
                    self._token = self._authorize()
            elif self.interactive:
                self._token = self._authorize()
            else:
                raise AuthError(
                    f"No usable token in {self.token_file} and interactive authorization is off"
                )

            self._save_token(self._token)
            return self._token.access_token

    def invalidate(self) -> None:
        """Forget the cached access token; the next call refreshes it."""
        with self._lock:
            if self._token is not None:
                logger.debug("Invalidating cached Gmail access token")
                self._token.access_token = ""

    def _load_token(self) -> OAuthToken | None:
        if self.token_file.exists():
            try:
                return OAuthToken.from_json(json.loads(self.token_file.read_text()))
            except (OSError, ValueError, TypeError) as e:
                logger.warning("Ignoring unreadable token cache %s: %s", self.token_file, e)
                return None

        refresh_token = os.getenv("GMAIL_REFRESH_TOKEN", "")
        if refresh_token:
            return OAuthToken(access_token="", refresh_token=refresh_token)
        return None

    def _save_token(self, token: OAuthToken) -> None:
        logger.debug("Saving credential file to: %s", self.token_file)
        try:
            fd = os.open(self.token_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                json.dump(token.to_json(), f, indent=2)
        except OSError as e:
            logger.warning("Failed to save token to %s: %s", self.token_file, e)

    def _refresh(self, refresh_token: str) -> OAuthToken:
        logger.debug("Refreshing Gmail access token")
        client = self.client_secrets
        data = self._token_request(
            {
                "client_id": client.client_id,
                "client_secret": client.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            "Token refresh failed",
        )
        return OAuthToken.from_token_response(data, refresh_token=refresh_token)

    def _authorize(self) -> OAuthToken:
        client = self.client_secrets
        state = secrets.token_urlsafe(16)
        auth_url = build_auth_url(client, state)

        print("Open the following link in your browser to authorize:", file=sys.stderr)
        print(auth_url, file=sys.stderr)
        try:
            webbrowser.open(auth_url)
        except webbrowser.Error as e:
            logger.warning("Error opening browser: %s", e)

        code = extract_auth_code(
            self._prompt("Paste the authorization code (or the redirected URL): "), state
        )
        data = self._token_request(
            {
                "client_id": client.client_id,
                "client_secret": client.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": client.redirect_uri,
            },
            "Token exchange failed",
        )
        token = OAuthToken.from_token_response(data)
        if not token.refresh_token:
            logger.warning("No refresh token in response; authorization will be needed again")
        return token

    def _token_request(self, form: dict[str, str], failure: str) -> dict[str, Any]:
        try:
            response = requests.post(OAUTH_TOKEN_URL, data=form, timeout=30)
            response.raise_for_status()
            data = response.json()
        except requests.HTTPError as e:
            body = e.response.text if e.response is not None else ""
            raise AuthError(f"{failure}: {e} {body}".strip()) from e
        except (requests.RequestException, ValueError) as e:
            raise AuthError(f"{failure}: {e}") from e
        if not isinstance(data, dict) or "access_token" not in data:
            raise AuthError(f"{failure}: no access_token in response")
        return data


def build_auth_url(client: ClientSecrets, state: str) -> str:
    """Generate the OAuth consent URL (offline access, forced consent)."""
    params = {
        "client_id": client.client_id,
        "redirect_uri": client.redirect_uri,
        "response_type": "code",
        "scope": GMAIL_READONLY_SCOPE,
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    return f"{OAUTH_AUTH_URL}?{urlencode(params)}"


def extract_auth_code(pasted: str, expected_state: str) -> str:
    """Accept a bare code or the full redirect URL; verify state when present."""
    pasted = pasted.strip()
    if not pasted:
        raise AuthError("No authorization code provided")
    if "://" not in pasted and "code=" not in pasted:
        return pasted

    query = parse_qs(urlparse(pasted).query or pasted.lstrip("?"))
    state = query.get("state", [None])[0]
    if state is not None and state != expected_state:
        raise AuthError("Authorization state mismatch")
    if "error" in query:
        raise AuthError(f"Authorization denied: {query['error'][0]}")
    code = query.get("code", [""])[0]
    if not code:
        raise AuthError("No authorization code in redirected URL")
    return code
