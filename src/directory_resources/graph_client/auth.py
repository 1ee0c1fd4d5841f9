"""Bearer token authentication for the directory API."""

from __future__ import annotations

import base64
import json
import logging
import threading
import time
from collections.abc import Generator
from typing import Any

import httpx

from ..errors import GraphError

logger = logging.getLogger(__name__)

# Refresh tokens this many seconds before they expire
EXPIRY_MARGIN = 300
GRAPH_SCOPE = "https://graph.microsoft.com/.default"


def decode_claims(token: str) -> dict[str, Any]:
    """Decode the (unverified) payload of a JWT access token."""
    try:
        payload = token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        return json.loads(base64.urlsafe_b64decode(payload))
    except (IndexError, ValueError) as e:
        raise GraphError(f"Could not decode access token claims: {e}") from None


class StaticTokenAuth(httpx.Auth):
    """Use a pre-acquired bearer token."""

    def __init__(self, token: str):
        self.token = token

    def current_token(self) -> str:
        return self.token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request


class ClientCredentialsAuth(httpx.Auth):
    """
    OAuth2 client credentials flow with an in-memory token cache.

    Tokens are fetched lazily on the first request and refreshed shortly
    before expiry. Safe to share across threads.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        authority: str = "https://login.microsoftonline.com",
        scope: str = GRAPH_SCOPE,
        timeout: float = 30.0,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = f"{authority.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self.scope = scope
        self.timeout = timeout
        self._token: str | None = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def _fetch_token(self) -> None:
        logger.debug(f"Requesting access token for client {self.client_id}")
        try:
            response = httpx.post(
                self.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": self.scope,
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise GraphError(f"Requesting access token from {self.token_url}") from e

        if response.status_code >= 400:
            raise GraphError(
                "Could not obtain access token - check tenant ID, client ID and secret",
                response.status_code,
                response=response.text,
            )

        body = response.json()
        self._token = body["access_token"]
        self._expires_at = time.monotonic() + int(body.get("expires_in", 3600))

    def current_token(self) -> str:
        """Return a valid token, fetching a new one if needed."""
        with self._lock:
            if self._token is None or time.monotonic() > self._expires_at - EXPIRY_MARGIN:
                self._fetch_token()
            return self._token  # type: ignore[return-value]

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self.current_token()}"
        yield request
