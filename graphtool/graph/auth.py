"""
Tool: Graph Authentication
Purpose: App-only access tokens for Microsoft Graph (client credentials flow)

Tokens are cached and refreshed proactively, TOKEN_REFRESH_MARGIN seconds
before they expire, so a long retry loop never sends an expired token.

Usage:
    from graphtool.graph.auth import ClientSecretCredential

    async with httpx.AsyncClient() as http:
        credential = ClientSecretCredential(tenant_id, client_id, secret, http)
        token = await credential.get_token()
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx

from graphtool.errors import AuthenticationError, GraphAPIError
from graphtool.logging_config import get_logger


logger = get_logger(__name__)

MICROSOFT_TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"

# Refresh this many seconds before the token actually expires
TOKEN_REFRESH_MARGIN = 60


@dataclass
class AccessToken:
    """Bearer token with its absolute expiry on the monotonic clock."""

    token: str
    expires_on: float
    expires_in: int

    def is_expiring(self, now: float) -> bool:
        return now >= self.expires_on - TOKEN_REFRESH_MARGIN

    @property
    def expires_at(self) -> datetime:
        """Approximate wall-clock expiry, for display."""
        return datetime.now() + timedelta(seconds=max(0.0, self.expires_on - time.monotonic()))


class ClientSecretCredential:
    """
    Client-credentials token source.

    Args:
        tenant_id: Azure AD tenant GUID
        client_id: Application (client) GUID
        secret: Client secret
        http: Shared httpx client (proxy settings apply to token requests too)
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        secret: str,
        http: httpx.AsyncClient,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self._secret = secret
        self._http = http
        self._clock = clock
        self._cached: AccessToken | None = None

    @property
    def token_url(self) -> str:
        return MICROSOFT_TOKEN_URL.format(tenant=self.tenant_id)

    async def get_token(self) -> AccessToken:
        """
        Return a valid access token, requesting a new one if needed.

        Raises:
            AuthenticationError: The identity platform rejected the request
            httpx.TransportError: The token endpoint could not be reached
        """
        now = self._clock()
        if self._cached is not None and not self._cached.is_expiring(now):
            return self._cached

        logger.debug(f"Requesting access token for client {self.client_id[:8]}****")
        resp = await self._http.post(
            self.token_url,
            data={
                "client_id": self.client_id,
                "client_secret": self._secret,
                "scope": GRAPH_SCOPE,
                "grant_type": "client_credentials",
            },
        )

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if resp.status_code != 200 or "access_token" not in payload:
            description = payload.get("error_description") or payload.get("error") or (
                f"HTTP {resp.status_code}"
            )
            if resp.status_code >= 500 or resp.status_code == 429:
                # Identity platform hiccup, let the retry executor decide
                raise GraphAPIError(
                    resp.status_code, payload.get("error", ""), description, resp.headers
                )
            raise AuthenticationError(f"token request failed: {description}")

        expires_in = int(payload.get("expires_in", 3600))
        self._cached = AccessToken(
            token=payload["access_token"],
            expires_on=now + expires_in,
            expires_in=expires_in,
        )
        return self._cached


__all__ = [
    "GRAPH_SCOPE",
    "MICROSOFT_TOKEN_URL",
    "AccessToken",
    "ClientSecretCredential",
]
