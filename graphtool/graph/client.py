"""
Tool: Microsoft Graph Client
Purpose: Thin async REST client for the mailbox and calendar endpoints

Each public coroutine performs exactly one HTTP request, so it can be handed
to the retry executor as-is. Non-2xx responses raise GraphAPIError carrying
the status code, the OData error code/message, and the response headers.
Transport failures surface as httpx exceptions.

Usage:
    from graphtool.graph.client import GraphClient

    async with GraphClient.from_config(config) as client:
        events = await client.list_events("user@example.com", top=5)
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from graphtool import TOOL_NAME, __version__
from graphtool.errors import GraphAPIError
from graphtool.graph.auth import ClientSecretCredential
from graphtool.logging_config import get_logger


logger = get_logger(__name__)

# Microsoft Graph API endpoints
GRAPH_API_BASE = "https://graph.microsoft.com/v1.0"

DEFAULT_TIMEOUT_SECONDS = 30.0

# Message fields kept when exporting to JSON
EXPORT_SELECT = (
    "id,internetMessageId,subject,receivedDateTime,from,"
    "toRecipients,ccRecipients,bccRecipients,body,hasAttachments"
)


def parse_graph_error(resp: httpx.Response) -> GraphAPIError:
    """Build a GraphAPIError from an error response (OData body optional)."""
    code = ""
    message = ""
    try:
        body = resp.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code") or ""
        message = body["error"].get("message") or ""
    elif resp.text:
        message = resp.text[:200]

    return GraphAPIError(resp.status_code, code, message, resp.headers)


class GraphClient:
    """
    Microsoft Graph client bound to one credential.

    Args:
        credential: Object with ``async get_token()`` returning an AccessToken
        http: httpx client used for all requests (owned by the caller unless
            built through ``from_config``)
        base_url: Graph root, overridable for tests
    """

    def __init__(
        self,
        credential: Any,
        http: httpx.AsyncClient,
        base_url: str = GRAPH_API_BASE,
    ):
        self._credential = credential
        self._http = http
        self._owns_http = False
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_config(cls, config) -> GraphClient:
        """Build a client (and its httpx session) from a GraphToolConfig."""
        http = httpx.AsyncClient(
            proxy=config.proxy or None,
            timeout=DEFAULT_TIMEOUT_SECONDS,
            headers={"User-Agent": f"{TOOL_NAME}/{__version__}"},
        )
        credential = ClientSecretCredential(
            config.tenant_id, config.client_id, config.secret, http
        )
        client = cls(credential, http)
        client._owns_http = True
        return client

    async def __aenter__(self) -> GraphClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _get_headers(self) -> dict[str, str]:
        """Get authorization headers for API requests."""
        token = await self._credential.get_token()
        return {
            "Authorization": f"Bearer {token.token}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make one authenticated Graph request.

        Returns:
            Decoded JSON body ({} for 202/204 responses)

        Raises:
            GraphAPIError: Non-2xx response
            httpx.HTTPError: Transport failure
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"Calling Graph API: {method} {path}")

        resp = await self._http.request(
            method, url, headers=await self._get_headers(), params=params, json=json
        )

        if resp.status_code in (202, 204):
            return {}
        if 200 <= resp.status_code < 300:
            try:
                return resp.json()
            except ValueError:
                return {}
        raise parse_graph_error(resp)

    @staticmethod
    def _user_path(mailbox: str) -> str:
        return f"/users/{quote(mailbox, safe='@')}"

    # =========================================================================
    # Calendar
    # =========================================================================

    async def list_events(self, mailbox: str, top: int) -> list[dict[str, Any]]:
        data = await self._request(
            "GET", f"{self._user_path(mailbox)}/events", params={"$top": top}
        )
        return data.get("value", [])

    async def create_event(self, mailbox: str, event: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{self._user_path(mailbox)}/events", json=event)

    async def get_schedule(self, mailbox: str, request: dict[str, Any]) -> list[dict[str, Any]]:
        data = await self._request(
            "POST", f"{self._user_path(mailbox)}/calendar/getSchedule", json=request
        )
        return data.get("value", [])

    # =========================================================================
    # Mail
    # =========================================================================

    async def list_messages(self, mailbox: str, top: int) -> list[dict[str, Any]]:
        params = {
            "$top": top,
            "$orderby": "receivedDateTime DESC",
            "$select": "subject,receivedDateTime,from,toRecipients",
        }
        data = await self._request("GET", f"{self._user_path(mailbox)}/messages", params=params)
        return data.get("value", [])

    async def list_inbox_messages(self, mailbox: str, top: int) -> list[dict[str, Any]]:
        """Newest ``top`` messages of the Inbox folder with the fields needed for export."""
        params = {
            "$top": top,
            "$orderby": "receivedDateTime DESC",
            "$select": EXPORT_SELECT,
        }
        data = await self._request(
            "GET", f"{self._user_path(mailbox)}/mailFolders/Inbox/messages", params=params
        )
        return data.get("value", [])

    async def find_messages(self, mailbox: str, internet_message_id: str) -> list[dict[str, Any]]:
        """Search the whole mailbox for messages with the given Internet Message ID."""
        escaped = internet_message_id.replace("'", "''")
        params = {
            "$filter": f"internetMessageId eq '{escaped}'",
            "$select": EXPORT_SELECT,
        }
        data = await self._request("GET", f"{self._user_path(mailbox)}/messages", params=params)
        return data.get("value", [])

    async def send_mail(self, mailbox: str, message: dict[str, Any]) -> None:
        await self._request(
            "POST",
            f"{self._user_path(mailbox)}/sendMail",
            json={"message": message, "saveToSentItems": True},
        )


__all__ = ["EXPORT_SELECT", "GRAPH_API_BASE", "GraphClient", "parse_graph_error"]
