"""Async HTTP client for the Mattermost account and channel APIs.

The purge treats the server as a remote capability with a small contract:

- ``delete_user(id) -> status_code``: permanent account deletion.
- ``delete_channel(id) -> status_code``: permanent channel deletion.
- ``get_user(id)`` / ``list_users(...)``: lookups used to pick targets
  and to check the caller's permissions.

Status codes of the delete calls are returned, not raised: the stage that
issues the call decides that anything other than 200 aborts the job.
Transport failures (connection refused, timeouts) propagate as httpx
exceptions.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from bulkpurge.foundation.domain.user_value_objects import TargetUser
from bulkpurge.infra.mattermost.settings import MattermostSettings, get_mattermost_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

_API_PREFIX = "/api/v4"


class MattermostClient:
    """Async client for the account/channel management API.

    Supports both shared and internal httpx.AsyncClient modes:
    - If ``client`` is provided, it is reused across calls (caller manages lifecycle).
    - If ``client`` is omitted, an internal client is created lazily on first
      use, over the local-mode unix socket when one is configured.
      Call :meth:`aclose` to release it when done.

    Args:
        settings: Connection settings.
        client: Optional shared httpx.AsyncClient instance.
    """

    def __init__(
        self,
        settings: MattermostSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_mattermost_settings()
        self._external_client = client is not None
        self._client: httpx.AsyncClient | None = client

    async def delete_user(self, user_id: str) -> int:
        """Permanently delete an account.

        Returns:
            HTTP status code; 200 means the account is gone.
        """
        response = await self._request(
            "DELETE", f"/users/{user_id}", params={"permanent": "true"}
        )
        return response.status_code

    async def delete_channel(self, channel_id: str) -> int:
        """Permanently delete a channel.

        Returns:
            HTTP status code; 200 means the channel is gone.
        """
        response = await self._request(
            "DELETE", f"/channels/{channel_id}", params={"permanent": "true"}
        )
        return response.status_code

    async def get_user(self, user_id: str) -> TargetUser:
        """Fetch one account.

        Raises:
            httpx.HTTPStatusError: On 4xx/5xx responses.
        """
        response = await self._request("GET", f"/users/{user_id}")
        response.raise_for_status()
        return TargetUser.from_api(response.json())

    async def list_users(
        self,
        page: int,
        per_page: int | None = None,
        *,
        inactive: bool = False,
    ) -> list[TargetUser]:
        """Fetch one page of accounts.

        Args:
            page: Zero-based page number.
            per_page: Page size, defaults to ``MATTERMOST_PER_PAGE``.
            inactive: Only return deactivated accounts.

        Raises:
            httpx.HTTPStatusError: On 4xx/5xx responses.
        """
        params: dict[str, Any] = {
            "page": page,
            "per_page": per_page or self._settings.per_page,
        }
        if inactive:
            params["inactive"] = "true"
        response = await self._request("GET", "/users", params=params)
        response.raise_for_status()
        return [TargetUser.from_api(item) for item in response.json()]

    async def iter_users(self, *, inactive: bool = False) -> AsyncIterator[TargetUser]:
        """Walk every page of accounts until an empty page is returned."""
        page = 0
        while True:
            users = await self.list_users(page, inactive=inactive)
            if not users:
                return
            for user in users:
                yield user
            page += 1

    def _get_client(self) -> httpx.AsyncClient:
        """Return the shared or lazily-created httpx.AsyncClient."""
        if self._client is None:
            headers = {}
            if self._settings.token:
                headers["Authorization"] = f"Bearer {self._settings.token}"
            transport = None
            if self._settings.socket_path:
                transport = httpx.AsyncHTTPTransport(uds=self._settings.socket_path)
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                headers=headers,
                transport=transport,
                timeout=self._settings.timeout,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = self._get_client()
        try:
            return await client.request(method, f"{_API_PREFIX}{path}", params=params)
        except httpx.TransportError as exc:
            logger.error(
                "mattermost_request_failed",
                extra={"method": method, "path": path, "error": str(exc)},
            )
            raise

    async def aclose(self) -> None:
        """Close the internal httpx.AsyncClient if we own it.

        No-op if the client was provided externally or not yet created.
        """
        if self._client is not None and not self._external_client:
            await self._client.aclose()
            self._client = None
