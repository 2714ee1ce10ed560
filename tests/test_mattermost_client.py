"""Tests for the account/channel API client."""

from __future__ import annotations

import httpx
import pytest

from bulkpurge.infra.mattermost.client import MattermostClient
from bulkpurge.infra.mattermost.settings import MattermostSettings


def _client(handler, **settings_kwargs) -> MattermostClient:
    settings = MattermostSettings(socket_path=None, base_url="http://mm.test", **settings_kwargs)
    http = httpx.AsyncClient(base_url=settings.base_url, transport=httpx.MockTransport(handler))
    return MattermostClient(settings, client=http)


@pytest.mark.unit
class TestMattermostClient:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_delete_user_is_permanent_and_returns_status(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(403)

        client = _client(handler)

        assert await client.delete_user("u1") == 403
        assert seen[0].method == "DELETE"
        assert seen[0].url.path == "/api/v4/users/u1"
        assert seen[0].url.params["permanent"] == "true"

    @pytest.mark.asyncio(loop_scope="function")
    async def test_delete_channel(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v4/channels/c1"
            assert request.url.params["permanent"] == "true"
            return httpx.Response(200, json={"status": "OK"})

        assert await _client(handler).delete_channel("c1") == 200

    @pytest.mark.asyncio(loop_scope="function")
    async def test_get_user(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"id": "u1", "email": "a@old.test", "roles": "system_admin"}
            )

        user = await _client(handler).get_user("u1")

        assert user.email == "a@old.test"
        assert user.is_system_admin

    @pytest.mark.asyncio(loop_scope="function")
    async def test_get_user_raises_on_error_status(self) -> None:
        client = _client(lambda request: httpx.Response(404))

        with pytest.raises(httpx.HTTPStatusError):
            await client.get_user("missing")

    @pytest.mark.asyncio(loop_scope="function")
    async def test_iter_users_walks_pages_until_empty(self) -> None:
        pages = {
            "0": [{"id": "u1", "email": "a@old.test"}, {"id": "u2", "email": "b@old.test"}],
            "1": [{"id": "u3", "email": "c@old.test"}],
        }
        seen: list[httpx.QueryParams] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params)
            return httpx.Response(200, json=pages.get(request.url.params["page"], []))

        client = _client(handler, per_page=2)

        users = [user async for user in client.iter_users(inactive=True)]

        assert [u.id for u in users] == ["u1", "u2", "u3"]
        assert [p["page"] for p in seen] == ["0", "1", "2"]
        assert all(p["per_page"] == "2" and p["inactive"] == "true" for p in seen)

    @pytest.mark.asyncio(loop_scope="function")
    async def test_list_users_without_inactive_filter(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert "inactive" not in request.url.params
            return httpx.Response(200, json=[])

        assert await _client(handler).list_users(0) == []

    @pytest.mark.asyncio(loop_scope="function")
    async def test_transport_errors_propagate(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(httpx.ConnectError):
            await _client(handler).delete_user("u1")

    @pytest.mark.asyncio(loop_scope="function")
    async def test_token_sent_as_bearer_header(self) -> None:
        settings = MattermostSettings(socket_path=None, base_url="http://mm.test", token="t0k")
        client = MattermostClient(settings)
        try:
            http = client._get_client()
            assert http.headers["Authorization"] == "Bearer t0k"
        finally:
            await client.aclose()

    @pytest.mark.asyncio(loop_scope="function")
    async def test_aclose_leaves_shared_client_open(self) -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        client = MattermostClient(MattermostSettings(socket_path=None), client=http)

        await client.aclose()

        assert not http.is_closed
        await http.aclose()
