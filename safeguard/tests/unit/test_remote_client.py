"""Unit tests for RemoteSyncClient and RemoteStore.

Requests are served by httpx.MockTransport, so no network is involved.
"""

import json

import httpx
import pytest

from safeguard.modules.passwords.remote import RemoteStore, RemoteSyncClient
from safeguard.shared.errors import NotFoundError, SyncError

BASE_URL = "https://vault.test/api/passwords"


def wire_record(record_id="7", service="GitHub", username="dev", **overrides) -> dict:
    """Build a record in the remote snake_case format."""
    return {
        "id": record_id,
        "service": service,
        "username": username,
        "password": "pw",
        "created_at": "2024-05-01T10:00:00Z",
        "updated_at": "2024-05-01T10:00:00Z",
        **overrides,
    }


def make_client(handler) -> RemoteSyncClient:
    return RemoteSyncClient(BASE_URL, timeout=1.0, transport=httpx.MockTransport(handler))


# ==================== Read Tests ====================


@pytest.mark.asyncio
class TestRemoteFetchAll:
    """Tests for listing the remote collection."""

    async def test_fetch_all_translates_records(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[wire_record()])

        entries = await make_client(handler).fetch_all()

        assert len(entries) == 1
        assert entries[0].id == "7"
        assert entries[0].created_at.year == 2024
        assert requests[0].method == "GET"
        assert requests[0].url.path == "/api/passwords/"
        assert "searchQuery" not in requests[0].url.params

    async def test_fetch_all_sends_search_query(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[])

        await make_client(handler).fetch_all("  git ")

        assert requests[0].url.params["searchQuery"] == "git"

    @pytest.mark.parametrize("key", ["items", "data"])
    async def test_fetch_all_accepts_envelope(self, key):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={key: [wire_record(), wire_record("8")]})

        entries = await make_client(handler).fetch_all()

        assert [e.id for e in entries] == ["7", "8"]

    async def test_malformed_json_raises_sync_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(SyncError) as exc_info:
            await make_client(handler).fetch_all()

        assert exc_info.value.cause is not None

    async def test_invalid_record_raises_sync_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": "1"}])

        with pytest.raises(SyncError):
            await make_client(handler).fetch_all()

    async def test_unexpected_payload_raises_sync_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"total": 3})

        with pytest.raises(SyncError):
            await make_client(handler).fetch_all()


# ==================== Write Tests ====================


@pytest.mark.asyncio
class TestRemoteWrites:
    """Tests for insert, update and delete requests."""

    async def test_insert_posts_fields(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, json=wire_record(record_id=99))

        entry = await make_client(handler).insert(
            {"service": "GitHub", "username": "dev", "password": "pw"}
        )

        assert entry.id == "99"
        assert requests[0].method == "POST"
        assert json.loads(requests[0].content) == {
            "service": "GitHub",
            "username": "dev",
            "password": "pw",
        }

    async def test_update_puts_partial_body(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"data": wire_record(password="new")})

        entry = await make_client(handler).update("7", {"password": "new"})

        assert entry.password == "new"
        assert requests[0].method == "PUT"
        assert requests[0].url.path == "/api/passwords/7"
        assert json.loads(requests[0].content) == {"password": "new"}

    async def test_delete_accepts_empty_response(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        await make_client(handler).delete("7")

        assert requests[0].method == "DELETE"
        assert requests[0].url.path == "/api/passwords/7"


# ==================== Failure Tests ====================


@pytest.mark.asyncio
class TestRemoteFailures:
    """Tests for mapping transport failures to SyncError."""

    async def test_server_error_carries_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="Internal Server Error")

        with pytest.raises(SyncError) as exc_info:
            await make_client(handler).fetch_all()

        assert exc_info.value.status == 500
        assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)

    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(SyncError) as exc_info:
            await make_client(handler).insert({"service": "a", "username": "b", "password": "c"})

        assert exc_info.value.status is None
        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(SyncError) as exc_info:
            await make_client(handler).fetch_all()

        assert exc_info.value.message == "Remote request timed out"

    async def test_unexpected_exception_becomes_sync_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("transport bug")

        with pytest.raises(SyncError) as exc_info:
            await make_client(handler).update("7", {"password": "new"})

        assert exc_info.value.details["operation"] == "update"
        assert isinstance(exc_info.value.cause, RuntimeError)

    async def test_health_check(self):
        def healthy(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/passwords/health"
            return httpx.Response(200, json={"status": "ok"})

        def unhealthy(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        assert await make_client(healthy).health_check() is True
        assert await make_client(unhealthy).health_check() is False


# ==================== RemoteStore Tests ====================


@pytest.mark.asyncio
class TestRemoteStore:
    """Tests for the remote-only store adapter."""

    async def test_get_all_sorted_by_updated_at(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=[
                    wire_record("1", updated_at="2024-05-01T10:00:00Z"),
                    wire_record("2", updated_at="2024-06-01T10:00:00Z"),
                ],
            )

        entries = await RemoteStore(make_client(handler)).get_all()

        assert [e.id for e in entries] == ["2", "1"]

    async def test_update_missing_raises_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        with pytest.raises(NotFoundError):
            await RemoteStore(make_client(handler)).update("7", {"password": "x"})

    async def test_delete_missing_returns_false(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        assert await RemoteStore(make_client(handler)).delete("7") is False

    async def test_clear_all_deletes_each_record(self):
        deleted = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json=[wire_record("1"), wire_record("2")])
            deleted.append(request.url.path.rsplit("/", 1)[-1])
            return httpx.Response(204)

        assert await RemoteStore(make_client(handler)).clear_all() == 2
        assert deleted == ["1", "2"]

    async def test_remote_id_is_entry_id(self):
        store = RemoteStore(make_client(lambda request: httpx.Response(200)))

        assert await store.get_remote_id("7") == "7"
