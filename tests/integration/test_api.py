"""Integration tests for the API endpoints."""

from datetime import datetime

import pytest
import pytest_asyncio
from conftest import make_server
from httpx import ASGITransport, AsyncClient

from serverdeck.core.errors import NotFoundError, TransportError, ValidationError
from serverdeck.core.http_gateway import HttpGateway
from serverdeck.core.sql_gateway import SqlGateway
from serverdeck.core.store import InventoryStore
from serverdeck.core.sync import push_store
from serverdeck.dependencies import get_gateway
from serverdeck.main import app
from serverdeck.schemas.server import ServerCreate, ServerUpdate


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client against the app, backed by the in-memory test database."""
    app.dependency_overrides[get_gateway] = lambda: SqlGateway(session_factory)
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def http_gateway(client):
    return HttpGateway(client, actor="api-tester")


@pytest.mark.asyncio
async def test_health_check():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestServerEndpoints:
    @pytest.mark.asyncio
    async def test_create_list_get(self, client):
        response = await client.post(
            "/api/servers",
            json={"server_name": "web01", "ip_address": "10.3.0.1", "server_type": "dev"},
            headers={"X-Actor": "alice"},
        )
        assert response.status_code == 201
        created = response.json()
        assert created["server_type"] == "Development"
        assert created["updated_by"] == "alice"

        listing = (await client.get("/api/servers")).json()
        assert listing["total"] == 1
        assert listing["items"][0]["id"] == created["id"]

        fetched = await client.get(f"/api/servers/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["server_name"] == "web01"

    @pytest.mark.asyncio
    async def test_invalid_server_rejected(self, client):
        response = await client.post("/api/servers", json={"server_name": "x", "ip_address": "999.1.1.1"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_patch_stamps_actor(self, client):
        created = (await client.post("/api/servers", json={"server_name": "a", "ip_address": "10.3.0.2"})).json()
        response = await client.patch(
            f"/api/servers/{created['id']}", json={"company": "Globex"}, headers={"X-Actor": "bob"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["company"] == "Globex"
        assert body["updated_by"] == "bob"
        assert datetime.fromisoformat(body["updated_at"]) >= datetime.fromisoformat(created["updated_at"])

    @pytest.mark.asyncio
    async def test_patch_records_history(self, client):
        created = (await client.post("/api/servers", json={"server_name": "a", "ip_address": "10.3.0.4"})).json()
        await client.patch(
            f"/api/servers/{created['id']}",
            json={"company": "Globex", "location": created["location"]},
            headers={"X-Actor": "bob"},
        )

        history = (await client.get(f"/api/servers/{created['id']}/history")).json()
        assert [(e["field"], e["old_value"], e["new_value"], e["user"]) for e in history] == [
            ("company", created["company"], "Globex", "bob")
        ]

    @pytest.mark.asyncio
    async def test_patch_unknown_field_rejected(self, client):
        created = (await client.post("/api/servers", json={"server_name": "a", "ip_address": "10.3.0.5"})).json()
        response = await client.patch(f"/api/servers/{created['id']}", json={"compnay": "Globex"})
        assert response.status_code == 422

        fetched = (await client.get(f"/api/servers/{created['id']}")).json()
        assert fetched["company"] == created["company"]
        assert (await client.get(f"/api/servers/{created['id']}/history")).json() == []

    @pytest.mark.asyncio
    async def test_missing_server(self, client):
        assert (await client.get("/api/servers/missing")).status_code == 404
        assert (await client.patch("/api/servers/missing", json={"company": "X"})).status_code == 404
        assert (await client.delete("/api/servers/missing")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, client):
        created = (await client.post("/api/servers", json={"server_name": "a", "ip_address": "10.3.0.3"})).json()
        response = await client.delete(f"/api/servers/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {"message": "Server deleted"}
        assert (await client.get("/api/servers")).json()["total"] == 0

    @pytest.mark.asyncio
    async def test_backend_failure_is_503(self, client):
        class Broken(SqlGateway):
            async def fetch_all(self):
                raise TransportError("database is gone")

        app.dependency_overrides[get_gateway] = lambda: Broken(None)
        response = await client.get("/api/servers")
        assert response.status_code == 503
        assert response.json() == {"detail": "Storage backend unavailable"}


class TestHttpGateway:
    @pytest.mark.asyncio
    async def test_store_round_trip(self, http_gateway):
        store = InventoryStore(http_gateway, actor="api-tester")
        created = await store.create(ServerCreate(server_name="app01", ip_address="10.3.1.1"))
        assert created is not None

        updated = await store.update(created.id, ServerUpdate(location="Hamburg"))
        assert updated.location == "Hamburg"

        history = await http_gateway.fetch_history(created.id)
        assert [(e.field, e.new_value, e.user) for e in history] == [("location", "Hamburg", "api-tester")]

        fresh = InventoryStore(http_gateway)
        assert await fresh.load()
        assert fresh.get(created.id).location == "Hamburg"

    @pytest.mark.asyncio
    async def test_fetch_one(self, http_gateway):
        created = await http_gateway.create(ServerCreate(server_name="app02", ip_address="10.3.1.4"))
        fetched = await http_gateway.fetch_one(created.id)
        assert fetched.id == created.id
        assert fetched.server_name == "app02"

    @pytest.mark.asyncio
    async def test_error_mapping(self, http_gateway):
        with pytest.raises(NotFoundError):
            await http_gateway.fetch_one("missing")
        with pytest.raises(NotFoundError):
            await http_gateway.update("missing", ServerUpdate(company="X"))
        with pytest.raises(NotFoundError):
            await http_gateway.delete("missing")

        created = await http_gateway.create(ServerCreate(id="fixed", server_name="a", ip_address="10.3.1.2"))
        with pytest.raises(ValidationError):
            await http_gateway.create(ServerCreate(id=created.id, server_name="b", ip_address="10.3.1.3"))

    @pytest.mark.asyncio
    async def test_push_store_to_api(self, http_gateway, store):
        result = await push_store(store, http_gateway)
        assert result.servers == 3

        stored = {r.id: r for r in await http_gateway.fetch_all()}
        assert set(stored) == {"a", "b", "c"}
        assert stored["b"].cores == 16

    @pytest.mark.asyncio
    async def test_batch_upsert_replaces(self, http_gateway):
        record = make_server(id="r1", server_name="before")
        await http_gateway.batch_upsert([record])
        await http_gateway.batch_upsert([record.model_copy(update={"server_name": "after"})])

        assert [r.server_name for r in await http_gateway.fetch_all()] == ["after"]
