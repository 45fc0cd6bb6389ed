"""Integration tests for the SQLAlchemy gateway."""

import pytest
from conftest import make_server

from serverdeck.core.errors import NotFoundError, ValidationError
from serverdeck.core.sql_gateway import SqlGateway
from serverdeck.core.store import InventoryStore
from serverdeck.schemas.server import BackupStatus, HardwareType, ServerCreate, ServerUpdate


@pytest.fixture
def sql_gateway(session_factory):
    return SqlGateway(session_factory)


class TestSqlGatewayCrud:
    @pytest.mark.asyncio
    async def test_create_and_fetch(self, sql_gateway):
        created = await sql_gateway.create(
            ServerCreate(
                server_name="db01",
                ip_address="10.2.0.1",
                hardware_type="bare metal",
                backup="ja",
                tags=["db", "critical"],
                cpu_load_trend=[12.5, 40],
            )
        )
        fetched = await sql_gateway.fetch_all()

        assert len(fetched) == 1
        record = fetched[0]
        assert record.id == created.id
        assert record.hardware_type == HardwareType.BARE_METAL
        assert record.backup == BackupStatus.YES
        assert record.tags == ["db", "critical"]
        assert record.cpu_load_trend == [12.5, 40.0]
        assert record.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_duplicate_id(self, sql_gateway):
        await sql_gateway.create(ServerCreate(id="x", server_name="one", ip_address="10.2.0.1"))
        with pytest.raises(ValidationError):
            await sql_gateway.create(ServerCreate(id="x", server_name="two", ip_address="10.2.0.2"))

    @pytest.mark.asyncio
    async def test_update(self, sql_gateway):
        created = await sql_gateway.create(ServerCreate(server_name="web01", ip_address="10.2.0.3"))
        updated = await sql_gateway.update(created.id, ServerUpdate(company="Globex", cores=8))

        assert updated.company == "Globex"
        stored = (await sql_gateway.fetch_all())[0]
        assert stored.company == "Globex"
        assert stored.cores == 8
        assert stored.server_name == "web01"

    @pytest.mark.asyncio
    async def test_fetch_one(self, sql_gateway):
        created = await sql_gateway.create(ServerCreate(server_name="one", ip_address="10.2.0.6"))
        assert (await sql_gateway.fetch_one(created.id)).server_name == "one"
        with pytest.raises(NotFoundError):
            await sql_gateway.fetch_one("missing")

    @pytest.mark.asyncio
    async def test_store_update_persists_history(self, sql_gateway):
        store = InventoryStore(sql_gateway, actor="tester")
        created = await store.create(ServerCreate(server_name="web02", ip_address="10.2.0.7", company="A"))
        await store.update(created.id, ServerUpdate(company="B"))

        stored = await sql_gateway.fetch_history(created.id)
        assert [(e.field, e.old_value, e.new_value, e.user) for e in stored] == [("company", "A", "B", "tester")]

        fresh = InventoryStore(sql_gateway)
        assert await fresh.load()
        assert [e.id for e in await fresh.load_history(created.id)] == [e.id for e in stored]

    @pytest.mark.asyncio
    async def test_store_bulk_tag_persists_history(self, sql_gateway):
        store = InventoryStore(sql_gateway, actor="tester")
        created = await store.create(ServerCreate(server_name="web03", ip_address="10.2.0.8"))
        store.toggle_select(created.id)
        assert await store.bulk_tag("prod") == 1

        stored = await sql_gateway.fetch_history(created.id)
        assert [(e.field, e.new_value) for e in stored] == [("tags", "prod")]

    @pytest.mark.asyncio
    async def test_update_missing(self, sql_gateway):
        with pytest.raises(NotFoundError):
            await sql_gateway.update("missing", ServerUpdate(company="X"))

    @pytest.mark.asyncio
    async def test_delete_removes_history(self, sql_gateway):
        store = InventoryStore(sql_gateway, actor="tester")
        created = await store.create(ServerCreate(server_name="tmp", ip_address="10.2.0.4"))
        await store.update(created.id, ServerUpdate(location="Hamburg"))
        assert len(await sql_gateway.fetch_history(created.id)) == 1

        await sql_gateway.delete(created.id)
        assert await sql_gateway.fetch_all() == []
        assert await sql_gateway.fetch_history(created.id) == []

    @pytest.mark.asyncio
    async def test_delete_missing(self, sql_gateway):
        with pytest.raises(NotFoundError):
            await sql_gateway.delete("missing")


class TestSqlGatewayBatch:
    @pytest.mark.asyncio
    async def test_batch_upsert_inserts_and_replaces(self, sql_gateway):
        first = make_server(id="u1", server_name="one")
        second = make_server(id="u2", server_name="two")
        assert await sql_gateway.batch_upsert([first, second]) == 2

        renamed = first.model_copy(update={"server_name": "uno"})
        assert await sql_gateway.batch_upsert([renamed]) == 1

        names = sorted(r.server_name for r in await sql_gateway.fetch_all())
        assert names == ["two", "uno"]

    @pytest.mark.asyncio
    async def test_history_upsert_is_idempotent(self, sql_gateway):
        store = InventoryStore(sql_gateway, actor="tester")
        created = await store.create(ServerCreate(server_name="h", ip_address="10.2.0.5"))
        await store.update(created.id, ServerUpdate(company="A"))
        await store.update(created.id, ServerUpdate(company="B"))
        entries = store.history_for(created.id)

        await sql_gateway.batch_upsert_history(entries)
        await sql_gateway.batch_upsert_history(entries)

        stored = await sql_gateway.fetch_history(created.id)
        assert [e.new_value for e in stored] == ["A", "B"]
        assert stored[0].user == "tester"
