"""Tests for bulk sync and batching."""

import pytest

from serverdeck.core.errors import TransportError
from serverdeck.core.gateway import InMemoryGateway
from serverdeck.core.sync import push_store
from serverdeck.db.queries import chunked
from serverdeck.schemas.server import ServerUpdate


class RecordingGateway(InMemoryGateway):
    def __init__(self):
        super().__init__()
        self.server_batches = []
        self.history_batches = []

    async def batch_upsert(self, records):
        self.server_batches.append(len(records))
        return await super().batch_upsert(records)

    async def batch_upsert_history(self, entries):
        self.history_batches.append(len(entries))
        return await super().batch_upsert_history(entries)


class TestChunked:
    def test_chunks(self):
        assert [list(c) for c in chunked([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]

    def test_empty(self):
        assert list(chunked([], 3)) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(chunked([1], 0))


class TestPushStore:
    @pytest.mark.asyncio
    async def test_pushes_records_and_history_in_batches(self, store):
        await store.update("a", ServerUpdate(company="Globex", location="Hamburg"))
        await store.update("b", ServerUpdate(cores=64))

        target = RecordingGateway()
        result = await push_store(store, target, batch_size=2)

        assert (result.servers, result.history) == (3, 3)
        assert target.server_batches == [2, 1]
        assert target.history_batches == [2, 1]
        assert {r.id for r in await target.fetch_all()} == {"a", "b", "c"}
        assert len(await target.fetch_history("a")) == 2

    @pytest.mark.asyncio
    async def test_gateway_errors_propagate(self, store):
        class Broken(InMemoryGateway):
            async def batch_upsert(self, records):
                raise TransportError("offline")

        with pytest.raises(TransportError):
            await push_store(store, Broken())
