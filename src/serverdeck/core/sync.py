"""Bulk sync of local store state to a persistence gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from serverdeck.core.gateway import PersistenceGateway
from serverdeck.core.store import InventoryStore
from serverdeck.db.queries import chunked

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


@dataclass
class SyncResult:
    servers: int = 0
    history: int = 0


async def push_store(
    store: InventoryStore,
    gateway: PersistenceGateway,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> SyncResult:
    """
    Upsert every record and history entry of ``store`` into ``gateway``.

    Backends limit batch sizes, so both collections go out in chunks.
    Gateway errors propagate to the caller.
    """
    result = SyncResult()

    for batch in chunked(store.records, batch_size):
        result.servers += await gateway.batch_upsert(list(batch))

    entries = [entry for log in store.history.values() for entry in log]
    for index, batch in enumerate(chunked(entries, batch_size)):
        logger.debug("Syncing history batch %d (%d entries)", index, len(batch))
        result.history += await gateway.batch_upsert_history(list(batch))

    logger.info("Synced %d servers and %d history entries", result.servers, result.history)
    return result
