"""
Inventory store.

Holds the authoritative server list plus everything a dashboard needs to
render it: filters, search, sort order, pagination, visible fields, saved
views, selection and a per-server audit history.

Every change to records, filters, search or sort recomputes the derived view
from scratch. Gateway calls are the only suspension points; failures are
logged, kept in ``last_error`` and leave the in-memory state as it was.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import defaultdict
from typing import Any, Awaitable, Iterable, Sequence, TypeVar

from serverdeck.config import Settings
from serverdeck.core.errors import GatewayError, NotFoundError, TransportError
from serverdeck.core.gateway import PersistenceGateway, new_id, utcnow
from serverdeck.core.history import UNTRACKED_FIELDS, diff_history
from serverdeck.core.query_engine import apply_filters_and_search, apply_sort
from serverdeck.schemas.history import HistoryEntry
from serverdeck.schemas.server import ServerCreate, ServerRecord, ServerUpdate
from serverdeck.schemas.view import SavedView, ServerFilter, SortDirection, SortKey

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_SORT_KEYS = 3

DEFAULT_VISIBLE_FIELDS = (
    "server_name",
    "operating_system",
    "hardware_type",
    "company",
    "server_type",
    "location",
    "ip_address",
    "backup",
)


class InventoryStore:
    """Stateful inventory core. Construct one per dashboard session."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        actor: str = "current-user",
        page_size: int = 20,
        visible_fields: Sequence[str] = DEFAULT_VISIBLE_FIELDS,
        sort_keys: Sequence[SortKey] | None = None,
        numeric_aware: bool = False,
        gateway_timeout: float | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.gateway = gateway
        self.actor = actor
        self.numeric_aware = numeric_aware
        self.gateway_timeout = gateway_timeout

        self.records: list[ServerRecord] = []
        self.derived_view: list[ServerRecord] = []
        self.filters: list[ServerFilter] = []
        self.search_text = ""
        if sort_keys is None:
            sort_keys = [SortKey(key="server_name", direction=SortDirection.ASC)]
        self.sort_keys: list[SortKey] = list(sort_keys)[:MAX_SORT_KEYS]
        self.page = 1
        self.page_size = page_size
        self.total_pages = 0
        self.visible_fields: list[str] = list(visible_fields)
        self.saved_views: list[SavedView] = []
        self.active_view_id: str | None = None
        self.history: dict[str, list[HistoryEntry]] = {}
        self.selected_ids: set[str] = set()
        self.last_error: GatewayError | None = None

        self._in_flight = 0
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @classmethod
    def from_settings(cls, gateway: PersistenceGateway, cfg: Settings) -> InventoryStore:
        return cls(
            gateway,
            actor=cfg.actor,
            page_size=cfg.page_size,
            numeric_aware=cfg.numeric_aware_sort,
            gateway_timeout=cfg.gateway_timeout,
        )

    # -- derived state -------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def page_items(self) -> list[ServerRecord]:
        start = (self.page - 1) * self.page_size
        return self.derived_view[start:start + self.page_size]

    def get(self, server_id: str) -> ServerRecord | None:
        for record in self.records:
            if record.id == server_id:
                return record
        return None

    def history_for(self, server_id: str) -> list[HistoryEntry]:
        return list(self.history.get(server_id, []))

    def _refresh(self) -> None:
        filtered = apply_filters_and_search(self.records, self.filters, self.search_text)
        self.derived_view = apply_sort(filtered, self.sort_keys, self.numeric_aware)
        self._repaginate()

    def _repaginate(self) -> None:
        self.total_pages = math.ceil(len(self.derived_view) / self.page_size)
        self.page = min(max(1, self.page), max(1, self.total_pages))

    # -- gateway plumbing ----------------------------------------------

    async def _call(self, awaitable: Awaitable[T]) -> T:
        self._in_flight += 1
        try:
            if self.gateway_timeout is None:
                return await awaitable
            try:
                return await asyncio.wait_for(awaitable, self.gateway_timeout)
            except asyncio.TimeoutError as e:
                raise TransportError(
                    f"Gateway call timed out after {self.gateway_timeout}s"
                ) from e
        finally:
            self._in_flight -= 1

    def _fail(self, action: str, error: GatewayError) -> None:
        logger.error("Error %s: %s", action, error)
        self.last_error = error

    def _replace(self, record: ServerRecord) -> None:
        self.records = [record if r.id == record.id else r for r in self.records]

    async def _record_history(self, server_id: str, entries: list[HistoryEntry]) -> None:
        """Persist entries of a confirmed change; a failure here keeps the change."""
        if not entries:
            return
        try:
            await self._call(self.gateway.batch_upsert_history(entries))
        except GatewayError as e:
            self._fail(f"recording history of server {server_id}", e)

    # -- record mutations ----------------------------------------------

    async def load(self) -> bool:
        """Replace local records with everything the gateway holds."""
        try:
            records = await self._call(self.gateway.fetch_all())
        except GatewayError as e:
            self._fail("loading servers", e)
            return False

        self.records = list(records)
        known = {r.id for r in self.records}
        self.selected_ids &= known
        self._refresh()
        logger.info("Loaded %d servers", len(self.records))
        return True

    def set_records(self, records: Iterable[ServerRecord]) -> None:
        self.records = list(records)
        self._refresh()

    async def create(self, draft: ServerCreate) -> ServerRecord | None:
        if not draft.updated_by:
            draft = draft.model_copy(update={"updated_by": self.actor})
        try:
            record = await self._call(self.gateway.create(draft))
        except GatewayError as e:
            self._fail("adding server", e)
            return None

        self.records = [*self.records, record]
        self._refresh()
        logger.info("Created server %s (%s)", record.server_name, record.id)
        return record

    async def update(self, server_id: str, patch: ServerUpdate) -> ServerRecord | None:
        """
        Apply a patch, recording one history entry per field that really changed.

        The merged record is {**old, **patch} stamped with the current time and
        actor, even when nothing differs.
        """
        async with self._locks[server_id]:
            current = self.get(server_id)
            if current is None:
                self._fail(f"updating server {server_id}", NotFoundError(f"Server not found: {server_id}"))
                return None

            changes = {k: v for k, v in patch.changes().items() if k not in UNTRACKED_FIELDS}
            now = utcnow()
            entries = diff_history(current, changes, self.actor, now)
            stamped = ServerUpdate.model_validate(
                {**changes, "updated_at": now, "updated_by": self.actor}
            )

            try:
                await self._call(self.gateway.update(server_id, stamped))
            except GatewayError as e:
                self._fail(f"updating server {server_id}", e)
                return None

            latest = self.get(server_id)
            if latest is None:
                return None
            updated = latest.model_copy(
                update={**changes, "updated_at": now, "updated_by": self.actor}
            )
            self._replace(updated)
            if entries:
                self.history.setdefault(server_id, []).extend(entries)
            self._refresh()
            await self._record_history(server_id, entries)

        logger.info("Updated server %s (%d fields changed)", server_id, len(entries))
        return updated

    async def _delete_remote(self, server_id: str) -> GatewayError | None:
        async with self._locks[server_id]:
            try:
                await self._call(self.gateway.delete(server_id))
            except GatewayError as e:
                return e
        self._locks.pop(server_id, None)
        return None

    def _forget(self, server_ids: set[str]) -> None:
        self.records = [r for r in self.records if r.id not in server_ids]
        self.selected_ids -= server_ids
        for server_id in server_ids:
            self.history.pop(server_id, None)

    async def delete(self, server_id: str) -> bool:
        error = await self._delete_remote(server_id)
        if error is not None:
            self._fail(f"deleting server {server_id}", error)
            return False

        self._forget({server_id})
        self._refresh()
        logger.info("Deleted server %s", server_id)
        return True

    async def delete_many(self, server_ids: Iterable[str]) -> list[str]:
        """Delete several servers; only the ids the gateway confirmed are dropped locally."""
        ids = list(dict.fromkeys(server_ids))
        if not ids:
            return []

        errors = await asyncio.gather(*(self._delete_remote(i) for i in ids))
        confirmed = [i for i, err in zip(ids, errors) if err is None]
        failed = [(i, err) for i, err in zip(ids, errors) if err is not None]
        for server_id, error in failed:
            self._fail(f"deleting server {server_id}", error)

        self._forget(set(confirmed))
        self._refresh()
        logger.info("Deleted %d of %d servers", len(confirmed), len(ids))
        return confirmed

    async def _tag_one(self, server_id: str, tag: str) -> bool:
        async with self._locks[server_id]:
            current = self.get(server_id)
            if current is None or tag in current.tags:
                return False

            new_tags = [*current.tags, tag]
            now = utcnow()
            patch = ServerUpdate(tags=new_tags, updated_at=now, updated_by=self.actor)
            try:
                await self._call(self.gateway.update(server_id, patch))
            except GatewayError as e:
                self._fail(f"tagging server {server_id}", e)
                return False

            latest = self.get(server_id)
            if latest is None:
                return False
            self._replace(
                latest.model_copy(
                    update={"tags": new_tags, "updated_at": now, "updated_by": self.actor}
                )
            )
            entries = diff_history(current, {"tags": new_tags}, self.actor, now)
            self.history.setdefault(server_id, []).extend(entries)
            await self._record_history(server_id, entries)
            return True

    async def bulk_tag(self, tag: str) -> int:
        """Add ``tag`` to every selected server that lacks it. Returns how many changed."""
        tag = tag.strip()
        if not tag or not self.selected_ids:
            return 0

        targets = [r.id for r in self.records if r.id in self.selected_ids and tag not in r.tags]
        results = await asyncio.gather(*(self._tag_one(i, tag) for i in targets))
        tagged = sum(1 for ok in results if ok)
        self._refresh()
        logger.info("Tagged %d servers with %r", tagged, tag)
        return tagged

    async def load_history(self, server_id: str) -> list[HistoryEntry]:
        """Merge stored history of one server into the local log."""
        try:
            stored = await self._call(self.gateway.fetch_history(server_id))
        except GatewayError as e:
            self._fail(f"loading history of server {server_id}", e)
            return self.history_for(server_id)

        merged = {e.id: e for e in stored}
        merged.update({e.id: e for e in self.history.get(server_id, [])})
        self.history[server_id] = sorted(merged.values(), key=lambda e: e.timestamp)
        return self.history_for(server_id)

    # -- view state ----------------------------------------------------

    def set_filters(self, filters: Iterable[ServerFilter]) -> None:
        self.filters = list(filters)
        self.page = 1
        self._refresh()

    def add_filter(self, flt: ServerFilter) -> None:
        self.set_filters([*self.filters, flt])

    def remove_filter(self, index: int) -> None:
        if 0 <= index < len(self.filters):
            self.set_filters(self.filters[:index] + self.filters[index + 1:])

    def reset_filters(self) -> None:
        self.set_filters([])

    def set_search(self, text: str) -> None:
        self.search_text = text
        self.page = 1
        self._refresh()

    def set_sort_keys(self, sort_keys: Iterable[SortKey]) -> None:
        self.sort_keys = list(sort_keys)[:MAX_SORT_KEYS]
        self._refresh()

    def add_sort_key(self, key: str, direction: SortDirection = SortDirection.ASC) -> None:
        """Make ``key`` the primary sort; the oldest key drops out past the cap."""
        rest = [s for s in self.sort_keys if s.key != key]
        self.set_sort_keys([SortKey(key=key, direction=direction), *rest])

    def toggle_sort(self, key: str) -> None:
        """Column-header click: add ascending, flip to descending, then remove."""
        for index, sort_key in enumerate(self.sort_keys):
            if sort_key.key != key:
                continue
            keys = list(self.sort_keys)
            if sort_key.direction == SortDirection.ASC:
                keys[index] = SortKey(key=key, direction=SortDirection.DESC)
            else:
                del keys[index]
            self.set_sort_keys(keys)
            return
        self.add_sort_key(key)

    def set_page(self, page: int) -> None:
        self.page = page
        self._repaginate()

    def set_page_size(self, page_size: int) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.page_size = page_size
        self.page = 1
        self._repaginate()

    def set_visible_fields(self, fields: Iterable[str]) -> None:
        self.visible_fields = list(fields)

    def toggle_field_visibility(self, field: str) -> None:
        if field in self.visible_fields:
            if len(self.visible_fields) <= 1:
                return
            self.visible_fields = [f for f in self.visible_fields if f != field]
        else:
            self.visible_fields = [*self.visible_fields, field]

    # -- saved views ---------------------------------------------------

    def save_view(self, name: str) -> SavedView:
        view = SavedView(
            id=new_id(),
            name=name,
            owner_id=self.actor,
            filters=tuple(self.filters),
            visible_fields=tuple(self.visible_fields),
            sort_keys=tuple(self.sort_keys),
        )
        self.saved_views = [*self.saved_views, view]
        self.active_view_id = view.id
        return view

    def load_view(self, view_id: str) -> bool:
        view = next((v for v in self.saved_views if v.id == view_id), None)
        if view is None:
            return False

        self.filters = list(view.filters)
        self.visible_fields = list(view.visible_fields)
        self.sort_keys = list(view.sort_keys)
        self.active_view_id = view_id
        self.page = 1
        self._refresh()
        return True

    def delete_view(self, view_id: str) -> bool:
        remaining = [v for v in self.saved_views if v.id != view_id]
        if len(remaining) == len(self.saved_views):
            return False
        self.saved_views = remaining
        if self.active_view_id == view_id:
            self.active_view_id = None
        return True

    def export_views(self) -> list[dict[str, Any]]:
        return [v.model_dump(mode="json") for v in self.saved_views]

    def import_views(self, data: Iterable[dict[str, Any]]) -> None:
        self.saved_views = [SavedView.model_validate(item) for item in data]
        known = {v.id for v in self.saved_views}
        if self.active_view_id not in known:
            self.active_view_id = None

    # -- selection -----------------------------------------------------

    def toggle_select(self, server_id: str) -> None:
        if server_id in self.selected_ids:
            self.selected_ids.discard(server_id)
        else:
            self.selected_ids.add(server_id)

    def select_all_on_page(self) -> None:
        """Select the current page, or deselect it when it is already fully selected."""
        page_ids = {r.id for r in self.page_items}
        if page_ids <= self.selected_ids:
            self.selected_ids -= page_ids
        else:
            self.selected_ids |= page_ids

    def clear_selection(self) -> None:
        self.selected_ids = set()
