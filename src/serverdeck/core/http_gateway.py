"""Gateway talking to the serverdeck REST API over httpx."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from serverdeck.core.errors import NotFoundError, TransportError, ValidationError
from serverdeck.schemas.history import HistoryEntry
from serverdeck.schemas.server import ServerCreate, ServerRecord, ServerUpdate

_records = TypeAdapter(list[ServerRecord])
_entries = TypeAdapter(list[HistoryEntry])
_record = TypeAdapter(ServerRecord)


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return response.text


class HttpGateway:
    """
    Gateway for a remote serverdeck API.

    The client is injected so tests can hand in an ASGI transport.
    The acting user travels in the X-Actor header.
    """

    def __init__(self, client: httpx.AsyncClient, actor: str | None = None) -> None:
        self.client = client
        self.actor = actor

    @classmethod
    def from_url(cls, base_url: str, actor: str | None = None, timeout: float = 10.0) -> HttpGateway:
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout), actor=actor)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, url: str, json: Any = None) -> Any:
        headers = {"X-Actor": self.actor} if self.actor else {}
        try:
            response = await self.client.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(_detail(response))
        if response.status_code in (400, 409, 422):
            raise ValidationError(_detail(response))
        if response.is_error:
            raise TransportError(f"{method} {url} returned {response.status_code}")
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{method} {url} returned invalid JSON") from e

    @staticmethod
    def _decode(adapter: TypeAdapter, payload: Any) -> Any:
        try:
            return adapter.validate_python(payload)
        except PydanticValidationError as e:
            raise TransportError(f"Malformed response: {e}") from e

    async def fetch_all(self) -> list[ServerRecord]:
        payload = await self._request("GET", "/api/servers")
        return self._decode(_records, payload.get("items", []))

    async def fetch_one(self, server_id: str) -> ServerRecord:
        payload = await self._request("GET", f"/api/servers/{server_id}")
        return self._decode(_record, payload)

    async def create(self, draft: ServerCreate) -> ServerRecord:
        payload = await self._request("POST", "/api/servers", json=draft.model_dump(mode="json"))
        return self._decode(_record, payload)

    async def update(self, server_id: str, patch: ServerUpdate) -> ServerRecord:
        payload = await self._request(
            "PATCH", f"/api/servers/{server_id}", json=patch.model_dump(mode="json", exclude_unset=True)
        )
        return self._decode(_record, payload)

    async def delete(self, server_id: str) -> None:
        await self._request("DELETE", f"/api/servers/{server_id}")

    async def batch_upsert(self, records: list[ServerRecord]) -> int:
        payload = await self._request(
            "POST", "/api/servers/batch", json={"servers": [r.model_dump(mode="json") for r in records]}
        )
        return int(payload["count"])

    async def fetch_history(self, server_id: str) -> list[HistoryEntry]:
        payload = await self._request("GET", f"/api/servers/{server_id}/history")
        return self._decode(_entries, payload)

    async def batch_upsert_history(self, entries: list[HistoryEntry]) -> int:
        payload = await self._request(
            "POST", "/api/history/batch", json={"entries": [e.model_dump(mode="json") for e in entries]}
        )
        return int(payload["count"])
