"""
Remote system client.

The backend of record is treated as an opaque PostgREST-style data store:
insert / update / delete per entity table, plus a trivial read used as a
reachability probe. Network failures surface as RemoteUnavailableError, error
payloads as RemoteSyncError.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.core.enums import SyncEntity, SyncOperation
from app.core.exceptions import LedgerValidationError, RemoteSyncError, RemoteUnavailableError

logger = logging.getLogger(__name__)

# Marks a request as a replay so the interception layer does not hold it again.
REPLAY_HEADER = "X-Ledger-Replay"
REPLAY_SYNC_QUEUE = "sync-queue"
REPLAY_HELD = "held"

ENTITY_TABLES: Dict[str, str] = {
    SyncEntity.SCHOOL.value: "schools",
    SyncEntity.STUDENT.value: "students",
    SyncEntity.FEE.value: "fees",
    SyncEntity.INSTALLMENT.value: "installments",
    SyncEntity.PAYMENT.value: "payments",
}

PROBE_TABLE = "schools"


def table_for(entity: str) -> str:
    try:
        return ENTITY_TABLES[entity]
    except KeyError:
        raise LedgerValidationError(f"Unknown sync entity '{entity}'")


class RemoteClient:
    """Async HTTP client for the remote backend."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Prefer": "return=minimal"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        replay: Optional[str] = None,
    ) -> httpx.Response:
        headers = {REPLAY_HEADER: replay} if replay else None
        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TransportError as e:
            raise RemoteUnavailableError(f"{method} {path}: {e}") from e
        if response.is_error:
            raise RemoteSyncError(
                f"{method} {path} failed with {response.status_code}: {response.text[:200]}",
                remote_status=response.status_code,
            )
        return response

    # --- Remote contract ---
    async def insert(self, table: str, row: Dict[str, Any], replay: Optional[str] = None) -> httpx.Response:
        return await self._request("POST", f"/{table}", json=row, replay=replay)

    async def update(self, table: str, row_id: int, patch: Dict[str, Any], replay: Optional[str] = None) -> httpx.Response:
        return await self._request("PATCH", f"/{table}", params={"id": f"eq.{row_id}"}, json=patch, replay=replay)

    async def delete(self, table: str, row_id: int, replay: Optional[str] = None) -> httpx.Response:
        return await self._request("DELETE", f"/{table}", params={"id": f"eq.{row_id}"}, replay=replay)

    async def probe(self) -> bool:
        """Cheap reachability read: select one id from one table."""
        try:
            await self._request("GET", f"/{PROBE_TABLE}", params={"select": "id", "limit": "1"})
        except (RemoteUnavailableError, RemoteSyncError) as e:
            logger.debug("Reachability probe failed: %s", e.message)
            return False
        return True

    async def apply(
        self,
        operation: str,
        entity: str,
        entity_id: Optional[int],
        data: Dict[str, Any],
        replay: Optional[str] = None,
    ) -> httpx.Response:
        """Replay one queued mutation."""
        table = table_for(entity)
        if operation == SyncOperation.CREATE.value:
            return await self.insert(table, data, replay=replay)
        if entity_id is None:
            raise LedgerValidationError(f"{operation} of {entity} requires an entity id")
        if operation == SyncOperation.UPDATE.value:
            return await self.update(table, entity_id, data, replay=replay)
        if operation == SyncOperation.DELETE.value:
            return await self.delete(table, entity_id, replay=replay)
        raise LedgerValidationError(f"Unknown sync operation '{operation}'")

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send a prebuilt request (held-request replay). Error responses are returned, not raised."""
        try:
            return await self._client.send(request)
        except httpx.TransportError as e:
            raise RemoteUnavailableError(f"{request.method} {request.url}: {e}") from e
