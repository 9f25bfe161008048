"""
Service-role client for the managed Postgres REST API (PostgREST dialect).

Only the handful of operations the identity code needs: single-row lookup,
insert (plain, skip-if-exists, or upsert), update, delete and RPC. Equality
filters are passed as ``{column: value}``.

Every non-2xx response and every transport failure raises
``DataStoreError``. Error text from the store is for logs only and must not
reach a response body or redirect URL.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class DataStoreError(Exception):
    def __init__(
        self, message: str, *, status: int | None = None, code: str | None = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


def _eq(filters: Mapping[str, Any]) -> dict[str, str]:
    return {col: f"eq.{val}" for col, val in filters.items()}


class DataStore:
    def __init__(self, client: httpx.AsyncClient, rest_url: str, service_key: str) -> None:
        self._client = client
        self._base = rest_url.rstrip("/")
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Accept": "application/json",
        }

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            resp = await self._client.request(
                method, f"{self._base}/{path}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            raise DataStoreError(f"transport error: {type(e).__name__}") from e

        if resp.status_code >= 400:
            code = message = None
            try:
                body = resp.json()
                if isinstance(body, dict):
                    code, message = body.get("code"), body.get("message")
            except ValueError:
                pass
            logger.warning(
                "data store error",
                extra={
                    "meta": {
                        "method": method,
                        "path": path,
                        "status": resp.status_code,
                        "code": code,
                    }
                },
            )
            raise DataStoreError(
                message or f"HTTP {resp.status_code}",
                status=resp.status_code,
                code=str(code) if code is not None else None,
            )
        return resp

    async def select_one(
        self, table: str, filters: Mapping[str, Any], columns: str = "id"
    ) -> dict[str, Any] | None:
        params = {**_eq(filters), "select": columns, "limit": "1"}
        resp = await self._send("GET", table, params=params)
        rows = resp.json() if resp.content else []
        return rows[0] if rows else None

    async def insert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        on_conflict: str | None = None,
        resolution: str | None = None,
    ) -> None:
        """Insert ``row``.

        ``resolution`` is ``"ignore-duplicates"`` (skip if the conflict
        target exists) or ``"merge-duplicates"`` (upsert).
        """
        prefer = "return=minimal"
        if resolution:
            prefer = f"resolution={resolution},{prefer}"
        params = {"on_conflict": on_conflict} if on_conflict else None
        await self._send("POST", table, params=params, json=dict(row), prefer=prefer)

    async def update(
        self, table: str, filters: Mapping[str, Any], values: Mapping[str, Any]
    ) -> None:
        await self._send(
            "PATCH", table, params=_eq(filters), json=dict(values), prefer="return=minimal"
        )

    async def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        await self._send("DELETE", table, params=_eq(filters), prefer="return=minimal")

    async def rpc(self, function: str, params: Mapping[str, Any]) -> Any:
        resp = await self._send("POST", f"rpc/{function}", json=dict(params))
        return resp.json() if resp.content else None
