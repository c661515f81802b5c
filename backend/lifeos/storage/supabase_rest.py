import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from lifeos.config import Settings
from lifeos.errors import NotFound, PersistenceError, SchemaMismatch
from lifeos.storage.base import Filter, PrimaryStore, Row

logger = logging.getLogger(__name__)

_HTTPX_TIMEOUT = httpx.Timeout(connect=10.0, read=20.0, write=10.0, pool=20.0)
_TRANSIENT = (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.ConnectError)

# Postgres / PostgREST codes that mean "the request does not fit the schema"
_SCHEMA_CODES = {"42P01", "42703", "22P02", "PGRST204", "PGRST205"}
_NOT_FOUND_CODES = {"PGRST116"}


def _encode(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return "(" + ",".join(_encode(v) for v in value) + ")"
    return str(value)


def _query(
    filters: Sequence[Filter],
    *,
    select: Optional[str] = None,
    order: Optional[str] = None,
    desc: bool = False,
    limit: Optional[int] = None,
) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    if select:
        params.append(("select", select))
    for f in filters:
        params.append((f.column, f"{f.op}.{_encode(f.value)}"))
    if order:
        params.append(("order", f"{order}.{'desc' if desc else 'asc'}"))
    if limit is not None:
        params.append(("limit", str(int(limit))))
    return params


def _rows(data: Any) -> List[Row]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and data:
        return [data]
    return []


def _error_from_response(resp: httpx.Response, table: str) -> Exception:
    body: Dict[str, Any] = {}
    try:
        parsed = resp.json()
        if isinstance(parsed, dict):
            body = parsed
    except ValueError:
        pass
    code = body.get("code")
    message = body.get("message") or body.get("details") or body.get("hint") or resp.text[:200]
    if code in _NOT_FOUND_CODES or (resp.status_code == 404 and not code):
        return NotFound(table, message or "row")
    if code == "42P01" or code == "PGRST205":
        message = f"Table '{table}' does not exist. Please run the SQL schema in Supabase."
    if code in _SCHEMA_CODES or (isinstance(code, str) and code.startswith("23")):
        return SchemaMismatch(message, code=code, status=resp.status_code)
    return PersistenceError(
        message or f"Supabase request failed with status {resp.status_code}",
        code=code,
        status=resp.status_code,
    )


class SupabaseRestStore(PrimaryStore):
    """PostgREST access with the caller's JWT, so RLS applies to every call."""

    def __init__(
        self,
        settings: Settings,
        user_token: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not settings.supabase_configured:
            raise PersistenceError("Supabase not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY.")
        self._base = f"{settings.supabase_url}/rest/v1"
        self._anon_key = settings.supabase_anon_key
        self._token = user_token
        self._retries = settings.http_retries
        self._transport = transport

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._token}",
            "apikey": self._anon_key,
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Any = None,
    ) -> Any:
        url = f"{self._base}/{table}"
        for attempt in range(self._retries + 1):
            try:
                async with httpx.AsyncClient(timeout=_HTTPX_TIMEOUT, transport=self._transport) as client:
                    resp = await client.request(method, url, headers=self._headers(), params=params, json=json)
                break
            except _TRANSIENT as e:
                if attempt < self._retries:
                    await asyncio.sleep(0.5 * (2 ** attempt))
                    continue
                raise PersistenceError(f"Failed to reach Supabase: {e}") from e
            except httpx.HTTPError as e:
                raise PersistenceError(f"Supabase request failed: {e}") from e

        if resp.status_code >= 400:
            err = _error_from_response(resp, table)
            logger.warning("[store] %s %s -> %s: %s", method, table, resp.status_code, err)
            raise err
        if resp.status_code == 204 or not resp.content:
            return []
        return resp.json()

    async def select(self, table, filters=(), *, order=None, desc=False, limit=None) -> List[Row]:
        data = await self._request(
            "GET", table, params=_query(filters, select="*", order=order, desc=desc, limit=limit)
        )
        return data if isinstance(data, list) else []

    async def insert(self, table: str, row: Row) -> Row:
        data = await self._request("POST", table, json=row)
        # return=representation answers with a one-element list
        if isinstance(data, list) and data:
            return data[0]
        if isinstance(data, dict) and data:
            return data
        raise PersistenceError(f"Failed to create {table} row - no data returned")

    async def update(self, table: str, filters: Sequence[Filter], values: Row) -> List[Row]:
        data = await self._request("PATCH", table, params=_query(filters), json=values)
        return _rows(data)

    async def delete(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        data = await self._request("DELETE", table, params=_query(filters))
        return _rows(data)
