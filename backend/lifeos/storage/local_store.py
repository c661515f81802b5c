import asyncio
import copy
import json
import logging
import os
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from lifeos.errors import PersistenceError
from lifeos.storage.base import Filter, PrimaryStore, Row

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _as_instant(value: Any) -> Any:
    """Make ISO strings comparable as points in time; other values pass through."""
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


def _matches(row: Row, f: Filter) -> bool:
    current = row.get(f.column)
    wanted = _plain(f.value)
    if f.op == "is":
        return current is wanted
    if f.op == "eq":
        return current == wanted
    if f.op == "neq":
        return current != wanted
    if f.op == "in":
        return current in [_plain(v) for v in wanted]
    if current is None:
        return False
    left, right = _as_instant(current), _as_instant(wanted)
    try:
        if f.op == "gt":
            return left > right
        if f.op == "gte":
            return left >= right
        if f.op == "lt":
            return left < right
        return left <= right
    except TypeError:
        return False


class LocalStore(PrimaryStore):
    """Tables kept in memory and, when ``path`` is set, mirrored to a JSON file.

    Used for anonymous sessions (the browser app kept this data in
    localStorage) and as the primary store in tests.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path or None
        self._tables: Dict[str, List[Row]] = {}
        if self._path and os.path.exists(self._path):
            try:
                with open(self._path, "r", encoding="utf-8") as fh:
                    loaded = json.load(fh)
            except (OSError, ValueError) as e:
                raise PersistenceError(f"Failed to read local store {self._path}: {e}") from e
            if isinstance(loaded, dict):
                self._tables = loaded

    def _save(self, tables: Dict[str, List[Row]]) -> None:
        if not self._path:
            return
        try:
            folder = os.path.dirname(self._path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(tables, fh, ensure_ascii=False, indent=2)
        except OSError as e:
            raise PersistenceError(f"Failed to write local store {self._path}: {e}") from e

    def _commit(self, table: str, rows: List[Row]) -> None:
        """Swap in the new rows for ``table`` once they are on disk."""
        tables = {**self._tables, table: rows}
        self._save(tables)
        self._tables = tables

    def _rows(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        return [r for r in self._tables.get(table, []) if all(_matches(r, f) for f in filters)]

    async def select(self, table, filters=(), *, order=None, desc=False, limit=None) -> List[Row]:
        await asyncio.sleep(0)
        rows = self._rows(table, filters)
        if order:
            present = [r for r in rows if r.get(order) is not None]
            missing = [r for r in rows if r.get(order) is None]
            present.sort(key=lambda r: _as_instant(r[order]), reverse=desc)
            rows = present + missing
        if limit is not None:
            rows = rows[: int(limit)]
        return copy.deepcopy(rows)

    async def insert(self, table: str, row: Row) -> Row:
        await asyncio.sleep(0)
        now = _now_iso()
        stored = {k: _plain(v) for k, v in row.items()}
        stored.setdefault("id", f"local_{table}_{uuid4().hex}")
        stored.setdefault("created_at", now)
        stored.setdefault("updated_at", now)
        self._commit(table, [*self._tables.get(table, []), stored])
        return copy.deepcopy(stored)

    async def update(self, table: str, filters: Sequence[Filter], values: Row) -> List[Row]:
        await asyncio.sleep(0)
        changed = {k: _plain(v) for k, v in values.items()}
        now = _now_iso()
        rows, touched = [], []
        for r in self._tables.get(table, []):
            if all(_matches(r, f) for f in filters):
                r = {**r, **changed, "updated_at": now}
                touched.append(r)
            rows.append(r)
        if touched:
            self._commit(table, rows)
        return copy.deepcopy(touched)

    async def delete(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        await asyncio.sleep(0)
        doomed = self._rows(table, filters)
        if doomed:
            ids = {id(r) for r in doomed}
            self._commit(table, [r for r in self._tables[table] if id(r) not in ids])
        return copy.deepcopy(doomed)
