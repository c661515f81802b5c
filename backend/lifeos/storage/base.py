from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

Row = Dict[str, Any]

# PostgREST operator names; LocalStore implements the same set
OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "is", "in")


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"unsupported filter operator: {self.op}")


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column, "gte", value)


def lte(column: str, value: Any) -> Filter:
    return Filter(column, "lte", value)


def is_null(column: str) -> Filter:
    return Filter(column, "is", None)


def in_(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, "in", tuple(values))


class PrimaryStore(ABC):
    """Row CRUD over owner-scoped tables.

    Implementations raise ``NotFound`` / ``SchemaMismatch`` /
    ``PersistenceError`` from ``lifeos.errors``. Update and delete return the
    affected rows; an empty list means nothing matched.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        *,
        order: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        raise NotImplementedError

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        raise NotImplementedError

    @abstractmethod
    async def update(self, table: str, filters: Sequence[Filter], values: Row) -> List[Row]:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        raise NotImplementedError

    async def select_one(self, table: str, filters: Sequence[Filter]) -> Optional[Row]:
        rows = await self.select(table, filters, limit=1)
        return rows[0] if rows else None
