# File: backend/app/db/persistence.py
# Kapabilitas persistence yang diinjeksikan ke service (bukan singleton global).

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from supabase.client import AsyncClient
from postgrest import APIResponse


@dataclass(frozen=True)
class Filter:
    column: str
    op: str  # "eq" | "is" | "in" | "lt"
    value: Any = None


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)

def is_null(column: str) -> Filter:
    return Filter(column, "is", None)

def in_(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, "in", list(values))

def lt(column: str, value: Any) -> Filter:
    return Filter(column, "lt", value)

def eq_or_null(column: str, value: Optional[Any]) -> Filter:
    """Filter 'eq' jika value ada, 'is null' jika None."""
    return is_null(column) if value is None else eq(column, value)


class IPersistence(ABC):
    """
    Interface CRUD minimal yang dibutuhkan core.
    Semua method async; error dari backend dilempar apa adanya,
    pembungkusan ke DatabaseError dilakukan di layer 'db/queries'.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        columns: str = "*",
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def update(
        self, table: str, patch: Dict[str, Any], filters: Sequence[Filter]
    ) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def delete(self, table: str, filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def upsert(
        self, table: str, rows: List[Dict[str, Any]], on_conflict: str = "id"
    ) -> List[Dict[str, Any]]:
        pass


class SupabasePersistence(IPersistence):
    """Implementasi IPersistence di atas Supabase AsyncClient (postgrest)."""

    def __init__(self, client: AsyncClient):
        self.client = client

    @staticmethod
    def _apply_filters(query, filters: Sequence[Filter]):
        for f in filters:
            if f.op == "eq":
                query = query.eq(f.column, f.value)
            elif f.op == "is":
                query = query.is_(f.column, "null")
            elif f.op == "in":
                query = query.in_(f.column, f.value)
            elif f.op == "lt":
                query = query.lt(f.column, f.value)
            else:
                raise ValueError(f"Operator filter tidak dikenal: {f.op}")
        return query

    async def select(self, table, filters=(), order_by=None, descending=False, columns="*", limit=None):
        query = self._apply_filters(self.client.table(table).select(columns), filters)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)
        response: APIResponse = await query.execute()
        return response.data or []

    async def insert(self, table, rows):
        response: APIResponse = await self.client.table(table).insert(rows).execute()
        return response.data or []

    async def update(self, table, patch, filters):
        query = self._apply_filters(self.client.table(table).update(patch), filters)
        response: APIResponse = await query.execute()
        return response.data or []

    async def delete(self, table, filters):
        query = self._apply_filters(self.client.table(table).delete(), filters)
        response: APIResponse = await query.execute()
        return response.data or []

    async def upsert(self, table, rows, on_conflict="id"):
        response: APIResponse = await self.client.table(table) \
            .upsert(rows, on_conflict=on_conflict) \
            .execute()
        return response.data or []
