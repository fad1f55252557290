# File: backend/tests/conftest.py

import os
import uuid
from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

# Settings() dibaca saat import; isi default sebelum modul 'app' diimpor
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")

from app.db.persistence import Filter, IPersistence  # noqa: E402


class InjectedFailure(RuntimeError):
    pass


class InMemoryPersistence(IPersistence):
    """
    Fake IPersistence di atas dict, dengan pencatatan panggilan
    (self.calls) dan injeksi kegagalan (fail()).
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.calls: List[Tuple[str, str, Any]] = []
        self._counts: Counter = Counter()
        self._failures: Dict[Tuple[str, str], Optional[int]] = {}

    # --- Helper untuk test ---

    def fail(self, op: str, table: str, on_call: Optional[int] = None) -> None:
        """Gagal pada panggilan ke-n (1-based) untuk (op, table), atau selalu jika None."""
        self._failures[(op, table)] = on_call

    def heal(self) -> None:
        self._failures.clear()

    def calls_for(self, op: str, table: str) -> List[Any]:
        return [payload for call_op, call_table, payload in self.calls if (call_op, call_table) == (op, table)]

    def seed(self, table: str, rows: Sequence[Dict[str, Any]]) -> None:
        self.tables[table].extend(dict(row) for row in rows)

    def _record(self, op: str, table: str, payload: Any) -> None:
        self.calls.append((op, table, payload))
        key = (op, table)
        self._counts[key] += 1
        if key in self._failures:
            on_call = self._failures[key]
            if on_call is None or on_call == self._counts[key]:
                raise InjectedFailure(f"injected failure: {op} {table} #{self._counts[key]}")

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Sequence[Filter]) -> bool:
        for f in filters:
            value = row.get(f.column)
            if f.op == "eq" and value != f.value:
                return False
            if f.op == "is" and value is not None:
                return False
            if f.op == "in" and value not in f.value:
                return False
            if f.op == "lt" and (value is None or not value < f.value):
                return False
        return True

    @staticmethod
    def _stamp(row: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        return row

    # --- IPersistence ---

    async def select(self, table, filters=(), order_by=None, descending=False, columns="*", limit=None):
        self._record("select", table, list(filters))
        rows = [dict(r) for r in self.tables[table] if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            rows = [{c: r.get(c) for c in wanted} for r in rows]
        return rows

    async def insert(self, table, rows):
        self._record("insert", table, [dict(r) for r in rows])
        inserted = []
        for row in rows:
            row = self._stamp(dict(row))
            row.setdefault("id", str(uuid.uuid4()))
            self.tables[table].append(row)
            inserted.append(dict(row))
        return inserted

    async def update(self, table, patch, filters):
        self._record("update", table, (dict(patch), list(filters)))
        updated = []
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(patch)
                updated.append(dict(row))
        return updated

    async def delete(self, table, filters):
        self._record("delete", table, list(filters))
        kept, removed = [], []
        for row in self.tables[table]:
            (removed if self._matches(row, filters) else kept).append(row)
        self.tables[table] = kept
        return [dict(r) for r in removed]

    async def upsert(self, table, rows, on_conflict="id"):
        self._record("upsert", table, [dict(r) for r in rows])
        keys = [k.strip() for k in on_conflict.split(",")]
        result = []
        for row in rows:
            existing = next(
                (r for r in self.tables[table] if all(r.get(k) == row.get(k) for k in keys)),
                None
            )
            if existing is not None:
                existing.update(row)
                result.append(dict(existing))
            else:
                new_row = self._stamp(dict(row))
                self.tables[table].append(new_row)
                result.append(dict(new_row))
        return result


@pytest.fixture
def db() -> InMemoryPersistence:
    return InMemoryPersistence()

@pytest.fixture
def user_id() -> str:
    return str(uuid.uuid4())

@pytest.fixture
def page_id() -> str:
    return str(uuid.uuid4())
