# File: backend/tests/keythoughts/test_history_service.py

import json
from datetime import datetime, timedelta, timezone

import pytest

from app.services.keythoughts.history_service import HistoryService, parse_snapshot


@pytest.fixture
def history(db, user_id):
    HistoryService._last_cleanup_day = None
    return HistoryService(db, user_id)


async def test_unchanged_content_is_not_recorded(history, db, page_id):
    assert await history.record_block_change(page_id, "b1", "same", "same") is False
    assert db.tables["block_history"] == []


async def test_write_failures_are_swallowed(history, db, page_id):
    db.fail("insert", "block_history")

    assert await history.record_block_change(page_id, "b1", "a", "b") is False
    assert await history.manual_snapshot(page_id, [{"id": "x"}]) is False


async def test_manual_snapshot_stores_whole_tree(history, db, user_id, page_id):
    tree = [{"id": "a", "content": "A", "children": []}]

    assert await history.manual_snapshot(page_id, tree, "before trip")

    entry = db.tables["block_history"][0]
    assert entry["block_id"] is None
    assert entry["user_id"] == user_id
    assert entry["action"] == "manual_snapshot"
    assert entry["description"] == "before trip"
    assert json.loads(entry["content_after"]) == tree


async def test_fetch_history_newest_first_with_limit(history, db, page_id):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    db.seed("block_history", [
        {"id": f"h{i}", "page_id": page_id, "action": "update",
         "created_at": (base + timedelta(minutes=i)).isoformat()}
        for i in range(5)
    ] + [{"id": "other", "page_id": "another", "action": "update", "created_at": base.isoformat()}])

    entries = await history.fetch_history(page_id, limit=3)

    assert [e.id for e in entries] == ["h4", "h3", "h2"]


async def test_cleanup_runs_once_per_day(history, db, page_id):
    now = datetime.now(timezone.utc)
    db.seed("block_history", [
        {"id": "old", "page_id": page_id, "action": "update",
         "created_at": (now - timedelta(days=45)).isoformat()},
        {"id": "recent", "page_id": page_id, "action": "update",
         "created_at": (now - timedelta(days=2)).isoformat()},
    ])

    assert await history.cleanup_old_history(30) == 1
    assert [h["id"] for h in db.tables["block_history"]] == ["recent"]

    await history.cleanup_old_history(30)
    assert len(db.calls_for("delete", "block_history")) == 1

    await history.cleanup_old_history(30, force=True)
    assert len(db.calls_for("delete", "block_history")) == 2


def test_parse_snapshot_accepts_string_or_list():
    assert parse_snapshot('[{"id": "a"}]') == [{"id": "a"}]
    assert parse_snapshot([{"id": "a"}]) == [{"id": "a"}]
    assert parse_snapshot("not json") is None
    assert parse_snapshot('{"id": "a"}') is None
