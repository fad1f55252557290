# File: backend/tests/concurrency/test_concurrent_sync.py
# Simulasi beberapa klien yang mengedit page yang sama secara bersamaan.

import asyncio
import logging

import pytest

from app.models.block import BlockCreate, BlockUpdate
from app.services.keythoughts.keythoughts_service import KeyThoughtsService
from app.services.keythoughts.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)

CLIENTS = 3
EDITS_PER_CLIENT = 5


@pytest.fixture
async def coordinator():
    coordinator = SyncCoordinator(debounce_seconds=0.02)
    yield coordinator
    await coordinator.shutdown()


@pytest.fixture
def slow_db(db):
    """Persistence yang lambat pada upsert, untuk memaksa sync saling tumpang tindih."""
    original_upsert = db.upsert
    state = {"active": 0, "max_active": 0}

    async def slow_upsert(table, rows, on_conflict="id"):
        state["active"] += 1
        state["max_active"] = max(state["max_active"], state["active"])
        try:
            await asyncio.sleep(0.01)
            return await original_upsert(table, rows, on_conflict=on_conflict)
        finally:
            state["active"] -= 1

    db.upsert = slow_upsert
    db.upsert_state = state
    return db


async def simulate_client_edits(service, page_id, client_number):
    for edit_number in range(1, EDITS_PER_CLIENT + 1):
        node = await service.add_block(
            page_id, BlockCreate(content=f"client {client_number} - #{edit_number}")
        )
        await service.update_block(
            page_id, node.id, BlockUpdate(content=f"client {client_number} - #{edit_number} (edited)")
        )
        if edit_number % 2 == 0:
            await service.save_now(page_id)
        else:
            await asyncio.sleep(0.005)


async def test_concurrent_edits_never_overlap_and_converge(slow_db, user_id, page_id, coordinator):
    services = [KeyThoughtsService(slow_db, user_id, coordinator) for _ in range(CLIENTS)]
    tree = await services[0].load_page(page_id)

    await asyncio.gather(*(
        simulate_client_edits(service, page_id, number)
        for number, service in enumerate(services, start=1)
    ))
    result = await services[0].save_now(page_id)
    logger.info(f"Sync terakhir: {result}")

    assert result.status == "success"
    assert slow_db.upsert_state["max_active"] == 1
    stored = {row["id"]: row for row in slow_db.tables["blocks"]}
    expected = {node.id: node.content for node in tree.walk()}
    assert len(expected) == 1 + CLIENTS * EDITS_PER_CLIENT
    assert {block_id: row["content"] for block_id, row in stored.items()} == expected
    assert sorted(row["position"] for row in stored.values()) == list(range(len(expected)))


@pytest.fixture
def slow_select_db(db):
    """Persistence yang select-nya menyerahkan kontrol, agar dua load pertama saling tumpang tindih."""
    original_select = db.select

    async def slow_select(*args, **kwargs):
        await asyncio.sleep(0.01)
        return await original_select(*args, **kwargs)

    db.select = slow_select
    return db


async def test_concurrent_first_loads_share_one_tree(slow_select_db, user_id, page_id, coordinator):
    first = KeyThoughtsService(slow_select_db, user_id, coordinator)
    second = KeyThoughtsService(slow_select_db, user_id, coordinator)

    node_a, node_b = await asyncio.gather(
        first.add_block(page_id, BlockCreate(content="from A")),
        second.add_block(page_id, BlockCreate(content="from B")),
    )
    result = await first.save_now(page_id)

    assert result.status == "success"
    assert len(slow_select_db.calls_for("insert", "blocks")) == 1
    contents = sorted(row["content"] for row in slow_select_db.tables["blocks"])
    assert contents == ["", "from A", "from B"]
    tree = coordinator.tree_for((user_id, page_id))
    assert node_a.id in tree and node_b.id in tree
