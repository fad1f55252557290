# File: backend/tests/keythoughts/test_sync_coordinator.py

import asyncio
import time

import pytest

from app.core.exceptions import NotFoundError
from app.models.block import ContentBlock, SyncResult
from app.services.keythoughts.block_tree import BlockTree
from app.services.keythoughts.sync_coordinator import SyncCoordinator

SCOPE = ("user-1", "page-1")


class GatedSynchronizer:
    """Synchronizer palsu yang bisa ditahan sampai gate dibuka."""

    def __init__(self, open_gate: bool = True):
        self.runs = 0
        self.active = 0
        self.max_active = 0
        self.seen_sizes = []
        self.started = asyncio.Event()
        self.gate = asyncio.Event()
        if open_gate:
            self.gate.set()

    async def sync(self, tree, user_id, page_id):
        self.runs += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.seen_sizes.append(len(tree))
        self.started.set()
        try:
            await self.gate.wait()
        finally:
            self.active -= 1
        return SyncResult(status="success", upserted=len(tree))


def make_coordinator(synchronizer, debounce=0.05):
    coordinator = SyncCoordinator(debounce_seconds=debounce)
    tree = BlockTree([ContentBlock(id="root")])
    coordinator.register(SCOPE, tree, synchronizer)
    return coordinator, tree


async def test_concurrent_sync_requests_are_coalesced():
    synchronizer = GatedSynchronizer(open_gate=False)
    coordinator, tree = make_coordinator(synchronizer)

    first = asyncio.create_task(coordinator.sync_now(SCOPE))
    await synchronizer.started.wait()

    tree.add_block(content="edited while syncing")
    second = asyncio.create_task(coordinator.sync_now(SCOPE))
    third = asyncio.create_task(coordinator.sync_now(SCOPE))
    await asyncio.sleep(0)
    synchronizer.gate.set()

    results = await asyncio.gather(first, second, third)

    assert synchronizer.runs == 2
    assert synchronizer.max_active == 1
    assert synchronizer.seen_sizes == [1, 2]
    # semua caller menerima hasil pass terakhir
    assert [r.upserted for r in results] == [2, 2, 2]
    assert coordinator.last_result(SCOPE).upserted == 2


async def test_sequential_sync_requests_each_run():
    synchronizer = GatedSynchronizer()
    coordinator, _ = make_coordinator(synchronizer)

    await coordinator.sync_now(SCOPE)
    await coordinator.sync_now(SCOPE)

    assert synchronizer.runs == 2


async def test_debounce_collapses_rapid_edits():
    synchronizer = GatedSynchronizer()
    coordinator, _ = make_coordinator(synchronizer, debounce=0.05)

    for _ in range(3):
        coordinator.schedule(SCOPE)
        await asyncio.sleep(0.01)
    assert coordinator.has_pending(SCOPE)

    await asyncio.sleep(0.2)

    assert synchronizer.runs == 1
    assert not coordinator.has_pending(SCOPE)


async def test_sync_now_cancels_pending_timer():
    synchronizer = GatedSynchronizer()
    coordinator, _ = make_coordinator(synchronizer, debounce=0.05)

    coordinator.schedule(SCOPE)
    await coordinator.sync_now(SCOPE)
    await asyncio.sleep(0.15)

    assert synchronizer.runs == 1


async def test_flush_runs_pending_syncs_immediately():
    synchronizer = GatedSynchronizer()
    coordinator, _ = make_coordinator(synchronizer, debounce=30)

    coordinator.schedule(SCOPE)
    results = await coordinator.flush()

    assert synchronizer.runs == 1
    assert [r.status for r in results] == ["success"]
    assert not coordinator.has_pending(SCOPE)


async def test_forget_drops_scope_and_pending_timer():
    synchronizer = GatedSynchronizer()
    coordinator, _ = make_coordinator(synchronizer, debounce=0.05)

    coordinator.schedule(SCOPE)
    await coordinator.forget(SCOPE)
    await asyncio.sleep(0.15)

    assert synchronizer.runs == 0
    assert coordinator.tree_for(SCOPE) is None


async def test_unknown_scope_raises_not_found():
    coordinator = SyncCoordinator(debounce_seconds=0.01)
    with pytest.raises(NotFoundError):
        await coordinator.sync_now(("nobody", None))


async def test_shutdown_flushes_and_clears():
    synchronizer = GatedSynchronizer()
    coordinator, _ = make_coordinator(synchronizer, debounce=30)
    coordinator.schedule(SCOPE)

    await coordinator.shutdown()

    assert synchronizer.runs == 1
    assert coordinator.tree_for(SCOPE) is None


class FailingSynchronizer:
    async def sync(self, tree, user_id, page_id):
        return SyncResult(status="failed", error="storage down")


async def test_register_keeps_existing_tree():
    coordinator, tree = make_coordinator(GatedSynchronizer())

    kept = coordinator.register(SCOPE, BlockTree([ContentBlock(id="other")]), GatedSynchronizer())

    assert kept is tree
    assert coordinator.tree_for(SCOPE) is tree


async def test_concurrent_loads_run_loader_once():
    coordinator = SyncCoordinator(debounce_seconds=30)
    calls = []

    async def loader():
        calls.append(1)
        await asyncio.sleep(0.01)
        return BlockTree([ContentBlock(id=f"root-{len(calls)}")])

    trees = await asyncio.gather(*(
        coordinator.get_or_load(SCOPE, loader, GatedSynchronizer()) for _ in range(3)
    ))

    assert len(calls) == 1
    assert trees[0] is trees[1] is trees[2] is coordinator.tree_for(SCOPE)


async def test_failed_load_is_not_cached():
    coordinator = SyncCoordinator(debounce_seconds=30)

    async def broken_loader():
        raise RuntimeError("select failed")

    async def loader():
        return BlockTree([ContentBlock(id="root")])

    with pytest.raises(RuntimeError):
        await coordinator.get_or_load(SCOPE, broken_loader, GatedSynchronizer())
    tree = await coordinator.get_or_load(SCOPE, loader, GatedSynchronizer())

    assert "root" in tree


async def test_evict_idle_drops_only_saved_trees_past_ttl():
    coordinator = SyncCoordinator(debounce_seconds=30, idle_ttl_seconds=60)
    saved, pending, failed = ("u", "saved"), ("u", "pending"), ("u", "failed")
    coordinator.register(saved, BlockTree([ContentBlock(id="a")]), GatedSynchronizer())
    coordinator.register(pending, BlockTree([ContentBlock(id="b")]), GatedSynchronizer())
    coordinator.register(failed, BlockTree([ContentBlock(id="c")]), FailingSynchronizer())

    coordinator.schedule(saved)
    await coordinator.sync_now(saved)
    coordinator.schedule(pending)
    coordinator.schedule(failed)
    await coordinator.sync_now(failed)

    assert coordinator.evict_idle() == []

    evicted = coordinator.evict_idle(now=time.monotonic() + 61)

    assert evicted == [saved]
    assert coordinator.tree_for(saved) is None
    assert coordinator.tree_for(pending) is not None
    assert coordinator.tree_for(failed) is not None
    await coordinator.shutdown()


async def test_evicted_scope_is_reloaded_on_next_access():
    coordinator = SyncCoordinator(debounce_seconds=30, idle_ttl_seconds=0)
    loads = []

    async def loader():
        loads.append(1)
        return BlockTree([ContentBlock(id=f"root-{len(loads)}")])

    first = await coordinator.get_or_load(SCOPE, loader, GatedSynchronizer())
    assert coordinator.evict_idle() == [SCOPE]
    second = await coordinator.get_or_load(SCOPE, loader, GatedSynchronizer())

    assert len(loads) == 2
    assert first is not second
    assert "root-2" in second
