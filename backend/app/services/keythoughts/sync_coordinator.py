# File: backend/app/services/keythoughts/sync_coordinator.py
# Debounce + single-flight sinkronisasi per scope (user_id, page_id).

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from app.core.exceptions import NotFoundError
from app.models.block import SyncResult
from app.services.keythoughts.block_tree import BlockTree
from app.services.keythoughts.synchronizer import TreeSynchronizer

logger = logging.getLogger(__name__)

Scope = Tuple[str, Optional[str]]

DEFAULT_DEBOUNCE_SECONDS = 5.0
DEFAULT_IDLE_TTL_SECONDS = 900.0


@dataclass
class _ScopeState:
    tree: BlockTree
    synchronizer: TreeSynchronizer
    timer: Optional[asyncio.Task] = None
    inflight: Optional[asyncio.Task] = None
    dirty: bool = False
    unsaved: bool = False
    last_result: Optional[SyncResult] = None
    last_used: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.last_used = time.monotonic()

    def is_idle(self) -> bool:
        """Tidak ada timer, run, maupun edit yang belum tersimpan."""
        running = self.inflight is not None and not self.inflight.done()
        return self.timer is None and not running and not self.unsaved


class SyncCoordinator:
    """
    Pemilik tree in-memory per page dan penjadwal sinkronisasinya.

    - schedule(): edit baru me-reset timer debounce.
    - sync_now(): paling banyak SATU run synchronizer per scope. Jika ada
      run yang sedang berjalan, scope ditandai 'dirty' dan driver yang
      sedang berjalan melakukan satu pass lagi dengan tree terbaru;
      semua caller menunggu hasil akhir yang sama.
    - Timer hanya bisa dibatalkan selama masih menunggu; begitu sync
      dimulai, timer dilepas.
    - get_or_load(): load dari storage single-flight per scope, jadi
      request yang datang bersamaan memegang tree yang sama.
    - evict_idle(): tree yang sudah tersimpan dan lama tidak dipakai
      dibuang (dipanggil job scheduler).
    """

    def __init__(
        self,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        idle_ttl_seconds: float = DEFAULT_IDLE_TTL_SECONDS
    ):
        self.debounce_seconds = debounce_seconds
        self.idle_ttl_seconds = idle_ttl_seconds
        self._scopes: Dict[Scope, _ScopeState] = {}
        self._loading: Dict[Scope, asyncio.Task] = {}

    # --- Registry ---

    def register(self, scope: Scope, tree: BlockTree, synchronizer: TreeSynchronizer) -> BlockTree:
        """Mendaftarkan tree scope. Jika scope sudah punya tree, tree lama yang dipakai."""
        state = self._scopes.get(scope)
        if state is None:
            state = _ScopeState(tree=tree, synchronizer=synchronizer)
            self._scopes[scope] = state
        else:
            state.synchronizer = synchronizer
            state.touch()
        return state.tree

    async def get_or_load(
        self,
        scope: Scope,
        loader: Callable[[], Awaitable[BlockTree]],
        synchronizer: TreeSynchronizer
    ) -> BlockTree:
        """
        Tree milik scope. Jika belum ada di memori, loader dijalankan satu
        kali saja; request lain untuk scope yang sama menunggu task yang sama.
        """
        state = self._scopes.get(scope)
        if state is not None:
            state.synchronizer = synchronizer
            state.touch()
            return state.tree

        task = self._loading.get(scope)
        if task is None:
            task = asyncio.create_task(self._load(scope, loader, synchronizer))
            self._loading[scope] = task
        else:
            logger.debug(f"Scope {scope} sedang dimuat, menunggu load yang sama.")
        return await asyncio.shield(task)

    async def _load(
        self,
        scope: Scope,
        loader: Callable[[], Awaitable[BlockTree]],
        synchronizer: TreeSynchronizer
    ) -> BlockTree:
        try:
            tree = await loader()
            return self.register(scope, tree, synchronizer)
        finally:
            self._loading.pop(scope, None)

    def bind(self, scope: Scope, synchronizer: TreeSynchronizer) -> None:
        """Memakai synchronizer terbaru (client milik request terakhir)."""
        state = self._require(scope)
        state.synchronizer = synchronizer
        state.touch()

    def tree_for(self, scope: Scope) -> Optional[BlockTree]:
        state = self._scopes.get(scope)
        return state.tree if state else None

    def has_pending(self, scope: Scope) -> bool:
        state = self._scopes.get(scope)
        return bool(state and state.timer is not None)

    def last_result(self, scope: Scope) -> Optional[SyncResult]:
        state = self._scopes.get(scope)
        return state.last_result if state else None

    async def forget(self, scope: Scope) -> None:
        """Membuang state scope (mis. page dihapus). Load dan run yang berjalan ditunggu selesai."""
        loading = self._loading.get(scope)
        if loading is not None:
            await asyncio.gather(asyncio.shield(loading), return_exceptions=True)
        state = self._scopes.pop(scope, None)
        if state is None:
            return
        self._cancel_timer(state)
        if state.inflight is not None and not state.inflight.done():
            await asyncio.shield(state.inflight)
        logger.debug(f"State sinkronisasi untuk scope {scope} dibuang.")

    def evict_idle(self, now: Optional[float] = None) -> List[Scope]:
        """
        Membuang tree yang sudah tersimpan dan tidak dipakai selama
        idle_ttl_seconds. Request berikutnya memuat ulang dari storage.
        """
        now = time.monotonic() if now is None else now
        evicted = [
            scope for scope, state in self._scopes.items()
            if state.is_idle() and now - state.last_used >= self.idle_ttl_seconds
        ]
        for scope in evicted:
            del self._scopes[scope]
        if evicted:
            logger.info(f"{len(evicted)} tree idle dibuang dari memori.")
        return evicted

    def _require(self, scope: Scope) -> _ScopeState:
        state = self._scopes.get(scope)
        if state is None:
            raise NotFoundError("Sync scope", f"{scope[0]}/{scope[1]}")
        return state

    # --- Debounce ---

    @staticmethod
    def _cancel_timer(state: _ScopeState) -> None:
        if state.timer is not None:
            state.timer.cancel()
            state.timer = None

    def schedule(self, scope: Scope) -> None:
        state = self._require(scope)
        self._cancel_timer(state)
        state.unsaved = True
        state.touch()
        state.timer = asyncio.create_task(self._debounce(scope, state))

    async def _debounce(self, scope: Scope, state: _ScopeState) -> None:
        await asyncio.sleep(self.debounce_seconds)
        # Sejak titik ini timer tidak bisa dibatalkan lagi
        state.timer = None
        try:
            result = await self.sync_now(scope)
        except Exception as e:
            logger.error(f"Sync terjadwal untuk scope {scope} gagal: {e}", exc_info=True)
            return
        if not result.ok:
            logger.warning(f"Sync terjadwal untuk scope {scope} gagal: {result.error}")

    # --- Single-flight ---

    async def sync_now(self, scope: Scope) -> SyncResult:
        state = self._require(scope)
        self._cancel_timer(state)
        state.touch()

        if state.inflight is not None and not state.inflight.done():
            state.dirty = True
            logger.debug(f"Sync scope {scope} sedang berjalan, ditandai dirty.")
        else:
            state.dirty = False
            state.inflight = asyncio.create_task(self._drive(scope, state))

        # shield: caller yang dibatalkan tidak ikut membatalkan run bersama
        return await asyncio.shield(state.inflight)

    async def _drive(self, scope: Scope, state: _ScopeState) -> SyncResult:
        user_id, page_id = scope
        passes = 0
        while True:
            state.dirty = False
            state.unsaved = False
            passes += 1
            try:
                result = await state.synchronizer.sync(state.tree, user_id, page_id)
            except Exception:
                state.unsaved = True
                raise
            if not result.ok:
                state.unsaved = True
            if not state.dirty:
                break
        if passes > 1:
            logger.debug(f"Sync scope {scope} digabung menjadi {passes} pass.")
        state.last_result = result
        return result

    # --- Lifecycle ---

    async def flush(self) -> List[SyncResult]:
        """Menjalankan semua sync yang masih menunggu debounce sekarang juga."""
        pending = [scope for scope, state in self._scopes.items() if state.timer is not None]
        results: List[SyncResult] = []
        for scope in pending:
            results.append(await self.sync_now(scope))
        if pending:
            logger.info(f"Flush {len(pending)} sync yang tertunda.")
        return results

    async def shutdown(self) -> None:
        if self._loading:
            await asyncio.gather(*self._loading.values(), return_exceptions=True)
        await self.flush()
        inflight = [s.inflight for s in self._scopes.values() if s.inflight and not s.inflight.done()]
        if inflight:
            await asyncio.gather(*inflight, return_exceptions=True)
        for state in self._scopes.values():
            self._cancel_timer(state)
        self._scopes.clear()
        logger.info("SyncCoordinator dihentikan.")
