# File: backend/app/services/keythoughts/keythoughts_service.py

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from app.core.exceptions import InvalidOperationError, NotFoundError
from app.db.persistence import IPersistence
from app.db.queries.keythoughts import block_queries
from app.models.block import (
    BlockCreate, BlockMove, BlockNode, BlockRecord, BlockUpdate,
    ContentBlock, ReferenceBlock, ReferenceCreate, SyncResult
)
from app.models.history import HistoryAction, RestoreResult
from app.services.keythoughts.block_tree import BlockTree
from app.services.keythoughts.flattener import UPSERT_BATCH_SIZE
from app.services.keythoughts.history_service import HistoryService, parse_snapshot
from app.services.keythoughts.references import enrich_block_references, is_reference_record
from app.services.keythoughts.sync_coordinator import Scope, SyncCoordinator
from app.services.keythoughts.synchronizer import TreeSynchronizer
from app.services.keythoughts.tree_builder import build_tree, new_root_block

logger = logging.getLogger(__name__)

_forest_adapter = TypeAdapter(List[BlockNode])


class KeyThoughtsService:
    """
    Facade per user untuk tree 'key thoughts' satu page.

    Tree dimuat sekali lalu dipegang oleh SyncCoordinator; setiap edit
    mengubah tree in-memory dan menjadwalkan sinkronisasi (debounce).
    """

    def __init__(
        self,
        db: IPersistence,
        user_id: str,
        coordinator: SyncCoordinator,
        history: Optional[HistoryService] = None,
        batch_size: int = UPSERT_BATCH_SIZE
    ):
        self.db = db
        self.user_id = user_id
        self.coordinator = coordinator
        self.history = history or HistoryService(db, user_id)
        self.batch_size = batch_size

    def _scope(self, page_id: Optional[str]) -> Scope:
        return (self.user_id, page_id)

    def _synchronizer(self) -> TreeSynchronizer:
        return TreeSynchronizer(self.db, batch_size=self.batch_size)

    # --- Load ---

    async def load_page(self, page_id: Optional[str]) -> BlockTree:
        """
        Tree page dari memori, atau dimuat dari storage jika belum ada.
        Load bersamaan untuk page yang sama hanya membaca storage sekali.
        """
        return await self.coordinator.get_or_load(
            self._scope(page_id), lambda: self._read_tree(page_id), self._synchronizer()
        )

    async def _read_tree(self, page_id: Optional[str]) -> BlockTree:
        rows = await block_queries.get_blocks_by_page(self.db, self.user_id, page_id)

        if not rows:
            root = new_root_block()
            initial = BlockRecord(
                id=root.id,
                user_id=self.user_id,
                page_id=page_id,
                content="",
                parent_id=None,
                position=0,
                depth=0,
            )
            await block_queries.insert_blocks(self.db, [initial.to_row()])
            logger.info(f"Page {page_id} kosong, block awal {root.id} dibuat.")
            forest = [root]
        else:
            records = [BlockRecord.model_validate(row) for row in rows]
            forest = build_tree(enrich_block_references(records))
            logger.debug(f"Page {page_id} dimuat: {len(records)} block, {len(forest)} root.")

        return BlockTree(forest)

    async def get_tree(self, page_id: Optional[str]) -> BlockTree:
        return await self.load_page(page_id)

    # --- Edit ---

    async def add_block(self, page_id: Optional[str], payload: BlockCreate) -> ContentBlock:
        tree = await self.get_tree(page_id)
        node = tree.add_block(payload.parent_id, payload.index, payload.content, payload.type)
        self.coordinator.schedule(self._scope(page_id))
        return node

    async def update_block(self, page_id: Optional[str], block_id: str, payload: BlockUpdate) -> BlockNode:
        """
        Mengubah konten dan/atau status buka-tutup block.

        Edit konten pada referensi diarahkan ke original. Jika original
        berada di luar page ini, baris original di-update langsung.
        """
        tree = await self.get_tree(page_id)
        node = tree.get(block_id)

        if payload.is_open is not None:
            tree.set_open(block_id, payload.is_open)

        if payload.content is not None:
            history_page_id = page_id
            external = None
            if isinstance(node, ReferenceBlock) and node.original_block_id not in tree:
                external = await block_queries.get_block_by_id(self.db, self.user_id, node.original_block_id)
                if external is None:
                    raise NotFoundError("Block", node.original_block_id)

            target_id, before = tree.update_content(block_id, payload.content)

            if external is not None:
                before = external.get("content")
                history_page_id = external.get("page_id")
                await block_queries.update_block_content(
                    self.db,
                    self.user_id,
                    target_id,
                    payload.content,
                    datetime.now(timezone.utc).isoformat()
                )

            await self.history.record_block_change(history_page_id, target_id, before, payload.content)

        self.coordinator.schedule(self._scope(page_id))
        return tree.get(block_id)

    async def delete_block(self, page_id: Optional[str], block_id: str) -> List[str]:
        tree = await self.get_tree(page_id)
        removed = tree.delete_block(block_id)
        if not tree.roots:
            # Page tidak pernah kosong; sync pada tree kosong akan dilewati
            tree.replace([new_root_block()])
        self.coordinator.schedule(self._scope(page_id))
        return removed

    async def move_block(self, page_id: Optional[str], block_id: str, payload: BlockMove) -> BlockNode:
        tree = await self.get_tree(page_id)
        tree.move_block(block_id, payload.new_parent_id, payload.index)
        self.coordinator.schedule(self._scope(page_id))
        return tree.get(block_id)

    async def create_reference(self, page_id: Optional[str], payload: ReferenceCreate) -> ReferenceBlock:
        tree = await self.get_tree(page_id)
        original_id = payload.original_block_id

        if original_id in tree:
            original = tree.get(original_id)
            if isinstance(original, ReferenceBlock):
                raise InvalidOperationError("Tidak bisa mereferensikan block yang juga referensi.")
            content = original.content
        else:
            row = await block_queries.get_block_by_id(self.db, self.user_id, original_id)
            if row is None:
                raise NotFoundError("Block", original_id)
            record = BlockRecord.model_validate(row)
            if is_reference_record(record):
                raise InvalidOperationError("Tidak bisa mereferensikan block yang juga referensi.")
            content = record.content or ""

        node = tree.add_reference(original_id, content, payload.parent_id, payload.index)
        self.coordinator.schedule(self._scope(page_id))
        return node

    async def replace_tree(self, page_id: Optional[str], forest: List[BlockNode]) -> SyncResult:
        """Mengganti seluruh tree lalu langsung sinkronisasi."""
        tree = await self.get_tree(page_id)
        tree.replace(forest)
        return await self.coordinator.sync_now(self._scope(page_id))

    async def save_now(self, page_id: Optional[str]) -> SyncResult:
        await self.get_tree(page_id)
        return await self.coordinator.sync_now(self._scope(page_id))

    # --- History ---

    async def snapshot(self, page_id: Optional[str], description: Optional[str] = None) -> bool:
        tree = await self.get_tree(page_id)
        return await self.history.manual_snapshot(page_id, tree.snapshot(), description)

    async def restore_version(self, page_id: Optional[str], version_id: str) -> RestoreResult:
        entry = await self.history.get_entry(version_id)
        if entry is None or entry.page_id != page_id:
            raise NotFoundError("History entry", version_id)

        if entry.action == HistoryAction.manual_snapshot.value:
            data = parse_snapshot(entry.content_after)
            if data is None:
                raise InvalidOperationError("Data snapshot tidak valid (bukan list block).")
            try:
                forest = _forest_adapter.validate_python(data)
            except ValidationError as e:
                raise InvalidOperationError(f"Data snapshot tidak valid: {e.error_count()} error.")

            tree = await self.get_tree(page_id)
            restored_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
            await self.history.manual_snapshot(
                page_id, tree.snapshot(), f"Saved before restore ({restored_at})"
            )
            tree.replace(forest)
            result = await self.coordinator.sync_now(self._scope(page_id))
            return RestoreResult(kind="snapshot", sync_status=result.status)

        if not entry.block_id:
            raise InvalidOperationError("Entry history tidak memiliki block_id.")
        if entry.content_after is None:
            raise InvalidOperationError("Entry history tidak memiliki konten untuk dipulihkan.")
        content = entry.content_after if isinstance(entry.content_after, str) else str(entry.content_after)

        await self.update_block(page_id, entry.block_id, BlockUpdate(content=content))
        result = await self.coordinator.sync_now(self._scope(page_id))
        return RestoreResult(kind="block", restored_block_id=entry.block_id, sync_status=result.status)
