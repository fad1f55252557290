# File: backend/app/services/keythoughts/synchronizer.py
# Rekonsiliasi tree in-memory -> baris flat di tabel 'blocks'.

import logging
import time
from typing import Optional

from app.core.exceptions import DatabaseError, SyncBatchError
from app.core.metrics import TREE_SYNC_DURATION, TREE_SYNC_RECORDS, TREE_SYNC_RUNS
from app.db.persistence import IPersistence
from app.db.queries.keythoughts import block_queries
from app.models.block import SyncResult
from app.services.keythoughts.block_tree import BlockTree
from app.services.keythoughts.flattener import (
    UPSERT_BATCH_SIZE, chunked, compute_depths, flatten_forest
)
from app.services.keythoughts.identity import build_id_map

logger = logging.getLogger(__name__)


class TreeSynchronizer:
    """
    Menyimpan seluruh tree satu page sebagai baris flat.

    Urutan langkah (tidak boleh diubah):
      1. hitung ulang depth
      2. bangun tabel remap id (id sementara -> UUID)
      3. flatten
      4. ambil id yang saat ini tersimpan untuk (user, page)
      5. hapus id yang tidak ada lagi di tree
      6. upsert per batch
      7. back-propagation id baru ke tree in-memory

    Tidak ada transaksi lintas batch: batch yang sudah sukses tetap
    tersimpan walaupun batch berikutnya gagal.
    """

    def __init__(self, db: IPersistence, batch_size: int = UPSERT_BATCH_SIZE):
        if batch_size <= 0:
            raise ValueError("batch_size harus > 0")
        self.db = db
        self.batch_size = batch_size

    async def sync(self, tree: BlockTree, user_id: str, page_id: Optional[str]) -> SyncResult:
        if not tree.roots:
            logger.debug(f"Sync dilewati untuk page {page_id}: tree kosong.")
            TREE_SYNC_RUNS.labels(status="skipped").inc()
            return SyncResult(status="skipped")

        started = time.perf_counter()
        batches_applied = 0
        batches_total = 0
        deleted = 0
        batches = []
        try:
            compute_depths(tree.roots)
            id_map = build_id_map(tree.roots)
            records = flatten_forest(tree.roots, id_map, user_id=user_id, page_id=page_id)
            rows = [record.to_row() for record in records]
            batches = list(chunked(rows, self.batch_size))
            batches_total = len(batches)

            stored_ids = await block_queries.get_block_ids_by_page(self.db, user_id, page_id)
            keep_ids = {row["id"] for row in rows}
            stale_ids = sorted(stored_ids - keep_ids)
            for id_batch in chunked(stale_ids, self.batch_size):
                await block_queries.delete_blocks_by_ids(self.db, id_batch)
                deleted += len(id_batch)

            for index, batch in enumerate(batches):
                try:
                    await block_queries.upsert_blocks(self.db, batch)
                except DatabaseError as e:
                    raise SyncBatchError(index, batches_applied, batches_total, e.details) from e
                batches_applied += 1

        except Exception as e:
            logger.error(
                f"Sync page {page_id} (user {user_id}) gagal setelah "
                f"{batches_applied}/{batches_total} batch: {e}",
                exc_info=True
            )
            TREE_SYNC_RUNS.labels(status="failed").inc()
            if deleted:
                TREE_SYNC_RECORDS.labels(operation="delete").inc(deleted)
            return SyncResult(
                status="failed",
                deleted=deleted,
                upserted=sum(len(b) for b in batches[:batches_applied]),
                batches_applied=batches_applied,
                batches_total=batches_total,
                error=str(e),
            )

        changed = {old: new for old, new in id_map.items() if old != new}
        tree.rename_ids(changed)

        elapsed = time.perf_counter() - started
        TREE_SYNC_RUNS.labels(status="success").inc()
        TREE_SYNC_RECORDS.labels(operation="upsert").inc(len(rows))
        TREE_SYNC_RECORDS.labels(operation="delete").inc(deleted)
        TREE_SYNC_DURATION.observe(elapsed)
        logger.info(
            f"Sync page {page_id}: {len(rows)} block di-upsert dalam {batches_total} batch, "
            f"{deleted} dihapus, {len(changed)} id baru ({elapsed:.3f}s)."
        )
        return SyncResult(
            status="success",
            upserted=len(rows),
            deleted=deleted,
            batches_applied=batches_applied,
            batches_total=batches_total,
            id_map=changed,
        )
