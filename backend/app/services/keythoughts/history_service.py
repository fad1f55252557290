# File: backend/app/services/keythoughts/history_service.py

import json
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, List, Optional

from app.db.persistence import IPersistence
from app.db.queries.keythoughts import history_queries
from app.models.history import HistoryAction, HistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30
DEFAULT_FETCH_LIMIT = 100


class HistoryService:
    """
    Log history append-only per page. Penulisan history bersifat
    best-effort: kegagalan hanya di-log, tidak pernah membatalkan edit.
    """

    # Cleanup cukup sekali per hari per proses
    _last_cleanup_day: Optional[date] = None

    def __init__(self, db: IPersistence, user_id: str):
        self.db = db
        self.user_id = user_id

    async def _append(self, entry: HistoryEntry) -> bool:
        try:
            await history_queries.insert_history_entry(
                self.db, entry.model_dump(mode="json", exclude={"id", "created_at"})
            )
            return True
        except Exception as e:
            logger.warning(f"Gagal menyimpan history ({entry.action}) untuk page {entry.page_id}: {e}")
            return False

    async def record_block_change(
        self,
        page_id: str,
        block_id: str,
        content_before: Optional[str],
        content_after: Optional[str],
        description: str = "Content edited"
    ) -> bool:
        """Mencatat perubahan konten satu block. Tidak dicatat jika isinya sama."""
        if content_before == content_after:
            return False
        return await self._append(HistoryEntry(
            block_id=block_id,
            user_id=self.user_id,
            page_id=page_id,
            content_before=content_before,
            content_after=content_after,
            action=HistoryAction.update.value,
            description=description,
        ))

    async def manual_snapshot(
        self,
        page_id: str,
        tree_snapshot: List[dict],
        description: Optional[str] = None
    ) -> bool:
        """Menyimpan seluruh tree sebagai satu entry (block_id = None)."""
        return await self._append(HistoryEntry(
            block_id=None,
            user_id=self.user_id,
            page_id=page_id,
            content_before=None,
            content_after=json.dumps(tree_snapshot, ensure_ascii=False),
            action=HistoryAction.manual_snapshot.value,
            description=description or "Manual version save",
        ))

    async def fetch_history(self, page_id: str, limit: int = DEFAULT_FETCH_LIMIT) -> List[HistoryEntry]:
        try:
            rows = await history_queries.get_history_by_page(self.db, page_id, limit=limit)
        except Exception as e:
            logger.warning(f"Gagal mengambil history page {page_id}: {e}")
            return []
        return [HistoryEntry.model_validate(row) for row in rows]

    async def get_entry(self, version_id: str) -> Optional[HistoryEntry]:
        row = await history_queries.get_history_entry(self.db, version_id)
        return HistoryEntry.model_validate(row) if row else None

    async def cleanup_old_history(
        self,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        force: bool = False
    ) -> int:
        """Menghapus history lebih tua dari retention_days. Return jumlah baris terhapus."""
        today = date.today()
        if not force and HistoryService._last_cleanup_day == today:
            return 0

        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
        try:
            deleted = await history_queries.delete_history_older_than(self.db, cutoff.isoformat())
        except Exception as e:
            logger.warning(f"Cleanup history gagal: {e}")
            return 0

        HistoryService._last_cleanup_day = today
        logger.info(f"Cleanup history: {deleted} entry lebih tua dari {retention_days} hari dihapus.")
        return deleted


def parse_snapshot(content_after: Any) -> Optional[list]:
    """Isi snapshot bisa tersimpan sebagai string JSON atau sudah berupa list (jsonb)."""
    if isinstance(content_after, str):
        try:
            content_after = json.loads(content_after)
        except ValueError:
            return None
    return content_after if isinstance(content_after, list) else None
