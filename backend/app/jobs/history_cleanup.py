# File: backend/app/jobs/history_cleanup.py

import logging

from app.core.config import settings
from app.db.supabase_client import get_admin_persistence
from app.services.keythoughts.history_service import HistoryService

logger = logging.getLogger(__name__)


async def cleanup_old_history_job():
    """Job harian: hapus 'block_history' yang lebih tua dari HISTORY_RETENTION_DAYS."""
    logger.info("[JOB] Memulai job 'cleanup_old_history_job'...")
    try:
        db = await get_admin_persistence()
        # user_id tidak dipakai oleh cleanup (berlaku untuk semua user)
        service = HistoryService(db, user_id="system")
        deleted = await service.cleanup_old_history(settings.HISTORY_RETENTION_DAYS, force=True)
        logger.info(f"[JOB] Selesai membersihkan history lama. {deleted} baris dihapus.")
    except Exception as e:
        logger.error(f"Error cleanup_old_history_job: {e}", exc_info=True)
