# File: backend/app/core/scheduler.py

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)

# Scheduler default (memory-based); job bersifat idempotent jadi tidak perlu jobstore persisten
scheduler = AsyncIOScheduler()

def setup_scheduler_jobs():
    """
    Mendaftarkan semua background job (Tugas Cron) saat startup.
    """
    logger.info("Mendaftarkan background jobs...")

    try:
        from app.jobs.history_cleanup import cleanup_old_history_job
        from app.jobs.tree_eviction import evict_idle_trees_job

        scheduler.add_job(
            cleanup_old_history_job,
            'cron',
            hour=3,
            minute=0,
            id='job_cleanup_old_history',
            replace_existing=True,
            coalesce=True,
            max_instances=1
        )

        scheduler.add_job(
            evict_idle_trees_job,
            'interval',
            minutes=1,
            id='job_evict_idle_trees',
            replace_existing=True,
            coalesce=True,
            max_instances=1
        )

        logger.info("Semua background jobs berhasil didaftarkan.")

    except ImportError as e:
        logger.warning(f"Gagal mengimpor 'app.jobs'. Melewatkan pendaftaran job. Error: {e}", exc_info=True)
    except Exception as e:
        logger.error(f"Error saat mendaftarkan background jobs: {e}", exc_info=True)
