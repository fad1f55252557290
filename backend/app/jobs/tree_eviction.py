# File: backend/app/jobs/tree_eviction.py

import logging

from app.core.dependencies import sync_coordinator

logger = logging.getLogger(__name__)


async def evict_idle_trees_job():
    """Job berkala: buang tree in-memory yang sudah tersimpan dan idle melewati SYNC_IDLE_TTL_SECONDS."""
    try:
        evicted = sync_coordinator.evict_idle()
        if evicted:
            logger.info(f"[JOB] evict_idle_trees_job: {len(evicted)} scope dibuang.")
    except Exception as e:
        logger.error(f"Error evict_idle_trees_job: {e}", exc_info=True)
