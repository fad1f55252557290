# File: backend/app/db/queries/keythoughts/history_queries.py

import logging
from typing import Any, Dict, List, Optional

from app.core.exceptions import DatabaseError
from app.db.persistence import IPersistence, eq, lt

logger = logging.getLogger(__name__)

HISTORY_TABLE = "block_history"


async def insert_history_entry(db: IPersistence, entry: Dict[str, Any]) -> None:
    try:
        await db.insert(HISTORY_TABLE, [entry])
    except Exception as e:
        # Tidak di-log sebagai error di sini; caller (history service) yang menelan
        raise DatabaseError("insert_history_entry", str(e))


async def get_history_by_page(
    db: IPersistence,
    page_id: str,
    limit: int = 100
) -> List[Dict[str, Any]]:
    """History terbaru lebih dulu."""
    try:
        return await db.select(
            HISTORY_TABLE,
            filters=[eq("page_id", page_id)],
            order_by="created_at",
            descending=True,
            limit=limit
        )
    except Exception as e:
        logger.error(f"Error di get_history_by_page: {e}", exc_info=True)
        raise DatabaseError("get_history_by_page", str(e))


async def get_history_entry(
    db: IPersistence,
    version_id: str
) -> Optional[Dict[str, Any]]:
    try:
        rows = await db.select(HISTORY_TABLE, filters=[eq("id", version_id)], limit=1)
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Error di get_history_entry: {e}", exc_info=True)
        raise DatabaseError("get_history_entry", str(e))


async def delete_history_older_than(db: IPersistence, cutoff_iso: str) -> int:
    try:
        deleted = await db.delete(HISTORY_TABLE, filters=[lt("created_at", cutoff_iso)])
        return len(deleted)
    except Exception as e:
        logger.error(f"Error di delete_history_older_than: {e}", exc_info=True)
        raise DatabaseError("delete_history_older_than", str(e))


async def delete_history_by_page(db: IPersistence, page_id: str) -> None:
    try:
        await db.delete(HISTORY_TABLE, filters=[eq("page_id", page_id)])
    except Exception as e:
        logger.error(f"Error di delete_history_by_page: {e}", exc_info=True)
        raise DatabaseError("delete_history_by_page", str(e))
