# File: backend/app/db/queries/keythoughts/block_queries.py

import logging
from typing import Any, Dict, List, Optional, Set

from app.core.exceptions import DatabaseError
from app.db.persistence import IPersistence, eq, eq_or_null, in_

logger = logging.getLogger(__name__)

BLOCKS_TABLE = "blocks"


def _scope_filters(user_id: str, page_id: Optional[str]):
    # Baris hasil migrasi legacy bisa belum punya page_id
    return [eq("user_id", user_id), eq_or_null("page_id", page_id)]


async def get_blocks_by_page(
    db: IPersistence,
    user_id: str,
    page_id: Optional[str]
) -> List[Dict[str, Any]]:
    """Semua baris block milik satu page, terurut berdasarkan position."""
    try:
        return await db.select(
            BLOCKS_TABLE,
            filters=_scope_filters(user_id, page_id),
            order_by="position"
        )
    except Exception as e:
        logger.error(f"Error di get_blocks_by_page: {e}", exc_info=True)
        raise DatabaseError("get_blocks_by_page", str(e))


async def get_block_ids_by_page(
    db: IPersistence,
    user_id: str,
    page_id: Optional[str]
) -> Set[str]:
    """Set id yang saat ini tersimpan untuk scope (selalu diambil segar)."""
    try:
        rows = await db.select(
            BLOCKS_TABLE,
            filters=_scope_filters(user_id, page_id),
            columns="id"
        )
        return {row["id"] for row in rows}
    except Exception as e:
        logger.error(f"Error di get_block_ids_by_page: {e}", exc_info=True)
        raise DatabaseError("get_block_ids_by_page", str(e))


async def get_block_by_id(
    db: IPersistence,
    user_id: str,
    block_id: str
) -> Optional[Dict[str, Any]]:
    try:
        rows = await db.select(
            BLOCKS_TABLE,
            filters=[eq("id", block_id), eq("user_id", user_id)],
            limit=1
        )
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Error di get_block_by_id: {e}", exc_info=True)
        raise DatabaseError("get_block_by_id", str(e))


async def insert_blocks(db: IPersistence, rows: List[Dict[str, Any]]) -> None:
    """Insert satu batch. Caller yang memecah menjadi batch <= 1000."""
    if not rows:
        return
    try:
        await db.insert(BLOCKS_TABLE, rows)
    except Exception as e:
        logger.error(f"Error di insert_blocks ({len(rows)} baris): {e}", exc_info=True)
        raise DatabaseError("insert_blocks", str(e))


async def upsert_blocks(db: IPersistence, rows: List[Dict[str, Any]]) -> None:
    """Insert-or-update satu batch dengan key konflik 'id'."""
    if not rows:
        return
    try:
        await db.upsert(BLOCKS_TABLE, rows, on_conflict="id")
    except Exception as e:
        logger.error(f"Error di upsert_blocks ({len(rows)} baris): {e}", exc_info=True)
        raise DatabaseError("upsert_blocks", str(e))


async def update_block_content(
    db: IPersistence,
    user_id: str,
    block_id: str,
    content: str,
    updated_at: str
) -> bool:
    """Update konten satu block (dipakai untuk original di luar page aktif)."""
    try:
        rows = await db.update(
            BLOCKS_TABLE,
            {"content": content, "updated_at": updated_at},
            filters=[eq("id", block_id), eq("user_id", user_id)]
        )
        return bool(rows)
    except Exception as e:
        logger.error(f"Error di update_block_content: {e}", exc_info=True)
        raise DatabaseError("update_block_content", str(e))


async def delete_blocks_by_ids(db: IPersistence, block_ids: List[str]) -> None:
    if not block_ids:
        return
    try:
        await db.delete(BLOCKS_TABLE, filters=[in_("id", block_ids)])
    except Exception as e:
        logger.error(f"Error di delete_blocks_by_ids: {e}", exc_info=True)
        raise DatabaseError("delete_blocks_by_ids", str(e))


async def delete_blocks_by_scope(
    db: IPersistence,
    user_id: str,
    page_id: Optional[str] = None
) -> None:
    """Hapus seluruh block milik scope (page, atau baris tanpa page jika None)."""
    try:
        await db.delete(BLOCKS_TABLE, filters=_scope_filters(user_id, page_id))
    except Exception as e:
        logger.error(f"Error di delete_blocks_by_scope: {e}", exc_info=True)
        raise DatabaseError("delete_blocks_by_scope", str(e))
