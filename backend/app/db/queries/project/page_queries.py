# File: backend/app/db/queries/project/page_queries.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.exceptions import DatabaseError
from app.db.persistence import IPersistence, eq

logger = logging.getLogger(__name__)

PAGES_TABLE = "pages"


def _page_filters(user_id: str, page_id: str, project_id: Optional[str]):
    filters = [eq("id", page_id), eq("user_id", user_id)]
    if project_id is not None:
        filters.append(eq("project_id", project_id))
    return filters


async def list_pages(db: IPersistence, user_id: str, project_id: str) -> List[Dict[str, Any]]:
    try:
        return await db.select(
            PAGES_TABLE,
            filters=[eq("user_id", user_id), eq("project_id", project_id)],
            order_by="position"
        )
    except Exception as e:
        logger.error(f"Error di list_pages: {e}", exc_info=True)
        raise DatabaseError("list_pages", str(e))


async def get_page(
    db: IPersistence,
    user_id: str,
    page_id: str,
    project_id: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """project_id opsional: jika diisi, page harus berada di project tersebut."""
    try:
        rows = await db.select(
            PAGES_TABLE,
            filters=_page_filters(user_id, page_id, project_id),
            limit=1
        )
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Error di get_page: {e}", exc_info=True)
        raise DatabaseError("get_page", str(e))


async def insert_page(db: IPersistence, page: Dict[str, Any]) -> Dict[str, Any]:
    try:
        rows = await db.insert(PAGES_TABLE, [page])
        return rows[0] if rows else page
    except Exception as e:
        logger.error(f"Error di insert_page: {e}", exc_info=True)
        raise DatabaseError("insert_page", str(e))


async def update_page(
    db: IPersistence,
    user_id: str,
    page_id: str,
    patch: Dict[str, Any],
    project_id: Optional[str] = None
) -> bool:
    try:
        rows = await db.update(
            PAGES_TABLE,
            {**patch, "updated_at": datetime.now(timezone.utc).isoformat()},
            filters=_page_filters(user_id, page_id, project_id)
        )
        return bool(rows)
    except Exception as e:
        logger.error(f"Error di update_page: {e}", exc_info=True)
        raise DatabaseError("update_page", str(e))


async def delete_page(
    db: IPersistence,
    user_id: str,
    page_id: str,
    project_id: Optional[str] = None
) -> bool:
    try:
        rows = await db.delete(
            PAGES_TABLE,
            filters=_page_filters(user_id, page_id, project_id)
        )
        return bool(rows)
    except Exception as e:
        logger.error(f"Error di delete_page: {e}", exc_info=True)
        raise DatabaseError("delete_page", str(e))
