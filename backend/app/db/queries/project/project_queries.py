# File: backend/app/db/queries/project/project_queries.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.exceptions import DatabaseError
from app.db.persistence import IPersistence, eq

logger = logging.getLogger(__name__)

PROJECTS_TABLE = "projects"


async def list_projects(db: IPersistence, user_id: str) -> List[Dict[str, Any]]:
    try:
        return await db.select(
            PROJECTS_TABLE,
            filters=[eq("user_id", user_id)],
            order_by="position"
        )
    except Exception as e:
        logger.error(f"Error di list_projects: {e}", exc_info=True)
        raise DatabaseError("list_projects", str(e))


async def insert_project(db: IPersistence, project: Dict[str, Any]) -> Dict[str, Any]:
    try:
        rows = await db.insert(PROJECTS_TABLE, [project])
        return rows[0] if rows else project
    except Exception as e:
        logger.error(f"Error di insert_project: {e}", exc_info=True)
        raise DatabaseError("insert_project", str(e))


async def update_project(
    db: IPersistence,
    user_id: str,
    project_id: str,
    patch: Dict[str, Any]
) -> bool:
    try:
        rows = await db.update(
            PROJECTS_TABLE,
            {**patch, "updated_at": datetime.now(timezone.utc).isoformat()},
            filters=[eq("id", project_id), eq("user_id", user_id)]
        )
        return bool(rows)
    except Exception as e:
        logger.error(f"Error di update_project: {e}", exc_info=True)
        raise DatabaseError("update_project", str(e))


async def delete_project(db: IPersistence, user_id: str, project_id: str) -> bool:
    try:
        rows = await db.delete(
            PROJECTS_TABLE,
            filters=[eq("id", project_id), eq("user_id", user_id)]
        )
        return bool(rows)
    except Exception as e:
        logger.error(f"Error di delete_project: {e}", exc_info=True)
        raise DatabaseError("delete_project", str(e))


async def get_project(db: IPersistence, user_id: str, project_id: str) -> Optional[Dict[str, Any]]:
    try:
        rows = await db.select(
            PROJECTS_TABLE,
            filters=[eq("id", project_id), eq("user_id", user_id)],
            limit=1
        )
        return rows[0] if rows else None
    except Exception as e:
        logger.error(f"Error di get_project: {e}", exc_info=True)
        raise DatabaseError("get_project", str(e))
