# File: backend/app/db/queries/keythoughts/settings_queries.py
# Tabel key-value 'user_settings' (dipakai oleh migrasi JSON legacy).

import logging
from datetime import datetime, timezone
from typing import Optional

from app.core.exceptions import DatabaseError
from app.db.persistence import IPersistence, eq

logger = logging.getLogger(__name__)

SETTINGS_TABLE = "user_settings"


async def get_setting(db: IPersistence, user_id: str, key: str) -> Optional[str]:
    """Nilai setting_value mentah, atau None jika key tidak ada."""
    try:
        rows = await db.select(
            SETTINGS_TABLE,
            filters=[eq("user_id", user_id), eq("setting_key", key)],
            columns="setting_value",
            limit=1
        )
        return rows[0]["setting_value"] if rows else None
    except Exception as e:
        logger.error(f"Error di get_setting ({key}): {e}", exc_info=True)
        raise DatabaseError("get_setting", str(e))


async def upsert_setting(db: IPersistence, user_id: str, key: str, value: str) -> None:
    try:
        await db.upsert(
            SETTINGS_TABLE,
            [{
                "user_id": user_id,
                "setting_key": key,
                "setting_value": value,
                "updated_at": datetime.now(timezone.utc).isoformat()
            }],
            on_conflict="user_id,setting_key"
        )
    except Exception as e:
        logger.error(f"Error di upsert_setting ({key}): {e}", exc_info=True)
        raise DatabaseError("upsert_setting", str(e))


async def delete_setting(db: IPersistence, user_id: str, key: str) -> None:
    try:
        await db.delete(
            SETTINGS_TABLE,
            filters=[eq("user_id", user_id), eq("setting_key", key)]
        )
    except Exception as e:
        logger.error(f"Error di delete_setting ({key}): {e}", exc_info=True)
        raise DatabaseError("delete_setting", str(e))
