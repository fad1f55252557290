# File: backend/app/models/history.py

from pydantic import BaseModel, ConfigDict
from typing import Any, Literal, Optional
from datetime import datetime
from enum import Enum

class HistoryAction(str, Enum):
    update = "update"
    manual_snapshot = "manual_snapshot"

class HistoryEntry(BaseModel):
    """
    Record append-only di 'block_history'. block_id = None berarti
    snapshot seluruh tree (content_after = tree ter-serialisasi).
    """
    id: Optional[str] = None
    block_id: Optional[str] = None
    user_id: Optional[str] = None
    page_id: Optional[str] = None
    content_before: Optional[Any] = None
    content_after: Optional[Any] = None
    action: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")

class SnapshotCreate(BaseModel):
    description: Optional[str] = None

class RestoreResult(BaseModel):
    kind: Literal["snapshot", "block"]
    restored_block_id: Optional[str] = None
    sync_status: str
