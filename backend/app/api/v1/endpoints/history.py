# File: backend/app/api/v1/endpoints/history.py

import logging
from fastapi import APIRouter, HTTPException, status, Query
from typing import List

from app.core.config import settings
from app.core.dependencies import HistoryServiceDep, KeyThoughtsServiceDep, PageAccessDep
from app.core.exceptions import InvalidOperationError, NotFoundError
from app.models.history import HistoryEntry, RestoreResult, SnapshotCreate

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/", response_model=List[HistoryEntry])
async def list_history(
    page_id: str,
    access: PageAccessDep,
    service: HistoryServiceDep,
    limit: int = Query(settings.HISTORY_FETCH_LIMIT, ge=1, le=settings.HISTORY_FETCH_LIMIT)
):
    """History page ini, terbaru lebih dulu. Cleanup harian ikut dipicu di sini."""
    await service.cleanup_old_history(settings.HISTORY_RETENTION_DAYS)
    return await service.fetch_history(page_id, limit=limit)

@router.post("/snapshot", status_code=status.HTTP_201_CREATED)
async def create_snapshot(
    page_id: str,
    payload: SnapshotCreate,
    access: PageAccessDep,
    service: KeyThoughtsServiceDep
):
    """Menyimpan seluruh tree saat ini sebagai satu versi (Ctrl+S)."""
    try:
        saved = await service.snapshot(page_id, payload.description)
    except Exception as e:
        logger.error(f"Error di create_snapshot: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal memuat tree untuk snapshot.")
    if not saved:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Snapshot gagal disimpan.")
    return {"saved": True}

@router.post("/{version_id}/restore", response_model=RestoreResult)
async def restore_version(
    page_id: str,
    version_id: str,
    access: PageAccessDep,
    service: KeyThoughtsServiceDep
):
    """
    Snapshot: tree saat ini disimpan dulu sebagai versi baru, lalu diganti.
    Entry block: konten block tersebut dikembalikan ke content_after.
    """
    try:
        return await service.restore_version(page_id, version_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error di restore_version: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal memulihkan versi.")
