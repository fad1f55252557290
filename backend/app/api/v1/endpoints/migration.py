# File: backend/app/api/v1/endpoints/migration.py

import logging
from fastapi import APIRouter, HTTPException, status, Query
from typing import Optional

from app.core.dependencies import CurrentUserDep, MigrationServiceDep, SyncCoordinatorDep
from app.core.exceptions import MigrationError
from app.models.migration import MigrationRequest, MigrationResult, MigrationValidationReport

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/", response_model=MigrationResult)
async def migrate_legacy_blocks(
    payload: MigrationRequest,
    service: MigrationServiceDep,
    coordinator: SyncCoordinatorDep,
    current_user: CurrentUserDep
):
    """
    Migrasi satu kali blob JSON 'key_thoughts_blocks' menjadi baris 'blocks'.
    Jika validasi gagal, success=False dan migrated_count=-1; panggil rollback.
    """
    await coordinator.forget((current_user.id, payload.page_id))
    try:
        return await service.migrate(page_id=payload.page_id, force=payload.force)
    except MigrationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

@router.get("/validate", response_model=MigrationValidationReport)
async def validate_migration(
    service: MigrationServiceDep,
    page_id: Optional[str] = Query(None)
):
    return await service.validate_migration(page_id)

@router.post("/rollback")
async def rollback_migration(
    service: MigrationServiceDep,
    coordinator: SyncCoordinatorDep,
    current_user: CurrentUserDep,
    page_id: Optional[str] = Query(None)
):
    """Menghapus hasil migrasi dan mengembalikan blob JSON dari arsip."""
    # Tree in-memory untuk scope ini tidak boleh disinkronkan lagi setelah rollback
    await coordinator.forget((current_user.id, page_id))
    try:
        rolled_back = await service.rollback(page_id)
    except MigrationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not rolled_back:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Arsip backup tidak ditemukan.")
    return {"rolled_back": True}
