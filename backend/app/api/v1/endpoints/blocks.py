# File: backend/app/api/v1/endpoints/blocks.py

import logging
from fastapi import APIRouter, HTTPException, status
from typing import List

from app.core.dependencies import KeyThoughtsServiceDep, PageAccessDep
from app.core.exceptions import DatabaseError, InvalidOperationError, NotFoundError
from app.models.block import (
    BlockCreate, BlockMove, BlockNode, BlockUpdate, ReferenceCreate,
    SyncResult, TreeReplace, TreeResponse
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["blocks"])


def _raise_for(e: Exception, action: str):
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, InvalidOperationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.error(f"Error saat {action}: {e}", exc_info=True)
    if isinstance(e, DatabaseError):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Gagal {action}.")


def _ensure_synced(result: SyncResult) -> SyncResult:
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=result.model_dump(mode="json")
        )
    return result


@router.get("/", response_model=TreeResponse)
async def get_block_tree(page_id: str, access: PageAccessDep, service: KeyThoughtsServiceDep):
    """
    Tree block satu page. Dimuat dari storage jika belum ada di memori;
    page kosong otomatis mendapat satu block awal.
    """
    try:
        tree = await service.get_tree(page_id)
    except Exception as e:
        _raise_for(e, "memuat tree")
    return TreeResponse(page_id=page_id, blocks=tree.roots)

@router.put("/", response_model=SyncResult)
async def replace_block_tree(
    page_id: str,
    payload: TreeReplace,
    access: PageAccessDep,
    service: KeyThoughtsServiceDep
):
    """Mengganti seluruh tree lalu langsung menyinkronkan ke tabel 'blocks'."""
    try:
        result = await service.replace_tree(page_id, payload.blocks)
    except Exception as e:
        _raise_for(e, "mengganti tree")
    return _ensure_synced(result)

@router.post("/", response_model=BlockNode, status_code=status.HTTP_201_CREATED)
async def add_block(
    page_id: str,
    payload: BlockCreate,
    access: PageAccessDep,
    service: KeyThoughtsServiceDep
):
    try:
        return await service.add_block(page_id, payload)
    except Exception as e:
        _raise_for(e, "menambah block")

@router.post("/references", response_model=BlockNode, status_code=status.HTTP_201_CREATED)
async def create_reference(
    page_id: str,
    payload: ReferenceCreate,
    access: PageAccessDep,
    service: KeyThoughtsServiceDep
):
    """Membuat block referensi yang menampilkan konten block original."""
    try:
        return await service.create_reference(page_id, payload)
    except Exception as e:
        _raise_for(e, "membuat referensi")

@router.post("/sync", response_model=SyncResult)
async def sync_block_tree(page_id: str, access: PageAccessDep, service: KeyThoughtsServiceDep):
    """Simpan sekarang (tanpa menunggu debounce)."""
    try:
        result = await service.save_now(page_id)
    except Exception as e:
        _raise_for(e, "sinkronisasi")
    return _ensure_synced(result)

@router.patch("/{block_id}", response_model=BlockNode)
async def update_block(
    page_id: str,
    block_id: str,
    payload: BlockUpdate,
    access: PageAccessDep,
    service: KeyThoughtsServiceDep
):
    """Edit konten pada block referensi diteruskan ke block original-nya."""
    try:
        return await service.update_block(page_id, block_id, payload)
    except Exception as e:
        _raise_for(e, "mengubah block")

@router.delete("/{block_id}", response_model=List[str])
async def delete_block(
    page_id: str,
    block_id: str,
    access: PageAccessDep,
    service: KeyThoughtsServiceDep
):
    """Menghapus block beserta subtree-nya. Return id yang terhapus."""
    try:
        return await service.delete_block(page_id, block_id)
    except Exception as e:
        _raise_for(e, "menghapus block")

@router.post("/{block_id}/move", response_model=BlockNode)
async def move_block(
    page_id: str,
    block_id: str,
    payload: BlockMove,
    access: PageAccessDep,
    service: KeyThoughtsServiceDep
):
    try:
        return await service.move_block(page_id, block_id, payload)
    except Exception as e:
        _raise_for(e, "memindahkan block")
