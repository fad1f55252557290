# File: backend/app/api/v1/endpoints/pages.py

import logging
from fastapi import APIRouter, HTTPException, status
from typing import List

from app.core.dependencies import PageServiceDep, ProjectAccessDep
from app.core.exceptions import InvalidOperationError, NotFoundError
from app.models.page import Page, PageCreate, PageRename, PageReorder

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/", response_model=List[Page])
async def list_pages(project_id: str, access: ProjectAccessDep, service: PageServiceDep):
    """Project tanpa page otomatis mendapat page default."""
    try:
        return await service.list_pages(project_id)
    except Exception as e:
        logger.error(f"Error di list_pages: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal mengambil daftar page.")

@router.post("/", response_model=Page, status_code=status.HTTP_201_CREATED)
async def create_page(
    project_id: str,
    payload: PageCreate,
    access: ProjectAccessDep,
    service: PageServiceDep
):
    try:
        return await service.create_page(project_id, payload.name)
    except InvalidOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error di create_page: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal membuat page.")

@router.put("/order", response_model=List[Page])
async def reorder_pages(
    project_id: str,
    payload: PageReorder,
    access: ProjectAccessDep,
    service: PageServiceDep
):
    try:
        return await service.reorder_pages(project_id, payload.page_ids)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error di reorder_pages: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal mengubah urutan page.")

@router.patch("/{page_id}", response_model=Page)
async def rename_page(
    project_id: str,
    page_id: str,
    payload: PageRename,
    access: ProjectAccessDep,
    service: PageServiceDep
):
    try:
        return await service.rename_page(project_id, page_id, payload.name)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error di rename_page: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal mengganti nama page.")

@router.delete("/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(
    project_id: str,
    page_id: str,
    access: ProjectAccessDep,
    service: PageServiceDep
):
    """Page terakhir dalam project tidak bisa dihapus."""
    try:
        await service.delete_page(project_id, page_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error di delete_page: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal menghapus page.")
