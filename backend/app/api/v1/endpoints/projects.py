# File: backend/app/api/v1/endpoints/projects.py

import logging
from fastapi import APIRouter, HTTPException, status
from typing import List

from app.core.dependencies import ProjectServiceDep
from app.core.exceptions import InvalidOperationError, NotFoundError
from app.models.project import Project, ProjectCreate, ProjectRename, ProjectReorder

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/", response_model=List[Project])
async def list_projects(service: ProjectServiceDep):
    """
    Daftar project milik user, terurut berdasarkan position.
    User tanpa project otomatis mendapat project default.
    """
    try:
        return await service.list_projects()
    except Exception as e:
        logger.error(f"Error di list_projects: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal mengambil daftar project.")

@router.post("/", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(payload: ProjectCreate, service: ProjectServiceDep):
    try:
        return await service.create_project(payload.name)
    except InvalidOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error di create_project: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal membuat project.")

@router.put("/order", response_model=List[Project])
async def reorder_projects(payload: ProjectReorder, service: ProjectServiceDep):
    """Posisi baru = index di list project_ids."""
    try:
        return await service.reorder_projects(payload.project_ids)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error di reorder_projects: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal mengubah urutan project.")

@router.patch("/{project_id}", response_model=Project)
async def rename_project(project_id: str, payload: ProjectRename, service: ProjectServiceDep):
    try:
        return await service.rename_project(project_id, payload.name)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error di rename_project: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal mengganti nama project.")

@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: str, service: ProjectServiceDep):
    """Menghapus project beserta seluruh page, block, dan history di dalamnya."""
    try:
        await service.delete_project(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error di delete_project: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Gagal menghapus project.")
