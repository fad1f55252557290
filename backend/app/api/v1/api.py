# File: backend/app/api/v1/api.py

from fastapi import APIRouter

from app.api.v1.endpoints import (
    blocks,
    health,
    history,
    migration,
    pages,
    projects,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(pages.router, prefix="/projects/{project_id}/pages", tags=["pages"])
api_router.include_router(blocks.router, prefix="/pages/{page_id}/blocks", tags=["blocks"])
api_router.include_router(history.router, prefix="/pages/{page_id}/history", tags=["history"])
api_router.include_router(migration.router, prefix="/migration", tags=["migration"])
