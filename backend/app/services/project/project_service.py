# File: backend/app/services/project/project_service.py

import logging
import uuid
from typing import List

from app.core.exceptions import InvalidOperationError, NotFoundError
from app.db.persistence import IPersistence
from app.db.queries.project import page_queries, project_queries
from app.models.project import DEFAULT_PROJECT_NAME, Project
from app.services.project.page_service import PageService

logger = logging.getLogger(__name__)


class ProjectService:
    """CRUD project milik user. Hapus project = hapus semua page di dalamnya."""

    def __init__(self, db: IPersistence, user_id: str, pages: PageService):
        self.db = db
        self.user_id = user_id
        self.pages = pages

    async def list_projects(self) -> List[Project]:
        rows = await project_queries.list_projects(self.db, self.user_id)
        if not rows:
            return [await self._insert(DEFAULT_PROJECT_NAME, 0)]
        return [Project.model_validate(row) for row in rows]

    async def _insert(self, name: str, position: int) -> Project:
        project = Project(id=str(uuid.uuid4()), user_id=self.user_id, name=name, position=position)
        row = await project_queries.insert_project(
            self.db, project.model_dump(mode="json", exclude={"created_at", "updated_at"})
        )
        logger.info(f"Project '{name}' ({project.id}) dibuat untuk user {self.user_id}.")
        return Project.model_validate(row)

    async def create_project(self, name: str) -> Project:
        name = name.strip()
        if not name:
            raise InvalidOperationError("Nama project tidak boleh kosong.")
        existing = await project_queries.list_projects(self.db, self.user_id)
        return await self._insert(name, len(existing))

    async def rename_project(self, project_id: str, name: str) -> Project:
        name = name.strip()
        if not name:
            raise InvalidOperationError("Nama project tidak boleh kosong.")
        if not await project_queries.update_project(self.db, self.user_id, project_id, {"name": name}):
            raise NotFoundError("Project", project_id)
        rows = await project_queries.list_projects(self.db, self.user_id)
        return next(Project.model_validate(r) for r in rows if r["id"] == project_id)

    async def delete_project(self, project_id: str) -> None:
        projects = await project_queries.list_projects(self.db, self.user_id)
        if not any(p["id"] == project_id for p in projects):
            raise NotFoundError("Project", project_id)
        if len(projects) <= 1:
            raise InvalidOperationError("Project terakhir tidak bisa dihapus.")

        pages = await page_queries.list_pages(self.db, self.user_id, project_id)
        for page in pages:
            await self.pages.delete_page(project_id, page["id"], allow_last=True)
        await project_queries.delete_project(self.db, self.user_id, project_id)
        logger.info(f"Project {project_id} dan {len(pages)} page dihapus.")

    async def reorder_projects(self, project_ids: List[str]) -> List[Project]:
        for position, project_id in enumerate(project_ids):
            if not await project_queries.update_project(
                self.db, self.user_id, project_id, {"position": position}
            ):
                raise NotFoundError("Project", project_id)
        return await self.list_projects()
