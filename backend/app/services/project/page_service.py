# File: backend/app/services/project/page_service.py

import logging
import uuid
from typing import List

from app.core.exceptions import InvalidOperationError, NotFoundError
from app.db.persistence import IPersistence
from app.db.queries.keythoughts import block_queries, history_queries
from app.db.queries.project import page_queries
from app.models.page import DEFAULT_PAGE_NAME, Page
from app.services.keythoughts.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class PageService:
    """CRUD page dalam satu project, terurut berdasarkan position."""

    def __init__(self, db: IPersistence, user_id: str, coordinator: SyncCoordinator):
        self.db = db
        self.user_id = user_id
        self.coordinator = coordinator

    async def list_pages(self, project_id: str) -> List[Page]:
        """Project tanpa page otomatis mendapat page default."""
        rows = await page_queries.list_pages(self.db, self.user_id, project_id)
        if not rows:
            return [await self._insert(project_id, DEFAULT_PAGE_NAME, 0)]
        return [Page.model_validate(row) for row in rows]

    async def _insert(self, project_id: str, name: str, position: int) -> Page:
        page = Page(
            id=str(uuid.uuid4()),
            user_id=self.user_id,
            project_id=project_id,
            name=name,
            position=position,
        )
        row = await page_queries.insert_page(
            self.db, page.model_dump(mode="json", exclude={"created_at", "updated_at"})
        )
        logger.info(f"Page '{name}' ({page.id}) dibuat di project {project_id}.")
        return Page.model_validate(row)

    async def create_page(self, project_id: str, name: str) -> Page:
        name = name.strip()
        if not name:
            raise InvalidOperationError("Nama page tidak boleh kosong.")
        existing = await page_queries.list_pages(self.db, self.user_id, project_id)
        return await self._insert(project_id, name, len(existing))

    async def rename_page(self, project_id: str, page_id: str, name: str) -> Page:
        name = name.strip()
        if not name:
            raise InvalidOperationError("Nama page tidak boleh kosong.")
        if not await page_queries.update_page(self.db, self.user_id, page_id, {"name": name}, project_id=project_id):
            raise NotFoundError("Page", page_id)
        page = await page_queries.get_page(self.db, self.user_id, page_id, project_id=project_id)
        return Page.model_validate(page)

    async def delete_page(self, project_id: str, page_id: str, allow_last: bool = False) -> None:
        """
        Menghapus page beserta block dan history-nya. Page terakhir dalam
        project tidak boleh dihapus kecuali seluruh project ikut dihapus.
        """
        page = await page_queries.get_page(self.db, self.user_id, page_id, project_id=project_id)
        if page is None:
            raise NotFoundError("Page", page_id)
        if not allow_last:
            siblings = await page_queries.list_pages(self.db, self.user_id, project_id)
            if len(siblings) <= 1:
                raise InvalidOperationError("Page terakhir dalam project tidak bisa dihapus.")

        await self.coordinator.forget((self.user_id, page_id))
        await block_queries.delete_blocks_by_scope(self.db, self.user_id, page_id)
        await history_queries.delete_history_by_page(self.db, page_id)
        await page_queries.delete_page(self.db, self.user_id, page_id, project_id=project_id)
        logger.info(f"Page {page_id} beserta block dan history-nya dihapus.")

    async def reorder_pages(self, project_id: str, page_ids: List[str]) -> List[Page]:
        """Hanya page milik project ini yang bisa diurutkan."""
        for position, page_id in enumerate(page_ids):
            updated = await page_queries.update_page(
                self.db, self.user_id, page_id, {"position": position}, project_id=project_id
            )
            if not updated:
                raise NotFoundError("Page", page_id)
        return await self.list_pages(project_id)
