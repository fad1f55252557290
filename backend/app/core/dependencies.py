# File: backend/app/core/dependencies.py
# (AsyncClient per user + validasi token yang aman)

import logging
import asyncio
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict, Any, Annotated, Optional
from supabase.client import AsyncClient, create_async_client
from postgrest.exceptions import APIError
import httpx

from app.core.config import settings
from app.core.exceptions import DatabaseError
from app.db.persistence import IPersistence, SupabasePersistence
from app.models.user import User

# --- Impor Database Queries ---
from app.db.queries.project import page_queries, project_queries

# --- Impor Service ---
from app.services.keythoughts.history_service import HistoryService
from app.services.keythoughts.keythoughts_service import KeyThoughtsService
from app.services.keythoughts.migration_service import MigrationService
from app.services.keythoughts.sync_coordinator import SyncCoordinator
from app.services.project.page_service import PageService
from app.services.project.project_service import ProjectService

# --- Konfigurasi Awal ---
security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)

# Klien sinkron HANYA untuk validasi token (dijalankan di thread)
validation_client = httpx.Client(
    base_url=f"{settings.SUPABASE_URL}/auth/v1",
    headers={"apikey": settings.SUPABASE_ANON_KEY}
)

# Satu coordinator per proses: pemilik tree in-memory + timer debounce
sync_coordinator = SyncCoordinator(
    debounce_seconds=settings.SYNC_DEBOUNCE_SECONDS,
    idle_ttl_seconds=settings.SYNC_IDLE_TTL_SECONDS
)

# =======================================================================
# === FUNGSI DEPENDENSI ===
# =======================================================================

async def get_current_user_and_client(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:

    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    token = credentials.credentials
    user_response_json: Optional[dict] = None

    try:
        def sync_validate_token():
            headers = {"Authorization": f"Bearer {token}"}
            response = validation_client.get("/user", headers=headers)
            response.raise_for_status()
            return response.json()

        user_response_json = await asyncio.to_thread(sync_validate_token)

        if not user_response_json.get("id"):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token data")
        logger.debug(f"Token valid untuk user_id: {user_response_json['id']}")

    except HTTPException:
        raise
    except httpx.HTTPStatusError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token validation failed")
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Could not validate token: {str(e)}")

    try:
        authed_client: AsyncClient = await create_async_client(
            supabase_url=settings.SUPABASE_URL,
            supabase_key=settings.SUPABASE_ANON_KEY
        )
        # Query berikutnya berjalan dengan sesi user (RLS berlaku)
        await authed_client.auth.set_session(access_token=token, refresh_token="dummy_refresh_token")

        user_model = User.model_validate(user_response_json)
        return {"user": user_model, "client": authed_client}

    except Exception as e:
        logger.error(f"Error setelah validasi token (saat membuat klien): {e}", exc_info=True)
        if isinstance(e, (APIError, httpx.HTTPError)):
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Database error after auth: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Internal error after auth: {str(e)}")

async def get_current_user(auth_info: dict = Depends(get_current_user_and_client)) -> User:
    return auth_info["user"]

async def get_persistence(auth_info: dict = Depends(get_current_user_and_client)) -> IPersistence:
    return SupabasePersistence(auth_info["client"])

def get_sync_coordinator() -> SyncCoordinator:
    return sync_coordinator

async def get_project_access(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: IPersistence = Depends(get_persistence)
) -> Dict[str, Any]:
    """Memastikan project ada dan milik user yang sedang login."""
    try:
        project = await project_queries.get_project(db, current_user.id, project_id)
    except DatabaseError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
    return {"project": project, "user": current_user}

async def get_page_access(
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: IPersistence = Depends(get_persistence)
) -> Dict[str, Any]:
    """Memastikan page ada dan milik user yang sedang login."""
    try:
        page = await page_queries.get_page(db, current_user.id, page_id)
    except DatabaseError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    if not page:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found.")
    return {"page": page, "user": current_user}

# --- Service ---

async def get_history_service(
    current_user: User = Depends(get_current_user),
    db: IPersistence = Depends(get_persistence)
) -> HistoryService:
    return HistoryService(db, current_user.id)

async def get_keythoughts_service(
    current_user: User = Depends(get_current_user),
    db: IPersistence = Depends(get_persistence),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
    history: HistoryService = Depends(get_history_service)
) -> KeyThoughtsService:
    return KeyThoughtsService(
        db, current_user.id, coordinator, history=history, batch_size=settings.UPSERT_BATCH_SIZE
    )

async def get_migration_service(
    current_user: User = Depends(get_current_user),
    db: IPersistence = Depends(get_persistence)
) -> MigrationService:
    return MigrationService(db, current_user.id, batch_size=settings.UPSERT_BATCH_SIZE)

async def get_page_service(
    current_user: User = Depends(get_current_user),
    db: IPersistence = Depends(get_persistence),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator)
) -> PageService:
    return PageService(db, current_user.id, coordinator)

async def get_project_service(
    current_user: User = Depends(get_current_user),
    db: IPersistence = Depends(get_persistence),
    pages: PageService = Depends(get_page_service)
) -> ProjectService:
    return ProjectService(db, current_user.id, pages)


AuthInfoDep = Annotated[Dict[str, Any], Depends(get_current_user_and_client)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
ProjectAccessDep = Annotated[Dict[str, Any], Depends(get_project_access)]
PageAccessDep = Annotated[Dict[str, Any], Depends(get_page_access)]
SyncCoordinatorDep = Annotated[SyncCoordinator, Depends(get_sync_coordinator)]
HistoryServiceDep = Annotated[HistoryService, Depends(get_history_service)]
KeyThoughtsServiceDep = Annotated[KeyThoughtsService, Depends(get_keythoughts_service)]
MigrationServiceDep = Annotated[MigrationService, Depends(get_migration_service)]
PageServiceDep = Annotated[PageService, Depends(get_page_service)]
ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]
