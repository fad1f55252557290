# File: backend/app/db/supabase_client.py

from supabase.client import AsyncClient, create_async_client
from app.core.config import settings
from app.db.persistence import SupabasePersistence

_supabase_admin_client: AsyncClient | None = None

async def get_supabase_admin_async_client() -> AsyncClient:
    """
    (Async Native) Mengembalikan instance AsyncClient singleton untuk 
    koneksi admin (service_role). Hanya dipakai oleh background job
    dan readiness probe; request user memakai client ber-auth.
    """
    global _supabase_admin_client
    if _supabase_admin_client is None:
        _supabase_admin_client = await create_async_client(
            settings.SUPABASE_URL, 
            settings.SUPABASE_SERVICE_ROLE_KEY
        )
    return _supabase_admin_client

async def get_admin_persistence() -> SupabasePersistence:
    """Persistence di atas admin client (bypass RLS)."""
    return SupabasePersistence(await get_supabase_admin_async_client())
