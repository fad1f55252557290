#backend\app\models\user.py
from pydantic import BaseModel, ConfigDict
from typing import Optional

class User(BaseModel):
    """User hasil validasi token Supabase Auth (tanpa tabel profil)."""
    id: str
    email: Optional[str] = None

    model_config = ConfigDict(extra="ignore")
