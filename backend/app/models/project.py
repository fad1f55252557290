# File: backend/app/models/project.py

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

DEFAULT_PROJECT_NAME = "My Project"

class ProjectCreate(BaseModel):
    name: str = Field("Untitled Project", min_length=1, description="Nama project")

class ProjectRename(BaseModel):
    name: str = Field(..., description="Nama baru (di-trim, tidak boleh kosong)")

class ProjectReorder(BaseModel):
    """Urutan baru project; posisi = index di list."""
    project_ids: List[str]

class Project(BaseModel):
    id: str
    user_id: str
    name: str
    position: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")
