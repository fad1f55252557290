# File: backend/app/models/page.py

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

DEFAULT_PAGE_NAME = "Main"

class PageCreate(BaseModel):
    name: str = Field("Untitled", min_length=1)

class PageRename(BaseModel):
    name: str

class PageReorder(BaseModel):
    page_ids: List[str]

class Page(BaseModel):
    """Satu page memiliki satu forest block dan posisi di antara page lain dalam project."""
    id: str
    user_id: str
    project_id: str
    name: str
    position: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")
