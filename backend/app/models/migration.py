# File: backend/app/models/migration.py

from pydantic import BaseModel, Field
from typing import List, Optional

class MigrationRequest(BaseModel):
    page_id: Optional[str] = Field(None, description="Page tujuan baris hasil migrasi (opsional).")
    force: bool = Field(False, description="Jalankan walaupun flag migrasi sudah ada.")

class MigrationValidationReport(BaseModel):
    valid: bool
    original_count: int = 0
    migrated_count: int = 0
    issues: List[str] = Field(default_factory=list)

class MigrationResult(BaseModel):
    success: bool
    migrated_count: int
    report: Optional[MigrationValidationReport] = None
