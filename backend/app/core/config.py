# File: backend/app/core/config.py

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Supabase
    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str
    SUPABASE_SERVICE_ROLE_KEY: str

    # Sinkronisasi tree -> tabel 'blocks'
    SYNC_DEBOUNCE_SECONDS: float = Field(
        default=5.0,
        description="Jeda (detik) setelah edit terakhir sebelum tree disinkronkan."
    )
    UPSERT_BATCH_SIZE: int = Field(
        default=1000,
        description="Batas jumlah baris per panggilan upsert/insert (limit payload Supabase)."
    )
    SYNC_IDLE_TTL_SECONDS: float = Field(
        default=900.0,
        description="Tree yang sudah tersimpan dan tidak dipakai selama ini dibuang dari memori."
    )

    # History
    HISTORY_RETENTION_DAYS: int = 30
    HISTORY_FETCH_LIMIT: int = 100

    # Observability
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None

    # Debug mode
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8'
    )


settings = Settings()
