# File: backend/app/services/keythoughts/migration_service.py
# Migrasi satu kali: blob JSON legacy di 'user_settings' -> baris 'blocks'.

import json
import logging
from typing import Optional

from app.core.exceptions import MigrationError
from app.db.persistence import IPersistence
from app.db.queries.keythoughts import block_queries, settings_queries
from app.models.block import BlockRecord
from app.models.migration import MigrationResult, MigrationValidationReport
from app.services.keythoughts.flattener import (
    UPSERT_BATCH_SIZE, chunked, count_blocks_recursive, flatten_legacy
)

logger = logging.getLogger(__name__)

LEGACY_BLOCKS_KEY = "key_thoughts_blocks"
LEGACY_BACKUP_KEY = "key_thoughts_blocks_backup"
MIGRATION_MARKER_KEY = "blocks_migration_completed"


class MigrationService:
    """
    Alur migrate():
      baca blob (default '[]') -> arsip verbatim ke backup -> parse ->
      flatten_legacy -> insert per batch -> set marker -> validasi.

    Tidak ada transaksi: jika gagal di tengah, caller memanggil rollback().
    """

    def __init__(self, db: IPersistence, user_id: str, batch_size: int = UPSERT_BATCH_SIZE):
        self.db = db
        self.user_id = user_id
        self.batch_size = batch_size

    async def is_migrated(self) -> bool:
        return await settings_queries.get_setting(self.db, self.user_id, MIGRATION_MARKER_KEY) == "true"

    async def migrate(self, page_id: Optional[str] = None, force: bool = False) -> MigrationResult:
        logger.info(f"Migrasi JSON -> blocks dimulai untuk user {self.user_id} (page {page_id}).")
        try:
            if not force and await self.is_migrated():
                raise MigrationError("Migrasi sudah pernah dijalankan untuk user ini.")

            raw = await settings_queries.get_setting(self.db, self.user_id, LEGACY_BLOCKS_KEY)
            raw = raw or "[]"
            logger.debug(f"Blob legacy: {len(raw)} byte.")

            # Arsip disimpan sebelum parsing agar selalu bisa di-rollback
            await settings_queries.upsert_setting(self.db, self.user_id, LEGACY_BACKUP_KEY, raw)

            try:
                document = json.loads(raw)
            except ValueError as e:
                raise MigrationError(f"Blob legacy bukan JSON valid: {e}")
            if not isinstance(document, list):
                raise MigrationError("Blob legacy harus berupa list block.")

            records = flatten_legacy(document, self.user_id, page_id)
            rows = [record.to_row() for record in records]
            for index, batch in enumerate(chunked(rows, self.batch_size)):
                await block_queries.insert_blocks(self.db, batch)
                logger.debug(f"Batch migrasi {index + 1}: {len(batch)} baris disimpan.")

            await settings_queries.upsert_setting(self.db, self.user_id, MIGRATION_MARKER_KEY, "true")

        except MigrationError:
            raise
        except Exception as e:
            logger.error(f"Migrasi untuk user {self.user_id} gagal: {e}", exc_info=True)
            raise MigrationError(f"Migrasi gagal: {e}")

        report = await self.validate_migration(page_id)
        if not report.valid:
            logger.warning(
                f"Migrasi user {self.user_id} selesai tetapi validasi gagal: {report.issues}. "
                f"Jalankan rollback untuk memulihkan."
            )
            return MigrationResult(success=False, migrated_count=-1, report=report)

        logger.info(f"Migrasi user {self.user_id} selesai: {len(rows)} block.")
        return MigrationResult(success=True, migrated_count=len(rows), report=report)

    async def validate_migration(self, page_id: Optional[str] = None) -> MigrationValidationReport:
        """Membandingkan arsip dengan baris hasil migrasi. Tidak pernah melempar exception."""
        try:
            backup = await settings_queries.get_setting(self.db, self.user_id, LEGACY_BACKUP_KEY)
            if backup is None:
                return MigrationValidationReport(valid=False, issues=["Arsip backup tidak ditemukan."])

            original_count = count_blocks_recursive(json.loads(backup))
            rows = await block_queries.get_blocks_by_page(self.db, self.user_id, page_id)
            records = [BlockRecord.model_validate(row) for row in rows]
        except Exception as e:
            logger.error(f"Validasi migrasi gagal: {e}", exc_info=True)
            return MigrationValidationReport(valid=False, issues=[f"Error saat validasi: {e}"])

        issues = []
        if original_count != len(records):
            issues.append(f"Jumlah block tidak sama: arsip={original_count}, hasil={len(records)}.")

        ids = {record.id for record in records}
        dangling = [r.id for r in records if r.parent_id is not None and r.parent_id not in ids]
        if dangling:
            issues.append(f"{len(dangling)} block memiliki parent_id yang tidak ada.")

        references = [r.id for r in records if r.is_reference or r.original_block_id is not None]
        if references:
            issues.append(f"{len(references)} block referensi tidak seharusnya dibuat.")

        return MigrationValidationReport(
            valid=not issues,
            original_count=original_count,
            migrated_count=len(records),
            issues=issues,
        )

    async def rollback(self, page_id: Optional[str] = None) -> bool:
        """
        Mengembalikan state sebelum migrasi. False jika arsip tidak ada;
        error I/O dilempar sebagai MigrationError.
        """
        logger.info(f"Rollback migrasi untuk user {self.user_id} (page {page_id}).")
        try:
            backup = await settings_queries.get_setting(self.db, self.user_id, LEGACY_BACKUP_KEY)
            if backup is None:
                logger.warning(f"Rollback dibatalkan: arsip backup user {self.user_id} tidak ada.")
                return False

            await block_queries.delete_blocks_by_scope(self.db, self.user_id, page_id)
            await settings_queries.upsert_setting(self.db, self.user_id, LEGACY_BLOCKS_KEY, backup)
            await settings_queries.delete_setting(self.db, self.user_id, MIGRATION_MARKER_KEY)
        except Exception as e:
            logger.error(f"Rollback untuk user {self.user_id} gagal: {e}", exc_info=True)
            raise MigrationError(f"Rollback gagal: {e}")

        logger.info(f"Rollback user {self.user_id} selesai.")
        return True
