# File: backend/app/core/exceptions.py

class DatabaseError(Exception):
    """Pengecualian umum untuk kegagalan operasi pada persistence layer."""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Database error during {operation}: {details}")

class SyncBatchError(DatabaseError):
    """
    Salah satu batch upsert gagal saat sinkronisasi tree.
    Batch sebelumnya TIDAK di-rollback (scope bisa berada di state campuran).
    """
    def __init__(self, batch_index: int, batches_applied: int, batches_total: int, details: str):
        self.batch_index = batch_index
        self.batches_applied = batches_applied
        self.batches_total = batches_total
        super().__init__(
            "upsert_blocks_batch",
            f"batch {batch_index + 1}/{batches_total} gagal "
            f"({batches_applied} batch sudah diterapkan): {details}"
        )

class NotFoundError(Exception):
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID {entity_id} not found.")

class InvalidOperationError(Exception):
    """
    Dilempar ketika sebuah edit ditolak, misalnya memindahkan block ke
    dalam subtree-nya sendiri atau menghapus page terakhir.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

class MigrationError(Exception):
    """Error pada transformasi JSON -> blocks. Caller yang memutuskan rollback."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
