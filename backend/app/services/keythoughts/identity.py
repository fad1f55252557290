# File: backend/app/services/keythoughts/identity.py

import re
import uuid
from typing import Dict, Iterable

# Format kanonik UUID: 8-4-4-4-12 digit hex
_DURABLE_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE
)

def new_block_id() -> str:
    """Id durable baru (UUID v4 acak)."""
    return str(uuid.uuid4())

def is_durable_id(value) -> bool:
    """True jika value adalah id durable (bukan id sementara dari klien, mis. timestamp)."""
    return isinstance(value, str) and _DURABLE_ID_PATTERN.match(value) is not None

def build_id_map(forest: Iterable) -> Dict[str, str]:
    """
    Membangun tabel remap id untuk seluruh forest dalam satu walk.
    Id non-durable mendapat id baru; id durable dipetakan ke dirinya sendiri.
    Harus lengkap SEBELUM flattening karena child mereferensikan id lama parent.
    """
    id_map: Dict[str, str] = {}
    stack = list(reversed(list(forest)))
    while stack:
        node = stack.pop()
        if node.id not in id_map:
            id_map[node.id] = node.id if is_durable_id(node.id) else new_block_id()
        stack.extend(reversed(node.children))
    return id_map
