# File: backend/app/services/keythoughts/references.py

import logging
from typing import Dict, List, Optional, Sequence

from app.models.block import BlockRecord

logger = logging.getLogger(__name__)

ORIGINAL_NOT_FOUND = "[original block not found]"

def is_reference_record(record: BlockRecord) -> bool:
    return bool(record.is_reference and record.original_block_id)

def resolve_reference_content(
    by_id: Dict[str, BlockRecord], original_id: str
) -> Optional[str]:
    """
    Konten milik block original (satu hop saja, tidak di-resolve ulang
    walaupun original itu sendiri adalah referensi). None jika tidak ada.
    """
    original = by_id.get(original_id)
    if original is None:
        return None
    return original.content or ""

def enrich_block_references(records: Sequence[BlockRecord]) -> List[BlockRecord]:
    """
    Memproyeksikan konten original ke setiap block referensi.

    Hanya mencari target di dalam set yang sama (satu page). Target yang
    tidak ditemukan diganti sentinel ORIGINAL_NOT_FOUND. Record input
    tidak dimutasi; block referensi dikembalikan sebagai salinan.
    Harus dijalankan sebelum build_tree.
    """
    by_id: Dict[str, BlockRecord] = {}
    for record in records:
        by_id.setdefault(record.id, record)

    enriched: List[BlockRecord] = []
    missing = 0
    for record in records:
        if not is_reference_record(record):
            enriched.append(record)
            continue
        content = resolve_reference_content(by_id, record.original_block_id)
        if content is None:
            missing += 1
            enriched.append(record.model_copy(
                update={"content": ORIGINAL_NOT_FOUND, "original_found": False}
            ))
            continue
        enriched.append(record.model_copy(update={"content": content, "original_found": True}))

    if missing:
        logger.debug(f"{missing} block referensi tidak menemukan original di scope yang sama.")
    return enriched
