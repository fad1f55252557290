# File: backend/app/services/keythoughts/flattener.py
# Konversi tree bersarang -> baris flat (parent_id, position, depth).

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, TypeVar

from app.models.block import BlockRecord, DEFAULT_BLOCK_TYPE, ReferenceBlock
from app.services.keythoughts.identity import new_block_id

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 1000

# Kunci counter posisi untuk scope root; object() tidak mungkin sama dengan id block
_ROOT_SCOPE = object()

T = TypeVar("T")


def chunked(items: Sequence[T], size: int = UPSERT_BATCH_SIZE) -> Iterator[List[T]]:
    if size <= 0:
        raise ValueError("Ukuran batch harus > 0")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def iter_nodes(forest: Sequence) -> Iterator:
    """Pre-order (parent lalu children), urutan sibling dipertahankan."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def compute_depths(forest: Sequence, parent_depth: int = -1) -> None:
    """
    Menulis ulang depth setiap node secara top-down (root = 0).
    Depth yang tersimpan sebelumnya selalu diabaikan.
    """
    stack = [(node, parent_depth + 1) for node in reversed(forest)]
    while stack:
        node, depth = stack.pop()
        node.depth = depth
        stack.extend((child, depth + 1) for child in reversed(node.children))


class _PositionCounter:
    """Satu counter posisi per parent scope, mulai dari 0."""

    def __init__(self):
        self._counters: Dict[Any, int] = {}

    def next(self, parent_id: Optional[str]) -> int:
        key = _ROOT_SCOPE if parent_id is None else parent_id
        position = self._counters.get(key, 0)
        self._counters[key] = position + 1
        return position


def flatten_forest(
    forest: Sequence,
    id_map: Dict[str, str],
    user_id: Optional[str] = None,
    page_id: Optional[str] = None
) -> List[BlockRecord]:
    """
    Meratakan forest menjadi BlockRecord (depth-first, parent dulu).

    Semua id diterjemahkan lewat id_map (lihat identity.build_id_map).
    Depth diambil dari node, jadi compute_depths harus sudah dijalankan.
    Block referensi tidak menyimpan konten proyeksinya sendiri.
    """
    counter = _PositionCounter()
    records: List[BlockRecord] = []

    stack = [(node, None) for node in reversed(forest)]
    while stack:
        node, parent_id = stack.pop()
        new_id = id_map[node.id]

        is_reference = isinstance(node, ReferenceBlock)
        original_block_id = None
        if is_reference:
            # Original di luar tree ini (page lain) tidak ada di id_map
            original_block_id = id_map.get(node.original_block_id, node.original_block_id)

        records.append(BlockRecord(
            id=new_id,
            user_id=user_id,
            page_id=page_id,
            content="" if is_reference or node.content is None else node.content,
            type=node.type or DEFAULT_BLOCK_TYPE,
            parent_id=parent_id,
            position=counter.next(parent_id),
            depth=node.depth,
            is_open=True if node.is_open is None else node.is_open,
            is_reference=is_reference,
            original_block_id=original_block_id,
        ))
        stack.extend((child, new_id) for child in reversed(node.children))

    return records


def count_blocks_recursive(document: Any) -> int:
    """Jumlah node di dokumen JSON legacy, termasuk semua children bersarang."""
    if not isinstance(document, list):
        return 0
    count = len(document)
    for node in document:
        if isinstance(node, dict) and isinstance(node.get("children"), list):
            count += count_blocks_recursive(node["children"])
    return count


def flatten_legacy(
    document: List[Dict[str, Any]],
    user_id: str,
    page_id: Optional[str] = None
) -> List[BlockRecord]:
    """
    Varian flattening untuk migrasi JSON legacy.
    Id sumber diabaikan: setiap node mendapat id durable baru.
    Data legacy tidak pernah berisi referensi. Item yang bukan object
    tetap menjadi block (konten kosong) agar jumlahnya sama dengan
    count_blocks_recursive.
    """
    counter = _PositionCounter()
    records: List[BlockRecord] = []

    stack = [(node, None, 0) for node in reversed(document)]
    while stack:
        node, parent_id, depth = stack.pop()
        if not isinstance(node, dict):
            node = {}
        block_id = new_block_id()
        is_open = node.get("isOpen", node.get("is_open"))

        records.append(BlockRecord(
            id=block_id,
            user_id=user_id,
            page_id=page_id,
            content=node.get("content") or "",
            type=node.get("type") or DEFAULT_BLOCK_TYPE,
            parent_id=parent_id,
            position=counter.next(parent_id),
            depth=depth,
            is_open=True if is_open is None else bool(is_open),
            is_reference=False,
            original_block_id=None,
        ))

        children = node.get("children")
        if isinstance(children, list):
            stack.extend(
                (child, block_id, depth + 1)
                for child in reversed(children)
            )

    logger.debug(f"flatten_legacy: {len(records)} node diratakan.")
    return records
