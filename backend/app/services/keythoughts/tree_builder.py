# File: backend/app/services/keythoughts/tree_builder.py
# Rekonstruksi tree dari baris flat 'blocks'.

import logging
from typing import Dict, List, Optional, Sequence, Set

from app.models.block import (
    BlockNode, BlockRecord, ContentBlock, DEFAULT_BLOCK_TYPE, ReferenceBlock
)
from app.services.keythoughts.flattener import compute_depths, iter_nodes
from app.services.keythoughts.identity import new_block_id
from app.services.keythoughts.references import is_reference_record

logger = logging.getLogger(__name__)


def new_root_block() -> ContentBlock:
    """Block root kosong untuk page yang belum punya isi."""
    return ContentBlock(id=new_block_id(), content="", depth=0, position=0)


def _to_node(record: BlockRecord) -> BlockNode:
    fields = dict(
        id=record.id,
        type=record.type or DEFAULT_BLOCK_TYPE,
        content="" if record.content is None else record.content,
        is_open=True if record.is_open is None else record.is_open,
        depth=record.depth or 0,
        position=record.position or 0,
    )
    if is_reference_record(record):
        return ReferenceBlock(
            original_block_id=record.original_block_id,
            original_found=record.original_found is not False,
            **fields
        )
    return ContentBlock(**fields)


def _sort_by_position(nodes: List[BlockNode]) -> None:
    # sort() stabil: posisi yang sama mempertahankan urutan input
    nodes.sort(key=lambda n: n.position)
    for node in nodes:
        if node.children:
            _sort_by_position(node.children)


def build_tree(records: Sequence[BlockRecord]) -> List[BlockNode]:
    """
    Mengubah daftar record flat menjadi forest terurut.

    - parent_id kosong -> root
    - parent tidak ditemukan (orphan) -> dipromosikan ke root dengan depth 0
    - rantai parent yang siklik (tidak terjangkau dari root) -> diputus,
      node pertama siklus dipromosikan ke root
    - input kosong -> satu root block kosong

    Tidak pernah melempar exception untuk data yang rusak.
    """
    if not records:
        return [new_root_block()]

    nodes: Dict[str, BlockNode] = {}
    parents: Dict[str, Optional[str]] = {}
    order: List[str] = []
    for record in records:
        if record.id in nodes:
            logger.warning(f"Record block duplikat diabaikan: {record.id}")
            continue
        nodes[record.id] = _to_node(record)
        parents[record.id] = record.parent_id
        order.append(record.id)

    roots: List[BlockNode] = []
    for block_id in order:
        node = nodes[block_id]
        parent_id = parents[block_id]
        if parent_id is None:
            roots.append(node)
            continue
        parent = nodes.get(parent_id) if parent_id != block_id else None
        if parent is not None:
            parent.children.append(node)
        else:
            logger.debug(f"Block orphan {block_id} (parent {parent_id} tidak ada), dipindah ke root.")
            node.depth = 0
            parents[block_id] = None
            roots.append(node)

    _promote_unreachable(roots, nodes, parents, order)
    _sort_by_position(roots)
    compute_depths(roots)
    return roots


def _promote_unreachable(
    roots: List[BlockNode],
    nodes: Dict[str, BlockNode],
    parents: Dict[str, Optional[str]],
    order: List[str]
) -> None:
    reachable: Set[str] = {node.id for node in iter_nodes(roots)}
    if len(reachable) == len(order):
        return

    for block_id in order:
        if block_id in reachable:
            continue
        node = nodes[block_id]
        parent = nodes[parents[block_id]]
        parent.children = [c for c in parent.children if c is not node]
        parents[block_id] = None
        node.depth = 0
        roots.append(node)
        reachable.update(n.id for n in iter_nodes([node]))
        logger.warning(f"Siklus parent_id terdeteksi, block {block_id} dipindah ke root.")
