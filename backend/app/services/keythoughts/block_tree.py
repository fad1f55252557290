# File: backend/app/services/keythoughts/block_tree.py
# Penyimpanan tree in-memory bergaya arena: map id -> node + map id -> parent.

import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from app.core.exceptions import InvalidOperationError, NotFoundError
from app.models.block import (
    BlockNode, ContentBlock, DEFAULT_BLOCK_TYPE, ReferenceBlock
)
from app.services.keythoughts.flattener import compute_depths, iter_nodes
from app.services.keythoughts.identity import new_block_id
from app.services.keythoughts.references import ORIGINAL_NOT_FOUND

logger = logging.getLogger(__name__)


class BlockTree:
    """
    Forest milik satu page, diedit in-place.

    Node tetap berupa model bersarang (children berisi node), ditambah dua
    indeks: _nodes (id -> node) dan _parents (id -> id parent, None = root).
    Konsumen luar yang butuh isolasi memakai snapshot() (deep copy).
    """

    def __init__(self, forest: Optional[Sequence[BlockNode]] = None):
        self.roots: List[BlockNode] = []
        self._nodes: Dict[str, BlockNode] = {}
        self._parents: Dict[str, Optional[str]] = {}
        self.replace(forest or [])

    # --- Indeks ---

    def replace(self, forest: Sequence[BlockNode]) -> None:
        """Mengganti seluruh isi tree. Id duplikat diberi id baru."""
        self.roots = list(forest)
        self._nodes = {}
        self._parents = {}
        self._index(self.roots, None)
        compute_depths(self.roots)

    def _index(self, nodes: Sequence[BlockNode], parent_id: Optional[str]) -> None:
        for node in nodes:
            if node.id in self._nodes:
                old_id = node.id
                node.id = new_block_id()
                logger.warning(f"Id block duplikat {old_id} diganti menjadi {node.id}")
            self._nodes[node.id] = node
            self._parents[node.id] = parent_id
            self._index(node.children, node.id)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._nodes

    def walk(self) -> Iterator[BlockNode]:
        return iter_nodes(self.roots)

    def get(self, block_id: str) -> BlockNode:
        node = self._nodes.get(block_id)
        if node is None:
            raise NotFoundError("Block", block_id)
        return node

    def parent_of(self, block_id: str) -> Optional[str]:
        self.get(block_id)
        return self._parents[block_id]

    def children_of(self, parent_id: Optional[str]) -> List[BlockNode]:
        return self.roots if parent_id is None else self.get(parent_id).children

    def references_to(self, original_id: str) -> List[ReferenceBlock]:
        return [
            node for node in self._nodes.values()
            if isinstance(node, ReferenceBlock) and node.original_block_id == original_id
        ]

    # --- Edit ---

    def _detach(self, node: BlockNode) -> None:
        siblings = self.children_of(self._parents[node.id])
        # Bandingkan identitas, bukan __eq__ pydantic
        siblings[:] = [s for s in siblings if s is not node]

    def _insert(self, node: BlockNode, parent_id: Optional[str], index: Optional[int]) -> None:
        siblings = self.children_of(parent_id)
        if index is None or index > len(siblings):
            index = len(siblings)
        siblings.insert(index, node)
        self._nodes[node.id] = node
        self._parents[node.id] = parent_id
        node.depth = 0 if parent_id is None else self._nodes[parent_id].depth + 1

    def add_block(
        self,
        parent_id: Optional[str] = None,
        index: Optional[int] = None,
        content: str = "",
        type: str = DEFAULT_BLOCK_TYPE
    ) -> ContentBlock:
        node = ContentBlock(id=new_block_id(), content=content, type=type or DEFAULT_BLOCK_TYPE)
        self._insert(node, parent_id, index)
        return node

    def add_reference(
        self,
        original_block_id: str,
        content: str,
        parent_id: Optional[str] = None,
        index: Optional[int] = None,
        original_found: bool = True
    ) -> ReferenceBlock:
        """
        Menambah block referensi. Referensi ke block yang juga referensi
        ditolak (rantai referensi tidak didukung).
        """
        original = self._nodes.get(original_block_id)
        if isinstance(original, ReferenceBlock):
            raise InvalidOperationError("Tidak bisa mereferensikan block yang juga referensi.")
        node = ReferenceBlock(
            id=new_block_id(),
            content=content,
            original_block_id=original_block_id,
            original_found=original_found,
        )
        self._insert(node, parent_id, index)
        return node

    def update_content(self, block_id: str, content: str) -> Tuple[str, Optional[str]]:
        """
        Mengubah konten. Edit pada referensi diarahkan ke original-nya.

        Return (id target yang benar-benar berubah, konten sebelumnya).
        Jika original tidak ada di tree ini, konten sebelumnya None dan
        caller yang bertanggung jawab menulis ke storage.
        """
        node = self.get(block_id)
        if isinstance(node, ReferenceBlock):
            target_id = node.original_block_id
            original = self._nodes.get(target_id)
            before = original.content if original is not None else None
            if original is not None:
                original.content = content
        else:
            target_id = node.id
            before = node.content
            node.content = content

        for reference in self.references_to(target_id):
            reference.content = content
            reference.original_found = True
        return target_id, before

    def set_open(self, block_id: str, is_open: bool) -> None:
        self.get(block_id).is_open = is_open

    def move_block(
        self, block_id: str, new_parent_id: Optional[str], index: Optional[int] = None
    ) -> None:
        """Memindahkan block (beserta subtree) ke parent/posisi baru."""
        node = self.get(block_id)
        if new_parent_id is not None:
            self.get(new_parent_id)
            ancestor: Optional[str] = new_parent_id
            while ancestor is not None:
                if ancestor == block_id:
                    raise InvalidOperationError("Block tidak bisa dipindah ke dalam subtree-nya sendiri.")
                ancestor = self._parents[ancestor]

        self._detach(node)
        self._insert(node, new_parent_id, index)
        compute_depths(node.children, node.depth)

    def delete_block(self, block_id: str) -> List[str]:
        """Menghapus block beserta seluruh subtree. Return id yang terhapus."""
        node = self.get(block_id)
        self._detach(node)
        removed = [n.id for n in iter_nodes([node])]
        for removed_id in removed:
            del self._nodes[removed_id]
            del self._parents[removed_id]
        for removed_id in removed:
            for reference in self.references_to(removed_id):
                reference.content = ORIGINAL_NOT_FOUND
                reference.original_found = False
        return removed

    def rename_ids(self, id_map: Dict[str, str]) -> None:
        """Back-propagation id durable setelah sinkronisasi sukses."""
        changed = {old: new for old, new in id_map.items() if old != new}
        if not changed:
            return
        for node in list(self._nodes.values()):
            if isinstance(node, ReferenceBlock) and node.original_block_id in changed:
                node.original_block_id = changed[node.original_block_id]
        for old_id, new_id in changed.items():
            node = self._nodes.pop(old_id, None)
            if node is None:
                continue
            node.id = new_id
            self._nodes[new_id] = node
            self._parents[new_id] = self._parents.pop(old_id)
        for child_id, parent_id in self._parents.items():
            if parent_id in changed:
                self._parents[child_id] = changed[parent_id]

    def snapshot(self) -> List[dict]:
        """Deep copy JSON-ready dari forest (untuk history / response API)."""
        return [node.model_dump(mode="json") for node in self.roots]
