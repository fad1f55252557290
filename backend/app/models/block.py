# File: backend/app/models/block.py

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import datetime
from enum import Enum

class BlockType(str, Enum):
    toggle = "toggle"

DEFAULT_BLOCK_TYPE = BlockType.toggle.value

class BlockRecord(BaseModel):
    """
    Representasi flat satu baris di tabel 'blocks'.
    'children' tidak pernah ada di sini; hirarki dibawa oleh parent_id.
    """
    id: str
    user_id: Optional[str] = None
    page_id: Optional[str] = None
    content: Optional[str] = ""
    type: Optional[str] = DEFAULT_BLOCK_TYPE
    parent_id: Optional[str] = None
    position: Optional[int] = 0
    depth: Optional[int] = 0
    is_open: Optional[bool] = True
    is_reference: Optional[bool] = False
    original_block_id: Optional[str] = None
    # Diisi oleh enrich_block_references, tidak pernah disimpan
    original_found: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")

    def to_row(self) -> dict:
        """Payload untuk insert/upsert (timestamp diserahkan ke database)."""
        return self.model_dump(mode="json", exclude={"created_at", "updated_at", "original_found"})


class BlockNodeBase(BaseModel):
    """Field bersama untuk node di tree in-memory."""
    # Id sementara dari klien bisa berupa angka (timestamp)
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    type: str = DEFAULT_BLOCK_TYPE
    content: str = ""
    is_open: bool = True
    depth: int = 0
    position: int = 0
    children: List["BlockNode"] = Field(default_factory=list)

class ContentBlock(BlockNodeBase):
    """Block biasa; 'content' miliknya sendiri dan otoritatif."""
    kind: Literal["content"] = "content"

class ReferenceBlock(BlockNodeBase):
    """
    Block referensi (synced block). 'content' hanya proyeksi dari
    block original dan tidak pernah ditulis sebagai konten baris ini.
    """
    kind: Literal["reference"] = "reference"
    original_block_id: str
    original_found: bool = True

def _node_kind(value: Any) -> str:
    # Klien lama tidak mengirim "kind"; fallback ke flag is_reference / original_block_id
    if isinstance(value, dict):
        if value.get("kind"):
            return value["kind"]
        if (value.get("is_reference") or value.get("isReference")) and value.get("original_block_id"):
            return "reference"
        return "content"
    return getattr(value, "kind", "content")

BlockNode = Annotated[
    Union[
        Annotated[ContentBlock, Tag("content")],
        Annotated[ReferenceBlock, Tag("reference")],
    ],
    Discriminator(_node_kind),
]

BlockNodeBase.model_rebuild()
ContentBlock.model_rebuild()
ReferenceBlock.model_rebuild()


# --- Payload API ---

class BlockCreate(BaseModel):
    parent_id: Optional[str] = None
    index: Optional[int] = Field(None, ge=0, description="Posisi di antara sibling; default di akhir.")
    content: str = ""
    type: str = DEFAULT_BLOCK_TYPE

class BlockUpdate(BaseModel):
    content: Optional[str] = None
    is_open: Optional[bool] = None

class BlockMove(BaseModel):
    new_parent_id: Optional[str] = None
    index: Optional[int] = Field(None, ge=0)

class ReferenceCreate(BaseModel):
    original_block_id: str
    parent_id: Optional[str] = None
    index: Optional[int] = Field(None, ge=0)

class TreeReplace(BaseModel):
    blocks: List[BlockNode]

class TreeResponse(BaseModel):
    page_id: str
    blocks: List[BlockNode]

class SyncResult(BaseModel):
    """Hasil eksplisit satu kali sinkronisasi (tidak melempar exception)."""
    status: Literal["success", "failed", "skipped"]
    upserted: int = 0
    deleted: int = 0
    batches_applied: int = 0
    batches_total: int = 0
    id_map: Dict[str, str] = Field(
        default_factory=dict,
        description="Hanya id yang berubah (ephemeral -> durable)."
    )
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"
