# File: backend/tests/keythoughts/test_identity.py

import uuid

from app.models.block import ContentBlock
from app.services.keythoughts.identity import build_id_map, is_durable_id, new_block_id


def test_new_block_id_is_durable():
    assert is_durable_id(new_block_id())
    assert new_block_id() != new_block_id()


def test_is_durable_id_accepts_canonical_uuid_any_case():
    value = str(uuid.uuid4())
    assert is_durable_id(value)
    assert is_durable_id(value.upper())


def test_is_durable_id_rejects_temporary_ids():
    assert not is_durable_id("1712345678901")
    assert not is_durable_id("block-1")
    assert not is_durable_id(1712345678901)
    assert not is_durable_id(None)
    assert not is_durable_id(str(uuid.uuid4()).replace("-", ""))


def test_build_id_map_keeps_durable_and_remaps_temporary():
    durable = str(uuid.uuid4())
    forest = [
        ContentBlock(id=durable, children=[ContentBlock(id="tmp-child")]),
        ContentBlock(id="1712345678901"),
    ]

    id_map = build_id_map(forest)

    assert set(id_map) == {durable, "tmp-child", "1712345678901"}
    assert id_map[durable] == durable
    assert is_durable_id(id_map["tmp-child"])
    assert is_durable_id(id_map["1712345678901"])
    assert id_map["tmp-child"] != id_map["1712345678901"]
