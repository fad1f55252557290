# File: backend/tests/keythoughts/test_tree_builder.py

from app.models.block import BlockRecord, ContentBlock, ReferenceBlock
from app.services.keythoughts.flattener import iter_nodes
from app.services.keythoughts.identity import is_durable_id
from app.services.keythoughts.tree_builder import build_tree


def record(id, parent_id=None, position=0, depth=0, **kwargs):
    return BlockRecord(id=id, parent_id=parent_id, position=position, depth=depth, **kwargs)


def test_empty_input_yields_single_empty_root():
    forest = build_tree([])

    assert len(forest) == 1
    root = forest[0]
    assert isinstance(root, ContentBlock)
    assert root.content == ""
    assert root.children == []
    assert root.depth == 0 and root.position == 0
    assert is_durable_id(root.id)


def test_children_are_attached_and_sorted_by_position():
    forest = build_tree([
        record("b", parent_id="a", position=1, content="second"),
        record("a", position=0, content="root"),
        record("c", parent_id="a", position=0, content="first"),
    ])

    assert [n.id for n in forest] == ["a"]
    assert [c.content for c in forest[0].children] == ["first", "second"]
    assert all(c.depth == 1 for c in forest[0].children)


def test_equal_positions_keep_input_order():
    forest = build_tree([
        record("x", position=0),
        record("y", position=0),
        record("z", position=0),
    ])
    assert [n.id for n in forest] == ["x", "y", "z"]


def test_orphan_is_promoted_to_root_with_depth_zero():
    forest = build_tree([
        record("a", position=0),
        record("orphan", parent_id="missing", position=1, depth=4),
        record("grandchild", parent_id="orphan", position=0, depth=5),
    ])

    by_id = {n.id: n for n in iter_nodes(forest)}
    assert [n.id for n in forest] == ["a", "orphan"]
    assert by_id["orphan"].depth == 0
    assert by_id["grandchild"].depth == 1


def test_parent_cycle_is_broken_without_losing_nodes():
    forest = build_tree([
        record("root", position=0),
        record("p", parent_id="q", position=0),
        record("q", parent_id="p", position=1),
        record("self", parent_id="self", position=2),
    ])

    ids = [n.id for n in iter_nodes(forest)]
    assert sorted(ids) == ["p", "q", "root", "self"]
    assert len(ids) == len(set(ids))
    root_ids = {n.id for n in forest}
    assert "root" in root_ids and "self" in root_ids
    assert ("p" in root_ids) != ("q" in root_ids)


def test_duplicate_ids_keep_first_record():
    forest = build_tree([
        record("a", position=0, content="first"),
        record("a", position=1, content="second"),
    ])
    assert len(forest) == 1
    assert forest[0].content == "first"


def test_stored_depth_is_ignored():
    forest = build_tree([
        record("a", position=0, depth=7),
        record("b", parent_id="a", position=0, depth=0),
    ])
    assert forest[0].depth == 0
    assert forest[0].children[0].depth == 1


def test_reference_records_become_reference_nodes():
    forest = build_tree([
        record("orig", position=0, content="hello"),
        record("ref", position=1, content="hello", is_reference=True, original_block_id="orig"),
    ])
    ref = forest[1]
    assert isinstance(ref, ReferenceBlock)
    assert ref.original_block_id == "orig"
    assert ref.kind == "reference"


def test_null_fields_from_storage_get_defaults():
    forest = build_tree([
        BlockRecord(id="a", content=None, type=None, position=None, depth=None, is_open=None),
    ])
    node = forest[0]
    assert node.content == ""
    assert node.type == "toggle"
    assert node.is_open is True
