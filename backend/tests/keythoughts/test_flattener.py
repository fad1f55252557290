# File: backend/tests/keythoughts/test_flattener.py

import uuid

import pytest

from app.models.block import BlockRecord, ContentBlock, ReferenceBlock
from app.services.keythoughts.flattener import (
    chunked, compute_depths, count_blocks_recursive, flatten_forest, flatten_legacy, iter_nodes
)
from app.services.keythoughts.identity import build_id_map, is_durable_id
from app.services.keythoughts.references import enrich_block_references
from app.services.keythoughts.tree_builder import build_tree


def sample_forest():
    return [
        ContentBlock(id="a", content="A", children=[
            ContentBlock(id="a1", content="A1", children=[ContentBlock(id="a1x", content="A1x")]),
            ContentBlock(id="a2", content="A2", is_open=False),
        ]),
        ContentBlock(id="b", content="B"),
    ]


def flatten(forest, user_id="u", page_id="p"):
    compute_depths(forest)
    id_map = build_id_map(forest)
    return flatten_forest(forest, id_map, user_id=user_id, page_id=page_id), id_map


def test_chunked_splits_into_fixed_batches():
    assert [len(b) for b in chunked(list(range(2001)), 1000)] == [1000, 1000, 1]
    assert list(chunked([], 1000)) == []
    with pytest.raises(ValueError):
        list(chunked([1], 0))


def test_iter_nodes_is_preorder():
    assert [n.id for n in iter_nodes(sample_forest())] == ["a", "a1", "a1x", "a2", "b"]


def test_compute_depths_overrides_stored_depth():
    forest = sample_forest()
    forest[0].depth = 9
    forest[0].children[0].children[0].depth = 0
    compute_depths(forest)
    depths = {n.id: n.depth for n in iter_nodes(forest)}
    assert depths == {"a": 0, "a1": 1, "a1x": 2, "a2": 1, "b": 0}


def test_flatten_emits_parent_before_children_with_contiguous_positions():
    records, id_map = flatten(sample_forest())
    by_old = {old: new for old, new in id_map.items()}
    ids = [r.id for r in records]

    assert ids == [by_old[x] for x in ["a", "a1", "a1x", "a2", "b"]]

    scopes = {}
    for r in records:
        scopes.setdefault(r.parent_id, []).append(r.position)
    for positions in scopes.values():
        assert positions == list(range(len(positions)))

    index = {r.id: r for r in records}
    for r in records:
        if r.parent_id is None:
            assert r.depth == 0
        else:
            assert r.depth == index[r.parent_id].depth + 1
            assert ids.index(r.parent_id) < ids.index(r.id)


def test_flatten_fields_and_defaults():
    records, _ = flatten(sample_forest(), user_id="user-1", page_id="page-1")
    assert all(is_durable_id(r.id) for r in records)
    assert all(r.user_id == "user-1" and r.page_id == "page-1" for r in records)
    assert all(r.type == "toggle" and r.is_reference is False for r in records)
    a2 = next(r for r in records if r.content == "A2")
    assert a2.is_open is False


def test_flatten_reference_keeps_empty_own_content_and_remaps_original():
    forest = [
        ContentBlock(id="tmp-orig", content="hello"),
        ReferenceBlock(id="tmp-ref", content="hello", original_block_id="tmp-orig"),
        ReferenceBlock(id="tmp-ext", content="other page", original_block_id="external-id"),
    ]
    records, id_map = flatten(forest)

    ref = records[1]
    assert ref.is_reference is True
    assert ref.content == ""
    assert ref.original_block_id == id_map["tmp-orig"]
    assert records[2].original_block_id == "external-id"


def test_root_scope_is_distinct_from_block_ids():
    # Id 'root' tidak boleh berbagi counter dengan scope root
    forest = [ContentBlock(id="root", children=[ContentBlock(id="c1"), ContentBlock(id="c2")]),
              ContentBlock(id="second")]
    records, _ = flatten(forest)
    positions = [r.position for r in records]
    assert positions == [0, 0, 1, 1]


def test_round_trip_preserves_structure_and_content():
    records, _ = flatten(sample_forest())
    rebuilt = build_tree(enrich_block_references(records))

    def shape(nodes):
        return [(n.content, n.is_open, shape(n.children)) for n in nodes]

    assert shape(rebuilt) == shape(sample_forest())


def test_flatten_is_idempotent_for_durable_ids():
    forest = [ContentBlock(id=str(uuid.uuid4()), content="x", children=[ContentBlock(id=str(uuid.uuid4()))])]
    first, _ = flatten(forest)
    second, _ = flatten(build_tree(first))
    strip = lambda rs: [r.model_dump(exclude={"created_at", "updated_at", "original_found"}) for r in rs]
    assert strip(first) == strip(second)


def test_count_blocks_recursive():
    document = [
        {"content": "a", "children": [{"content": "b"}, {"content": "c", "children": [{"content": "d"}]}]},
        {"content": "e"},
    ]
    assert count_blocks_recursive(document) == 5
    assert count_blocks_recursive({"not": "a list"}) == 0
    assert count_blocks_recursive([]) == 0


def test_flatten_legacy_assigns_new_ids_and_honours_legacy_keys():
    document = [
        {"id": 1712345678901, "content": "A", "isOpen": False, "children": [{"id": 2, "content": "B"}]},
        {"id": 3, "type": "toggle"},
    ]

    records = flatten_legacy(document, user_id="u")

    assert len(records) == 3
    assert all(is_durable_id(r.id) for r in records)
    a, b, c = records
    assert a.is_open is False and a.parent_id is None and a.position == 0
    assert b.parent_id == a.id and b.depth == 1 and b.position == 0
    assert c.content == "" and c.position == 1 and c.page_id is None
    assert all(r.is_reference is False and r.original_block_id is None for r in records)
    assert all(isinstance(r, BlockRecord) for r in records)


def test_flatten_legacy_keeps_non_object_items_as_empty_blocks():
    document = [{"content": "a"}, "stray", {"content": "c", "children": [None]}]

    records = flatten_legacy(document, user_id="u")

    assert len(records) == count_blocks_recursive(document) == 4
    a, stray, c, child = records
    assert stray.content == "" and stray.parent_id is None and stray.position == 1
    assert c.position == 2
    assert child.parent_id == c.id and child.content == "" and child.position == 0
