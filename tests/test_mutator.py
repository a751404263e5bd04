"""
Unit tests for the pure tree mutations.

Every operation must return a new document on success and the *same* input
object on any rejection; the input is never modified either way.
"""

from __future__ import annotations

from typing import Any

import pytest

from reportblocks.core.contracts.blocks import (
    Document,
    ImageGridBlock,
    LayoutBlock,
    TableBlock,
    TextBlock,
    UnknownBlockKindError,
    create_block,
    dump_document,
)
from reportblocks.core.tree import mutator
from reportblocks.core.tree.paths import count_blocks, find_path, get_by_path, get_slot


def _ids(blocks: tuple[object, ...]) -> list[str]:
    return [b.id for b in blocks]  # type: ignore[attr-defined]


def _two_column_doc() -> Document:
    """Root: [t0, layout L (col0: [a, b], col1: [c]), t1]."""
    layout = LayoutBlock(
        id="L",
        columns=2,
        children=((TextBlock(id="a"), TextBlock(id="b")), (TextBlock(id="c"),)),
    )
    return (TextBlock(id="t0"), layout, TextBlock(id="t1"))


# --------------------------------------------------------------------------- #
# update / add / delete
# --------------------------------------------------------------------------- #


def test_update_block_merges_partial() -> None:
    """Partial fields are merged, everything else is kept."""
    doc = _two_column_doc()
    out = mutator.update_block(doc, "b", {"content": "hello"})
    block = get_by_path((1, 0, 1), out)
    assert isinstance(block, TextBlock) and block.content == "hello"
    # input untouched
    assert isinstance(get_by_path((1, 0, 1), doc), TextBlock)
    assert get_by_path((1, 0, 1), doc).content == ""  # type: ignore[union-attr]


def test_update_block_shares_untouched_subtrees() -> None:
    """Only the nodes along the touched path are copied."""
    doc = _two_column_doc()
    out = mutator.update_block(doc, "a", {"content": "x"})
    assert out[0] is doc[0]
    assert out[2] is doc[2]
    assert out[1] is not doc[1]
    assert out[1].children[1] is doc[1].children[1]  # type: ignore[union-attr]


def test_update_block_ignores_id_and_type() -> None:
    """`id` and `type` are never changed by a partial update."""
    doc = _two_column_doc()
    assert mutator.update_block(doc, "t0", {"id": "other", "type": "subheader"}) is doc
    out = mutator.update_block(doc, "t0", {"id": "other", "content": "kept id"})
    assert out[0].id == "t0"
    assert out[0].type == "text"


def test_update_block_unknown_id_is_noop() -> None:
    """A stale id returns the same document object."""
    doc = _two_column_doc()
    assert mutator.update_block(doc, "ghost", {"content": "x"}) is doc


def test_update_block_refuses_invalid_fields() -> None:
    """A partial that breaks the model leaves the document unchanged."""
    doc = (TableBlock(id="t", cells=(("a", "b"),)),)
    assert mutator.update_block(doc, "t", {"cells": [["a"], ["b", "c"]]}) is doc
    assert mutator.update_block(doc, "t", {"nonsense": 1}) is doc


def test_update_layout_columns_resizes_children() -> None:
    """Changing `columns` alone keeps the children list in step."""
    doc = _two_column_doc()
    out = mutator.update_block(doc, "L", {"columns": 3})
    layout = out[1]
    assert isinstance(layout, LayoutBlock)
    assert layout.columns == 3
    assert len(layout.children) == 3
    assert layout.children[2] == ()
    assert mutator.update_block(doc, "L", {"columns": 4}) is doc


def test_add_block_to_root_and_column() -> None:
    """Blocks are appended to the root list or to the addressed column."""
    doc = _two_column_doc()
    out = mutator.add_block(doc, "subheader")
    assert len(out) == 4 and out[3].type == "subheader"

    out = mutator.add_block(doc, "table", (1, 1))
    column = get_slot((1, 1), out)
    assert column is not None
    assert _ids(column)[0] == "c"
    assert column[1].type == "table"
    assert count_blocks(out) == count_blocks(doc) + 1


def test_add_block_bad_slot_is_noop() -> None:
    """A slot that does not name an existing layout column is ignored."""
    doc = _two_column_doc()
    assert mutator.add_block(doc, "text", (1, 5)) is doc
    assert mutator.add_block(doc, "text", (0, 0)) is doc
    assert mutator.add_block(doc, "text", (1,)) is doc


def test_add_block_unknown_kind_raises() -> None:
    """An unknown kind is a programming error and is not swallowed."""
    with pytest.raises(UnknownBlockKindError):
        mutator.add_block(_two_column_doc(), "video")


def test_delete_block_twice_is_noop() -> None:
    """Deleting removes the node once; the second delete changes nothing."""
    doc = _two_column_doc()
    once = mutator.delete_block(doc, "b")
    assert find_path("b", once) is None
    assert count_blocks(once) == count_blocks(doc) - 1
    assert mutator.delete_block(once, "b") is once


def test_delete_layout_removes_subtree() -> None:
    """Deleting a layout drops every block inside it."""
    doc = _two_column_doc()
    out = mutator.delete_block(doc, "L")
    assert _ids(out) == ["t0", "t1"]
    assert count_blocks(out) == 2


def test_insert_block_refuses_existing_id() -> None:
    """Reinserting a block already in the tree would duplicate its id."""
    doc = _two_column_doc()
    assert mutator.insert_block(doc, TextBlock(id="a"), (0,)) is doc
    out = mutator.insert_block(doc, TextBlock(id="new"), (1, 1, 0))
    assert find_path("new", out) == (1, 1, 0)


def test_insert_layout_refuses_nested_duplicate_ids() -> None:
    """Ids inside an inserted layout's columns must be new to the tree as well."""
    doc: Document = (LayoutBlock(id="L", columns=1, children=((TextBlock(id="a"),),)),)
    clash = LayoutBlock(id="new", columns=1, children=((TextBlock(id="a"),),))
    assert mutator.insert_block(doc, clash, (1,)) is doc

    fresh = LayoutBlock(id="new", columns=1, children=((TextBlock(id="b"),),))
    out = mutator.insert_block(doc, fresh, (1,))
    assert find_path("b", out) == (1, 0, 0)


def test_update_layout_children_refuses_duplicate_ids() -> None:
    """A replacement `children` list may not reuse an id found elsewhere."""
    doc = _two_column_doc()
    children = [[{"id": "t0", "type": "text"}], [{"id": "c", "type": "text"}]]
    assert mutator.update_block(doc, "L", {"children": children}) is doc


def test_update_layout_columns_and_children_together() -> None:
    """A consistent `columns` + `children` payload replaces the layout body."""
    doc = _two_column_doc()
    children = [[{"id": "x", "type": "subheader", "content": "Left"}], [], []]
    out = mutator.update_block(doc, "L", {"columns": 3, "children": children})
    layout = out[1]
    assert isinstance(layout, LayoutBlock)
    assert layout.columns == 3
    assert find_path("x", out) == (1, 0, 0)
    assert find_path("a", out) is None
    # mismatched lengths stay refused
    assert mutator.update_block(doc, "L", {"columns": 1, "children": children}) is doc


# --------------------------------------------------------------------------- #
# move
# --------------------------------------------------------------------------- #


def test_move_within_same_list_forward() -> None:
    """Moving down in the same list accounts for the removed source."""
    doc = _two_column_doc()
    out = mutator.move_block(doc, "t0", (3,))
    assert _ids(out) == ["L", "t1", "t0"]
    out = mutator.move_block(doc, "t0", (2,))
    assert _ids(out) == ["L", "t0", "t1"]
    assert count_blocks(out) == count_blocks(doc)


def test_move_within_same_list_backward() -> None:
    """Moving up in the same list inserts at the target index."""
    doc = _two_column_doc()
    out = mutator.move_block(doc, "t1", (0,))
    assert _ids(out) == ["t1", "t0", "L"]


def test_move_across_parents_preserves_count() -> None:
    """Moves into and out of layout columns keep every block."""
    doc = _two_column_doc()
    into = mutator.move_block(doc, "t0", (1, 1, 0))
    # the layout shifted to index 0 after t0 left the root
    assert find_path("t0", into) == (0, 1, 0)
    assert count_blocks(into) == count_blocks(doc)

    out_of = mutator.move_block(doc, "a", (0,))
    assert _ids(out_of)[:2] == ["a", "t0"]
    assert find_path("b", out_of) == (2, 0, 0)
    assert count_blocks(out_of) == count_blocks(doc)

    between = mutator.move_block(doc, "b", (1, 1, 1))
    assert _ids(get_slot((1, 1), between) or ()) == ["c", "b"]
    assert _ids(get_slot((1, 0), between) or ()) == ["a"]


def test_move_onto_itself_is_noop() -> None:
    """Dropping a block on its own position changes nothing."""
    doc = _two_column_doc()
    assert mutator.move_block(doc, "a", (1, 0, 0)) is doc


def test_move_to_slot_right_after_itself_is_noop() -> None:
    """Dropping a block just below itself keeps the order and the same object."""
    doc = _two_column_doc()
    assert mutator.move_block(doc, "t0", (1,)) is doc
    assert mutator.move_block(doc, "a", (1, 0, 1)) is doc
    # one slot further does move
    moved = mutator.move_block(doc, "a", (1, 0, 2))
    assert _ids(get_slot((1, 0), moved) or ()) == ["b", "a"]


def test_move_into_own_subtree_is_refused() -> None:
    """A layout cannot be moved into one of its own columns."""
    doc = _two_column_doc()
    assert mutator.move_block(doc, "L", (1, 1, 0)) is doc


def test_move_stale_inputs_are_noops() -> None:
    """Unknown source, missing slot or index past the end leave the tree alone."""
    doc = _two_column_doc()
    assert mutator.move_block(doc, "ghost", (0,)) is doc
    assert mutator.move_block(doc, "t0", (1, 7, 0)) is doc
    assert mutator.move_block(doc, "t0", (9,)) is doc
    assert mutator.move_block(doc, "t0", (1, 0)) is doc


def test_move_to_slot_end_appends() -> None:
    """A target index equal to the slot length appends to that slot."""
    doc = _two_column_doc()
    out = mutator.move_block(doc, "a", (1, 1, 1))
    assert _ids(get_slot((1, 1), out) or ()) == ["c", "a"]


def test_scenario_drag_text_out_of_layout_column() -> None:
    """Layout -> add text to column 0 -> move the text to root `(1,)`."""
    doc: Document = (create_block("layout"),)
    doc = mutator.add_block(doc, "text", (0, 0))
    assert len(doc) == 1
    layout = doc[0]
    assert isinstance(layout, LayoutBlock)
    assert len(layout.children[0]) == 1
    text_id = layout.children[0][0].id

    doc = mutator.move_block(doc, text_id, (1,))
    assert [b.type for b in doc] == ["layout", "text"]
    assert doc[0].children == ((),)  # type: ignore[union-attr]
    assert doc[1].id == text_id


# --------------------------------------------------------------------------- #
# table / image grid / layout specializations
# --------------------------------------------------------------------------- #


def test_scenario_table_add_row_then_remove_column() -> None:
    """Add a row, then remove column 1; cells stay rectangular."""
    doc: Document = (TableBlock(id="t", cells=(("H1", "H2"), ("a", "b"))),)
    doc = mutator.add_table_row(doc, "t")
    assert dump_document(doc)[0]["cells"] == [["H1", "H2"], ["a", "b"], ["", ""]]
    doc = mutator.remove_table_column(doc, "t", 1)
    assert dump_document(doc)[0]["cells"] == [["H1"], ["a"], [""]]


def test_table_refuses_dropping_last_row_or_column() -> None:
    """A table always keeps at least one row and one column."""
    doc: Document = (TableBlock(id="t", cells=(("only",),)),)
    assert mutator.remove_table_row(doc, "t") is doc
    assert mutator.remove_table_column(doc, "t") is doc


def test_table_cell_and_column_insert() -> None:
    """Cells can be edited and columns inserted at an index."""
    doc: Document = (TableBlock(id="t", cells=(("H1", "H2"), ("a", "b"))),)
    doc = mutator.update_table_cell(doc, "t", 1, 0, "z")
    doc = mutator.add_table_column(doc, "t", 1)
    assert dump_document(doc)[0]["cells"] == [["H1", "", "H2"], ["z", "", "b"]]
    assert mutator.update_table_cell(doc, "t", 5, 0, "x") is doc
    # wrong kind
    text_doc: Document = (TextBlock(id="x"),)
    assert mutator.add_table_row(text_doc, "x") is text_doc


def test_image_grid_operations() -> None:
    """Images are added, edited and removed; the last image is kept."""
    doc: Document = (create_block("image_grid"),)
    grid_id = doc[0].id
    doc = mutator.add_image(doc, grid_id)
    grid = doc[0]
    assert isinstance(grid, ImageGridBlock) and len(grid.images) == 2
    first, second = grid.images

    doc = mutator.update_image(doc, grid_id, first.id, {"src": "data:x", "caption": "Fig 1"})
    grid = doc[0]
    assert isinstance(grid, ImageGridBlock)
    assert grid.images[0].src == "data:x" and grid.images[0].caption == "Fig 1"

    doc = mutator.remove_image(doc, grid_id, second.id)
    assert len(doc[0].images) == 1  # type: ignore[union-attr]
    assert mutator.remove_image(doc, grid_id, first.id) is doc
    assert mutator.remove_image(doc, grid_id, "ghost") is doc

    doc = mutator.set_grid_columns(doc, grid_id, 3)
    assert doc[0].columns == 3  # type: ignore[union-attr]
    assert mutator.set_grid_columns(doc, grid_id, 0) is doc


def test_layout_resize_keeps_left_columns() -> None:
    """2 -> 3 adds an empty column; 3 -> 1 keeps only column 0."""
    doc = _two_column_doc()
    wider = mutator.set_layout_columns(doc, "L", 3)
    layout = wider[1]
    assert isinstance(layout, LayoutBlock)
    assert _ids(layout.children[0]) == ["a", "b"]
    assert _ids(layout.children[1]) == ["c"]
    assert layout.children[2] == ()

    narrow = mutator.set_layout_columns(wider, "L", 1)
    layout = narrow[1]
    assert isinstance(layout, LayoutBlock)
    assert layout.columns == 1
    assert _ids(layout.children[0]) == ["a", "b"]
    assert find_path("c", narrow) is None

    assert mutator.set_layout_columns(doc, "L", 2) is doc
    assert mutator.set_layout_columns(doc, "L", 4) is doc


def test_max_layout_columns_setting(monkeypatch: Any) -> None:
    """Deployments can lower the column limit below the model's bound."""
    from reportblocks.core.settings import load_settings

    monkeypatch.setenv("REPORTBLOCKS_MAX_LAYOUT_COLUMNS", "2")
    load_settings.cache_clear()
    try:
        doc = _two_column_doc()
        assert mutator.set_layout_columns(doc, "L", 3) is doc
    finally:
        load_settings.cache_clear()


def test_rejections_never_modify_input() -> None:
    """A burst of rejected operations leaves the original tree identical."""
    doc = _two_column_doc()
    before = dump_document(doc)
    mutator.move_block(doc, "L", (1, 0, 0))
    mutator.delete_block(doc, "ghost")
    mutator.remove_table_row(doc, "t0")
    mutator.update_block(doc, "L", {"columns": 0})
    assert dump_document(doc) == before
