"""
Pure tree mutations over a block document.

Every public operation takes a document (tuple of root blocks) and returns a
new document; the input is never modified. Only the nodes along the touched
path are copied, untouched subtrees are shared with the previous snapshot.

Failure handling
----------------
Operations are all-or-nothing. Internally, helpers raise one of two
:class:`MutationRejected` subclasses and the public boundary turns them into
"return the input unchanged":

- :class:`AddressingFailure`  : an id, path or slot does not resolve
  (stale ids after a concurrent delete are expected; logged at DEBUG).
- :class:`StructuralRefusal`  : the change would break an invariant such as
  a rectangular table or ``len(children) == columns`` (logged at INFO).

:class:`~reportblocks.core.contracts.blocks.UnknownBlockKindError` is not a
rejection. It signals a programming error and propagates to the caller.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Concatenate, ParamSpec

from pydantic import ValidationError

from reportblocks.core.contracts.blocks import (
    BlockModel,
    Document,
    ImageGridBlock,
    LayoutBlock,
    TableBlock,
    create_block,
    new_grid_image,
    resize_columns,
)
from reportblocks.core.settings import get_logger, load_settings
from reportblocks.core.tree.paths import (
    ROOT_SLOT,
    BlockPath,
    Slot,
    find_path,
    get_by_path,
    get_slot,
    is_block_path,
    is_within,
    iter_blocks,
    split_path,
)

logger = get_logger(__name__)

P = ParamSpec("P")

#: Keys a partial update may never change.
FROZEN_KEYS: frozenset[str] = frozenset({"id", "type"})


class MutationRejected(Exception):
    """Base class for rejections turned into no-ops at the public boundary."""


class AddressingFailure(MutationRejected, LookupError):
    """An id, path or slot does not resolve in the current snapshot."""


class StructuralRefusal(MutationRejected, ValueError):
    """The mutation would violate a structural invariant."""


def _all_or_nothing(
    op: Callable[Concatenate[Document, P], Document],
) -> Callable[Concatenate[Document, P], Document]:
    """Return the input document unchanged when ``op`` is rejected."""

    @functools.wraps(op)
    def wrapper(document: Document, /, *args: P.args, **kwargs: P.kwargs) -> Document:
        try:
            return op(document, *args, **kwargs)
        except AddressingFailure as exc:
            logger.debug("%s skipped: %s", op.__name__, exc)
        except StructuralRefusal as exc:
            logger.info("%s refused: %s", op.__name__, exc)
        return document

    return wrapper


# --------------------------------------------------------------------------- #
# Internal helpers (raise on failure)
# --------------------------------------------------------------------------- #


def _require_path(block_id: str, document: Document) -> BlockPath:
    path = find_path(block_id, document)
    if path is None:
        raise AddressingFailure(f"block {block_id!r} not found")
    return path


def _block_at(path: BlockPath, document: Document) -> BlockModel:
    block = get_by_path(path, document)
    if block is None:
        raise AddressingFailure(f"path {path!r} does not resolve")
    return block


def _require_slot(slot: Slot, document: Document) -> tuple[BlockModel, ...]:
    blocks = get_slot(slot, document)
    if blocks is None:
        raise AddressingFailure(f"slot {slot!r} does not name a layout column")
    return blocks


def _with_slot(document: Document, slot: Slot, blocks: tuple[BlockModel, ...]) -> Document:
    """Return a copy of ``document`` whose ``slot`` holds ``blocks``.

    Rebuilds the layouts between the root and ``slot``; ``slot`` must resolve.
    """
    if not slot:
        return blocks
    layout_path = slot[:-1]
    layout = get_by_path(layout_path, document)
    if not isinstance(layout, LayoutBlock):
        raise AddressingFailure(f"slot {slot!r} does not name a layout column")
    children = list(layout.children)
    children[slot[-1]] = blocks
    # column count is unchanged, so skipping validation is safe
    rebuilt = layout.model_copy(update={"children": tuple(children)})
    return _replace_at(document, layout_path, rebuilt)


def _replace_at(document: Document, path: BlockPath, block: BlockModel) -> Document:
    slot, index = split_path(path)
    blocks = _require_slot(slot, document)
    return _with_slot(document, slot, blocks[:index] + (block,) + blocks[index + 1 :])


def _remove_at(document: Document, path: BlockPath) -> Document:
    slot, index = split_path(path)
    blocks = _require_slot(slot, document)
    return _with_slot(document, slot, blocks[:index] + blocks[index + 1 :])


def _insert_at(document: Document, slot: Slot, index: int, block: BlockModel) -> Document:
    blocks = _require_slot(slot, document)
    if index > len(blocks):
        raise AddressingFailure(f"index {index} is past the end of slot {slot!r}")
    return _with_slot(document, slot, blocks[:index] + (block,) + blocks[index:])


def _rebuild(block: BlockModel, changes: Mapping[str, Any]) -> BlockModel:
    """Shallow-merge ``changes`` into ``block`` and re-run validation."""
    merged = {**dict(block), **changes}
    try:
        return type(block).model_validate(merged)
    except ValidationError as exc:
        raise StructuralRefusal(
            f"{block.type} {block.id!r}: {exc.error_count()} validation error(s): "
            f"{exc.errors()[0]['msg']}"
        ) from exc


def _check_unique_ids(document: Document) -> None:
    seen: set[str] = set()
    for _, block in iter_blocks(document):
        if block.id in seen:
            raise StructuralRefusal(f"block id {block.id!r} would appear twice")
        seen.add(block.id)


def _check_layout_columns(columns: object) -> None:
    limit = load_settings().max_layout_columns
    if isinstance(columns, int) and not 1 <= columns <= limit:
        raise StructuralRefusal(f"layout columns must be between 1 and {limit}, got {columns}")


def _locate(document: Document, block_id: str, kind: type[BlockModel]) -> tuple[BlockPath, Any]:
    path = _require_path(block_id, document)
    block = get_by_path(path, document)
    if not isinstance(block, kind):
        raise StructuralRefusal(f"block {block_id!r} is not a {kind.__name__}")
    return path, block


def _normalize_index(index: int, length: int, what: str) -> int:
    if not -length <= index < length:
        raise AddressingFailure(f"{what} index {index} out of range (size {length})")
    return index % length


# --------------------------------------------------------------------------- #
# Core operations
# --------------------------------------------------------------------------- #


@_all_or_nothing
def update_block(document: Document, block_id: str, partial: Mapping[str, Any]) -> Document:
    """Replace the block ``block_id`` with a copy carrying ``partial``.

    ``id`` and ``type`` are never changed. Setting a layout's ``columns``
    without ``children`` resizes the columns to match.
    """
    path = _require_path(block_id, document)
    block = _block_at(path, document)
    changes = {k: v for k, v in partial.items() if k not in FROZEN_KEYS}
    if len(changes) != len(partial):
        logger.debug("update_block ignored frozen keys for %r", block_id)
    if not changes:
        return document
    if isinstance(block, LayoutBlock) and "columns" in changes:
        _check_layout_columns(changes["columns"])
        if "children" not in changes and isinstance(changes["columns"], int):
            changes["children"] = resize_columns(block.children, changes["columns"])
    updated = _replace_at(document, path, _rebuild(block, changes))
    if isinstance(block, LayoutBlock) and "children" in partial:
        _check_unique_ids(updated)
    return updated


def add_block(document: Document, kind: str, parent_slot: Sequence[int] | None = None) -> Document:
    """Append a default ``kind`` block to the root or to a layout column.

    Raises
    ------
    UnknownBlockKindError
        If ``kind`` is not a known block kind.
    """
    return _add_block(document, create_block(kind), parent_slot)


@_all_or_nothing
def _add_block(document: Document, block: BlockModel, parent_slot: Sequence[int] | None) -> Document:
    slot = ROOT_SLOT if parent_slot is None else tuple(parent_slot)
    blocks = _require_slot(slot, document)
    return _with_slot(document, slot, blocks + (block,))


@_all_or_nothing
def insert_block(document: Document, block: BlockModel, path: Sequence[int]) -> Document:
    """Insert an existing ``block`` so that it ends up at ``path``."""
    if not is_block_path(path):
        raise AddressingFailure(f"not a block path: {tuple(path)!r}")
    slot, index = split_path(path)
    inserted = _insert_at(document, slot, index, block)
    # nested columns of an inserted layout count too
    _check_unique_ids(inserted)
    return inserted


@_all_or_nothing
def delete_block(document: Document, block_id: str) -> Document:
    """Remove ``block_id`` (with a layout's whole subtree) from its slot."""
    return _remove_at(document, _require_path(block_id, document))


@_all_or_nothing
def move_block(document: Document, source_id: str, target_path: Sequence[int]) -> Document:
    """Move ``source_id`` so that it lands at ``target_path``.

    Both ends are resolved on the same pre-move snapshot. The target slot is
    tracked through its owning layout's id, so removing the source cannot
    invalidate it. Within one list, removing an earlier index shifts the
    insertion point down by one. A target index equal to the slot length
    appends.
    """
    target = tuple(target_path)
    if not is_block_path(target):
        raise AddressingFailure(f"not a block path: {target!r}")
    source = _require_path(source_id, document)
    if source == target:
        logger.debug("move_block: %r dropped on itself", source_id)
        return document
    if is_within(target, source):
        raise StructuralRefusal(f"cannot move {source_id!r} into its own subtree")

    src_slot, src_index = split_path(source)
    dst_slot, dst_index = split_path(target)
    if dst_index > len(_require_slot(dst_slot, document)):
        raise AddressingFailure(f"target index {dst_index} is past the end of {dst_slot!r}")
    owner = get_by_path(dst_slot[:-1], document) if dst_slot else None
    moved = _block_at(source, document)

    same_list = src_slot == dst_slot
    if same_list and src_index < dst_index:
        dst_index -= 1
    if same_list and dst_index == src_index:
        logger.debug("move_block: %r already at %r", source_id, target)
        return document

    working = _remove_at(document, source)
    if owner is not None:
        dst_slot = (*_require_path(owner.id, working), dst_slot[-1])
    return _insert_at(working, dst_slot, dst_index, moved)


# --------------------------------------------------------------------------- #
# Table specializations
# --------------------------------------------------------------------------- #


@_all_or_nothing
def add_table_row(document: Document, block_id: str, index: int | None = None) -> Document:
    """Insert an empty row (append by default)."""
    path, table = _locate(document, block_id, TableBlock)
    row = ("",) * table.column_count
    at = table.row_count if index is None else min(max(index, 0), table.row_count)
    cells = table.cells[:at] + (row,) + table.cells[at:]
    return _replace_at(document, path, _rebuild(table, {"cells": cells}))


@_all_or_nothing
def remove_table_row(document: Document, block_id: str, index: int = -1) -> Document:
    """Remove a row (the last by default); the last remaining row is kept."""
    path, table = _locate(document, block_id, TableBlock)
    if table.row_count <= 1:
        raise StructuralRefusal(f"table {block_id!r} must keep at least one row")
    at = _normalize_index(index, table.row_count, "row")
    cells = table.cells[:at] + table.cells[at + 1 :]
    return _replace_at(document, path, _rebuild(table, {"cells": cells}))


@_all_or_nothing
def add_table_column(document: Document, block_id: str, index: int | None = None) -> Document:
    """Insert an empty column into every row (append by default)."""
    path, table = _locate(document, block_id, TableBlock)
    width = table.column_count
    at = width if index is None else min(max(index, 0), width)
    cells = tuple(row[:at] + ("",) + row[at:] for row in table.cells)
    return _replace_at(document, path, _rebuild(table, {"cells": cells}))


@_all_or_nothing
def remove_table_column(document: Document, block_id: str, index: int = -1) -> Document:
    """Remove a column from every row; the last remaining column is kept."""
    path, table = _locate(document, block_id, TableBlock)
    if table.column_count <= 1:
        raise StructuralRefusal(f"table {block_id!r} must keep at least one column")
    at = _normalize_index(index, table.column_count, "column")
    cells = tuple(row[:at] + row[at + 1 :] for row in table.cells)
    return _replace_at(document, path, _rebuild(table, {"cells": cells}))


@_all_or_nothing
def update_table_cell(
    document: Document, block_id: str, row: int, column: int, value: str
) -> Document:
    """Set one cell's text."""
    path, table = _locate(document, block_id, TableBlock)
    r = _normalize_index(row, table.row_count, "row")
    c = _normalize_index(column, table.column_count, "column")
    cells = list(table.cells)
    cells[r] = cells[r][:c] + (value,) + cells[r][c + 1 :]
    return _replace_at(document, path, _rebuild(table, {"cells": tuple(cells)}))


# --------------------------------------------------------------------------- #
# Image grid specializations
# --------------------------------------------------------------------------- #


@_all_or_nothing
def add_image(document: Document, block_id: str) -> Document:
    """Append an empty image slot to a grid."""
    path, grid = _locate(document, block_id, ImageGridBlock)
    images = grid.images + (new_grid_image(),)
    return _replace_at(document, path, _rebuild(grid, {"images": images}))


@_all_or_nothing
def remove_image(document: Document, block_id: str, image_id: str) -> Document:
    """Remove one image; a grid's last image is kept."""
    path, grid = _locate(document, block_id, ImageGridBlock)
    images = tuple(img for img in grid.images if img.id != image_id)
    if len(images) == len(grid.images):
        raise AddressingFailure(f"image {image_id!r} not in grid {block_id!r}")
    if not images:
        raise StructuralRefusal(f"grid {block_id!r} must keep at least one image")
    return _replace_at(document, path, _rebuild(grid, {"images": images}))


@_all_or_nothing
def update_image(
    document: Document, block_id: str, image_id: str, partial: Mapping[str, Any]
) -> Document:
    """Shallow-merge ``partial`` (``src``/``caption``) into one image."""
    path, grid = _locate(document, block_id, ImageGridBlock)
    images = list(grid.images)
    for i, img in enumerate(images):
        if img.id == image_id:
            changes = {k: v for k, v in partial.items() if k != "id"}
            try:
                images[i] = type(img).model_validate({**dict(img), **changes})
            except ValidationError as exc:
                raise StructuralRefusal(f"image {image_id!r}: {exc.errors()[0]['msg']}") from exc
            break
    else:
        raise AddressingFailure(f"image {image_id!r} not in grid {block_id!r}")
    return _replace_at(document, path, _rebuild(grid, {"images": tuple(images)}))


@_all_or_nothing
def set_grid_columns(document: Document, block_id: str, columns: int) -> Document:
    """Change the number of grid columns of an image grid (``>= 1``)."""
    path, grid = _locate(document, block_id, ImageGridBlock)
    return _replace_at(document, path, _rebuild(grid, {"columns": columns}))


# --------------------------------------------------------------------------- #
# Layout specialization
# --------------------------------------------------------------------------- #


@_all_or_nothing
def set_layout_columns(document: Document, block_id: str, columns: int) -> Document:
    """Resize a layout, keeping columns left to right.

    Shrinking discards the content of the dropped columns.
    """
    path, layout = _locate(document, block_id, LayoutBlock)
    _check_layout_columns(columns)
    if columns == layout.columns:
        return document
    dropped = sum(len(col) for col in layout.children[columns:])
    if dropped:
        logger.info("layout %r: dropping %d block(s) with columns %d", block_id, dropped, columns)
    changes = {"columns": columns, "children": resize_columns(layout.children, columns)}
    return _replace_at(document, path, _rebuild(layout, changes))


__all__ = [
    "AddressingFailure",
    "FROZEN_KEYS",
    "MutationRejected",
    "StructuralRefusal",
    "add_block",
    "add_image",
    "add_table_column",
    "add_table_row",
    "delete_block",
    "insert_block",
    "move_block",
    "remove_image",
    "remove_table_column",
    "remove_table_row",
    "set_grid_columns",
    "set_layout_columns",
    "update_block",
    "update_image",
    "update_table_cell",
]
