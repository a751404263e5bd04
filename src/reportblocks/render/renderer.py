"""
Renderer: project a block document into a presentation tree.

The walk mirrors the document exactly. Every block becomes a
:class:`RenderedBlock` that carries the path it has *in this walk* plus its
editor actions, pre-bound to the host callbacks. Every layout block yields
one :class:`RenderedColumn` per column, each with its own slot-scoped "add"
action and an end-of-column drop zone. Nothing here caches paths between
renders; a new snapshot always needs a new :func:`render` call.

When ``locked`` is set, all actions are ``None``. That is the editor-free
form handed to export collaborators (e.g. the PDF pipeline).

The visual output itself (HTML, widgets) belongs to the host; the only
projection shipped here is :func:`to_rich_tree` for terminal display.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, cast

from rich.tree import Tree

from reportblocks.core.contracts.blocks import (
    BLOCK_KINDS,
    BlockModel,
    Document,
    ImageGridBlock,
    LayoutBlock,
    SubheaderBlock,
    TableBlock,
    TextBlock,
)
from reportblocks.core.tree.paths import ROOT_SLOT, BlockPath, Slot


class RenderCallbacks(Protocol):
    """Mutation requests a rendered tree can send back to its host."""

    def on_update(self, block_id: str, partial: Mapping[str, Any]) -> None: ...

    def on_add(self, kind: str, parent_slot: Slot | None = None) -> None: ...

    def on_delete(self, block_id: str) -> None: ...

    def on_drag_start(self, block_id: str) -> None: ...

    def on_drag_over(self, path: BlockPath) -> None: ...

    def on_drop(self) -> None: ...


# --------------------------------------------------------------------------- #
# Presentation tree
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class BlockActions:
    """Editor affordances of one block, bound to its id and current path."""

    update: Callable[[Mapping[str, Any]], None]
    delete: Callable[[], None]
    drag_start: Callable[[], None]
    drag_over: Callable[[], None]
    drop: Callable[[], None]


@dataclass(frozen=True, slots=True)
class ColumnActions:
    """Affordances of a block list: add a block, or drop after its last block."""

    add: Callable[[str], None]
    drag_over_end: Callable[[], None]
    drop: Callable[[], None]


@dataclass(frozen=True, slots=True)
class RenderedColumn:
    slot: Slot
    blocks: tuple[RenderedBlock, ...]
    actions: ColumnActions | None = None


@dataclass(frozen=True, slots=True)
class RenderedBlock:
    block_id: str
    kind: str
    path: BlockPath
    fields: Mapping[str, Any] = field(default_factory=dict)
    columns: tuple[RenderedColumn, ...] = ()
    actions: BlockActions | None = None


@dataclass(frozen=True, slots=True)
class RenderedDocument:
    root: RenderedColumn
    locked: bool = False

    def walk(self) -> Iterator[RenderedBlock]:
        """Yield every rendered block, depth first."""
        yield from _walk_column(self.root)


def _walk_column(column: RenderedColumn) -> Iterator[RenderedBlock]:
    for block in column.blocks:
        yield block
        for child in block.columns:
            yield from _walk_column(child)


# --------------------------------------------------------------------------- #
# Field projections (one per kind)
# --------------------------------------------------------------------------- #


def _text_fields(block: BlockModel) -> dict[str, Any]:
    text = cast(TextBlock | SubheaderBlock, block)
    return {"content": text.content}


def _grid_fields(block: BlockModel) -> dict[str, Any]:
    grid = cast(ImageGridBlock, block)
    return {
        "columns": grid.columns,
        "images": [img.model_dump() for img in grid.images],
        # the grid UI keeps its last image
        "can_remove_image": len(grid.images) > 1,
    }


def _table_fields(block: BlockModel) -> dict[str, Any]:
    table = cast(TableBlock, block)
    return {
        "cells": [list(row) for row in table.cells],
        "can_remove_row": table.row_count > 1,
        "can_remove_column": table.column_count > 1,
    }


def _layout_fields(block: BlockModel) -> dict[str, Any]:
    return {"columns": cast(LayoutBlock, block).columns}


_FIELD_PROJECTIONS: dict[str, Callable[[BlockModel], dict[str, Any]]] = {
    "text": _text_fields,
    "subheader": _text_fields,
    "image_grid": _grid_fields,
    "table": _table_fields,
    "layout": _layout_fields,
}

if set(_FIELD_PROJECTIONS) != set(BLOCK_KINDS):
    missing = set(BLOCK_KINDS) - set(_FIELD_PROJECTIONS)
    raise RuntimeError(f"renderer has no field projection for {missing}")


# --------------------------------------------------------------------------- #
# Walk
# --------------------------------------------------------------------------- #


def _block_actions(callbacks: RenderCallbacks, block_id: str, path: BlockPath) -> BlockActions:
    return BlockActions(
        update=lambda partial: callbacks.on_update(block_id, partial),
        delete=lambda: callbacks.on_delete(block_id),
        drag_start=lambda: callbacks.on_drag_start(block_id),
        drag_over=lambda: callbacks.on_drag_over(path),
        drop=callbacks.on_drop,
    )


def _column_actions(callbacks: RenderCallbacks, slot: Slot, length: int) -> ColumnActions:
    parent_slot = None if slot == ROOT_SLOT else slot
    end_path = (*slot, length)
    return ColumnActions(
        add=lambda kind: callbacks.on_add(kind, parent_slot),
        drag_over_end=lambda: callbacks.on_drag_over(end_path),
        drop=callbacks.on_drop,
    )


def _render_column(
    blocks: tuple[BlockModel, ...], slot: Slot, callbacks: RenderCallbacks | None
) -> RenderedColumn:
    rendered = tuple(
        _render_block(block, (*slot, i), callbacks) for i, block in enumerate(blocks)
    )
    actions = _column_actions(callbacks, slot, len(blocks)) if callbacks is not None else None
    return RenderedColumn(slot=slot, blocks=rendered, actions=actions)


def _render_block(
    block: BlockModel, path: BlockPath, callbacks: RenderCallbacks | None
) -> RenderedBlock:
    columns: tuple[RenderedColumn, ...] = ()
    if isinstance(block, LayoutBlock):
        columns = tuple(
            _render_column(column, (*path, j), callbacks)
            for j, column in enumerate(block.children)
        )
    return RenderedBlock(
        block_id=block.id,
        kind=block.type,
        path=path,
        fields=_FIELD_PROJECTIONS[block.type](block),
        columns=columns,
        actions=_block_actions(callbacks, block.id, path) if callbacks is not None else None,
    )


def render(
    document: Document, callbacks: RenderCallbacks | None = None, *, locked: bool = False
) -> RenderedDocument:
    """Render ``document``; actions are bound to ``callbacks`` unless ``locked``."""
    bound = None if locked else callbacks
    return RenderedDocument(root=_render_column(document, ROOT_SLOT, bound), locked=locked)


# --------------------------------------------------------------------------- #
# Terminal projection
# --------------------------------------------------------------------------- #


def _preview(text: str, width: int = 48) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 1] + "…"


def _label(block: RenderedBlock) -> str:
    path = ".".join(str(i) for i in block.path)
    head = f"[bold cyan]{block.kind}[/bold cyan] [dim]{block.block_id} @ {path}[/dim]"
    f = block.fields
    if block.kind in ("text", "subheader"):
        return f"{head}  {_preview(str(f['content']))!r}"
    if block.kind == "image_grid":
        filled = sum(1 for img in f["images"] if img["src"])
        return f"{head}  {len(f['images'])} image(s), {filled} filled, {f['columns']} col(s)"
    if block.kind == "table":
        cells = f["cells"]
        return f"{head}  {len(cells)}x{len(cells[0])}"
    return f"{head}  {f['columns']} column(s)"


def _add_column(tree: Tree, column: RenderedColumn) -> None:
    for block in column.blocks:
        node = tree.add(_label(block))
        for j, child in enumerate(block.columns):
            branch = node.add(f"[magenta]column {j}[/magenta]")
            if not child.blocks:
                branch.add("[dim](empty)[/dim]")
            _add_column(branch, child)


def to_rich_tree(rendered: RenderedDocument, title: str = "document") -> Tree:
    """Return a :class:`rich.tree.Tree` mirroring ``rendered``."""
    tree = Tree(f"[bold]{title}[/bold]")
    _add_column(tree, rendered.root)
    return tree


__all__ = [
    "BlockActions",
    "ColumnActions",
    "RenderCallbacks",
    "RenderedBlock",
    "RenderedColumn",
    "RenderedDocument",
    "render",
    "to_rich_tree",
]
