"""
Block contracts: the tagged-variant node model of a report section.

A section's content is a *document*: an ordered tuple of root-level blocks.
Each block is one of five variants discriminated by its ``type`` field:

- ``text``        : free text (rich-text markup is opaque here)
- ``subheader``   : a short heading line
- ``image_grid``  : ordered images laid out in ``columns`` grid columns
- ``table``       : rectangular grid of string cells
- ``layout``      : ``columns`` side-by-side column lists, each holding blocks

Models are frozen and use tuples for every sequence, so a snapshot can be shared
between successive documents without any risk of in-place edits. Structural
invariants (rectangular tables, ``len(children) == columns``) are enforced by
validators; any attempt to build an invalid node raises ``ValidationError``.

Construction
------------
:func:`create_block` is the only way new blocks enter a document. It returns
the canonical default for a kind and raises :class:`UnknownBlockKindError` for
anything outside the closed kind set.
"""

from __future__ import annotations

import itertools
import time
import uuid
from collections.abc import Callable, Iterator
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from reportblocks.core.settings import load_settings

# --------------------------------------------------------------------------- #
# Kinds & errors
# --------------------------------------------------------------------------- #

BlockKind = Literal["text", "subheader", "image_grid", "table", "layout"]

#: Every kind in declaration order; dispatch tables are checked against it.
BLOCK_KINDS: tuple[str, ...] = get_args(BlockKind)

#: Hard upper bound on layout columns.
MAX_LAYOUT_COLUMNS = 3


class UnknownBlockKindError(ValueError):
    """Raised when a block of a kind outside :data:`BLOCK_KINDS` is requested."""

    def __init__(self, kind: object) -> None:
        super().__init__(f"Unknown block kind {kind!r}; expected one of {BLOCK_KINDS}")
        self.kind = kind


class DuplicateBlockIdError(ValueError):
    """Raised when a loaded document reuses a block id."""


# --------------------------------------------------------------------------- #
# Id generation
# --------------------------------------------------------------------------- #

_id_counter = itertools.count(1)


def new_block_id(prefix: str | None = None) -> str:
    """Return a process-unique id: time, monotonic counter and random suffix."""
    prefix = prefix or load_settings().id_prefix
    return f"{prefix}-{time.time_ns():x}-{next(_id_counter)}-{uuid.uuid4().hex[:6]}"


# --------------------------------------------------------------------------- #
# Variants
# --------------------------------------------------------------------------- #


class _BlockBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Process-unique block id.")


class TextBlock(_BlockBase):
    """A free-text block."""

    type: Literal["text"] = "text"
    content: str = ""


class SubheaderBlock(_BlockBase):
    """A single heading line."""

    type: Literal["subheader"] = "subheader"
    content: str = ""


class GridImage(BaseModel):
    """One image slot of an image grid; ``src`` stays ``None`` until uploaded."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    src: str | None = None
    caption: str = ""


class ImageGridBlock(_BlockBase):
    """Images laid out in a grid with a fixed number of columns."""

    type: Literal["image_grid"] = "image_grid"
    images: tuple[GridImage, ...] = ()
    columns: int = Field(default=2, ge=1)


class TableBlock(_BlockBase):
    """A rectangular table; the first row conventionally holds header labels."""

    type: Literal["table"] = "table"
    cells: tuple[tuple[str, ...], ...]

    @model_validator(mode="after")
    def _rectangular(self) -> TableBlock:
        if not self.cells or not self.cells[0]:
            raise ValueError("table needs at least one row and one column")
        width = len(self.cells[0])
        if any(len(row) != width for row in self.cells):
            raise ValueError("table rows must all have the same length")
        return self

    @property
    def row_count(self) -> int:
        return len(self.cells)

    @property
    def column_count(self) -> int:
        return len(self.cells[0])


class LayoutBlock(_BlockBase):
    """Side-by-side columns, each an independent ordered list of blocks."""

    type: Literal["layout"] = "layout"
    columns: int = Field(default=1, ge=1, le=MAX_LAYOUT_COLUMNS)
    children: tuple[tuple[Block, ...], ...] = ((),)

    @model_validator(mode="after")
    def _children_match_columns(self) -> LayoutBlock:
        if len(self.children) != self.columns:
            raise ValueError(
                f"layout has {self.columns} columns but {len(self.children)} child lists"
            )
        return self


Block = Annotated[
    Union[TextBlock, SubheaderBlock, ImageGridBlock, TableBlock, LayoutBlock],
    Field(discriminator="type"),
]

#: Concrete classes, for ``isinstance`` checks.
BlockModel = TextBlock | SubheaderBlock | ImageGridBlock | TableBlock | LayoutBlock

#: A section's content: the ordered root-level blocks.
Document = tuple[BlockModel, ...]

LayoutBlock.model_rebuild()

DocumentAdapter: TypeAdapter[tuple[Block, ...]] = TypeAdapter(tuple[Block, ...])

BLOCK_CLASSES: dict[str, type[BaseModel]] = {
    "text": TextBlock,
    "subheader": SubheaderBlock,
    "image_grid": ImageGridBlock,
    "table": TableBlock,
    "layout": LayoutBlock,
}


def resize_columns(
    children: tuple[tuple[Any, ...], ...], columns: int
) -> tuple[tuple[Any, ...], ...]:
    """Keep existing columns left to right, pad with empty lists or truncate."""
    kept = children[:columns]
    return kept + ((),) * (columns - len(kept))


# --------------------------------------------------------------------------- #
# Factory
# --------------------------------------------------------------------------- #


def new_grid_image() -> GridImage:
    """Return an empty image slot with a fresh id."""
    return GridImage(id=new_block_id("img"))


def _default_text(block_id: str) -> BlockModel:
    return TextBlock(id=block_id, content=load_settings().default_text)


def _default_subheader(block_id: str) -> BlockModel:
    return SubheaderBlock(id=block_id, content="Subheader")


def _default_image_grid(block_id: str) -> BlockModel:
    return ImageGridBlock(id=block_id, images=(new_grid_image(),), columns=2)


def _default_table(block_id: str) -> BlockModel:
    return TableBlock(id=block_id, cells=(("Header 1", "Header 2"), ("", "")))


def _default_layout(block_id: str) -> BlockModel:
    return LayoutBlock(id=block_id, columns=1, children=((),))


_DEFAULT_FACTORIES: dict[str, Callable[[str], BlockModel]] = {
    "text": _default_text,
    "subheader": _default_subheader,
    "image_grid": _default_image_grid,
    "table": _default_table,
    "layout": _default_layout,
}

# Every kind needs a default; a new kind without one fails at import.
if not set(_DEFAULT_FACTORIES) == set(BLOCK_KINDS) == set(BLOCK_CLASSES):
    raise RuntimeError("block factories and classes must cover exactly BLOCK_KINDS")


def create_block(kind: str) -> BlockModel:
    """Return the canonical default block for ``kind`` with a fresh id.

    Raises
    ------
    UnknownBlockKindError
        If ``kind`` is not one of :data:`BLOCK_KINDS`.
    """
    factory = _DEFAULT_FACTORIES.get(kind)
    if factory is None:
        raise UnknownBlockKindError(kind)
    return factory(new_block_id())


# --------------------------------------------------------------------------- #
# Loading
# --------------------------------------------------------------------------- #


def _walk_ids(blocks: tuple[BlockModel, ...]) -> Iterator[str]:
    for block in blocks:
        yield block.id
        if isinstance(block, LayoutBlock):
            for column in block.children:
                yield from _walk_ids(column)


def load_document(payload: Any) -> Document:
    """Validate a JSON-like payload (list of block dicts) into a document.

    Raises
    ------
    pydantic.ValidationError
        If any block is malformed or of an unknown type.
    DuplicateBlockIdError
        If two blocks share an id anywhere in the tree.
    """
    document: Document = DocumentAdapter.validate_python(payload)
    seen: set[str] = set()
    for block_id in _walk_ids(document):
        if block_id in seen:
            raise DuplicateBlockIdError(f"Duplicate block id {block_id!r}")
        seen.add(block_id)
    return document


def dump_document(document: Document) -> list[dict[str, Any]]:
    """Return a JSON-safe list representation of ``document``."""
    return [block.model_dump(mode="json") for block in document]


__all__ = [
    "BLOCK_CLASSES",
    "BLOCK_KINDS",
    "MAX_LAYOUT_COLUMNS",
    "Block",
    "BlockKind",
    "BlockModel",
    "Document",
    "DocumentAdapter",
    "DuplicateBlockIdError",
    "GridImage",
    "ImageGridBlock",
    "LayoutBlock",
    "SubheaderBlock",
    "TableBlock",
    "TextBlock",
    "UnknownBlockKindError",
    "create_block",
    "dump_document",
    "load_document",
    "new_block_id",
    "new_grid_image",
    "resize_columns",
]
