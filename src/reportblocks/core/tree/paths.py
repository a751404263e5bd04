"""
Path resolution over a block document.

Addressing scheme
-----------------
A *block path* is a tuple of non-negative ints. ``path[0]`` indexes a root
block; every further nesting level consumes a ``(column, index)`` pair inside
a layout block. Block paths therefore always have odd length::

    (2,)          third root block
    (0, 1, 3)     root layout 0 -> column 1 -> fourth block
    (0, 1, 3, 0, 0)  ... -> that block's column 0 -> first block

A *slot* addresses a block list instead of a block: ``()`` is the root list
and ``layout_path + (column,)`` (even length) is one column of a layout.
Every block path splits into ``(slot, index)``.

Paths are never stored on blocks. They are recomputed from the current
snapshot (:func:`find_path`) so they cannot go stale between snapshots, and
:func:`get_by_path` tolerates stale or malformed paths by returning ``None``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TypeAlias

from reportblocks.core.contracts.blocks import BlockModel, Document, LayoutBlock

BlockPath: TypeAlias = tuple[int, ...]
Slot: TypeAlias = tuple[int, ...]

ROOT_SLOT: Slot = ()


# --------------------------------------------------------------------------- #
# Shape helpers
# --------------------------------------------------------------------------- #


def _all_indices(path: Sequence[int]) -> bool:
    return all(isinstance(i, int) and not isinstance(i, bool) and i >= 0 for i in path)


def is_block_path(path: Sequence[int]) -> bool:
    """Return True if ``path`` has the shape of a block path (odd length)."""
    return len(path) % 2 == 1 and _all_indices(path)


def is_slot_path(slot: Sequence[int]) -> bool:
    """Return True if ``slot`` has the shape of a slot (even length, root included)."""
    return len(slot) % 2 == 0 and _all_indices(slot)


def split_path(path: Sequence[int]) -> tuple[Slot, int]:
    """Split a block path into its parent slot and its index within that slot."""
    if not is_block_path(path):
        raise ValueError(f"Not a block path: {tuple(path)!r}")
    return tuple(path[:-1]), path[-1]


def is_within(path: Sequence[int], ancestor: Sequence[int]) -> bool:
    """Return True if ``path`` lies strictly below the block at ``ancestor``."""
    return len(path) > len(ancestor) and tuple(path[: len(ancestor)]) == tuple(ancestor)


# --------------------------------------------------------------------------- #
# Resolution
# --------------------------------------------------------------------------- #


def find_path(block_id: str, document: Sequence[BlockModel]) -> BlockPath | None:
    """Return the path of ``block_id`` or ``None`` if it is not in the tree.

    Depth-first, columns left to right and blocks top to bottom. A block is
    matched before its own columns are searched, so a duplicated id resolves
    to the first occurrence in that order.
    """
    for i, block in enumerate(document):
        if block.id == block_id:
            return (i,)
        if isinstance(block, LayoutBlock):
            for j, column in enumerate(block.children):
                child = find_path(block_id, column)
                if child is not None:
                    return (i, j, *child)
    return None


def get_by_path(path: Sequence[int], document: Sequence[BlockModel]) -> BlockModel | None:
    """Walk ``path`` from the root; return the block there or ``None`` if stale."""
    if not is_block_path(path):
        return None
    blocks: Sequence[BlockModel] = document
    pos = 0
    while True:
        index = path[pos]
        if index >= len(blocks):
            return None
        node = blocks[index]
        pos += 1
        if pos == len(path):
            return node
        if not isinstance(node, LayoutBlock):
            return None
        column = path[pos]
        if column >= len(node.children):
            return None
        blocks = node.children[column]
        pos += 1


def get_slot(slot: Sequence[int], document: Document) -> tuple[BlockModel, ...] | None:
    """Return the block list addressed by ``slot`` or ``None`` if it does not exist."""
    if not is_slot_path(slot):
        return None
    if not slot:
        return document
    layout = get_by_path(slot[:-1], document)
    if not isinstance(layout, LayoutBlock) or slot[-1] >= len(layout.children):
        return None
    return layout.children[slot[-1]]


def iter_blocks(
    document: Sequence[BlockModel], prefix: Slot = ROOT_SLOT
) -> Iterator[tuple[BlockPath, BlockModel]]:
    """Yield ``(path, block)`` for every node, in :func:`find_path` order."""
    for i, block in enumerate(document):
        path = (*prefix, i)
        yield path, block
        if isinstance(block, LayoutBlock):
            for j, column in enumerate(block.children):
                yield from iter_blocks(column, (*path, j))


def count_blocks(document: Sequence[BlockModel]) -> int:
    """Return the number of blocks in the whole tree (nested columns included)."""
    return sum(1 for _ in iter_blocks(document))


# --------------------------------------------------------------------------- #
# Snapshot index
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class BlockIndex:
    """
    Id -> path map of one snapshot, built in a single walk.

    The index is only valid for the document it was built from. It never
    survives a mutation; build a fresh one from the new snapshot instead.
    """

    paths: Mapping[str, BlockPath] = field(default_factory=dict)

    @classmethod
    def build(cls, document: Sequence[BlockModel]) -> BlockIndex:
        paths: dict[str, BlockPath] = {}
        for path, block in iter_blocks(document):
            # first hit wins, same as find_path
            paths.setdefault(block.id, path)
        return cls(paths=paths)

    def path_of(self, block_id: str) -> BlockPath | None:
        return self.paths.get(block_id)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self.paths

    def __len__(self) -> int:
        return len(self.paths)


__all__ = [
    "ROOT_SLOT",
    "BlockIndex",
    "BlockPath",
    "Slot",
    "count_blocks",
    "find_path",
    "get_by_path",
    "get_slot",
    "is_block_path",
    "is_slot_path",
    "is_within",
    "iter_blocks",
    "split_path",
]
