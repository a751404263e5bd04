"""Block tree addressing, mutation and drag-reorder primitives.

- :mod:`.paths`   : id <-> path resolution and slot lookups
- :mod:`.mutator` : pure insert/update/delete/move and variant specializations
- :mod:`.drag`    : the drag-to-reorder state machine
"""

from __future__ import annotations

from .drag import DragController, DragState
from .mutator import (
    AddressingFailure,
    MutationRejected,
    StructuralRefusal,
    add_block,
    delete_block,
    move_block,
    update_block,
)
from .paths import BlockIndex, BlockPath, Slot, count_blocks, find_path, get_by_path

__all__ = [
    "AddressingFailure",
    "BlockIndex",
    "BlockPath",
    "DragController",
    "DragState",
    "MutationRejected",
    "Slot",
    "StructuralRefusal",
    "add_block",
    "count_blocks",
    "delete_block",
    "find_path",
    "get_by_path",
    "move_block",
    "update_block",
]
