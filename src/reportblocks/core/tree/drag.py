"""
Drag-to-reorder state machine.

States
------
- :class:`Idle`      : no drag in flight.
- :class:`Dragging`  : a block handle was grabbed (``source_id``).
- :class:`Armed`     : the drag has hovered a container; holds the last
  hovered ``target_path`` (last hover wins, nothing is queued).

Transitions are plain functions from one immutable state value to the next,
so they can be exercised without any rendering layer. :class:`DragController`
is the small stateful holder the host keeps between events.

Drop re-validation
------------------
Between hover and drop another structural change may land first. When a drag
hovers a block, the hovered block's id is recorded next to the path. On drop
the path must still resolve to a slot of the document being committed to and,
if a block was hovered, to that same block; otherwise the drop is aborted and
the document is returned unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from reportblocks.core.contracts.blocks import Document
from reportblocks.core.settings import get_logger
from reportblocks.core.tree.mutator import move_block
from reportblocks.core.tree.paths import (
    BlockIndex,
    BlockPath,
    get_by_path,
    get_slot,
    is_block_path,
)

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Idle:
    """No drag in flight."""


@dataclass(frozen=True, slots=True)
class Dragging:
    source_id: str


@dataclass(frozen=True, slots=True)
class Armed:
    source_id: str
    target_path: BlockPath
    hovered_id: str | None = None


DragState = Idle | Dragging | Armed

IDLE = Idle()


# --------------------------------------------------------------------------- #
# Transitions
# --------------------------------------------------------------------------- #


def start_drag(state: DragState, block_id: str, *, locked: bool = False) -> DragState:
    """idle -> dragging. Refused (state unchanged) when the section is locked.

    A drag-start while another drag is in flight replaces it.
    """
    if locked:
        logger.info("drag of %r refused: section is locked", block_id)
        return state
    if not isinstance(state, Idle):
        logger.debug("drag of %r replaces in-flight drag %r", block_id, state.source_id)
    return Dragging(source_id=block_id)


def drag_over(
    state: DragState, path: Sequence[int], document: Document | None = None
) -> DragState:
    """dragging/armed -> armed with ``path`` as the candidate drop target.

    When ``document`` is given, the block currently at ``path`` (if any) is
    remembered for the drop-time check. Hovering while idle is ignored.
    """
    if isinstance(state, Idle):
        return state
    target = tuple(path)
    hovered = get_by_path(target, document) if document is not None else None
    return Armed(
        source_id=state.source_id,
        target_path=target,
        hovered_id=hovered.id if hovered is not None else None,
    )


def abort(state: DragState) -> DragState:
    """dragging/armed -> idle with no mutation."""
    if not isinstance(state, Idle):
        logger.debug("drag of %r aborted", state.source_id)
    return IDLE


def _target_still_valid(state: Armed, document: Document) -> bool:
    if not is_block_path(state.target_path):
        return False
    slot, index = state.target_path[:-1], state.target_path[-1]
    blocks = get_slot(slot, document)
    if blocks is None or index > len(blocks):
        return False
    if state.hovered_id is None:
        return True
    return BlockIndex.build(document).path_of(state.hovered_id) == state.target_path


def drop(state: DragState, document: Document) -> tuple[DragState, Document]:
    """armed -> idle, committing the move; any other state -> idle, no mutation.

    Returns the new state (always idle) and the resulting document.
    """
    if not isinstance(state, Armed):
        return IDLE, document
    if not _target_still_valid(state, document):
        logger.info(
            "drop of %r aborted: target %r went stale", state.source_id, state.target_path
        )
        return IDLE, document
    return IDLE, move_block(document, state.source_id, state.target_path)


# --------------------------------------------------------------------------- #
# Stateful holder
# --------------------------------------------------------------------------- #


class DragController:
    """Holds the current :data:`DragState` across interaction events."""

    __slots__ = ("state",)

    def __init__(self) -> None:
        self.state: DragState = IDLE

    @property
    def is_idle(self) -> bool:
        return isinstance(self.state, Idle)

    @property
    def source_id(self) -> str | None:
        return None if isinstance(self.state, Idle) else self.state.source_id

    @property
    def target_path(self) -> BlockPath | None:
        return self.state.target_path if isinstance(self.state, Armed) else None

    def start(self, block_id: str, *, locked: bool = False) -> bool:
        """Begin dragging ``block_id``; return False if the start was refused."""
        self.state = start_drag(self.state, block_id, locked=locked)
        # a locked start leaves any in-flight drag untouched
        return not locked

    def over(self, path: Sequence[int], document: Document | None = None) -> None:
        self.state = drag_over(self.state, path, document)

    def drop(self, document: Document) -> Document:
        """Commit the in-flight drag against ``document`` and reset to idle."""
        self.state, result = drop(self.state, document)
        return result

    def abort(self) -> None:
        self.state = abort(self.state)


__all__ = [
    "IDLE",
    "Armed",
    "DragController",
    "DragState",
    "Dragging",
    "Idle",
    "abort",
    "drag_over",
    "drop",
    "start_drag",
]
