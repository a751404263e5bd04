"""
Sections: host-level glue between the report state and the block core.

A report is an ordered list of sections. Each section owns two keys in the
:class:`~reportblocks.host.state.ReportState`:

- ``<id>``        : its block document
- ``<id>-title``  : its title

:class:`SectionEditor` is what a renderer talks to. It implements the
:class:`~reportblocks.render.renderer.RenderCallbacks` protocol, runs every
request through the pure mutator, and writes the resulting snapshot back
with a single ``update_field(section_id, document)`` call. A locked section
refuses all of it before the mutator is even consulted.

Reordering whole sections is the page's concern and is not handled here.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Concatenate, ParamSpec

from reportblocks.core.contracts.blocks import Document, create_block, new_block_id
from reportblocks.core.settings import get_logger
from reportblocks.core.tree import mutator
from reportblocks.core.tree.drag import DragController
from reportblocks.core.tree.paths import BlockPath, Slot
from reportblocks.host.state import ReportState
from reportblocks.render.renderer import RenderedDocument, render

logger = get_logger(__name__)

P = ParamSpec("P")

DEFAULT_SECTION_TITLE = "Section Title"


@dataclass
class Section:
    """Host metadata of one report section."""

    id: str
    locked: bool = False
    deletable: bool = True

    @property
    def title_key(self) -> str:
        return f"{self.id}-title"


class SectionLockedError(PermissionError):
    """Raised by host operations that must not touch a locked section."""


class SectionEditor:
    """Routes renderer callbacks for one section into the mutator."""

    def __init__(self, state: ReportState, section: Section) -> None:
        self.state = state
        self.section = section
        self.drag = DragController()

    # ------------------------------- Reads ----------------------------------

    @property
    def document(self) -> Document:
        value = self.state.get(self.section.id, ())
        return value if isinstance(value, tuple) else tuple(value or ())

    @property
    def title(self) -> str:
        return str(self.state.get(self.section.title_key, ""))

    def render(self) -> RenderedDocument:
        """Render the current snapshot with actions bound to this editor."""
        return render(self.document, self, locked=self.section.locked)

    # ------------------------------- Writes ---------------------------------

    def set_title(self, title: str) -> bool:
        if self._refused("set_title"):
            return False
        self.state.update_field(self.section.title_key, title)
        return True

    def apply(
        self,
        op: Callable[Concatenate[Document, P], Document],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> bool:
        """Run a mutator operation on this section and store the result.

        Returns True when a new snapshot was written. Rejected operations
        return the same document object, so nothing is written for them.
        """
        if self._refused(op.__name__):
            return False
        before = self.document
        after = op(before, *args, **kwargs)
        if after is before:
            return False
        self.state.update_field(self.section.id, after)
        return True

    # --------------------------- RenderCallbacks -----------------------------

    def on_update(self, block_id: str, partial: Mapping[str, Any]) -> None:
        self.apply(mutator.update_block, block_id, partial)

    def on_add(self, kind: str, parent_slot: Slot | None = None) -> None:
        self.apply(mutator.add_block, kind, parent_slot)

    def on_delete(self, block_id: str) -> None:
        self.apply(mutator.delete_block, block_id)

    def on_drag_start(self, block_id: str) -> None:
        self.drag.start(block_id, locked=self.section.locked)

    def on_drag_over(self, path: BlockPath) -> None:
        self.drag.over(path, self.document)

    def on_drop(self) -> None:
        if self.section.locked:
            self.drag.abort()
            self._refused("drop")
            return
        before = self.document
        after = self.drag.drop(before)
        if after is not before:
            self.state.update_field(self.section.id, after)

    def on_drag_end(self) -> None:
        """Drag ended without a drop (escape, dropped outside any container)."""
        self.drag.abort()

    # ------------------------------- Helpers --------------------------------

    def _refused(self, action: str) -> bool:
        if self.section.locked:
            logger.info("%s on section %r refused: section is locked", action, self.section.id)
            return True
        return False


class Report:
    """
    Ordered sections over one shared :class:`ReportState`.

    Editors are cached per section so an in-flight drag survives between
    events.
    """

    def __init__(self, state: ReportState | None = None) -> None:
        self.state = state if state is not None else ReportState()
        self.sections: list[Section] = []
        self._editors: dict[str, SectionEditor] = {}

    @classmethod
    def create(cls, title: str = DEFAULT_SECTION_TITLE) -> Report:
        """Return a report holding a single fresh section."""
        report = cls()
        report.add_section(title)
        return report

    def add_section(self, title: str = "New Section Title") -> Section:
        """Append a section whose document starts as one empty 1-column layout."""
        section = Section(id=new_block_id("custom"))
        self.state.update_field(section.title_key, title)
        self.state.update_field(section.id, (create_block("layout"),))
        self.sections.append(section)
        logger.debug("added section %r", section.id)
        return section

    def get_section(self, section_id: str) -> Section | None:
        return next((s for s in self.sections if s.id == section_id), None)

    def editor(self, section_id: str) -> SectionEditor:
        """Return the editor for ``section_id``.

        Raises
        ------
        KeyError
            If no such section exists.
        """
        section = self.get_section(section_id)
        if section is None:
            raise KeyError(section_id)
        if section_id not in self._editors:
            self._editors[section_id] = SectionEditor(self.state, section)
        return self._editors[section_id]

    def delete_section(self, section_id: str) -> None:
        """Remove a section and its keys.

        Raises
        ------
        KeyError
            If no such section exists.
        SectionLockedError
            If the section is locked or not deletable.
        """
        section = self.get_section(section_id)
        if section is None:
            raise KeyError(section_id)
        if section.locked or not section.deletable:
            raise SectionLockedError(f"section {section_id!r} cannot be deleted")
        self.sections.remove(section)
        self._editors.pop(section_id, None)
        self.state.remove(section.id)
        self.state.remove(section.title_key)

    def toggle_lock(self, section_id: str) -> bool:
        """Flip the lock flag and return the new value."""
        section = self.get_section(section_id)
        if section is None:
            raise KeyError(section_id)
        section.locked = not section.locked
        if section.locked and section_id in self._editors:
            self._editors[section_id].drag.abort()
        return section.locked

    def reset(self) -> Section:
        """Discard everything and start over with a single fresh section."""
        self.state = ReportState()
        self.sections = []
        self._editors = {}
        return self.add_section(DEFAULT_SECTION_TITLE)


__all__ = [
    "DEFAULT_SECTION_TITLE",
    "Report",
    "Section",
    "SectionEditor",
    "SectionLockedError",
]
