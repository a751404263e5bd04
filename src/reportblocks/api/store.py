"""
In-memory editor store for the HTTP surface.

Holds the single :class:`~reportblocks.host.section.Report` the API edits.

Note on Persistence
-------------------
This is a volatile memory store. If the server restarts, the report is
lost and a fresh one with a single section is created on next access.
"""

from __future__ import annotations

from typing import ClassVar

from reportblocks.host.section import Report


class EditorStore:
    """Singleton wrapper around one live :class:`Report`."""

    # Singleton instance placeholder (initialized in app startup)
    _instance: ClassVar[EditorStore | None] = None

    def __init__(self) -> None:
        self.report: Report = Report.create()

    @classmethod
    def get_instance(cls) -> EditorStore:
        """Accessor for the global singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> EditorStore:
        """Drop the current report and start a fresh store (used by tests)."""
        cls._instance = cls()
        return cls._instance


def get_editor_store() -> EditorStore:
    return EditorStore.get_instance()


__all__ = ["EditorStore", "get_editor_store"]
