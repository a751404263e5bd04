"""Host-side glue: report state, sections and their editors."""

from __future__ import annotations

from .section import Report, Section, SectionEditor, SectionLockedError
from .state import ReportState, StateSnapshot

__all__ = [
    "Report",
    "ReportState",
    "Section",
    "SectionEditor",
    "SectionLockedError",
    "StateSnapshot",
]
