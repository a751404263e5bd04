"""Tests for the host glue: report state, section editors and the report."""

from __future__ import annotations

import pytest

from reportblocks.core.contracts.blocks import LayoutBlock, TextBlock
from reportblocks.core.tree import mutator
from reportblocks.core.tree.paths import find_path
from reportblocks.host.section import Report, SectionEditor, SectionLockedError
from reportblocks.host.state import ReportState


def _editor() -> tuple[Report, SectionEditor]:
    report = Report.create("Results")
    return report, report.editor(report.sections[0].id)


# --------------------------------------------------------------------------- #
# ReportState
# --------------------------------------------------------------------------- #


def test_state_update_bumps_revision() -> None:
    """Every whole-value write bumps the revision counter."""
    state = ReportState({"header": "Lab report"})
    assert state.revision == 0
    state.update_field("a", 1)
    state.update_field("a", 2)
    assert state.get("a") == 2
    assert state.get("missing", "dflt") == "dflt"
    assert state.revision == 2
    assert state.keys() == ("a", "header")
    assert "header" in state and len(state) == 2


def test_state_remove_only_counts_real_changes() -> None:
    """Removing a missing key leaves the revision alone."""
    state = ReportState()
    state.update_field("k", None)
    state.remove("k")
    assert state.revision == 2
    state.remove("k")
    assert state.revision == 2


def test_state_snapshot_is_json_safe() -> None:
    """Snapshots serialize block documents and record the revision."""
    state = ReportState()
    state.update_field("sec", (TextBlock(id="t", content="hi"),))
    snap = state.snapshot("first")
    assert snap.revision == 1
    assert snap.note == "first"
    assert snap.timestamp.endswith("Z")
    assert snap.data["sec"] == [{"id": "t", "type": "text", "content": "hi"}]
    assert state.snapshots() == (snap,)


# --------------------------------------------------------------------------- #
# SectionEditor
# --------------------------------------------------------------------------- #


def test_new_section_starts_with_empty_layout() -> None:
    """A fresh section holds one single-column layout and its title."""
    report, editor = _editor()
    assert editor.title == "Results"
    (layout,) = editor.document
    assert isinstance(layout, LayoutBlock)
    assert layout.columns == 1 and layout.children == ((),)
    assert report.state.get(f"{editor.section.id}-title") == "Results"


def test_editor_writes_one_snapshot_per_change() -> None:
    """Successful operations write back once; no-ops write nothing."""
    report, editor = _editor()
    rev = report.state.revision
    assert editor.apply(mutator.add_block, "text") is True
    assert report.state.revision == rev + 1
    assert editor.apply(mutator.delete_block, "ghost") is False
    assert report.state.revision == rev + 1


def test_move_that_keeps_order_writes_nothing() -> None:
    """Dropping a block right below itself is not a change."""
    report, editor = _editor()
    editor.on_add("text")
    layout_id = editor.document[0].id
    rev = report.state.revision
    assert editor.apply(mutator.move_block, layout_id, (1,)) is False
    assert report.state.revision == rev


def test_callbacks_drive_the_drag_scenario() -> None:
    """Renderer actions add to a column and drag the block to the root."""
    _, editor = _editor()
    layout = editor.render().root.blocks[0]
    layout.columns[0].actions.add("text")  # type: ignore[union-attr]

    rendered = editor.render()
    text = rendered.root.blocks[0].columns[0].blocks[0]
    text.actions.drag_start()  # type: ignore[union-attr]
    rendered.root.actions.drag_over_end()  # type: ignore[union-attr]
    assert editor.drag.target_path == (1,)
    editor.on_drop()

    assert editor.drag.is_idle
    assert [b.type for b in editor.document] == ["layout", "text"]
    assert editor.document[0].children == ((),)  # type: ignore[union-attr]


def test_update_callback_and_title() -> None:
    """Field edits and title changes land in the state."""
    _, editor = _editor()
    editor.on_add("subheader")
    sub = editor.document[1]
    editor.on_update(sub.id, {"content": "Methods"})
    assert editor.document[1].content == "Methods"  # type: ignore[union-attr]
    assert editor.set_title("Renamed") is True
    assert editor.title == "Renamed"
    editor.on_delete(sub.id)
    assert find_path(sub.id, editor.document) is None


def test_locked_section_refuses_everything() -> None:
    """Nothing is written while a section is locked."""
    report, editor = _editor()
    editor.on_add("text")
    text_id = editor.document[1].id
    report.toggle_lock(editor.section.id)
    rev = report.state.revision

    editor.on_add("table")
    editor.on_update(text_id, {"content": "x"})
    editor.on_delete(text_id)
    assert editor.set_title("nope") is False
    editor.on_drag_start(text_id)
    assert editor.drag.is_idle
    editor.on_drop()

    assert report.state.revision == rev
    assert editor.render().locked
    assert all(b.actions is None for b in editor.render().walk())


def test_locking_aborts_an_in_flight_drag() -> None:
    """Toggling the lock on cancels a drag that has not dropped yet."""
    report, editor = _editor()
    editor.on_add("text")
    editor.on_drag_start(editor.document[1].id)
    editor.on_drag_over((0,))
    assert report.toggle_lock(editor.section.id) is True
    assert editor.drag.is_idle
    assert report.toggle_lock(editor.section.id) is False


# --------------------------------------------------------------------------- #
# Report
# --------------------------------------------------------------------------- #


def test_report_add_and_delete_sections() -> None:
    """Sections own two state keys that go away with them."""
    report, first = _editor()
    second = report.add_section()
    assert [s.id for s in report.sections] == [first.section.id, second.id]
    assert report.editor(second.id).title == "New Section Title"
    assert report.editor(second.id) is report.editor(second.id)

    report.delete_section(second.id)
    assert second.id not in report.state
    assert second.title_key not in report.state
    with pytest.raises(KeyError):
        report.editor(second.id)
    with pytest.raises(KeyError):
        report.delete_section(second.id)


def test_report_refuses_deleting_locked_or_fixed_sections() -> None:
    """Locked or non-deletable sections stay."""
    report, editor = _editor()
    report.toggle_lock(editor.section.id)
    with pytest.raises(SectionLockedError):
        report.delete_section(editor.section.id)
    report.toggle_lock(editor.section.id)
    editor.section.deletable = False
    with pytest.raises(SectionLockedError):
        report.delete_section(editor.section.id)


def test_report_reset_starts_over() -> None:
    """Reset discards every section and key."""
    report, editor = _editor()
    report.add_section()
    fresh = report.reset()
    assert report.sections == [fresh]
    assert editor.section.id not in report.state
    assert report.editor(fresh.id).title == "Section Title"
