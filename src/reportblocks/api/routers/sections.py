"""
API routes for report sections and their block documents.

Endpoints
---------
- `GET    /sections`                          : list sections
- `POST   /sections`                          : append a section
- `DELETE /sections/{section_id}`             : delete a section
- `POST   /sections/{section_id}/lock`        : toggle the lock flag
- `GET    /sections/{section_id}/blocks`      : read one section
- `POST   /sections/{section_id}/blocks`      : add a block (root or column slot)
- `PATCH  /sections/{section_id}/blocks/{id}` : partial update of one block
- `DELETE /sections/{section_id}/blocks/{id}` : delete one block
- `POST   /sections/{section_id}/move`        : move a block to a target path

Design Decisions
----------------
- Mutations that resolve to a no-op (stale id, refused change) answer 200
  with `applied: false`; they are not client errors.
- Unknown block kinds are programming errors on the client side -> 400.
- Writes to a locked section -> 423 Locked.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, HTTPException, status

from reportblocks.api.schemas import (
    AddBlockRequest,
    CreateSectionRequest,
    MoveBlockRequest,
    MutationResult,
    SectionInfo,
)
from reportblocks.api.store import get_editor_store
from reportblocks.core.contracts.blocks import dump_document
from reportblocks.core.tree import mutator
from reportblocks.host.section import SectionEditor, SectionLockedError

router = APIRouter(prefix="/sections", tags=["Sections"])


def _editor(section_id: str) -> SectionEditor:
    try:
        return get_editor_store().report.editor(section_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Section {section_id} not found",
        ) from exc


def _writable(section_id: str) -> SectionEditor:
    editor = _editor(section_id)
    if editor.section.locked:
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail=f"Section {section_id} is locked",
        )
    return editor


def _info(editor: SectionEditor) -> SectionInfo:
    return SectionInfo(
        id=editor.section.id,
        title=editor.title,
        locked=editor.section.locked,
        deletable=editor.section.deletable,
        revision=editor.state.revision,
        blocks=dump_document(editor.document),
    )


@router.get("", response_model=list[SectionInfo], summary="List sections")
async def list_sections() -> list[SectionInfo]:
    report = get_editor_store().report
    return [_info(report.editor(s.id)) for s in report.sections]


@router.post(
    "",
    response_model=SectionInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Append a section",
)
async def create_section(request: CreateSectionRequest) -> SectionInfo:
    report = get_editor_store().report
    section = report.add_section(request.title)
    return _info(report.editor(section.id))


@router.delete(
    "/{section_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a section"
)
async def delete_section(section_id: str) -> None:
    report = get_editor_store().report
    _editor(section_id)
    try:
        report.delete_section(section_id)
    except SectionLockedError as exc:
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail=str(exc)) from exc


@router.post("/{section_id}/lock", response_model=SectionInfo, summary="Toggle lock")
async def toggle_lock(section_id: str) -> SectionInfo:
    editor = _editor(section_id)
    get_editor_store().report.toggle_lock(section_id)
    return _info(editor)


@router.get("/{section_id}/blocks", response_model=SectionInfo, summary="Read a section")
async def get_section(section_id: str) -> SectionInfo:
    return _info(_editor(section_id))


@router.post(
    "/{section_id}/blocks",
    response_model=MutationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Add a block",
)
async def add_block(section_id: str, request: AddBlockRequest) -> MutationResult:
    editor = _writable(section_id)
    # UnknownBlockKindError is a ValueError -> 400 via the app handler
    slot = tuple(request.parent_slot) if request.parent_slot is not None else None
    applied = editor.apply(mutator.add_block, request.kind, slot)
    return MutationResult(applied=applied, section=_info(editor))


@router.patch(
    "/{section_id}/blocks/{block_id}",
    response_model=MutationResult,
    summary="Update block fields",
)
async def update_block(
    section_id: str, block_id: str, partial: dict[str, Any] = Body(...)
) -> MutationResult:
    editor = _writable(section_id)
    applied = editor.apply(mutator.update_block, block_id, partial)
    return MutationResult(applied=applied, section=_info(editor))


@router.delete(
    "/{section_id}/blocks/{block_id}",
    response_model=MutationResult,
    summary="Delete a block",
)
async def delete_block(section_id: str, block_id: str) -> MutationResult:
    editor = _writable(section_id)
    applied = editor.apply(mutator.delete_block, block_id)
    return MutationResult(applied=applied, section=_info(editor))


@router.post("/{section_id}/move", response_model=MutationResult, summary="Move a block")
async def move_block(section_id: str, request: MoveBlockRequest) -> MutationResult:
    editor = _writable(section_id)
    applied = editor.apply(mutator.move_block, request.source_id, tuple(request.target_path))
    return MutationResult(applied=applied, section=_info(editor))


__all__ = ["router"]
