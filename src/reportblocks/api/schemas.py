"""Request/response payloads of the editor API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SectionInfo(BaseModel):
    """Public view of one section."""

    id: str
    title: str
    locked: bool
    deletable: bool
    revision: int = Field(description="Report state revision at read time.")
    blocks: list[dict[str, Any]] = Field(default_factory=list)


class CreateSectionRequest(BaseModel):
    title: str = "New Section Title"


class AddBlockRequest(BaseModel):
    kind: str = Field(description="One of text, subheader, image_grid, table, layout.")
    parent_slot: list[int] | None = Field(
        default=None,
        description="Layout column slot `[..., column]`; omit to append at the root.",
    )


class MoveBlockRequest(BaseModel):
    source_id: str
    target_path: list[int] = Field(min_length=1)


class MutationResult(BaseModel):
    """Outcome of a block mutation; `applied` is False for no-ops and refusals."""

    applied: bool
    section: SectionInfo
