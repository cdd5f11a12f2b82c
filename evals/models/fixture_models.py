"""
Pydantic records for the in-memory fixture store.

The store holds five entity kinds in a strict ownership chain:
- Project -> Chapter -> Timeline -> Block
- MediaAsset (owned by a Project, referenced by Blocks)

Python attributes are snake_case; payloads coming from fixture files and
everything handed to reporting use the camelCase wire form
(e.g. ``timelineOffsetInFrames``).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, JsonValue, model_validator
from pydantic.alias_generators import to_camel


# Timeline/Block overlays accept any JSON value, Project/Chapter only strings.
SettingValue = JsonValue


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_entity_id() -> str:
    return str(uuid4())


class FixtureModel(BaseModel):
    """Base for all store records (camelCase aliases, snake_case attributes)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# ENTITIES
# =============================================================================


class Project(FixtureModel):
    id: str = Field(default_factory=new_entity_id)
    name: str
    created_date: datetime = Field(default_factory=utc_now)
    last_modified: datetime = Field(default_factory=utc_now)
    settings: dict[str, str] = Field(default_factory=dict)


class Chapter(FixtureModel):
    id: str = Field(default_factory=new_entity_id)
    project_id: str
    title: str
    order_index: int = 0
    created_date: datetime = Field(default_factory=utc_now)
    modified_date: datetime = Field(default_factory=utc_now)
    settings: dict[str, str] = Field(default_factory=dict)


class Timeline(FixtureModel):
    id: str = Field(default_factory=new_entity_id)
    chapter_id: str
    type: str
    label: str = ""
    order_index: int = 0
    created_date: datetime = Field(default_factory=utc_now)
    modified_date: datetime = Field(default_factory=utc_now)
    settings: dict[str, SettingValue] = Field(default_factory=dict)


class Block(FixtureModel):
    """
    A clip placed on a timeline.

    The block occupies the half-open on-timeline interval
    ``[timeline_offset_in_frames, timeline_offset_in_frames + length)`` and
    plays ``[file_relative_start_frame, file_relative_end_frame)`` of its
    source media. Blocks without an end frame (stills, text) have length 0.

    ``focus_points``, ``transcription_segments`` and ``faces`` are copies of
    the referenced media asset's enrichment taken when fixtures are linked.
    """
    id: str = Field(default_factory=new_entity_id)
    timeline_id: str
    block_type: str
    media_asset_id: str | None = None
    timeline_offset_in_frames: int = 0
    file_relative_start_frame: int = 0
    file_relative_end_frame: int | None = None
    order_index: int = 0
    created_date: datetime = Field(default_factory=utc_now)
    modified_date: datetime = Field(default_factory=utc_now)
    settings: dict[str, SettingValue] = Field(default_factory=dict)
    focus_points: list[dict[str, Any]] = Field(default_factory=list)
    transcription_segments: list[dict[str, Any]] = Field(default_factory=list)
    faces: list[dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_file_range(self) -> Block:
        end = self.file_relative_end_frame
        if end is not None and end < self.file_relative_start_frame:
            raise ValueError(
                f"fileRelativeEndFrame ({end}) is before "
                f"fileRelativeStartFrame ({self.file_relative_start_frame})"
            )
        return self

    @property
    def length_in_frames(self) -> int:
        """Frames this block occupies on its timeline."""
        if self.file_relative_end_frame is None:
            return 0
        return self.file_relative_end_frame - self.file_relative_start_frame

    @property
    def timeline_end_frame(self) -> int:
        """Exclusive end of the on-timeline interval."""
        return self.timeline_offset_in_frames + self.length_in_frames

    def overlaps(self, start: int, end: int) -> bool:
        """Check if the on-timeline interval intersects ``[start, end)``."""
        return self.timeline_offset_in_frames < end and self.timeline_end_frame > start


class MediaAsset(FixtureModel):
    id: str = Field(default_factory=new_entity_id)
    project_id: str
    media_type: str
    file_name: str
    file_path: str
    mime_type: str | None = None
    order_index: int = 0
    added_date: datetime = Field(default_factory=utc_now)
    metadata: dict[str, Any] = Field(default_factory=dict)
    type_specific_data: dict[str, Any] = Field(default_factory=dict)
    waveform_data: dict[str, Any] | None = None
    focus_points: list[dict[str, Any]] = Field(default_factory=list)
    transcription_segments: list[dict[str, Any]] = Field(default_factory=list)
    faces: list[dict[str, Any]] = Field(default_factory=list)
    scenes: list[dict[str, Any]] = Field(default_factory=list)


# =============================================================================
# RESULTS
# =============================================================================


class DeleteResult(FixtureModel):
    """Outcome of a delete that can be refused (media assets)."""
    success: bool
    error: str | None = None


class SplitResult(FixtureModel):
    """Both halves of a split block."""
    original: Block
    new_block: Block
