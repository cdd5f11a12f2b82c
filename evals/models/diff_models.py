from __future__ import annotations

from typing import Any

from pydantic import Field

from models.fixture_models import (
    Block,
    Chapter,
    FixtureModel,
    MediaAsset,
    Project,
    SettingValue,
    Timeline,
)


# =============================================================================
# SNAPSHOT
# =============================================================================


class DataSnapshot(FixtureModel):
    """Independent point-in-time copy of every collection in a FixtureStore."""
    projects: dict[str, Project] = Field(default_factory=dict)
    chapters: dict[str, Chapter] = Field(default_factory=dict)
    timelines: dict[str, Timeline] = Field(default_factory=dict)
    blocks: dict[str, Block] = Field(default_factory=dict)
    media_assets: dict[str, MediaAsset] = Field(default_factory=dict)
    project_settings: dict[str, dict[str, str]] = Field(default_factory=dict)
    chapter_settings: dict[str, dict[str, str]] = Field(default_factory=dict)
    timeline_settings: dict[str, dict[str, SettingValue]] = Field(default_factory=dict)
    block_settings: dict[str, dict[str, SettingValue]] = Field(default_factory=dict)


# =============================================================================
# DIFF
# =============================================================================


class AddedEntity(FixtureModel):
    id: str
    data: dict[str, Any]


class ModifiedEntity(FixtureModel):
    id: str
    before: dict[str, Any]
    after: dict[str, Any]


class DeletedEntity(FixtureModel):
    id: str
    data: dict[str, Any]


class EntityChanges(FixtureModel):
    """Added/modified/deleted records of one entity kind."""
    added: list[AddedEntity] = Field(default_factory=list)
    modified: list[ModifiedEntity] = Field(default_factory=list)
    deleted: list[DeletedEntity] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.deleted)

    def added_ids(self) -> list[str]:
        return [entry.id for entry in self.added]

    def modified_ids(self) -> list[str]:
        return [entry.id for entry in self.modified]

    def deleted_ids(self) -> list[str]:
        return [entry.id for entry in self.deleted]


class DataDiff(FixtureModel):
    """
    Diff between two snapshots, one EntityChanges per tracked kind.

    Chapters and projects are only populated when explicitly requested.
    """
    blocks: EntityChanges = Field(default_factory=EntityChanges)
    timelines: EntityChanges = Field(default_factory=EntityChanges)
    media_assets: EntityChanges = Field(default_factory=EntityChanges)
    chapters: EntityChanges | None = None
    projects: EntityChanges | None = None

    def kinds(self) -> dict[str, EntityChanges]:
        tracked = {
            "blocks": self.blocks,
            "timelines": self.timelines,
            "media_assets": self.media_assets,
        }
        if self.chapters is not None:
            tracked["chapters"] = self.chapters
        if self.projects is not None:
            tracked["projects"] = self.projects
        return tracked

    @property
    def is_empty(self) -> bool:
        return all(changes.is_empty for changes in self.kinds().values())

    @property
    def summary(self) -> str:
        """Human-readable summary, e.g. "Added 1 block(s); Modified 2 block(s)"."""
        changes = []
        for kind, entity_changes in self.kinds().items():
            label = kind.rstrip("s").replace("_", " ")
            if entity_changes.added:
                changes.append(f"Added {len(entity_changes.added)} {label}(s)")
            if entity_changes.modified:
                changes.append(f"Modified {len(entity_changes.modified)} {label}(s)")
            if entity_changes.deleted:
                changes.append(f"Deleted {len(entity_changes.deleted)} {label}(s)")
        return "; ".join(changes) if changes else "No changes"

    def to_report(self) -> dict[str, Any]:
        """camelCase payload handed to reporting, untracked kinds omitted."""
        untracked = {
            field for field in ("chapters", "projects") if getattr(self, field) is None
        }
        return self.model_dump(mode="json", by_alias=True, exclude=untracked)
