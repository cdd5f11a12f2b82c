"""
FixtureStore - in-memory repository backing agent test scenarios.

Holds one keyed collection per entity kind plus the settings overlays for
projects, chapters, timelines and blocks. Payloads arrive already parsed
from an external fixture loader and are ingested through the ``load_*``
methods; everything else mutates the store through the per-kind operator
modules (``project_operator``, ``chapter_operator``, ``timeline_operator``,
``block_operator``, ``media_asset_operator``).

The store is single-threaded and synchronous: every call runs to
completion before the next one starts and there is no internal locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from copy import deepcopy
from typing import Any, TypeVar

from pydantic import BaseModel

from models.fixture_models import (
    Block,
    Chapter,
    FixtureModel,
    MediaAsset,
    Project,
    Timeline,
)
from operators.repository import EntityRepository
from operators.settings_operator import (
    SettingsOverlay,
    coerce_json_setting,
    coerce_string_setting,
)
from operators.store_errors import (
    EntityNotFoundError,
    FixtureStoreError,
    InvalidOperationError,
)

__all__ = [
    "FixtureStore",
    "FixtureStoreError",
    "EntityNotFoundError",
    "InvalidOperationError",
    "apply_changes",
]

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=FixtureModel)

# Settings keys used by fixture payloads exported from the desktop app.
_LEGACY_SETTINGS_KEYS = {
    "project": "projectSettings",
    "chapter": "chapterSettings",
    "timeline": "timelineSettings",
    "block": "blockSettings",
}

# Fields no generic update may rewrite.
_ALWAYS_PROTECTED = {"id", "settings", "created_date", "added_date"}


def apply_changes(
    record: BaseModel,
    changes: Mapping[str, Any],
    protected: Iterable[str] = (),
) -> None:
    """
    Assign ``changes`` onto ``record`` after checking field names.

    Raises:
        InvalidOperationError: If a field is unknown or protected
    """
    blocked = _ALWAYS_PROTECTED | set(protected)
    fields = type(record).model_fields
    for name in changes:
        if name not in fields:
            raise InvalidOperationError(
                f"Unknown field '{name}' for {type(record).__name__}"
            )
        if name in blocked:
            raise InvalidOperationError(
                f"Field '{name}' of {type(record).__name__} cannot be updated directly"
            )
    for name, value in changes.items():
        setattr(record, name, deepcopy(value))


def _as_list(payload: Any) -> list[Any]:
    if payload is None:
        return []
    if isinstance(payload, (list, tuple)):
        return list(payload)
    return [payload]


class FixtureStore:
    def __init__(self) -> None:
        self.projects: EntityRepository[Project] = EntityRepository("Project")
        self.chapters: EntityRepository[Chapter] = EntityRepository("Chapter")
        self.timelines: EntityRepository[Timeline] = EntityRepository("Timeline")
        self.blocks: EntityRepository[Block] = EntityRepository("Block")
        self.media_assets: EntityRepository[MediaAsset] = EntityRepository("MediaAsset")

        self.project_settings = SettingsOverlay(self.projects, coerce_string_setting)
        self.chapter_settings = SettingsOverlay(self.chapters, coerce_string_setting)
        self.timeline_settings = SettingsOverlay(self.timelines, coerce_json_setting)
        self.block_settings = SettingsOverlay(self.blocks, coerce_json_setting)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def require_project(self, project_id: str) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise EntityNotFoundError(self.projects.kind, project_id)
        return project

    def require_chapter(self, chapter_id: str) -> Chapter:
        chapter = self.chapters.get(chapter_id)
        if chapter is None:
            raise EntityNotFoundError(self.chapters.kind, chapter_id)
        return chapter

    def require_timeline(self, timeline_id: str) -> Timeline:
        timeline = self.timelines.get(timeline_id)
        if timeline is None:
            raise EntityNotFoundError(self.timelines.kind, timeline_id)
        return timeline

    def require_block(self, block_id: str) -> Block:
        block = self.blocks.get(block_id)
        if block is None:
            raise EntityNotFoundError(self.blocks.kind, block_id)
        return block

    def counts(self) -> dict[str, int]:
        return {
            "projects": len(self.projects),
            "chapters": len(self.chapters),
            "timelines": len(self.timelines),
            "blocks": len(self.blocks),
            "media_assets": len(self.media_assets),
        }

    # =========================================================================
    # LOAD FIXTURES
    # =========================================================================

    def _ingest(
        self,
        model: type[RecordT],
        repository: EntityRepository[RecordT],
        overlay: SettingsOverlay | None,
        legacy_key: str | None,
        payload: Mapping[str, Any] | RecordT,
    ) -> RecordT:
        if isinstance(payload, model):
            record = payload.model_copy(deep=True)
        else:
            data = dict(payload)
            legacy_settings = data.pop(legacy_key, None) if legacy_key else None
            if legacy_settings is not None and "settings" not in data:
                data["settings"] = legacy_settings
            settings = data.get("settings")
            if overlay is not None and isinstance(settings, Mapping):
                data["settings"] = overlay.coerce_values(settings)
            record = model.model_validate(data)

        repository.insert(record)
        if overlay is not None:
            overlay.seed(record.id, record.settings)
        return record

    def load_project(self, payload: Mapping[str, Any] | Project) -> Project:
        return self._ingest(
            Project, self.projects, self.project_settings,
            _LEGACY_SETTINGS_KEYS["project"], payload,
        )

    def load_chapters(self, payload: Any) -> list[Chapter]:
        return [
            self._ingest(
                Chapter, self.chapters, self.chapter_settings,
                _LEGACY_SETTINGS_KEYS["chapter"], item,
            )
            for item in _as_list(payload)
        ]

    def load_timelines(self, payload: Any) -> list[Timeline]:
        return [
            self._ingest(
                Timeline, self.timelines, self.timeline_settings,
                _LEGACY_SETTINGS_KEYS["timeline"], item,
            )
            for item in _as_list(payload)
        ]

    def load_blocks(self, payload: Any) -> list[Block]:
        return [
            self._ingest(
                Block, self.blocks, self.block_settings,
                _LEGACY_SETTINGS_KEYS["block"], item,
            )
            for item in _as_list(payload)
        ]

    def load_media_assets(self, payload: Any) -> list[MediaAsset]:
        return [
            self._ingest(MediaAsset, self.media_assets, None, None, item)
            for item in _as_list(payload)
        ]

    def link_block_enrichment(self) -> int:
        """
        Copy enrichment from each block's media asset onto the block.

        The copies are independent of the asset; later asset edits do not
        reach the block.

        Returns:
            Number of blocks whose asset was found
        """
        linked = 0
        for block in self.blocks:
            if not block.media_asset_id:
                continue
            asset = self.media_assets.get(block.media_asset_id)
            if asset is None:
                logger.warning(
                    "enrichment_link_missing_asset block=%s asset=%s",
                    block.id, block.media_asset_id,
                )
                continue
            block.focus_points = deepcopy(asset.focus_points)
            block.transcription_segments = deepcopy(asset.transcription_segments)
            block.faces = deepcopy(asset.faces)
            linked += 1
        return linked

    def load_fixture_data(
        self,
        project: Mapping[str, Any] | Project | None = None,
        chapters: Any = None,
        timelines: Any = None,
        blocks: Any = None,
        media_assets: Any = None,
    ) -> None:
        """Load a complete, already-parsed fixture set and link enrichment."""
        if project is not None:
            self.load_project(project)
        self.load_chapters(chapters)
        self.load_timelines(timelines)
        self.load_blocks(blocks)
        self.load_media_assets(media_assets)
        linked = self.link_block_enrichment()

        logger.info(
            "fixtures_loaded counts=%s enriched_blocks=%d", self.counts(), linked
        )

    def reset(self) -> None:
        for repository in (
            self.projects, self.chapters, self.timelines, self.blocks, self.media_assets
        ):
            repository.clear()
        for overlay in (
            self.project_settings, self.chapter_settings,
            self.timeline_settings, self.block_settings,
        ):
            overlay.clear()
