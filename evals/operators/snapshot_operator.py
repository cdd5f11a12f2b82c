"""
Snapshot & Diff - capture store state and classify what changed.

A scenario takes a snapshot before the agent runs and another afterwards;
``diff_snapshots`` reports, per tracked entity kind, which records were
added, modified or deleted. Only blocks, timelines and media assets are
tracked by default; chapters and projects can be requested explicitly.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from models.diff_models import (
    AddedEntity,
    DataDiff,
    DataSnapshot,
    DeletedEntity,
    EntityChanges,
    ModifiedEntity,
)
from models.fixture_models import FixtureModel
from operators.fixture_store import FixtureStore
from operators.store_errors import InvalidOperationError

logger = logging.getLogger(__name__)

DEFAULT_DIFF_KINDS = ("blocks", "timelines", "media_assets")
DIFFABLE_KINDS = DEFAULT_DIFF_KINDS + ("chapters", "projects")


def _copy_records(records: Iterable[tuple[str, FixtureModel]]) -> dict[str, Any]:
    return {entity_id: record.model_copy(deep=True) for entity_id, record in records}


def take_snapshot(store: FixtureStore) -> DataSnapshot:
    """
    Deep-copy every collection and settings overlay of the store.

    Later mutations of the store do not reach the snapshot and vice versa.
    """
    snapshot = DataSnapshot.model_construct(
        projects=_copy_records(store.projects.items()),
        chapters=_copy_records(store.chapters.items()),
        timelines=_copy_records(store.timelines.items()),
        blocks=_copy_records(store.blocks.items()),
        media_assets=_copy_records(store.media_assets.items()),
        project_settings=store.project_settings.as_dict(),
        chapter_settings=store.chapter_settings.as_dict(),
        timeline_settings=store.timeline_settings.as_dict(),
        block_settings=store.block_settings.as_dict(),
    )
    logger.info("snapshot_taken counts=%s", store.counts())
    return snapshot


def _payload(record: FixtureModel) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


def diff_entities(
    before: Mapping[str, FixtureModel],
    after: Mapping[str, FixtureModel],
) -> EntityChanges:
    """
    Classify records of one kind by id.

    Records are compared on their JSON form, so equality is structural and
    does not depend on dict key order. Added and modified entries follow the
    order of ``after``; deleted entries follow the order of ``before``.
    """
    changes = EntityChanges()

    for entity_id, after_record in after.items():
        before_record = before.get(entity_id)
        after_payload = _payload(after_record)
        if before_record is None:
            changes.added.append(AddedEntity(id=entity_id, data=after_payload))
            continue
        before_payload = _payload(before_record)
        if before_payload != after_payload:
            changes.modified.append(
                ModifiedEntity(id=entity_id, before=before_payload, after=after_payload)
            )

    for entity_id, before_record in before.items():
        if entity_id not in after:
            changes.deleted.append(DeletedEntity(id=entity_id, data=_payload(before_record)))

    return changes


def diff_snapshots(
    before: DataSnapshot,
    after: DataSnapshot,
    kinds: Iterable[str] = DEFAULT_DIFF_KINDS,
) -> DataDiff:
    """
    Compare two snapshots.

    Args:
        before: Snapshot taken before the scenario ran
        after: Snapshot taken afterwards
        kinds: Entity kinds to diff (subset of DIFFABLE_KINDS)

    Returns:
        DataDiff; kinds outside ``kinds`` are reported empty (blocks,
        timelines, media assets) or omitted (chapters, projects)

    Raises:
        InvalidOperationError: If an unknown kind is requested
    """
    requested = list(dict.fromkeys(kinds))
    unknown = [kind for kind in requested if kind not in DIFFABLE_KINDS]
    if unknown:
        raise InvalidOperationError(
            f"Cannot diff unknown entity kinds: {unknown}. "
            f"Expected a subset of {list(DIFFABLE_KINDS)}"
        )

    diff = DataDiff()
    for kind in requested:
        setattr(diff, kind, diff_entities(getattr(before, kind), getattr(after, kind)))

    logger.info("snapshot_diff kinds=%s summary=%s", requested, diff.summary)
    return diff


def diff_store(store: FixtureStore, before: DataSnapshot, **kwargs: Any) -> DataDiff:
    """Diff ``before`` against the store's current state."""
    return diff_snapshots(before, take_snapshot(store), **kwargs)
