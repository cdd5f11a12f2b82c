"""
Timeline Operator - CRUD, ordering and settings for timelines.

Timelines belong to a chapter and hold blocks. Deleting a timeline removes
its settings overlay but leaves its blocks in the store; callers that want
a clean removal delete the blocks first.
"""

import logging
from typing import Any

from models.fixture_models import SettingValue, Timeline, utc_now
from operators.block_operator import calculate_timeline_duration
from operators.fixture_store import FixtureStore, apply_changes
from operators.ordering_operator import next_order_index, reorder, shift_after
from operators.repository import children_by_order, children_of

logger = logging.getLogger(__name__)


def create_timeline(
    store: FixtureStore,
    chapter_id: str,
    type: str,
    label: str = "",
    order_index: int | None = None,
    timeline_id: str | None = None,
) -> Timeline:
    """
    Create a timeline in a chapter.

    Args:
        store: Fixture store
        chapter_id: Owning chapter
        type: Timeline type (e.g. "video", "audio", "text")
        label: Display label
        order_index: Position among the chapter's timelines (None = append)
        timeline_id: Caller-chosen id (None = generate)

    Raises:
        EntityNotFoundError: If the chapter does not exist
    """
    store.require_chapter(chapter_id)
    if order_index is None:
        order_index = next_timeline_order_index(store, chapter_id)

    timeline = Timeline(
        chapter_id=chapter_id, type=type, label=label, order_index=order_index
    )
    if timeline_id is not None:
        timeline.id = timeline_id
    store.timelines.insert(timeline)
    store.timeline_settings.seed(timeline.id, None)
    logger.debug(
        "timeline_created id=%s chapter=%s type=%s", timeline.id, chapter_id, type
    )
    return timeline


def get_timeline(store: FixtureStore, timeline_id: str) -> Timeline | None:
    return store.timelines.get(timeline_id)


def list_timelines(store: FixtureStore, chapter_id: str) -> list[Timeline]:
    return children_by_order(store.timelines, "chapter_id", chapter_id)


def get_timeline_by_type(
    store: FixtureStore, chapter_id: str, type: str
) -> Timeline | None:
    for timeline in children_of(store.timelines, "chapter_id", chapter_id):
        if timeline.type == type:
            return timeline
    return None


def timeline_exists(store: FixtureStore, timeline_id: str) -> bool:
    return timeline_id in store.timelines


def count_timelines(store: FixtureStore, chapter_id: str) -> int:
    return len(children_of(store.timelines, "chapter_id", chapter_id))


def update_timeline(store: FixtureStore, timeline_id: str, **changes: Any) -> Timeline | None:
    def _mutate(timeline: Timeline) -> None:
        apply_changes(timeline, changes, protected={"chapter_id", "modified_date"})
        timeline.modified_date = utc_now()

    return store.timelines.update(timeline_id, _mutate)


def calculate_duration(store: FixtureStore, timeline_id: str) -> int:
    """Exclusive end frame of the last block on the timeline (0 when empty)."""
    return calculate_timeline_duration(store, timeline_id)


def delete_timeline(store: FixtureStore, timeline_id: str) -> bool:
    store.timeline_settings.drop(timeline_id)
    return store.timelines.delete(timeline_id)


# =============================================================================
# ORDERING
# =============================================================================


def reorder_timelines(store: FixtureStore, chapter_id: str, timeline_ids: list[str]) -> int:
    return reorder(store.timelines, "chapter_id", chapter_id, timeline_ids)


def shift_timeline_order(
    store: FixtureStore, chapter_id: str, from_index: int, shift: int
) -> int:
    return shift_after(store.timelines, "chapter_id", chapter_id, from_index, shift)


def next_timeline_order_index(store: FixtureStore, chapter_id: str) -> int:
    return next_order_index(store.timelines, "chapter_id", chapter_id)


# =============================================================================
# SETTINGS
# =============================================================================


def get_timeline_setting(
    store: FixtureStore, timeline_id: str, key: str
) -> SettingValue | None:
    return store.timeline_settings.get(timeline_id, key)


def get_timeline_settings(store: FixtureStore, timeline_id: str) -> dict[str, SettingValue]:
    return store.timeline_settings.get_all(timeline_id)


def get_timeline_settings_by_prefix(
    store: FixtureStore, timeline_id: str, prefix: str
) -> dict[str, SettingValue]:
    return store.timeline_settings.get_by_prefix(timeline_id, prefix)


def set_timeline_setting(
    store: FixtureStore, timeline_id: str, key: str, value: SettingValue
) -> None:
    store.timeline_settings.set(timeline_id, key, value)


def set_timeline_settings(
    store: FixtureStore, timeline_id: str, values: dict[str, SettingValue]
) -> None:
    store.timeline_settings.set_many(timeline_id, values)


def delete_timeline_setting(store: FixtureStore, timeline_id: str, key: str) -> None:
    store.timeline_settings.delete(timeline_id, key)


def delete_timeline_settings(store: FixtureStore, timeline_id: str) -> None:
    store.timeline_settings.delete_all(timeline_id)
