import logging
from typing import Any

from models.fixture_models import Chapter, utc_now
from operators.fixture_store import FixtureStore, apply_changes
from operators.ordering_operator import next_order_index, reorder, shift_after
from operators.repository import children_by_order, children_of

logger = logging.getLogger(__name__)


def create_chapter(
    store: FixtureStore,
    project_id: str,
    title: str,
    order_index: int | None = None,
) -> Chapter:
    """
    Create a chapter under a project.

    Raises:
        EntityNotFoundError: If the project does not exist
    """
    store.require_project(project_id)
    if order_index is None:
        order_index = next_chapter_order_index(store, project_id)

    chapter = Chapter(project_id=project_id, title=title, order_index=order_index)
    store.chapters.insert(chapter)
    logger.debug(
        "chapter_created id=%s project=%s order_index=%d", chapter.id, project_id, order_index
    )
    return chapter


def get_chapter(store: FixtureStore, chapter_id: str) -> Chapter | None:
    return store.chapters.get(chapter_id)


def list_chapters(store: FixtureStore, project_id: str) -> list[Chapter]:
    return children_by_order(store.chapters, "project_id", project_id)


def count_chapters(store: FixtureStore, project_id: str) -> int:
    return len(children_of(store.chapters, "project_id", project_id))


def update_chapter(store: FixtureStore, chapter_id: str, **changes: Any) -> Chapter | None:
    def _mutate(chapter: Chapter) -> None:
        apply_changes(chapter, changes, protected={"project_id", "modified_date"})
        chapter.modified_date = utc_now()

    return store.chapters.update(chapter_id, _mutate)


def delete_chapter(store: FixtureStore, chapter_id: str) -> bool:
    """Delete a chapter and its settings. Its timelines are not removed."""
    store.chapter_settings.drop(chapter_id)
    return store.chapters.delete(chapter_id)


def delete_chapters_by_project(store: FixtureStore, project_id: str) -> int:
    chapters = children_of(store.chapters, "project_id", project_id)
    for chapter in chapters:
        delete_chapter(store, chapter.id)
    return len(chapters)


# =============================================================================
# ORDERING
# =============================================================================


def reorder_chapters(store: FixtureStore, project_id: str, chapter_ids: list[str]) -> int:
    return reorder(store.chapters, "project_id", project_id, chapter_ids)


def shift_chapters_after(
    store: FixtureStore, project_id: str, from_index: int, shift: int
) -> int:
    return shift_after(store.chapters, "project_id", project_id, from_index, shift)


def next_chapter_order_index(store: FixtureStore, project_id: str) -> int:
    return next_order_index(store.chapters, "project_id", project_id)


# =============================================================================
# SETTINGS
# =============================================================================


def get_chapter_setting(store: FixtureStore, chapter_id: str, key: str) -> str | None:
    return store.chapter_settings.get(chapter_id, key)


def get_chapter_settings(store: FixtureStore, chapter_id: str) -> dict[str, str]:
    return store.chapter_settings.get_all(chapter_id)


def get_chapter_settings_by_prefix(
    store: FixtureStore, chapter_id: str, prefix: str
) -> dict[str, str]:
    return store.chapter_settings.get_by_prefix(chapter_id, prefix)


def set_chapter_setting(store: FixtureStore, chapter_id: str, key: str, value: Any) -> None:
    store.chapter_settings.set(chapter_id, key, value)


def set_chapter_settings(store: FixtureStore, chapter_id: str, values: dict[str, Any]) -> None:
    store.chapter_settings.set_many(chapter_id, values)


def delete_chapter_setting(store: FixtureStore, chapter_id: str, key: str) -> None:
    store.chapter_settings.delete(chapter_id, key)


def delete_chapter_settings(store: FixtureStore, chapter_id: str) -> None:
    store.chapter_settings.delete_all(chapter_id)
