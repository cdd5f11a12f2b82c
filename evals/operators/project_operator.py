import logging
from typing import Any

from models.fixture_models import Project, utc_now
from operators.fixture_store import FixtureStore, apply_changes

logger = logging.getLogger(__name__)


def create_project(
    store: FixtureStore,
    name: str,
    settings: dict[str, Any] | None = None,
) -> Project:
    project = Project(name=name)
    store.projects.insert(project)
    store.project_settings.seed(project.id, settings)
    logger.debug("project_created id=%s name=%s", project.id, name)
    return project


def get_project(store: FixtureStore, project_id: str) -> Project | None:
    return store.projects.get(project_id)


def list_projects(store: FixtureStore) -> list[Project]:
    return store.projects.get_all()


def update_project(store: FixtureStore, project_id: str, **changes: Any) -> Project | None:
    def _mutate(project: Project) -> None:
        apply_changes(project, changes, protected={"last_modified"})
        project.last_modified = utc_now()

    return store.projects.update(project_id, _mutate)


def delete_project(store: FixtureStore, project_id: str) -> bool:
    """Delete a project and its settings. Chapters and assets are left in place."""
    store.project_settings.drop(project_id)
    return store.projects.delete(project_id)


# =============================================================================
# SETTINGS
# =============================================================================


def get_project_setting(store: FixtureStore, project_id: str, key: str) -> str | None:
    return store.project_settings.get(project_id, key)


def get_project_settings(store: FixtureStore, project_id: str) -> dict[str, str]:
    return store.project_settings.get_all(project_id)


def set_project_setting(store: FixtureStore, project_id: str, key: str, value: Any) -> None:
    store.project_settings.set(project_id, key, value)


def set_project_settings(store: FixtureStore, project_id: str, values: dict[str, Any]) -> None:
    store.project_settings.set_many(project_id, values)


def delete_project_setting(store: FixtureStore, project_id: str, key: str) -> None:
    store.project_settings.delete(project_id, key)
