import json
import logging
from pathlib import Path
from typing import Any

from models.expectation_models import FixtureSet
from operators.fixture_store import FixtureStore

logger = logging.getLogger(__name__)

# FixtureSet field -> (subdirectory, store loader name)
FIXTURE_DIRECTORIES: dict[str, tuple[str, str]] = {
    "project": ("projects", "load_project"),
    "chapter": ("chapters", "load_chapters"),
    "timelines": ("timelines", "load_timelines"),
    "blocks": ("blocks", "load_blocks"),
    "media_assets": ("media-assets", "load_media_assets"),
}


def fixture_path(base_path: Path, field: str, name: str) -> Path:
    directory, _ = FIXTURE_DIRECTORIES[field]
    return Path(base_path) / directory / f"{name}.json"


def read_fixture(path: Path) -> Any | None:
    if not path.exists():
        logger.warning("fixture_missing path=%s", path)
        return None
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def load_fixture_set(
    store: FixtureStore,
    fixture_set: FixtureSet,
    base_path: Path,
) -> dict[str, int]:
    """
    Load the fixture files named in ``fixture_set`` into the store.

    Files live at ``<base_path>/<kind-dir>/<name>.json`` and hold a single
    record or a list of records. Missing files are skipped with a warning.
    Enrichment is linked onto blocks once everything is loaded.

    Returns:
        Number of records loaded per FixtureSet field
    """
    loaded: dict[str, int] = {}
    for field, (_, loader_name) in FIXTURE_DIRECTORIES.items():
        name = getattr(fixture_set, field)
        if not name:
            continue
        payload = read_fixture(fixture_path(base_path, field, name))
        if payload is None:
            continue

        result = getattr(store, loader_name)(payload)
        loaded[field] = len(result) if isinstance(result, list) else 1
        logger.info("fixture_loaded kind=%s name=%s records=%d", field, name, loaded[field])

    store.link_block_enrichment()
    return loaded
