import logging
from copy import deepcopy
from typing import Any

from models.fixture_models import Block, DeleteResult, MediaAsset
from operators.fixture_store import FixtureStore, apply_changes
from operators.repository import children_of

logger = logging.getLogger(__name__)


def create_media_asset(
    store: FixtureStore,
    project_id: str,
    media_type: str,
    file_name: str,
    file_path: str,
    mime_type: str | None = None,
    order_index: int = 0,
    metadata: dict[str, Any] | None = None,
    type_specific_data: dict[str, Any] | None = None,
) -> MediaAsset:
    store.require_project(project_id)
    asset = MediaAsset(
        project_id=project_id,
        media_type=media_type,
        file_name=file_name,
        file_path=file_path,
        mime_type=mime_type,
        order_index=order_index,
        metadata=deepcopy(metadata or {}),
        type_specific_data=deepcopy(type_specific_data or {}),
    )
    store.media_assets.insert(asset)
    logger.debug("media_asset_created id=%s project=%s file=%s", asset.id, project_id, file_name)
    return asset


def get_media_asset(store: FixtureStore, asset_id: str) -> MediaAsset | None:
    return store.media_assets.get(asset_id)


def list_media_assets(store: FixtureStore, project_id: str) -> list[MediaAsset]:
    return children_of(store.media_assets, "project_id", project_id)


def list_media_assets_by_type(
    store: FixtureStore, project_id: str, media_type: str
) -> list[MediaAsset]:
    return [a for a in list_media_assets(store, project_id) if a.media_type == media_type]


def media_asset_exists_by_path(store: FixtureStore, project_id: str, file_path: str) -> bool:
    return any(a.file_path == file_path for a in list_media_assets(store, project_id))


def update_media_asset(store: FixtureStore, asset_id: str, **changes: Any) -> MediaAsset | None:
    return store.media_assets.update(
        asset_id, lambda asset: apply_changes(asset, changes, protected={"project_id"})
    )


def get_blocks_using_asset(store: FixtureStore, asset_id: str) -> list[Block]:
    return children_of(store.blocks, "media_asset_id", asset_id)


def delete_media_asset(store: FixtureStore, asset_id: str) -> DeleteResult:
    """
    Delete a media asset unless a block still references it.

    The store is left unchanged when the delete is refused.
    """
    if asset_id not in store.media_assets:
        return DeleteResult(success=False, error=f"Media asset not found: {asset_id}")

    used_by = get_blocks_using_asset(store, asset_id)
    if used_by:
        logger.warning(
            "media_asset_delete_refused id=%s referencing_blocks=%d", asset_id, len(used_by)
        )
        return DeleteResult(
            success=False, error=f"Asset is used by {len(used_by)} blocks"
        )

    store.media_assets.delete(asset_id)
    return DeleteResult(success=True)


def update_media_asset_order(
    store: FixtureStore, assets: list[tuple[str, int]]
) -> int:
    """Assign explicit order indexes; unknown ids are skipped."""
    count = 0
    for asset_id, order_index in assets:
        asset = store.media_assets.get(asset_id)
        if asset is not None:
            asset.order_index = order_index
            count += 1
    return count


# =============================================================================
# METADATA
# =============================================================================


def get_metadata_field(store: FixtureStore, asset_id: str, field_name: str) -> Any | None:
    asset = store.media_assets.get(asset_id)
    if asset is None:
        return None
    return deepcopy(asset.metadata.get(field_name))


def set_metadata_field(store: FixtureStore, asset_id: str, field_name: str, value: Any) -> None:
    asset = store.media_assets.get(asset_id)
    if asset is not None:
        asset.metadata[field_name] = deepcopy(value)


def update_metadata_fields(store: FixtureStore, asset_id: str, updates: dict[str, Any]) -> None:
    asset = store.media_assets.get(asset_id)
    if asset is not None:
        asset.metadata.update(deepcopy(updates))


def get_type_specific_field(store: FixtureStore, asset_id: str, field_name: str) -> Any | None:
    asset = store.media_assets.get(asset_id)
    if asset is None:
        return None
    return deepcopy(asset.type_specific_data.get(field_name))


def set_type_specific_field(
    store: FixtureStore, asset_id: str, field_name: str, value: Any
) -> None:
    asset = store.media_assets.get(asset_id)
    if asset is not None:
        asset.type_specific_data[field_name] = deepcopy(value)


def update_type_specific_fields(
    store: FixtureStore, asset_id: str, updates: dict[str, Any]
) -> None:
    asset = store.media_assets.get(asset_id)
    if asset is not None:
        asset.type_specific_data.update(deepcopy(updates))


def get_waveform_data(store: FixtureStore, asset_id: str) -> dict[str, Any] | None:
    asset = store.media_assets.get(asset_id)
    if asset is None:
        return None
    return deepcopy(asset.waveform_data)


def set_waveform_data(store: FixtureStore, asset_id: str, waveform_data: dict[str, Any]) -> None:
    asset = store.media_assets.get(asset_id)
    if asset is not None:
        asset.waveform_data = deepcopy(waveform_data)
