"""
Block Operator - block CRUD and frame-interval editing.

A block covers the half-open on-timeline interval
``[timeline_offset_in_frames, timeline_offset_in_frames + length)`` where
``length = file_relative_end_frame - file_relative_start_frame``.

Error policy:
- Reads return None / empty lists for unknown ids.
- ``update_block`` and ``move_block`` are update-if-exists and return None
  for unknown blocks.
- ``split_block`` and ``trim_block`` raise EntityNotFoundError for unknown
  blocks and InvalidOperationError when the result would be an inverted or
  empty interval.
- Nothing here checks for overlaps; use ``find_overlapping`` first.
"""

import logging
from copy import deepcopy
from typing import Any

from pydantic import ValidationError

from models.fixture_models import Block, SettingValue, SplitResult, utc_now
from operators.fixture_store import FixtureStore, apply_changes
from operators.ordering_operator import reorder, shift_after
from operators.repository import children_of
from operators.store_errors import InvalidOperationError

logger = logging.getLogger(__name__)


def _check_file_range(start: int, end: int | None) -> None:
    if end is not None and end < start:
        raise InvalidOperationError(
            f"End frame {end} is before start frame {start}"
        )


# =============================================================================
# CREATE / READ
# =============================================================================


def create_block(
    store: FixtureStore,
    timeline_id: str,
    block_type: str,
    timeline_offset_in_frames: int,
    file_relative_start_frame: int,
    file_relative_end_frame: int | None = None,
    media_asset_id: str | None = None,
    order_index: int = 0,
    settings: dict[str, SettingValue] | None = None,
    block_id: str | None = None,
) -> Block:
    """
    Create a block on a timeline.

    The media asset reference is not checked; fixtures may reference assets
    that were never loaded.

    Raises:
        EntityNotFoundError: If the timeline does not exist
        InvalidOperationError: If the end frame is before the start frame
    """
    store.require_timeline(timeline_id)
    _check_file_range(file_relative_start_frame, file_relative_end_frame)

    try:
        block = Block(
            timeline_id=timeline_id,
            block_type=block_type,
            media_asset_id=media_asset_id,
            timeline_offset_in_frames=timeline_offset_in_frames,
            file_relative_start_frame=file_relative_start_frame,
            file_relative_end_frame=file_relative_end_frame,
            order_index=order_index,
        )
    except ValidationError as exc:
        raise InvalidOperationError(str(exc)) from exc
    if block_id is not None:
        block.id = block_id

    store.blocks.insert(block)
    store.block_settings.seed(block.id, settings)
    logger.debug(
        "block_created id=%s timeline=%s offset=%d range=%d-%s",
        block.id, timeline_id, timeline_offset_in_frames,
        file_relative_start_frame, file_relative_end_frame,
    )
    return block


def get_block(store: FixtureStore, block_id: str) -> Block | None:
    return store.blocks.get(block_id)


def block_exists(store: FixtureStore, block_id: str) -> bool:
    return block_id in store.blocks


def list_blocks(store: FixtureStore, timeline_id: str) -> list[Block]:
    """Blocks of a timeline sorted by on-timeline offset."""
    return sorted(
        children_of(store.blocks, "timeline_id", timeline_id),
        key=lambda block: block.timeline_offset_in_frames,
    )


def count_blocks(store: FixtureStore, timeline_id: str) -> int:
    return len(children_of(store.blocks, "timeline_id", timeline_id))


def list_blocks_by_chapter(store: FixtureStore, chapter_id: str) -> list[Block]:
    timeline_ids = {t.id for t in children_of(store.timelines, "chapter_id", chapter_id)}
    return store.blocks.filter(lambda block: block.timeline_id in timeline_ids)


def list_blocks_by_media_asset(store: FixtureStore, media_asset_id: str) -> list[Block]:
    return children_of(store.blocks, "media_asset_id", media_asset_id)


def find_blocks(
    store: FixtureStore,
    project_id: str | None = None,
    chapter_ids: list[str] | None = None,
    block_types: list[str] | None = None,
    timeline_types: list[str] | None = None,
) -> list[Block]:
    """Filter blocks across the hierarchy; empty or None filters match all."""
    result = store.blocks.get_all()

    if block_types:
        result = [b for b in result if b.block_type in block_types]

    if chapter_ids:
        chapter_timeline_ids = {
            t.id for t in store.timelines if t.chapter_id in chapter_ids
        }
        result = [b for b in result if b.timeline_id in chapter_timeline_ids]

    if timeline_types:
        typed_timeline_ids = {t.id for t in store.timelines if t.type in timeline_types}
        result = [b for b in result if b.timeline_id in typed_timeline_ids]

    if project_id:
        project_chapter_ids = {
            c.id for c in children_of(store.chapters, "project_id", project_id)
        }
        project_timeline_ids = {
            t.id for t in store.timelines if t.chapter_id in project_chapter_ids
        }
        result = [b for b in result if b.timeline_id in project_timeline_ids]

    return result


# =============================================================================
# UPDATE / DELETE
# =============================================================================


def update_block(store: FixtureStore, block_id: str, **changes: Any) -> Block | None:
    """
    Apply field changes to a block if it exists.

    Raises:
        InvalidOperationError: If the change would invert the file range
    """
    def _mutate(block: Block) -> None:
        start = changes.get("file_relative_start_frame", block.file_relative_start_frame)
        end = changes.get("file_relative_end_frame", block.file_relative_end_frame)
        _check_file_range(start, end)
        apply_changes(block, changes, protected={"modified_date"})
        block.modified_date = utc_now()

    return store.blocks.update(block_id, _mutate)


def update_blocks(
    store: FixtureStore, updates: list[tuple[str, dict[str, Any]]]
) -> list[Block]:
    """Batch update; unknown ids are skipped."""
    updated = []
    for block_id, changes in updates:
        block = update_block(store, block_id, **changes)
        if block is not None:
            updated.append(block)
    return updated


def delete_block(store: FixtureStore, block_id: str) -> bool:
    store.block_settings.drop(block_id)
    return store.blocks.delete(block_id)


# =============================================================================
# INTERVAL EDITING
# =============================================================================


def move_block(
    store: FixtureStore,
    block_id: str,
    offset_in_frames: int,
    timeline_id: str | None = None,
) -> Block | None:
    """
    Set a block's on-timeline offset, optionally re-parenting it.

    Returns None when the block does not exist.

    Raises:
        EntityNotFoundError: If the target timeline does not exist
    """
    block = store.blocks.get(block_id)
    if block is None:
        return None
    if timeline_id is not None:
        store.require_timeline(timeline_id)
        block.timeline_id = timeline_id

    block.timeline_offset_in_frames = offset_in_frames
    block.modified_date = utc_now()
    logger.debug(
        "block_moved id=%s timeline=%s offset=%d", block_id, block.timeline_id, offset_in_frames
    )
    return block


def split_block(store: FixtureStore, block_id: str, split_frame: int) -> SplitResult:
    """
    Split a block at ``split_frame`` frames from its own start.

    The original keeps ``[start, start + split_frame)``; a new block on the
    same timeline takes ``[start + split_frame, old_end)`` at offset
    ``offset + split_frame`` with a copy of the original's settings and
    enrichment. The two halves are contiguous and their lengths add up to
    the original length.

    Raises:
        EntityNotFoundError: If the block does not exist
        InvalidOperationError: If split_frame is not strictly inside the block,
            or the block has no end frame
    """
    block = store.require_block(block_id)

    if split_frame <= 0:
        raise InvalidOperationError(f"Split frame must be positive, got {split_frame}")
    if block.file_relative_end_frame is None or split_frame >= block.length_in_frames:
        raise InvalidOperationError(
            f"Split frame {split_frame} is outside block '{block_id}' "
            f"(length {block.length_in_frames})"
        )

    original_end = block.file_relative_end_frame
    split_point = block.file_relative_start_frame + split_frame

    new_block = Block(
        timeline_id=block.timeline_id,
        block_type=block.block_type,
        media_asset_id=block.media_asset_id,
        timeline_offset_in_frames=block.timeline_offset_in_frames + split_frame,
        file_relative_start_frame=split_point,
        file_relative_end_frame=original_end,
        order_index=block.order_index + 1,
        focus_points=deepcopy(block.focus_points),
        transcription_segments=deepcopy(block.transcription_segments),
        faces=deepcopy(block.faces),
    )

    block.file_relative_end_frame = split_point
    block.modified_date = utc_now()

    store.blocks.insert(new_block)
    store.block_settings.seed(new_block.id, store.block_settings.get_all(block.id))

    logger.debug(
        "block_split id=%s new_block=%s split_frame=%d", block_id, new_block.id, split_frame
    )
    return SplitResult(original=block, new_block=new_block)


def trim_block(
    store: FixtureStore,
    block_id: str,
    start_frame: int,
    end_frame: int | None = None,
) -> Block:
    """
    Rewrite a block's file-relative range, keeping its timeline offset.

    ``end_frame=None`` keeps the current end.

    Raises:
        EntityNotFoundError: If the block does not exist
        InvalidOperationError: If the resulting end is before the start
    """
    block = store.require_block(block_id)
    new_end = block.file_relative_end_frame if end_frame is None else end_frame
    _check_file_range(start_frame, new_end)

    block.file_relative_start_frame = start_frame
    block.file_relative_end_frame = new_end
    block.modified_date = utc_now()
    logger.debug("block_trimmed id=%s range=%d-%s", block_id, start_frame, new_end)
    return block


def find_overlapping(
    store: FixtureStore, timeline_id: str, start_frame: int, end_frame: int
) -> list[Block]:
    """Blocks on the timeline whose on-timeline interval intersects ``[start, end)``."""
    return [
        block for block in list_blocks(store, timeline_id)
        if block.overlaps(start_frame, end_frame)
    ]


def calculate_timeline_duration(store: FixtureStore, timeline_id: str) -> int:
    """Max ``offset + length`` over the timeline's blocks, 0 when empty."""
    blocks = children_of(store.blocks, "timeline_id", timeline_id)
    if not blocks:
        return 0
    return max(block.timeline_end_frame for block in blocks)


# =============================================================================
# ORDERING
# =============================================================================


def reorder_blocks(store: FixtureStore, timeline_id: str, block_ids: list[str]) -> int:
    return reorder(store.blocks, "timeline_id", timeline_id, block_ids)


def shift_blocks_after(
    store: FixtureStore, timeline_id: str, after_frame: int, shift: int
) -> int:
    """Move every block starting at or after ``after_frame`` by ``shift`` frames."""
    return shift_after(
        store.blocks, "timeline_id", timeline_id, after_frame, shift,
        field="timeline_offset_in_frames",
    )


# =============================================================================
# SETTINGS
# =============================================================================


def get_block_setting(store: FixtureStore, block_id: str, key: str) -> SettingValue | None:
    return store.block_settings.get(block_id, key)


def get_block_settings(store: FixtureStore, block_id: str) -> dict[str, SettingValue]:
    return store.block_settings.get_all(block_id)


def get_block_settings_by_prefix(
    store: FixtureStore, block_id: str, prefix: str
) -> dict[str, SettingValue]:
    return store.block_settings.get_by_prefix(block_id, prefix)


def set_block_setting(store: FixtureStore, block_id: str, key: str, value: SettingValue) -> None:
    store.block_settings.set(block_id, key, value)


def set_block_settings(
    store: FixtureStore, block_id: str, values: dict[str, SettingValue]
) -> None:
    store.block_settings.set_many(block_id, values)


def delete_block_setting(store: FixtureStore, block_id: str, key: str) -> None:
    store.block_settings.delete(block_id, key)


def delete_block_settings_keys(store: FixtureStore, block_id: str, keys: list[str]) -> None:
    store.block_settings.delete_many(block_id, keys)


def delete_block_settings(store: FixtureStore, block_id: str) -> None:
    store.block_settings.delete_all(block_id)
