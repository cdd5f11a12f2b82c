import pytest

from operators.block_operator import (
    calculate_timeline_duration,
    count_blocks,
    create_block,
    delete_block,
    find_blocks,
    find_overlapping,
    get_block,
    get_block_settings,
    list_blocks,
    list_blocks_by_chapter,
    list_blocks_by_media_asset,
    move_block,
    reorder_blocks,
    set_block_setting,
    shift_blocks_after,
    split_block,
    trim_block,
    update_block,
    update_blocks,
)
from operators.chapter_operator import create_chapter
from operators.fixture_store import FixtureStore
from operators.project_operator import create_project
from operators.store_errors import EntityNotFoundError, InvalidOperationError
from operators.timeline_operator import calculate_duration, create_timeline


@pytest.fixture
def store():
    store = FixtureStore()
    project = create_project(store, "Demo")
    chapter = create_chapter(store, project.id, "Intro")
    create_timeline(store, chapter.id, "video", timeline_id="t-video")
    create_timeline(store, chapter.id, "audio", timeline_id="t-audio")
    return store


@pytest.fixture
def clip(store):
    return create_block(
        store,
        timeline_id="t-video",
        block_type="video",
        timeline_offset_in_frames=100,
        file_relative_start_frame=20,
        file_relative_end_frame=120,
        media_asset_id="m1",
        block_id="b1",
    )


# =============================================================================
# CREATE / READ
# =============================================================================


class TestCreateBlock:
    def test_create(self, store, clip):
        assert get_block(store, "b1") is clip
        assert clip.length_in_frames == 100
        assert count_blocks(store, "t-video") == 1

    def test_requires_timeline(self, store):
        with pytest.raises(EntityNotFoundError):
            create_block(store, "missing", "video", 0, 0, 10)

    def test_rejects_inverted_range(self, store):
        with pytest.raises(InvalidOperationError):
            create_block(store, "t-video", "video", 0, 50, 10)

    def test_unknown_media_asset_is_allowed(self, store, clip):
        assert clip.media_asset_id == "m1"
        assert store.media_assets.get("m1") is None

    def test_settings_seeded(self, store):
        block = create_block(store, "t-video", "video", 0, 0, 10, settings={"volume": 0.8})

        assert get_block_settings(store, block.id) == {"volume": 0.8}
        assert block.settings == {"volume": 0.8}

    def test_list_blocks_sorted_by_offset(self, store):
        late = create_block(store, "t-video", "video", 300, 0, 10)
        early = create_block(store, "t-video", "video", 0, 0, 10)

        assert [b.id for b in list_blocks(store, "t-video")] == [early.id, late.id]

    def test_list_by_chapter_and_asset(self, store, clip):
        chapter_id = store.timelines.get("t-video").chapter_id
        create_block(store, "t-audio", "audio", 0, 0, 10, media_asset_id="m2")

        assert len(list_blocks_by_chapter(store, chapter_id)) == 2
        assert list_blocks_by_media_asset(store, "m1") == [clip]

    def test_find_blocks_filters(self, store, clip):
        audio = create_block(store, "t-audio", "audio", 0, 0, 10)
        project_id = next(iter(store.projects)).id

        assert find_blocks(store, block_types=["audio"]) == [audio]
        assert find_blocks(store, timeline_types=["video"]) == [clip]
        assert len(find_blocks(store, project_id=project_id)) == 2
        assert find_blocks(store, project_id="other") == []


# =============================================================================
# UPDATE / DELETE
# =============================================================================


class TestUpdateBlock:
    def test_update_fields(self, store, clip):
        updated = update_block(store, "b1", block_type="broll", order_index=3)

        assert updated is clip
        assert clip.block_type == "broll"
        assert clip.order_index == 3

    def test_update_missing_returns_none(self, store):
        assert update_block(store, "missing", order_index=1) is None

    def test_update_rejects_protected_fields(self, store, clip):
        with pytest.raises(InvalidOperationError):
            update_block(store, "b1", id="other")
        with pytest.raises(InvalidOperationError):
            update_block(store, "b1", settings={})
        with pytest.raises(InvalidOperationError):
            update_block(store, "b1", not_a_field=1)

    def test_update_rejects_inverted_range(self, store, clip):
        with pytest.raises(InvalidOperationError):
            update_block(store, "b1", file_relative_end_frame=10)

        assert clip.file_relative_end_frame == 120

    def test_update_blocks_skips_unknown(self, store, clip):
        updated = update_blocks(store, [("b1", {"order_index": 2}), ("missing", {})])

        assert updated == [clip]

    def test_delete_drops_settings(self, store, clip):
        set_block_setting(store, "b1", "volume", 1)

        assert delete_block(store, "b1") is True
        assert not store.block_settings.has_overlay("b1")
        assert delete_block(store, "b1") is False


# =============================================================================
# INTERVAL EDITING
# =============================================================================


class TestMoveBlock:
    def test_move_offset(self, store, clip):
        moved = move_block(store, "b1", 400)

        assert moved.timeline_offset_in_frames == 400
        assert moved.timeline_id == "t-video"
        assert moved.length_in_frames == 100

    def test_move_to_other_timeline(self, store, clip):
        move_block(store, "b1", 0, timeline_id="t-audio")

        assert clip.timeline_id == "t-audio"
        assert count_blocks(store, "t-video") == 0

    def test_move_missing_block(self, store):
        assert move_block(store, "missing", 10) is None

    def test_move_to_missing_timeline(self, store, clip):
        with pytest.raises(EntityNotFoundError):
            move_block(store, "b1", 0, timeline_id="missing")

        assert clip.timeline_id == "t-video"


class TestSplitBlock:
    def test_split_conserves_length(self, store, clip):
        result = split_block(store, "b1", 30)

        original, new_block = result.original, result.new_block
        assert original.file_relative_end_frame == 50
        assert new_block.file_relative_start_frame == 50
        assert new_block.file_relative_end_frame == 120
        assert new_block.timeline_offset_in_frames == 130
        assert original.timeline_end_frame == new_block.timeline_offset_in_frames
        assert original.length_in_frames + new_block.length_in_frames == 100

    def test_split_copies_attributes(self, store, clip):
        clip.focus_points = [{"x": 0.5, "y": 0.5}]
        set_block_setting(store, "b1", "volume", 0.7)

        new_block = split_block(store, "b1", 10).new_block

        assert new_block.id != "b1"
        assert new_block.timeline_id == "t-video"
        assert new_block.media_asset_id == "m1"
        assert new_block.order_index == clip.order_index + 1
        assert new_block.focus_points == clip.focus_points
        assert new_block.focus_points is not clip.focus_points
        assert get_block_settings(store, new_block.id) == {"volume": 0.7}
        assert count_blocks(store, "t-video") == 2

    @pytest.mark.parametrize("split_frame", [0, -5, 100, 150])
    def test_split_outside_block(self, store, clip, split_frame):
        with pytest.raises(InvalidOperationError):
            split_block(store, "b1", split_frame)

        assert clip.file_relative_end_frame == 120
        assert count_blocks(store, "t-video") == 1

    def test_split_open_ended_block_rejected(self, store):
        create_block(store, "t-video", "text", 0, 0, block_id="title")

        with pytest.raises(InvalidOperationError):
            split_block(store, "title", 40)

        title = get_block(store, "title")
        assert title.file_relative_end_frame is None
        assert title.length_in_frames == 0
        assert count_blocks(store, "t-video") == 1

    def test_split_missing_block(self, store):
        with pytest.raises(EntityNotFoundError):
            split_block(store, "missing", 10)


class TestTrimBlock:
    def test_trim_keeps_offset(self, store, clip):
        trim_block(store, "b1", 40, 90)

        assert clip.file_relative_start_frame == 40
        assert clip.file_relative_end_frame == 90
        assert clip.timeline_offset_in_frames == 100
        assert clip.length_in_frames == 50

    def test_trim_start_only(self, store, clip):
        trim_block(store, "b1", 60)

        assert clip.file_relative_end_frame == 120
        assert clip.length_in_frames == 60

    def test_trim_rejects_inverted_range(self, store, clip):
        with pytest.raises(InvalidOperationError):
            trim_block(store, "b1", 80, 40)

    def test_trim_missing_block(self, store):
        with pytest.raises(EntityNotFoundError):
            trim_block(store, "missing", 0, 10)


class TestOverlapAndDuration:
    @pytest.fixture
    def laid_out(self, store):
        create_block(store, "t-video", "video", 0, 0, 100, block_id="first")
        create_block(store, "t-video", "video", 100, 0, 100, block_id="second")
        return store

    def test_find_overlapping(self, laid_out):
        ids = [b.id for b in find_overlapping(laid_out, "t-video", 50, 150)]

        assert ids == ["first", "second"]

    def test_touching_interval_does_not_overlap(self, laid_out):
        assert find_overlapping(laid_out, "t-video", 200, 250) == []

    def test_duration(self, laid_out):
        assert calculate_timeline_duration(laid_out, "t-video") == 200
        assert calculate_duration(laid_out, "t-video") == 200

    def test_empty_timeline_duration(self, store):
        assert calculate_timeline_duration(store, "t-audio") == 0


class TestBlockOrdering:
    def test_reorder_blocks(self, store):
        a = create_block(store, "t-video", "video", 0, 0, 10, order_index=0)
        b = create_block(store, "t-video", "video", 10, 0, 10, order_index=1)

        assert reorder_blocks(store, "t-video", [b.id, a.id]) == 2
        assert (a.order_index, b.order_index) == (1, 0)

    def test_shift_blocks_after(self, store):
        a = create_block(store, "t-video", "video", 0, 0, 10)
        b = create_block(store, "t-video", "video", 50, 0, 10)
        c = create_block(store, "t-video", "video", 100, 0, 10)

        assert shift_blocks_after(store, "t-video", 50, 25) == 2
        assert [a.timeline_offset_in_frames, b.timeline_offset_in_frames,
                c.timeline_offset_in_frames] == [0, 75, 125]
