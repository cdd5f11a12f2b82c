import pytest

from operators.block_operator import create_block, delete_block
from operators.chapter_operator import (
    count_chapters,
    create_chapter,
    delete_chapter,
    delete_chapters_by_project,
    get_chapter_settings_by_prefix,
    list_chapters,
    next_chapter_order_index,
    reorder_chapters,
    set_chapter_setting,
    set_chapter_settings,
    shift_chapters_after,
    update_chapter,
)
from operators.fixture_store import FixtureStore
from operators.media_asset_operator import (
    create_media_asset,
    delete_media_asset,
    get_blocks_using_asset,
    get_metadata_field,
    get_type_specific_field,
    get_waveform_data,
    list_media_assets,
    list_media_assets_by_type,
    media_asset_exists_by_path,
    set_metadata_field,
    set_waveform_data,
    update_media_asset,
    update_media_asset_order,
    update_type_specific_fields,
)
from operators.project_operator import (
    create_project,
    delete_project,
    get_project,
    get_project_settings,
    list_projects,
    set_project_setting,
    update_project,
)
from operators.store_errors import EntityNotFoundError, InvalidOperationError
from operators.timeline_operator import (
    count_timelines,
    create_timeline,
    delete_timeline,
    get_timeline_by_type,
    get_timeline_setting,
    get_timeline_settings,
    list_timelines,
    reorder_timelines,
    set_timeline_settings,
    shift_timeline_order,
    timeline_exists,
    update_timeline,
)


@pytest.fixture
def store():
    return FixtureStore()


@pytest.fixture
def project(store):
    return create_project(store, "Demo", settings={"fps": "30"})


# =============================================================================
# PROJECTS
# =============================================================================


class TestProjectOperator:
    def test_create_with_settings(self, store, project):
        assert get_project(store, project.id) is project
        assert get_project_settings(store, project.id) == {"fps": "30"}
        assert project.settings == {"fps": "30"}
        assert list_projects(store) == [project]

    def test_settings_are_strings(self, store, project):
        set_project_setting(store, project.id, "width", 1920)

        assert get_project_settings(store, project.id)["width"] == "1920"

    def test_update_refreshes_last_modified(self, store, project):
        before = project.last_modified
        update_project(store, project.id, name="Renamed")

        assert project.name == "Renamed"
        assert project.last_modified >= before

    def test_update_missing(self, store):
        assert update_project(store, "missing", name="x") is None

    def test_delete_leaves_children(self, store, project):
        chapter = create_chapter(store, project.id, "Intro")

        assert delete_project(store, project.id) is True
        assert get_project(store, project.id) is None
        assert not store.project_settings.has_overlay(project.id)
        assert store.chapters.get(chapter.id) is chapter

    def test_settings_on_missing_project(self, store):
        with pytest.raises(EntityNotFoundError):
            set_project_setting(store, "missing", "fps", "24")


# =============================================================================
# CHAPTERS
# =============================================================================


class TestChapterOperator:
    def test_create_appends(self, store, project):
        first = create_chapter(store, project.id, "One")
        second = create_chapter(store, project.id, "Two")

        assert (first.order_index, second.order_index) == (0, 1)
        assert next_chapter_order_index(store, project.id) == 2
        assert count_chapters(store, project.id) == 2

    def test_create_requires_project(self, store):
        with pytest.raises(EntityNotFoundError):
            create_chapter(store, "missing", "One")

    def test_list_sorted_by_order(self, store, project):
        late = create_chapter(store, project.id, "Late", order_index=5)
        early = create_chapter(store, project.id, "Early", order_index=1)

        assert list_chapters(store, project.id) == [early, late]

    def test_reorder_skips_foreign_ids(self, store, project):
        other = create_project(store, "Other")
        a = create_chapter(store, project.id, "A")
        b = create_chapter(store, project.id, "B")
        foreign = create_chapter(store, other.id, "X")

        assert reorder_chapters(store, project.id, [b.id, foreign.id, a.id, "missing"]) == 2
        assert (b.order_index, a.order_index) == (0, 2)
        assert foreign.order_index == 0

    def test_shift_after(self, store, project):
        chapters = [create_chapter(store, project.id, str(i)) for i in range(4)]

        assert shift_chapters_after(store, project.id, 2, 3) == 2
        assert [c.order_index for c in chapters] == [0, 1, 5, 6]

    def test_update_protects_parent(self, store, project):
        chapter = create_chapter(store, project.id, "One")

        with pytest.raises(InvalidOperationError):
            update_chapter(store, chapter.id, project_id="other")

        update_chapter(store, chapter.id, title="Renamed")
        assert chapter.title == "Renamed"

    def test_settings_by_prefix(self, store, project):
        chapter = create_chapter(store, project.id, "One")
        set_chapter_settings(store, chapter.id, {"export.fps": 24, "export.codec": "h264"})
        set_chapter_setting(store, chapter.id, "title", "x")

        assert get_chapter_settings_by_prefix(store, chapter.id, "export.") == {
            "export.fps": "24",
            "export.codec": "h264",
        }

    def test_delete(self, store, project):
        chapter = create_chapter(store, project.id, "One")
        set_chapter_setting(store, chapter.id, "a", "b")

        assert delete_chapter(store, chapter.id) is True
        assert not store.chapter_settings.has_overlay(chapter.id)

    def test_delete_by_project(self, store, project):
        create_chapter(store, project.id, "One")
        create_chapter(store, project.id, "Two")

        assert delete_chapters_by_project(store, project.id) == 2
        assert count_chapters(store, project.id) == 0


# =============================================================================
# TIMELINES
# =============================================================================


class TestTimelineOperator:
    @pytest.fixture
    def chapter(self, store, project):
        return create_chapter(store, project.id, "Intro")

    def test_create_and_lookup(self, store, chapter):
        video = create_timeline(store, chapter.id, "video", label="Main")
        audio = create_timeline(store, chapter.id, "audio")

        assert audio.order_index == 1
        assert list_timelines(store, chapter.id) == [video, audio]
        assert get_timeline_by_type(store, chapter.id, "audio") is audio
        assert get_timeline_by_type(store, chapter.id, "text") is None
        assert timeline_exists(store, video.id)
        assert count_timelines(store, chapter.id) == 2

    def test_create_requires_chapter(self, store):
        with pytest.raises(EntityNotFoundError):
            create_timeline(store, "missing", "video")

    def test_reorder_and_shift(self, store, chapter):
        a = create_timeline(store, chapter.id, "video")
        b = create_timeline(store, chapter.id, "audio")

        reorder_timelines(store, chapter.id, [b.id, a.id])
        assert list_timelines(store, chapter.id) == [b, a]

        assert shift_timeline_order(store, chapter.id, 1, 10) == 1
        assert a.order_index == 11

    def test_settings_accept_json(self, store, chapter):
        timeline = create_timeline(store, chapter.id, "video")
        set_timeline_settings(store, timeline.id, {"muted": True, "tracks": [1, 2]})

        assert get_timeline_setting(store, timeline.id, "muted") is True
        assert timeline.settings["tracks"] == [1, 2]

    def test_update(self, store, chapter):
        timeline = create_timeline(store, chapter.id, "video")

        assert update_timeline(store, timeline.id, label="B-roll").label == "B-roll"
        assert update_timeline(store, "missing", label="x") is None

    def test_recreate_with_same_id_resets_settings(self, store, chapter):
        create_timeline(store, chapter.id, "video", timeline_id="t1")
        set_timeline_settings(store, "t1", {"zoom": 2})

        timeline = create_timeline(store, chapter.id, "video", timeline_id="t1")

        assert get_timeline_settings(store, "t1") == {}
        assert timeline.settings == {}
        assert not store.timeline_settings.has_overlay("t1")

    def test_delete_leaves_blocks(self, store, chapter):
        timeline = create_timeline(store, chapter.id, "video")
        block = create_block(store, timeline.id, "video", 0, 0, 10)

        assert delete_timeline(store, timeline.id) is True
        assert store.blocks.get(block.id) is block


# =============================================================================
# MEDIA ASSETS
# =============================================================================


class TestMediaAssetOperator:
    @pytest.fixture
    def asset(self, store, project):
        return create_media_asset(
            store, project.id, "video", "clip.mp4", "/media/clip.mp4",
            metadata={"duration": 10.0},
        )

    def test_create_requires_project(self, store):
        with pytest.raises(EntityNotFoundError):
            create_media_asset(store, "missing", "video", "a.mp4", "/a.mp4")

    def test_queries(self, store, project, asset):
        image = create_media_asset(store, project.id, "image", "still.png", "/media/still.png")

        assert list_media_assets(store, project.id) == [asset, image]
        assert list_media_assets_by_type(store, project.id, "image") == [image]
        assert media_asset_exists_by_path(store, project.id, "/media/clip.mp4")
        assert not media_asset_exists_by_path(store, project.id, "/media/other.mp4")

    def test_delete_unreferenced(self, store, asset):
        result = delete_media_asset(store, asset.id)

        assert result.success
        assert result.error is None
        assert store.media_assets.get(asset.id) is None

    def test_delete_missing(self, store):
        result = delete_media_asset(store, "missing")

        assert not result.success
        assert result.error == "Media asset not found: missing"

    def test_delete_referenced_is_refused(self, store, project, asset):
        chapter = create_chapter(store, project.id, "Intro")
        timeline = create_timeline(store, chapter.id, "video")
        create_block(store, timeline.id, "video", 0, 0, 10, media_asset_id=asset.id)
        create_block(store, timeline.id, "video", 10, 0, 10, media_asset_id=asset.id)

        result = delete_media_asset(store, asset.id)

        assert not result.success
        assert result.error == "Asset is used by 2 blocks"
        assert store.media_assets.get(asset.id) is asset
        assert len(get_blocks_using_asset(store, asset.id)) == 2

    def test_delete_succeeds_once_references_are_gone(self, store, project, asset):
        chapter = create_chapter(store, project.id, "Intro")
        timeline = create_timeline(store, chapter.id, "video")
        block = create_block(store, timeline.id, "video", 0, 0, 10, media_asset_id=asset.id)

        assert not delete_media_asset(store, asset.id).success

        delete_block(store, block.id)
        result = delete_media_asset(store, asset.id)

        assert result.success
        assert store.media_assets.get(asset.id) is None

    def test_update_protects_project(self, store, asset):
        with pytest.raises(InvalidOperationError):
            update_media_asset(store, asset.id, project_id="other")

        assert update_media_asset(store, asset.id, file_name="new.mp4").file_name == "new.mp4"

    def test_order(self, store, asset):
        assert update_media_asset_order(store, [(asset.id, 4), ("missing", 1)]) == 1
        assert asset.order_index == 4

    def test_metadata_fields(self, store, asset):
        set_metadata_field(store, asset.id, "width", 1920)
        update_type_specific_fields(store, asset.id, {"codec": "h264"})

        assert get_metadata_field(store, asset.id, "width") == 1920
        assert get_metadata_field(store, asset.id, "duration") == 10.0
        assert get_type_specific_field(store, asset.id, "codec") == "h264"
        assert get_metadata_field(store, "missing", "width") is None

    def test_waveform(self, store, asset):
        assert get_waveform_data(store, asset.id) is None

        set_waveform_data(store, asset.id, {"peaks": [0.1, 0.4]})
        waveform = get_waveform_data(store, asset.id)
        waveform["peaks"].append(1.0)

        assert get_waveform_data(store, asset.id) == {"peaks": [0.1, 0.4]}
