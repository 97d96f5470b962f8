"""Tests for reference-frame extraction and the overlay muxer."""

import numpy as np
import pytest

from conftest import StubEngine
from storycompose.errors import EncodeFailedError, EngineNotReadyError, VideoUnavailableError
from storycompose.media import load_media
from storycompose.muxer import VideoOverlayMuxer, extract_reference_frame, snapshot_overlay
from storycompose.scene import Element, Scene


def _video_scene(path, text="Caption"):
    scene = Scene()
    scene.set_media(load_media(path))
    scene.set_position(Element.MEDIA, 20, 200)
    if text:
        scene.set_text(text)
        scene.set_position(Element.TEXT, 30, 210)
    return scene


class TestReferenceFrame:
    def test_frame_at_one_second(self, source_video):
        frame = extract_reference_frame(source_video, 1.0)
        assert frame.size == (320, 240)
        assert frame.image.size == (320, 240)
        assert frame.duration == pytest.approx(5.0, abs=0.3)

    def test_short_video_unavailable(self, short_video):
        with pytest.raises(VideoUnavailableError, match="shorter"):
            extract_reference_frame(short_video, 1.0)

    def test_unopenable_video_unavailable(self, tmp_path):
        bad = tmp_path / "bad.mp4"
        bad.write_bytes(b"nope")
        with pytest.raises(VideoUnavailableError) as exc_info:
            extract_reference_frame(bad)
        assert exc_info.value.suggestion == "discard video, publish without it"


class TestSnapshotOverlay:
    def test_overlay_matches_frame_size(self, source_video):
        scene = _video_scene(source_video)
        overlay = snapshot_overlay(scene, (320, 240))
        assert overlay.size == (320, 240)
        assert overlay.mode == "RGBA"

    def test_supersampled_overlay_normalized_to_frame(self, source_video):
        scene = _video_scene(source_video)
        assert snapshot_overlay(scene, (320, 240), scale=2).size == (320, 240)

    def test_text_lands_relative_to_video(self, source_video):
        scene = _video_scene(source_video)
        alpha = np.array(snapshot_overlay(scene, (320, 240)))[:, :, 3]
        ys, xs = np.nonzero(alpha)
        # Text sat 10px right and 10px below the video's top-left corner.
        assert xs.min() == pytest.approx(10, abs=2)
        assert ys.min() == pytest.approx(10, abs=2)

    def test_no_text_is_fully_transparent(self, source_video):
        scene = _video_scene(source_video, text=None)
        alpha = np.array(snapshot_overlay(scene, (320, 240)))[:, :, 3]
        assert alpha.max() == 0


class TestMux:
    @pytest.mark.asyncio
    async def test_artifact_from_stub_engine(self, source_video):
        engine = StubEngine()
        artifact = await VideoOverlayMuxer(engine).mux(_video_scene(source_video))
        assert artifact.mime_kind == "video/mp4"
        assert (artifact.width, artifact.height) == (1080, 1920)
        assert artifact.duration == pytest.approx(5.0, abs=0.3)
        assert artifact.data == source_video.read_bytes()

        call = engine.calls[0]
        assert call["resolution"] == (1080, 1920)
        assert call["overlay_image"].size == (320, 240)
        assert not call["output"].parent.exists()

    @pytest.mark.asyncio
    async def test_not_ready_engine(self, source_video):
        with pytest.raises(EngineNotReadyError):
            await VideoOverlayMuxer(StubEngine(ready=False)).mux(_video_scene(source_video))

    @pytest.mark.asyncio
    async def test_short_video_never_reaches_engine(self, short_video):
        engine = StubEngine()
        with pytest.raises(VideoUnavailableError):
            await VideoOverlayMuxer(engine).mux(_video_scene(short_video))
        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_encode_failure_cleans_up(self, source_video):
        engine = StubEngine(fail=True)
        with pytest.raises(EncodeFailedError):
            await VideoOverlayMuxer(engine).mux(_video_scene(source_video))
        assert not engine.calls[0]["overlay"].parent.exists()

    @pytest.mark.asyncio
    async def test_image_scene_rejected(self, image_file):
        scene = Scene()
        scene.set_media(load_media(image_file))
        with pytest.raises(ValueError, match="video"):
            await VideoOverlayMuxer(StubEngine()).mux(scene)
