"""Shared test fixtures for storycompose tests."""

import asyncio
import shutil
import subprocess

import pytest
import imageio_ffmpeg
from PIL import Image

from storycompose.config import default_config
from storycompose.engine import VideoEngine
from storycompose.errors import EncodeFailedError, EngineNotReadyError

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


def _make_video(out, duration, size="320x240", color="blue"):
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", f"color=c={color}:s={size}:d={duration}:r=10",
            "-f", "lavfi", "-i", "anullsrc=r=44100:cl=mono",
            "-shortest",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "32k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def source_video(tmp_path):
    """Create a 5-second test video (320x240, 10fps) with audio using ffmpeg."""
    return _make_video(tmp_path / "source.mp4", 5)


@pytest.fixture
def short_video(tmp_path):
    """A half-second clip, shorter than the 1s reference frame."""
    return _make_video(tmp_path / "short.mp4", 0.5)


@pytest.fixture
def image_file(tmp_path):
    """A 100x50 opaque red PNG."""
    path = tmp_path / "photo.png"
    Image.new("RGB", (100, 50), (255, 0, 0)).save(path)
    return path


@pytest.fixture
def fast_config():
    """Defaults with a fast encoder preset for tests that really encode."""
    config = default_config()
    config["encode"]["preset"] = "ultrafast"
    return config


class StubEngine(VideoEngine):
    """In-process VideoEngine for exercising the muxer's control flow.

    Copies the source video to the output instead of encoding. Can be
    made not-ready, made to fail, or made to block until cancelled.
    """

    def __init__(self, ready=True, fail=False, block=False):
        self._ready = ready
        self.fail = fail
        self.block = block
        self.calls = []
        self.started = asyncio.Event()
        self.cancelled = False

    @property
    def ready(self):
        return self._ready

    def load(self):
        self._ready = True

    def dispose(self):
        self._ready = False

    async def overlay(self, source, overlay, output, resolution, encode, pad_color=(0, 0, 0)):
        if not self._ready:
            raise EngineNotReadyError()
        self.calls.append({
            "source": source, "overlay": overlay, "output": output,
            "resolution": resolution,
            "overlay_image": Image.open(overlay).copy(),
        })
        self.started.set()
        if self.block:
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.fail:
            raise EncodeFailedError("unsupported codec")
        shutil.copyfile(source, output)
        return output


@pytest.fixture
def stub_engine():
    return StubEngine()
