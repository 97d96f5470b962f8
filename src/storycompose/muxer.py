"""Video overlay muxer — burn the story overlay into a video.

Three stages:
  1. Frame extraction: seek the source to the reference time and grab
     that frame, learning the video's true pixel size and duration.
  2. Overlay snapshot: render the text layer over a transparent canvas
     aligned with the video as it sat in the preview, normalized to the
     video's native frame size.
  3. Mux: hand source + overlay to the injected VideoEngine, which
     overlays, fits, pads to the canonical resolution and copies audio.

Intermediate files live in a per-call temporary directory that is
removed on success, failure and cancellation alike. There is no retry
here; the caller decides whether to finalize again.
"""

import asyncio
import tempfile
from dataclasses import dataclass
from pathlib import Path

from loguru import logger
from moviepy import VideoFileClip
from PIL import Image

from .artifact import VIDEO_MIME, Artifact
from .compositor import render_overlay
from .config import DEFAULT_CONFIG
from .engine import VideoEngine
from .errors import EngineNotReadyError, VideoUnavailableError
from .normalize import normalize
from .scene import Scene


TRANSPARENT = (0, 0, 0, 0)


@dataclass
class ReferenceFrame:
    """A still captured from the source video."""
    image: Image.Image
    width: int
    height: int
    duration: float

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


def extract_reference_frame(path: str | Path, at: float = 1.0) -> ReferenceFrame:
    """Capture the frame at `at` seconds.

    Raises:
        VideoUnavailableError: Unopenable or undecodable source, zero
            duration, or a clip shorter than `at`.
    """
    try:
        clip = VideoFileClip(str(path), audio=False)
    except Exception as exc:  # moviepy reports decode failures with assorted types
        raise VideoUnavailableError(f"cannot open {path}: {exc}") from exc

    with clip:
        duration = float(clip.duration or 0.0)
        if duration <= 0:
            raise VideoUnavailableError(f"{path} has zero duration")
        if duration < at:
            raise VideoUnavailableError(
                f"{path} is {duration:.2f}s, shorter than the {at:g}s reference frame"
            )
        try:
            frame = clip.get_frame(at)
        except (OSError, ValueError, IndexError) as exc:
            raise VideoUnavailableError(f"cannot seek {path} to {at:g}s: {exc}") from exc
        width, height = clip.size

    return ReferenceFrame(Image.fromarray(frame), width, height, duration)


def snapshot_overlay(
    scene: Scene, frame_size: tuple[int, int], scale: float = 1.0,
) -> Image.Image:
    """Render the overlay for a video frame of frame_size.

    The canvas covers the media element's preview rectangle, so a caption
    that sat on top of the video in the preview lands on the same spot
    of every frame.
    """
    media = scene.media
    pos = scene.media_position
    overlay = render_overlay(
        scene, media.width, media.height, scale=scale, origin=(pos.x, pos.y),
    )
    if overlay.size != tuple(frame_size):
        overlay = normalize(overlay, frame_size[0], frame_size[1], fill=TRANSPARENT)
    return overlay


class VideoOverlayMuxer:
    """Produce a canonical-resolution video artifact from a video scene.

    Args:
        engine: Loaded VideoEngine owned by the host.
        config: Settings dict.
    """

    def __init__(self, engine: VideoEngine, config: dict | None = None):
        self.engine = engine
        self.config = config or DEFAULT_CONFIG

    async def mux(self, scene: Scene) -> Artifact:
        """Run all three stages for the scene's video.

        Raises:
            ValueError: The scene's media is not a video.
            EngineNotReadyError: Engine not loaded.
            VideoUnavailableError: Frame extraction failed.
            EncodeFailedError: The engine failed to encode.
        """
        media = scene.media
        if media is None or media.kind != "video":
            raise ValueError("Muxer requires a scene whose media is a video")
        if not self.engine.ready:
            raise EngineNotReadyError()

        resolution = tuple(self.config["canonical_resolution"])
        at = self.config["reference_time"]

        with tempfile.TemporaryDirectory(prefix="storycompose-mux-") as tmp:
            tmp_dir = Path(tmp)

            frame = await asyncio.to_thread(extract_reference_frame, media.path, at)
            logger.debug(
                f"Reference frame at {at:g}s: {frame.width}x{frame.height}, "
                f"clip {frame.duration:.2f}s"
            )

            overlay = snapshot_overlay(scene, frame.size, self.config["snapshot_scale"])
            overlay_path = tmp_dir / "overlay.png"
            overlay.save(overlay_path)
            duration = frame.duration
            del frame, overlay

            output_path = tmp_dir / "story.mp4"
            await self.engine.overlay(
                media.path, overlay_path, output_path, resolution,
                self.config["encode"], tuple(self.config["pad_color"]),
            )
            data = output_path.read_bytes()

        logger.info(f"Muxed video story: {len(data)} bytes, {duration:.2f}s")
        return Artifact(
            data=data, mime_kind=VIDEO_MIME,
            width=resolution[0], height=resolution[1], duration=duration,
        )
