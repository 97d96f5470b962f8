"""Output finalizer — turn a populated Scene into one Artifact.

Branches on the media kind: no media or an image goes through the
compositor and normalizer to a PNG; a video goes through the overlay
muxer to an MP4. Either way the artifact's pixel size is exactly the
canonical resolution. Nothing here uploads; the artifact is returned.
"""

import io

from loguru import logger

from .artifact import IMAGE_MIME, Artifact
from .compositor import render
from .config import DEFAULT_CONFIG
from .engine import VideoEngine
from .errors import EmptySceneError, EngineNotReadyError
from .muxer import VideoOverlayMuxer
from .normalize import normalize
from .scene import Scene


class OutputFinalizer:
    """Select the still or video path and produce the artifact.

    Args:
        engine: VideoEngine for video scenes. Still scenes never touch it.
        config: Settings dict.
    """

    def __init__(self, engine: VideoEngine | None = None, config: dict | None = None):
        self.engine = engine
        self.config = config or DEFAULT_CONFIG

    async def finalize(self, scene: Scene, preview_size: tuple[int, int]) -> Artifact:
        """Produce the artifact for a populated scene.

        Args:
            scene: Scene to finalize; must not be empty.
            preview_size: (width, height) the scene was composed at.

        Raises:
            EmptySceneError: Neither text nor media present.
            EngineNotReadyError, VideoUnavailableError, EncodeFailedError:
                From the video path.
        """
        if scene.is_empty:
            raise EmptySceneError()

        if scene.media is not None and scene.media.kind == "video":
            if self.engine is None:
                raise EngineNotReadyError("engine not ready: no video engine configured")
            return await VideoOverlayMuxer(self.engine, self.config).mux(scene)

        return self.render_still(scene, preview_size)

    def render_still(self, scene: Scene, preview_size: tuple[int, int]) -> Artifact:
        """Compositor + normalizer onto a fresh canonical canvas, as PNG."""
        if scene.is_empty:
            raise EmptySceneError()
        preview_w, preview_h = preview_size
        if preview_w <= 0 or preview_h <= 0:
            raise ValueError("Preview has not been laid out; call layout() first")

        target_w, target_h = self.config["canonical_resolution"]
        bitmap = render(scene, preview_w, preview_h, scale=self.config["snapshot_scale"])
        target = normalize(bitmap, target_w, target_h, fill=tuple(self.config["pad_color"]))

        buf = io.BytesIO()
        target.save(buf, format="PNG")
        data = buf.getvalue()
        logger.info(f"Rendered still story: {target_w}x{target_h}, {len(data)} bytes")
        return Artifact(data=data, mime_kind=IMAGE_MIME, width=target.width, height=target.height)
