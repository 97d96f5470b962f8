"""Video-processing engines for the overlay muxer.

The muxer never builds an engine itself; the host loads one, hands it
to each session, and disposes it on teardown. Any implementation that
can decode, overlay a still, scale, pad, and mux with the original
audio will do. FFmpegEngine drives the ffmpeg binary bundled with
imageio-ffmpeg as an asyncio subprocess so the event loop stays free
and the job can be cancelled.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path

import imageio_ffmpeg
from loguru import logger

from .errors import EncodeFailedError, EngineNotReadyError


STDERR_TAIL_CHARS = 2000   # how much ffmpeg stderr to keep in errors


class VideoEngine(ABC):
    """Capability: overlay a still image on a video at a fixed resolution."""

    @property
    @abstractmethod
    def ready(self) -> bool:
        """True once load() succeeded and until dispose()."""

    @abstractmethod
    def load(self) -> None:
        """Prepare the engine. Called once per host, before any session."""

    @abstractmethod
    def dispose(self) -> None:
        """Release the engine. It is not ready afterwards."""

    def __enter__(self) -> "VideoEngine":
        self.load()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    @abstractmethod
    async def overlay(
        self,
        source: Path,
        overlay: Path,
        output: Path,
        resolution: tuple[int, int],
        encode: dict,
        pad_color: tuple[int, int, int] = (0, 0, 0),
    ) -> Path:
        """Overlay the PNG at (0, 0) on every frame of source, fit and pad
        the result to resolution, copy the source audio, write output.

        Raises:
            EngineNotReadyError: Called before load() or after dispose().
            EncodeFailedError: The engine could not produce output.
        """


# ── ffmpeg implementation ────────────────────────────────────────


def build_filter_graph(
    resolution: tuple[int, int], pad_color: tuple[int, int, int] = (0, 0, 0),
) -> str:
    """Filter graph: overlay -> scale-to-fit -> pad to exact size.

    Input 0 is the source video, input 1 the overlay still. The overlay
    input is a single frame; overlay's default eof_action=repeat keeps
    it on screen for the whole clip.
    """
    w, h = resolution
    color = "0x{:02x}{:02x}{:02x}".format(*pad_color)
    return (
        "[0:v][1:v]overlay=0:0:format=auto[ov];"
        f"[ov]scale={w}:{h}:force_original_aspect_ratio=decrease,"
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:color={color},"
        "setsar=1,format=yuv420p[out]"
    )


def build_overlay_command(
    ffmpeg: str,
    source: Path,
    overlay: Path,
    output: Path,
    resolution: tuple[int, int],
    encode: dict,
    pad_color: tuple[int, int, int] = (0, 0, 0),
) -> list[str]:
    """Full ffmpeg argument list for one overlay job."""
    return [
        ffmpeg, "-y", "-hide_banner", "-loglevel", "error",
        "-i", str(source),
        "-i", str(overlay),
        "-filter_complex", build_filter_graph(resolution, pad_color),
        "-map", "[out]",
        "-map", "0:a?",
        "-c:v", encode.get("codec", "libx264"),
        "-crf", str(encode.get("crf", 20)),
        "-preset", encode.get("preset", "medium"),
        "-c:a", "copy",
        "-movflags", "+faststart",
        str(output),
    ]


class FFmpegEngine(VideoEngine):
    """VideoEngine backed by the ffmpeg command-line tool.

    Args:
        ffmpeg_exe: Explicit binary path. When None, load() asks
            imageio-ffmpeg for its bundled binary.
    """

    def __init__(self, ffmpeg_exe: str | None = None):
        self._requested_exe = ffmpeg_exe
        self._exe: str | None = None

    @property
    def ready(self) -> bool:
        return self._exe is not None

    def load(self) -> None:
        if self._exe is not None:
            return
        try:
            self._exe = self._requested_exe or imageio_ffmpeg.get_ffmpeg_exe()
        except RuntimeError as exc:
            raise EngineNotReadyError(f"engine not ready: ffmpeg not found ({exc})") from exc
        logger.info(f"FFmpeg engine loaded: {self._exe}")

    def dispose(self) -> None:
        if self._exe is not None:
            logger.debug("FFmpeg engine disposed")
        self._exe = None

    async def overlay(
        self,
        source: Path,
        overlay: Path,
        output: Path,
        resolution: tuple[int, int],
        encode: dict,
        pad_color: tuple[int, int, int] = (0, 0, 0),
    ) -> Path:
        if not self.ready:
            raise EngineNotReadyError()

        cmd = build_overlay_command(
            self._exe, source, overlay, output, resolution, encode, pad_color,
        )
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise EngineNotReadyError(f"engine not ready: cannot start ffmpeg ({exc})") from exc

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            logger.warning("FFmpeg overlay job cancelled")
            raise

        if process.returncode != 0:
            tail = stderr.decode(errors="replace")[-STDERR_TAIL_CHARS:]
            logger.error(f"FFmpeg failed: {tail}")
            raise EncodeFailedError(f"ffmpeg exited with {process.returncode}: {tail}")

        output = Path(output)
        if not output.exists() or output.stat().st_size == 0:
            raise EncodeFailedError("ffmpeg reported success but wrote no output")
        return output
