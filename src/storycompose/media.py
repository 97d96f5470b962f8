"""Media intake — turn a user-selected file into a MediaAsset.

Only images and videos are accepted. Images are decoded up front so
their natural size is known for centering; videos are probed with
moviepy for size, duration and a poster frame the preview draws in
place of the moving picture.
"""

import io
import mimetypes
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger
from moviepy import VideoFileClip
from PIL import Image

from .config import DEFAULT_CONFIG
from .errors import MediaTooLargeError, UnsupportedMediaError


MEDIA_KINDS = {"image", "video"}


@dataclass(frozen=True, eq=False)
class MediaAsset:
    """An immutable image or video selected for the story.

    ``bitmap`` is what the compositor draws: the decoded image, or the
    video's poster frame. ``path`` is always set for videos since the
    decoder and the engine both read from disk.
    """
    kind: str
    mime: str
    data: bytes = field(repr=False)
    width: int
    height: int
    bitmap: Image.Image = field(repr=False)
    path: Path | None = None
    duration: float | None = None
    owns_path: bool = False

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def close(self) -> None:
        """Remove the temporary copy of a video loaded from bytes."""
        if self.owns_path and self.path is not None and self.path.exists():
            self.path.unlink()
            logger.debug(f"Removed temporary media file {self.path}")


def media_kind(mime: str | None) -> str:
    """Map a MIME type to 'image' or 'video'.

    Raises:
        UnsupportedMediaError: Anything that is not image/* or video/*.
    """
    if mime:
        kind = mime.split("/", 1)[0].lower()
        if kind in MEDIA_KINDS:
            return kind
    raise UnsupportedMediaError(
        f"Only images and videos are allowed, got '{mime or 'unknown type'}'"
    )


def load_media(
    source: str | Path | bytes,
    mime: str | None = None,
    config: dict | None = None,
) -> MediaAsset:
    """Validate and decode a media file into a MediaAsset.

    Args:
        source: File path, or the raw bytes of the file.
        mime: MIME type. Guessed from the file name when omitted; required
            for raw bytes.
        config: Settings dict (for the media byte limits).

    Returns:
        MediaAsset with natural size and preview bitmap populated.

    Raises:
        UnsupportedMediaError: Not an image/video, or undecodable.
        MediaTooLargeError: Over the upload or image byte limit.
        FileNotFoundError: Missing path.
    """
    limits = (config or DEFAULT_CONFIG)["media"]

    path = None
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        path = Path(source)
        data = path.read_bytes()
        mime = mime or mimetypes.guess_type(path.name)[0]

    kind = media_kind(mime)

    if len(data) > limits["max_upload_bytes"]:
        raise MediaTooLargeError(
            f"Media is {len(data)} bytes; limit is {limits['max_upload_bytes']}"
        )

    if kind == "image":
        if len(data) > limits["max_image_bytes"]:
            mb = limits["max_image_bytes"] / (1024 * 1024)
            raise MediaTooLargeError(f"Image size must be less than {mb:g}MB.")
        bitmap = _decode_image(data)
        return MediaAsset(
            kind="image", mime=mime, data=data,
            width=bitmap.width, height=bitmap.height,
            bitmap=bitmap, path=path,
        )

    owns_path = path is None
    if owns_path:
        path = _spill_to_disk(data, mime)
    try:
        width, height, duration, poster = probe_video(path)
    except UnsupportedMediaError:
        if owns_path:
            path.unlink()
        raise
    return MediaAsset(
        kind="video", mime=mime, data=data,
        width=width, height=height, bitmap=poster,
        path=path, duration=duration, owns_path=owns_path,
    )


def probe_video(path: str | Path) -> tuple[int, int, float, Image.Image]:
    """Read (width, height, duration, poster) from a video file.

    The poster is the first frame, as an RGBA image.
    """
    try:
        with VideoFileClip(str(path), audio=False) as clip:
            width, height = clip.size
            duration = float(clip.duration or 0.0)
            poster = Image.fromarray(clip.get_frame(0)).convert("RGBA")
    except Exception as exc:  # moviepy reports decode failures with assorted types
        raise UnsupportedMediaError(f"Could not decode video {path}: {exc}") from exc
    logger.debug(f"Probed video {path}: {width}x{height}, {duration:.2f}s")
    return width, height, duration, poster


def _decode_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (OSError, Image.DecompressionBombError) as exc:
        raise UnsupportedMediaError(f"Please upload a valid image file. ({exc})") from exc
    return img.convert("RGBA")


def _spill_to_disk(data: bytes, mime: str) -> Path:
    suffix = mimetypes.guess_extension(mime) or ".mp4"
    fd, name = tempfile.mkstemp(prefix="storycompose-", suffix=suffix)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    return Path(name)
