"""The finished story: one binary blob plus what it is."""

from dataclasses import dataclass, field


IMAGE_MIME = "image/png"
VIDEO_MIME = "video/mp4"


@dataclass(frozen=True)
class Artifact:
    """A rendered story ready for the publish collaborator."""
    data: bytes = field(repr=False)
    mime_kind: str
    width: int
    height: int
    duration: float | None = None

    @property
    def is_video(self) -> bool:
        return self.mime_kind == VIDEO_MIME

    @property
    def extension(self) -> str:
        return ".mp4" if self.is_video else ".png"
