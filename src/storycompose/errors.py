"""Exception taxonomy for story composition.

Every error raised by the package derives from StoryError. Each carries
a ``retryable`` flag and an optional ``suggestion`` so the host can decide
between retrying the finalize, editing further, or dropping the video.
"""


DISCARD_VIDEO_SUGGESTION = "discard video, publish without it"


class StoryError(Exception):
    """Base class for all storycompose errors."""

    retryable = False

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(message)
        self.suggestion = suggestion


# ── Validation ───────────────────────────────────────────────────


class ValidationError(StoryError, ValueError):
    """A mutator or loader rejected its input. The scene is unchanged."""


class UnsupportedMediaError(ValidationError):
    """Media is not an image or video, or could not be decoded."""


class MediaTooLargeError(ValidationError):
    """Media exceeds the configured byte limit."""


# ── Session state ────────────────────────────────────────────────


class EmptySceneError(StoryError):
    """Finalize was requested on a scene with neither text nor media."""

    def __init__(self, message: str = "empty scene: add text or media first"):
        super().__init__(message)


class SceneFrozenError(StoryError):
    """The scene is frozen (finalize running, or session closed) and accepts no edits."""

    retryable = True


class FinalizeInProgressError(StoryError):
    """A second finalize was started while one is still running."""

    retryable = True


class SessionClosedError(StoryError):
    """The session was discarded or already published."""


# ── Resource / engine ────────────────────────────────────────────


class VideoUnavailableError(StoryError):
    """The source video cannot be opened, seeked or decoded."""

    retryable = True

    def __init__(self, message: str):
        super().__init__(
            f"video unavailable: {message}", suggestion=DISCARD_VIDEO_SUGGESTION,
        )


class EngineError(StoryError):
    """The video-processing engine failed."""

    retryable = True

    def __init__(self, message: str):
        super().__init__(message, suggestion=DISCARD_VIDEO_SUGGESTION)


class EngineNotReadyError(EngineError):
    """The engine has not been loaded, or was disposed."""

    def __init__(self, message: str = "engine not ready"):
        super().__init__(message)


class EncodeFailedError(EngineError):
    """The engine ran but did not produce an output video."""

    def __init__(self, message: str):
        super().__init__(f"encode failed: {message}")
