"""Composition session — one story from first edit to publish or discard.

A session owns its Scene, its PositionController and a handle on the
host's VideoEngine. At most one finalize runs at a time; while it runs
the scene is frozen, and discarding the session cancels it. Once the
session is published or discarded its scene stays frozen for good.

Usage:
    with FFmpegEngine() as engine:
        async with StorySession(engine) as session:
            session.scene.set_text("Hello")
            session.layout(360, 640)
            await session.publish(upload_story)
"""

import asyncio
import inspect
from typing import Awaitable, Callable

from loguru import logger

from .artifact import Artifact
from .config import DEFAULT_CONFIG
from .engine import VideoEngine
from .errors import EmptySceneError, FinalizeInProgressError, SessionClosedError
from .finalize import OutputFinalizer
from .positions import PositionController
from .scene import Element, Scene


Publisher = Callable[[Artifact], Awaitable[None] | None]


class StorySession:
    """Own the editable state of one story.

    Args:
        engine: Loaded VideoEngine shared by the host. May be None when
            only still stories are composed.
        config: Settings dict.
        palette_locked: Restrict colors to the configured palettes.
    """

    def __init__(
        self,
        engine: VideoEngine | None = None,
        config: dict | None = None,
        palette_locked: bool = True,
    ):
        self.config = config or DEFAULT_CONFIG
        self.engine = engine
        self.scene = Scene(self.config, palette_locked=palette_locked)
        self.controller = PositionController(self.scene)
        self.finalizer = OutputFinalizer(engine, self.config)
        self.closed = False
        self._task: asyncio.Task | None = None

    async def __aenter__(self) -> "StorySession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self.closed:
            self.discard()

    # ── State ────────────────────────────────────────────────────

    @property
    def busy(self) -> bool:
        """True while a finalize is in flight; publishing should be disabled."""
        return self._task is not None

    def _check_open(self) -> None:
        if self.closed:
            raise SessionClosedError("session is closed")

    # ── Editing passthroughs ─────────────────────────────────────

    def layout(self, preview_width: int, preview_height: int) -> list[Element]:
        """Layout pass: record the preview size and center new elements."""
        self._check_open()
        return self.controller.layout(preview_width, preview_height)

    def begin_drag(self, element: Element | str) -> None:
        self._check_open()
        self.controller.begin_drag(element)

    def update_drag(self, dx: float, dy: float) -> None:
        self._check_open()
        self.controller.update_drag(dx, dy)

    def end_drag(self) -> None:
        self.controller.end_drag()

    # ── Finalize / publish / discard ─────────────────────────────

    async def finalize(self) -> Artifact:
        """Finalize the scene into an Artifact.

        The scene is frozen for the duration and thawed afterwards,
        whatever the outcome, so a failed finalize can be retried or the
        scene edited further. A discard during the run leaves it frozen.

        Raises:
            SessionClosedError: Session closed, or discarded mid-finalize.
            FinalizeInProgressError: Another finalize is running.
            EmptySceneError: Nothing to publish.
        """
        self._check_open()
        if self.busy:
            raise FinalizeInProgressError("finalize already in progress")
        if self.scene.is_empty:
            raise EmptySceneError()

        self.controller.end_drag()
        self.scene.freeze()
        task = asyncio.ensure_future(
            self.finalizer.finalize(self.scene, self.controller.preview_size)
        )
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if self.closed and task.cancelled():
                raise SessionClosedError("session discarded during finalize") from None
            raise
        except Exception as exc:
            logger.warning(f"Finalize failed: {exc}")
            raise
        finally:
            self._task = None
            if not self.closed:
                self.scene.thaw()

    async def publish(self, publisher: Publisher) -> Artifact:
        """Finalize, hand the artifact to publisher, then close.

        If finalize or publisher fails the session stays open.
        """
        artifact = await self.finalize()
        result = publisher(artifact)
        if inspect.isawaitable(result):
            await result
        self._close()
        logger.info(f"Published {artifact.mime_kind} story")
        return artifact

    def discard(self) -> None:
        """Abandon the session, cancelling any in-flight finalize."""
        if self.closed:
            return
        self.controller.end_drag()
        media = self.scene.media
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            logger.info("Discarded session; cancelling in-flight finalize")
            if media is not None:
                task.add_done_callback(lambda _: media.close())
        elif media is not None:
            media.close()
        self.scene.freeze()
        self.closed = True

    def _close(self) -> None:
        if self.scene.media is not None:
            self.scene.media.close()
        self.scene.freeze()
        self.closed = True
