"""Position controller — drag sessions, keyboard nudges, centering-on-add.

Two independent state machines share nothing but the Scene's position
fields:

  - DragSession: opened on pointer-down over an element, fed every
    pointer movement as it arrives, closed on pointer-up/leave.
  - Centering: on each layout pass, any element that has appeared since
    the previous pass (or whose media asset was replaced) is centered in
    the preview using its measured size. A preview that has not been laid out yet (zero
    size) defers centering to the next pass.
"""

from dataclasses import dataclass, field

from loguru import logger

from .compositor import measure_element
from .errors import ValidationError
from .scene import Element, Scene


NUDGE_DIRECTIONS = {
    "up": (0, -1),
    "down": (0, 1),
    "left": (-1, 0),
    "right": (1, 0),
}


def center_offset(
    preview_w: float, preview_h: float, element_w: float, element_h: float,
) -> tuple[float, float]:
    """Top-left offset that centers an element in the preview."""
    return (preview_w - element_w) / 2, (preview_h - element_h) / 2


@dataclass
class DragSession:
    """An in-progress pointer drag of one element."""
    element: Element
    total_dx: float = 0.0
    total_dy: float = 0.0
    events: int = field(default=0)


class PositionController:
    """Translate pointer input into element positions on a Scene."""

    def __init__(self, scene: Scene):
        self.scene = scene
        self.drag: DragSession | None = None
        self.preview_size: tuple[int, int] = (0, 0)
        # Scene generation of each element at its last successful centering.
        self._placed: dict[Element, int] = {}

    # ── Dragging ─────────────────────────────────────────────────

    def begin_drag(self, element: Element | str) -> DragSession:
        """Open a drag session on a present element.

        A session left open (a lost pointer-up) is replaced.
        """
        element = Element(element)
        if not self.scene.has(element):
            raise ValidationError(f"Cannot drag absent element '{element.value}'")
        if self.drag is not None:
            logger.debug(f"Replacing stale drag session on {self.drag.element.value}")
        self.drag = DragSession(element)
        return self.drag

    def update_drag(self, dx: float, dy: float) -> None:
        """Apply one pointer movement. Ignored when no drag is open."""
        if self.drag is None:
            return
        self.scene.move(self.drag.element, dx, dy)
        self.drag.total_dx += dx
        self.drag.total_dy += dy
        self.drag.events += 1

    def end_drag(self) -> DragSession | None:
        """Close the current drag session, returning it (or None)."""
        session, self.drag = self.drag, None
        return session

    @property
    def dragging(self) -> bool:
        return self.drag is not None

    # ── Keyboard ─────────────────────────────────────────────────

    def nudge(self, element: Element | str, direction: str) -> None:
        """Move an element one keyboard step in the given direction."""
        element = Element(element)
        if direction not in NUDGE_DIRECTIONS:
            raise ValidationError(
                f"Invalid direction '{direction}'. Valid: {sorted(NUDGE_DIRECTIONS)}"
            )
        if not self.scene.has(element):
            return
        step = self.scene.config["nudge_step"]
        ux, uy = NUDGE_DIRECTIONS[direction]
        self.scene.move(element, ux * step, uy * step)

    # ── Centering ────────────────────────────────────────────────

    def layout(self, preview_width: int, preview_height: int) -> list[Element]:
        """Run a layout pass and center newly-present elements.

        Args:
            preview_width, preview_height: Measured preview size.

        Returns:
            The elements centered during this pass.
        """
        self.preview_size = (preview_width, preview_height)
        centered = []

        for element in Element:
            marker = self._marker(element)
            if marker is None:
                self._placed.pop(element, None)
                continue
            if self._placed.get(element) == marker:
                continue
            if preview_width <= 0 or preview_height <= 0:
                logger.debug(f"Preview not laid out yet; deferring centering of {element.value}")
                continue

            w, h = measure_element(self.scene, element)
            x, y = center_offset(preview_width, preview_height, w, h)
            self.scene.set_position(element, x, y)
            self._placed[element] = marker
            centered.append(element)
            logger.debug(f"Centered {element.value} ({w}x{h}) at ({x:.1f}, {y:.1f})")

        return centered

    def _marker(self, element: Element) -> int | None:
        if not self.scene.has(element):
            return None
        return self.scene.generation[element]
