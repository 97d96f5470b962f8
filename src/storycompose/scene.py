"""Scene model — the in-memory state of one story being composed.

A Scene holds a background, at most one media asset, at most one text
caption with its style, and the preview-space position of the two
movable elements. Every mutator enforces its own constraint: numbers
are clamped, over-long text is truncated, and anything outside an enum
or palette raises ValidationError before any field changes.

While a finalize is running the scene is frozen and every mutator
raises SceneFrozenError.
"""

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .common import is_hex_color, parse_gradient, parse_hex_color, render_gradient
from .config import DEFAULT_CONFIG, validate_background_value
from .errors import SceneFrozenError, ValidationError
from .media import MediaAsset


class Element(str, Enum):
    """Movable elements of a scene."""
    TEXT = "text"
    MEDIA = "media"


class FontStyle(str, Enum):
    NORMAL = "normal"
    BOLD = "bold"
    ITALIC = "italic"
    BOLD_ITALIC = "bold-italic"

    @property
    def is_bold(self) -> bool:
        return self in (FontStyle.BOLD, FontStyle.BOLD_ITALIC)

    @property
    def is_italic(self) -> bool:
        return self in (FontStyle.ITALIC, FontStyle.BOLD_ITALIC)


# The editor's own spelling for the combined style.
_STYLE_ALIASES = {"bold italic": FontStyle.BOLD_ITALIC, "bold_italic": FontStyle.BOLD_ITALIC}


def parse_font_style(value) -> FontStyle:
    if isinstance(value, FontStyle):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _STYLE_ALIASES:
            return _STYLE_ALIASES[key]
        try:
            return FontStyle(key)
        except ValueError:
            pass
    raise ValidationError(
        f"Invalid font style {value!r}. Valid: {[s.value for s in FontStyle]}"
    )


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Background:
    """Solid color or linear gradient, parsed from its palette string."""
    value: str
    color: tuple[int, int, int] | None = None
    angle: float = 180.0
    stops: tuple = ()

    @classmethod
    def parse(cls, value: str) -> "Background":
        try:
            validate_background_value(value)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if is_hex_color(value):
            return cls(value=value, color=parse_hex_color(value))
        angle, stops = parse_gradient(value)
        return cls(value=value, angle=angle, stops=tuple(stops))

    @property
    def is_gradient(self) -> bool:
        return self.color is None

    def render(self, width: int, height: int) -> np.ndarray:
        """Rasterize to a (height, width, 3) uint8 array."""
        if self.is_gradient:
            return render_gradient(width, height, self.angle, list(self.stops))
        return np.full((height, width, 3), self.color, dtype=np.uint8)


class Scene:
    """Composition state for one story.

    Args:
        config: Settings dict; supplies limits, defaults and palettes.
        palette_locked: When True, background and text color must come
            from the configured palettes.
    """

    def __init__(self, config: dict | None = None, palette_locked: bool = True):
        self.config = config or DEFAULT_CONFIG
        self.palette_locked = palette_locked
        fs = self.config["font_size"]

        self._frozen = False
        self.background = Background.parse(self.config["default_background"])
        self.media: MediaAsset | None = None
        self.text: str | None = None
        self.text_color = parse_hex_color(self.config["default_text_color"])
        self.font_style = parse_font_style(self.config["default_font_style"])
        self.font_size = fs["default"]
        self.text_position = Position()
        self.media_position = Position()
        # Bumped each time an element goes from absent to present (or the
        # media asset is swapped), so layout passes can tell a re-added
        # element from one that stayed put.
        self.generation = {Element.TEXT: 0, Element.MEDIA: 0}

    # ── Lifecycle ────────────────────────────────────────────────

    @property
    def is_empty(self) -> bool:
        return self.media is None and not self.text

    @property
    def state(self) -> str:
        return "empty" if self.is_empty else "populated"

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def thaw(self) -> None:
        self._frozen = False

    def has(self, element: Element) -> bool:
        if Element(element) is Element.TEXT:
            return bool(self.text)
        return self.media is not None

    def _check_mutable(self) -> None:
        if self._frozen:
            raise SceneFrozenError("scene is frozen; edits are not accepted")

    # ── Background ───────────────────────────────────────────────

    def set_background(self, value: str) -> None:
        """Set a solid color or linear-gradient background from the palette."""
        self._check_mutable()
        if not isinstance(value, str):
            raise ValidationError(f"Background must be a string, got {type(value).__name__}")
        if self.palette_locked and value.strip().lower() not in (
            b.lower() for b in self.config["palette"]["backgrounds"]
        ):
            raise ValidationError(
                f"Background '{value}' is not in the palette. "
                f"Valid: {self.config['palette']['backgrounds']}"
            )
        self.background = Background.parse(value)

    # ── Text ─────────────────────────────────────────────────────

    def set_text(self, value: str | None) -> None:
        """Set the caption, truncating to max_text_length characters.

        An empty string or None removes the caption.
        """
        self._check_mutable()
        if value is None or value == "":
            self.text = None
            return
        if not isinstance(value, str):
            raise ValidationError(f"Text must be a string, got {type(value).__name__}")
        if not self.text:
            self.generation[Element.TEXT] += 1
        self.text = value[: self.config["max_text_length"]]

    def set_text_color(self, value: str) -> None:
        self._check_mutable()
        if not isinstance(value, str):
            raise ValidationError(f"Text color must be a string, got {type(value).__name__}")
        if self.palette_locked and value.strip().lower() not in (
            c.lower() for c in self.config["palette"]["text_colors"]
        ):
            raise ValidationError(
                f"Text color '{value}' is not in the palette. "
                f"Valid: {self.config['palette']['text_colors']}"
            )
        try:
            self.text_color = parse_hex_color(value)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    def set_font_style(self, value: FontStyle | str) -> None:
        self._check_mutable()
        self.font_style = parse_font_style(value)

    def set_font_size(self, value: int | float) -> None:
        """Clamp into [min, max] and snap to the step grid anchored at min."""
        self._check_mutable()
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(f"Font size must be a finite number, got {value!r}")
        self.font_size = self._snap_font_size(value)

    def increase_font_size(self) -> None:
        self.set_font_size(self.font_size + self.config["font_size"]["step"])

    def decrease_font_size(self) -> None:
        self.set_font_size(self.font_size - self.config["font_size"]["step"])

    def _snap_font_size(self, value: float) -> int:
        fs = self.config["font_size"]
        lo, hi, step = fs["min"], fs["max"], fs["step"]
        clamped = min(max(value, lo), hi)
        snapped = lo + round((clamped - lo) / step) * step
        if snapped > hi:
            snapped -= step
        return int(snapped)

    # ── Media ────────────────────────────────────────────────────

    def set_media(self, asset: MediaAsset) -> None:
        """Attach a media asset, replacing any previous one.

        The position resets to the origin until the next layout pass
        centers the new asset.
        """
        self._check_mutable()
        if not isinstance(asset, MediaAsset):
            raise ValidationError(f"Expected a MediaAsset, got {type(asset).__name__}")
        self.media = asset
        self.media_position = Position()
        self.generation[Element.MEDIA] += 1

    def clear_media(self) -> None:
        self._check_mutable()
        self.media = None
        self.media_position = Position()

    # ── Positions ────────────────────────────────────────────────

    def position(self, element: Element) -> Position:
        if Element(element) is Element.TEXT:
            return self.text_position
        return self.media_position

    def set_position(self, element: Element, x: float, y: float) -> None:
        self._check_mutable()
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValidationError(f"Position must be finite, got ({x}, {y})")
        pos = Position(float(x), float(y))
        if Element(element) is Element.TEXT:
            self.text_position = pos
        else:
            self.media_position = pos

    def move(self, element: Element, dx: float, dy: float) -> None:
        """Translate an element; a non-finite result leaves it untouched."""
        current = self.position(element)
        self.set_position(element, current.x + dx, current.y + dy)
