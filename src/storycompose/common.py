"""storycompose.common — shared utilities for story rendering.

Contains: color and gradient parsing, gradient rasterization, path
variable resolution, and styled font loading.
"""

import math
import re
from pathlib import Path

import numpy as np
from PIL import ImageFont


# ── Font paths ─────────────────────────────────────────────────────
# One candidate list per face. Inter.ttc carries Regular at index 0 and
# Italic at index 1; DejaVu ships a file per face. Missing faces fall
# back to the regular face and the compositor synthesizes the trait.

_DEJAVU = Path("/usr/share/fonts/truetype/dejavu")
_INTER = Path.home() / ".local/share/fonts/Inter.ttc"

FONT_FACES = {
    "normal": [(_INTER, 0), (_DEJAVU / "DejaVuSans.ttf", 0)],
    "bold": [(_DEJAVU / "DejaVuSans-Bold.ttf", 0)],
    "italic": [(_INTER, 1), (_DEJAVU / "DejaVuSans-Oblique.ttf", 0)],
    "bold-italic": [(_DEJAVU / "DejaVuSans-BoldOblique.ttf", 0)],
}


# ── Color utilities ────────────────────────────────────────────────

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB', 'RRGGBB' or '#RGB' string to (R, G, B) tuple."""
    match = _HEX_RE.match(hex_str.strip())
    if not match:
        raise ValueError(f"Invalid hex color: '{hex_str}'")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def is_hex_color(value: str) -> bool:
    return bool(_HEX_RE.match(value.strip()))


# ── Gradients ──────────────────────────────────────────────────────
# CSS linear-gradient subset: an optional leading "<angle>deg" followed
# by two or more color stops, each "#hex" with an optional "<pct>%".

_GRADIENT_RE = re.compile(r"^\s*linear-gradient\((.*)\)\s*$", re.IGNORECASE)
_ANGLE_RE = re.compile(r"^(-?\d+(?:\.\d+)?)deg$")
_STOP_RE = re.compile(r"^(#?[0-9a-fA-F]{3,6})(?:\s+(-?\d+(?:\.\d+)?)%)?$")


def parse_gradient(
    value: str,
) -> tuple[float, list[tuple[tuple[int, int, int], float]]]:
    """Parse a 'linear-gradient(...)' string into (angle, stops).

    Stops without an explicit position are spread evenly between their
    neighbours, and positions never decrease, matching CSS resolution.

    Returns:
        (angle_degrees, [(rgb, position_0_to_1), ...])

    Raises:
        ValueError: Not a gradient string, or fewer than two stops.
    """
    match = _GRADIENT_RE.match(value)
    if not match:
        raise ValueError(f"Not a linear-gradient: '{value}'")

    parts = [p.strip() for p in match.group(1).split(",")]
    angle = 180.0  # CSS default: to bottom
    angle_match = _ANGLE_RE.match(parts[0])
    if angle_match:
        angle = float(angle_match.group(1))
        parts = parts[1:]

    if len(parts) < 2:
        raise ValueError(f"Gradient needs at least two color stops: '{value}'")

    colors = []
    positions: list[float | None] = []
    for part in parts:
        stop = _STOP_RE.match(part)
        if not stop:
            raise ValueError(f"Invalid gradient stop '{part}' in '{value}'")
        colors.append(parse_hex_color(stop.group(1)))
        pct = stop.group(2)
        positions.append(float(pct) / 100.0 if pct is not None else None)

    if positions[0] is None:
        positions[0] = 0.0
    if positions[-1] is None:
        positions[-1] = 1.0

    # Fill runs of unpositioned stops by linear interpolation.
    i = 0
    while i < len(positions):
        if positions[i] is None:
            j = i
            while positions[j] is None:
                j += 1
            start, end = positions[i - 1], positions[j]
            span = j - i + 1
            for k in range(i, j):
                positions[k] = start + (end - start) * (k - i + 1) / span
            i = j
        i += 1

    resolved = []
    floor = positions[0]
    for color, pos in zip(colors, positions):
        floor = max(floor, pos)
        resolved.append((color, floor))
    return angle, resolved


def render_gradient(
    width: int,
    height: int,
    angle: float,
    stops: list[tuple[tuple[int, int, int], float]],
) -> np.ndarray:
    """Rasterize a linear gradient with CSS angle semantics.

    0deg points up, 90deg points right. The gradient line passes through
    the center and is long enough that the corners hit 0% and 100%.

    Returns:
        numpy array of shape (height, width, 3), dtype uint8.
    """
    rad = math.radians(angle)
    dx, dy = math.sin(rad), -math.cos(rad)
    length = abs(width * dx) + abs(height * dy)

    xs = np.arange(width, dtype=np.float64) + 0.5 - width / 2
    ys = np.arange(height, dtype=np.float64) + 0.5 - height / 2
    proj = xs[np.newaxis, :] * dx + ys[:, np.newaxis] * dy
    t = proj / length + 0.5 if length else np.full_like(proj, 0.5)

    positions = np.array([pos for _, pos in stops], dtype=np.float64)
    out = np.empty((height, width, 3), dtype=np.uint8)
    for channel in range(3):
        values = np.array([color[channel] for color, _ in stops], dtype=np.float64)
        out[:, :, channel] = np.rint(np.interp(t, positions, values)).astype(np.uint8)
    return out


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Font loading ───────────────────────────────────────────────────

def load_font(
    size: int, style: str = "normal",
) -> tuple[ImageFont.FreeTypeFont | ImageFont.ImageFont, str]:
    """Load a font face for the given style at the given size.

    Tries the dedicated face first, then the regular face. The second
    element of the result is the style of the face actually loaded, so
    callers can synthesize bold or italic when it differs.
    """
    candidates = FONT_FACES.get(style, []) + [
        (p, i) for p, i in FONT_FACES["normal"] if style != "normal"
    ]
    for font_path, index in candidates:
        if font_path.exists():
            try:
                font = ImageFont.truetype(str(font_path), size=size, index=index)
            except (OSError, IndexError):
                continue
            loaded = style if (font_path, index) in FONT_FACES.get(style, []) else "normal"
            return font, loaded
    # Last resort: Pillow's bundled default, scalable since Pillow 10.1.
    return ImageFont.load_default(size=size), "normal"
