"""Compositor — rasterize a Scene into a Pillow image.

Draw order is fixed: background across the full area, then the media
bitmap at its position (natural size, no extra scaling), then the text
caption as a single unwrapped line. The output is a pure function of
the scene and the requested size, so the same call serves the live
preview and the finalize snapshot.

``scale`` supersamples the whole composition: the canvas, positions,
media and font size are all multiplied by it.
"""

from PIL import Image, ImageDraw

from .common import load_font
from .scene import Element, FontStyle, Scene


ALL_LAYERS = ("background", "media", "text")
OVERLAY_LAYERS = ("text",)

ITALIC_SHEAR = 0.2               # horizontal slant for synthesized italics
BOLD_STROKE_DIVISOR = 24         # synthesized bold stroke = size / divisor


# ── Text patches ────────────────────────────────────────────────


def render_text_patch(
    text: str,
    font_size: int,
    color: tuple[int, int, int],
    style: FontStyle = FontStyle.NORMAL,
) -> Image.Image:
    """Render one line of text tightly cropped on a transparent patch.

    When no dedicated bold or italic face is installed the trait is
    synthesized: bold with a same-color stroke, italic with a shear.

    Returns:
        RGBA image whose size is the element's measured size.
    """
    style = FontStyle(style)
    font, loaded = load_font(font_size, style.value)
    loaded = FontStyle(loaded)

    stroke = 0
    if style.is_bold and not loaded.is_bold:
        stroke = max(1, round(font_size / BOLD_STROKE_DIVISOR))
    shear = ITALIC_SHEAR if style.is_italic and not loaded.is_italic else 0.0

    draw_tmp = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    bbox = draw_tmp.textbbox((0, 0), text, font=font, stroke_width=stroke)
    text_w = max(1, bbox[2] - bbox[0])
    text_h = max(1, bbox[3] - bbox[1])

    img = Image.new("RGBA", (text_w, text_h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.text(
        (-bbox[0], -bbox[1]), text, font=font, fill=(*color, 255),
        stroke_width=stroke, stroke_fill=(*color, 255),
    )

    if shear:
        extra = int(round(text_h * shear))
        img = img.transform(
            (text_w + extra, text_h),
            Image.AFFINE,
            (1, shear, -shear * text_h, 0, 1, 0),
            resample=Image.BICUBIC,
        )

    return img


def measure_text(text: str, font_size: int, style: FontStyle = FontStyle.NORMAL) -> tuple[int, int]:
    """Return the (width, height) the text element occupies."""
    return render_text_patch(text, font_size, (0, 0, 0), style).size


def measure_element(scene: Scene, element: Element) -> tuple[int, int] | None:
    """Measured preview size of an element, or None if it is absent."""
    if not scene.has(element):
        return None
    if Element(element) is Element.TEXT:
        return measure_text(scene.text, scene.font_size, scene.font_style)
    return scene.media.size


# ── Compositing ─────────────────────────────────────────────────


def _paste(canvas: Image.Image, patch: Image.Image, x: int, y: int) -> None:
    """Alpha-composite patch onto canvas at (x, y), clipping to bounds."""
    src_x0 = max(0, -x)
    src_y0 = max(0, -y)
    src_x1 = min(patch.width, canvas.width - x)
    src_y1 = min(patch.height, canvas.height - y)
    if src_x1 <= src_x0 or src_y1 <= src_y0:
        return  # entirely off-canvas
    canvas.alpha_composite(
        patch,
        dest=(max(0, x), max(0, y)),
        source=(src_x0, src_y0, src_x1, src_y1),
    )


def render(
    scene: Scene,
    preview_width: int,
    preview_height: int,
    scale: float = 1.0,
    layers: tuple[str, ...] = ALL_LAYERS,
    origin: tuple[float, float] = (0.0, 0.0),
) -> Image.Image:
    """Rasterize the scene at preview size (times scale).

    Args:
        scene: Scene to draw.
        preview_width, preview_height: Preview surface size in pixels.
        scale: Supersampling factor applied to everything.
        layers: Subset of ALL_LAYERS to draw. Without the background
            the canvas starts transparent and an RGBA image is returned.
        origin: Preview point mapped to the canvas's top-left corner.

    Returns:
        RGB image (RGBA when the background layer is omitted).

    Raises:
        ValueError: Non-positive dimensions or scale.
    """
    if preview_width <= 0 or preview_height <= 0:
        raise ValueError(
            f"Preview size must be positive, got {preview_width}x{preview_height}"
        )
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}")

    ox, oy = origin
    out_w = max(1, round(preview_width * scale))
    out_h = max(1, round(preview_height * scale))

    if "background" in layers:
        canvas = Image.fromarray(scene.background.render(out_w, out_h)).convert("RGBA")
    else:
        canvas = Image.new("RGBA", (out_w, out_h), (0, 0, 0, 0))

    if "media" in layers and scene.media is not None:
        bitmap = scene.media.bitmap
        if scale != 1.0:
            bitmap = bitmap.resize(
                (max(1, round(bitmap.width * scale)), max(1, round(bitmap.height * scale))),
                Image.LANCZOS,
            )
        pos = scene.media_position
        _paste(canvas, bitmap, round((pos.x - ox) * scale), round((pos.y - oy) * scale))

    if "text" in layers and scene.text:
        patch = render_text_patch(
            scene.text,
            max(1, round(scene.font_size * scale)),
            scene.text_color,
            scene.font_style,
        )
        pos = scene.text_position
        _paste(canvas, patch, round((pos.x - ox) * scale), round((pos.y - oy) * scale))

    if "background" in layers:
        return canvas.convert("RGB")
    return canvas


def render_overlay(
    scene: Scene,
    width: int,
    height: int,
    scale: float = 1.0,
    origin: tuple[float, float] = (0.0, 0.0),
) -> Image.Image:
    """Render only the layers drawn over a video: the text, on transparency.

    With origin set to the media position and width/height to the
    media's natural size, the canvas lines up with the video frame as
    it sat in the preview.
    """
    return render(
        scene, width, height, scale=scale, layers=OVERLAY_LAYERS, origin=origin,
    )
