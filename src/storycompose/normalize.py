"""Letterbox/scale normalization onto a fixed canvas.

Maps a bitmap of any size onto a target canvas with the single uniform
scale that fits it entirely inside, then centers it. The preview size
depends on the viewer's screen; the published story does not.
"""

from PIL import Image


def fit_rect(
    src_w: int, src_h: int, target_w: int, target_h: int,
) -> tuple[float, int, int, int, int]:
    """Compute the scale-to-fit placement of a source inside a target.

    Returns:
        (scale, scaled_w, scaled_h, offset_x, offset_y)

    Raises:
        ValueError: Any non-positive dimension.
    """
    if min(src_w, src_h, target_w, target_h) <= 0:
        raise ValueError(
            f"Dimensions must be positive: source {src_w}x{src_h}, "
            f"target {target_w}x{target_h}"
        )
    scale = min(target_w / src_w, target_h / src_h)
    scaled_w = min(target_w, max(1, round(src_w * scale)))
    scaled_h = min(target_h, max(1, round(src_h * scale)))
    offset_x = (target_w - scaled_w) // 2
    offset_y = (target_h - scaled_h) // 2
    return scale, scaled_w, scaled_h, offset_x, offset_y


def normalize(
    bitmap: Image.Image,
    target_width: int,
    target_height: int,
    fill: tuple[int, ...] = (0, 0, 0),
) -> Image.Image:
    """Scale bitmap to fit target_width x target_height and center it.

    Args:
        bitmap: Source image (any mode).
        target_width, target_height: Output canvas size.
        fill: Canvas color around the content. A 4-tuple produces an
            RGBA canvas, so (0, 0, 0, 0) letterboxes with transparency.

    Returns:
        Image of exactly target_width x target_height.
    """
    _, scaled_w, scaled_h, offset_x, offset_y = fit_rect(
        bitmap.width, bitmap.height, target_width, target_height,
    )
    mode = "RGBA" if len(fill) == 4 else "RGB"
    canvas = Image.new(mode, (target_width, target_height), tuple(fill))

    content = bitmap.convert("RGBA")
    if content.size != (scaled_w, scaled_h):
        content = content.resize((scaled_w, scaled_h), Image.LANCZOS)

    if mode == "RGBA":
        canvas.alpha_composite(content, dest=(offset_x, offset_y))
    else:
        canvas.paste(content, (offset_x, offset_y), content)
    return canvas
