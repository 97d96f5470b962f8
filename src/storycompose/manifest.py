"""Scene manifest loader.

Parses a YAML description of one story, resolves ${path} variables,
validates every field, and builds a laid-out StorySession from it.

Schema:

    paths:                       # optional ${name} substitutions
      assets: /data/stories
    preview: [360, 640]          # preview surface size (required)
    palette_locked: true         # optional, default true
    background: "#000000"        # optional, palette entry
    text:                        # optional
      value: Hello
      color: "#ffffff"           # optional
      style: bold                # normal | bold | italic | bold-italic
      size: 24                   # optional, clamped to [12, 48]
      position: [40, 300]        # optional; omitted means centered
    media:                       # optional
      path: ${assets}/clip.mp4
      mime: video/mp4            # optional, guessed from the extension
      position: [0, 0]           # optional; omitted means centered
"""

from pathlib import Path

import yaml

from .common import resolve_path_vars
from .config import DEFAULT_CONFIG
from .engine import VideoEngine
from .media import load_media
from .scene import Element, parse_font_style
from .session import StorySession


# ── Valid keys ────────────────────────────────────────────────────

VALID_TOP_KEYS = {"paths", "preview", "palette_locked", "background", "text", "media"}

VALID_TEXT_KEYS = {"value", "color", "style", "size", "position"}

VALID_MEDIA_KEYS = {"path", "mime", "position"}


# ── Manifest loading ──────────────────────────────────────────────


def load_scene_manifest(manifest_path: str | Path) -> dict:
    """Load, validate, and normalize a scene manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in every string value.
      3. Validate keys, preview size, text and media blocks.
      4. Normalize preview and positions to tuples, style to FontStyle.

    Args:
        manifest_path: Path to the YAML manifest file.

    Returns:
        Normalized manifest dict.

    Raises:
        ValueError: Unknown key, missing field, or invalid value.
        FileNotFoundError: Missing manifest file.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{manifest_path}: top level must be a mapping")

    unknown = set(raw) - VALID_TOP_KEYS
    if unknown:
        raise ValueError(
            f"Unknown manifest keys {sorted(unknown)}. Valid: {sorted(VALID_TOP_KEYS)}"
        )

    paths = raw.get("paths", {}) or {}
    manifest = _resolve_paths({k: v for k, v in raw.items() if k != "paths"}, paths)

    if "preview" not in manifest:
        raise ValueError("Manifest: missing required field 'preview'")
    manifest["preview"] = _parse_pair(manifest["preview"], "preview")
    if manifest["preview"][0] <= 0 or manifest["preview"][1] <= 0:
        raise ValueError(f"Manifest: 'preview' must be positive, got {manifest['preview']}")

    manifest.setdefault("palette_locked", True)

    text = manifest.get("text")
    if text is not None:
        _validate_text(text)

    media = manifest.get("media")
    if media is not None:
        _validate_media(media)

    return manifest


def _resolve_paths(obj, paths: dict):
    """Recursively resolve ${var} in all string values."""
    if isinstance(obj, str):
        return resolve_path_vars(obj, paths)
    elif isinstance(obj, dict):
        return {k: _resolve_paths(v, paths) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_resolve_paths(item, paths) for item in obj]
    return obj


def _parse_pair(value, field: str) -> tuple:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"Manifest: '{field}' must be a [x, y] pair, got {value!r}")
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
        raise ValueError(f"Manifest: '{field}' must contain numbers, got {value!r}")
    return tuple(value)


def _validate_text(text: dict) -> None:
    """Validate the text block. Required: value."""
    if not isinstance(text, dict):
        raise ValueError("Manifest: 'text' must be a mapping")
    unknown = set(text) - VALID_TEXT_KEYS
    if unknown:
        raise ValueError(
            f"Manifest text: unknown keys {sorted(unknown)}. Valid: {sorted(VALID_TEXT_KEYS)}"
        )
    if not isinstance(text.get("value"), str):
        raise ValueError("Manifest text: missing required string field 'value'")
    if "style" in text:
        text["style"] = parse_font_style(text["style"])
    if "size" in text and (
        isinstance(text["size"], bool) or not isinstance(text["size"], (int, float))
    ):
        raise ValueError(f"Manifest text: 'size' must be a number, got {text['size']!r}")
    if "position" in text:
        text["position"] = _parse_pair(text["position"], "text.position")


def _validate_media(media: dict) -> None:
    """Validate the media block. Required: path."""
    if not isinstance(media, dict):
        raise ValueError("Manifest: 'media' must be a mapping")
    unknown = set(media) - VALID_MEDIA_KEYS
    if unknown:
        raise ValueError(
            f"Manifest media: unknown keys {sorted(unknown)}. Valid: {sorted(VALID_MEDIA_KEYS)}"
        )
    if "path" not in media:
        raise ValueError("Manifest media: missing required field 'path'")
    if "position" in media:
        media["position"] = _parse_pair(media["position"], "media.position")


def validate_paths(manifest: dict) -> None:
    """Check that the media file referenced by the manifest exists.

    Raises:
        FileNotFoundError: Media path missing on disk.
    """
    media = manifest.get("media")
    if media is not None and not Path(media["path"]).exists():
        raise FileNotFoundError(f"Missing media file: {media['path']}")


# ── Session building ─────────────────────────────────────────────


def build_session(
    manifest: dict,
    engine: VideoEngine | None = None,
    config: dict | None = None,
) -> StorySession:
    """Create a StorySession populated from a normalized manifest.

    Elements are added, a layout pass centers them, then explicit
    positions from the manifest override the centered ones.
    """
    config = config or DEFAULT_CONFIG
    session = StorySession(engine, config, palette_locked=manifest["palette_locked"])
    scene = session.scene

    if "background" in manifest:
        scene.set_background(manifest["background"])

    text = manifest.get("text")
    if text is not None:
        scene.set_text(text["value"])
        if "color" in text:
            scene.set_text_color(text["color"])
        if "style" in text:
            scene.set_font_style(text["style"])
        if "size" in text:
            scene.set_font_size(text["size"])

    media = manifest.get("media")
    if media is not None:
        scene.set_media(load_media(media["path"], mime=media.get("mime"), config=config))

    session.layout(*manifest["preview"])

    if text is not None and "position" in text:
        scene.set_position(Element.TEXT, *text["position"])
    if media is not None and "position" in media:
        scene.set_position(Element.MEDIA, *media["position"])

    return session
