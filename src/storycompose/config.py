"""Settings for story composition.

Defaults live in DEFAULT_CONFIG. A YAML file can override any subset of
them; nested blocks (font_size, palette, media, encode) are merged key
by key so a file only needs to name what it changes.

Example override file:

    canonical_resolution: [720, 1280]
    snapshot_scale: 1
    encode:
      crf: 23
"""

import copy
from pathlib import Path

import yaml

from .common import is_hex_color, parse_gradient, parse_hex_color


# ── Defaults ──────────────────────────────────────────────────────
# Palettes and the default style are the ones the story editor offers.

DEFAULT_CONFIG = {
    "canonical_resolution": (1080, 1920),
    "reference_time": 1.0,
    "snapshot_scale": 2,
    "max_text_length": 100,
    "font_size": {"min": 12, "max": 48, "step": 2, "default": 18},
    "nudge_step": 10,
    "palette": {
        "backgrounds": [
            "linear-gradient(135deg, #ff6f61, #8b5cf6)",
            "linear-gradient(135deg, #34d399, #10b981)",
            "linear-gradient(135deg, #60a5fa, #3b82f6)",
            "#000000",
            "#ffffff",
            "#808080",
        ],
        "text_colors": [
            "#000000",
            "#ffffff",
            "#808080",
            "#ff0000",
            "#ff6f61",
            "#facc15",
            "#3b82f6",
        ],
    },
    "default_background": "linear-gradient(135deg, #ff6f61, #8b5cf6)",
    "default_text_color": "#ffffff",
    "default_font_style": "normal",
    "media": {
        "max_image_bytes": 5 * 1024 * 1024,
        "max_upload_bytes": 50 * 1024 * 1024,
    },
    "encode": {"codec": "libx264", "crf": 20, "preset": "medium"},
    "pad_color": (0, 0, 0),
}

_NESTED_KEYS = {"font_size", "palette", "media", "encode"}


# ── Loading ───────────────────────────────────────────────────────


def default_config() -> dict:
    """Return a fresh, mutable copy of the defaults."""
    return copy.deepcopy(DEFAULT_CONFIG)


def load_config(config_path: str | Path | None = None) -> dict:
    """Load settings, overlaying a YAML file on the defaults.

    Processing pipeline:
      1. Start from DEFAULT_CONFIG.
      2. Merge top-level keys; nested blocks merge key by key.
      3. Normalize resolution to a tuple and pad_color to RGB.
      4. Validate ranges and palette entries.

    Args:
        config_path: YAML file path, or None for pure defaults.

    Returns:
        Normalized settings dict.

    Raises:
        ValueError: Unknown key, bad value, or invalid palette entry.
        FileNotFoundError: Missing config file.
    """
    config = default_config()
    if config_path is None:
        return config

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{config_path}: top level must be a mapping")

    for key, value in raw.items():
        if key not in DEFAULT_CONFIG:
            raise ValueError(
                f"{config_path}: unknown setting '{key}'. "
                f"Valid: {sorted(DEFAULT_CONFIG)}"
            )
        if key in _NESTED_KEYS:
            if not isinstance(value, dict):
                raise ValueError(f"{config_path}: '{key}' must be a mapping")
            unknown = set(value) - set(DEFAULT_CONFIG[key])
            if unknown:
                raise ValueError(
                    f"{config_path}: unknown '{key}' keys {sorted(unknown)}. "
                    f"Valid: {sorted(DEFAULT_CONFIG[key])}"
                )
            config[key].update(value)
        else:
            config[key] = value

    config["canonical_resolution"] = tuple(config["canonical_resolution"])
    if isinstance(config["pad_color"], str):
        config["pad_color"] = parse_hex_color(config["pad_color"])
    else:
        config["pad_color"] = tuple(config["pad_color"])

    validate_config(config)
    return config


def validate_config(config: dict) -> None:
    """Check value ranges and palette entries of a settings dict."""
    res = config["canonical_resolution"]
    if len(res) != 2 or any(not isinstance(v, int) or v <= 0 for v in res):
        raise ValueError(f"canonical_resolution must be two positive ints, got {res}")

    if config["reference_time"] < 0:
        raise ValueError("reference_time must be >= 0")

    if config["snapshot_scale"] <= 0:
        raise ValueError("snapshot_scale must be > 0")

    if config["max_text_length"] <= 0:
        raise ValueError("max_text_length must be > 0")

    fs = config["font_size"]
    if not (0 < fs["min"] <= fs["default"] <= fs["max"]) or fs["step"] <= 0:
        raise ValueError(f"font_size bounds are inconsistent: {fs}")

    for entry in config["palette"]["backgrounds"]:
        validate_background_value(entry)
    for entry in config["palette"]["text_colors"]:
        parse_hex_color(entry)

    validate_background_value(config["default_background"])
    parse_hex_color(config["default_text_color"])


def validate_background_value(value: str) -> None:
    """Raise ValueError unless value is a hex color or linear-gradient."""
    if not isinstance(value, str):
        raise ValueError(f"Background must be a string, got {value!r}")
    if is_hex_color(value):
        return
    parse_gradient(value)
