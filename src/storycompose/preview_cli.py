"""CLI for rendering the interactive preview of a scene.

Writes the preview-resolution bitmap exactly as the editor would show
it, before normalization onto the canonical canvas. Videos appear as
their poster frame.

Usage:
    python -m storycompose.preview_cli \
        --scene scene.yaml --output /tmp/preview.png --scale 2
"""

import argparse
from pathlib import Path

from .compositor import render
from .config import load_config
from .manifest import build_session, load_scene_manifest, validate_paths


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a scene's preview bitmap (no normalization).",
    )
    parser.add_argument("--scene", required=True, help="Path to YAML scene manifest")
    parser.add_argument("--output", required=True, help="Output PNG path")
    parser.add_argument("--config", default=None, help="Settings YAML")
    parser.add_argument(
        "--scale", type=float, default=1.0,
        help="Supersampling factor (default: 1)",
    )
    args = parser.parse_args(args)

    config = load_config(args.config)
    manifest = load_scene_manifest(args.scene)
    validate_paths(manifest)

    session = build_session(manifest, None, config)
    w, h = manifest["preview"]
    bitmap = render(session.scene, w, h, scale=args.scale)
    session.discard()

    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    bitmap.save(out, format="PNG")
    print(f"Preview written: {out} ({bitmap.width}x{bitmap.height})")


if __name__ == "__main__":
    main()
