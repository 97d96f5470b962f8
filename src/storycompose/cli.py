"""CLI for rendering a story scene to its final artifact.

Reads a YAML scene manifest, validates the media path, composes the
scene, and writes the PNG or MP4 the publish step would receive.

Usage:
    # Render a still or video story
    python -m storycompose.cli \
        --scene scene.yaml --output /tmp/story.png

    # Override settings (canonical resolution, encode params, ...)
    python -m storycompose.cli \
        --scene scene.yaml --output /tmp/story.mp4 --config settings.yaml

    # Validate only (no rendering)
    python -m storycompose.cli --scene scene.yaml --validate
"""

import argparse
import asyncio
import mimetypes
import time
from pathlib import Path

from .artifact import Artifact
from .config import load_config
from .engine import FFmpegEngine
from .manifest import build_session, load_scene_manifest, validate_paths
from .media import media_kind


# ── Rendering ─────────────────────────────────────────────────────


def _write_artifact(artifact: Artifact, output_path: str) -> Path:
    """Write the artifact, fixing the suffix if it names the wrong kind."""
    out = Path(output_path)
    if out.suffix.lower() != artifact.extension:
        fixed = out.with_suffix(artifact.extension)
        print(f"  NOTE   {artifact.mime_kind} artifact; writing {fixed} instead of {out}")
        out = fixed
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(artifact.data)
    return out


def render_scene(
    scene_path: str,
    output_path: str,
    config_path: str | None = None,
) -> Path:
    """Load a scene manifest, finalize it, and write the artifact.

    Args:
        scene_path: Path to YAML scene manifest.
        output_path: Output .png or .mp4 path.
        config_path: Optional settings YAML.

    Returns:
        The path actually written.
    """
    config = load_config(config_path)
    manifest = load_scene_manifest(scene_path)
    validate_paths(manifest)

    media = manifest.get("media")
    is_video = media is not None and media_kind(
        media.get("mime") or mimetypes.guess_type(media["path"])[0]
    ) == "video"
    engine = FFmpegEngine() if is_video else None

    label = "video" if is_video else "still"
    print(f"  START  {scene_path} ({label})", flush=True)
    t0 = time.monotonic()

    if engine is not None:
        engine.load()
    try:
        session = build_session(manifest, engine, config)
        artifact = asyncio.run(session.finalize())
        session.discard()
    finally:
        if engine is not None:
            engine.dispose()

    out = _write_artifact(artifact, output_path)
    elapsed = time.monotonic() - t0
    w, h = artifact.width, artifact.height
    extra = f", {artifact.duration:.1f}s" if artifact.duration else ""
    print(f"  DONE   {out} — {w}x{h}{extra}, {elapsed:.1f}s wall", flush=True)
    return out


# ── CLI entry point ───────────────────────────────────────────────


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a story scene manifest to its final PNG or MP4.",
    )
    parser.add_argument(
        "--scene", required=True,
        help="Path to YAML scene manifest",
    )
    parser.add_argument(
        "--output",
        help="Output .png or .mp4 path",
    )
    parser.add_argument(
        "--config", default=None,
        help="Settings YAML overriding the defaults",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest only — check fields and paths, don't render",
    )
    args = parser.parse_args(args)

    if args.validate:
        load_config(args.config)
        manifest = load_scene_manifest(args.scene)
        validate_paths(manifest)
        w, h = manifest["preview"]
        print(f"Manifest valid: preview {w}x{h}")
        if manifest.get("text"):
            print(f"  text:  {manifest['text']['value'][:60]!r}")
        if manifest.get("media"):
            print(f"  media: {manifest['media']['path']}")
        print("All paths verified.")
        return

    if not args.output:
        parser.error("--output is required (unless using --validate)")

    render_scene(args.scene, args.output, config_path=args.config)


if __name__ == "__main__":
    main()
