#!/usr/bin/env python3
"""Generate demo media and scene manifests for storycompose.

Creates in examples/demo-stories/:
  - clip.mp4: a 4s landscape clip with a tone, so the audio passthrough
    is audible, and a moving white bar, so frame timing is visible.
  - photo.png: a small checkerboard photo.
  - text-only.yaml, photo.yaml, video.yaml: one scene manifest each.

Usage:
    python examples/generate_demo_stories.py
    # Then render:
    storycompose render --scene examples/demo-stories/video.yaml \
        --output examples/demo-renders/video.mp4
"""

import numpy as np
import yaml
from moviepy import AudioClip, VideoClip
from pathlib import Path
from PIL import Image

OUTPUT_DIR = Path(__file__).resolve().parent / "demo-stories"
CLIP_SIZE = (480, 270)
CLIP_DURATION = 4.0
FPS = 24
PREVIEW = [360, 640]


def _make_frame(t: float) -> np.ndarray:
    """Teal frame with a white bar sweeping left to right."""
    w, h = CLIP_SIZE
    frame = np.full((h, w, 3), (40, 150, 150), dtype=np.uint8)
    x = int((t / CLIP_DURATION) * (w - 20))
    frame[:, x:x + 20] = 255
    return frame


def _make_tone(t):
    return 0.2 * np.sin(2 * np.pi * 440 * t)


def _write_clip(out: Path) -> None:
    video = VideoClip(_make_frame, duration=CLIP_DURATION)
    audio = AudioClip(_make_tone, duration=CLIP_DURATION, fps=44100)
    video.with_audio(audio).write_videofile(str(out), fps=FPS, logger=None)


def _write_photo(out: Path) -> None:
    tile = 20
    board = (np.indices((8, 12)).sum(axis=0) % 2).astype(np.uint8) * 200 + 30
    img = Image.fromarray(np.kron(board, np.ones((tile, tile), dtype=np.uint8)))
    img.convert("RGB").save(out)


SCENES = {
    "text-only.yaml": {
        "preview": PREVIEW,
        "background": "linear-gradient(135deg, #60a5fa, #3b82f6)",
        "text": {"value": "Good morning!", "style": "bold", "size": 32},
    },
    "photo.yaml": {
        "preview": PREVIEW,
        "background": "#000000",
        "text": {"value": "New desk", "color": "#facc15", "position": [40, 120]},
        "media": {"path": "${demo}/photo.png"},
    },
    "video.yaml": {
        "preview": PREVIEW,
        "text": {"value": "Live from the lab", "style": "bold italic", "size": 24},
        "media": {"path": "${demo}/clip.mp4"},
    },
}


def main():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

    clip = OUTPUT_DIR / "clip.mp4"
    if clip.exists():
        print("  skip clip.mp4 (exists)")
    else:
        _write_clip(clip)
        print(f"  wrote clip.mp4 ({CLIP_DURATION}s)")

    _write_photo(OUTPUT_DIR / "photo.png")
    print("  wrote photo.png")

    for name, scene in SCENES.items():
        if "media" in scene:
            scene = {"paths": {"demo": str(OUTPUT_DIR)}, **scene}
        with open(OUTPUT_DIR / name, "w") as f:
            yaml.dump(scene, f, sort_keys=False)
        print(f"  wrote {name}")

    print(f"\nDone. Demo stories in {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
