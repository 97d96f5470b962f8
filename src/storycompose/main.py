"""Subcommand dispatcher for storycompose.

Usage:
    storycompose render   --scene scene.yaml --output story.png
    storycompose preview  --scene scene.yaml --output preview.png
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="storycompose",
        description="Compose and render ephemeral stories.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Render a scene manifest to its final PNG/MP4")
    subparsers.add_parser("preview", help="Render a scene's preview bitmap")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        # No subcommand: show help and exit with an error.
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .cli import main as render_main
        render_main(remaining)
    elif parsed.command == "preview":
        from .preview_cli import main as preview_main
        preview_main(remaining)


if __name__ == "__main__":
    main()
