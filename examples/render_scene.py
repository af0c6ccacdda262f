#!/usr/bin/env python3
"""Render the room demo scene to a PNG.

The image is split into bands of rows rendered by a pool of worker
processes, or rendered in this process with --sequential.

Usage:
    python -m examples.render_scene [width] [height] [samples] [output] [options]

Options:
    --workers N      Worker processes (default: one per core but one)
    --sequential     Render in this process instead of a worker pool
    --gamma GAMMA    Gamma encoding for the PNG (default: 1.0, linear)
    --tone-map NAME  none, reinhard or exposure (default: none)
    --quiet          Suppress progress output

Example:
    python -m examples.render_scene 200 150 16 room.png --workers 4
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

logger = logging.getLogger("render_scene")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the room demo scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("width", type=int, nargs="?", default=400, help="Image width (default: 400)")
    parser.add_argument("height", type=int, nargs="?", default=300, help="Image height (default: 300)")
    parser.add_argument(
        "samples",
        type=int,
        nargs="?",
        default=32,
        help="Samples per pixel (default: 32)",
    )
    parser.add_argument(
        "output",
        type=str,
        nargs="?",
        default="image.png",
        help="Output file path (default: image.png)",
    )
    parser.add_argument("--workers", type=int, default=None, help="Number of worker processes")
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Render in this process without a worker pool",
    )
    parser.add_argument("--gamma", type=float, default=1.0, help="Gamma encoding (default: 1.0)")
    parser.add_argument(
        "--tone-map",
        choices=("none", "reinhard", "exposure"),
        default="none",
        help="Tone mapping method (default: none)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args(argv)


def format_hms(seconds: float) -> str:
    """Format seconds as H:MM:SS, or ``--:--:--`` when unknown."""
    if seconds != seconds or seconds == float("inf"):
        return "--:--:--"
    total = int(seconds)
    return f"{total // 3600}:{total % 3600 // 60:02d}:{total % 60:02d}"


def render_scene(
    width: int = 400,
    height: int = 300,
    samples_per_pixel: int = 32,
    output_path: str = "image.png",
    *,
    workers: int | None = None,
    sequential: bool = False,
    gamma: float = 1.0,
    tone_map: str = "none",
    quiet: bool = False,
) -> Path:
    """Render the room scene and save it.

    Returns:
        Path to the saved image file.
    """
    from src.lumen.core.render import render
    from src.lumen.parallel.regions import render_parallel
    from src.lumen.preview.export import save_png
    from src.lumen.scene.room import RoomParams, create_room_scene

    scene, camera = create_room_scene(RoomParams(width=width, height=height))

    def progress_callback(fraction: float, remaining: float) -> None:
        if not quiet:
            print(
                f"\r{fraction * 100:.1f}% complete. Approx time left: {format_hms(remaining)}.",
                end="",
                flush=True,
            )

    start_time = time.monotonic()
    if sequential:
        film = render(scene, camera, samples_per_pixel, callback=progress_callback)
    else:
        film = render_parallel(
            scene,
            camera,
            samples_per_pixel,
            num_workers=workers,
            callback=progress_callback,
        )
    if not quiet:
        print()
        print(f"took {format_hms(time.monotonic() - start_time)}")

    output_file = Path(output_path)
    save_png(film, output_file, tone_map=tone_map, gamma=gamma)
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(processName)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        render_scene(
            width=args.width,
            height=args.height,
            samples_per_pixel=args.samples,
            output_path=args.output,
            workers=args.workers,
            sequential=args.sequential,
            gamma=args.gamma,
            tone_map=args.tone_map,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        logger.error("Render failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
