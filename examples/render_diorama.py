#!/usr/bin/env python3
"""Render the house diorama to a PNG.

Renders a fixed number of frames so the adaptive resolution controller can
settle (or one full-resolution frame with --fixed), then writes the last
frame at display resolution.

Usage:
    python examples/render_diorama.py [options]

Options:
    --width WIDTH         Display width in pixels (default: 960)
    --height HEIGHT       Display height in pixels (default: 540)
    --frames FRAMES       Frames to render before saving (default: 1)
    --fixed               Disable adaptive resolution
    --orbit RADIANS       Azimuth offset applied to the camera (default: 0)
    --textures DIR        Directory with PNG texture/skybox overrides
    --output OUTPUT       Output file path (default: diorama.png)
    --save-scene JSON     Also write the scene description as JSON
    --quiet               Suppress progress output

Example:
    python examples/render_diorama.py --width 480 --height 270 --orbit 0.5
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the house diorama.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=960, help="Display width (default: 960)")
    parser.add_argument("--height", type=int, default=540, help="Display height (default: 540)")
    parser.add_argument(
        "--frames", type=int, default=1, help="Frames to render before saving (default: 1)"
    )
    parser.add_argument("--fixed", action="store_true", help="Disable adaptive resolution")
    parser.add_argument(
        "--orbit", type=float, default=0.0, help="Camera azimuth offset in radians (default: 0)"
    )
    parser.add_argument("--textures", type=str, default=None, help="PNG override directory")
    parser.add_argument(
        "--output", type=str, default="diorama.png", help="Output file path (default: diorama.png)"
    )
    parser.add_argument("--save-scene", type=str, default=None, help="Write scene JSON here")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_diorama(
    width: int = 960,
    height: int = 540,
    num_frames: int = 1,
    adaptive: bool = True,
    orbit: float = 0.0,
    texture_dir: str | None = None,
    output_path: str = "diorama.png",
    scene_path: str | None = None,
    quiet: bool = False,
) -> Path:
    """Render the diorama and save the last frame.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from diorama.core.renderer import FrameRenderer
    from diorama.preview.export import save_png
    from diorama.scene.diorama import DioramaParams, create_diorama_scene

    if not quiet:
        print(f"Creating diorama scene ({width}x{height})...")

    params = DioramaParams(texture_dir=texture_dir, aspect_ratio=width / height)
    scene, camera = create_diorama_scene(params)
    camera.orbit(orbit, 0.0)

    if scene_path is not None:
        Path(scene_path).write_text(json.dumps(scene.to_dict(), indent=2))
        if not quiet:
            print(f"Scene written to: {scene_path}")

    renderer = FrameRenderer(width, height, adaptive=adaptive)

    start_time = time.time()
    for frame in range(max(1, num_frames)):
        stats = renderer.render_frame(camera)
        if not quiet:
            print(
                f"\r  Frame {frame + 1}/{num_frames}: {stats.width}x{stats.height} "
                f"in {stats.frame_ms:.1f} ms (next scale {stats.next_scale:.2f})",
                end="",
                flush=True,
            )
    if not quiet:
        print()

    output_file = Path(output_path)
    save_png(renderer, str(output_file))

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO)

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_diorama(
            width=args.width,
            height=args.height,
            num_frames=args.frames,
            adaptive=not args.fixed,
            orbit=args.orbit,
            texture_dir=args.textures,
            output_path=args.output,
            scene_path=args.save_scene,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
