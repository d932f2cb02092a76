#!/usr/bin/env python3
"""Interactive house diorama viewer.

Opens a window that re-renders the diorama every frame at an adaptive
internal resolution while the orbit camera is moved from the keyboard.

Usage:
    python examples/interactive_diorama.py [--width W] [--height H] [--textures DIR]

Controls:
    Left / Right   orbit around the house
    Up / Down      raise or lower the camera
    W / S          dolly in or out
    P              save the current frame as diorama_YYYYMMDD_HHMMSS.png
    Esc            quit
"""

from __future__ import annotations

import argparse
import logging
import platform
import sys

import taichi as ti


def initialize_taichi() -> str:
    """Initialize Taichi with the best available backend.

    Returns:
        Name of the backend being used.
    """
    if platform.system() == "Darwin":
        try:
            ti.init(arch=ti.metal)
            return "Metal (GPU)"
        except Exception:
            pass

    try:
        ti.init(arch=ti.gpu)
        return "GPU"
    except Exception:
        pass

    ti.init(arch=ti.cpu)
    return "CPU"


def main() -> int:
    """Main entry point for the interactive viewer."""
    parser = argparse.ArgumentParser(description="Interactive house diorama viewer.")
    parser.add_argument("--width", type=int, default=960, help="Window width (default: 960)")
    parser.add_argument("--height", type=int, default=540, help="Window height (default: 540)")
    parser.add_argument("--textures", type=str, default=None, help="PNG override directory")
    parser.add_argument("--target-ms", type=float, default=30.0, help="Frame time target")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    # Initialize Taichi first (before importing modules that use ti.kernel)
    backend = initialize_taichi()
    print(f"Taichi backend: {backend}")

    from diorama.core.adaptive import QualityConfig
    from diorama.preview.interactive import InteractivePreview
    from diorama.scene.diorama import DioramaParams, create_diorama_scene

    if not InteractivePreview.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        return 1

    params = DioramaParams(texture_dir=args.textures, aspect_ratio=args.width / args.height)
    _, camera = create_diorama_scene(params)
    preview = InteractivePreview(
        args.width,
        args.height,
        camera,
        quality_config=QualityConfig(target_ms=args.target_ms),
    )

    print("Arrows orbit, W/S dolly, P saves a frame, Esc quits.")
    try:
        preview.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        preview.close()
        print("Preview window closed.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
