#!/usr/bin/env python3
"""Render the showcase scene.

This script demonstrates end-to-end rendering with the Whitted ray tracer.
It builds the showcase scene and optionally adds a mesh loaded from disk.
It then renders in row bands with progress output and saves a PNG.

Usage:
    python examples/render_showcase.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 800)
    --height HEIGHT     Image height in pixels (default: 600)
    --fov FOV           Field of view in degrees (default: 70)
    --depth DEPTH       Maximum reflection depth (default: 5)
    --band-rows ROWS    Rows per progress update (default: 64)
    --mesh PATH         Optional PLY/OBJ/STL mesh to place in the scene
    --output OUTPUT     Output file path (default: showcase.png)
    --preview           Show the result in a Matplotlib window
    --quiet             Suppress progress output

Example:
    python examples/render_showcase.py --width 400 --height 300 --depth 3
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the showcase scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=800, help="Image width in pixels (default: 800)")
    parser.add_argument("--height", type=int, default=600, help="Image height in pixels (default: 600)")
    parser.add_argument("--fov", type=float, default=70.0, help="Field of view in degrees (default: 70)")
    parser.add_argument("--depth", type=int, default=5, help="Maximum reflection depth (default: 5)")
    parser.add_argument("--band-rows", type=int, default=64, help="Rows per progress update (default: 64)")
    parser.add_argument("--mesh", type=str, default=None, help="Optional mesh file to add to the scene")
    parser.add_argument(
        "--output",
        type=str,
        default="showcase.png",
        help="Output file path (default: showcase.png)",
    )
    parser.add_argument("--preview", action="store_true", help="Show the result in a Matplotlib window")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_showcase(
    width: int = 800,
    height: int = 600,
    fov: float = 70.0,
    max_depth: int = 5,
    band_rows: int = 64,
    mesh_path: str | None = None,
    output_path: str = "showcase.png",
    preview: bool = False,
    quiet: bool = False,
) -> Path:
    """Render the showcase scene and save to file.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from prism.core.matrix import Axis
    from prism.geometry import MeshLoadError, load_mesh
    from prism.materials import PhongMaterial
    from prism.preview import save_png, show_preview
    from prism.scene import EntityBuilder
    from prism.scene.showcase import ShowcaseParams, create_showcase_scene

    if not quiet:
        print(f"Creating showcase scene ({width}x{height})...")

    scene = create_showcase_scene(width, height, ShowcaseParams(fov=fov))

    if mesh_path is not None:
        try:
            mesh = load_mesh(mesh_path)
        except MeshLoadError as e:
            print(f"Skipping mesh: {e}", file=sys.stderr)
        else:
            scene.add_entity(
                EntityBuilder(mesh, PhongMaterial.from_color((0.8, 0.8, 0.2)))
                .scale(4.0)
                .rotate(Axis.Y, 180.0)
                .translate((10.0, -6.0, -8.0))
            )

    if not quiet:
        print(f"Rendering {scene.get_entity_count()} entities, depth {max_depth}...")

    start_time = time.time()

    def progress_callback(done: int, total: int) -> None:
        if not quiet:
            progress_pct = (done / total) * 100 if total > 0 else 0
            print(f"\r  Progress: {done}/{total} rows ({progress_pct:.1f}%)", end="", flush=True)

    image = scene.render(max_depth=max_depth, band_rows=band_rows, callback=progress_callback)

    if not quiet:
        print()  # Newline after progress

    output_file = Path(output_path)
    save_png(image, output_file)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    if preview:
        show_preview(image, title=output_file.name)

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    ti.init(arch=ti.cpu)

    try:
        render_showcase(
            width=args.width,
            height=args.height,
            fov=args.fov,
            max_depth=args.depth,
            band_rows=args.band_rows,
            mesh_path=args.mesh,
            output_path=args.output,
            preview=args.preview,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
