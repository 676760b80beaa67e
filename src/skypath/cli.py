"""Command-line entry point for rendering sphere scenes.

Usage:
    skypath [options]
    python -m skypath [options]

Options:
    --scene NAME          Built-in scene: random, three-spheres, normals
                          (default: random)
    --scene-file PATH     Load the scene from a JSON file instead
    --width WIDTH         Image width in pixels (default: 400)
    --aspect-ratio RATIO  Width divided by height (default: 1.5)
    --samples SAMPLES     Samples per pixel (default: 100)
    --max-depth DEPTH     Maximum bounces per path (default: 50)
    --seed SEED           Render seed, also used for the random scene (default: 0)
    --no-jitter           Sample pixel corners instead of random points
    --mode MODE           path or normals (default: path)
    --output OUTPUT       Output file, "-" for PPM on stdout (default: -)
                          Paths ending in .png are written as PNG, anything
                          else as PPM
    --arch ARCH           Taichi backend: cpu or gpu (default: cpu)
    --quiet               Suppress progress output

Pixel data goes to the output; progress goes to stderr.

Example:
    skypath --scene three-spheres --width 400 --samples 50 > spheres.ppm
"""

from __future__ import annotations

import argparse
import sys
from typing import TextIO

import taichi as ti

SCENE_NAMES = ("random", "three-spheres", "normals")
MODE_NAMES = ("path", "normals")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="skypath",
        description="Path trace a scene of spheres under a sky gradient.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=SCENE_NAMES,
        default="random",
        help="Built-in scene to render (default: random)",
    )
    parser.add_argument(
        "--scene-file",
        type=str,
        default=None,
        help="JSON scene file to render instead of a built-in scene",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=400,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--aspect-ratio",
        type=float,
        default=3.0 / 2.0,
        help="Image width divided by height (default: 1.5)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Number of samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Maximum number of bounces per path (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Render seed (default: 0)",
    )
    parser.add_argument(
        "--no-jitter",
        action="store_true",
        help="Disable sub-pixel jitter",
    )
    parser.add_argument(
        "--mode",
        choices=MODE_NAMES,
        default="path",
        help="Shading mode (default: path)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="-",
        help='Output file path, "-" for PPM on stdout (default: -)',
    )
    parser.add_argument(
        "--arch",
        choices=("cpu", "gpu"),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


def image_height(width: int, aspect_ratio: float) -> int:
    """Image height for a width and aspect ratio, at least one pixel."""
    return max(1, int(width / aspect_ratio))


def render_scene(args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> None:
    """Render the scene described by parsed arguments and write the image.

    Args:
        args: Parsed command-line arguments.
        stdout: Stream receiving PPM data when the output is "-".
        stderr: Stream receiving progress lines.

    Raises:
        ValueError: If an argument or the scene file is invalid.
        OSError: If the scene file cannot be read or the image written.
    """
    # Lazy imports so Taichi fields are created after ti.init
    from skypath.camera.thin_lens import setup_camera
    from skypath.core.integrator import ShadingMode
    from skypath.core.renderer import RenderSettings, Renderer
    from skypath.scene.presets import create_scene, load_scene_file

    if args.aspect_ratio <= 0:
        raise ValueError(f"aspect ratio must be positive, got {args.aspect_ratio}")

    settings = RenderSettings(
        width=args.width,
        height=image_height(args.width, args.aspect_ratio),
        samples_per_pixel=args.samples,
        max_depth=args.max_depth,
        seed=args.seed,
        jitter=not args.no_jitter,
        mode=ShadingMode.NORMALS if args.mode == "normals" else ShadingMode.PATH,
    )
    settings.validate()

    if args.scene_file is not None:
        _, camera = load_scene_file(args.scene_file, args.aspect_ratio)
    else:
        _, camera = create_scene(args.scene, args.aspect_ratio, seed=args.seed)
    setup_camera(camera)

    renderer = Renderer(settings)

    def progress(remaining: int) -> None:
        if not args.quiet:
            print(f"Scan lines remaining: {remaining}", file=stderr, flush=True)

    renderer.render(progress)

    if args.output == "-":
        renderer.write_ppm(stdout)
        stdout.flush()
    elif args.output.lower().endswith(".png"):
        renderer.save_png(args.output)
    else:
        with open(args.output, "w") as f:
            renderer.write_ppm(f)

    if not args.quiet:
        print("Done.", file=stderr)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Hits against large spheres (the ground) need double precision
    ti.init(arch=ti.gpu if args.arch == "gpu" else ti.cpu, default_fp=ti.f64)

    try:
        render_scene(args, sys.stdout, sys.stderr)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
