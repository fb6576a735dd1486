#!/usr/bin/env python3
"""Render a sphere scene to a PNG or PPM file.

The scene is either one of the built-in demo scenes or a JSON scene
description (see SceneManager.load_json). Render options come from the
command line, optionally on top of a JSON settings file.

Usage:
    python -m examples.render_spheres [options]

Options:
    --scene NAME        Demo scene: three-spheres or cover (default: three-spheres)
    --scene-file PATH   JSON scene description (overrides --scene; needs --settings
                        for the camera)
    --settings PATH     JSON render settings (image size, sampling, camera)
    --width WIDTH       Image width in pixels (default: 400)
    --samples SAMPLES   Samples per pixel (default: 100)
    --depth DEPTH       Maximum bounce depth (default: 50)
    --aperture SIZE     Lens diameter for the three-spheres scene (default: 0)
    --seed SEED         Layout seed of the cover scene (default: 0)
    --threads N         Worker threads (default: all cores)
    --output OUTPUT     Output file, .png or .ppm (default: spheres.png)
    --batch-size SIZE   Samples per progress update (default: 10)
    --log-level LEVEL   Log level (default: $PATHTRACER_LOG_LEVEL or INFO)
    --quiet             Suppress progress output

Example:
    python -m examples.render_spheres --scene cover --width 600 --samples 50
"""

import argparse
import dataclasses
import logging
import sys
import time
from pathlib import Path

import taichi as ti

logger = logging.getLogger("src.pathtracer.examples.render_spheres")

SCENES = ("three-spheres", "cover")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a sphere scene with the path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=SCENES,
        default="three-spheres",
        help="Demo scene to render (default: three-spheres)",
    )
    parser.add_argument(
        "--scene-file",
        type=Path,
        default=None,
        help="JSON scene description (overrides --scene)",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="JSON render settings file",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=None,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=None,
        help="Number of samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=None,
        help="Maximum bounce depth (default: 50)",
    )
    parser.add_argument(
        "--aperture",
        type=float,
        default=0.0,
        help="Lens diameter for the three-spheres scene (default: 0)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Layout seed of the cover scene (default: 0)",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Number of worker threads (default: all cores)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="spheres.png",
        help="Output file path, .png or .ppm (default: spheres.png)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: $PATHTRACER_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace, camera):
    """Combine the settings file, the scene camera and command-line overrides."""
    from src.pathtracer.config import RenderSettings, load_render_settings

    if args.settings is not None:
        settings = load_render_settings(args.settings)
    elif camera is not None:
        settings = RenderSettings(camera=camera)
    else:
        raise ValueError("--scene-file requires --settings to provide the camera")

    overrides = {}
    if args.width is not None:
        overrides["image_width"] = args.width
    if args.samples is not None:
        overrides["samples_per_pixel"] = args.samples
    if args.depth is not None:
        overrides["max_depth"] = args.depth
    return dataclasses.replace(settings, **overrides)


def render_spheres(args: argparse.Namespace) -> Path:
    """Build the scene, render it and save the image.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.pathtracer.preview.export import save_image
    from src.pathtracer.render import render
    from src.pathtracer.scene.demo import create_random_spheres_scene, create_three_spheres_scene
    from src.pathtracer.scene.manager import SceneManager

    camera = None
    if args.scene_file is not None:
        scene = SceneManager()
        scene.load_json(args.scene_file)
    elif args.scene == "cover":
        scene, camera = create_random_spheres_scene(seed=args.seed)
    else:
        scene, camera = create_three_spheres_scene(aperture=args.aperture)

    settings = build_settings(args, camera)
    logger.info("Scene has %d spheres", scene.get_sphere_count())

    start_time = time.time()
    total_passes = settings.samples_per_pixel * settings.image_width * settings.image_height

    def progress_callback(completed: int, target: int) -> None:
        if not args.quiet:
            elapsed = time.time() - start_time
            progress_pct = (completed / target) * 100 if target > 0 else 0
            print(
                f"\r  Progress: {progress_pct:.1f}% ({elapsed:.1f}s)",
                end="",
                flush=True,
            )

    image = render(
        settings,
        scene,
        batch_size=args.batch_size,
        callback=progress_callback,
    )

    if not args.quiet:
        print()  # Newline after progress

    output_file = Path(args.output)
    save_image(image, output_file)

    total_time = time.time() - start_time
    logger.info("Saved %s (%d samples traced in %.2fs)", output_file.absolute(), total_passes, total_time)
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Taichi must be initialized before any module allocates fields
    init_kwargs = {"arch": ti.cpu}
    if args.threads is not None:
        init_kwargs["cpu_max_num_threads"] = args.threads
    ti.init(**init_kwargs)

    from src.pathtracer.config import configure_logging

    configure_logging(args.log_level)

    try:
        render_spheres(args)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        logger.error("Render failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
