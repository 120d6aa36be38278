"""Command line entry point: render a scene to a PPM or PNG image.

Usage:
    pathtracer-render [options]

Options:
    --width WIDTH           Image width in pixels (default: 400)
    --height HEIGHT         Image height in pixels (default: width / aspect ratio)
    --aspect-ratio RATIO    Width / height when --height is not given (default: 16/9)
    --samples SAMPLES       Samples per pixel (default: 100)
    --max-depth DEPTH       Maximum bounces per path (default: 50)
    --seed SEED             Random seed (default: 0)
    --output OUTPUT         .ppm or .png path, or - for PPM on stdout (default: -)
    --scene SCENE           JSON scene file (default: built-in three spheres scene)
    --arch {cpu,gpu}        Taichi backend (default: cpu)
    --batch-size SIZE       Samples per progress update (default: 10)
    --quiet                 Suppress progress output
    --log-level LEVEL       Logging level (default: WARNING)

Example:
    pathtracer-render --width 200 --samples 20 --output three_spheres.png
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import taichi as ti

from pathtracer.logging_config import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 400
DEFAULT_ASPECT_RATIO = 16.0 / 9.0
DEFAULT_SAMPLES = 100
DEFAULT_MAX_DEPTH = 50


@dataclass
class RenderSettings:
    """Image and sampling parameters for one render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels. If None it is derived from width and
            aspect_ratio, truncated and at least 1.
        aspect_ratio: Width / height used when height is None.
        samples_per_pixel: Number of samples averaged per pixel.
        max_depth: Maximum number of surface interactions per path.
        seed: Seed for the per-pixel random streams.
    """

    width: int = DEFAULT_WIDTH
    height: int | None = None
    aspect_ratio: float = DEFAULT_ASPECT_RATIO
    samples_per_pixel: int = DEFAULT_SAMPLES
    max_depth: int = DEFAULT_MAX_DEPTH
    seed: int = 0

    def __post_init__(self) -> None:
        if self.width <= 0:
            raise ValueError(f"width must be positive, got {self.width}")
        if self.height is not None and self.height <= 0:
            raise ValueError(f"height must be positive, got {self.height}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.samples_per_pixel <= 0:
            raise ValueError(f"samples_per_pixel must be positive, got {self.samples_per_pixel}")
        if self.max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")

    @property
    def image_height(self) -> int:
        """The image height in pixels."""
        if self.height is not None:
            return self.height
        return max(1, int(self.width / self.aspect_ratio))

    @property
    def image_aspect_ratio(self) -> float:
        """Width / height of the actual pixel grid, used for the camera."""
        return self.width / self.image_height


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="pathtracer-render",
        description="Render a sphere scene with Monte Carlo path tracing.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=DEFAULT_WIDTH,
        help=f"Image width in pixels (default: {DEFAULT_WIDTH})",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=None,
        help="Image height in pixels (default: width / aspect ratio)",
    )
    parser.add_argument(
        "--aspect-ratio",
        type=float,
        default=DEFAULT_ASPECT_RATIO,
        help="Width / height when --height is not given (default: 16/9)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=DEFAULT_SAMPLES,
        help=f"Number of samples per pixel (default: {DEFAULT_SAMPLES})",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum bounces per path (default: {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed (default: 0)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="-",
        help="Output .ppm or .png path, or - for PPM on stdout (default: -)",
    )
    parser.add_argument(
        "--scene",
        type=Path,
        default=None,
        help="JSON scene file (default: built-in three spheres scene)",
    )
    parser.add_argument(
        "--arch",
        choices=["cpu", "gpu"],
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING)",
    )
    return parser.parse_args(argv)


def load_scene_file(path: Path, aspect_ratio: float):
    """Build a scene and camera from a JSON scene file.

    The file holds the ``materials`` and ``spheres`` lists written by
    SceneManager.to_dict(), plus an optional ``camera`` object with
    ThinLensCamera fields. The camera's aspect ratio always follows the
    image.

    Returns:
        Tuple of (SceneManager, ThinLensCamera).

    Raises:
        ValueError: If the file is not valid JSON or describes an invalid scene.
    """
    from pathtracer.camera.thin_lens import ThinLensCamera
    from pathtracer.scene.manager import SceneManager
    from pathtracer.scene.presets import create_three_spheres_camera

    try:
        data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid scene file {path}: {e}") from e

    scene = SceneManager()
    scene.from_dict(data)

    camera_data = data.get("camera")
    if camera_data is None:
        camera = create_three_spheres_camera(aspect_ratio)
    else:
        try:
            camera = ThinLensCamera(**{**camera_data, "aspect_ratio": aspect_ratio})
        except TypeError as e:
            raise ValueError(f"Invalid camera in scene file {path}: {e}") from e

    return scene, camera


def render(
    settings: RenderSettings,
    output: str = "-",
    scene_path: Path | None = None,
    batch_size: int = 10,
    quiet: bool = False,
) -> None:
    """Render a scene and write the image.

    Args:
        settings: Image size and sampling parameters.
        output: .ppm or .png path, or "-" for PPM on stdout.
        scene_path: Optional JSON scene file; the three spheres scene otherwise.
        batch_size: Number of samples between progress updates.
        quiet: If True, suppress progress output.

    Raises:
        ValueError: If the output extension is not supported or the scene
            is invalid.
    """
    # Lazy imports to allow Taichi initialization first
    from pathtracer.camera.thin_lens import setup_camera
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.scene.presets import create_three_spheres_scene

    suffix = "" if output == "-" else Path(output).suffix.lower()
    if suffix not in ("", ".ppm", ".png"):
        raise ValueError(f"Unsupported output format {suffix!r}, expected .ppm or .png")

    width = settings.width
    height = settings.image_height
    aspect_ratio = settings.image_aspect_ratio

    if scene_path is None:
        _scene, camera = create_three_spheres_scene(aspect_ratio)
    else:
        _scene, camera = load_scene_file(scene_path, aspect_ratio)

    setup_camera(camera)

    renderer = ProgressiveRenderer(
        width, height, max_depth=settings.max_depth, seed=settings.seed
    )

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            progress_pct = (current / target) * 100 if target > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples ({progress_pct:.1f}%)",
                end="",
                file=sys.stderr,
                flush=True,
            )

    renderer.render(
        num_samples=settings.samples_per_pixel,
        batch_size=batch_size,
        callback=progress_callback,
    )

    if not quiet:
        print(file=sys.stderr)  # Newline after progress

    if renderer.nonfinite_sample_count > 0:
        logger.warning(
            "%d samples were NaN or infinite and were left out of the image",
            renderer.nonfinite_sample_count,
        )

    if output == "-":
        renderer.save_ppm(sys.stdout)
    elif suffix == ".png":
        renderer.save_png(output)
    else:
        renderer.save_ppm(output)

    if not quiet:
        print(f"Done in {time.time() - start_time:.2f}s", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        settings = RenderSettings(
            width=args.width,
            height=args.height,
            aspect_ratio=args.aspect_ratio,
            samples_per_pixel=args.samples,
            max_depth=args.max_depth,
            seed=args.seed,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    ti.init(arch=ti.gpu if args.arch == "gpu" else ti.cpu)

    try:
        render(
            settings,
            output=args.output,
            scene_path=args.scene,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    except (OSError, ValueError, RuntimeError) as e:
        logger.error("Render failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
