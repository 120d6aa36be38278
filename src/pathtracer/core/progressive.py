"""Progressive renderer for iterative sample accumulation.

This module provides a convenient wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one call)
- Progress callbacks and a generator interface for progress reporting
- Seeded, reproducible output
- PPM and PNG export

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>> from pathtracer.scene.presets import create_three_spheres_scene
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene(aspect_ratio=2.0)
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(400, 200, seed=7)
    >>> renderer.render(100, batch_size=10)
    >>> renderer.save_ppm("image.ppm")
"""

import logging
import os
import time
from collections.abc import Callable, Generator
from typing import IO

import numpy as np
import numpy.typing as npt

from pathtracer.core.integrator import (
    DEFAULT_MAX_DEPTH,
    clear_render_target,
    get_average_image_numpy,
    get_nonfinite_sample_count,
    get_total_samples,
    render_image,
    setup_render_target,
)
from pathtracer.core.sampler import seed_streams
from pathtracer.preview.export import quantize_colors, save_png_from_array, write_ppm

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


def _check_sample_counts(num_samples: int, batch_size: int) -> None:
    if num_samples <= 0:
        raise ValueError(f"num_samples must be positive, got {num_samples}")
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer keeps width, height and sampling options and delegates to
    the global integrator buffers (which are Taichi fields). The random
    streams are reseeded on construction, reset and resize, so two renderers
    built with the same seed over the same scene produce identical images.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Maximum number of surface interactions per path.
        seed: Seed for the per-pixel random streams.
        jitter: Whether samples are jittered inside each pixel.
    """

    def __init__(
        self,
        width: int,
        height: int,
        max_depth: int = DEFAULT_MAX_DEPTH,
        seed: int | None = 0,
        jitter: bool = True,
    ) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            max_depth: Maximum number of surface interactions per path.
            seed: Seed for the random streams. None draws a fresh seed,
                which is then available as ``self.seed``.
            jitter: Jitter samples inside each pixel for anti-aliasing.

        Raises:
            ValueError: If dimensions are invalid or max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}")

        self._width = width
        self._height = height
        self.max_depth = max_depth
        self.jitter = jitter
        setup_render_target(width, height)
        self.seed = seed_streams(seed)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    @property
    def nonfinite_sample_count(self) -> int:
        """Get the number of samples dropped for being NaN or infinite."""
        return get_nonfinite_sample_count()

    def reset(self) -> None:
        """Reset the accumulator and the random streams for a new render.

        Clears the buffers and counters without changing the image
        dimensions. Rendering again afterwards reproduces the first render.
        """
        clear_render_target()
        seed_streams(self.seed)

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset accumulator.

        Args:
            width: New image width in pixels.
            height: New image height in pixels.

        Raises:
            ValueError: If dimensions exceed maximum supported size.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height
        seed_streams(self.seed)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Raises:
            ValueError: If num_samples or batch_size is not positive.

        Example:
            >>> for current, target in renderer.render_progressive(100, batch_size=10):
            ...     print(f"Progress: {current}/{target} samples")
        """
        _check_sample_counts(num_samples, batch_size)

        start_samples = self.sample_count
        target_samples = start_samples + num_samples

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_image(batch, self.max_depth, self.jitter)
            remaining -= batch
            yield (self.sample_count, target_samples)

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image. The
        batch size does not change the result, only how often the callback
        runs.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each callback.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Raises:
            ValueError: If num_samples or batch_size is not positive.

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        _check_sample_counts(num_samples, batch_size)

        logger.info(
            "Rendering %dx%d at %d samples per pixel (max depth %d)",
            self._width,
            self._height,
            num_samples,
            self.max_depth,
        )
        start = time.perf_counter()

        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

        logger.info("Render finished in %.2fs", time.perf_counter() - start)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the averaged linear image, shape (height, width, 3), top row first."""
        return get_average_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the gamma-corrected 8-bit image, shape (height, width, 3)."""
        return quantize_colors(self.get_image_numpy())

    def save_ppm(self, destination: str | os.PathLike[str] | IO[str]) -> None:
        """Write the current image as a PPM (P3) file or to a text stream."""
        write_ppm(self.get_image_uint8(), destination)

    def save_png(self, filepath: str | os.PathLike[str]) -> None:
        """Write the current image as an 8-bit PNG."""
        save_png_from_array(self.get_image_numpy(), filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
