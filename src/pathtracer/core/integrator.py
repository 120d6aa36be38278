"""Path tracing integrator for Monte Carlo light transport.

This module implements the radiance estimate for a single camera ray and the
kernel that averages many of them per pixel.

The radiance of a ray is defined recursively: a ray that runs out of bounce
depth carries no light; a ray that escapes the scene sees the sky gradient;
a ray that hits a surface carries the surface's emission plus the radiance
of the scattered ray, tinted by the material's attenuation. Taichi kernels
cannot recurse, so ``ray_color`` walks the same recursion as a bounded loop
that keeps the product of attenuations seen so far (the throughput).

Samples are accumulated as a running sum plus a per-pixel count, and the
average is taken on the host. Samples with NaN or infinite components are
dropped and counted instead of poisoning the pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.integrator import (
    ...     get_average_image_numpy, render_image, setup_render_target
    ... )
    >>> from pathtracer.scene.presets import create_three_spheres_scene
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene(aspect_ratio=2.0)
    >>> setup_camera(camera)
    >>> setup_render_target(400, 200)
    >>> render_image(samples_per_pixel=100, max_depth=50)
    >>> image = get_average_image_numpy()
"""

import logging

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.camera.thin_lens import get_ray_centered, get_ray_jittered
from pathtracer.core.ray import Ray, make_ray
from pathtracer.core.sampler import get_current_seed, seed_streams
from pathtracer.core.vector import unit
from pathtracer.materials.dielectric import scatter_dielectric_by_id
from pathtracer.materials.lambertian import scatter_lambertian_by_id
from pathtracer.materials.material import make_absorbed, scattered_ray
from pathtracer.materials.metal import scatter_metal_by_id
from pathtracer.materials.normal import emitted_normal, scatter_normal
from pathtracer.scene.intersection import SceneHitRecord, intersect_scene
from pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default maximum ray bounces (path length)
DEFAULT_MAX_DEPTH = 50

# Hits closer than T_MIN are ignored so a scattered ray cannot re-hit the
# surface it starts on through floating point error
T_MIN = 0.001
T_MAX = 1e10

# Sky gradient endpoints, blended by the height of the unit direction
SKY_HORIZON_COLOR = vec3(1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = vec3(0.5, 0.7, 1.0)


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Sum of accepted samples per pixel (preallocated to max size)
_sum_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Accepted sample count per pixel (preallocated to max size)
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Samples dropped because they were NaN or infinite
_nonfinite_count = ti.field(dtype=ti.i32, shape=())

# Samples per pixel requested since the last clear
_total_samples = ti.field(dtype=ti.i32, shape=())

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers. The buffers are
    preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT to avoid Taichi kernel
    recompilation. Random streams are seeded with 0 if nothing seeded them
    yet.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum
            supported size.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    if get_current_seed() is None:
        seed_streams(0)

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers and counters to zero."""
    _sum_buffer.fill(0.0)
    _sample_count.fill(0)
    _nonfinite_count[None] = 0
    _total_samples[None] = 0


def reset_render_target() -> None:
    """Clear the buffers and mark the render target as not set up."""
    clear_render_target()
    _render_target_initialized[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(ray_in: Ray, rec: SceneHitRecord, stream: ti.i32):
    """Dispatch to the scatter function of the hit material.

    Args:
        ray_in: The incoming ray.
        rec: The closest hit, carrying the unified material ID.
        stream: Random stream handle for this path.

    Returns:
        The material's ScatterRecord. Unknown material IDs absorb.
    """
    mat_type = get_material_type(rec.material_id)
    type_index = get_material_type_index(rec.material_id)

    result = make_absorbed()

    if mat_type == int(MaterialType.LAMBERTIAN):
        result = scatter_lambertian_by_id(type_index, ray_in, rec, stream)

    elif mat_type == int(MaterialType.METAL):
        result = scatter_metal_by_id(type_index, ray_in, rec, stream)

    elif mat_type == int(MaterialType.DIELECTRIC):
        result = scatter_dielectric_by_id(type_index, ray_in, rec, stream)

    elif mat_type == int(MaterialType.NORMAL):
        result = scatter_normal()

    return result


@ti.func
def _emitted(rec: SceneHitRecord) -> vec3:
    """Radiance emitted by the hit surface. Only normal materials emit."""
    emission = vec3(0.0, 0.0, 0.0)
    if get_material_type(rec.material_id) == int(MaterialType.NORMAL):
        emission = emitted_normal(rec)
    return emission


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky seen by a ray that leaves the scene.

    White at the horizon, light blue straight up:
    ``(1 - t) * white + t * (0.5, 0.7, 1.0)`` with
    ``t = 0.5 * (unit(direction).y + 1)``.
    """
    t = 0.5 * (unit(direction).y + 1.0)
    return (1.0 - t) * SKY_HORIZON_COLOR + t * SKY_ZENITH_COLOR


@ti.func
def ray_color(ray: Ray, max_depth: ti.i32, stream: ti.i32) -> vec3:
    """Estimate the radiance arriving along a ray.

    Args:
        ray: The ray to trace.
        max_depth: Number of surface interactions allowed. A path that is
            still bouncing when the depth runs out contributes black.
        stream: Random stream handle for this path.

    Returns:
        The estimated radiance (RGB).
    """
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    current = ray

    active = 1

    for _ in range(max_depth):
        if active == 1:
            rec = intersect_scene(current.origin, current.direction, T_MIN, T_MAX)

            if rec.hit == 0:
                radiance += throughput * background_color(current.direction)
                active = 0
            else:
                radiance += throughput * _emitted(rec)

                scatter = _scatter_material(current, rec, stream)
                if scatter.scattered == 0:
                    active = 0
                else:
                    throughput *= scatter.attenuation
                    current = scattered_ray(scatter)

    return radiance


@ti.func
def _is_finite(color: vec3) -> ti.i32:
    finite = 1
    for c in ti.static(range(3)):
        if tm.isnan(color[c]) or tm.isinf(color[c]):
            finite = 0
    return finite


@ti.func
def _pixel_stream(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32) -> ti.i32:
    """Each pixel owns the random stream at its row-major index."""
    return pixel_j * width + pixel_i


@ti.func
def _sample_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    jitter: ti.i32,
) -> vec3:
    """Trace one camera sample through a pixel."""
    stream = _pixel_stream(pixel_i, pixel_j, width)
    ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
    if jitter == 1:
        ray = get_ray_jittered(pixel_i, pixel_j, width, height, stream)
    else:
        ray = get_ray_centered(pixel_i, pixel_j, width, height, stream)
    return ray_color(ray, max_depth, stream)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass(
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    jitter: ti.i32,
):
    """Accumulate samples_per_pixel samples into every pixel.

    Pixels run in parallel; the samples of one pixel run in order on that
    pixel's stream.
    """
    for i, j in ti.ndrange(width, height):
        for _ in range(samples_per_pixel):
            color = _sample_pixel(i, j, width, height, max_depth, jitter)

            if _is_finite(color) == 1:
                _sum_buffer[i, j] += color
                _sample_count[i, j] += 1
            else:
                ti.atomic_add(_nonfinite_count[None], 1)


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    jitter: ti.i32,
) -> vec3:
    """Trace one sample for a specific pixel without accumulating it."""
    return _sample_pixel(pixel_i, pixel_j, width, height, max_depth, jitter)


@ti.kernel
def _trace_single_ray(origin: vec3, direction: vec3, max_depth: ti.i32, stream: ti.i32) -> vec3:
    return ray_color(make_ray(origin, direction), max_depth, stream)


# =============================================================================
# Public Rendering API
# =============================================================================


def render_image(
    samples_per_pixel: int = 1,
    max_depth: int = DEFAULT_MAX_DEPTH,
    jitter: bool = True,
) -> None:
    """Add samples_per_pixel samples to every pixel of the render target.

    Can be called repeatedly to refine the image. Each pixel draws from its
    own random stream, which keeps advancing across calls, so splitting a
    render into several calls gives the same result as one call with the
    combined sample count.

    Args:
        samples_per_pixel: Number of samples to add per pixel.
        max_depth: Maximum number of surface interactions per path.
        jitter: If True, sample uniformly inside each pixel; if False,
            always sample the pixel center.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If samples_per_pixel is not positive or max_depth is
            negative.
    """
    _check_render_target_initialized()

    if samples_per_pixel <= 0:
        raise ValueError(f"samples_per_pixel must be positive, got {samples_per_pixel}")
    if max_depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {max_depth}")

    width, height = get_image_dimensions()
    dropped_before = int(_nonfinite_count[None])

    _render_pass(width, height, samples_per_pixel, max_depth, int(jitter))
    _total_samples[None] += samples_per_pixel

    dropped = int(_nonfinite_count[None]) - dropped_before
    if dropped > 0:
        logger.warning("Dropped %d non-finite samples", dropped)


def render_sample(
    pixel_i: int,
    pixel_j: int,
    max_depth: int = DEFAULT_MAX_DEPTH,
    jitter: bool = True,
) -> tuple[float, float, float]:
    """Trace a single sample for a specific pixel.

    This is a Python-callable function for testing. The sample advances the
    pixel's random stream but is not accumulated.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        max_depth: Maximum number of surface interactions.
        jitter: Whether to jitter the sample inside the pixel.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_i, pixel_j, width, height, max_depth, int(jitter))

    return (float(color[0]), float(color[1]), float(color[2]))


def trace_ray_color(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int = DEFAULT_MAX_DEPTH,
    stream: int = 0,
) -> tuple[float, float, float]:
    """Estimate the radiance along an arbitrary ray.

    Args:
        origin: Ray origin.
        direction: Ray direction (non-zero, need not be unit length).
        max_depth: Maximum number of surface interactions.
        stream: Random stream to draw from.

    Returns:
        Tuple of (R, G, B) radiance values.
    """
    color = _trace_single_ray(vec3(*origin), vec3(*direction), max_depth, stream)
    return (float(color[0]), float(color[1]), float(color[2]))


def get_total_samples() -> int:
    """Get the number of samples per pixel requested since the last clear.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return int(_total_samples[None])


def get_nonfinite_sample_count() -> int:
    """Get the number of samples dropped for being NaN or infinite."""
    return int(_nonfinite_count[None])


def get_sample_count_numpy() -> np.ndarray:
    """Get the accepted sample count per pixel, top row first.

    Returns:
        Integer array of shape (height, width).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    counts = _sample_count.to_numpy()[:width, :height]
    return np.flipud(np.transpose(counts, (1, 0)))


def get_average_image_numpy() -> np.ndarray:
    """Get the averaged linear radiance as a NumPy array.

    Each pixel is the sum of its accepted samples divided by their count;
    pixels without samples are black. Values are not clamped or gamma
    corrected.

    Returns:
        Float32 array of shape (height, width, 3), top row first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    sums = _sum_buffer.to_numpy()[:width, :height, :]
    counts = _sample_count.to_numpy()[:width, :height]

    average = np.zeros_like(sums)
    filled = counts > 0
    average[filled] = sums[filled] / counts[filled][:, np.newaxis]

    # Transpose from (width, height, 3) to (height, width, 3) for standard image format
    image = np.transpose(average, (1, 0, 2))

    # Flip vertically (pixel row 0 is the bottom of the image, files start at the top)
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float32)
