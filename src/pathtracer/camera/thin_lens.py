"""Thin-lens camera model for primary ray generation.

The camera supports:
- Look-at positioning (lookfrom, lookat, vup)
- Vertical field of view
- Arbitrary aspect ratios
- Depth of field through a circular aperture focused at ``focus_dist``
- Jittered sampling for anti-aliasing

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport lies on the focus plane, ``focus_dist`` in front of the camera.
Rays start at a random point on the lens disk and pass through the viewport
point, so geometry on the focus plane stays sharp and everything else blurs.
With an aperture of 0 the lens collapses to a pinhole and no lens sample is
drawn.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
    >>>
    >>> camera = ThinLensCamera(
    ...     lookfrom=(3.0, 3.0, 2.0),
    ...     lookat=(0.0, 0.0, -1.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=20.0,
    ...     aspect_ratio=16.0 / 9.0,
    ...     aperture=2.0,
    ...     focus_dist=5.196,
    ... )
    >>> setup_camera(camera)
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, make_ray
from pathtracer.core.sampler import random_float
from pathtracer.core.vector import random_in_unit_disk

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Below this length a basis vector is treated as degenerate
_DEGENERATE_EPSILON = 1e-8


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (perspective) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_dist: Distance from the camera to the plane of perfect focus.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_dist: float = 1.0


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

# Camera origin (position)
_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)

# Viewport vectors on the focus plane
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())  # Full width
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())  # Full height
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())  # Lower-left of viewport

_lens_radius = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def _validate_camera(camera: ThinLensCamera) -> None:
    """Reject camera configurations that cannot produce a valid basis.

    Raises:
        ValueError: If any parameter is out of range or the basis is degenerate.
    """
    if not 0.0 < camera.vfov < 180.0:
        raise ValueError(f"vfov must be in (0, 180) degrees, got {camera.vfov}")
    if camera.aspect_ratio <= 0.0:
        raise ValueError(f"aspect_ratio must be positive, got {camera.aspect_ratio}")
    if camera.focus_dist <= 0.0:
        raise ValueError(f"focus_dist must be positive, got {camera.focus_dist}")
    if camera.aperture < 0.0:
        raise ValueError(f"aperture must be non-negative, got {camera.aperture}")


def setup_camera(camera: ThinLensCamera) -> None:
    """Initialize camera state from configuration.

    Computes the camera's orthonormal basis (u, v, w) and the viewport on the
    focus plane. This must be called before rendering.

    Args:
        camera: Camera configuration with position, orientation, FOV and lens.

    Raises:
        ValueError: If the configuration is invalid: lookfrom equal to
            lookat, vup parallel to the view direction, or a parameter out
            of range.
    """
    _validate_camera(camera)

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)

    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    # w points from lookat toward lookfrom (backward)
    w = lookfrom - lookat
    w_norm = np.linalg.norm(w)
    if w_norm < _DEGENERATE_EPSILON:
        raise ValueError("lookfrom and lookat must be distinct points")
    w = w / w_norm

    # u points right (perpendicular to w and vup)
    u = np.cross(vup, w)
    u_norm = np.linalg.norm(u)
    if u_norm < _DEGENERATE_EPSILON:
        raise ValueError("vup must not be parallel to the viewing direction")
    u = u / u_norm

    v = np.cross(w, u)

    horizontal = camera.focus_dist * viewport_width * u
    vertical = camera.focus_dist * viewport_height * v
    lower_left = lookfrom - horizontal / 2.0 - vertical / 2.0 - camera.focus_dist * w

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0

    logger.debug(
        "Camera at %s looking at %s, vfov=%.1f, aperture=%.3f, focus_dist=%.3f",
        camera.lookfrom,
        camera.lookat,
        camera.vfov,
        camera.aperture,
        camera.focus_dist,
    )


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32, stream: ti.i32) -> Ray:
    """Generate a ray through normalized image coordinates (s, t).

    The coordinates are normalized:
    - s = 0: left edge, s = 1: right edge
    - t = 0: bottom edge, t = 1: top edge

    Args:
        s: Horizontal coordinate in [0, 1] (left to right).
        t: Vertical coordinate in [0, 1] (bottom to top).
        stream: Random stream handle, used for the lens sample.

    Returns:
        A Ray from a point on the lens toward the viewport point. The
        direction is not normalized.
    """
    offset = vec3(0.0, 0.0, 0.0)
    if _lens_radius[None] > 0.0:
        rd = _lens_radius[None] * random_in_unit_disk(stream)
        offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    origin = _camera_origin[None] + offset
    target = (
        _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    )
    return make_ray(origin, target - origin)


@ti.func
def _pixel_span(size: ti.i32) -> ti.f32:
    """Divisor mapping pixel indices onto [0, 1]: the last pixel sits at 1."""
    return ti.cast(ti.max(size - 1, 1), ti.f32)


@ti.func
def get_ray_jittered(
    pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32, stream: ti.i32
) -> Ray:
    """Generate a ray through a uniformly random point inside a pixel.

    Uses ``s = (i + u) / (width - 1)`` and ``t = (j + v) / (height - 1)``
    with u, v uniform in [0, 1), so pixel index 0 starts on the left and
    bottom viewport edges and the last index starts on the right and top
    edges.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        stream: Random stream handle for the jitter and lens samples.

    Returns:
        A Ray with random sub-pixel offset for anti-aliasing.
    """
    jitter_u = random_float(stream)
    jitter_v = random_float(stream)

    s = (ti.cast(pixel_i, ti.f32) + jitter_u) / _pixel_span(width)
    t = (ti.cast(pixel_j, ti.f32) + jitter_v) / _pixel_span(height)

    return get_ray(s, t, stream)


@ti.func
def get_ray_centered(
    pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32, stream: ti.i32
) -> Ray:
    """Generate a ray through the pixel's fixed sample point, ``u = v = 0.5``."""
    s = (ti.cast(pixel_i, ti.f32) + 0.5) / _pixel_span(width)
    t = (ti.cast(pixel_j, ti.f32) + 0.5) / _pixel_span(height)
    return get_ray(s, t, stream)


# =============================================================================
# Utility Functions
# =============================================================================


def _field_to_tuple(f) -> tuple[float, float, float]:
    vec = f[None]
    return (float(vec[0]), float(vec[1]), float(vec[2]))


def get_camera_info() -> dict[str, object]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left
        (3-tuples) and lens_radius (float).
    """
    return {
        "origin": _field_to_tuple(_camera_origin),
        "u": _field_to_tuple(_camera_u),
        "v": _field_to_tuple(_camera_v),
        "w": _field_to_tuple(_camera_w),
        "horizontal": _field_to_tuple(_viewport_horizontal),
        "vertical": _field_to_tuple(_viewport_vertical),
        "lower_left": _field_to_tuple(_lower_left_corner),
        "lens_radius": float(_lens_radius[None]),
    }
