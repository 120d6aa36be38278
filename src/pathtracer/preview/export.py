"""Image export utilities for rendered images.

Linear radiance is turned into 8-bit color with gamma 2 (a square root per
channel), clamped to [0, 0.999] and scaled by 256, so the brightest value
truncates to 255 and every output byte covers an equal slice of [0, 1).

Supported formats:
    - PPM (plain-text P3, the renderer's native output)
    - PNG (8-bit via Pillow)

Example:
    >>> from pathtracer.preview.export import write_ppm, quantize_colors
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 200)
    >>> renderer.render(100)
    >>> write_ppm(quantize_colors(renderer.get_image_numpy()), "output.ppm")
"""

from __future__ import annotations

import logging
import os
from typing import IO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

# Upper clamp applied before scaling by 256
MAX_INTENSITY = 0.999


def quantize_colors(image: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    """Gamma-correct and quantize linear colors to 8 bits.

    Applies ``floor(256 * clamp(sqrt(c), 0, 0.999))`` to every channel.
    Negative and NaN inputs map to 0.

    Args:
        image: Linear colors, any shape whose last axis holds channels.

    Returns:
        Array of the same shape with dtype uint8.
    """
    linear = np.asarray(image, dtype=np.float64)
    corrected = np.nan_to_num(np.sqrt(np.maximum(linear, 0.0)), nan=0.0)
    clamped = np.clip(corrected, 0.0, MAX_INTENSITY)
    return (256.0 * clamped).astype(np.uint8)


def _check_pixels(pixels: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    array = np.asarray(pixels)
    if array.ndim != 3 or array.shape[2] != 3:
        raise ValueError(f"Expected pixels of shape (height, width, 3), got {array.shape}")
    return array.astype(np.uint8)


def format_ppm(pixels: npt.ArrayLike) -> str:
    """Format 8-bit pixels as a plain-text PPM (P3) image.

    Args:
        pixels: Array of shape (height, width, 3), top row first.

    Returns:
        The PPM text: ``P3``, ``width height``, ``255``, then one
        ``r g b`` line per pixel in row-major order.

    Raises:
        ValueError: If pixels is not an (H, W, 3) array.
    """
    array = _check_pixels(pixels)
    height, width, _ = array.shape

    lines = ["P3", f"{width} {height}", "255"]
    lines.extend(f"{r} {g} {b}" for r, g, b in array.reshape(-1, 3).tolist())
    return "\n".join(lines) + "\n"


def write_ppm(pixels: npt.ArrayLike, destination: str | os.PathLike[str] | IO[str]) -> None:
    """Write 8-bit pixels as a PPM (P3) image.

    Args:
        pixels: Array of shape (height, width, 3), top row first.
        destination: A file path, or an open text stream such as sys.stdout.
    """
    text = format_ppm(pixels)
    if hasattr(destination, "write"):
        destination.write(text)
    else:
        with open(destination, "w", encoding="ascii") as f:
            f.write(text)
        logger.info("Wrote %s", destination)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str | os.PathLike[str],
) -> None:
    """Save a linear image array as an 8-bit PNG.

    Uses the same gamma and quantization as the PPM output.

    Args:
        image: Linear image array of shape (H, W, 3), top row first.
        filepath: Output file path (should end in .png).
    """
    image_uint8 = quantize_colors(image)

    pil_image = PILImage.fromarray(image_uint8)
    pil_image.save(filepath)
    logger.info("Wrote %s", filepath)
