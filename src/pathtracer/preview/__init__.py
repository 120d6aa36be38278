"""Preview module: gamma correction, quantization and image export."""

from .export import (
    format_ppm,
    quantize_colors,
    save_png_from_array,
    write_ppm,
)

__all__ = [
    "quantize_colors",
    "format_ppm",
    "write_ppm",
    "save_png_from_array",
]
