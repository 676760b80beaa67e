"""Output module for writing rendered images.

Components:
    export: Gamma correction, 8-bit quantization, PPM (P3) and PNG writers
"""

from .export import (
    compute_rmse,
    gamma_correct,
    save_png,
    to_display_uint8,
    write_ppm,
)

__all__ = [
    "gamma_correct",
    "to_display_uint8",
    "write_ppm",
    "save_png",
    "compute_rmse",
]
