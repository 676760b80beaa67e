"""Image export utilities for rendered images.

Rendered pixels are linear per-pixel means. Before output they are gamma
corrected with gamma 2 (a square root), clamped just below 1 and quantized
to 8 bits with int(256 * x).

Supported formats:
    - PPM P3 (plain text, written to any text stream)
    - PNG (8-bit via Pillow)

Example:
    >>> import sys
    >>> from skypath.output.export import to_display_uint8, write_ppm
    >>>
    >>> image = renderer.get_image_numpy()
    >>> write_ppm(to_display_uint8(image), sys.stdout)
"""

from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

# Largest value kept before quantization, so 256 * x stays below 256
MAX_DISPLAY_VALUE = 0.999

PPM_MAX_VALUE = 255


def gamma_correct(image: npt.NDArray[np.floating]) -> npt.NDArray[np.float32]:
    """Apply gamma-2 correction (per-channel square root).

    Negative values are clamped to zero first.
    """
    return np.sqrt(np.maximum(image, 0.0)).astype(np.float32)


def to_display_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a linear image to 8-bit display values.

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        Array of the same shape with dtype uint8, each value int(256 * c)
        where c is the gamma-corrected channel clamped to [0, 0.999].
    """
    corrected = np.clip(gamma_correct(image), 0.0, MAX_DISPLAY_VALUE)
    # float64 so values like 0.5 quantize exactly as 256 * 0.5
    return np.floor(256.0 * corrected.astype(np.float64)).astype(np.uint8)


def write_ppm(image: npt.NDArray[np.uint8], stream: TextIO) -> None:
    """Write an 8-bit image as a plain-text P3 PPM.

    The header is "P3", then "<width> <height>", then "255", followed by one
    "R G B" line per pixel in row-major order starting at the top row.

    Args:
        image: Array of shape (H, W, 3), top row first.
        stream: Text stream to write to.

    Raises:
        ValueError: If image is not an (H, W, 3) array.
        OSError: If the stream cannot be written.
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")

    height, width, _ = image.shape
    stream.write(f"P3\n{width} {height}\n{PPM_MAX_VALUE}\n")
    for row in image:
        stream.write("".join(f"{r} {g} {b}\n" for r, g, b in row.tolist()))


def save_png(image: npt.NDArray[np.uint8], filepath: str) -> None:
    """Save an 8-bit (H, W, 3) image as a PNG file using Pillow."""
    pil_image = PILImage.fromarray(np.ascontiguousarray(image, dtype=np.uint8), mode="RGB")
    pil_image.save(filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating[npt.NBitBase]],
    image_b: npt.NDArray[np.floating[npt.NBitBase]],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
