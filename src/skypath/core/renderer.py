"""Render driver tying settings, render target and output together.

The Renderer owns the render target for one image. It renders scan lines
top-first (the order the image is written in), reports progress through a
callback or a generator, and hands finished pixels to the writers in
skypath.output.export.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from skypath.core.renderer import RenderSettings, Renderer
    >>> from skypath.scene.presets import create_three_spheres_scene
    >>> from skypath.camera.thin_lens import setup_camera
    >>>
    >>> settings = RenderSettings(width=200, height=100, samples_per_pixel=10)
    >>> scene, camera = create_three_spheres_scene(aspect_ratio=2.0)
    >>> setup_camera(camera)
    >>>
    >>> renderer = Renderer(settings)
    >>> renderer.render()
    >>> renderer.save_png("spheres.png")
"""

from collections.abc import Callable, Generator
from dataclasses import dataclass
from typing import TextIO

import numpy as np
import numpy.typing as npt

from skypath.core.integrator import (
    DEFAULT_MAX_DEPTH,
    ShadingMode,
    clear_render_target,
    get_color_sum_numpy,
    get_image_numpy,
    get_sample_counts_numpy,
    render_scanline,
    setup_render_target,
)
from skypath.output.export import save_png, to_display_uint8, write_ppm

# Callback receives the number of scan lines still to render (including the
# one about to start)
ScanlineCallback = Callable[[int], None]


@dataclass
class RenderSettings:
    """Image and sampling parameters for one render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Camera rays averaged per pixel.
        max_depth: Bounce budget per path. 0 renders black.
        seed: Seed the whole render is reproducible from.
        jitter: Jitter samples within each pixel. Disabled, every sample of
            a pixel goes through its lower-left corner.
        mode: Full path tracing or normal visualization.
    """

    width: int
    height: int
    samples_per_pixel: int
    max_depth: int = DEFAULT_MAX_DEPTH
    seed: int = 0
    jitter: bool = True
    mode: ShadingMode = ShadingMode.PATH

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def validate(self) -> None:
        """Raise ValueError if the settings cannot produce an image."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.samples_per_pixel <= 0:
            raise ValueError(
                f"samples_per_pixel must be positive, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")


class Renderer:
    """Renders one image into the shared render target.

    The scene and camera must be set up before render() is called; the
    renderer only reads them.

    Attributes:
        settings: The render settings, validated on construction.
    """

    def __init__(self, settings: RenderSettings) -> None:
        """Initialize the renderer and its render target.

        Args:
            settings: Render settings.

        Raises:
            ValueError: If the settings are invalid or the image is larger
                than the render target supports.
        """
        settings.validate()
        self.settings = settings
        setup_render_target(settings.width, settings.height)

    @property
    def width(self) -> int:
        return self.settings.width

    @property
    def height(self) -> int:
        return self.settings.height

    def reset(self) -> None:
        """Clear accumulated samples so the image can be rendered again."""
        clear_render_target()

    def _render_row(self, row: int) -> None:
        settings = self.settings
        render_scanline(
            row,
            settings.samples_per_pixel,
            settings.max_depth,
            settings.seed,
            settings.jitter,
            settings.mode,
        )

    def render(self, callback: ScanlineCallback | None = None) -> None:
        """Render every scan line, top first.

        Args:
            callback: Optional function called before each scan line with
                the number of scan lines remaining.

        Example:
            >>> def progress(remaining):
            ...     print(f"Scan lines remaining: {remaining}", file=sys.stderr)
            >>> renderer.render(progress)
        """
        for remaining in self.render_rows():
            if callback is not None:
                callback(remaining)

    def render_rows(self) -> Generator[int, None, None]:
        """Render scan lines one at a time, top first.

        Yields the number of scan lines remaining before each one is
        rendered, so the caller can report progress or stop early.

        Yields:
            Scan lines remaining, from height down to 1.
        """
        for row in range(self.height - 1, -1, -1):
            yield row + 1
            self._render_row(row)

    def get_image_numpy(self) -> npt.NDArray[np.float64]:
        """Get the linear per-pixel mean colors, shape (height, width, 3)."""
        return get_image_numpy()

    def get_color_sum_numpy(self) -> npt.NDArray[np.float64]:
        """Get the raw per-pixel color sums, shape (height, width, 3)."""
        return get_color_sum_numpy()

    def get_sample_counts_numpy(self) -> npt.NDArray[np.int32]:
        return get_sample_counts_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the gamma-2 corrected 8-bit image, shape (height, width, 3)."""
        return to_display_uint8(self.get_image_numpy())

    def write_ppm(self, stream: TextIO) -> None:
        """Write the image to a text stream as a P3 PPM.

        Raises:
            OSError: If the stream cannot be written.
        """
        write_ppm(self.get_image_uint8(), stream)

    def save_png(self, filepath: str) -> None:
        """Save the image as an 8-bit PNG."""
        save_png(self.get_image_uint8(), filepath)

    def __repr__(self) -> str:
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"samples_per_pixel={self.settings.samples_per_pixel})"
        )
