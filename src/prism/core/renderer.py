"""Banded renderer over the Whitted integrator.

This module wraps the integrator's render target and kernels with:
- Full-frame rendering in horizontal bands of rows
- Progress callbacks or a generator for UI updates
- Conversion of the result to float or 8-bit arrays, and saving to disk

Every pixel is independent, so the band size only changes how often
progress is reported; the image is the same for any band size.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.core.renderer import Renderer
    >>> from prism.camera.pinhole import Camera, setup_camera
    >>>
    >>> setup_camera(Camera(), 512, 512, 70.0)
    >>> renderer = Renderer(512, 512)
    >>> renderer.render(band_rows=64)
    >>> image = renderer.get_image_uint8()
"""

import logging
import time
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from prism.core.integrator import (
    MAX_DEPTH,
    clear_render_target,
    get_normalized_image_numpy,
    render_rows,
    setup_render_target,
)
from prism.preview.display import apply_gamma
from prism.preview.export import image_to_uint8, save_png

logger = logging.getLogger(__name__)

# Callback receives (rows_completed, total_rows)
ProgressCallback = Callable[[int, int], None]

DEFAULT_BAND_ROWS = 64


class Renderer:
    """Renders the current scene into the integrator's render target.

    The renderer owns the target dimensions; the scene itself (entities,
    lights, camera, background) lives in the global Taichi fields.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        """Initialize the renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).

        Raises:
            ValueError: If dimensions are invalid or exceed the maximum.
        """
        self._width = width
        self._height = height
        self._rows_rendered = 0
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def rows_rendered(self) -> int:
        """Number of rows rendered since the last reset."""
        return self._rows_rendered

    @property
    def is_complete(self) -> bool:
        """Whether every row has been rendered."""
        return self._rows_rendered >= self._height

    def reset(self) -> None:
        """Clear the image so the next render starts from the top row."""
        clear_render_target()
        self._rows_rendered = 0

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and clear it.

        Raises:
            ValueError: If dimensions are invalid or exceed the maximum.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height
        self._rows_rendered = 0

    def render(
        self,
        max_depth: int = MAX_DEPTH,
        band_rows: int = DEFAULT_BAND_ROWS,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render the full image.

        Args:
            max_depth: Maximum reflection depth.
            band_rows: Rows rendered per kernel launch.
            callback: Optional function called after each band with
                (rows_completed, total_rows).

        Example:
            >>> def progress(done, total):
            ...     print(f"Progress: {done}/{total} rows")
            >>> renderer.render(band_rows=32, callback=progress)
        """
        for done, total in self.render_progressive(max_depth=max_depth, band_rows=band_rows):
            if callback is not None:
                callback(done, total)

    def render_progressive(
        self,
        max_depth: int = MAX_DEPTH,
        band_rows: int = DEFAULT_BAND_ROWS,
    ) -> Generator[tuple[int, int], None, None]:
        """Render the full image, yielding progress after each band.

        Args:
            max_depth: Maximum reflection depth.
            band_rows: Rows rendered per kernel launch.

        Yields:
            Tuple of (rows_completed, total_rows).

        Raises:
            ValueError: If band_rows or max_depth is invalid.
        """
        if band_rows <= 0:
            raise ValueError(f"band_rows must be positive, got {band_rows}")
        if max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}")

        self._rows_rendered = 0
        start = time.perf_counter()

        row = 0
        while row < self._height:
            row_end = min(row + band_rows, self._height)
            render_rows(row, row_end, max_depth)
            row = row_end
            self._rows_rendered = row
            yield (row, self._height)

        logger.info(
            "Rendered %dx%d at depth %d in %.3fs",
            self._width,
            self._height,
            max_depth,
            time.perf_counter() - start,
        )

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the rendered image as a NumPy array.

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).

        Returns:
            NumPy array of shape (height, width, 3) with dtype float32.

        Raises:
            ValueError: If gamma is not positive.
        """
        return apply_gamma(get_normalized_image_numpy(), gamma)

    def get_image_uint8(self, gamma: float = 1.0) -> npt.NDArray[np.uint8]:
        """Get the rendered image as an 8-bit NumPy array.

        Returns:
            NumPy array of shape (height, width, 3) with dtype uint8.
        """
        return image_to_uint8(self.get_image_numpy(gamma=gamma))

    def save_image(self, filepath: str | Path, gamma: float = 1.0) -> None:
        """Save the rendered image to a file (format from the extension)."""
        save_png(self.get_image_uint8(gamma=gamma), filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"rows_rendered={self.rows_rendered})"
        )
