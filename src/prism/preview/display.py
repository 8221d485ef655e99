"""Display-space conversion and a Matplotlib preview window.

Rendered colors leave the integrator already clamped to [0, 1], so display
conversion only has to handle the storage type (float buffer or 8-bit
export) and an optional gamma curve. Matplotlib is imported when a window is
opened, not at module import.

Example:
    >>> from prism.preview.display import show_preview
    >>> from prism.scene.manager import SceneManager
    >>>
    >>> scene = SceneManager(320, 240)
    >>> show_preview(scene.render(), title="Empty scene")
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt


def apply_gamma(
    image: npt.NDArray[np.floating],
    gamma: float = 2.2,
) -> npt.NDArray[np.floating]:
    """Raise each channel to ``1 / gamma``.

    Args:
        image: Linear float image of shape (H, W, 3).
        gamma: Display gamma; 1.0 leaves the image untouched.

    Returns:
        The corrected float32 image, or ``image`` itself when gamma is 1.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image

    # Negative channels would turn into NaN under a fractional power
    linear = np.clip(image, 0.0, 1.0)
    return np.power(linear, 1.0 / gamma).astype(np.float32)


def to_display_float(image: npt.NDArray[np.generic]) -> npt.NDArray[np.float32]:
    """Convert a uint8 or float image to float32 in [0, 1]."""
    image = np.asarray(image)
    if image.dtype == np.uint8:
        return image.astype(np.float32) / 255.0
    return np.clip(image, 0.0, 1.0).astype(np.float32)


def show_preview(
    image: npt.NDArray[np.generic],
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Open a Matplotlib window showing a rendered frame.

    Args:
        image: Array of shape (H, W, 3), uint8 or float in [0, 1], row 0 at
            the top.
        title: Window title; defaults to the frame size.
        figsize: Figure size in inches.
        block: Wait for the window to close before returning.
    """
    import matplotlib.pyplot as plt

    frame = to_display_float(image)
    height, width = frame.shape[:2]

    _, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(frame, interpolation="nearest")
    ax.set_axis_off()
    ax.set_title(title if title is not None else f"Render Preview - {width}x{height}")

    plt.tight_layout()
    plt.show(block=block)
