"""Image export utilities for rendered images.

Rendered colors are already clamped to [0, 1], so export is a
straight quantization to 8 bits with optional gamma correction. Each channel
maps to ``floor(c * 255)``.

Example:
    >>> from prism.preview.export import save_png
    >>> from prism.scene.manager import SceneManager
    >>>
    >>> scene = SceneManager(320, 240)
    >>> save_png(scene.render(), "output.png")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from prism.preview.display import apply_gamma

logger = logging.getLogger(__name__)


def image_to_uint8(
    image: npt.NDArray[np.floating],
    *,
    gamma: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a float image in [0, 1] to uint8.

    Values outside [0, 1] are clamped before quantization.

    Args:
        image: Image array of shape (H, W, 3).
        gamma: Gamma correction value (default 1.0, linear).

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    processed = apply_gamma(np.clip(np.asarray(image, dtype=np.float32), 0.0, 1.0), gamma)
    return (processed * 255.0).astype(np.uint8)


def save_png(
    image: npt.NDArray[np.uint8] | npt.NDArray[np.floating],
    filepath: str | Path,
    *,
    gamma: float = 1.0,
) -> None:
    """Save an RGB image array as a PNG file.

    Args:
        image: Array of shape (H, W, 3), either uint8 or float in [0, 1].
            Row 0 is the top of the image.
        filepath: Output file path.
        gamma: Gamma correction applied to float input (default 1.0).

    Raises:
        ValueError: If the array is not an (H, W, 3) image.
        OSError: If the file cannot be written.
    """
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")

    if image.dtype != np.uint8:
        image = image_to_uint8(image, gamma=gamma)

    PILImage.fromarray(image).save(filepath)
    logger.info("Saved %dx%d image to %s", image.shape[1], image.shape[0], filepath)
