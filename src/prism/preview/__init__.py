"""Preview module for output and visualization.

Components:
    display: Matplotlib-based preview display
    export: 8-bit PNG export via Pillow

Example:
    >>> from prism.preview import show_preview, save_png
    >>> from prism.scene.manager import SceneManager
    >>>
    >>> scene = SceneManager(320, 240)
    >>> image = scene.render()
    >>> save_png(image, "output.png")
    >>> show_preview(image)
"""

from prism.preview.display import (
    apply_gamma,
    show_preview,
    to_display_float,
)
from prism.preview.export import (
    image_to_uint8,
    save_png,
)

__all__ = [
    # Display functions
    "show_preview",
    "apply_gamma",
    "to_display_float",
    # Export functions
    "save_png",
    "image_to_uint8",
]
