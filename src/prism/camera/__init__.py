"""Camera module for view and ray generation.

Components:
    pinhole: Pinhole (perspective) camera with look-at positioning

Ray generation uses pixel coordinates:
    x in [0, width): left to right across the image
    y in [0, height): top to bottom across the image
"""

from .pinhole import (
    Camera,
    get_camera_info,
    get_camera_ray,
    image_plane_distance,
    ray_to_screen_space,
    setup_camera,
)

__all__ = [
    "Camera",
    "setup_camera",
    "get_camera_ray",
    "get_camera_info",
    "image_plane_distance",
    "ray_to_screen_space",
]
