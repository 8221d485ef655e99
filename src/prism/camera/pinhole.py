"""Pinhole camera model for primary ray generation.

The camera is a position and an orthonormal frame:

- view: the viewing direction;
- side: right in the image plane;
- up: up in the image plane.

A pixel (x, y) maps to the world-space direction

    d * view + (x - width / 2) * side + (height / 2 - y) * up

where ``d = (width / 2) / tan(fov / 2)`` places the image plane so the
field of view spans the image width. Pixel (0, 0) is the top-left corner.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.camera.pinhole import Camera, setup_camera, get_camera_ray
    >>>
    >>> camera = Camera(position=(0.0, 5.0, -20.0))
    >>> camera.look_at((0.0, 0.0, 0.0))
    >>> setup_camera(camera, width=800, height=600, fov=70.0)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray = get_camera_ray(400, 300)  # Ray through image center
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from prism.core.matrix import EPSILON
from prism.core.ray import Ray, make_ray

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class Camera:
    """A pinhole camera.

    Attributes:
        position: Eye position in world space.
        view: Unit viewing direction.
        up: Unit up direction of the image plane.
        side: Unit right direction of the image plane.
    """

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    view: tuple[float, float, float] = (0.0, 0.0, 1.0)
    up: tuple[float, float, float] = (0.0, 1.0, 0.0)
    side: tuple[float, float, float] = (1.0, 0.0, 0.0)

    def look_at(self, point: tuple[float, float, float]) -> None:
        """Turn the camera toward a world-space point.

        Rebuilds the frame from the new view direction. Side is ``J x view``,
        falling back to ``K x view`` when the view is vertical.

        Raises:
            ValueError: If ``point`` coincides with the camera position.
        """
        view = np.asarray(point, dtype=np.float64) - np.asarray(self.position, dtype=np.float64)
        norm = np.linalg.norm(view)
        if norm == 0.0:
            raise ValueError(f"Cannot look at the camera position itself: {point}")
        view = view / norm

        side = np.cross((0.0, 1.0, 0.0), view)
        if np.linalg.norm(side) < EPSILON:
            side = np.cross((0.0, 0.0, 1.0), view)
        side = side / np.linalg.norm(side)

        up = np.cross(view, side)
        up = up / np.linalg.norm(up)

        self.view = _as_tuple(view)
        self.side = _as_tuple(side)
        self.up = _as_tuple(up)

    def translate(self, offset: tuple[float, float, float]) -> None:
        """Move the camera without changing its orientation."""
        self.position = (
            self.position[0] + offset[0],
            self.position[1] + offset[1],
            self.position[2] + offset[2],
        )


def _as_tuple(v) -> tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))


def image_plane_distance(width: int, fov: float) -> float:
    """Distance from the eye to the image plane, in pixels.

    Args:
        width: Image width in pixels.
        fov: Field of view across the image width, in degrees.

    Raises:
        ValueError: If the field of view is not in (0, 180).
    """
    if not 0.0 < fov < 180.0:
        raise ValueError(f"Field of view must be in (0, 180) degrees, got {fov}")
    return (width / 2.0) / math.tan(math.radians(fov) / 2.0)


def ray_to_screen_space(
    camera: Camera,
    width: int,
    height: int,
    fov: float,
    x: float,
    y: float,
) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """World-space ray through a pixel, computed on the host.

    Args:
        camera: The camera to shoot from.
        width: Image width in pixels.
        height: Image height in pixels.
        fov: Field of view in degrees.
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).

    Returns:
        Tuple of (origin, direction). The direction is not normalized.
    """
    d = image_plane_distance(width, fov)
    view = np.asarray(camera.view, dtype=np.float64)
    side = np.asarray(camera.side, dtype=np.float64)
    up = np.asarray(camera.up, dtype=np.float64)
    direction = d * view + (x - width / 2.0) * side + (height / 2.0 - y) * up
    return _as_tuple(camera.position), _as_tuple(direction)


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_view = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_up = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_side = ti.Vector.field(3, dtype=ti.f32, shape=())

# Image plane distance and half extents in pixels
_plane_distance = ti.field(dtype=ti.f32, shape=())
_half_width = ti.field(dtype=ti.f32, shape=())
_half_height = ti.field(dtype=ti.f32, shape=())


def setup_camera(camera: Camera, width: int, height: int, fov: float) -> None:
    """Upload camera state for kernels.

    Must be called after any change to the camera and before rendering.

    Args:
        camera: The camera to upload.
        width: Image width in pixels.
        height: Image height in pixels.
        fov: Field of view in degrees.
    """
    _camera_origin[None] = camera.position
    _camera_view[None] = camera.view
    _camera_up[None] = camera.up
    _camera_side[None] = camera.side
    _plane_distance[None] = image_plane_distance(width, fov)
    _half_width[None] = width / 2.0
    _half_height[None] = height / 2.0


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_camera_ray(x: ti.i32, y: ti.i32) -> Ray:
    """Generate the normalized primary ray through pixel (x, y).

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
    """
    direction = (
        _plane_distance[None] * _camera_view[None]
        + (ti.cast(x, ti.f32) - _half_width[None]) * _camera_side[None]
        + (_half_height[None] - ti.cast(y, ti.f32)) * _camera_up[None]
    )
    return make_ray(_camera_origin[None], tm.normalize(direction))


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get the uploaded camera state for debugging.

    Returns:
        Dictionary with origin, view, up and side.
    """
    return {
        "origin": _as_tuple(_camera_origin[None]),
        "view": _as_tuple(_camera_view[None]),
        "up": _as_tuple(_camera_up[None]),
        "side": _as_tuple(_camera_side[None]),
    }
