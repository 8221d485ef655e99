"""Scene manager coordinating entities, lights, camera and rendering.

This module provides the high-level scene API. A SceneManager owns the
image size, field of view, camera and background, and uploads entities and
lights into the Taichi registries as they are added. A scene is built
incrementally and can be rendered any number of times; changes to the
camera between renders are picked up by the next render.

The Taichi registries are global, so creating a SceneManager (or calling
``clear``) resets every registry.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.geometry import SphereGeometry
    >>> from prism.materials import PhongMaterial
    >>> from prism.scene import EntityBuilder, PointLight
    >>> from prism.scene.manager import SceneManager
    >>>
    >>> scene = SceneManager(width=320, height=240)
    >>> scene.add_entity(
    ...     EntityBuilder(SphereGeometry(), PhongMaterial.from_color((0.8, 0.2, 0.2)))
    ...     .scale(2.0)
    ...     .translate((0.0, 0.0, 10.0))
    ... )
    >>> scene.add_light(PointLight(position=(5.0, 5.0, 0.0), intensity=100.0))
    >>> image = scene.render()  # (240, 320, 3) uint8
"""

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt

from prism.camera.pinhole import Camera, image_plane_distance, ray_to_screen_space, setup_camera
from prism.core.integrator import (
    DEFAULT_BACKGROUND,
    MAX_DEPTH,
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    set_background,
    trace_ray,
)
from prism.core.renderer import DEFAULT_BAND_ROWS, ProgressCallback, Renderer
from prism.materials.phong import PhongMaterial, add_material, clear_materials
from prism.materials.texture import clamp_color, clear_textures
from prism.preview.export import save_png
from prism.scene.entity import Entity, EntityBuilder
from prism.scene.intersection import RayHit, add_entity, cast_ray, clear_scene
from prism.scene.lights import PointLight, add_light, clear_lights

logger = logging.getLogger(__name__)


def _unit_direction(direction: tuple[float, float, float]) -> tuple[float, float, float]:
    vector = np.asarray(direction, dtype=np.float64)
    norm = np.linalg.norm(vector)
    if norm == 0.0:
        raise ValueError(f"Ray direction must be non-zero, got {direction}")
    unit = vector / norm
    return (float(unit[0]), float(unit[1]), float(unit[2]))


class SceneManager:
    """Entities, lights and view settings for one rendered image.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        fov: Field of view across the image width, in degrees.
        camera: The pinhole camera. It may be moved between renders.
        entities: Entities added to the scene, in insertion order.
        lights: Lights added to the scene, in insertion order.
    """

    def __init__(
        self,
        width: int = 800,
        height: int = 600,
        fov: float = 70.0,
        camera: Camera | None = None,
        background: tuple[float, float, float] = DEFAULT_BACKGROUND,
    ) -> None:
        """Initialize an empty scene.

        Raises:
            ValueError: If the image size or field of view is invalid.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({width}x{height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        image_plane_distance(width, fov)

        self.width = width
        self.height = height
        self.fov = fov
        self.camera = camera if camera is not None else Camera()
        self.entities: list[Entity] = []
        self.lights: list[PointLight] = []
        self._material_ids: dict[int, int] = {}
        self._background = clamp_color(background)
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        clear_scene()
        clear_materials()
        clear_textures()
        clear_lights()
        set_background(self._background)

        self.entities.clear()
        self.lights.clear()
        self._material_ids.clear()

    def clear(self) -> None:
        """Remove every entity and light. View settings are kept."""
        self._clear_all()

    @property
    def background(self) -> tuple[float, float, float]:
        """Color returned by rays that hit nothing."""
        return self._background

    @background.setter
    def background(self, color: tuple[float, float, float]) -> None:
        self._background = clamp_color(color)
        set_background(self._background)

    # =========================================================================
    # Scene Construction
    # =========================================================================

    def _material_id(self, material: PhongMaterial) -> int:
        key = id(material)
        if key not in self._material_ids:
            self._material_ids[key] = add_material(material)
        return self._material_ids[key]

    def add_entity(self, entity: Entity | EntityBuilder) -> int:
        """Add an entity to the scene.

        Args:
            entity: A built Entity, or an EntityBuilder to build first.

        Returns:
            The entity index.

        Raises:
            SingularTransformError: If a builder's transform is not invertible.
            RuntimeError: If a registry capacity is exceeded.
        """
        if isinstance(entity, EntityBuilder):
            entity = entity.build()

        material_id = self._material_id(entity.material)
        idx = add_entity(entity, material_id)
        self.entities.append(entity)
        logger.debug(
            "Added %s entity %d with material %d",
            type(entity.geometry).__name__,
            idx,
            material_id,
        )
        return idx

    def add_light(self, light: PointLight) -> int:
        """Add a point light to the scene.

        Returns:
            The light index.

        Raises:
            RuntimeError: If the maximum number of lights is exceeded.
        """
        idx = add_light(light)
        self.lights.append(light)
        logger.debug("Added light %d at %s", idx, light.position)
        return idx

    def get_entity_count(self) -> int:
        """Get the number of entities in the scene."""
        return len(self.entities)

    def get_light_count(self) -> int:
        """Get the number of lights in the scene."""
        return len(self.lights)

    # =========================================================================
    # Queries
    # =========================================================================

    def ray_to_screen_space(
        self, x: float, y: float
    ) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
        """World-space ray through pixel (x, y); the direction is unnormalized."""
        return ray_to_screen_space(self.camera, self.width, self.height, self.fov, x, y)

    def cast_ray(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
    ) -> RayHit | None:
        """Closest entity hit along a ray, or None.

        Raises:
            ValueError: If the direction is the zero vector.
        """
        return cast_ray(origin, _unit_direction(direction))

    def pick(self, x: float, y: float) -> RayHit | None:
        """Closest entity under a pixel, or None."""
        return self.cast_ray(*self.ray_to_screen_space(x, y))

    def trace_ray(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
        depth: int = MAX_DEPTH,
    ) -> tuple[float, float, float]:
        """Color seen along a world-space ray.

        Raises:
            ValueError: If the direction is the zero vector.
        """
        return trace_ray(origin, _unit_direction(direction), depth)

    # =========================================================================
    # Rendering
    # =========================================================================

    def render(
        self,
        max_depth: int = MAX_DEPTH,
        band_rows: int = DEFAULT_BAND_ROWS,
        callback: ProgressCallback | None = None,
    ) -> npt.NDArray[np.uint8]:
        """Render the scene from the current camera.

        Args:
            max_depth: Maximum reflection depth.
            band_rows: Rows rendered per kernel launch.
            callback: Optional progress callback receiving
                (rows_completed, total_rows).

        Returns:
            Array of shape (height, width, 3), dtype uint8, row 0 at the top.
        """
        setup_camera(self.camera, self.width, self.height, self.fov)
        logger.info(
            "Rendering %d entities and %d lights at %dx%d",
            len(self.entities),
            len(self.lights),
            self.width,
            self.height,
        )
        renderer = Renderer(self.width, self.height)
        renderer.render(max_depth=max_depth, band_rows=band_rows, callback=callback)
        return renderer.get_image_uint8()

    def render_to_file(self, filepath: str | Path, max_depth: int = MAX_DEPTH) -> None:
        """Render the scene and save it as a PNG."""
        save_png(self.render(max_depth=max_depth), filepath)

    def __repr__(self) -> str:
        return (
            f"SceneManager(width={self.width}, height={self.height}, fov={self.fov}, "
            f"entities={len(self.entities)}, lights={len(self.lights)})"
        )
