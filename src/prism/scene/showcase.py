"""Showcase scene configuration.

This module provides a factory for a small demo scene that exercises every
shape, texture kind and the mirror reflection path:

- A checkered floor plane below the scene
- A green Phong sphere
- A sphere wrapped in a procedurally generated image texture
- A mirror sphere reflecting the rest of the scene
- A cube rotated about two axes
- A small pyramid mesh
- Two point lights, one low and dim, one high and bright

The camera sits on the -Z axis looking toward +Z.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.scene.showcase import create_showcase_scene
    >>>
    >>> scene = create_showcase_scene(400, 300)
    >>> image = scene.render()
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from prism.camera.pinhole import Camera
from prism.core.matrix import Axis
from prism.geometry import BoxGeometry, MeshGeometry, PlaneGeometry, SphereGeometry
from prism.materials import PhongMaterial, Texture
from prism.scene.entity import EntityBuilder
from prism.scene.lights import PointLight
from prism.scene.manager import SceneManager

# =============================================================================
# Showcase Parameters
# =============================================================================


@dataclass
class ShowcaseParams:
    """Parameters for configuring the showcase scene.

    Attributes:
        fov: Field of view in degrees.
        camera_position: Eye position; the camera looks at the origin.
        background: Color of rays that escape the scene.
        mirror_reflectance: Reflectance of the mirror sphere.
        floor_scale: Checker period of the floor, in world units.
        key_light_intensity: Intensity of the high light.
        fill_light_intensity: Intensity of the low light.

    Example:
        >>> params = ShowcaseParams(mirror_reflectance=0.5)
        >>> params.floor_scale
        5.0
    """

    fov: float = 70.0
    camera_position: tuple[float, float, float] = (0.0, 0.0, -35.0)
    background: tuple[float, float, float] = (0.0, 0.03, 0.03)
    mirror_reflectance: float = 0.8
    floor_scale: float = 5.0
    key_light_intensity: float = 300.0
    fill_light_intensity: float = 50.0


# =============================================================================
# Scene Constants
# =============================================================================

FLOOR_HEIGHT = -10.0
DIM_AMBIENT = (0.03, 0.03, 0.03)

# Square pyramid: base at y = 0 spanning [-1, 1] in x and z, apex at y = 1.5
PYRAMID_VERTICES = (
    (-1.0, 0.0, 1.0),
    (1.0, 0.0, 1.0),
    (1.0, 0.0, -1.0),
    (-1.0, 0.0, -1.0),
    (0.0, 1.5, 0.0),
)
PYRAMID_FACES = (
    (0, 1, 4),
    (1, 2, 4),
    (2, 3, 4),
    (3, 0, 4),
    (3, 2, 1),
    (3, 1, 0),
)


def make_stripe_image(width: int = 64, height: int = 32) -> npt.NDArray[np.uint8]:
    """Procedural RGB image of latitude bands with a longitude gradient.

    Returns:
        Array of shape (height, width, 3), dtype uint8.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    rows = np.arange(height)[:, None]
    cols = np.arange(width)[None, :]

    bands = (rows * 8 // height) % 2
    gradient = cols / max(width - 1, 1)

    image = np.zeros((height, width, 3), dtype=np.float64)
    image[..., 0] = 0.9 * gradient
    image[..., 1] = 0.3 + 0.5 * bands
    image[..., 2] = 0.9 * (1.0 - gradient)
    return (image * 255.0).astype(np.uint8)


def _material(diffuse: Texture, reflectance: float = 0.0) -> PhongMaterial:
    return PhongMaterial(
        ambient=Texture.solid(DIM_AMBIENT),
        diffuse=diffuse,
        specular=Texture.solid((1.0, 1.0, 1.0)),
        shininess=20.0,
        reflectance=reflectance,
    )


# =============================================================================
# Showcase Factory
# =============================================================================


def create_showcase_scene(
    width: int = 800,
    height: int = 600,
    params: ShowcaseParams | None = None,
) -> SceneManager:
    """Create the showcase scene.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        params: Optional ShowcaseParams. If None, uses default ShowcaseParams().

    Returns:
        A populated SceneManager with its camera aimed at the origin.

    Example:
        >>> scene = create_showcase_scene(320, 240)
        >>> scene.get_entity_count()
        6
        >>> scene.get_light_count()
        2
    """
    if params is None:
        params = ShowcaseParams()

    camera = Camera(position=params.camera_position)
    camera.look_at((0.0, 0.0, 0.0))

    scene = SceneManager(
        width=width,
        height=height,
        fov=params.fov,
        camera=camera,
        background=params.background,
    )

    # Floor
    floor = Texture.checker((0.4, 0.4, 0.4), DIM_AMBIENT, scale=params.floor_scale)
    scene.add_entity(
        EntityBuilder(PlaneGeometry(), _material(floor)).translate((0.0, FLOOR_HEIGHT, 0.0))
    )

    # Spheres
    scene.add_entity(
        EntityBuilder(SphereGeometry(), _material(Texture.solid((0.0, 1.0, 0.0))))
        .scale(5.0)
        .translate((-5.0, 0.0, 5.0))
    )
    scene.add_entity(
        EntityBuilder(SphereGeometry(), _material(Texture.image(make_stripe_image())))
        .scale(6.0)
        .rotate(Axis.Y, 30.0)
        .translate((8.0, 0.0, 2.0))
    )
    scene.add_entity(
        EntityBuilder(
            SphereGeometry(),
            _material(Texture.solid((0.8, 0.8, 0.8)), reflectance=params.mirror_reflectance),
        )
        .scale(4.0)
        .translate((0.0, -6.0, 14.0))
    )

    # Cube
    scene.add_entity(
        EntityBuilder(BoxGeometry(), _material(Texture.solid((0.9, 0.5, 0.1))))
        .scale(4.0)
        .rotate(Axis.X, -45.0)
        .rotate(Axis.Y, 45.0)
        .translate((-10.0, 8.0, 10.0))
    )

    # Pyramid
    pyramid = MeshGeometry.from_arrays(PYRAMID_VERTICES, PYRAMID_FACES)
    scene.add_entity(
        EntityBuilder(pyramid, _material(Texture.solid((0.0, 0.0, 1.0))))
        .scale(3.0)
        .rotate(Axis.Y, 20.0)
        .translate((-8.0, FLOOR_HEIGHT, -6.0))
    )

    # Lights
    scene.add_light(
        PointLight(
            position=(-2.0, -4.0, -3.0),
            ambient=(1.0, 1.0, 1.0),
            intensity=params.fill_light_intensity,
        )
    )
    scene.add_light(
        PointLight(
            position=(0.0, 20.0, -12.0),
            ambient=(1.0, 1.0, 1.0),
            intensity=params.key_light_intensity,
        )
    )

    return scene
