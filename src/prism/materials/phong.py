"""Phong reflection material.

A Phong material has three texture channels: ambient (ka), diffuse (kd) and
specular (ks). Each channel is sampled at the hit point's surface
coordinate. The material also has a shininess exponent (alpha) for the
specular lobe, and a reflectance in [0, 1]. Reflectance sets how much of the
final color comes from a mirror reflection rather than from local shading.

Materials are stored in a registry of Taichi fields; each material records
the texture ids of its three channels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.materials.phong import PhongMaterial, add_material
    >>> mirror = PhongMaterial.from_color((0.8, 0.8, 0.8)).with_reflectance(0.9)
    >>> material_id = add_material(mirror)
"""

from dataclasses import dataclass, field, replace

import numpy as np
import taichi as ti

from prism.core.ray import vec2
from prism.materials.texture import Color, Texture, add_texture, sample_texture


@dataclass(frozen=True, eq=False)
class PhongMaterial:
    """Phong material parameters.

    Attributes:
        ambient: Ambient reflectance (ka) texture.
        diffuse: Diffuse reflectance (kd) texture.
        specular: Specular reflectance (ks) texture.
        shininess: Specular exponent (alpha), non-negative.
        reflectance: Mirror contribution in [0, 1]; 0 is fully local shading.
    """

    ambient: Texture = field(default_factory=lambda: Texture.solid((0.1, 0.1, 0.1)))
    diffuse: Texture = field(default_factory=lambda: Texture.solid((0.7, 0.7, 0.7)))
    specular: Texture = field(default_factory=lambda: Texture.solid((0.2, 0.2, 0.2)))
    shininess: float = 20.0
    reflectance: float = 0.0

    def __post_init__(self) -> None:
        if self.shininess < 0.0:
            raise ValueError(f"Shininess must be non-negative, got {self.shininess}")
        if self.reflectance < 0.0 or self.reflectance > 1.0:
            raise ValueError(f"Reflectance {self.reflectance} is outside [0, 1]")

    @classmethod
    def from_color(
        cls,
        color: Color,
        shininess: float = 20.0,
        reflectance: float = 0.0,
    ) -> "PhongMaterial":
        """A plain material: dim ambient and full diffuse in ``color``, white highlights."""
        return cls(
            ambient=Texture.solid(tuple(0.1 * c for c in color)),
            diffuse=Texture.solid(color),
            specular=Texture.solid((1.0, 1.0, 1.0)),
            shininess=shininess,
            reflectance=reflectance,
        )

    @classmethod
    def from_texture(
        cls,
        texture: Texture,
        shininess: float = 20.0,
        reflectance: float = 0.0,
    ) -> "PhongMaterial":
        """Use one texture for the ambient and diffuse channels."""
        return cls(
            ambient=texture,
            diffuse=texture,
            specular=Texture.solid((1.0, 1.0, 1.0)),
            shininess=shininess,
            reflectance=reflectance,
        )

    @classmethod
    def random_color(cls, rng: np.random.Generator | None = None) -> "PhongMaterial":
        """A plain material with a random diffuse color."""
        rng = rng if rng is not None else np.random.default_rng()
        r, g, b = rng.random(3)
        return cls.from_color((float(r), float(g), float(b)))

    def with_reflectance(self, reflectance: float) -> "PhongMaterial":
        """Copy of this material with a different reflectance."""
        return replace(self, reflectance=reflectance)


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_MATERIALS = 256

material_ambient_textures = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_diffuse_textures = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_specular_textures = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_shininess = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_reflectance = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all Phong materials.

    Textures are registered separately and must be cleared with
    ``clear_textures``.
    """
    num_materials[None] = 0


def add_material(material: PhongMaterial) -> int:
    """Add a Phong material and its textures to the registries.

    A texture object shared by several channels is uploaded once.

    Args:
        material: The material to upload.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the material or texture capacity is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    uploaded: dict[int, int] = {}
    channel_ids = []
    for texture in (material.ambient, material.diffuse, material.specular):
        if id(texture) not in uploaded:
            uploaded[id(texture)] = add_texture(texture)
        channel_ids.append(uploaded[id(texture)])

    material_ambient_textures[idx] = channel_ids[0]
    material_diffuse_textures[idx] = channel_ids[1]
    material_specular_textures[idx] = channel_ids[2]
    material_shininess[idx] = material.shininess
    material_reflectance[idx] = material.reflectance
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the registry."""
    return int(num_materials[None])


@ti.func
def sample_material(material_id: ti.i32, uv: vec2):
    """Resolve a material's reflectance channels at a surface coordinate.

    Args:
        material_id: The index of the material in the registry.
        uv: Surface coordinate of the shaded point.

    Returns:
        A tuple (ka, kd, ks, shininess) of sampled colors and exponent.
    """
    ka = sample_texture(material_ambient_textures[material_id], uv)
    kd = sample_texture(material_diffuse_textures[material_id], uv)
    ks = sample_texture(material_specular_textures[material_id], uv)
    return ka, kd, ks, material_shininess[material_id]


@ti.func
def get_material_reflectance(material_id: ti.i32) -> ti.f32:
    """Mirror contribution of a material."""
    return material_reflectance[material_id]
