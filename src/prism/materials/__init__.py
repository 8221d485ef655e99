"""Materials module for surface appearance.

This module implements the Phong reflection model and the textures that
feed it:

Components:
    texture: Constant, checker and image textures with scale-and-wrap sampling
    phong: Phong material (ambient/diffuse/specular textures, shininess,
        reflectance) and its field registry

Materials reference textures by id, so adding a material also uploads its
textures. Both registries live in Taichi fields and are sampled from
kernels with ``sample_material`` / ``sample_texture``.
"""

from .phong import (
    MAX_MATERIALS,
    PhongMaterial,
    add_material,
    clear_materials,
    get_material_count,
    get_material_reflectance,
    sample_material,
)
from .texture import (
    MAX_TEXTURES,
    Texture,
    TextureKind,
    add_texture,
    clamp_color,
    clear_textures,
    color_at,
    get_texture_count,
    sample_texture,
)

__all__ = [
    # Phong module
    "MAX_MATERIALS",
    "PhongMaterial",
    "add_material",
    "clear_materials",
    "get_material_count",
    "get_material_reflectance",
    "sample_material",
    # Texture module
    "MAX_TEXTURES",
    "Texture",
    "TextureKind",
    "add_texture",
    "clamp_color",
    "clear_textures",
    "color_at",
    "get_texture_count",
    "sample_texture",
]
