"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure and vector utilities
    matrix: 4x4 affine transforms on the host and in kernels
    integrator: Whitted-style shading, shadows and mirror reflection
    renderer: Banded full-frame rendering with progress reporting
"""

from .matrix import (
    EPSILON,
    Axis,
    Matrix4,
    apply_to_point,
    apply_to_vector,
    compose,
    determinant,
    identity,
    invert,
    rotation,
    scaling,
    to_taichi,
    transform_normal,
    transform_point,
    transform_vector,
    translation,
)
from .ray import (
    Ray,
    make_ray,
    phong_reflect,
    point3,
    ray_at,
    reflect,
    vec2,
    vec3,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from prism.core.integrator or prism.core.renderer when needed.

__all__ = [
    # Ray module
    "Ray",
    "ray_at",
    "make_ray",
    "vec2",
    "vec3",
    "point3",
    "reflect",
    "phong_reflect",
    # Matrix module
    "EPSILON",
    "Axis",
    "Matrix4",
    "identity",
    "translation",
    "rotation",
    "scaling",
    "compose",
    "determinant",
    "invert",
    "apply_to_point",
    "apply_to_vector",
    "to_taichi",
    "transform_point",
    "transform_vector",
    "transform_normal",
]
