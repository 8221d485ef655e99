"""Infinite one-sided plane primitive.

A plane is an origin point and a unit normal. Only its front face is
visible: rays travelling with the normal, or parallel to the plane, miss.

UV coordinates project the hit point onto an orthonormal basis of the plane
and are returned unwrapped, so a texture's scale controls the tiling period.
"""

import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from prism.core.matrix import EPSILON
from prism.core.ray import point3, vec2, vec3
from prism.geometry.sphere import HitRecord, miss_record


@dataclass(frozen=True)
class PlaneGeometry:
    """Host-side description of a plane in object space.

    Attributes:
        origin: Any point on the plane.
        normal: Front-face normal; normalized on construction.
    """

    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)
    normal: tuple[float, float, float] = (0.0, 1.0, 0.0)

    def __post_init__(self) -> None:
        norm = math.sqrt(sum(c * c for c in self.normal))
        if norm == 0.0:
            raise ValueError("Plane normal must be non-zero")
        object.__setattr__(self, "normal", tuple(c / norm for c in self.normal))


@ti.dataclass
class Plane:
    """A plane through ``origin`` facing along unit ``normal``."""

    origin: point3
    normal: vec3


@ti.func
def hit_plane(ray_origin: point3, ray_direction: vec3, plane: Plane) -> HitRecord:
    """Intersect a ray with the front face of a plane.

    Computes ``t = (o - p0) . n / (-u . n)``. The ray is rejected when the
    denominator is below EPSILON (parallel, or approaching from behind) or
    when ``t`` is not strictly positive.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        plane: The plane to test.

    Returns:
        A HitRecord with the plane normal on a hit.
    """
    result = miss_record()
    denom = tm.dot(-ray_direction, plane.normal)
    if denom >= EPSILON:
        t = tm.dot(ray_origin - plane.origin, plane.normal) / denom
        if t > 0.0:
            result = HitRecord(
                hit=1,
                t=t,
                point=ray_origin + t * ray_direction,
                normal=plane.normal,
            )
    return result


@ti.func
def plane_basis(normal: vec3):
    """Orthonormal in-plane axes (u_hat, v_hat) for a unit normal.

    The first axis comes from ``n x K``; when the normal is (anti)parallel to
    K it falls back to ``n x -J``.
    """
    candidate = tm.cross(normal, vec3(0.0, 0.0, 1.0))
    if tm.length(candidate) < EPSILON:
        candidate = tm.cross(normal, vec3(0.0, -1.0, 0.0))
    u_hat = tm.normalize(candidate)
    v_hat = tm.cross(u_hat, normal)
    return u_hat, v_hat


@ti.func
def plane_uv(point: point3, plane: Plane) -> vec2:
    """Project a point onto the plane's in-plane axes."""
    u_hat, v_hat = plane_basis(plane.normal)
    offset = point - plane.origin
    return vec2(tm.dot(offset, u_hat), tm.dot(offset, v_hat))
