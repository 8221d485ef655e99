"""Sphere primitive with robust ray-sphere intersection.

This module provides the Sphere dataclass, the shared HitRecord returned by
every primitive, and an intersection function using the robust quadratic
formula from Ray Tracing Gems to avoid floating-point artifacts.

Intersection runs in the sphere's own (object) space. Rays arriving from an
entity's inverse transform are generally not unit length, so the quadratic
coefficient ``a = u . u`` is kept rather than assumed to be one.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, 10), radius=5.0)
    >>> # Use hit_sphere within a Taichi kernel
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from prism.core.ray import point3, vec2, vec3


@dataclass(frozen=True)
class SphereGeometry:
    """Host-side description of a sphere in object space.

    Attributes:
        center: Center of the sphere.
        radius: Radius of the sphere (positive).
    """

    center: tuple[float, float, float] = (0.0, 0.0, 0.0)
    radius: float = 1.0

    def __post_init__(self) -> None:
        if self.radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {self.radius}")


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (point3).
        radius: The radius of the sphere (positive float).
    """

    center: point3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
            Only valid if hit == 1.
        point: The 3D point where the ray intersected the surface.
            Only valid if hit == 1.
        normal: The surface normal at the intersection point (unit length
            in the primitive's space). Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: point3
    normal: vec3


@ti.func
def miss_record() -> HitRecord:
    """A HitRecord with hit=0 and zeroed payload."""
    return HitRecord(hit=0, t=0.0, point=vec3(0.0, 0.0, 0.0), normal=vec3(0.0, 0.0, 0.0))


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant)) avoids catastrophic cancellation
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(ray_origin: point3, ray_direction: vec3, sphere: Sphere) -> HitRecord:
    """Intersect a ray with a sphere, choosing the smallest non-negative root.

    Solves ``|o + t u - c|^2 = r^2`` as ``a t^2 + 2 h t + c' = 0`` with
    ``a = u . u``, ``h = u . (o - c)`` and ``c' = |o - c|^2 - r^2``.

    - A negative discriminant is a miss.
    - A zero discriminant yields the single root ``-h / a``, accepted only
      when non-negative.
    - Otherwise the nearer non-negative root wins; a ray whose roots are
      both negative points away from the sphere and misses.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        sphere: The sphere to test intersection against.

    Returns:
        A HitRecord whose normal points outward from the center.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    # Taichi requires outer-scope declaration of branch results
    did_hit = 0
    hit_t = 0.0

    if discriminant == 0.0:
        root = -h / a
        if root >= 0.0:
            did_hit = 1
            hit_t = root
    elif discriminant > 0.0:
        t0, t1 = _solve_quadratic_robust(h, a, c, ti.sqrt(discriminant))
        if t0 >= 0.0:
            did_hit = 1
            hit_t = t0
        elif t1 >= 0.0:
            did_hit = 1
            hit_t = t1

    result = miss_record()
    if did_hit == 1:
        hit_point = ray_origin + hit_t * ray_direction
        result = HitRecord(
            hit=1,
            t=hit_t,
            point=hit_point,
            normal=(hit_point - sphere.center) / sphere.radius,
        )
    return result


@ti.func
def sphere_uv(point: point3, sphere: Sphere) -> vec2:
    """Map a surface point to longitude/latitude coordinates in [0, 1]^2.

    u wraps around the Y axis starting from -X; v runs from the south pole
    (0) to the north pole (1).
    """
    n = tm.normalize(point - sphere.center)
    theta = ti.acos(tm.clamp(-n.y, -1.0, 1.0))
    phi = ti.atan2(-n.z, n.x) + tm.pi
    return vec2(phi / (2.0 * tm.pi), theta / tm.pi)
