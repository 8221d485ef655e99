"""Ray data structure and vector utilities for the Whitted ray tracer.

This module provides the Ray dataclass and the reflection helpers
used by the intersection and shading code. All operations are designed to
work within Taichi kernels.

Positions and free directions share the same three-component layout. The
``point3`` alias marks positions; the distinction becomes concrete when a
transform is applied (see ``prism.core.matrix.transform_point`` versus
``transform_vector``).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, 1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type aliases for 2D/3D vectors using Taichi's math module
vec2 = tm.vec2
vec3 = tm.vec3
point3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (point3).
        direction: The direction vector of the ray (vec3). Camera and
            reflection rays are normalized; object-space rays produced by an
            entity's inverse transform generally are not.
    """

    origin: point3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> point3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: point3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Reflection
# =============================================================================


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    The normal should be unit length for correct results.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The mirrored direction incident - 2 (incident . n) n.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def phong_reflect(to_light: vec3, normal: vec3) -> vec3:
    """Mirror a surface-to-light vector about the normal: 2 (l . n) n - l."""
    return 2.0 * tm.dot(to_light, normal) * normal - to_light
