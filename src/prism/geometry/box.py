"""Axis-aligned box primitive using the slab method.

The box is the region between a minimum and maximum corner. Intersection
clips the ray against the three pairs of axis-aligned slabs, tracking which
face the entry and exit parameters came from so the hit normal is known
without a second pass.

The slab test is also used for mesh bounding-box rejection, which is why
``hit_box`` takes the corners directly rather than a Box struct.
"""

from dataclasses import dataclass, replace

import taichi as ti

from prism.core.ray import point3, vec2, vec3
from prism.geometry.sphere import HitRecord, miss_record


@dataclass(frozen=True)
class BoxGeometry:
    """Host-side description of an axis-aligned box in object space.

    Attributes:
        minimum: Corner with the smallest coordinates.
        maximum: Corner with the largest coordinates.
        flip_normals: Report inward-facing normals (for skyboxes viewed from
            inside).
    """

    minimum: tuple[float, float, float] = (-0.5, -0.5, -0.5)
    maximum: tuple[float, float, float] = (0.5, 0.5, 0.5)
    flip_normals: bool = False

    def __post_init__(self) -> None:
        for axis in range(3):
            if self.minimum[axis] > self.maximum[axis]:
                raise ValueError(
                    f"Box minimum {self.minimum} exceeds maximum {self.maximum} on axis {axis}"
                )

    def with_flipped_normals(self) -> "BoxGeometry":
        """Copy of this box whose normals point inward."""
        return replace(self, flip_normals=not self.flip_normals)


@ti.dataclass
class Box:
    """An axis-aligned box between two corners.

    Attributes:
        minimum: Corner with the smallest coordinates.
        maximum: Corner with the largest coordinates.
        normal_sign: 1.0 for outward normals, -1.0 for inward.
    """

    minimum: point3
    maximum: point3
    normal_sign: ti.f32


@ti.func
def hit_box(ray_origin: point3, ray_direction: vec3, minimum: point3, maximum: point3) -> HitRecord:
    """Intersect a ray with an axis-aligned box.

    For each axis the near and far bounds are chosen by the sign of the
    inverse direction component. The running [tmin, tmax] interval is
    narrowed axis by axis and the ray misses as soon as an axis interval is
    disjoint from it.

    After clipping:

    - ``tmax < 0``: the box is behind the ray, miss.
    - ``tmin < 0``: the origin is inside, report the exit face.
    - otherwise report the entry face.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        minimum: Box corner with the smallest coordinates.
        maximum: Box corner with the largest coordinates.

    Returns:
        A HitRecord with the outward normal of the face that was hit.
    """
    inv_dir = 1.0 / ray_direction

    tmin = -1e30
    tmax = 1e30
    normal_min = vec3(0.0, 0.0, 0.0)
    normal_max = vec3(0.0, 0.0, 0.0)
    valid = 1

    for axis in ti.static(range(3)):
        if valid == 1:
            # Near bound is the minimum corner unless travelling toward -axis
            near = minimum[axis]
            far = maximum[axis]
            near_sign = -1.0
            if inv_dir[axis] < 0.0:
                near = maximum[axis]
                far = minimum[axis]
                near_sign = 1.0

            t_near = (near - ray_origin[axis]) * inv_dir[axis]
            t_far = (far - ray_origin[axis]) * inv_dir[axis]

            if tmin > t_far or t_near > tmax:
                valid = 0
            else:
                if t_near > tmin:
                    tmin = t_near
                    normal_min = vec3(0.0, 0.0, 0.0)
                    normal_min[axis] = near_sign
                if t_far < tmax:
                    tmax = t_far
                    normal_max = vec3(0.0, 0.0, 0.0)
                    normal_max[axis] = -near_sign

    result = miss_record()
    if valid == 1 and tmax >= 0.0:
        t = tmin
        normal = normal_min
        if tmin < 0.0:
            t = tmax
            normal = normal_max
        result = HitRecord(hit=1, t=t, point=ray_origin + t * ray_direction, normal=normal)
    return result


@ti.func
def hit_box_struct(ray_origin: point3, ray_direction: vec3, box: Box) -> HitRecord:
    """Intersect a Box struct, honoring its normal orientation."""
    rec = hit_box(ray_origin, ray_direction, box.minimum, box.maximum)
    rec.normal *= box.normal_sign
    return rec


@ti.func
def box_uv(point: point3, box: Box) -> vec2:
    """Unwrap a box surface point into a 4x3 cross (cubemap) layout.

    The point is first expressed relative to the box center and normalized
    to the unit cube. The dominant axis selects one of six cells, and the
    two remaining coordinates place the point inside that cell.
    """
    center = 0.5 * (box.minimum + box.maximum)
    extent = box.maximum - box.minimum
    p = (point - center) / ti.max(extent, vec3(1e-12, 1e-12, 1e-12))
    a = ti.abs(p)

    uc = p.x
    vc = p.y
    u_index = 1
    v_index = 1

    if p.x > 0.0 and a.x >= a.y and a.x >= a.z:
        uc = p.z
        vc = p.y
        u_index = 2
        v_index = 1
    elif p.x < 0.0 and a.x >= a.y and a.x >= a.z:
        uc = -p.z
        vc = p.y
        u_index = 0
        v_index = 1
    elif p.y > 0.0 and a.y >= a.x and a.y >= a.z:
        uc = p.x
        vc = p.z
        u_index = 1
        v_index = 2
    elif p.y < 0.0 and a.y >= a.x and a.y >= a.z:
        uc = p.x
        vc = -p.z
        u_index = 1
        v_index = 0
    elif p.z > 0.0 and a.z >= a.x and a.z >= a.y:
        uc = -p.x
        vc = p.y
        u_index = 3
        v_index = 1

    u = (uc + 0.5 + ti.cast(u_index, ti.f32)) / 4.0
    v = (vc + 0.5 + ti.cast(v_index, ti.f32)) / 3.0
    return vec2(u, v)
