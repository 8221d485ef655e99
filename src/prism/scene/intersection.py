"""Entity storage and world-space ray queries.

This module stores placed entities in Taichi fields. It tests rays against
them one entity at a time and returns the closest hit in world space.

Each entity records:

- which geometry variant it wraps (``GeometryType``);
- the index of that geometry in its own primitive storage;
- its material id;
- three 4x4 matrices: forward, inverse, and the normal matrix (the
  inverse transpose).

Per-entity intersection follows a fixed contract:

1. Move the world ray into object space with the inverse matrix.
2. Intersect it with the wrapped shape.
3. Lift the hit point with the forward matrix and the normal with the
   normal matrix.
4. Recompute ``t`` as the world-space distance from the ray origin to the
   lifted point.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.geometry import SphereGeometry
    >>> from prism.scene.entity import EntityBuilder
    >>> from prism.scene.intersection import add_entity, cast_ray
    >>> add_entity(EntityBuilder(SphereGeometry()).translate((0, 0, 10)).build(), 0)
    >>> cast_ray((0, 0, 0), (0, 0, 1)).t
    9.0
"""

from dataclasses import dataclass
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from prism.core.matrix import to_taichi, transform_normal, transform_point, transform_vector
from prism.core.ray import point3, vec2, vec3
from prism.geometry.box import Box, BoxGeometry, box_uv, hit_box_struct
from prism.geometry.mesh import MeshGeometry, add_mesh, clear_meshes, hit_mesh, mesh_uv
from prism.geometry.plane import Plane, PlaneGeometry, hit_plane, plane_uv
from prism.geometry.sphere import HitRecord, Sphere, SphereGeometry, hit_sphere, miss_record, sphere_uv
from prism.scene.entity import Entity


class GeometryType(IntEnum):
    """Enumeration of supported geometry variants.

    Used for shape dispatch when intersecting an entity.
    """

    SPHERE = 0
    PLANE = 1
    BOX = 2
    MESH = 3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection in world space.

    Attributes:
        hit: Whether the ray intersected any entity (1 if hit, 0 if miss).
        t: World-space distance from the ray origin to the hit point.
        point: The world-space hit point.
        normal: The unit world-space surface normal.
        entity_id: The entity that was hit; -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: point3
    normal: vec3
    entity_id: ti.i32


# Maximum number of primitives and entities supported in the scene
MAX_SPHERES = 1024
MAX_PLANES = 256
MAX_BOXES = 1024
MAX_ENTITIES = 1024

# Primitive storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

plane_origins = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

box_minimums = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BOXES)
box_maximums = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BOXES)
box_normal_signs = ti.field(dtype=ti.f32, shape=MAX_BOXES)
num_boxes = ti.field(dtype=ti.i32, shape=())

# Entity storage
entity_geometry_types = ti.field(dtype=ti.i32, shape=MAX_ENTITIES)
entity_geometry_indices = ti.field(dtype=ti.i32, shape=MAX_ENTITIES)
entity_material_ids = ti.field(dtype=ti.i32, shape=MAX_ENTITIES)
entity_transforms = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_ENTITIES)
entity_inverse_transforms = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_ENTITIES)
entity_normal_transforms = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_ENTITIES)
num_entities = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all entities and their primitives, including meshes."""
    num_spheres[None] = 0
    num_planes[None] = 0
    num_boxes[None] = 0
    num_entities[None] = 0
    clear_meshes()


def _add_sphere(sphere: SphereGeometry) -> int:
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = sphere.center
    sphere_radii[idx] = sphere.radius
    num_spheres[None] = idx + 1
    return idx


def _add_plane(plane: PlaneGeometry) -> int:
    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    plane_origins[idx] = plane.origin
    plane_normals[idx] = plane.normal
    num_planes[None] = idx + 1
    return idx


def _add_box(box: BoxGeometry) -> int:
    idx = num_boxes[None]
    if idx >= MAX_BOXES:
        raise RuntimeError(f"Maximum number of boxes ({MAX_BOXES}) exceeded")
    box_minimums[idx] = box.minimum
    box_maximums[idx] = box.maximum
    box_normal_signs[idx] = -1.0 if box.flip_normals else 1.0
    num_boxes[None] = idx + 1
    return idx


def add_geometry(geometry) -> tuple[GeometryType, int]:
    """Upload a geometry record to the storage for its variant.

    Returns:
        Tuple of (geometry type, index within that variant's storage).

    Raises:
        TypeError: If the geometry variant is unknown.
        RuntimeError: If the variant's capacity is exceeded.
    """
    if isinstance(geometry, SphereGeometry):
        return GeometryType.SPHERE, _add_sphere(geometry)
    if isinstance(geometry, PlaneGeometry):
        return GeometryType.PLANE, _add_plane(geometry)
    if isinstance(geometry, BoxGeometry):
        return GeometryType.BOX, _add_box(geometry)
    if isinstance(geometry, MeshGeometry):
        return GeometryType.MESH, add_mesh(geometry)
    raise TypeError(f"Unsupported geometry type: {type(geometry).__name__}")


def add_entity(entity: Entity, material_id: int) -> int:
    """Add a built entity to the scene.

    Args:
        entity: The frozen entity to upload.
        material_id: Index of the entity's material in the material registry.

    Returns:
        The index of the added entity.

    Raises:
        RuntimeError: If the maximum number of entities is exceeded.
    """
    idx = num_entities[None]
    if idx >= MAX_ENTITIES:
        raise RuntimeError(f"Maximum number of entities ({MAX_ENTITIES}) exceeded")

    geometry_type, geometry_idx = add_geometry(entity.geometry)
    entity_geometry_types[idx] = int(geometry_type)
    entity_geometry_indices[idx] = geometry_idx
    entity_material_ids[idx] = material_id
    entity_transforms[idx] = to_taichi(entity.transform)
    entity_inverse_transforms[idx] = to_taichi(entity.inverse_transform)
    entity_normal_transforms[idx] = to_taichi(entity.normal_transform)
    num_entities[None] = idx + 1
    return idx


def get_entity_count() -> int:
    """Get the number of entities in the scene."""
    return int(num_entities[None])


# =============================================================================
# Shape Dispatch
# =============================================================================


@ti.func
def hit_geometry(
    geometry_type: ti.i32,
    geometry_idx: ti.i32,
    ray_origin: point3,
    ray_direction: vec3,
) -> HitRecord:
    """Dispatch an object-space ray to the intersection test for its shape."""
    rec = miss_record()
    if geometry_type == int(GeometryType.SPHERE):
        sphere = Sphere(center=sphere_centers[geometry_idx], radius=sphere_radii[geometry_idx])
        rec = hit_sphere(ray_origin, ray_direction, sphere)
    elif geometry_type == int(GeometryType.PLANE):
        plane = Plane(origin=plane_origins[geometry_idx], normal=plane_normals[geometry_idx])
        rec = hit_plane(ray_origin, ray_direction, plane)
    elif geometry_type == int(GeometryType.BOX):
        box = Box(
            minimum=box_minimums[geometry_idx],
            maximum=box_maximums[geometry_idx],
            normal_sign=box_normal_signs[geometry_idx],
        )
        rec = hit_box_struct(ray_origin, ray_direction, box)
    elif geometry_type == int(GeometryType.MESH):
        rec = hit_mesh(ray_origin, ray_direction, geometry_idx)
    return rec


@ti.func
def geometry_uv(geometry_type: ti.i32, geometry_idx: ti.i32, point: point3) -> vec2:
    """Dispatch an object-space point to the UV mapping for its shape."""
    uv = vec2(0.0, 0.0)
    if geometry_type == int(GeometryType.SPHERE):
        sphere = Sphere(center=sphere_centers[geometry_idx], radius=sphere_radii[geometry_idx])
        uv = sphere_uv(point, sphere)
    elif geometry_type == int(GeometryType.PLANE):
        plane = Plane(origin=plane_origins[geometry_idx], normal=plane_normals[geometry_idx])
        uv = plane_uv(point, plane)
    elif geometry_type == int(GeometryType.BOX):
        box = Box(
            minimum=box_minimums[geometry_idx],
            maximum=box_maximums[geometry_idx],
            normal_sign=box_normal_signs[geometry_idx],
        )
        uv = box_uv(point, box)
    elif geometry_type == int(GeometryType.MESH):
        uv = mesh_uv(point, geometry_idx)
    return uv


# =============================================================================
# Entity-level Queries
# =============================================================================


@ti.func
def intersect_entity(entity_id: ti.i32, ray_origin: point3, ray_direction: vec3) -> HitRecord:
    """Intersect a world-space ray with one entity.

    Args:
        entity_id: The entity to test.
        ray_origin: World-space ray origin.
        ray_direction: World-space ray direction.

    Returns:
        A HitRecord in world space. ``t`` is the world-space distance from
        ``ray_origin`` to the hit point, so it is comparable across entities
        whatever their transforms.
    """
    inverse = entity_inverse_transforms[entity_id]
    local_origin = transform_point(inverse, ray_origin)
    local_direction = transform_vector(inverse, ray_direction)

    rec = hit_geometry(
        entity_geometry_types[entity_id],
        entity_geometry_indices[entity_id],
        local_origin,
        local_direction,
    )

    result = miss_record()
    if rec.hit == 1:
        world_point = transform_point(entity_transforms[entity_id], rec.point)
        world_normal = transform_normal(entity_normal_transforms[entity_id], rec.normal)
        result = HitRecord(
            hit=1,
            t=tm.length(world_point - ray_origin),
            point=world_point,
            normal=world_normal,
        )
    return result


@ti.func
def entity_uv(entity_id: ti.i32, world_point: point3) -> vec2:
    """Surface coordinate of a world-space point on an entity."""
    local_point = transform_point(entity_inverse_transforms[entity_id], world_point)
    return geometry_uv(
        entity_geometry_types[entity_id],
        entity_geometry_indices[entity_id],
        local_point,
    )


@ti.func
def intersect_scene(ray_origin: point3, ray_direction: vec3) -> SceneHitRecord:
    """Find the closest entity hit along a ray.

    Scans every entity and keeps the smallest ``t``; on equal ``t`` the
    earlier entity wins.

    Args:
        ray_origin: World-space ray origin.
        ray_direction: World-space ray direction.

    Returns:
        A SceneHitRecord for the closest hit, or a miss record.
    """
    closest_t = 1e30
    result = SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        entity_id=-1,
    )
    for i in range(num_entities[None]):
        rec = intersect_entity(i, ray_origin, ray_direction)
        if rec.hit == 1 and rec.t < closest_t:
            closest_t = rec.t
            result = SceneHitRecord(
                hit=1,
                t=rec.t,
                point=rec.point,
                normal=rec.normal,
                entity_id=i,
            )
    return result


# =============================================================================
# Python-side Queries
# =============================================================================


@dataclass(frozen=True)
class RayHit:
    """Closest hit reported to Python code.

    Attributes:
        t: World-space distance from the ray origin to the hit point.
        point: World-space hit point.
        normal: Unit world-space normal.
        entity_id: Index of the entity that was hit.
    """

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    entity_id: int


_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_entity = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _cast_ray_kernel(ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32):
    rec = intersect_scene(vec3(ox, oy, oz), vec3(dx, dy, dz))
    _query_hit[None] = rec.hit
    _query_t[None] = rec.t
    _query_point[None] = rec.point
    _query_normal[None] = rec.normal
    _query_entity[None] = rec.entity_id


@ti.kernel
def _entity_uv_kernel(entity_id: ti.i32, px: ti.f32, py: ti.f32, pz: ti.f32) -> vec2:
    return entity_uv(entity_id, vec3(px, py, pz))


def _as_tuple(v) -> tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))


def cast_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> RayHit | None:
    """Find the closest entity along a world-space ray.

    ``t`` of the result is the world-space distance to the hit point.

    Returns:
        The closest hit, or None if the ray hits nothing.
    """
    _cast_ray_kernel(*origin, *direction)
    if _query_hit[None] == 0:
        return None
    return RayHit(
        t=float(_query_t[None]),
        point=_as_tuple(_query_point[None]),
        normal=_as_tuple(_query_normal[None]),
        entity_id=int(_query_entity[None]),
    )


def surface_parameters(entity_id: int, point: tuple[float, float, float]) -> tuple[float, float]:
    """Texture coordinate of a world-space point on an entity."""
    uv = _entity_uv_kernel(entity_id, *point)
    return (float(uv[0]), float(uv[1]))
