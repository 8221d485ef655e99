"""Geometry module for shape primitives.

This module provides the shapes an entity can wrap, each with an
intersection test and a surface parameterization for texture lookup:

Components:
    sphere: Sphere with robust quadratic intersection; shared HitRecord
    plane: One-sided infinite plane
    box: Axis-aligned box (slab method) with cubemap UV unwrap
    mesh: Polygon mesh with bounding-box pruning and trimesh loading

Every shape works in its own object space. Each module pairs a frozen host
dataclass (``SphereGeometry``, ``PlaneGeometry``, ...) used to describe the
scene with a Taichi dataclass or field storage used inside kernels.

Intersection routines follow the pattern:
    record = hit_shape(ray_origin, ray_direction, shape_data)
    uv = shape_uv(point, shape_data)

Note: importing this package allocates Taichi fields for mesh storage, so
call ``ti.init()`` first.
"""

from .box import Box, BoxGeometry, box_uv, hit_box, hit_box_struct
from .mesh import (
    Face,
    MeshGeometry,
    MeshLoadError,
    Vertex,
    add_mesh,
    clear_meshes,
    hit_face,
    hit_mesh,
    load_mesh,
    mesh_uv,
)
from .plane import Plane, PlaneGeometry, hit_plane, plane_basis, plane_uv
from .sphere import HitRecord, Sphere, SphereGeometry, hit_sphere, miss_record, sphere_uv

__all__ = [
    # Sphere module
    "HitRecord",
    "Sphere",
    "SphereGeometry",
    "hit_sphere",
    "miss_record",
    "sphere_uv",
    # Plane module
    "Plane",
    "PlaneGeometry",
    "hit_plane",
    "plane_basis",
    "plane_uv",
    # Box module
    "Box",
    "BoxGeometry",
    "box_uv",
    "hit_box",
    "hit_box_struct",
    # Mesh module
    "Face",
    "MeshGeometry",
    "MeshLoadError",
    "Vertex",
    "add_mesh",
    "clear_meshes",
    "hit_face",
    "hit_mesh",
    "load_mesh",
    "mesh_uv",
]
