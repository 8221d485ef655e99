"""Polygon mesh primitive with bounding-box pruning.

A mesh is an ordered list of planar, convex faces. Each face carries an
ordered list of at least three vertices with consistent counter-clockwise
winding, and its normal is ``(v1 - v0) x (v2 - v0)``. Faces are one-sided,
exactly like planes: each one is tested against its supporting plane, and
the candidate point is then accepted if it lies on the interior side of
every edge.

The mesh keeps its axis-aligned bounding box, and the box test rejects rays
before any face is visited. Meshes carry no texture coordinates, so UV
lookup always returns a fixed coordinate.

Face data for all meshes lives in shared flat fields:

- ``mesh_face_start`` and ``mesh_face_count`` locate a mesh's face range;
- ``face_vertex_start`` and ``face_vertex_count`` locate a face's vertices.

Files are read with trimesh (PLY, OBJ, STL, ...) through ``load_mesh``.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm
import trimesh

from prism.core.matrix import EPSILON
from prism.core.ray import point3, vec2, vec3
from prism.geometry.box import hit_box
from prism.geometry.plane import Plane, hit_plane
from prism.geometry.sphere import HitRecord, miss_record

logger = logging.getLogger(__name__)

Vec3Tuple = tuple[float, float, float]

# Padding applied to uploaded bounding boxes so faces lying exactly on the
# box boundary are not rejected by rounding in the slab test
BBOX_PADDING = 1e-4


class MeshLoadError(OSError):
    """A mesh file could not be read or parsed."""


@dataclass(frozen=True)
class Vertex:
    """A mesh vertex: position plus its (optional) shading normal."""

    position: Vec3Tuple
    normal: Vec3Tuple = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class Face:
    """A planar convex polygon with counter-clockwise winding.

    Attributes:
        vertices: The ordered vertices (at least three).
        normal: Unit face normal computed from the first three vertices.
            Zero for degenerate (collinear) faces, which never intersect.

    Raises:
        ValueError: If fewer than three vertices are given.
    """

    vertices: tuple[Vertex, ...]
    normal: Vec3Tuple = field(init=False)

    def __post_init__(self) -> None:
        if len(self.vertices) < 3:
            raise ValueError(
                f"Not enough vertices to build a face: got {len(self.vertices)}, need at least 3"
            )
        v0, v1, v2 = (np.array(v.position, dtype=np.float64) for v in self.vertices[:3])
        n = np.cross(v1 - v0, v2 - v0)
        norm = float(np.linalg.norm(n))
        if norm > 0.0:
            n = n / norm
        object.__setattr__(self, "normal", (float(n[0]), float(n[1]), float(n[2])))


@dataclass(frozen=True)
class MeshGeometry:
    """Host-side description of a polygon mesh in object space.

    Attributes:
        faces: The faces of the mesh.
        bbox_min: Minimum corner of the bounding box of all vertices.
        bbox_max: Maximum corner of the bounding box of all vertices.
    """

    faces: tuple[Face, ...]
    bbox_min: Vec3Tuple = field(init=False)
    bbox_max: Vec3Tuple = field(init=False)

    def __post_init__(self) -> None:
        if not self.faces:
            raise ValueError("A mesh needs at least one face")
        positions = np.array(
            [v.position for face in self.faces for v in face.vertices], dtype=np.float64
        )
        lo = positions.min(axis=0)
        hi = positions.max(axis=0)
        object.__setattr__(self, "bbox_min", (float(lo[0]), float(lo[1]), float(lo[2])))
        object.__setattr__(self, "bbox_max", (float(hi[0]), float(hi[1]), float(hi[2])))

    @property
    def vertex_count(self) -> int:
        """Total number of face-vertex slots across all faces."""
        return sum(len(face.vertices) for face in self.faces)

    @classmethod
    def from_faces(
        cls, faces: Iterable[Sequence[tuple[Vec3Tuple, Vec3Tuple]]]
    ) -> "MeshGeometry":
        """Build a mesh from faces given as lists of (position, normal) pairs."""
        return cls(
            faces=tuple(
                Face(vertices=tuple(Vertex(position=p, normal=n) for p, n in face))
                for face in faces
            )
        )

    @classmethod
    def from_arrays(
        cls,
        vertices: npt.ArrayLike,
        faces: npt.ArrayLike,
        vertex_normals: npt.ArrayLike | None = None,
    ) -> "MeshGeometry":
        """Build a mesh from an indexed vertex array.

        Args:
            vertices: Array of shape (V, 3) with vertex positions.
            faces: Array of shape (F, K) with vertex indices per face.
            vertex_normals: Optional array of shape (V, 3).
        """
        positions = np.asarray(vertices, dtype=np.float64)
        indices = np.asarray(faces, dtype=np.int64)
        normals = (
            np.zeros_like(positions)
            if vertex_normals is None
            else np.asarray(vertex_normals, dtype=np.float64)
        )
        return cls(
            faces=tuple(
                Face(
                    vertices=tuple(
                        Vertex(position=tuple(positions[i]), normal=tuple(normals[i]))
                        for i in row
                    )
                )
                for row in indices
            )
        )


def load_mesh(path: str | Path) -> MeshGeometry:
    """Load a mesh file with trimesh.

    Scenes with several geometries are concatenated into one mesh.

    Args:
        path: Path to a mesh file in any format trimesh can read.

    Returns:
        The mesh with trimesh's vertex normals attached to each vertex.

    Raises:
        MeshLoadError: If the file is missing, unreadable, or has no faces.
    """
    path = Path(path)
    if not path.exists():
        raise MeshLoadError(f"Mesh file not found: {path}")

    try:
        loaded = trimesh.load(path, force="mesh")
    except (OSError, ValueError, KeyError, IndexError) as exc:
        raise MeshLoadError(f"Could not parse mesh file {path}: {exc}") from exc

    if isinstance(loaded, trimesh.Scene):
        if not loaded.geometry:
            raise MeshLoadError(f"No geometry found in {path}")
        loaded = trimesh.util.concatenate(tuple(loaded.geometry.values()))

    if not isinstance(loaded, trimesh.Trimesh) or len(loaded.faces) == 0:
        raise MeshLoadError(f"{path} does not contain a polygon mesh")

    logger.debug("Loaded %s: %d vertices, %d faces", path, len(loaded.vertices), len(loaded.faces))
    return MeshGeometry.from_arrays(loaded.vertices, loaded.faces, loaded.vertex_normals)


# =============================================================================
# Mesh Field Storage
# =============================================================================

MAX_MESHES = 64
MAX_FACES = 65536
MAX_FACE_VERTICES = 262144

mesh_face_start = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_face_count = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_bbox_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESHES)
mesh_bbox_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESHES)
num_meshes = ti.field(dtype=ti.i32, shape=())

face_vertex_start = ti.field(dtype=ti.i32, shape=MAX_FACES)
face_vertex_count = ti.field(dtype=ti.i32, shape=MAX_FACES)
face_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_FACES)
num_faces = ti.field(dtype=ti.i32, shape=())

face_vertices = ti.Vector.field(3, dtype=ti.f32, shape=MAX_FACE_VERTICES)
num_face_vertices = ti.field(dtype=ti.i32, shape=())


def clear_meshes() -> None:
    """Forget all uploaded meshes."""
    num_meshes[None] = 0
    num_faces[None] = 0
    num_face_vertices[None] = 0


@ti.kernel
def _upload_vertices(positions: ti.types.ndarray(), offset: ti.i32):
    for i in range(positions.shape[0]):
        face_vertices[offset + i] = vec3(positions[i, 0], positions[i, 1], positions[i, 2])


@ti.kernel
def _upload_faces(
    starts: ti.types.ndarray(),
    counts: ti.types.ndarray(),
    normals: ti.types.ndarray(),
    offset: ti.i32,
):
    for i in range(starts.shape[0]):
        face_vertex_start[offset + i] = starts[i]
        face_vertex_count[offset + i] = counts[i]
        face_normals[offset + i] = vec3(normals[i, 0], normals[i, 1], normals[i, 2])


def add_mesh(mesh: MeshGeometry) -> int:
    """Upload a mesh to the shared face storage.

    Args:
        mesh: The mesh to upload.

    Returns:
        The index of the added mesh.

    Raises:
        RuntimeError: If mesh, face or vertex capacity would be exceeded.
    """
    idx = num_meshes[None]
    if idx >= MAX_MESHES:
        raise RuntimeError(f"Maximum number of meshes ({MAX_MESHES}) exceeded")
    face_offset = num_faces[None]
    if face_offset + len(mesh.faces) > MAX_FACES:
        raise RuntimeError(f"Maximum number of mesh faces ({MAX_FACES}) exceeded")
    vertex_offset = num_face_vertices[None]
    if vertex_offset + mesh.vertex_count > MAX_FACE_VERTICES:
        raise RuntimeError(f"Maximum number of mesh vertices ({MAX_FACE_VERTICES}) exceeded")

    positions = np.array(
        [v.position for face in mesh.faces for v in face.vertices], dtype=np.float32
    )
    counts = np.array([len(face.vertices) for face in mesh.faces], dtype=np.int32)
    starts = (vertex_offset + np.concatenate(([0], np.cumsum(counts)[:-1]))).astype(np.int32)
    normals = np.array([face.normal for face in mesh.faces], dtype=np.float32)

    _upload_vertices(positions, vertex_offset)
    _upload_faces(starts, counts, normals, face_offset)

    mesh_face_start[idx] = face_offset
    mesh_face_count[idx] = len(mesh.faces)
    mesh_bbox_min[idx] = [c - BBOX_PADDING for c in mesh.bbox_min]
    mesh_bbox_max[idx] = [c + BBOX_PADDING for c in mesh.bbox_max]

    num_face_vertices[None] = vertex_offset + len(positions)
    num_faces[None] = face_offset + len(mesh.faces)
    num_meshes[None] = idx + 1
    return idx


def get_mesh_count() -> int:
    """Get the number of meshes uploaded."""
    return int(num_meshes[None])


# =============================================================================
# Intersection
# =============================================================================


@ti.func
def hit_face(ray_origin: point3, ray_direction: vec3, face_idx: ti.i32) -> HitRecord:
    """Intersect a ray with one polygon face.

    The supporting-plane hit is kept only if, for every edge (a -> b),
    ``((b - a) x (p - b)) . n > -EPSILON``, i.e. the point is on the inner
    side of each edge. Points within EPSILON of an edge count as inside.
    """
    start = face_vertex_start[face_idx]
    count = face_vertex_count[face_idx]
    n = face_normals[face_idx]

    rec = hit_plane(ray_origin, ray_direction, Plane(origin=face_vertices[start], normal=n))
    result = miss_record()
    if rec.hit == 1:
        inside = 1
        for k in range(count):
            a = face_vertices[start + k]
            b = face_vertices[start + (k + 1) % count]
            if tm.dot(tm.cross(b - a, rec.point - b), n) <= -EPSILON:
                inside = 0
        if inside == 1:
            result = rec
    return result


@ti.func
def hit_mesh(ray_origin: point3, ray_direction: vec3, mesh_idx: ti.i32) -> HitRecord:
    """Intersect a ray with a mesh, returning the nearest face hit.

    Faces are only visited when the ray hits the mesh's bounding box.
    """
    result = miss_record()
    bounds = hit_box(ray_origin, ray_direction, mesh_bbox_min[mesh_idx], mesh_bbox_max[mesh_idx])
    if bounds.hit == 1:
        closest_t = 1e30
        start = mesh_face_start[mesh_idx]
        for k in range(mesh_face_count[mesh_idx]):
            rec = hit_face(ray_origin, ray_direction, start + k)
            if rec.hit == 1 and rec.t < closest_t:
                closest_t = rec.t
                result = rec
    return result


@ti.func
def mesh_uv(point: point3, mesh_idx: ti.i32) -> vec2:
    """Meshes have no texture coordinates; every point maps to (0, 0)."""
    return vec2(0.0, 0.0)
