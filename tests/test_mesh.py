"""Unit tests for polygon meshes.

Tests cover:
- Face and mesh construction (normals, bounding box)
- Loading mesh files through trimesh
- Ray-face and ray-mesh intersection
"""

import numpy as np
import pytest
import taichi as ti

QUAD = ((-1.0, -1.0, 0.0), (-1.0, 1.0, 0.0), (1.0, 1.0, 0.0), (1.0, -1.0, 0.0))


def _hit_mesh(mesh_idx, origin, direction):
    from prism.core.ray import vec3
    from prism.geometry.mesh import hit_mesh

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, m: ti.i32):
        record = hit_mesh(o, d, m)
        hit[None] = record.hit
        t_val[None] = record.t
        normal[None] = record.normal

    test_kernel(vec3(*origin), vec3(*direction), mesh_idx)
    return hit[None], t_val[None], normal[None]


class TestFace:
    """Tests for face construction."""

    def test_too_few_vertices_raises(self):
        """A face needs at least three vertices."""
        from prism.geometry.mesh import Face, Vertex

        with pytest.raises(ValueError, match="Not enough vertices"):
            Face(vertices=(Vertex((0.0, 0.0, 0.0)), Vertex((1.0, 0.0, 0.0))))

    def test_normal_from_winding(self):
        """The normal is (v1 - v0) x (v2 - v0), normalized."""
        from prism.geometry.mesh import Face, Vertex

        face = Face(vertices=tuple(Vertex(p) for p in QUAD))
        assert face.normal == pytest.approx((0.0, 0.0, -1.0))

    def test_degenerate_face_has_zero_normal(self):
        """Collinear vertices give a zero normal."""
        from prism.geometry.mesh import Face, Vertex

        face = Face(
            vertices=(Vertex((0.0, 0.0, 0.0)), Vertex((1.0, 0.0, 0.0)), Vertex((2.0, 0.0, 0.0)))
        )
        assert face.normal == (0.0, 0.0, 0.0)


class TestMeshGeometry:
    """Tests for mesh construction."""

    def test_bounding_box(self):
        """The bounding box covers every vertex."""
        from prism.geometry.mesh import MeshGeometry

        mesh = MeshGeometry.from_arrays(
            [(0.0, 0.0, 0.0), (2.0, 0.0, 1.0), (0.0, 3.0, -1.0)], [(0, 1, 2)]
        )
        assert mesh.bbox_min == (0.0, 0.0, -1.0)
        assert mesh.bbox_max == (2.0, 3.0, 1.0)
        assert mesh.vertex_count == 3

    def test_empty_mesh_raises(self):
        """A mesh with no faces is rejected."""
        from prism.geometry.mesh import MeshGeometry

        with pytest.raises(ValueError):
            MeshGeometry(faces=())

    def test_from_faces(self):
        """Faces can be given as (position, normal) pairs."""
        from prism.geometry.mesh import MeshGeometry

        up = (0.0, 1.0, 0.0)
        mesh = MeshGeometry.from_faces(
            [[((0.0, 0.0, 0.0), up), ((0.0, 0.0, 1.0), up), ((1.0, 0.0, 0.0), up)]]
        )
        assert len(mesh.faces) == 1
        assert mesh.faces[0].vertices[0].normal == up
        assert mesh.faces[0].normal == pytest.approx((0.0, 1.0, 0.0))


class TestLoadMesh:
    """Tests for reading mesh files."""

    def test_missing_file_raises(self, tmp_path):
        """A missing path raises MeshLoadError."""
        from prism.geometry.mesh import MeshLoadError, load_mesh

        with pytest.raises(MeshLoadError):
            load_mesh(tmp_path / "missing.ply")

    def test_mesh_load_error_is_os_error(self):
        """Loader failures can be caught as OSError."""
        from prism.geometry.mesh import MeshLoadError

        assert issubclass(MeshLoadError, OSError)

    def test_load_ply(self, tmp_path):
        """A PLY exported by trimesh loads with the same face count."""
        import trimesh

        from prism.geometry.mesh import load_mesh

        path = tmp_path / "box.ply"
        trimesh.creation.box(extents=(2.0, 2.0, 2.0)).export(str(path))

        mesh = load_mesh(path)
        assert len(mesh.faces) == 12
        assert mesh.bbox_min == pytest.approx((-1.0, -1.0, -1.0))
        assert mesh.bbox_max == pytest.approx((1.0, 1.0, 1.0))


class TestMeshStorage:
    """Tests for uploading meshes to Taichi fields."""

    def test_add_and_clear(self):
        """Meshes get sequential indices and clear resets the count."""
        from prism.geometry.mesh import MeshGeometry, add_mesh, clear_meshes, get_mesh_count

        clear_meshes()
        mesh = MeshGeometry.from_arrays(QUAD, [(0, 1, 2, 3)])
        assert add_mesh(mesh) == 0
        assert add_mesh(mesh) == 1
        assert get_mesh_count() == 2

        clear_meshes()
        assert get_mesh_count() == 0


class TestMeshIntersection:
    """Tests for ray-mesh intersection."""

    def test_hit_quad(self):
        """A ray toward the front of a quad hits its center."""
        from prism.geometry.mesh import MeshGeometry, add_mesh, clear_meshes

        clear_meshes()
        idx = add_mesh(MeshGeometry.from_arrays(QUAD, [(0, 1, 2, 3)]))
        hit, t, n = _hit_mesh(idx, (0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert hit == 1
        assert abs(t - 5.0) < 1e-5
        assert abs(n[2] + 1.0) < 1e-5

    def test_back_face_misses(self):
        """Faces are one-sided."""
        from prism.geometry.mesh import MeshGeometry, add_mesh, clear_meshes

        clear_meshes()
        idx = add_mesh(MeshGeometry.from_arrays(QUAD, [(0, 1, 2, 3)]))
        hit, _, _ = _hit_mesh(idx, (0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0

    def test_outside_triangle_inside_bbox_misses(self):
        """A point inside the bounding box but outside the face misses."""
        from prism.geometry.mesh import MeshGeometry, add_mesh, clear_meshes

        clear_meshes()
        idx = add_mesh(MeshGeometry.from_arrays(QUAD[:3], [(0, 1, 2)]))
        hit, _, _ = _hit_mesh(idx, (0.5, -0.5, -5.0), (0.0, 0.0, 1.0))
        assert hit == 0

        hit, _, _ = _hit_mesh(idx, (-0.5, 0.5, -5.0), (0.0, 0.0, 1.0))
        assert hit == 1

    def test_closest_face_wins(self):
        """With two parallel faces, the nearer one is reported."""
        from prism.geometry.mesh import MeshGeometry, add_mesh, clear_meshes

        clear_meshes()
        vertices = np.array(QUAD + tuple((x, y, 2.0) for x, y, _ in QUAD))
        # Far face first so order does not decide the result
        idx = add_mesh(MeshGeometry.from_arrays(vertices, [(4, 5, 6, 7), (0, 1, 2, 3)]))
        hit, t, _ = _hit_mesh(idx, (0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert hit == 1
        assert abs(t - 5.0) < 1e-5

    def test_second_mesh_uses_its_own_faces(self):
        """Offsets into the shared storage are per mesh."""
        from prism.geometry.mesh import MeshGeometry, add_mesh, clear_meshes

        clear_meshes()
        add_mesh(MeshGeometry.from_arrays(QUAD, [(0, 1, 2, 3)]))
        shifted = tuple((x + 10.0, y, z) for x, y, z in QUAD)
        idx = add_mesh(MeshGeometry.from_arrays(shifted, [(0, 1, 2, 3)]))

        hit, _, _ = _hit_mesh(idx, (0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert hit == 0
        hit, _, _ = _hit_mesh(idx, (10.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert hit == 1
