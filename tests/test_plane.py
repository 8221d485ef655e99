"""Unit tests for plane intersection.

Tests cover:
- Ray hitting the front face of a plane
- Ray from behind and parallel rays (misses)
- Plane surface coordinates
"""

import pytest
import taichi as ti


def _cast(origin, direction, plane_origin=(0.0, 0.0, 0.0), plane_normal=(0.0, 1.0, 0.0)):
    from prism.core.ray import vec3
    from prism.geometry.plane import Plane, hit_plane

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.Vector.field(3, dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel():
        plane = Plane(
            origin=vec3(plane_origin[0], plane_origin[1], plane_origin[2]),
            normal=vec3(plane_normal[0], plane_normal[1], plane_normal[2]),
        )
        record = hit_plane(
            vec3(origin[0], origin[1], origin[2]),
            vec3(direction[0], direction[1], direction[2]),
            plane,
        )
        hit[None] = record.hit
        t_val[None] = record.t
        point[None] = record.point
        normal[None] = record.normal

    test_kernel()
    return hit[None], t_val[None], point[None], normal[None]


class TestPlaneGeometry:
    """Tests for the host-side plane record."""

    def test_normal_is_normalized(self):
        """The constructor normalizes the normal."""
        from prism.geometry.plane import PlaneGeometry

        plane = PlaneGeometry(normal=(0.0, 3.0, 4.0))
        assert abs(plane.normal[1] - 0.6) < 1e-12
        assert abs(plane.normal[2] - 0.8) < 1e-12

    def test_zero_normal_raises(self):
        """A zero normal is rejected."""
        from prism.geometry.plane import PlaneGeometry

        with pytest.raises(ValueError):
            PlaneGeometry(normal=(0.0, 0.0, 0.0))


class TestPlaneIntersection:
    """Tests for ray-plane intersection."""

    def test_hit_from_above(self):
        """Ray straight down onto the plane hits at the origin."""
        hit, t, p, n = _cast((0.0, 10.0, 0.0), (0.0, -1.0, 0.0))
        assert hit == 1
        assert abs(t - 10.0) < 1e-5
        assert abs(p[0]) < 1e-5
        assert abs(p[1]) < 1e-5
        assert abs(p[2]) < 1e-5
        assert abs(n[1] - 1.0) < 1e-5

    def test_reversed_ray_misses(self):
        """The same ray pointing away from the plane misses."""
        hit, _, _, _ = _cast((0.0, 10.0, 0.0), (0.0, 1.0, 0.0))
        assert hit == 0

    def test_back_face_misses(self):
        """Planes are one-sided: a ray from below is not a hit."""
        hit, _, _, _ = _cast((0.0, -10.0, 0.0), (0.0, 1.0, 0.0))
        assert hit == 0

    def test_parallel_ray_misses(self):
        """A ray parallel to the plane misses."""
        hit, _, _, _ = _cast((0.0, 1.0, 0.0), (1.0, 0.0, 0.0))
        assert hit == 0

    def test_oblique_hit(self):
        """An oblique ray hits where it crosses the plane."""
        hit, t, p, _ = _cast((0.0, 2.0, 0.0), (1.0, -1.0, 0.0), plane_origin=(0.0, 1.0, 0.0))
        assert hit == 1
        assert abs(t - 1.0) < 1e-5
        assert abs(p[0] - 1.0) < 1e-5
        assert abs(p[1] - 1.0) < 1e-5


class TestPlaneUV:
    """Tests for plane surface coordinates."""

    def test_plane_uv_projects_onto_axes(self):
        """For a +Y normal the coordinates are the point's x and z."""
        from prism.core.ray import vec3
        from prism.geometry.plane import Plane, plane_uv

        result = ti.Vector.field(2, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            plane = Plane(origin=vec3(0.0, 0.0, 0.0), normal=vec3(0.0, 1.0, 0.0))
            result[None] = plane_uv(vec3(3.0, 0.0, 4.0), plane)

        test_kernel()
        uv = result[None]
        assert abs(uv[0] - 3.0) < 1e-5
        assert abs(uv[1] - 4.0) < 1e-5

    def test_plane_uv_facing_z(self):
        """A normal along K uses the fallback in-plane axis."""
        from prism.core.ray import vec3
        from prism.geometry.plane import Plane, plane_uv

        result = ti.Vector.field(2, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            plane = Plane(origin=vec3(0.0, 0.0, 0.0), normal=vec3(0.0, 0.0, 1.0))
            result[None] = plane_uv(vec3(2.0, 5.0, 0.0), plane)

        test_kernel()
        uv = result[None]
        # u_hat = K x -J = I, v_hat = I x K = -J
        assert abs(uv[0] - 2.0) < 1e-5
        assert abs(uv[1] + 5.0) < 1e-5
