"""Unit tests for ray utilities."""

import taichi as ti


class TestRay:
    """Tests for the Ray dataclass and helpers."""

    def test_ray_at(self):
        """ray_at evaluates origin + t * direction."""
        from prism.core.ray import Ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(0.0, 0.0, 2.0))
            result[None] = ray_at(ray, 2.5)

        test_kernel()
        p = result[None]
        assert abs(p[0] - 1.0) < 1e-6
        assert abs(p[1] - 2.0) < 1e-6
        assert abs(p[2] - 8.0) < 1e-6

    def test_reflect(self):
        """A ray hitting a floor at 45 degrees bounces upward."""
        from prism.core.ray import reflect, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-6
        assert abs(r[1] - 1.0) < 1e-6
        assert abs(r[2]) < 1e-6

    def test_phong_reflect(self):
        """The Phong mirror of l about n is 2 (l . n) n - l."""
        from prism.core.ray import phong_reflect, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = phong_reflect(vec3(-1.0, 1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-6
        assert abs(r[1] - 1.0) < 1e-6
        assert abs(r[2]) < 1e-6
