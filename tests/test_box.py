"""Unit tests for axis-aligned box intersection."""

import pytest
import taichi as ti


def _cast(origin, direction, minimum=(-0.5, -0.5, -0.5), maximum=(0.5, 0.5, 0.5), normal_sign=1.0):
    from prism.core.ray import vec3
    from prism.geometry.box import Box, hit_box_struct

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.Vector.field(3, dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel():
        box = Box(
            minimum=vec3(minimum[0], minimum[1], minimum[2]),
            maximum=vec3(maximum[0], maximum[1], maximum[2]),
            normal_sign=normal_sign,
        )
        record = hit_box_struct(
            vec3(origin[0], origin[1], origin[2]),
            vec3(direction[0], direction[1], direction[2]),
            box,
        )
        hit[None] = record.hit
        t_val[None] = record.t
        point[None] = record.point
        normal[None] = record.normal

    test_kernel()
    return hit[None], t_val[None], point[None], normal[None]


class TestBoxGeometry:
    """Tests for the host-side box record."""

    def test_default_is_unit_cube(self):
        """The default box spans [-0.5, 0.5] on every axis."""
        from prism.geometry.box import BoxGeometry

        box = BoxGeometry()
        assert box.minimum == (-0.5, -0.5, -0.5)
        assert box.maximum == (0.5, 0.5, 0.5)
        assert not box.flip_normals

    def test_inverted_corners_raise(self):
        """Minimum larger than maximum is rejected."""
        from prism.geometry.box import BoxGeometry

        with pytest.raises(ValueError):
            BoxGeometry(minimum=(1.0, 0.0, 0.0), maximum=(0.0, 1.0, 1.0))

    def test_with_flipped_normals(self):
        """Flipping returns a copy and leaves the original untouched."""
        from prism.geometry.box import BoxGeometry

        box = BoxGeometry()
        flipped = box.with_flipped_normals()
        assert flipped.flip_normals
        assert not box.flip_normals
        assert flipped.minimum == box.minimum


class TestBoxIntersection:
    """Tests for the slab intersection."""

    def test_hit_entry_face(self):
        """A ray along +X enters through the -X face."""
        hit, t, p, n = _cast((-1.0, 0.0, 0.0), (1.0, 0.0, 0.0))
        assert hit == 1
        assert abs(t - 0.5) < 1e-5
        assert abs(p[0] + 0.5) < 1e-5
        assert abs(n[0] + 1.0) < 1e-5
        assert abs(n[1]) < 1e-5
        assert abs(n[2]) < 1e-5

    def test_miss_beside_box(self):
        """A ray parallel to the box and outside it misses."""
        hit, _, _, _ = _cast((1.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        assert hit == 0

    def test_box_behind_ray(self):
        """A box behind the origin is not hit."""
        hit, _, _, _ = _cast((2.0, 0.0, 0.0), (1.0, 0.0, 0.0))
        assert hit == 0

    def test_origin_inside_reports_exit_face(self):
        """From inside, the exit face is reported with its outward normal."""
        hit, t, p, n = _cast((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        assert hit == 1
        assert abs(t - 0.5) < 1e-5
        assert abs(p[1] - 0.5) < 1e-5
        assert abs(n[1] - 1.0) < 1e-5

    def test_negative_direction(self):
        """A ray along -Z enters through the +Z face."""
        hit, t, _, n = _cast((0.0, 0.0, 3.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert abs(t - 2.5) < 1e-5
        assert abs(n[2] - 1.0) < 1e-5

    def test_flipped_normals_point_inward(self):
        """A negative normal sign reverses the reported normal."""
        hit, _, _, n = _cast((-1.0, 0.0, 0.0), (1.0, 0.0, 0.0), normal_sign=-1.0)
        assert hit == 1
        assert abs(n[0] - 1.0) < 1e-5


class TestBoxUV:
    """Tests for the cross-layout unwrap."""

    @pytest.mark.parametrize(
        "point,expected",
        [
            ((0.5, 0.0, 0.0), (0.625, 0.5)),
            ((-0.5, 0.0, 0.0), (0.125, 0.5)),
            ((0.0, 0.5, 0.0), (0.375, 5.0 / 6.0)),
            ((0.0, -0.5, 0.0), (0.375, 1.0 / 6.0)),
            ((0.0, 0.0, 0.5), (0.875, 0.5)),
            ((0.0, 0.0, -0.5), (0.375, 0.5)),
        ],
    )
    def test_face_centers(self, point, expected):
        """Each face center lands in the middle of its cell."""
        from prism.core.ray import vec3
        from prism.geometry.box import Box, box_uv

        result = ti.Vector.field(2, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            box = Box(
                minimum=vec3(-0.5, -0.5, -0.5),
                maximum=vec3(0.5, 0.5, 0.5),
                normal_sign=1.0,
            )
            result[None] = box_uv(vec3(point[0], point[1], point[2]), box)

        test_kernel()
        uv = result[None]
        assert abs(uv[0] - expected[0]) < 1e-5
        assert abs(uv[1] - expected[1]) < 1e-5
