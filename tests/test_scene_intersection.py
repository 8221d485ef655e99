"""Unit tests for scene-level intersection.

Tests cover:
- Geometry registration and dispatch
- World-space hits through entity transforms
- Closest-hit selection across entities
- Surface coordinates of world-space points
"""

import math

import pytest


def _add(builder):
    """Build and register an entity with its material."""
    from prism.materials.phong import add_material
    from prism.scene.intersection import add_entity

    entity = builder.build()
    return add_entity(entity, add_material(entity.material))


class TestRegistration:
    """Tests for entity registration."""

    def test_add_geometry_types(self):
        """Each geometry goes to its own storage."""
        from prism.geometry import BoxGeometry, MeshGeometry, PlaneGeometry, SphereGeometry
        from prism.scene.intersection import GeometryType, add_geometry

        assert add_geometry(SphereGeometry()) == (GeometryType.SPHERE, 0)
        assert add_geometry(SphereGeometry()) == (GeometryType.SPHERE, 1)
        assert add_geometry(PlaneGeometry()) == (GeometryType.PLANE, 0)
        assert add_geometry(BoxGeometry()) == (GeometryType.BOX, 0)
        mesh = MeshGeometry.from_arrays(
            [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)], [(0, 1, 2)]
        )
        assert add_geometry(mesh) == (GeometryType.MESH, 0)

    def test_unknown_geometry_raises(self):
        """Unknown geometry records raise TypeError."""
        from prism.scene.intersection import add_geometry

        with pytest.raises(TypeError):
            add_geometry(object())

    def test_entity_count_and_clear(self):
        """clear_scene removes every entity."""
        from prism.geometry import SphereGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import clear_scene, get_entity_count

        _add(EntityBuilder(SphereGeometry()))
        _add(EntityBuilder(SphereGeometry()))
        assert get_entity_count() == 2

        clear_scene()
        assert get_entity_count() == 0


class TestCastRay:
    """Tests for world-space ray casting."""

    def test_empty_scene_misses(self):
        """With no entities every ray misses."""
        from prism.scene.intersection import cast_ray

        assert cast_ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)) is None

    def test_scaled_translated_sphere(self):
        """The hit is reported in world space."""
        from prism.geometry import SphereGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import cast_ray

        idx = _add(EntityBuilder(SphereGeometry()).scale(2.0).translate((0.0, 0.0, 10.0)))
        hit = cast_ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))

        assert hit is not None
        assert hit.entity_id == idx
        assert hit.t == pytest.approx(8.0, abs=1e-4)
        assert hit.point == pytest.approx((0.0, 0.0, 8.0), abs=1e-4)
        assert hit.normal == pytest.approx((0.0, 0.0, -1.0), abs=1e-4)

    def test_t_is_world_distance(self):
        """t is the distance between the origin and the hit point."""
        from prism.geometry import SphereGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import cast_ray

        _add(EntityBuilder(SphereGeometry()).scale(3.0).translate((4.0, 0.0, 20.0)))
        direction = (4.0 / math.sqrt(416.0), 0.0, 20.0 / math.sqrt(416.0))
        hit = cast_ray((0.0, 0.0, 0.0), direction)

        assert hit is not None
        assert hit.t == pytest.approx(math.dist((0.0, 0.0, 0.0), hit.point), abs=1e-3)
        assert hit.t == pytest.approx(math.sqrt(416.0) - 3.0, abs=1e-3)

    def test_normal_under_non_uniform_scale(self):
        """Normals go through the inverse transpose."""
        from prism.geometry import SphereGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import cast_ray

        _add(EntityBuilder(SphereGeometry()).scale((2.0, 1.0, 1.0)))
        x = math.sqrt(2.0)
        hit = cast_ray((x, 10.0, 0.0), (0.0, -1.0, 0.0))

        assert hit is not None
        assert hit.point[1] == pytest.approx(math.sqrt(0.5), abs=1e-4)
        assert hit.normal == pytest.approx((1.0 / math.sqrt(5.0), 2.0 / math.sqrt(5.0), 0.0), abs=1e-4)

    def test_closest_entity_wins(self):
        """Insertion order does not decide which hit is reported."""
        from prism.geometry import SphereGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import cast_ray

        _add(EntityBuilder(SphereGeometry()).translate((0.0, 0.0, 20.0)))
        near = _add(EntityBuilder(SphereGeometry()).translate((0.0, 0.0, 10.0)))

        hit = cast_ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert hit.entity_id == near
        assert hit.t == pytest.approx(9.0, abs=1e-4)

    def test_translated_plane(self):
        """A floor plane below the origin is hit from above."""
        from prism.geometry import PlaneGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import cast_ray

        _add(EntityBuilder(PlaneGeometry()).translate((0.0, -10.0, 0.0)))
        hit = cast_ray((0.0, 0.0, 0.0), (0.0, -1.0, 0.0))
        assert hit.t == pytest.approx(10.0, abs=1e-4)
        assert hit.normal == pytest.approx((0.0, 1.0, 0.0), abs=1e-5)

        assert cast_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0)) is None

    def test_rotated_box(self):
        """A box rotated about Y still reports an outward normal."""
        from prism.core.matrix import Axis
        from prism.geometry import BoxGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import cast_ray

        _add(EntityBuilder(BoxGeometry()).scale(2.0).rotate(Axis.Y, 90.0).translate((0.0, 0.0, 5.0)))
        hit = cast_ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert hit.t == pytest.approx(4.0, abs=1e-4)
        assert hit.normal == pytest.approx((0.0, 0.0, -1.0), abs=1e-4)

    def test_mesh_entity(self):
        """Meshes are transformed like any other entity."""
        from prism.geometry import MeshGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import cast_ray

        quad = MeshGeometry.from_arrays(
            [(-1.0, -1.0, 0.0), (-1.0, 1.0, 0.0), (1.0, 1.0, 0.0), (1.0, -1.0, 0.0)],
            [(0, 1, 2, 3)],
        )
        _add(EntityBuilder(quad).translate((0.0, 0.0, 7.0)))
        hit = cast_ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert hit.t == pytest.approx(7.0, abs=1e-4)

        assert cast_ray((3.0, 0.0, 0.0), (0.0, 0.0, 1.0)) is None


class TestSurfaceParameters:
    """Tests for world-space surface coordinates."""

    def test_sphere(self):
        """Coordinates are computed in object space."""
        from prism.geometry import SphereGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import surface_parameters

        idx = _add(EntityBuilder(SphereGeometry()).scale(2.0).translate((0.0, 0.0, 10.0)))
        u, v = surface_parameters(idx, (0.0, 0.0, 8.0))
        assert u == pytest.approx(0.75, abs=1e-5)
        assert v == pytest.approx(0.5, abs=1e-5)

    def test_plane(self):
        """Plane coordinates are not wrapped."""
        from prism.geometry import PlaneGeometry
        from prism.scene.entity import EntityBuilder
        from prism.scene.intersection import surface_parameters

        idx = _add(EntityBuilder(PlaneGeometry()).translate((0.0, -10.0, 0.0)))
        u, v = surface_parameters(idx, (3.0, -10.0, 4.0))
        assert u == pytest.approx(3.0, abs=1e-4)
        assert v == pytest.approx(4.0, abs=1e-4)
