"""Unit tests for Phong materials."""

import pytest
import taichi as ti


class TestPhongMaterial:
    """Tests for the host-side material record."""

    def test_defaults(self):
        """Default material is non-reflective."""
        from prism.materials.phong import PhongMaterial

        material = PhongMaterial()
        assert material.reflectance == 0.0
        assert material.shininess == 20.0

    def test_from_color(self):
        """from_color uses a dim ambient and the color as diffuse."""
        from prism.materials.phong import PhongMaterial

        material = PhongMaterial.from_color((0.5, 1.0, 0.0), shininess=5.0)
        assert material.diffuse.primary == (0.5, 1.0, 0.0)
        assert material.ambient.primary == pytest.approx((0.05, 0.1, 0.0))
        assert material.specular.primary == (1.0, 1.0, 1.0)
        assert material.shininess == 5.0

    def test_from_texture_shares_texture(self):
        """Ambient and diffuse use the same texture object."""
        from prism.materials.phong import PhongMaterial
        from prism.materials.texture import Texture

        texture = Texture.checker((1.0, 1.0, 1.0), (0.0, 0.0, 0.0))
        material = PhongMaterial.from_texture(texture)
        assert material.ambient is texture
        assert material.diffuse is texture

    @pytest.mark.parametrize("reflectance", [-0.1, 1.5])
    def test_reflectance_range(self, reflectance):
        """Reflectance outside [0, 1] is rejected."""
        from prism.materials.phong import PhongMaterial

        with pytest.raises(ValueError):
            PhongMaterial(reflectance=reflectance)

    def test_negative_shininess_raises(self):
        """Shininess must be non-negative."""
        from prism.materials.phong import PhongMaterial

        with pytest.raises(ValueError):
            PhongMaterial(shininess=-1.0)

    def test_with_reflectance(self):
        """with_reflectance returns a modified copy."""
        from prism.materials.phong import PhongMaterial

        base = PhongMaterial.from_color((0.8, 0.8, 0.8))
        mirror = base.with_reflectance(0.9)
        assert mirror.reflectance == 0.9
        assert base.reflectance == 0.0
        assert mirror.diffuse is base.diffuse

    def test_random_color_reproducible(self):
        """A seeded generator gives the same material."""
        import numpy as np

        from prism.materials.phong import PhongMaterial

        a = PhongMaterial.random_color(np.random.default_rng(7))
        b = PhongMaterial.random_color(np.random.default_rng(7))
        assert a.diffuse.primary == b.diffuse.primary


class TestMaterialRegistry:
    """Tests for material storage and sampling."""

    def test_add_material(self):
        """Adding a material registers its textures."""
        from prism.materials.phong import PhongMaterial, add_material, get_material_count
        from prism.materials.texture import get_texture_count

        assert add_material(PhongMaterial.from_color((1.0, 0.0, 0.0))) == 0
        assert get_material_count() == 1
        assert get_texture_count() == 3

    def test_shared_texture_uploaded_once(self):
        """A texture used by two channels is registered once."""
        from prism.materials.phong import PhongMaterial, add_material
        from prism.materials.texture import Texture, get_texture_count

        texture = Texture.solid((0.3, 0.3, 0.3))
        add_material(PhongMaterial.from_texture(texture))
        assert get_texture_count() == 2

    def test_sample_material(self):
        """Sampling returns each channel's color and the exponent."""
        from prism.core.ray import vec2
        from prism.materials.phong import (
            PhongMaterial,
            add_material,
            get_material_reflectance,
            sample_material,
        )
        from prism.materials.texture import Texture

        material_id = add_material(
            PhongMaterial(
                ambient=Texture.solid((0.1, 0.2, 0.3)),
                diffuse=Texture.solid((0.4, 0.5, 0.6)),
                specular=Texture.solid((0.7, 0.8, 0.9)),
                shininess=8.0,
                reflectance=0.25,
            )
        )

        ka = ti.Vector.field(3, dtype=ti.f32, shape=())
        kd = ti.Vector.field(3, dtype=ti.f32, shape=())
        ks = ti.Vector.field(3, dtype=ti.f32, shape=())
        alpha = ti.field(dtype=ti.f32, shape=())
        refl = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            a, d, s, shininess = sample_material(material_id, vec2(0.5, 0.5))
            ka[None] = a
            kd[None] = d
            ks[None] = s
            alpha[None] = shininess
            refl[None] = get_material_reflectance(material_id)

        test_kernel()
        assert abs(ka[None][2] - 0.3) < 1e-5
        assert abs(kd[None][1] - 0.5) < 1e-5
        assert abs(ks[None][0] - 0.7) < 1e-5
        assert abs(alpha[None] - 8.0) < 1e-5
        assert abs(refl[None] - 0.25) < 1e-5

    def test_capacity(self):
        """Exceeding the registry raises RuntimeError."""
        from prism.materials import phong
        from prism.materials.phong import PhongMaterial, add_material

        phong.num_materials[None] = phong.MAX_MATERIALS
        with pytest.raises(RuntimeError):
            add_material(PhongMaterial())
