"""Pytest configuration for raytracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear every registry before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here so Taichi is initialized before fields are allocated
    from prism.core.integrator import DEFAULT_BACKGROUND, clear_render_target, set_background
    from prism.materials.phong import clear_materials
    from prism.materials.texture import clear_textures
    from prism.scene.intersection import clear_scene
    from prism.scene.lights import clear_lights

    def _clear_all():
        clear_scene()
        clear_materials()
        clear_textures()
        clear_lights()
        clear_render_target()
        set_background(DEFAULT_BACKGROUND)

    _clear_all()
    yield
    _clear_all()
