"""Scene module for entities, lights and ray-scene queries.

This module handles scene representation and ray-scene queries:

Components:
    entity: EntityBuilder and the frozen, transformed Entity
    intersection: Entity storage, shape dispatch and closest-hit queries
    lights: Point light storage
    manager: SceneManager coordinating entities, lights, camera and rendering
    showcase: A ready-made demo scene

Scene data is organized for efficient access from kernels:
    - Structure-of-Arrays layout for geometric data
    - Per-entity forward, inverse and normal matrices
    - Contiguous material ID arrays
"""

from .entity import (
    GEOMETRY_TYPES,
    Entity,
    EntityBuilder,
    Geometry,
    SingularTransformError,
)
from .intersection import (
    MAX_ENTITIES,
    GeometryType,
    RayHit,
    SceneHitRecord,
    add_entity,
    cast_ray,
    clear_scene,
    entity_uv,
    get_entity_count,
    intersect_entity,
    intersect_scene,
    surface_parameters,
)
from .lights import (
    MAX_LIGHTS,
    PointLight,
    add_light,
    clear_lights,
    get_light_count,
    light_intensity_at,
)

# Note: manager and showcase are NOT imported here to avoid circular imports
# with the integrator. Import them directly:
#   from prism.scene.manager import SceneManager
#   from prism.scene.showcase import create_showcase_scene

__all__ = [
    # Entity module
    "Entity",
    "EntityBuilder",
    "Geometry",
    "GEOMETRY_TYPES",
    "SingularTransformError",
    # Intersection module
    "GeometryType",
    "MAX_ENTITIES",
    "RayHit",
    "SceneHitRecord",
    "add_entity",
    "cast_ray",
    "clear_scene",
    "entity_uv",
    "get_entity_count",
    "intersect_entity",
    "intersect_scene",
    "surface_parameters",
    # Lights module
    "MAX_LIGHTS",
    "PointLight",
    "add_light",
    "clear_lights",
    "get_light_count",
    "light_intensity_at",
]
