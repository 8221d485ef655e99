"""Entities: a shape placed in the world with a material.

An entity wraps one geometry record in object space and gives it a place in
the world. Placement is accumulated on a mutable ``EntityBuilder`` from four
independent matrices: translation, rotation, scaling and an ad-hoc
transform. ``build()`` then freezes the result into an ``Entity`` holding
the composed forward matrix and its inverse.

Rotation, scaling and the ad-hoc matrix compose in object space
(``rotation @ scaling @ ad_hoc``). Translation is added afterward, in world
space. So an entity can be scaled or rotated about its own origin no matter
where it is placed.

Example:
    >>> from prism.core.matrix import Axis
    >>> from prism.geometry import SphereGeometry
    >>> entity = (
    ...     EntityBuilder(SphereGeometry())
    ...     .scale(5.0)
    ...     .rotate(Axis.Y, 30.0)
    ...     .translate((0.0, 0.0, 30.0))
    ...     .build()
    ... )
"""

from dataclasses import dataclass

import numpy as np

from prism.core.matrix import (
    Axis,
    Matrix4,
    apply_to_point,
    apply_to_vector,
    compose,
    identity,
    invert,
    rotation,
    scaling,
    translation,
)
from prism.geometry.box import BoxGeometry
from prism.geometry.mesh import MeshGeometry
from prism.geometry.plane import PlaneGeometry
from prism.geometry.sphere import SphereGeometry
from prism.materials.phong import PhongMaterial

Geometry = SphereGeometry | PlaneGeometry | BoxGeometry | MeshGeometry

GEOMETRY_TYPES = (SphereGeometry, PlaneGeometry, BoxGeometry, MeshGeometry)


class SingularTransformError(ValueError):
    """An entity's composed transform has no inverse."""


def _frozen(m: Matrix4) -> Matrix4:
    m = np.array(m, dtype=np.float64)
    m.flags.writeable = False
    return m


@dataclass(frozen=True, eq=False)
class Entity:
    """An immutable placed shape.

    Attributes:
        geometry: The wrapped shape, in object space.
        material: Surface material.
        transform: Object-to-world matrix.
        inverse_transform: World-to-object matrix.
    """

    geometry: Geometry
    material: PhongMaterial
    transform: Matrix4
    inverse_transform: Matrix4

    @property
    def normal_transform(self) -> Matrix4:
        """Matrix lifting object-space normals to world space (inverse transpose)."""
        return self.inverse_transform.T

    def to_object_space(self, point: tuple[float, float, float]) -> tuple[float, float, float]:
        """Map a world-space point into object space."""
        return apply_to_point(self.inverse_transform, point)

    def to_world_space(self, point: tuple[float, float, float]) -> tuple[float, float, float]:
        """Map an object-space point into world space."""
        return apply_to_point(self.transform, point)

    def direction_to_object_space(
        self, direction: tuple[float, float, float]
    ) -> tuple[float, float, float]:
        """Map a world-space direction into object space."""
        return apply_to_vector(self.inverse_transform, direction)


class EntityBuilder:
    """Mutable configuration for an Entity.

    Each placement method returns the builder, so calls chain. Repeated
    calls of the same kind accumulate by right-multiplication.

    Args:
        geometry: The shape to wrap.
        material: Surface material. Defaults to ``PhongMaterial()``.

    Raises:
        TypeError: If ``geometry`` is not a known geometry record.
    """

    def __init__(self, geometry: Geometry, material: PhongMaterial | None = None) -> None:
        if not isinstance(geometry, GEOMETRY_TYPES):
            raise TypeError(f"Unsupported geometry type: {type(geometry).__name__}")
        self._geometry = geometry
        self._material = material if material is not None else PhongMaterial()
        self._translation = identity()
        self._rotation = identity()
        self._scaling = identity()
        self._ad_hoc = identity()

    def translate(self, offset: tuple[float, float, float]) -> "EntityBuilder":
        """Move the entity in world space."""
        self._translation = self._translation @ translation(offset)
        return self

    def rotate(self, axis: Axis, degrees: float) -> "EntityBuilder":
        """Rotate the entity about an object-space axis."""
        self._rotation = self._rotation @ rotation(axis, degrees)
        return self

    def scale(self, factors: float | tuple[float, float, float]) -> "EntityBuilder":
        """Scale the entity, uniformly for a single number."""
        if isinstance(factors, (int, float)):
            factors = (float(factors),) * 3
        self._scaling = self._scaling @ scaling(factors)
        return self

    def transform(self, matrix: Matrix4) -> "EntityBuilder":
        """Apply an arbitrary object-space 4x4 matrix."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Transform must be a 4x4 matrix, got shape {matrix.shape}")
        self._ad_hoc = self._ad_hoc @ matrix
        return self

    def with_material(self, material: PhongMaterial) -> "EntityBuilder":
        """Replace the entity's material."""
        self._material = material
        return self

    def build(self) -> Entity:
        """Compose the transforms and freeze the entity.

        Raises:
            SingularTransformError: If the composed transform is not invertible
                (for example a zero scale factor).
        """
        forward = compose(self._rotation, self._scaling, self._ad_hoc)
        forward[:3, 3] += self._translation[:3, 3]

        inverse = invert(forward)
        if inverse is None:
            raise SingularTransformError(
                f"Could not invert transform for {type(self._geometry).__name__} entity:\n{forward}"
            )

        return Entity(
            geometry=self._geometry,
            material=self._material,
            transform=_frozen(forward),
            inverse_transform=_frozen(inverse),
        )
