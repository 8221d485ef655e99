"""Point lights for direct illumination.

A point light has a world position, separate ambient, diffuse and specular
colors, and an intensity that falls off with the inverse square of distance.
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from prism.core.ray import point3
from prism.materials.texture import Color, clamp_color


@dataclass(frozen=True)
class PointLight:
    """An isotropic point light.

    Attributes:
        position: World-space position.
        ambient: Ambient color (ia), added even when the point is in shadow.
        diffuse: Diffuse color (id).
        specular: Specular color (is).
        intensity: Radiant intensity; divided by squared distance at a point.
    """

    position: tuple[float, float, float]
    ambient: Color = (0.1, 0.1, 0.1)
    diffuse: Color = (1.0, 1.0, 1.0)
    specular: Color = (1.0, 1.0, 1.0)
    intensity: float = 1.0

    def __post_init__(self) -> None:
        if self.intensity < 0.0:
            raise ValueError(f"Light intensity must be non-negative, got {self.intensity}")
        object.__setattr__(self, "ambient", clamp_color(self.ambient))
        object.__setattr__(self, "diffuse", clamp_color(self.diffuse))
        object.__setattr__(self, "specular", clamp_color(self.specular))

    def intensity_at(self, point: tuple[float, float, float]) -> float:
        """Intensity reaching ``point`` after inverse-square falloff."""
        r2 = sum((p - q) ** 2 for p, q in zip(point, self.position))
        return self.intensity / r2


# =============================================================================
# Light Field Storage
# =============================================================================

MAX_LIGHTS = 64

light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_ambient = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_diffuse = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_specular = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_intensities = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove all lights."""
    num_lights[None] = 0


def add_light(light: PointLight) -> int:
    """Add a point light.

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
    """
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    light_positions[idx] = light.position
    light_ambient[idx] = light.ambient
    light_diffuse[idx] = light.diffuse
    light_specular[idx] = light.specular
    light_intensities[idx] = light.intensity
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of lights in the scene."""
    return int(num_lights[None])


@ti.func
def light_intensity_at(light_idx: ti.i32, point: point3) -> ti.f32:
    """Inverse-square intensity of a light at a point."""
    offset = point - light_positions[light_idx]
    return light_intensities[light_idx] / tm.dot(offset, offset)
