"""Whitted-style tracer: Phong shading, hard shadows and mirror reflection.

This module implements the main rendering kernel. Each primary ray finds its
closest hit. The hit point is then shaded locally with the Phong model, one
shadow ray per light. When the hit material has a nonzero reflectance, the
local color is blended with the color seen along the mirror direction.

The blend is defined recursively:

    color = (1 - reflectance) * local + reflectance * trace(reflected, depth - 1)

Taichi functions cannot recurse, so ``trace`` unrolls this into a loop that
carries the product of reflectances seen so far as a weight.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.core.integrator import render_rows, setup_render_target
    >>> from prism.camera.pinhole import Camera, setup_camera
    >>>
    >>> setup_camera(Camera(), 320, 240, 70.0)
    >>> setup_render_target(320, 240)
    >>> render_rows(0, 240)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prism.camera.pinhole import get_camera_ray
from prism.core.ray import point3, reflect, phong_reflect, vec3
from prism.materials.phong import get_material_reflectance, sample_material
from prism.scene.intersection import entity_material_ids, entity_uv, intersect_scene
from prism.scene.lights import (
    light_ambient,
    light_diffuse,
    light_intensity_at,
    light_positions,
    light_specular,
    num_lights,
)

# =============================================================================
# Rendering Constants
# =============================================================================

# Maximum reflection depth
MAX_DEPTH = 5

# Offset along the normal for shadow and reflection ray origins
RAY_EPSILON = 1e-4

DEFAULT_BACKGROUND = (0.0, 0.03, 0.03)

_background = ti.Vector.field(3, dtype=ti.f32, shape=())


def set_background(color: tuple[float, float, float]) -> None:
    """Set the color returned by rays that escape the scene."""
    _background[None] = color


def get_background() -> tuple[float, float, float]:
    """Get the current background color."""
    c = _background[None]
    return (float(c[0]), float(c[1]), float(c[2]))


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Color buffer indexed [x, y] with y = 0 the top row
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffer.

    Sets the active image dimensions and clears the buffer. The buffer is
    preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffer to zero."""
    _color_buffer.fill(0.0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Shading
# =============================================================================


@ti.func
def shade_local(point: point3, normal: vec3, direction: vec3, entity_id: ti.i32) -> vec3:
    """Phong color of a hit point, summed over all lights.

    Ambient light is always added. Diffuse and specular terms are added only
    when the shadow ray toward the light reaches it unoccluded; both are
    scaled by the inverse-square intensity capped at 1.

    Args:
        point: World-space hit point.
        normal: Unit world-space normal at the hit.
        direction: Direction of the incoming ray (normalized).
        entity_id: The entity that was hit.

    Returns:
        The local color, clamped to [0, 1].
    """
    material_id = entity_material_ids[entity_id]
    ka, kd, ks, alpha = sample_material(material_id, entity_uv(entity_id, point))

    shadow_origin = point + RAY_EPSILON * normal
    view = -direction

    color = vec3(0.0, 0.0, 0.0)
    for light_idx in range(num_lights[None]):
        to_light = light_positions[light_idx] - point
        distance = tm.length(to_light)
        l = to_light / distance
        intensity = tm.min(light_intensity_at(light_idx, point), 1.0)

        color += ka * light_ambient[light_idx]

        shadow = intersect_scene(shadow_origin, l)
        occluded = 0
        if shadow.hit == 1:
            if shadow.t < distance:
                occluded = 1

        if occluded == 0:
            l_dot_n = tm.dot(l, normal)
            if l_dot_n > 0.0:
                color += kd * l_dot_n * light_diffuse[light_idx] * intensity

            r_dot_v = tm.dot(phong_reflect(l, normal), view)
            if r_dot_v > 0.0:
                color += ks * tm.pow(r_dot_v, alpha) * light_specular[light_idx] * intensity

    return tm.clamp(color, 0.0, 1.0)


@ti.func
def trace(origin: point3, direction: vec3, depth: ti.i32) -> vec3:
    """Trace a ray through the scene, following mirror reflections.

    Args:
        origin: World-space ray origin.
        direction: Unit ray direction.
        depth: Remaining reflection depth; at 0 the background is returned.

    Returns:
        The color seen along the ray.
    """
    color = vec3(0.0, 0.0, 0.0)
    weight = 1.0
    o = origin
    d = direction

    # Active flag for loop continuation (Taichi doesn't support break in ti.func loops)
    active = 1

    for bounce in range(depth + 1):
        if active == 1:
            if bounce == depth:
                color += weight * _background[None]
                active = 0
            else:
                rec = intersect_scene(o, d)
                if rec.hit == 0:
                    color += weight * _background[None]
                    active = 0
                else:
                    local = shade_local(rec.point, rec.normal, d, rec.entity_id)
                    reflectance = get_material_reflectance(entity_material_ids[rec.entity_id])
                    if reflectance == 0.0:
                        color += weight * local
                        active = 0
                    else:
                        color += weight * (1.0 - reflectance) * local
                        weight *= reflectance
                        o = rec.point + RAY_EPSILON * rec.normal
                        d = tm.normalize(reflect(d, rec.normal))

    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows(width: ti.i32, row_start: ti.i32, row_end: ti.i32, max_depth: ti.i32):
    """Render a horizontal band of pixels [row_start, row_end)."""
    for i, j in ti.ndrange(width, (row_start, row_end)):
        ray = get_camera_ray(i, j)
        color = trace(ray.origin, ray.direction, max_depth)

        # Replace NaN/Inf from degenerate geometry with zero
        for c in ti.static(range(3)):
            if tm.isnan(color[c]) or tm.isinf(color[c]):
                color[c] = 0.0

        _color_buffer[i, j] = tm.clamp(color, 0.0, 1.0)


@ti.kernel
def _render_single_pixel(pixel_x: ti.i32, pixel_y: ti.i32, max_depth: ti.i32) -> vec3:
    ray = get_camera_ray(pixel_x, pixel_y)
    return trace(ray.origin, ray.direction, max_depth)


@ti.kernel
def _trace_ray_kernel(
    ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32, depth: ti.i32
) -> vec3:
    return trace(vec3(ox, oy, oz), tm.normalize(vec3(dx, dy, dz)), depth)


# =============================================================================
# Public Rendering API
# =============================================================================


def render_rows(row_start: int, row_end: int, max_depth: int = MAX_DEPTH) -> None:
    """Render rows [row_start, row_end) of the render target.

    Args:
        row_start: First row to render (0 = top).
        row_end: One past the last row to render.
        max_depth: Maximum reflection depth.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If the row range is outside the image.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    if not 0 <= row_start <= row_end <= height:
        raise ValueError(f"Row range [{row_start}, {row_end}) is outside image height {height}")
    if row_start == row_end:
        return
    _render_rows(width, row_start, row_end, max_depth)


def render_pixel(x: int, y: int, max_depth: int = MAX_DEPTH) -> tuple[float, float, float]:
    """Trace the primary ray of a single pixel.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        max_depth: Maximum reflection depth.

    Returns:
        Tuple of (R, G, B) color values.
    """
    color = _render_single_pixel(x, y, max_depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int = MAX_DEPTH,
) -> tuple[float, float, float]:
    """Trace an arbitrary world-space ray from Python.

    The direction is normalized before tracing.

    Returns:
        Tuple of (R, G, B) color values.
    """
    color = _trace_ray_kernel(*origin, *direction, depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def get_normalized_image_numpy() -> npt.NDArray[np.float32]:
    """Get the rendered image as a NumPy array.

    Returns:
        Array of shape (height, width, 3), dtype float32, values in [0, 1],
        row 0 at the top.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    full_image = _color_buffer.to_numpy()

    # Transpose from (width, height, 3) to (height, width, 3)
    image = np.transpose(full_image[:width, :height, :], (1, 0, 2))

    return np.clip(image, 0.0, 1.0).astype(np.float32)
