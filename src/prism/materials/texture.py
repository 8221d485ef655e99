"""Textures: constant colors, checker patterns and image lookups.

A texture maps a 2D surface coordinate to an RGB color. Every texture has a
scale factor. Sampling divides the incoming coordinate by the scale and
wraps both axes into [0, 1). The wrapped coordinate then goes to one of
three patterns:

- CONSTANT: ignores the coordinate.
- CHECKER: picks ``primary`` when exactly one of ``u < 0.5`` and
  ``v < 0.5`` holds, else ``secondary``.
- IMAGE: reads the nearest texel at ``x = round(u (w - 1))``,
  ``y = round((1 - v)(h - 1))``. The v axis is flipped because image rows
  grow downward.

Texture parameters live in Structure-of-Arrays fields. Image texels from all
textures are packed into a single texel pool, and each texture records its
offset and dimensions in the pool.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.materials.texture import Texture, add_texture, color_at
    >>> tex_id = add_texture(Texture.checker((1, 1, 1), (0, 0, 0), scale=5.0))
    >>> color_at(tex_id, 1.0, 3.0)
    (1.0, 1.0, 1.0)
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti
from PIL import Image as PILImage

from prism.core.ray import vec2, vec3

logger = logging.getLogger(__name__)

Color = tuple[float, float, float]


class TextureKind(IntEnum):
    """Pattern used by a texture."""

    CONSTANT = 0
    CHECKER = 1
    IMAGE = 2


def clamp_color(color: tuple[float, float, float]) -> Color:
    """Clamp each channel of a color into [0, 1]."""
    if len(color) != 3:
        raise ValueError(f"Color must have 3 channels, got {len(color)}")
    return (
        min(max(float(color[0]), 0.0), 1.0),
        min(max(float(color[1]), 0.0), 1.0),
        min(max(float(color[2]), 0.0), 1.0),
    )


@dataclass(frozen=True, eq=False)
class Texture:
    """Host-side description of a texture.

    Attributes:
        kind: Which pattern the texture samples.
        primary: Constant color, or the first checker color.
        secondary: Second checker color.
        pixels: Image texels of shape (H, W, 3), dtype uint8, row 0 at the top.
        scale: Size of one pattern period in surface coordinates (positive).
    """

    kind: TextureKind = TextureKind.CONSTANT
    primary: Color = (1.0, 1.0, 1.0)
    secondary: Color = (0.0, 0.0, 0.0)
    pixels: npt.NDArray[np.uint8] | None = field(default=None, repr=False)
    scale: float = 1.0

    def __post_init__(self) -> None:
        if self.scale <= 0.0:
            raise ValueError(f"Texture scale must be positive, got {self.scale}")
        object.__setattr__(self, "primary", clamp_color(self.primary))
        object.__setattr__(self, "secondary", clamp_color(self.secondary))
        if self.kind == TextureKind.IMAGE:
            if self.pixels is None:
                raise ValueError("Image textures need pixel data")
            pixels = np.asarray(self.pixels)
            if pixels.ndim != 3 or pixels.shape[2] < 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
                raise ValueError(f"Image texture must have shape (H, W, 3), got {pixels.shape}")
            object.__setattr__(self, "pixels", np.ascontiguousarray(pixels[:, :, :3], dtype=np.uint8))

    @classmethod
    def solid(cls, color: Color, scale: float = 1.0) -> "Texture":
        """A texture returning one color everywhere."""
        return cls(kind=TextureKind.CONSTANT, primary=color, scale=scale)

    @classmethod
    def checker(cls, primary: Color, secondary: Color, scale: float = 1.0) -> "Texture":
        """A two-color checkerboard with period ``scale``."""
        return cls(kind=TextureKind.CHECKER, primary=primary, secondary=secondary, scale=scale)

    @classmethod
    def image(cls, pixels: npt.ArrayLike, scale: float = 1.0) -> "Texture":
        """An image texture from an (H, W, 3) uint8 array."""
        return cls(kind=TextureKind.IMAGE, pixels=np.asarray(pixels), scale=scale)

    @classmethod
    def from_file(cls, path: str | Path, scale: float = 1.0) -> "Texture":
        """Decode an image file with Pillow into an image texture.

        Raises:
            OSError: If the file cannot be opened or decoded.
        """
        with PILImage.open(path) as img:
            pixels = np.asarray(img.convert("RGB"), dtype=np.uint8)
        logger.debug("Loaded texture %s (%dx%d)", path, pixels.shape[1], pixels.shape[0])
        return cls.image(pixels, scale=scale)


# =============================================================================
# Texture Field Storage
# =============================================================================

MAX_TEXTURES = 1024

# Shared pool for image texels (RGB in [0, 1], row-major, row 0 at the top)
MAX_TEXELS = 2048 * 2048

texture_kinds = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_scales = ti.field(dtype=ti.f32, shape=MAX_TEXTURES)
texture_primary = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
texture_secondary = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
texture_texel_offsets = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_widths = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_heights = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())

texels = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXELS)
num_texels = ti.field(dtype=ti.i32, shape=())


def clear_textures() -> None:
    """Clear all textures and the texel pool."""
    num_textures[None] = 0
    num_texels[None] = 0


@ti.kernel
def _upload_texels(pixels: ti.types.ndarray(), offset: ti.i32):
    for i in range(pixels.shape[0]):
        texels[offset + i] = vec3(pixels[i, 0], pixels[i, 1], pixels[i, 2])


def add_texture(texture: Texture) -> int:
    """Add a texture to the texture registry.

    Args:
        texture: The texture to upload.

    Returns:
        The index of the added texture.

    Raises:
        RuntimeError: If the texture or texel capacity would be exceeded.
    """
    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")

    offset = num_texels[None]
    width = 0
    height = 0
    if texture.kind == TextureKind.IMAGE:
        height, width = texture.pixels.shape[:2]
        if offset + width * height > MAX_TEXELS:
            raise RuntimeError(f"Texel pool capacity ({MAX_TEXELS}) exceeded")
        flat = texture.pixels.reshape(-1, 3).astype(np.float32) / 255.0
        _upload_texels(flat, offset)
        num_texels[None] = offset + width * height

    texture_kinds[idx] = int(texture.kind)
    texture_scales[idx] = texture.scale
    texture_primary[idx] = texture.primary
    texture_secondary[idx] = texture.secondary
    texture_texel_offsets[idx] = offset
    texture_widths[idx] = width
    texture_heights[idx] = height
    num_textures[None] = idx + 1
    return idx


def get_texture_count() -> int:
    """Get the number of textures in the registry."""
    return int(num_textures[None])


@ti.func
def _wrap(x: ti.f32) -> ti.f32:
    return x - ti.floor(x)


@ti.func
def sample_texture(texture_id: ti.i32, uv: vec2) -> vec3:
    """Sample a texture at a surface coordinate.

    Args:
        texture_id: The index of the texture in the registry.
        uv: Surface coordinate, unscaled and unwrapped.

    Returns:
        The RGB color at that coordinate.
    """
    scale = texture_scales[texture_id]
    u = _wrap(uv.x / scale)
    v = _wrap(uv.y / scale)

    kind = texture_kinds[texture_id]
    color = texture_primary[texture_id]

    if kind == int(TextureKind.CHECKER):
        if (u < 0.5) == (v < 0.5):
            color = texture_secondary[texture_id]
    elif kind == int(TextureKind.IMAGE):
        width = texture_widths[texture_id]
        height = texture_heights[texture_id]
        x = ti.cast(ti.floor(u * ti.cast(width - 1, ti.f32) + 0.5), ti.i32)
        y = ti.cast(ti.floor((1.0 - v) * ti.cast(height - 1, ti.f32) + 0.5), ti.i32)
        x = ti.min(ti.max(x, 0), width - 1)
        y = ti.min(ti.max(y, 0), height - 1)
        color = texels[texture_texel_offsets[texture_id] + y * width + x]

    return color


@ti.kernel
def _color_at_kernel(texture_id: ti.i32, u: ti.f32, v: ti.f32) -> vec3:
    return sample_texture(texture_id, vec2(u, v))


def color_at(texture_id: int, u: float, v: float) -> tuple[float, float, float]:
    """Sample a registered texture from Python.

    Args:
        texture_id: The index of the texture in the registry.
        u: First surface coordinate.
        v: Second surface coordinate.

    Returns:
        Tuple of (R, G, B).
    """
    color = _color_at_kernel(texture_id, u, v)
    return (float(color[0]), float(color[1]), float(color[2]))
