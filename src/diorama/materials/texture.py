"""Texture atlas and sampling functions.

Decoded RGB images are uploaded into a single preallocated atlas field so
that kernels can sample any texture by slot index. Three addressing schemes
are provided:

- ``sample_repeat``: wrap addressing at a surface UV, used for tiled walls
  and floors. Row 0 of the image is the top edge (v = 1).
- ``sample_clamped``: clamp addressing with rounding, used for cubemap faces.
  Row 0 of the image is v = 0.
- ``sample_triplanar``: three world-space projections blended by the
  absolute normal components, used where no good UV exists.

Materials reference textures through a binding of (texture_id, mode, scale);
``sample_binding`` evaluates such a binding and returns white for an unbound
slot so that albedo * sample leaves untextured materials unchanged.

Example:
    >>> import numpy as np
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.materials.texture import add_texture
    >>> checker = np.indices((64, 64)).sum(axis=0) % 2
    >>> slot = add_texture(np.stack([checker] * 3, axis=-1).astype(np.float32))
"""

import logging
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

logger = logging.getLogger(__name__)

vec3 = tm.vec3
vec2 = tm.vec2


class TextureMode(IntEnum):
    """How a material maps its texture onto a surface."""

    UV = 0
    TRIPLANAR = 1


# Atlas capacity (preallocated to avoid kernel recompilation)
MAX_TEXTURES = 16
MAX_TEXTURE_SIZE = 512

_texels = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_TEXTURES, MAX_TEXTURE_SIZE, MAX_TEXTURE_SIZE))
_texture_widths = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
_texture_heights = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())


def clear_textures() -> None:
    """Forget all uploaded textures. Texel data is overwritten on reuse."""
    num_textures[None] = 0


def get_texture_count() -> int:
    """Get the number of textures in the atlas."""
    return int(num_textures[None])


def get_texture_size(texture_id: int) -> tuple[int, int]:
    """Get the (width, height) of an uploaded texture.

    Raises:
        ValueError: If texture_id does not name an uploaded texture.
    """
    if not 0 <= texture_id < num_textures[None]:
        raise ValueError(f"Invalid texture_id: {texture_id}")
    return int(_texture_widths[texture_id]), int(_texture_heights[texture_id])


def to_float_rgb(pixels: npt.ArrayLike) -> np.ndarray:
    """Convert a decoded image array to float32 RGB in [0, 1].

    Accepts (H, W) grayscale or (H, W, 3|4) color arrays. Integer arrays are
    treated as 8-bit and divided by 255; alpha channels are dropped.

    Args:
        pixels: Row-major image data.

    Returns:
        A C-contiguous float32 array of shape (H, W, 3).

    Raises:
        ValueError: If the array shape is not an image or values are not finite.
    """
    arr = np.asarray(pixels)
    if arr.ndim == 2:
        arr = np.stack([arr] * 3, axis=-1)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"Expected image array of shape (H, W, 3|4), got {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise ValueError("Texture must have at least one pixel")

    arr = arr[:, :, :3]
    if np.issubdtype(arr.dtype, np.integer):
        rgb = arr.astype(np.float32) / 255.0
    else:
        rgb = arr.astype(np.float32)
        if not np.all(np.isfinite(rgb)):
            raise ValueError("Texture contains non-finite values")
        rgb = np.clip(rgb, 0.0, 1.0)
    return np.ascontiguousarray(rgb)


@ti.kernel
def _upload_texels(slot: ti.i32, pixels: ti.types.ndarray(), width: ti.i32, height: ti.i32):
    for row, col in ti.ndrange(height, width):
        _texels[slot, row, col] = vec3(pixels[row, col, 0], pixels[row, col, 1], pixels[row, col, 2])


def add_texture(pixels: npt.ArrayLike) -> int:
    """Upload a decoded image into the texture atlas.

    Args:
        pixels: Row-major image array, (H, W), (H, W, 3) or (H, W, 4),
            either 8-bit integers or floats in [0, 1].

    Returns:
        The texture slot index.

    Raises:
        ValueError: If the image is malformed or larger than MAX_TEXTURE_SIZE.
        RuntimeError: If the atlas is full.
    """
    rgb = to_float_rgb(pixels)
    height, width = rgb.shape[0], rgb.shape[1]
    if width > MAX_TEXTURE_SIZE or height > MAX_TEXTURE_SIZE:
        raise ValueError(
            f"Texture dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_TEXTURE_SIZE}x{MAX_TEXTURE_SIZE})"
        )

    slot = num_textures[None]
    if slot >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")

    _upload_texels(slot, rgb, width, height)
    _texture_widths[slot] = width
    _texture_heights[slot] = height
    num_textures[None] = slot + 1
    logger.debug("Uploaded texture %d (%dx%d)", slot, width, height)
    return slot


# =============================================================================
# Sampling (Taichi functions)
# =============================================================================


@ti.func
def _fetch(slot: ti.i32, col: ti.i32, row: ti.i32) -> vec3:
    width = _texture_widths[slot]
    height = _texture_heights[slot]
    c = ti.max(0, ti.min(col, width - 1))
    r = ti.max(0, ti.min(row, height - 1))
    return _texels[slot, r, c]


@ti.func
def sample_repeat(slot: ti.i32, uv: vec2) -> vec3:
    """Nearest-neighbor sample with wrap addressing.

    u and u + 1 map to the same texel. v = 1 is the top row.
    """
    fu = uv.x - ti.floor(uv.x)
    fv = uv.y - ti.floor(uv.y)
    width = ti.cast(_texture_widths[slot], ti.f32)
    height = ti.cast(_texture_heights[slot], ti.f32)
    col = ti.cast(ti.floor(fu * width), ti.i32)
    row = ti.cast(ti.floor((1.0 - fv) * height), ti.i32)
    return _fetch(slot, col, row)


@ti.func
def sample_clamped(slot: ti.i32, uv: vec2) -> vec3:
    """Nearest-neighbor sample with clamp addressing. v = 0 is the top row."""
    u = tm.clamp(uv.x, 0.0, 1.0)
    v = tm.clamp(uv.y, 0.0, 1.0)
    width = ti.cast(_texture_widths[slot], ti.f32)
    height = ti.cast(_texture_heights[slot], ti.f32)
    col = ti.cast(ti.round(u * (width - 1.0)), ti.i32)
    row = ti.cast(ti.round(v * (height - 1.0)), ti.i32)
    return _fetch(slot, col, row)


@ti.func
def triplanar_weights(normal: vec3) -> vec3:
    """Blend weights for the X, Y and Z projections. They sum to 1."""
    w = ti.abs(normal)
    total = w.x + w.y + w.z
    result = vec3(1.0 / 3.0, 1.0 / 3.0, 1.0 / 3.0)
    if total > 0.0:
        result = w / total
    return result


@ti.func
def sample_triplanar(slot: ti.i32, point: vec3, normal: vec3, scale: ti.f32) -> vec3:
    """Sample a texture by projecting along the three world axes."""
    w = triplanar_weights(normal)
    p = point * scale
    c_x = sample_repeat(slot, vec2(p.z, p.y))
    c_y = sample_repeat(slot, vec2(p.x, p.z))
    c_z = sample_repeat(slot, vec2(p.x, p.y))
    return c_x * w.x + c_y * w.y + c_z * w.z


@ti.func
def sample_binding(
    texture_id: ti.i32,
    mode: ti.i32,
    scale: ti.f32,
    point: vec3,
    normal: vec3,
    uv: vec2,
) -> vec3:
    """Evaluate a material texture binding at a hit.

    Returns white when texture_id is negative (no texture bound).
    """
    result = vec3(1.0, 1.0, 1.0)
    if texture_id >= 0:
        if mode == int(TextureMode.TRIPLANAR):
            result = sample_triplanar(texture_id, point, normal, scale)
        else:
            result = sample_repeat(texture_id, uv * scale)
    return result


def validate_texture_binding(texture_id: int | None, mode: TextureMode | int, scale: float) -> int:
    """Validate a material texture binding on the Python side.

    Returns:
        The slot index to store, -1 for no texture.

    Raises:
        ValueError: If the texture is unknown, the mode is unsupported or
            scale is not positive.
    """
    if texture_id is None:
        return -1
    if not 0 <= texture_id < num_textures[None]:
        raise ValueError(f"Invalid texture_id: {texture_id}")
    if int(mode) not in (TextureMode.UV, TextureMode.TRIPLANAR):
        raise ValueError(f"Unknown texture mode: {mode}")
    if scale <= 0.0:
        raise ValueError(f"Texture scale must be positive, got {scale}")
    return int(texture_id)
