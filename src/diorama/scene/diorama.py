"""The house diorama preset scene.

A small house on a quartz platform: brick walls, a wooden roof, two glass
windows and a shallow water pool in front, lit by one point light and a
faint ambient term. All five surfaces use the legacy Phong material with
the weights and indices of refraction the diorama was tuned with, and each
surface carries its own texture repeated at a per-box tiling factor.

Textures are generated procedurally with NumPy so the scene has no asset
dependencies. If ``params.texture_dir`` is set, ``<name>.png`` files found
there replace the generated ones, and a complete set of ``px.png``,
``nx.png``, ``py.png``, ``ny.png``, ``pz.png``, ``nz.png`` replaces the
gradient sky with a cubemap.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.scene.diorama import DioramaParams, create_diorama_scene
    >>> scene, camera = create_diorama_scene(DioramaParams(light_intensity=2.0))
    >>> scene.get_box_count()
    10
"""

import logging
import os
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from diorama.camera.orbit import OrbitCamera
from diorama.lighting.skybox import CUBE_FACE_NAMES
from diorama.scene.manager import SceneManager

logger = logging.getLogger(__name__)


@dataclass
class DioramaParams:
    """Parameters for the house diorama.

    Attributes:
        light_position: Position of the point light.
        light_color: RGB color of the point light.
        light_intensity: Point light intensity.
        ambient_color: Ambient light color; all zeros disables it.
        texture_size: Edge length of the generated textures in pixels.
        texture_dir: Optional directory with PNG overrides.
        aspect_ratio: Camera aspect ratio (width / height).
        vfov: Camera vertical field of view in degrees.

    Example:
        >>> params = DioramaParams()
        >>> params.light_intensity
        1.5
    """

    light_position: tuple[float, float, float] = (2.5, 3.0, 3.0)
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    light_intensity: float = 1.5
    ambient_color: tuple[float, float, float] = (0.08, 0.08, 0.1)
    texture_size: int = 64
    texture_dir: str | None = None
    aspect_ratio: float = 960.0 / 540.0
    vfov: float = 60.0


# =============================================================================
# Scene Layout
# =============================================================================

CAMERA_EYE = (4.0, 2.2, 5.0)
CAMERA_TARGET = (0.0, 0.6, 0.0)

# (diffuse color, specular exponent, [diffuse, specular, reflective, transmissive], ior)
PHONG_MATERIALS = {
    "quartz": ((1.0, 1.0, 1.0), 64.0, (0.8, 0.2, 0.0, 0.0), 1.0),
    "brick": ((0.9, 0.9, 0.9), 32.0, (0.9, 0.1, 0.0, 0.0), 1.0),
    "wood": ((0.9, 0.8, 0.7), 32.0, (0.95, 0.05, 0.0, 0.0), 1.0),
    "glass": ((1.0, 1.0, 1.0), 96.0, (0.1, 0.3, 0.4, 0.4), 1.5),
    "water": ((0.8, 0.9, 1.0), 16.0, (0.2, 0.1, 0.05, 0.65), 1.33),
}

# (material, center, size, uv tiling) in registration order
HOUSE_BOXES = (
    ("quartz", (0.0, -0.55, 0.0), (6.0, 0.5, 6.0), 5.0),
    ("brick", (0.0, 0.5, -1.5), (3.0, 2.0, 0.2), 3.5),
    ("brick", (-0.9, 0.5, 1.5), (1.2, 2.0, 0.2), 3.5),
    ("brick", (0.9, 0.5, 1.5), (1.2, 2.0, 0.2), 3.5),
    ("brick", (-1.5, 0.5, 0.0), (0.2, 2.0, 3.2), 3.5),
    ("brick", (1.5, 0.5, 0.0), (0.2, 2.0, 3.2), 3.5),
    ("wood", (0.0, 1.6, 0.0), (3.4, 0.2, 3.6), 6.0),
    ("glass", (0.0, 0.8, -1.4), (1.2, 0.8, 0.05), 1.5),
    ("glass", (-1.4, 0.8, 0.0), (0.05, 0.8, 1.0), 1.5),
    ("water", (0.0, -0.49, 2.6), (1.8, 0.12, 1.2), 2.5),
)

CUBEMAP_FILES = {"+x": "px", "-x": "nx", "+y": "py", "-y": "ny", "+z": "pz", "-z": "nz"}


# =============================================================================
# Procedural Textures
# =============================================================================


def _grid(size: int) -> tuple[np.ndarray, np.ndarray]:
    coords = (np.arange(size, dtype=np.float32) + 0.5) / size
    return np.meshgrid(coords, coords)


def _noise(size: int, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.random((size, size), dtype=np.float32)


def _stack(rgb: tuple[float, float, float], shade: np.ndarray) -> npt.NDArray[np.float32]:
    color = np.asarray(rgb, dtype=np.float32)
    return np.clip(shade[..., None] * color, 0.0, 1.0).astype(np.float32)


def brick_texture(size: int = 64) -> npt.NDArray[np.float32]:
    """Running-bond bricks with light mortar lines."""
    u, v = _grid(size)
    rows = 4
    row = np.floor(v * rows)
    offset = np.where(row % 2 == 1, 0.25, 0.0)
    bu = np.mod(u * 2.0 + offset, 1.0)
    bv = np.mod(v * rows, 1.0)
    mortar = (bu < 0.06) | (bv < 0.1)
    shade = 0.85 + 0.15 * _noise(size, 1)
    image = _stack((0.72, 0.33, 0.24), shade)
    image[mortar] = (0.82, 0.8, 0.76)
    return image


def wood_texture(size: int = 64) -> npt.NDArray[np.float32]:
    """Planks with sinusoidal grain along u."""
    u, v = _grid(size)
    grain = 0.5 + 0.5 * np.sin(u * 40.0 + 3.0 * np.sin(v * 6.0))
    seams = np.mod(v * 5.0, 1.0) < 0.04
    shade = 0.75 + 0.25 * grain
    shade = np.where(seams, 0.45, shade)
    return _stack((0.62, 0.42, 0.25), shade)


def quartz_texture(size: int = 64) -> npt.NDArray[np.float32]:
    """Pale tiles with faint veining."""
    u, v = _grid(size)
    veins = np.abs(np.sin((u + 0.6 * v) * 9.0 + 2.0 * np.sin(v * 7.0)))
    shade = 0.88 + 0.1 * veins + 0.02 * _noise(size, 2)
    grout = (np.mod(u * 2.0, 1.0) < 0.02) | (np.mod(v * 2.0, 1.0) < 0.02)
    shade = np.where(grout, 0.7, shade)
    return _stack((0.95, 0.94, 0.92), shade)


def glass_texture(size: int = 64) -> npt.NDArray[np.float32]:
    """Near-white pane with a thin frame."""
    u, v = _grid(size)
    frame = (u < 0.05) | (u > 0.95) | (v < 0.05) | (v > 0.95)
    shade = np.where(frame, 0.55, 0.97)
    return _stack((0.92, 0.97, 1.0), shade)


def water_texture(size: int = 64) -> npt.NDArray[np.float32]:
    """Blue ripples."""
    u, v = _grid(size)
    ripples = np.sin(u * 25.0 + np.sin(v * 11.0) * 2.0) * np.sin(v * 19.0)
    shade = 0.8 + 0.2 * ripples
    return _stack((0.35, 0.6, 0.85), shade)


PROCEDURAL_TEXTURES = {
    "quartz": quartz_texture,
    "brick": brick_texture,
    "wood": wood_texture,
    "glass": glass_texture,
    "water": water_texture,
}


def _load_override(texture_dir: str | None, name: str) -> np.ndarray | None:
    if texture_dir is None:
        return None
    path = os.path.join(texture_dir, f"{name}.png")
    if not os.path.isfile(path):
        return None
    from diorama.preview.export import load_image_array

    return load_image_array(path)


def _load_cubemap(scene: SceneManager, texture_dir: str | None) -> bool:
    if texture_dir is None:
        return False
    paths = [os.path.join(texture_dir, f"{CUBEMAP_FILES[face]}.png") for face in CUBE_FACE_NAMES]
    if not all(os.path.isfile(p) for p in paths):
        return False
    from diorama.preview.export import load_image_array

    face_ids = [scene.add_texture(load_image_array(p)) for p in paths]
    scene.set_environment_cubemap(face_ids)
    return True


# =============================================================================
# Scene Factory
# =============================================================================


def create_diorama_scene(
    params: DioramaParams | None = None,
    scene: SceneManager | None = None,
) -> tuple[SceneManager, OrbitCamera]:
    """Build the house diorama.

    Args:
        params: Scene parameters; defaults to DioramaParams().
        scene: Scene to fill. It is cleared first, including textures.
            A new SceneManager is created if None.

    Returns:
        A tuple (scene, camera) with the camera aimed at the house.

    Raises:
        ValueError: If an override image is malformed or too large.
    """
    if params is None:
        params = DioramaParams()
    if scene is None:
        scene = SceneManager()
    else:
        scene.clear(include_textures=True)

    material_ids: dict[str, int] = {}
    for name, (diffuse, shininess, weights, ior) in PHONG_MATERIALS.items():
        pixels = _load_override(params.texture_dir, name)
        if pixels is None:
            pixels = PROCEDURAL_TEXTURES[name](params.texture_size)
        texture_id = scene.add_texture(pixels)
        material_ids[name] = scene.add_phong_material(
            diffuse_color=diffuse,
            specular_exponent=shininess,
            weights=weights,
            ior=ior,
            texture_id=texture_id,
        )

    for name, center, size, tiling in HOUSE_BOXES:
        scene.add_box_centered(center, size, material_ids[name], uv_tile=tiling)

    scene.add_point_light(params.light_position, params.light_color, params.light_intensity)
    if any(c > 0.0 for c in params.ambient_color):
        scene.add_ambient_light(params.ambient_color)

    if not _load_cubemap(scene, params.texture_dir):
        scene.set_environment_gradient()

    camera = OrbitCamera.from_look_at(
        CAMERA_EYE, CAMERA_TARGET, vfov=params.vfov, aspect_ratio=params.aspect_ratio
    )
    logger.info(
        "Built diorama: %d boxes, %d materials, %d lights",
        scene.get_box_count(),
        scene.get_material_count(),
        scene.get_light_count(),
    )
    return scene, camera
