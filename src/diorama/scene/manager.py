"""Unified scene manager for primitives, materials, lights and environment.

The scene is global Taichi state (primitive table, per-type material
registries, light registry, texture atlas and environment). This module keeps
a unified material_id space over all material types and mirrors everything
added in plain Python records so scenes can be inspected and serialized.

The SceneManager maintains:
- A unified material_id space across Lambert, Metallic, Dielectric and Phong
- Mapping from material_id to (material_type, type_local_index)
- Python-side records of primitives, lights and environment
- Scene serialization via SceneConfig / dictionaries

The scene must not be modified while a frame is being rendered.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from diorama.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> floor = scene.add_lambert_material(albedo=(0.8, 0.8, 0.8))
    >>> scene.add_plane(point=(0, 0, 0), normal=(0, 1, 0), material_id=floor)
    >>> scene.add_ambient_light((0.1, 0.1, 0.1))
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import numpy.typing as npt
import taichi as ti

from diorama.lighting.lights import (
    LightKind,
    add_ambient_light,
    add_directional_light,
    add_point_light,
    clear_lights,
    get_light_count,
)
from diorama.lighting.skybox import (
    DEFAULT_HORIZON_COLOR,
    DEFAULT_SKY_COLOR,
    clear_environment,
    set_cubemap,
    set_gradient,
)
from diorama.materials.dielectric import add_dielectric_material, clear_dielectric_materials
from diorama.materials.lambert import add_lambert_material, clear_lambert_materials
from diorama.materials.metallic import add_metallic_material, clear_metallic_materials
from diorama.materials.phong import add_phong_material, clear_phong_materials
from diorama.materials.texture import TextureMode, add_texture, clear_textures
from diorama.scene.intersection import (
    add_box,
    add_plane,
    clear_scene,
    get_box_count,
    get_plane_count,
    get_primitive_count,
)

logger = logging.getLogger(__name__)


class MaterialType(IntEnum):
    """Enumeration of supported material types, used for shading dispatch."""

    LAMBERT = 0
    METALLIC = 1
    DIELECTRIC = 2
    PHONG = 3


# Maximum number of materials across all types
MAX_MATERIALS = 1024  # 256 per type * 4 types

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a material ID, or -1 if it is invalid."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the index into the type-specific registry, or -1 if invalid."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material.
        type_index: The index within the type-specific material registry.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class PrimitiveInfo:
    """Information about a primitive in the scene.

    Attributes:
        primitive_index: Index in the primitive table (registration order).
        kind: "plane" or "box".
        params: Geometry parameters as provided during creation.
        material_id: The material ID assigned to the primitive.
    """

    primitive_index: int
    kind: str
    params: dict[str, Any]
    material_id: int


@dataclass
class LightInfo:
    """Information about a light in the scene."""

    light_index: int
    kind: LightKind
    params: dict[str, Any]


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Textures are not serialized; materials refer to texture slots that must
    already be uploaded when the configuration is loaded.

    Attributes:
        materials: List of material configurations.
        primitives: Plane and box configurations in registration order, each
            tagged with a "kind" key. Order decides equal-distance ties.
        lights: List of light configurations.
        environment: Environment configuration.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    primitives: list[dict[str, Any]] = field(default_factory=list)
    lights: list[dict[str, Any]] = field(default_factory=list)
    environment: dict[str, Any] = field(
        default_factory=lambda: {
            "type": "gradient",
            "sky": list(DEFAULT_SKY_COLOR),
            "horizon": list(DEFAULT_HORIZON_COLOR),
        }
    )


def _vec3(values: Sequence[float]) -> tuple[float, float, float]:
    return (float(values[0]), float(values[1]), float(values[2]))


class SceneManager:
    """Unified scene manager coordinating primitives, materials and lights.

    Attributes:
        materials: MaterialInfo for all registered materials.
        primitives: PrimitiveInfo for all primitives, in registration order.
        lights: LightInfo for all lights.
        environment: Current environment description.

    Example:
        >>> scene = SceneManager()
        >>> brick = scene.add_lambert_material(albedo=(0.7, 0.3, 0.2))
        >>> mirror = scene.add_metallic_material(albedo=(0.9, 0.9, 0.9), roughness=0.0)
        >>> glass = scene.add_dielectric_material(ior=1.5)
        >>> scene.add_box((-1, 0, -1), (1, 2, 1), brick)
        >>> scene.add_point_light((2.5, 3.0, 3.0), (1.0, 1.0, 1.0), 1.5)
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.primitives: list[PrimitiveInfo] = []
        self.lights: list[LightInfo] = []
        self.environment: dict[str, Any] = {}
        self.texture_count = 0
        self._clear_all(include_textures=True)

    def _clear_all(self, include_textures: bool) -> None:
        clear_scene()
        clear_lambert_materials()
        clear_metallic_materials()
        clear_dielectric_materials()
        clear_phong_materials()
        _clear_material_tracking()
        clear_lights()
        clear_environment()
        if include_textures:
            clear_textures()
            self.texture_count = 0
        self.materials.clear()
        self.primitives.clear()
        self.lights.clear()
        self.environment = SceneConfig().environment

    def clear(self, include_textures: bool = True) -> None:
        """Clear the entire scene.

        Args:
            include_textures: Also drop uploaded textures. Pass False to keep
                the atlas when rebuilding a scene that references it.
        """
        self._clear_all(include_textures)

    # =========================================================================
    # Textures
    # =========================================================================

    def add_texture(self, pixels: npt.ArrayLike) -> int:
        """Upload a decoded image and return its texture slot.

        Raises:
            ValueError: If the image is malformed or too large.
            RuntimeError: If the atlas is full.
        """
        slot = add_texture(pixels)
        self.texture_count += 1
        return slot

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self, material_type: MaterialType, type_index: int, params: dict[str, Any]
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambert_material(
        self,
        albedo: tuple[float, float, float],
        roughness: float = 1.0,
        texture_id: int | None = None,
        texture_mode: TextureMode = TextureMode.UV,
        texture_scale: float = 1.0,
    ) -> int:
        """Add a Lambert (diffuse) material.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any parameter is out of range.
        """
        type_index = add_lambert_material(
            albedo, roughness, texture_id, texture_mode, texture_scale
        )
        params = {"albedo": albedo, "roughness": roughness}
        params.update(_texture_params(texture_id, texture_mode, texture_scale))
        return self._register_material(MaterialType.LAMBERT, type_index, params)

    def add_metallic_material(
        self,
        albedo: tuple[float, float, float],
        metallic: float = 1.0,
        roughness: float = 0.0,
        texture_id: int | None = None,
        texture_mode: TextureMode = TextureMode.UV,
        texture_scale: float = 1.0,
    ) -> int:
        """Add a metallic material with a Blinn-Phong highlight and mirror term.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any parameter is out of range.
        """
        type_index = add_metallic_material(
            albedo, metallic, roughness, texture_id, texture_mode, texture_scale
        )
        params = {"albedo": albedo, "metallic": metallic, "roughness": roughness}
        params.update(_texture_params(texture_id, texture_mode, texture_scale))
        return self._register_material(MaterialType.METALLIC, type_index, params)

    def add_dielectric_material(
        self,
        albedo: tuple[float, float, float] = (1.0, 1.0, 1.0),
        ior: float = 1.5,
        transparency: float = 0.9,
        reflectivity: float = 0.1,
        roughness: float = 0.0,
    ) -> int:
        """Add a dielectric (glass/water) material.

        Args:
            albedo: Tint of the faint local term.
            ior: Index of refraction. Common values: water 1.33, glass 1.5.
            transparency: Transmissive weight in [0, 1].
            reflectivity: Mirror-reflective weight in [0, 1].
            roughness: Informational roughness in [0, 1].

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any parameter is out of range.
        """
        type_index = add_dielectric_material(albedo, ior, transparency, reflectivity, roughness)
        params = {
            "albedo": albedo,
            "ior": ior,
            "transparency": transparency,
            "reflectivity": reflectivity,
            "roughness": roughness,
        }
        return self._register_material(MaterialType.DIELECTRIC, type_index, params)

    def add_phong_material(
        self,
        diffuse_color: tuple[float, float, float],
        specular_exponent: float,
        weights: tuple[float, float, float, float],
        ior: float = 1.0,
        texture_id: int | None = None,
        texture_mode: TextureMode = TextureMode.UV,
        texture_scale: float = 1.0,
    ) -> int:
        """Add a legacy combined Phong material.

        Args:
            diffuse_color: Diffuse tint.
            specular_exponent: Phong shininess.
            weights: (diffuse, specular, reflective, transmissive) weights.
            ior: Index of refraction for the transmissive part.
            texture_id: Optional texture slot.
            texture_mode: UV or triplanar mapping.
            texture_scale: Texture coordinate multiplier.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any parameter is out of range.
        """
        type_index = add_phong_material(
            diffuse_color,
            specular_exponent,
            weights,
            ior,
            texture_id,
            texture_mode,
            texture_scale,
        )
        params = {
            "diffuse_color": diffuse_color,
            "specular_exponent": specular_exponent,
            "weights": weights,
            "ior": ior,
        }
        params.update(_texture_params(texture_id, texture_mode, texture_scale))
        return self._register_material(MaterialType.PHONG, type_index, params)

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def _check_material_id(self, material_id: int) -> None:
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_plane(
        self,
        point: tuple[float, float, float],
        normal: tuple[float, float, float],
        material_id: int,
    ) -> int:
        """Add an infinite plane.

        Returns:
            The primitive index.

        Raises:
            ValueError: If material_id is invalid or the normal is zero.
            RuntimeError: If the maximum number of primitives is exceeded.
        """
        self._check_material_id(material_id)
        index = add_plane(point, normal, material_id)
        self.primitives.append(
            PrimitiveInfo(
                primitive_index=index,
                kind="plane",
                params={"point": point, "normal": normal},
                material_id=material_id,
            )
        )
        return index

    def add_box(
        self,
        min_corner: tuple[float, float, float],
        max_corner: tuple[float, float, float],
        material_id: int,
        uv_tile: float = 1.0,
    ) -> int:
        """Add an axis-aligned box given its corners.

        Returns:
            The primitive index.

        Raises:
            ValueError: If material_id is invalid or min_corner >= max_corner
                on any axis.
            RuntimeError: If the maximum number of primitives is exceeded.
        """
        self._check_material_id(material_id)
        index = add_box(min_corner, max_corner, material_id, uv_tile)
        self.primitives.append(
            PrimitiveInfo(
                primitive_index=index,
                kind="box",
                params={"min": min_corner, "max": max_corner, "uv_tile": uv_tile},
                material_id=material_id,
            )
        )
        return index

    def add_box_centered(
        self,
        center: tuple[float, float, float],
        size: tuple[float, float, float],
        material_id: int,
        uv_tile: float = 1.0,
    ) -> int:
        """Add an axis-aligned box given its center and full size."""
        half = [s * 0.5 for s in size]
        min_corner = (center[0] - half[0], center[1] - half[1], center[2] - half[2])
        max_corner = (center[0] + half[0], center[1] + half[1], center[2] + half[2])
        return self.add_box(min_corner, max_corner, material_id, uv_tile)

    def get_plane_count(self) -> int:
        """Get the number of planes in the scene."""
        return get_plane_count()

    def get_box_count(self) -> int:
        """Get the number of boxes in the scene."""
        return get_box_count()

    def get_primitive_count(self) -> int:
        """Get the total number of primitives in the scene."""
        return get_primitive_count()

    # =========================================================================
    # Lights and Environment
    # =========================================================================

    def add_ambient_light(self, color: tuple[float, float, float], intensity: float = 1.0) -> int:
        """Add an ambient light. See lighting.lights.add_ambient_light."""
        index = add_ambient_light(color, intensity)
        self.lights.append(
            LightInfo(index, LightKind.AMBIENT, {"color": color, "intensity": intensity})
        )
        return index

    def add_directional_light(
        self,
        direction: tuple[float, float, float],
        intensity: float,
        color: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> int:
        """Add a directional light. See lighting.lights.add_directional_light."""
        index = add_directional_light(direction, intensity, color)
        self.lights.append(
            LightInfo(
                index,
                LightKind.DIRECTIONAL,
                {"direction": direction, "intensity": intensity, "color": color},
            )
        )
        return index

    def add_point_light(
        self,
        position: tuple[float, float, float],
        color: tuple[float, float, float],
        intensity: float,
    ) -> int:
        """Add a point light. See lighting.lights.add_point_light."""
        index = add_point_light(position, color, intensity)
        self.lights.append(
            LightInfo(
                index,
                LightKind.POINT,
                {"position": position, "color": color, "intensity": intensity},
            )
        )
        return index

    def get_light_count(self) -> int:
        """Get the number of lights in the scene."""
        return get_light_count()

    def set_environment_gradient(
        self,
        sky: tuple[float, float, float] = DEFAULT_SKY_COLOR,
        horizon: tuple[float, float, float] = DEFAULT_HORIZON_COLOR,
    ) -> None:
        """Use a procedural sky gradient for rays that escape the scene."""
        set_gradient(sky, horizon)
        self.environment = {"type": "gradient", "sky": list(sky), "horizon": list(horizon)}

    def set_environment_cubemap(self, face_texture_ids: Sequence[int]) -> None:
        """Use six uploaded textures (+X, -X, +Y, -Y, +Z, -Z) as a skybox.

        Raises:
            ValueError: If there are not six faces or a slot is unknown.
        """
        set_cubemap(face_texture_ids)
        self.environment = {"type": "cubemap", "faces": [int(i) for i in face_texture_ids]}

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            mat_config: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                mat_config[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(mat_config)

        for prim in self.primitives:
            prim_config: dict[str, Any] = {"kind": prim.kind, "material_id": prim.material_id}
            for key, value in prim.params.items():
                prim_config[key] = list(value) if isinstance(value, tuple) else value
            config.primitives.append(prim_config)

        for light in self.lights:
            light_config: dict[str, Any] = {"type": light.kind.name.lower()}
            for key, value in light.params.items():
                light_config[key] = list(value) if isinstance(value, tuple) else value
            config.lights.append(light_config)

        config.environment = dict(self.environment)
        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene (keeping uploaded textures) and loads the
        configuration. Primitives are added in the order listed, so
        equal-distance ties resolve as they did when the scene was saved.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear(include_textures=False)

        for mat_config in config.materials:
            self._load_material(mat_config)

        for prim_config in config.primitives:
            self._load_primitive(prim_config)

        for light_config in config.lights:
            self._load_light(light_config)

        env = config.environment
        env_type = env.get("type", "gradient")
        if env_type == "gradient":
            self.set_environment_gradient(
                _vec3(env.get("sky", DEFAULT_SKY_COLOR)),
                _vec3(env.get("horizon", DEFAULT_HORIZON_COLOR)),
            )
        elif env_type == "cubemap":
            self.set_environment_cubemap(env["faces"])
        else:
            raise ValueError(f"Unknown environment type: {env_type}")

        logger.info(
            "Loaded scene: %d materials, %d primitives, %d lights",
            self.get_material_count(),
            self.get_primitive_count(),
            self.get_light_count(),
        )

    def _load_material(self, mat_config: dict[str, Any]) -> None:
        mat_type = mat_config.get("type", "").lower()
        texture = {
            "texture_id": mat_config.get("texture_id"),
            "texture_mode": TextureMode[mat_config.get("texture_mode", "uv").upper()],
            "texture_scale": float(mat_config.get("texture_scale", 1.0)),
        }
        if mat_type == "lambert":
            self.add_lambert_material(
                _vec3(mat_config.get("albedo", [0.5, 0.5, 0.5])),
                float(mat_config.get("roughness", 1.0)),
                **texture,
            )
        elif mat_type == "metallic":
            self.add_metallic_material(
                _vec3(mat_config.get("albedo", [0.8, 0.8, 0.8])),
                float(mat_config.get("metallic", 1.0)),
                float(mat_config.get("roughness", 0.0)),
                **texture,
            )
        elif mat_type == "dielectric":
            self.add_dielectric_material(
                _vec3(mat_config.get("albedo", [1.0, 1.0, 1.0])),
                float(mat_config.get("ior", 1.5)),
                float(mat_config.get("transparency", 0.9)),
                float(mat_config.get("reflectivity", 0.1)),
                float(mat_config.get("roughness", 0.0)),
            )
        elif mat_type == "phong":
            weights = mat_config.get("weights", [1.0, 0.0, 0.0, 0.0])
            self.add_phong_material(
                _vec3(mat_config.get("diffuse_color", [0.8, 0.8, 0.8])),
                float(mat_config.get("specular_exponent", 32.0)),
                (float(weights[0]), float(weights[1]), float(weights[2]), float(weights[3])),
                float(mat_config.get("ior", 1.0)),
                **texture,
            )
        else:
            raise ValueError(f"Unknown material type: {mat_type}")

    def _load_primitive(self, prim_config: dict[str, Any]) -> None:
        kind = prim_config.get("kind", "").lower()
        material_id = int(prim_config.get("material_id", 0))
        if kind == "plane":
            self.add_plane(
                _vec3(prim_config.get("point", [0, 0, 0])),
                _vec3(prim_config.get("normal", [0, 1, 0])),
                material_id,
            )
        elif kind == "box":
            self.add_box(
                _vec3(prim_config["min"]),
                _vec3(prim_config["max"]),
                material_id,
                float(prim_config.get("uv_tile", 1.0)),
            )
        else:
            raise ValueError(f"Unknown primitive kind: {kind}")

    def _load_light(self, light_config: dict[str, Any]) -> None:
        light_type = light_config.get("type", "").lower()
        if light_type == "ambient":
            self.add_ambient_light(
                _vec3(light_config.get("color", [0.1, 0.1, 0.1])),
                float(light_config.get("intensity", 1.0)),
            )
        elif light_type == "directional":
            self.add_directional_light(
                _vec3(light_config["direction"]),
                float(light_config.get("intensity", 1.0)),
                _vec3(light_config.get("color", [1.0, 1.0, 1.0])),
            )
        elif light_type == "point":
            self.add_point_light(
                _vec3(light_config["position"]),
                _vec3(light_config.get("color", [1.0, 1.0, 1.0])),
                float(light_config.get("intensity", 1.0)),
            )
        else:
            raise ValueError(f"Unknown light type: {light_type}")

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "primitives": config.primitives,
            "lights": config.lights,
            "environment": config.environment,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary.

        Older dictionaries with separate "planes" and "boxes" lists load
        with all planes registered before all boxes.

        Raises:
            ValueError: If the dictionary contains invalid data.
        """
        config = SceneConfig(
            materials=data.get("materials", []),
            primitives=data.get("primitives") or _legacy_primitives(data),
            lights=data.get("lights", []),
        )
        if "environment" in data:
            config.environment = data["environment"]
        self.from_config(config)


def _legacy_primitives(data: dict[str, Any]) -> list[dict[str, Any]]:
    planes = [{**p, "kind": "plane"} for p in data.get("planes", [])]
    boxes = [{**b, "kind": "box"} for b in data.get("boxes", [])]
    return planes + boxes


def _texture_params(
    texture_id: int | None, texture_mode: TextureMode, texture_scale: float
) -> dict[str, Any]:
    if texture_id is None:
        return {}
    return {
        "texture_id": texture_id,
        "texture_mode": TextureMode(texture_mode).name.lower(),
        "texture_scale": texture_scale,
    }
