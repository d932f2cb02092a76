"""Scene representation and ray-scene queries.

Components:
    intersection: Registration-ordered primitive table and nearest-hit scan
    manager: SceneManager coordinating materials, primitives, lights and
        the environment, with dict serialization
    diorama: The house diorama preset
"""

from .diorama import DioramaParams, create_diorama_scene
from .intersection import (
    MAX_PRIMITIVES,
    PrimitiveKind,
    SceneHitRecord,
    add_box,
    add_plane,
    clear_scene,
    get_box_count,
    get_plane_count,
    get_primitive_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    LightInfo,
    MaterialInfo,
    MaterialType,
    PrimitiveInfo,
    SceneConfig,
    SceneManager,
    get_material_type,
    get_material_type_index,
)

__all__ = [
    # Intersection
    "SceneHitRecord",
    "PrimitiveKind",
    "MAX_PRIMITIVES",
    "add_plane",
    "add_box",
    "clear_scene",
    "get_plane_count",
    "get_box_count",
    "get_primitive_count",
    "intersect_scene",
    # Manager
    "SceneManager",
    "SceneConfig",
    "MaterialType",
    "MaterialInfo",
    "PrimitiveInfo",
    "LightInfo",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Presets
    "DioramaParams",
    "create_diorama_scene",
]
