"""Surface materials and textures.

Each material kind keeps its parameters in its own Taichi field registry
and exposes a ``shade_*_by_id`` function returning the local color plus the
weights the integrator uses to spawn secondary rays:

    lambert: diffuse only
    metallic: diffuse + specular highlight, reflective weight
    dielectric: faint local term, reflective and transmissive weights
    phong: legacy combined material with explicit four-way weights
    texture: texture atlas with wrap, clamp and triplanar sampling
"""

from .dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
    get_dielectric_material_count,
    shade_dielectric,
    shade_dielectric_by_id,
)
from .lambert import (
    add_lambert_material,
    clear_lambert_materials,
    get_lambert_material_count,
    shade_lambert,
    shade_lambert_by_id,
)
from .metallic import (
    add_metallic_material,
    clear_metallic_materials,
    get_metallic_material_count,
    shade_metallic,
    shade_metallic_by_id,
)
from .phong import (
    add_phong_material,
    clear_phong_materials,
    get_phong_material_count,
    shade_phong,
    shade_phong_by_id,
)
from .texture import (
    MAX_TEXTURE_SIZE,
    MAX_TEXTURES,
    TextureMode,
    add_texture,
    clear_textures,
    get_texture_count,
    get_texture_size,
)

__all__ = [
    # Lambert
    "add_lambert_material",
    "clear_lambert_materials",
    "get_lambert_material_count",
    "shade_lambert",
    "shade_lambert_by_id",
    # Metallic
    "add_metallic_material",
    "clear_metallic_materials",
    "get_metallic_material_count",
    "shade_metallic",
    "shade_metallic_by_id",
    # Dielectric
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "shade_dielectric",
    "shade_dielectric_by_id",
    # Phong
    "add_phong_material",
    "clear_phong_materials",
    "get_phong_material_count",
    "shade_phong",
    "shade_phong_by_id",
    # Textures
    "TextureMode",
    "MAX_TEXTURES",
    "MAX_TEXTURE_SIZE",
    "add_texture",
    "clear_textures",
    "get_texture_count",
    "get_texture_size",
]
