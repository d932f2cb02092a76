"""Light sources and the environment seen by escaping rays."""

from .lights import (
    MAX_LIGHTS,
    LightKind,
    add_ambient_light,
    add_directional_light,
    add_point_light,
    clear_lights,
    get_light_count,
    get_light_sample,
)
from .skybox import (
    DEFAULT_HORIZON_COLOR,
    DEFAULT_SKY_COLOR,
    clear_environment,
    has_cubemap,
    sample_environment,
    sample_sky,
    set_cubemap,
    set_gradient,
)

__all__ = [
    # Lights
    "LightKind",
    "MAX_LIGHTS",
    "add_ambient_light",
    "add_directional_light",
    "add_point_light",
    "clear_lights",
    "get_light_count",
    "get_light_sample",
    # Environment
    "DEFAULT_SKY_COLOR",
    "DEFAULT_HORIZON_COLOR",
    "set_gradient",
    "set_cubemap",
    "clear_environment",
    "has_cubemap",
    "sample_environment",
    "sample_sky",
]
