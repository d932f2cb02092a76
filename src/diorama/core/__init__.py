"""Core rendering module.

Components:
    ray: Ray type and vector helpers (reflect, refract, bias offsets)
    integrator: Depth-bounded Whitted color evaluation
    adaptive: Frame-time driven resolution scale
    renderer: Parallel frame renderer

Only the dependency-free pieces are re-exported here. The integrator and
renderer pull in the scene registries, so import them from their modules:

    from diorama.core.renderer import FrameRenderer
"""

from .adaptive import AdaptiveQuality, QualityConfig
from .ray import (
    Ray,
    build_onb,
    make_ray,
    offset_origin,
    ray_at,
    reflect,
    refract,
    safe_normalize,
    safe_pow,
)

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "safe_normalize",
    "reflect",
    "refract",
    "offset_origin",
    "build_onb",
    "safe_pow",
    "AdaptiveQuality",
    "QualityConfig",
]
