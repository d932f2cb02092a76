"""Geometric primitives.

Components:
    plane: Infinite plane intersection
    box: Axis-aligned box intersection (slab method) with per-face UVs
    hit_record: Intersection result shared by all primitives
"""

from .box import MIN_UV_TILE, Box, hit_box
from .hit_record import HitRecord, make_miss_record
from .plane import Plane, hit_plane

__all__ = [
    "HitRecord",
    "make_miss_record",
    "Plane",
    "hit_plane",
    "Box",
    "hit_box",
    "MIN_UV_TILE",
]
