"""Taichi-based recursive ray tracer for small textured dioramas.

Subpackages:
    core: Rays, the Whitted integrator, the frame renderer and adaptive quality
    geometry: Planes, axis-aligned boxes and hit records
    materials: Lambert, metallic, dielectric and legacy Phong shading, textures
    lighting: Ambient, directional and point lights; sky environment
    camera: Orbit camera and primary ray generation
    scene: Primitive registry, scene manager and the house diorama preset
    preview: Display pipeline, PNG export and the interactive window
"""

__version__ = "0.1.0"
