"""Pytest configuration for diorama tests.

Taichi is initialized once per session, before any diorama module is
imported: every module allocates its registries as Taichi fields at import
time. Registries are cleared around each test so tests stay isolated.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Re-initializing would invalidate the module-level fields.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear primitives, materials, lights, textures and the environment."""
    # Imported here so Taichi is initialized first
    from diorama.lighting.lights import clear_lights
    from diorama.lighting.skybox import clear_environment
    from diorama.materials.dielectric import clear_dielectric_materials
    from diorama.materials.lambert import clear_lambert_materials
    from diorama.materials.metallic import clear_metallic_materials
    from diorama.materials.phong import clear_phong_materials
    from diorama.materials.texture import clear_textures
    from diorama.scene.intersection import clear_scene
    from diorama.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambert_materials()
        clear_metallic_materials()
        clear_dielectric_materials()
        clear_phong_materials()
        _clear_material_tracking()
        clear_lights()
        clear_textures()
        clear_environment()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def look_down_z_camera():
    """Upload a camera at the origin looking down -Z with a 90 degree fov."""
    from diorama.camera.orbit import OrbitCamera, setup_camera

    # azimuth pi/2 puts the eye at +Z of the target
    camera = OrbitCamera(
        target=(0.0, 0.0, -1.0),
        distance=1.0,
        azimuth=1.5707963267948966,
        elevation=0.0,
        vfov=90.0,
        aspect_ratio=1.0,
    )
    setup_camera(camera)
    return camera
