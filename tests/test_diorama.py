"""Tests for the house diorama preset."""

import numpy as np
import pytest


class TestProceduralTextures:
    @pytest.mark.parametrize("name", ["quartz", "brick", "wood", "glass", "water"])
    def test_texture_shape_and_range(self, name):
        from diorama.scene.diorama import PROCEDURAL_TEXTURES

        image = PROCEDURAL_TEXTURES[name](32)
        assert image.shape == (32, 32, 3)
        assert image.dtype == np.float32
        assert image.min() >= 0.0
        assert image.max() <= 1.0
        # not a flat color
        assert image.std() > 0.0

    def test_textures_are_deterministic(self):
        from diorama.scene.diorama import brick_texture

        assert np.array_equal(brick_texture(16), brick_texture(16))


class TestCreateDioramaScene:
    def test_scene_contents(self):
        from diorama.scene.diorama import HOUSE_BOXES, PHONG_MATERIALS, create_diorama_scene
        from diorama.scene.manager import MaterialType

        scene, _ = create_diorama_scene()
        assert scene.get_box_count() == len(HOUSE_BOXES) == 10
        assert scene.get_plane_count() == 0
        assert scene.get_material_count() == len(PHONG_MATERIALS) == 5
        assert scene.texture_count == 5
        assert all(m.material_type == MaterialType.PHONG for m in scene.materials)
        # point light + ambient
        assert scene.get_light_count() == 2
        assert scene.environment["type"] == "gradient"

    def test_glass_and_water_are_transmissive(self):
        from diorama.scene.diorama import create_diorama_scene

        scene, _ = create_diorama_scene()
        by_ior = {m.params["ior"]: m.params["weights"] for m in scene.materials if m.params["ior"] != 1.0}
        assert by_ior[1.5][3] == pytest.approx(0.4)
        assert by_ior[1.33][3] == pytest.approx(0.65)

    def test_zero_ambient_is_skipped(self):
        from diorama.scene.diorama import DioramaParams, create_diorama_scene

        scene, _ = create_diorama_scene(DioramaParams(ambient_color=(0.0, 0.0, 0.0)))
        assert scene.get_light_count() == 1

    def test_camera_placement(self):
        from diorama.scene.diorama import CAMERA_EYE, CAMERA_TARGET, DioramaParams, create_diorama_scene

        _, camera = create_diorama_scene(DioramaParams(aspect_ratio=2.0, vfov=45.0))
        assert camera.eye() == pytest.approx(list(CAMERA_EYE))
        assert camera.target == pytest.approx(CAMERA_TARGET)
        assert camera.aspect_ratio == 2.0
        assert camera.vfov == 45.0

    def test_reuses_existing_scene(self):
        from diorama.scene.diorama import create_diorama_scene
        from diorama.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_lambert_material((0.5, 0.5, 0.5))
        scene.add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), mat)
        returned, _ = create_diorama_scene(scene=scene)
        assert returned is scene
        assert scene.get_plane_count() == 0
        assert scene.get_box_count() == 10

    def test_texture_override(self, tmp_path):
        from PIL import Image

        from diorama.materials.texture import get_texture_size
        from diorama.scene.diorama import PHONG_MATERIALS, DioramaParams, create_diorama_scene

        Image.new("RGB", (8, 4), (200, 50, 50)).save(tmp_path / "brick.png")
        scene, _ = create_diorama_scene(DioramaParams(texture_dir=str(tmp_path), texture_size=16))
        brick = scene.materials[list(PHONG_MATERIALS).index("brick")]
        assert get_texture_size(brick.params["texture_id"]) == (8, 4)

    def test_cubemap_override(self, tmp_path):
        from PIL import Image

        from diorama.scene.diorama import CUBEMAP_FILES, DioramaParams, create_diorama_scene

        for stem in CUBEMAP_FILES.values():
            Image.new("RGB", (4, 4), (10, 20, 30)).save(tmp_path / f"{stem}.png")
        scene, _ = create_diorama_scene(DioramaParams(texture_dir=str(tmp_path), texture_size=16))
        assert scene.environment["type"] == "cubemap"
        assert scene.texture_count == 11

    def test_diorama_renders(self):
        from diorama.core.renderer import FrameRenderer
        from diorama.scene.diorama import DioramaParams, create_diorama_scene

        _, camera = create_diorama_scene(DioramaParams(aspect_ratio=2.0, texture_size=16))
        renderer = FrameRenderer(24, 12, adaptive=False)
        renderer.render_frame(camera)
        image = renderer.get_image_numpy()
        assert np.all(np.isfinite(image))
        # the house fills the middle of the frame, sky the top corners
        assert not np.allclose(image[6, 12], image[0, 0])
