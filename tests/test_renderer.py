"""Tests for the parallel frame renderer."""

import numpy as np
import pytest


def _simple_scene():
    """A diffuse floor lit by ambient light below a gradient sky."""
    from diorama.scene.manager import SceneManager

    scene = SceneManager()
    floor = scene.add_lambert_material((0.5, 0.5, 0.5))
    scene.add_plane((0.0, -1.0, 0.0), (0.0, 1.0, 0.0), floor)
    scene.add_ambient_light((1.0, 1.0, 1.0))
    return scene


class TestFrameRendererSetup:
    @pytest.mark.parametrize("width, height", [(0, 10), (10, -1), (4096, 10), (10, 4096)])
    def test_invalid_dimensions_rejected(self, width, height):
        from diorama.core.renderer import FrameRenderer

        with pytest.raises(ValueError):
            FrameRenderer(width, height)

    def test_image_before_first_frame_raises(self):
        from diorama.core.renderer import FrameRenderer

        renderer = FrameRenderer(8, 8)
        assert renderer.frame_size is None
        with pytest.raises(RuntimeError, match="No frame rendered"):
            renderer.get_image_numpy()

    def test_repr(self):
        from diorama.core.renderer import FrameRenderer

        assert "width=16" in repr(FrameRenderer(16, 8))


class TestRenderFrame:
    def test_fixed_scale_frame(self, look_down_z_camera):
        from diorama.core.renderer import FrameRenderer

        _simple_scene()
        renderer = FrameRenderer(16, 12, adaptive=False)
        stats = renderer.render_frame()
        assert (stats.width, stats.height) == (16, 12)
        assert stats.scale == 1.0
        assert stats.next_scale == 1.0
        assert stats.frame_ms >= 0.0
        assert renderer.frame_count == 1

        image = renderer.get_image_numpy()
        assert image.shape == (12, 16, 3)
        assert image.dtype == np.float32
        assert image.min() >= 0.0
        assert image.max() <= 1.0

    def test_top_rows_see_sky_bottom_rows_see_floor(self, look_down_z_camera):
        from diorama.core.renderer import FrameRenderer

        _simple_scene()
        renderer = FrameRenderer(8, 8, adaptive=False)
        renderer.render_frame()
        image = renderer.get_image_numpy()
        # sky is bluer than the grey floor
        assert image[0, 4, 2] > image[0, 4, 0]
        assert image[7, 4] == pytest.approx([0.5, 0.5, 0.5], abs=1e-5)

    def test_frame_matches_single_pixel_render(self, look_down_z_camera):
        from diorama.core.renderer import FrameRenderer

        _simple_scene()
        renderer = FrameRenderer(10, 10, adaptive=False)
        renderer.render_frame()
        image = renderer.get_image_numpy()
        for col, row in [(0, 0), (5, 2), (9, 9), (3, 7)]:
            assert renderer.render_pixel(col, row) == pytest.approx(tuple(image[row, col]), abs=1e-6)

    def test_camera_argument_is_uploaded(self):
        from diorama.camera.orbit import OrbitCamera, get_camera_info
        from diorama.core.renderer import FrameRenderer

        camera = OrbitCamera.from_look_at((0.0, 1.0, 4.0), (0.0, 1.0, 0.0), aspect_ratio=1.0)
        FrameRenderer(4, 4).render_frame(camera)
        assert get_camera_info()["origin"] == pytest.approx((0.0, 1.0, 4.0), abs=1e-5)

    def test_adaptive_scale_shrinks_internal_frame(self, look_down_z_camera):
        from diorama.core.adaptive import QualityConfig
        from diorama.core.renderer import FrameRenderer

        renderer = FrameRenderer(40, 20, quality_config=QualityConfig(initial_scale=0.5, min_scale=0.45))
        stats = renderer.render_frame()
        assert (stats.width, stats.height) == (20, 10)
        assert renderer.get_image_numpy().shape == (10, 20, 3)
        assert renderer.get_display_image().shape == (20, 40, 3)
        assert renderer.get_image_uint8().dtype == np.uint8

    def test_resize_invalidates_frame(self, look_down_z_camera):
        from diorama.core.renderer import FrameRenderer

        renderer = FrameRenderer(8, 8, adaptive=False)
        renderer.render_frame()
        renderer.resize(16, 4)
        assert renderer.frame_size is None
        stats = renderer.render_frame()
        assert (stats.width, stats.height) == (16, 4)

    def test_save_image(self, look_down_z_camera, tmp_path):
        from PIL import Image

        from diorama.core.renderer import FrameRenderer

        renderer = FrameRenderer(8, 6, adaptive=False)
        renderer.render_frame()
        path = tmp_path / "frame.png"
        renderer.save_image(str(path))
        with Image.open(path) as img:
            assert img.size == (8, 6)


class TestUpscaleNearest:
    def test_same_size_is_identity(self):
        from diorama.core.renderer import upscale_nearest

        image = np.random.default_rng(0).random((4, 6, 3)).astype(np.float32)
        assert upscale_nearest(image, 6, 4) is image

    def test_doubling_repeats_pixels(self):
        from diorama.core.renderer import upscale_nearest

        image = np.arange(4, dtype=np.float32).reshape(2, 2, 1)
        out = upscale_nearest(image, 4, 4)
        assert out.shape == (4, 4, 1)
        assert out[:, :, 0].tolist() == [
            [0.0, 0.0, 1.0, 1.0],
            [0.0, 0.0, 1.0, 1.0],
            [2.0, 2.0, 3.0, 3.0],
            [2.0, 2.0, 3.0, 3.0],
        ]

    def test_non_integer_ratio(self):
        from diorama.core.renderer import upscale_nearest

        image = np.zeros((9, 9, 3), dtype=np.float32)
        image[-1, -1] = 1.0
        out = upscale_nearest(image, 20, 20)
        assert out.shape == (20, 20, 3)
        assert out[-1, -1, 0] == 1.0
        assert out[0, 0, 0] == 0.0
