"""Tests for the path tracing integrator.

This module tests the core path tracing functionality including:
- Render target setup and management
- Depth limit and sky background
- Camera framing (object silhouettes land where they should)
- Sample accumulation and noise reduction
- Byte output

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run, so module-level
imports of modules containing ti.field() declarations would fail.
"""

import numpy as np
import pytest


def setup_forward_camera(aspect_ratio=2.0):
    """Pinhole camera at the origin looking down -z with a 90 degree fov."""
    from src.pathtracer.camera.thin_lens import ThinLensCamera, setup_camera

    setup_camera(
        ThinLensCamera(
            look_from=(0.0, 0.0, 0.0),
            look_at=(0.0, 0.0, -1.0),
            view_up=(0.0, 1.0, 0.0),
            vfov=90.0,
            aspect_ratio=aspect_ratio,
        )
    )


def expected_sky(width, height):
    """Sky colour through each pixel centre of the forward camera."""
    s = (np.arange(width) + 0.5) / width
    t = (np.arange(height) + 0.5) / height
    x = -2.0 + 4.0 * s[None, :]
    y = 1.0 - 2.0 * t[:, None]
    length = np.sqrt(x * x + y * y + 1.0)
    a = 0.5 * (y / length + 1.0)
    white = np.array([1.0, 1.0, 1.0])
    blue = np.array([0.5, 0.7, 1.0])
    return (1.0 - a)[..., None] * white + a[..., None] * blue


class TestRenderTargetSetup:
    """Test render target initialization and management."""

    def test_setup_sets_dimensions_and_clears(self):
        from src.pathtracer.core.integrator import (
            get_completed_pixels,
            get_image_dimensions,
            get_total_samples,
            setup_render_target,
        )

        setup_render_target(64, 48)
        assert get_image_dimensions() == (64, 48)
        assert get_total_samples() == 0
        assert get_completed_pixels() == 0

    @pytest.mark.parametrize("width, height", [(0, 10), (10, 0), (-1, 5)])
    def test_non_positive_dimensions_rejected(self, width, height):
        from src.pathtracer.core.integrator import setup_render_target

        with pytest.raises(ValueError, match="must be positive"):
            setup_render_target(width, height)

    def test_oversized_dimensions_rejected(self):
        from src.pathtracer.core.integrator import MAX_IMAGE_WIDTH, setup_render_target

        with pytest.raises(ValueError, match="exceed maximum"):
            setup_render_target(MAX_IMAGE_WIDTH + 1, 10)

    def test_render_before_setup_raises(self):
        from src.pathtracer.core import integrator

        previous = integrator._render_target_initialized[None]
        integrator._render_target_initialized[None] = 0
        try:
            with pytest.raises(RuntimeError, match="not set up"):
                integrator.render_image(num_samples=1)
            with pytest.raises(RuntimeError, match="not set up"):
                integrator.get_image_rgb8()
        finally:
            integrator._render_target_initialized[None] = previous

    @pytest.mark.parametrize("num_samples, max_depth", [(0, 5), (-3, 5), (1, -1)])
    def test_invalid_render_arguments(self, num_samples, max_depth):
        from src.pathtracer.core.integrator import render_image, setup_render_target

        setup_render_target(4, 4)
        with pytest.raises(ValueError):
            render_image(num_samples=num_samples, max_depth=max_depth)


class TestDepthAndBackground:
    """Test path termination and the sky seen by escaping rays."""

    def test_depth_zero_is_black(self):
        from src.pathtracer.core.integrator import (
            get_image_rgb8,
            render_image,
            render_sample,
            setup_render_target,
        )

        setup_forward_camera()
        setup_render_target(16, 8)

        assert render_sample(8, 4, max_depth=0) == (0.0, 0.0, 0.0)

        render_image(num_samples=2, max_depth=0)
        assert (get_image_rgb8() == 0).all()

    def test_empty_scene_shows_sky_gradient(self):
        from src.pathtracer.core.integrator import get_linear_image_numpy, render_image, setup_render_target

        width, height = 32, 16
        setup_forward_camera()
        setup_render_target(width, height)
        render_image(num_samples=4, max_depth=5)

        image = get_linear_image_numpy()
        np.testing.assert_allclose(image, expected_sky(width, height), atol=0.03)

        # Bluer towards the top of the image
        assert image[0, :, 0].mean() < image[-1, :, 0].mean()
        np.testing.assert_allclose(image[..., 2], 1.0, atol=1e-5)

    def test_absorbed_paths_are_black(self):
        """A single bounce ends before the scattered ray reaches the sky."""
        from src.pathtracer.core.integrator import render_sample, setup_render_target
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -2.0), 1.0, (0.9, 0.9, 0.9))

        setup_forward_camera(aspect_ratio=1.0)
        setup_render_target(9, 9)
        assert render_sample(4, 4, max_depth=1) == (0.0, 0.0, 0.0)
        assert min(render_sample(0, 0, max_depth=1)) > 0.4

    def test_escaped_path_stops_at_the_sky(self):
        """A mirror bounce that escapes keeps its colour however deep the limit."""
        from src.pathtracer.core.integrator import render_sample, setup_render_target
        from src.pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, -2.0), 1.0, (0.5, 0.5, 0.5), fuzz=0.0)

        setup_forward_camera(aspect_ratio=1.0)
        setup_render_target(9, 9)
        assert render_sample(4, 4, max_depth=1) == (0.0, 0.0, 0.0)

        for depth in (2, 50):
            r, g, b = render_sample(4, 4, max_depth=depth)
            # Blue of the sky is 1 everywhere, so one bounce leaves the albedo
            assert b == pytest.approx(0.5, abs=1e-4)
            assert 0.3 < r < g < b

    def test_transparent_sphere_is_nearly_invisible(self):
        from src.pathtracer.core.integrator import get_linear_image_numpy, render_image, setup_render_target
        from src.pathtracer.scene.manager import SceneManager

        width, height = 32, 16
        scene = SceneManager()
        scene.add_dielectric_sphere((0.0, 0.0, -2.0), 0.8, refraction_ratio=1.0)

        setup_forward_camera()
        setup_render_target(width, height)
        render_image(num_samples=8, max_depth=10)

        diff = np.abs(get_linear_image_numpy() - expected_sky(width, height))
        assert diff.mean() < 0.02


class TestFraming:
    """Test that geometry appears where the camera points."""

    def test_sphere_silhouette_is_centered(self):
        from src.pathtracer.core.integrator import get_image_rgb8, render_image, setup_render_target
        from src.pathtracer.scene.manager import SceneManager

        width, height = 64, 32
        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -2.0), 0.5, (0.5, 0.5, 0.5))

        setup_forward_camera()
        setup_render_target(width, height)
        render_image(num_samples=1, max_depth=1)

        rows, cols = np.nonzero((get_image_rgb8() == 0).all(axis=2))
        assert len(rows) > 20
        assert cols.mean() == pytest.approx((width - 1) / 2.0, abs=1.0)
        assert rows.mean() == pytest.approx((height - 1) / 2.0, abs=1.0)

    def test_unit_distance_sphere_in_widescreen_frame(self):
        from src.pathtracer.core.integrator import get_image_rgb8, render_image, setup_render_target
        from src.pathtracer.scene.manager import SceneManager

        # 16:9 frame, 90 degree vertical fov, sphere of radius 0.5 one unit ahead
        width, height = 64, 36
        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))

        setup_forward_camera(aspect_ratio=16.0 / 9.0)
        setup_render_target(width, height)
        render_image(num_samples=1, max_depth=1)

        # Depth 1 leaves every hit black; the sky is never black
        rows, cols = np.nonzero((get_image_rgb8() == 0).all(axis=2))
        assert len(rows) > 100
        assert cols.mean() == pytest.approx((width - 1) / 2.0, abs=1.0)
        assert rows.mean() == pytest.approx((height - 1) / 2.0, abs=1.0)
        assert cols.min() > 0
        assert cols.max() < width - 1

    def test_off_center_sphere_appears_on_its_side(self):
        from src.pathtracer.core.integrator import get_image_rgb8, render_image, setup_render_target
        from src.pathtracer.scene.manager import SceneManager

        width, height = 64, 32
        scene = SceneManager()
        # Right of and above the viewing axis
        scene.add_lambertian_sphere((1.0, 0.5, -2.0), 0.3, (0.5, 0.5, 0.5))

        setup_forward_camera()
        setup_render_target(width, height)
        render_image(num_samples=1, max_depth=1)

        rows, cols = np.nonzero((get_image_rgb8() == 0).all(axis=2))
        assert len(rows) > 0
        assert cols.mean() > width / 2
        assert rows.mean() < height / 2


class TestAccumulation:
    """Test progressive sample accumulation."""

    def test_samples_and_pixel_passes_accumulate(self):
        from src.pathtracer.core.integrator import (
            get_completed_pixels,
            get_total_samples,
            render_image,
            setup_render_target,
        )

        setup_forward_camera()
        setup_render_target(8, 4)
        render_image(num_samples=2, max_depth=3)
        render_image(num_samples=3, max_depth=3)

        assert get_total_samples() == 5
        assert get_completed_pixels() == 2 * 8 * 4

    def test_clear_resets_accumulation(self):
        from src.pathtracer.core.integrator import (
            clear_render_target,
            get_completed_pixels,
            get_linear_image_numpy,
            get_total_samples,
            render_image,
            setup_render_target,
        )

        setup_forward_camera()
        setup_render_target(8, 4)
        render_image(num_samples=2, max_depth=3)
        clear_render_target()

        assert get_total_samples() == 0
        assert get_completed_pixels() == 0
        assert (get_linear_image_numpy() == 0.0).all()

    def test_more_samples_reduce_noise(self):
        """Two independent renders agree better at higher sample counts."""
        from src.pathtracer.camera.thin_lens import setup_camera
        from src.pathtracer.core.integrator import (
            clear_render_target,
            get_linear_image_numpy,
            render_image,
            setup_render_target,
        )
        from src.pathtracer.scene.demo import create_three_spheres_scene

        _, camera = create_three_spheres_scene(aspect_ratio=2.0)
        setup_camera(camera)
        setup_render_target(32, 16)

        def render_pair(samples):
            images = []
            for _ in range(2):
                clear_render_target()
                render_image(num_samples=samples, max_depth=10)
                images.append(get_linear_image_numpy())
            return float(np.mean((images[0] - images[1]) ** 2))

        noisy = render_pair(1)
        converged = render_pair(64)
        assert converged < noisy / 4.0


class TestByteOutput:
    """Test the gamma-encoded byte image."""

    def test_shape_and_dtype(self):
        from src.pathtracer.core.integrator import get_image_rgb8, render_image, setup_render_target

        setup_forward_camera()
        setup_render_target(24, 12)
        render_image(num_samples=1, max_depth=2)

        image = get_image_rgb8()
        assert image.shape == (12, 24, 3)
        assert image.dtype == np.uint8

    def test_matches_host_conversion(self):
        from src.pathtracer.camera.thin_lens import setup_camera
        from src.pathtracer.core.color import linear_to_rgb8
        from src.pathtracer.core.integrator import (
            get_image_rgb8,
            get_linear_image_numpy,
            render_image,
            setup_render_target,
        )
        from src.pathtracer.scene.demo import create_three_spheres_scene

        _, camera = create_three_spheres_scene(aspect_ratio=2.0)
        setup_camera(camera)
        setup_render_target(24, 12)
        render_image(num_samples=4, max_depth=8)

        device = get_image_rgb8().astype(np.int32)
        host = linear_to_rgb8(get_linear_image_numpy()).astype(np.int32)
        assert np.abs(device - host).max() <= 1

    def test_unrendered_image_is_black(self):
        from src.pathtracer.core.integrator import get_image_rgb8, setup_render_target

        setup_render_target(4, 4)
        assert (get_image_rgb8() == 0).all()
