"""Unit tests for colour output conversion.

Tests cover:
- Gamma-2 encoding with clamping
- Byte quantization inside kernels
- The NumPy image conversion and its agreement with the kernel version
"""

import numpy as np
import pytest
import taichi as ti


class TestGammaEncode:
    def test_gamma_encode_is_square_root(self):
        from src.pathtracer.core.color import gamma_encode
        from src.pathtracer.core.ray import vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = gamma_encode(vec3(0.25, 0.0, 1.0))

        test_kernel()
        r = result[None]
        assert (r[0], r[1], r[2]) == pytest.approx((0.5, 0.0, 1.0), abs=1e-6)

    def test_gamma_encode_clamps(self):
        from src.pathtracer.core.color import gamma_encode
        from src.pathtracer.core.ray import vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = gamma_encode(vec3(-0.5, 4.0, 0.0))

        test_kernel()
        r = result[None]
        assert (r[0], r[1], r[2]) == pytest.approx((0.0, 1.0, 0.0), abs=1e-6)


class TestByteConversion:
    def test_color_to_rgb8(self):
        from src.pathtracer.core.color import color_to_rgb8
        from src.pathtracer.core.ray import vec3

        result = ti.Vector.field(3, dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = color_to_rgb8(vec3(0.0, 0.25, 1.0))

        test_kernel()
        r = result[None]
        # 255.999 * 0.5 = 127.9995 truncates to 127; 1.0 maps to 255
        assert (r[0], r[1], r[2]) == (0, 127, 255)

    def test_linear_to_rgb8_matches_kernel(self):
        from src.pathtracer.core.color import color_to_rgb8, linear_to_rgb8

        values = np.linspace(0.0, 1.0, 64, dtype=np.float32)
        image = np.stack([values, values[::-1], np.full_like(values, 0.5)], axis=-1)[None, :, :]

        source = ti.Vector.field(3, dtype=ti.f32, shape=64)
        result = ti.Vector.field(3, dtype=ti.i32, shape=64)
        source.from_numpy(image[0])

        @ti.kernel
        def test_kernel():
            for i in range(64):
                result[i] = color_to_rgb8(source[i])

        test_kernel()
        expected = result.to_numpy()
        actual = linear_to_rgb8(image)[0]
        assert actual.dtype == np.uint8
        assert np.abs(actual.astype(np.int32) - expected).max() <= 1

    def test_linear_to_rgb8_handles_nan_and_range(self):
        from src.pathtracer.core.color import linear_to_rgb8

        image = np.array([[[np.nan, -1.0, 2.0]]], dtype=np.float32)
        out = linear_to_rgb8(image)
        assert out.shape == (1, 1, 3)
        assert out[0, 0].tolist() == [0, 0, 255]
