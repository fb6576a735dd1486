"""Path tracing integrator for Monte Carlo light transport.

This module implements the colour evaluation of a camera ray and the
per-pixel supersampling kernel.

ray_color() follows a ray through the scene:
    - depth exhausted            -> black
    - hit, material scatters     -> attenuation * colour of the scattered ray
    - hit, material absorbs      -> black
    - miss                       -> sky gradient from white to (0.5, 0.7, 1.0)

The recursive definition is evaluated as a loop that carries the product of
attenuations (throughput), which gives the same result without recursion in
Taichi functions.

The render kernel loops over pixels in its outermost loop, which Taichi runs
in parallel on a pool of worker threads. Each pixel owns its slot of the
accumulation buffer, so writes need no locking; the completed-pixel counter is
the only shared value and is updated with an atomic add. Random numbers come
from Taichi's per-thread generators.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.integrator import render_image, setup_render_target
    >>> from src.pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
    >>> from src.pathtracer.scene.demo import create_three_spheres_scene
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(400, 225)
    >>> render_image(num_samples=100, max_depth=50)
"""

import logging
import time

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.pathtracer.camera.thin_lens import get_ray_jittered
from src.pathtracer.core.color import color_to_rgb8
from src.pathtracer.core.ray import Ray, normalize
from src.pathtracer.scene.intersection import hit_scene

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

DEFAULT_SAMPLES_PER_PIXEL = 100
DEFAULT_MAX_DEPTH = 50

# Exclusive lower bound on hit distance, suppresses shadow acne
T_MIN = 1e-4
# Stand-in for +infinity as the upper bound of scene queries
T_MAX = 1e30

SKY_WHITE = vec3(1.0, 1.0, 1.0)
SKY_BLUE = vec3(0.5, 0.7, 1.0)


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Preallocated to the maximum size to avoid kernel recompilation
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Buffers are indexed [row, column], row 0 at the top of the image
_color_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))
_rgb8 = ti.Vector.field(3, dtype=ti.u8, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))

# Pixel passes finished since the last clear (one per pixel per render call)
_completed_pixels = ti.field(dtype=ti.i64, shape=())

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the buffers.

    Args:
        width: Image width in pixels (1 to MAX_IMAGE_WIDTH).
        height: Image height in pixels (1 to MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear accumulated colour, sample counts and the progress counter."""
    _color_sum.fill(0.0)
    _sample_count.fill(0)
    _rgb8.fill(0)
    _completed_pixels[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the active render target size as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    return int(_sample_count[0, 0])


def get_completed_pixels() -> int:
    """Get the monotonically increasing count of completed pixel passes."""
    return int(_completed_pixels[None])


# =============================================================================
# Colour Evaluation
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky gradient seen by rays that escape the scene.

    Args:
        direction: Ray direction (any non-zero length).

    Returns:
        (1 - a) * white + a * blue with a = 0.5 * (unit_direction.y + 1).
    """
    unit_direction = normalize(direction)
    a = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - a) * SKY_WHITE + a * SKY_BLUE


@ti.func
def ray_color(ray: Ray, max_depth: ti.i32, t_min: ti.f32) -> vec3:
    """Estimate the colour carried back along a ray.

    Args:
        ray: The ray to follow.
        max_depth: Maximum number of scene queries; 0 or less yields black.
        t_min: Exclusive lower bound on hit distance for every query.

    Returns:
        The linear colour estimate.
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    current = ray

    for _ in range(max_depth):
        rec = hit_scene(current, t_min, T_MAX)
        if rec.hit == 0:
            color = throughput * background_color(current.direction)
            break
        if rec.reflection.scattered == 0:
            break
        throughput *= rec.reflection.attenuation
        current = rec.reflection.ray

    # A path that exhausts max_depth stays black
    return color


@ti.func
def sanitize(color: vec3) -> vec3:
    """Replace NaN/Inf components by zero and clamp negatives."""
    result = tm.max(color, vec3(0.0, 0.0, 0.0))
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


@ti.func
def sample_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    t_min: ti.f32,
) -> vec3:
    """Trace one jittered camera ray through a pixel."""
    ray = get_ray_jittered(pixel_i, pixel_j, width, height)
    return sanitize(ray_color(ray, max_depth, t_min))


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pixels(
    width: ti.i32,
    height: ti.i32,
    num_samples: ti.i32,
    max_depth: ti.i32,
    t_min: ti.f32,
):
    """Accumulate num_samples samples into every pixel."""
    for j, i in ti.ndrange(height, width):
        total = vec3(0.0, 0.0, 0.0)
        for _ in range(num_samples):
            total += sample_pixel(i, j, width, height, max_depth, t_min)

        _color_sum[j, i] += total
        _sample_count[j, i] += num_samples
        ti.atomic_add(_completed_pixels[None], 1)


@ti.kernel
def _resolve_rgb8(width: ti.i32, height: ti.i32):
    """Average the accumulated samples and quantize to display bytes."""
    for j, i in ti.ndrange(height, width):
        n = _sample_count[j, i]
        mean = vec3(0.0, 0.0, 0.0)
        if n > 0:
            mean = _color_sum[j, i] / ti.cast(n, ti.f32)
        _rgb8[j, i] = ti.cast(color_to_rgb8(mean), ti.u8)


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    t_min: ti.f32,
) -> vec3:
    return sample_pixel(pixel_i, pixel_j, width, height, max_depth, t_min)


# =============================================================================
# Public Rendering API
# =============================================================================


def _check_render_arguments(num_samples: int, max_depth: int) -> None:
    if num_samples <= 0:
        raise ValueError(f"Samples per pixel must be positive, got {num_samples}")
    if max_depth < 0:
        raise ValueError(f"Maximum depth must be non-negative, got {max_depth}")


def render_sample(
    pixel_i: int,
    pixel_j: int,
    max_depth: int = DEFAULT_MAX_DEPTH,
    t_min: float = T_MIN,
) -> tuple[float, float, float]:
    """Trace a single sample through one pixel (for tests and debugging).

    Args:
        pixel_i: Pixel column (0 = left).
        pixel_j: Pixel row (0 = top).
        max_depth: Maximum bounce depth.
        t_min: Exclusive lower bound on hit distance.

    Returns:
        Tuple of linear (R, G, B) values.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_i, pixel_j, width, height, max_depth, t_min)
    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(
    num_samples: int = DEFAULT_SAMPLES_PER_PIXEL,
    max_depth: int = DEFAULT_MAX_DEPTH,
    t_min: float = T_MIN,
) -> None:
    """Render num_samples samples per pixel into the accumulation buffer.

    Can be called repeatedly; samples keep accumulating until the render
    target is cleared.

    Args:
        num_samples: Samples per pixel to add (positive).
        max_depth: Maximum bounce depth (non-negative).
        t_min: Exclusive lower bound on hit distance.

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If num_samples or max_depth is out of range.
    """
    _check_render_target_initialized()
    _check_render_arguments(num_samples, max_depth)

    width, height = get_image_dimensions()
    start = time.perf_counter()
    _render_pixels(width, height, num_samples, max_depth, t_min)
    ti.sync()
    logger.debug(
        "Rendered %d spp at %dx%d (depth %d) in %.3fs",
        num_samples,
        width,
        height,
        max_depth,
        time.perf_counter() - start,
    )


def get_linear_image_numpy() -> npt.NDArray[np.float32]:
    """Get the averaged linear image.

    Returns:
        Array of shape (height, width, 3), row 0 at the top. Pixels without
        samples are black.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    sums = _color_sum.to_numpy()[:height, :width, :]
    counts = _sample_count.to_numpy()[:height, :width]

    image = np.zeros_like(sums, dtype=np.float32)
    mask = counts > 0
    image[mask] = sums[mask] / counts[mask][:, None]
    return image


def get_image_rgb8() -> npt.NDArray[np.uint8]:
    """Get the averaged, gamma-encoded image as bytes.

    Returns:
        Array of shape (height, width, 3) with dtype uint8, row-major,
        top-to-bottom, left-to-right.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    _resolve_rgb8(width, height)
    return _rgb8.to_numpy()[:height, :width, :].astype(np.uint8)
