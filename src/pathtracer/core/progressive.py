"""Progressive renderer for iterative sample accumulation.

This module wraps the core integrator with:
- Batched rendering that refines the image over time
- Progress callbacks reporting completed pixel passes
- Reset and resize of the render target

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.progressive import ProgressiveRenderer
    >>> from src.pathtracer.scene.demo import create_three_spheres_scene
    >>> from src.pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(400, 225)
    >>> renderer.render(100, batch_size=10)
    >>> image = renderer.get_image_uint8()
"""

import logging
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from src.pathtracer.core.integrator import (
    DEFAULT_MAX_DEPTH,
    T_MIN,
    clear_render_target,
    get_completed_pixels,
    get_image_rgb8,
    get_linear_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)

logger = logging.getLogger(__name__)

# Callback receives (completed_pixel_passes, target_pixel_passes)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A renderer that accumulates samples into the shared render target.

    The renderer keeps width, height, depth and t_min and delegates storage
    to the integrator buffers (Taichi fields). Only one render target exists
    per process, so creating a second renderer resets the first.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Maximum bounce depth per camera ray.
        t_min: Exclusive lower bound on hit distance.
    """

    def __init__(
        self,
        width: int,
        height: int,
        max_depth: int = DEFAULT_MAX_DEPTH,
        t_min: float = T_MIN,
    ) -> None:
        """Initialize the renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            max_depth: Maximum bounce depth (non-negative).
            t_min: Exclusive lower bound on hit distance.

        Raises:
            ValueError: If dimensions are out of range or max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError(f"Maximum depth must be non-negative, got {max_depth}")
        self._width = width
        self._height = height
        self.max_depth = max_depth
        self.t_min = t_min
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    @property
    def completed_pixels(self) -> int:
        """Get the number of pixel passes completed since the last reset."""
        return get_completed_pixels()

    def reset(self) -> None:
        """Clear the accumulated image without changing its size."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset the accumulator.

        Raises:
            ValueError: If dimensions are out of range.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height

    def _batches(self, num_samples: int, batch_size: int) -> Generator[tuple[int, int], None, None]:
        if batch_size <= 0:
            raise ValueError(f"Batch size must be positive, got {batch_size}")

        pixels = self._width * self._height
        batch_count = -(-num_samples // batch_size)
        target = self.completed_pixels + batch_count * pixels

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_image(batch, self.max_depth, self.t_min)
            remaining -= batch
            yield (self.completed_pixels, target)

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Add samples to every pixel, optionally reporting progress.

        Args:
            num_samples: Total number of samples per pixel to add.
            batch_size: Samples per pixel rendered between callbacks.
            callback: Called after each batch with
                (completed_pixel_passes, target_pixel_passes).

        Raises:
            ValueError: If batch_size is not positive.
        """
        if num_samples <= 0:
            return

        for completed, target in self._batches(num_samples, batch_size):
            if callback is not None:
                callback(completed, target)

        logger.info(
            "Accumulated %d spp at %dx%d (%d total)",
            num_samples,
            self._width,
            self._height,
            self.sample_count,
        )

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render in batches, yielding progress after each one.

        Yields:
            Tuple of (completed_pixel_passes, target_pixel_passes).

        Example:
            >>> for done, target in renderer.render_progressive(100, batch_size=10):
            ...     print(f"{done}/{target}")
        """
        if num_samples <= 0:
            return
        yield from self._batches(num_samples, batch_size)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the averaged linear image of shape (height, width, 3)."""
        return get_linear_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the gamma-encoded image of shape (height, width, 3) as bytes."""
        return get_image_rgb8()

    def save_image(self, filepath: str) -> None:
        """Save the rendered image to a file (format from the extension)."""
        from src.pathtracer.preview.export import save_image

        save_image(self.get_image_uint8(), filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
