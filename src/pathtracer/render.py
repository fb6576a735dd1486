"""One-call rendering of a scene.

render() uploads the scene and the camera, sizes the render target, accumulates the
requested samples and returns the finished byte image. It is the entry point
used by the example scripts; ProgressiveRenderer remains available for
incremental rendering.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.config import RenderSettings
    >>> from src.pathtracer.render import render
    >>> from src.pathtracer.scene.demo import create_three_spheres_scene
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> image = render(RenderSettings(camera=camera, samples_per_pixel=10), scene)
    >>> image.shape
    (225, 400, 3)
"""

import logging
import time

import numpy as np
import numpy.typing as npt

from src.pathtracer.camera.thin_lens import setup_camera
from src.pathtracer.config import RenderSettings
from src.pathtracer.core.progressive import ProgressCallback, ProgressiveRenderer
from src.pathtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)


def render(
    settings: RenderSettings,
    scene: SceneManager | None = None,
    batch_size: int | None = None,
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.uint8]:
    """Render a scene with the given settings.

    Args:
        settings: Image size, sampling and camera configuration.
        scene: Scene to render. It is uploaded into the shared scene fields
            first, so it need not be the most recently built one. None
            renders whatever the fields currently hold.
        batch_size: Samples per pixel between progress callbacks. Defaults
            to all samples in a single batch.
        callback: Called with (completed_pixel_passes, target_pixel_passes)
            after each batch.

    Returns:
        Array of shape (height, width, 3) with dtype uint8, row-major,
        top-to-bottom, left-to-right.

    Raises:
        ValueError: If the camera geometry is degenerate.
    """
    width, height = settings.image_width, settings.image_height
    if scene is not None:
        logger.info(
            "Rendering %d spheres at %dx%d, %d spp, depth %d",
            scene.get_sphere_count(),
            width,
            height,
            settings.samples_per_pixel,
            settings.max_depth,
        )
        scene.upload()

    setup_camera(settings.camera)
    renderer = ProgressiveRenderer(width, height, settings.max_depth, settings.t_min)

    start = time.perf_counter()
    renderer.render(
        settings.samples_per_pixel,
        batch_size=batch_size or settings.samples_per_pixel,
        callback=callback,
    )
    logger.info("Render finished in %.2fs", time.perf_counter() - start)

    return renderer.get_image_uint8()
