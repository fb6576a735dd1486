"""Preview module for image output.

Components:
    export: PNG/PPM export and image comparison utilities

Example:
    >>> from src.pathtracer.preview import save_png
    >>> from src.pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 225)
    >>> renderer.render(100)
    >>> save_png(renderer.get_image_uint8(), "output.png")
"""

from src.pathtracer.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_image,
    save_png,
    save_ppm,
)

__all__ = [
    "save_png",
    "save_ppm",
    "save_image",
    "image_to_uint8",
    "compute_rmse",
]
