"""Render configuration and logging setup.

RenderSettings bundles everything a render needs besides the scene: image
size, samples per pixel, bounce depth, the hit-distance epsilon and the
camera. Settings are validated when constructed, so an invalid configuration
fails before any kernel is launched.

Settings can be loaded from a dictionary or a JSON file:

    {
        "image_width": 400,
        "samples_per_pixel": 100,
        "max_depth": 50,
        "camera": {
            "look_from": [-2, 2, 1],
            "look_at": [0, 0, -1],
            "vfov": 20,
            "aspect_ratio": 1.7778
        }
    }

Example:
    >>> from src.pathtracer.config import RenderSettings
    >>> from src.pathtracer.camera.thin_lens import ThinLensCamera
    >>> settings = RenderSettings(camera=ThinLensCamera((0, 0, 0), (0, 0, -1)))
    >>> settings.image_height
    225
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.pathtracer.camera.thin_lens import ThinLensCamera
from src.pathtracer.core.integrator import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_SAMPLES_PER_PIXEL,
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    T_MIN,
)

LOG_LEVEL_ENV = "PATHTRACER_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_IMAGE_WIDTH = 400


def _default_camera() -> ThinLensCamera:
    return ThinLensCamera(look_from=(0.0, 0.0, 0.0), look_at=(0.0, 0.0, -1.0))


@dataclass
class RenderSettings:
    """Configuration of a single render.

    Attributes:
        image_width: Image width in pixels.
        samples_per_pixel: Jittered camera rays per pixel.
        max_depth: Maximum bounce depth per camera ray.
        t_min: Exclusive lower bound on hit distance.
        camera: Camera; its aspect ratio also fixes the image height.
    """

    image_width: int = DEFAULT_IMAGE_WIDTH
    samples_per_pixel: int = DEFAULT_SAMPLES_PER_PIXEL
    max_depth: int = DEFAULT_MAX_DEPTH
    t_min: float = T_MIN
    camera: ThinLensCamera = field(default_factory=_default_camera)

    def __post_init__(self) -> None:
        if self.image_width <= 0:
            raise ValueError(f"Image width must be positive, got {self.image_width}")
        if self.samples_per_pixel <= 0:
            raise ValueError(f"Samples per pixel must be positive, got {self.samples_per_pixel}")
        if self.max_depth < 0:
            raise ValueError(f"Maximum depth must be non-negative, got {self.max_depth}")
        if self.t_min < 0.0:
            raise ValueError(f"t_min must be non-negative, got {self.t_min}")
        if self.image_width > MAX_IMAGE_WIDTH or self.image_height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.image_width}x{self.image_height}) exceed maximum "
                f"supported ({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )

    @property
    def aspect_ratio(self) -> float:
        """Image width divided by height, taken from the camera."""
        return self.camera.aspect_ratio

    @property
    def image_height(self) -> int:
        """Image height in pixels (at least 1)."""
        return max(1, int(self.image_width / self.aspect_ratio))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderSettings":
        """Build settings from a dictionary; missing keys use defaults.

        Raises:
            ValueError: If a value is out of range.
        """
        kwargs: dict[str, Any] = {}
        if "image_width" in data:
            kwargs["image_width"] = int(data["image_width"])
        if "samples_per_pixel" in data:
            kwargs["samples_per_pixel"] = int(data["samples_per_pixel"])
        if "max_depth" in data:
            kwargs["max_depth"] = int(data["max_depth"])
        if "t_min" in data:
            kwargs["t_min"] = float(data["t_min"])
        if "camera" in data:
            kwargs["camera"] = ThinLensCamera.from_dict(data["camera"])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Export the settings to a JSON-friendly dictionary."""
        return {
            "image_width": self.image_width,
            "samples_per_pixel": self.samples_per_pixel,
            "max_depth": self.max_depth,
            "t_min": self.t_min,
            "camera": self.camera.to_dict(),
        }


def load_render_settings(filepath: str | Path) -> RenderSettings:
    """Load RenderSettings from a JSON file."""
    return RenderSettings.from_dict(json.loads(Path(filepath).read_text()))


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a console handler to the package logger.

    Args:
        level: Log level name (DEBUG, INFO, ...). Defaults to the
            PATHTRACER_LOG_LEVEL environment variable, then INFO.

    Returns:
        The configured package logger.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")

    logger = logging.getLogger("src.pathtracer")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    return logger
