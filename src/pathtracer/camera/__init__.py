"""Camera module for view and ray generation.

Components:
    thin_lens: Thin-lens perspective camera with defocus blur

Camera responsibilities:
    - Derive an orthonormal basis from look-at parameters
    - Map normalized screen coordinates (s, t) to world-space rays,
      s left to right and t top to bottom
    - Jitter rays inside a pixel for anti-aliasing
    - Jitter ray origins over the lens aperture for defocus blur
"""

from .thin_lens import (
    ThinLensCamera,
    compute_camera_frame,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "compute_camera_frame",
    "setup_camera",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
]
