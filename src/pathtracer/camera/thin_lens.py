"""Thin-lens camera model for perspective ray generation with defocus blur.

The camera is configured once per render from seven parameters (look_from,
look_at, view_up, vertical field of view, aspect ratio, aperture, focus
distance). setup_camera() derives an orthonormal basis and the viewport
geometry on the host with NumPy and stores it in 0-D Taichi fields, which the
render kernel only reads:

    w = normalize(look_from - look_at)       (backward)
    u = normalize(view_up x w)               (right)
    v = w x u                                (up)

The viewport sits at focus_distance in front of the lens. Rays start at a
random point of the lens disk (radius aperture / 2) and pass through the
viewport point selected by the normalized screen coordinates (s, t), with s
running left to right and t running top to bottom. An aperture of 0 gives a
pinhole camera.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
    >>> camera = ThinLensCamera(
    ...     look_from=(0.0, 0.0, 0.0),
    ...     look_at=(0.0, 0.0, -1.0),
    ...     view_up=(0.0, 1.0, 0.0),
    ...     vfov=90.0,
    ...     aspect_ratio=16.0 / 9.0,
    ... )
    >>> setup_camera(camera)
"""

import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.pathtracer.core.ray import Ray, as_triple, make_ray, random_in_unit_disk

# Vectors shorter than this cannot define a camera axis
_DEGENERATE_LENGTH = 1e-12


@dataclass(frozen=True)
class ThinLensCamera:
    """Configuration for a thin-lens camera.

    Attributes:
        look_from: Camera (lens center) position in world space.
        look_at: Point the camera is looking at.
        view_up: Up hint; must not be parallel to the viewing direction.
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Image width divided by height.
        aperture: Lens diameter. 0 disables defocus blur.
        focus_distance: Distance from look_from to the plane in focus.
    """

    look_from: tuple[float, float, float]
    look_at: tuple[float, float, float]
    view_up: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    aspect_ratio: float = 16.0 / 9.0
    aperture: float = 0.0
    focus_distance: float = 1.0

    def __post_init__(self) -> None:
        for name in ("look_from", "look_at", "view_up"):
            object.__setattr__(self, name, as_triple(getattr(self, name), name))
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"Vertical field of view must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"Aspect ratio must be positive, got {self.aspect_ratio}")
        if self.aperture < 0.0:
            raise ValueError(f"Aperture must be non-negative, got {self.aperture}")
        if self.focus_distance <= 0.0:
            raise ValueError(f"Focus distance must be positive, got {self.focus_distance}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ThinLensCamera":
        """Build a camera from a dictionary of its fields."""
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)

    def to_dict(self) -> dict[str, Any]:
        """Export the camera to a JSON-friendly dictionary."""
        return {
            "look_from": list(self.look_from),
            "look_at": list(self.look_at),
            "view_up": list(self.view_up),
            "vfov": self.vfov,
            "aspect_ratio": self.aspect_ratio,
            "aperture": self.aperture,
            "focus_distance": self.focus_distance,
        }


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward

# Viewport span vectors and anchor
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_top_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_lens_radius = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup (host side, once per render)
# =============================================================================


def _unit(vector: npt.NDArray[np.float64], name: str) -> npt.NDArray[np.float64]:
    """Normalize a host-side vector, rejecting zero-length input."""
    norm = float(np.linalg.norm(vector))
    if norm < _DEGENERATE_LENGTH:
        raise ValueError(f"Cannot normalize degenerate camera vector {name}: {vector.tolist()}")
    return vector / norm


def compute_camera_frame(camera: ThinLensCamera) -> dict[str, npt.NDArray[np.float64]]:
    """Derive the basis and viewport geometry of a camera.

    Args:
        camera: Camera configuration.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical,
        top_left and lens_radius.

    Raises:
        ValueError: If look_from equals look_at or view_up is parallel to
            the viewing direction.
    """
    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h * camera.focus_distance
    viewport_width = viewport_height * camera.aspect_ratio

    look_from = np.array(camera.look_from, dtype=np.float64)
    look_at = np.array(camera.look_at, dtype=np.float64)
    view_up = np.array(camera.view_up, dtype=np.float64)

    w = _unit(look_from - look_at, "look_from - look_at")
    u = _unit(np.cross(view_up, w), "view_up x w")
    v = np.cross(w, u)

    horizontal = u * viewport_width
    vertical = v * viewport_height
    top_left = look_from - horizontal / 2.0 + vertical / 2.0 - w * camera.focus_distance

    return {
        "origin": look_from,
        "u": u,
        "v": v,
        "w": w,
        "horizontal": horizontal,
        "vertical": vertical,
        "top_left": top_left,
        "lens_radius": np.array(camera.aperture / 2.0),
    }


def setup_camera(camera: ThinLensCamera) -> None:
    """Upload the derived camera state to the Taichi fields.

    Must be called from Python scope before rendering; the fields stay
    constant while a render kernel runs.

    Raises:
        ValueError: If the camera geometry is degenerate.
    """
    frame = compute_camera_frame(camera)

    _camera_origin[None] = frame["origin"].tolist()
    _camera_u[None] = frame["u"].tolist()
    _camera_v[None] = frame["v"].tolist()
    _camera_w[None] = frame["w"].tolist()
    _viewport_horizontal[None] = frame["horizontal"].tolist()
    _viewport_vertical[None] = frame["vertical"].tolist()
    _top_left_corner[None] = frame["top_left"].tolist()
    _lens_radius[None] = float(frame["lens_radius"])


# =============================================================================
# Ray Generation (Taichi side)
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32) -> Ray:
    """Generate a ray through normalized screen coordinates (s, t).

    Args:
        s: Horizontal coordinate in [0, 1] (left to right).
        t: Vertical coordinate in [0, 1] (top to bottom).

    Returns:
        A ray starting on the lens disk, aimed at the viewport point. The
        direction is not normalized.
    """
    rd = _lens_radius[None] * random_in_unit_disk()
    origin = _camera_origin[None] + _camera_u[None] * rd.x + _camera_v[None] * rd.y
    target = _top_left_corner[None] + s * _viewport_horizontal[None] - t * _viewport_vertical[None]
    return make_ray(origin, target - origin)


@ti.func
def get_ray_jittered(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32) -> Ray:
    """Generate a ray through a random point of a pixel.

    Args:
        pixel_i: Pixel column (0 = left).
        pixel_j: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A ray through (pixel_i + U[0,1), pixel_j + U[0,1)) in screen space.
    """
    s = (ti.cast(pixel_i, ti.f32) + ti.random(ti.f32)) / ti.cast(width, ti.f32)
    t = (ti.cast(pixel_j, ti.f32) + ti.random(ti.f32)) / ti.cast(height, ti.f32)
    return get_ray(s, t)


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, Any]:
    """Read back the uploaded camera state for debugging and tests."""

    def _triple(f: Any) -> tuple[float, float, float]:
        value = f[None]
        return (float(value[0]), float(value[1]), float(value[2]))

    return {
        "origin": _triple(_camera_origin),
        "u": _triple(_camera_u),
        "v": _triple(_camera_v),
        "w": _triple(_camera_w),
        "horizontal": _triple(_viewport_horizontal),
        "vertical": _triple(_viewport_vertical),
        "top_left": _triple(_top_left_corner),
        "lens_radius": float(_lens_radius[None]),
    }
