"""Core rendering module.

Components:
    ray: Ray data structure, vector helpers and random sampling
    color: Gamma encoding and byte quantization
    integrator: Path tracing of camera rays and per-pixel supersampling
    progressive: Batched accumulation with progress reporting

All compute-intensive operations run in Taichi kernels.
"""

from .color import BYTE_SCALE, color_to_rgb8, gamma_encode, linear_to_rgb8
from .ray import (
    Ray,
    as_triple,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)

# integrator and progressive are NOT imported here to avoid circular imports.
# Import them from src.pathtracer.core.integrator / src.pathtracer.core.progressive.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "as_triple",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
    "BYTE_SCALE",
    "gamma_encode",
    "color_to_rgb8",
    "linear_to_rgb8",
]
