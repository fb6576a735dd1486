"""Ray data structure and vector utilities for Monte Carlo path tracing.

This module provides the fundamental Ray dataclass and the vector helpers used
by the geometry, material and camera modules. Vectors are Taichi ``vec3``
values: arithmetic (add, subtract, negate, scale, componentwise multiply) is
componentwise and every operation produces a new value. Taichi math functions
such as ``tm.sqrt`` and ``tm.clamp`` apply elementwise, which covers the
"map a scalar function over the components" use cases (gamma encoding, byte
conversion).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.ray import Ray, ray_at, vec3
    >>> @ti.kernel
    ... def point_on_ray() -> vec3:
    ...     ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, -1.0))
    ...     return ray_at(ray, 5.0)
"""

from typing import Any

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Components closer to zero than this are treated as zero by near_zero()
NEAR_ZERO_EPSILON = 1e-8

# Rejection sampling gives up after this many draws (the acceptance rate is
# above 50% so the cap is never reached in practice)
MAX_REJECTION_TRIES = 64


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            unit length; callers that rely on trigonometric identities
            normalize it first.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    The result is undefined for a zero-length vector; callers must make sure
    the input is non-degenerate (see near_zero()).

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v.
    """
    return v / tm.length(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Used to catch degenerate scatter directions before they are normalized.

    Args:
        v: The vector to check.

    Returns:
        1 if every component is within NEAR_ZERO_EPSILON of zero, 0 otherwise.
    """
    s = NEAR_ZERO_EPSILON
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes r = v - 2(v . n)n. The normal should be unit length.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(unit_direction: vec3, normal: vec3, eta_ratio: ti.f32) -> vec3:
    """Refract a unit direction through a surface (Snell's law).

    Splits the refracted ray into the components perpendicular and parallel
    to the normal:
        R'_perp = eta_ratio * (R + n cos(theta))
        R'_par  = -sqrt(|1 - |R'_perp|^2|) * n

    The caller is responsible for ruling out total internal reflection.

    Args:
        unit_direction: The incoming direction (must be normalized).
        normal: The surface normal facing the incoming ray (normalized).
        eta_ratio: Ratio of refractive indices n_incident / n_transmitted.

    Returns:
        The refracted direction vector (unit length).
    """
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)
    r_out_perp = eta_ratio * (unit_direction + cos_theta * normal)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - tm.dot(r_out_perp, r_out_perp))) * normal
    return r_out_perp + r_out_parallel


@ti.func
def schlick_reflectance(cosine: ti.f32, eta_ratio: ti.f32) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation.

    R(theta) = R0 + (1 - R0)(1 - cos(theta))^5, R0 = ((1 - n) / (1 + n))^2

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        eta_ratio: Ratio of refractive indices at the interface.

    Returns:
        The approximate reflectance in [0, 1].
    """
    r0 = (1.0 - eta_ratio) / (1.0 + eta_ratio)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_in_unit_sphere() -> vec3:
    """Generate a random point inside the unit sphere.

    Uses rejection sampling. Points extremely close to the center are
    rejected too, so the result can always be normalized.

    Returns:
        A random point with 0 < length < 1.
    """
    p = vec3(0.0, 0.0, 1e-3)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            candidate = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
            )
            lensq = length_squared(candidate)
            if 1e-20 < lensq < 1.0:
                p = candidate
                found = True
    return p


@ti.func
def random_unit_vector() -> vec3:
    """Generate a random unit vector uniformly distributed on the sphere."""
    return normalize(random_in_unit_sphere())


@ti.func
def random_in_unit_disk() -> vec3:
    """Generate a random point inside the unit disk in the xy-plane.

    Used to jitter the ray origin over the lens aperture (defocus blur).

    Returns:
        A random point (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            candidate = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                0.0,
            )
            if candidate.x * candidate.x + candidate.y * candidate.y < 1.0:
                p = candidate
                found = True
    return p


def as_triple(values: Any, name: str) -> tuple[float, float, float]:
    """Convert a host-side 3-element sequence to a float triple.

    Raises:
        ValueError: If values is not a sequence of exactly 3 numbers.
    """
    try:
        x, y, z = (float(v) for v in values)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a sequence of 3 numbers, got {values!r}") from e
    return (x, y, z)
