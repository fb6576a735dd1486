"""Dielectric (glass/water) material implementation.

Dielectrics either reflect or refract every incoming ray and never absorb
light (attenuation is white). The choice is:

    - total internal reflection when ratio * sin(theta) > 1 (always reflect)
    - otherwise reflect with the Schlick reflectance probability R(theta),
      refract with probability 1 - R(theta)

A dielectric is described by its refraction ratio, the ratio of refractive
indices n_outside / n_inside seen by a ray entering the surface. Glass in air
is 1/1.5; an air bubble inside glass is 1.5. The ratio is used as-is on
front-face hits and inverted on back-face hits (ray leaving the surface).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.materials.dielectric import scatter_dielectric
    >>> # Within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_dielectric(
    >>> #     refraction_ratio, incident_dir, normal, front_face
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import normalize, reflect, refract, schlick_reflectance

vec3 = tm.vec3

# Refraction ratio of glass seen from air
GLASS_IN_AIR = 1.0 / 1.5


@ti.func
def effective_ratio(refraction_ratio: ti.f32, front_face: ti.i32) -> ti.f32:
    """Ratio of refractive indices for the side the ray is hitting from."""
    ratio = refraction_ratio
    if front_face == 0:
        ratio = 1.0 / refraction_ratio
    return ratio


@ti.func
def scatter_dielectric(
    refraction_ratio: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Reflect or refract a ray at a dielectric interface.

    Args:
        refraction_ratio: n_outside / n_inside of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal facing the incident ray.
        front_face: 1 if the ray hits the outside of the surface.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where
        attenuation is white and did_scatter is always 1.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    ratio = effective_ratio(refraction_ratio, front_face)

    unit_direction = normalize(incident_direction)
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))

    cannot_refract = ratio * sin_theta > 1.0

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract or ti.random(ti.f32) < schlick_reflectance(cos_theta, ratio):
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, ratio)

    return scattered_direction, attenuation, 1


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_DIELECTRIC_MATERIALS = 512

dielectric_ratios = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Reset the dielectric registry; stale entries are overwritten on reuse."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(refraction_ratio: float = GLASS_IN_AIR) -> int:
    """Add a dielectric material to the registry.

    Args:
        refraction_ratio: n_outside / n_inside. Default is glass in air
            (1 / 1.5). A ratio of 1.0 is optically invisible.

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If the ratio is not positive.
    """
    if refraction_ratio <= 0.0:
        raise ValueError(
            f"Refraction ratio = {refraction_ratio} must be positive "
            "(ratio of two refractive indices)."
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_ratios[idx] = refraction_ratio
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ratio(material_idx: ti.i32) -> ti.f32:
    """Get the refraction ratio of a dielectric material by type-local index."""
    return dielectric_ratios[material_idx]

