"""Unified material ids and scatter dispatch.

Each material kind keeps its parameters in its own registry (see lambertian,
metal and dielectric). This module maps a unified material id onto
(material type, type-local index) and dispatches scattering on the material
type, producing a Reflection:

    reflection = scatter_material(material_id, ray, hit_point, normal, front_face)

A Reflection with scattered == 0 means the material absorbed the ray.
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray
from src.pathtracer.materials.dielectric import get_dielectric_ratio, scatter_dielectric
from src.pathtracer.materials.lambertian import get_lambertian_albedo, scatter_lambertian
from src.pathtracer.materials.metal import get_metal_albedo, get_metal_fuzz, scatter_metal

vec3 = tm.vec3


class MaterialType(IntEnum):
    """Material kinds understood by the scatter dispatch."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


MAX_MATERIALS = 1536  # 512 per type * 3 types

# material_types[i] stores the MaterialType of material id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the index into the type-specific registry
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


@ti.dataclass
class Reflection:
    """Outcome of a material's scatter decision.

    Attributes:
        scattered: 1 if the material re-emitted the ray, 0 if it absorbed it.
        ray: The outgoing ray (only meaningful when scattered == 1).
        attenuation: Componentwise multiplier applied to the colour the
            outgoing ray eventually returns.
    """

    scattered: ti.i32
    ray: Ray
    attenuation: vec3


def clear_material_tracking() -> None:
    """Forget every unified material id."""
    num_materials[None] = 0


def get_material_count() -> int:
    """Get the number of unified material ids handed out."""
    return int(num_materials[None])


def register_material(material_type: MaterialType, type_index: int) -> int:
    """Assign a unified material id to a type-local material.

    Args:
        material_type: The kind of material.
        type_index: Index returned by the type-specific add_*_material().

    Returns:
        The new unified material id.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    material_id = num_materials[None]
    if material_id >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_types[material_id] = int(material_type)
    material_type_indices[material_id] = type_index
    num_materials[None] = material_id + 1
    return material_id


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the MaterialType of a material id, or -1 for unknown ids."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local index of a material id, or -1 for unknown ids."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@ti.func
def make_absorbed() -> Reflection:
    """Create a Reflection for a fully absorbed ray."""
    return Reflection(
        scattered=0,
        ray=Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, 0.0)),
        attenuation=vec3(0.0, 0.0, 0.0),
    )


@ti.func
def scatter_material(
    material_id: ti.i32,
    incident: Ray,
    hit_point: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> Reflection:
    """Let the material at material_id decide how the incident ray scatters.

    Args:
        material_id: The unified material id of the hit surface.
        incident: The incident ray.
        hit_point: The impact point, origin of the outgoing ray.
        normal: The unit surface normal facing the incident ray.
        front_face: 1 if the ray hit the outside of the surface.

    Returns:
        The Reflection; unknown material ids absorb the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_index)
        scattered_direction, attenuation, did_scatter = scatter_lambertian(albedo, normal)

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(type_index)
        fuzz = get_metal_fuzz(type_index)
        scattered_direction, attenuation, did_scatter = scatter_metal(
            albedo, fuzz, incident.direction, normal
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ratio = get_dielectric_ratio(type_index)
        scattered_direction, attenuation, did_scatter = scatter_dielectric(
            ratio, incident.direction, normal, front_face
        )

    result = make_absorbed()
    if did_scatter == 1:
        result = Reflection(
            scattered=1,
            ray=Ray(origin=hit_point, direction=scattered_direction),
            attenuation=attenuation,
        )
    return result
