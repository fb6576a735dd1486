"""Scene-level ray intersection.

The scene is the aggregate object of the renderer: an ordered collection of
spheres that satisfies the same hit contract as a single sphere. Spheres are
stored in Taichi fields (structure of arrays) together with their material
ids.

    intersect_scene(): closest geometric hit among all spheres
    hit_scene():       closest hit plus the Reflection produced by the hit
                       surface's material

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.intersection import add_sphere, clear_scene, vec3
    >>> clear_scene()
    >>> add_sphere(vec3(0, 0, -1), 0.5, material_id=0)
    >>> # Use hit_scene within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray
from src.pathtracer.geometry.sphere import HitRecord, Sphere, hit_sphere
from src.pathtracer.materials.registry import Reflection, make_absorbed, scatter_material

vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection.

    Attributes:
        hit: 1 if any sphere was hit in range, 0 otherwise. The remaining
            fields are only meaningful when hit == 1.
        t: Ray parameter of the nearest impact.
        point: World-space impact point.
        normal: Unit normal facing the incident ray.
        front_face: 1 if the ray hit the outside of the surface.
        material_id: Unified material id of the hit sphere (-1 on a miss).
        reflection: The scatter decision of the hit material. Only filled in
            by hit_scene(); intersect_scene() leaves it absorbed.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32
    reflection: Reflection


MAX_SPHERES = 2048

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres from the scene.

    Resets the sphere count; field contents are overwritten by later adds.
    """
    num_spheres[None] = 0


def add_sphere(center: vec3, radius: float, material_id: int = 0) -> int:
    """Append a sphere to the scene storage.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (positive).
        material_id: The unified material id of the sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = center
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


@ti.func
def get_sphere(index: ti.i32) -> Sphere:
    """Load the sphere stored at index."""
    return Sphere(center=sphere_centers[index], radius=sphere_radii[index])


@ti.func
def _to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
        reflection=make_absorbed(),
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
        reflection=make_absorbed(),
    )


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Find the closest sphere hit with t in (t_min, t_max).

    Every sphere is tested against the same lower bound while the upper
    bound shrinks to the closest hit found so far, so an occluded sphere can
    never replace a nearer one.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The closest SceneHitRecord, or a miss record.
    """
    closest_t = t_max
    result = _make_miss_record()

    for i in range(num_spheres[None]):
        rec = hit_sphere(ray_origin, ray_direction, get_sphere(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _to_scene_hit_record(rec, sphere_material_ids[i])

    return result


@ti.func
def hit_scene(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> SceneHitRecord:
    """Intersect a ray with the scene and let the hit material scatter it.

    Args:
        ray: The incident ray.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The closest SceneHitRecord with its reflection populated, or a miss
        record.
    """
    result = intersect_scene(ray.origin, ray.direction, t_min, t_max)
    if result.hit == 1:
        result.reflection = scatter_material(
            result.material_id, ray, result.point, result.normal, result.front_face
        )
    return result
