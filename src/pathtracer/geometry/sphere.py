"""Sphere primitive and ray-sphere intersection.

A sphere is the only geometric primitive of the renderer. Intersection
solves the quadratic

    t^2 (v . v) + 2t v . (p0 - C) + (p0 - C) . (p0 - C) - r^2 = 0

for a ray p0 + t v against a sphere with center C and radius r. The roots are
computed with the cancellation-free formulation (q = -(h + sign(h) sqrt(D)),
t0 = q / a, t1 = c / q) so that rays nearly tangent to large spheres, like the
ground sphere of the demo scenes, keep their precision in f32.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.geometry.sphere import Sphere, hit_sphere, vec3
    >>> @ti.kernel
    ... def nearest_hit() -> ti.f32:
    ...     sphere = Sphere(center=vec3(0.0, 0.0, -1.0), radius=0.5)
    ...     rec = hit_sphere(vec3(0.0), vec3(0.0, 0.0, -1.0), sphere, 1e-4, 1e9)
    ...     return rec.t
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-surface intersection.

    Attributes:
        hit: 1 if the ray intersected the surface in range, 0 otherwise.
            The remaining fields are only meaningful when hit == 1.
        t: Ray parameter of the impact point.
        point: World-space impact point.
        normal: Unit surface normal, always facing the side the ray came
            from (the outward normal for front-face hits, its negation for
            back-face hits).
        front_face: 1 if the ray approached from outside the surface
            (direction . outward_normal < 0), 0 otherwise.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord representing no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
    )


@ti.func
def set_face_normal(direction: vec3, outward_normal: vec3):
    """Orient a surface normal against the incident ray.

    Args:
        direction: The incident ray direction.
        outward_normal: The unit normal pointing out of the surface.

    Returns:
        A tuple (normal, front_face) where normal faces the incident ray and
        front_face is 1 when the ray hit the outside of the surface.
    """
    front_face = 1
    normal = outward_normal
    if tm.dot(direction, outward_normal) >= 0.0:
        front_face = 0
        normal = -outward_normal
    return normal, front_face


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 without catastrophic cancellation.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of the reduced discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # q vanishes only when h and the discriminant are both ~0
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with a sphere.

    The nearer root is tried first; if it lies outside the open interval
    (t_min, t_max) the farther root is tried. A negative discriminant means
    the ray misses the sphere.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be unit).
        sphere: The sphere to test against.
        t_min: Exclusive lower bound on t (suppresses self-intersection).
        t_max: Exclusive upper bound on t.

    Returns:
        A HitRecord; check its hit field.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    result = make_miss_record()

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)
        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            point = ray_origin + t * ray_direction
            outward_normal = (point - sphere.center) / sphere.radius
            normal, front_face = set_face_normal(ray_direction, outward_normal)
            result = HitRecord(
                hit=1,
                t=t,
                point=point,
                normal=normal,
                front_face=front_face,
            )

    return result
