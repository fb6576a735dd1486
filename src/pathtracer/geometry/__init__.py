"""Geometry module for the sphere primitive.

Components:
    sphere: Sphere primitive, hit records and ray-sphere intersection

All intersection routines are Taichi functions (@ti.func) so they can be
called from the per-pixel render kernel. Intersection follows the pattern:
    rec = hit_sphere(ray_origin, ray_direction, sphere, t_min, t_max)
"""

from .sphere import HitRecord, Sphere, hit_sphere, make_miss_record, set_face_normal

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_miss_record",
    "set_face_normal",
]
