"""Scene module for scene management and hit records.

Components:
    intersection: Sphere storage and closest-hit queries
    manager: Host-side scene builder coordinating spheres and materials
    demo: Ready-made demo scenes with matching cameras

Scene data is organized for Taichi kernels:
    - Structure-of-Arrays layout for sphere data
    - Contiguous material id array, one entry per sphere
"""

from .demo import create_random_spheres_scene, create_three_spheres_scene
from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    hit_scene,
    intersect_scene,
)
from .manager import (
    MaterialInfo,
    SceneConfig,
    SceneManager,
    SphereInfo,
    clear_scene_storage,
)

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "hit_scene",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "clear_scene_storage",
    # Demo scenes
    "create_three_spheres_scene",
    "create_random_spheres_scene",
]
