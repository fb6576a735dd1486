"""Demo scene configurations.

Two ready-made scenes, each returned together with a camera that frames it:

- The three-sphere scene: a large ground sphere with a diffuse sphere in the
  middle, a hollow glass sphere on the left and a metal sphere on the right.
- The random-spheres cover scene: a grid of small spheres with randomly
  chosen materials around three large feature spheres. The layout is drawn
  from a seeded NumPy generator, so a given seed always builds the same
  scene.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.demo import create_three_spheres_scene
    >>> from src.pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> setup_camera(camera)
"""

import math

import numpy as np

from src.pathtracer.camera.thin_lens import ThinLensCamera
from src.pathtracer.materials.dielectric import GLASS_IN_AIR
from src.pathtracer.scene.manager import SceneManager

# =============================================================================
# Three-Sphere Scene Parameters
# =============================================================================

GROUND_ALBEDO = (0.8, 0.8, 0.0)
CENTER_ALBEDO = (0.1, 0.2, 0.5)
METAL_ALBEDO = (0.8, 0.6, 0.2)

# Inverted ratio turns the inner sphere into an air bubble inside the glass
BUBBLE_RATIO = 1.0 / GLASS_IN_AIR

# =============================================================================
# Cover Scene Parameters
# =============================================================================

COVER_GROUND_ALBEDO = (0.5, 0.5, 0.5)
COVER_GRID_RANGE = range(-11, 11)
COVER_SMALL_RADIUS = 0.2

# Probability thresholds for the small sphere materials
DIFFUSE_PROBABILITY = 0.8
METAL_PROBABILITY = 0.95

# Small spheres must keep this distance from the point next to the metal sphere
COVER_CLEARANCE_POINT = (4.0, 0.2, 0.0)
COVER_CLEARANCE = 0.9


def create_three_spheres_scene(
    aspect_ratio: float = 16.0 / 9.0,
    aperture: float = 0.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the three-sphere scene.

    Args:
        aspect_ratio: Image width divided by height for the camera.
        aperture: Lens diameter; 0 gives a pinhole camera.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).
    """
    scene = SceneManager()

    scene.add_lambertian_sphere(center=(0.0, -100.5, -1.0), radius=100.0, albedo=GROUND_ALBEDO)
    scene.add_lambertian_sphere(center=(0.0, 0.0, -1.0), radius=0.5, albedo=CENTER_ALBEDO)

    # Hollow glass: outer shell plus an inner bubble sharing the centre
    scene.add_dielectric_sphere(center=(-1.0, 0.0, -1.0), radius=0.5, refraction_ratio=GLASS_IN_AIR)
    scene.add_dielectric_sphere(center=(-1.0, 0.0, -1.0), radius=0.4, refraction_ratio=BUBBLE_RATIO)

    scene.add_metal_sphere(center=(1.0, 0.0, -1.0), radius=0.5, albedo=METAL_ALBEDO, fuzz=0.0)

    look_from = (-2.0, 2.0, 1.0)
    look_at = (0.0, 0.0, -1.0)
    camera = ThinLensCamera(
        look_from=look_from,
        look_at=look_at,
        view_up=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=aperture,
        focus_distance=math.dist(look_from, look_at),
    )

    return scene, camera


def create_random_spheres_scene(
    seed: int = 0,
    aspect_ratio: float = 3.0 / 2.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random-spheres cover scene.

    Args:
        seed: Seed of the NumPy generator that places the small spheres.
        aspect_ratio: Image width divided by height for the camera.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add_lambertian_sphere(center=(0.0, -1000.0, 0.0), radius=1000.0, albedo=COVER_GROUND_ALBEDO)

    clearance_point = np.array(COVER_CLEARANCE_POINT)
    for a in COVER_GRID_RANGE:
        for b in COVER_GRID_RANGE:
            choose_mat = rng.random()
            center = np.array([a + 0.9 * rng.random(), COVER_SMALL_RADIUS, b + 0.9 * rng.random()])
            if np.linalg.norm(center - clearance_point) <= COVER_CLEARANCE:
                continue

            center_tuple = (float(center[0]), float(center[1]), float(center[2]))
            if choose_mat < DIFFUSE_PROBABILITY:
                albedo = rng.random(3) * rng.random(3)
                scene.add_lambertian_sphere(center_tuple, COVER_SMALL_RADIUS, tuple(albedo.tolist()))
            elif choose_mat < METAL_PROBABILITY:
                albedo = rng.uniform(0.5, 1.0, 3)
                fuzz = float(rng.uniform(0.0, 0.5))
                scene.add_metal_sphere(center_tuple, COVER_SMALL_RADIUS, tuple(albedo.tolist()), fuzz)
            else:
                scene.add_dielectric_sphere(center_tuple, COVER_SMALL_RADIUS, GLASS_IN_AIR)

    scene.add_dielectric_sphere(center=(0.0, 1.0, 0.0), radius=1.0, refraction_ratio=GLASS_IN_AIR)
    scene.add_lambertian_sphere(center=(-4.0, 1.0, 0.0), radius=1.0, albedo=(0.4, 0.2, 0.1))
    scene.add_metal_sphere(center=(4.0, 1.0, 0.0), radius=1.0, albedo=(0.7, 0.6, 0.5), fuzz=0.0)

    camera = ThinLensCamera(
        look_from=(13.0, 2.0, 3.0),
        look_at=(0.0, 0.0, 0.0),
        view_up=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_distance=10.0,
    )

    return scene, camera
