"""Scene manager coordinating spheres and materials.

The SceneManager is the host-side builder for the scene. It hands out
unified material ids (see materials.registry), validates sphere parameters
before they reach the Taichi fields, and keeps a Python-side mirror of the
scene for inspection and (de)serialization.

A scene description is a plain dictionary, suitable for JSON:

    {
        "materials": [
            {"type": "lambertian", "albedo": [0.5, 0.5, 0.5]},
            {"type": "metal", "albedo": [0.8, 0.6, 0.2], "fuzz": 0.0},
            {"type": "dielectric", "refraction_ratio": 0.6667}
        ],
        "spheres": [
            {"center": [0, -100.5, -1], "radius": 100, "material_id": 0}
        ]
    }

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> mat_id = scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
    >>> scene.add_sphere(center=(0, 0, -1), radius=0.5, material_id=mat_id)
"""

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import taichi.math as tm

from src.pathtracer.materials.dielectric import (
    GLASS_IN_AIR,
    add_dielectric_material,
    clear_dielectric_materials,
)
from src.pathtracer.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from src.pathtracer.materials.metal import add_metal_material, clear_metal_materials
from src.pathtracer.core.ray import as_triple
from src.pathtracer.materials.registry import (
    MAX_MATERIALS,
    MaterialType,
    clear_material_tracking,
    register_material,
)
from src.pathtracer.scene.intersection import MAX_SPHERES, add_sphere, clear_scene

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# The SceneManager whose contents are currently in the Taichi fields
_active_manager = None


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material id.
        material_type: The kind of material.
        type_index: The index within the type-specific registry.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Information about a sphere in the scene."""

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Serializable scene description.

    Attributes:
        materials: List of material configurations.
        spheres: List of sphere configurations.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


def clear_scene_storage() -> None:
    """Empty the sphere and material fields shared by every SceneManager."""
    global _active_manager
    clear_scene()
    clear_lambertian_materials()
    clear_metal_materials()
    clear_dielectric_materials()
    clear_material_tracking()
    _active_manager = None


def _write_material(material_type: MaterialType, params: dict[str, Any]) -> int:
    if material_type == MaterialType.LAMBERTIAN:
        return add_lambertian_material(params["albedo"])
    if material_type == MaterialType.METAL:
        return add_metal_material(params["albedo"], params["fuzz"])
    return add_dielectric_material(params["refraction_ratio"])


class SceneManager:
    """Host-side scene builder.

    Every SceneManager writes to the same module-level Taichi fields. The
    manager that last wrote them is the active one; any other manager keeps
    its scene in the Python-side lists and writes it back with upload()
    before it is rendered or modified.

    Attributes:
        materials: MaterialInfo for every registered material, indexed by id.
        spheres: SphereInfo for every sphere, in insertion order.

    Example:
        >>> scene = SceneManager()
        >>> red = scene.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> glass = scene.add_dielectric_material(refraction_ratio=1 / 1.5)
        >>> scene.add_sphere((0, 0, -1), 0.5, red)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
        >>> scene.add_sphere((-1, 0, -1), 0.5, glass)
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        global _active_manager
        clear_scene_storage()
        self.materials.clear()
        self.spheres.clear()
        _active_manager = self

    def clear(self) -> None:
        """Clear the entire scene (spheres and materials)."""
        self._clear_all()

    def is_active(self) -> bool:
        """Whether the Taichi fields currently hold this scene."""
        return _active_manager is self

    def upload(self) -> None:
        """Write this scene into the Taichi fields used by the renderer.

        Replaces whatever another SceneManager left there. Material ids and
        sphere indices are preserved because both are written back in order.

        Raises:
            RuntimeError: If the scene exceeds the field capacity.
        """
        global _active_manager
        clear_scene_storage()
        for info in self.materials:
            info.type_index = _write_material(info.material_type, info.params)
            register_material(info.material_type, info.type_index)
        for sphere in self.spheres:
            add_sphere(vec3(*sphere.center), sphere.radius, sphere.material_id)
        _active_manager = self
        logger.debug(
            "Uploaded scene with %d materials and %d spheres",
            len(self.materials),
            len(self.spheres),
        )

    def _ensure_active(self) -> None:
        if not self.is_active():
            self.upload()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _track_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        material_id = register_material(material_type, type_index)
        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a Lambertian (diffuse) material.

        Args:
            albedo: The diffuse reflectance colour as (R, G, B) in [0, 1].

        Returns:
            The unified material id.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        self._ensure_active()
        albedo = as_triple(albedo, "albedo")
        type_index = add_lambertian_material(albedo)
        return self._track_material(MaterialType.LAMBERTIAN, type_index, {"albedo": albedo})

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal (specular) material.

        Args:
            albedo: The reflective tint as (R, G, B) in [0, 1].
            fuzz: Reflection blur in [0, 1]. Default is 0 (perfect mirror).

        Returns:
            The unified material id.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component or fuzz is outside [0, 1].
        """
        self._ensure_active()
        albedo = as_triple(albedo, "albedo")
        type_index = add_metal_material(albedo, fuzz)
        return self._track_material(
            MaterialType.METAL, type_index, {"albedo": albedo, "fuzz": fuzz}
        )

    def add_dielectric_material(self, refraction_ratio: float = GLASS_IN_AIR) -> int:
        """Add a dielectric (glass/water) material.

        Args:
            refraction_ratio: n_outside / n_inside for a ray entering the
                surface. Default is glass in air (1 / 1.5).

        Returns:
            The unified material id.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If the ratio is not positive.
        """
        self._ensure_active()
        type_index = add_dielectric_material(refraction_ratio)
        return self._track_material(
            MaterialType.DIELECTRIC, type_index, {"refraction_ratio": refraction_ratio}
        )

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return len(self.materials)

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by id, or None if unknown."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the MaterialType of a material id on the host side."""
        info = self.get_material_info(material_id)
        return info.material_type if info is not None else None

    # =========================================================================
    # Sphere Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            material_id: The unified material id of the sphere.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If the radius or material id is invalid.
        """
        center = as_triple(center, "center")
        if not math.isfinite(radius) or radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        if material_id < 0 or material_id >= len(self.materials):
            raise ValueError(f"Invalid material_id: {material_id}")

        self._ensure_active()
        sphere_index = add_sphere(vec3(*center), radius, material_id)
        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=radius,
                material_id=material_id,
            )
        )
        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new Lambertian material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        refraction_ratio: float = GLASS_IN_AIR,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(refraction_ratio)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return len(self.spheres)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a SceneConfig."""
        config = SceneConfig()

        for mat in self.materials:
            params = {
                key: list(value) if isinstance(value, tuple) else value
                for key, value in mat.params.items()
            }
            config.materials.append({"type": mat.material_type.name.lower(), **params})

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Replace the current scene with the one described by config.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for mat_config in config.materials:
            mat_type = str(mat_config.get("type", "")).lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(mat_config.get("albedo", [0.5, 0.5, 0.5]))
            elif mat_type == "metal":
                self.add_metal_material(
                    mat_config.get("albedo", [0.8, 0.8, 0.8]),
                    float(mat_config.get("fuzz", 0.0)),
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(
                    float(mat_config.get("refraction_ratio", GLASS_IN_AIR))
                )
            else:
                raise ValueError(f"Unknown material type: {mat_type!r}")

        for sphere_config in config.spheres:
            self.add_sphere(
                sphere_config.get("center", [0.0, 0.0, 0.0]),
                float(sphere_config.get("radius", 1.0)),
                int(sphere_config.get("material_id", 0)),
            )

        logger.debug(
            "Loaded scene with %d materials and %d spheres",
            len(self.materials),
            len(self.spheres),
        )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with 'materials' and 'spheres' keys."""
        self.from_config(
            SceneConfig(
                materials=data.get("materials", []),
                spheres=data.get("spheres", []),
            )
        )

    def save_json(self, filepath: str | Path) -> None:
        """Write the scene description to a JSON file."""
        Path(filepath).write_text(json.dumps(self.to_dict(), indent=2))

    def load_json(self, filepath: str | Path) -> None:
        """Replace the current scene with the one stored in a JSON file."""
        self.from_dict(json.loads(Path(filepath).read_text()))

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        """Get the maximum number of spheres supported."""
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS
