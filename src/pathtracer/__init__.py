"""Sphere path tracer built on Taichi.

This package renders scenes made of spheres by recursive Monte Carlo path
tracing on the CPU, with support for:
- Lambertian, metal (optionally fuzzy) and dielectric materials
- A thin-lens camera with defocus blur
- Per-pixel supersampling with gamma-2 output
- Progressive rendering with accumulation

Subpackages:
    core: Ray and vector utilities, colour output, integrator, rendering loop
    geometry: Sphere primitive and intersection
    materials: Scattering models and the material registry
    scene: Scene storage, scene manager and demo scenes
    camera: Thin-lens camera with ray generation
    preview: Image export

Modules:
    config: Render settings and logging setup
    render: One-call rendering facade
"""

__version__ = "0.1.0"
