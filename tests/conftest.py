"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the module-level fields of already imported modules.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene, material and render target data around each test."""
    # Import here so that Taichi is initialized first
    from src.pathtracer.core.integrator import clear_render_target
    from src.pathtracer.scene.manager import clear_scene_storage

    def _clear_all():
        clear_scene_storage()
        clear_render_target()

    _clear_all()
    yield
    _clear_all()
