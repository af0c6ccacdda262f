"""Pytest configuration for lumen tests.

Taichi is initialised once per session with a fixed seed; modules that
declare Taichi fields are imported inside tests and fixtures, after that.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    from src.lumen.core.runtime import init_taichi

    init_taichi(seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_scene_data():
    """Start every test with an empty scene and default integrator settings."""
    from src.lumen.core.integrator import configure
    from src.lumen.core.settings import RenderSettings
    from src.lumen.scene.intersection import clear_scene

    clear_scene()
    configure(RenderSettings())
    yield
    clear_scene()
    configure(RenderSettings())
