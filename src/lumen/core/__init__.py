"""Core rendering module.

Components:
    runtime: Taichi initialisation with a per-process random seed
    settings: RenderSettings and path length limits
    ray: Ray, hit and interaction structures plus shared vector helpers
    integrator: Path construction and the reverse light fold (fields)
    render: Sequential render entry point

The integrator holds Taichi fields and render pulls it in lazily, so
neither is imported here. Import them directly once the runtime is up:
    >>> from src.lumen.core.render import render
"""

from .ray import Hit, Interaction, LocalHit, Ray, vec2, vec3
from .runtime import init_taichi, make_seed
from .settings import MAX_DEPTH, MAX_PATH_LENGTH, RAY_EPSILON, RenderSettings

__all__ = [
    # Runtime
    "init_taichi",
    "make_seed",
    # Settings
    "RenderSettings",
    "MAX_DEPTH",
    "MAX_PATH_LENGTH",
    "RAY_EPSILON",
    # Structures
    "Ray",
    "Hit",
    "LocalHit",
    "Interaction",
    "vec2",
    "vec3",
]
