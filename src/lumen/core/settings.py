"""Render tunables shared by the sequential and parallel renderers."""

from __future__ import annotations

from dataclasses import dataclass

# Longest path any render may request; sizes the per-pixel path record
MAX_PATH_LENGTH = 16

# Defaults
MAX_DEPTH = 8
RAY_EPSILON = 1e-3


@dataclass(frozen=True)
class RenderSettings:
    """Per-render integrator configuration.

    Attributes:
        ambient: Radiance returned by paths that escape the scene.
        max_depth: Maximum number of recorded interactions per path.
        ray_epsilon: Distance a continuation ray is pushed along its
            direction to escape the surface it leaves. Smaller values show
            banding on large curved surfaces.
    """

    ambient: tuple[float, float, float] = (0.0, 0.0, 0.0)
    max_depth: int = MAX_DEPTH
    ray_epsilon: float = RAY_EPSILON

    def __post_init__(self) -> None:
        if not 1 <= self.max_depth <= MAX_PATH_LENGTH:
            raise ValueError(f"max_depth must be in [1, {MAX_PATH_LENGTH}], got {self.max_depth}")
        if self.ray_epsilon < 0.0:
            raise ValueError(f"ray_epsilon must be non-negative, got {self.ray_epsilon}")
        if len(self.ambient) != 3:
            raise ValueError(f"ambient must have 3 components, got {len(self.ambient)}")
        object.__setattr__(self, "ambient", tuple(float(c) for c in self.ambient))
