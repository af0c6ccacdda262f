"""Stochastic material blend.

Each sample delegates entirely to one sub-material picked uniformly at
random; outputs are never averaged. Mixes may nest up to MAX_MIX_DEPTH.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from src.lumen.materials.base import Material, MaterialType

# Nesting limit resolved by the sampling kernel
MAX_MIX_DEPTH = 8


@dataclass(frozen=True)
class Mix(Material):
    """Uniform random choice among ``materials``.

    Raises:
        ValueError: If there are no sub-materials or nesting is too deep.
    """

    materials: Sequence[Material]

    kind = MaterialType.MIX

    def __post_init__(self) -> None:
        object.__setattr__(self, "materials", tuple(self.materials))
        if not self.materials:
            raise ValueError("Mix needs at least one material")
        for material in self.materials:
            if not isinstance(material, Material):
                raise ValueError(f"Mix entries must be materials, got {type(material).__name__}")
        if self.depth > MAX_MIX_DEPTH:
            raise ValueError(f"Mix nesting depth {self.depth} exceeds {MAX_MIX_DEPTH}")

    @property
    def depth(self) -> int:
        """Number of Mix levels including this one."""
        return 1 + max((m.depth for m in self.materials if isinstance(m, Mix)), default=0)
