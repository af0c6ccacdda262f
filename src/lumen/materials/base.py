"""Material base types and parameter validation.

Materials are plain frozen descriptions. Their sampling routines are Taichi
functions in the per-material modules, and materials.registry uploads the
parameters into fields and dispatches on ``MaterialType``.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import IntEnum

Color = tuple[float, float, float]


class MaterialType(IntEnum):
    """Closed set of materials, used as the kernel dispatch tag."""

    MIRROR = 0
    DIELECTRIC = 1
    DIFFUSE = 2
    MIX = 3


class Material:
    """Base class for all materials."""

    kind: MaterialType


def as_color(value: Sequence[float] | float, name: str, *, upper: float | None = 1.0) -> Color:
    """Coerce an RGB triple (or a grey scalar) and range-check it.

    Args:
        value: Three components, or one value used for all three.
        name: Parameter name for error messages.
        upper: Inclusive upper bound per component, None for unbounded.

    Returns:
        The colour as a tuple of floats.

    Raises:
        ValueError: If the value has the wrong length or is out of range.
    """
    if isinstance(value, (int, float)):
        components = (float(value),) * 3
    else:
        components = tuple(float(c) for c in value)
    if len(components) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(components)}")
    for c in components:
        if c < 0.0 or (upper is not None and c > upper):
            bound = f"[0, {upper}]" if upper is not None else ">= 0"
            raise ValueError(f"{name} components must be {bound}, got {components}")
    return components  # type: ignore[return-value]
