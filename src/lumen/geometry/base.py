"""Common base for scene geometry.

Every primitive is defined in its own object space and placed in the world
by a Transform. Intersection kernels live next to each primitive; the scene
module dispatches on ``GeometryType``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, ClassVar

from src.lumen.geometry.transform import Transform

if TYPE_CHECKING:
    from src.lumen.materials.base import Material


class GeometryType(IntEnum):
    """Closed set of primitive shapes, used as the kernel dispatch tag."""

    SPHERE = 0
    PLANE = 1
    CYLINDER = 2
    TRIANGLE_MESH = 3


@dataclass(eq=False)
class Geometry:
    """A primitive with a surface material and an object placement.

    Attributes:
        material: Material sampled at every hit on this geometry.
        transform: Object->world placement; identity by default.
    """

    material: Material
    transform: Transform = field(default_factory=Transform.identity)

    kind: ClassVar[GeometryType]
