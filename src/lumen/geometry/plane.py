"""Bounded plane primitive.

The plane is the object-space z = 0 plane with normal +z, cut to a finite
area by an extent predicate: a centred rectangle (floors, walls, quad lights)
or an annulus (disks and rings).

Example:
    >>> from src.lumen.geometry.plane import AnnulusExtent, Plane
    >>> disk = Plane(Diffuse.emitter((4.0, 4.0, 4.0)), extent=AnnulusExtent(0.0, 1.0))
"""

from dataclasses import dataclass, field
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import LocalHit, Ray, angle_fraction, local_miss, vec2, vec3
from src.lumen.geometry.base import Geometry, GeometryType


class ExtentType(IntEnum):
    """Area predicate applied to plane hits."""

    RECT = 0
    ANNULUS = 1


@dataclass(frozen=True)
class RectExtent:
    """Rectangle centred on the origin.

    Attributes:
        width: Size along object-space x.
        height: Size along object-space y.
    """

    width: float = 1.0
    height: float = 1.0

    kind = ExtentType.RECT

    def __post_init__(self) -> None:
        if self.width <= 0.0 or self.height <= 0.0:
            raise ValueError(f"Rectangle extent must be positive, got {self.width}x{self.height}")

    def params(self) -> tuple[float, float]:
        return (self.width, self.height)


@dataclass(frozen=True)
class AnnulusExtent:
    """Ring between two radii centred on the origin; inner=0 gives a disk."""

    inner: float = 0.0
    outer: float = 1.0

    kind = ExtentType.ANNULUS

    def __post_init__(self) -> None:
        if self.inner < 0.0 or self.outer <= self.inner:
            raise ValueError(f"Annulus needs 0 <= inner < outer, got {self.inner}, {self.outer}")

    def params(self) -> tuple[float, float]:
        return (self.inner, self.outer)


@dataclass(eq=False)
class Plane(Geometry):
    """Plane z = 0 in object space, limited by ``extent``."""

    extent: RectExtent | AnnulusExtent = field(default_factory=RectExtent)

    kind = GeometryType.PLANE


@ti.func
def intersect_plane_local(ray: Ray, extent_kind: ti.i32, extent: vec2) -> LocalHit:
    """Intersect an object-space ray with the bounded z = 0 plane.

    Rays that start on the plane, or whose direction does not carry them
    toward it from their current side, miss.

    Args:
        ray: Ray in object space with a unit direction.
        extent_kind: ExtentType of the area predicate.
        extent: (width, height) for a rectangle, (inner, outer) for an annulus.

    Returns:
        The local hit with uv in [0, 1]^2, or an empty LocalHit.
    """
    result = local_miss()
    oz = ray.origin.z
    dz = ray.direction.z

    crosses = (oz > 0.0 and dz < 0.0) or (oz < 0.0 and dz > 0.0)
    if crosses:
        t = -oz / dz
        p = ray.origin + t * ray.direction
        p.z = 0.0

        inside = 0
        uv = vec2(0.0)
        if extent_kind == int(ExtentType.RECT):
            if ti.abs(p.x) <= 0.5 * extent.x and ti.abs(p.y) <= 0.5 * extent.y:
                inside = 1
                uv = vec2((p.x + 0.5 * extent.x) / extent.x, (p.y + 0.5 * extent.y) / extent.y)
        else:
            r = tm.length(vec2(p.x, p.y))
            if r >= extent.x and r <= extent.y:
                inside = 1
                uv = vec2(angle_fraction(p.y, p.x), 1.0 - (r - extent.x) / (extent.y - extent.x))

        if inside == 1:
            result = LocalHit(found=1, t=t, point=p, normal=vec3(0.0, 0.0, 1.0), uv=uv)
    return result
