"""Open cylinder primitive.

Radius 1 around the object-space z axis, clipped to z in [-0.5, 0.5]. There
are no end caps; pair it with annulus planes for a closed can.
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import LocalHit, Ray, angle_fraction, local_miss, pick_root, solve_quadratic, vec2, vec3
from src.lumen.geometry.base import Geometry, GeometryType

# Half of the object-space height
HALF_HEIGHT = 0.5


@dataclass(eq=False)
class Cylinder(Geometry):
    """Unit-radius, unit-height open cylinder along object-space z."""

    kind = GeometryType.CYLINDER


@ti.func
def intersect_cylinder_local(ray: Ray) -> LocalHit:
    """Intersect an object-space ray with the clipped cylinder wall.

    The quadratic is solved in the XY plane. If the preferred root falls
    outside the height range and it was the near root, the far root is
    tried before reporting a miss. Rays parallel to the axis never hit.

    Args:
        ray: Ray in object space with a unit direction.

    Returns:
        The local hit with uv = (angle, z + 0.5), or an empty LocalHit.
    """
    result = local_miss()
    o = ray.origin
    d = ray.direction

    a = d.x * d.x + d.y * d.y
    b = 2.0 * (o.x * d.x + o.y * d.y)
    c = o.x * o.x + o.y * o.y - 1.0

    solved, t0, t1 = solve_quadratic(a, b, c)
    if solved == 1:
        found, t, used_far = pick_root(t0, t1)
        if found == 1:
            z = o.z + t * d.z
            if ti.abs(z) > HALF_HEIGHT:
                found = 0
                if used_far == 0 and t1 > 0.0:
                    t = t1
                    z = o.z + t * d.z
                    if ti.abs(z) <= HALF_HEIGHT:
                        found = 1
        if found == 1:
            p = o + t * d
            n = tm.normalize(vec3(p.x, p.y, 0.0))
            uv = vec2(angle_fraction(p.y, p.x), p.z + HALF_HEIGHT)
            result = LocalHit(found=1, t=t, point=p, normal=n, uv=uv)
    return result
