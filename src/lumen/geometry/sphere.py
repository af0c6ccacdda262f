"""Unit sphere primitive.

The sphere is centred on the object-space origin with radius 1; position and
size come from the geometry's Transform. Roots are found with the stable
quadratic in core.ray.

Example:
    >>> from src.lumen.geometry.sphere import Sphere
    >>> from src.lumen.geometry.transform import Transform
    >>> from src.lumen.materials.mirror import Mirror
    >>> ball = Sphere(Mirror((0.9, 0.9, 0.9)), Transform.compose((0.0, 0.0, 1.0), scale=0.5))
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import LocalHit, Ray, angle_fraction, local_miss, pick_root, solve_quadratic, vec2
from src.lumen.geometry.base import Geometry, GeometryType


@dataclass(eq=False)
class Sphere(Geometry):
    """Sphere of radius 1 at the object-space origin."""

    kind = GeometryType.SPHERE


@ti.func
def intersect_sphere_local(ray: Ray) -> LocalHit:
    """Intersect an object-space ray with the unit sphere.

    A ray starting inside the sphere reports the far root. Texture
    coordinates wrap u around the y axis and map v from y in [-1, 1].

    Args:
        ray: Ray in object space with a unit direction.

    Returns:
        The local hit, or an empty LocalHit when both roots are behind the
        origin or the ray misses.
    """
    result = local_miss()

    a = tm.dot(ray.direction, ray.direction)
    b = 2.0 * tm.dot(ray.origin, ray.direction)
    c = tm.dot(ray.origin, ray.origin) - 1.0

    solved, t0, t1 = solve_quadratic(a, b, c)
    if solved == 1:
        found, t, _ = pick_root(t0, t1)
        if found == 1:
            p = ray.origin + t * ray.direction
            n = tm.normalize(p)
            uv = vec2(angle_fraction(n.x, n.z), n.y * 0.5 + 0.5)
            result = LocalHit(found=1, t=t, point=p, normal=n, uv=uv)
    return result
