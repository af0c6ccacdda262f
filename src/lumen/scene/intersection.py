"""Scene-level ray intersection.

This module stores the uploaded scene in Taichi fields (structure of arrays)
and provides the kernel-side queries the integrator needs:

- intersect_geometry: one primitive, tested in its object space
- intersect_scene: brute-force nearest hit over every geometry
- surface: material sampling at a hit

World distances are recomputed from world-space points, so non-uniform
scales report correct ``t`` values. Hits with ``t <= 0`` are discarded and
the minimum ``t`` wins; on exact ties the first geometry in scene order is
kept.

This module creates Taichi fields at import time and must be imported after
ti.init().

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.scene.intersection import intersect_ray, load_scene
    >>> load_scene(scene)
    >>> info = intersect_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
    >>> info.hit, info.t
    (True, 4.0)
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import (
    Hit,
    Interaction,
    LocalHit,
    Ray,
    local_miss,
    miss,
    transform_point,
    transform_ray,
    vec2,
    vec3,
)
from src.lumen.geometry.base import Geometry, GeometryType
from src.lumen.geometry.cylinder import intersect_cylinder_local
from src.lumen.geometry.mesh import TriangleMesh, interpolate_normal, intersect_triangle
from src.lumen.geometry.plane import Plane, intersect_plane_local
from src.lumen.geometry.sphere import intersect_sphere_local
from src.lumen.materials.registry import add_material, clear_materials, sample_material
from src.lumen.scene.manager import Scene

logger = logging.getLogger(__name__)

# Capacities
MAX_GEOMETRIES = 1024
MAX_TRIANGLES = 1 << 17

# Geometry storage
geometry_types = ti.field(dtype=ti.i32, shape=MAX_GEOMETRIES)
geometry_material = ti.field(dtype=ti.i32, shape=MAX_GEOMETRIES)
geometry_world_model = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_GEOMETRIES)
geometry_model_world = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_GEOMETRIES)
geometry_normal_matrix = ti.Matrix.field(3, 3, dtype=ti.f32, shape=MAX_GEOMETRIES)
geometry_extent_kind = ti.field(dtype=ti.i32, shape=MAX_GEOMETRIES)
geometry_extent = ti.Vector.field(2, dtype=ti.f32, shape=MAX_GEOMETRIES)
geometry_triangle_start = ti.field(dtype=ti.i32, shape=MAX_GEOMETRIES)
geometry_triangle_count = ti.field(dtype=ti.i32, shape=MAX_GEOMETRIES)
num_geometries = ti.field(dtype=ti.i32, shape=())

# Triangle corners, one row per triangle
triangle_points = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_TRIANGLES, 3))
triangle_normals = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_TRIANGLES, 3))
triangle_uvs = ti.Vector.field(2, dtype=ti.f32, shape=(MAX_TRIANGLES, 3))
num_triangles = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all geometry, materials and textures."""
    num_geometries[None] = 0
    num_triangles[None] = 0
    clear_materials()


def geometry_count() -> int:
    """Get the number of uploaded geometries."""
    return int(num_geometries[None])


@ti.kernel
def _write_triangles(
    start: ti.i32,
    points: ti.types.ndarray(dtype=ti.f32, ndim=3),
    normals: ti.types.ndarray(dtype=ti.f32, ndim=3),
    uvs: ti.types.ndarray(dtype=ti.f32, ndim=3),
):
    for i, k in ti.ndrange(points.shape[0], 3):
        triangle_points[start + i, k] = vec3(points[i, k, 0], points[i, k, 1], points[i, k, 2])
        triangle_normals[start + i, k] = vec3(normals[i, k, 0], normals[i, k, 1], normals[i, k, 2])
        triangle_uvs[start + i, k] = vec2(uvs[i, k, 0], uvs[i, k, 1])


def add_geometry(geometry: Geometry) -> int:
    """Upload one geometry and its material.

    Returns:
        The geometry index.

    Raises:
        RuntimeError: If geometry or triangle capacity is exceeded.
    """
    idx = num_geometries[None]
    if idx >= MAX_GEOMETRIES:
        raise RuntimeError(f"Maximum number of geometries ({MAX_GEOMETRIES}) exceeded")

    geometry_types[idx] = int(geometry.kind)
    geometry_material[idx] = add_material(geometry.material)
    geometry_world_model[idx] = geometry.transform.world_model.tolist()
    geometry_model_world[idx] = geometry.transform.model_world.tolist()
    geometry_normal_matrix[idx] = geometry.transform.normal_matrix.tolist()
    geometry_extent_kind[idx] = 0
    geometry_extent[idx] = [0.0, 0.0]
    geometry_triangle_start[idx] = 0
    geometry_triangle_count[idx] = 0

    if isinstance(geometry, Plane):
        geometry_extent_kind[idx] = int(geometry.extent.kind)
        geometry_extent[idx] = list(geometry.extent.params())
    elif isinstance(geometry, TriangleMesh):
        start = num_triangles[None]
        count = geometry.triangle_count
        if start + count > MAX_TRIANGLES:
            raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
        if count > 0:
            points, normals, uvs = geometry.corner_arrays()
            _write_triangles(start, points, normals, uvs)
        num_triangles[None] = start + count
        geometry_triangle_start[idx] = start
        geometry_triangle_count[idx] = count

    num_geometries[None] = idx + 1
    return idx


def load_scene(scene: Scene) -> None:
    """Replace the uploaded scene with ``scene``."""
    clear_scene()
    for geometry in scene:
        add_geometry(geometry)
    logger.debug(
        "Loaded scene %s: %d geometries, %d triangles",
        scene.key,
        geometry_count(),
        int(num_triangles[None]),
    )


# =============================================================================
# Kernel-side queries
# =============================================================================


@ti.func
def _intersect_mesh_local(ray: Ray, start: ti.i32, count: ti.i32) -> LocalHit:
    """Nearest triangle of one mesh, brute force."""
    best = local_miss()
    best_t = tm.inf
    for k in range(count):
        tri = start + k
        found, t, b0, b1, b2 = intersect_triangle(
            ray, triangle_points[tri, 0], triangle_points[tri, 1], triangle_points[tri, 2]
        )
        if found == 1 and t < best_t:
            best_t = t
            best = LocalHit(
                found=1,
                t=t,
                point=b0 * triangle_points[tri, 0] + b1 * triangle_points[tri, 1] + b2 * triangle_points[tri, 2],
                normal=interpolate_normal(
                    triangle_normals[tri, 0], triangle_normals[tri, 1], triangle_normals[tri, 2], b0, b1, b2
                ),
                uv=b0 * triangle_uvs[tri, 0] + b1 * triangle_uvs[tri, 1] + b2 * triangle_uvs[tri, 2],
            )
    return best


@ti.func
def intersect_geometry(g: ti.i32, ray: Ray) -> Hit:
    """Intersect a world-space ray with geometry ``g``.

    The ray is moved into object space with world_model, tested there, and
    the hit point mapped back with model_world. The world distance is the
    projection of the world displacement onto the unit world direction.
    Normals use the inverse transpose so they stay perpendicular under
    non-uniform scale.

    Returns:
        The world-space hit, or the miss sentinel.
    """
    local_ray = transform_ray(ray, geometry_world_model[g])
    kind = geometry_types[g]

    local = local_miss()
    if kind == int(GeometryType.SPHERE):
        local = intersect_sphere_local(local_ray)
    elif kind == int(GeometryType.PLANE):
        local = intersect_plane_local(local_ray, geometry_extent_kind[g], geometry_extent[g])
    elif kind == int(GeometryType.CYLINDER):
        local = intersect_cylinder_local(local_ray)
    else:
        local = _intersect_mesh_local(local_ray, geometry_triangle_start[g], geometry_triangle_count[g])

    result = miss()
    if local.found == 1:
        p = transform_point(geometry_model_world[g], local.point)
        t = tm.dot(p - ray.origin, ray.direction)
        if t > 0.0:
            n = tm.normalize(geometry_normal_matrix[g] @ local.normal)
            result = Hit(t=t, point=p, normal=n, incoming=-ray.direction, uv=local.uv, geometry=g)
    return result


@ti.func
def intersect_scene(ray: Ray) -> Hit:
    """Nearest hit with t > 0 over every geometry, or the miss sentinel."""
    best = miss()
    for g in range(num_geometries[None]):
        hit = intersect_geometry(g, ray)
        if hit.t > 0.0 and hit.t < best.t:
            best = hit
    return best


@ti.func
def surface(hit: Hit) -> Interaction:
    """Sample the material of the hit geometry into an Interaction."""
    si = Interaction(
        normal=hit.normal,
        incoming=hit.incoming,
        outgoing=vec3(0.0),
        pdf=0.0,
        transfer=vec3(0.0),
        emission=vec3(0.0),
        uv=hit.uv,
    )
    return sample_material(geometry_material[hit.geometry], si)


# =============================================================================
# Python-callable query
# =============================================================================


@dataclass(frozen=True)
class HitInfo:
    """Python copy of a Hit.

    Attributes:
        t: Distance along the ray; math.inf for a miss.
        point: World-space hit point.
        normal: World-space unit normal.
        incoming: Direction back toward the ray origin.
        uv: Texture coordinates.
        geometry: Scene index of the hit geometry, -1 for a miss.
    """

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    incoming: tuple[float, float, float]
    uv: tuple[float, float]
    geometry: int

    @property
    def hit(self) -> bool:
        return self.geometry >= 0 and math.isfinite(self.t)


_query_hit = Hit.field(shape=())


@ti.kernel
def _query(origin: vec3, direction: vec3):
    # Single-iteration outer loop keeps the scene scan serial
    for _ in range(1):
        _query_hit[None] = intersect_scene(Ray(origin=origin, direction=tm.normalize(direction)))


def intersect_ray(origin: Sequence[float], direction: Sequence[float]) -> HitInfo:
    """Find the nearest hit of a ray against the uploaded scene.

    Args:
        origin: Ray origin in world space.
        direction: Ray direction; normalised before tracing.

    Returns:
        The hit, with ``hit`` False and ``t`` infinite for a miss.

    Raises:
        ValueError: If the direction is the zero vector.
    """
    d = np.asarray(direction, dtype=np.float64)
    if not np.any(d):
        raise ValueError("Ray direction must be non-zero")
    _query(vec3(*map(float, origin)), vec3(*map(float, d)))

    def triple(f) -> tuple[float, float, float]:
        v = f[None]
        return (float(v[0]), float(v[1]), float(v[2]))

    uv = _query_hit.uv[None]
    return HitInfo(
        t=float(_query_hit.t[None]),
        point=triple(_query_hit.point),
        normal=triple(_query_hit.normal),
        incoming=triple(_query_hit.incoming),
        uv=(float(uv[0]), float(uv[1])),
        geometry=int(_query_hit.geometry[None]),
    )
