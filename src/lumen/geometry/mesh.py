"""Triangle mesh primitive.

Meshes arrive as in-memory arrays (vertex positions, optional normals and
texture coordinates, and index triples per face). Reading them from files is
left to the caller. Intersection is a brute-force loop over every triangle
using the watertight permute/shear test; there is no acceleration structure,
so cost grows linearly with the triangle count.

Example:
    >>> from src.lumen.geometry.mesh import TriangleMesh
    >>> box = TriangleMesh.cube(Diffuse((0.7, 0.7, 0.7)))
    >>> box.triangle_count
    12
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import Ray, vec3
from src.lumen.geometry.base import Geometry, GeometryType
from src.lumen.geometry.transform import Transform


def _as_indices(faces: npt.ArrayLike | None, count: int, name: str) -> npt.NDArray[np.int32] | None:
    if faces is None:
        return None
    array = np.asarray(faces, dtype=np.int32)
    if array.ndim != 2 or array.shape[1] != 3:
        raise ValueError(f"{name} must have shape (F, 3), got {array.shape}")
    if array.size and (array.min() < 0 or array.max() >= count):
        raise ValueError(f"{name} reference vertices outside [0, {count})")
    return array


@dataclass(eq=False, kw_only=True)
class TriangleMesh(Geometry):
    """Indexed triangle mesh.

    Attributes:
        positions: (V, 3) vertex positions in object space.
        faces: (F, 3) indices into positions.
        normals: Optional (N, 3) vertex normals. Without them each triangle
            uses its flat geometric normal.
        normal_faces: Optional (F, 3) indices into normals; defaults to faces.
        uvs: Optional (T, 2) texture coordinates; zero when absent.
        uv_faces: Optional (F, 3) indices into uvs; defaults to faces.
    """

    positions: npt.NDArray[np.float32]
    faces: npt.NDArray[np.int32]
    normals: npt.NDArray[np.float32] | None = None
    normal_faces: npt.NDArray[np.int32] | None = None
    uvs: npt.NDArray[np.float32] | None = None
    uv_faces: npt.NDArray[np.int32] | None = None

    kind = GeometryType.TRIANGLE_MESH

    def __post_init__(self) -> None:
        self.positions = np.asarray(self.positions, dtype=np.float32)
        if self.positions.ndim != 2 or self.positions.shape[1] != 3:
            raise ValueError(f"positions must have shape (V, 3), got {self.positions.shape}")
        self.faces = _as_indices(self.faces, len(self.positions), "faces")

        if self.normals is not None:
            self.normals = np.asarray(self.normals, dtype=np.float32)
            if self.normals.ndim != 2 or self.normals.shape[1] != 3:
                raise ValueError(f"normals must have shape (N, 3), got {self.normals.shape}")
            if self.normal_faces is None:
                self.normal_faces = self.faces
            self.normal_faces = _as_indices(self.normal_faces, len(self.normals), "normal_faces")

        if self.uvs is not None:
            self.uvs = np.asarray(self.uvs, dtype=np.float32)
            if self.uvs.ndim != 2 or self.uvs.shape[1] != 2:
                raise ValueError(f"uvs must have shape (T, 2), got {self.uvs.shape}")
            if self.uv_faces is None:
                self.uv_faces = self.faces
            self.uv_faces = _as_indices(self.uv_faces, len(self.uvs), "uv_faces")

        for name in ("normal_faces", "uv_faces"):
            extra = getattr(self, name)
            if extra is not None and extra.shape != self.faces.shape:
                raise ValueError(f"{name} must match faces shape {self.faces.shape}")

    @property
    def triangle_count(self) -> int:
        return len(self.faces)

    def corner_arrays(
        self,
    ) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32], npt.NDArray[np.float32]]:
        """Expand the indexed mesh into per-corner arrays.

        Returns:
            Tuple (points, normals, uvs) of shapes (F, 3, 3), (F, 3, 3) and
            (F, 3, 2), ready to be copied into triangle fields.
        """
        points = self.positions[self.faces]

        if self.normals is not None:
            normals = self.normals[self.normal_faces]
        else:
            flat = np.cross(points[:, 1] - points[:, 0], points[:, 2] - points[:, 0])
            lengths = np.linalg.norm(flat, axis=1, keepdims=True)
            flat = flat / np.where(lengths > 0.0, lengths, 1.0)
            normals = np.repeat(flat[:, None, :], 3, axis=1)

        if self.uvs is not None:
            uvs = self.uvs[self.uv_faces]
        else:
            uvs = np.zeros((len(self.faces), 3, 2), dtype=np.float32)

        return (
            points.astype(np.float32),
            normals.astype(np.float32),
            uvs.astype(np.float32),
        )

    @classmethod
    def cube(cls, material, transform: Transform | None = None) -> "TriangleMesh":
        """Unit cube centred on the origin with per-face normals and uvs."""
        positions = np.array(
            [[x - 0.5, y - 0.5, z - 0.5] for x in (0, 1) for y in (0, 1) for z in (0, 1)],
            dtype=np.float32,
        )
        normals = np.array(
            [[-1, 0, 0], [1, 0, 0], [0, -1, 0], [0, 1, 0], [0, 0, -1], [0, 0, 1]],
            dtype=np.float32,
        )
        uvs = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=np.float32)
        quads = [
            (0, 1, 3, 2),  # -x
            (4, 6, 7, 5),  # +x
            (0, 4, 5, 1),  # -y
            (2, 3, 7, 6),  # +y
            (0, 2, 6, 4),  # -z
            (1, 5, 7, 3),  # +z
        ]
        faces, normal_faces, uv_faces = [], [], []
        for side, (a, b, c, d) in enumerate(quads):
            faces += [(a, b, c), (a, c, d)]
            normal_faces += [(side, side, side)] * 2
            uv_faces += [(0, 1, 2), (0, 2, 3)]
        return cls(
            material=material,
            transform=transform or Transform.identity(),
            positions=positions,
            faces=np.array(faces),
            normals=normals,
            normal_faces=np.array(normal_faces),
            uvs=uvs,
            uv_faces=np.array(uv_faces),
        )


@ti.func
def _component(v: vec3, k: ti.i32) -> ti.f32:
    return ti.select(k == 0, v.x, ti.select(k == 1, v.y, v.z))


@ti.func
def _permute(v: vec3, kx: ti.i32, ky: ti.i32, kz: ti.i32) -> vec3:
    return vec3(_component(v, kx), _component(v, ky), _component(v, kz))


@ti.func
def intersect_triangle(ray: Ray, p0: vec3, p1: vec3, p2: vec3):
    """Watertight ray/triangle test in a permuted, sheared ray frame.

    Vertices are translated to the ray origin, permuted so the ray's
    dominant axis becomes z, and sheared so the ray points along +z. The
    signs of the three edge functions then decide coverage without
    degenerate determinants.

    Args:
        ray: Ray in the mesh's object space.
        p0: First vertex.
        p1: Second vertex.
        p2: Third vertex.

    Returns:
        Tuple (found, t, b0, b1, b2): the object-space distance and the
        barycentric weights of p0, p1 and p2.
    """
    found = 0
    t = 0.0
    b0 = 0.0
    b1 = 0.0
    b2 = 0.0

    d_abs = ti.abs(ray.direction)
    kz = 0
    if d_abs.y > d_abs.x and d_abs.y >= d_abs.z:
        kz = 1
    elif d_abs.z > d_abs.x and d_abs.z > d_abs.y:
        kz = 2
    kx = (kz + 1) % 3
    ky = (kx + 1) % 3

    d = _permute(ray.direction, kx, ky, kz)
    a = _permute(p0 - ray.origin, kx, ky, kz)
    b = _permute(p1 - ray.origin, kx, ky, kz)
    c = _permute(p2 - ray.origin, kx, ky, kz)

    sx = -d.x / d.z
    sy = -d.y / d.z
    sz = 1.0 / d.z
    a.x += sx * a.z
    a.y += sy * a.z
    b.x += sx * b.z
    b.y += sy * b.z
    c.x += sx * c.z
    c.y += sy * c.z

    e0 = b.x * c.y - b.y * c.x
    e1 = c.x * a.y - c.y * a.x
    e2 = a.x * b.y - a.y * b.x

    mixed = (e0 < 0.0 or e1 < 0.0 or e2 < 0.0) and (e0 > 0.0 or e1 > 0.0 or e2 > 0.0)
    det = e0 + e1 + e2
    if not mixed and det != 0.0:
        t_scaled = (e0 * a.z + e1 * b.z + e2 * c.z) * sz
        behind = (det < 0.0 and t_scaled >= 0.0) or (det > 0.0 and t_scaled <= 0.0)
        if not behind:
            inv_det = 1.0 / det
            found = 1
            t = t_scaled * inv_det
            b0 = e0 * inv_det
            b1 = e1 * inv_det
            b2 = e2 * inv_det
    return found, t, b0, b1, b2


@ti.func
def interpolate_normal(n0: vec3, n1: vec3, n2: vec3, b0: ti.f32, b1: ti.f32, b2: ti.f32) -> vec3:
    """Barycentric blend of corner normals, renormalised."""
    return tm.normalize(b0 * n0 + b1 * n1 + b2 * n2)
