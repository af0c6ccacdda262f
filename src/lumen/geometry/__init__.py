"""Geometry module: transforms and primitive shapes.

Components:
    transform: Object<->world matrix pairs and their normal matrix
    sphere: Unit sphere at the origin
    plane: z=0 plane bounded by a rectangle or an annulus
    cylinder: Unit-radius cylinder along z, clipped to |z| <= 0.5
    mesh: Indexed triangle mesh with optional normals and UVs

Every shape is intersected in its own model space by a Taichi function of
the form:
    hit = intersect_<shape>_local(model_ray)
scene.intersection maps rays and hits between model and world space.
"""

from .base import Geometry, GeometryType
from .cylinder import Cylinder
from .mesh import TriangleMesh
from .plane import AnnulusExtent, ExtentType, Plane, RectExtent
from .sphere import Sphere
from .transform import Transform

__all__ = [
    "Geometry",
    "GeometryType",
    "Transform",
    "Sphere",
    "Plane",
    "RectExtent",
    "AnnulusExtent",
    "ExtentType",
    "Cylinder",
    "TriangleMesh",
]
