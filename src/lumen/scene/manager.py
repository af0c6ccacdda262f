"""Scene composition.

A Scene is an ordered list of geometry. It is a plain picklable object that
can be built without a Taichi runtime, shipped to worker processes, and
uploaded into kernel fields with scene.intersection.load_scene().

Example:
    >>> from src.lumen.scene.manager import Scene
    >>> scene = Scene()
    >>> scene.add(Sphere(Diffuse((0.8, 0.2, 0.2))))
    0
    >>> scene.add(Plane(Diffuse.emitter(4.0), Transform.translation(0.0, 3.0, 0.0)))
    1
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator

from src.lumen.geometry.base import Geometry
from src.lumen.geometry.mesh import TriangleMesh


class Scene:
    """Ordered collection of geometry.

    The list is only changed through add() and extend(), which keep ``key``
    current; ``geometries`` is a read-only snapshot.
    """

    def __init__(self, geometries: Iterable[Geometry] = ()) -> None:
        self._uid = uuid.uuid4().hex
        self._version = 0
        self._geometries: list[Geometry] = []
        self.extend(geometries)

    def add(self, geometry: Geometry) -> int:
        """Append a geometry.

        Returns:
            Its index, which is the ``geometry`` value reported by hits.

        Raises:
            TypeError: If the object is not a Geometry.
        """
        if not isinstance(geometry, Geometry):
            raise TypeError(f"Expected Geometry, got {type(geometry).__name__}")
        self._geometries.append(geometry)
        self._version += 1
        return len(self._geometries) - 1

    def extend(self, geometries: Iterable[Geometry]) -> None:
        for geometry in geometries:
            self.add(geometry)

    @property
    def geometries(self) -> tuple[Geometry, ...]:
        """The geometry in insertion order."""
        return tuple(self._geometries)

    @property
    def key(self) -> str:
        """Identifier that changes whenever the scene's contents change."""
        return f"{self._uid}:{self._version}"

    @property
    def triangle_count(self) -> int:
        return sum(g.triangle_count for g in self._geometries if isinstance(g, TriangleMesh))

    def __len__(self) -> int:
        return len(self._geometries)

    def __iter__(self) -> Iterator[Geometry]:
        return iter(self._geometries)

    def __getitem__(self, index: int) -> Geometry:
        return self._geometries[index]
