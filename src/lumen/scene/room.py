"""Demo scene: two balls in a room with an emissive ceiling.

Walls, floor and the ceiling light are squares of side WALL_SIZE, large
enough to read as unbounded from inside the room:

- ceiling (white emitter) at y = 10
- floor (light grey) at y = -3
- left wall (blue) at z = 10, right wall (red) at z = -10
- back wall (green) at x = -10
- a mirror ball at (0, 0, 1) and a diffuse ball at (-1, -2, -2)

The camera sits at (3, 1, 0) looking at the origin with a 90 degree
vertical field of view.

Example:
    >>> from src.lumen.scene.room import RoomParams, create_room_scene
    >>> scene, camera = create_room_scene(RoomParams(width=200, height=150))
    >>> film = render(scene, camera, samples_per_pixel=16)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from src.lumen.camera.pinhole import PinholeCamera
from src.lumen.geometry.plane import Plane, RectExtent
from src.lumen.geometry.sphere import Sphere
from src.lumen.geometry.transform import Transform
from src.lumen.materials.diffuse import Diffuse
from src.lumen.materials.mirror import Mirror
from src.lumen.scene.manager import Scene

# Side length of the wall, floor and ceiling squares
WALL_SIZE = 1000.0


@dataclass(frozen=True)
class RoomParams:
    """Parameters for the room scene.

    Attributes:
        width: Film width in pixels.
        height: Film height in pixels.
        light_intensity: Emission of the white ceiling.
        ball_color: Albedo of both balls.
    """

    width: int = 400
    height: int = 300
    light_intensity: float = 2.0
    ball_color: tuple[float, float, float] = (0.95, 0.95, 0.95)


def _wall(axis: int, offset: float, material) -> Plane:
    """Square perpendicular to world ``axis`` at ``offset`` along it.

    The placement is an exact axis permutation plus a translation, so world
    points on the wall map to object-space z = 0 without rounding.
    """
    forward = np.zeros((4, 4))
    forward[(axis + 1) % 3, 0] = 1.0
    forward[(axis + 2) % 3, 1] = 1.0
    forward[axis, 2] = 1.0
    forward[axis, 3] = offset
    forward[3, 3] = 1.0
    return Plane(material, Transform.from_matrix(forward), RectExtent(WALL_SIZE, WALL_SIZE))


def create_room_scene(params: RoomParams | None = None) -> tuple[Scene, PinholeCamera]:
    """Build the room scene and its camera."""
    params = params or RoomParams()

    scene = Scene(
        [
            Sphere(Mirror(params.ball_color), Transform.translation(0.0, 0.0, 1.0)),
            Sphere(Diffuse(params.ball_color), Transform.translation(-1.0, -2.0, -2.0)),
            _wall(1, 10.0, Diffuse.emitter(params.light_intensity)),
            _wall(1, -3.0, Diffuse((0.7, 0.7, 0.7))),
            _wall(2, 10.0, Diffuse((0.1, 0.1, 0.95))),
            _wall(2, -10.0, Diffuse((0.95, 0.1, 0.1))),
            _wall(0, -10.0, Diffuse((0.1, 0.95, 0.1))),
        ]
    )
    camera = PinholeCamera(
        lookfrom=(3.0, 1.0, 0.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        width=params.width,
        height=params.height,
    )
    return scene, camera
