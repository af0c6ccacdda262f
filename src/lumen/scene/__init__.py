"""Scene module: composition, upload and nearest-hit queries.

Components:
    manager: Scene, the picklable ordered list of geometry
    intersection: Field upload and scene intersection (fields; not imported here)
    room: Demo room scene and camera

Example:
    >>> from src.lumen.scene import Scene, create_room_scene
    >>> scene, camera = create_room_scene()
"""

from .manager import Scene
from .room import WALL_SIZE, RoomParams, create_room_scene

__all__ = [
    "Scene",
    "RoomParams",
    "create_room_scene",
    "WALL_SIZE",
]
