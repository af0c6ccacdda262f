"""Kernel-side camera state and primary ray generation.

setup_camera() uploads a PinholeCamera's viewport into fields; the jittered
ray function then maps a pixel plus a uniform offset inside it onto the
viewport plane. Pixel rows count downward from the top of the image.

This module creates Taichi fields at import time and must be imported after
ti.init().
"""

import taichi as ti
import taichi.math as tm

from src.lumen.camera.pinhole import PinholeCamera
from src.lumen.core.ray import Ray

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_upper_left = ti.Vector.field(3, dtype=ti.f32, shape=())
_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_film_size = ti.Vector.field(2, dtype=ti.i32, shape=())


def setup_camera(camera: PinholeCamera) -> None:
    """Upload the camera's viewport for ray generation in kernels."""
    frame = camera.frame()
    _camera_origin[None] = frame.origin.tolist()
    _upper_left[None] = frame.upper_left.tolist()
    _horizontal[None] = frame.horizontal.tolist()
    _vertical[None] = frame.vertical.tolist()
    _film_size[None] = [camera.width, camera.height]


@ti.func
def get_ray(s: ti.f32, t: ti.f32) -> Ray:
    """Ray through normalised image coordinates.

    Args:
        s: 0 at the left edge, 1 at the right edge.
        t: 0 at the top edge, 1 at the bottom edge.
    """
    origin = _camera_origin[None]
    target = _upper_left[None] + s * _horizontal[None] + t * _vertical[None]
    return Ray(origin=origin, direction=tm.normalize(target - origin))


@ti.func
def get_ray_jittered(x: ti.i32, y: ti.i32) -> Ray:
    """Ray through a uniformly random point of pixel (x, y)."""
    size = _film_size[None]
    s = (ti.cast(x, ti.f32) + ti.random(ti.f32)) / ti.cast(size.x, ti.f32)
    t = (ti.cast(y, ti.f32) + ti.random(ti.f32)) / ti.cast(size.y, ti.f32)
    return get_ray(s, t)


def film_size() -> tuple[int, int]:
    """Width and height of the uploaded camera's film."""
    size = _film_size[None]
    return int(size[0]), int(size[1])
