"""Pinhole camera description.

The camera is a look-at pinhole with a vertical field of view and a film
size in pixels. Pixel (0, 0) is the top-left corner of the image; x grows to
the right and y grows downward.

This module holds no Taichi state. camera.viewport uploads a camera for
kernels, and PinholeCamera.get_ray() gives the same rays in Python.

Example:
    >>> from src.lumen.camera.pinhole import PinholeCamera
    >>> camera = PinholeCamera(
    ...     lookfrom=(3.0, 1.0, 0.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=90.0,
    ...     width=400,
    ...     height=300,
    ... )
    >>> origin, direction = camera.get_ray(200, 150)
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from src.lumen.camera.film import iter_pixels

Vector = npt.NDArray[np.float64]


@dataclass(frozen=True)
class CameraFrame:
    """Viewport geometry derived from a camera.

    Attributes:
        origin: Camera position.
        upper_left: World position of the image's top-left corner on the
            viewport plane at unit distance.
        horizontal: Vector spanning the full image width (left to right).
        vertical: Vector spanning the full image height (top to bottom).
    """

    origin: Vector
    upper_left: Vector
    horizontal: Vector
    vertical: Vector


@dataclass(frozen=True)
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        lookfrom: Camera position in world space.
        lookat: Point the camera looks at.
        vup: Approximate up direction.
        vfov: Vertical field of view in degrees.
        width: Film width in pixels.
        height: Film height in pixels.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    width: int = 400
    height: int = 300

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Film size must be positive, got {self.width}x{self.height}")
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        view = np.subtract(self.lookfrom, self.lookat)
        if not np.any(view):
            raise ValueError("lookfrom and lookat must differ")
        if not np.any(np.cross(self.vup, view)):
            raise ValueError("vup must not be parallel to the view direction")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def frame(self) -> CameraFrame:
        """Compute the orthonormal basis and viewport vectors."""
        theta = math.radians(self.vfov)
        viewport_height = 2.0 * math.tan(theta / 2.0)
        viewport_width = self.aspect_ratio * viewport_height

        lookfrom = np.array(self.lookfrom, dtype=np.float64)
        w = lookfrom - np.array(self.lookat, dtype=np.float64)
        w /= np.linalg.norm(w)
        u = np.cross(np.array(self.vup, dtype=np.float64), w)
        u /= np.linalg.norm(u)
        v = np.cross(w, u)

        horizontal = viewport_width * u
        vertical = -viewport_height * v
        upper_left = lookfrom - w - horizontal / 2.0 - vertical / 2.0
        return CameraFrame(origin=lookfrom, upper_left=upper_left, horizontal=horizontal, vertical=vertical)

    def get_ray(self, x: float, y: float, offset: tuple[float, float] = (0.5, 0.5)) -> tuple[Vector, Vector]:
        """Ray through a point of pixel (x, y).

        Args:
            x: Pixel column, 0 at the left.
            y: Pixel row, 0 at the top.
            offset: Position inside the pixel, (0.5, 0.5) being its centre.

        Returns:
            Tuple (origin, unit direction).
        """
        f = self.frame()
        s = (x + offset[0]) / self.width
        t = (y + offset[1]) / self.height
        target = f.upper_left + s * f.horizontal + t * f.vertical
        direction = target - f.origin
        return f.origin, direction / np.linalg.norm(direction)

    def pixels(self) -> Iterator[tuple[int, int]]:
        """Every (x, y) of the film exactly once, row by row."""
        return iter_pixels(self.width, self.height)
