"""Camera module: pinhole camera and film.

Components:
    pinhole: PinholeCamera configuration and its view frame
    film: Film, the float RGB image a render writes into
    viewport: Kernel-side camera ray generation (fields; not imported here)

Pixel coordinates count x to the right and y downward from the top-left
corner; row 0 is the top of the image.
"""

from .film import Film, iter_pixels
from .pinhole import CameraFrame, PinholeCamera

__all__ = [
    "PinholeCamera",
    "CameraFrame",
    "Film",
    "iter_pixels",
]
