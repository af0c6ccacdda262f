"""Textures: pure lookups from texture coordinates to colour.

Three kinds exist. A constant colour, a procedural grid of lines, and an
RGB image sampled with nearest or bilinear filtering. Image pixels are held
as float arrays so the description stays picklable; materials.registry
copies them into a shared texel pool.

Example:
    >>> from src.lumen.materials.texture import GridTexture, ImageTexture
    >>> grid = GridTexture(lines=10, line_width=0.01)
    >>> wood = ImageTexture.from_file("wood.png", interpolation="nearest")
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Literal

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.lumen.core.ray import vec2, vec3
from src.lumen.materials.base import Color, as_color


class TextureType(IntEnum):
    """Closed set of textures, used as the kernel dispatch tag."""

    CONSTANT = 0
    GRID = 1
    IMAGE = 2


class Interpolation(IntEnum):
    """Image filtering modes."""

    NEAREST = 0
    LINEAR = 1


class Texture:
    """Base class for all textures."""

    kind: TextureType


@dataclass(frozen=True)
class ConstantTexture(Texture):
    """The same colour everywhere; white by default."""

    color: Color = (1.0, 1.0, 1.0)

    kind = TextureType.CONSTANT

    def __post_init__(self) -> None:
        object.__setattr__(self, "color", as_color(self.color, "color"))


@dataclass(frozen=True)
class GridTexture(Texture):
    """Grid of lines over a white background.

    Attributes:
        lines: Number of grid cells per unit of u and v.
        line_width: Line width as a proportion of the whole texture.
        line_color: Colour of the lines; black by default.
    """

    lines: int = 10
    line_width: float = 0.01
    line_color: Color = (0.0, 0.0, 0.0)

    kind = TextureType.GRID

    def __post_init__(self) -> None:
        if self.lines < 1:
            raise ValueError(f"Grid needs at least one line, got {self.lines}")
        if not 0.0 <= self.line_width <= 1.0:
            raise ValueError(f"line_width must be in [0, 1], got {self.line_width}")
        object.__setattr__(self, "line_color", as_color(self.line_color, "line_color"))


@dataclass(frozen=True, eq=False)
class ImageTexture(Texture):
    """Bitmap texture.

    Attributes:
        pixels: (H, W, 3) float32 colours, row 0 at the top of the image.
        interpolation: Nearest or bilinear lookup.
    """

    pixels: npt.NDArray[np.float32] = field(repr=False)
    interpolation: Interpolation = Interpolation.LINEAR

    kind = TextureType.IMAGE

    def __post_init__(self) -> None:
        pixels = np.asarray(self.pixels, dtype=np.float32)
        if pixels.ndim != 3 or pixels.shape[2] != 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError(f"Image pixels must have shape (H, W, 3), got {pixels.shape}")
        object.__setattr__(self, "pixels", pixels)
        object.__setattr__(self, "interpolation", Interpolation(self.interpolation))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        interpolation: Literal["nearest", "linear"] = "linear",
    ) -> "ImageTexture":
        """Decode an image file with Pillow into a texture."""
        from PIL import Image as PILImage

        with PILImage.open(path) as image:
            rgb = np.asarray(image.convert("RGB"), dtype=np.float32) / 255.0
        return cls(pixels=rgb, interpolation=Interpolation[interpolation.upper()])


@ti.func
def _on_line(coordinate: ti.f32, lines: ti.f32, delta: ti.f32) -> ti.i32:
    x = coordinate * lines
    nearest = ti.min(ti.max(ti.floor(x + 0.5), 0.0), lines)
    return ti.abs(x - nearest) <= delta


@ti.func
def grid_color(uv: vec2, lines: ti.f32, line_width: ti.f32, line_color: vec3) -> vec3:
    """Colour of the grid texture at uv.

    A point is on a line when either coordinate is within half a line width
    of one of the lines 0, 1/lines, ..., 1.
    """
    delta = 0.5 * line_width * lines
    result = vec3(1.0)
    if _on_line(uv.x, lines, delta) or _on_line(uv.y, lines, delta):
        result = line_color
    return result


def as_texture(value: Texture | Sequence[float] | None) -> Texture:
    """Accept a texture, a colour (wrapped as constant) or None (white)."""
    if value is None:
        return ConstantTexture()
    if isinstance(value, Texture):
        return value
    return ConstantTexture(as_color(value, "texture color"))
