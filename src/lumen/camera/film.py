"""Film: the floating-point RGB image a render accumulates into.

The buffer is a (height, width, 3) float32 array. Row 0 is the top of the
image. During a parallel render only the coordinating process writes to it,
one whole band of rows at a time.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

import numpy as np
import numpy.typing as npt


def iter_pixels(width: int, height: int) -> Iterator[tuple[int, int]]:
    """Yield every (x, y) in row-major order."""
    for y in range(height):
        for x in range(width):
            yield x, y


class Film:
    """Width x height RGB accumulator.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        data: (height, width, 3) float32 linear radiance.
    """

    def __init__(self, width: int, height: int) -> None:
        if width < 1 or height < 1:
            raise ValueError(f"Film size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.data: npt.NDArray[np.float32] = np.zeros((height, width, 3), dtype=np.float32)

    def get_at(self, x: int, y: int) -> tuple[float, float, float]:
        r, g, b = self.data[y, x]
        return (float(r), float(g), float(b))

    def set_at(self, x: int, y: int, color: Sequence[float]) -> None:
        self.data[y, x] = color

    def write_rows(self, row_start: int, colors: npt.ArrayLike) -> None:
        """Copy a band of whole rows into the film.

        Args:
            row_start: First row of the band.
            colors: Row-major colours, shaped (rows, width, 3) or flat
                (rows * width, 3).

        Raises:
            ValueError: If the band does not fit the film.
        """
        block = np.asarray(colors, dtype=np.float32).reshape(-1, self.width, 3)
        row_end = row_start + block.shape[0]
        if row_start < 0 or row_end > self.height:
            raise ValueError(f"Rows [{row_start}, {row_end}) fall outside film height {self.height}")
        self.data[row_start:row_end] = block

    def pixels(self) -> Iterator[tuple[int, int]]:
        """Every (x, y) of the film exactly once, row by row."""
        return iter_pixels(self.width, self.height)

    def develop(self, *, gamma: float = 1.0) -> npt.NDArray[np.uint8]:
        """Clamp to [0, 1] and quantise to an 8-bit image.

        Defaults to the renderer's historical linear output; pass gamma=2.2
        for sRGB-like display.
        """
        from src.lumen.preview.display import image_to_uint8

        return image_to_uint8(self.data, tone_map="none", gamma=gamma)
