"""PNG export for rendered films.

Example:
    >>> from src.lumen.preview.export import save_png
    >>> save_png(film, "image.png", tone_map="reinhard", gamma=2.2)
"""

from __future__ import annotations

import logging
import os

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.lumen.camera.film import Film
from src.lumen.preview.display import ToneMapMethod, image_to_uint8

logger = logging.getLogger(__name__)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str | os.PathLike[str],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> None:
    """Save a linear (H, W, 3) image as an 8-bit RGB PNG."""
    pixels = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(pixels).save(filepath, format="PNG")
    logger.info("Wrote %dx%d image to %s", pixels.shape[1], pixels.shape[0], filepath)


def save_png(
    film: Film,
    filepath: str | os.PathLike[str],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> None:
    """Save a film as an 8-bit RGB PNG.

    Args:
        film: Rendered film.
        filepath: Output path.
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma encoding value; 1.0 writes clamped linear values.
        exposure: Exposure for exposure tone mapping.
    """
    save_png_from_array(film.data, filepath, tone_map=tone_map, gamma=gamma, exposure=exposure)
