"""Preview module: tone mapping and image export.

Example:
    >>> from src.lumen.preview import save_png
    >>> save_png(film, "image.png", tone_map="reinhard", gamma=2.2)
"""

from src.lumen.preview.display import (
    ToneMapMethod,
    apply_gamma,
    image_to_uint8,
    process_image_for_display,
    tone_map_exposure,
    tone_map_reinhard,
)
from src.lumen.preview.export import save_png, save_png_from_array

__all__ = [
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "image_to_uint8",
    "ToneMapMethod",
    # Export
    "save_png",
    "save_png_from_array",
]
