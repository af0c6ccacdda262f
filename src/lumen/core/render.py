"""Sequential render entry point.

Renders a whole image in the calling process: the Taichi runtime is
initialised if needed, the scene and camera are uploaded, and rows are
traced top to bottom into a Film. parallel.regions.render_parallel() is the
multi-process counterpart and uses the same row renderer.

Example:
    >>> from src.lumen.core.render import render
    >>> film = render(scene, camera, samples_per_pixel=32)
    >>> save_png(film, "image.png")
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from src.lumen.camera.film import Film
from src.lumen.camera.pinhole import PinholeCamera
from src.lumen.core.runtime import init_taichi
from src.lumen.core.settings import RenderSettings
from src.lumen.scene.manager import Scene

logger = logging.getLogger(__name__)

# Called with (fraction complete, estimated seconds remaining)
ProgressCallback = Callable[[float, float], None]


def estimate_remaining(fraction: float, elapsed: float) -> float:
    """Linear time-remaining estimate; infinite until any progress is made."""
    if fraction <= 0.0:
        return float("inf")
    return elapsed * (1.0 - fraction) / fraction


def prepare(scene: Scene, camera: PinholeCamera, settings: RenderSettings) -> None:
    """Upload a scene, camera and settings into this process's runtime.

    Field modules are imported here so that importing this module does not
    require an initialised runtime.
    """
    from src.lumen.camera.viewport import setup_camera
    from src.lumen.core.integrator import configure
    from src.lumen.scene.intersection import load_scene

    load_scene(scene)
    setup_camera(camera)
    configure(settings)


def render(
    scene: Scene,
    camera: PinholeCamera,
    samples_per_pixel: int,
    *,
    settings: RenderSettings | None = None,
    callback: ProgressCallback | None = None,
) -> Film:
    """Render a scene in this process.

    Args:
        scene: Scene to render.
        camera: Camera; its width and height size the film.
        samples_per_pixel: Paths traced per pixel.
        settings: Integrator settings; defaults to RenderSettings().
        callback: Progress callback invoked after every row.

    Returns:
        The fully populated film.
    """
    init_taichi()
    from src.lumen.core.integrator import render_rows

    settings = settings or RenderSettings()
    prepare(scene, camera, settings)

    film = Film(camera.width, camera.height)
    start = time.monotonic()

    def on_row(done: int) -> None:
        if callback is not None:
            fraction = done / camera.height
            callback(fraction, estimate_remaining(fraction, time.monotonic() - start))

    logger.info(
        "Rendering %dx%d at %d spp in-process", camera.width, camera.height, samples_per_pixel
    )
    film.write_rows(0, render_rows(0, camera.height, samples_per_pixel, on_row))
    logger.info("Render finished in %.2fs", time.monotonic() - start)
    return film
