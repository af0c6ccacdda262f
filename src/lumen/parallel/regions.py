"""Region-parallel rendering.

The image is split into horizontal bands of whole rows. Each band becomes a
RegionJob dealt to a worker process; workers stream RegionProgress after
every row and a RegionResult when the band is done. The coordinator writes
each result into the film exactly once, reports overall progress, and
returns the film after every region has arrived.

Each worker initialises its own single-threaded Taichi runtime with an
independent seed, so regions never share random state.

Example:
    >>> from src.lumen.parallel.regions import render_parallel
    >>> film = render_parallel(scene, camera, samples_per_pixel=32, num_workers=4)
"""

from __future__ import annotations

import logging
import time

from src.lumen.camera.film import Film
from src.lumen.camera.pinhole import PinholeCamera
from src.lumen.core.render import ProgressCallback, estimate_remaining
from src.lumen.core.settings import RenderSettings
from src.lumen.parallel.messages import Region, RegionJob, RegionProgress, RegionResult
from src.lumen.parallel.workers import SHUTDOWN, WorkerError, WorkerPool, default_worker_count
from src.lumen.scene.manager import Scene

logger = logging.getLogger(__name__)

# Regions per worker, so that a slow band does not leave the others idle
REGIONS_PER_WORKER = 2


class RenderError(RuntimeError):
    """A parallel render could not produce a complete image."""


def partition_rows(height: int, count: int) -> list[Region]:
    """Split ``height`` rows into at most ``count`` contiguous regions.

    Regions are equal in size except the last, which also takes the
    remainder rows. ``count`` is clamped to ``height`` so that no region is
    empty.

    Raises:
        ValueError: If height or count is not positive.
    """
    if height < 1:
        raise ValueError(f"height must be positive, got {height}")
    if count < 1:
        raise ValueError(f"count must be positive, got {count}")

    count = min(count, height)
    size = height // count
    regions = [Region(id=i, row_start=i * size, row_count=size) for i in range(count)]
    remainder = height - size * count
    if remainder:
        last = regions[-1]
        regions[-1] = Region(id=last.id, row_start=last.row_start, row_count=last.row_count + remainder)
    return regions


def render_worker(inbox, outbox) -> None:
    """Worker loop: render RegionJobs from ``inbox`` until the sentinel.

    The scene is uploaded once and reused for as long as consecutive jobs
    carry the same scene key, camera and settings.
    """
    from src.lumen.core.runtime import init_taichi

    seed = init_taichi(num_threads=1)
    from src.lumen.core.integrator import render_rows
    from src.lumen.core.render import prepare

    worker_logger = logging.getLogger(__name__)
    worker_logger.debug("Render worker ready (seed %d)", seed)

    loaded_key = None
    while True:
        job = inbox.get()
        if job is SHUTDOWN:
            break
        key = (job.scene_key, job.camera, job.settings)
        if key != loaded_key:
            prepare(job.scene, job.camera, job.settings)
            loaded_key = key

        region = job.region
        start = time.monotonic()

        def on_row(done: int, region=region, start=start) -> None:
            fraction = done / region.row_count
            outbox.put(
                RegionProgress(
                    region_id=region.id,
                    fraction=fraction,
                    eta=estimate_remaining(fraction, time.monotonic() - start),
                )
            )

        colors = render_rows(region.row_start, region.row_count, job.samples_per_pixel, on_row)
        outbox.put(RegionResult(region_id=region.id, row_start=region.row_start, colors=colors))


def render_parallel(
    scene: Scene,
    camera: PinholeCamera,
    samples_per_pixel: int,
    *,
    num_workers: int | None = None,
    regions_per_worker: int = REGIONS_PER_WORKER,
    settings: RenderSettings | None = None,
    callback: ProgressCallback | None = None,
) -> Film:
    """Render a scene across worker processes.

    Args:
        scene: Scene to render; copied to every worker.
        camera: Camera; its width and height size the film.
        samples_per_pixel: Paths traced per pixel.
        num_workers: Worker processes; defaults to one per core but one.
        regions_per_worker: Regions created per worker.
        settings: Integrator settings; defaults to RenderSettings().
        callback: Called with (fraction, seconds remaining) whenever a
            region reports progress.

    Returns:
        The fully populated film.

    Raises:
        ValueError: On a non-positive sample or region count.
        RenderError: If a worker fails or a region is lost or duplicated.
    """
    if samples_per_pixel < 1:
        raise ValueError(f"samples_per_pixel must be positive, got {samples_per_pixel}")
    if regions_per_worker < 1:
        raise ValueError(f"regions_per_worker must be positive, got {regions_per_worker}")

    num_workers = num_workers or default_worker_count()
    settings = settings or RenderSettings()

    film = Film(camera.width, camera.height)
    regions = partition_rows(camera.height, num_workers * regions_per_worker)
    progress = {region.id: 0.0 for region in regions}
    rows = {region.id: region.row_count for region in regions}
    applied: set[int] = set()

    start = time.monotonic()

    def report() -> None:
        if callback is None:
            return
        fraction = sum(progress[i] * rows[i] for i in progress) / camera.height
        callback(fraction, estimate_remaining(fraction, time.monotonic() - start))

    logger.info(
        "Rendering %dx%d at %d spp in %d regions on %d workers",
        camera.width,
        camera.height,
        samples_per_pixel,
        len(regions),
        num_workers,
    )

    pool = WorkerPool(num_workers, render_worker)
    try:
        pool.start()
        pool.add_all(
            RegionJob(
                region=region,
                scene=scene,
                camera=camera,
                samples_per_pixel=samples_per_pixel,
                settings=settings,
            )
            for region in regions
        )
        for message in pool.results():
            if isinstance(message, RegionProgress):
                progress[message.region_id] = message.fraction
                report()
            elif isinstance(message, RegionResult):
                if message.region_id in applied:
                    raise RenderError(f"Region {message.region_id} delivered twice")
                film.write_rows(message.row_start, message.colors)
                applied.add(message.region_id)
                progress[message.region_id] = 1.0
                logger.debug("Region %d done (%d/%d)", message.region_id, len(applied), len(regions))
                report()
                pool.done()
    except WorkerError as exc:
        raise RenderError(f"Parallel render failed: {exc}") from exc
    finally:
        pool.stop()

    if len(applied) != len(regions):
        raise RenderError(f"Only {len(applied)} of {len(regions)} regions were rendered")

    logger.info("Render finished in %.2fs", time.monotonic() - start)
    return film
