"""Envelopes exchanged between the coordinator and render workers.

Everything here is a plain picklable dataclass: jobs and results cross the
process boundary by value, so no mutable state is ever shared.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from src.lumen.camera.pinhole import PinholeCamera
from src.lumen.core.settings import RenderSettings
from src.lumen.scene.manager import Scene


@dataclass(frozen=True)
class Region:
    """A band of whole image rows, the unit of parallel work.

    Attributes:
        id: Region index, unique within one render.
        row_start: First row (0 is the top of the image).
        row_count: Number of rows.
    """

    id: int
    row_start: int
    row_count: int

    @property
    def row_end(self) -> int:
        return self.row_start + self.row_count


@dataclass(frozen=True, eq=False)
class RegionJob:
    """Everything a worker needs to render one region."""

    region: Region
    scene: Scene
    camera: PinholeCamera
    samples_per_pixel: int
    settings: RenderSettings = field(default_factory=RenderSettings)

    @property
    def scene_key(self) -> str:
        return self.scene.key


@dataclass(frozen=True, eq=False)
class RegionResult:
    """Finished colours of one region.

    Attributes:
        region_id: Region the colours belong to.
        row_start: First row of the region.
        colors: (row_count, width, 3) float32, row-major.
    """

    region_id: int
    row_start: int
    colors: npt.NDArray[np.float32] = field(repr=False)


@dataclass(frozen=True)
class RegionProgress:
    """Progress of one region, sent after every finished row.

    Attributes:
        region_id: Region being rendered.
        fraction: Share of the region's rows finished, in [0, 1].
        eta: Estimated seconds until the region is done.
    """

    region_id: int
    fraction: float
    eta: float


@dataclass(frozen=True)
class WorkerFailure:
    """An exception that ended a worker, with its formatted traceback."""

    worker: int
    error: str
