"""Path tracing integrator.

Each sample builds a path of at most ``max_depth`` interactions starting at
a jittered camera ray:

1. intersect the scene; a miss ends the path
2. sample the hit's material into an Interaction and record it
3. a non-zero emission ends the path right after recording
4. otherwise continue from ``point + outgoing * ray_epsilon`` along
   ``outgoing``

The recorded interactions are then folded from the last to the first,
starting from the ambient radiance:

    light = emission + transfer * light * |cos(outgoing, normal)|

The absolute cosine keeps refracted segments, whose direction lies on the
far side of the normal, from contributing negative light. A path with no
interactions returns the ambient radiance.

Paths are recorded per pixel slot in fields, so a row kernel can trace one
path per column in parallel.

This module creates Taichi fields at import time and must be imported after
ti.init().

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.core.integrator import configure, render_rows
    >>> from src.lumen.camera.viewport import setup_camera
    >>> from src.lumen.scene.intersection import load_scene
    >>> load_scene(scene)
    >>> setup_camera(camera)
    >>> configure(RenderSettings())
    >>> rows = render_rows(0, camera.height, samples_per_pixel=16)
"""

from collections.abc import Callable, Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.lumen.camera.viewport import film_size, get_ray_jittered
from src.lumen.core.ray import Ray, vec3
from src.lumen.core.settings import MAX_PATH_LENGTH, RenderSettings
from src.lumen.scene.intersection import intersect_scene, surface

# Widest image row a single kernel launch can render
MAX_ROW_WIDTH = 4096

# Called after each finished row with the number of rows done so far
RowCallback = Callable[[int], None]

# Integrator settings
_ambient = ti.Vector.field(3, dtype=ti.f32, shape=())
_max_depth = ti.field(dtype=ti.i32, shape=())
_ray_epsilon = ti.field(dtype=ti.f32, shape=())

# Recorded path per pixel slot
_path_emission = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_ROW_WIDTH, MAX_PATH_LENGTH))
_path_transfer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_ROW_WIDTH, MAX_PATH_LENGTH))
_path_cosine = ti.field(dtype=ti.f32, shape=(MAX_ROW_WIDTH, MAX_PATH_LENGTH))
_path_length = ti.field(dtype=ti.i32, shape=MAX_ROW_WIDTH)

# Output of one row launch
_row_color = ti.Vector.field(3, dtype=ti.f32, shape=MAX_ROW_WIDTH)


def configure(settings: RenderSettings) -> None:
    """Upload integrator settings."""
    _ambient[None] = list(settings.ambient)
    _max_depth[None] = settings.max_depth
    _ray_epsilon[None] = settings.ray_epsilon


configure(RenderSettings())


# =============================================================================
# Path construction and light accumulation
# =============================================================================


@ti.func
def _is_emitting(emission: vec3) -> ti.i32:
    return emission.x != 0.0 or emission.y != 0.0 or emission.z != 0.0


@ti.func
def build_path(ray: Ray, slot: ti.i32) -> ti.i32:
    """Trace and record one path into ``slot``.

    Returns:
        The number of recorded interactions.
    """
    length = 0
    active = 1
    current = ray
    for _ in range(_max_depth[None]):
        if active == 1:
            hit = intersect_scene(current)
            if hit.geometry < 0:
                active = 0
            else:
                si = surface(hit)
                _path_emission[slot, length] = si.emission
                _path_transfer[slot, length] = si.transfer
                _path_cosine[slot, length] = ti.abs(tm.dot(si.outgoing, si.normal))
                length += 1
                if _is_emitting(si.emission):
                    active = 0
                else:
                    current = Ray(origin=hit.point + si.outgoing * _ray_epsilon[None], direction=si.outgoing)
    _path_length[slot] = length
    return length


@ti.func
def fold_path(slot: ti.i32, length: ti.i32) -> vec3:
    """Accumulate light over a recorded path, last interaction first."""
    light = _ambient[None]
    for k in range(length):
        i = length - 1 - k
        light = _path_emission[slot, i] + _path_transfer[slot, i] * light * _path_cosine[slot, i]
    return light


@ti.func
def trace_path(ray: Ray, slot: ti.i32) -> vec3:
    """Radiance estimate for one camera ray."""
    length = build_path(ray, slot)
    return fold_path(slot, length)


@ti.func
def _finite(color: vec3) -> vec3:
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


# =============================================================================
# Kernels
# =============================================================================


@ti.kernel
def _render_row(y: ti.i32, width: ti.i32, samples: ti.i32):
    for x in range(width):
        total = vec3(0.0)
        for _ in range(samples):
            total += _finite(trace_path(get_ray_jittered(x, y), x))
        _row_color[x] = total / ti.cast(samples, ti.f32)


@ti.kernel
def _trace_single(origin: vec3, direction: vec3):
    # Single-iteration outer loop keeps path construction serial
    for _ in range(1):
        _row_color[0] = trace_path(Ray(origin=origin, direction=tm.normalize(direction)), 0)


# =============================================================================
# Python API
# =============================================================================


def trace_ray(origin: Sequence[float], direction: Sequence[float]) -> tuple[float, float, float]:
    """Radiance along one ray against the uploaded scene.

    Returns:
        RGB radiance estimate from a single path.
    """
    _trace_single(vec3(*map(float, origin)), vec3(*map(float, direction)))
    color = _row_color[0]
    return (float(color[0]), float(color[1]), float(color[2]))


def last_path_length(slot: int = 0) -> int:
    """Number of interactions recorded by the most recent path in ``slot``."""
    return int(_path_length[slot])


def render_rows(
    row_start: int,
    row_count: int,
    samples_per_pixel: int,
    on_row: RowCallback | None = None,
) -> npt.NDArray[np.float32]:
    """Render whole rows of the uploaded camera's film.

    Rows are rendered top to bottom, one kernel launch per row, averaging
    ``samples_per_pixel`` paths per pixel. Samples that come out NaN or
    infinite are dropped to zero.

    Args:
        row_start: First row to render (0 is the top of the image).
        row_count: Number of rows.
        samples_per_pixel: Paths per pixel.
        on_row: Called after every row with the number of rows finished.

    Returns:
        A (row_count, width, 3) float32 array.

    Raises:
        ValueError: If the rows fall outside the film, the film is wider
            than MAX_ROW_WIDTH, or samples_per_pixel is not positive.
    """
    width, height = film_size()
    if width > MAX_ROW_WIDTH:
        raise ValueError(f"Film width {width} exceeds maximum supported {MAX_ROW_WIDTH}")
    if row_start < 0 or row_count < 0 or row_start + row_count > height:
        raise ValueError(f"Rows [{row_start}, {row_start + row_count}) fall outside film height {height}")
    if samples_per_pixel < 1:
        raise ValueError(f"samples_per_pixel must be positive, got {samples_per_pixel}")

    out = np.zeros((row_count, width, 3), dtype=np.float32)
    for i in range(row_count):
        _render_row(row_start + i, width, samples_per_pixel)
        out[i] = _row_color.to_numpy()[:width]
        if on_row is not None:
            on_row(i + 1)
    return out
