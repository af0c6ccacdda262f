"""Kernel-side material and texture tables.

Materials and textures are uploaded into fixed-capacity Taichi fields
(structure of arrays) and sampled by tag dispatch. Mix materials store the
ids of their children in a shared index list; image textures share one texel
pool, each texture owning a contiguous slice.

This module creates Taichi fields at import time and must be imported after
ti.init().

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.materials.registry import add_material, clear_materials
    >>> clear_materials()
    >>> red = add_material(Diffuse((0.8, 0.1, 0.1)))
    >>> # sample_material(red, si) inside a kernel
"""

import logging

import numpy as np
import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import Interaction, vec2, vec3
from src.lumen.materials.base import Material, MaterialType
from src.lumen.materials.dielectric import Dielectric, sample_dielectric
from src.lumen.materials.diffuse import Diffuse, sample_diffuse
from src.lumen.materials.mirror import Mirror, sample_mirror
from src.lumen.materials.mix import MAX_MIX_DEPTH, Mix
from src.lumen.materials.texture import (
    ConstantTexture,
    GridTexture,
    ImageTexture,
    Interpolation,
    Texture,
    TextureType,
    grid_color,
)

logger = logging.getLogger(__name__)

# Capacities
MAX_MATERIALS = 256
MAX_MIX_CHILDREN = 1024
MAX_TEXTURES = 64
MAX_TEXELS = 1 << 21

# Material storage
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_albedo = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_emission = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_eta = ti.Vector.field(2, dtype=ti.f32, shape=MAX_MATERIALS)  # (external, internal)
material_texture = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_child_start = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_child_count = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
mix_children = ti.field(dtype=ti.i32, shape=MAX_MIX_CHILDREN)
num_materials = ti.field(dtype=ti.i32, shape=())
num_mix_children = ti.field(dtype=ti.i32, shape=())

# Texture storage
texture_types = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_color = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
texture_grid = ti.Vector.field(2, dtype=ti.f32, shape=MAX_TEXTURES)  # (lines, line_width)
texture_offset = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_width = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_height = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_filter = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texels = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXELS)
num_textures = ti.field(dtype=ti.i32, shape=())
num_texels = ti.field(dtype=ti.i32, shape=())

# Python-side identity maps so shared descriptions upload once. Each entry
# holds the object itself so its id cannot be reused until clear_materials().
_material_ids: dict[int, tuple[Material, int]] = {}
_texture_ids: dict[int, tuple[Texture, int]] = {}


def clear_materials() -> None:
    """Forget every uploaded material and texture."""
    num_materials[None] = 0
    num_mix_children[None] = 0
    num_textures[None] = 0
    num_texels[None] = 0
    _material_ids.clear()
    _texture_ids.clear()


def material_count() -> int:
    """Get the number of uploaded materials."""
    return int(num_materials[None])


def texture_count() -> int:
    """Get the number of uploaded textures."""
    return int(num_textures[None])


@ti.kernel
def _write_texels(offset: ti.i32, pixels: ti.types.ndarray(dtype=ti.f32, ndim=2)):
    for i in range(pixels.shape[0]):
        texels[offset + i] = vec3(pixels[i, 0], pixels[i, 1], pixels[i, 2])


def add_texture(texture: Texture) -> int:
    """Upload a texture, reusing the slot of one already uploaded.

    Returns:
        The texture id.

    Raises:
        RuntimeError: If texture or texel capacity is exceeded.
    """
    key = id(texture)
    if key in _texture_ids:
        return _texture_ids[key][1]

    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")

    texture_types[idx] = int(texture.kind)
    texture_color[idx] = [1.0, 1.0, 1.0]
    texture_grid[idx] = [0.0, 0.0]
    texture_offset[idx] = 0
    texture_width[idx] = 0
    texture_height[idx] = 0
    texture_filter[idx] = 0

    if isinstance(texture, ConstantTexture):
        texture_color[idx] = list(texture.color)
    elif isinstance(texture, GridTexture):
        texture_color[idx] = list(texture.line_color)
        texture_grid[idx] = [float(texture.lines), texture.line_width]
    elif isinstance(texture, ImageTexture):
        offset = num_texels[None]
        count = texture.width * texture.height
        if offset + count > MAX_TEXELS:
            raise RuntimeError(f"Image textures exceed the texel pool ({MAX_TEXELS} texels)")
        flat = np.ascontiguousarray(texture.pixels.reshape(-1, 3), dtype=np.float32)
        _write_texels(offset, flat)
        num_texels[None] = offset + count
        texture_offset[idx] = offset
        texture_width[idx] = texture.width
        texture_height[idx] = texture.height
        texture_filter[idx] = int(texture.interpolation)
    else:
        raise TypeError(f"Unsupported texture type: {type(texture).__name__}")

    num_textures[None] = idx + 1
    _texture_ids[key] = (texture, idx)
    return idx


def add_material(material: Material) -> int:
    """Upload a material (and, for a Mix, its sub-materials).

    Returns:
        The material id.

    Raises:
        RuntimeError: If material or mix capacity is exceeded.
    """
    key = id(material)
    if key in _material_ids:
        return _material_ids[key][1]

    children: list[int] = []
    if isinstance(material, Mix):
        children = [add_material(child) for child in material.materials]

    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_types[idx] = int(material.kind)
    material_albedo[idx] = [1.0, 1.0, 1.0]
    material_emission[idx] = [0.0, 0.0, 0.0]
    material_eta[idx] = [1.0, 1.0]
    material_texture[idx] = -1
    material_child_start[idx] = 0
    material_child_count[idx] = 0

    if isinstance(material, Mirror):
        material_albedo[idx] = list(material.albedo)
    elif isinstance(material, Dielectric):
        material_albedo[idx] = list(material.albedo)
        material_eta[idx] = [material.eta_external, material.eta_internal]
    elif isinstance(material, Diffuse):
        material_albedo[idx] = list(material.albedo)
        material_emission[idx] = list(material.emission)
        material_texture[idx] = add_texture(material.texture)
    elif isinstance(material, Mix):
        start = num_mix_children[None]
        if start + len(children) > MAX_MIX_CHILDREN:
            raise RuntimeError(f"Maximum number of mix entries ({MAX_MIX_CHILDREN}) exceeded")
        for offset, child in enumerate(children):
            mix_children[start + offset] = child
        num_mix_children[None] = start + len(children)
        material_child_start[idx] = start
        material_child_count[idx] = len(children)
    else:
        raise TypeError(f"Unsupported material type: {type(material).__name__}")

    num_materials[None] = idx + 1
    _material_ids[key] = (material, idx)
    return idx


# =============================================================================
# Texture lookup
# =============================================================================


@ti.func
def _texel(tex_id: ti.i32, x: ti.i32, y: ti.i32) -> vec3:
    w = texture_width[tex_id]
    h = texture_height[tex_id]
    cx = ti.min(ti.max(x, 0), w - 1)
    cy = ti.min(ti.max(y, 0), h - 1)
    return texels[texture_offset[tex_id] + cy * w + cx]


@ti.func
def _sample_image(tex_id: ti.i32, uv: vec2) -> vec3:
    """Look up an image at (u * w, (1 - v) * h), clamping at the edges."""
    px = uv.x * ti.cast(texture_width[tex_id], ti.f32)
    py = (1.0 - uv.y) * ti.cast(texture_height[tex_id], ti.f32)

    result = vec3(0.0)
    if texture_filter[tex_id] == int(Interpolation.NEAREST):
        result = _texel(tex_id, ti.cast(ti.floor(px), ti.i32), ti.cast(ti.floor(py), ti.i32))
    else:
        fx = px - 0.5
        fy = py - 0.5
        x0 = ti.cast(ti.floor(fx), ti.i32)
        y0 = ti.cast(ti.floor(fy), ti.i32)
        tx = fx - ti.floor(fx)
        ty = fy - ti.floor(fy)
        top = tm.mix(_texel(tex_id, x0, y0), _texel(tex_id, x0 + 1, y0), tx)
        bottom = tm.mix(_texel(tex_id, x0, y0 + 1), _texel(tex_id, x0 + 1, y0 + 1), tx)
        result = tm.mix(top, bottom, ty)
    return result


@ti.func
def sample_texture(tex_id: ti.i32, uv: vec2) -> vec3:
    """Colour of texture ``tex_id`` at ``uv``; white for id -1."""
    result = vec3(1.0)
    if tex_id >= 0:
        kind = texture_types[tex_id]
        if kind == int(TextureType.CONSTANT):
            result = texture_color[tex_id]
        elif kind == int(TextureType.GRID):
            grid = texture_grid[tex_id]
            result = grid_color(uv, grid.x, grid.y, texture_color[tex_id])
        else:
            result = _sample_image(tex_id, uv)
    return result


# =============================================================================
# Material dispatch
# =============================================================================


@ti.func
def resolve_mix(material_id: ti.i32) -> ti.i32:
    """Follow uniformly chosen Mix children until a leaf material."""
    mid = material_id
    for _ in range(MAX_MIX_DEPTH):
        if material_types[mid] == int(MaterialType.MIX):
            count = material_child_count[mid]
            pick = ti.min(ti.cast(ti.random(ti.f32) * ti.cast(count, ti.f32), ti.i32), count - 1)
            mid = mix_children[material_child_start[mid] + pick]
    return mid


@ti.func
def sample_material(material_id: ti.i32, si: Interaction) -> Interaction:
    """Sample material ``material_id`` at an interaction.

    Args:
        material_id: Uploaded material id.
        si: Interaction with normal, incoming and uv set.

    Returns:
        The interaction with outgoing, pdf, transfer and emission filled in.
    """
    mid = resolve_mix(material_id)
    kind = material_types[mid]
    albedo = material_albedo[mid]

    result = si
    if kind == int(MaterialType.MIRROR):
        result = sample_mirror(albedo, si)
    elif kind == int(MaterialType.DIELECTRIC):
        eta = material_eta[mid]
        result = sample_dielectric(albedo, eta.x, eta.y, si)
    else:
        color = albedo * sample_texture(material_texture[mid], si.uv)
        result = sample_diffuse(color, material_emission[mid], si)
    return result
