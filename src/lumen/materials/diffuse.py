"""Lambertian diffuse material, optionally emissive.

Outgoing directions are cosine-weighted over the hemisphere on the incoming
side, so the density is cos(theta) / pi. Emitters are diffuse materials with
non-zero emission; a path ends at the first emitter it records.

Example:
    >>> wall = Diffuse((0.7, 0.7, 0.7))
    >>> floor = Diffuse((0.8, 0.8, 0.8), texture=GridTexture(lines=8))
    >>> lamp = Diffuse.emitter((8.0, 8.0, 8.0))
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import Interaction, cosine_sample_hemisphere, face_toward, vec3
from src.lumen.materials.base import Color, Material, MaterialType, as_color
from src.lumen.materials.texture import ConstantTexture, Texture, as_texture


@dataclass(frozen=True)
class Diffuse(Material):
    """Lambertian reflector.

    Attributes:
        albedo: Base reflectance per channel in [0, 1].
        texture: Multiplied with the albedo at the hit's texture coordinates.
        emission: Emitted radiance; zero for ordinary surfaces.
    """

    albedo: Color = (1.0, 1.0, 1.0)
    texture: Texture = field(default_factory=ConstantTexture)
    emission: Color = (0.0, 0.0, 0.0)

    kind = MaterialType.DIFFUSE

    def __post_init__(self) -> None:
        object.__setattr__(self, "albedo", as_color(self.albedo, "albedo"))
        object.__setattr__(self, "texture", as_texture(self.texture))
        object.__setattr__(self, "emission", as_color(self.emission, "emission", upper=None))

    @classmethod
    def emitter(cls, emission: Sequence[float] | float) -> "Diffuse":
        """A light source emitting ``emission`` uniformly."""
        return cls(emission=as_color(emission, "emission", upper=None))

    @property
    def is_emitter(self) -> bool:
        return any(c > 0.0 for c in self.emission)


@ti.func
def sample_diffuse(color: vec3, emission: vec3, si: Interaction) -> Interaction:
    """Cosine-weighted hemisphere sample.

    Args:
        color: Albedo already multiplied by the texture lookup.
        emission: Emitted radiance.
        si: Interaction with normal and incoming set.

    Returns:
        The interaction with outgoing, pdf = cos / pi, transfer = color and
        emission filled in.
    """
    n = face_toward(si.normal, si.incoming)
    outgoing = cosine_sample_hemisphere(n)

    return Interaction(
        normal=si.normal,
        incoming=si.incoming,
        outgoing=outgoing,
        pdf=ti.max(tm.dot(outgoing, n), 0.0) / tm.pi,
        transfer=color,
        emission=emission,
        uv=si.uv,
    )
