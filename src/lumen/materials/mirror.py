"""Ideal mirror material.

A delta reflector: the outgoing direction is the reflection of the incoming
one and the transfer divides out the cosine the integrator applies, so the
reflected light is scaled by the albedo alone.
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import Interaction, face_toward, reflect, vec3
from src.lumen.materials.base import Color, Material, MaterialType, as_color


@dataclass(frozen=True)
class Mirror(Material):
    """Perfect specular reflector.

    Attributes:
        albedo: Reflectance per channel in [0, 1].
    """

    albedo: Color = (1.0, 1.0, 1.0)

    kind = MaterialType.MIRROR

    def __post_init__(self) -> None:
        object.__setattr__(self, "albedo", as_color(self.albedo, "albedo"))


@ti.func
def sample_mirror(albedo: vec3, si: Interaction) -> Interaction:
    """Reflect about the normal flipped toward the incoming direction."""
    n = face_toward(si.normal, si.incoming)
    outgoing = reflect(si.incoming, n)
    cos_out = tm.dot(outgoing, n)

    transfer = vec3(0.0)
    if cos_out > 0.0:
        transfer = albedo / cos_out

    return Interaction(
        normal=si.normal,
        incoming=si.incoming,
        outgoing=outgoing,
        pdf=1.0,
        transfer=transfer,
        emission=vec3(0.0),
        uv=si.uv,
    )
