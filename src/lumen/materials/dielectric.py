"""Smooth dielectric (glass, water) material.

Each sample either reflects or refracts. The branch is chosen with
probability equal to the exact Fresnel reflectance, which makes the branch
weight cancel: both branches carry ``albedo / |cos|``, and the expected
contribution splits light by F and 1 - F. Total internal reflection always
reflects.

Example:
    >>> glass = Dielectric(eta_internal=1.5)
    >>> water = Dielectric(albedo=(0.9, 0.95, 1.0), eta_internal=1.33)
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import Interaction, face_toward, fresnel_dielectric, reflect, refract, vec3
from src.lumen.materials.base import Color, Material, MaterialType, as_color

# Cosines below this are treated as grazing and carry no light
GRAZING_COSINE = 1e-6


@dataclass(frozen=True)
class Dielectric(Material):
    """Specular interface between two indices of refraction.

    Attributes:
        albedo: Tint applied on both reflection and transmission.
        eta_external: Index of refraction on the normal's side.
        eta_internal: Index of refraction inside the object.
    """

    albedo: Color = (1.0, 1.0, 1.0)
    eta_external: float = 1.0
    eta_internal: float = 1.5

    kind = MaterialType.DIELECTRIC

    def __post_init__(self) -> None:
        object.__setattr__(self, "albedo", as_color(self.albedo, "albedo"))
        if self.eta_external <= 0.0 or self.eta_internal <= 0.0:
            raise ValueError(
                f"Indices of refraction must be positive, got "
                f"{self.eta_external} and {self.eta_internal}"
            )


@ti.func
def sample_dielectric(albedo: vec3, eta_external: ti.f32, eta_internal: ti.f32, si: Interaction) -> Interaction:
    """Sample reflection or refraction at a dielectric interface.

    Args:
        albedo: Tint.
        eta_external: Outside index of refraction.
        eta_internal: Inside index of refraction.
        si: Interaction with normal and incoming set.

    Returns:
        The interaction with outgoing, pdf (F, 1 - F, or 1 under total
        internal reflection) and transfer filled in.
    """
    n = face_toward(si.normal, si.incoming)
    mirrored = reflect(si.incoming, n)
    reflectance = fresnel_dielectric(tm.dot(si.incoming, si.normal), eta_external, eta_internal)
    total_internal, refracted = refract(si.incoming, si.normal, eta_external, eta_internal)

    outgoing = mirrored
    pdf = 1.0
    if total_internal == 0:
        if ti.random(ti.f32) < reflectance:
            pdf = reflectance
        else:
            outgoing = refracted
            pdf = 1.0 - reflectance

    cos_out = ti.abs(tm.dot(outgoing, si.normal))
    transfer = vec3(0.0)
    if cos_out > GRAZING_COSINE:
        transfer = albedo / cos_out

    return Interaction(
        normal=si.normal,
        incoming=si.incoming,
        outgoing=outgoing,
        pdf=pdf,
        transfer=transfer,
        emission=vec3(0.0),
        uv=si.uv,
    )
