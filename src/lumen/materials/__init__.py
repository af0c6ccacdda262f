"""Materials module: BSDF descriptions and textures.

Components:
    mirror: Perfect specular reflection
    dielectric: Fresnel-weighted reflection or refraction
    diffuse: Cosine-weighted diffuse reflection, optionally emissive
    mix: Uniform random choice between child materials
    texture: Constant, grid and image textures
    registry: Field upload and kernel-side dispatch (fields; not imported here)

Each material samples an Interaction: an outgoing direction together with
the pdf, transfer and emission used by the integrator.
"""

from .base import Material, MaterialType
from .dielectric import Dielectric
from .diffuse import Diffuse
from .mirror import Mirror
from .mix import MAX_MIX_DEPTH, Mix
from .texture import ConstantTexture, GridTexture, ImageTexture, Interpolation, Texture, TextureType

__all__ = [
    "Material",
    "MaterialType",
    "Mirror",
    "Dielectric",
    "Diffuse",
    "Mix",
    "MAX_MIX_DEPTH",
    # Textures
    "Texture",
    "TextureType",
    "ConstantTexture",
    "GridTexture",
    "ImageTexture",
    "Interpolation",
]
