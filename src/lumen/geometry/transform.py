"""Immutable model/world transform pairs.

A Transform stores the 4x4 model->world matrix together with its inverse and
the normal matrix (inverse transpose of the linear part). All three are
computed once in float64 when the transform is built and are read-only
afterwards; composing transforms multiplies the stored pairs instead of
inverting again.

Example:
    >>> from src.lumen.geometry.transform import Transform
    >>> t = Transform.compose(translation=(0.0, 0.0, 1.0), scale=2.0)
    >>> (t.model_world @ t.world_model).round(12)  # identity
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

Matrix = npt.NDArray[np.float64]


def _frozen(m: npt.ArrayLike) -> Matrix:
    array = np.array(m, dtype=np.float64)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class Transform:
    """A model->world transform and its exact inverse.

    Attributes:
        model_world: 4x4 matrix mapping object space to world space.
        world_model: 4x4 inverse of model_world.
        normal_matrix: 3x3 inverse transpose of model_world's linear part,
            which maps object-space normals to world space.
    """

    model_world: Matrix
    world_model: Matrix
    normal_matrix: Matrix

    @classmethod
    def from_matrix(cls, model_world: npt.ArrayLike) -> Transform:
        """Build a transform from its forward matrix, inverting it once.

        Raises:
            ValueError: If the matrix is not 4x4 or is singular.
        """
        forward = np.array(model_world, dtype=np.float64)
        if forward.shape != (4, 4):
            raise ValueError(f"Transform matrix must be 4x4, got {forward.shape}")
        if abs(np.linalg.det(forward[:3, :3])) < 1e-12:
            raise ValueError("Transform matrix is singular")
        inverse = np.linalg.inv(forward)
        return cls._from_pair(forward, inverse)

    @classmethod
    def _from_pair(cls, forward: Matrix, inverse: Matrix) -> Transform:
        return cls(
            model_world=_frozen(forward),
            world_model=_frozen(inverse),
            normal_matrix=_frozen(inverse[:3, :3].T),
        )

    @classmethod
    def identity(cls) -> Transform:
        return cls._from_pair(np.eye(4), np.eye(4))

    @classmethod
    def translation(cls, x: float, y: float, z: float) -> Transform:
        forward = np.eye(4)
        forward[:3, 3] = (x, y, z)
        inverse = np.eye(4)
        inverse[:3, 3] = (-x, -y, -z)
        return cls._from_pair(forward, inverse)

    @classmethod
    def scaling(cls, sx: float, sy: float | None = None, sz: float | None = None) -> Transform:
        """Axis-aligned scale; a single argument scales uniformly.

        Raises:
            ValueError: If any factor is zero.
        """
        sy = sx if sy is None else sy
        sz = sx if sz is None else sz
        if sx == 0.0 or sy == 0.0 or sz == 0.0:
            raise ValueError("Scale factors must be non-zero")
        forward = np.diag([sx, sy, sz, 1.0])
        inverse = np.diag([1.0 / sx, 1.0 / sy, 1.0 / sz, 1.0])
        return cls._from_pair(forward, inverse)

    @classmethod
    def rotation(cls, axis: Sequence[float], angle: float) -> Transform:
        """Rotation by ``angle`` radians about ``axis`` (Rodrigues).

        Raises:
            ValueError: If the axis has zero length.
        """
        a = np.asarray(axis, dtype=np.float64)
        norm = np.linalg.norm(a)
        if norm == 0.0:
            raise ValueError("Rotation axis must be non-zero")
        x, y, z = a / norm
        c = math.cos(angle)
        s = math.sin(angle)
        t = 1.0 - c
        forward = np.eye(4)
        forward[:3, :3] = [
            [t * x * x + c, t * x * y - s * z, t * x * z + s * y],
            [t * x * y + s * z, t * y * y + c, t * y * z - s * x],
            [t * x * z - s * y, t * y * z + s * x, t * z * z + c],
        ]
        inverse = np.eye(4)
        inverse[:3, :3] = forward[:3, :3].T
        return cls._from_pair(forward, inverse)

    @classmethod
    def compose(
        cls,
        translation: Sequence[float] = (0.0, 0.0, 0.0),
        rotation: Transform | None = None,
        scale: float | Sequence[float] = 1.0,
    ) -> Transform:
        """Build translate * rotate * scale, the usual object placement order."""
        if isinstance(scale, (int, float)):
            scaled = cls.scaling(float(scale))
        else:
            scaled = cls.scaling(*scale)
        result = cls.translation(*translation)
        if rotation is not None:
            result = result @ rotation
        return result @ scaled

    def __matmul__(self, other: Transform) -> Transform:
        """Chain transforms: (self @ other) applies ``other`` first."""
        return Transform._from_pair(
            self.model_world @ other.model_world,
            other.world_model @ self.world_model,
        )
