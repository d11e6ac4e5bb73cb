"""3D transformation utilities for scene objects.

Provides Transform3D (position + orientation + non-uniform scale) and
Pose (position + orientation), with conversion to 4x4 homogeneous
transformation matrices.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field, field_validator
from scipy.spatial.transform import Rotation

from ..core.geometry import (
    IDENTITY_QUATERNION,
    compose_matrix,
    euler_deg_from_quaternion,
    quaternion_from_euler_deg,
    rotation_from_quaternion,
    transform_points,
)

Vector3 = tuple[float, float, float]
Quaternion = tuple[float, float, float, float]


def _normalize_quaternion(value: Sequence[float]) -> Quaternion:
    q = np.asarray(value, dtype=np.float64)
    norm = float(np.linalg.norm(q))
    if norm < 1e-12:
        raise ValueError("Quaternion must be non-zero")
    if abs(norm - 1.0) < 1e-12:
        return tuple(float(v) for v in value)  # type: ignore[return-value]
    return tuple(float(v) for v in q / norm)  # type: ignore[return-value]


class Pose(BaseModel):
    """Position + orientation snapshot of one scene object.

    Scale is not part of a pose: randomization and saved
    conditions only move and turn objects.
    """

    position: Vector3 = Field(description="XYZ position")
    quaternion: Quaternion = Field(
        default=IDENTITY_QUATERNION,
        description="Orientation as a scalar-last quaternion (x, y, z, w)"
    )

    model_config = {"frozen": True}

    @field_validator("quaternion")
    @classmethod
    def _unit_quaternion(cls, value: Quaternion) -> Quaternion:
        return _normalize_quaternion(value)

    @property
    def rotation_deg(self) -> Vector3:
        """Orientation as XYZ Euler angles in degrees."""
        return euler_deg_from_quaternion(self.quaternion)


class Transform3D(BaseModel):
    """3D transformation: position + orientation + scale.

    Attributes:
        position: XYZ position
        quaternion: Orientation as a scalar-last quaternion (x, y, z, w)
        scale: Per-axis scale factors
    """

    position: Vector3 = Field(
        default=(0.0, 0.0, 0.0),
        description="XYZ position"
    )
    quaternion: Quaternion = Field(
        default=IDENTITY_QUATERNION,
        description="Orientation as a scalar-last quaternion"
    )
    scale: Vector3 = Field(
        default=(1.0, 1.0, 1.0),
        description="Per-axis scale factors"
    )

    model_config = {"frozen": False, "validate_assignment": True}

    @field_validator("quaternion")
    @classmethod
    def _unit_quaternion(cls, value: Quaternion) -> Quaternion:
        return _normalize_quaternion(value)

    @field_validator("scale")
    @classmethod
    def _positive_scale(cls, value: Vector3) -> Vector3:
        if any(s <= 0 for s in value):
            raise ValueError(f"Scale factors must be positive, got {value}")
        return value

    @classmethod
    def from_euler(
        cls,
        position: Sequence[float] = (0.0, 0.0, 0.0),
        rotation_deg: Sequence[float] = (0.0, 0.0, 0.0),
        scale: Sequence[float] = (1.0, 1.0, 1.0),
    ) -> Transform3D:
        """Create a transform from XYZ Euler angles in degrees.

        This is the form numeric property fields edit.
        """
        return cls(
            position=tuple(float(v) for v in position),
            quaternion=quaternion_from_euler_deg(rotation_deg),
            scale=tuple(float(v) for v in scale),
        )

    @property
    def rotation_deg(self) -> Vector3:
        """Orientation as XYZ Euler angles in degrees."""
        return euler_deg_from_quaternion(self.quaternion)

    @property
    def pose(self) -> Pose:
        return Pose(position=self.position, quaternion=self.quaternion)

    def with_pose(self, pose: Pose) -> Transform3D:
        """Return a copy with position and orientation replaced, scale kept."""
        return self.model_copy(update={"position": pose.position, "quaternion": pose.quaternion})

    def to_matrix(self) -> NDArray[np.float64]:
        """Convert to 4x4 homogeneous transformation matrix.

        The transformation order is: Scale -> Rotate -> Translate
        This means the matrix is built as: T @ R @ S
        """
        return compose_matrix(self.position, self.quaternion, self.scale)

    def apply_to_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Apply transformation to an Nx3 array of points."""
        return transform_points(self.to_matrix(), np.asarray(points, dtype=np.float64))

    def _replaced(self, **changes: Any) -> Transform3D:
        """Validated copy with some fields replaced."""
        return type(self).model_validate({**self.model_dump(), **changes})

    def translated(self, delta: Sequence[float]) -> Transform3D:
        position = tuple(float(p + d) for p, d in zip(self.position, delta))
        return self._replaced(position=position)

    def rotated(self, axis: Sequence[float], angle_deg: float) -> Transform3D:
        """Return a copy rotated about a world-space axis through the object origin."""
        axis_arr = np.asarray(axis, dtype=np.float64)
        axis_arr = axis_arr / np.linalg.norm(axis_arr)
        delta = Rotation.from_rotvec(axis_arr * np.radians(angle_deg))
        rot = delta * rotation_from_quaternion(self.quaternion)
        return self._replaced(quaternion=tuple(float(v) for v in rot.as_quat()))

    def scaled(self, factors: Sequence[float]) -> Transform3D:
        scale = tuple(float(s * f) for s, f in zip(self.scale, factors))
        return self._replaced(scale=scale)

    @classmethod
    def identity(cls) -> Transform3D:
        """Return identity transform (no transformation)."""
        return cls()

    def __repr__(self) -> str:
        rot = tuple(round(a, 2) for a in self.rotation_deg)
        return (
            f"Transform3D(pos={self.position}, "
            f"rot={rot}, scale={self.scale})"
        )
