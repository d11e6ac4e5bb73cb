"""Geometry primitives shared by picking, highlighting and placement.

Axis-aligned bounding boxes and rotation helpers. Everything here is pure:
functions take arrays and rotations and return new values, nothing is
mutated in place.

Conventions:
    - Z is the vertical axis, X-Y is the placement plane
    - Quaternions are scalar-last (x, y, z, w), matching scipy
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation

if TYPE_CHECKING:
    import trimesh

UP_AXIS = np.array([0.0, 0.0, 1.0])

IDENTITY_QUATERNION: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)


@dataclass(frozen=True)
class AABB:
    """Axis-aligned bounding box.

    Attributes:
        min: XYZ minimum corner
        max: XYZ maximum corner
    """

    min: NDArray[np.float64]
    max: NDArray[np.float64]

    @classmethod
    def from_points(cls, points: NDArray[np.float64]) -> AABB:
        """Build the tightest box around an Nx3 array of points."""
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 3 or len(points) == 0:
            raise ValueError(f"Points must be a non-empty Nx3 array, got shape {points.shape}")
        return cls(min=points.min(axis=0), max=points.max(axis=0))

    @classmethod
    def empty_at(cls, point: Sequence[float]) -> AABB:
        """Zero-size box at a point (used for objects without geometry)."""
        p = np.asarray(point, dtype=np.float64)
        return cls(min=p.copy(), max=p.copy())

    @property
    def size(self) -> NDArray[np.float64]:
        """Return box extents along X, Y and Z."""
        return self.max - self.min

    @property
    def center(self) -> NDArray[np.float64]:
        """Return center of the box."""
        return (self.min + self.max) / 2

    @property
    def corners(self) -> NDArray[np.float64]:
        """Return the 8 corners as an 8x3 array."""
        lo, hi = self.min, self.max
        return np.array([
            [lo[0], lo[1], lo[2]],
            [lo[0], lo[1], hi[2]],
            [lo[0], hi[1], lo[2]],
            [lo[0], hi[1], hi[2]],
            [hi[0], lo[1], lo[2]],
            [hi[0], lo[1], hi[2]],
            [hi[0], hi[1], lo[2]],
            [hi[0], hi[1], hi[2]],
        ])

    def intersects(self, other: AABB) -> bool:
        """Check overlap with another box. Touching faces count as overlap."""
        return bool(
            np.all(self.min <= other.max) and np.all(other.min <= self.max)
        )

    def contains_xy(
        self,
        min_x: float,
        max_x: float,
        min_y: float,
        max_y: float,
    ) -> bool:
        """Check that the box footprint lies inside a rectangle on the X-Y plane.

        Height is ignored.
        """
        return bool(
            self.min[0] >= min_x and self.max[0] <= max_x and
            self.min[1] >= min_y and self.max[1] <= max_y
        )

    def union(self, other: AABB) -> AABB:
        """Return the smallest box enclosing both boxes."""
        return AABB(
            min=np.minimum(self.min, other.min),
            max=np.maximum(self.max, other.max),
        )

    def __repr__(self) -> str:
        return f"AABB(min={self.min.round(4).tolist()}, max={self.max.round(4).tolist()})"


def rotation_from_quaternion(quaternion: Sequence[float]) -> Rotation:
    """Create a scipy Rotation from a scalar-last quaternion."""
    return Rotation.from_quat(np.asarray(quaternion, dtype=np.float64))


def quaternion_from_euler_deg(rotation_deg: Sequence[float]) -> tuple[float, float, float, float]:
    """Convert XYZ Euler angles in degrees to a scalar-last quaternion."""
    quat = Rotation.from_euler("xyz", rotation_deg, degrees=True).as_quat()
    return tuple(float(v) for v in quat)  # type: ignore[return-value]


def euler_deg_from_quaternion(quaternion: Sequence[float]) -> tuple[float, float, float]:
    """Convert a scalar-last quaternion to XYZ Euler angles in degrees."""
    angles = rotation_from_quaternion(quaternion).as_euler("xyz", degrees=True)
    return tuple(float(v) for v in angles)  # type: ignore[return-value]


def yaw_rotation(angle_rad: float) -> Rotation:
    """Rotation of `angle_rad` radians about the vertical axis."""
    return Rotation.from_rotvec(UP_AXIS * angle_rad)


def compose_matrix(
    position: Sequence[float],
    quaternion: Sequence[float],
    scale: Sequence[float],
) -> NDArray[np.float64]:
    """Build a 4x4 matrix applying scale, then rotation, then translation."""
    s = np.eye(4, dtype=np.float64)
    s[0, 0], s[1, 1], s[2, 2] = scale

    r = np.eye(4, dtype=np.float64)
    r[:3, :3] = rotation_from_quaternion(quaternion).as_matrix()

    t = np.eye(4, dtype=np.float64)
    t[:3, 3] = position

    return t @ r @ s


def transform_points(matrix: NDArray[np.float64], points: NDArray[np.float64]) -> NDArray[np.float64]:
    """Apply a 4x4 matrix to an Nx3 array of points."""
    ones = np.ones((len(points), 1), dtype=np.float64)
    homogeneous = np.hstack([points, ones])
    return (matrix @ homogeneous.T).T[:, :3]


def _stacked_vertices(meshes: Iterable[trimesh.Trimesh]) -> NDArray[np.float64]:
    parts = [np.asarray(m.vertices, dtype=np.float64) for m in meshes if len(m.vertices)]
    if not parts:
        return np.empty((0, 3), dtype=np.float64)
    return np.vstack(parts)


def world_aabb(
    meshes: Sequence[trimesh.Trimesh],
    matrix: NDArray[np.float64],
) -> AABB:
    """Bounding box of object-local meshes after applying a world matrix.

    Objects without geometry collapse to a point at the matrix origin.
    """
    vertices = _stacked_vertices(meshes)
    if len(vertices) == 0:
        return AABB.empty_at(matrix[:3, 3])
    return AABB.from_points(transform_points(matrix, vertices))


def oriented_extent(
    meshes: Sequence[trimesh.Trimesh],
    quaternion: Sequence[float],
    scale: Sequence[float] = (1.0, 1.0, 1.0),
) -> NDArray[np.float64]:
    """Axis-aligned size of geometry placed at the origin with an orientation.

    Isolates shape extent from placement position without touching the
    object the meshes belong to.
    """
    matrix = compose_matrix((0.0, 0.0, 0.0), quaternion, scale)
    return world_aabb(meshes, matrix).size
