"""Visual proxy for the spawn rectangle.

The proxy is a flat rectangle lying on the placement plane that the gizmo
can be attached to. Moving or scaling it re-derives the spawn bounds.

The mapping is a straight identity between the X-Y placement plane and
the proxy's X-Y plane (Z-up everywhere), so no axis is negated in either
direction:

    bounds -> proxy:  center = ((min_x+max_x)/2, (min_y+max_y)/2, 0)
                      base size = (max_x-min_x, max_y-min_y), scale = 1
    proxy -> bounds:  size = base size * scale
                      min/max = center -/+ size/2
"""

from __future__ import annotations

import numpy as np
import trimesh

from ..core.geometry import AABB, world_aabb
from ..scene.scene import SpawnBounds
from ..scene.transform import Transform3D


class BoundsProxy:
    """Flat rectangle standing in for SpawnBounds in the viewport."""

    def __init__(self, width: float, depth: float, transform: Transform3D | None = None):
        self.width = float(width)
        self.depth = float(depth)
        self.transform = transform or Transform3D()
        self.name = "Spawn Bounds"
        # Unit-size plane so scale maps directly onto width/depth
        self._mesh = _plane_mesh(1.0, 1.0)

    @classmethod
    def from_bounds(cls, bounds: SpawnBounds) -> BoundsProxy:
        width, depth = bounds.size
        cx, cy = bounds.center
        return cls(width=width, depth=depth, transform=Transform3D(position=(cx, cy, 0.0)))

    def reset(self, bounds: SpawnBounds) -> None:
        """Re-fit the proxy to bounds in place, keeping any attached gizmo."""
        self.width, self.depth = bounds.size
        cx, cy = bounds.center
        self.transform = Transform3D(position=(cx, cy, 0.0))

    @property
    def scaled_size(self) -> tuple[float, float]:
        """Current (width, depth) after the gizmo's scale is applied."""
        sx, sy, _ = self.transform.scale
        return (self.width * sx, self.depth * sy)

    def to_bounds(self) -> SpawnBounds:
        """Recover spawn bounds from the proxy's center and scaled size.

        Rotation of the proxy is ignored: the spawn rectangle is always
        axis-aligned.
        """
        cx, cy, _ = self.transform.position
        width, depth = self.scaled_size
        return SpawnBounds(
            min_x=cx - width / 2,
            max_x=cx + width / 2,
            min_y=cy - depth / 2,
            max_y=cy + depth / 2,
        )

    @property
    def parts(self) -> list[trimesh.Trimesh]:
        """Renderable geometry: the rectangle sized to width x depth."""
        mesh = self._mesh.copy()
        mesh.apply_scale([self.width, self.depth, 1.0])
        return [mesh]

    def world_aabb(self) -> AABB:
        return world_aabb(self.parts, self.transform.to_matrix())

    def __repr__(self) -> str:
        return f"BoundsProxy({self.to_bounds()!r})"


def _plane_mesh(width: float, depth: float) -> trimesh.Trimesh:
    """Two-triangle rectangle on the X-Y plane facing +Z."""
    hw, hd = width / 2, depth / 2
    vertices = np.array([
        [-hw, -hd, 0.0],
        [hw, -hd, 0.0],
        [hw, hd, 0.0],
        [-hw, hd, 0.0],
    ])
    faces = np.array([[0, 1, 2], [0, 2, 3]])
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
