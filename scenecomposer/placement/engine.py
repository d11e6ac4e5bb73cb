"""Randomized collision-avoiding placement of dynamic objects.

The engine scatters dynamic objects over the spawn rectangle, one at a
time in registry order. Each object keeps its height and its saved
orientation, gets a random turn about the vertical axis, and is accepted
when its bounding box neither overlaps an object already placed in the
same pass nor leaves the rectangle.

Static objects are never moved. Their boxes are not checked against
either, so a dynamic object may land on top of a static one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from ..core.config import PlacementParams
from ..core.geometry import AABB, compose_matrix, oriented_extent, rotation_from_quaternion, world_aabb, yaw_rotation
from ..scene.scene import Scene, SceneObject, SpawnBounds
from ..scene.transform import Pose

logger = logging.getLogger(__name__)

HINT_EMPTY = "Add assets to get started"
HINT_NO_STATIC = "Mark at least one asset as static (gravity disabled)"
HINT_NO_DYNAMIC = "Add assets with gravity enabled to randomize"


@dataclass
class AssetPlacement:
    """Outcome of placing one object.

    Attributes:
        object_id: ID of the placed object
        pose: Final pose (accepted, or the last attempt when none was)
        box: World bounding box at the final pose
        attempts: Number of candidate poses tried
        accepted: Whether a candidate passed the collision/containment test
        fits: Whether the footprint fits inside the rectangle at all
    """

    object_id: str
    pose: Pose
    box: AABB
    attempts: int
    accepted: bool
    fits: bool


@dataclass
class PlacementReport:
    """Result of one randomization pass."""

    before: dict[str, Pose]
    placements: list[AssetPlacement] = field(default_factory=list)

    @property
    def after(self) -> dict[str, Pose]:
        return {p.object_id: p.pose for p in self.placements}

    @property
    def failed(self) -> list[AssetPlacement]:
        """Placements that kept a best-effort pose."""
        return [p for p in self.placements if not p.accepted]

    @property
    def total_attempts(self) -> int:
        return sum(p.attempts for p in self.placements)


def partition(scene: Scene) -> tuple[list[SceneObject], list[SceneObject]]:
    """Split the registry into (dynamic, static) objects.

    Locked and export-excluded objects belong to neither group.
    """
    return scene.dynamic_objects(), scene.static_objects()


def randomization_hint(scene: Scene) -> str:
    """User-facing hint naming the missing category, or '' when ready."""
    dynamic, static = partition(scene)
    if not dynamic and not static:
        return HINT_EMPTY
    if not static:
        return HINT_NO_STATIC
    if not dynamic:
        return HINT_NO_DYNAMIC
    return ""


def capture_poses(objects: Sequence[SceneObject]) -> dict[str, Pose]:
    """Snapshot position and orientation (not scale) of each object."""
    return {obj.id: obj.pose() for obj in objects}


def apply_poses(scene: Scene, poses: dict[str, Pose]) -> None:
    """Apply poses to the objects they name. Unknown IDs are skipped."""
    for object_id, pose in poses.items():
        obj = scene.get_object(object_id)
        if obj is not None:
            obj.apply_pose(pose)


def footprint_radius(obj: SceneObject, quaternion: Sequence[float]) -> float:
    """Half the larger horizontal extent of an object under an orientation.

    The larger of the two plane axes is used because a turn about the
    vertical axis is still to come.
    """
    size = oriented_extent(obj.parts, quaternion, obj.transform.scale)
    return float(max(size[0], size[1])) / 2


class PlacementEngine:
    """Assigns non-colliding random poses to dynamic objects."""

    def __init__(
        self,
        params: PlacementParams | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.params = params or PlacementParams()
        self.rng = rng if rng is not None else self.params.make_rng()

    def can_randomize(self, scene: Scene) -> bool:
        return randomization_hint(scene) == ""

    def randomize(
        self,
        scene: Scene,
        bounds: SpawnBounds | None = None,
    ) -> PlacementReport | None:
        """Run one placement pass over the scene's dynamic objects.

        Args:
            scene: Registry to read and update
            bounds: Spawn rectangle (defaults to the scene's own)

        Returns:
            PlacementReport, or None when there is nothing to place
        """
        bounds = bounds or scene.spawn_bounds
        dynamic = scene.dynamic_objects()
        if not dynamic:
            return None

        report = PlacementReport(before=capture_poses(dynamic))
        placed_boxes: list[AABB] = []

        for obj in dynamic:
            placement = self._place(obj, report.before[obj.id], bounds, placed_boxes)
            obj.apply_pose(placement.pose)
            placed_boxes.append(placement.box)
            report.placements.append(placement)

        if report.failed:
            logger.warning(
                f"{len(report.failed)} of {len(report.placements)} object(s) "
                f"kept a best-effort pose after {self.params.max_attempts} attempts"
            )
        logger.info(
            f"Randomized {len(report.placements)} object(s) "
            f"in {report.total_attempts} attempt(s)"
        )
        return report

    def _place(
        self,
        obj: SceneObject,
        saved: Pose,
        bounds: SpawnBounds,
        placed_boxes: Sequence[AABB],
    ) -> AssetPlacement:
        radius = footprint_radius(obj, saved.quaternion)
        min_x, max_x, min_y, max_y = bounds.shrunk(radius)
        fits = min_x < max_x and min_y < max_y
        center_x, center_y = bounds.center
        height = saved.position[2]
        saved_rotation = rotation_from_quaternion(saved.quaternion)

        pose = saved
        box = obj.world_aabb()
        attempts = 0

        for attempts in range(1, self.params.max_attempts + 1):
            if fits:
                x = float(self.rng.uniform(min_x, max_x))
                y = float(self.rng.uniform(min_y, max_y))
            else:
                x, y = center_x, center_y

            # Yaw pre-multiplies the saved orientation
            turn = yaw_rotation(float(self.rng.uniform(0.0, 2 * np.pi)))
            quaternion = tuple(float(v) for v in (turn * saved_rotation).as_quat())

            pose = Pose(position=(x, y, height), quaternion=quaternion)
            box = world_aabb(
                obj.parts,
                compose_matrix(pose.position, pose.quaternion, obj.transform.scale),
            )

            collides = any(box.intersects(other) for other in placed_boxes)
            if collides:
                continue
            if bounds.contains_box(box) or not fits:
                logger.debug(f"Placed '{obj.name}' ({obj.id}) after {attempts} attempt(s)")
                return AssetPlacement(obj.id, pose, box, attempts, accepted=True, fits=fits)

        logger.debug(f"No free slot for '{obj.name}' ({obj.id}), keeping last attempt")
        return AssetPlacement(obj.id, pose, box, attempts, accepted=False, fits=fits)
