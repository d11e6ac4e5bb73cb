"""Top-down layout preview of a scene."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .core.geometry import AABB, compose_matrix, world_aabb
from .scene.scene import Scene, SceneObject

if TYPE_CHECKING:
    from .scene.transform import Pose

logger = logging.getLogger(__name__)

STATIC_COLOR = "tab:gray"
DYNAMIC_COLOR = "tab:blue"
BOUNDS_COLOR = "tab:green"


class LayoutPreview:
    """Matplotlib rendering of object footprints on the placement plane.

    Static objects are drawn gray, dynamic ones blue, the spawn rectangle
    as a green outline. Locked and export-excluded objects are skipped.
    """

    def __init__(self, title: str = "Scene Layout", figsize: tuple[float, float] = (6.0, 6.0)):
        self.title = title
        self.figsize = figsize

    def render(
        self,
        scene: Scene,
        output: Path | str,
        poses: dict[str, Pose] | None = None,
    ) -> bool:
        """Render the layout to an image file.

        Args:
            scene: Scene to draw
            output: Image path (format from the extension)
            poses: Optional poses to draw dynamic objects at instead of
                their current ones (e.g. a saved condition)

        Returns:
            True if the image was written, False if matplotlib is missing
        """
        try:
            from matplotlib.figure import Figure
            from matplotlib.patches import Rectangle
        except ImportError:
            logger.warning("matplotlib not available - layout preview disabled")
            return False

        fig = Figure(figsize=self.figsize)
        ax = fig.add_subplot()

        bounds = scene.spawn_bounds
        width, depth = bounds.size
        ax.add_patch(Rectangle(
            (bounds.min_x, bounds.min_y), width, depth,
            fill=False, edgecolor=BOUNDS_COLOR, linestyle="--", linewidth=1.5,
            label="Spawn bounds",
        ))

        extent = [bounds.min_x, bounds.max_x, bounds.min_y, bounds.max_y]
        for obj in scene.static_objects() + scene.dynamic_objects():
            box = self._footprint(obj, poses)
            color = STATIC_COLOR if obj.is_static else DYNAMIC_COLOR
            ax.add_patch(Rectangle(
                (box.min[0], box.min[1]), box.size[0], box.size[1],
                facecolor=color, edgecolor="black", alpha=0.5,
            ))
            ax.annotate(obj.name or obj.id, (box.center[0], box.center[1]), ha="center", va="center", fontsize=7)
            extent = [
                min(extent[0], box.min[0]), max(extent[1], box.max[0]),
                min(extent[2], box.min[1]), max(extent[3], box.max[1]),
            ]

        margin = 0.05 * max(extent[1] - extent[0], extent[3] - extent[2], 1e-6)
        ax.set_xlim(extent[0] - margin, extent[1] + margin)
        ax.set_ylim(extent[2] - margin, extent[3] + margin)
        ax.set_aspect("equal")
        ax.set_xlabel("X")
        ax.set_ylabel("Y")
        ax.set_title(self.title)
        ax.grid(True, alpha=0.3)

        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output)
        logger.info(f"Layout preview written to {output}")
        return True

    @staticmethod
    def _footprint(obj: SceneObject, poses: dict[str, Pose] | None) -> AABB:
        if poses and obj.id in poses:
            pose = poses[obj.id]
            return world_aabb(obj.parts, compose_matrix(pose.position, pose.quaternion, obj.transform.scale))
        return obj.world_aabb()
