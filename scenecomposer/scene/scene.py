"""Scene object registry and spawn region data structures.

This module provides the core data models for composing a scene from
placed assets: SceneObject (one placed asset with its flags), SpawnBounds
(the rectangle randomized placement scatters into) and Scene (the ordered
registry that owns both, plus the task instruction text).
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Sequence

import trimesh
from pydantic import BaseModel, Field, PrivateAttr, model_validator

from ..core.geometry import AABB, world_aabb
from .transform import Pose, Transform3D, Vector3

logger = logging.getLogger(__name__)


class SpawnBounds(BaseModel):
    """Axis-aligned rectangle on the X-Y placement plane.

    One instance per session. It is replaced wholesale on every edit,
    never mutated in place.
    """

    min_x: float = Field(default=-0.3, description="Minimum X")
    max_x: float = Field(default=0.3, description="Maximum X")
    min_y: float = Field(default=-0.3, description="Minimum Y")
    max_y: float = Field(default=0.3, description="Maximum Y")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _ordered(self) -> SpawnBounds:
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise ValueError(
                f"Spawn bounds minimum must not exceed maximum: "
                f"X [{self.min_x}, {self.max_x}], Y [{self.min_y}, {self.max_y}]"
            )
        return self

    @property
    def size(self) -> tuple[float, float]:
        """Return rectangle dimensions (width, depth)."""
        return (self.max_x - self.min_x, self.max_y - self.min_y)

    @property
    def center(self) -> tuple[float, float]:
        """Return rectangle midpoint."""
        return ((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    def shrunk(self, margin: float) -> tuple[float, float, float, float]:
        """Return (min_x, max_x, min_y, max_y) moved inward by a margin.

        The result may be degenerate (min >= max); callers decide what that
        means, so it is returned as a plain tuple instead of SpawnBounds.
        """
        return (
            self.min_x + margin,
            self.max_x - margin,
            self.min_y + margin,
            self.max_y - margin,
        )

    def contains_box(self, box: AABB) -> bool:
        """Check if a bounding box footprint is fully inside the rectangle."""
        return box.contains_xy(self.min_x, self.max_x, self.min_y, self.max_y)

    def contains_point(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


class SceneObject(BaseModel):
    """A single placed asset with its transform and editing flags.

    The renderable geometry is a list of meshes in the object's local frame.
    It is loaded lazily from ``source_path`` or built from
    ``primitive_extents``, or supplied directly with ``set_parts``.

    Flags:
        locked: Not pickable and never randomized
        exclude_from_export: Left out of export and randomization
        disable_gravity: Marks the object as static for placement
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4())[:8],
        description="Unique identifier for this object"
    )
    name: str = Field(default="", description="Display name")
    transform: Transform3D = Field(
        default_factory=Transform3D,
        description="Position, orientation, and scale"
    )
    locked: bool = Field(default=False, description="Excluded from picking and placement")
    exclude_from_export: bool = Field(default=False, description="Excluded from export")
    disable_gravity: bool = Field(default=False, description="Static placement reference")

    source_path: str | None = Field(
        default=None,
        description="Path to source mesh file (STL/OBJ/GLB/etc)"
    )
    primitive_extents: Vector3 | None = Field(
        default=None,
        description="Box extents for primitive objects without a source file"
    )

    # Private attribute for cached mesh data (not serialized)
    _parts: list[trimesh.Trimesh] | None = PrivateAttr(default=None)

    model_config = {"frozen": False}

    @classmethod
    def box(
        cls,
        extents: Sequence[float],
        name: str = "Box",
        position: Sequence[float] = (0.0, 0.0, 0.0),
        **kwargs: Any,
    ) -> SceneObject:
        """Create a box-shaped object centered on its origin."""
        extents_t = tuple(float(e) for e in extents)
        return cls(
            name=name,
            transform=Transform3D(position=tuple(float(p) for p in position)),
            primitive_extents=extents_t,
            **kwargs,
        )

    @classmethod
    def from_meshes(
        cls,
        meshes: Sequence[trimesh.Trimesh],
        name: str = "",
        **kwargs: Any,
    ) -> SceneObject:
        obj = cls(name=name, **kwargs)
        obj.set_parts(meshes)
        return obj

    @property
    def parts(self) -> list[trimesh.Trimesh]:
        """Object-local renderable meshes, loaded on first access."""
        if self._parts is None:
            self._parts = self._load_parts()
        return self._parts

    def set_parts(self, meshes: Sequence[trimesh.Trimesh]) -> None:
        self._parts = list(meshes)

    def _load_parts(self) -> list[trimesh.Trimesh]:
        if self.primitive_extents is not None:
            return [trimesh.creation.box(extents=self.primitive_extents)]
        if self.source_path is None:
            return []

        path = Path(self.source_path)
        if not path.exists():
            raise FileNotFoundError(f"Mesh file not found: {path}")

        loaded = trimesh.load(str(path))

        # Keep each geometry of a multi-part file as its own pickable part
        if isinstance(loaded, trimesh.Scene):
            parts = [
                geom for geom in loaded.dump()
                if isinstance(geom, trimesh.Trimesh)
            ]
            if not parts:
                raise ValueError(f"No valid meshes found in {path}")
            return parts
        if isinstance(loaded, trimesh.Trimesh):
            return [loaded]
        raise ValueError(f"Unexpected type from trimesh.load: {type(loaded)}")

    @property
    def is_dynamic(self) -> bool:
        """Eligible for randomized placement."""
        return not self.locked and not self.exclude_from_export and not self.disable_gravity

    @property
    def is_static(self) -> bool:
        """Fixed placement reference, never moved by randomization."""
        return not self.locked and not self.exclude_from_export and self.disable_gravity

    def world_aabb(self) -> AABB:
        """Return the world-space bounding box of the object's geometry."""
        return world_aabb(self.parts, self.transform.to_matrix())

    def pose(self) -> Pose:
        return self.transform.pose

    def apply_pose(self, pose: Pose) -> None:
        self.transform = self.transform.with_pose(pose)

    def snapshot(self) -> Transform3D:
        """Independent copy of the full transform (position, orientation, scale)."""
        return self.transform.model_copy()

    def apply_transform(self, transform: Transform3D) -> None:
        self.transform = transform.model_copy()

    def owns(self, mesh: trimesh.Trimesh) -> bool:
        """Check whether a mesh belongs to this object's geometry."""
        return any(part is mesh for part in self.parts)


class Scene(BaseModel):
    """Ordered registry of placed assets.

    The Scene is the top-level container that holds every placed object
    together with the spawn rectangle and the task instruction. Order
    matters: randomization processes dynamic objects in registry order.
    """

    name: str = Field(default="Untitled Scene", description="Scene name")
    version: str = Field(default="1.0", description="Scene file version")

    objects: list[SceneObject] = Field(
        default_factory=list,
        description="Placed objects in registry order"
    )
    spawn_bounds: SpawnBounds = Field(
        default_factory=SpawnBounds,
        description="Rectangle for randomized placement"
    )
    instruction: str = Field(default="", description="Task instruction text")

    model_config = {"frozen": False}

    def __len__(self) -> int:
        return len(self.objects)

    def add_object(self, obj: SceneObject) -> SceneObject:
        """Append an object to the registry."""
        self.objects.append(obj)
        return obj

    def insert_object(self, index: int, obj: SceneObject) -> SceneObject:
        """Insert an object at a registry position (clamped to the valid range)."""
        index = max(0, min(index, len(self.objects)))
        self.objects.insert(index, obj)
        return obj

    def remove_object(self, object_id: str) -> SceneObject | None:
        """Remove an object by ID.

        Returns:
            The removed object, or None if not found
        """
        for i, obj in enumerate(self.objects):
            if obj.id == object_id:
                return self.objects.pop(i)
        return None

    def get_object(self, object_id: str) -> SceneObject | None:
        for obj in self.objects:
            if obj.id == object_id:
                return obj
        return None

    def index_of(self, object_id: str) -> int:
        """Return the registry position of an object, or -1 if not found."""
        for i, obj in enumerate(self.objects):
            if obj.id == object_id:
                return i
        return -1

    def dynamic_objects(self) -> list[SceneObject]:
        return [obj for obj in self.objects if obj.is_dynamic]

    def static_objects(self) -> list[SceneObject]:
        return [obj for obj in self.objects if obj.is_static]

    def pickable_objects(self) -> list[SceneObject]:
        return [obj for obj in self.objects if not obj.locked]

    def bounds(self) -> AABB | None:
        """Bounding box enclosing every object, or None for an empty scene."""
        boxes = [obj.world_aabb() for obj in self.objects]
        if not boxes:
            return None
        combined = boxes[0]
        for box in boxes[1:]:
            combined = combined.union(box)
        return combined

    def save(self, path: str | Path) -> None:
        """Save scene to a JSON file.

        Geometry is not embedded; objects keep their source path or
        primitive extents and reload geometry lazily.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

        logger.debug(f"Scene saved: {path}")

    @classmethod
    def load(cls, path: str | Path) -> Scene:
        """Load scene from a JSON file.

        Relative mesh paths are resolved against the scene file directory.
        """
        path = Path(path)
        with open(path) as f:
            data = json.load(f)

        scene = cls.model_validate(data)
        for obj in scene.objects:
            if obj.source_path and not Path(obj.source_path).is_absolute():
                obj.source_path = str((path.parent / obj.source_path).resolve())
        return scene

    def __repr__(self) -> str:
        return f"Scene('{self.name}', {len(self.objects)} objects)"
