"""Scene registry for composing placed assets.

This module provides data structures for the objects in a scene, their
transforms, the spawn rectangle and saved initial conditions.
"""

from .transform import Pose, Transform3D
from .scene import Scene, SceneObject, SpawnBounds
from .conditions import ConditionStore, SavedCondition

__all__ = [
    "Pose",
    "Transform3D",
    "Scene",
    "SceneObject",
    "SpawnBounds",
    "ConditionStore",
    "SavedCondition",
]
