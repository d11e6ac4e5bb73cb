"""Picking, gizmo and selection state for interactive editing."""

from .camera import Camera
from .gizmo import TransformGizmo, TransformMode
from .picking import Hit, PickTarget, Raycaster, TrimeshRaycaster
from .selection import KeyAction, SelectionManager, SelectionState, TransformDragEvent

__all__ = [
    "Camera",
    "TransformGizmo",
    "TransformMode",
    "Hit",
    "PickTarget",
    "Raycaster",
    "TrimeshRaycaster",
    "KeyAction",
    "SelectionManager",
    "SelectionState",
    "TransformDragEvent",
]
