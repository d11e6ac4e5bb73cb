"""Transform gizmo attached to at most one target at a time."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, Sequence

from ..core.events import Signal
from ..scene.transform import Transform3D


class TransformMode(str, Enum):
    TRANSLATE = "translate"
    ROTATE = "rotate"
    SCALE = "scale"


class Transformable(Protocol):
    """Anything the gizmo can move: scene objects and the bounds proxy."""

    transform: Transform3D


class TransformGizmo:
    """Manipulation handle for a single target.

    Signals:
        dragging_changed(bool): a drag started (True) or ended (False)
        changed(): the target's transform was modified
    """

    def __init__(self, mode: TransformMode = TransformMode.TRANSLATE):
        self.mode = mode
        self.dragging = False
        self._target: Transformable | None = None
        self.dragging_changed = Signal("gizmo.dragging_changed")
        self.changed = Signal("gizmo.changed")

    @property
    def target(self) -> Transformable | None:
        return self._target

    def attach(self, target: Transformable) -> None:
        """Attach to a target, detaching any previous one first."""
        self.detach()
        self._target = target

    def detach(self) -> None:
        if self.dragging:
            self.end_drag()
        self._target = None

    def set_mode(self, mode: TransformMode | str) -> None:
        self.mode = TransformMode(mode)

    def begin_drag(self) -> bool:
        """Start a drag on the attached target.

        Returns:
            False when nothing is attached or a drag is already running
        """
        if self._target is None or self.dragging:
            return False
        self.dragging = True
        self.dragging_changed.emit(True)
        return True

    def end_drag(self) -> None:
        if not self.dragging:
            return
        self.dragging = False
        self.dragging_changed.emit(False)

    def apply(self, delta: Sequence[float]) -> bool:
        """Manipulate the target according to the current mode.

        translate: delta is an XYZ offset
        rotate:    delta is XYZ rotation in degrees about the world axes
        scale:     delta is per-axis multiplicative factors

        Returns:
            False when nothing is attached
        """
        target = self._target
        if target is None:
            return False

        transform = target.transform
        if self.mode is TransformMode.TRANSLATE:
            transform = transform.translated(delta)
        elif self.mode is TransformMode.ROTATE:
            for axis, angle in zip(((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)), delta):
                if angle:
                    transform = transform.rotated(axis, angle)
        else:
            transform = transform.scaled(delta)

        target.transform = transform
        self.changed.emit()
        return True

    def drag(self, delta: Sequence[float]) -> bool:
        """Convenience for a complete drag: begin, apply once, end."""
        if not self.begin_drag():
            return False
        try:
            self.apply(delta)
        finally:
            self.end_drag()
        return True

    def __repr__(self) -> str:
        name = getattr(self._target, "name", None)
        return f"TransformGizmo(mode={self.mode.value}, target={name!r}, dragging={self.dragging})"
