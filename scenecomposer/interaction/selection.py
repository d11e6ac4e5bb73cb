"""Selection and transform interaction state machine.

The SelectionManager owns the transform gizmo and decides what it is
attached to. Selection is always exactly one of:

    IDLE     nothing selected, gizmo detached
    OBJECT   one scene object selected, gizmo on that object
    BOUNDS   the spawn-bounds proxy selected (randomize mode only)

Pointer input arrives as down/move/up events in screen pixels. A
release counts as a click, and triggers a pick, only when the gizmo was
not dragging, no camera orbit happened and the pointer travelled no
more than the click threshold since the press.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from ..core.config import SelectionParams
from ..core.events import Signal
from ..core.geometry import AABB
from ..placement.bounds_proxy import BoundsProxy
from ..scene.scene import Scene, SceneObject
from ..scene.transform import Transform3D
from .camera import Camera
from .gizmo import TransformGizmo, TransformMode
from .picking import PickTarget, Raycaster, TrimeshRaycaster

logger = logging.getLogger(__name__)


class SelectionState(str, Enum):
    IDLE = "idle"
    OBJECT = "object"
    BOUNDS = "bounds"


class KeyAction(str, Enum):
    """What a key press did (or asks the caller to do)."""

    NONE = "none"
    MODE = "mode"
    DESELECT = "deselect"
    DELETE = "delete"
    UNDO = "undo"
    REDO = "redo"


@dataclass(frozen=True)
class TransformDragEvent:
    """Net change of one completed gizmo drag."""

    object_id: str
    before: Transform3D
    after: Transform3D


class Highlight:
    """Selection outline tracking an object's world bounding box."""

    def __init__(self, target: SceneObject):
        self.target = target
        self.box: AABB = target.world_aabb()

    def update(self) -> AABB:
        self.box = self.target.world_aabb()
        return self.box


class SelectionManager:
    """Picks objects, attaches the gizmo and reports transform edits.

    Signals:
        selection_changed(SceneObject | None)
        transform_changed(Transform3D): every gizmo change on an object
        transform_drag_end(TransformDragEvent): once per completed drag
        bounds_changed(BoundsProxy): gizmo moved the bounds proxy
    """

    def __init__(
        self,
        scene: Scene,
        camera: Camera | None = None,
        raycaster: Raycaster | None = None,
        params: SelectionParams | None = None,
    ):
        self.scene = scene
        self.camera = camera or Camera()
        self.raycaster = raycaster or TrimeshRaycaster()
        self.params = params or SelectionParams()

        self.gizmo = TransformGizmo()
        self.selected: SceneObject | None = None
        self.highlight: Highlight | None = None

        self._bounds_proxy: BoundsProxy | None = None
        self._bounds_selected = False
        self._drag_start: Transform3D | None = None

        self._pointer_down: tuple[float, float] | None = None
        self._pointer_last: tuple[float, float] | None = None
        self._travel = 0.0
        self._was_dragging = False

        self.selection_changed = Signal("selection.selection_changed")
        self.transform_changed = Signal("selection.transform_changed")
        self.transform_drag_end = Signal("selection.transform_drag_end")
        self.bounds_changed = Signal("selection.bounds_changed")

        self.gizmo.dragging_changed.connect(self._on_dragging_changed)
        self.gizmo.changed.connect(self._on_gizmo_changed)

    # State queries

    @property
    def state(self) -> SelectionState:
        if self.selected is not None:
            return SelectionState.OBJECT
        if self._bounds_selected:
            return SelectionState.BOUNDS
        return SelectionState.IDLE

    @property
    def mode(self) -> TransformMode:
        return self.gizmo.mode

    @property
    def bounds_proxy(self) -> BoundsProxy | None:
        return self._bounds_proxy

    @property
    def is_randomize_mode(self) -> bool:
        return self._bounds_proxy is not None

    @property
    def is_bounds_selected(self) -> bool:
        return self._bounds_selected

    # Selection control

    def select(self, obj: SceneObject | None) -> None:
        """Select an object, or clear the selection with None."""
        self._finish_drag()
        self.highlight = None
        self.selected = obj
        self._bounds_selected = False
        self._drag_start = None

        if obj is not None:
            self.gizmo.attach(obj)
            self.highlight = Highlight(obj)
        else:
            self.gizmo.detach()

        logger.debug(f"Selection -> {obj.name if obj else None}")
        self.selection_changed.emit(obj)

    def select_bounds(self) -> None:
        """Attach the gizmo to the bounds proxy (randomize mode only)."""
        if self._bounds_proxy is None:
            return
        self._finish_drag()
        changed = self.selected is not None
        self.highlight = None
        self.selected = None
        self._drag_start = None
        self._bounds_selected = True
        self.gizmo.attach(self._bounds_proxy)
        self.gizmo.set_mode(TransformMode.TRANSLATE)
        if changed:
            self.selection_changed.emit(None)

    def attach_to_bounds_mesh(self, proxy: BoundsProxy) -> None:
        """Enter randomize mode with the gizmo on the bounds proxy."""
        self._bounds_proxy = proxy
        self.select_bounds()

    def detach_bounds_mesh(self) -> None:
        """Leave randomize mode. The gizmo is released if it held the proxy."""
        if self._bounds_proxy is None:
            return
        if self.gizmo.target is self._bounds_proxy:
            self.gizmo.detach()
        self._bounds_proxy = None
        self._bounds_selected = False

    def set_mode(self, mode: TransformMode | str) -> None:
        """Change the manipulation mode. Selection is unaffected."""
        self.gizmo.set_mode(mode)

    def set_bounds_transform_mode(self, mode: TransformMode | str) -> None:
        """Change the mode while the bounds proxy holds the gizmo."""
        if self._bounds_selected:
            self.gizmo.set_mode(mode)

    # Picking

    def pick(self, screen_x: float, screen_y: float) -> SceneObject | None:
        """Select whatever lies under a screen point.

        Returns:
            The picked object, or None on a miss
        """
        origin, direction = self.camera.ray(screen_x, screen_y)
        return self.pick_ray(origin, direction)

    def pick_ray(
        self,
        origin: NDArray[np.float64],
        direction: NDArray[np.float64],
    ) -> SceneObject | None:
        """Select the nearest unlocked object hit by a world-space ray."""
        candidates = self.scene.pickable_objects()
        targets = [
            PickTarget(part, obj.transform.to_matrix())
            for obj in candidates
            for part in obj.parts
        ]
        hits = self.raycaster.intersect(origin, direction, targets) if targets else []

        for hit in hits:
            owner = next((obj for obj in candidates if obj.owns(hit.mesh)), None)
            if owner is not None:
                self.select(owner)
                return owner

        if self.is_randomize_mode:
            self.select_bounds()
        else:
            self.select(None)
        return None

    # Pointer input

    def pointer_down(self, x: float, y: float) -> None:
        self._pointer_down = (x, y)
        self._pointer_last = (x, y)
        self._travel = 0.0
        self._was_dragging = False

    def pointer_move(self, x: float, y: float) -> None:
        if self._pointer_last is None:
            return
        self._travel += math.dist(self._pointer_last, (x, y))
        self._pointer_last = (x, y)

    def notify_orbit(self) -> None:
        """Record that the camera was orbited during the current press."""
        self._was_dragging = True

    def pointer_up(self, x: float, y: float) -> bool:
        """Finish a press. Picks when the press was a click.

        Returns:
            True if a pick was performed
        """
        if self.gizmo.dragging:
            return False

        was_dragging = self._was_dragging
        self._was_dragging = False
        if self._pointer_last is not None:
            self._travel += math.dist(self._pointer_last, (x, y))
        travel = self._travel
        self._pointer_down = None
        self._pointer_last = None
        self._travel = 0.0

        if was_dragging or travel > self.params.click_threshold_px:
            return False

        self.pick(x, y)
        return True

    # Keyboard

    def handle_key(self, key: str, text_focused: bool = False) -> KeyAction:
        """Dispatch a key press.

        Args:
            key: Key name ("g", "Escape", "Delete", ...)
            text_focused: True while a text field has keyboard focus

        Returns:
            The action taken. DELETE is returned for the caller to act on.
        """
        if text_focused:
            return KeyAction.NONE

        key = key.lower()
        modes = {
            self.params.translate_key: TransformMode.TRANSLATE,
            self.params.rotate_key: TransformMode.ROTATE,
            self.params.scale_key: TransformMode.SCALE,
        }
        if key in modes:
            self.set_mode(modes[key])
            return KeyAction.MODE
        if key == "escape":
            self.select(None)
            return KeyAction.DESELECT
        if key in ("delete", "backspace"):
            return KeyAction.DELETE
        return KeyAction.NONE

    # Gizmo callbacks

    def _finish_drag(self) -> None:
        """End a running drag while it still belongs to the current target."""
        if self.gizmo.dragging:
            self.gizmo.end_drag()

    def _on_dragging_changed(self, dragging: bool) -> None:
        if dragging:
            self._was_dragging = True

        obj = self.selected
        if obj is None or self.gizmo.target is not obj:
            return

        if dragging:
            self._drag_start = obj.snapshot()
        elif self._drag_start is not None:
            event = TransformDragEvent(obj.id, self._drag_start, obj.snapshot())
            self._drag_start = None
            self.transform_drag_end.emit(event)

    def _on_gizmo_changed(self) -> None:
        if self.selected is not None and self.gizmo.target is self.selected:
            self.update_highlight()
            self.transform_changed.emit(self.selected.snapshot())
        elif self._bounds_proxy is not None and self.gizmo.target is self._bounds_proxy:
            self.bounds_changed.emit(self._bounds_proxy)

    def update_highlight(self) -> None:
        if self.highlight is not None:
            self.highlight.update()

    def dispose(self) -> None:
        """Release the gizmo and drop every subscriber."""
        self.gizmo.detach()
        self.gizmo.dragging_changed.disconnect(self._on_dragging_changed)
        self.gizmo.changed.disconnect(self._on_gizmo_changed)
        for signal in (
            self.selection_changed,
            self.transform_changed,
            self.transform_drag_end,
            self.bounds_changed,
        ):
            signal.clear()
        self.selected = None
        self.highlight = None
        self._bounds_proxy = None
        self._bounds_selected = False
