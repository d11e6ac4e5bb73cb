"""Scene editing session.

SceneEditor ties the registry, the selection state machine, the
placement engine, the saved conditions and the undo history together.
Every externally visible mutation goes through it and is recorded as
exactly one Command. Multi-step gestures (a gizmo drag, a text edit from
focus to blur) are recorded once, as their net before/after change.

Example:
    editor = SceneEditor(Scene(), ComposerConfig(placement=PlacementParams(seed=1)))
    table = editor.add_asset(SceneObject.box((0.4, 0.4, 0.05), "Table", disable_gravity=True))
    cup = editor.add_asset(SceneObject.box((0.08, 0.08, 0.1), "Cup"))
    editor.randomize()
    editor.undo()
"""

from __future__ import annotations

import logging
from typing import Sequence

from .core.config import ComposerConfig
from .core.history import Command, EditSession, History
from .core.scheduler import DeferredCall, DeferredCalls
from .interaction.camera import Camera
from .interaction.gizmo import TransformMode
from .interaction.picking import Raycaster
from .interaction.selection import KeyAction, SelectionManager, TransformDragEvent
from .placement.bounds_proxy import BoundsProxy
from .placement.engine import (
    PlacementEngine,
    PlacementReport,
    apply_poses,
    capture_poses,
    randomization_hint,
)
from .scene.conditions import ConditionStore, SavedCondition
from .scene.scene import Scene, SceneObject, SpawnBounds
from .scene.transform import Pose, Transform3D

logger = logging.getLogger(__name__)


class SceneEditor:
    """Editing facade over one scene.

    Args:
        scene: Registry to edit (a new scene with the configured default
            spawn bounds when omitted)
        config: Composer configuration
        raycaster: Picking service (trimesh ray queries by default)
        camera: Camera used to turn screen points into rays
    """

    def __init__(
        self,
        scene: Scene | None = None,
        config: ComposerConfig | None = None,
        raycaster: Raycaster | None = None,
        camera: Camera | None = None,
    ):
        self.config = config or ComposerConfig.default()
        if scene is None:
            scene = Scene(spawn_bounds=self.config.default_spawn_bounds)
        self.scene = scene

        self.history = History(self.config.history.max_size)
        self.engine = PlacementEngine(self.config.placement)
        self.conditions = ConditionStore()
        self.selection = SelectionManager(
            scene,
            camera=camera,
            raycaster=raycaster,
            params=self.config.selection,
        )

        self._deferred = DeferredCalls()
        self._closed = False
        self._randomize_mode = False
        self._pending_poses: dict[str, Pose] | None = None
        self._bounds_drag_start: SpawnBounds | None = None

        self.selection.transform_drag_end.connect(self._on_transform_drag_end)
        self.selection.bounds_changed.connect(self._on_bounds_changed)
        self.selection.gizmo.dragging_changed.connect(self._on_bounds_dragging)

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("SceneEditor has been closed")

    def _push(self, kind: str, execute, undo) -> None:
        self.history.push(Command(kind, execute, undo))

    # State

    @property
    def selected(self) -> SceneObject | None:
        return self.selection.selected

    @property
    def transform_mode(self) -> TransformMode:
        return self.selection.mode

    @property
    def is_randomize_mode(self) -> bool:
        return self._randomize_mode

    @property
    def spawn_bounds(self) -> SpawnBounds:
        return self.scene.spawn_bounds

    @property
    def instruction(self) -> str:
        return self.scene.instruction

    @property
    def pending_poses(self) -> dict[str, Pose] | None:
        """Poses from before the last randomize pass, until accepted or discarded."""
        return self._pending_poses

    @property
    def saved_conditions(self) -> list[SavedCondition]:
        return self.conditions.conditions

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def randomization_hint(self) -> str:
        return randomization_hint(self.scene)

    # Assets

    def _do_add(self, obj: SceneObject, index: int | None = None) -> None:
        if index is None:
            self.scene.add_object(obj)
        else:
            self.scene.insert_object(index, obj)

    def _do_remove(self, object_id: str) -> None:
        obj = self.scene.get_object(object_id)
        if obj is None:
            return
        if self.selection.selected is obj:
            self.selection.select(None)
        self.scene.remove_object(object_id)

    def add_asset(self, obj: SceneObject) -> SceneObject:
        """Add an object to the end of the registry."""
        self._check_open()
        self._do_add(obj)
        self._push(
            "add_asset",
            lambda: self._do_add(obj),
            lambda: self._do_remove(obj.id),
        )
        logger.debug(f"Added asset '{obj.name}' ({obj.id})")
        return obj

    def remove_asset(self, object_id: str) -> SceneObject | None:
        """Remove an object.

        Undo re-inserts it at its former registry position and restores
        the selection if it was selected.

        Returns:
            The removed object, or None for an unknown ID
        """
        self._check_open()
        obj = self.scene.get_object(object_id)
        if obj is None:
            return None
        index = self.scene.index_of(object_id)
        was_selected = self.selection.selected is obj

        def restore() -> None:
            self._do_add(obj, index)
            if was_selected:
                self.selection.select(obj)

        self._do_remove(object_id)
        self._push("remove_asset", lambda: self._do_remove(object_id), restore)
        logger.debug(f"Removed asset '{obj.name}' ({obj.id})")
        return obj

    def select_asset(self, obj: SceneObject | None) -> None:
        self._check_open()
        self.selection.select(obj)

    def set_transform_mode(self, mode: TransformMode | str) -> None:
        self._check_open()
        self.selection.set_mode(mode)

    # Transforms

    def update_asset_transform(
        self,
        object_id: str,
        position: Sequence[float],
        rotation_deg: Sequence[float],
        scale: Sequence[float],
    ) -> bool:
        """Set an object's transform from numeric fields, without history.

        Pair with ``commit_transform`` (or ``transform_session``) to record
        the net edit once the field loses focus.
        """
        self._check_open()
        obj = self.scene.get_object(object_id)
        if obj is None:
            return False
        obj.apply_transform(Transform3D.from_euler(position, rotation_deg, scale))
        self.selection.update_highlight()
        return True

    def _apply_transform(self, object_id: str, transform: Transform3D) -> None:
        obj = self.scene.get_object(object_id)
        if obj is not None:
            obj.apply_transform(transform)
            self.selection.update_highlight()

    def commit_transform(self, object_id: str, before: Transform3D, after: Transform3D) -> None:
        """Record a transform edit that has already been applied."""
        self._check_open()
        before, after = before.model_copy(), after.model_copy()
        self._push(
            "transform",
            lambda: self._apply_transform(object_id, after),
            lambda: self._apply_transform(object_id, before),
        )

    def transform_session(self, object_id: str) -> EditSession[Transform3D | None]:
        """Focus/blur batching for numeric transform fields."""
        def capture() -> Transform3D | None:
            obj = self.scene.get_object(object_id)
            return obj.snapshot() if obj is not None else None

        def commit(before: Transform3D | None, after: Transform3D | None) -> None:
            if before is not None and after is not None:
                self.commit_transform(object_id, before, after)

        return EditSession(capture, commit)

    def _on_transform_drag_end(self, event: TransformDragEvent) -> None:
        if event.before != event.after:
            self.commit_transform(event.object_id, event.before, event.after)

    def _do_toggle_gravity(self, object_id: str) -> None:
        obj = self.scene.get_object(object_id)
        if obj is not None:
            obj.disable_gravity = not obj.disable_gravity

    def toggle_gravity(self, object_id: str) -> bool:
        """Flip an object's static flag. The command is its own inverse."""
        self._check_open()
        if self.scene.get_object(object_id) is None:
            return False
        self._do_toggle_gravity(object_id)
        self._push(
            "toggle_gravity",
            lambda: self._do_toggle_gravity(object_id),
            lambda: self._do_toggle_gravity(object_id),
        )
        return True

    # Randomize mode and spawn bounds

    def enter_randomize_mode(self) -> str:
        """Show the bounds proxy and attach the gizmo to it.

        Returns:
            '' on success, otherwise the hint naming the missing category
        """
        self._check_open()
        hint = self.randomization_hint()
        if hint:
            logger.info(f"Randomize mode unavailable: {hint}")
            return hint

        self.selection.select(None)
        self.selection.attach_to_bounds_mesh(BoundsProxy.from_bounds(self.scene.spawn_bounds))
        self._randomize_mode = True
        return ""

    def exit_randomize_mode(self) -> None:
        """Leave randomize mode. Saved conditions are kept."""
        self._check_open()
        self.selection.detach_bounds_mesh()
        self._randomize_mode = False
        self._pending_poses = None

    def set_bounds_transform_mode(self, mode: TransformMode | str) -> None:
        self._check_open()
        self.selection.set_bounds_transform_mode(mode)

    def _apply_spawn_bounds(self, bounds: SpawnBounds) -> None:
        self.scene.spawn_bounds = bounds
        proxy = self.selection.bounds_proxy
        if proxy is not None:
            proxy.reset(bounds)

    def set_spawn_bounds(self, bounds: SpawnBounds) -> None:
        """Replace the spawn rectangle without history (live field edits)."""
        self._check_open()
        self._apply_spawn_bounds(bounds)

    def commit_spawn_bounds(self, before: SpawnBounds, after: SpawnBounds) -> None:
        """Record a spawn bounds edit that has already been applied."""
        self._check_open()
        self._push(
            "spawn_bounds",
            lambda: self._apply_spawn_bounds(after),
            lambda: self._apply_spawn_bounds(before),
        )

    def spawn_bounds_session(self) -> EditSession[SpawnBounds]:
        return EditSession(lambda: self.scene.spawn_bounds, self.commit_spawn_bounds)

    def _on_bounds_changed(self, proxy: BoundsProxy) -> None:
        self.scene.spawn_bounds = proxy.to_bounds()

    def _on_bounds_dragging(self, dragging: bool) -> None:
        proxy = self.selection.bounds_proxy
        if proxy is None or self.selection.gizmo.target is not proxy:
            return
        if dragging:
            self._bounds_drag_start = self.scene.spawn_bounds
        elif self._bounds_drag_start is not None:
            before, self._bounds_drag_start = self._bounds_drag_start, None
            if before != self.scene.spawn_bounds:
                self.commit_spawn_bounds(before, self.scene.spawn_bounds)

    # Instruction

    def set_instruction(self, text: str) -> None:
        """Replace the instruction text without history (live typing)."""
        self._check_open()
        self.scene.instruction = text

    def _apply_instruction(self, text: str) -> None:
        self.scene.instruction = text

    def commit_instruction(self, before: str, after: str) -> None:
        self._check_open()
        self._push(
            "instruction",
            lambda: self._apply_instruction(after),
            lambda: self._apply_instruction(before),
        )

    def instruction_session(self) -> EditSession[str]:
        """Focus/blur batching for the instruction text field."""
        return EditSession(lambda: self.scene.instruction, self.commit_instruction)

    # Randomization and saved conditions

    def _apply_poses(self, poses: dict[str, Pose]) -> None:
        apply_poses(self.scene, poses)
        self.selection.update_highlight()

    def randomize(self) -> PlacementReport | None:
        """Scatter the dynamic objects once, as a single undoable command.

        Returns:
            The placement report, or None when there are no dynamic objects
        """
        self._check_open()
        report = self.engine.randomize(self.scene)
        if report is None:
            return None

        before, after = report.before, report.after
        previous_pending = self._pending_poses

        def execute() -> None:
            self._apply_poses(after)
            self._pending_poses = before

        def undo() -> None:
            self._apply_poses(before)
            self._pending_poses = previous_pending

        self._pending_poses = before
        self.selection.update_highlight()
        self._push("randomize", execute, undo)
        return report

    def _push_condition(self, kind: str) -> SavedCondition | None:
        dynamic = self.scene.dynamic_objects()
        if not dynamic:
            return None
        condition = SavedCondition.capture(dynamic, name=self.conditions.next_name())
        self.conditions.append(condition)
        self._push(
            kind,
            lambda: self.conditions.append(condition),
            self.conditions.pop_last,
        )
        logger.info(f"Saved '{condition.name}' with {len(condition)} pose(s)")
        return condition

    def save_current_condition(self) -> SavedCondition | None:
        """Save the current dynamic poses as a new condition."""
        self._check_open()
        return self._push_condition("save_condition")

    def commit_condition(self) -> SavedCondition | None:
        """First phase of accepting: save the current poses, drop the pending ones."""
        self._check_open()
        condition = self._push_condition("accept_randomization")
        self._pending_poses = None
        return condition

    def randomize_async(self) -> DeferredCall:
        """Second phase of accepting: randomize on the next event turn."""
        self._check_open()
        return self._deferred.call_soon(self.randomize, label="randomize")

    def accept_randomization(self) -> SavedCondition | None:
        """Keep the current arrangement as a condition and queue a fresh pass."""
        condition = self.commit_condition()
        self.randomize_async()
        return condition

    def load_condition(self, index: int) -> bool:
        """Apply a saved condition's poses. Out-of-range indices are ignored."""
        self._check_open()
        if not self.conditions.in_range(index):
            return False

        condition = self.conditions[index]
        # Objects may have changed role since the condition was saved
        touched = [
            obj for obj in (self.scene.get_object(oid) for oid in condition.poses)
            if obj is not None
        ]
        before = capture_poses(touched)
        self._apply_poses(condition.poses)
        after = capture_poses(touched)
        self._push(
            "load_condition",
            lambda: self._apply_poses(after),
            lambda: self._apply_poses(before),
        )
        logger.info(f"Loaded '{condition.name}'")
        return True

    def _replace_conditions(self, kind: str, conditions: list[SavedCondition]) -> None:
        previous = self.conditions.conditions
        self.conditions.replace_all(conditions)
        self._push(
            kind,
            lambda: self.conditions.replace_all(conditions),
            lambda: self.conditions.replace_all(previous),
        )

    def delete_condition(self, index: int) -> bool:
        self._check_open()
        if not self.conditions.in_range(index):
            return False
        remaining = [c for i, c in enumerate(self.conditions) if i != index]
        self._replace_conditions("delete_condition", remaining)
        return True

    def clear_saved_conditions(self) -> bool:
        self._check_open()
        if not len(self.conditions):
            return False
        self._replace_conditions("clear_conditions", [])
        return True

    # History

    def undo(self) -> bool:
        self._check_open()
        return self.history.undo()

    def redo(self) -> bool:
        self._check_open()
        return self.history.redo()

    # Events

    def handle_key(
        self,
        key: str,
        ctrl: bool = False,
        meta: bool = False,
        shift: bool = False,
        text_focused: bool = False,
    ) -> KeyAction:
        """Dispatch a key press: undo/redo bindings first, then selection keys.

        Delete/Backspace remove the selected object.
        """
        self._check_open()
        if text_focused:
            return KeyAction.NONE

        key_lower = key.lower()
        if ctrl or meta:
            if key_lower == "z":
                if shift:
                    self.redo()
                    return KeyAction.REDO
                self.undo()
                return KeyAction.UNDO
            if key_lower == "y":
                self.redo()
                return KeyAction.REDO
            return KeyAction.NONE

        action = self.selection.handle_key(key)
        if action is KeyAction.DELETE and self.selection.selected is not None:
            self.remove_asset(self.selection.selected.id)
        return action

    def process_events(self) -> int:
        """Run deferred calls queued before this turn. Returns how many ran."""
        self._check_open()
        return self._deferred.run_pending()

    def close(self) -> None:
        """Cancel deferred work and release the selection machinery."""
        if self._closed:
            return
        cancelled = self._deferred.cancel_all()
        self.selection.dispose()
        self._closed = True
        logger.debug(f"Editor closed ({cancelled} deferred call(s) cancelled)")

    def __enter__(self) -> SceneEditor:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"SceneEditor({self.scene!r}, {len(self.conditions)} conditions, "
            f"{self.history!r})"
        )
