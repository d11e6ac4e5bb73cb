"""Tests for the selection state machine and transform gizmo."""

import numpy as np
import pytest
from pydantic import ValidationError

from scenecomposer.core.config import SelectionParams
from scenecomposer.interaction.gizmo import TransformGizmo, TransformMode
from scenecomposer.interaction.picking import Hit
from scenecomposer.interaction.selection import (
    KeyAction,
    SelectionManager,
    SelectionState,
    TransformDragEvent,
)
from scenecomposer.placement.bounds_proxy import BoundsProxy
from scenecomposer.scene.scene import Scene, SceneObject, SpawnBounds


class StubRaycaster:
    """Reports hits on whichever meshes are listed in `under_cursor`, nearest first.

    Meshes that were not offered as targets are never reported, the same
    as a real ray query.
    """

    def __init__(self):
        self.under_cursor = []
        self.queries = 0

    def intersect(self, origin, direction, targets):
        self.queries += 1
        offered = [t.mesh for t in targets]
        return [
            Hit(float(i), np.zeros(3), mesh)
            for i, mesh in enumerate(self.under_cursor)
            if any(mesh is o for o in offered)
        ]


@pytest.fixture
def scene() -> Scene:
    scene = Scene()
    scene.add_object(SceneObject.box((0.1, 0.1, 0.1), name="A", position=(-0.1, 0.0, 0.05)))
    scene.add_object(SceneObject.box((0.1, 0.1, 0.1), name="B", position=(0.1, 0.0, 0.05)))
    scene.add_object(SceneObject.box((0.1, 0.1, 0.1), name="Locked", position=(0.0, 0.2, 0.05), locked=True))
    return scene


@pytest.fixture
def raycaster() -> StubRaycaster:
    return StubRaycaster()


@pytest.fixture
def manager(scene, raycaster) -> SelectionManager:
    return SelectionManager(scene, raycaster=raycaster)


def obj_named(scene: Scene, name: str) -> SceneObject:
    return next(o for o in scene.objects if o.name == name)


def aim_at(raycaster: StubRaycaster, *objects: SceneObject) -> None:
    raycaster.under_cursor = [part for obj in objects for part in obj.parts]


class TestTransformGizmo:
    """Test gizmo attachment and manipulation."""

    def test_attach_replaces_target(self):
        """Test attaching detaches the previous target."""
        gizmo = TransformGizmo()
        a, b = SceneObject(name="a"), SceneObject(name="b")
        gizmo.attach(a)
        gizmo.attach(b)
        assert gizmo.target is b

    def test_apply_per_mode(self):
        """Test translate, rotate and scale manipulation."""
        gizmo = TransformGizmo()
        obj = SceneObject(name="o")
        gizmo.attach(obj)

        gizmo.apply((1.0, 0.0, 0.0))
        assert obj.transform.position == pytest.approx((1.0, 0.0, 0.0))

        gizmo.set_mode("rotate")
        gizmo.apply((0.0, 0.0, 90.0))
        assert obj.transform.rotation_deg == pytest.approx((0.0, 0.0, 90.0))

        gizmo.set_mode(TransformMode.SCALE)
        gizmo.apply((2.0, 2.0, 2.0))
        assert obj.transform.scale == pytest.approx((2.0, 2.0, 2.0))

    def test_non_positive_scale_rejected(self):
        """Test a zero or negative scale factor leaves the target unchanged."""
        gizmo = TransformGizmo(TransformMode.SCALE)
        obj = SceneObject(name="o")
        gizmo.attach(obj)
        for factors in [(0.0, 1.0, 1.0), (1.0, -2.0, 1.0)]:
            with pytest.raises(ValidationError):
                gizmo.apply(factors)
        assert obj.transform.scale == (1.0, 1.0, 1.0)

    def test_apply_without_target(self):
        """Test manipulation with nothing attached is refused."""
        gizmo = TransformGizmo()
        assert gizmo.apply((1.0, 0.0, 0.0)) is False
        assert gizmo.begin_drag() is False

    def test_drag_signals(self):
        """Test dragging_changed brackets a drag."""
        gizmo = TransformGizmo()
        gizmo.attach(SceneObject(name="o"))
        events = []
        gizmo.dragging_changed.connect(events.append)
        gizmo.drag((0.1, 0.0, 0.0))
        assert events == [True, False]
        assert not gizmo.dragging

    def test_detach_ends_drag(self):
        """Test detaching mid-drag ends the drag."""
        gizmo = TransformGizmo()
        gizmo.attach(SceneObject(name="o"))
        events = []
        gizmo.dragging_changed.connect(events.append)
        gizmo.begin_drag()
        gizmo.detach()
        assert events == [True, False]
        assert gizmo.target is None


class TestSelect:
    """Test programmatic selection."""

    def test_initial_state(self, manager):
        """Test nothing is selected at first."""
        assert manager.state is SelectionState.IDLE
        assert manager.gizmo.target is None

    def test_select_object(self, manager, scene):
        """Test selecting attaches the gizmo and notifies listeners."""
        seen = []
        manager.selection_changed.connect(seen.append)
        a = obj_named(scene, "A")
        manager.select(a)
        assert manager.state is SelectionState.OBJECT
        assert manager.gizmo.target is a
        assert manager.highlight.target is a
        assert seen == [a]

    def test_select_none(self, manager, scene):
        """Test clearing the selection detaches the gizmo."""
        manager.select(obj_named(scene, "A"))
        manager.select(None)
        assert manager.state is SelectionState.IDLE
        assert manager.gizmo.target is None
        assert manager.highlight is None

    def test_set_mode_keeps_selection(self, manager, scene):
        """Test mode changes leave selection alone."""
        a = obj_named(scene, "A")
        manager.select(a)
        manager.set_mode(TransformMode.ROTATE)
        assert manager.mode is TransformMode.ROTATE
        assert manager.selected is a


class TestPick:
    """Test picking by ray."""

    def test_pick_hit(self, manager, scene, raycaster):
        """Test a hit selects the owning object."""
        b = obj_named(scene, "B")
        aim_at(raycaster, b)
        assert manager.pick(400, 300) is b
        assert manager.selected is b

    def test_pick_nearest_first(self, manager, scene, raycaster):
        """Test the nearest hit wins."""
        a, b = obj_named(scene, "A"), obj_named(scene, "B")
        aim_at(raycaster, b, a)
        assert manager.pick(400, 300) is b

    def test_pick_never_selects_locked(self, manager, scene, raycaster):
        """Test locked geometry under the cursor is ignored."""
        aim_at(raycaster, obj_named(scene, "Locked"))
        assert manager.pick(400, 300) is None
        assert manager.state is SelectionState.IDLE

    def test_pick_through_locked(self, manager, scene, raycaster):
        """Test a locked object in front does not block the one behind."""
        b = obj_named(scene, "B")
        aim_at(raycaster, obj_named(scene, "Locked"), b)
        assert manager.pick(400, 300) is b

    def test_miss_clears_selection(self, manager, scene, raycaster):
        """Test a miss outside randomize mode goes idle."""
        manager.select(obj_named(scene, "A"))
        aim_at(raycaster)
        assert manager.pick(400, 300) is None
        assert manager.state is SelectionState.IDLE

    def test_empty_scene(self, raycaster):
        """Test picking in an empty scene skips the ray query."""
        manager = SelectionManager(Scene(), raycaster=raycaster)
        assert manager.pick(10, 10) is None
        assert raycaster.queries == 0


class TestRandomizeMode:
    """Test bounds proxy selection."""

    @pytest.fixture
    def proxy(self) -> BoundsProxy:
        return BoundsProxy.from_bounds(SpawnBounds())

    def test_attach_to_bounds(self, manager, proxy):
        """Test entering randomize mode selects the proxy in translate mode."""
        manager.set_mode(TransformMode.SCALE)
        manager.attach_to_bounds_mesh(proxy)
        assert manager.is_randomize_mode
        assert manager.state is SelectionState.BOUNDS
        assert manager.gizmo.target is proxy
        assert manager.mode is TransformMode.TRANSLATE

    def test_pick_object_then_miss_returns_to_bounds(self, manager, scene, raycaster, proxy):
        """Test a miss in randomize mode re-selects the proxy, never idle."""
        manager.attach_to_bounds_mesh(proxy)
        a = obj_named(scene, "A")

        aim_at(raycaster, a)
        manager.pick(400, 300)
        assert manager.state is SelectionState.OBJECT
        assert manager.gizmo.target is a
        assert not manager.is_bounds_selected

        aim_at(raycaster)
        manager.pick(400, 300)
        assert manager.state is SelectionState.BOUNDS
        assert manager.gizmo.target is proxy

    def test_bounds_transform_mode(self, manager, scene, proxy):
        """Test bounds mode only changes while the proxy is selected."""
        manager.attach_to_bounds_mesh(proxy)
        manager.set_bounds_transform_mode("scale")
        assert manager.mode is TransformMode.SCALE

        manager.select(obj_named(scene, "A"))
        manager.set_bounds_transform_mode("rotate")
        assert manager.mode is TransformMode.SCALE

    def test_bounds_changed_on_gizmo_edit(self, manager, proxy):
        """Test moving the proxy reports the new bounds."""
        manager.attach_to_bounds_mesh(proxy)
        seen = []
        manager.bounds_changed.connect(lambda p: seen.append(p.to_bounds()))
        manager.gizmo.drag((0.1, 0.0, 0.0))
        assert len(seen) == 1
        assert seen[0].min_x == pytest.approx(-0.2)

    def test_proxy_drag_is_not_a_transform_edit(self, manager, proxy):
        """Test dragging the proxy emits no object drag-end event."""
        manager.attach_to_bounds_mesh(proxy)
        ends = []
        manager.transform_drag_end.connect(ends.append)
        manager.gizmo.drag((0.1, 0.0, 0.0))
        assert ends == []

    def test_detach_bounds(self, manager, proxy):
        """Test leaving randomize mode releases the proxy."""
        manager.attach_to_bounds_mesh(proxy)
        manager.detach_bounds_mesh()
        assert not manager.is_randomize_mode
        assert manager.state is SelectionState.IDLE
        assert manager.gizmo.target is None


class TestClickVsDrag:
    """Test pointer disambiguation."""

    def test_click_picks(self, manager, scene, raycaster):
        """Test a short press picks."""
        b = obj_named(scene, "B")
        aim_at(raycaster, b)
        manager.pointer_down(100, 100)
        manager.pointer_move(103, 100)
        assert manager.pointer_up(103, 100) is True
        assert manager.selected is b

    def test_long_travel_is_drag(self, manager, scene, raycaster):
        """Test travel past the threshold suppresses the pick."""
        aim_at(raycaster, obj_named(scene, "B"))
        manager.pointer_down(100, 100)
        manager.pointer_move(106, 100)
        assert manager.pointer_up(106, 100) is False
        assert manager.selected is None

    def test_travel_is_cumulative(self, manager, scene, raycaster):
        """Test moving away and back still counts as a drag."""
        aim_at(raycaster, obj_named(scene, "B"))
        manager.pointer_down(100, 100)
        manager.pointer_move(104, 100)
        manager.pointer_move(100, 100)
        assert manager.pointer_up(100, 100) is False

    def test_orbit_is_drag(self, manager, scene, raycaster):
        """Test a camera orbit during the press suppresses the pick."""
        aim_at(raycaster, obj_named(scene, "B"))
        manager.pointer_down(100, 100)
        manager.notify_orbit()
        assert manager.pointer_up(100, 100) is False
        # The next clean click works again
        manager.pointer_down(100, 100)
        assert manager.pointer_up(100, 100) is True

    def test_gizmo_drag_is_not_click(self, manager, scene, raycaster):
        """Test releasing after a gizmo drag does not pick."""
        a, b = obj_named(scene, "A"), obj_named(scene, "B")
        manager.select(a)
        aim_at(raycaster, b)
        manager.pointer_down(100, 100)
        manager.gizmo.begin_drag()
        assert manager.pointer_up(100, 100) is False
        manager.gizmo.end_drag()
        assert manager.pointer_up(100, 100) is False
        assert manager.selected is a

    def test_custom_threshold(self, scene, raycaster):
        """Test the threshold comes from configuration."""
        manager = SelectionManager(scene, raycaster=raycaster, params=SelectionParams(click_threshold_px=20))
        aim_at(raycaster, obj_named(scene, "A"))
        manager.pointer_down(0, 0)
        assert manager.pointer_up(15, 0) is True


class TestDragLifecycle:
    """Test transform events during gizmo drags."""

    def test_drag_end_reports_net_change(self, manager, scene):
        """Test one drag emits one before/after event."""
        a = obj_named(scene, "A")
        manager.select(a)
        ends = []
        changes = []
        manager.transform_drag_end.connect(ends.append)
        manager.transform_changed.connect(changes.append)

        manager.gizmo.begin_drag()
        manager.gizmo.apply((0.1, 0.0, 0.0))
        manager.gizmo.apply((0.1, 0.0, 0.0))
        manager.gizmo.end_drag()

        assert len(changes) == 2
        assert len(ends) == 1
        event = ends[0]
        assert isinstance(event, TransformDragEvent)
        assert event.object_id == a.id
        assert event.before.position == pytest.approx((-0.1, 0.0, 0.05))
        assert event.after.position == pytest.approx((0.1, 0.0, 0.05))

    def test_reselect_mid_drag_reports_drag(self, manager, scene):
        """Test switching selection mid-drag still reports the finished drag."""
        a, b = obj_named(scene, "A"), obj_named(scene, "B")
        manager.select(a)
        ends = []
        manager.transform_drag_end.connect(ends.append)

        manager.gizmo.begin_drag()
        manager.gizmo.apply((0.2, 0.0, 0.0))
        manager.select(b)

        assert not manager.gizmo.dragging
        assert len(ends) == 1
        assert ends[0].object_id == a.id
        assert ends[0].after.position == pytest.approx((0.1, 0.0, 0.05))

    def test_escape_mid_drag_reports_drag(self, manager, scene):
        """Test escape during a drag ends it before clearing the selection."""
        a = obj_named(scene, "A")
        manager.select(a)
        ends = []
        manager.transform_drag_end.connect(ends.append)

        manager.gizmo.begin_drag()
        manager.gizmo.apply((0.0, 0.3, 0.0))
        assert manager.handle_key("Escape") is KeyAction.DESELECT

        assert [e.object_id for e in ends] == [a.id]
        assert manager.state is SelectionState.IDLE

    def test_select_bounds_mid_drag_reports_drag(self, manager, scene):
        """Test returning to the bounds proxy mid-drag reports the object drag."""
        manager.attach_to_bounds_mesh(BoundsProxy.from_bounds(SpawnBounds()))
        a = obj_named(scene, "A")
        manager.select(a)
        ends = []
        manager.transform_drag_end.connect(ends.append)

        manager.gizmo.begin_drag()
        manager.gizmo.apply((0.1, 0.0, 0.0))
        manager.select_bounds()

        assert [e.object_id for e in ends] == [a.id]
        assert manager.state is SelectionState.BOUNDS

    def test_highlight_tracks_drag(self, manager, scene):
        """Test the highlight box follows the object mid-drag."""
        a = obj_named(scene, "A")
        manager.select(a)
        manager.gizmo.begin_drag()
        manager.gizmo.apply((1.0, 0.0, 0.0))
        np.testing.assert_array_almost_equal(manager.highlight.box.center, [0.9, 0.0, 0.05])
        manager.gizmo.end_drag()


class TestKeys:
    """Test keyboard dispatch."""

    @pytest.mark.parametrize(
        "key, mode",
        [("g", TransformMode.TRANSLATE), ("r", TransformMode.ROTATE), ("S", TransformMode.SCALE)],
    )
    def test_mode_keys(self, manager, key, mode):
        """Test letters select the manipulation mode."""
        manager.set_mode(TransformMode.TRANSLATE if mode is not TransformMode.TRANSLATE else TransformMode.SCALE)
        assert manager.handle_key(key) is KeyAction.MODE
        assert manager.mode is mode

    def test_escape_deselects(self, manager, scene):
        """Test escape returns to idle."""
        manager.select(obj_named(scene, "A"))
        assert manager.handle_key("Escape") is KeyAction.DESELECT
        assert manager.state is SelectionState.IDLE

    def test_delete_is_delegated(self, manager, scene):
        """Test delete is reported, not acted on."""
        a = obj_named(scene, "A")
        manager.select(a)
        assert manager.handle_key("Delete") is KeyAction.DELETE
        assert manager.handle_key("Backspace") is KeyAction.DELETE
        assert a in scene.objects
        assert manager.selected is a

    def test_text_focus_ignores_keys(self, manager):
        """Test keys typed into a text field are ignored."""
        assert manager.handle_key("r", text_focused=True) is KeyAction.NONE
        assert manager.mode is TransformMode.TRANSLATE

    def test_unknown_key(self, manager):
        """Test unbound keys do nothing."""
        assert manager.handle_key("q") is KeyAction.NONE


class TestDispose:
    """Test teardown."""

    def test_dispose_releases_everything(self, manager, scene):
        """Test dispose detaches the gizmo and silences signals."""
        seen = []
        manager.selection_changed.connect(seen.append)
        manager.select(obj_named(scene, "A"))
        manager.dispose()
        assert manager.gizmo.target is None
        assert len(manager.selection_changed) == 0
        assert len(manager.gizmo.changed) == 0
