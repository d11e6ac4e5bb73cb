"""Tests for the command-line interface."""

import json

import pytest
import trimesh
from click.testing import CliRunner

from scenecomposer.cli import main
from scenecomposer.core.config import ComposerConfig
from scenecomposer.scene.conditions import ConditionStore
from scenecomposer.scene.scene import Scene


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def scene_path(tmp_path, runner):
    """A scene with a static table and two dynamic boxes."""
    path = tmp_path / "scene.json"
    assert runner.invoke(main, ["scene", "create", str(path), "--name", "Desk"]).exit_code == 0
    commands = [
        ["--box", "0.6", "0.6", "0.05", "--name", "Table", "--position", "0", "0", "-0.025", "--static"],
        ["--box", "0.08", "0.08", "0.1", "--name", "Cup", "--position", "0", "0", "0.05"],
        ["--box", "0.1", "0.05", "0.04", "--name", "Block", "--position", "0.1", "0", "0.02"],
    ]
    for args in commands:
        result = runner.invoke(main, ["scene", "add", str(path), *args])
        assert result.exit_code == 0, result.output
    return path


class TestSceneCommands:
    """Test scene file editing."""

    def test_create(self, tmp_path, runner):
        """Test an empty scene file is written."""
        path = tmp_path / "empty.json"
        result = runner.invoke(main, ["scene", "create", str(path)])
        assert result.exit_code == 0
        assert len(Scene.load(path)) == 0

    def test_create_uses_config_bounds(self, tmp_path, runner):
        """Test new scenes take their bounds from the config file."""
        config_path = tmp_path / "config.json"
        config = ComposerConfig.default()
        config.default_spawn_bounds = config.default_spawn_bounds.model_copy(update={"max_x": 0.5})
        config.to_file(config_path)

        path = tmp_path / "scene.json"
        result = runner.invoke(main, ["scene", "create", str(path), "--config", str(config_path)])
        assert result.exit_code == 0
        assert Scene.load(path).spawn_bounds.max_x == 0.5

    def test_add_boxes(self, scene_path):
        """Test boxes are added with roles and positions."""
        loaded = Scene.load(scene_path)
        assert [o.name for o in loaded.objects] == ["Table", "Cup", "Block"]
        assert loaded.objects[0].is_static
        assert loaded.objects[2].transform.position == pytest.approx((0.1, 0.0, 0.02))

    def test_add_mesh_file(self, tmp_path, runner, scene_path):
        """Test adding a mesh file names the object after it."""
        mesh_path = tmp_path / "mug.stl"
        trimesh.creation.box(extents=[0.1, 0.1, 0.1]).export(str(mesh_path))
        result = runner.invoke(main, ["scene", "add", str(scene_path), str(mesh_path)])
        assert result.exit_code == 0, result.output
        assert Scene.load(scene_path).objects[-1].name == "mug"

    def test_add_requires_one_source(self, runner, scene_path):
        """Test MESH and --box are mutually exclusive and one is required."""
        result = runner.invoke(main, ["scene", "add", str(scene_path)])
        assert result.exit_code == 2
        assert len(Scene.load(scene_path)) == 3

    def test_remove(self, runner, scene_path):
        """Test removing by ID."""
        cup = Scene.load(scene_path).objects[1]
        result = runner.invoke(main, ["scene", "remove", str(scene_path), cup.id])
        assert result.exit_code == 0
        assert Scene.load(scene_path).get_object(cup.id) is None

    def test_remove_unknown(self, runner, scene_path):
        """Test an unknown ID fails without touching the file."""
        result = runner.invoke(main, ["scene", "remove", str(scene_path), "nope"])
        assert result.exit_code != 0
        assert len(Scene.load(scene_path)) == 3

    def test_bounds(self, runner, scene_path):
        """Test setting the spawn rectangle."""
        result = runner.invoke(main, ["scene", "bounds", str(scene_path), "--", "-0.2", "0.2", "-0.1", "0.1"])
        assert result.exit_code == 0, result.output
        bounds = Scene.load(scene_path).spawn_bounds
        assert (bounds.min_x, bounds.max_x, bounds.min_y, bounds.max_y) == (-0.2, 0.2, -0.1, 0.1)

    def test_inverted_bounds(self, runner, scene_path):
        """Test min above max is refused."""
        result = runner.invoke(main, ["scene", "bounds", str(scene_path), "1", "0", "0", "1"])
        assert result.exit_code != 0

    def test_info(self, runner, scene_path):
        """Test info lists objects and readiness."""
        result = runner.invoke(main, ["scene", "info", str(scene_path)])
        assert result.exit_code == 0
        assert "Cup" in result.output
        assert "Ready to randomize" in result.output


class TestRandomizeCommand:
    """Test batch condition generation."""

    def test_generates_conditions(self, runner, scene_path):
        """Test --count conditions are written next to the scene."""
        result = runner.invoke(main, ["randomize", str(scene_path), "--count", "2", "--seed", "4"])
        assert result.exit_code == 0, result.output

        store = ConditionStore.load(scene_path.with_suffix(".conditions.json"))
        assert [c.name for c in store] == ["Condition 1", "Condition 2"]
        assert all(len(c) == 2 for c in store)
        assert store[0].poses != store[1].poses

    def test_seed_is_reproducible(self, tmp_path, runner, scene_path):
        """Test the same seed writes the same conditions."""
        outputs = [tmp_path / "a.json", tmp_path / "b.json"]
        for output in outputs:
            result = runner.invoke(main, ["randomize", str(scene_path), "--seed", "11", "-o", str(output)])
            assert result.exit_code == 0, result.output
        a, b = (json.loads(p.read_text()) for p in outputs)
        assert [c["poses"] for c in a] == [c["poses"] for c in b]

    def test_scene_file_not_modified(self, runner, scene_path):
        """Test randomizing leaves the scene file alone."""
        before = scene_path.read_text()
        runner.invoke(main, ["randomize", str(scene_path), "--seed", "1"])
        assert scene_path.read_text() == before

    def test_refused_without_static(self, tmp_path, runner):
        """Test a scene with nothing to place on is refused."""
        path = tmp_path / "loose.json"
        runner.invoke(main, ["scene", "create", str(path)])
        runner.invoke(main, ["scene", "add", str(path), "--box", "0.1", "0.1", "0.1"])

        result = runner.invoke(main, ["randomize", str(path), "--seed", "1"])
        assert result.exit_code != 0
        assert not path.with_suffix(".conditions.json").exists()

    def test_bad_count(self, runner, scene_path):
        """Test a zero count is a usage error."""
        result = runner.invoke(main, ["randomize", str(scene_path), "--count", "0"])
        assert result.exit_code == 2


class TestInitConfig:
    """Test config file generation."""

    def test_writes_loadable_config(self, tmp_path, runner):
        """Test the generated file loads back as the default config."""
        path = tmp_path / "config.json"
        result = runner.invoke(main, ["init-config", str(path)])
        assert result.exit_code == 0
        assert ComposerConfig.from_file(path) == ComposerConfig.default()
