"""Command-line interface for SceneComposer.

Usage:
    scenecomposer scene create scene.json
    scenecomposer scene add scene.json --box 0.1 0.1 0.1 --name Cup
    scenecomposer scene info scene.json
    scenecomposer randomize scene.json --count 5 --seed 1
    scenecomposer init-config config.json
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .core.config import ComposerConfig
from .editor import SceneEditor
from .scene.conditions import ConditionStore
from .scene.scene import Scene, SceneObject, SpawnBounds
from .scene.transform import Transform3D

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False)],
    )


def _load_config(config_path: str | None) -> ComposerConfig:
    if config_path:
        return ComposerConfig.from_file(config_path)
    return ComposerConfig.default()


def _load_scene(scene_path: str) -> Scene:
    try:
        return Scene.load(scene_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading scene: {e}[/red]")
        raise click.Abort()


def _role(obj: SceneObject) -> str:
    if obj.locked:
        return "[dim]locked[/dim]"
    if obj.exclude_from_export:
        return "[dim]excluded[/dim]"
    if obj.disable_gravity:
        return "[yellow]static[/yellow]"
    return "[green]dynamic[/green]"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """SceneComposer - compose scenes and generate randomized initial conditions."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


# -----------------------------------------------------------------------------
# Scene commands
# -----------------------------------------------------------------------------

@main.group()
def scene() -> None:
    """Create and edit scene files."""
    pass


@scene.command("create")
@click.argument("output", type=click.Path())
@click.option("--name", "-n", default="Untitled Scene", help="Scene name")
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    default=None,
    help="Config file providing the default spawn bounds",
)
def scene_create(output: str, name: str, config: str | None) -> None:
    """Create an empty scene file."""
    cfg = _load_config(config)
    new_scene = Scene(name=name, spawn_bounds=cfg.default_spawn_bounds)
    new_scene.save(output)
    console.print(f"[green]Created scene: {output}[/green]")


@scene.command("add")
@click.argument("scene_path", type=click.Path(exists=True))
@click.argument("mesh", type=click.Path(exists=True), required=False)
@click.option(
    "--box", "box_extents",
    type=(float, float, float),
    default=None,
    help="Add a box primitive with these X Y Z extents instead of a mesh",
)
@click.option("--name", "-n", default=None, help="Object name")
@click.option(
    "--position", "-p",
    type=(float, float, float),
    default=(0.0, 0.0, 0.0),
    help="Position X Y Z",
)
@click.option(
    "--rotation", "-r",
    type=(float, float, float),
    default=(0.0, 0.0, 0.0),
    help="Rotation X Y Z in degrees",
)
@click.option("--static", "is_static", is_flag=True, help="Disable gravity (placement reference)")
@click.option("--locked", is_flag=True, help="Exclude from picking and randomization")
@click.option("--exclude", is_flag=True, help="Exclude from export and randomization")
def scene_add(
    scene_path: str,
    mesh: str | None,
    box_extents: tuple[float, float, float] | None,
    name: str | None,
    position: tuple[float, float, float],
    rotation: tuple[float, float, float],
    is_static: bool,
    locked: bool,
    exclude: bool,
) -> None:
    """Add an object to a scene.

    SCENE_PATH: Scene JSON file
    MESH: Mesh file (STL/OBJ/GLB), or omit and pass --box
    """
    if (mesh is None) == (box_extents is None):
        raise click.UsageError("Pass exactly one of MESH or --box")

    target = _load_scene(scene_path)
    obj = SceneObject(
        name=name or (Path(mesh).stem if mesh else "Box"),
        transform=Transform3D.from_euler(position, rotation),
        source_path=str(Path(mesh).resolve()) if mesh else None,
        primitive_extents=box_extents,
        disable_gravity=is_static,
        locked=locked,
        exclude_from_export=exclude,
    )

    try:
        # Load geometry now so a bad mesh file fails before the scene is written
        if not obj.parts:
            raise ValueError("Object has no geometry")
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()

    target.add_object(obj)
    target.save(scene_path)
    console.print(f"[green]Added '{obj.name}' ({obj.id})[/green]")


@scene.command("remove")
@click.argument("scene_path", type=click.Path(exists=True))
@click.argument("object_id")
def scene_remove(scene_path: str, object_id: str) -> None:
    """Remove an object by ID."""
    target = _load_scene(scene_path)
    removed = target.remove_object(object_id)
    if removed is None:
        console.print(f"[red]No object with ID {object_id}[/red]")
        raise click.Abort()
    target.save(scene_path)
    console.print(f"[green]Removed '{removed.name}' ({removed.id})[/green]")


@scene.command("bounds")
@click.argument("scene_path", type=click.Path(exists=True))
@click.argument("min_x", type=float)
@click.argument("max_x", type=float)
@click.argument("min_y", type=float)
@click.argument("max_y", type=float)
def scene_bounds(scene_path: str, min_x: float, max_x: float, min_y: float, max_y: float) -> None:
    """Set the spawn rectangle."""
    target = _load_scene(scene_path)
    try:
        target.spawn_bounds = SpawnBounds(min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()
    target.save(scene_path)
    console.print(f"[green]Spawn bounds set to X [{min_x}, {max_x}], Y [{min_y}, {max_y}][/green]")


@scene.command("info")
@click.argument("scene_path", type=click.Path(exists=True))
def scene_info(scene_path: str) -> None:
    """Show the objects in a scene and whether it can be randomized."""
    from .placement.engine import randomization_hint

    target = _load_scene(scene_path)
    console.print(f"\n[bold]Scene Info: {target.name}[/bold]\n")

    table = Table(title="Objects")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Position", style="green")
    table.add_column("Rotation (deg)", style="yellow")
    table.add_column("Scale", style="magenta")
    table.add_column("Role")

    for obj in target.objects:
        pos = obj.transform.position
        rot = obj.transform.rotation_deg
        scale = obj.transform.scale
        table.add_row(
            obj.id,
            obj.name,
            f"({pos[0]:.3f}, {pos[1]:.3f}, {pos[2]:.3f})",
            f"({rot[0]:.1f}, {rot[1]:.1f}, {rot[2]:.1f})",
            f"({scale[0]:.2f}, {scale[1]:.2f}, {scale[2]:.2f})",
            _role(obj),
        )
    console.print(table)

    b = target.spawn_bounds
    console.print(f"\n[cyan]Spawn bounds:[/cyan] X [{b.min_x}, {b.max_x}], Y [{b.min_y}, {b.max_y}]")
    if target.instruction:
        console.print(f"[cyan]Instruction:[/cyan] {target.instruction}")

    hint = randomization_hint(target)
    if hint:
        console.print(f"[yellow]{hint}[/yellow]")
    else:
        console.print("[green]Ready to randomize[/green]")


# -----------------------------------------------------------------------------
# Randomization
# -----------------------------------------------------------------------------

@main.command()
@click.argument("scene_path", type=click.Path(exists=True))
@click.option("--count", "-n", type=int, default=1, show_default=True, help="Number of conditions to generate")
@click.option("--seed", type=int, default=None, help="Random seed (overrides config)")
@click.option(
    "--bounds", "-b",
    type=(float, float, float, float),
    default=None,
    help="Spawn rectangle MIN_X MAX_X MIN_Y MAX_Y (overrides the scene's)",
)
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    default=None,
    help="Config file path",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Output path for saved conditions (default: <scene>.conditions.json)",
)
@click.option(
    "--preview", "preview_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Write a top-down PNG of each condition into this directory",
)
def randomize(
    scene_path: str,
    count: int,
    seed: int | None,
    bounds: tuple[float, float, float, float] | None,
    config: str | None,
    output: str | None,
    preview_dir: str | None,
) -> None:
    """Generate randomized initial conditions for a scene.

    SCENE_PATH: Scene JSON file
    """
    if count < 1:
        raise click.BadParameter("must be at least 1", param_hint="--count")

    cfg = _load_config(config)
    if seed is not None:
        cfg.placement.seed = seed

    target = _load_scene(scene_path)
    if bounds is not None:
        try:
            target.spawn_bounds = SpawnBounds(
                min_x=bounds[0], max_x=bounds[1], min_y=bounds[2], max_y=bounds[3]
            )
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise click.Abort()

    console.print(f"\n[bold]Randomizing {target.name}[/bold]\n")

    with SceneEditor(target, cfg) as editor:
        hint = editor.enter_randomize_mode()
        if hint:
            console.print(f"[yellow]{hint}[/yellow]")
            raise click.Abort()

        try:
            editor.randomize()
            for _ in range(count):
                editor.accept_randomization()
                editor.process_events()
        except (OSError, ValueError) as e:
            console.print(f"[red]Error reading geometry: {e}[/red]")
            raise click.Abort()

        conditions = ConditionStore(editor.saved_conditions)

    output_path = Path(output) if output else Path(scene_path).with_suffix(".conditions.json")
    conditions.save(output_path)

    table = Table(title="Saved Conditions")
    table.add_column("#", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Poses", style="green")
    for i, condition in enumerate(conditions, start=1):
        table.add_row(str(i), condition.name, str(len(condition)))
    console.print(table)
    console.print(f"\n[green]Saved {len(conditions)} condition(s) to {output_path}[/green]")

    if preview_dir:
        from .preview import LayoutPreview

        renderer = LayoutPreview(title=target.name)
        for i, condition in enumerate(conditions, start=1):
            image = Path(preview_dir) / f"condition_{i}.png"
            if not renderer.render(target, image, poses=condition.poses):
                console.print("[yellow]matplotlib not installed - cannot write preview[/yellow]")
                console.print("Install with: pip install matplotlib")
                break
        else:
            console.print(f"[cyan]Previews written to {preview_dir}[/cyan]")


@main.command("init-config")
@click.argument("output", type=click.Path())
def init_config(output: str) -> None:
    """Generate a default configuration file."""
    try:
        ComposerConfig.default().to_file(output)
        console.print(f"[green]Created config file: {output}[/green]")
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()


if __name__ == "__main__":
    main()
