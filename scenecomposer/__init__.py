"""SceneComposer - interactive 3D scene composition with randomized initial conditions.

Place assets in a scene, mark some of them as static references, and
scatter the rest over a spawn rectangle without overlaps. Every edit is
undoable.
"""

__version__ = "0.1.0"

from .core.config import ComposerConfig
from .core.history import Command, History
from .scene.scene import Scene, SceneObject, SpawnBounds
from .scene.transform import Pose, Transform3D
from .scene.conditions import SavedCondition
from .placement.engine import PlacementEngine, PlacementReport
from .interaction.selection import SelectionManager, SelectionState
from .editor import SceneEditor

__all__ = [
    "ComposerConfig",
    "Command",
    "History",
    "Scene",
    "SceneObject",
    "SpawnBounds",
    "Pose",
    "Transform3D",
    "SavedCondition",
    "PlacementEngine",
    "PlacementReport",
    "SelectionManager",
    "SelectionState",
    "SceneEditor",
]
