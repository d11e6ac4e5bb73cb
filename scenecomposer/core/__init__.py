"""Core modules for SceneComposer."""

from .events import Signal
from .geometry import AABB
from .history import Command, EditSession, History
from .scheduler import DeferredCall, DeferredCalls
from .config import ComposerConfig, HistoryParams, PlacementParams, SelectionParams

__all__ = [
    "Signal",
    "AABB",
    "Command",
    "EditSession",
    "History",
    "DeferredCall",
    "DeferredCalls",
    "ComposerConfig",
    "HistoryParams",
    "PlacementParams",
    "SelectionParams",
]
