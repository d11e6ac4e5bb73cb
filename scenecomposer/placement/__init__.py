"""Randomized placement of dynamic objects."""

from .bounds_proxy import BoundsProxy
from .engine import PlacementEngine, PlacementReport, AssetPlacement, randomization_hint

__all__ = [
    "BoundsProxy",
    "PlacementEngine",
    "PlacementReport",
    "AssetPlacement",
    "randomization_hint",
]
