"""Configuration management for SceneComposer.

This module defines all configuration models using Pydantic for validation.
Configuration can be loaded from JSON files or constructed programmatically.
"""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
from pydantic import BaseModel, Field, field_validator

from ..scene.scene import SpawnBounds


class HistoryParams(BaseModel):
    """Undo/redo history parameters."""

    max_size: int = Field(default=50, ge=1, description="Maximum number of undoable commands")


class PlacementParams(BaseModel):
    """Randomized placement parameters.

    The seed makes randomization reproducible, which is what tests and
    batch generation from the CLI rely on.
    """

    max_attempts: int = Field(
        default=100,
        ge=1,
        description="Placement attempts per asset before keeping the last pose"
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the random generator. None = non-deterministic."
    )

    def make_rng(self) -> np.random.Generator:
        """Create the random generator used by the placement engine."""
        return np.random.default_rng(self.seed)


class SelectionParams(BaseModel):
    """Pointer and keyboard interaction parameters."""

    click_threshold_px: float = Field(
        default=5.0,
        ge=0.0,
        description="Pointer travel above which a press/release is a drag, not a click"
    )
    translate_key: str = Field(default="g", min_length=1, max_length=1)
    rotate_key: str = Field(default="r", min_length=1, max_length=1)
    scale_key: str = Field(default="s", min_length=1, max_length=1)

    @field_validator("translate_key", "rotate_key", "scale_key")
    @classmethod
    def _lowercase_key(cls, value: str) -> str:
        return value.lower()


class ComposerConfig(BaseModel):
    """Main configuration container."""

    history: HistoryParams = Field(default_factory=HistoryParams)
    placement: PlacementParams = Field(default_factory=PlacementParams)
    selection: SelectionParams = Field(default_factory=SelectionParams)
    default_spawn_bounds: SpawnBounds = Field(
        default_factory=SpawnBounds,
        description="Spawn rectangle used for new scenes"
    )

    @classmethod
    def from_file(cls, path: Path | str) -> ComposerConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with open(path) as f:
            data = json.load(f)
        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    @classmethod
    def default(cls) -> ComposerConfig:
        """Create a default configuration."""
        return cls()
