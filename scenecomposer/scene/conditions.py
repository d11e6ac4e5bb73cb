"""Saved initial conditions.

A SavedCondition maps object IDs to poses for every dynamic object at
capture time. The ConditionStore is an ordered append/delete list; the
editor wraps every change to it in a history command, so the store's own
methods carry no undo logic.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import BaseModel, Field

from .scene import SceneObject
from .transform import Pose

logger = logging.getLogger(__name__)


class SavedCondition(BaseModel):
    """Named snapshot of dynamic object poses."""

    name: str = Field(default="", description="Display name")
    poses: dict[str, Pose] = Field(
        default_factory=dict,
        description="Object ID to pose"
    )
    created_at: str = Field(
        default_factory=lambda: datetime.now().isoformat(),
        description="ISO timestamp of capture"
    )

    model_config = {"frozen": True}

    @classmethod
    def capture(cls, objects: Iterable[SceneObject], name: str = "") -> SavedCondition:
        """Snapshot the current pose of each object."""
        return cls(name=name, poses={obj.id: obj.pose() for obj in objects})

    def __len__(self) -> int:
        return len(self.poses)


class ConditionStore:
    """Ordered list of saved conditions."""

    def __init__(self, conditions: Iterable[SavedCondition] | None = None):
        self._conditions: list[SavedCondition] = list(conditions or [])

    @property
    def conditions(self) -> list[SavedCondition]:
        """Copy of the stored conditions, in order."""
        return list(self._conditions)

    def __len__(self) -> int:
        return len(self._conditions)

    def __iter__(self) -> Iterator[SavedCondition]:
        return iter(list(self._conditions))

    def __getitem__(self, index: int) -> SavedCondition:
        return self._conditions[index]

    def in_range(self, index: int) -> bool:
        return 0 <= index < len(self._conditions)

    def next_name(self) -> str:
        return f"Condition {len(self._conditions) + 1}"

    def append(self, condition: SavedCondition) -> None:
        self._conditions.append(condition)

    def pop_last(self) -> SavedCondition | None:
        if not self._conditions:
            return None
        return self._conditions.pop()

    def replace_all(self, conditions: Iterable[SavedCondition]) -> None:
        self._conditions = list(conditions)

    def save(self, path: str | Path) -> None:
        """Save all conditions to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump([c.model_dump(mode="json") for c in self._conditions], f, indent=2)
        logger.debug(f"Saved {len(self._conditions)} condition(s) to {path}")

    @classmethod
    def load(cls, path: str | Path) -> ConditionStore:
        path = Path(path)
        with open(path) as f:
            data = json.load(f)
        return cls(SavedCondition.model_validate(item) for item in data)

    def __repr__(self) -> str:
        return f"ConditionStore({len(self._conditions)} conditions)"
