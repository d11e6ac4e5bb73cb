"""Ray intersection queries against scene geometry.

The selection state machine only needs a nearest-first list of hits
that identify the mesh that was hit. TrimeshRaycaster answers that with
trimesh's ray queries; anything implementing the Raycaster protocol can
stand in for it (a renderer's own picking, or a stub in tests).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np
import trimesh
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PickTarget:
    """One mesh offered to a ray query, with its object-to-world matrix."""

    mesh: trimesh.Trimesh
    matrix: NDArray[np.float64]


@dataclass(frozen=True)
class Hit:
    """A ray hit on a mesh.

    Attributes:
        distance: Distance from the ray origin
        point: World-space hit location
        mesh: The (object-local) mesh that was hit
    """

    distance: float
    point: NDArray[np.float64]
    mesh: trimesh.Trimesh


class Raycaster(Protocol):
    def intersect(
        self,
        origin: NDArray[np.float64],
        direction: NDArray[np.float64],
        targets: Sequence[PickTarget],
    ) -> list[Hit]:
        """Return hits sorted nearest first."""
        ...


class TrimeshRaycaster:
    """Raycaster backed by trimesh ray/triangle intersection."""

    def intersect(
        self,
        origin: NDArray[np.float64],
        direction: NDArray[np.float64],
        targets: Sequence[PickTarget],
    ) -> list[Hit]:
        origin = np.asarray(origin, dtype=np.float64)
        direction = np.asarray(direction, dtype=np.float64)

        hits: list[Hit] = []
        for target in targets:
            if len(target.mesh.faces) == 0:
                continue
            world = target.mesh.copy()
            world.apply_transform(target.matrix)

            locations, _, _ = world.ray.intersects_location(
                ray_origins=[origin],
                ray_directions=[direction],
                multiple_hits=False,
            )
            if len(locations) == 0:
                continue

            distances = np.linalg.norm(locations - origin, axis=1)
            nearest = int(np.argmin(distances))
            hits.append(Hit(float(distances[nearest]), locations[nearest], target.mesh))

        hits.sort(key=lambda h: h.distance)
        logger.debug(f"Ray hit {len(hits)} of {len(targets)} mesh(es)")
        return hits
