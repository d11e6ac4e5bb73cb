"""Pinhole camera used to turn screen points into picking rays."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field

Vector3 = tuple[float, float, float]


class Camera(BaseModel):
    """Perspective camera looking at a target point.

    Screen coordinates are pixels with the origin at the top-left corner
    of the viewport, Y growing downward.
    """

    position: Vector3 = Field(default=(1.0, -1.0, 1.0), description="Eye position")
    target: Vector3 = Field(default=(0.0, 0.0, 0.0), description="Look-at point")
    up: Vector3 = Field(default=(0.0, 0.0, 1.0), description="World up direction")
    fov_deg: float = Field(default=50.0, gt=0, lt=180, description="Vertical field of view")
    width: int = Field(default=800, ge=1, description="Viewport width in pixels")
    height: int = Field(default=600, ge=1, description="Viewport height in pixels")

    @property
    def aspect(self) -> float:
        return self.width / self.height

    def basis(self) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
        """Return (forward, right, up) unit vectors in world space."""
        eye = np.asarray(self.position, dtype=np.float64)
        forward = np.asarray(self.target, dtype=np.float64) - eye
        norm = np.linalg.norm(forward)
        if norm < 1e-12:
            raise ValueError("Camera position and target coincide")
        forward /= norm

        right = np.cross(forward, np.asarray(self.up, dtype=np.float64))
        right_norm = np.linalg.norm(right)
        if right_norm < 1e-12:
            raise ValueError("Camera up vector is parallel to the view direction")
        right /= right_norm

        true_up = np.cross(right, forward)
        return forward, right, true_up

    def to_ndc(self, screen_x: float, screen_y: float) -> tuple[float, float]:
        """Convert pixel coordinates to normalized device coordinates (-1..1)."""
        return (
            (screen_x / self.width) * 2 - 1,
            -(screen_y / self.height) * 2 + 1,
        )

    def ray(self, screen_x: float, screen_y: float) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Ray from the eye through a screen point.

        Returns:
            (origin, unit direction)
        """
        ndc_x, ndc_y = self.to_ndc(screen_x, screen_y)
        forward, right, up = self.basis()
        half_height = np.tan(np.radians(self.fov_deg) / 2)
        half_width = half_height * self.aspect

        direction = forward + ndc_x * half_width * right + ndc_y * half_height * up
        direction /= np.linalg.norm(direction)
        return np.asarray(self.position, dtype=np.float64), direction
