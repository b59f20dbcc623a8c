"""Minimal 3-component vector used for RGB coordinates and weighted sums."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Vector3:
    x: float
    y: float
    z: float

    def scale(self, factor: float) -> Vector3:
        return Vector3(self.x * factor, self.y * factor, self.z * factor)

    def add(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def add_in_place(self, other: Vector3) -> None:
        """Accumulate ``other`` into this vector.

        Only meant for running sums, every other operation returns a new vector.
        """

        self.x += other.x
        self.y += other.y
        self.z += other.z

    def squared_distance(self, other: Vector3) -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return dx * dx + dy * dy + dz * dz
