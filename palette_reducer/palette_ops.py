"""Colour samples, colour keys and the error types shared by the reducer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .vector import Vector3


ColorTuple = Tuple[int, int, int]


class PaletteError(RuntimeError):
    """Raised when palette reduction fails."""


class EmptyQueueError(PaletteError):
    """Raised when popping from an empty priority queue."""


class ZeroOccupancyError(PaletteError):
    """Raised when a cluster with no observed pixels is merged."""


class InvalidInputError(PaletteError, ValueError):
    """Raised for inputs rejected before the pipeline starts."""


def color_key(red: int, green: int, blue: int) -> int:
    """Pack an RGB triple into a single integer usable as a dict key."""

    return (red << 16) | (green << 8) | blue


def key_to_color(key: int) -> ColorTuple:
    return ((key >> 16) & 0xFF, (key >> 8) & 0xFF, key & 0xFF)


@dataclass(slots=True, eq=False)
class ColorSample:
    """One distinct colour seen in the source image.

    ``replacement`` stays ``None`` until the merge phase points it at the
    representative colour of the cluster this sample ended up in.
    """

    red: int
    green: int
    blue: int
    frequency: int = 0
    replacement: ColorSample | None = None

    @classmethod
    def from_tuple(cls, color: ColorTuple, frequency: int = 0) -> ColorSample:
        return cls(int(color[0]), int(color[1]), int(color[2]), frequency)

    def rgb(self) -> ColorTuple:
        return (self.red, self.green, self.blue)

    def vector(self) -> Vector3:
        return Vector3(self.red, self.green, self.blue)

    def weighted_vector(self) -> Vector3:
        f = self.frequency
        return Vector3(self.red * f, self.green * f, self.blue * f)

    def assign_replacement(self, replacement: ColorSample) -> None:
        if self.replacement is not None and self.replacement is not replacement:
            raise PaletteError(
                f"Colour {self.rgb()} already has a replacement in this merge"
            )
        self.replacement = replacement
