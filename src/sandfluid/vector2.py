from __future__ import annotations

from dataclasses import dataclass

import math


@dataclass(slots=True)
class Vector2:
    """Mutable 2D float vector. Arithmetic returns new vectors; x, y may be assigned."""
    x: float = 0.0
    y: float = 0.0

    def add(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def sub(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def scale(self, k: float) -> Vector2:
        return Vector2(self.x * k, self.y * k)

    mult = scale

    def dot(self, other: Vector2) -> float:
        return self.x * other.x + self.y * other.y

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y)

    def normalize(self) -> Vector2:
        """Unit vector in the same direction; the zero vector maps to (0, 0)."""
        n = self.length()
        if n > 0.0:
            return Vector2(self.x / n, self.y / n)
        return Vector2(0.0, 0.0)

    def copy(self) -> Vector2:
        return Vector2(self.x, self.y)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    def __add__(self, other: Vector2) -> Vector2:
        return self.add(other)

    def __sub__(self, other: Vector2) -> Vector2:
        return self.sub(other)

    def __mul__(self, k: float) -> Vector2:
        return self.scale(k)

    __rmul__ = __mul__

    def __neg__(self) -> Vector2:
        return Vector2(-self.x, -self.y)
