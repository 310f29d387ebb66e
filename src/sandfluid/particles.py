from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

import math

from .errors import InvalidConfiguration
from .vector2 import Vector2


class ParticleKind(str, Enum):
    SAND = "sand"
    DUST = "dust"

    @classmethod
    def parse(cls, value: ParticleKind | str) -> ParticleKind:
        if isinstance(value, ParticleKind):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidConfiguration(f"Unknown particle kind: {value!r}") from None


@dataclass(frozen=True, slots=True)
class KindConstants:
    """Per-species physical constants.

    gravity: downward acceleration coefficient (force = gravity * mass)
    max_speed: velocity magnitude cap applied after each integration
    restitution: fraction of the normal velocity kept on a wall bounce
    """
    mass: float
    radius: float
    gravity: float
    max_speed: float
    restitution: float
    color: str

    def __post_init__(self) -> None:
        if not (math.isfinite(self.mass) and self.mass > 0):
            raise InvalidConfiguration("particle mass must be positive.")
        if not (math.isfinite(self.radius) and self.radius > 0):
            raise InvalidConfiguration("particle radius must be positive.")
        if not self.max_speed > 0:
            raise InvalidConfiguration("max_speed must be positive.")


KIND_CONSTANTS: Mapping[ParticleKind, KindConstants] = MappingProxyType({
    ParticleKind.SAND: KindConstants(mass=1.0, radius=2.0, gravity=0.3, max_speed=10.0, restitution=0.1, color="#e6c288"),
    ParticleKind.DUST: KindConstants(mass=0.5, radius=1.5, gravity=0.2, max_speed=4.0, restitution=0.1, color="#bfc9d1"),
})


@dataclass(frozen=True, slots=True)
class ParticleSnapshot:
    pos: tuple[float, float]
    vel: tuple[float, float]
    radius: float
    color: str
    kind: ParticleKind


@dataclass(slots=True, eq=False)
class ParticleBody:
    """Point-mass grain. Sand and Dust share this structure; ``kind`` selects the constants.

    ``constants`` is always looked up from ``kind``, so the species rule and
    the physics cannot disagree.

    Screen convention: y grows downward, so gravity pushes towards +y.
    """
    pos: Vector2
    kind: ParticleKind = ParticleKind.SAND
    vel: Vector2 = field(default_factory=Vector2)
    acc: Vector2 = field(default_factory=Vector2)
    constants: KindConstants = field(init=False)

    def __post_init__(self) -> None:
        self.kind = ParticleKind.parse(self.kind)
        self.constants = KIND_CONSTANTS[self.kind]

    @classmethod
    def create(cls, kind: ParticleKind | str, x: float, y: float) -> ParticleBody:
        return cls(pos=Vector2(float(x), float(y)), kind=ParticleKind.parse(kind))

    # -------- properties --------
    @property
    def mass(self) -> float: return self.constants.mass

    @property
    def radius(self) -> float: return self.constants.radius

    @property
    def color(self) -> str: return self.constants.color

    @property
    def is_dust(self) -> bool: return self.kind is ParticleKind.DUST

    # -------- dynamics --------
    def apply_force(self, force: Vector2) -> None:
        self.acc = self.acc + force * (1.0 / self.mass)

    def integrate(self, dt: float) -> None:
        """Gravity, velocity update with speed cap, position update; clears acceleration."""
        c = self.constants
        self.apply_force(Vector2(0.0, c.gravity * c.mass))
        self.vel = self.vel + self.acc * dt
        speed = self.vel.length()
        if speed > c.max_speed:
            self.vel = self.vel.normalize() * c.max_speed
        self.pos = self.pos + self.vel * dt
        self.acc = Vector2(0.0, 0.0)

    def reflect_boundary(self, width: float, height: float) -> None:
        """Clamp to the walls and bounce the offending velocity component."""
        r = self.radius
        bounce = self.constants.restitution
        if self.pos.x < r:
            self.pos.x = r
            self.vel.x *= -bounce
        if self.pos.x > width - r:
            self.pos.x = width - r
            self.vel.x *= -bounce
        if self.pos.y < r:
            self.pos.y = r
            self.vel.y *= -bounce
        if self.pos.y > height - r:
            self.pos.y = height - r
            self.vel.y *= -bounce

    def kinetic_energy(self) -> float:
        return 0.5 * self.mass * self.vel.dot(self.vel)

    def snapshot(self) -> ParticleSnapshot:
        return ParticleSnapshot(
            pos=self.pos.as_tuple(),
            vel=self.vel.as_tuple(),
            radius=self.radius,
            color=self.color,
            kind=self.kind,
        )
