from __future__ import annotations

from collections.abc import Iterator
from typing import Literal

import logging
import math

from .errors import InvalidConfiguration
from .field import VelocityField
from .particles import ParticleBody, ParticleKind, ParticleSnapshot
from .spatial_hash import Buckets, SpatialHashGrid, neighbors_in, unbounded_buckets
from .vector2 import Vector2

logger = logging.getLogger(__name__)

RestingMode = Literal["exhaustive", "hashed"]


class ParticleSystem:
    """Ordered particle list plus the per-tick collision and coupling pipeline.

    Per tick: broad phase (spatial hash), narrow phase with positional
    correction and damped bounce, dust-on-sand resting constraint, fluid drag,
    then integration and wall reflection.
    """

    def __init__(
        self,
        width: float,
        height: float,
        *,
        bucket_size: float = 8.0,
        collision_restitution: float = 0.5,
        fluid_drag: float = 0.5,
        resting_mode: RestingMode = "exhaustive",
    ) -> None:
        if not (width > 0 and height > 0):
            raise InvalidConfiguration("domain width and height must be positive.")
        if not (math.isfinite(bucket_size) and bucket_size > 0):
            raise InvalidConfiguration("bucket_size must be positive.")
        if resting_mode not in {"exhaustive", "hashed"}:
            raise InvalidConfiguration(f"Unknown resting_mode: {resting_mode}")
        self._width = float(width)
        self._height = float(height)
        self._bucket = float(bucket_size)
        self._restitution = float(collision_restitution)
        self._drag = float(fluid_drag)
        self._resting_mode: RestingMode = resting_mode
        self._particles: list[ParticleBody] = []
        self._hash = SpatialHashGrid(self._width, self._height)

    # -------- properties --------
    @property
    def width(self) -> float: return self._width

    @property
    def height(self) -> float: return self._height

    @property
    def particles(self) -> tuple[ParticleBody, ...]: return tuple(self._particles)

    @property
    def spatial_hash(self) -> SpatialHashGrid: return self._hash

    def __len__(self) -> int:
        return len(self._particles)

    def __iter__(self) -> Iterator[ParticleBody]:
        return iter(self._particles)

    def __getitem__(self, idx: int) -> ParticleBody:
        return self._particles[idx]

    # -------- population --------
    def add(self, particle: ParticleBody) -> ParticleBody:
        self._particles.append(particle)
        return particle

    def spawn(self, kind: ParticleKind | str, x: float, y: float) -> ParticleBody:
        return self.add(ParticleBody.create(kind, x, y))

    def clear(self) -> None:
        self._particles.clear()

    def snapshot(self) -> list[ParticleSnapshot]:
        return [p.snapshot() for p in self._particles]

    def count(self, kind: ParticleKind) -> int:
        return sum(1 for p in self._particles if p.kind is kind)

    # -------- per-tick pipeline --------
    def rebuild_hash(self) -> None:
        self._hash.rebuild(self._particles, self._bucket)

    def step(self, field: VelocityField, dt: float) -> None:
        self.rebuild_hash()
        if len(self._hash) < len(self._particles):
            logger.debug("%d particles outside the domain skipped by broad phase", len(self._particles) - len(self._hash))
        self.resolve_collisions()
        self.apply_resting_constraint()
        drag = self._drag
        for p in self._particles:
            fu, fv = field.sample(p.pos.x, p.pos.y)
            p.apply_force(Vector2(fu * drag, fv * drag))
            p.integrate(dt)
            p.reflect_boundary(self._width, self._height)

    def resolve_collisions(self) -> None:
        """Narrow phase over the broad-phase pairs of the current hash."""
        self._hash.for_each_pair_in_neighborhood(self._collide)

    def _collide(self, i: int, j: int) -> None:
        p1 = self._particles[i]
        p2 = self._particles[j]
        # Dust never collides with dust.
        if p1.is_dust and p2.is_dust:
            return
        dx = p2.pos.x - p1.pos.x
        dy = p2.pos.y - p1.pos.y
        dist = math.sqrt(dx * dx + dy * dy)
        min_dist = p1.radius + p2.radius
        if not (0.0 < dist < min_dist):
            return
        overlap = 0.5 * (min_dist - dist)
        nx = dx / dist
        ny = dy / dist
        p1.pos.x -= nx * overlap
        p1.pos.y -= ny * overlap
        p2.pos.x += nx * overlap
        p2.pos.y += ny * overlap

        # Swap normal components scaled by restitution; tangential parts untouched.
        e = self._restitution
        v1 = p1.vel.x * nx + p1.vel.y * ny
        v2 = p2.vel.x * nx + p2.vel.y * ny
        v1_after = v2 * e
        v2_after = v1 * e
        p1.vel.x += (v1_after - v1) * nx
        p1.vel.y += (v1_after - v1) * ny
        p2.vel.x += (v2_after - v2) * nx
        p2.vel.y += (v2_after - v2) * ny

    def apply_resting_constraint(self) -> None:
        """Sit dust exactly on top of any sand grain it overlaps from above.

        ``"hashed"`` mode looks sand up in buckets that also cover grains
        outside the domain; it matches the exhaustive pass as long as the
        bucket size is at least the largest dust-sand contact distance.
        """
        particles = self._particles
        sand: Buckets | None = None
        if self._resting_mode == "hashed":
            sand = unbounded_buckets(particles, self._bucket, lambda q: not q.is_dust)
        for p in particles:
            if not p.is_dust:
                continue
            if sand is None:
                for other in particles:
                    if not other.is_dust:
                        _rest_on(p, other)
            else:
                self._rest_hashed(p, sand)

    def _rest_hashed(self, p: ParticleBody, sand: Buckets) -> None:
        # A lift moves p, so the remaining candidates come from a fresh query.
        last = -1
        while True:
            for j in neighbors_in(sand, self._bucket, p.pos.x, p.pos.y):
                if j > last and _rest_on(p, self._particles[j]):
                    last = j
                    break
            else:
                return


def _rest_on(p: ParticleBody, other: ParticleBody) -> bool:
    dx = other.pos.x - p.pos.x
    dy = other.pos.y - p.pos.y
    dist = math.sqrt(dx * dx + dy * dy)
    min_dist = p.radius + other.radius
    if not (dist < min_dist and dy > 0):
        return False
    p.pos.y = other.pos.y - min_dist
    if p.vel.y > 0:
        p.vel.y = 0.0
    return True
