from __future__ import annotations

from collections.abc import Callable, Sequence

import math

from .errors import InvalidConfiguration
from .particles import ParticleBody

# 3x3 neighbourhood, rows first then columns.
_NEIGHBOR_OFFSETS = tuple((ox, oy) for oy in (-1, 0, 1) for ox in (-1, 0, 1))

Buckets = dict[tuple[int, int], list[int]]


def bucket_key(x: float, y: float, bucket_size: float) -> tuple[int, int]:
    return (math.floor(x / bucket_size), math.floor(y / bucket_size))


def unbounded_buckets(
    particles: Sequence[ParticleBody],
    bucket_size: float,
    include: Callable[[ParticleBody], bool] | None = None,
) -> Buckets:
    """Bucket every finite position, inside the domain or not.

    Indices are appended in ascending order. ``include`` filters particles.
    """
    buckets: Buckets = {}
    for idx, p in enumerate(particles):
        if include is not None and not include(p):
            continue
        if not (math.isfinite(p.pos.x) and math.isfinite(p.pos.y)):
            continue
        buckets.setdefault(bucket_key(p.pos.x, p.pos.y, bucket_size), []).append(idx)
    return buckets


def neighbors_in(buckets: Buckets, bucket_size: float, x: float, y: float) -> list[int]:
    """Indices in the 3x3 bucket neighbourhood of (x, y), ascending."""
    if not (math.isfinite(x) and math.isfinite(y)):
        return []
    bx, by = bucket_key(x, y, bucket_size)
    out: list[int] = []
    for ox, oy in _NEIGHBOR_OFFSETS:
        out.extend(buckets.get((bx + ox, by + oy), ()))
    out.sort()
    return out


class SpatialHashGrid:
    """Uniform bucket grid over particle positions for collision broad phase.

    Rebuilt from scratch every tick; never a source of truth. Buckets are
    bounded to the domain, so particles outside it are not inserted.
    """

    def __init__(self, width: float, height: float) -> None:
        if not (width > 0 and height > 0):
            raise InvalidConfiguration("domain width and height must be positive.")
        self._width = float(width)
        self._height = float(height)
        self._bucket = 1.0
        self._nx = 0
        self._ny = 0
        self._buckets: dict[tuple[int, int], list[int]] = {}
        self._particles: Sequence[ParticleBody] = ()
        self._count = 0

    @property
    def bucket_size(self) -> float: return self._bucket

    @property
    def dimensions(self) -> tuple[int, int]: return (self._nx, self._ny)

    def __len__(self) -> int:
        return self._count

    def bucket_of(self, x: float, y: float) -> tuple[int, int]:
        return bucket_key(x, y, self._bucket)

    def _valid(self, bx: int, by: int) -> bool:
        return 0 <= bx < self._nx and 0 <= by < self._ny

    def rebuild(self, particles: Sequence[ParticleBody], bucket_size: float) -> None:
        if not (math.isfinite(bucket_size) and bucket_size > 0):
            raise InvalidConfiguration("bucket_size must be positive.")
        self._bucket = float(bucket_size)
        self._nx = math.ceil(self._width / self._bucket)
        self._ny = math.ceil(self._height / self._bucket)
        self._buckets = {}
        self._particles = particles
        self._count = 0
        for idx, p in enumerate(particles):
            if not (math.isfinite(p.pos.x) and math.isfinite(p.pos.y)):
                continue
            key = self.bucket_of(p.pos.x, p.pos.y)
            if self._valid(*key):
                self._buckets.setdefault(key, []).append(idx)
                self._count += 1

    def bucket(self, bx: int, by: int) -> list[int]:
        return self._buckets.get((bx, by), [])

    def neighbors(self, x: float, y: float) -> list[int]:
        """Indices in the 3x3 bucket neighbourhood of (x, y), ascending."""
        return neighbors_in(self._buckets, self._bucket, x, y)

    def for_each_pair_in_neighborhood(self, callback: Callable[[int, int], None]) -> None:
        """Invoke ``callback(i, j)`` once for every candidate pair with i < j.

        The bucket of particle i is taken from its position at the time it is
        visited, so position corrections made by earlier callbacks are seen.
        """
        particles = self._particles
        for i in range(len(particles)):
            p = particles[i]
            if not (math.isfinite(p.pos.x) and math.isfinite(p.pos.y)):
                continue
            bx, by = self.bucket_of(p.pos.x, p.pos.y)
            for ox, oy in _NEIGHBOR_OFFSETS:
                cell = self._buckets.get((bx + ox, by + oy))
                if not cell:
                    continue
                for j in cell:
                    if i >= j:
                        continue
                    callback(i, j)
