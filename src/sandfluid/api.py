from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import logging
import math
import numpy as np

from .errors import InvalidConfiguration
from .field import NumbaConfig, PressureSolver, VelocityField
from .particles import ParticleBody, ParticleKind, ParticleSnapshot
from .system import ParticleSystem, RestingMode

logger = logging.getLogger(__name__)


# ----------------------
# Configuration objects
# ----------------------

def _require_positive(value: float, name: str) -> None:
    if not (math.isfinite(value) and value > 0):
        raise InvalidConfiguration(f"{name} must be positive.")


@dataclass(slots=True)
class FieldConfig:
    """Grid solver options. Defaults are the tuned reference values."""
    cell_size: float = 5.0
    viscosity: float = 0.1
    dt: float = 0.1
    decay: float = 0.99
    pressure_iterations: int = 20
    pressure_solver: PressureSolver = "gauss_seidel"
    numba: NumbaConfig = field(default_factory=NumbaConfig)

    def __post_init__(self) -> None:
        _require_positive(self.cell_size, "cell_size")
        _require_positive(self.dt, "field dt")
        if not (math.isfinite(self.viscosity) and self.viscosity >= 0):
            raise InvalidConfiguration("viscosity must be non-negative.")
        if not (0.0 <= self.decay <= 1.0):
            raise InvalidConfiguration("decay must lie in [0, 1].")
        if self.pressure_iterations < 0:
            raise InvalidConfiguration("pressure_iterations must be non-negative.")
        if self.pressure_solver not in {"gauss_seidel", "jacobi"}:
            raise InvalidConfiguration(f"Unknown pressure_solver: {self.pressure_solver}")


@dataclass(slots=True)
class ParticleConfig:
    """Particle pipeline options.

    bucket_size: spatial hash bucket edge (world units)
    collision_restitution: scale applied to the swapped normal velocities
    fluid_drag: fraction of the sampled fluid velocity applied as force
    """
    dt: float = 0.16
    bucket_size: float = 8.0
    collision_restitution: float = 0.5
    fluid_drag: float = 0.5
    resting_mode: RestingMode = "exhaustive"

    def __post_init__(self) -> None:
        _require_positive(self.dt, "particle dt")
        _require_positive(self.bucket_size, "bucket_size")
        if not (0.0 <= self.collision_restitution <= 1.0):
            raise InvalidConfiguration("collision_restitution must lie in [0, 1].")
        if self.resting_mode not in {"exhaustive", "hashed"}:
            raise InvalidConfiguration(f"Unknown resting_mode: {self.resting_mode}")


@dataclass(slots=True)
class SimulationConfig:
    """Top-level run options; force_radius is in grid cells."""
    fluid: FieldConfig = field(default_factory=FieldConfig)
    particles: ParticleConfig = field(default_factory=ParticleConfig)
    force_radius: float = 3.0
    force_scale: float = 0.2
    initial_particles: int = 0
    dust_fraction: float = 0.5

    def __post_init__(self) -> None:
        _require_positive(self.force_radius, "force_radius")
        if self.initial_particles < 0:
            raise InvalidConfiguration("initial_particles must be non-negative.")
        if not (0.0 <= self.dust_fraction <= 1.0):
            raise InvalidConfiguration("dust_fraction must lie in [0, 1].")


# ----------------------
# Constructors
# ----------------------

def create_field(rows: int, cols: int, cell_size: float, **kwargs: Any) -> VelocityField:
    return VelocityField(rows, cols, cell_size, **kwargs)


def create_particle(kind: ParticleKind | str, x: float, y: float) -> ParticleBody:
    return ParticleBody.create(kind, x, y)


# ----------------------
# Simulation
# ----------------------

class Simulation:
    """Velocity field and particle system advanced together, one tick per ``step``.

    Inputs (force injection, spawning, reset) are plain method calls made
    between ticks; the core holds no pause or toggle state.
    """

    def __init__(
        self,
        width: float,
        height: float,
        config: SimulationConfig | None = None,
        *,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        _require_positive(width, "width")
        _require_positive(height, "height")
        self.config = config or SimulationConfig()
        fc = self.config.fluid
        pc = self.config.particles
        rows = int(math.floor(height / fc.cell_size))
        cols = int(math.floor(width / fc.cell_size))
        self._width = float(width)
        self._height = float(height)
        self.field = create_field(
            rows, cols, fc.cell_size,
            decay=fc.decay,
            pressure_iterations=fc.pressure_iterations,
            pressure_solver=fc.pressure_solver,
            numba_cfg=fc.numba,
        )
        self.system = ParticleSystem(
            self._width, self._height,
            bucket_size=pc.bucket_size,
            collision_restitution=pc.collision_restitution,
            fluid_drag=pc.fluid_drag,
            resting_mode=pc.resting_mode,
        )
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self._tick = 0
        if self.config.initial_particles:
            self.seed_particles(self.config.initial_particles, dust_fraction=self.config.dust_fraction)
        logger.info(
            "Simulation created: %gx%g domain, %dx%d grid (cell %g), %d particles.",
            self._width, self._height, rows, cols, fc.cell_size, len(self.system),
        )

    # -------- properties --------
    @property
    def width(self) -> float: return self._width

    @property
    def height(self) -> float: return self._height

    @property
    def tick(self) -> int: return self._tick

    @property
    def particle_count(self) -> int: return len(self.system)

    # -------- inputs --------
    def inject_force(self, world_x: float, world_y: float, dx: float, dy: float, radius: float | None = None) -> None:
        """Pointer-drag input: push the fluid around a world position.

        ``radius`` is in grid cells (default ``config.force_radius``); the drag
        delta is scaled by ``config.force_scale``.
        """
        if not (math.isfinite(world_x) and math.isfinite(world_y)):
            return
        h = self.field.cell_size
        r = self.config.force_radius if radius is None else radius
        k = self.config.force_scale
        self.field.inject_force(math.floor(world_x / h), math.floor(world_y / h), dx * k, dy * k, r)

    def spawn(self, kind: ParticleKind | str, x: float, y: float) -> ParticleBody:
        return self.system.spawn(kind, x, y)

    def spawn_burst(
        self, kind: ParticleKind | str, x: float, y: float, count: int, *, spread: float = 20.0
    ) -> list[ParticleBody]:
        """Spawn ``count`` particles scattered uniformly in a ``spread``-wide square around (x, y)."""
        kind = ParticleKind.parse(kind)
        out = []
        for _ in range(count):
            ox = (self.rng.random() - 0.5) * spread
            oy = (self.rng.random() - 0.5) * spread
            out.append(self.system.spawn(kind, x + ox, y + oy))
        return out

    def seed_particles(self, count: int, *, dust_fraction: float = 0.5) -> list[ParticleBody]:
        """Random initial population in the upper half of the domain."""
        out = []
        for _ in range(count):
            kind = ParticleKind.DUST if self.rng.random() < dust_fraction else ParticleKind.SAND
            x = self.rng.random() * self._width
            y = self.rng.random() * (self._height * 0.5)
            out.append(self.system.spawn(kind, x, y))
        return out

    def reset_all(self) -> None:
        self.system.clear()
        self.field.reset()
        logger.info("Simulation reset at tick %d.", self._tick)

    # -------- stepping --------
    def step(self, field_dt: float | None = None, particle_dt: float | None = None) -> None:
        """Advance the field, then the particles, by one tick."""
        fc = self.config.fluid
        self.field.step(fc.dt if field_dt is None else field_dt, fc.viscosity)
        self.system.step(self.field, self.config.particles.dt if particle_dt is None else particle_dt)
        self._tick += 1
        logger.debug("tick %d: %d particles", self._tick, len(self.system))

    def run(self, steps: int) -> None:
        for _ in range(steps):
            self.step()

    # -------- read access --------
    def field_velocity_at(self, cell_x: int, cell_y: int) -> tuple[float, float]:
        return self.field.velocity_at(cell_x, cell_y)

    def particles(self) -> list[ParticleSnapshot]:
        return self.system.snapshot()

    def diagnostics(self) -> dict[str, Any]:
        speeds = [p.vel.length() for p in self.system]
        return {
            "tick": self._tick,
            "particle_count": len(self.system),
            "sand_count": self.system.count(ParticleKind.SAND),
            "dust_count": self.system.count(ParticleKind.DUST),
            "max_fluid_speed": self.field.max_speed(),
            "max_abs_divergence": float(np.abs(self.field.divergence()[1:-1, 1:-1]).max(initial=0.0)),
            "particle_kinetic_energy": float(sum(p.kinetic_energy() for p in self.system)),
            "max_particle_speed": max(speeds, default=0.0),
        }
