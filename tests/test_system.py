from __future__ import annotations

import numpy as np
import pytest

from sandfluid import ParticleKind, ParticleSystem, Vector2, VelocityField


def make_system(*particles, **kwargs) -> ParticleSystem:
    system = ParticleSystem(100.0, 100.0, **kwargs)
    for kind, x, y in particles:
        system.spawn(kind, x, y)
    return system


def test_dust_pairs_do_not_collide() -> None:
    system = make_system((ParticleKind.DUST, 50.0, 50.0), (ParticleKind.DUST, 51.0, 50.0))
    system[0].vel = Vector2(1.0, 0.0)
    system.rebuild_hash()
    system.resolve_collisions()
    assert system[0].pos == Vector2(50.0, 50.0)
    assert system[1].pos == Vector2(51.0, 50.0)
    assert system[0].vel == Vector2(1.0, 0.0)


def test_collision_response_formula() -> None:
    system = make_system((ParticleKind.SAND, 50.0, 50.0), (ParticleKind.SAND, 53.0, 50.0))
    p1, p2 = system[0], system[1]
    p1.vel = Vector2(1.0, 0.5)
    p2.vel = Vector2(-2.0, 0.25)
    system.rebuild_hash()
    system.resolve_collisions()
    # half the overlap each, along the contact normal (+x)
    assert p1.pos.x == pytest.approx(49.5)
    assert p2.pos.x == pytest.approx(53.5)
    assert p1.pos.y == p2.pos.y == 50.0
    # normal components swapped and halved; tangential untouched
    assert p1.vel.x == pytest.approx(-1.0)
    assert p2.vel.x == pytest.approx(0.5)
    assert (p1.vel.y, p2.vel.y) == (0.5, 0.25)


def test_collision_momentum_change() -> None:
    rng = np.random.default_rng(2)
    e = 0.5
    for _ in range(50):
        system = make_system((ParticleKind.SAND, 50.0, 50.0), (ParticleKind.DUST, 50.0, 50.0))
        offset = rng.normal(0.0, 1.0, size=2)
        offset *= 2.5 / np.linalg.norm(offset)
        system[1].pos = Vector2(50.0 + offset[0], 50.0 + offset[1])
        system[0].vel = Vector2(*rng.normal(0.0, 2.0, size=2))
        system[1].vel = Vector2(*rng.normal(0.0, 2.0, size=2))
        n = offset / np.linalg.norm(offset)
        v1 = system[0].vel.x * n[0] + system[0].vel.y * n[1]
        v2 = system[1].vel.x * n[0] + system[1].vel.y * n[1]
        before = (system[0].vel.copy(), system[1].vel.copy())
        system.rebuild_hash()
        system.resolve_collisions()
        d1 = system[0].vel - before[0]
        d2 = system[1].vel - before[1]
        # each change lies along the normal
        assert d1.x * n[1] - d1.y * n[0] == pytest.approx(0.0, abs=1e-12)
        assert d2.x * n[1] - d2.y * n[0] == pytest.approx(0.0, abs=1e-12)
        total = (d1.x + d2.x) * n[0] + (d1.y + d2.y) * n[1]
        assert total == pytest.approx((e - 1.0) * (v1 + v2))


def test_coincident_particles_skipped() -> None:
    system = make_system((ParticleKind.SAND, 20.0, 20.0), (ParticleKind.SAND, 20.0, 20.0))
    system.rebuild_hash()
    system.resolve_collisions()
    assert system[0].pos == system[1].pos == Vector2(20.0, 20.0)


def test_resting_constraint_sits_dust_on_sand() -> None:
    system = make_system((ParticleKind.DUST, 50.0, 47.0), (ParticleKind.SAND, 50.5, 50.0))
    dust = system[0]
    dust.vel = Vector2(0.3, 1.2)
    system.apply_resting_constraint()
    assert dust.pos.y == pytest.approx(50.0 - 3.5)
    assert dust.pos.x == 50.0
    assert dust.vel == Vector2(0.3, 0.0)


def test_resting_constraint_ignores_sand_above() -> None:
    system = make_system((ParticleKind.DUST, 50.0, 50.0), (ParticleKind.SAND, 50.0, 48.0))
    system[0].vel = Vector2(0.0, -1.0)
    system.apply_resting_constraint()
    assert system[0].pos == Vector2(50.0, 50.0)
    assert system[0].vel == Vector2(0.0, -1.0)


def _populate(system: ParticleSystem, seed: int) -> None:
    rng = np.random.default_rng(seed)
    for _ in range(30):
        kind = ParticleKind.DUST if rng.random() < 0.5 else ParticleKind.SAND
        system.spawn(kind, rng.random() * system.width, rng.random() * system.height)


def test_hashed_resting_matches_exhaustive() -> None:
    field = VelocityField(20, 20, 5.0)
    a = ParticleSystem(100.0, 100.0, resting_mode="exhaustive")
    b = ParticleSystem(100.0, 100.0, resting_mode="hashed")
    _populate(a, seed=21)
    _populate(b, seed=21)
    for _ in range(5):
        a.step(field, 0.16)
        b.step(field, 0.16)
    for pa, pb in zip(a, b):
        assert pa.pos.as_tuple() == pytest.approx(pb.pos.as_tuple())
        assert pa.vel.as_tuple() == pytest.approx(pb.vel.as_tuple())


def test_hashed_resting_sees_sand_outside_domain() -> None:
    grains = ((ParticleKind.DUST, 1.0, 10.0), (ParticleKind.SAND, -0.5, 12.0))
    a = make_system(*grains, resting_mode="exhaustive")
    b = make_system(*grains, resting_mode="hashed")
    a.apply_resting_constraint()
    b.apply_resting_constraint()
    assert a[0].pos == b[0].pos == Vector2(1.0, 8.5)


def test_hashed_resting_matches_exhaustive_on_stacked_wall_pile() -> None:
    rng = np.random.default_rng(8)
    grains = [(ParticleKind.SAND, -1.0, 20.0 + 2.5 * k) for k in range(6)]
    grains += [(ParticleKind.SAND, 101.0, 20.0 + 2.5 * k) for k in range(6)]
    for _ in range(30):
        x = float(rng.choice([rng.uniform(-3.0, 3.0), rng.uniform(97.0, 103.0)]))
        grains.append((ParticleKind.DUST, x, float(rng.uniform(15.0, 40.0))))
    a = make_system(*grains, resting_mode="exhaustive")
    b = make_system(*grains, resting_mode="hashed")
    a.apply_resting_constraint()
    b.apply_resting_constraint()
    for pa, pb in zip(a, b):
        assert pa.pos == pb.pos
        assert pa.vel == pb.vel


def test_step_preserves_count_and_containment() -> None:
    field = VelocityField(20, 20, 5.0)
    field.u[:, :] = 3.0
    field.v[:, :] = -1.0
    system = ParticleSystem(100.0, 100.0)
    _populate(system, seed=4)
    for _ in range(20):
        system.step(field, 0.16)
        assert len(system) == 30
    for p in system:
        assert p.radius <= p.pos.x <= system.width - p.radius
        assert p.radius <= p.pos.y <= system.height - p.radius


def test_fluid_drag_pushes_particles() -> None:
    field = VelocityField(20, 20, 5.0)
    field.u[:, :] = 2.0
    system = make_system((ParticleKind.SAND, 50.0, 50.0))
    system.step(field, 0.16)
    # force 0.5 * 2.0 on unit mass
    assert system[0].vel.x == pytest.approx(1.0 * 0.16)


def test_sand_settles_on_floor() -> None:
    height = 400.0
    field = VelocityField(80, 40, 5.0)
    system = ParticleSystem(200.0, height)
    grain = system.spawn(ParticleKind.SAND, 100.0, 0.0)
    for _ in range(800):
        system.step(field, 0.16)
    assert grain.pos.y == height - grain.radius
    assert abs(grain.vel.y) < 1e-2
    assert grain.pos.x == 100.0
