from __future__ import annotations

import pytest

from sandfluid import FieldConfig, NumbaConfig, Simulation, SimulationConfig, VelocityField


@pytest.mark.benchmark(group="field-step")
@pytest.mark.parametrize("use_numba", [False, True])
@pytest.mark.parametrize("solver", ["gauss_seidel", "jacobi"])
def test_field_step_benchmark(benchmark, use_numba: bool, solver: str) -> None:
    field = VelocityField(140, 120, 5.0, pressure_solver=solver, numba_cfg=NumbaConfig(enabled=use_numba))
    field.inject_force(60, 70, 2.0, 1.0, 3)

    def run() -> None:
        field.step(0.1, 0.1)

    benchmark(run)


@pytest.mark.benchmark(group="simulation-step")
@pytest.mark.parametrize("N", [250, 1_000])
def test_simulation_step_benchmark(benchmark, N: int) -> None:
    cfg = SimulationConfig(fluid=FieldConfig(numba=NumbaConfig(enabled=True)), initial_particles=N)
    sim = Simulation(600.0, 700.0, cfg, seed=0)

    def run() -> None:
        sim.inject_force(300.0, 350.0, 4.0, 0.0)
        sim.step()
        assert sim.particle_count == N

    benchmark(run)
