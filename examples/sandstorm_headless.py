from __future__ import annotations

import logging

from sandfluid import ParticleKind, Simulation, SimulationConfig


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    sim = Simulation(600.0, 700.0, SimulationConfig(initial_particles=600), seed=42)

    # A pointer dragged left to right across the middle of the tank.
    path = [(100.0 + 10.0 * k, 350.0) for k in range(40)]
    for k in range(300):
        if k < len(path) - 1:
            (x0, y0), (x1, y1) = path[k], path[k + 1]
            sim.inject_force(x1, y1, x1 - x0, y1 - y0)
        if k % 50 == 0:
            sim.spawn_burst(ParticleKind.DUST, 300.0, 40.0, 2)
        sim.step()
        if k % 50 == 0:
            d = sim.diagnostics()
            print(
                f"tick {d['tick']:4d}  particles={d['particle_count']:4d}  "
                f"fluid |u|max={d['max_fluid_speed']:.3f}  KE={d['particle_kinetic_energy']:.2f}"
            )

if __name__ == "__main__":
    main()
