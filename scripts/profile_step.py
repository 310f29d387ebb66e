from __future__ import annotations

import argparse
import time
import tracemalloc

from sandfluid import FieldConfig, NumbaConfig, Simulation, SimulationConfig


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--N", type=int, default=1000)
    ap.add_argument("--steps", type=int, default=50)
    ap.add_argument("--no-numba", dest="numba", action="store_false")
    ap.add_argument("--solver", choices=["gauss_seidel", "jacobi"], default="gauss_seidel")
    ap.add_argument("--resting", choices=["exhaustive", "hashed"], default="exhaustive")
    args = ap.parse_args()

    cfg = SimulationConfig(
        fluid=FieldConfig(pressure_solver=args.solver, numba=NumbaConfig(enabled=bool(args.numba))),
        initial_particles=args.N,
    )
    cfg.particles.resting_mode = args.resting
    sim = Simulation(600.0, 700.0, cfg, seed=0)
    sim.step()  # warm-up (JIT compile)

    tracemalloc.start()
    t0 = time.perf_counter()
    for _ in range(args.steps):
        sim.inject_force(300.0, 350.0, 4.0, 0.0)
        sim.step()
    elapsed = time.perf_counter() - t0
    _, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()
    print(
        f"step(N={args.N}, numba={args.numba}, solver={args.solver}, resting={args.resting}) "
        f"{1e3 * elapsed / args.steps:.2f} ms/tick peak={peak/1e6:.1f} MB"
    )

if __name__ == "__main__":
    main()
