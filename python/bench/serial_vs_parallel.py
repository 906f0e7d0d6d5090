from __future__ import annotations

import os
import sys
import time

import numpy as np

# allow running from repo root
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
PYTHON_DIR = os.path.join(REPO_ROOT, "python")
if PYTHON_DIR not in sys.path:
    sys.path.insert(0, PYTHON_DIR)

from rdoption import PathSimulator, ProcessParameters


def run_once(workers: int) -> tuple[float, np.ndarray]:
    params = ProcessParameters.reference()
    sim = PathSimulator(seed=355, workers=workers, chunk_runs=20_000)

    t0 = time.perf_counter()
    paths = sim.simulate(params)
    t1 = time.perf_counter()
    return t1 - t0, paths.net_cash[:, -1]


def main():
    t_serial, a = run_once(workers=1)
    t_parallel, b = run_once(workers=os.cpu_count() or 4)

    speedup = (t_serial / t_parallel) if t_parallel > 0 else np.nan
    print(f"Serial   simulation runtime: {t_serial:.3f}s")
    print(f"Threaded simulation runtime: {t_parallel:.3f}s")
    print(f"Speedup: {speedup:.2f}x  identical paths: {bool(np.array_equal(a, b))}")


if __name__ == "__main__":
    main()
