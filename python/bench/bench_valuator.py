from __future__ import annotations

import os, sys, time

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
PYTHON_DIR = os.path.join(REPO_ROOT, "python")
if PYTHON_DIR not in sys.path:
    sys.path.insert(0, PYTHON_DIR)

from rdoption import LsmValuator, PathSimulator, ProcessParameters


def main():
    base = ProcessParameters.reference()

    for runs in [25_000, 50_000, 100_000, 200_000]:
        params = base.replace(runs=runs)
        t0 = time.perf_counter()
        paths = PathSimulator(seed=355).simulate(params)
        t1 = time.perf_counter()
        v = LsmValuator().value(params, *paths)
        t2 = time.perf_counter()
        print(f"runs={runs:>7d}  simulate={t1 - t0:>7.3f}s  lsm={t2 - t1:>7.3f}s  value={v:,.2f}")

if __name__ == "__main__":
    main()
