from __future__ import annotations

import os, sys
import warnings

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
PYTHON_DIR = os.path.join(REPO_ROOT, "python")
if PYTHON_DIR not in sys.path:
    sys.path.insert(0, PYTHON_DIR)

from rdoption import ProcessParameters, value_project


def main():
    base = ProcessParameters.reference()

    for runs in [5_000, 10_000, 25_000, 50_000, 100_000, 200_000]:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            v, se = value_project(base.replace(runs=runs), seed=355)
        print(f"runs={runs:>7d}  value={v:>16,.2f}  stderr={se:.3e}")

if __name__ == "__main__":
    main()
