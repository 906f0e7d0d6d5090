from __future__ import annotations

import os
import sys
import json
import argparse
import warnings
from datetime import datetime
from typing import Dict, List

import pandas as pd

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
PYTHON_DIR = os.path.join(REPO_ROOT, "python")
if PYTHON_DIR not in sys.path:
    sys.path.insert(0, PYTHON_DIR)

from rdoption import ProcessParameters, value_project_with_report


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _grid(values: str) -> List[float]:
    return [float(x) for x in values.split(",")]


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Correlation x failure-probability grid for the R&D option")

    p.add_argument("--correlations", default="-0.5,-0.1,0,0.3")
    p.add_argument("--failure-probs", default="0,0.03,0.06931,0.15")
    p.add_argument("--cost-vols", default="0.5", help="cost volatility grid")

    p.add_argument("--runs", type=int, default=50_000)
    p.add_argument("--seed", type=int, default=355)
    p.add_argument("--workers", type=int, default=1)

    p.add_argument("--outdir", default=None, help="default results/sensitivity_<timestamp>")
    return p.parse_args()


def main() -> None:
    args = parse_args()

    run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    outdir = args.outdir or os.path.join(REPO_ROOT, "results", f"sensitivity_{run_id}")
    _ensure_dir(outdir)

    base = ProcessParameters.reference().replace(runs=int(args.runs))

    rows: List[Dict[str, float]] = []
    for cv in _grid(args.cost_vols):
        for rho in _grid(args.correlations):
            for fp in _grid(args.failure_probs):
                params = base.replace(correlation=rho, failure_prob=fp, cost_volatility=cv)
                with warnings.catch_warnings(record=True) as caught:
                    warnings.simplefilter("always")
                    _res, report = value_project_with_report(params, seed=args.seed, workers=args.workers)

                rows.append({
                    "cost_volatility": cv,
                    "correlation": rho,
                    "failure_prob": fp,
                    "n_warnings": float(len(caught)),
                    **report,
                })
                print(f"cv={cv:.2f} rho={rho:+.2f} fail={fp:.4f}  value={report['value']:,.0f}")

    out = pd.DataFrame(rows)
    out.to_csv(os.path.join(outdir, "sensitivity_summary.csv"), index=False)

    meta = {
        "base_params": base.to_dict(),
        "correlations": args.correlations,
        "failure_probs": args.failure_probs,
        "cost_vols": args.cost_vols,
        "seed": args.seed,
        "generated_at": datetime.now().isoformat(),
    }
    with open(os.path.join(outdir, "sensitivity_config.json"), "w", encoding="utf-8") as f:
        json.dump(meta, f, indent=2)

    pivot = out.pivot_table(index="correlation", columns="failure_prob", values="value", aggfunc="mean")
    print(pivot)
    print(f"Saved: {outdir}")


if __name__ == "__main__":
    main()
