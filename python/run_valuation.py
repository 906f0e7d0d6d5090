from __future__ import annotations

import os
import sys
import json
import logging
import argparse
from dataclasses import asdict, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

# allow running from repo root
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
PYTHON_DIR = os.path.join(REPO_ROOT, "python")
if PYTHON_DIR not in sys.path:
    sys.path.insert(0, PYTHON_DIR)

from rdoption import EngineConfig, ProcessParameters, RealOptionError, value_project_with_report
from rdoption.simulate import PathSimulator
from rdoption.validators import validate_diagnostics, validate_paths

logger = logging.getLogger("run_valuation")


def ensure_dir(p: str) -> None:
    os.makedirs(p, exist_ok=True)


def save_json(path: str, obj: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2)


def format_money(x: float, symbol: str = "$", precision: int = 2) -> str:
    sign = "-" if x < 0 else ""
    return f"{sign}{symbol}{abs(x):,.{precision}f}"


def plot_and_save(diag: pd.DataFrame, params: ProcessParameters, outdir: str, seed: Optional[int]) -> None:
    ensure_dir(outdir)
    d = diag.sort_values("period")

    # Mean value-function column by period
    fig, ax = plt.subplots()
    ax.plot(d["time"], d["mean_value"])
    ax.set_xlabel("Years")
    ax.set_ylabel("Mean value across runs")
    fig.tight_layout()
    fig.savefig(os.path.join(outdir, "value_by_period.png"))
    plt.close(fig)

    # Investment phase: still investing / invest decisions / completed
    fig, ax = plt.subplots()
    ax.plot(d["time"], d["investing_runs"], label="Investing")
    ax.plot(d["time"], d["invest_decisions"], label="Invest decisions")
    ax.plot(d["time"], d["completed_runs"], label="Completed")
    ax.legend()
    fig.tight_layout()
    fig.savefig(os.path.join(outdir, "investment_phase.png"))
    plt.close(fig)

    # A handful of sample paths, re-simulated (paths are never stored)
    sample = PathSimulator(seed=seed).simulate(params.replace(runs=min(20, params.runs)))
    t = (np.arange(params.n_periods) + 1) * params.time_step
    fig, (ax1, ax2) = plt.subplots(2, 1, sharex=True)
    ax1.plot(t, sample.net_cash.T, lw=0.8)
    ax1.set_ylabel("Net cash flow")
    ax2.plot(t, sample.remaining_cost.T, lw=0.8)
    ax2.set_ylabel("Remaining cost")
    ax2.set_xlabel("Years")
    fig.tight_layout()
    fig.savefig(os.path.join(outdir, "sample_paths.png"))
    plt.close(fig)


def load_params(args: argparse.Namespace) -> ProcessParameters:
    if args.config:
        with open(args.config, "r", encoding="utf-8") as f:
            params = ProcessParameters.from_dict(json.load(f))
    else:
        params = ProcessParameters.reference()

    overrides = {
        f.name: getattr(args, f.name)
        for f in fields(ProcessParameters)
        if getattr(args, f.name, None) is not None
    }
    return params.replace(**overrides).validate()


def engine_kwargs(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "seed": args.seed,
        "workers": args.workers,
        "chunk_runs": args.chunk_runs,
        "ridge": args.ridge,
        "max_seconds": args.max_seconds,
    }


def sweep(params: ProcessParameters, outdir: str, args: argparse.Namespace) -> pd.DataFrame:
    """
    One-at-a-time sweep of a single parameter, everything else fixed.
    """
    field_names = {f.name for f in fields(ProcessParameters)}
    if args.sweep_param not in field_names:
        raise ValueError(f"Unknown sweep parameter: {args.sweep_param}")

    rows: List[Dict[str, float]] = []
    for v in [float(x) for x in args.sweep_values.split(",")]:
        p = params.replace(**{args.sweep_param: v})
        _res, report = value_project_with_report(p, **engine_kwargs(args))
        rows.append({args.sweep_param: v, **report})

    out = pd.DataFrame(rows)
    out.to_csv(os.path.join(outdir, "sweep_summary.csv"), index=False)
    return out


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="R&D real option valuation by Least Squares Monte Carlo")

    p.add_argument("--config", default=None, help="JSON file with ProcessParameters fields")
    for f in fields(ProcessParameters):
        kind = int if f.name in ("runs", "polynomial_order") else float
        p.add_argument(f"--{f.name.replace('_', '-')}", dest=f.name, type=kind, default=None)

    defaults = EngineConfig()
    p.add_argument("--seed", type=int, default=defaults.seed)
    p.add_argument("--workers", type=int, default=defaults.workers)
    p.add_argument("--chunk-runs", type=int, default=defaults.chunk_runs)
    p.add_argument("--ridge", type=float, default=defaults.ridge)
    p.add_argument("--max-seconds", type=float, default=None)

    p.add_argument("--save-plots", action="store_true")
    p.add_argument("--sweep-param", default=None, help="e.g. terminal_multiplier")
    p.add_argument("--sweep-values", default="0,2.5,5,7.5,10")

    p.add_argument("--outdir", default=None, help="output directory; default results/run_<timestamp>")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.captureWarnings(True)

    run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    outdir = args.outdir or os.path.join(REPO_ROOT, "results", f"run_{run_id}")
    ensure_dir(outdir)

    try:
        params = load_params(args)
        save_json(os.path.join(outdir, "config.json"), {
            "params": params.to_dict(),
            "engine": asdict(EngineConfig(**engine_kwargs(args))),
        })

        res, report = value_project_with_report(params, **engine_kwargs(args))
    except (RealOptionError, OSError, json.JSONDecodeError) as e:
        logger.error("valuation failed: %s", e)
        return 2

    res.diagnostics.to_csv(os.path.join(outdir, "diagnostics.csv"), index=False)
    save_json(os.path.join(outdir, "report.json"), report)

    checks = validate_diagnostics(res.diagnostics)
    if params.runs <= 50_000:
        checks.update(validate_paths(PathSimulator(seed=args.seed, chunk_runs=args.chunk_runs).simulate(params)))
    save_json(os.path.join(outdir, "validators.json"), checks)
    if not all(checks.values()):
        logger.warning("validator failures: %s", [k for k, v in checks.items() if not v])

    if args.save_plots:
        plot_and_save(res.diagnostics, params, os.path.join(outdir, "plots"), args.seed)

    if args.sweep_param:
        sweep_df = sweep(params, outdir, args)
        print("Sweep rows:", len(sweep_df))

    print("The Project Value:", format_money(res.value))
    print(f"MC stderr: {format_money(res.mc_stderr)}  "
          f"(certainty equivalent {format_money(report['certainty_equivalent'])}, "
          f"option premium {format_money(report['option_premium'])})")
    print(f"Saved results to: {outdir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
