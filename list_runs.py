#!/usr/bin/env python3
"""
Command-line interface for browsing saved surrogate runs.

Usage:
    python list_runs.py                                  # Table of all runs
    python list_runs.py --num-qubits 4 --tags baseline   # Filtered table
    python list_runs.py --details 20240115_143022_n4_e4_h64x64
"""

import argparse
import json

from spin_surrogate.model import METRIC_NAMES
from spin_surrogate.run_manager import RunManager


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='List saved surrogate runs and their final metrics',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument('--runs-dir', type=str, default='runs', help='Directory holding the runs')
    parser.add_argument('--num-qubits', type=int, help='Only runs on chains of this length')
    parser.add_argument('--tags', type=str, nargs='*', help='Only runs carrying every one of these tags')
    parser.add_argument('--limit', '-n', type=int, default=None, help='Show at most this many runs')
    parser.add_argument('--details', type=str, metavar='RUN_ID', help='Show the metadata of one run')
    parser.add_argument('--json', action='store_true', help='Print raw JSON')

    return parser.parse_args()


def format_metric(value) -> str:
    return "-" if value is None else f"{value:.3e}"


def print_table(runs: list) -> None:
    """One line per run: id, chain and ensemble shape, final metric bundle."""
    header = f"{'run_id':<36} {'n':>2} {'L':>3} {'hidden':<10}" + "".join(f" {m:>10}" for m in METRIC_NAMES)
    print(header)
    print("-" * len(header))
    for run in runs:
        hidden = "x".join(str(d) for d in run['hidden_dims'])
        metrics = run['final_metrics']
        print(f"{run['run_id']:<36} {run['num_qubits']:>2} {run['ensemble_size']:>3} {hidden:<10}"
              + "".join(f" {format_metric(metrics.get(m)):>10}" for m in METRIC_NAMES))


def print_details(metadata: dict) -> None:
    """Config sections, per-trial final losses and the final metric bundle of one run."""
    print(f"Run: {metadata['run_id']}  (created {metadata['created_at'][:19]})")
    print(f"Training: {metadata['trials']} trial(s) x {metadata['epochs_trained']} epochs "
          f"in {metadata['training_time_seconds']:.1f}s, {metadata['model_parameters']:,} parameters")
    for section, values in metadata['config'].items():
        print(f"  [{section}] " + ", ".join(f"{k}={v}" for k, v in values.items()))
    print("Final loss per trial: " + ", ".join(f"{l:.4e}" for l in metadata['final_losses_per_trial']))
    for name in METRIC_NAMES:
        print(f"  {name:<10} {format_metric(metadata['final_metrics'].get(name))}")


def main():
    """Main entry point."""
    args = parse_args()
    run_manager = RunManager(args.runs_dir)

    if args.details:
        try:
            metadata = run_manager.get_run_metadata(args.details)
        except FileNotFoundError as e:
            print(e)
            return 1
        if args.json:
            print(json.dumps(metadata, indent=2))
        else:
            print_details(metadata)
        return 0

    runs = run_manager.list_runs(num_qubits=args.num_qubits, tags=args.tags, limit=args.limit)

    if args.json:
        print(json.dumps(runs, indent=2))
    elif runs:
        print_table(runs)
    else:
        print(f"No runs found in {args.runs_dir}. Run 'python train.py' to create one.")

    return 0


if __name__ == '__main__':
    exit(main())
