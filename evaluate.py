#!/usr/bin/env python3
"""
Command-line interface for evaluating trained surrogate ensembles.

Usage:
    python evaluate.py --run-id 20240115_143022_n4_e4_h64x64 --data data/test.bin
    python evaluate.py --run-id my_run --data data/test.bin --output reports/
    python evaluate.py --run-id my_run --data data/test.bin --no-plot
"""

import argparse
import logging
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import torch

from spin_surrogate.inference import SurrogatePredictor
from spin_surrogate.metrics import radviz
from spin_surrogate.reader import DatasetReadError, Reader
from spin_surrogate.visualization import plot_radviz


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Evaluate a trained surrogate ensemble on a dataset',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        '--run-id',
        type=str,
        required=True,
        help='Run ID to load (from runs/ directory)'
    )
    parser.add_argument(
        '--data',
        type=str,
        required=True,
        help='Binary dataset to evaluate on'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Directory for metric files (defaults to runs/<run_id>/evaluation)'
    )
    parser.add_argument(
        '--no-plot',
        action='store_true',
        help='Disable plot generation'
    )
    parser.add_argument(
        '--device',
        type=str,
        default='cpu',
        choices=['cpu', 'cuda', 'mps'],
        help='Device to run inference on'
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress output'
    )

    return parser.parse_args()


def main():
    """Main entry point."""
    args = parse_args()

    log_level = logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    device = torch.device(args.device)

    if not args.quiet:
        print(f"Loading run: {args.run_id}")

    try:
        predictor = SurrogatePredictor(
            run_id=args.run_id,
            runs_dir="runs",
            device=device,
        )
    except FileNotFoundError:
        print(f"Error: Run '{args.run_id}' not found in runs/")
        print("Use 'python list_runs.py' to see available runs.")
        return 1

    info = predictor.get_model_info()

    try:
        dataset = Reader(info['num_qubits'], args.data, predictor.config.data.dtype).read()
    except DatasetReadError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return -1

    if not args.quiet:
        print()
        print("=" * 60)
        print("Ensemble Information")
        print("=" * 60)
        print(f"Chain: n={info['num_qubits']}")
        print(f"Learners: {info['ensemble_size']} x hidden_dims={info['hidden_dims']}")
        print(f"Parameters: {info['parameters']:,}")
        if info.get('training_time'):
            print(f"Training time: {info['training_time']:.2f}s")
        print(f"Dataset: {args.data} ({len(dataset)} instances)")
        print("=" * 60)
        print()

    output_dir = Path(args.output) if args.output else Path("runs") / args.run_id / "evaluation"
    paths = predictor.write_reports(dataset, output_dir)

    if not args.quiet:
        predictor.model.print_average_overlap(dataset)
        predictor.model.print_average_sz_error(dataset)
        predictor.model.print_inference_time(dataset)
        print()
        for name, path in paths.items():
            print(f"  {name:<22} {path}")

    if not args.no_plot:
        states = predictor.model.ensemble_states(dataset)
        coords = radviz(torch.mean(states ** 2, dim=0)).cpu().numpy()
        fig = plot_radviz(coords, states.shape[-1], values=predictor.model.overlaps(dataset),
                          save_path=output_dir / 'radviz.png')
        plt.close(fig)
        if not args.quiet:
            print(f"Saved plot to {output_dir / 'radviz.png'}")

    return 0


if __name__ == '__main__':
    exit(main())
