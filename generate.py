#!/usr/bin/env python3
"""
Command-line interface for generating exact-diagonalization datasets.

Usage:
    python generate.py --num-qubits 4 --instances 1000 --output data/train.bin
    python generate.py -n 6 -N 200 -o data/test.bin --seed 1 --open
"""

import argparse
import logging
from pathlib import Path

from spin_surrogate.exact import generate_dataset
from spin_surrogate.reader import write_dataset


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Generate random spin chains and their exact spectra',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument('--num-qubits', '-n', type=int, required=True, help='Number of sites')
    parser.add_argument('--instances', '-N', type=int, required=True, help='Number of chains')
    parser.add_argument('--output', '-o', type=str, required=True, help='Binary output file')
    parser.add_argument('--seed', type=int, default=0, help='Seed for the field draws')
    parser.add_argument('--dtype', type=str, default='float64', choices=['float64', 'float32'],
                        help='Element type of the records')
    parser.add_argument('--open', action='store_true', help='Open instead of periodic boundaries')
    parser.add_argument('--coupling', type=float, nargs=2, default=[0.5, 1.5],
                        metavar=('LOW', 'HIGH'), help='Uniform range of the couplings J')
    parser.add_argument('--transverse', type=float, nargs=2, default=[0.0, 2.0],
                        metavar=('LOW', 'HIGH'), help='Uniform range of the transverse fields Bx')
    parser.add_argument('--longitudinal', type=float, nargs=2, default=[0.0, 0.5],
                        metavar=('LOW', 'HIGH'), help='Uniform range of the longitudinal fields Bz')
    parser.add_argument('--quiet', '-q', action='store_true', help='Suppress progress output')

    return parser.parse_args()


def main():
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    dataset = generate_dataset(
        args.num_qubits,
        args.instances,
        seed=args.seed,
        periodic=not args.open,
        coupling_range=tuple(args.coupling),
        transverse_range=tuple(args.transverse),
        longitudinal_range=tuple(args.longitudinal),
    )

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    write_dataset(dataset, output, dtype=args.dtype)

    if not args.quiet:
        print(f"Wrote {len(dataset)} chains with n={args.num_qubits} to {output}")

    return 0


if __name__ == '__main__':
    exit(main())
