#!/usr/bin/env python3
"""
Command-line interface for dumping a binary dataset.

Usage:
    python dump.py <num_qubits> <fpath>          # Print every instance
    python dump.py <num_qubits> <fpath> -csv     # Also write input.csv and output.csv
"""

import logging
import sys

from spin_surrogate.reader import DatasetReadError, Reader


def usage(program: str) -> str:
    return f" Usage: {program or 'dump'}  <num_qubits>  <fpath> [-csv]"


def main(argv=None) -> int:
    """Main entry point."""
    argv = sys.argv if argv is None else argv

    if len(argv) not in (3, 4):
        print(usage(argv[0] if argv else None))
        return -1

    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        num_qubits = int(argv[1])
    except ValueError:
        print(usage(argv[0]))
        return -1

    reader = Reader(num_qubits, argv[2])

    try:
        reader.read()
    except DatasetReadError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return -1

    reader.print()

    if len(argv) == 4:
        reader.write_csv()
        print("Fields written to input.csv, wavefx's to output.csv")

    return 0


if __name__ == '__main__':
    exit(main())
