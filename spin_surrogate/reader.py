"""
Binary dataset reader and writer.

The on-disk format is a headerless sequence of fixed-size records. For a
chain of n sites and dim = 2^n, each record holds, as native-endian
floating-point elements:

    n couplings | n transverse fields | n longitudinal fields |
    dim eigenvalues | dim*dim eigenvector elements (column-major)

The record count is the file size floor-divided by the record stride, so a
trailing partial record is dropped without notice.
"""

import logging
import os
from pathlib import Path
from typing import Tuple, Union

import numpy as np

from .dataset import Dataset, FieldRecord


logger = logging.getLogger(__name__)


class DatasetReadError(IOError):
    """Raised when a dataset file cannot be opened or holds no data."""


def record_stride(num_qubits: int, dtype: Union[str, np.dtype] = "float64") -> int:
    """Size in bytes of one record.

    Args:
        num_qubits: Number of sites n.
        dtype: Element type.

    Returns:
        (3n + dim + dim^2) * itemsize.
    """
    dim = int(round(2 ** num_qubits))
    return (3 * num_qubits + dim + dim * dim) * np.dtype(dtype).itemsize


class Reader:
    """Reads a binary dataset file into a Dataset.

    Attributes:
        num_qubits: Number of sites n of every record.
        fpath: Path to the binary file.
        dtype: Element type of the records.
        dataset: The most recently read Dataset (None before read()).
    """

    def __init__(self, num_qubits: int, fpath: Union[str, Path], dtype: str = "float64"):
        self.num_qubits = num_qubits
        self.fpath = Path(fpath)
        self.dtype = np.dtype(dtype)
        self.dataset: Dataset = None

    def read(self) -> Dataset:
        """Parse the file.

        Returns:
            The loaded Dataset.

        Raises:
            DatasetReadError: If the file cannot be opened or is empty.
        """
        n = self.num_qubits
        dim = int(round(2 ** n))
        offset = record_stride(n, self.dtype)

        try:
            with open(self.fpath, 'rb') as f:
                raw = f.read()
        except OSError as e:
            raise DatasetReadError(f"Could not open {self.fpath}: {e}") from e

        if not raw:
            raise DatasetReadError(f"Dataset file {self.fpath} is empty")

        num_instances = len(raw) // offset
        trailing = len(raw) - num_instances * offset
        if trailing:
            logger.debug(f"Ignoring {trailing} trailing bytes in {self.fpath}")

        elements = offset // self.dtype.itemsize
        records = np.frombuffer(raw, dtype=self.dtype, count=num_instances * elements)
        records = records.reshape(num_instances, elements)

        fields, values, wavefx = [], [], []
        for row in records:
            fields.append(FieldRecord(
                coupling=row[0:n],
                transverse=row[n:2 * n],
                longitudinal=row[2 * n:3 * n],
            ))
            values.append(row[3 * n:3 * n + dim])
            wavefx.append(row[3 * n + dim:].reshape(dim, dim, order='F'))

        self.dataset = Dataset(tuple(fields), tuple(values), tuple(wavefx))
        logger.info(f"Read {num_instances} instances (n={n}) from {self.fpath}")

        return self.dataset

    def print(self) -> None:
        """Dump every instance to stdout."""
        if self.dataset is None:
            return

        with np.printoptions(formatter={'float_kind': '{:.6e}'.format}, linewidth=120):
            for i, (fields, values, wavefx) in enumerate(self.dataset):
                print(f"--------------------------- INSTANCE {i + 1} ---------------------------")
                fields.print()
                print("Eigenvalues:")
                print(values)
                print()
                print("Eigenvectors:")
                print(wavefx)
                print("--------------------------------------------------------------------")
                print()
                print()

    def write_csv(self, output_dir: Union[str, Path] = ".") -> Tuple[Path, Path]:
        """Export fields to input.csv and eigenvector matrices to output.csv.

        Args:
            output_dir: Directory to write both files into.

        Returns:
            Tuple of (input path, output path).
        """
        output_dir = Path(output_dir)
        input_path = output_dir / "input.csv"
        output_path = output_dir / "output.csv"
        dataset = self.dataset if self.dataset is not None else Dataset((), (), ())

        with open(input_path, 'w') as inputs:
            inputs.write("J[1], Bx[1], Bz[1]... J[n], Bx[n], Bz[n]\n")
            for i, fields in enumerate(dataset.fields):
                sites = (
                    f"{float(j):>10},{float(bx):>10},{float(bz):>10}"
                    for j, bx, bz in zip(fields.coupling, fields.transverse, fields.longitudinal)
                )
                inputs.write(f"{i + 1:4d}," + ",".join(sites) + "\n")

        with open(output_path, 'w') as outputs:
            outputs.write("c[1], c[2], c[3]... c[n] \n")
            for i, wavefx in enumerate(dataset.wavefx):
                coefficients = ",".join(repr(float(c)) for c in wavefx.ravel(order='F'))
                outputs.write(f"{i + 1:4d}," + coefficients + "\n")

        logger.info(f"Wrote {len(dataset)} rows to {input_path} and {output_path}")

        return input_path, output_path


def write_dataset(dataset: Dataset, fpath: Union[str, Path], dtype: str = "float64") -> int:
    """Write a Dataset in the binary record format read by Reader.

    Args:
        dataset: Dataset to serialize.
        fpath: Destination file (overwritten).
        dtype: Element type.

    Returns:
        Number of bytes written.
    """
    dtype = np.dtype(dtype)
    with open(fpath, 'wb') as f:
        for fields, values, wavefx in dataset:
            record = np.concatenate([
                fields.coupling,
                fields.transverse,
                fields.longitudinal,
                values,
                wavefx.ravel(order='F'),
            ]).astype(dtype)
            f.write(record.tobytes())

    size = os.path.getsize(fpath)
    logger.info(f"Wrote {len(dataset)} instances ({size} bytes) to {fpath}")
    return size
