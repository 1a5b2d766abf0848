"""
Exact diagonalization of random spin chains.

Produces reference Datasets for training: random per-site parameters are
drawn uniformly, the chain Hamiltonian is built densely and diagonalized.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from .dataset import Dataset, FieldRecord
from .operators import chain_hamiltonian


logger = logging.getLogger(__name__)


def diagonalize(fields: FieldRecord, periodic: bool = True) -> Tuple[np.ndarray, np.ndarray]:
    """Full spectrum of one chain.

    Args:
        fields: Per-site parameters.
        periodic: Periodic boundary conditions.

    Returns:
        Tuple of (eigenvalues ascending, eigenvectors as columns). Each
        eigenvector's sign is fixed so its largest-magnitude entry is positive.
    """
    values, vectors = np.linalg.eigh(chain_hamiltonian(fields, periodic=periodic))

    pivots = np.argmax(np.abs(vectors), axis=0)
    signs = np.sign(vectors[pivots, np.arange(vectors.shape[1])])
    signs[signs == 0] = 1.0

    return values, vectors * signs


def random_fields(
    num_qubits: int,
    rng: np.random.Generator,
    coupling_range: Tuple[float, float] = (0.5, 1.5),
    transverse_range: Tuple[float, float] = (0.0, 2.0),
    longitudinal_range: Tuple[float, float] = (0.0, 0.5),
) -> FieldRecord:
    """Draw uniform random per-site parameters."""
    return FieldRecord(
        coupling=rng.uniform(*coupling_range, size=num_qubits),
        transverse=rng.uniform(*transverse_range, size=num_qubits),
        longitudinal=rng.uniform(*longitudinal_range, size=num_qubits),
    )


def generate_dataset(
    num_qubits: int,
    num_instances: int,
    seed: Optional[int] = None,
    periodic: bool = True,
    **ranges,
) -> Dataset:
    """Generate a Dataset of randomly parameterized chains.

    Args:
        num_qubits: Number of sites.
        num_instances: Number of chains.
        seed: Seed for the parameter draws.
        periodic: Periodic boundary conditions.
        **ranges: Optional coupling_range, transverse_range, longitudinal_range.

    Returns:
        Dataset with the full spectrum of every chain.
    """
    rng = np.random.default_rng(seed)

    fields, values, wavefx = [], [], []
    for _ in range(num_instances):
        record = random_fields(num_qubits, rng, **ranges)
        eigenvalues, eigenvectors = diagonalize(record, periodic=periodic)
        fields.append(record)
        values.append(eigenvalues)
        wavefx.append(eigenvectors)

    logger.info(f"Diagonalized {num_instances} chains with n={num_qubits}")

    return Dataset(tuple(fields), tuple(values), tuple(wavefx))
