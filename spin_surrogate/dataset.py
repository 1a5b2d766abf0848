"""
In-memory dataset of spin-chain instances.

Each instance pairs the Hamiltonian parameters of one chain (coupling,
transverse and longitudinal field per site) with the reference spectrum
and eigenvectors obtained by exact diagonalization. Arrays are frozen
after construction; nothing downstream mutates a Dataset.
"""

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Sequence, Tuple

import numpy as np


def _frozen(values, dtype=None) -> np.ndarray:
    array = np.array(values, dtype=dtype, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class FieldRecord:
    """Hamiltonian parameters of a single chain.

    Attributes:
        coupling: Nearest-neighbour couplings J, one per site.
        transverse: Transverse fields Bx, one per site.
        longitudinal: Longitudinal fields Bz, one per site.
    """
    coupling: np.ndarray
    transverse: np.ndarray
    longitudinal: np.ndarray

    def __post_init__(self):
        coupling = _frozen(self.coupling)
        transverse = _frozen(self.transverse)
        longitudinal = _frozen(self.longitudinal)
        if not (coupling.shape == transverse.shape == longitudinal.shape) or coupling.ndim != 1:
            raise ValueError(
                f"Field arrays must be 1-D and of equal length, got shapes "
                f"{coupling.shape}, {transverse.shape}, {longitudinal.shape}"
            )
        object.__setattr__(self, 'coupling', coupling)
        object.__setattr__(self, 'transverse', transverse)
        object.__setattr__(self, 'longitudinal', longitudinal)

    @property
    def num_qubits(self) -> int:
        return len(self.coupling)

    def as_vector(self) -> np.ndarray:
        """Concatenate into the network input [J..., Bx..., Bz...]."""
        return np.concatenate([self.coupling, self.transverse, self.longitudinal])

    def print(self) -> None:
        print("Coupling (J):")
        print(" ".join(f"{v:.6e}" for v in self.coupling))
        print("Transverse (Bx):")
        print(" ".join(f"{v:.6e}" for v in self.transverse))
        print("Longitudinal (Bz):")
        print(" ".join(f"{v:.6e}" for v in self.longitudinal))
        print()


class Instance(NamedTuple):
    """One dataset entry."""
    fields: FieldRecord
    values: np.ndarray
    wavefx: np.ndarray


@dataclass(frozen=True, eq=False)
class Dataset:
    """Ordered, index-aligned collection of chain instances.

    Attributes:
        fields: Hamiltonian parameters per instance.
        values: Reference eigenvalues per instance, length 2^n, ascending.
        wavefx: Reference eigenvectors per instance, shape (2^n, 2^n);
            column k belongs to eigenvalue k.
    """
    fields: Tuple[FieldRecord, ...]
    values: Tuple[np.ndarray, ...]
    wavefx: Tuple[np.ndarray, ...]

    def __post_init__(self):
        fields = tuple(self.fields)
        values = tuple(_frozen(v) for v in self.values)
        wavefx = tuple(_frozen(w) for w in self.wavefx)

        if not (len(fields) == len(values) == len(wavefx)):
            raise ValueError(
                f"Dataset arrays are not index-aligned: {len(fields)} fields, "
                f"{len(values)} eigenvalue vectors, {len(wavefx)} eigenvector matrices"
            )

        if fields:
            n = fields[0].num_qubits
            dim = 2 ** n
            for i, (f, v, w) in enumerate(zip(fields, values, wavefx)):
                if f.num_qubits != n or v.shape != (dim,) or w.shape != (dim, dim):
                    raise ValueError(
                        f"Instance {i} does not match num_qubits={n}: fields of length "
                        f"{f.num_qubits}, values {v.shape}, wavefx {w.shape}"
                    )

        object.__setattr__(self, 'fields', fields)
        object.__setattr__(self, 'values', values)
        object.__setattr__(self, 'wavefx', wavefx)

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, index: int) -> Instance:
        return Instance(self.fields[index], self.values[index], self.wavefx[index])

    def __iter__(self) -> Iterator[Instance]:
        for i in range(len(self)):
            yield self[i]

    @property
    def num_qubits(self) -> int:
        """Number of sites, or 0 for an empty dataset."""
        return self.fields[0].num_qubits if self.fields else 0

    @property
    def dim(self) -> int:
        return 2 ** self.num_qubits if self.fields else 0

    def inputs(self) -> np.ndarray:
        """Network inputs of shape (N, 3n)."""
        if not self.fields:
            return np.zeros((0, 0))
        return np.stack([f.as_vector() for f in self.fields])

    def ground_states(self) -> np.ndarray:
        """Reference ground states (column 0 of each eigenvector matrix), shape (N, dim)."""
        if not self.wavefx:
            return np.zeros((0, 0))
        return np.stack([w[:, 0] for w in self.wavefx])

    def ground_energies(self) -> np.ndarray:
        """Lowest reference eigenvalue of each instance, shape (N,)."""
        return np.array([v[0] for v in self.values])

    def subset(self, indices: Sequence[int]) -> 'Dataset':
        """Return a new Dataset holding the given instances, in the given order."""
        return Dataset(
            fields=tuple(self.fields[i] for i in indices),
            values=tuple(self.values[i] for i in indices),
            wavefx=tuple(self.wavefx[i] for i in indices),
        )

    def split(self, test_fraction: float, seed: int = 0) -> Tuple['Dataset', 'Dataset']:
        """Randomly split into (train, test).

        Args:
            test_fraction: Fraction of instances assigned to the test set.
            seed: Seed for the permutation.

        Returns:
            Tuple of (train, test) datasets.
        """
        if not 0.0 <= test_fraction < 1.0:
            raise ValueError(f"test_fraction must be in [0, 1), got {test_fraction}")

        order = np.random.default_rng(seed).permutation(len(self))
        n_test = int(round(test_fraction * len(self)))
        return self.subset(order[n_test:].tolist()), self.subset(order[:n_test].tolist())
