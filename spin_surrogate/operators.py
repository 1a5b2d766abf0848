"""
Spin-chain operators in the computational basis.

Site 0 is the leftmost tensor factor, i.e. the most significant bit of the
basis index.
"""

from typing import List, Sequence

import numpy as np

from .dataset import FieldRecord


def paulis(dtype=np.float64):
    """Single-qubit X, Z and identity (real matrices only)."""
    sx = np.array([[0., 1.], [1., 0.]], dtype=dtype)
    sz = np.array([[1., 0.], [0., -1.]], dtype=dtype)
    id2 = np.eye(2, dtype=dtype)
    return sx, sz, id2


def kron_n(ops: Sequence[np.ndarray]) -> np.ndarray:
    """Tensor product of a list of operators."""
    out = ops[0]
    for op in ops[1:]:
        out = np.kron(out, op)
    return out


def pauli_string(num_qubits: int, paulis_at: dict, dtype=np.float64) -> np.ndarray:
    """Build a Pauli string from a {site: 'X'|'Z'} mapping, identity elsewhere.

    Args:
        num_qubits: Number of sites.
        paulis_at: Mapping from site index to Pauli label.
        dtype: Matrix element type.

    Returns:
        Dense (2^n, 2^n) operator.
    """
    sx, sz, id2 = paulis(dtype)
    basis = {'X': sx, 'Z': sz, 'I': id2}
    ops = [id2] * num_qubits
    for site, label in paulis_at.items():
        ops[site] = basis[label.upper()]
    return kron_n(ops)


def site_operators(num_qubits: int, axis: str = "z", dtype=np.float64) -> List[np.ndarray]:
    """Single-site Pauli operators sigma^axis_i for every site."""
    axis = axis.upper()
    if axis not in ('X', 'Z'):
        raise ValueError(f"Unknown magnetization axis: {axis}. Supported: ['x', 'z']")
    return [pauli_string(num_qubits, {i: axis}, dtype) for i in range(num_qubits)]


def magnetization_operator(
    num_qubits: int,
    axis: str = "z",
    per_site: bool = True,
    dtype=np.float64,
) -> np.ndarray:
    """Total magnetization M = sum_i sigma^axis_i.

    Args:
        num_qubits: Number of sites.
        axis: 'x' or 'z'.
        per_site: Divide by num_qubits.
        dtype: Matrix element type.

    Returns:
        Dense (2^n, 2^n) observable.
    """
    op = sum(site_operators(num_qubits, axis, dtype))
    if per_site:
        op = op / num_qubits
    return op


def chain_hamiltonian(fields: FieldRecord, periodic: bool = True) -> np.ndarray:
    """Ising chain in transverse and longitudinal fields.

    H = -sum_i J_i Z_i Z_{i+1} - sum_i Bx_i X_i - sum_i Bz_i Z_i

    Coupling J_i acts on the bond (i, i+1). With periodic boundaries the
    last coupling closes the ring, otherwise it is unused.

    Args:
        fields: Per-site parameters.
        periodic: Close the chain into a ring.

    Returns:
        Dense real symmetric (2^n, 2^n) matrix.
    """
    n = fields.num_qubits
    dim = 2 ** n
    h = np.zeros((dim, dim))

    bonds = n if (periodic and n > 2) else n - 1
    for i in range(bonds):
        j = (i + 1) % n
        h -= fields.coupling[i] * pauli_string(n, {i: 'Z', j: 'Z'})

    for i in range(n):
        h -= fields.transverse[i] * pauli_string(n, {i: 'X'})
        h -= fields.longitudinal[i] * pauli_string(n, {i: 'Z'})

    return h
