"""
Physics metrics on real state vectors.

Implements:
- Unit normalization and sign alignment of predicted states
- Overlap (fidelity) with reference states
- Reduced density matrices and von Neumann entanglement entropy
- Observable expectation values
- RadViz projection of non-negative feature vectors

All functions operate on batches of shape (..., dim) unless noted.
"""

import math

import torch


def normalize(psi: torch.Tensor, eps: float = 1e-12) -> torch.Tensor:
    """Scale states to unit L2 norm; zero vectors stay zero."""
    norm = torch.linalg.vector_norm(psi, dim=-1, keepdim=True)
    return psi / torch.clamp_min(norm, eps)


def align_sign(psi: torch.Tensor, reference: torch.Tensor) -> torch.Tensor:
    """Flip each state so its inner product with the reference is non-negative.

    Eigenvectors are only defined up to a global sign, so predictions are
    compared after choosing the sign closest to the reference.
    """
    signs = torch.sign(torch.sum(psi * reference, dim=-1, keepdim=True))
    signs = torch.where(signs == 0, torch.ones_like(signs), signs)
    return psi * signs


def overlap(psi: torch.Tensor, reference: torch.Tensor) -> torch.Tensor:
    """Fidelity |<psi, reference>| of unit-normalized states.

    Returns:
        Tensor of shape (...,) with values in [0, 1].
    """
    inner = torch.sum(normalize(psi) * normalize(reference), dim=-1)
    return torch.clamp(torch.abs(inner), 0.0, 1.0)


def aligned_squared_error(psi: torch.Tensor, reference: torch.Tensor) -> torch.Tensor:
    """Mean squared amplitude error per state after normalization and sign alignment.

    Returns:
        Tensor of shape (...,).
    """
    reference = normalize(reference)
    psi = align_sign(normalize(psi), reference)
    return torch.mean((psi - reference) ** 2, dim=-1)


def reduced_density_matrix(psi: torch.Tensor, num_qubits: int, subsystem_size: int) -> torch.Tensor:
    """Partial trace of |psi><psi| over all but the first subsystem_size qubits.

    The state is reshaped into M of shape (2^k, 2^(n-k)) and rho_A = M M^T.

    Args:
        psi: Real state of shape (2^n,) or batch (..., 2^n).
        num_qubits: Number of sites n.
        subsystem_size: Number of leading sites k in subsystem A.

    Returns:
        Tensor of shape (..., 2^k, 2^k).
    """
    if not 0 <= subsystem_size <= num_qubits:
        raise ValueError(f"subsystem_size must be in [0, {num_qubits}], got {subsystem_size}")

    psi = normalize(psi)
    m = psi.reshape(*psi.shape[:-1], 2 ** subsystem_size, 2 ** (num_qubits - subsystem_size))
    return m @ m.transpose(-1, -2)


def von_neumann_entropy(rho: torch.Tensor, cutoff: float = 1e-12) -> torch.Tensor:
    """S = -sum_i l_i log(l_i) over the eigenvalues of a density matrix.

    Eigenvalues at or below cutoff contribute zero.

    Returns:
        Tensor of shape (...,).
    """
    eigenvalues = torch.linalg.eigvalsh(rho)
    mask = eigenvalues > cutoff
    safe = torch.where(mask, eigenvalues, torch.ones_like(eigenvalues))
    terms = torch.where(mask, -safe * torch.log(safe), torch.zeros_like(safe))
    return torch.clamp_min(torch.sum(terms, dim=-1), 0.0)


def entanglement_entropy(
    psi: torch.Tensor,
    num_qubits: int,
    subsystem_size: int,
    cutoff: float = 1e-12,
) -> torch.Tensor:
    """Von Neumann entropy of the reduced state of the first subsystem_size qubits.

    Bounded by subsystem_size * log(2); zero for product states.
    """
    rho = reduced_density_matrix(psi, num_qubits, subsystem_size)
    return von_neumann_entropy(rho, cutoff)


def expectation(psi: torch.Tensor, operator: torch.Tensor) -> torch.Tensor:
    """<psi|O|psi> for unit-normalized real states.

    Args:
        psi: States of shape (..., dim).
        operator: Observable of shape (dim, dim).

    Returns:
        Tensor of shape (...,).
    """
    psi = normalize(psi)
    return torch.sum(psi * (psi @ operator.T), dim=-1)


def radviz(features: torch.Tensor) -> torch.Tensor:
    """Project non-negative feature vectors onto anchors evenly spaced on the unit circle.

    Each point is the feature-weighted mean of the anchors. Rows summing to
    zero map to the origin.

    Args:
        features: Tensor of shape (N, d).

    Returns:
        Tensor of shape (N, 2).
    """
    d = features.shape[-1]
    angles = torch.arange(d, dtype=features.dtype, device=features.device) * (2 * math.pi / d)
    anchors = torch.stack([torch.cos(angles), torch.sin(angles)], dim=-1)

    features = torch.clamp_min(features, 0.0)
    totals = torch.sum(features, dim=-1, keepdim=True)
    weights = features / torch.clamp_min(totals, torch.finfo(features.dtype).tiny)
    return weights @ anchors
