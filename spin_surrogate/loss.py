"""
Loss functionals comparing predicted and reference ground states.

Provides a sign-invariant mean squared error and an infidelity loss.
"""

from abc import ABC, abstractmethod

import torch

from .metrics import aligned_squared_error, normalize


class BaseLoss(ABC):
    """Abstract base class for losses.

    All losses must implement __call__, returning a scalar tensor that
    autograd can differentiate with respect to the predicted states.
    """

    @abstractmethod
    def __call__(self, predicted: torch.Tensor, reference: torch.Tensor) -> torch.Tensor:
        """Evaluate the loss.

        Args:
            predicted: Raw learner outputs of shape (N, dim).
            reference: Reference states of shape (N, dim).

        Returns:
            Scalar loss tensor.
        """
        pass


class StateMSELoss(BaseLoss):
    """Mean squared amplitude error after normalization.

    L = mean_i mean_k (psi_hat_ik - s_i * phi_ik)^2 with s_i = sign <psi_hat_i, phi_i>.
    """

    def __call__(self, predicted: torch.Tensor, reference: torch.Tensor) -> torch.Tensor:
        return torch.mean(aligned_squared_error(predicted, reference))

    def __repr__(self) -> str:
        return "StateMSELoss()"


class InfidelityLoss(BaseLoss):
    """One minus the squared overlap.

    L = mean_i (1 - <psi_hat_i, phi_hat_i>^2)
    """

    def __call__(self, predicted: torch.Tensor, reference: torch.Tensor) -> torch.Tensor:
        inner = torch.sum(normalize(predicted) * normalize(reference), dim=-1)
        return torch.mean(1.0 - inner ** 2)

    def __repr__(self) -> str:
        return "InfidelityLoss()"


def create_loss(name: str) -> BaseLoss:
    """Factory function to create a loss by name.

    Args:
        name: 'mse' or 'infidelity'.

    Returns:
        Loss instance.

    Raises:
        ValueError: If the loss name is not recognized.
    """
    name = name.lower()

    if name == "mse":
        return StateMSELoss()
    elif name == "infidelity":
        return InfidelityLoss()
    else:
        raise ValueError(f"Unknown loss: {name}. Supported losses: mse, infidelity")
