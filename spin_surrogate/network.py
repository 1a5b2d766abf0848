"""
Learners for the spin-chain surrogate.

A learner maps the 3n field parameters of a chain to an (unnormalized)
real state vector of dimension 2^n. The Model only relies on the Learner
contract below, so any nn.Module that implements it can join an ensemble.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import torch
import torch.nn as nn

from .config import Config, ModelConfig


def get_activation(name: str) -> nn.Module:
    """Get activation function by name.

    Args:
        name: Activation function name ('tanh', 'silu', 'gelu', 'relu').

    Returns:
        PyTorch activation module.

    Raises:
        ValueError: If activation name is not recognized.
    """
    activations = {
        "tanh": nn.Tanh(),
        "silu": nn.SiLU(),
        "gelu": nn.GELU(),
        "relu": nn.ReLU(),
    }
    if name.lower() not in activations:
        raise ValueError(f"Unknown activation: {name}. Supported: {list(activations.keys())}")
    return activations[name.lower()]


class Learner(nn.Module, ABC):
    """Evaluation contract of a single ensemble member."""

    @abstractmethod
    def forward(self, fields: torch.Tensor) -> torch.Tensor:
        """Map field vectors of shape (N, 3n) to state vectors of shape (N, 2^n)."""

    def reset_parameters(self) -> None:
        """Re-initialize every parameterized submodule in place."""
        for module in self.modules():
            if module is not self and hasattr(module, 'reset_parameters'):
                module.reset_parameters()

    def count_parameters(self) -> int:
        """Count total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)


class WavefunctionMLP(Learner):
    """Fully connected learner.

    Architecture:
        Input: [J..., Bx..., Bz...] -> 3n features
        Hidden layers: Configurable fully-connected layers with activation
        Output: 2^n amplitudes

    Attributes:
        num_qubits: Number of chain sites.
        config: Model configuration.
        model: Sequential neural network.
    """

    def __init__(self, num_qubits: int, config: Optional[ModelConfig] = None):
        super().__init__()
        self.num_qubits = num_qubits
        self.config = config or ModelConfig()

        layers = []
        input_dim = 3 * num_qubits

        for hidden_dim in self.config.hidden_dims:
            layers.append(nn.Linear(input_dim, hidden_dim))
            layers.append(get_activation(self.config.activation))
            input_dim = hidden_dim

        layers.append(nn.Linear(input_dim, 2 ** num_qubits))

        self.model = nn.Sequential(*layers)

    def forward(self, fields: torch.Tensor) -> torch.Tensor:
        return self.model(fields)

    def __repr__(self) -> str:
        return (f"WavefunctionMLP(\n"
                f"  num_qubits={self.num_qubits},\n"
                f"  hidden_dims={self.config.hidden_dims},\n"
                f"  activation={self.config.activation},\n"
                f"  parameters={self.count_parameters()}\n"
                f")")


def build_ensemble(num_qubits: int, config: Optional[ModelConfig] = None) -> List[WavefunctionMLP]:
    """Create config.ensemble_size independent learners."""
    config = config or ModelConfig()
    if config.ensemble_size < 1:
        raise ValueError(f"ensemble_size must be positive, got {config.ensemble_size}")
    return [WavefunctionMLP(num_qubits, config) for _ in range(config.ensemble_size)]


def save_ensemble(
    path: str,
    learners: List[WavefunctionMLP],
    full_config: Optional[Config] = None,
) -> None:
    """Save ensemble state to file.

    Args:
        path: File path to save the checkpoint.
        learners: Ensemble members (all sharing one architecture).
        full_config: Optional full Config object to save alongside the weights.
    """
    checkpoint = {
        'num_qubits': learners[0].num_qubits,
        'config': learners[0].config,
        'state_dicts': [learner.state_dict() for learner in learners],
    }
    if full_config is not None:
        checkpoint['full_config'] = full_config.to_dict()
    torch.save(checkpoint, path)


def load_ensemble(
    path: str,
    device: Optional[torch.device] = None,
) -> tuple[List[WavefunctionMLP], Optional[Config]]:
    """Load ensemble and full config from checkpoint file.

    Args:
        path: File path to the checkpoint.
        device: Device to load the learners onto. If None, uses CPU.

    Returns:
        Tuple of (learners, full Config or None if not saved).
    """
    device = device or torch.device('cpu')
    checkpoint = torch.load(path, map_location=device, weights_only=False)

    learners = []
    for state_dict in checkpoint['state_dicts']:
        learner = WavefunctionMLP(checkpoint['num_qubits'], config=checkpoint['config'])
        learner.load_state_dict(state_dict)
        learner.to(device)
        learners.append(learner)

    full_config = None
    if 'full_config' in checkpoint:
        full_config = Config.from_dict(checkpoint['full_config'])

    return learners, full_config
