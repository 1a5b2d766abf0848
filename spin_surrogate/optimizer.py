"""
Optimizer strategy for the learner ensemble.

The strategy holds the update rule and hyperparameters. Each learner gets
its own bound torch optimizer, so no optimizer state is shared across the
ensemble.
"""

from typing import Iterable

import torch
from torch.optim import SGD, Adam, RMSprop


class Optimizer:
    """Update-rule strategy bound once per learner.

    Attributes:
        name: Update rule ('adam', 'sgd', 'rmsprop').
        lr: Learning rate.
        weight_decay: L2 penalty.
        seed: Seed used to initialize learners on reset.
    """

    _RULES = {
        "adam": lambda params, lr, wd: Adam(params, lr=lr, weight_decay=wd, amsgrad=True),
        "sgd": lambda params, lr, wd: SGD(params, lr=lr, weight_decay=wd, momentum=0.9),
        "rmsprop": lambda params, lr, wd: RMSprop(params, lr=lr, weight_decay=wd),
    }

    def __init__(self, name: str = "adam", lr: float = 1e-3, weight_decay: float = 0.0, seed: int = 0):
        if name.lower() not in self._RULES:
            raise ValueError(f"Unknown optimizer: {name}. Supported: {list(self._RULES.keys())}")
        self.name = name.lower()
        self.lr = lr
        self.weight_decay = weight_decay
        self.seed = seed

    def bind(self, parameters: Iterable[torch.nn.Parameter]) -> torch.optim.Optimizer:
        """Create fresh optimizer state for one learner's parameters."""
        return self._RULES[self.name](parameters, self.lr, self.weight_decay)

    @staticmethod
    def step(state: torch.optim.Optimizer, loss: torch.Tensor) -> None:
        """Backpropagate the loss and apply one update with the learner's own state."""
        state.zero_grad()
        loss.backward()
        state.step()

    def __repr__(self) -> str:
        return f"Optimizer(name={self.name}, lr={self.lr}, weight_decay={self.weight_decay}, seed={self.seed})"
