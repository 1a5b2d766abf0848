"""
Ensemble model: training orchestration and physics metrics.

The Model owns a fixed list of learners, one loss strategy and one
optimizer strategy. Each learner is bound to its own optimizer state and
trained full-batch, so a pass does not depend on instance order and no
learner ever reads another learner's parameters or gradients.

Metrics are computed on unit-normalized predictions. With
ensemble_aggregation='mean_of_metrics' every learner is scored and the
scores are averaged; with 'mean_of_predictions' the sign-aligned mean
state of the ensemble is scored once.
"""

import copy
import csv
import logging
import math
import os
import time
import zlib
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import torch

from .config import MetricsConfig
from .dataset import Dataset
from .loss import BaseLoss
from .metrics import (
    aligned_squared_error,
    align_sign,
    entanglement_entropy,
    expectation,
    normalize,
    overlap,
    radviz,
    reduced_density_matrix,
)
from .network import Learner
from .operators import magnetization_operator
from .optimizer import Optimizer


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

METRIC_NAMES = ("mse", "overlap", "entropy", "sz_error", "lyapunov")

_AGGREGATIONS = ("mean_of_metrics", "mean_of_predictions")
_NORMS = {"l2": 2, "linf": float("inf")}


class MetricRecord(NamedTuple):
    """One metric value of one (trial, epoch) snapshot."""
    trial: int
    epoch: int
    name: str
    value: float


def _append_rows(path: PathLike, header: Sequence[str], rows: Sequence[Sequence]) -> None:
    """Append rows to a CSV file, writing the header when the file is new."""
    new_file = not os.path.exists(path) or os.path.getsize(path) == 0
    with open(path, 'a', newline='') as f:
        writer = csv.writer(f)
        if new_file:
            writer.writerow(header)
        writer.writerows(rows)


class Model:
    """Ensemble of learners with training and metric computations.

    Attributes:
        networks: Ensemble members, owned by the model.
        loss: Loss strategy.
        optimizer: Optimizer strategy (also carries the initialization seed).
        metrics: Metric configuration.
    """

    def __init__(
        self,
        networks: Sequence[Learner],
        loss: BaseLoss,
        optimizer: Optimizer,
        metrics: Optional[MetricsConfig] = None,
    ):
        """Initialize the model.

        Args:
            networks: Learners to train. They are copied; the caller's objects
                are not touched afterwards.
            loss: Loss strategy.
            optimizer: Optimizer strategy, bound once per learner.
            metrics: Metric configuration. If None, uses defaults.

        Raises:
            ValueError: If the ensemble is empty or the metric configuration is invalid.
        """
        if not networks:
            raise ValueError("Model needs at least one learner")

        self.networks: List[Learner] = [copy.deepcopy(net) for net in networks]
        self.loss = loss
        self.optimizer = optimizer
        self.metrics = metrics or MetricsConfig()

        if self.metrics.ensemble_aggregation not in _AGGREGATIONS:
            raise ValueError(f"Unknown ensemble aggregation: {self.metrics.ensemble_aggregation}. "
                             f"Supported: {list(_AGGREGATIONS)}")
        if self.metrics.lyapunov_norm not in _NORMS:
            raise ValueError(f"Unknown Lyapunov norm: {self.metrics.lyapunov_norm}. "
                             f"Supported: {list(_NORMS.keys())}")

        self._states = [self.optimizer.bind(net.parameters()) for net in self.networks]
        self._operators: Dict[int, torch.Tensor] = {}

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    @property
    def dtype(self) -> torch.dtype:
        return next(self.networks[0].parameters()).dtype

    @property
    def device(self) -> torch.device:
        return next(self.networks[0].parameters()).device

    def reset(self, seed: Optional[int] = None) -> None:
        """Return every learner to a freshly initialized state.

        Parameters are re-drawn under a forked RNG seeded with `seed`
        (default: the optimizer's seed) and every learner gets new optimizer
        state, so nothing from earlier training survives.
        """
        seed = self.optimizer.seed if seed is None else seed

        with torch.random.fork_rng(devices=[]):
            torch.manual_seed(seed)
            for net in self.networks:
                net.reset_parameters()

        self._states = [self.optimizer.bind(net.parameters()) for net in self.networks]

    def train(self, dataset: Dataset) -> List[float]:
        """One full-batch pass over the dataset with one update per learner.

        Args:
            dataset: Training instances.

        Returns:
            Loss of every learner before its update.
        """
        if len(dataset) == 0:
            return [float('nan')] * len(self.networks)

        inputs, reference = self._tensors(dataset)

        losses = [
            self._step(net, state, inputs, reference).item()
            for net, state in zip(self.networks, self._states)
        ]

        logger.debug(f"Train pass over {len(dataset)} instances: "
                     f"losses={', '.join(f'{l:.4e}' for l in losses)}")

        return losses

    def learn_from(self, dataset: Dataset) -> None:
        """One full-batch update per learner without loss bookkeeping."""
        if len(dataset) == 0:
            return
        inputs, reference = self._tensors(dataset)
        for net, state in zip(self.networks, self._states):
            self._step(net, state, inputs, reference)

    def _step(self, net, state, inputs: torch.Tensor, reference: torch.Tensor) -> torch.Tensor:
        net.train()
        loss = self.loss(net(inputs), reference)
        self.optimizer.step(state, loss)
        return loss.detach()

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------

    def _tensors(self, dataset: Dataset) -> Tuple[torch.Tensor, torch.Tensor]:
        inputs = torch.as_tensor(dataset.inputs(), dtype=self.dtype, device=self.device)
        reference = torch.as_tensor(dataset.ground_states(), dtype=self.dtype, device=self.device)
        return inputs, reference

    def _forward_all(self, inputs: torch.Tensor) -> torch.Tensor:
        with torch.no_grad():
            outputs = []
            for net in self.networks:
                net.eval()
                outputs.append(normalize(net(inputs)))
        return torch.stack(outputs)

    def predict(self, dataset: Dataset) -> torch.Tensor:
        """Unit-normalized predicted ground states.

        Returns:
            Tensor of shape (num_learners, N, dim).
        """
        inputs, _ = self._tensors(dataset)
        return self._forward_all(inputs)

    def _members(self, predictions: torch.Tensor) -> torch.Tensor:
        """States scored by the metrics, shape (M, N, dim).

        One entry per learner, or a single sign-aligned ensemble mean.
        """
        if self.metrics.ensemble_aggregation == "mean_of_predictions":
            aligned = align_sign(predictions, predictions[:1])
            return normalize(aligned.mean(dim=0, keepdim=True))
        return predictions

    def ensemble_states(self, dataset: Dataset) -> torch.Tensor:
        """Predicted states after ensemble aggregation, shape (M, N, dim)."""
        return self._members(self.predict(dataset))

    # ------------------------------------------------------------------
    # Scalar metrics
    # ------------------------------------------------------------------

    def mse(self, dataset: Dataset) -> float:
        """Sign-aligned mean squared amplitude error against the reference ground states."""
        if len(dataset) == 0:
            return float('nan')
        _, reference = self._tensors(dataset)
        states = self.ensemble_states(dataset)
        return aligned_squared_error(states, reference.unsqueeze(0)).mean().item()

    def overlaps(self, dataset: Dataset) -> np.ndarray:
        """Per-instance fidelity |<psi_pred, psi_ref>|, averaged over the scored members."""
        if len(dataset) == 0:
            return np.zeros(0)
        _, reference = self._tensors(dataset)
        states = self.ensemble_states(dataset)
        return overlap(states, reference.unsqueeze(0)).mean(dim=0).cpu().numpy()

    def overlap(self, dataset: Dataset) -> float:
        """Mean fidelity over instances and learners, in [0, 1]."""
        if len(dataset) == 0:
            return float('nan')
        return float(np.mean(self.overlaps(dataset)))

    def _subsystem_size(self, num_qubits: int) -> int:
        k = self.metrics.subsystem_size
        k = num_qubits // 2 if k is None else k
        if not 0 <= k <= num_qubits:
            raise ValueError(f"subsystem_size must be in [0, {num_qubits}], got {k}")
        return k

    @staticmethod
    def _num_qubits(psi: torch.Tensor) -> int:
        return int(round(math.log2(psi.shape[-1])))

    def reduced_density_matrix(self, psi: Union[torch.Tensor, np.ndarray]) -> torch.Tensor:
        """Reduced density matrix of the configured subsystem A for one state."""
        psi = torch.as_tensor(psi, dtype=torch.float64)
        n = self._num_qubits(psi)
        return reduced_density_matrix(psi, n, self._subsystem_size(n))

    def entanglement_entropy(self, psi: Union[torch.Tensor, np.ndarray]) -> float:
        """Von Neumann entropy of the configured bipartition of one state.

        Args:
            psi: Real state vector of length 2^n (normalized internally).

        Returns:
            Entropy in nats, in [0, k log 2].
        """
        psi = torch.as_tensor(psi, dtype=torch.float64)
        n = self._num_qubits(psi)
        return entanglement_entropy(psi, n, self._subsystem_size(n), self.metrics.entropy_cutoff).item()

    def entropies(self, dataset: Dataset) -> Tuple[np.ndarray, np.ndarray]:
        """Per-instance entanglement entropy of predicted and reference ground states.

        Returns:
            Tuple of (predicted, reference), each of shape (N,).
        """
        if len(dataset) == 0:
            return np.zeros(0), np.zeros(0)
        n = dataset.num_qubits
        k = self._subsystem_size(n)
        cutoff = self.metrics.entropy_cutoff

        states = self.ensemble_states(dataset).to(torch.float64)
        reference = torch.as_tensor(dataset.ground_states(), dtype=torch.float64)

        predicted = entanglement_entropy(states, n, k, cutoff).mean(dim=0)
        exact = entanglement_entropy(reference, n, k, cutoff)
        return predicted.cpu().numpy(), exact.numpy()

    def _magnetization_operator(self, num_qubits: int) -> torch.Tensor:
        if num_qubits not in self._operators:
            op = magnetization_operator(
                num_qubits,
                axis=self.metrics.magnetization_axis,
                per_site=self.metrics.magnetization_per_site,
            )
            self._operators[num_qubits] = torch.as_tensor(op, dtype=torch.float64)
        return self._operators[num_qubits]

    def magnetization(self, dataset: Dataset) -> Tuple[np.ndarray, np.ndarray]:
        """Per-instance magnetization of predicted and reference ground states.

        Returns:
            Tuple of (predicted, reference), each of shape (N,).
        """
        if len(dataset) == 0:
            return np.zeros(0), np.zeros(0)
        op = self._magnetization_operator(dataset.num_qubits)

        states = self.ensemble_states(dataset).to(torch.float64).cpu()
        reference = torch.as_tensor(dataset.ground_states(), dtype=torch.float64)

        predicted = expectation(states, op).mean(dim=0)
        exact = expectation(reference, op)
        return predicted.numpy(), exact.numpy()

    def sz_error(self, dataset: Dataset) -> float:
        """Mean absolute magnetization error over instances."""
        if len(dataset) == 0:
            return float('nan')
        predicted, exact = self.magnetization(dataset)
        return float(np.mean(np.abs(predicted - exact)))

    def _perturbation_directions(self, dataset: Dataset) -> torch.Tensor:
        """One random direction per instance, seeded by lyapunov_seed and the instance's own fields."""
        directions = []
        for fields in dataset.fields:
            key = zlib.crc32(np.ascontiguousarray(fields.as_vector(), dtype=np.float64).tobytes())
            generator = torch.Generator().manual_seed((self.metrics.lyapunov_seed << 32) + key)
            directions.append(torch.randn(3 * fields.num_qubits, generator=generator, dtype=torch.float64))
        return torch.stack(directions)

    def lyapunov_exponents(self, dataset: Dataset) -> np.ndarray:
        """Per-instance log ratio of output to input perturbation size.

        Each field vector is shifted by lyapunov_epsilon along a random direction
        (measured in lyapunov_norm) seeded from lyapunov_seed and that field
        vector alone, so an instance gets the same exponent wherever it sits in
        a dataset. The resulting change of the normalized, sign-aligned
        prediction is measured in the same norm.
        """
        if len(dataset) == 0:
            return np.zeros(0)
        inputs, _ = self._tensors(dataset)
        order = _NORMS[self.metrics.lyapunov_norm]
        epsilon = self.metrics.lyapunov_epsilon

        direction = self._perturbation_directions(dataset)
        direction = direction / torch.linalg.vector_norm(direction, ord=order, dim=-1, keepdim=True)
        direction = direction.to(dtype=inputs.dtype, device=inputs.device)

        base = self._members(self._forward_all(inputs))
        perturbed = self._members(self._forward_all(inputs + epsilon * direction))
        perturbed = align_sign(perturbed, base)

        divergence = torch.linalg.vector_norm(perturbed - base, ord=order, dim=-1) / epsilon
        floor = torch.finfo(divergence.dtype).tiny
        return torch.log(torch.clamp_min(divergence, floor)).mean(dim=0).cpu().numpy()

    def lyapunov_estimate(self, dataset: Dataset) -> float:
        """Mean log sensitivity of the learned map to small field perturbations."""
        if len(dataset) == 0:
            return float('nan')
        return float(np.mean(self.lyapunov_exponents(dataset)))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def evaluate(self, dataset: Dataset) -> Dict[str, float]:
        """Compute the metric bundle, keyed by METRIC_NAMES."""
        predicted_entropy, _ = self.entropies(dataset)
        return {
            "mse": self.mse(dataset),
            "overlap": self.overlap(dataset),
            "entropy": float(np.mean(predicted_entropy)) if len(dataset) else float('nan'),
            "sz_error": self.sz_error(dataset),
            "lyapunov": self.lyapunov_estimate(dataset),
        }

    def append_metrics(self, dataset: Dataset, trial: int, epoch: int, fpath: PathLike) -> List[MetricRecord]:
        """Compute the metric bundle and append one row to fpath.

        Returns:
            One MetricRecord per entry of METRIC_NAMES.
        """
        values = self.evaluate(dataset)

        _append_rows(
            fpath,
            ["trial", "epoch", *METRIC_NAMES],
            [[trial, epoch, *(f"{values[name]:.8e}" for name in METRIC_NAMES)]],
        )

        return [MetricRecord(trial, epoch, name, values[name]) for name in METRIC_NAMES]

    def write_overlap(self, dataset: Dataset, fpath: PathLike) -> None:
        overlaps = self.overlaps(dataset)
        _append_rows(fpath, ["index", "overlap"],
                     [[i + 1, f"{v:.8e}"] for i, v in enumerate(overlaps)])
        logger.info(f"Wrote overlaps of {len(dataset)} instances to {fpath}")

    def write_magnetization(self, dataset: Dataset, fpath: PathLike) -> None:
        predicted, exact = self.magnetization(dataset)
        _append_rows(fpath, ["index", "predicted", "exact"],
                     [[i + 1, f"{p:.8e}", f"{e:.8e}"] for i, (p, e) in enumerate(zip(predicted, exact))])
        logger.info(f"Wrote magnetization of {len(dataset)} instances to {fpath}")

    def write_entanglement_entropy(self, dataset: Dataset, fpath: PathLike) -> None:
        predicted, exact = self.entropies(dataset)
        _append_rows(fpath, ["index", "predicted", "exact"],
                     [[i + 1, f"{p:.8e}", f"{e:.8e}"] for i, (p, e) in enumerate(zip(predicted, exact))])
        logger.info(f"Wrote entanglement entropy of {len(dataset)} instances to {fpath}")

    def write_lyapunov_estimate(self, dataset: Dataset, fpath: PathLike) -> None:
        exponents = self.lyapunov_exponents(dataset)
        _append_rows(fpath, ["index", "lyapunov"],
                     [[i + 1, f"{v:.8e}"] for i, v in enumerate(exponents)])
        logger.info(f"Wrote Lyapunov estimates of {len(dataset)} instances to {fpath}")

    def write_radial_visualization(self, dataset: Dataset, fpath: PathLike) -> None:
        """Append RadViz coordinates of every predicted probability vector |psi|^2.

        Rows: index, x, y, overlap with the reference ground state.
        """
        if len(dataset) == 0:
            return
        states = self.ensemble_states(dataset)
        probabilities = torch.mean(states ** 2, dim=0)
        coords = radviz(probabilities).cpu().numpy()
        overlaps = self.overlaps(dataset)

        _append_rows(fpath, ["index", "x", "y", "overlap"],
                     [[i + 1, f"{x:.8e}", f"{y:.8e}", f"{o:.8e}"]
                      for i, ((x, y), o) in enumerate(zip(coords, overlaps))])

    def append_wandb_for_radviz(self, fpath: PathLike) -> None:
        """Append RadViz coordinates of every learner's weights and biases.

        The features of a learner are the L2 norms of each of its parameter
        tensors (per layer weight, then bias). Rows: learner, x, y.
        """
        features = torch.stack([
            torch.stack([p.detach().norm() for p in net.parameters()])
            for net in self.networks
        ])
        coords = radviz(features).cpu().numpy()

        _append_rows(fpath, ["learner", "x", "y"],
                     [[i, f"{x:.8e}", f"{y:.8e}"] for i, (x, y) in enumerate(coords)])

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def print_average_overlap(self, dataset: Dataset) -> None:
        print(f"Average overlap:            {self.overlap(dataset):.6f}")

    def print_average_sz_error(self, dataset: Dataset) -> None:
        print(f"Average magnetization error: {self.sz_error(dataset):.6e}")

    def print_inference_time(self, dataset: Dataset) -> float:
        """Time one forward pass of every learner over the dataset.

        Returns:
            Mean wall-clock seconds per instance per learner.
        """
        if len(dataset) == 0:
            print("Inference time: no instances")
            return 0.0

        inputs, _ = self._tensors(dataset)

        elapsed = []
        with torch.no_grad():
            for net in self.networks:
                net.eval()
                start = time.perf_counter()
                net(inputs)
                elapsed.append(time.perf_counter() - start)

        total = sum(elapsed)
        per_instance = total / (len(self.networks) * max(len(dataset), 1))
        print(f"Inference time: {total:.4e}s total, {per_instance:.4e}s per instance per learner")

        return per_instance

    def __repr__(self) -> str:
        return (f"Model(\n"
                f"  learners={len(self.networks)},\n"
                f"  loss={self.loss},\n"
                f"  optimizer={self.optimizer},\n"
                f"  aggregation={self.metrics.ensemble_aggregation}\n"
                f")")
