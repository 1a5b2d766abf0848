"""
Training loop for the spin-chain surrogate ensemble.

Runs independent trials of epoch passes over a training set, taking
metric snapshots on an evaluation set and optional checkpoints.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from .config import Config
from .dataset import Dataset
from .loss import create_loss
from .model import METRIC_NAMES, MetricRecord, Model
from .network import build_ensemble, save_ensemble
from .optimizer import Optimizer


logger = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    """Container for training results.

    Attributes:
        losses: Per trial, the mean ensemble loss of every epoch.
        metrics: Every MetricRecord taken during training.
        training_time: Total training time in seconds.
        start_time: Training start timestamp (ISO format).
        end_time: Training end timestamp (ISO format).
    """
    losses: List[List[float]] = field(default_factory=list)
    metrics: List[MetricRecord] = field(default_factory=list)
    training_time: float = 0.0
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    def final_metrics(self) -> Dict[str, float]:
        """Metric values of the last snapshot."""
        final = {}
        for record in self.metrics[-len(METRIC_NAMES):]:
            final[record.name] = record.value
        return final

    def metric_history(self, name: str, trial: int = 0) -> List[MetricRecord]:
        """Snapshots of one metric in one trial, in epoch order."""
        return [r for r in self.metrics if r.name == name and r.trial == trial]


def build_model(config: Config, num_qubits: Optional[int] = None) -> Model:
    """Create the ensemble Model described by a configuration.

    Args:
        config: Full configuration.
        num_qubits: Overrides config.data.num_qubits.

    Returns:
        Untrained Model.
    """
    num_qubits = num_qubits or config.data.num_qubits
    training = config.training

    optimizer = Optimizer(
        name=training.optimizer,
        lr=training.lr,
        weight_decay=training.weight_decay,
        seed=training.seed,
    )

    return Model(
        build_ensemble(num_qubits, config.model),
        create_loss(training.loss),
        optimizer,
        metrics=config.metrics,
    )


class EnsembleTrainer:
    """Trainer for the surrogate ensemble.

    Attributes:
        model: The ensemble Model.
        config: Full configuration.
        training_config: Training section of the configuration.
    """

    def __init__(self, model: Model, config: Config):
        self.model = model
        self.config = config
        self.training_config = config.training

    def train(
        self,
        train_set: Dataset,
        eval_set: Optional[Dataset] = None,
        metrics_path: Optional[Union[str, Path]] = None,
        checkpoint_dir: Optional[Union[str, Path]] = None,
        verbose: bool = True,
    ) -> TrainingResult:
        """Run every trial.

        Args:
            train_set: Instances to learn from.
            eval_set: Instances for metric snapshots. If None, uses train_set.
            metrics_path: CSV file receiving one row per snapshot. If None,
                snapshots are only kept in memory.
            checkpoint_dir: Directory for periodic checkpoints.
            verbose: Whether to print progress to stdout.

        Returns:
            TrainingResult containing loss history and metric snapshots.
        """
        eval_set = eval_set if eval_set is not None else train_set
        cfg = self.training_config

        result = TrainingResult()

        start_time = time.time()
        result.start_time = datetime.now().isoformat()

        for trial in range(cfg.trials):
            self.model.reset(seed=cfg.seed + trial)
            trial_losses = []

            for epoch in range(cfg.epochs):
                losses = self.model.train(train_set)
                trial_losses.append(sum(losses) / len(losses))

                should_log = epoch % cfg.log_every == 0 or epoch == cfg.epochs - 1
                if should_log:
                    records = self._snapshot(eval_set, trial, epoch, metrics_path)
                    result.metrics.extend(records)

                    if verbose:
                        self._log_progress(trial, epoch, trial_losses[-1], records)

                    logger.info(
                        f"Trial {trial} epoch {epoch}: loss={trial_losses[-1]:.4e}, "
                        + ", ".join(f"{r.name}={r.value:.4e}" for r in records)
                    )

                if (checkpoint_dir is not None and cfg.checkpoint_every > 0 and
                        epoch > 0 and epoch % cfg.checkpoint_every == 0):
                    Path(checkpoint_dir).mkdir(parents=True, exist_ok=True)
                    checkpoint_path = Path(checkpoint_dir) / f"checkpoint_trial_{trial}_epoch_{epoch}.pt"
                    save_ensemble(str(checkpoint_path), self.model.networks, full_config=self.config)
                    logger.info(f"Saved checkpoint to {checkpoint_path}")

            result.losses.append(trial_losses)

        result.training_time = time.time() - start_time
        result.end_time = datetime.now().isoformat()

        return result

    def _snapshot(
        self,
        dataset: Dataset,
        trial: int,
        epoch: int,
        metrics_path: Optional[Union[str, Path]],
    ) -> List[MetricRecord]:
        if metrics_path is not None:
            return self.model.append_metrics(dataset, trial, epoch, metrics_path)

        values = self.model.evaluate(dataset)
        return [MetricRecord(trial, epoch, name, values[name]) for name in METRIC_NAMES]

    def _log_progress(self, trial: int, epoch: int, loss: float, records: List[MetricRecord]) -> None:
        """Print training progress to stdout."""
        values = {r.name: r.value for r in records}
        print(f"Trial {trial} epoch {epoch}")
        print(f"  Loss:                 {loss:.4e}")
        print(f"  State MSE:            {values['mse']:.4e}")
        print(f"  Overlap:              {values['overlap']:.4f}")
        print(f"  Entanglement entropy: {values['entropy']:.4f}")
        print(f"  Magnetization error:  {values['sz_error']:.4e}")
        print(f"  Lyapunov estimate:    {values['lyapunov']:.4f}")
        print()
