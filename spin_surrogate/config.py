"""
Configuration dataclasses for the spin-chain surrogate trainer.

Provides structured configuration for the dataset, the learner ensemble,
training and the physics metrics. Supports loading from and saving to YAML.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import yaml


@dataclass
class DataConfig:
    """Configuration for the binary datasets.

    Attributes:
        num_qubits: Number of sites n in the chain (state dimension 2^n).
        train_path: Path to the binary training dataset.
        test_path: Optional path to a separate binary test dataset.
        dtype: Element type of the binary records ('float64' or 'float32').
        test_fraction: Fraction held out for evaluation when test_path is None.
        split_seed: Seed for the train/test split.
    """
    num_qubits: int = 4
    train_path: str = "data/train.bin"
    test_path: Optional[str] = None
    dtype: str = "float64"
    test_fraction: float = 0.2
    split_seed: int = 0

    @property
    def dim(self) -> int:
        """Hilbert space dimension."""
        return 2 ** self.num_qubits


@dataclass
class ModelConfig:
    """Configuration for the learner ensemble.

    Attributes:
        hidden_dims: List of hidden layer dimensions of each learner.
        activation: Activation function name ('tanh', 'silu', 'gelu', 'relu').
        ensemble_size: Number of independently trained learners.
    """
    hidden_dims: List[int] = field(default_factory=lambda: [64, 64])
    activation: str = "tanh"
    ensemble_size: int = 4


@dataclass
class TrainingConfig:
    """Configuration for the training process.

    Attributes:
        trials: Number of independent trials (the ensemble is reset between them).
        epochs: Number of full passes over the training set per trial.
        lr: Learning rate.
        optimizer: Optimizer name ('adam', 'sgd', 'rmsprop').
        weight_decay: L2 penalty passed to the optimizer.
        loss: Loss name ('mse', 'infidelity').
        seed: Base seed; trial t is initialized with seed + t.
        log_every: Frequency of metric snapshots (in epochs).
        checkpoint_every: Frequency of ensemble checkpoints (in epochs). 0 to disable.
    """
    trials: int = 1
    epochs: int = 2000
    lr: float = 1e-3
    optimizer: str = "adam"
    weight_decay: float = 0.0
    loss: str = "mse"
    seed: int = 0
    log_every: int = 100
    checkpoint_every: int = 0


@dataclass
class MetricsConfig:
    """Configuration for the physics metrics.

    Attributes:
        subsystem_size: Number of leading qubits forming subsystem A of the
            entanglement bipartition. None means num_qubits // 2.
        ensemble_aggregation: 'mean_of_metrics' averages each learner's metric,
            'mean_of_predictions' scores the averaged ensemble state.
        lyapunov_epsilon: Norm of the field perturbation.
        lyapunov_norm: Norm used for both perturbations ('l2' or 'linf').
        lyapunov_seed: Seed for the perturbation directions.
        magnetization_axis: Pauli axis of the magnetization observable ('x' or 'z').
        magnetization_per_site: Divide the total magnetization by num_qubits.
        entropy_cutoff: Density-matrix eigenvalues below this contribute zero entropy.
    """
    subsystem_size: Optional[int] = None
    ensemble_aggregation: str = "mean_of_metrics"
    lyapunov_epsilon: float = 1e-3
    lyapunov_norm: str = "l2"
    lyapunov_seed: int = 0
    magnetization_axis: str = "z"
    magnetization_per_site: bool = True
    entropy_cutoff: float = 1e-12


@dataclass
class Config:
    """Complete configuration for a training run.

    Attributes:
        data: Dataset configuration.
        model: Ensemble architecture configuration.
        training: Training configuration.
        metrics: Metric configuration.
    """
    data: DataConfig = field(default_factory=DataConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain nested dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Build a Config from a nested dictionary, keeping defaults for missing sections."""
        config = cls()

        if 'data' in data:
            config.data = DataConfig(**data['data'])

        if 'model' in data:
            config.model = ModelConfig(**data['model'])

        if 'training' in data:
            config.training = TrainingConfig(**data['training'])

        if 'metrics' in data:
            config.metrics = MetricsConfig(**data['metrics'])

        return config

    def save_yaml(self, yaml_path: str) -> None:
        """Write the configuration to a YAML file.

        Args:
            yaml_path: Destination path.
        """
        with open(yaml_path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)


def load_config(yaml_path: str) -> Config:
    """Load configuration from a YAML file.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Config object with loaded settings.
    """
    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return Config.from_dict(data)
