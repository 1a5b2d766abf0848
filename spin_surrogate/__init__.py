"""
Spin-chain surrogate

Ensembles of neural networks that map transverse/longitudinal-field Ising
chain parameters to ground-state wavefunctions, with physics metrics for
evaluating them.
"""

from .config import DataConfig, ModelConfig, TrainingConfig, MetricsConfig, Config, load_config
from .dataset import Dataset, FieldRecord, Instance
from .reader import Reader, DatasetReadError, record_stride, write_dataset
from .exact import diagonalize, generate_dataset
from .network import Learner, WavefunctionMLP, build_ensemble, save_ensemble, load_ensemble
from .loss import BaseLoss, StateMSELoss, InfidelityLoss, create_loss
from .optimizer import Optimizer
from .model import Model, MetricRecord, METRIC_NAMES
from .trainer import EnsembleTrainer, TrainingResult, build_model
from .run_manager import RunManager
from .inference import SurrogatePredictor, PredictionResult
from .visualization import (
    plot_loss_curves,
    plot_metric_history,
    plot_predicted_vs_exact,
    plot_radviz,
)

__version__ = "0.1.0"
__all__ = [
    # Config
    "DataConfig",
    "ModelConfig",
    "TrainingConfig",
    "MetricsConfig",
    "Config",
    "load_config",
    # Data
    "Dataset",
    "FieldRecord",
    "Instance",
    "Reader",
    "DatasetReadError",
    "record_stride",
    "write_dataset",
    "diagonalize",
    "generate_dataset",
    # Learners
    "Learner",
    "WavefunctionMLP",
    "build_ensemble",
    "save_ensemble",
    "load_ensemble",
    # Strategies
    "BaseLoss",
    "StateMSELoss",
    "InfidelityLoss",
    "create_loss",
    "Optimizer",
    # Model
    "Model",
    "MetricRecord",
    "METRIC_NAMES",
    # Training
    "EnsembleTrainer",
    "TrainingResult",
    "build_model",
    # Run management
    "RunManager",
    # Inference
    "SurrogatePredictor",
    "PredictionResult",
    # Visualization
    "plot_loss_curves",
    "plot_metric_history",
    "plot_predicted_vs_exact",
    "plot_radviz",
]
