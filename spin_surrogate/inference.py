"""
Inference utilities for the spin-chain surrogate.

Provides a high-level interface for loading trained ensembles and scoring
them on datasets.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np
import torch

from .config import Config
from .dataset import Dataset
from .loss import create_loss
from .model import Model
from .network import load_ensemble
from .optimizer import Optimizer
from .run_manager import RunManager


@dataclass
class PredictionResult:
    """Container for prediction results.

    Attributes:
        states: Unit-normalized predicted ground states per learner (L, N, dim).
        overlaps: Fidelity with the reference ground state per instance (N,).
        metrics: Aggregate metric bundle.
    """
    states: torch.Tensor
    overlaps: np.ndarray
    metrics: Dict[str, float]


class SurrogatePredictor:
    """High-level interface for running inference with trained ensembles.

    Example usage:
        predictor = SurrogatePredictor(run_id="20240115_143022_n4_e4_h64x64")
        result = predictor.predict(dataset)
        predictor.write_reports(dataset, "reports/")
    """

    def __init__(
        self,
        run_id: Optional[str] = None,
        model_path: Optional[str] = None,
        runs_dir: str = "runs",
        device: Optional[torch.device] = None,
    ):
        """Initialize the predictor by loading a trained ensemble.

        Args:
            run_id: Run ID to load from (uses RunManager).
            model_path: Direct path to an ensemble.pt file.
            runs_dir: Directory containing runs (default: "runs").
            device: Device to run predictions on.

        Raises:
            ValueError: If neither run_id nor model_path is provided.
            FileNotFoundError: If run or model file doesn't exist.
        """
        if run_id is None and model_path is None:
            raise ValueError("Must provide either run_id or model_path")

        self.device = device or torch.device("cpu")
        self.run_id = run_id
        self.metadata = None

        if run_id is not None:
            self.run_manager = RunManager(runs_dir)
            self.model, self.config, self.metadata = self.run_manager.load_run(
                run_id, device=self.device
            )
        else:
            self.run_manager = None
            learners, config = load_ensemble(model_path, device=self.device)
            self.config = config or Config()
            training = self.config.training
            self.model = Model(
                learners,
                create_loss(training.loss),
                Optimizer(training.optimizer, lr=training.lr,
                          weight_decay=training.weight_decay, seed=training.seed),
                metrics=self.config.metrics,
            )

    def predict(self, dataset: Dataset) -> PredictionResult:
        """Predict ground states and score them against the dataset references."""
        return PredictionResult(
            states=self.model.predict(dataset),
            overlaps=self.model.overlaps(dataset),
            metrics=self.model.evaluate(dataset),
        )

    def write_reports(self, dataset: Dataset, output_dir: Union[str, Path]) -> Dict[str, Path]:
        """Write every per-instance metric file into output_dir.

        Returns:
            Mapping from report name to file path.
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        paths = {
            "overlap": output_dir / "overlap.csv",
            "magnetization": output_dir / "magnetization.csv",
            "entanglement_entropy": output_dir / "entanglement_entropy.csv",
            "lyapunov": output_dir / "lyapunov.csv",
            "radviz": output_dir / "radviz.csv",
            "wandb_radviz": output_dir / "wandb_radviz.csv",
        }

        self.model.write_overlap(dataset, paths["overlap"])
        self.model.write_magnetization(dataset, paths["magnetization"])
        self.model.write_entanglement_entropy(dataset, paths["entanglement_entropy"])
        self.model.write_lyapunov_estimate(dataset, paths["lyapunov"])
        self.model.write_radial_visualization(dataset, paths["radviz"])
        self.model.append_wandb_for_radviz(paths["wandb_radviz"])

        return paths

    def get_model_info(self) -> dict:
        """Get information about the loaded ensemble."""
        info = {
            "num_qubits": self.model.networks[0].num_qubits,
            "ensemble_size": len(self.model.networks),
            "hidden_dims": self.config.model.hidden_dims,
            "activation": self.config.model.activation,
            "parameters": sum(net.count_parameters() for net in self.model.networks),
        }

        if self.metadata:
            info.update({
                "run_id": self.run_id,
                "training_time": self.metadata.get("training_time_seconds"),
                "final_loss": self.metadata.get("final_loss"),
                "epochs_trained": self.metadata.get("epochs_trained"),
            })

        return info
