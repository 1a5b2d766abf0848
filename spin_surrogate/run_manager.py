"""
Saved surrogate runs.

A run directory holds the trained ensemble, the config it was trained
with, the metric log written during training and a metadata file with the
final metric bundle. runs/index.json keeps one summary line per run so
listing does not have to open every directory.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import torch

from .config import Config, load_config
from .loss import create_loss
from .model import Model
from .network import load_ensemble, save_ensemble
from .optimizer import Optimizer
from .trainer import TrainingResult


logger = logging.getLogger(__name__)

ENSEMBLE_FILE = "ensemble.pt"
CONFIG_FILE = "config.yaml"
METADATA_FILE = "metadata.json"
INDEX_FILE = "index.json"


def _summary(metadata: dict) -> dict:
    """Index entry of a run: identity, chain/ensemble shape and final metrics."""
    config = metadata["config"]
    return {
        "run_id": metadata["run_id"],
        "created_at": metadata["created_at"],
        "num_qubits": config["data"]["num_qubits"],
        "ensemble_size": config["model"]["ensemble_size"],
        "hidden_dims": config["model"]["hidden_dims"],
        "trials": metadata["trials"],
        "epochs_trained": metadata["epochs_trained"],
        "training_time_seconds": metadata["training_time_seconds"],
        "final_metrics": metadata["final_metrics"],
        "tags": metadata["tags"],
    }


class RunManager:
    """Creates, indexes and reloads run directories under runs_dir.

    Layout of one run:
        <run_id>/ensemble.pt      learner weights and full config
        <run_id>/config.yaml      config, human-readable
        <run_id>/metadata.json    timings, losses per trial, final metrics
        <run_id>/metrics.csv      snapshots appended during training
        <run_id>/plots/
        <run_id>/checkpoints/
    """

    def __init__(self, runs_dir: str = "runs"):
        self.runs_dir = Path(runs_dir)
        self.index_path = self.runs_dir / INDEX_FILE

    def generate_run_id(self, config: Config, custom_name: Optional[str] = None) -> str:
        """custom_name, or <timestamp>_n<qubits>_e<learners>_h<hidden dims>."""
        if custom_name:
            return custom_name
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        shape = "x".join(str(d) for d in config.model.hidden_dims)
        return f"{stamp}_n{config.data.num_qubits}_e{config.model.ensemble_size}_h{shape}"

    def get_run_dir(self, run_id: str) -> Path:
        return self.runs_dir / run_id

    def create_run_dir(self, run_id: str) -> Path:
        run_dir = self.get_run_dir(run_id)
        for sub in ("plots", "checkpoints"):
            (run_dir / sub).mkdir(parents=True, exist_ok=True)
        return run_dir

    def save_run(
        self,
        run_id: str,
        model: Model,
        config: Config,
        result: TrainingResult,
        tags: Optional[List[str]] = None,
    ) -> Path:
        """Write the ensemble, config and metadata of a finished run and index it.

        Returns:
            The run directory.
        """
        run_dir = self.create_run_dir(run_id)

        save_ensemble(str(run_dir / ENSEMBLE_FILE), model.networks, full_config=config)
        config.save_yaml(str(run_dir / CONFIG_FILE))

        losses = [trial[-1] for trial in result.losses if trial]
        metadata = {
            "run_id": run_id,
            "created_at": datetime.now().isoformat(),
            "training_start": result.start_time,
            "training_end": result.end_time,
            "training_time_seconds": result.training_time,
            "config": config.to_dict(),
            "trials": len(result.losses),
            "epochs_trained": len(result.losses[-1]) if result.losses else 0,
            "final_losses_per_trial": losses,
            "final_loss": losses[-1] if losses else None,
            "final_metrics": result.final_metrics(),
            "model_parameters": sum(net.count_parameters() for net in model.networks),
            "torch_version": torch.__version__,
            "tags": list(tags or []),
        }
        with open(run_dir / METADATA_FILE, "w") as f:
            json.dump(metadata, f, indent=2)

        index = self._load_index()
        index[run_id] = _summary(metadata)
        with open(self.index_path, "w") as f:
            json.dump(index, f, indent=2)

        logger.info(f"Saved run {run_id} ({len(model.networks)} learners) to {run_dir}")
        return run_dir

    def get_run_metadata(self, run_id: str) -> dict:
        """
        Raises:
            FileNotFoundError: If the run has no metadata file.
        """
        path = self.get_run_dir(run_id) / METADATA_FILE
        if not path.exists():
            raise FileNotFoundError(f"Run not found: {run_id}")
        with open(path) as f:
            return json.load(f)

    def load_run(self, run_id: str, device: Optional[torch.device] = None) -> Tuple[Model, Config, dict]:
        """Rebuild the trained Model of a run.

        Returns:
            Tuple of (model, config, metadata).

        Raises:
            FileNotFoundError: If the run does not exist.
        """
        metadata = self.get_run_metadata(run_id)
        run_dir = self.get_run_dir(run_id)

        learners, config = load_ensemble(str(run_dir / ENSEMBLE_FILE), device=device)
        config = config or load_config(str(run_dir / CONFIG_FILE))

        training = config.training
        model = Model(
            learners,
            create_loss(training.loss),
            Optimizer(training.optimizer, lr=training.lr,
                      weight_decay=training.weight_decay, seed=training.seed),
            metrics=config.metrics,
        )
        return model, config, metadata

    def list_runs(
        self,
        num_qubits: Optional[int] = None,
        tags: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Index summaries, newest first, optionally restricted to a chain length
        and to runs carrying every tag in tags."""
        runs = [
            run for run in self._load_index().values()
            if (num_qubits is None or run["num_qubits"] == num_qubits)
            and set(tags or []) <= set(run["tags"])
        ]
        runs.sort(key=lambda run: run["created_at"], reverse=True)
        return runs[:limit] if limit else runs

    def _load_index(self) -> Dict[str, dict]:
        if not self.index_path.exists():
            return {}
        with open(self.index_path) as f:
            return json.load(f)
