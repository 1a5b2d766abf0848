import pytest

from spin_surrogate.config import MetricsConfig, ModelConfig
from spin_surrogate.exact import generate_dataset
from spin_surrogate.loss import StateMSELoss
from spin_surrogate.model import Model
from spin_surrogate.network import build_ensemble
from spin_surrogate.optimizer import Optimizer
from spin_surrogate.reader import write_dataset


@pytest.fixture
def dataset():
    # 2 sites, 6 chains
    return generate_dataset(2, 6, seed=7)


@pytest.fixture
def dataset_file(tmp_path, dataset):
    path = tmp_path / "chains.bin"
    write_dataset(dataset, path)
    return path


@pytest.fixture
def make_model():
    def _make(num_qubits=2, ensemble_size=2, hidden_dims=(16,), lr=1e-2, **metrics):
        config = ModelConfig(hidden_dims=list(hidden_dims), activation="tanh", ensemble_size=ensemble_size)
        return Model(
            build_ensemble(num_qubits, config),
            StateMSELoss(),
            Optimizer("adam", lr=lr, seed=0),
            metrics=MetricsConfig(**metrics),
        )
    return _make
