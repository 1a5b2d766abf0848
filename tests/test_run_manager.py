import sys

import numpy as np
import pytest
import torch

from spin_surrogate.config import Config
from spin_surrogate.inference import SurrogatePredictor
from spin_surrogate.run_manager import RunManager
from spin_surrogate.trainer import EnsembleTrainer, build_model


@pytest.fixture
def saved_run(tmp_path, dataset):
    config = Config()
    config.data.num_qubits = 2
    config.model.hidden_dims = [8]
    config.model.ensemble_size = 2
    config.training.epochs = 3
    config.training.log_every = 1
    config.training.weight_decay = 1e-4

    model = build_model(config)
    result = EnsembleTrainer(model, config).train(dataset, verbose=False)

    manager = RunManager(str(tmp_path / "runs"))
    run_id = manager.generate_run_id(config)
    manager.save_run(run_id, model, config, result, tags=["smoke"])
    return manager, run_id, model, config


def test_run_id_format():
    config = Config()
    config.model.hidden_dims = [64, 32]
    run_id = RunManager().generate_run_id(config)
    assert run_id.endswith("_n4_e4_h64x32")
    assert RunManager().generate_run_id(config, custom_name="mine") == "mine"


def test_save_and_load(saved_run, dataset):
    manager, run_id, model, config = saved_run

    loaded, loaded_config, metadata = manager.load_run(run_id)

    assert loaded_config == config
    assert metadata["epochs_trained"] == 3
    assert set(metadata["final_metrics"]) == {"mse", "overlap", "entropy", "sz_error", "lyapunov"}
    assert torch.equal(loaded.predict(dataset), model.predict(dataset))


def test_list_runs_filters(saved_run):
    manager, run_id, _, _ = saved_run

    assert [r["run_id"] for r in manager.list_runs()] == [run_id]
    assert manager.list_runs(num_qubits=3) == []
    assert manager.list_runs(tags=["smoke"])[0]["run_id"] == run_id
    assert manager.list_runs(tags=["other"]) == []


def test_missing_run(tmp_path):
    manager = RunManager(str(tmp_path / "runs"))
    assert not manager.get_run_dir("nope").exists()
    with pytest.raises(FileNotFoundError):
        manager.get_run_metadata("nope")
    with pytest.raises(FileNotFoundError):
        manager.load_run("nope")


def test_predictor_reports(saved_run, dataset, tmp_path):
    manager, run_id, model, _ = saved_run
    predictor = SurrogatePredictor(run_id=run_id, runs_dir=str(manager.runs_dir))

    result = predictor.predict(dataset)
    assert result.states.shape == (2, 6, 4)
    np.testing.assert_allclose(result.overlaps, model.overlaps(dataset))

    paths = predictor.write_reports(dataset, tmp_path / "reports")
    assert all(path.exists() for path in paths.values())
    assert predictor.get_model_info()["num_qubits"] == 2


def test_predictor_from_model_path(saved_run, dataset):
    manager, run_id, model, _ = saved_run
    predictor = SurrogatePredictor(model_path=str(manager.get_run_dir(run_id) / "ensemble.pt"))

    assert torch.equal(predictor.model.predict(dataset), model.predict(dataset))
    assert predictor.model.optimizer.weight_decay == 1e-4
    loaded, _, _ = manager.load_run(run_id)
    assert repr(predictor.model.optimizer) == repr(loaded.optimizer)

    with pytest.raises(ValueError):
        SurrogatePredictor()


def test_index_summary(saved_run):
    manager, run_id, _, _ = saved_run
    summary = manager.list_runs()[0]

    assert summary["num_qubits"] == 2
    assert summary["ensemble_size"] == 2
    assert summary["hidden_dims"] == [8]
    assert summary["tags"] == ["smoke"]
    assert set(summary["final_metrics"]) == {"mse", "overlap", "entropy", "sz_error", "lyapunov"}


def test_list_runs_cli(saved_run, monkeypatch, capsys):
    import list_runs

    manager, run_id, _, _ = saved_run

    monkeypatch.setattr(sys, "argv", ["list_runs.py", "--runs-dir", str(manager.runs_dir)])
    assert list_runs.main() == 0
    out = capsys.readouterr().out
    assert run_id in out
    assert "overlap" in out

    monkeypatch.setattr(sys, "argv", ["list_runs.py", "--runs-dir", str(manager.runs_dir), "--details", run_id])
    assert list_runs.main() == 0
    out = capsys.readouterr().out
    assert "[training]" in out
    assert "Final loss per trial" in out

    monkeypatch.setattr(sys, "argv", ["list_runs.py", "--runs-dir", str(manager.runs_dir), "--num-qubits", "5"])
    assert list_runs.main() == 0
    assert "No runs found" in capsys.readouterr().out
