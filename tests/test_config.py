from pathlib import Path

from spin_surrogate.config import Config, load_config


def test_yaml_round_trip(tmp_path):
    config = Config()
    config.data.num_qubits = 6
    config.model.hidden_dims = [32, 16]
    config.metrics.ensemble_aggregation = "mean_of_predictions"
    config.metrics.subsystem_size = 2
    path = tmp_path / "config.yaml"

    config.save_yaml(str(path))

    assert load_config(str(path)) == config


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(str(path)) == Config()


def test_partial_file_keeps_other_sections(tmp_path):
    path = tmp_path / "partial.yaml"
    path.write_text("training:\n  epochs: 10\n")

    config = load_config(str(path))

    assert config.training.epochs == 10
    assert config.training.lr == Config().training.lr
    assert config.model == Config().model


def test_default_config_file():
    config = load_config(str(Path(__file__).parent.parent / "configs" / "default.yaml"))

    assert config.data.dim == 2 ** config.data.num_qubits
    assert config.metrics.ensemble_aggregation == "mean_of_metrics"
    assert config.metrics.subsystem_size is None
