import csv
import math

import numpy as np
import pytest
import torch

from spin_surrogate.dataset import Dataset
from spin_surrogate.loss import StateMSELoss
from spin_surrogate.model import METRIC_NAMES, Model
from spin_surrogate.network import WavefunctionMLP
from spin_surrogate.config import ModelConfig
from spin_surrogate.optimizer import Optimizer


def _parameters(model):
    return [p.detach().clone() for net in model.networks for p in net.parameters()]


def _rows(path):
    with open(path, newline='') as f:
        return list(csv.reader(f))


class TestConstruction:

    def test_empty_ensemble_raises(self):
        with pytest.raises(ValueError):
            Model([], StateMSELoss(), Optimizer())

    def test_unknown_aggregation_raises(self, make_model):
        with pytest.raises(ValueError):
            make_model(ensemble_aggregation="median")

    def test_unknown_norm_raises(self, make_model):
        with pytest.raises(ValueError):
            make_model(lyapunov_norm="l1")

    def test_learners_are_copied(self):
        net = WavefunctionMLP(2, ModelConfig(hidden_dims=[8]))
        before = [p.detach().clone() for p in net.parameters()]
        model = Model([net], StateMSELoss(), Optimizer(lr=1e-1))

        assert model.networks[0] is not net
        model.reset(seed=11)
        for p, q in zip(before, net.parameters()):
            assert torch.equal(p, q)


class TestTraining:

    def test_reset_is_idempotent(self, make_model, dataset):
        model = make_model()
        model.reset(seed=3)
        once = model.mse(dataset)

        model.train(dataset)
        model.reset(seed=3)
        model.reset(seed=3)

        assert model.mse(dataset) == once

    def test_reset_defaults_to_optimizer_seed(self, make_model, dataset):
        model = make_model()
        model.reset()
        first = _parameters(model)
        model.reset(seed=0)
        for p, q in zip(first, _parameters(model)):
            assert torch.equal(p, q)

    def test_training_is_deterministic(self, make_model, dataset):
        model = make_model()

        model.reset()
        first = [model.train(dataset) for _ in range(5)]
        first_metrics = model.evaluate(dataset)

        model.reset()
        second = [model.train(dataset) for _ in range(5)]
        second_metrics = model.evaluate(dataset)

        np.testing.assert_array_equal(first, second)
        assert first_metrics == second_metrics

    def test_training_reduces_loss(self, make_model, dataset):
        model = make_model(hidden_dims=(32,), lr=1e-2)
        model.reset()

        losses = [np.mean(model.train(dataset)) for _ in range(200)]

        assert losses[-1] < losses[0]

    def test_train_returns_one_loss_per_learner(self, make_model, dataset):
        model = make_model(ensemble_size=3)
        assert len(model.train(dataset)) == 3

    def test_learners_update_independently(self, dataset):
        config = ModelConfig(hidden_dims=[8], ensemble_size=2)
        nets = [WavefunctionMLP(2, config) for _ in range(2)]

        pair = Model(nets, StateMSELoss(), Optimizer(lr=1e-2))
        single = Model(nets[:1], StateMSELoss(), Optimizer(lr=1e-2))
        for _ in range(3):
            pair.train(dataset)
            single.train(dataset)

        for p, q in zip(pair.networks[0].parameters(), single.networks[0].parameters()):
            assert torch.equal(p, q)

    def test_learn_from_updates_parameters(self, make_model, dataset):
        model = make_model()
        before = _parameters(model)

        assert model.learn_from(dataset) is None
        assert any(not torch.equal(p, q) for p, q in zip(before, _parameters(model)))

    def test_empty_dataset_leaves_parameters(self, make_model):
        model = make_model()
        before = _parameters(model)

        losses = model.train(Dataset((), (), ()))

        assert len(losses) == 2
        assert all(math.isnan(l) for l in losses)
        for p, q in zip(before, _parameters(model)):
            assert torch.equal(p, q)


class TestMetrics:

    def test_predict_shape_and_norm(self, make_model, dataset):
        states = make_model(ensemble_size=3).predict(dataset)
        assert states.shape == (3, 6, 4)
        np.testing.assert_allclose(torch.linalg.vector_norm(states, dim=-1).numpy(), 1.0, rtol=1e-5)

    def test_aggregation_modes(self, make_model, dataset):
        assert make_model(ensemble_size=3).ensemble_states(dataset).shape == (3, 6, 4)
        mean = make_model(ensemble_size=3, ensemble_aggregation="mean_of_predictions")
        assert mean.ensemble_states(dataset).shape == (1, 6, 4)

    @pytest.mark.parametrize("aggregation", ["mean_of_metrics", "mean_of_predictions"])
    def test_scalar_metrics(self, make_model, dataset, aggregation):
        model = make_model(ensemble_aggregation=aggregation)

        assert model.mse(dataset) >= 0.0
        assert 0.0 <= model.overlap(dataset) <= 1.0
        assert model.overlaps(dataset).shape == (6,)
        assert model.sz_error(dataset) >= 0.0
        assert math.isfinite(model.lyapunov_estimate(dataset))

    def test_entanglement_entropy_of_single_state(self, make_model):
        model = make_model()
        bell = np.array([1.0, 0.0, 0.0, 1.0]) / math.sqrt(2)

        assert model.entanglement_entropy(bell) == pytest.approx(math.log(2))
        assert model.entanglement_entropy(np.array([0.0, 1.0, 0.0, 0.0])) == pytest.approx(0.0, abs=1e-12)
        assert model.reduced_density_matrix(bell).shape == (2, 2)

    def test_subsystem_size_is_configurable(self, make_model):
        psi = torch.zeros(16, dtype=torch.float64)
        psi[[0, 5, 10, 15]] = 0.5

        assert make_model(num_qubits=4).entanglement_entropy(psi) == pytest.approx(2 * math.log(2))
        assert make_model(num_qubits=4, subsystem_size=1).entanglement_entropy(psi) == pytest.approx(math.log(2))
        with pytest.raises(ValueError):
            make_model(num_qubits=4, subsystem_size=5).entanglement_entropy(psi)

    def test_entropies_are_bounded(self, make_model, dataset):
        predicted, exact = make_model().entropies(dataset)

        assert predicted.shape == exact.shape == (6,)
        for values in (predicted, exact):
            assert np.all(values >= 0.0)
            assert np.all(values <= math.log(2) + 1e-6)

    def test_magnetization_of_reference_states(self, make_model, dataset):
        _, exact = make_model().magnetization(dataset)
        assert exact.shape == (6,)
        assert np.all(np.abs(exact) <= 1.0 + 1e-12)

    def test_lyapunov_is_seeded(self, make_model, dataset):
        model = make_model()
        np.testing.assert_array_equal(model.lyapunov_exponents(dataset), model.lyapunov_exponents(dataset))
        assert make_model(lyapunov_norm="linf").lyapunov_exponents(dataset).shape == (6,)

    def test_lyapunov_exponents_follow_the_instance(self, make_model, dataset):
        model = make_model()
        for net in model.networks:
            net.double()

        exponents = model.lyapunov_exponents(dataset)
        reversed_order = model.lyapunov_exponents(dataset.subset([5, 4, 3, 2, 1, 0]))
        np.testing.assert_allclose(reversed_order[::-1], exponents, rtol=1e-9, atol=1e-9)

        train, test = dataset.split(0.5, seed=1)
        rows = {tuple(r): i for i, r in enumerate(dataset.inputs())}
        for part in (train, test):
            expected = exponents[[rows[tuple(r)] for r in part.inputs()]]
            np.testing.assert_allclose(model.lyapunov_exponents(part), expected, rtol=1e-9, atol=1e-9)

    def test_lyapunov_seed_changes_directions(self, make_model, dataset):
        first = make_model(lyapunov_seed=0)
        second = make_model(lyapunov_seed=1)
        second.networks = first.networks
        assert not np.array_equal(first.lyapunov_exponents(dataset), second.lyapunov_exponents(dataset))

    def test_empty_dataset(self, make_model):
        model = make_model()
        empty = Dataset((), (), ())

        assert math.isnan(model.mse(empty))
        assert math.isnan(model.overlap(empty))
        assert model.overlaps(empty).shape == (0,)
        assert all(math.isnan(v) for v in model.evaluate(empty).values())


class TestPersistence:

    def test_append_metrics_writes_header_once(self, make_model, dataset, tmp_path):
        model = make_model()
        path = tmp_path / "metrics.csv"

        records = model.append_metrics(dataset, trial=0, epoch=0, fpath=path)
        model.append_metrics(dataset, trial=0, epoch=10, fpath=path)

        rows = _rows(path)
        assert rows[0] == ["trial", "epoch", *METRIC_NAMES]
        assert len(rows) == 3
        assert rows[2][:2] == ["0", "10"]
        assert [r.name for r in records] == list(METRIC_NAMES)
        assert all(r.trial == 0 and r.epoch == 0 for r in records)
        assert float(rows[1][3]) == pytest.approx(records[1].value)

    @pytest.mark.parametrize("writer, header", [
        ("write_overlap", ["index", "overlap"]),
        ("write_magnetization", ["index", "predicted", "exact"]),
        ("write_entanglement_entropy", ["index", "predicted", "exact"]),
        ("write_lyapunov_estimate", ["index", "lyapunov"]),
        ("write_radial_visualization", ["index", "x", "y", "overlap"]),
    ])
    def test_per_instance_writers(self, make_model, dataset, tmp_path, writer, header):
        path = tmp_path / f"{writer}.csv"
        getattr(make_model(), writer)(dataset, path)

        rows = _rows(path)
        assert rows[0] == header
        assert len(rows) == len(dataset) + 1
        assert [int(r[0]) for r in rows[1:]] == list(range(1, len(dataset) + 1))

    def test_writers_append(self, make_model, dataset, tmp_path):
        model = make_model()
        path = tmp_path / "overlap.csv"
        model.write_overlap(dataset, path)
        model.write_overlap(dataset, path)

        assert len(_rows(path)) == 2 * len(dataset) + 1

    def test_radial_visualization_inside_unit_disk(self, make_model, dataset, tmp_path):
        path = tmp_path / "radviz.csv"
        make_model().write_radial_visualization(dataset, path)

        for row in _rows(path)[1:]:
            assert math.hypot(float(row[1]), float(row[2])) <= 1.0 + 1e-9

    def test_append_wandb_for_radviz(self, make_model, tmp_path):
        path = tmp_path / "wandb.csv"
        model = make_model(ensemble_size=3)
        model.append_wandb_for_radviz(path)
        model.append_wandb_for_radviz(path)

        rows = _rows(path)
        assert rows[0] == ["learner", "x", "y"]
        assert len(rows) == 7


class TestSummaries:

    def test_print_average_overlap(self, make_model, dataset, capsys):
        make_model().print_average_overlap(dataset)
        assert "Average overlap" in capsys.readouterr().out

    def test_print_average_sz_error(self, make_model, dataset, capsys):
        make_model().print_average_sz_error(dataset)
        assert "magnetization error" in capsys.readouterr().out

    def test_print_inference_time(self, make_model, dataset, capsys):
        per_instance = make_model().print_inference_time(dataset)
        assert per_instance >= 0.0
        assert "Inference time" in capsys.readouterr().out
