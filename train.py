#!/usr/bin/env python3
"""
Command-line interface for training a surrogate ensemble.

Usage:
    python train.py                                   # Use default config, auto-saves to runs/
    python train.py --config configs/custom.yaml      # Use custom config
    python train.py --epochs 5000 --lr 0.0001         # Override specific params
    python train.py --num-qubits 6 --train data/n6.bin
    python train.py --run-name my_experiment          # Custom run name
    python train.py --tags baseline ensemble8         # Add tags for categorization
"""

import argparse
import logging
import sys

import matplotlib.pyplot as plt

from spin_surrogate.config import Config, load_config
from spin_surrogate.reader import DatasetReadError, Reader
from spin_surrogate.run_manager import RunManager
from spin_surrogate.trainer import EnsembleTrainer, build_model
from spin_surrogate.visualization import (
    plot_loss_curves,
    plot_metric_history,
    plot_predicted_vs_exact,
)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Train an ensemble of ground-state surrogates for spin chains',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='Path to YAML configuration file'
    )

    # Data parameters
    parser.add_argument('--num-qubits', '-n', type=int, help='Number of chain sites')
    parser.add_argument('--train', type=str, help='Binary training dataset')
    parser.add_argument('--test', type=str, help='Binary test dataset')

    # Model parameters
    parser.add_argument(
        '--hidden-dims',
        type=int,
        nargs='+',
        help='Hidden layer dimensions (e.g., --hidden-dims 64 64)'
    )
    parser.add_argument(
        '--activation',
        type=str,
        choices=['tanh', 'silu', 'gelu', 'relu'],
        help='Activation function'
    )
    parser.add_argument('--ensemble-size', type=int, help='Number of learners')

    # Training parameters
    parser.add_argument('--trials', type=int, help='Number of independent trials')
    parser.add_argument('--epochs', '-e', type=int, help='Number of training epochs per trial')
    parser.add_argument('--lr', type=float, help='Learning rate')
    parser.add_argument('--optimizer', type=str, choices=['adam', 'sgd', 'rmsprop'], help='Optimizer')
    parser.add_argument('--loss', type=str, choices=['mse', 'infidelity'], help='Loss functional')
    parser.add_argument('--seed', type=int, help='Base seed')

    # Metric parameters
    parser.add_argument('--subsystem-size', type=int, help='Qubits in entanglement subsystem A')
    parser.add_argument(
        '--aggregation',
        type=str,
        choices=['mean_of_metrics', 'mean_of_predictions'],
        help='Ensemble aggregation rule for metrics'
    )

    # Run management
    parser.add_argument(
        '--run-name',
        type=str,
        default=None,
        help='Custom run name (auto-generated from timestamp and config if omitted)'
    )
    parser.add_argument(
        '--tags',
        type=str,
        nargs='*',
        default=None,
        help='Tags for categorizing the run (e.g., --tags baseline gpu)'
    )
    parser.add_argument(
        '--no-plots',
        action='store_true',
        help='Disable plot generation'
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress progress output'
    )

    return parser.parse_args()


def build_config(args) -> Config:
    """Build configuration from args, optionally loading from YAML first."""
    if args.config:
        config = load_config(args.config)
    else:
        config = Config()

    # Override data config
    if args.num_qubits is not None:
        config.data.num_qubits = args.num_qubits
    if args.train is not None:
        config.data.train_path = args.train
    if args.test is not None:
        config.data.test_path = args.test

    # Override model config
    if args.hidden_dims is not None:
        config.model.hidden_dims = args.hidden_dims
    if args.activation is not None:
        config.model.activation = args.activation
    if args.ensemble_size is not None:
        config.model.ensemble_size = args.ensemble_size

    # Override training config
    if args.trials is not None:
        config.training.trials = args.trials
    if args.epochs is not None:
        config.training.epochs = args.epochs
    if args.lr is not None:
        config.training.lr = args.lr
    if args.optimizer is not None:
        config.training.optimizer = args.optimizer
    if args.loss is not None:
        config.training.loss = args.loss
    if args.seed is not None:
        config.training.seed = args.seed

    # Override metrics config
    if args.subsystem_size is not None:
        config.metrics.subsystem_size = args.subsystem_size
    if args.aggregation is not None:
        config.metrics.ensemble_aggregation = args.aggregation

    return config


def main():
    """Main entry point."""
    args = parse_args()

    # Setup logging
    log_level = logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger = logging.getLogger(__name__)

    config = build_config(args)

    # Load datasets
    try:
        train_set = Reader(config.data.num_qubits, config.data.train_path, config.data.dtype).read()
        if config.data.test_path:
            test_set = Reader(config.data.num_qubits, config.data.test_path, config.data.dtype).read()
        else:
            train_set, test_set = train_set.split(config.data.test_fraction, seed=config.data.split_seed)
    except DatasetReadError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return -1

    # Initialize run manager and generate run ID
    run_manager = RunManager("runs")
    run_id = run_manager.generate_run_id(config, custom_name=args.run_name)
    run_dir = run_manager.create_run_dir(run_id)
    plots_dir = run_dir / "plots"

    if not args.quiet:
        print("=" * 60)
        print("Spin-Chain Ground-State Surrogate")
        print("=" * 60)
        print(f"Run ID: {run_id}")
        print(f"Chain: n={config.data.num_qubits} (dim={config.data.dim})")
        print(f"Data: {len(train_set)} train / {len(test_set)} test instances")
        print(f"Ensemble: {config.model.ensemble_size} x hidden_dims={config.model.hidden_dims}, "
              f"activation={config.model.activation}")
        print(f"Training: trials={config.training.trials}, epochs={config.training.epochs}, "
              f"lr={config.training.lr}, optimizer={config.training.optimizer}, loss={config.training.loss}")
        print(f"Output: {run_dir}")
        print("=" * 60)
        print()

    logger.info("Initializing ensemble and trainer...")
    model = build_model(config)
    trainer = EnsembleTrainer(model, config)

    if not args.quiet:
        print(model)
        print(model.networks[0])
        print()

    logger.info("Starting training...")
    result = trainer.train(
        train_set,
        eval_set=test_set if len(test_set) else train_set,
        metrics_path=run_dir / "metrics.csv",
        checkpoint_dir=run_dir / "checkpoints",
        verbose=not args.quiet,
    )
    logger.info("Training complete!")

    run_manager.save_run(
        run_id=run_id,
        model=model,
        config=config,
        result=result,
        tags=args.tags,
    )
    logger.info(f"Saved run to {run_dir}")

    if not args.no_plots:
        fig = plot_loss_curves(result.losses, save_path=plots_dir / 'loss_curves.png')
        plt.close(fig)
        logger.info(f"Saved loss curves to {plots_dir / 'loss_curves.png'}")

        fig = plot_metric_history(result.metrics, save_path=plots_dir / 'metrics.png')
        plt.close(fig)
        logger.info(f"Saved metric history to {plots_dir / 'metrics.png'}")

        eval_set = test_set if len(test_set) else train_set
        predicted, exact = model.entropies(eval_set)
        fig = plot_predicted_vs_exact(predicted, exact, 'entanglement entropy',
                                      save_path=plots_dir / 'entropy.png')
        plt.close(fig)

        predicted, exact = model.magnetization(eval_set)
        fig = plot_predicted_vs_exact(predicted, exact, 'magnetization',
                                      save_path=plots_dir / 'magnetization.png')
        plt.close(fig)

    if not args.quiet:
        final = result.final_metrics()
        print()
        print("=" * 60)
        print("Training Summary")
        print("=" * 60)
        print(f"Run ID: {run_id}")
        print(f"Training time: {result.training_time:.2f}s")
        if result.losses and result.losses[-1]:
            print(f"Final loss: {result.losses[-1][-1]:.4e}")
        for name, value in final.items():
            print(f"  {name:<10} {value:.4e}")
        print(f"Output saved to: {run_dir}")
        print()
        print("To evaluate:")
        print(f"  python evaluate.py --run-id {run_id} --data <dataset.bin>")
        print("=" * 60)

    return 0


if __name__ == '__main__':
    exit(main())
