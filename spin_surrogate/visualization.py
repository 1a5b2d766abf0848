"""
Visualization utilities for the spin-chain surrogate.

Provides plotting functions for:
- Training loss curves per trial
- Metric snapshots over epochs
- Predicted versus exact per-instance observables
- RadViz projections of predicted states
"""

from typing import List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from .model import METRIC_NAMES, MetricRecord


def plot_loss_curves(
    losses: List[List[float]],
    save_path: Optional[str] = None
) -> plt.Figure:
    """Plot the mean ensemble loss of every trial.

    Args:
        losses: Per trial, the loss of every epoch.
        save_path: If provided, saves figure to this path.

    Returns:
        Matplotlib Figure object.
    """
    fig, ax = plt.subplots(figsize=(10, 5))

    for trial, trial_losses in enumerate(losses):
        ax.plot(trial_losses, linewidth=0.8, alpha=0.8, label=f'Trial {trial}')

    ax.set_xlabel('Epoch')
    ax.set_ylabel('Loss')
    ax.set_title('Training Loss')
    ax.set_yscale('log')
    if len(losses) > 1:
        ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig


def plot_metric_history(
    records: Sequence[MetricRecord],
    save_path: Optional[str] = None
) -> plt.Figure:
    """Plot every metric snapshot against epoch, one panel per metric.

    Args:
        records: Metric records from a TrainingResult.
        save_path: If provided, saves figure to this path.

    Returns:
        Matplotlib Figure object.
    """
    fig, axs = plt.subplots(1, len(METRIC_NAMES), figsize=(4 * len(METRIC_NAMES), 4))
    trials = sorted({r.trial for r in records})

    for ax, name in zip(axs, METRIC_NAMES):
        for trial in trials:
            history = [r for r in records if r.name == name and r.trial == trial]
            ax.plot([r.epoch for r in history], [r.value for r in history],
                    '-o', markersize=3, label=f'Trial {trial}')
        ax.set_xlabel('Epoch')
        ax.set_title(name)
        if name in ("mse", "sz_error"):
            ax.set_yscale('log')
        ax.grid(True, alpha=0.3)

    if len(trials) > 1:
        axs[0].legend(fontsize=8)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig


def plot_predicted_vs_exact(
    predicted: np.ndarray,
    exact: np.ndarray,
    label: str,
    save_path: Optional[str] = None
) -> plt.Figure:
    """Scatter predicted against exact per-instance values of one observable.

    Args:
        predicted: Predicted values of shape (N,).
        exact: Reference values of shape (N,).
        label: Observable name used in the axis labels.
        save_path: If provided, saves figure to this path.

    Returns:
        Matplotlib Figure object.
    """
    fig, ax = plt.subplots(figsize=(6, 6))

    ax.scatter(exact, predicted, s=10, alpha=0.7)
    lo = float(min(np.min(exact), np.min(predicted)))
    hi = float(max(np.max(exact), np.max(predicted)))
    ax.plot([lo, hi], [lo, hi], 'k--', linewidth=1)

    ax.set_xlabel(f'Exact {label}')
    ax.set_ylabel(f'Predicted {label}')
    ax.set_title(f'{label}: prediction vs exact diagonalization')
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig


def plot_radviz(
    coords: np.ndarray,
    num_anchors: int,
    values: Optional[np.ndarray] = None,
    save_path: Optional[str] = None
) -> plt.Figure:
    """Plot RadViz coordinates inside the unit circle of anchors.

    Args:
        coords: Points of shape (N, 2).
        num_anchors: Number of anchors (feature dimension).
        values: Optional per-point values used as colours (e.g. overlap).
        save_path: If provided, saves figure to this path.

    Returns:
        Matplotlib Figure object.
    """
    fig, ax = plt.subplots(figsize=(7, 7))

    angles = np.arange(num_anchors) * 2 * np.pi / num_anchors
    circle = np.linspace(0, 2 * np.pi, 200)
    ax.plot(np.cos(circle), np.sin(circle), 'k-', linewidth=0.5)
    ax.scatter(np.cos(angles), np.sin(angles), c='k', s=15)

    sc = ax.scatter(coords[:, 0], coords[:, 1], c=values, cmap='viridis', s=12)
    if values is not None:
        plt.colorbar(sc, ax=ax, label='Overlap')

    ax.set_aspect('equal')
    ax.set_xlim(-1.1, 1.1)
    ax.set_ylim(-1.1, 1.1)
    ax.set_title('Radial Visualization of Predicted States')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig
