"""
Chain analysis
=====================================
Summary statistics and plots from the TSV files of a finished run.
"""


import logging
import os
from typing import Optional

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
from scipy.optimize import curve_fit

from . import reporting


logger = logging.getLogger(__name__)


def _is_data_line(line: str) -> bool:
    return line.split('\t')[0].strip().lstrip('-').isdigit()


def read_series(path) -> np.ndarray:
    """
    Load a TSV file as a 2D float array.

    A header line (as in trajectories.tsv) is skipped; an empty file gives
    an array of shape (0, 2).
    """
    with open(path) as f:
        lines = [line for line in f if line.strip()]
    if lines and not _is_data_line(lines[0]):
        lines = lines[1:]
    if not lines:
        return np.zeros((0, 2))
    return np.loadtxt(lines, delimiter='\t', ndmin=2)


def autocorrelation(series: np.ndarray) -> np.ndarray:
    """
    Normalised autocorrelation function C(t) / C(0) for t < N/2.
    """
    x = np.asarray(series, dtype=float)
    x = x - x.mean()
    n = len(x)
    variance = np.dot(x, x) / n
    if n < 2 or variance == 0:
        return np.ones(1)
    t_max = max(1, n // 2)
    return np.array([np.dot(x[:n - t], x[t:]) / (n - t) / variance for t in range(t_max)])


def fit_autocorrelation_time(corr: np.ndarray) -> Optional[float]:
    """
    Fit C(t) = C0 exp(-t/tau) and extract tau.

    Args:
        corr: normalised autocorrelation function
    Returns:
        tau, or None if the fit fails
    """
    t = np.arange(len(corr))

    def exp_decay(t, C0, tau):
        return np.abs(C0) * np.exp(-t / tau)

    if len(corr) < 3:
        return None
    try:
        t_fit = t[:min(15, len(t))]
        c_fit = np.abs(corr[:min(15, len(corr))])
        popt, _ = curve_fit(exp_decay, t_fit, c_fit, p0=[1.0, 1.0], maxfev=5000)
        return float(abs(popt[1]))
    except (RuntimeError, ValueError) as e:
        logger.warning("Autocorrelation fit failed: %s", e)
        return None


def chain_summary(output_dir) -> dict:
    """
    Summary of a run directory.

    Returns:
        dict with the number of trajectories, acceptance rate, mean
        plaquette with its naive standard error, <exp(-dE)> and the
        fitted plaquette autocorrelation time
    """
    trajectories = read_series(os.path.join(output_dir, reporting.TRAJECTORIES))
    plaquettes = read_series(os.path.join(output_dir, reporting.PLAQUETTE))

    n_traj = trajectories.shape[0]
    n_accept = int(trajectories[:, 2].sum()) if n_traj else 0
    boltzmann = trajectories[:, 4] if n_traj else np.zeros(0)

    plaq = plaquettes[:, 1] if plaquettes.shape[0] else np.zeros(0)
    plaq_mean = float(np.mean(plaq)) if plaq.size else float('nan')
    plaq_err = float(np.std(plaq) / np.sqrt(plaq.size)) if plaq.size else float('nan')

    tau = fit_autocorrelation_time(autocorrelation(plaq)) if plaq.size > 3 else None

    return {
        'trajectories': n_traj,
        'accepted': n_accept,
        'acceptance_rate': n_accept / n_traj if n_traj else 0.0,
        'plaquette_mean': plaq_mean,
        'plaquette_err': plaq_err,
        'boltzmann_mean': float(np.mean(boltzmann)) if boltzmann.size else float('nan'),
        'autocorrelation_time': tau,
    }


def plot_history(output_dir, out_path=None) -> str:
    """Plot plaquette and ΔE histories of a run; returns the image path."""
    if out_path is None:
        out_path = os.path.join(output_dir, 'history.png')

    plaquettes = read_series(os.path.join(output_dir, reporting.PLAQUETTE))
    rejected = read_series(os.path.join(output_dir, reporting.PLAQUETTE_REJECT))
    trajectories = read_series(os.path.join(output_dir, reporting.TRAJECTORIES))

    fig, axes = plt.subplots(2, 1, figsize=(8, 6), sharex=False)

    ax = axes[0]
    if plaquettes.shape[0]:
        ax.plot(plaquettes[:, 0], plaquettes[:, 1], 'b-', lw=1, label='accepted')
    if rejected.shape[0]:
        ax.plot(rejected[:, 0], rejected[:, 1], 'rx', ms=4, label='rejected')
    ax.set_xlabel('accepted trajectory')
    ax.set_ylabel('average plaquette')
    ax.legend(loc='best')
    ax.grid(alpha=0.3)

    ax = axes[1]
    if trajectories.shape[0]:
        ax.plot(trajectories[:, 0], trajectories[:, 3], 'k.', ms=3)
    ax.axhline(0.0, color='gray', lw=0.5)
    ax.set_xlabel('trajectory')
    ax.set_ylabel(r'$\Delta H$')
    ax.grid(alpha=0.3)

    fig.tight_layout()
    fig.savefig(out_path, dpi=120)
    plt.close(fig)
    return out_path
