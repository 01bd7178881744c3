import numpy as np
import pytest
import torch

from su2hmc.analysis import (
    autocorrelation,
    chain_summary,
    fit_autocorrelation_time,
    plot_history,
    read_series,
)
from su2hmc.hmc import TrajectoryResult
from su2hmc.reporting import (
    ChainReporter,
    ENERGY,
    ENERGY_REJECT,
    PLAQUETTE,
    PLAQUETTE_REJECT,
    TRAJECTORIES,
    TRAJECTORY_COLUMNS,
)


def _write_run(directory, n=40, seed=0):
    """Fake run directory with an AR(1) plaquette series."""
    rng = np.random.default_rng(seed)
    plaq = np.empty(n)
    plaq[0] = 0.5
    for i in range(1, n):
        plaq[i] = 0.5 + 0.8 * (plaq[i - 1] - 0.5) + 0.01 * rng.standard_normal()

    with open(directory / PLAQUETTE, 'w') as f:
        for i, p in enumerate(plaq):
            f.write(f"{i}\t{float(p)!r}\n")
    with open(directory / ENERGY, 'w') as f:
        for i in range(n):
            f.write(f"{i}\t{float(-1.0 - 0.01 * i)!r}\n")
    (directory / ENERGY_REJECT).write_text('')
    (directory / PLAQUETTE_REJECT).write_text('3\t0.45\n')
    with open(directory / TRAJECTORIES, 'w') as f:
        f.write('\t'.join(TRAJECTORY_COLUMNS) + '\n')
        for i in range(n + 1):
            accepted = 0 if i == 4 else 1
            f.write(f"{i}\t{min(i, n)}\t{accepted}\t0.01\t0.99\t-1.0\t0.5\t1.0\n")
    return plaq


def test_read_series_plain_and_with_header(tmp_path):
    _write_run(tmp_path)
    plain = read_series(tmp_path / PLAQUETTE)
    assert plain.shape == (40, 2)
    assert plain[0, 0] == 0
    table = read_series(tmp_path / TRAJECTORIES)
    assert table.shape == (41, len(TRAJECTORY_COLUMNS))


def test_read_series_empty_file(tmp_path):
    path = tmp_path / ENERGY_REJECT
    path.write_text('')
    assert read_series(path).shape == (0, 2)


def test_read_series_negative_index_is_data(tmp_path):
    path = tmp_path / 'series.tsv'
    path.write_text('-1\t0.5\n0\t0.25\n')
    assert read_series(path).shape == (2, 2)


def test_autocorrelation_starts_at_one():
    series = np.sin(np.linspace(0, 20, 200))
    corr = autocorrelation(series)
    assert corr[0] == pytest.approx(1.0)
    assert len(corr) == 100


def test_autocorrelation_of_constant_series():
    assert np.array_equal(autocorrelation(np.full(10, 3.0)), np.ones(1))


def test_fit_autocorrelation_time_recovers_decay():
    tau = 4.0
    corr = np.exp(-np.arange(20) / tau)
    assert fit_autocorrelation_time(corr) == pytest.approx(tau, rel=1e-3)


def test_fit_needs_a_few_points():
    assert fit_autocorrelation_time(np.ones(2)) is None


def test_chain_summary(tmp_path):
    plaq = _write_run(tmp_path)
    summary = chain_summary(tmp_path)
    assert summary['trajectories'] == 41
    assert summary['accepted'] == 40
    assert summary['acceptance_rate'] == pytest.approx(40 / 41)
    assert summary['plaquette_mean'] == pytest.approx(plaq.mean())
    assert summary['plaquette_err'] == pytest.approx(plaq.std() / np.sqrt(40))
    assert summary['boltzmann_mean'] == pytest.approx(0.99)
    tau = summary['autocorrelation_time']
    assert tau is None or tau > 0


def test_plot_history(tmp_path):
    _write_run(tmp_path)
    path = plot_history(tmp_path)
    assert path == str(tmp_path / 'history.png')
    assert (tmp_path / 'history.png').stat().st_size > 0

    custom = plot_history(tmp_path, str(tmp_path / 'custom.png'))
    assert custom.endswith('custom.png')
    assert (tmp_path / 'custom.png').exists()


def test_reporter_output_reads_back(tmp_path):
    results = [
        TrajectoryResult(index=0, accepted=True, energy_before=np.float64(-10.0),
                         energy_after=np.float64(-9.5), delta_energy=np.float64(0.5),
                         boltzmann_factor=np.float64(np.exp(-0.5)), plaquette=np.float64(0.25)),
        TrajectoryResult(index=1, accepted=False, energy_before=-9.5, energy_after=40.0,
                         delta_energy=49.5, boltzmann_factor=float('inf'),
                         plaquette=torch.tensor(0.125, dtype=torch.float64)),
    ]
    with ChainReporter(tmp_path) as reporter:
        reporter.record(results[0], 0, 2, torch.tensor(1.0, dtype=torch.float64))
        reporter.record(results[1], 1, 2, np.float64(0.5))

    plaquettes = read_series(tmp_path / PLAQUETTE)
    assert plaquettes.tolist() == [[0.0, 0.25]]
    assert read_series(tmp_path / ENERGY).tolist() == [[0.0, -4.75]]
    assert read_series(tmp_path / PLAQUETTE_REJECT).tolist() == [[1.0, 0.125]]

    table = read_series(tmp_path / TRAJECTORIES)
    assert table.shape == (2, len(TRAJECTORY_COLUMNS))
    assert table[0, 4] == pytest.approx(np.exp(-0.5))
    assert np.isinf(table[1, 4])
    assert table[:, 7].tolist() == [1.0, 0.5]
