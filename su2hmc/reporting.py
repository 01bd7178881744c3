"""
Reporting
=====================================
Tab-separated time series of the Markov chain.

- energy.tsv / plaquette.tsv: accepted trajectories
- energy-reject.tsv / plaquette-reject.tsv: rejected trajectories
- trajectories.tsv: one row per trajectory with the full record
"""


import glob
import json
import os
from typing import List

from .errors import OutputExistsError
from .hmc import TrajectoryResult


ENERGY = 'energy.tsv'
PLAQUETTE = 'plaquette.tsv'
ENERGY_REJECT = 'energy-reject.tsv'
PLAQUETTE_REJECT = 'plaquette-reject.tsv'
TRAJECTORIES = 'trajectories.tsv'
PARAMS = 'params.json'
FINAL_LINKS = 'links.bin'

SERIES_FILES = (ENERGY, PLAQUETTE, ENERGY_REJECT, PLAQUETTE_REJECT, TRAJECTORIES)

TRAJECTORY_COLUMNS = (
    'trajectory', 'computed', 'accepted', 'delta_energy', 'boltzmann_factor',
    'energy_per_site', 'plaquette', 'acceptance_rate',
)


def existing_outputs(output_dir) -> List[str]:
    """Output files of an earlier run present in `output_dir`."""
    names = list(SERIES_FILES) + [PARAMS, FINAL_LINKS]
    found = [os.path.join(output_dir, name) for name in names
             if os.path.exists(os.path.join(output_dir, name))]
    found += sorted(glob.glob(os.path.join(output_dir, 'gauge-links-*.bin')))
    return found


def ensure_fresh_output(output_dir):
    """Refuse to continue into a directory holding an earlier time series."""
    found = existing_outputs(output_dir)
    if found:
        raise OutputExistsError(found)


def _cell(value) -> str:
    """Shortest round-tripping text for a numeric cell, for any real scalar type."""
    return repr(float(value))


class ChainReporter:
    """Writes the per-trajectory time series; use as a context manager."""

    def __init__(self, output_dir):
        self.output_dir = output_dir
        self._files = {}

    def __enter__(self) -> 'ChainReporter':
        os.makedirs(self.output_dir, exist_ok=True)
        ensure_fresh_output(self.output_dir)
        for name in SERIES_FILES:
            # 'x' mode guards against a file appearing after the check.
            self._files[name] = open(os.path.join(self.output_dir, name), 'x')
        self._write(TRAJECTORIES, *TRAJECTORY_COLUMNS)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self):
        for f in self._files.values():
            f.close()
        self._files = {}

    def _write(self, name: str, *values):
        f = self._files[name]
        f.write('\t'.join(str(v) for v in values) + '\n')
        f.flush()

    def write_params(self, params: dict):
        with open(os.path.join(self.output_dir, PARAMS), 'x') as f:
            json.dump(params, f, indent=2)

    def record(self, result: TrajectoryResult, computed: int, volume: int,
               acceptance_rate: float):
        """
        Append one trajectory.

        Args:
            result: outcome from the Metropolis gate
            computed: number of accepted trajectories before this one
            volume: lattice volume for the per-site energy
            acceptance_rate: running acceptance rate
        """
        energy_per_site = result.energy_after / volume
        if result.accepted:
            self._write(ENERGY, computed, _cell(energy_per_site))
            self._write(PLAQUETTE, computed, _cell(result.plaquette))
        else:
            self._write(ENERGY_REJECT, computed, _cell(energy_per_site))
            self._write(PLAQUETTE_REJECT, computed, _cell(result.plaquette))
        self._write(
            TRAJECTORIES, result.index, computed, int(result.accepted),
            _cell(result.delta_energy), _cell(result.boltzmann_factor),
            _cell(energy_per_site), _cell(result.plaquette), _cell(acceptance_rate),
        )
