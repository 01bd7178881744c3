"""
SU(2) HMC driver
=====================================
Command line entry point: generate a Markov chain of gauge configurations
from an INI file, summarise it, or plot it.

    su2hmc run hmc.ini --output-dir run1
    su2hmc analyze run1
    su2hmc plot run1
"""


import argparse
import json
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional, Sequence

import torch
from tqdm import tqdm

from .action import WilsonAction
from .analysis import chain_summary, plot_history
from .config import HMCConfig, load_config
from .errors import SU2HMCError
from .hmc import LeapfrogIntegrator, MetropolisGate
from .lattice import LatticeField
from .reporting import FINAL_LINKS, ChainReporter, ensure_fresh_output
from .snapshot import save_links, snapshot_filename
from .su2 import RandomContext, randomize_group
from .validation import invariant_checks_enabled


logger = logging.getLogger(__name__)

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


@dataclass
class RunSummary:
    trajectories: int
    accepted: int
    stored: int

    @property
    def acceptance_rate(self) -> float:
        return self.accepted / self.trajectories if self.trajectories else 0.0


def run_chain(config: HMCConfig, output_dir: str, progress: bool = True) -> RunSummary:
    """
    Generate `chain.total` stored configurations.

    Every accepted trajectory increments the computed counter; each
    `chain.skip`-th one (every one for skip = 0) is stored as
    gauge-links-NNNN.bin when `output.links` is set.

    Args:
        config: validated run configuration
        output_dir: directory for the time series and snapshots
        progress: show a tqdm progress bar
    Returns:
        counts of trajectories, acceptances and stored configurations
    """
    ensure_fresh_output(output_dir)

    if config.run.threads is not None:
        torch.set_num_threads(config.run.threads)
    device = torch.device(config.run.device)

    lattice = config.lattice
    rng = RandomContext.from_seed(config.init.seed, std=config.init.hot_start_std, device=device)
    links = LatticeField(lattice.length_space, lattice.length_time, device=device)
    randomize_group(links, rng)

    logger.info("Lattice: %d x %d^3, volume %d, %d bytes per field",
                lattice.length_time, lattice.length_space, links.volume(), links.storage_size())
    logger.debug("Element:\n%s", links[0, 0, 0, 0, 0])

    integrator = LeapfrogIntegrator(WilsonAction(config.md.beta),
                                    config.md.time_step, config.md.steps)
    check_invariants = config.run.check_invariants or invariant_checks_enabled()
    gate = MetropolisGate(links, integrator, rng.with_std(config.init.momentum_std),
                          check_invariants=check_invariants)

    stored = 0
    computed = 0
    with ChainReporter(output_dir) as reporter:
        reporter.write_params(config.to_dict())
        bar = tqdm(total=config.chain.total, desc='Configurations', disable=not progress)
        try:
            while stored < config.chain.total:
                result = gate.trajectory()
                reporter.record(result, computed, links.volume(), gate.acceptance_rate)

                if result.accepted:
                    computed += 1
                    if config.chain.skip == 0 or computed % config.chain.skip == 0:
                        if config.output.links:
                            save_links(links, os.path.join(output_dir, snapshot_filename(stored)))
                        stored += 1
                        bar.update(1)

                logger.info("Plaquette: %.10g", result.plaquette)
                logger.info("Acceptance rate: %d / %d = %.4f",
                            gate.accepted, gate.trials, gate.acceptance_rate)
        finally:
            bar.close()
        gate.finish()

    if config.output.links:
        save_links(links, os.path.join(output_dir, FINAL_LINKS))

    return RunSummary(trajectories=gate.trials, accepted=gate.accepted, stored=stored)


def _cmd_run(args) -> int:
    config = load_config(args.config)
    summary = run_chain(config, args.output_dir, progress=not args.no_progress)
    print(f"Trajectories: {summary.trajectories}")
    print(f"Accepted:     {summary.accepted} ({summary.acceptance_rate:.1%})")
    print(f"Stored:       {summary.stored}")
    return 0


def _cmd_analyze(args) -> int:
    summary = chain_summary(args.output_dir)
    print(json.dumps(summary, indent=2))
    return 0


def _cmd_plot(args) -> int:
    path = plot_history(args.output_dir, args.out)
    print(f"Plot saved: {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='su2hmc',
        description='Hybrid Monte Carlo for 4D SU(2) lattice gauge theory.',
    )
    parser.add_argument('--log-level', default='INFO', choices=LOG_LEVELS,
                        help='logging verbosity (default: INFO)')
    # Also accepted after the subcommand.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--log-level', default=argparse.SUPPRESS, choices=LOG_LEVELS)
    sub = parser.add_subparsers(dest='command', required=True)

    p_run = sub.add_parser('run', parents=[common], help='generate a Markov chain')
    p_run.add_argument('config', help='INI configuration file')
    p_run.add_argument('--output-dir', default='.',
                       help='directory for time series and snapshots (default: .)')
    p_run.add_argument('--no-progress', action='store_true', help='hide the progress bar')
    p_run.set_defaults(func=_cmd_run)

    p_analyze = sub.add_parser('analyze', parents=[common], help='summarise a finished run')
    p_analyze.add_argument('output_dir')
    p_analyze.set_defaults(func=_cmd_analyze)

    p_plot = sub.add_parser('plot', parents=[common], help='plot plaquette and energy histories')
    p_plot.add_argument('output_dir')
    p_plot.add_argument('--out', default=None, help='image file (default: OUTPUT_DIR/history.png)')
    p_plot.set_defaults(func=_cmd_plot)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    try:
        return args.func(args)
    except SU2HMCError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1


if __name__ == '__main__':
    sys.exit(main())
