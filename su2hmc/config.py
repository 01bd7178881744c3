"""
Run configuration
=====================================
INI file with the sections lattice, init, md, chain, output and the
optional section run.

    [lattice]
    length_time = 8
    length_space = 4

    [init]
    hot_start_std = 1.0
    seed = 42

    [md]
    time_step = 0.01
    steps = 10
    beta = 2.0

    [chain]
    total = 100
    skip = 1

    [output]
    links = true
"""


import configparser
from dataclasses import asdict, dataclass, field
from typing import Optional

from .errors import ConfigurationError


@dataclass(frozen=True)
class LatticeConfig:
    length_time: int
    length_space: int


@dataclass(frozen=True)
class InitConfig:
    hot_start_std: float
    seed: int
    # Width of the momentum refresh; the coupling to md.time_step is left open.
    momentum_std: float = 1.0


@dataclass(frozen=True)
class MDConfig:
    time_step: float
    steps: int
    beta: float


@dataclass(frozen=True)
class ChainConfig:
    total: int
    skip: int


@dataclass(frozen=True)
class OutputConfig:
    links: bool


@dataclass(frozen=True)
class RunConfig:
    threads: Optional[int] = None
    device: str = 'cpu'
    check_invariants: bool = False


@dataclass(frozen=True)
class HMCConfig:
    lattice: LatticeConfig
    init: InitConfig
    md: MDConfig
    chain: ChainConfig
    output: OutputConfig
    run: RunConfig = field(default_factory=RunConfig)

    def to_dict(self) -> dict:
        return asdict(self)


def _get(parser: configparser.ConfigParser, key: str, kind, fallback=None, required=True):
    section, _, option = key.partition('.')
    if not parser.has_option(section, option):
        if required:
            raise ConfigurationError(key, "missing required key")
        return fallback
    try:
        if kind is bool:
            return parser.getboolean(section, option)
        if kind is int:
            return parser.getint(section, option)
        if kind is float:
            return parser.getfloat(section, option)
        return parser.get(section, option)
    except ValueError as e:
        raise ConfigurationError(key, f"malformed value {parser.get(section, option)!r}") from e


def _check(condition: bool, key: str, message: str):
    if not condition:
        raise ConfigurationError(key, message)


def parse_config(parser: configparser.ConfigParser) -> HMCConfig:
    """Build and validate an HMCConfig from a loaded parser."""
    lattice = LatticeConfig(
        length_time=_get(parser, 'lattice.length_time', int),
        length_space=_get(parser, 'lattice.length_space', int),
    )
    _check(lattice.length_time >= 1, 'lattice.length_time', "must be at least 1")
    _check(lattice.length_space >= 1, 'lattice.length_space', "must be at least 1")

    init = InitConfig(
        hot_start_std=_get(parser, 'init.hot_start_std', float),
        seed=_get(parser, 'init.seed', int),
        momentum_std=_get(parser, 'init.momentum_std', float, fallback=1.0, required=False),
    )
    _check(init.hot_start_std > 0, 'init.hot_start_std', "must be positive")
    _check(init.momentum_std > 0, 'init.momentum_std', "must be positive")
    _check(init.seed >= 0, 'init.seed', "must be non-negative")

    md = MDConfig(
        time_step=_get(parser, 'md.time_step', float),
        steps=_get(parser, 'md.steps', int),
        beta=_get(parser, 'md.beta', float),
    )
    _check(md.time_step > 0, 'md.time_step', "must be positive")
    _check(md.steps >= 1, 'md.steps', "must be at least 1")

    chain = ChainConfig(
        total=_get(parser, 'chain.total', int),
        skip=_get(parser, 'chain.skip', int),
    )
    _check(chain.total >= 0, 'chain.total', "must be non-negative")
    _check(chain.skip >= 0, 'chain.skip', "must be non-negative")

    output = OutputConfig(links=_get(parser, 'output.links', bool))

    run = RunConfig(
        threads=_get(parser, 'run.threads', int, required=False),
        device=_get(parser, 'run.device', str, fallback='cpu', required=False),
        check_invariants=_get(parser, 'run.check_invariants', bool,
                              fallback=False, required=False),
    )
    if run.threads is not None:
        _check(run.threads >= 1, 'run.threads', "must be at least 1")

    return HMCConfig(lattice, init, md, chain, output, run)


def load_config(path) -> HMCConfig:
    """Read and validate an INI configuration file."""
    parser = configparser.ConfigParser()
    try:
        with open(path) as f:
            parser.read_file(f)
    except OSError as e:
        raise ConfigurationError(str(path), f"cannot read configuration: {e}") from e
    except configparser.Error as e:
        raise ConfigurationError(str(path), f"cannot parse configuration: {e}") from e
    return parse_config(parser)
