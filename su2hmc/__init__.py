"""
su2hmc
=====================================
Hybrid Monte Carlo for SU(2) pure gauge lattice field theory in four
dimensions.
"""


from .action import WilsonAction
from .errors import (
    ConfigurationError,
    GateStateError,
    InvariantViolation,
    OutputExistsError,
    SnapshotError,
    SU2HMCError,
)
from .hmc import GateState, LeapfrogIntegrator, MetropolisGate, TrajectoryResult
from .lattice import LatticeField, make_cold_start, make_hot_start
from .observables import average_plaquette, energy, plaquette_trace_sum
from .su2 import (
    AlgebraBasis,
    RandomContext,
    randomize_algebra,
    randomize_group,
    sample_algebra,
    sample_group,
    su2_exp,
)

__version__ = '0.1.0'
