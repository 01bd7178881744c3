"""
SU(2) HMC
=====================================
Leapfrog molecular dynamics and the Metropolis accept/reject gate for 4D
SU(2) pure gauge lattice field theory.
"""


import enum
import logging
import math
from dataclasses import dataclass
from typing import Optional

from .action import WilsonAction
from .errors import GateStateError
from .lattice import LatticeField
from .observables import average_plaquette, energy
from .su2 import RandomContext, randomize_algebra, su2_exp
from .validation import check_algebra, check_unitary, ensure


logger = logging.getLogger(__name__)


class LeapfrogIntegrator:
    """
    Leapfrog (velocity Verlet) integrator for the pair (links, momenta).

    One step:
        pi(eps/2) = pi(0) + (eps/2) * F(U(0))
        U(eps)    = exp(i eps pi(eps/2)) * U(0)
        pi(eps)   = pi(eps/2) + (eps/2) * F(U(eps))

    Running with -eps from the end point retraces the trajectory.
    """

    def __init__(self, action: WilsonAction, time_step: float, md_steps: int):
        """
        Args:
            action: Wilson action providing the force
            time_step: MD step size eps
            md_steps: number of steps per trajectory
        """
        if md_steps < 1:
            raise ValueError(f"md_steps must be at least 1, got {md_steps}")
        self.action = action
        self.time_step = time_step
        self.md_steps = md_steps

    @property
    def beta(self) -> float:
        return self.action.beta

    def reversed(self) -> 'LeapfrogIntegrator':
        """Integrator running the same number of steps backwards in MD time."""
        return LeapfrogIntegrator(self.action, -self.time_step, self.md_steps)

    def update_momentum(self, links: LatticeField, momenta: LatticeField,
                        out: LatticeField, epsilon: float):
        """out = momenta + epsilon * F(links)"""
        out.data = momenta.data + epsilon * self.action.compute_force(links)

    def update_field(self, links: LatticeField, momenta: LatticeField, epsilon: float):
        """U -> exp(i epsilon pi) * U at every link."""
        rotation = su2_exp(epsilon * momenta.data)
        links.data = rotation @ links.data

    def step(self, links: LatticeField, momenta: LatticeField, momenta_half: LatticeField):
        """
        One MD step, in place.

        The three phases each read the complete output of the previous one.

        Args:
            links: gauge field (modified)
            momenta: conjugate momenta (modified)
            momenta_half: scratch field for the half-step momenta
        """
        eps = self.time_step
        self.update_momentum(links, momenta, momenta_half, eps / 2)
        self.update_field(links, momenta_half, eps)
        self.update_momentum(links, momenta_half, momenta, eps / 2)

    def run(self, links: LatticeField, momenta: LatticeField, momenta_half: LatticeField):
        """Full trajectory of `md_steps` steps."""
        for _ in range(self.md_steps):
            self.step(links, momenta, momenta_half)


def accept_trajectory(delta_energy: float, draw) -> bool:
    """
    Metropolis test.

    Accept when delta_energy <= 0 or exp(-delta_energy) >= u. The uniform u
    comes from calling `draw()` and is only drawn when delta_energy > 0.
    """
    if delta_energy <= 0:
        return True
    return math.exp(-delta_energy) >= draw()


class GateState(enum.Enum):
    IDLE = 'idle'
    PROPOSING = 'proposing'
    DECIDING = 'deciding'
    TERMINAL = 'terminal'


@dataclass
class TrajectoryResult:
    """Record of one trajectory and its accept/reject decision."""

    index: int
    accepted: bool
    energy_before: float
    energy_after: float
    delta_energy: float
    boltzmann_factor: float
    plaquette: float


def _boltzmann_factor(delta_energy: float) -> float:
    try:
        return math.exp(-delta_energy)
    except OverflowError:
        return math.inf


class MetropolisGate:
    """
    Hybrid Monte Carlo update as an explicit state machine.

        IDLE --propose--> PROPOSING --integrate--> DECIDING --decide--> IDLE
        any non-terminal state --finish--> TERMINAL

    The links are snapshotted in `propose` and restored verbatim by
    `decide` when the trajectory is rejected.
    """

    def __init__(self, links: LatticeField, integrator: LeapfrogIntegrator,
                 rng: RandomContext, check_invariants: bool = False):
        """
        Args:
            links: gauge field, evolved in place
            integrator: MD integrator
            rng: random context for momentum refresh and the uniform draw
            check_invariants: validate links and momenta after each trajectory
        """
        self.links = links
        self.integrator = integrator
        self.rng = rng
        self.check_invariants = check_invariants

        self.momenta = LatticeField.like(links)
        self.momenta_half = LatticeField.like(links)

        self.state = GateState.IDLE
        self.accepted = 0
        self.trials = 0

        self._old_links: Optional[LatticeField] = None
        self._energy_before: Optional[float] = None
        self._energy_after: Optional[float] = None

    @property
    def acceptance_rate(self) -> float:
        return self.accepted / self.trials if self.trials else 0.0

    def _require(self, state: GateState):
        if self.state is not state:
            raise GateStateError(
                f"expected gate state {state.name}, currently {self.state.name}"
            )

    def propose(self) -> float:
        """Snapshot the links, refresh the momenta and return the energy before MD."""
        self._require(GateState.IDLE)
        self._old_links = self.links.snapshot()
        randomize_algebra(self.momenta, self.rng)
        self._energy_before = energy(self.links, self.momenta, self.integrator.beta)
        self.state = GateState.PROPOSING
        return self._energy_before

    def integrate(self) -> float:
        """Run the MD trajectory and return the energy after it."""
        self._require(GateState.PROPOSING)
        self.integrator.run(self.links, self.momenta, self.momenta_half)
        if self.check_invariants:
            ensure(check_unitary(self.links))
            ensure(check_algebra(self.momenta))
        self._energy_after = energy(self.links, self.momenta, self.integrator.beta)
        self.state = GateState.DECIDING
        return self._energy_after

    def decide(self, uniform: Optional[float] = None) -> TrajectoryResult:
        """
        Accept or reject the evolved links.

        Args:
            uniform: value to compare exp(-dE) against; drawn from the
                generator when omitted and dE > 0
        Returns:
            result of the trajectory
        """
        self._require(GateState.DECIDING)
        delta_energy = self._energy_after - self._energy_before
        plaquette = average_plaquette(self.links)

        draw = (lambda: uniform) if uniform is not None else self.rng.uniform
        accepted = accept_trajectory(delta_energy, draw)

        logger.info("Energy: %.10g → %.10g\tΔE = %.6g\t%s",
                    self._energy_before, self._energy_after, delta_energy,
                    'Accepted.' if accepted else 'Rejected.')

        if accepted:
            self.accepted += 1
        else:
            self.links.restore(self._old_links)

        result = TrajectoryResult(
            index=self.trials,
            accepted=accepted,
            energy_before=self._energy_before,
            energy_after=self._energy_after,
            delta_energy=delta_energy,
            boltzmann_factor=_boltzmann_factor(delta_energy),
            plaquette=plaquette,
        )
        self.trials += 1

        self._old_links = None
        self._energy_before = None
        self._energy_after = None
        self.state = GateState.IDLE
        return result

    def trajectory(self, uniform: Optional[float] = None) -> TrajectoryResult:
        """Perform one complete HMC update."""
        self.propose()
        self.integrate()
        return self.decide(uniform)

    def finish(self):
        """Stop the chain; no further transitions are allowed."""
        if self.state is GateState.TERMINAL:
            raise GateStateError("gate is already terminal")
        if self._old_links is not None:
            # A trajectory was in flight, keep the last decided configuration.
            self.links.restore(self._old_links)
            self._old_links = None
        self.state = GateState.TERMINAL
