"""
Observables
=====================================
Plaquette averages and the HMC Hamiltonian.
"""


import logging

import torch

from .action import NUM_STAPLES, WilsonAction
from .errors import InvariantViolation
from .lattice import LatticeField
from .validation import ValidationReport


logger = logging.getLogger(__name__)

# Relative size of Im sum Tr[pi^2] that still counts as zero.
IMAG_TOLERANCE = 1e-10


def plaquette_trace_sum(links: LatticeField) -> float:
    return WilsonAction(NUM_STAPLES).plaquette_trace_sum(links)


def average_plaquette(links: LatticeField) -> float:
    return WilsonAction(NUM_STAPLES).compute_average_plaquette(links)


def momentum_trace(momenta: LatticeField) -> complex:
    """sum_{x,mu} Tr[pi_mu(x)^2] as a complex number."""
    pi = momenta.data
    traces = torch.einsum('...ij,...ji->...', pi, pi)
    return complex(traces.sum().item())


def kinetic_energy(momenta: LatticeField) -> float:
    """
    K = (1/2) sum_{x,mu} Re Tr[pi^2]

    The imaginary part has to vanish for Hermitian momenta; a non-zero value
    raises InvariantViolation instead of being dropped.
    """
    total = momentum_trace(momenta)
    logger.debug("Momentum: Re = %r\t Im = %r", total.real, total.imag)
    if abs(total.imag) > IMAG_TOLERANCE * max(1.0, abs(total.real)):
        raise InvariantViolation(ValidationReport(
            ok=False,
            max_deviation=abs(total.imag),
            worst_index=None,
            description='Im sum Tr[pi^2] = 0',
        ))
    return 0.5 * total.real


def energy(links: LatticeField, momenta: LatticeField, beta: float = NUM_STAPLES) -> float:
    """
    Total Hamiltonian H = S(U) + K(pi).

        H = (beta/6) * (volume * 16 - sum Re Tr[P]) + (1/2) sum Re Tr[pi^2]

    With the default beta = 6 the link part is volume * 16 minus the
    plaquette trace sum. Passing the coupling of the run makes H the
    quantity conserved by the MD force of `WilsonAction`. For beta != 6 the
    link part, and so every reported energy, differs from the unscaled
    volume * 16 - sum Re Tr[P] by the factor beta/6 (a third of it at beta = 2).
    """
    potential = WilsonAction(beta).compute_action(links)
    return potential + kinetic_energy(momenta)
