"""
Gauge transformations
=====================================
Global and local SU(2) gauge transformations of a link field. The
plaquette traces, and with them the action, are invariant under both.
"""


import torch

from .lattice import NUM_DIRECTIONS, LatticeField, roll_sites
from .su2 import RandomContext, dagger, sample_group


def global_gauge_transformation(transformation: torch.Tensor, links: LatticeField):
    """
    U_mu(x) -> Omega U_mu(x) Omega^dag with the same Omega everywhere.

    Args:
        transformation: (2, 2) SU(2) matrix
        links: gauge field (modified in place)
    """
    omega = transformation.to(links.data.device)
    links.data = omega @ links.data @ dagger(omega)


def local_gauge_transformation(omega_field: torch.Tensor, links: LatticeField):
    """
    Apply a local gauge transformation.

    U'_mu(x) = Omega(x) * U_mu(x) * Omega^dag(x + mu)

    Args:
        omega_field: (Lt, Ls, Ls, Ls, 2, 2) SU(2) matrix per site
        links: gauge field (modified in place)
    """
    U_prime = torch.empty_like(links.data)
    for mu in range(NUM_DIRECTIONS):
        omega_plus_dag = dagger(roll_sites(omega_field, mu, 1))
        U_prime[..., mu, :, :] = omega_field @ links.direction(mu) @ omega_plus_dag
    links.data = U_prime


def random_gauge_transformation(links: LatticeField, rng: RandomContext) -> torch.Tensor:
    """Random SU(2) element at each site of `links`."""
    return sample_group(rng, links.extents).to(links.data.device)
