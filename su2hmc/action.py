"""
Wilson gauge action
=====================================
Staples, plaquettes and the molecular-dynamics force for 4D SU(2).

The plaquette in the (mu, nu) plane at site x is

    P_{mu nu}(x) = U_mu(x) * U_nu(x+mu) * U_mu^dag(x+nu) * U_nu^dag(x)

and the staples of U_mu(x) are the six three-link paths that close a
plaquette together with U_mu(x).
"""


from typing import Sequence

import torch

from .lattice import NUM_DIRECTIONS, LatticeField, roll_sites
from .su2 import DTYPE, dagger, trace


# Number of staples attached to one link in four dimensions.
NUM_STAPLES = 2 * (NUM_DIRECTIONS - 1)


class WilsonAction:
    """
    Wilson gauge action for 4D SU(2) lattice gauge theory.

    The force on the momentum conjugate to U_mu(x) is

        F_mu(x) = i * (beta/6) * [U_mu(x) Sigma_mu(x) - (U_mu(x) Sigma_mu(x))^dag]

    where Sigma_mu(x) is the sum of the six staples. F is Hermitian and
    traceless, like the momenta it is added to.
    """

    def __init__(self, beta: float):
        self.beta = beta

    # ------------------------------------------------------------------
    # Single-site versions
    # ------------------------------------------------------------------

    def get_staples(self, links: LatticeField, site: Sequence[int], mu: int) -> torch.Tensor:
        """
        Sum of the six staples of U_mu(x).

        For every nu != mu:
        - Forward: U_nu(x+mu) * U_mu^dag(x+nu) * U_nu^dag(x)
        - Backward: U_nu^dag(x+mu-nu) * U_mu^dag(x-nu) * U_nu(x-nu)

        Args:
            links: gauge field
            site: (n1, n2, n3, n4)
            mu: direction of the link
        Returns:
            staples: (2, 2) complex matrix
        """
        staples = torch.zeros(2, 2, dtype=DTYPE, device=links.data.device)
        for nu in range(NUM_DIRECTIONS):
            if nu == mu:
                continue
            coords = list(site)

            link3 = links.link(coords, nu)
            coords[mu] += 1
            link1 = links.link(coords, nu)
            coords[mu] -= 1
            coords[nu] += 1
            link2 = links.link(coords, mu)

            staples += link1 @ dagger(link2) @ dagger(link3)

            coords = list(site)
            coords[nu] -= 1
            link6 = links.link(coords, nu)
            link5 = links.link(coords, mu)
            coords[mu] += 1
            link4 = links.link(coords, nu)

            staples += dagger(link4) @ dagger(link5) @ link6
        return staples

    def compute_momentum_derivative(self, links: LatticeField, site: Sequence[int],
                                    mu: int) -> torch.Tensor:
        """Force F_mu(x) at a single site."""
        staples = self.get_staples(links, site, mu)
        result = links.link(site, mu) @ staples
        result = result - dagger(result)
        return 1j * self.beta / NUM_STAPLES * result

    def get_plaquette(self, links: LatticeField, site: Sequence[int],
                      mu: int, nu: int) -> torch.Tensor:
        """P_{mu nu}(x) at a single site."""
        coords = list(site)

        link1 = links.link(coords, mu)
        link4 = links.link(coords, nu)
        coords[mu] += 1
        link2 = links.link(coords, nu)
        coords[mu] -= 1
        coords[nu] += 1
        link3 = links.link(coords, mu)

        return link1 @ link2 @ dagger(link3) @ dagger(link4)

    # ------------------------------------------------------------------
    # Whole-lattice versions
    # ------------------------------------------------------------------

    def staples(self, links: LatticeField, mu: int) -> torch.Tensor:
        """
        Staple sum Sigma_mu(x) at all sites.

        Args:
            links: gauge field
            mu: direction of the link
        Returns:
            staples: (Lt, Ls, Ls, Ls, 2, 2) tensor
        """
        U_mu = links.direction(mu)
        staples = torch.zeros_like(U_mu)
        for nu in range(NUM_DIRECTIONS):
            if nu == mu:
                continue
            U_nu = links.direction(nu)

            # U_nu(x+mu), U_mu(x+nu)
            U_nu_shifted_mu = roll_sites(U_nu, mu, 1)
            U_mu_shifted_nu = roll_sites(U_mu, nu, 1)
            forward_staple = U_nu_shifted_mu @ dagger(U_mu_shifted_nu) @ dagger(U_nu)

            # U_nu(x+mu-nu), U_mu(x-nu), U_nu(x-nu)
            U_nu_shift_mu_minus_nu = roll_sites(U_nu_shifted_mu, nu, -1)
            U_mu_shift_minus_nu = roll_sites(U_mu, nu, -1)
            U_nu_shift_minus_nu = roll_sites(U_nu, nu, -1)
            backward_staple = (dagger(U_nu_shift_mu_minus_nu)
                               @ dagger(U_mu_shift_minus_nu)
                               @ U_nu_shift_minus_nu)

            staples = staples + forward_staple + backward_staple
        return staples

    def compute_force(self, links: LatticeField) -> torch.Tensor:
        """
        Force F_mu(x) for every link.

        Args:
            links: gauge field
        Returns:
            force: (Lt, Ls, Ls, Ls, 4, 2, 2) tensor of Hermitian traceless matrices
        """
        force = torch.empty_like(links.data)
        for mu in range(NUM_DIRECTIONS):
            product = links.direction(mu) @ self.staples(links, mu)
            force[..., mu, :, :] = 1j * self.beta / NUM_STAPLES * (product - dagger(product))
        return force

    def compute_plaquette(self, links: LatticeField, mu: int, nu: int) -> torch.Tensor:
        """
        P_{mu nu}(x) for all sites.

        Returns:
            plaq: (Lt, Ls, Ls, Ls, 2, 2) tensor
        """
        U_mu = links.direction(mu)
        U_nu = links.direction(nu)
        U_nu_shifted_mu = roll_sites(U_nu, mu, 1)
        U_mu_shifted_nu = roll_sites(U_mu, nu, 1)
        return U_mu @ U_nu_shifted_mu @ dagger(U_mu_shifted_nu) @ dagger(U_nu)

    def plaquette_trace_sum(self, links: LatticeField) -> float:
        """
        Sum of Re Tr[P_{mu nu}(x)] over all sites and all 16 ordered pairs.

        The mu == nu terms are Tr[I] = 2 each; they are kept so that the
        normalisation matches `links.volume() * 4 * 4`.
        """
        total = torch.zeros((), dtype=torch.float64, device=links.data.device)
        for mu in range(NUM_DIRECTIONS):
            for nu in range(NUM_DIRECTIONS):
                total = total + trace(self.compute_plaquette(links, mu, nu)).real.sum()
        value = total.item()
        if not torch.isfinite(total):
            raise FloatingPointError(f"plaquette trace sum is not finite: {value}")
        return value

    def compute_average_plaquette(self, links: LatticeField) -> float:
        """Plaquette trace sum divided by volume * 4 * 4; equals 2 on the identity."""
        return self.plaquette_trace_sum(links) / (links.volume() * NUM_DIRECTIONS * NUM_DIRECTIONS)

    def compute_action(self, links: LatticeField) -> float:
        """
        Link part of the Hamiltonian.

        S = (beta/6) * (volume * 16 - sum Re Tr[P])
        """
        links_part = links.volume() * NUM_DIRECTIONS * NUM_DIRECTIONS
        links_part -= self.plaquette_trace_sum(links)
        return self.beta / NUM_STAPLES * links_part
