"""
SU(2) group and su(2) algebra
=====================================
Pauli basis, Gaussian sampling of algebra elements and the closed-form
exponential map into the group.

Algebra elements are Hermitian traceless 2x2 matrices
    X = c1*sigma1 + c2*sigma2 + c3*sigma3
and group elements are obtained as exp(i X).
"""


from dataclasses import dataclass
from typing import Tuple

import torch


DTYPE = torch.complex128


def dagger(M: torch.Tensor) -> torch.Tensor:
    """Conjugate transpose over the last two axes."""
    return M.conj().transpose(-2, -1)


def identity(shape: Tuple = (), device: torch.device = None) -> torch.Tensor:
    """Batch of 2x2 identity matrices with leading shape `shape`."""
    eye = torch.eye(2, dtype=DTYPE, device=device)
    return eye.expand(*shape, 2, 2).clone()


def trace(M: torch.Tensor) -> torch.Tensor:
    return M[..., 0, 0] + M[..., 1, 1]


class AlgebraBasis:
    """
    Generators of su(2): the Pauli matrices.

    sigma1 = [[0, 1], [1, 0]]
    sigma2 = [[0, -i], [i, 0]]
    sigma3 = [[1, 0], [0, -1]]

    They satisfy {sigma_a, sigma_b} = 2 delta_ab I and
    [sigma_a, sigma_b] = 2i epsilon_abc sigma_c.
    """

    # Stored as nested tuples so the constant cannot be mutated.
    GENERATORS = (
        ((0, 1), (1, 0)),
        ((0, -1j), (1j, 0)),
        ((1, 0), (0, -1)),
    )

    @staticmethod
    def get(index: int, device: torch.device = None) -> torch.Tensor:
        """Fresh copy of generator `index` (0, 1 or 2)."""
        return torch.tensor(AlgebraBasis.GENERATORS[index], dtype=DTYPE, device=device)

    @staticmethod
    def stack(device: torch.device = None) -> torch.Tensor:
        """All three generators as a (3, 2, 2) tensor."""
        return torch.tensor(AlgebraBasis.GENERATORS, dtype=DTYPE, device=device)


def algebra_from_coefficients(coefficients: torch.Tensor) -> torch.Tensor:
    """
    Build X = sum_a c_a sigma_a.

    Args:
        coefficients: (..., 3) real tensor
    Returns:
        X: (..., 2, 2) Hermitian traceless matrix
    """
    basis = AlgebraBasis.stack(device=coefficients.device)
    return torch.einsum('...a,aij->...ij', coefficients.to(DTYPE), basis)


def coefficients_from_algebra(X: torch.Tensor) -> torch.Tensor:
    """
    Inverse of `algebra_from_coefficients`: c_a = (1/2) Re Tr[sigma_a X].

    Args:
        X: (..., 2, 2) Hermitian traceless matrix
    Returns:
        coefficients: (..., 3) real tensor
    """
    basis = AlgebraBasis.stack(device=X.device)
    return 0.5 * torch.einsum('aij,...ji->...a', basis, X).real


def su2_exp(X: torch.Tensor) -> torch.Tensor:
    """
    Exponential map exp(i X) for Hermitian traceless X.

    Since X^2 = theta^2 I with theta^2 = (1/2) Tr[X^2],
        exp(i X) = cos(theta) I + i sin(theta)/theta X

    Args:
        X: (..., 2, 2) Hermitian traceless matrix
    Returns:
        U: (..., 2, 2) SU(2) matrix
    """
    theta_sq = 0.5 * torch.einsum('...ij,...ji->...', X, X).real
    theta = torch.sqrt(torch.clamp(theta_sq, min=0.0))

    # For small x: sin(x)/x ≈ 1 - x^2/6
    sinc = torch.where(
        theta > 1e-7,
        torch.sin(theta) / theta,
        1.0 - theta_sq / 6.0,
    )

    cos_part = torch.cos(theta).to(DTYPE)[..., None, None]
    sin_part = sinc.to(DTYPE)[..., None, None]
    eye = torch.eye(2, dtype=DTYPE, device=X.device)
    return cos_part * eye + 1j * sin_part * X


@dataclass
class RandomContext:
    """
    Explicit random state for every sampling call.

    Holds the torch generator together with the width of the Gaussian the
    algebra coefficients are drawn from. Contexts created with `with_std`
    share the generator, so draws from them interleave in call order.
    """

    generator: torch.Generator
    std: float = 1.0

    @classmethod
    def from_seed(cls, seed: int, std: float = 1.0,
                  device: torch.device = None) -> 'RandomContext':
        generator = torch.Generator(device=device if device is not None else 'cpu')
        generator.manual_seed(seed)
        return cls(generator, std)

    def with_std(self, std: float) -> 'RandomContext':
        return RandomContext(self.generator, std)

    @property
    def device(self) -> torch.device:
        return self.generator.device

    def normal(self, shape: Tuple) -> torch.Tensor:
        """Gaussian(0, std) draws of the given shape, float64."""
        draws = torch.randn(*shape, generator=self.generator,
                            dtype=torch.float64, device=self.device)
        return self.std * draws

    def uniform(self) -> float:
        """One uniform draw from [0, 1)."""
        return torch.rand(1, generator=self.generator,
                          dtype=torch.float64, device=self.device).item()


def sample_algebra(rng: RandomContext, shape: Tuple = ()) -> torch.Tensor:
    """
    Random su(2) elements with independent Gaussian coefficients.

    Coefficients are drawn as one (*shape, 3) tensor, so element k consumes
    draws 3k, 3k+1, 3k+2 of the generator.

    Args:
        rng: random context
        shape: batch shape of the result
    Returns:
        X: (*shape, 2, 2) Hermitian traceless matrices
    """
    coefficients = rng.normal(tuple(shape) + (3,))
    return algebra_from_coefficients(coefficients)


def sample_group(rng: RandomContext, shape: Tuple = ()) -> torch.Tensor:
    """Random SU(2) elements exp(i X) with X from `sample_algebra`."""
    return su2_exp(sample_algebra(rng, shape))


def randomize_algebra(field, rng: RandomContext):
    """Fill every link of `field` with an independent su(2) element."""
    field.data = sample_algebra(rng, field.shape).to(field.data.device)


def randomize_group(field, rng: RandomContext):
    """Fill every link of `field` with an independent SU(2) element."""
    field.data = sample_group(rng, field.shape).to(field.data.device)

