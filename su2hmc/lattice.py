"""
Lattice field
=====================================
4D periodic lattice holding one 2x2 complex matrix per site and direction.

Storage: (Lt, Ls, Ls, Ls, 4, 2, 2) complex128 tensor
- Lt: temporal extent (coordinate n1, direction 0)
- Ls: spatial extent (coordinates n2, n3, n4, directions 1, 2, 3)
- 4: direction mu of the link
- 2, 2: the matrix, row-major

The tensor is contiguous, so its flat order is
n1*s1 + n2*s2 + n3*s3 + n4*s4 + mu, the layout used for snapshot files.
"""


import itertools
from typing import Iterator, Sequence, Tuple

import torch

from .su2 import DTYPE, RandomContext, identity, randomize_group


NUM_DIRECTIONS = 4


def roll_sites(t: torch.Tensor, direction: int, steps: int = 1) -> torch.Tensor:
    """
    Periodic translation of a per-site tensor.

    Returns T with T[x] = t[x + steps * hat{direction}]; the four leading
    axes of `t` must be the site axes.
    """
    return torch.roll(t, shifts=-steps, dims=direction)


class LatticeField:
    """
    Periodic 4D field of 2x2 matrices, one per (site, direction).

    Used both for the gauge links (SU(2) valued) and for the conjugate
    momenta (su(2) valued).
    """

    def __init__(self, length_space: int, length_time: int, device: torch.device = None):
        if length_space < 1 or length_time < 1:
            raise ValueError(
                f"lattice extents must be positive, got length_space={length_space}, "
                f"length_time={length_time}"
            )
        self.length_space = length_space
        self.length_time = length_time
        self.device = device
        self.data = torch.zeros(*self.shape, 2, 2, dtype=DTYPE, device=device)

    @classmethod
    def identity(cls, length_space: int, length_time: int,
                 device: torch.device = None) -> 'LatticeField':
        """Cold start: every matrix is the identity."""
        field = cls(length_space, length_time, device=device)
        field.data = identity(field.shape, device=device)
        return field

    @classmethod
    def like(cls, other: 'LatticeField') -> 'LatticeField':
        """Zero field with the same extents and device as `other`."""
        return cls(other.length_space, other.length_time, device=other.device)

    @property
    def extents(self) -> Tuple[int, int, int, int]:
        return (self.length_time, self.length_space, self.length_space, self.length_space)

    @property
    def shape(self) -> Tuple[int, int, int, int, int]:
        """Logical shape (Lt, Ls, Ls, Ls, 4) without the matrix axes."""
        return self.extents + (NUM_DIRECTIONS,)

    def volume(self) -> int:
        """Number of lattice sites."""
        return self.length_time * self.length_space ** 3

    def size(self) -> int:
        """Number of stored matrices."""
        return self.volume() * NUM_DIRECTIONS

    def storage_size(self) -> int:
        """Bytes occupied by the matrices."""
        return self.data.numel() * self.data.element_size()

    def _wrap(self, coords: Sequence[int], mu: int) -> Tuple[int, int, int, int, int]:
        if len(coords) != 4:
            raise IndexError(f"expected 4 coordinates, got {len(coords)}")
        if not 0 <= mu < NUM_DIRECTIONS:
            raise IndexError(f"direction {mu} out of range 0..{NUM_DIRECTIONS - 1}")
        wrapped = []
        for axis, (n, extent) in enumerate(zip(coords, self.extents)):
            # Only one step past either boundary is a valid neighbour look-up.
            if not -1 <= n <= extent:
                raise IndexError(
                    f"coordinate n{axis + 1}={n} outside periodic range -1..{extent}"
                )
            wrapped.append((n + extent) % extent)
        return tuple(wrapped) + (mu,)

    def __getitem__(self, index) -> torch.Tensor:
        *coords, mu = index
        return self.link(coords, mu)

    def __setitem__(self, index, value: torch.Tensor):
        *coords, mu = index
        self.data[self._wrap(coords, mu)] = value

    def link(self, coords: Sequence[int], mu: int) -> torch.Tensor:
        """Matrix at site `coords` in direction `mu` (periodic)."""
        return self.data[self._wrap(coords, mu)].clone()

    def direction(self, mu: int) -> torch.Tensor:
        """All matrices in direction mu, shape (Lt, Ls, Ls, Ls, 2, 2)."""
        return self.data[..., mu, :, :]

    def shift(self, direction: int, steps: int = 1) -> torch.Tensor:
        """
        Whole field translated along `direction`.

        Args:
            direction: 0 for time, 1-3 for space
            steps: number of sites (can be negative)
        Returns:
            Tensor T with T[x] = U(x + steps * hat{direction})
        """
        return roll_sites(self.data, direction, steps)

    def sites(self) -> Iterator[Tuple[int, int, int, int]]:
        """All site coordinates in storage order."""
        return itertools.product(*(range(extent) for extent in self.extents))

    def clone(self) -> 'LatticeField':
        """Create a deep copy of the field."""
        new_field = LatticeField.like(self)
        new_field.data = self.data.clone()
        return new_field

    def copy_from(self, other: 'LatticeField'):
        """Copy data from another field."""
        if other.extents != self.extents:
            raise ValueError(f"cannot copy a {other.extents} field into a {self.extents} field")
        self.data = other.data.clone()

    def snapshot(self) -> 'LatticeField':
        """Independent O(size) copy, taken before a trajectory."""
        return self.clone()

    def restore(self, snapshot: 'LatticeField'):
        """Put a snapshot back verbatim."""
        self.copy_from(snapshot)

    def __repr__(self) -> str:
        return (f"LatticeField(length_space={self.length_space}, "
                f"length_time={self.length_time}, device={self.device})")


def make_hot_start(length_space: int, length_time: int, std: float, seed: int,
                   device: torch.device = None) -> LatticeField:
    """Random SU(2) configuration drawn with a fresh generator seeded by `seed`."""
    rng = RandomContext.from_seed(seed, std=std, device=device)
    links = LatticeField(length_space, length_time, device=device)
    randomize_group(links, rng)
    return links


def make_cold_start(length_space: int, length_time: int,
                    device: torch.device = None) -> LatticeField:
    """Configuration with every link set to the identity."""
    return LatticeField.identity(length_space, length_time, device=device)
