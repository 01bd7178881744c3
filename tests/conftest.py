import pytest

from su2hmc.action import WilsonAction
from su2hmc.lattice import LatticeField
from su2hmc.su2 import RandomContext, randomize_algebra, randomize_group


@pytest.fixture
def rng():
    return RandomContext.from_seed(1234, std=1.0)


@pytest.fixture
def hot_links(rng):
    """Random SU(2) links on a 3 x 2^3 lattice."""
    links = LatticeField(length_space=2, length_time=3)
    randomize_group(links, rng)
    return links


@pytest.fixture
def momenta(hot_links, rng):
    field = LatticeField.like(hot_links)
    randomize_algebra(field, rng)
    return field


@pytest.fixture
def action():
    return WilsonAction(beta=2.0)

