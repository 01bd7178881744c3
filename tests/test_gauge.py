import pytest
import torch

from su2hmc.gauge import (
    global_gauge_transformation,
    local_gauge_transformation,
    random_gauge_transformation,
)
from su2hmc.su2 import RandomContext, sample_group, trace
from su2hmc.validation import check_special, check_unitary


def _plaquette_traces(action, links):
    return torch.stack([trace(action.compute_plaquette(links, mu, nu)).real
                        for mu in range(4) for nu in range(4)])


def test_global_transformation_keeps_plaquettes(hot_links, action):
    before = _plaquette_traces(action, hot_links)
    omega = sample_group(RandomContext.from_seed(5))
    global_gauge_transformation(omega, hot_links)
    assert torch.allclose(_plaquette_traces(action, hot_links), before, atol=1e-12)


def test_local_transformation_keeps_plaquettes(hot_links, action):
    before = _plaquette_traces(action, hot_links)
    action_before = action.compute_action(hot_links)
    omega = random_gauge_transformation(hot_links, RandomContext.from_seed(6))
    assert omega.shape == hot_links.extents + (2, 2)

    local_gauge_transformation(omega, hot_links)

    assert torch.allclose(_plaquette_traces(action, hot_links), before, atol=1e-12)
    assert action.compute_action(hot_links) == pytest.approx(action_before, rel=1e-12)
    assert check_unitary(hot_links).ok
    assert check_special(hot_links).ok


def test_local_transformation_changes_links(hot_links):
    before = hot_links.data.clone()
    omega = random_gauge_transformation(hot_links, RandomContext.from_seed(7))
    local_gauge_transformation(omega, hot_links)
    assert not torch.allclose(hot_links.data, before)


def test_force_transforms_covariantly(hot_links, action):
    omega = random_gauge_transformation(hot_links, RandomContext.from_seed(9))
    force = action.compute_force(hot_links)
    local_gauge_transformation(omega, hot_links)
    rotated = action.compute_force(hot_links)
    site, mu = (1, 0, 1, 1), 2
    expected = omega[site] @ force[site + (mu,)] @ omega[site].conj().transpose(-2, -1)
    assert torch.allclose(rotated[site + (mu,)], expected, atol=1e-12)
