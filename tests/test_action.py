import pytest
import torch

from su2hmc.action import NUM_STAPLES, WilsonAction
from su2hmc.lattice import LatticeField, make_cold_start
from su2hmc.su2 import RandomContext, dagger, randomize_group, sample_algebra, su2_exp, trace
from su2hmc.validation import check_algebra


@pytest.fixture
def links_3():
    links = LatticeField(length_space=3, length_time=3)
    randomize_group(links, RandomContext.from_seed(21))
    return links


def test_identity_staples_and_zero_force():
    links = make_cold_start(2, 3)
    action = WilsonAction(beta=2.3)
    eye = torch.eye(2, dtype=torch.complex128)
    for mu in range(4):
        assert torch.equal(action.get_staples(links, (1, 0, 1, 0), mu), 6 * eye)
        assert torch.equal(action.staples(links, mu),
                           (6 * eye).expand_as(links.direction(mu)))
    assert torch.all(action.compute_force(links) == 0)


def test_vectorised_staples_match_single_site(links_3, action):
    for mu in range(4):
        all_staples = action.staples(links_3, mu)
        for site in links_3.sites():
            single = action.get_staples(links_3, site, mu)
            assert torch.allclose(all_staples[site], single, atol=1e-12)


def test_vectorised_force_matches_single_site(links_3, action):
    force = action.compute_force(links_3)
    for site in [(0, 0, 0, 0), (1, 2, 0, 1), (2, 2, 2, 2)]:
        for mu in range(4):
            single = action.compute_momentum_derivative(links_3, site, mu)
            assert torch.allclose(force[site + (mu,)], single, atol=1e-12)


def test_plaquette_matches_single_site(links_3, action):
    for mu in range(4):
        for nu in range(4):
            plaq = action.compute_plaquette(links_3, mu, nu)
            for site in [(0, 0, 0, 0), (2, 1, 0, 2)]:
                assert torch.allclose(plaq[site], action.get_plaquette(links_3, site, mu, nu),
                                      atol=1e-12)


def test_force_is_hermitian_traceless(links_3, action):
    momenta = LatticeField.like(links_3)
    momenta.data = action.compute_force(links_3)
    assert check_algebra(momenta, tolerance=1e-12).ok


def test_identity_plaquette_sum():
    links = make_cold_start(2, 2)
    action = WilsonAction(beta=1.0)
    assert action.plaquette_trace_sum(links) == pytest.approx(2 * 16 * links.volume())
    assert action.compute_average_plaquette(links) == pytest.approx(2.0)
    assert action.compute_action(links) == pytest.approx(-16 * links.volume() / NUM_STAPLES)


def test_staples_close_plaquettes(links_3, action):
    # Each unordered plaquette is closed by the staples of its four links.
    closed = 0.0
    for mu in range(4):
        closed += trace(links_3.direction(mu) @ action.staples(links_3, mu)).real.sum().item()
    off_diagonal = action.plaquette_trace_sum(links_3) - 8 * links_3.volume()
    assert closed == pytest.approx(2 * off_diagonal, rel=1e-12, abs=1e-9)


def test_force_is_minus_gradient_of_action(links_3):
    action = WilsonAction(beta=1.7)
    site, mu = (1, 0, 2, 1), 2
    X = sample_algebra(RandomContext.from_seed(8))
    force = action.compute_momentum_derivative(links_3, site, mu)

    eps = 1e-4
    actions = []
    for sign in (+1, -1):
        perturbed = links_3.clone()
        perturbed[site + (mu,)] = su2_exp(sign * eps * X) @ links_3[site + (mu,)]
        actions.append(action.compute_action(perturbed))
    derivative = (actions[0] - actions[1]) / (2 * eps)

    expected = -trace(X @ force).real.item()
    assert derivative == pytest.approx(expected, rel=1e-5, abs=1e-8)


def test_plaquette_sum_is_symmetric_in_plane_orientation(links_3, action):
    for mu in range(4):
        for nu in range(mu + 1, 4):
            forward = trace(action.compute_plaquette(links_3, mu, nu)).real.sum()
            backward = trace(action.compute_plaquette(links_3, nu, mu)).real.sum()
            assert forward.item() == pytest.approx(backward.item(), rel=1e-12, abs=1e-10)


def test_diagonal_plaquette_is_identity(links_3, action):
    plaq = action.compute_plaquette(links_3, 1, 1)
    eye = torch.eye(2, dtype=plaq.dtype).expand_as(plaq)
    assert torch.allclose(plaq, eye, atol=1e-12)
    assert torch.allclose(plaq @ dagger(plaq), eye, atol=1e-12)
