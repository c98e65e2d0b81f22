"""
Pytest configuration and shared fixtures for pyBayesMed tests.
"""

import pytest
import numpy as np

from pyBayesMed.state import DEFAULT_HYPERPARA, ModelState


@pytest.fixture
def rng_seed():
    """Default RNG seed for reproducible tests."""
    return 42


@pytest.fixture
def scenario_data():
    """Four observations, one mediator, no covariates."""
    return {
        'Y': np.array([1.0, 0.5, -0.9, -0.4]),
        'A': np.array([1.0, 0.0, 1.0, 0.0]),
        'M': np.array([[1.0], [1.0], [-1.0], [-1.0]]),
        'C1': np.zeros((4, 0)),
        'C2': np.zeros((4, 0)),
    }


@pytest.fixture
def mediation_data():
    """Simulated data with two active mediators among six and covariates."""
    rng = np.random.default_rng(2024)
    n, q, w1, w2 = 60, 6, 2, 3
    A = rng.normal(size=n)
    C1 = rng.normal(size=(n, w1))
    C2 = rng.normal(size=(n, w2))
    alpha_a = np.array([0.8, 0.6, 0.0, 0.0, 0.0, 0.0])
    beta_m = np.array([0.7, 0.0, 0.5, 0.0, 0.0, 0.0])
    M = np.outer(A, alpha_a) + C2 @ rng.normal(scale=0.3, size=(w2, q)) + rng.normal(size=(n, q))
    Y = 0.4 * A + M @ beta_m + C1 @ np.array([0.3, -0.2]) + rng.normal(size=n)
    return {'Y': Y, 'A': A, 'M': M, 'C1': C1, 'C2': C2}


def make_state(data, seed=0, hyperpara=None, init=None):
    """Build a ModelState and the generator it was drawn from."""
    rng = np.random.default_rng(seed)
    state = ModelState(data['Y'], data['A'], data['M'], data['C1'], data['C2'],
                       hyperpara or dict(DEFAULT_HYPERPARA), rng, init)
    return state, rng


def assert_residuals_match(state, rtol=1e-9):
    """Maintained residuals equal their definitions."""
    res1 = state.Y - state.beta_a * state.A - state.M @ state.beta_m - state.C1 @ state.beta_c
    res2_c = state.M - state.C2 @ state.alpha_c
    res2 = res2_c - np.outer(state.A, state.alpha_a)
    np.testing.assert_allclose(state.res1, res1, rtol=rtol, atol=rtol)
    np.testing.assert_allclose(state.res2, res2, rtol=rtol, atol=rtol)
    np.testing.assert_allclose(state.res2_c, res2_c, rtol=rtol, atol=rtol)


class FixedRNG:
    """
    Stand-in generator with a fixed uniform for the MH acceptance test.

    ``uniform`` returns zero steps so proposals equal the reflected current
    values unless ``noise`` is given.
    """

    def __init__(self, u, noise=None):
        self.u = u
        self.noise = noise

    def uniform(self, low, high, size=None):
        if self.noise is not None:
            return np.full(size, self.noise, dtype=float)
        return np.zeros(size)

    def random(self):
        return self.u
