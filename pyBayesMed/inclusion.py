"""
Metropolis-Hastings update of the prior inclusion probabilities

pi_m and pi_a are proposed jointly by a multiplicative random walk on the
log scale, folded back into [1/q, 1], and accepted or rejected together.
"""

import numpy as np

from .state import ModelState


def reflect(x: np.ndarray, q: int) -> np.ndarray:
    """
    Fold proposals into the interval [1/q, 1].

    Values above one map to 1/x and values below 1/q to 1/(q^2 x), i.e.
    reflections of log(x) at 0 and at -log(q). The reflections are repeated
    until the value lies inside, so even extreme steps stay in bounds.

    Parameters
    ----------
    x : array
        Positive proposals.
    q : int
        Number of mediators.

    Returns
    -------
    np.ndarray
        Values in [1/q, 1]; all ones when q == 1.
    """
    x = np.abs(np.asarray(x, dtype=np.float64))
    if q <= 1:
        return np.ones_like(x)
    lower = -np.log(q)
    width = -lower
    t = np.mod(np.log(x) - lower, 2.0 * width)
    t = np.where(t > width, 2.0 * width - t, t)
    return np.clip(np.exp(lower + t), 1.0 / q, 1.0)


def propose(pi: np.ndarray, noise: np.ndarray, q: int) -> np.ndarray:
    """Multiplicative proposal pi * exp(noise), reflected into [1/q, 1]."""
    return reflect(pi * np.exp(noise), q)


def log_bernoulli(r: np.ndarray, pi: np.ndarray) -> float:
    """
    Bernoulli log-likelihood of the indicators ``r`` under probabilities ``pi``.

    Each entry contributes log(pi) if included and log(1 - pi) otherwise,
    so pi == 1 with an included indicator contributes exactly zero.
    """
    with np.errstate(divide='ignore'):
        terms = np.where(r == 1, np.log(pi), np.log1p(-pi))
    return float(terms.sum())


def accept(log_ratio: float, u: float) -> bool:
    """MH acceptance: log(u) < log_ratio. A NaN ratio is always rejected."""
    with np.errstate(divide='ignore'):
        log_u = np.log(u)
    return bool(log_u < log_ratio)


def log_ratio(state: ModelState, pi_m_new: np.ndarray, pi_a_new: np.ndarray) -> float:
    """Log posterior ratio of the proposed versus the current probabilities."""
    return (log_bernoulli(state.r3, pi_a_new) - log_bernoulli(state.r3, state.pi_a)
            + log_bernoulli(state.r1, pi_m_new) - log_bernoulli(state.r1, state.pi_m))


def sample_inclusion_probabilities(state: ModelState, rng: np.random.Generator,
                                   step: float = 0.01) -> bool:
    """
    Joint MH update of pi_m and pi_a.

    Parameters
    ----------
    state : ModelState
        Current state; r1 and r3 enter the likelihood.
    rng : np.random.Generator
        Random stream. Consumes q uniforms for pi_m, q for pi_a, then one
        for the acceptance test.
    step : float, default=0.01
        Half-width of the uniform log-scale step.

    Returns
    -------
    bool
        Whether the proposal was accepted.
    """
    q = state.q
    noise_m = rng.uniform(-step, step, size=q)
    noise_a = rng.uniform(-step, step, size=q)
    pi_m_new = propose(state.pi_m, noise_m, q)
    pi_a_new = propose(state.pi_a, noise_a, q)

    u = rng.random()
    if accept(log_ratio(state, pi_m_new, pi_a_new), u):
        state.pi_m = pi_m_new
        state.pi_a = pi_a_new
        return True
    return False
