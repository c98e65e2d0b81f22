"""
MCMC driver for the Bayesian mediation model

One iteration runs the Gibbs/MH sweep in a fixed order:

(a) initialize residuals (first iteration only)
(b) sigma_e, sigma_g
(c) conditional variances
(d) per mediator: beta_m, alpha_a, r1, r3, alpha_c
(e) beta_c
(f) beta_a
(g) sigma_m1, sigma_a, sigma_ma1, sigma_m0, sigma_ma0
(h) MH step for pi_m, pi_a
(i) record emission
"""

import numpy as np
from typing import Dict, Optional

from . import samplers
from .inclusion import sample_inclusion_probabilities
from .output import build_record
from .residuals import check_residuals, initialize_residuals
from .state import ModelState, VARIANCE_NAMES
from .utils import ConfigurationError


def emission_iterations(niter: int, burnin: int, thin: int) -> np.ndarray:
    """Iteration indices at which a record is emitted."""
    return np.arange(burnin, niter, thin)


def check_run_settings(niter: int, burnin: int, thin: int):
    """Reject negative iteration counts and thinning intervals below one."""
    if not isinstance(niter, (int, np.integer)) or niter < 0:
        raise ConfigurationError(f"'niter' must be a non-negative integer, got {niter!r}.")
    if not isinstance(burnin, (int, np.integer)) or burnin < 0:
        raise ConfigurationError(f"'burnin' must be a non-negative integer, got {burnin!r}.")
    if not isinstance(thin, (int, np.integer)) or thin < 1:
        raise ConfigurationError(f"'thin' must be a positive integer, got {thin!r}.")


def iterate(state: ModelState,
            rng: np.random.Generator,
            it: int,
            burnin: int = 0,
            thin: int = 10,
            sink=None,
            step: float = 0.01) -> Optional[np.ndarray]:
    """
    Run one MCMC iteration.

    Parameters
    ----------
    state : ModelState
        Sampler state, updated in place.
    rng : np.random.Generator
        Random stream.
    it : int
        Iteration index (0-based).
    burnin : int, default=0
        Iterations before the first record.
    thin : int, default=10
        Thinning interval after burn-in.
    sink : object, optional
        Anything with a ``write(record)`` method.
    step : float, default=0.01
        Step size of the inclusion-probability proposal.

    Returns
    -------
    np.ndarray or None
        The emitted record, or None if this iteration is not retained.
    """
    if state.res1 is None:
        initialize_residuals(state)

    samplers.sample_error_variances(state, rng)
    samplers.update_conditional_variances(state)

    for j in range(state.q):
        samplers.sample_mediator(state, j, rng)

    samplers.sample_outcome_covariates(state, rng)
    samplers.sample_exposure_effect(state, rng)
    samplers.sample_shrinkage_variances(state, rng)

    state.accepted = sample_inclusion_probabilities(state, rng, step)

    if it >= burnin and (it - burnin) % thin == 0:
        record = build_record(state)
        if sink is not None:
            sink.write(record)
        return record
    return None


def run_mcmc(state: ModelState,
             rng: np.random.Generator,
             niter: int,
             burnin: int,
             thin: int = 10,
             sink=None,
             setting_store: Optional[Dict] = None,
             step: float = 0.01,
             check_every: int = 0,
             verbose: bool = True,
             print_every: int = 1000) -> Dict:
    """
    Run the sampler for ``niter`` iterations.

    Parameters
    ----------
    state : ModelState
        Freshly constructed state.
    rng : np.random.Generator
        Random stream shared by all draws.
    niter : int
        Total number of iterations, burn-in included.
    burnin : int
        Number of leading iterations without records.
    thin : int, default=10
        Thinning interval.
    sink : object, optional
        Receives every record through ``write(record)``.
    setting_store : dict, optional
        'indicators': store r1 and r3 draws (default True).
        'variances': store the variance parameters (default False).
    step : float, default=0.01
        Step size of the inclusion-probability proposal.
    check_every : int, default=0
        Check the residual invariant every ``check_every`` iterations;
        0 disables the check.
    verbose : bool, default=True
        Whether to print progress.
    print_every : int, default=1000
        Progress interval.

    Returns
    -------
    dict
        Dictionary containing:
        - beta_m_store, pi_m_store, alpha_a_store, pi_a_store: (draws x q)
        - beta_a_store: (draws,)
        - r1_store, r3_store: (draws x q), if requested
        - variance_store: (draws x 7), if requested
        - iterations: retained iteration indices
        - accept_rate: MH acceptance rate of the inclusion probabilities
    """
    check_run_settings(niter, burnin, thin)
    setting_store = setting_store or {}
    save_indicators = setting_store.get('indicators', True)
    save_variances = setting_store.get('variances', False)

    iterations = emission_iterations(niter, burnin, thin)
    thindraws = len(iterations)
    q = state.q

    beta_m_store = np.zeros((thindraws, q))
    pi_m_store = np.zeros((thindraws, q))
    alpha_a_store = np.zeros((thindraws, q))
    pi_a_store = np.zeros((thindraws, q))
    beta_a_store = np.zeros(thindraws)
    r1_store = np.zeros((thindraws, q)) if save_indicators else None
    r3_store = np.zeros((thindraws, q)) if save_indicators else None
    variance_store = np.zeros((thindraws, len(VARIANCE_NAMES))) if save_variances else None

    accepted = 0
    count = 0
    for it in range(niter):
        record = iterate(state, rng, it, burnin, thin, sink, step)
        accepted += state.accepted

        if check_every > 0 and (it + 1) % check_every == 0:
            check_residuals(state)

        if verbose and (it + 1) % print_every == 0:
            print(f"Iteration {it + 1}/{niter}")
        if verbose and (it + 1) % (10 * print_every) == 0:
            print("  " + " ".join(f"{name} {value:.3E}" for name, value in state.variances().items()))

        if record is not None:
            beta_m_store[count] = state.beta_m
            pi_m_store[count] = state.pi_m
            alpha_a_store[count] = state.alpha_a
            pi_a_store[count] = state.pi_a
            beta_a_store[count] = state.beta_a
            if save_indicators:
                r1_store[count] = state.r1
                r3_store[count] = state.r3
            if save_variances:
                variance_store[count] = list(state.variances().values())
            count += 1

    result = {
        'beta_m_store': beta_m_store,
        'pi_m_store': pi_m_store,
        'alpha_a_store': alpha_a_store,
        'pi_a_store': pi_a_store,
        'beta_a_store': beta_a_store,
        'iterations': iterations,
        'accept_rate': accepted / niter if niter > 0 else np.nan,
    }
    if save_indicators:
        result['r1_store'] = r1_store
        result['r3_store'] = r3_store
    if save_variances:
        result['variance_store'] = variance_store

    return result
