"""
Conditional posterior samplers for the mediation model

Each function updates one group of parameters of a ``ModelState`` in place
and keeps the residuals in sync with every coefficient it changes.
"""

import numpy as np

from . import helpers
from .residuals import shift_mediator, shift_outcome
from .state import ModelState
from .utils import NumericalDomainError


def sample_error_variances(state: ModelState, rng: np.random.Generator):
    """
    Sample sigma_e and sigma_g from their inverse-gamma conditionals.

    sigma_e uses the outcome residual (n entries), sigma_g all n*q entries
    of the mediator residual.
    """
    hp = state.hyperpara
    ke1 = hp['ke'] + state.n / 2.0
    le1 = hp['le'] + float(state.res1 @ state.res1) / 2.0
    kg1 = hp['kg'] + state.q * state.n / 2.0
    lg1 = hp['lg'] + float((state.res2 ** 2).sum()) / 2.0
    state.sigma_e = helpers.draw_invgamma(ke1, le1, rng)
    state.sigma_g = helpers.draw_invgamma(kg1, lg1, rng)


def update_conditional_variances(state: ModelState):
    """
    Refresh the conditional variances used during one sweep.

    var_a, var_alpha_a0 and var_alpha_a1 depend only on the exposure norm
    and are shared by all mediators.
    """
    sigma_e = state.sigma_e
    sigma_g = state.sigma_g
    state.var_a = sigma_e / (sigma_e / state.sigma_a + state.A2norm)
    state.var_alpha_a0 = sigma_g / (sigma_g / state.sigma_ma0 + state.A2norm)
    state.var_alpha_a1 = sigma_g / (sigma_g / state.sigma_ma1 + state.A2norm)
    state.var_m0 = 1.0 / (1.0 / state.sigma_m0 + state.M2norm / sigma_e)
    state.var_m1 = 1.0 / (1.0 / state.sigma_m1 + state.M2norm / sigma_e)

    scalars = (state.var_a, state.var_alpha_a0, state.var_alpha_a1)
    if not all(np.isfinite(v) and v > 0 for v in scalars):
        raise NumericalDomainError(f"Non-positive conditional variance: {scalars}.")
    if np.any(state.var_m0 <= 0) or np.any(state.var_m1 <= 0):
        raise NumericalDomainError("Non-positive conditional variance for beta_m.")


def sample_mediator(state: ModelState, j: int, rng: np.random.Generator):
    """
    Gibbs update of everything attached to mediator ``j``.

    Draws beta_m[j] and alpha_a[j] from the component selected by the
    current indicators, then the indicators r1[j] and r3[j], then the
    covariate effects alpha_c[:, j].

    Parameters
    ----------
    state : ModelState
        State with initialized residuals and fresh conditional variances.
    j : int
        Mediator index.
    rng : np.random.Generator
        Random stream.
    """
    A = state.A
    Mj = state.M[:, j]
    sigma_e = state.sigma_e
    sigma_g = state.sigma_g
    var_m0 = state.var_m0[j]
    var_m1 = state.var_m1[j]

    # Posterior means from the partial residuals
    mu_mj = float(Mj @ (state.res1 + Mj * state.beta_m[j]))
    mu_alpha_aj = float(A @ state.res2_c[:, j])
    mu_mj0 = mu_mj / (sigma_e / state.sigma_m0 + state.M2norm[j])
    mu_mj1 = mu_mj / (sigma_e / state.sigma_m1 + state.M2norm[j])
    mu_alpha_aj0 = mu_alpha_aj * (state.var_alpha_a0 / sigma_g)
    mu_alpha_aj1 = mu_alpha_aj * (state.var_alpha_a1 / sigma_g)

    old = state.beta_m[j]
    new = helpers.draw_mixture(state.r1[j], mu_mj1, var_m1, mu_mj0, var_m0, rng)
    state.beta_m[j] = new
    shift_outcome(state, Mj, old, new)

    old = state.alpha_a[j]
    new = helpers.draw_mixture(state.r3[j], mu_alpha_aj1, state.var_alpha_a1,
                               mu_alpha_aj0, state.var_alpha_a0, rng)
    state.alpha_a[j] = new
    shift_mediator(state, j, A, old, new)

    logodds_m = helpers.inclusion_log_odds(mu_mj1, var_m1, state.sigma_m1,
                                           mu_mj0, var_m0, state.sigma_m0,
                                           state.pi_m[j])
    state.r1[j] = helpers.draw_indicator(logodds_m, rng)

    logodds_a = helpers.inclusion_log_odds(mu_alpha_aj1, state.var_alpha_a1, state.sigma_ma1,
                                           mu_alpha_aj0, state.var_alpha_a0, state.sigma_ma0,
                                           state.pi_a[j])
    state.r3[j] = helpers.draw_indicator(logodds_a, rng)

    for j1 in range(state.w2):
        C2j1 = state.C2[:, j1]
        norm = state.C2_2norm[j1]
        old = state.alpha_c[j1, j]
        mu_alpha_cj = float(C2j1 @ (state.res2[:, j] + old * C2j1)) / norm
        new = helpers.draw_normal(mu_alpha_cj, sigma_g / norm, rng)
        state.alpha_c[j1, j] = new
        shift_mediator(state, j, C2j1, old, new, covariate=True)


def sample_outcome_covariates(state: ModelState, rng: np.random.Generator):
    """Gibbs update of the outcome covariate effects beta_c, one at a time."""
    for j in range(state.w1):
        C1j = state.C1[:, j]
        norm = state.C1_2norm[j]
        old = state.beta_c[j]
        mu_cj = float(C1j @ (state.res1 + old * C1j)) / norm
        new = helpers.draw_normal(mu_cj, state.sigma_e / norm, rng)
        state.beta_c[j] = new
        shift_outcome(state, C1j, old, new)


def sample_exposure_effect(state: ModelState, rng: np.random.Generator):
    """Gibbs update of the direct effect beta_a."""
    A = state.A
    old = state.beta_a
    mu_a = float(A @ (state.res1 + old * A)) * (state.var_a / state.sigma_e)
    new = helpers.draw_normal(mu_a, state.var_a, rng)
    state.beta_a = new
    shift_outcome(state, A, old, new)


def sample_shrinkage_variances(state: ModelState, rng: np.random.Generator):
    """
    Sample the prior variances of beta_a, beta_m and alpha_a.

    Slab variances use the included coefficients, spike variances the
    excluded ones. With no coefficient in a group the draw comes from the
    prior. Order: sigma_m1, sigma_a, sigma_ma1, sigma_m0, sigma_ma0.
    """
    hp = state.hyperpara
    r1 = state.r1
    r3 = state.r3
    bm2 = state.beta_m ** 2
    aa2 = state.alpha_a ** 2

    state.sigma_m1 = helpers.draw_invgamma(hp['km1'] + r1.sum() / 2.0,
                                           hp['lm1'] + (bm2 * r1).sum() / 2.0, rng)
    state.sigma_a = helpers.draw_invgamma(hp['ka'] + 0.5,
                                          hp['la'] + state.beta_a ** 2 / 2.0, rng)
    state.sigma_ma1 = helpers.draw_invgamma(hp['kma1'] + r3.sum() / 2.0,
                                            hp['lma1'] + (aa2 * r3).sum() / 2.0, rng)

    state.sigma_m0 = helpers.draw_invgamma(hp['km0'] + (1.0 - r1).sum() / 2.0,
                                           hp['lm0'] + (bm2 * (1.0 - r1)).sum() / 2.0, rng)
    state.sigma_ma0 = helpers.draw_invgamma(hp['kma0'] + (1.0 - r3).sum() / 2.0,
                                            hp['lma0'] + (aa2 * (1.0 - r3)).sum() / 2.0, rng)
