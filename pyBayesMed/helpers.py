"""
Helper functions for pyBayesMed sampling
"""

import numpy as np
from scipy.stats import invgamma

from .utils import NumericalDomainError


# log-odds above which the inclusion probability is treated as exactly one
LOGODDS_SATURATION = 300.0


def draw_invgamma(shape: float, rate: float, rng: np.random.Generator) -> float:
    """
    Draw from an inverse-gamma distribution.

    Parameters
    ----------
    shape : float
        Shape parameter (> 0).
    rate : float
        Rate of the underlying gamma distribution, i.e. the scale of the
        inverse-gamma (> 0).
    rng : np.random.Generator
        Random stream.

    Returns
    -------
    float
        One draw of 1 / Gamma(shape, rate).
    """
    if not (np.isfinite(shape) and shape > 0):
        raise NumericalDomainError(f"Inverse-gamma shape must be positive and finite, got {shape}.")
    if not (np.isfinite(rate) and rate > 0):
        raise NumericalDomainError(f"Inverse-gamma rate must be positive and finite, got {rate}.")
    return float(invgamma.rvs(a=shape, scale=rate, random_state=rng))


def draw_normal(mu: float, var: float, rng: np.random.Generator) -> float:
    """Draw from N(mu, var)."""
    if not (np.isfinite(var) and var > 0):
        raise NumericalDomainError(f"Normal variance must be positive and finite, got {var}.")
    return float(rng.normal(mu, np.sqrt(var)))


def draw_mixture(r: float,
                 mu1: float, var1: float,
                 mu0: float, var0: float,
                 rng: np.random.Generator) -> float:
    """
    Draw a spike-and-slab coefficient given its current indicator.

    Both components are always drawn, slab first, so the number of random
    numbers consumed does not depend on the indicator.

    Parameters
    ----------
    r : float
        Inclusion indicator (0 or 1).
    mu1, var1 : float
        Conditional mean and variance under the slab.
    mu0, var0 : float
        Conditional mean and variance under the spike.
    rng : np.random.Generator
        Random stream.

    Returns
    -------
    float
        r * slab draw + (1 - r) * spike draw
    """
    slab = draw_normal(mu1, var1, rng)
    spike = draw_normal(mu0, var0, rng)
    return r * slab + (1.0 - r) * spike


def inclusion_log_odds(mu1: float, var1: float, prior1: float,
                       mu0: float, var0: float, prior0: float,
                       pi: float) -> float:
    """
    Posterior log-odds of inclusion (slab versus spike) for one coefficient.

    Parameters
    ----------
    mu1, var1 : float
        Conditional posterior mean and variance under the slab.
    prior1 : float
        Slab prior variance.
    mu0, var0 : float
        Conditional posterior mean and variance under the spike.
    prior0 : float
        Spike prior variance.
    pi : float
        Prior inclusion probability. ``pi == 1`` gives ``+inf``.

    Returns
    -------
    float
    """
    with np.errstate(divide='ignore'):
        prior_odds = np.log(np.float64(pi) / (1.0 - np.float64(pi)))
    return float(mu1 * mu1 / (2.0 * var1) - mu0 * mu0 / (2.0 * var0)
                 + 0.5 * np.log(var1 / prior1) - 0.5 * np.log(var0 / prior0)
                 + prior_odds)


def draw_indicator(log_odds: float, rng: np.random.Generator) -> float:
    """
    Draw an inclusion indicator from its log-odds.

    At or above ``LOGODDS_SATURATION`` the indicator is set to one without
    consuming a random number.
    """
    if np.isnan(log_odds):
        raise NumericalDomainError("Inclusion log-odds is NaN.")
    if log_odds >= LOGODDS_SATURATION:
        return 1.0
    odds = np.exp(log_odds)
    prob = odds / (1.0 + odds)
    return 1.0 if rng.random() < prob else 0.0
