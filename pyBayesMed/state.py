"""
Model state for the Bayesian mediation sampler

The state owns every parameter, the fixed hyperparameters and the cached
quantities (column norms, residuals, conditional variances). It keeps
references to the data; the data are never modified.
"""

import numpy as np
import warnings
from typing import Dict, Optional

from . import helpers
from .utils import ConfigurationError, validate_dimensions


# Gamma prior (shape k*, rate l*) for the precision of each variance parameter
DEFAULT_HYPERPARA = {
    # spike variance of beta_m
    'km0': 2.0,
    'lm0': 0.1,
    # slab variance of beta_m
    'km1': 2.0,
    'lm1': 0.5,
    # prior variance of beta_a
    'ka': 2.0,
    'la': 1.0,
    # spike variance of alpha_a
    'kma0': 2.0,
    'lma0': 1.0,
    # slab variance of alpha_a
    'kma1': 2.0,
    'lma1': 2.0,
    # outcome residual variance
    'ke': 2.0,
    'le': 1.0,
    # mediator residual variance
    'kg': 2.0,
    'lg': 1.0,
}

VARIANCE_NAMES = ['sigma_m0', 'sigma_m1', 'sigma_a', 'sigma_ma0', 'sigma_ma1', 'sigma_g', 'sigma_e']


def check_hyperparameters(hyperpara: Dict[str, float]) -> Dict[str, float]:
    """Return a complete, validated hyperparameter dict. Unknown keys are dropped."""
    full = dict(DEFAULT_HYPERPARA)
    for key, value in hyperpara.items():
        if key in full:
            full[key] = value
        else:
            warnings.warn(f"Unknown hyperparameter: {key}. Ignoring.")
    for key in DEFAULT_HYPERPARA:
        value = full[key]
        if not isinstance(value, (int, float, np.integer, np.floating)) or not np.isfinite(value) or value <= 0:
            raise ConfigurationError(f"Hyperparameter '{key}' must be a positive number, got {value!r}.")
        full[key] = float(value)
    return full


class ModelState:
    """
    Current values of all parameters of the mediation model.

    Parameters
    ----------
    Y : array
        Outcome (n,).
    A : array
        Exposure (n,).
    M : array
        Candidate mediators (n x q).
    C1 : array
        Covariates of the outcome model (n x w1).
    C2 : array
        Covariates of the mediator models (n x w2).
    hyperpara : dict
        Gamma prior shapes and rates, see ``DEFAULT_HYPERPARA``.
    rng : np.random.Generator
        Random stream; the initial variances are drawn from their priors.
    init : dict, optional
        Starting values for 'beta_m', 'alpha_a' (default zero) and
        'pi_m', 'pi_a' (default 0.5, must lie in [1/q, 1]).

    Attributes
    ----------
    res1 : array
        Outcome residual, Y - beta_a*A - M beta_m - C1 beta_c.
    res2 : array
        Mediator residual, M - A alpha_a - C2 alpha_c.
    res2_c : array
        Mediator residual without the exposure effect, M - C2 alpha_c.
    """

    def __init__(self,
                 Y: np.ndarray,
                 A: np.ndarray,
                 M: np.ndarray,
                 C1: np.ndarray,
                 C2: np.ndarray,
                 hyperpara: Dict[str, float],
                 rng: np.random.Generator,
                 init: Optional[Dict[str, np.ndarray]] = None):

        self.n, self.q, self.w1, self.w2 = validate_dimensions(Y, A, M, C1, C2)
        self.Y = Y
        self.A = A
        self.M = M
        self.C1 = C1
        self.C2 = C2
        self.hyperpara = check_hyperparameters(hyperpara)

        # Initial variances from their priors
        hp = self.hyperpara
        self.sigma_m0 = helpers.draw_invgamma(hp['km0'], hp['lm0'], rng)
        self.sigma_m1 = helpers.draw_invgamma(hp['km1'], hp['lm1'], rng)
        self.sigma_a = helpers.draw_invgamma(hp['ka'], hp['la'], rng)
        self.sigma_ma0 = helpers.draw_invgamma(hp['kma0'], hp['lma0'], rng)
        self.sigma_ma1 = helpers.draw_invgamma(hp['kma1'], hp['lma1'], rng)
        self.sigma_g = helpers.draw_invgamma(hp['kg'], hp['lg'], rng)
        self.sigma_e = helpers.draw_invgamma(hp['ke'], hp['le'], rng)

        q = self.q
        init = init or {}
        unknown = set(init) - {'beta_m', 'alpha_a', 'pi_m', 'pi_a'}
        if unknown:
            raise ConfigurationError(f"Unknown initial values: {sorted(unknown)}.")

        self.beta_a = 0.0
        self.beta_m = self._init_vector(init.get('beta_m'), 'beta_m', 0.0)
        self.alpha_a = self._init_vector(init.get('alpha_a'), 'alpha_a', 0.0)
        self.pi_m = self._init_vector(init.get('pi_m'), 'pi_m', 0.5)
        self.pi_a = self._init_vector(init.get('pi_a'), 'pi_a', 0.5)
        # Proposals are reflected into [1/q, 1]; with a single mediator that
        # is {1} and any start in (0, 1] is allowed
        lower = 1.0 / q if q > 1 else 0.0
        for name in ('pi_m', 'pi_a'):
            pi = getattr(self, name)
            if np.any(pi < lower) or np.any(pi <= 0) or np.any(pi > 1):
                bounds = f"[1/{q}, 1]" if q > 1 else "(0, 1]"
                raise ConfigurationError(f"Initial '{name}' must lie in {bounds}, "
                                         f"got values in [{pi.min():.3g}, {pi.max():.3g}].")

        self.beta_c = np.zeros(self.w1)
        self.alpha_c = np.zeros((self.w2, q))
        self.r1 = np.zeros(q)
        self.r3 = np.zeros(q)

        # Squared column norms; the data never change
        self.A2norm = float(A @ A)
        self.M2norm = (M ** 2).sum(axis=0)
        self.C1_2norm = (C1 ** 2).sum(axis=0)
        self.C2_2norm = (C2 ** 2).sum(axis=0)

        # Set on the first iteration
        self.res1 = None
        self.res2 = None
        self.res2_c = None

        # Conditional variances, refreshed once per sweep
        self.var_m0 = np.zeros(q)
        self.var_m1 = np.zeros(q)
        self.var_alpha_a0 = 0.0
        self.var_alpha_a1 = 0.0
        self.var_a = 0.0

        # Outcome of the latest MH step for pi_m, pi_a
        self.accepted = False

    def _init_vector(self, value, name: str, default: float) -> np.ndarray:
        if value is None:
            return np.full(self.q, default)
        vec = np.array(value, dtype=np.float64).reshape(-1)
        if vec.shape != (self.q,):
            raise ConfigurationError(f"Initial '{name}' must have length {self.q}, got {vec.shape[0]}.")
        if not np.all(np.isfinite(vec)):
            raise ConfigurationError(f"Initial '{name}' contains NaN or infinite values.")
        return vec

    def variances(self) -> Dict[str, float]:
        """Current values of the seven variance parameters."""
        return {name: getattr(self, name) for name in VARIANCE_NAMES}

    def snapshot(self) -> Dict:
        """Copy of all sampled parameters."""
        snap = {
            'beta_a': self.beta_a,
            'beta_m': self.beta_m.copy(),
            'alpha_a': self.alpha_a.copy(),
            'beta_c': self.beta_c.copy(),
            'alpha_c': self.alpha_c.copy(),
            'r1': self.r1.copy(),
            'r3': self.r3.copy(),
            'pi_m': self.pi_m.copy(),
            'pi_a': self.pi_a.copy(),
        }
        snap.update(self.variances())
        return snap

    def __repr__(self):
        return (f"ModelState(n={self.n}, q={self.q}, w1={self.w1}, w2={self.w2}, "
                f"sigma_e={self.sigma_e:.3e}, sigma_g={self.sigma_g:.3e})")
