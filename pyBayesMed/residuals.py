"""
Residual maintenance

The residuals are computed from scratch once, on the first iteration.
Afterwards every coefficient change is applied as an O(n) delta
``residual += (old - new) * design_column``.
"""

import numpy as np
from typing import Tuple

from .state import ModelState
from .utils import ResidualDriftError


def compute_residuals(state: ModelState) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Residuals implied by the current coefficients.

    Returns
    -------
    tuple
        (res1, res2, res2_c) as new arrays; the state is not modified.
    """
    res1 = state.Y - state.beta_a * state.A - state.M @ state.beta_m - state.C1 @ state.beta_c
    res2_c = state.M - state.C2 @ state.alpha_c
    res2 = res2_c - np.outer(state.A, state.alpha_a)
    return res1, res2, res2_c


def initialize_residuals(state: ModelState):
    """Compute res1, res2 and res2_c from scratch and store them on the state."""
    state.res1, state.res2, state.res2_c = compute_residuals(state)


def shift_outcome(state: ModelState, column: np.ndarray, old: float, new: float):
    """Apply a coefficient change on ``column`` to the outcome residual."""
    state.res1 += (old - new) * column


def shift_mediator(state: ModelState, j: int, column: np.ndarray, old: float, new: float,
                   covariate: bool = False):
    """
    Apply a coefficient change to the residual of mediator ``j``.

    Exposure effects only enter ``res2``; covariate effects enter both
    ``res2`` and ``res2_c``.
    """
    delta = (old - new) * column
    state.res2[:, j] += delta
    if covariate:
        state.res2_c[:, j] += delta


def check_residuals(state: ModelState, rtol: float = 1e-9):
    """
    Compare the maintained residuals with a fresh computation.

    Raises
    ------
    ResidualDriftError
        If any residual differs by more than ``rtol`` relative to the
        largest absolute entry of the fresh residual (at least 1).
    """
    fresh = compute_residuals(state)
    kept = (state.res1, state.res2, state.res2_c)
    for name, cached, target in zip(('res1', 'res2', 'res2_c'), kept, fresh):
        if cached is None:
            raise ResidualDriftError(f"'{name}' has not been initialized.")
        if target.size == 0:
            continue
        scale = max(1.0, float(np.max(np.abs(target))))
        drift = float(np.max(np.abs(cached - target)))
        if drift > rtol * scale:
            raise ResidualDriftError(
                f"'{name}' drifted from its definition by {drift:.3e} (tolerance {rtol * scale:.3e}).")
