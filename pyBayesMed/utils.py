"""
Utility functions for pyBayesMed package
"""

import numpy as np
import pandas as pd
from typing import Union, List, Optional, Tuple


class ConfigurationError(ValueError):
    """Raised when data, hyperparameters or run settings are rejected."""


class NumericalDomainError(ArithmeticError):
    """Raised when a variance or gamma parameter leaves its domain during sampling."""


class ResidualDriftError(RuntimeError):
    """Raised when a maintained residual no longer matches its definition."""


ArrayLike = Union[np.ndarray, pd.DataFrame, pd.Series, List]


def make_rng(seed: Optional[Union[int, np.random.Generator]] = None) -> np.random.Generator:
    """
    Create the random stream used by the sampler.

    Parameters
    ----------
    seed : int or Generator, optional
        Seed for a new generator, or an existing generator which is
        returned unchanged.

    Returns
    -------
    np.random.Generator
    """
    if isinstance(seed, np.random.Generator):
        return seed
    if seed is not None and not isinstance(seed, (int, np.integer)):
        raise ConfigurationError(f"'seed' must be an int or a numpy Generator, got {type(seed).__name__}.")
    return np.random.default_rng(seed)


def _check_finite(X: np.ndarray, name: str):
    if not np.all(np.isfinite(X)):
        raise ConfigurationError(f"'{name}' contains NaN or infinite values. Please check the data.")


def as_vector(x: ArrayLike, name: str) -> np.ndarray:
    """
    Convert input to a 1-D float array.

    A single-column DataFrame or an (n, 1) array is accepted and flattened.
    Float64 arrays are returned without copying.

    Parameters
    ----------
    x : array-like, Series or DataFrame
        Input data of length n.
    name : str
        Argument name used in error messages.

    Returns
    -------
    np.ndarray
        Array of shape (n,).
    """
    if x is None:
        raise ConfigurationError(f"'{name}' is required.")
    if isinstance(x, (pd.DataFrame, pd.Series)):
        x = x.to_numpy()
    X = np.asarray(x, dtype=np.float64)
    if X.ndim == 2 and X.shape[1] == 1:
        X = X[:, 0]
    if X.ndim != 1:
        raise ConfigurationError(f"'{name}' must be a vector, got an array of shape {X.shape}.")
    _check_finite(X, name)
    return X


def as_matrix(x: Optional[ArrayLike], name: str, n: int) -> np.ndarray:
    """
    Convert input to a 2-D float array with n rows.

    Parameters
    ----------
    x : array-like or DataFrame, optional
        Input data of size n x k. ``None`` gives an n x 0 matrix.
    name : str
        Argument name used in error messages.
    n : int
        Expected number of rows (observations).

    Returns
    -------
    np.ndarray
        Array of shape (n, k).
    """
    if x is None:
        return np.zeros((n, 0))
    if isinstance(x, (pd.DataFrame, pd.Series)):
        x = x.to_numpy()
    X = np.asarray(x, dtype=np.float64)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if X.ndim != 2:
        raise ConfigurationError(f"'{name}' must be a matrix, got an array with {X.ndim} dimensions.")
    if X.shape[0] != n:
        raise ConfigurationError(
            f"'{name}' has {X.shape[0]} rows but the outcome has {n} observations.")
    _check_finite(X, name)
    return X


def column_names(x: Optional[ArrayLike], prefix: str, k: int) -> List[str]:
    """
    Column labels of an input matrix.

    DataFrame columns are kept; otherwise names ``prefix0, prefix1, ...``
    are generated.
    """
    if isinstance(x, pd.DataFrame) and x.shape[1] == k:
        return [str(col) for col in x.columns]
    return [f"{prefix}{j}" for j in range(k)]


def validate_dimensions(Y: np.ndarray,
                        A: np.ndarray,
                        M: np.ndarray,
                        C1: np.ndarray,
                        C2: np.ndarray) -> Tuple[int, int, int, int]:
    """
    Check that all inputs agree on the number of observations.

    Parameters
    ----------
    Y : array
        Outcome (n,).
    A : array
        Exposure (n,).
    M : array
        Mediators (n x q).
    C1 : array
        Outcome covariates (n x w1).
    C2 : array
        Mediator covariates (n x w2).

    Returns
    -------
    tuple
        (n, q, w1, w2)
    """
    if Y.ndim != 1:
        raise ConfigurationError(f"'Y' must be a vector, got shape {Y.shape}.")
    n = Y.shape[0]
    if n < 1:
        raise ConfigurationError("'Y' must contain at least one observation.")
    if A.shape != (n,):
        raise ConfigurationError(f"'A' must have shape ({n},), got {A.shape}.")
    for name, X in (('M', M), ('C1', C1), ('C2', C2)):
        if X.ndim != 2 or X.shape[0] != n:
            raise ConfigurationError(f"'{name}' must have {n} rows, got shape {X.shape}.")

    # Covariate effects have flat priors and are divided by the column norms
    for name, X in (('C1', C1), ('C2', C2)):
        norms = (X ** 2).sum(axis=0)
        zero = np.flatnonzero(norms == 0)
        if zero.size > 0:
            raise ConfigurationError(f"'{name}' has all-zero columns at positions {zero.tolist()}.")

    return n, M.shape[1], C1.shape[1], C2.shape[1]


def normalize(X: ArrayLike) -> np.ndarray:
    """
    Center and scale each column to mean zero and unit variance.

    The population standard deviation (divisor n) is used.

    Parameters
    ----------
    X : array-like or DataFrame
        Data of size n x k, or a vector of length n.

    Returns
    -------
    np.ndarray
        Standardized copy with the same shape as the input.

    Examples
    --------
    >>> normalize(np.array([1.0, 2.0, 3.0]))
    array([-1.22474487,  0.        ,  1.22474487])
    """
    if isinstance(X, (pd.DataFrame, pd.Series)):
        X = X.to_numpy()
    X = np.asarray(X, dtype=np.float64)
    if X.shape[0] == 0:
        return X.copy()
    mean = X.mean(axis=0)
    stde = X.std(axis=0)
    if np.any(stde == 0):
        raise ConfigurationError("Cannot standardize a constant column.")
    return (X - mean) / stde
