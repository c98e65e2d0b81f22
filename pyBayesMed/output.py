"""
Output records of the mediation sampler

One record per retained iteration:
``beta_m[0] pi_m[0] alpha_a[0] pi_a[0] ... beta_m[q-1] pi_m[q-1] alpha_a[q-1] pi_a[q-1] beta_a``
"""

import os
import numpy as np
import pandas as pd
from typing import List, Optional

from .state import ModelState
from .utils import ConfigurationError


RECORD_FIELDS = ['beta_m', 'pi_m', 'alpha_a', 'pi_a']


def build_record(state: ModelState) -> np.ndarray:
    """Current beta_m, pi_m, alpha_a, pi_a (interleaved per mediator) and beta_a."""
    per_mediator = np.column_stack([state.beta_m, state.pi_m, state.alpha_a, state.pi_a])
    return np.append(per_mediator.reshape(-1), state.beta_a)


def format_record(record: np.ndarray, digits: int = 6) -> str:
    """Space-separated record with ``digits`` significant digits."""
    return " ".join(f"{value:.{digits}g}" for value in record)


def record_columns(names: List[str]) -> List[str]:
    """
    Column labels for the record layout.

    Examples
    --------
    >>> record_columns(['m1'])
    ['beta_m[m1]', 'pi_m[m1]', 'alpha_a[m1]', 'pi_a[m1]', 'beta_a']
    """
    cols = [f"{field}[{name}]" for name in names for field in RECORD_FIELDS]
    cols.append('beta_a')
    return cols


class MemorySink:
    """Keeps emitted records in memory, in emission order."""

    def __init__(self):
        self.records = []

    def write(self, record: np.ndarray):
        self.records.append(np.array(record, copy=True))

    def to_frame(self, names: Optional[List[str]] = None) -> pd.DataFrame:
        q = 0 if not self.records else (len(self.records[0]) - 1) // 4
        if names is None:
            names = [str(j) for j in range(q)]
        data = np.array(self.records).reshape(len(self.records), 4 * q + 1)
        return pd.DataFrame(data, columns=record_columns(names))


class TextFileSink:
    """
    Appends records to ``results_<q>.txt`` in ``directory``.

    Existing content is kept, so repeated runs append to the same file.
    """

    def __init__(self, directory: str, q: int, digits: int = 6):
        self.path = os.path.join(directory, f"results_{q}.txt")
        self.digits = digits
        os.makedirs(directory, exist_ok=True)

    def write(self, record: np.ndarray):
        with open(self.path, 'a') as outfile:
            outfile.write(format_record(record, self.digits) + "\n")


def read_records(path: str, names: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Read a results file written by ``TextFileSink``.

    Parameters
    ----------
    path : str
        File path.
    names : list of str, optional
        Mediator names; defaults to '0', '1', ...

    Returns
    -------
    DataFrame
        One row per record.
    """
    frame = pd.read_csv(path, sep=' ', header=None, dtype=np.float64)
    q, extra = divmod(frame.shape[1] - 1, 4)
    if extra != 0:
        raise ConfigurationError(f"'{path}' has {frame.shape[1]} columns; expected 4q+1.")
    if names is None:
        names = [str(j) for j in range(q)]
    elif len(names) != q:
        raise ConfigurationError(f"'{path}' holds {q} mediators but {len(names)} names were given.")
    frame.columns = record_columns(names)
    return frame
