"""
pyBayesMed: Bayesian high-dimensional mediation analysis

This package implements a Gibbs sampler with spike-and-slab variable
selection for exposure-mediator-outcome models, with a Metropolis-Hastings
update of the prior inclusion probabilities.
"""

__version__ = "0.1.0"
__author__ = "Python BayesMed Team"

from .bayesmed import BayesMed
from . import utils
from . import helpers
from . import state
from . import residuals
from . import samplers
from . import inclusion
from . import mcmc
from . import output

from .state import ModelState, DEFAULT_HYPERPARA
from .mcmc import iterate, run_mcmc
from .output import MemorySink, TextFileSink, read_records

from .utils import (
    ConfigurationError,
    NumericalDomainError,
    ResidualDriftError,
    normalize
)

__all__ = [
    # Main class
    "BayesMed",

    # Modules
    "utils",
    "helpers",
    "state",
    "residuals",
    "samplers",
    "inclusion",
    "mcmc",
    "output",

    # Sampler
    "ModelState",
    "DEFAULT_HYPERPARA",
    "iterate",
    "run_mcmc",

    # Output
    "MemorySink",
    "TextFileSink",
    "read_records",

    # Errors and utilities
    "ConfigurationError",
    "NumericalDomainError",
    "ResidualDriftError",
    "normalize",
]
