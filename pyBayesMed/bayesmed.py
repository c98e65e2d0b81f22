"""
Main Bayesian mediation estimation module
"""

import numpy as np
import pandas as pd
from typing import Union, Dict, List, Optional
import warnings
from datetime import datetime

from . import utils
from . import mcmc
from .output import TextFileSink, record_columns
from .state import DEFAULT_HYPERPARA, ModelState


class BayesMed:
    """
    Bayesian high-dimensional mediation analysis

    Outcome model and mediator models

        Y      = beta_a*A + M beta_m + C1 beta_c + e
        M[:,j] = alpha_a[j]*A + C2 alpha_c[:,j] + g_j

    with spike-and-slab priors on the mediator effects beta_m and the
    exposure effects alpha_a. A mediator with both effects included
    transmits the exposure effect; alpha_a[j]*beta_m[j] is its indirect
    effect.

    Parameters
    ----------
    Y : array or Series
        Outcome of length n.
    A : array or Series
        Exposure of length n.
    M : array or DataFrame
        Candidate mediators (n x q).
    C1 : array or DataFrame, optional
        Covariates of the outcome model (n x w1).
    C2 : array or DataFrame, optional
        Covariates of the mediator models (n x w2).
    niter : int, default=10000
        Total number of MCMC iterations, burn-in included.
    burnin : int, default=1000
        Number of burn-in iterations.
    thin : int, default=10
        Thinning interval after burn-in.
    hyperpara : dict, optional
        Gamma prior shapes and rates; see ``DEFAULT_HYPERPARA``.
    init : dict, optional
        Starting values for 'beta_m', 'alpha_a', 'pi_m', 'pi_a'.
    expert : dict, optional
        Expert settings for advanced options.
    seed : int or Generator, optional
        Seed of the random stream.
    verbose : bool, default=True
        Whether to print progress messages.

    Attributes
    ----------
    args : dict
        Estimation arguments.
    state : ModelState
        Sampler state after the last iteration.
    posterior : dict
        Stored draws, see ``mcmc.run_mcmc``.

    Examples
    --------
    >>> import numpy as np
    >>> from pyBayesMed import BayesMed
    >>> rng = np.random.default_rng(1)
    >>> A = rng.normal(size=100)
    >>> M = np.outer(A, [0.5, 0.0, 0.0]) + rng.normal(size=(100, 3))
    >>> Y = 0.3 * A + M @ [0.8, 0.0, 0.0] + rng.normal(size=100)
    >>> model = BayesMed(Y, A, M, niter=2000, burnin=1000, seed=1, verbose=False)
    >>> model.pip()
    """

    def __init__(self,
                 Y: Union[np.ndarray, pd.Series],
                 A: Union[np.ndarray, pd.Series],
                 M: Union[np.ndarray, pd.DataFrame],
                 C1: Optional[Union[np.ndarray, pd.DataFrame]] = None,
                 C2: Optional[Union[np.ndarray, pd.DataFrame]] = None,
                 niter: int = 10000,
                 burnin: int = 1000,
                 thin: int = 10,
                 hyperpara: Optional[Dict] = None,
                 init: Optional[Dict] = None,
                 expert: Optional[Dict] = None,
                 seed: Optional[Union[int, np.random.Generator]] = None,
                 verbose: bool = True):

        self.start_time = datetime.now()

        self.args = {
            'niter': niter,
            'burnin': burnin,
            'thin': thin,
            'hyperpara': hyperpara,
            'init': init,
            'expert': expert,
            'seed': seed,
            'verbose': verbose
        }

        # Validate inputs
        self._validate_inputs()

        # Process data
        self._process_data(Y, A, M, C1, C2)

        # Set hyperparameters
        self._set_hyperparameters()

        # Process expert settings
        self._process_expert_settings()

        if verbose:
            self._print_init_message()

        # Estimate model
        self._estimate()

        if verbose:
            elapsed = (datetime.now() - self.start_time).total_seconds()
            print(f"\nTotal estimation time: {elapsed:.2f} seconds")

    def _validate_inputs(self):
        """Validate run settings."""
        mcmc.check_run_settings(self.args['niter'], self.args['burnin'], self.args['thin'])

        if self.args['burnin'] >= self.args['niter']:
            warnings.warn(f"burnin ({self.args['burnin']}) is not smaller than niter "
                          f"({self.args['niter']}); no draws will be retained.")

        for key in ('hyperpara', 'init', 'expert'):
            if self.args[key] is not None and not isinstance(self.args[key], dict):
                raise utils.ConfigurationError(f"'{key}' must be a dict.")

        self.rng = utils.make_rng(self.args['seed'])

    def _process_data(self, Y, A, M, C1, C2):
        """Convert inputs to arrays and check their dimensions."""
        self.Y = utils.as_vector(Y, 'Y')
        n = self.Y.shape[0]
        self.A = utils.as_vector(A, 'A')
        if M is None:
            raise utils.ConfigurationError("'M' is required.")
        self.M = utils.as_matrix(M, 'M', n)
        self.C1 = utils.as_matrix(C1, 'C1', n)
        self.C2 = utils.as_matrix(C2, 'C2', n)

        self.n, self.q, self.w1, self.w2 = utils.validate_dimensions(
            self.Y, self.A, self.M, self.C1, self.C2)
        self.mediators = utils.column_names(M, 'M', self.q)

    def _set_hyperparameters(self):
        """Set default hyperparameters and override with user-specified values."""
        hyperpara = dict(DEFAULT_HYPERPARA)

        user_hyperpara = self.args.get('hyperpara') or {}
        for key, value in user_hyperpara.items():
            if key in hyperpara:
                hyperpara[key] = value
            else:
                warnings.warn(f"Unknown hyperparameter: {key}. Ignoring.")

        self.hyperpara = hyperpara

    def _process_expert_settings(self):
        """Process expert settings."""
        expert = self.args.get('expert') or {}

        default_expert = {
            'standardize': False,
            'output.dir': None,
            'output.digits': 6,
            'pi.step': 0.01,
            'check.residuals': 0,
            'save.indicator.store': True,
            'save.variance.store': False,
            'print.every': 1000
        }

        for key, value in expert.items():
            if key in default_expert:
                default_expert[key] = value
            else:
                warnings.warn(f"Unknown expert setting: {key}. Ignoring.")

        if not default_expert['pi.step'] > 0:
            raise utils.ConfigurationError("'pi.step' must be positive.")
        if not isinstance(default_expert['print.every'], (int, np.integer)) or default_expert['print.every'] < 1:
            raise utils.ConfigurationError("'print.every' must be a positive integer.")
        if default_expert['check.residuals'] < 0:
            raise utils.ConfigurationError("'check.residuals' must be non-negative.")

        if default_expert['standardize']:
            self.Y = utils.normalize(self.Y)
            self.A = utils.normalize(self.A)
            self.M = utils.normalize(self.M)

        self.expert = default_expert

    def _print_init_message(self):
        """Print initialization message."""
        print("\n" + "=" * 80)
        print("Start estimation of Bayesian mediation model")
        print("=" * 80)
        print(f"Sample size: {self.n}")
        print(f"Candidate mediators: {self.q}")
        print(f"Covariates (outcome / mediators): {self.w1} / {self.w2}")
        print(f"Number of iterations: {self.args['niter']}")
        print(f"Burn-in: {self.args['burnin']}")
        print(f"Thinning: {self.args['thin']}")
        if self.expert['output.dir'] is not None:
            print(f"Output directory: {self.expert['output.dir']}")
        print("=" * 80 + "\n")

    def _estimate(self):
        """Main estimation function."""
        self.state = ModelState(self.Y, self.A, self.M, self.C1, self.C2,
                                self.hyperpara, self.rng, self.args['init'])

        # Draws are kept in self.posterior; records only go to a file on request
        self.sink = None
        if self.expert['output.dir'] is not None:
            self.sink = TextFileSink(self.expert['output.dir'], self.q, self.expert['output.digits'])

        setting_store = {
            'indicators': self.expert['save.indicator.store'],
            'variances': self.expert['save.variance.store']
        }

        self.posterior = mcmc.run_mcmc(
            state=self.state,
            rng=self.rng,
            niter=self.args['niter'],
            burnin=self.args['burnin'],
            thin=self.args['thin'],
            sink=self.sink,
            setting_store=setting_store,
            step=self.expert['pi.step'],
            check_every=self.expert['check.residuals'],
            verbose=self.args['verbose'],
            print_every=self.expert['print.every']
        )
        self.args['thindraws'] = len(self.posterior['iterations'])

        if self.args['verbose']:
            print(f"\nEstimation finished. {self.args['thindraws']} draws retained, "
                  f"MH acceptance rate {self.posterior['accept_rate']:.3f}.")

    def draws(self) -> pd.DataFrame:
        """
        Retained draws in record layout.

        Returns
        -------
        pd.DataFrame
            One row per retained iteration, indexed by iteration number.
        """
        post = self.posterior
        blocks = np.stack([post['beta_m_store'], post['pi_m_store'],
                           post['alpha_a_store'], post['pi_a_store']], axis=2)
        data = np.column_stack([blocks.reshape(blocks.shape[0], 4 * self.q), post['beta_a_store']])
        return pd.DataFrame(data, columns=record_columns(self.mediators),
                            index=pd.Index(post['iterations'], name='iteration'))

    def pip(self) -> pd.DataFrame:
        """
        Posterior inclusion probabilities.

        Returns
        -------
        pd.DataFrame
            Share of retained draws with r1 = 1 ('beta_m'), r3 = 1
            ('alpha_a') and both ('joint'), per mediator.
        """
        if 'r1_store' not in self.posterior:
            raise ValueError("Indicator draws were not stored. Set expert 'save.indicator.store' to True.")
        if self.args['thindraws'] == 0:
            raise ValueError("No posterior draws were retained.")
        r1 = self.posterior['r1_store']
        r3 = self.posterior['r3_store']
        return pd.DataFrame({
            'beta_m': r1.mean(axis=0),
            'alpha_a': r3.mean(axis=0),
            'joint': (r1 * r3).mean(axis=0)
        }, index=pd.Index(self.mediators, name='mediator'))

    def coef(self, quantile: float = 0.50) -> pd.DataFrame:
        """
        Coefficients at a posterior quantile.

        Parameters
        ----------
        quantile : float, default=0.50
            Quantile to extract (between 0 and 1).

        Returns
        -------
        pd.DataFrame
            beta_m, alpha_a, pi_m, pi_a per mediator; beta_a is stored in
            ``attrs['beta_a']``.
        """
        if self.args['thindraws'] == 0:
            raise ValueError("No posterior draws were retained.")
        post = self.posterior
        df = pd.DataFrame({
            'beta_m': np.quantile(post['beta_m_store'], quantile, axis=0),
            'alpha_a': np.quantile(post['alpha_a_store'], quantile, axis=0),
            'pi_m': np.quantile(post['pi_m_store'], quantile, axis=0),
            'pi_a': np.quantile(post['pi_a_store'], quantile, axis=0)
        }, index=pd.Index(self.mediators, name='mediator'))
        df.attrs['beta_a'] = float(np.quantile(post['beta_a_store'], quantile))
        return df

    def indirect_effects(self, quantiles: Optional[List[float]] = None) -> pd.DataFrame:
        """
        Posterior summary of the mediated effects alpha_a[j] * beta_m[j].

        Parameters
        ----------
        quantiles : list, optional
            Posterior quantiles to report. Default [0.025, 0.5, 0.975].

        Returns
        -------
        pd.DataFrame
            Posterior mean and quantiles per mediator.
        """
        if quantiles is None:
            quantiles = [0.025, 0.50, 0.975]
        if self.args['thindraws'] == 0:
            raise ValueError("No posterior draws were retained.")
        effect = self.posterior['alpha_a_store'] * self.posterior['beta_m_store']
        df = pd.DataFrame({'mean': effect.mean(axis=0)},
                          index=pd.Index(self.mediators, name='mediator'))
        for qq in quantiles:
            df[f"q{qq:g}"] = np.quantile(effect, qq, axis=0)
        return df

    def summary(self) -> Optional[pd.DataFrame]:
        """
        Print and return a per-mediator summary.

        Returns
        -------
        pd.DataFrame
            Posterior means of beta_m, alpha_a and the indirect effect,
            with posterior inclusion probabilities when stored.
        """
        if self.args.get('thindraws', 0) == 0:
            print("No posterior draws were retained.")
            return None

        post = self.posterior
        table = pd.DataFrame({
            'beta_m': post['beta_m_store'].mean(axis=0),
            'alpha_a': post['alpha_a_store'].mean(axis=0),
            'indirect': (post['alpha_a_store'] * post['beta_m_store']).mean(axis=0),
            'pi_m': post['pi_m_store'].mean(axis=0),
            'pi_a': post['pi_a_store'].mean(axis=0)
        }, index=pd.Index(self.mediators, name='mediator'))
        if 'r1_store' in post:
            table = table.join(self.pip().add_prefix('pip_'))

        print("-" * 75)
        print("Model Info:")
        print(f"Observations: {self.n}, candidate mediators: {self.q}")
        print(f"Number of posterior draws: {self.args['thindraws']}")
        print(f"Direct effect beta_a (posterior mean): {post['beta_a_store'].mean():.4f}")
        print(f"MH acceptance rate (pi_m, pi_a): {post['accept_rate']:.3f}")
        print("-" * 75)
        print(table)
        print("-" * 75)

        return table

    def __repr__(self):
        """String representation of the model."""
        return (f"BayesMed Model\n"
                f"Observations: {self.n}\n"
                f"Mediators: {self.q}\n"
                f"Covariates: {self.w1} (outcome), {self.w2} (mediators)\n"
                f"Iterations: {self.args['niter']} (burn-in {self.args['burnin']}, thin {self.args['thin']})\n"
                f"Draws: {self.args.get('thindraws', 0)}")
