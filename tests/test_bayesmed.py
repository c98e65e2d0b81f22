"""
Tests for the BayesMed model class.

Run with: pytest tests/test_bayesmed.py -v
"""

import os
import warnings

import numpy as np
import pandas as pd
import pytest

from pyBayesMed import BayesMed, ConfigurationError, DEFAULT_HYPERPARA, ModelState
from pyBayesMed.output import read_records


@pytest.fixture
def frame_data(mediation_data):
    """Mediation data as pandas objects with named mediators."""
    names = [f"cpg{j}" for j in range(6)]
    return {
        'Y': pd.Series(mediation_data['Y'], name='outcome'),
        'A': pd.Series(mediation_data['A'], name='exposure'),
        'M': pd.DataFrame(mediation_data['M'], columns=names),
        'C1': pd.DataFrame(mediation_data['C1'], columns=['age', 'sex']),
        'C2': mediation_data['C2'],
    }


class TestValidation:

    def test_mediator_rows_mismatch(self, mediation_data):
        with pytest.raises(ConfigurationError, match="'M' has 59 rows"):
            BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'][:59],
                     niter=10, burnin=0, verbose=False)

    def test_exposure_length_mismatch(self, mediation_data):
        with pytest.raises(ConfigurationError, match="'A'"):
            BayesMed(mediation_data['Y'], mediation_data['A'][:10], mediation_data['M'],
                     niter=10, burnin=0, verbose=False)

    def test_covariate_rows_mismatch(self, mediation_data):
        with pytest.raises(ConfigurationError, match="'C2'"):
            BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                     C2=mediation_data['C2'][:30], niter=10, burnin=0, verbose=False)

    def test_nan_rejected(self, mediation_data):
        Y = mediation_data['Y'].copy()
        Y[3] = np.nan
        with pytest.raises(ConfigurationError, match="NaN"):
            BayesMed(Y, mediation_data['A'], mediation_data['M'], niter=10, burnin=0, verbose=False)

    def test_zero_covariate_column(self, mediation_data):
        C1 = mediation_data['C1'].copy()
        C1[:, 1] = 0.0
        with pytest.raises(ConfigurationError, match="all-zero"):
            BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'], C1=C1,
                     niter=10, burnin=0, verbose=False)

    def test_non_positive_hyperparameter(self, mediation_data):
        with pytest.raises(ConfigurationError, match="lm0"):
            BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                     hyperpara={'lm0': 0.0}, niter=10, burnin=0, verbose=False)

    def test_unknown_hyperparameter_warns(self, mediation_data):
        with pytest.warns(UserWarning, match="Unknown hyperparameter"):
            BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                     hyperpara={'tau0': 1.0}, niter=10, burnin=0, verbose=False)

    def test_unknown_expert_setting_warns(self, mediation_data):
        with pytest.warns(UserWarning, match="Unknown expert setting"):
            BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                     expert={'cores': 4}, niter=10, burnin=0, verbose=False)

    def test_unknown_hyperparameter_dropped_by_state(self, mediation_data):
        d = mediation_data
        with pytest.warns(UserWarning, match="Unknown hyperparameter: tau0"):
            state = ModelState(d['Y'], d['A'], d['M'], d['C1'], d['C2'],
                               {'tau0': 1.0, 'lm1': 3.0}, np.random.default_rng(0))
        assert 'tau0' not in state.hyperpara
        assert state.hyperpara['lm1'] == 3.0
        assert set(state.hyperpara) == set(DEFAULT_HYPERPARA)

    def test_bad_initial_probability(self, mediation_data):
        with pytest.raises(ConfigurationError, match="pi_m"):
            BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                     init={'pi_m': np.zeros(6)}, niter=10, burnin=0, verbose=False)

    def test_bad_initial_length(self, mediation_data):
        with pytest.raises(ConfigurationError, match="length 6"):
            BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                     init={'beta_m': np.zeros(5)}, niter=10, burnin=0, verbose=False)

    def test_burnin_exceeds_niter_warns(self, mediation_data):
        with pytest.warns(UserWarning, match="no draws"):
            model = BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                             niter=10, burnin=10, verbose=False)
        assert model.summary() is None


class TestEstimation:

    def test_named_outputs(self, frame_data):
        model = BayesMed(**frame_data, niter=120, burnin=20, thin=10, seed=3, verbose=False)
        draws = model.draws()
        assert list(draws.columns[:4]) == ['beta_m[cpg0]', 'pi_m[cpg0]', 'alpha_a[cpg0]', 'pi_a[cpg0]']
        assert draws.columns[-1] == 'beta_a'
        assert draws.shape == (10, 25)
        assert list(draws.index) == list(range(20, 120, 10))

        pip = model.pip()
        assert list(pip.index) == [f"cpg{j}" for j in range(6)]
        assert ((pip >= 0) & (pip <= 1)).all().all()
        assert (pip['joint'] <= pip[['beta_m', 'alpha_a']].min(axis=1)).all()

    def test_seed_reproducible(self, mediation_data):
        runs = [BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                         C1=mediation_data['C1'], C2=mediation_data['C2'],
                         niter=80, burnin=0, thin=4, seed=17, verbose=False)
                for _ in range(2)]
        pd.testing.assert_frame_equal(runs[0].draws(), runs[1].draws())

    def test_no_sink_without_output_dir(self, mediation_data):
        model = BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                         niter=30, burnin=0, thin=10, seed=1, verbose=False)
        assert model.sink is None
        assert model.draws().shape == (3, 25)

    def test_output_file(self, mediation_data, tmp_path):
        model = BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                         niter=50, burnin=10, thin=10, seed=1, verbose=False,
                         expert={'output.dir': str(tmp_path)})
        path = os.path.join(str(tmp_path), "results_6.txt")
        assert os.path.exists(path)
        frame = read_records(path, model.mediators)
        np.testing.assert_allclose(frame.to_numpy(), model.draws().to_numpy(), rtol=1e-5, atol=1e-12)

    def test_summaries(self, mediation_data, capsys):
        model = BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                         C1=mediation_data['C1'], C2=mediation_data['C2'],
                         niter=300, burnin=100, thin=5, seed=4, verbose=False)
        table = model.summary()
        assert "Model Info" in capsys.readouterr().out
        assert list(table.columns) == ['beta_m', 'alpha_a', 'indirect', 'pi_m', 'pi_a',
                                       'pip_beta_m', 'pip_alpha_a', 'pip_joint']

        coef = model.coef()
        assert coef.shape == (6, 4)
        assert np.isfinite(coef.attrs['beta_a'])

        indirect = model.indirect_effects()
        assert list(indirect.columns) == ['mean', 'q0.025', 'q0.5', 'q0.975']
        assert (indirect['q0.025'] <= indirect['q0.975']).all()
        assert "BayesMed Model" in repr(model)

    def test_without_indicator_store(self, mediation_data):
        model = BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                         niter=30, burnin=0, seed=1, verbose=False,
                         expert={'save.indicator.store': False})
        with pytest.raises(ValueError, match="save.indicator.store"):
            model.pip()

    def test_standardize(self, mediation_data):
        model = BayesMed(mediation_data['Y'] * 10 + 5, mediation_data['A'], mediation_data['M'],
                         niter=20, burnin=0, seed=1, verbose=False, expert={'standardize': True})
        assert model.Y.mean() == pytest.approx(0.0, abs=1e-12)
        assert model.Y.std() == pytest.approx(1.0)
        np.testing.assert_allclose(model.M.std(axis=0), 1.0)

    def test_residual_checks_enabled(self, mediation_data):
        BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                 C1=mediation_data['C1'], C2=mediation_data['C2'],
                 niter=40, burnin=0, seed=2, verbose=False, expert={'check.residuals': 1})

    def test_verbose_banner(self, scenario_data, capsys):
        BayesMed(scenario_data['Y'], scenario_data['A'], scenario_data['M'],
                 niter=5, burnin=0, thin=1, seed=1, verbose=True)
        out = capsys.readouterr().out
        assert "Start estimation of Bayesian mediation model" in out
        assert "Total estimation time" in out

    def test_defaults_not_mutated(self, mediation_data):
        before = dict(DEFAULT_HYPERPARA)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            BayesMed(mediation_data['Y'], mediation_data['A'], mediation_data['M'],
                     hyperpara={'lm1': 3.0}, niter=5, burnin=0, seed=1, verbose=False)
        assert DEFAULT_HYPERPARA == before
