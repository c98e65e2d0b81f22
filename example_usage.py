"""
pyBayesMed usage examples
=========================

This script walks through the main features of the pyBayesMed package.
"""

import os
import tempfile

import numpy as np
import pandas as pd
from pyBayesMed import BayesMed, ModelState, DEFAULT_HYPERPARA, iterate, read_records

# =============================================================================
# Example 1: Data
# =============================================================================

print("=" * 80)
print("Example 1: Data")
print("=" * 80)

rng = np.random.default_rng(42)

n = 200   # observations
q = 20    # candidate mediators

# Exposure and covariates
A = pd.Series(rng.normal(size=n), name='exposure')
C1 = pd.DataFrame({'age': rng.normal(size=n), 'sex': rng.integers(0, 2, size=n) * 2.0 - 1.0})
C2 = C1.copy()

# Two true mediators: cpg0 (alpha=0.8, beta=0.6) and cpg1 (alpha=0.5, beta=-0.7)
alpha_a = np.zeros(q)
alpha_a[[0, 1, 5]] = [0.8, 0.5, 0.6]
beta_m = np.zeros(q)
beta_m[[0, 1, 7]] = [0.6, -0.7, 0.5]

M = pd.DataFrame(np.outer(A, alpha_a) + rng.normal(size=(n, q)),
                 columns=[f"cpg{j}" for j in range(q)])
Y = pd.Series(0.3 * A + M.to_numpy() @ beta_m + 0.2 * C1['age'] + rng.normal(size=n), name='outcome')

print(f"Observations: {n}")
print(f"Candidate mediators: {q}")
print("\nMediator sample:")
print(M.iloc[:5, :5])

# =============================================================================
# Example 2: Hyperparameters
# =============================================================================

print("\n" + "=" * 80)
print("Example 2: Hyperparameters")
print("=" * 80)

# Gamma priors (shape k*, rate l*) on the inverse variances
print(DEFAULT_HYPERPARA)

# Wider slab for beta_m
hyperpara = {'km1': 2.0, 'lm1': 1.0}

# =============================================================================
# Example 3: Estimation
# =============================================================================

print("\n" + "=" * 80)
print("Example 3: Estimation")
print("=" * 80)

model = BayesMed(
    Y=Y,
    A=A,
    M=M,
    C1=C1,
    C2=C2,
    niter=6000,
    burnin=2000,
    thin=10,
    hyperpara=hyperpara,
    expert={'print.every': 2000},
    seed=1
)

print(model)

# =============================================================================
# Example 4: Results
# =============================================================================

print("\n" + "=" * 80)
print("Example 4: Results")
print("=" * 80)

table = model.summary()

# Posterior inclusion probabilities; 'joint' marks active mediators
pip = model.pip()
print("\nMediators with joint inclusion probability above 0.5:")
print(pip[pip['joint'] > 0.5])

print("\nIndirect effects:")
print(model.indirect_effects().round(3).head(8))

print("\nPosterior median of the coefficients:")
coef = model.coef()
print(coef.head(8))
print(f"beta_a: {coef.attrs['beta_a']:.4f}")

# =============================================================================
# Example 5: Output file
# =============================================================================

print("\n" + "=" * 80)
print("Example 5: Output file")
print("=" * 80)

outdir = tempfile.mkdtemp()
model_file = BayesMed(Y, A, M, C1=C1, C2=C2, niter=2000, burnin=1000,
                      expert={'output.dir': outdir}, seed=2, verbose=False)

path = os.path.join(outdir, f"results_{q}.txt")
records = read_records(path, model_file.mediators)
print(f"{len(records)} records written to {path}")
print(records.iloc[:3, :8])

# =============================================================================
# Example 6: Step-by-step sampling
# =============================================================================

print("\n" + "=" * 80)
print("Example 6: Step-by-step sampling")
print("=" * 80)

# Run the sampler by hand, e.g. to monitor a quantity between iterations
step_rng = np.random.default_rng(3)
state = ModelState(Y.to_numpy(), A.to_numpy(), M.to_numpy(), C1.to_numpy(), C2.to_numpy(),
                   dict(DEFAULT_HYPERPARA), step_rng)

for it in range(500):
    iterate(state, step_rng, it, burnin=400, thin=50)
    if it % 100 == 0:
        print(f"Iteration {it}: sigma_e={state.sigma_e:.3f}, "
              f"included beta_m={int(state.r1.sum())}, included alpha_a={int(state.r3.sum())}")

print(state)

print("\n" + "=" * 80)
print("Examples finished")
print("=" * 80)
