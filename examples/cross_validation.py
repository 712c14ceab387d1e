"""
Example 2: Choosing Between Non-Nested Models by Cross-Validation
Synthetic curved signal ``y = 1 − 10(x − 0.3)² + noise``

Demonstrates:
- ``Linear`` / ``Smooth`` / ``Changepoint`` terms
- ``cross_validate`` — Monte-Carlo cross-validation (100 random 80/20
  splits) with RMSE and MAE
- ``compare_errors`` — per-split errors side by side
- Lower-level building blocks: ``repeat_resample`` → ``fit_all`` →
  ``score_all`` → ``aggregate`` → ``summarize_errors``
"""

import numpy as np
import pandas as pd

from resampling_models import (
    Changepoint,
    Linear,
    ModelSpec,
    Smooth,
    aggregate,
    compare_errors,
    cross_validate,
    fit_all,
    repeat_resample,
    score_all,
    summarize_errors,
)

# ============================================================================
# Simulate data
# ============================================================================

rng = np.random.default_rng(11)
n = 200
x = rng.uniform(0, 1, n)
data = pd.DataFrame({"x": x, "y": 1.0 - 10.0 * (x - 0.3) ** 2 + rng.normal(0, 0.3, n)})

candidates = {
    "linear": ModelSpec("y", [Linear("x")]),
    "smooth": ModelSpec("y", [Smooth("x", df=4)], family="additive"),
    "wiggly": ModelSpec("y", [Smooth("x", df=30)], family="additive"),
    "changepoint": ModelSpec("y", [Linear("x"), Changepoint("x", 0.3)]),
}

# ============================================================================
# One call
# ============================================================================

result = cross_validate(data, candidates, n_repetitions=100, random_state=3)
print(f"Held-out {result.metric.upper()} over {result.n_repetitions} splits")
print(result.summary.round(4).to_string(index=False))
print(f"Lowest mean error: {result.best_model}")
print()

wide = compare_errors(result)
print("First five splits")
print(wide.head().round(4).to_string())
print()

mae = cross_validate(data, candidates, n_repetitions=100, metric="mae", random_state=3)
print("Held-out MAE")
print(mae.summary.round(4).to_string(index=False))
print()

# ============================================================================
# Step by step
# ============================================================================

splits = repeat_resample(data, 50, mode="split", train_fraction=0.8, random_state=3)
train_sets = [split.train for split in splits]
test_sets = [split.test for split in splits]

errors = []
for name, spec in candidates.items():
    fits = fit_all(train_sets, spec, candidate=name)
    scores = score_all(fits, test_sets, candidate=name)
    records = (
        (i, None if score is None else {name: score})
        for i, score in enumerate(scores, start=1)
    )
    errors.append(aggregate(records, key_name="model", value_name="rmse"))

table = pd.concat(errors, ignore_index=True)
print("Manual loop, 50 splits")
print(summarize_errors(table).round(4).to_string(index=False))
