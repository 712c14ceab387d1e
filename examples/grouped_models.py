"""
Example 3: Grouped ("Nested Data") Modeling
Synthetic neighbourhood sales with per-neighbourhood slopes

Demonstrates:
- ``nest`` — ordered ``{key, data}`` records
- ``fit_by_group`` — one model per group, threaded with ``n_jobs``
- ``tidy_groups`` / ``glance_groups`` — stacked per-group output
- ``on_error="skip"`` — leaving out groups too small to fit
- ``load_dataset`` — reading the same data back from CSV
"""

import logging
import tempfile
from pathlib import Path

import numpy as np
import pandas as pd

from resampling_models import (
    Linear,
    ModelSpec,
    fit_by_group,
    glance_groups,
    load_dataset,
    nest,
    set_n_jobs,
    tidy_groups,
)

logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

# ============================================================================
# Simulate data
# ============================================================================

rng = np.random.default_rng(5)
slopes = {"Old Town": 2.4, "Riverside": 1.6, "Hillcrest": 3.1, "Northgate": 1.9}
frames = []
for hood, slope in slopes.items():
    n = 60
    area = rng.uniform(50, 200, n)
    frames.append(
        pd.DataFrame(
            {
                "neighbourhood": hood,
                "area": area,
                "price": 30.0 + slope * area + rng.normal(0, 20, n),
            }
        )
    )
# A neighbourhood with a single sale cannot support a slope.
frames.append(pd.DataFrame({"neighbourhood": ["Lakeside"], "area": [120.0], "price": [300.0]}))
sales = pd.concat(frames, ignore_index=True)

with tempfile.TemporaryDirectory() as tmp:
    path = Path(tmp) / "sales.csv"
    sales.to_csv(path, index=False)
    sales = load_dataset(path)

# ============================================================================
# Nest and fit
# ============================================================================

groups = nest(sales, "neighbourhood")
for group in groups:
    print(f"{group.key['neighbourhood']:<10} {len(group.data):>3} rows")
print()

set_n_jobs(2)
spec = ModelSpec("price", [Linear("area")])
fits = fit_by_group(sales, "neighbourhood", spec, on_error="skip")
print(f"Fitted {len(fits)} of {len(groups)} neighbourhoods")
print()

# ============================================================================
# Stacked output
# ============================================================================

coefs = tidy_groups(fits)
print(coefs.loc[coefs["term"] == "area"].round(3).to_string(index=False))
print()
print(glance_groups(fits)[["neighbourhood", "nobs", "r_squared", "sigma"]].round(3).to_string(index=False))

set_n_jobs(None)
