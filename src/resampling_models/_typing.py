"""Shared type aliases for the resampling_models package."""

import numpy as np

# Seeds accepted wherever randomness is consumed.
RandomState = int | np.random.SeedSequence | np.random.Generator | None
