"""
Default settings for fitting, selection and prediction.

pymixed keeps no mutable global configuration. Every tunable is an explicit
keyword argument whose default is one of the constants below, so a call
site always shows (or inherits from here) the exact settings it ran with.
"""

# Interval simulation
DEFAULT_N_SIMS = 1000
DEFAULT_LEVEL = 0.95

# Models whose criterion differs from the best by less than this many
# deviance units are reported as indistinguishable from it.
INDISTINGUISHABLE_THRESHOLD = 2.0

# Random-intercept SD relative to the residual SD (gaussian) or on the
# link scale (poisson) below which a fit is flagged as singular.
SINGULAR_TOLERANCE = 1e-4

# Maximum likelihood optimizer
OPTIMIZER_TOL = 1e-10
OPTIMIZER_MAX_ITER = 500
THETA_START = 1.0

# PIRLS inner loop (poisson family)
PIRLS_TOL = 1e-10
PIRLS_MAX_ITER = 50

# Bayesian sampler
DEFAULT_DRAWS = 1000
DEFAULT_TUNE = 1000
DEFAULT_CHAINS = 2
DEFAULT_TARGET_ACCEPT = 0.9
DEFAULT_PRIOR_SCALE = 2.5
DEFAULT_SEED = 0
RHAT_THRESHOLD = 1.01
