"""
Numerical defaults shared by the solvers, operators and valence spreading.
"""

# =============================================================================
# SOLVER CONFIGURATION
# =============================================================================

# Stopping criterion on the squared residual norm r.r
DEFAULT_TOLERANCE = 1e-10

# Default max_iterations is this multiple of the problem dimensionality
MAX_ITERATIONS_PER_DIMENSION = 10

# CG-family solvers recompute r = b - A x from scratch every this many steps
RESIDUAL_REFRESH_INTERVAL = 50

# =============================================================================
# VALENCE SPREADING CONFIGURATION
# =============================================================================

# Trust given to elements that were never scored; keeps them from wandering
# away from zero
DEFAULT_TRUST = 0.001

# Worker threads used by MultipartiteValenceMatrix matrix-vector products
DEFAULT_NUM_THREADS = 4

# ValenceSpreader defaults
SPREADER_TOLERANCE = 1e-5
SPREADER_NUM_THREADS = 2
DEFAULT_POWER = 10
