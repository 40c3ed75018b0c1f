"""
Over-constrained Conjugate Gradient Minimizer
=============================================

Minimizes ||A x - b||^2 for a rectangular A (m x n, usually m > n) by
running Conjugate Gradient on the normal equations:

    A^T A x = A^T b

A^T A is never formed; ``OverconstrainedMultiplier`` applies it as
A^T (A v). Consistent systems recover their exact solution, inconsistent
ones the least-squares minimizer. The CG recurrence is unchanged: only the
operator and the right-hand side it is run against differ.

Note that κ(A^T A) = κ(A)^2, so on square systems this converges more
slowly than plain CG.
"""

import numpy as np

from ..operators import OverconstrainedMultiplier
from .conjugate_gradient import ConjugateGradientSolver


class OverconstrainedCGMinimizer(ConjugateGradientSolver):
    """
    Least-squares CG minimizer (CG on the normal equations).

    Configure with an initial guess of length n and a right-hand side of
    length m, then ``learn`` with an ``OverconstrainedMultiplier`` wrapping
    the m x n matrix.
    """

    operator_type = OverconstrainedMultiplier

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.name = "Over-constrained CG"

    def _system_rhs(self, operator: OverconstrainedMultiplier) -> np.ndarray:
        return operator.transpose_multiply(self._rhs)
