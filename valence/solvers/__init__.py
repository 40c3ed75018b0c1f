"""
Iterative Matrix-Free Solvers
=============================

This package contains implementations of iterative methods for solving
the linear system

    A x = b

where A is only available through a ``Multiplier`` operator.

Solvers:
- Steepest Descent (SD)
- Conjugate Gradient (CG)
- Preconditioned Conjugate Gradient (PCG)
- Over-constrained Conjugate Gradient (least squares via normal equations)
"""

from .base import (
    InputOutputPair,
    IterationControl,
    IterationListener,
    IterativeSolver,
    SolverStatus,
)
from .steepest_descent import SteepestDescentSolver
from .conjugate_gradient import ConjugateGradientSolver
from .preconditioned_cg import PreconditionedCGSolver
from .overconstrained_cg import OverconstrainedCGMinimizer

__all__ = [
    'InputOutputPair',
    'IterationControl',
    'IterationListener',
    'IterativeSolver',
    'SolverStatus',
    'SteepestDescentSolver',
    'ConjugateGradientSolver',
    'PreconditionedCGSolver',
    'OverconstrainedCGMinimizer',
]
