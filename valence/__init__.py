"""
Valence
=======

Matrix-free iterative solvers and semi-supervised valence spreading.

Quick start:
    from valence import ConjugateGradientSolver, MatrixVectorMultiplier

    solver = ConjugateGradientSolver(np.zeros(n), b)
    x = solver.learn(MatrixVectorMultiplier(A)).output

    from valence import ValenceSpreader

    spreader = ValenceSpreader()
    spreader.add_document_term_occurrences(doc_id, terms)
    spreader.add_weighted_term("good", 1.0)
    result = spreader.spread_valence()
"""

import logging

from .exceptions import DimensionMismatchError, ValenceError
from .operators import (
    DiagonalPreconditionedMultiplier,
    MatrixVectorMultiplier,
    Multiplier,
    OverconstrainedMultiplier,
    PreconditionedMultiplier,
)
from .solvers import (
    ConjugateGradientSolver,
    InputOutputPair,
    IterationControl,
    IterationListener,
    IterativeSolver,
    OverconstrainedCGMinimizer,
    PreconditionedCGSolver,
    SolverStatus,
    SteepestDescentSolver,
)
from .multipartite import MultipartiteValenceMatrix
from .spreader import ValenceResult, ValenceSpreader

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'ValenceError',
    'DimensionMismatchError',
    'Multiplier',
    'PreconditionedMultiplier',
    'MatrixVectorMultiplier',
    'DiagonalPreconditionedMultiplier',
    'OverconstrainedMultiplier',
    'InputOutputPair',
    'IterationControl',
    'IterationListener',
    'IterativeSolver',
    'SolverStatus',
    'SteepestDescentSolver',
    'ConjugateGradientSolver',
    'PreconditionedCGSolver',
    'OverconstrainedCGMinimizer',
    'MultipartiteValenceMatrix',
    'ValenceSpreader',
    'ValenceResult',
]
