"""
Numerical Diagnostics for Iterative Solvers
============================================

Evaluates numerical solution quality of the iterative solvers against a
direct-solver reference.

Metrics Computed:
    1. Relative Residual Norm: ||b - Ax|| / ||b||
    2. A-norm Error: ||x - x*||_A = sqrt((x-x*)^T A (x-x*))
       where x* is a high-precision reference solution
    3. Iterations, terminal status and wall-clock runtime per solve
    4. Per-iteration residual norms and timings (``IterationRecorder``)
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import sparse
from scipy.linalg import solve as direct_solve
from scipy.sparse.linalg import spsolve

from .config import DEFAULT_TOLERANCE
from .operators import (
    DiagonalPreconditionedMultiplier,
    MatrixLike,
    MatrixVectorMultiplier,
    OverconstrainedMultiplier,
    as_matrix,
    as_vector,
)
from .solvers import (
    ConjugateGradientSolver,
    IterationListener,
    IterativeSolver,
    OverconstrainedCGMinimizer,
    PreconditionedCGSolver,
    SteepestDescentSolver,
)

logger = logging.getLogger(__name__)


# =============================================================================
# REFERENCE QUANTITIES
# =============================================================================

def compute_reference_solution(A: MatrixLike, b: np.ndarray, assume_spd: bool = True) -> np.ndarray:
    """
    Compute high-precision reference solution using a direct solver.

    Dense matrices go through scipy's LAPACK-backed solve (Cholesky when
    ``assume_spd``, LU otherwise), sparse ones through a sparse LU.
    """
    b = as_vector(b)
    if sparse.issparse(A):
        return np.asarray(spsolve(sparse.csc_matrix(A), b)).ravel()
    return direct_solve(np.asarray(A, dtype=np.float64), b,
                        assume_a='pos' if assume_spd else 'gen')


def compute_a_norm_error(x: np.ndarray, x_ref: np.ndarray, A: MatrixLike) -> float:
    """
    Compute A-norm error: ||x - x*||_A = sqrt((x-x*)^T A (x-x*))

    The A-norm is the natural norm for the quadratic minimization problem.
    """
    diff = as_vector(x) - as_vector(x_ref)
    return float(np.sqrt(np.abs(diff @ (A @ diff))))


def verify_spd(A: MatrixLike, tol: float = 1e-10) -> Tuple[bool, float]:
    """
    Verify that matrix A is symmetric positive definite.

    Parameters
    ----------
    A : np.ndarray or scipy.sparse matrix
        Matrix to verify (sparse input is densified)
    tol : float
        Tolerance for symmetry check

    Returns
    -------
    tuple
        (is_spd, min_eigenvalue)
    """
    if sparse.issparse(A):
        A = A.toarray()
    A = np.asarray(A, dtype=np.float64)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        return False, 0.0

    # Check symmetry
    if not np.allclose(A, A.T, atol=tol):
        return False, 0.0

    # Check positive definiteness
    eigenvalues = np.linalg.eigvalsh(A)
    min_eig = float(eigenvalues.min())

    return min_eig > 0, min_eig


# =============================================================================
# PER-ITERATION RECORDING
# =============================================================================

class IterationRecorder(IterationListener):
    """
    Listener recording the residual norm and elapsed time of every step.

    Records restart at each ``algorithm_started``.
    """

    def __init__(self):
        self.records: List[dict] = []
        self._start = 0.0

    def algorithm_started(self, solver):
        self.records = []
        self._start = time.perf_counter()

    def step_ended(self, solver):
        self.records.append({
            'solver': solver.name,
            'iteration': solver.iteration,
            'residual_norm': solver.control.residual_history[-1],
            'elapsed_time': time.perf_counter() - self._start,
        })

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.records,
                            columns=['solver', 'iteration', 'residual_norm', 'elapsed_time'])


# =============================================================================
# DATA CLASSES FOR DIAGNOSTICS
# =============================================================================

@dataclass
class SolverDiagnostics:
    """Container for detailed numerical diagnostics of a single solve."""
    solver_name: str

    # Convergence metrics
    status: str
    converged: bool
    iterations: int
    wall_clock_time: float

    # Residual metrics
    initial_residual_norm: float
    final_residual_norm: float
    relative_residual: float
    residual_history: List[float] = field(default_factory=list)

    # Error metrics (relative to reference solution)
    a_norm_error: Optional[float] = None
    two_norm_error: Optional[float] = None
    relative_solution_error: Optional[float] = None

    def to_record(self) -> Dict[str, object]:
        return {
            'solver': self.solver_name,
            'status': self.status,
            'converged': self.converged,
            'iterations': self.iterations,
            'wall_clock_time_ms': self.wall_clock_time * 1000,
            'initial_residual_norm': self.initial_residual_norm,
            'final_residual_norm': self.final_residual_norm,
            'relative_residual': self.relative_residual,
            'a_norm_error': self.a_norm_error,
            'two_norm_error': self.two_norm_error,
            'relative_solution_error': self.relative_solution_error,
        }


def diagnose_solver(solver: IterativeSolver,
                    operator,
                    A: MatrixLike,
                    x_ref: Optional[np.ndarray] = None) -> SolverDiagnostics:
    """
    Run ``solver`` against ``operator`` and measure the solution it returns.

    Parameters
    ----------
    solver : IterativeSolver
        Configured solver
    operator : Multiplier
        Operator to pass to ``solver.learn``
    A : np.ndarray or scipy.sparse matrix
        Explicit matrix of the original system A x = b, used for the final
        residual and the A-norm error
    x_ref : np.ndarray, optional
        Reference solution; error metrics are left as None without it
    """
    start_time = time.perf_counter()
    x = solver.learn(operator).output
    elapsed_time = time.perf_counter() - start_time

    b = solver.rhs
    final_residual_norm = float(np.linalg.norm(b - A @ x))
    b_norm = float(np.linalg.norm(b))
    history = solver.residual_history

    diagnostics = SolverDiagnostics(
        solver_name=solver.name,
        status=solver.status.value,
        converged=solver.is_result_valid(),
        iterations=solver.iteration,
        wall_clock_time=elapsed_time,
        initial_residual_norm=history[0],
        final_residual_norm=final_residual_norm,
        relative_residual=final_residual_norm / b_norm if b_norm > 0 else final_residual_norm,
        residual_history=history,
    )
    if x_ref is not None and A.shape[0] == A.shape[1]:
        diagnostics.a_norm_error = compute_a_norm_error(x, x_ref, A)
        diagnostics.two_norm_error = float(np.linalg.norm(x - x_ref))
        ref_norm = float(np.linalg.norm(x_ref))
        if ref_norm > 0:
            diagnostics.relative_solution_error = diagnostics.two_norm_error / ref_norm
    return diagnostics


# =============================================================================
# SOLVER COMPARISON
# =============================================================================

def compare_solvers(A: MatrixLike,
                    b,
                    x0=None,
                    tolerance: float = DEFAULT_TOLERANCE,
                    max_iterations: Optional[int] = None,
                    verbose: bool = False) -> pd.DataFrame:
    """
    Run every solver on the SPD system A x = b and tabulate the diagnostics.

    Parameters
    ----------
    A : np.ndarray or scipy.sparse matrix
        Symmetric positive definite system matrix
    b : array_like
        Right-hand side vector
    x0 : array_like, optional
        Initial guess shared by all solvers. If None, uses zero vector.
    tolerance, max_iterations
        Convergence parameters shared by all solvers

    Returns
    -------
    pd.DataFrame
        One row per solver, see ``SolverDiagnostics.to_record``
    """
    A = as_matrix(A)
    b = as_vector(b)
    x0 = np.zeros(A.shape[1]) if x0 is None else as_vector(x0)

    is_spd, min_eig = verify_spd(A)
    if not is_spd:
        logger.warning("System matrix is not SPD (min eigenvalue %.3e); "
                       "CG-family results are unreliable", min_eig)
    x_ref = compute_reference_solution(A, b, assume_spd=is_spd)

    runs = [
        (SteepestDescentSolver, MatrixVectorMultiplier(A)),
        (ConjugateGradientSolver, MatrixVectorMultiplier(A)),
        (PreconditionedCGSolver, DiagonalPreconditionedMultiplier(A)),
        (OverconstrainedCGMinimizer, OverconstrainedMultiplier(A)),
    ]
    records = []
    for solver_cls, operator in runs:
        solver = solver_cls(x0, b, tolerance=tolerance,
                            max_iterations=max_iterations, verbose=verbose)
        diag = diagnose_solver(solver, operator, A, x_ref)
        logger.info("%-22s: %4d iters, ||r||/||b|| = %.2e, ||x-x*||_A = %.2e [%s]",
                    diag.solver_name, diag.iterations, diag.relative_residual,
                    diag.a_norm_error, diag.status)
        records.append(diag.to_record())
    return pd.DataFrame(records)
