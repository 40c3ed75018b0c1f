"""
Steepest Descent Solver for Linear Systems
==========================================

Solves A @ x = b using steepest descent with optimal step size.

For symmetric positive definite A, the optimal step size is:
    α = (r^T r) / (r^T A r)

where r = b - A @ x is the residual.

Reference: Shewchuk, "An Introduction to the Conjugate Gradient Method
Without the Agonizing Pain", 1994.
"""

import numpy as np

from ..config import RESIDUAL_REFRESH_INTERVAL
from ..operators import Multiplier
from .base import IterativeSolver


class SteepestDescentSolver(IterativeSolver):
    """
    Steepest Descent solver for SPD linear systems.

    Uses optimal step size for quadratic minimization.
    Convergence rate depends on condition number κ(A); when every eigenvalue
    of A is equal the first step lands on the solution.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.name = "Steepest Descent"
        self._operator = None
        self._x = None
        self._r = None

    def _initialize(self, operator: Multiplier) -> float:
        """
        Algorithm:
        1. r = b - A @ x
        2. α = (r^T r) / (r^T A r)
        3. x = x + α * r
        4. Repeat until convergence
        """
        self._operator = operator
        self._x = self._x0.copy()
        self._r = self._rhs - operator.evaluate(self._x)
        return float(np.dot(self._r, self._r))

    def _iterate(self) -> float:
        Ar = self._operator.evaluate(self._r)
        rTr = float(np.dot(self._r, self._r))
        rTAr = float(np.dot(self._r, Ar))

        if rTAr == 0.0 or not np.isfinite(rTAr):
            self._breakdown("r^T A r", rTAr)
            return rTr

        alpha = rTr / rTAr
        self._x = self._x + alpha * self._r

        # r_new = r - α * A @ r, with a periodic exact recomputation
        if self.iteration % RESIDUAL_REFRESH_INTERVAL == 0:
            self._r = self._rhs - self._operator.evaluate(self._x)
        else:
            self._r = self._r - alpha * Ar
        return float(np.dot(self._r, self._r))

    def _complete(self) -> np.ndarray:
        x = self._x
        self._operator = None
        self._r = None
        return x
