"""
Conjugate Gradient Solver for Linear Systems
============================================

Solves A @ x = b using the Conjugate Gradient method.

For symmetric positive definite A, CG converges in at most n iterations
(in exact arithmetic), and more precisely in at most as many iterations as
A has distinct eigenvalues.

The method generates A-conjugate search directions that span the Krylov subspace:
    K_k(A, r_0) = span{r_0, A r_0, A^2 r_0, ..., A^{k-1} r_0}

Reference: Shewchuk, "An Introduction to the Conjugate Gradient Method
Without the Agonizing Pain", 1994.
"""

import numpy as np

from ..config import RESIDUAL_REFRESH_INTERVAL
from ..operators import Multiplier
from .base import IterativeSolver


class ConjugateGradientSolver(IterativeSolver):
    """
    Conjugate Gradient solver for SPD linear systems.

    Key properties:
    - Generates A-conjugate search directions
    - Optimal in Krylov subspace at each iteration
    - Convergence in at most k iterations for k distinct eigenvalues
    - Convergence rate: O(sqrt(κ(A))) vs O(κ(A)) for steepest descent
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.name = "Conjugate Gradient"
        self._operator = None
        self._b = None
        self._x = None
        self._r = None
        self._d = None
        self._delta = 0.0

    def _initialize(self, operator: Multiplier) -> float:
        """
        Algorithm:
        1. r = b - A @ x
        2. d = r (initial search direction)
        3. For each iteration:
           a. α = (r^T r) / (d^T A d)
           b. x = x + α * d
           c. r_new = r - α * A @ d
           d. β = (r_new^T r_new) / (r^T r)
           e. d = r_new + β * d
        """
        self._operator = operator
        self._b = self._system_rhs(operator)
        self._x = self._x0.copy()
        self._r = self._b - operator.evaluate(self._x)
        self._d = self._r.copy()
        self._delta = float(np.dot(self._r, self._r))
        return self._delta

    def _system_rhs(self, operator: Multiplier) -> np.ndarray:
        """Right-hand side of the square system the recurrence runs on."""
        return self._rhs

    def _iterate(self) -> float:
        Ad = self._operator.evaluate(self._d)
        dTAd = float(np.dot(self._d, Ad))

        # Guard against division by zero
        if dTAd == 0.0 or not np.isfinite(dTAd):
            self._breakdown("d^T A d", dTAd)
            return self._delta

        alpha = self._delta / dTAd
        self._x = self._x + alpha * self._d

        # r_new = r - α * A @ d, with a periodic exact recomputation
        if self.iteration % RESIDUAL_REFRESH_INTERVAL == 0:
            self._r = self._b - self._operator.evaluate(self._x)
        else:
            self._r = self._r - alpha * Ad

        delta_old = self._delta
        self._delta = float(np.dot(self._r, self._r))
        beta = self._delta / delta_old
        self._d = self._r + beta * self._d
        return self._delta

    def _complete(self) -> np.ndarray:
        x = self._x
        self._operator = None
        self._b = None
        self._r = None
        self._d = None
        return x
