"""
Preconditioned Conjugate Gradient Solver for Linear Systems
==========================================================

Solves A @ x = b using Preconditioned Conjugate Gradient (PCG).

Preconditioning transforms the system to:
    M^{-1} A x = M^{-1} b

where M ≈ A is easy to invert. The effective condition number becomes
κ(M^{-1} A) << κ(A), accelerating convergence. M is supplied by the
operator (see ``DiagonalPreconditionedMultiplier``).

Reference: Shewchuk, "An Introduction to the Conjugate Gradient Method
Without the Agonizing Pain", 1994.
"""

import numpy as np

from ..config import RESIDUAL_REFRESH_INTERVAL
from ..operators import PreconditionedMultiplier
from .base import IterativeSolver


class PreconditionedCGSolver(IterativeSolver):
    """
    Preconditioned Conjugate Gradient solver for SPD linear systems.

    Key properties:
    - Reduces effective condition number via preconditioning
    - Maintains CG optimality in transformed space
    - An exact diagonal preconditioner solves a diagonal system in one step
    """

    operator_type = PreconditionedMultiplier

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.name = "Preconditioned CG"
        self._operator = None
        self._x = None
        self._r = None
        self._d = None
        self._rTz = 0.0

    def _initialize(self, operator: PreconditionedMultiplier) -> float:
        """
        Algorithm (with preconditioner M):
        1. r = b - A @ x
        2. z = M^{-1} @ r
        3. d = z
        4. For each iteration:
           a. α = (r^T z) / (d^T A d)
           b. x = x + α * d
           c. r_new = r - α * A @ d
           d. z_new = M^{-1} @ r_new
           e. β = (r_new^T z_new) / (r^T z)
           f. d = z_new + β * d
        """
        self._operator = operator
        self._x = self._x0.copy()
        self._r = self._rhs - operator.evaluate(self._x)
        z = operator.precondition(self._r)
        self._d = z.copy()
        self._rTz = float(np.dot(self._r, z))
        return float(np.dot(self._r, self._r))

    def _iterate(self) -> float:
        Ad = self._operator.evaluate(self._d)
        dTAd = float(np.dot(self._d, Ad))

        if self._rTz == 0.0:
            self._breakdown("r^T M^{-1} r", self._rTz)
            return float(np.dot(self._r, self._r))
        if dTAd == 0.0 or not np.isfinite(dTAd):
            self._breakdown("d^T A d", dTAd)
            return float(np.dot(self._r, self._r))

        alpha = self._rTz / dTAd
        self._x = self._x + alpha * self._d

        if self.iteration % RESIDUAL_REFRESH_INTERVAL == 0:
            self._r = self._rhs - self._operator.evaluate(self._x)
        else:
            self._r = self._r - alpha * Ad
        rTr = float(np.dot(self._r, self._r))

        # Apply preconditioner to new residual
        z = self._operator.precondition(self._r)
        rTz_new = float(np.dot(self._r, z))
        self._d = z + (rTz_new / self._rTz) * self._d
        self._rTz = rTz_new
        return rTr

    def _complete(self) -> np.ndarray:
        x = self._x
        self._operator = None
        self._r = None
        self._d = None
        return x
