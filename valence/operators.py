"""
Matrix-Free Operators for the Iterative Solvers
===============================================

The solvers never touch a matrix directly. They are written against the
small ``Multiplier`` interface, which only knows how to apply a fixed linear
map to a vector:

    w = Op(v)

Operators:
- MatrixVectorMultiplier: w = A v for a square dense or sparse A
- DiagonalPreconditionedMultiplier: w = A v, plus the Jacobi step
  M^{-1} r = r / diag(A) used by preconditioned CG
- OverconstrainedMultiplier: w = A^T A v for a rectangular A, so that CG
  can minimize ||A x - b||^2 through the normal equations
  A^T A x = A^T b without ever forming A^T A

Reference: Shewchuk, "An Introduction to the Conjugate Gradient Method
Without the Agonizing Pain", 1994.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

import numpy as np
from scipy import sparse

from .exceptions import DimensionMismatchError

MatrixLike = Union[np.ndarray, sparse.spmatrix]


def as_vector(vector) -> np.ndarray:
    """Coerce ``vector`` into a flat float64 array (without copying if possible)."""
    if vector is None:
        raise TypeError("Expected a vector, received None")
    return np.asarray(vector, dtype=np.float64).ravel()


def as_matrix(matrix) -> MatrixLike:
    """Coerce ``matrix`` into a 2-D float64 ndarray or a CSR sparse matrix."""
    if matrix is None:
        raise TypeError("Expected a matrix, received None")
    if sparse.issparse(matrix):
        return sparse.csr_matrix(matrix, dtype=np.float64)
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2:
        raise DimensionMismatchError(
            f"Expected a 2-D matrix, received {matrix.ndim} dimension(s)",
            expected=2, actual=matrix.ndim)
    return matrix


# =============================================================================
# OPERATOR INTERFACE
# =============================================================================

class Multiplier(ABC):
    """
    A fixed linear map applied to vectors.

    Implementations must return a new vector and leave their input untouched.
    """

    @property
    @abstractmethod
    def input_dimensionality(self) -> int:
        """Number of entries accepted by ``evaluate``."""

    @property
    def output_dimensionality(self) -> int:
        """Number of entries returned by ``evaluate``."""
        return self.input_dimensionality

    @abstractmethod
    def _apply(self, vector: np.ndarray) -> np.ndarray:
        """Apply the operator to an already validated vector."""

    def evaluate(self, vector) -> np.ndarray:
        """
        Apply the operator to ``vector``.

        Parameters
        ----------
        vector : array_like
            Input of length ``input_dimensionality``

        Returns
        -------
        np.ndarray
            New vector of length ``output_dimensionality``
        """
        vector = as_vector(vector)
        self.check_input(vector)
        return self._apply(vector)

    def __call__(self, vector) -> np.ndarray:
        return self.evaluate(vector)

    def check_input(self, vector: np.ndarray):
        """Raise DimensionMismatchError if ``vector`` has the wrong length."""
        if vector.shape[0] != self.input_dimensionality:
            raise DimensionMismatchError(
                f"Operator expects vectors of length {self.input_dimensionality}, "
                f"received length {vector.shape[0]}",
                expected=self.input_dimensionality, actual=vector.shape[0])

    def can_evaluate_against(self, initial_guess, rhs) -> bool:
        """
        Whether a solver configured with ``initial_guess`` and ``rhs`` may
        run against this operator.
        """
        return (len(initial_guess) == self.input_dimensionality
                and len(rhs) == self.output_dimensionality)


class PreconditionedMultiplier(Multiplier):
    """A multiplier that also knows how to apply M^{-1} for some M ≈ A."""

    @abstractmethod
    def precondition(self, vector) -> np.ndarray:
        """Return M^{-1} vector."""


# =============================================================================
# CONCRETE OPERATORS
# =============================================================================

class MatrixVectorMultiplier(Multiplier):
    """
    Plain matrix-vector product w = A v.

    Parameters
    ----------
    matrix : np.ndarray or scipy.sparse matrix
        Square system matrix
    """

    def __init__(self, matrix: MatrixLike):
        self.matrix = as_matrix(matrix)
        n_rows, n_cols = self.matrix.shape
        if n_rows != n_cols:
            raise DimensionMismatchError(
                f"MatrixVectorMultiplier needs a square matrix, received "
                f"{n_rows} x {n_cols}", expected=n_rows, actual=n_cols)

    @property
    def input_dimensionality(self) -> int:
        return self.matrix.shape[1]

    def _apply(self, vector: np.ndarray) -> np.ndarray:
        return np.asarray(self.matrix @ vector).ravel()


class DiagonalPreconditionedMultiplier(MatrixVectorMultiplier, PreconditionedMultiplier):
    """
    Jacobi (diagonal) preconditioned multiplier.

    M = diag(A)
    M^{-1} r = r / diag(A)

    Simple and cheap, but only effective when A is diagonally dominant. For a
    diagonal A the preconditioned system is the identity and PCG finishes in
    one step.

    Parameters
    ----------
    matrix : np.ndarray or scipy.sparse matrix
        Square system matrix
    diagonal : array_like, optional
        Approximation of diag(A) to use instead of the true diagonal
    min_diagonal : float, optional
        Diagonal entries whose magnitude is below this value are replaced by
        it. Without it, a zero diagonal entry is rejected.
    """

    def __init__(self,
                 matrix: MatrixLike,
                 diagonal=None,
                 min_diagonal: Optional[float] = None):
        super().__init__(matrix)
        if diagonal is None:
            diagonal = self.matrix.diagonal()
        diagonal = np.array(as_vector(diagonal), dtype=np.float64)
        self.check_input(diagonal)

        if min_diagonal is not None:
            if min_diagonal <= 0:
                raise ValueError(f"min_diagonal must be positive, received {min_diagonal}")
            small = np.abs(diagonal) < min_diagonal
            diagonal[small] = min_diagonal
        elif np.any(diagonal == 0):
            zeros = np.flatnonzero(diagonal == 0)
            raise ValueError(
                f"Cannot precondition with a zero diagonal entry (rows {zeros.tolist()}); "
                f"pass min_diagonal to substitute a floor value")
        if not np.all(np.isfinite(diagonal)):
            raise ValueError("Preconditioner diagonal must be finite")

        self.diagonal = diagonal
        self._diag_inv = 1.0 / diagonal

    def precondition(self, vector) -> np.ndarray:
        vector = as_vector(vector)
        self.check_input(vector)
        return self._diag_inv * vector


class OverconstrainedMultiplier(Multiplier):
    """
    Normal-equation operator w = A^T (A v) for a rectangular A (m x n).

    Solving A^T A x = A^T b recovers the least-squares minimizer of
    ||A x - b||, and the exact solution whenever one exists. Both input and
    output have n entries; the right-hand side a solver is configured with
    has m entries and is mapped through ``transpose_multiply``.

    Parameters
    ----------
    matrix : np.ndarray or scipy.sparse matrix
        System matrix, usually with more rows than columns
    """

    def __init__(self, matrix: MatrixLike):
        self.matrix = as_matrix(matrix)

    @property
    def num_rows(self) -> int:
        return self.matrix.shape[0]

    @property
    def input_dimensionality(self) -> int:
        return self.matrix.shape[1]

    def _apply(self, vector: np.ndarray) -> np.ndarray:
        return np.asarray(self.matrix.T @ (self.matrix @ vector)).ravel()

    def transpose_multiply(self, rhs) -> np.ndarray:
        """Return A^T rhs for an rhs of length m."""
        rhs = as_vector(rhs)
        if rhs.shape[0] != self.num_rows:
            raise DimensionMismatchError(
                f"Right-hand side must have length {self.num_rows}, "
                f"received length {rhs.shape[0]}",
                expected=self.num_rows, actual=rhs.shape[0])
        return np.asarray(self.matrix.T @ rhs).ravel()

    def can_evaluate_against(self, initial_guess, rhs) -> bool:
        return (len(initial_guess) == self.input_dimensionality
                and len(rhs) == self.num_rows)
