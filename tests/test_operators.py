"""Tests for the matrix-free operators."""
import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal
from scipy import sparse

from valence import (
    DiagonalPreconditionedMultiplier,
    DimensionMismatchError,
    MatrixVectorMultiplier,
    OverconstrainedMultiplier,
    ValenceError,
)


class TestMatrixVectorMultiplier:

    @pytest.mark.parametrize("to_matrix", [np.asarray, sparse.csr_matrix])
    def test_evaluate(self, to_matrix):
        A = np.array([[4.0, 1.0], [1.0, 3.0]])
        operator = MatrixVectorMultiplier(to_matrix(A))
        v = np.array([1.0, 2.0])

        assert operator.input_dimensionality == 2
        assert operator.output_dimensionality == 2
        assert_allclose(operator.evaluate(v), A @ v)
        assert_allclose(operator(v), A @ v)

    def test_input_untouched(self, finite_difference):
        operator = MatrixVectorMultiplier(finite_difference)
        v = np.arange(5.0)
        operator.evaluate(v)
        assert_array_equal(v, np.arange(5.0))

    def test_accepts_lists(self):
        operator = MatrixVectorMultiplier([[1.0, 0.0], [0.0, 2.0]])
        assert_allclose(operator.evaluate([1, 1]), [1.0, 2.0])

    def test_wrong_length(self, finite_difference):
        operator = MatrixVectorMultiplier(finite_difference)
        with pytest.raises(DimensionMismatchError) as excinfo:
            operator.evaluate(np.ones(4))
        assert excinfo.value.expected == 5
        assert excinfo.value.actual == 4

    def test_non_square(self):
        with pytest.raises(DimensionMismatchError):
            MatrixVectorMultiplier(np.ones((3, 2)))

    def test_not_a_matrix(self):
        with pytest.raises(DimensionMismatchError):
            MatrixVectorMultiplier(np.ones(3))
        with pytest.raises(TypeError):
            MatrixVectorMultiplier(None)

    def test_none_vector(self, finite_difference):
        with pytest.raises(TypeError):
            MatrixVectorMultiplier(finite_difference).evaluate(None)

    def test_can_evaluate_against(self, finite_difference):
        operator = MatrixVectorMultiplier(finite_difference)
        assert operator.can_evaluate_against(np.zeros(5), np.ones(5))
        assert not operator.can_evaluate_against(np.zeros(3), np.ones(5))
        assert not operator.can_evaluate_against(np.zeros(5), np.ones(3))


class TestDiagonalPreconditionedMultiplier:

    def test_precondition_divides_by_diagonal(self, three_value_diagonal):
        operator = DiagonalPreconditionedMultiplier(three_value_diagonal)
        r = np.array([1.0, 2.0, 4.0, 6.0, 3.0])

        assert_allclose(operator.diagonal, [1.0, 2.0, 2.0, 2.0, 3.0])
        assert_allclose(operator.precondition(r), [1.0, 1.0, 2.0, 3.0, 1.0])
        assert_allclose(operator.evaluate(r), three_value_diagonal @ r)

    def test_explicit_diagonal(self, finite_difference):
        operator = DiagonalPreconditionedMultiplier(finite_difference, diagonal=np.full(5, 4.0))
        assert_allclose(operator.precondition(np.ones(5)), np.full(5, 0.25))

    def test_zero_diagonal_rejected(self):
        A = np.array([[0.0, 1.0], [1.0, 2.0]])
        with pytest.raises(ValueError, match="min_diagonal"):
            DiagonalPreconditionedMultiplier(A)

    def test_min_diagonal_floor(self):
        A = np.array([[0.0, 1.0], [1.0, 2.0]])
        operator = DiagonalPreconditionedMultiplier(A, min_diagonal=0.5)
        assert_allclose(operator.diagonal, [0.5, 2.0])
        assert_allclose(operator.precondition([1.0, 1.0]), [2.0, 0.5])

    def test_min_diagonal_must_be_positive(self, finite_difference):
        with pytest.raises(ValueError):
            DiagonalPreconditionedMultiplier(finite_difference, min_diagonal=0.0)

    def test_diagonal_length(self, finite_difference):
        with pytest.raises(DimensionMismatchError):
            DiagonalPreconditionedMultiplier(finite_difference, diagonal=np.ones(3))


class TestOverconstrainedMultiplier:

    @pytest.mark.parametrize("to_matrix", [np.asarray, sparse.csr_matrix])
    def test_normal_equation_product(self, to_matrix, overconstrained_matrix):
        operator = OverconstrainedMultiplier(to_matrix(overconstrained_matrix))
        v = np.array([1.0, -2.0, 0.5, 3.0, 1.5])

        assert operator.num_rows == 6
        assert operator.input_dimensionality == 5
        assert operator.output_dimensionality == 5
        assert_allclose(operator.evaluate(v),
                        overconstrained_matrix.T @ (overconstrained_matrix @ v))

    def test_transpose_multiply(self, overconstrained_matrix):
        operator = OverconstrainedMultiplier(overconstrained_matrix)
        b = np.arange(1.0, 7.0)
        assert_allclose(operator.transpose_multiply(b), overconstrained_matrix.T @ b)
        with pytest.raises(DimensionMismatchError):
            operator.transpose_multiply(np.ones(5))

    def test_can_evaluate_against(self, overconstrained_matrix):
        operator = OverconstrainedMultiplier(overconstrained_matrix)
        assert operator.can_evaluate_against(np.zeros(5), np.ones(6))
        assert not operator.can_evaluate_against(np.zeros(5), np.ones(5))
        assert not operator.can_evaluate_against(np.zeros(6), np.ones(6))


def test_dimension_mismatch_is_value_error():
    error = DimensionMismatchError("bad", expected=2, actual=3)
    assert isinstance(error, ValueError)
    assert isinstance(error, ValenceError)
