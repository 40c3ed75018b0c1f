"""Shared fixtures: small SPD systems with known solver behaviour."""
import numpy as np
import pytest
from scipy import sparse


def diagonal_matrix(values):
    return sparse.diags(np.asarray(values, dtype=np.float64), format="csr")


@pytest.fixture
def rhs():
    return np.arange(1.0, 6.0)


@pytest.fixture
def zeros():
    return np.zeros(5)


@pytest.fixture
def uniform_diagonal():
    """2 I: every solver lands on b / 2 in a single step."""
    return diagonal_matrix([2.0] * 5)


@pytest.fixture
def three_value_diagonal():
    """Three distinct eigenvalues: CG needs three steps, Jacobi PCG one."""
    return diagonal_matrix([1.0, 2.0, 2.0, 2.0, 3.0])


@pytest.fixture
def finite_difference():
    """1-D finite-difference Laplacian: 2 on the diagonal, -1 beside it."""
    n = 5
    return sparse.diags([-np.ones(n - 1), 2 * np.ones(n), -np.ones(n - 1)],
                        [-1, 0, 1], format="csr")


@pytest.fixture
def overconstrained_matrix():
    """6 x 5: the identity plus a row tying the first and last unknowns."""
    m = np.zeros((6, 5))
    for i in range(5):
        m[i, i] = 1.0
    m[5, 0] = 1.0
    m[5, 4] = 1.0
    return m
