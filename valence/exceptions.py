"""
Exceptions raised by the valence package.
"""


class ValenceError(Exception):
    """Base class for errors raised by this package."""


class DimensionMismatchError(ValenceError, ValueError):
    """
    A vector or index does not fit the dimensionality it is used against.

    Subclasses ValueError so callers treating every bad argument alike can
    keep catching ValueError.
    """

    def __init__(self, message: str, expected=None, actual=None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual
