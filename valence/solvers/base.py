"""
Base class and iteration control for iterative solvers.
"""

import enum
import logging
from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional

import numpy as np

from ..config import DEFAULT_TOLERANCE, MAX_ITERATIONS_PER_DIMENSION
from ..exceptions import DimensionMismatchError
from ..operators import Multiplier, as_vector

logger = logging.getLogger(__name__)


class InputOutputPair(NamedTuple):
    """The initial guess a solve started from and the iterate it produced."""
    input: np.ndarray
    output: np.ndarray


class SolverStatus(enum.Enum):
    NOT_STARTED = "not_started"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    STOPPED = "stopped"
    BREAKDOWN = "breakdown"
    # The operator or a listener raised; the run was abandoned
    FAILED = "failed"


class IterationListener:
    """
    Observer of a solver's progress.

    Every hook receives the solver. Any hook may call ``solver.stop()``; the
    solver finishes the step in progress and returns.
    """

    def algorithm_started(self, solver):
        pass

    def step_started(self, solver):
        pass

    def step_ended(self, solver):
        pass

    def algorithm_ended(self, solver):
        pass


# =============================================================================
# ITERATION CONTROL
# =============================================================================

class IterationControl:
    """
    Iteration bookkeeping shared by every solver: tolerance, iteration budget,
    listeners, stop requests and the terminal status of the last run.

    Parameters
    ----------
    tolerance : float
        Stopping criterion on the solver's residual metric (must be >= 0)
    max_iterations : int
        Maximum number of iterations before termination (must be > 0)
    """

    def __init__(self, tolerance: float, max_iterations: int):
        self._tolerance = None
        self._max_iterations = None
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.listeners: List[IterationListener] = []
        self.iteration = 0
        self.stop_requested = False
        self.broken_down = False
        self.status = SolverStatus.NOT_STARTED
        self.residual_history: List[float] = []

    @property
    def tolerance(self) -> float:
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float):
        if value is None:
            raise TypeError("Tolerance must not be None")
        if not value >= 0:
            raise ValueError(f"Tolerance must be non-negative, received {value}")
        self._tolerance = float(value)

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int):
        if value is None:
            raise TypeError("Max iterations must not be None")
        if value <= 0:
            raise ValueError(f"Max iterations must be positive, received {value}")
        self._max_iterations = int(value)

    def add_listener(self, listener: IterationListener):
        if listener is None:
            raise TypeError("Listener must not be None")
        if listener not in self.listeners:
            self.listeners.append(listener)

    def remove_listener(self, listener: IterationListener):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def begin(self):
        self.iteration = 0
        self.stop_requested = False
        self.broken_down = False
        self.status = SolverStatus.ITERATING
        self.residual_history = []

    def is_converged(self, residual: float) -> bool:
        return residual <= self._tolerance

    def should_continue(self, residual: float) -> bool:
        return (not self.is_converged(residual)
                and not self.stop_requested
                and not self.broken_down
                and self.iteration < self._max_iterations)

    def finish(self, residual: float):
        """Record the terminal status of the run that just ended."""
        if self.is_converged(residual):
            self.status = SolverStatus.CONVERGED
        elif self.broken_down:
            self.status = SolverStatus.BREAKDOWN
        elif self.stop_requested:
            self.status = SolverStatus.STOPPED
        else:
            self.status = SolverStatus.MAX_ITERATIONS_REACHED

    def notify(self, event: str, solver):
        # Copy so listeners may unregister themselves from inside a hook
        for listener in list(self.listeners):
            getattr(listener, event)(solver)


# =============================================================================
# SOLVER BASE
# =============================================================================

class IterativeSolver(ABC):
    """
    Abstract base class for iterative linear system solvers.

    Solves: A @ x = b

    ``x0`` and ``b`` are fixed at construction; A is supplied to ``learn`` as
    a ``Multiplier``. All solvers share an identical interface so they can be
    swapped by changing the operator and the class only.
    """

    # Kind of operator a solver accepts in ``learn``
    operator_type = Multiplier

    def __init__(self,
                 initial_guess,
                 rhs,
                 tolerance: float = DEFAULT_TOLERANCE,
                 max_iterations: Optional[int] = None,
                 verbose: bool = False):
        """
        Initialize solver with the problem vectors and convergence parameters.

        Parameters
        ----------
        initial_guess : array_like
            Initial guess x0
        rhs : array_like
            Right-hand side vector b
        tolerance : float
            Stopping criterion for the squared residual norm r.r
        max_iterations : int, optional
            Maximum number of iterations before termination. Defaults to
            ten times the length of ``initial_guess``.
        verbose : bool
            Log iteration progress at INFO instead of DEBUG
        """
        if initial_guess is None:
            raise TypeError("Initial guess must not be None")
        if rhs is None:
            raise TypeError("Right-hand side must not be None")
        self._x0 = as_vector(initial_guess).copy()
        self._rhs = as_vector(rhs).copy()
        if max_iterations is None:
            max_iterations = max(1, MAX_ITERATIONS_PER_DIMENSION * self._x0.shape[0])
        self.control = IterationControl(tolerance, max_iterations)
        self.verbose = verbose
        self.name = "IterativeSolver"
        self._result: Optional[InputOutputPair] = None

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def initial_guess(self) -> np.ndarray:
        return self._x0.copy()

    @initial_guess.setter
    def initial_guess(self, value):
        if value is None:
            raise TypeError("Initial guess must not be None")
        self._x0 = as_vector(value).copy()

    @property
    def rhs(self) -> np.ndarray:
        return self._rhs.copy()

    @property
    def tolerance(self) -> float:
        return self.control.tolerance

    @tolerance.setter
    def tolerance(self, value: float):
        self.control.tolerance = value

    @property
    def max_iterations(self) -> int:
        return self.control.max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int):
        self.control.max_iterations = value

    def add_listener(self, listener: IterationListener):
        self.control.add_listener(listener)

    def remove_listener(self, listener: IterationListener):
        self.control.remove_listener(listener)

    # -------------------------------------------------------------------------
    # State of the most recent run
    # -------------------------------------------------------------------------

    @property
    def iteration(self) -> int:
        """Iterations completed by the most recent (or current) run."""
        return self.control.iteration

    @property
    def status(self) -> SolverStatus:
        return self.control.status

    @property
    def result(self) -> Optional[InputOutputPair]:
        return self._result

    @property
    def residual_history(self) -> List[float]:
        """Residual 2-norms, starting with the initial residual."""
        return list(self.control.residual_history)

    def is_result_valid(self) -> bool:
        """True if the last run stopped because it met the tolerance."""
        return self.control.status is SolverStatus.CONVERGED

    def stop(self):
        """Stop after the step in progress completes."""
        self.control.stop_requested = True

    # -------------------------------------------------------------------------
    # Solve
    # -------------------------------------------------------------------------

    def learn(self, operator: Multiplier) -> InputOutputPair:
        """
        Solve A x = b for the A wrapped by ``operator``.

        Parameters
        ----------
        operator : Multiplier
            Matrix-free operator of the kind this solver works with

        Returns
        -------
        InputOutputPair
            (initial guess, final iterate). Check ``is_result_valid()`` to
            tell convergence from an exhausted budget or an early stop.

        If the operator or a listener raises, ``status`` becomes ``FAILED``
        and the exception propagates.
        """
        if operator is None:
            raise TypeError(f"{self.name} needs an operator, received None")
        if not isinstance(operator, self.operator_type):
            raise TypeError(
                f"{self.name} needs a {self.operator_type.__name__}, "
                f"received {type(operator).__name__}")
        if not operator.can_evaluate_against(self._x0, self._rhs):
            raise DimensionMismatchError(
                f"Operator of dimensionality {operator.input_dimensionality} cannot "
                f"solve for x0 of length {len(self._x0)} and b of length {len(self._rhs)}",
                expected=operator.input_dimensionality, actual=len(self._x0))

        control = self.control
        control.begin()
        self._result = None
        try:
            control.notify("algorithm_started", self)
            residual = self._initialize(operator)
            control.residual_history.append(float(np.sqrt(max(residual, 0.0))))

            while control.should_continue(residual):
                control.iteration += 1
                control.notify("step_started", self)
                residual = self._iterate()
                control.residual_history.append(float(np.sqrt(max(residual, 0.0))))
                control.notify("step_ended", self)
                self._log(control.iteration, control.residual_history[-1])
        except Exception:
            control.status = SolverStatus.FAILED
            self._complete()
            raise

        control.finish(residual)
        self._result = InputOutputPair(self._x0.copy(), self._complete())
        if control.status is not SolverStatus.CONVERGED:
            logger.warning("%s finished without converging: status=%s, "
                           "iterations=%d, ||r|| = %.6e",
                           self.name, control.status.value, control.iteration,
                           control.residual_history[-1])
        control.notify("algorithm_ended", self)
        return self._result

    def _breakdown(self, quantity: str, value: float):
        """Flag that no further step can be taken and say why."""
        logger.warning("%s breakdown at iteration %d: %s = %r",
                       self.name, self.control.iteration, quantity, value)
        self.control.broken_down = True

    @abstractmethod
    def _initialize(self, operator: Multiplier) -> float:
        """
        Set up the iteration state for ``operator``.

        Returns
        -------
        float
            Residual metric r.r of the initial guess
        """

    @abstractmethod
    def _iterate(self) -> float:
        """
        Take one step of the algorithm.

        Returns
        -------
        float
            Residual metric r.r after the step
        """

    @abstractmethod
    def _complete(self) -> np.ndarray:
        """Release per-run state and return the final iterate."""

    def _log(self, iteration: int, residual_norm: float):
        """Log iteration progress."""
        level = logging.INFO if self.verbose else logging.DEBUG
        logger.log(level, "%s iter %4d: ||r|| = %.6e", self.name, iteration, residual_norm)
