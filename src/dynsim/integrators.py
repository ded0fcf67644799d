"""ODE solvers that integrate a dynamical system across its drivers.

Each solver advances the system interval by interval along the time
index axis, from driver point i to driver point i + 1, and records one
row of results per driver point.

Fixed-step solvers (ForwardEuler, RungeKutta4) take exactly one step per
interval. SciPyIntegrator wraps the adaptive solvers of
scipy.integrate, which may take several steps per interval, bounded by
``max_steps``.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from dynsim.core import SolverSettings
from dynsim.errors import (
    IncompatibleSolverError,
    SolverConvergenceError,
    UnknownSolverError,
)
from dynsim.results import ResultBuilder, SimulationResult

logger = logging.getLogger(__name__)

NOT_CALLED_REPORT = "The solver has not been called yet"


class OdeSolver:
    """Base class for solvers.

    Parameters
    ----------
    output_step_size : float, optional
        Initial trial step for adaptive methods, in time-index units
    rel_error_tol : float, optional
        Relative error tolerance (adaptive methods only)
    abs_error_tol : float, optional
        Absolute error tolerance (adaptive methods only)
    max_steps : int, optional
        Maximum number of steps per driver interval (adaptive methods
        only)
    """

    name = ""
    description = ""
    is_euler = False
    is_adaptive = False

    def __init__(
        self,
        output_step_size: float = 1.0,
        rel_error_tol: float = 1e-4,
        abs_error_tol: float = 1e-4,
        max_steps: int = 200,
    ):
        self.output_step_size = output_step_size
        self.rel_error_tol = rel_error_tol
        self.abs_error_tol = abs_error_tol
        self.max_steps = max_steps
        self._report: Optional[str] = None
        self._nfev = 0

    def integrate(self, system) -> SimulationResult:
        """Integrate the system across every driver time point.

        Integration starts from the system's current state, which is
        not necessarily its initial state; call ``system.reset()`` first
        for a fresh run.

        Parameters
        ----------
        system : DynamicalSystem
            System to integrate; its state is advanced in place

        Returns
        -------
        result : SimulationResult
            One row per driver time point

        Raises
        ------
        IncompatibleSolverError
            If the system requires an Euler solver and this is not one
        SolverConvergenceError
            If an adaptive method cannot finish a driver interval
        EvaluationError
            If a module fails during evaluation
        """
        self.check_compatibility(system)

        builder = ResultBuilder(
            system.driver_names,
            system.differential_quantity_names,
            system.output_quantity_names,
        )

        x = system.get_differential_quantities()
        builder.record(system.observe(0))

        steps: List[int] = []
        self._nfev = 0
        for i in range(system.ntimes - 1):
            x, n_steps = self.advance(system, x, i)
            system.set_differential_quantities(x)
            steps.append(n_steps)
            builder.record(system.observe(i + 1))

        self._report = self._make_report(steps)
        logger.debug(
            "%s integrated %d intervals in %d steps",
            self.name,
            len(steps),
            sum(steps),
        )
        return builder.build()

    def check_compatibility(self, system) -> None:
        if system.requires_euler_solver and not self.is_euler:
            raise IncompatibleSolverError(
                f"The system requires an Euler solver, but the '{self.name}' "
                "solver was chosen"
            )

    def advance(self, system, x: np.ndarray, t: int) -> Tuple[np.ndarray, int]:
        """Advance state x from time index t to t + 1.

        Returns the new state and the number of steps taken.
        """
        raise NotImplementedError

    def derivative(self, system) -> Callable[[float, np.ndarray], np.ndarray]:
        def f(t, x):
            self._nfev += 1
            return system.calculate_derivative(x, t)

        return f

    def generate_report(self) -> str:
        """Summarize the most recent integration."""
        if self._report is None:
            return NOT_CALLED_REPORT
        return self._report

    def _make_report(self, steps: List[int]) -> str:
        lines = [
            f"{self.description} required {sum(steps)} steps to integrate "
            "the system",
            f"Method: '{self.name}'",
            f"Driver intervals: {len(steps)}",
        ]
        if steps:
            lines.append(
                f"Steps per interval: min {min(steps)}, max {max(steps)}"
            )
        lines.append(f"Derivative evaluations: {self._nfev}")
        if self.is_adaptive:
            lines.append(
                f"Tolerances: rel_error_tol={self.rel_error_tol}, "
                f"abs_error_tol={self.abs_error_tol}, "
                f"max_steps={self.max_steps}"
            )
        return "\n".join(lines) + "\n"

    def __repr__(self):
        return f"{type(self).__name__}()"


# ============================================================================
# Fixed-step integrators
# ============================================================================


class ForwardEuler(OdeSolver):
    """Forward Euler integrator, one step per driver interval.

    Required by systems containing modules that are not smooth enough
    for higher-order methods.
    """

    name = "euler"
    description = "Forward Euler"
    is_euler = True

    def advance(self, system, x, t):
        f = self.derivative(system)
        return x + f(t, x), 1


class RungeKutta4(OdeSolver):
    """Classic 4th-order Runge-Kutta integrator, one step per interval."""

    name = "rk4"
    description = "Fourth-order Runge-Kutta"

    def advance(self, system, x, t):
        f = self.derivative(system)
        dt = 1.0
        k1 = f(t, x)
        k2 = f(t + dt / 2, x + dt / 2 * k1)
        k3 = f(t + dt / 2, x + dt / 2 * k2)
        k4 = f(t + dt, x + dt * k3)
        return x + dt / 6 * (k1 + 2 * k2 + 2 * k3 + k4), 1


# ============================================================================
# SciPy Integrators
# ============================================================================


class SciPyIntegrator(OdeSolver):
    """Wrapper for the adaptive solvers of scipy.integrate.

    Each driver interval is integrated with a fresh scipy OdeSolver, so
    the drivers are re-read at the start of every interval and the step
    count is bounded per interval.

    Parameters
    ----------
    method : str, optional
        scipy method: 'RK23', 'RK45', 'DOP853', 'Radau', 'BDF' or
        'LSODA'. Default is 'RK45'.
    **kwargs
        Passed to OdeSolver

    Examples
    --------
    >>> solver = SciPyIntegrator('RK45', rel_error_tol=1e-6)
    >>> result = solver.integrate(system)
    """

    is_adaptive = True

    def __init__(self, method: str = "RK45", **kwargs):
        from scipy import integrate

        super().__init__(**kwargs)
        self.method = method
        self.solver_class = getattr(integrate, method)
        self.name = method.lower()
        self.description = f"scipy.integrate.{method}"

    def advance(self, system, x, t):
        if len(x) == 0:
            return x, 0

        solver = self.solver_class(
            self.derivative(system),
            t,
            x,
            t + 1,
            rtol=self.rel_error_tol,
            atol=self.abs_error_tol,
            first_step=min(self.output_step_size, 1.0),
        )

        n_steps = 0
        while solver.status == "running":
            if n_steps >= self.max_steps:
                raise SolverConvergenceError(
                    f"{self.description} did not converge: more than "
                    f"{self.max_steps} steps were needed to integrate from "
                    f"time index {t} to {t + 1}"
                )
            message = solver.step()
            n_steps += 1
            if solver.status == "failed":
                raise SolverConvergenceError(
                    f"{self.description} failed between time indices {t} "
                    f"and {t + 1}: {message}"
                )

        return np.array(solver.y, dtype=float), n_steps

    def __repr__(self):
        return f"SciPyIntegrator(method='{self.method}')"


class AutoSolver(OdeSolver):
    """Choose a solver for each system.

    Systems that require an Euler solver get ForwardEuler; all others
    get LSODA, which switches between stiff and non-stiff methods.
    """

    name = "auto"
    description = "Automatic solver selection"
    is_adaptive = True

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._settings = kwargs
        self._last_solver: Optional[OdeSolver] = None

    def select(self, system) -> OdeSolver:
        if system.requires_euler_solver:
            solver = ForwardEuler(**self._settings)
        else:
            solver = SciPyIntegrator("LSODA", **self._settings)
        logger.debug("auto solver selected '%s'", solver.name)
        return solver

    def integrate(self, system) -> SimulationResult:
        self._last_solver = self.select(system)
        return self._last_solver.integrate(system)

    def generate_report(self) -> str:
        if self._last_solver is None:
            return NOT_CALLED_REPORT
        return self._last_solver.generate_report()


ODE_SOLVERS: Dict[str, Callable[..., OdeSolver]] = {
    "euler": ForwardEuler,
    "rk4": RungeKutta4,
    "rk23": lambda **kw: SciPyIntegrator("RK23", **kw),
    "rk45": lambda **kw: SciPyIntegrator("RK45", **kw),
    "dop853": lambda **kw: SciPyIntegrator("DOP853", **kw),
    "radau": lambda **kw: SciPyIntegrator("Radau", **kw),
    "bdf": lambda **kw: SciPyIntegrator("BDF", **kw),
    "lsoda": lambda **kw: SciPyIntegrator("LSODA", **kw),
    "auto": AutoSolver,
}


def get_all_solvers() -> List[str]:
    """Return the names accepted by make_ode_solver, sorted."""
    return sorted(ODE_SOLVERS)


def make_ode_solver(
    name: str,
    output_step_size: float = 1.0,
    rel_error_tol: float = 1e-4,
    abs_error_tol: float = 1e-4,
    max_steps: int = 200,
) -> OdeSolver:
    """Create a solver by name.

    Parameters
    ----------
    name : str
        One of get_all_solvers()
    output_step_size, rel_error_tol, abs_error_tol, max_steps
        See OdeSolver

    Raises
    ------
    UnknownSolverError
        If no solver has this name
    ValueError
        If a setting is out of range
    """
    try:
        constructor = ODE_SOLVERS[name]
    except KeyError:
        raise UnknownSolverError(
            f"'{name}' is not a valid solver name; choose from "
            + ", ".join(get_all_solvers())
        ) from None

    SolverSettings(
        method=name,
        output_step_size=output_step_size,
        rel_error_tol=rel_error_tol,
        abs_error_tol=abs_error_tol,
        max_steps=max_steps,
    )

    return constructor(
        output_step_size=output_step_size,
        rel_error_tol=rel_error_tol,
        abs_error_tol=abs_error_tol,
        max_steps=max_steps,
    )
