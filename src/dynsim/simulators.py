"""Simulators: a dynamical system paired with an ODE solver.

Running a solver advances the system's state in place, so running the
same Simulator twice does not give the same answer: the second run
starts where the first one ended. Three variants avoid that:

- IdempotentSimulator resets the system before every run
- RebuildingSimulator builds a new system and solver for every run
- SingleUseSimulator refuses to run more than once
"""

import logging
from dataclasses import replace

from dynsim.core import SimulationConfig
from dynsim.errors import SimulatorUsageError
from dynsim.integrators import NOT_CALLED_REPORT, OdeSolver, make_ode_solver
from dynsim.results import SimulationResult
from dynsim.system import DynamicalSystem

logger = logging.getLogger(__name__)


def make_dynamical_system(config: SimulationConfig) -> DynamicalSystem:
    """Build the dynamical system described by a configuration."""
    return DynamicalSystem(
        config.initial_state,
        config.parameters,
        config.drivers,
        config.direct_modules,
        config.differential_modules,
    )


def make_solver(config: SimulationConfig) -> OdeSolver:
    """Build the ODE solver described by a configuration."""
    settings = config.solver
    return make_ode_solver(
        settings.method,
        output_step_size=settings.output_step_size,
        rel_error_tol=settings.rel_error_tol,
        abs_error_tol=settings.abs_error_tol,
        max_steps=settings.max_steps,
    )


class Simulator:
    """Integrate a dynamical system with an ODE solver.

    Parameters
    ----------
    config : SimulationConfig
        System and solver description

    Raises
    ------
    CompositionError
        If the configuration cannot form a valid dynamical system
    UnknownSolverError
        If the solver name is not recognised

    Notes
    -----
    ``run_simulation`` is not idempotent: each run continues from the
    state reached by the previous one. Use IdempotentSimulator,
    RebuildingSimulator or SingleUseSimulator when that matters.

    Examples
    --------
    >>> simulator = Simulator(config)
    >>> result = simulator.run_simulation()
    >>> print(simulator.generate_report())
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        self._system = make_dynamical_system(config)
        self._solver = make_solver(config)

    @property
    def system(self) -> DynamicalSystem:
        return self._system

    @property
    def solver(self) -> OdeSolver:
        return self._solver

    def run_simulation(self) -> SimulationResult:
        """Integrate the system from its current state."""
        return self._solver.integrate(self._system)

    def generate_report(self) -> str:
        """Summarize the most recent run."""
        return self._solver.generate_report()


class IdempotentSimulator(Simulator):
    """Simulator that resets the system before every run."""

    def run_simulation(self) -> SimulationResult:
        self._system.reset()
        return super().run_simulation()


class RebuildingSimulator:
    """Simulator that builds a new system and solver for every run.

    Only the configuration is kept between runs, so there is no mutable
    state that one run could leave behind for the next.

    Parameters
    ----------
    config : SimulationConfig
        System and solver description
    """

    def __init__(self, config: SimulationConfig):
        # replace() re-runs __post_init__, which copies the mappings
        self.config = replace(config)
        self._last_report = None
        # Fail on construction rather than first run
        Simulator(config)

    def run_simulation(self) -> SimulationResult:
        simulator = Simulator(self.config)
        result = simulator.run_simulation()
        self._last_report = simulator.generate_report()
        logger.debug("Rebuilt and ran simulator; discarding it")
        return result

    def generate_report(self) -> str:
        if self._last_report is None:
            return NOT_CALLED_REPORT
        return self._last_report


class SingleUseSimulator(Simulator):
    """Simulator that can only be run once.

    Raises
    ------
    SimulatorUsageError
        On a second call to run_simulation
    """

    def __init__(self, config: SimulationConfig):
        super().__init__(config)
        self.has_been_run = False

    def run_simulation(self) -> SimulationResult:
        if self.has_been_run:
            raise SimulatorUsageError(
                "A SingleUseSimulator can only be run once."
            )
        self.has_been_run = True
        return super().run_simulation()
