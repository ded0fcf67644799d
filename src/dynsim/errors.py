"""Exception classes raised by the simulation engine.

Every error raised by the engine derives from SimulationError. Each class
also derives from the built-in exception it most resembles, so callers
that only know about ValueError, LookupError or RuntimeError still catch
them.
"""

from typing import Iterable, List, Optional


class SimulationError(Exception):
    """Base class for all simulation engine errors."""


class CompositionError(SimulationError, ValueError):
    """The supplied inputs cannot form a valid dynamical system.

    Raised at construction time. All problems found are collected into
    a single exception so that a large module composition can be fixed
    in one pass.

    Parameters
    ----------
    errors : list of str
        One message per problem found
    duplicate_quantities : iterable of str, optional
        Quantities defined more than once
    undefined_quantities : iterable of str, optional
        Module inputs that no value source provides
    """

    def __init__(
        self,
        errors: List[str],
        duplicate_quantities: Optional[Iterable[str]] = None,
        undefined_quantities: Optional[Iterable[str]] = None,
    ):
        self.errors = list(errors)
        self.duplicate_quantities = sorted(duplicate_quantities or [])
        self.undefined_quantities = sorted(undefined_quantities or [])

        message = (
            "the supplied inputs cannot form a valid dynamical system\n\n"
            + "\n\n".join(self.errors)
        )
        super().__init__(message)


class UnknownModuleError(SimulationError, LookupError):
    """A module name was requested that a module factory does not know."""

    def __init__(self, module_name: str, library: str):
        self.module_name = module_name
        self.library = library
        super().__init__(
            f"'{module_name}' was given as a module name, but no module "
            f"with that name could be found in the '{library}' library"
        )

    def __str__(self):
        # LookupError would otherwise quote the message
        return self.args[0]


class EvaluationError(SimulationError, RuntimeError):
    """A module signalled an invalid domain condition while running."""


class SolverError(SimulationError, RuntimeError):
    """Base class for failures of the ODE solver."""


class SolverConvergenceError(SolverError):
    """The solver could not reach the end of a driver interval."""


class IncompatibleSolverError(SolverError):
    """The chosen solver cannot integrate the given system."""


class UnknownSolverError(SimulationError, LookupError):
    """A solver name was requested that is not available."""

    def __str__(self):
        return self.args[0]


class SimulatorUsageError(SimulationError, RuntimeError):
    """A simulator was used in a way its contract forbids."""
