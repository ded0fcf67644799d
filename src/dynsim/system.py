"""Dynamical system assembled from modules.

The system owns a single mapping of quantity values (state, parameters,
current driver values and steady-state module outputs) that the modules
are bound to. Each evaluation updates the drivers, runs the steady-state
modules, zeroes the derivatives and runs the differential modules.

The independent variable of the system is the time index: driver point
i sits at t = i, so each driver interval has length 1. Differential
modules therefore return the change per time step.
"""

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence

import numpy as np

from dynsim.errors import EvaluationError
from dynsim.inputs import InterpolatedInput
from dynsim.modules import Module, ModuleCreator
from dynsim.validation import check_system_inputs

logger = logging.getLogger(__name__)


class DynamicalSystem:
    """A set of modules bound to a shared quantity namespace.

    Parameters
    ----------
    initial_state : mapping of str to float
        Initial values of the differential quantities
    parameters : mapping of str to float
        Constant quantities
    drivers : mapping of str to sequence of float
        Time-varying quantities, one value per time point. All sequences
        must have the same length, which sets the number of time points.
    steady_state_modules : sequence of ModuleCreator
        Modules run first on each evaluation, in the order given
    differential_modules : sequence of ModuleCreator
        Modules run after the steady-state modules; their outputs are
        summed into the derivatives of the state quantities

    Raises
    ------
    CompositionError
        If the inputs cannot form a valid dynamical system

    Notes
    -----
    All inputs are copied, so later changes to the caller's objects do
    not affect the system. The state is changed in place by the solvers;
    call ``reset`` to return to the initial state.

    Examples
    --------
    >>> system = DynamicalSystem(
    ...     initial_state={'TTc': 0.0},
    ...     parameters={'sowing_time': 0.0, 'tbase': 5.0, 'timestep': 1.0},
    ...     drivers={'time': [0, 1, 2], 'temp': [10, 12, 15]},
    ...     steady_state_modules=[],
    ...     differential_modules=[factory.retrieve('thermal_time_linear')],
    ... )
    >>> system.ntimes
    3
    """

    def __init__(
        self,
        initial_state: Mapping[str, float],
        parameters: Mapping[str, float],
        drivers: Mapping[str, Sequence[float]],
        steady_state_modules: Sequence[ModuleCreator],
        differential_modules: Sequence[ModuleCreator],
    ):
        steady_state_modules = list(steady_state_modules)
        differential_modules = list(differential_modules)

        check_system_inputs(
            initial_state,
            parameters,
            drivers,
            steady_state_modules,
            differential_modules,
        )

        self._initial_state = {k: float(v) for k, v in initial_state.items()}
        self._parameters = MappingProxyType(
            {k: float(v) for k, v in parameters.items()}
        )
        self._drivers = {k: InterpolatedInput(v) for k, v in drivers.items()}
        self._steady_state_creators = steady_state_modules
        self._differential_creators = differential_modules

        self.differential_quantity_names: List[str] = list(self._initial_state)
        self.driver_names: List[str] = list(self._drivers)
        self.output_quantity_names: List[str] = []
        for creator in steady_state_modules:
            for name in creator.outputs:
                if name not in self.output_quantity_names:
                    self.output_quantity_names.append(name)

        # Working namespace shared by all modules
        self._quantities: Dict[str, float] = {}
        self._quantities.update(self._initial_state)
        self._quantities.update(self._parameters)
        for name, driver in self._drivers.items():
            self._quantities[name] = driver(0)
        for name in self.output_quantity_names:
            self._quantities[name] = 0.0

        self._derivatives: Dict[str, float] = {
            name: 0.0 for name in self.differential_quantity_names
        }

        self._steady_state_modules: List[Module] = [
            creator.create_module(self._quantities, self._quantities)
            for creator in steady_state_modules
        ]
        self._differential_modules: List[Module] = [
            creator.create_module(self._quantities, self._derivatives)
            for creator in differential_modules
        ]

        logger.debug(
            "Built dynamical system with %d time points, %d differential "
            "quantities, %d steady-state modules and %d differential modules",
            self.ntimes,
            len(self.differential_quantity_names),
            len(self._steady_state_modules),
            len(self._differential_modules),
        )

    @property
    def ntimes(self) -> int:
        """Number of time points, as set by the length of the drivers."""
        return len(next(iter(self._drivers.values())))

    @property
    def requires_euler_solver(self) -> bool:
        """True if any module requires a fixed-step Euler solver."""
        return any(
            creator.requires_euler_solver
            for creator in (
                self._steady_state_creators + self._differential_creators
            )
        )

    @property
    def parameters(self) -> Mapping[str, float]:
        """Read-only view of the parameters."""
        return self._parameters

    @property
    def initial_state(self) -> Dict[str, float]:
        """Copy of the initial state supplied at construction."""
        return dict(self._initial_state)

    def reset(self) -> None:
        """Restore the quantity namespace to its values at construction.

        The state returns to the initial state, the drivers to their
        values at time index 0 and the steady-state outputs to 0.
        """
        self._quantities.update(self._initial_state)
        self.update_drivers(0)
        for name in self.output_quantity_names:
            self._quantities[name] = 0.0

    def get_differential_quantities(self) -> np.ndarray:
        """Return the current state, ordered by differential_quantity_names."""
        return np.array(
            [self._quantities[name] for name in self.differential_quantity_names],
            dtype=float,
        )

    def set_differential_quantities(self, x: Sequence[float]) -> None:
        """Set the current state from a vector ordered like the names."""
        if len(x) != len(self.differential_quantity_names):
            raise ValueError(
                f"Expected {len(self.differential_quantity_names)} values, "
                f"got {len(x)}"
            )
        for name, value in zip(self.differential_quantity_names, x):
            self._quantities[name] = float(value)

    def get_current_state(self) -> Dict[str, float]:
        """Return the current state as a name to value mapping."""
        return {
            name: self._quantities[name]
            for name in self.differential_quantity_names
        }

    def update_drivers(self, time_index: float) -> None:
        """Set the driver quantities to their values at time_index."""
        for name, driver in self._drivers.items():
            self._quantities[name] = driver(time_index)

    def run_steady_state_modules(self, time_index: float) -> None:
        for module in self._steady_state_modules:
            self._run_module(module, time_index)

    def evaluate(self, time_index: float) -> np.ndarray:
        """Compute the derivative of the current state at time_index.

        Parameters
        ----------
        time_index : float
            Position on the driver axis; fractional values interpolate
            the drivers

        Returns
        -------
        dxdt : ndarray
            Change per time step of each differential quantity, ordered
            by differential_quantity_names

        Raises
        ------
        EvaluationError
            If a module signals an invalid domain condition
        """
        self.update_drivers(time_index)
        self.run_steady_state_modules(time_index)

        for name in self._derivatives:
            self._derivatives[name] = 0.0
        for module in self._differential_modules:
            self._run_module(module, time_index)

        return np.array(
            [self._derivatives[name] for name in self.differential_quantity_names],
            dtype=float,
        )

    def calculate_derivative(self, x: Sequence[float], time_index: float) -> np.ndarray:
        """Set the state to x, then return its derivative at time_index."""
        self.set_differential_quantities(x)
        return self.evaluate(time_index)

    def observe(self, time_index: int) -> Dict[str, float]:
        """Bring all recorded quantities up to date and return them.

        The drivers are set for time_index and the steady-state modules
        are run on the current state. The returned mapping holds the
        drivers, the state and the steady-state module outputs.
        """
        self.update_drivers(time_index)
        self.run_steady_state_modules(time_index)
        names = (
            self.driver_names
            + self.differential_quantity_names
            + self.output_quantity_names
        )
        return {name: self._quantities[name] for name in names}

    def _run_module(self, module: Module, time_index: float) -> None:
        try:
            module.run()
        except (ValueError, ArithmeticError) as err:
            raise EvaluationError(
                f"Module '{module.name}' failed at time index {time_index}: "
                f"{err}"
            ) from err

    def __repr__(self):
        return (
            f"DynamicalSystem(ntimes={self.ntimes}, "
            f"n_states={len(self.differential_quantity_names)}, "
            f"n_steady_state_modules={len(self._steady_state_modules)}, "
            f"n_differential_modules={len(self._differential_modules)})"
        )
