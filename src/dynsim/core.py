"""Configuration objects and type aliases for building simulations.

The aliases name the plain Python containers used to describe a
simulation; the dataclasses bundle them with the solver settings so a
simulator can be built, rebuilt or stored from a single object.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from dynsim.modules import ModuleCreator

State = Dict[str, float]
ParameterSet = Dict[str, float]
SystemDrivers = Dict[str, Sequence[float]]
ModuleSet = List[ModuleCreator]


@dataclass(frozen=True)
class SolverSettings:
    """Settings used to create an ODE solver.

    Parameters
    ----------
    method : str, default='auto'
        Solver name; see ``dynsim.integrators.get_all_solvers()``
    output_step_size : float, default=1.0
        Initial trial step for adaptive methods, in time-index units
        (capped at 1). Fixed-step methods always take one step per
        driver interval.
    rel_error_tol : float, default=1e-4
        Relative error tolerance for adaptive methods
    abs_error_tol : float, default=1e-4
        Absolute error tolerance for adaptive methods
    max_steps : int, default=200
        Maximum number of steps an adaptive method may take within one
        driver interval

    Examples
    --------
    >>> settings = SolverSettings(method='rk45', rel_error_tol=1e-6)
    """

    method: str = "auto"
    output_step_size: float = 1.0
    rel_error_tol: float = 1e-4
    abs_error_tol: float = 1e-4
    max_steps: int = 200

    def __post_init__(self):
        """Validate settings."""
        if not self.output_step_size > 0:
            raise ValueError("output_step_size must be positive")
        if not self.rel_error_tol > 0:
            raise ValueError("rel_error_tol must be positive")
        if not self.abs_error_tol > 0:
            raise ValueError("abs_error_tol must be positive")
        if int(self.max_steps) != self.max_steps or self.max_steps < 1:
            raise ValueError("max_steps must be a positive integer")


@dataclass
class SimulationConfig:
    """Everything needed to build a simulator.

    Parameters
    ----------
    initial_state : dict of str to float
        Initial values of the differential quantities
    parameters : dict of str to float
        Constant quantities
    drivers : dict of str to sequence of float
        Time-varying quantities, one value per time point
    direct_modules : list of ModuleCreator, optional
        Steady-state modules, run in order on every evaluation
    differential_modules : list of ModuleCreator, optional
        Modules contributing to the state derivatives
    solver : SolverSettings, optional
        ODE solver settings

    Notes
    -----
    The mappings are copied on construction, so changing the caller's
    objects afterwards has no effect on the configuration.

    Examples
    --------
    >>> config = SimulationConfig(
    ...     initial_state={'position': 0.0, 'velocity': 1.0},
    ...     parameters={'mass': 10.0, 'spring_constant': 0.1, 'timestep': 1.0},
    ...     drivers={'time': [0, 1, 2, 3, 4]},
    ...     differential_modules=[factory.retrieve('harmonic_oscillator')],
    ...     solver=SolverSettings(method='rk4'),
    ... )
    """

    initial_state: State
    parameters: ParameterSet
    drivers: SystemDrivers
    direct_modules: ModuleSet = field(default_factory=list)
    differential_modules: ModuleSet = field(default_factory=list)
    solver: SolverSettings = field(default_factory=SolverSettings)

    def __post_init__(self):
        """Copy inputs so the configuration cannot change afterwards."""
        self.initial_state = {k: float(v) for k, v in self.initial_state.items()}
        self.parameters = {k: float(v) for k, v in self.parameters.items()}
        self.drivers = {
            k: tuple(float(x) for x in v) for k, v in self.drivers.items()
        }
        self.direct_modules = list(self.direct_modules)
        self.differential_modules = list(self.differential_modules)
        if not isinstance(self.solver, SolverSettings):
            raise TypeError("solver must be a SolverSettings instance")
