"""Modular simulation engine for dynamical systems.

A dynamical system is built from pluggable modules that read and write
named quantities. Steady-state ("direct") modules compute auxiliary
quantities from the current state; differential modules compute the
change in the state quantities. The engine validates the composition,
evaluates the modules at each step and integrates the system across
a set of drivers, one value per time point.

Main Components
---------------
Simulator : Build and run a system from a SimulationConfig
SimulationConfig : Configuration dataclass
SolverSettings : ODE solver settings
SimulationResult : Results container, one row per time point
DynamicalSystem : Modules bound to a shared quantity namespace

Modules
-------
SteadyStateModule, DifferentialModule : Base classes for modules
ModuleCreator : Module class plus the library it came from
ModuleFactory : Registry of the modules in one library

Simulators
----------
Simulator : Continues from the current state on each run
IdempotentSimulator : Resets the state before each run
RebuildingSimulator : Builds a new system for each run
SingleUseSimulator : Can only be run once

Integrators
-----------
ForwardEuler, RungeKutta4 : Fixed step, one step per driver interval
SciPyIntegrator : scipy.integrate adaptive solvers
AutoSolver : Euler if required, otherwise LSODA

Examples
--------
>>> import standard_modules
>>> from dynsim import SimulationConfig, SolverSettings, Simulator
>>> factory = standard_modules.create_module_factory()
>>> config = SimulationConfig(
...     initial_state={'TTc': 0.0},
...     parameters={'sowing_time': 0.0, 'tbase': 10.0},
...     drivers={'time': range(10),
...              'temp': [5, 8, 10, 15, 20, 20, 25, 30, 32, 40]},
...     differential_modules=[factory.retrieve('thermal_time_linear')],
...     solver=SolverSettings(method='euler'),
... )
>>> result = Simulator(config).run_simulation()
>>> round(result['TTc'][-1], 4)
3.4167
"""

# Core simulation components
from dynsim.core import (
    ModuleSet,
    ParameterSet,
    SimulationConfig,
    SolverSettings,
    State,
    SystemDrivers,
)

# Errors
from dynsim.errors import (
    CompositionError,
    EvaluationError,
    IncompatibleSolverError,
    SimulationError,
    SimulatorUsageError,
    SolverConvergenceError,
    SolverError,
    UnknownModuleError,
    UnknownSolverError,
)

# Modules and libraries
from dynsim.factory import ModuleFactory
from dynsim.modules import (
    DifferentialModule,
    Module,
    ModuleCreator,
    ModuleKind,
    SteadyStateModule,
)

# Results
from dynsim.results import ResultBuilder, SimulationResult

# Systems and simulators
from dynsim.system import DynamicalSystem
from dynsim.simulators import (
    IdempotentSimulator,
    RebuildingSimulator,
    Simulator,
    SingleUseSimulator,
)
from dynsim.validation import validate_system_inputs

# Integrators
from dynsim.integrators import (
    AutoSolver,
    ForwardEuler,
    OdeSolver,
    RungeKutta4,
    SciPyIntegrator,
    get_all_solvers,
    make_ode_solver,
)

# Configuration setup utilities
from dynsim.setup import (
    load_simulation_config,
    read_param_values,
    read_param_values_pint,
    read_parameter_set,
)

__all__ = [
    # Core
    "SimulationConfig",
    "SolverSettings",
    "State",
    "ParameterSet",
    "SystemDrivers",
    "ModuleSet",
    "SimulationResult",
    "ResultBuilder",
    "DynamicalSystem",
    "validate_system_inputs",
    # Errors
    "SimulationError",
    "CompositionError",
    "UnknownModuleError",
    "EvaluationError",
    "SolverError",
    "SolverConvergenceError",
    "IncompatibleSolverError",
    "UnknownSolverError",
    "SimulatorUsageError",
    # Modules
    "Module",
    "ModuleKind",
    "SteadyStateModule",
    "DifferentialModule",
    "ModuleCreator",
    "ModuleFactory",
    # Simulators
    "Simulator",
    "IdempotentSimulator",
    "RebuildingSimulator",
    "SingleUseSimulator",
    # Integrators
    "OdeSolver",
    "ForwardEuler",
    "RungeKutta4",
    "SciPyIntegrator",
    "AutoSolver",
    "get_all_solvers",
    "make_ode_solver",
    # Setup utilities
    "read_param_values",
    "read_param_values_pint",
    "read_parameter_set",
    "load_simulation_config",
]
