"""Setup utilities for simulation configurations.

Simulations can be described in YAML files such as::

    initial_state:
      TTc: 0
    parameters:
      sowing_time: 0
      tbase: {value: 10, units: degC}
      timestep: {value: 60, units: minute}
    drivers:
      time: [0, 1, 2, 3]
      temp: [5, 8, 10, 15]
    direct_modules: []
    differential_modules:
      - thermal_time_linear
      - daily:thermal_time_linear
    solver:
      method: euler

Module names are looked up in the module factories passed to
``load_simulation_config``; ``library:name`` selects a factory by its
library name, and a bare name uses the first factory.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import pandas as pd
import pint
import yaml

from dynsim.core import SimulationConfig, SolverSettings
from dynsim.factory import ModuleFactory
from dynsim.modules import ModuleCreator

logger = logging.getLogger(__name__)

CONFIG_KEYS = {
    "initial_state",
    "parameters",
    "drivers",
    "direct_modules",
    "differential_modules",
    "solver",
}


def read_param_values(params_dict, parent_key="", sep="_"):
    """
    Flatten nested parameter dictionary by concatenating keys.

    Returns a dictionary where each parameter is a dictionary with a
    'value' and any other attributes such as 'units'.

    Parameters
    ----------
    params_dict : dict
        Nested dictionary of parameters to flatten. Leaf nodes are
        either plain numbers or dicts with a 'value' and optionally a
        'units' key (as strings).
    parent_key : str, optional
        Prefix for keys (used in recursion), by default ''
    sep : str, optional
        Separator between nested keys, by default '_'

    Returns
    -------
    dict
        Flat dictionary with concatenated keys. Each value is a dict with
        'value' and any additional fields (e.g., 'units', 'desc') from
        the original parameter dict.

    Examples
    --------
    >>> params = {
    ...     'thermal_time': {
    ...         'tbase': {'value': 10, 'units': 'degC'},
    ...     },
    ...     'timestep': 1,
    ... }
    >>> read_param_values(params)
    {'thermal_time_tbase': {'value': 10, 'units': 'degC'},
     'timestep': {'value': 1, 'units': None}}
    """
    items = []

    for key, value in params_dict.items():
        new_key = f"{parent_key}{sep}{key}" if parent_key else key

        if isinstance(value, dict):
            if "value" in value:
                items.append((new_key, dict(value)))
            else:
                items.extend(
                    read_param_values(
                        value, parent_key=new_key, sep=sep
                    ).items()
                )
        else:
            items.append((new_key, {"value": value, "units": None}))

    return dict(items)


def read_param_values_pint(params_dict, ureg=None, parent_key="", sep="_"):
    """
    Flatten nested parameter dictionary and convert units to pint objects.

    Parameters
    ----------
    params_dict : dict
        Nested dictionary of parameters (see read_param_values)
    ureg : pint.UnitRegistry, optional
        Unit registry to use for creating unit objects. If None, a new
        registry is created.
    parent_key : str, optional
        Prefix for keys (used in recursion), by default ''
    sep : str, optional
        Separator between nested keys, by default '_'

    Returns
    -------
    dict
        Flat dictionary as returned by read_param_values, with 'units'
        a pint Unit object if units were given, otherwise None.

    See Also
    --------
    read_param_values : Flatten without converting units to pint objects
    """
    if ureg is None:
        ureg = pint.UnitRegistry()
    params_flat = read_param_values(
        params_dict, parent_key=parent_key, sep=sep
    )

    for value in params_flat.values():
        units = value.get("units")
        value["units"] = ureg.Unit(units) if units is not None else None

    return params_flat


def read_parameter_set(
    params_dict: Mapping[str, Any],
    unit_conventions: Optional[Mapping[str, str]] = None,
    ureg: Optional[pint.UnitRegistry] = None,
    sep: str = "_",
) -> Dict[str, float]:
    """Flatten a nested parameter dictionary into plain floats.

    Values given with units are converted to the unit listed for that
    quantity in ``unit_conventions``. A value with units but no
    convention is used as given, with a warning.

    Parameters
    ----------
    params_dict : dict
        Nested dictionary of parameters (see read_param_values)
    unit_conventions : mapping of str to str, optional
        Target unit for each quantity name, usually the ``units`` of
        the module factory in use
    ureg : pint.UnitRegistry, optional
        Unit registry; a new one is created if None
    sep : str, optional
        Separator between nested keys, by default '_'

    Returns
    -------
    dict of str to float

    Examples
    --------
    >>> read_parameter_set(
    ...     {'timestep': {'value': 30, 'units': 'minute'}},
    ...     unit_conventions={'timestep': 'hour'},
    ... )
    {'timestep': 0.5}
    """
    if ureg is None:
        ureg = pint.UnitRegistry()
    unit_conventions = unit_conventions or {}

    parameters = {}
    for name, entry in read_param_values_pint(params_dict, ureg, sep=sep).items():
        units = entry.get("units")
        if units is None:
            parameters[name] = float(entry["value"])
            continue

        quantity = ureg.Quantity(entry["value"], units)
        if name in unit_conventions:
            quantity = quantity.to(unit_conventions[name])
        else:
            logger.warning(
                "No unit convention for '%s'; using %s as given",
                name,
                quantity,
            )
        parameters[name] = float(quantity.magnitude)

    return parameters


def resolve_module(reference: str, factories: Sequence[ModuleFactory]) -> ModuleCreator:
    """Look up 'name' or 'library:name' in the given factories."""
    if ":" in reference:
        library, module_name = reference.split(":", 1)
        for factory in factories:
            if factory.library == library:
                return factory.retrieve(module_name)
        raise ValueError(
            f"No module factory for library '{library}' (requested "
            f"'{reference}')"
        )
    return factories[0].retrieve(reference)


def collect_unit_conventions(
    creators: Sequence[ModuleCreator], factories: Sequence[ModuleFactory]
) -> Dict[str, str]:
    """Merge the unit conventions of the libraries the modules come from.

    Libraries are taken in order of first use. When two of them assume
    different units for a quantity, the first one wins and a warning is
    logged. With no modules, the first factory's conventions are used.
    """
    by_library = {factory.library: factory for factory in factories}
    libraries = []
    for creator in creators:
        if creator.library in by_library and creator.library not in libraries:
            libraries.append(creator.library)
    if not libraries:
        libraries = [factories[0].library]

    conventions: Dict[str, str] = {}
    for library in libraries:
        for name, units in by_library[library].units.items():
            if name not in conventions:
                conventions[name] = units
            elif conventions[name] != units:
                logger.warning(
                    "Library '%s' assumes '%s' in %s, but %s is used",
                    library,
                    name,
                    units,
                    conventions[name],
                )
    return conventions


def read_drivers(drivers: Any, base_dir: Path) -> Dict[str, list]:
    """Read drivers given inline or as {'file': 'drivers.csv'}."""
    if isinstance(drivers, dict) and set(drivers) == {"file"}:
        path = Path(drivers["file"])
        if not path.is_absolute():
            path = base_dir / path
        df = pd.read_csv(path)
        return {name: df[name].astype(float).tolist() for name in df.columns}
    return {name: list(values) for name, values in drivers.items()}


def load_simulation_config(
    source: Union[str, Path, Mapping[str, Any]],
    factories: Sequence[ModuleFactory],
    ureg: Optional[pint.UnitRegistry] = None,
) -> SimulationConfig:
    """Build a SimulationConfig from a YAML file or parsed dictionary.

    Parameters
    ----------
    source : str, Path or dict
        Path to a YAML file, or the already-parsed contents
    factories : sequence of ModuleFactory
        Module libraries used to resolve module names. The first one is
        used for bare names. Values given with units are converted to
        the conventions of the libraries the modules come from (see
        collect_unit_conventions).
    ureg : pint.UnitRegistry, optional
        Unit registry; a new one is created if None

    Returns
    -------
    config : SimulationConfig

    Raises
    ------
    ValueError
        If the file has unknown keys or refers to an unknown library
    UnknownModuleError
        If a module name is not found
    """
    if not factories:
        raise ValueError("At least one module factory is required")

    if isinstance(source, (str, Path)):
        path = Path(source)
        with open(path) as f:
            sim_spec = yaml.safe_load(f) or {}
        base_dir = path.parent
        logger.debug("Loading simulation config from %s", path)
    else:
        sim_spec = dict(source)
        base_dir = Path.cwd()

    unknown = set(sim_spec) - CONFIG_KEYS
    if unknown:
        raise ValueError(
            f"Unknown simulation config keys: {', '.join(sorted(unknown))}"
        )

    direct_modules = [
        resolve_module(name, factories)
        for name in sim_spec.get("direct_modules") or []
    ]
    differential_modules = [
        resolve_module(name, factories)
        for name in sim_spec.get("differential_modules") or []
    ]
    unit_conventions = collect_unit_conventions(
        direct_modules + differential_modules, factories
    )
    return SimulationConfig(
        initial_state=read_parameter_set(
            sim_spec.get("initial_state") or {}, unit_conventions, ureg
        ),
        parameters=read_parameter_set(
            sim_spec.get("parameters") or {}, unit_conventions, ureg
        ),
        drivers=read_drivers(sim_spec.get("drivers") or {}, base_dir),
        direct_modules=direct_modules,
        differential_modules=differential_modules,
        solver=SolverSettings(**(sim_spec.get("solver") or {})),
    )
