"""Validation of the inputs used to build a dynamical system.

The quantity namespace of a system is made up of the initial state, the
parameters, the drivers and the outputs of the steady-state modules.
Each of these may define a given name only once. Differential modules do
not define new quantities: their outputs are the derivatives of state
quantities, and several of them may contribute to the same derivative.
"""

import logging
from collections import Counter
from typing import Dict, List, Mapping, Sequence, Set, Tuple

from dynsim.errors import CompositionError
from dynsim.modules import ModuleCreator, ModuleKind

logger = logging.getLogger(__name__)


def find_duplicate_quantities(
    initial_state: Mapping[str, float],
    parameters: Mapping[str, float],
    drivers: Mapping[str, Sequence[float]],
    steady_state_modules: Sequence[ModuleCreator],
) -> List[str]:
    """Return the sorted names defined more than once."""
    counts = Counter()
    counts.update(initial_state.keys())
    counts.update(parameters.keys())
    counts.update(drivers.keys())
    for creator in steady_state_modules:
        counts.update(creator.outputs)
    return sorted(name for name, n in counts.items() if n > 1)


def find_undefined_inputs(
    initial_state: Mapping[str, float],
    parameters: Mapping[str, float],
    drivers: Mapping[str, Sequence[float]],
    steady_state_modules: Sequence[ModuleCreator],
    differential_modules: Sequence[ModuleCreator],
) -> List[str]:
    """Return the sorted module inputs that no value source provides."""
    defined: Set[str] = set(initial_state) | set(parameters) | set(drivers)
    for creator in steady_state_modules:
        defined.update(creator.outputs)

    required: Set[str] = set()
    for creator in list(steady_state_modules) + list(differential_modules):
        required.update(creator.inputs)

    return sorted(required - defined)


def find_misplaced_derivatives(
    initial_state: Mapping[str, float],
    differential_modules: Sequence[ModuleCreator],
) -> List[str]:
    """Return differential module outputs that are not state quantities."""
    misplaced = set()
    for creator in differential_modules:
        misplaced.update(q for q in creator.outputs if q not in initial_state)
    return sorted(misplaced)


def find_misclassified_modules(
    steady_state_modules: Sequence[ModuleCreator],
    differential_modules: Sequence[ModuleCreator],
) -> List[str]:
    """Return modules placed in a set that does not match their kind."""
    misclassified = []
    for creators, kind in (
        (steady_state_modules, ModuleKind.STEADY_STATE),
        (differential_modules, ModuleKind.DIFFERENTIAL),
    ):
        for creator in creators:
            if creator.kind is not kind:
                misclassified.append(creator.qualified_name)
    return misclassified


def find_driver_problems(drivers: Mapping[str, Sequence[float]]) -> List[str]:
    """Return messages describing any problems with the drivers."""
    if len(drivers) == 0:
        return ["At least one driver is required to define the time points"]

    lengths = {name: len(values) for name, values in drivers.items()}
    problems = []
    if len(set(lengths.values())) > 1:
        problems.append(
            "The drivers do not all have the same length: "
            + ", ".join(f"{name} ({n})" for name, n in lengths.items())
        )
    empty = [name for name, n in lengths.items() if n == 0]
    if empty:
        problems.append(
            f"The following drivers have no values: {', '.join(empty)}"
        )
    return problems


def find_out_of_order_inputs(
    steady_state_modules: Sequence[ModuleCreator],
) -> List[Tuple[str, str]]:
    """Find steady-state inputs produced by a later steady-state module.

    Steady-state modules are run in the order supplied, so such an input
    is read from the previous evaluation rather than the current one.

    Returns
    -------
    pairs : list of (str, str)
        (module name, quantity name) for every such input
    """
    producer: Dict[str, int] = {}
    for i, creator in enumerate(steady_state_modules):
        for name in creator.outputs:
            producer.setdefault(name, i)

    pairs = []
    for i, creator in enumerate(steady_state_modules):
        for name in creator.inputs:
            if producer.get(name, -1) >= i:
                pairs.append((creator.qualified_name, name))
    return pairs


def validate_system_inputs(
    initial_state: Mapping[str, float],
    parameters: Mapping[str, float],
    drivers: Mapping[str, Sequence[float]],
    steady_state_modules: Sequence[ModuleCreator],
    differential_modules: Sequence[ModuleCreator],
) -> List[str]:
    """Check that the inputs can form a valid dynamical system.

    Parameters
    ----------
    initial_state : mapping of str to float
        Initial values of the differential quantities
    parameters : mapping of str to float
        Constant quantities
    drivers : mapping of str to sequence of float
        Time-varying quantities, one value per time point
    steady_state_modules : sequence of ModuleCreator
        Modules whose outputs are overwritten on each evaluation
    differential_modules : sequence of ModuleCreator
        Modules whose outputs are added to the state derivatives

    Returns
    -------
    errors : list of str
        One message per problem found; empty if the inputs are valid
    """
    errors = []

    duplicates = find_duplicate_quantities(
        initial_state, parameters, drivers, steady_state_modules
    )
    if duplicates:
        errors.append(
            "The following quantities were defined more than once in the "
            "inputs: " + ", ".join(duplicates)
        )

    misplaced = find_misplaced_derivatives(initial_state, differential_modules)
    if misplaced:
        errors.append(
            "The following differential module outputs are not quantities "
            "in the initial state: " + ", ".join(misplaced)
        )

    undefined = find_undefined_inputs(
        initial_state,
        parameters,
        drivers,
        steady_state_modules,
        differential_modules,
    )
    if undefined:
        errors.append(
            "The following module inputs were not defined by the initial "
            "state, the parameters, the drivers or any steady-state module: "
            + ", ".join(undefined)
        )

    misclassified = find_misclassified_modules(
        steady_state_modules, differential_modules
    )
    if misclassified:
        errors.append(
            "The following modules were supplied in the module set of the "
            "other kind: " + ", ".join(misclassified)
        )

    errors.extend(find_driver_problems(drivers))

    return errors


def check_system_inputs(
    initial_state: Mapping[str, float],
    parameters: Mapping[str, float],
    drivers: Mapping[str, Sequence[float]],
    steady_state_modules: Sequence[ModuleCreator],
    differential_modules: Sequence[ModuleCreator],
) -> None:
    """Raise CompositionError if the inputs cannot form a valid system.

    Also logs a warning for each steady-state module input that is
    produced by a later steady-state module.
    """
    errors = validate_system_inputs(
        initial_state,
        parameters,
        drivers,
        steady_state_modules,
        differential_modules,
    )
    if errors:
        raise CompositionError(
            errors,
            duplicate_quantities=find_duplicate_quantities(
                initial_state, parameters, drivers, steady_state_modules
            ),
            undefined_quantities=find_undefined_inputs(
                initial_state,
                parameters,
                drivers,
                steady_state_modules,
                differential_modules,
            ),
        )

    for module_name, quantity in find_out_of_order_inputs(steady_state_modules):
        logger.warning(
            "Steady-state module '%s' reads '%s' before the module that "
            "computes it has run; the value from the previous evaluation "
            "will be used",
            module_name,
            quantity,
        )
