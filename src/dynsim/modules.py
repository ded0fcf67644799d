"""Module contract for pluggable computation units.

A module maps named input quantities to named output quantities. Module
classes declare their inputs and outputs as class attributes and
implement ``compute``, which returns the value of every output. How
those values are merged into the output mapping depends on the module
kind and is applied here, not by the individual modules:

- steady-state ("direct") modules overwrite their outputs
- differential modules add to their outputs, since several differential
  modules may contribute to the derivative of the same quantity

Notes
-----
A module keeps a reference to the input mapping it was created with, so
``run`` always sees the current contents of that mapping. This is how
the dynamical system feeds new state and driver values to its modules
at each step.

Examples
--------
>>> class Decay(DifferentialModule):
...     name = "decay"
...     inputs = ("amount", "rate")
...     outputs = ("amount",)
...
...     def compute(self, q):
...         return {"amount": -q["rate"] * q["amount"]}
>>> creator = ModuleCreator(Decay)
>>> inputs = {"amount": 2.0, "rate": 0.5}
>>> outputs = {"amount": 0.0}
>>> module = creator.create_module(inputs, outputs)
>>> module.run()
>>> outputs["amount"]
-1.0
"""

from enum import Enum
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple

from dynsim.errors import CompositionError


class ModuleKind(str, Enum):
    """How a module's outputs are merged into its output mapping."""

    STEADY_STATE = "steady_state"
    DIFFERENTIAL = "differential"


class Module:
    """Base class for all modules.

    Subclasses set the class attributes below and implement
    ``compute``. They should derive from SteadyStateModule or
    DifferentialModule rather than from Module directly.

    Parameters
    ----------
    input_quantities : mapping of str to float
        Mapping holding (at least) every declared input. The module
        keeps a reference to it.
    output_quantities : mutable mapping of str to float
        Mapping holding every declared output. For differential modules
        the outputs must be zeroed before each ``run``.

    Attributes
    ----------
    name : str
        Module name, unique within a module library
    inputs : tuple of str
        Names of the input quantities, in order
    outputs : tuple of str
        Names of the output quantities, in order
    kind : ModuleKind
        Selects the output merge policy
    requires_euler_solver : bool
        True when the module is not smooth enough for higher-order or
        adaptive solvers
    """

    name: str = ""
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()
    kind: Optional[ModuleKind] = None
    requires_euler_solver: bool = False

    def __init__(
        self,
        input_quantities: Mapping[str, float],
        output_quantities: MutableMapping[str, float],
    ):
        missing_inputs = [q for q in self.inputs if q not in input_quantities]
        missing_outputs = [
            q for q in self.outputs if q not in output_quantities
        ]
        errors = []
        if missing_inputs:
            errors.append(
                f"Module '{self.name}' requires the following input quantities "
                f"that were not supplied: {', '.join(missing_inputs)}"
            )
        if missing_outputs:
            errors.append(
                f"Module '{self.name}' requires the following output quantities "
                f"that were not supplied: {', '.join(missing_outputs)}"
            )
        if errors:
            raise CompositionError(errors, undefined_quantities=missing_inputs)

        self.input_quantities = input_quantities
        self.output_quantities = output_quantities

    def compute(self, q: Mapping[str, float]) -> Dict[str, float]:
        """Return the value of every output given the current inputs."""
        raise NotImplementedError

    def run(self) -> None:
        """Compute outputs and merge them into the output mapping."""
        values = self.compute(self.input_quantities)
        if self.kind is ModuleKind.DIFFERENTIAL:
            for name in self.outputs:
                self.output_quantities[name] += values[name]
        else:
            for name in self.outputs:
                self.output_quantities[name] = values[name]

    def __repr__(self):
        return f"{type(self).__name__}(name='{self.name}')"


class SteadyStateModule(Module):
    """Module whose outputs are recomputed from scratch on every run."""

    kind = ModuleKind.STEADY_STATE


class DifferentialModule(Module):
    """Module whose outputs are rates of change added onto existing values."""

    kind = ModuleKind.DIFFERENTIAL


class ModuleCreator:
    """Factory for instances of one module class.

    Module creators are what module libraries hand out and what module
    sets contain. Two creators with the same module name can come from
    different libraries; ``qualified_name`` tells them apart.

    Parameters
    ----------
    module_class : type
        Subclass of SteadyStateModule or DifferentialModule
    library : str, optional
        Name of the library the module belongs to
    """

    def __init__(self, module_class: type, library: Optional[str] = None):
        if not (
            isinstance(module_class, type) and issubclass(module_class, Module)
        ):
            raise TypeError(f"{module_class!r} is not a Module subclass")
        if module_class.kind is None:
            raise TypeError(
                f"{module_class.__name__} must derive from SteadyStateModule "
                "or DifferentialModule"
            )
        if not module_class.name:
            raise TypeError(f"{module_class.__name__} does not define a name")
        self.module_class = module_class
        self.library = library

    @property
    def name(self) -> str:
        return self.module_class.name

    @property
    def qualified_name(self) -> str:
        if self.library is None:
            return self.name
        return f"{self.library}:{self.name}"

    @property
    def inputs(self) -> Tuple[str, ...]:
        return tuple(self.module_class.inputs)

    @property
    def outputs(self) -> Tuple[str, ...]:
        return tuple(self.module_class.outputs)

    @property
    def kind(self) -> ModuleKind:
        return self.module_class.kind

    @property
    def requires_euler_solver(self) -> bool:
        return bool(self.module_class.requires_euler_solver)

    def create_module(
        self,
        input_quantities: Mapping[str, float],
        output_quantities: MutableMapping[str, float],
    ) -> Module:
        """Create a module instance bound to the given mappings."""
        return self.module_class(input_quantities, output_quantities)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ModuleCreator):
            return NotImplemented
        return (
            self.module_class is other.module_class
            and self.library == other.library
        )

    def __hash__(self):
        return hash((self.module_class, self.library))

    def __repr__(self):
        return f"ModuleCreator('{self.qualified_name}')"
