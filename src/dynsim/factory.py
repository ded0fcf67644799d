"""Module libraries.

A ModuleFactory is a named collection of module classes. Factories are
ordinary values: each module library builds its own, and any number of
them can be used side by side.
"""

import logging
from typing import Dict, List, Mapping, Optional

import pandas as pd

from dynsim.errors import UnknownModuleError
from dynsim.modules import ModuleCreator

logger = logging.getLogger(__name__)


class ModuleFactory:
    """Registry of the modules in one module library.

    Parameters
    ----------
    library : str
        Name of the library, used to qualify module names
    units : mapping of str to str, optional
        Unit conventions assumed by the library's modules, keyed by
        quantity name (e.g. ``{"timestep": "hour"}``)

    Examples
    --------
    >>> factory = ModuleFactory("my_library", units={"timestep": "hour"})
    >>> @factory.register
    ... class Growth(DifferentialModule):
    ...     name = "growth"
    ...     inputs = ("mass", "rate")
    ...     outputs = ("mass",)
    ...     def compute(self, q):
    ...         return {"mass": q["rate"] * q["mass"]}
    >>> factory.retrieve("growth")
    ModuleCreator('my_library:growth')
    """

    def __init__(self, library: str, units: Optional[Mapping[str, str]] = None):
        self.library = library
        self.units = dict(units or {})
        self._creators: Dict[str, ModuleCreator] = {}

    def register(self, module_class: type) -> type:
        """Add a module class to the library.

        Returns the class unchanged so this can be used as a decorator.
        """
        creator = ModuleCreator(module_class, library=self.library)
        if creator.name in self._creators:
            raise ValueError(
                f"A module named '{creator.name}' is already registered in "
                f"the '{self.library}' library"
            )
        self._creators[creator.name] = creator
        logger.debug("Registered module %s", creator.qualified_name)
        return module_class

    def retrieve(self, module_name: str) -> ModuleCreator:
        """Return the creator for the named module.

        Raises
        ------
        UnknownModuleError
            If the library has no module with this name
        """
        try:
            return self._creators[module_name]
        except KeyError:
            raise UnknownModuleError(module_name, self.library) from None

    def get_all_modules(self) -> List[str]:
        """Return the names of all modules in the library, sorted."""
        return sorted(self._creators)

    def get_all_quantities(self) -> pd.DataFrame:
        """Return every quantity declared by every module in the library.

        Returns
        -------
        quantities : pandas.DataFrame
            One row per (module, quantity, role) with columns
            'quantity_name', 'module_name' and 'quantity_type', where
            'quantity_type' is either 'input' or 'output'.
        """
        rows = []
        for module_name in self.get_all_modules():
            creator = self._creators[module_name]
            for quantity_type, names in (
                ("input", creator.inputs),
                ("output", creator.outputs),
            ):
                for quantity_name in names:
                    rows.append(
                        {
                            "quantity_name": quantity_name,
                            "module_name": module_name,
                            "quantity_type": quantity_type,
                        }
                    )
        return pd.DataFrame(
            rows, columns=["quantity_name", "module_name", "quantity_type"]
        )

    def __contains__(self, module_name: str) -> bool:
        return module_name in self._creators

    def __len__(self):
        return len(self._creators)

    def __repr__(self):
        return (
            f"ModuleFactory(library='{self.library}', "
            f"n_modules={len(self._creators)})"
        )
