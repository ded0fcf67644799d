"""
Daily Module Library

Modules for the dynsim engine that assume a timestep of one day. Some
share their names with modules in ``standard_modules``; use the
qualified name (``daily:thermal_time_linear``) to pick one in a
configuration file.
"""

from dynsim.factory import ModuleFactory
from dynsim.modules import DifferentialModule

from standard_modules.solar_position import SolarPositionMichalsky
from standard_modules.thermal_time import thermal_time_rate

LIBRARY_NAME = "daily"
UNITS = {"timestep": "day"}


class DailyThermalTimeLinear(DifferentialModule):
    """Thermal time accumulated over one daily timestep."""

    name = "thermal_time_linear"
    inputs = ("time", "sowing_time", "temp", "tbase")
    outputs = ("TTc",)

    def compute(self, q):
        return {
            "TTc": thermal_time_rate(
                q["time"], q["sowing_time"], q["temp"], q["tbase"]
            )
        }


class DailySolarPositionMichalsky(SolarPositionMichalsky):
    """Same inputs, outputs and algorithm as the standard module."""


def create_module_factory():
    """Return a new ModuleFactory holding the daily modules."""
    factory = ModuleFactory(LIBRARY_NAME, units=UNITS)
    factory.register(DailyThermalTimeLinear)
    factory.register(DailySolarPositionMichalsky)
    return factory


__all__ = [
    "create_module_factory",
    "DailyThermalTimeLinear",
    "DailySolarPositionMichalsky",
]
