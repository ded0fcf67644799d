"""
Standard Module Library

Modules for the dynsim engine that assume an hourly timestep.

Modules:
--------
harmonic_oscillator : differential
    Position and velocity of an undamped mass on a spring
harmonic_energy : steady state
    Kinetic, spring and total energy of the oscillator
thermal_time_linear : differential
    Thermal time (TTc) above a base temperature, per hour
solar_position_michalsky : steady state
    Solar zenith angle (Michalsky 1988)

Examples:
---------
>>> from standard_modules import create_module_factory
>>> factory = create_module_factory()
>>> factory.get_all_modules()
['harmonic_energy', 'harmonic_oscillator', 'solar_position_michalsky',
 'thermal_time_linear']
"""

from dynsim.factory import ModuleFactory

from standard_modules.oscillator import HarmonicEnergy, HarmonicOscillator
from standard_modules.solar_position import SolarPositionMichalsky
from standard_modules.thermal_time import ThermalTimeLinear

LIBRARY_NAME = "standard"
UNITS = {"timestep": "hour"}


def create_module_factory():
    """Return a new ModuleFactory holding the standard modules."""
    factory = ModuleFactory(LIBRARY_NAME, units=UNITS)
    for module_class in (
        HarmonicOscillator,
        HarmonicEnergy,
        ThermalTimeLinear,
        SolarPositionMichalsky,
    ):
        factory.register(module_class)
    return factory


__all__ = [
    "create_module_factory",
    "HarmonicOscillator",
    "HarmonicEnergy",
    "ThermalTimeLinear",
    "SolarPositionMichalsky",
]
