"""
Thermal time accumulation.

Thermal time (TTc, degree-days) accumulates the amount by which the air
temperature exceeds a base temperature, starting at the sowing time.
"""

from dynsim.modules import DifferentialModule

HOURS_PER_DAY = 24.0


def thermal_time_rate(time, sowing_time, temp, tbase):
    """
    Rate of thermal time accumulation in degree-days per day.

    Zero before sowing and whenever temp <= tbase.

    Parameters:
    -----------
    time : float
        Current time [day of year]
    sowing_time : float
        Time of sowing [day of year]
    temp : float
        Air temperature [°C]
    tbase : float
        Base temperature [°C]
    """
    if time < sowing_time or temp <= tbase:
        return 0.0
    return temp - tbase


class ThermalTimeLinear(DifferentialModule):
    """Thermal time accumulated over one hourly timestep."""

    name = "thermal_time_linear"
    inputs = ("time", "sowing_time", "temp", "tbase")
    outputs = ("TTc",)

    def compute(self, q):
        rate = thermal_time_rate(q["time"], q["sowing_time"], q["temp"], q["tbase"])
        return {"TTc": rate / HOURS_PER_DAY}
