"""
Undamped harmonic oscillator modules.

An object of mass m hangs on a spring with spring constant k. Its
position is the displacement from equilibrium, so the motion obeys

    x(t) = A sin(ωt + φ),   ω = sqrt(k / m)

Units are not fixed by the modules but must be coherent. With a
timestep in hours and positions in meters, velocity is in m/hour and k
in kg/hour², and energies come out in kg·m²/hour².
"""

from dynsim.modules import DifferentialModule, SteadyStateModule


def oscillator_rates(position, velocity, mass, spring_constant):
    """
    Rates of change of position and velocity.

    Parameters:
    -----------
    position : float
        Displacement from equilibrium
    velocity : float
        Velocity
    mass : float
        Mass of the object, must be positive
    spring_constant : float
        Force per unit displacement

    Returns:
    --------
    dxdt : float
        Rate of change of position (= velocity)
    dvdt : float
        Rate of change of velocity (= -k x / m)
    """
    if mass <= 0:
        raise ValueError(f"mass must be positive, got {mass}")
    return velocity, -spring_constant * position / mass


class HarmonicOscillator(DifferentialModule):
    """Change in position and velocity over one timestep."""

    name = "harmonic_oscillator"
    inputs = ("position", "velocity", "mass", "spring_constant", "timestep")
    outputs = ("position", "velocity")

    def compute(self, q):
        dxdt, dvdt = oscillator_rates(
            q["position"], q["velocity"], q["mass"], q["spring_constant"]
        )
        return {
            "position": dxdt * q["timestep"],
            "velocity": dvdt * q["timestep"],
        }


class HarmonicEnergy(SteadyStateModule):
    """Kinetic, spring and total energy of the oscillator."""

    name = "harmonic_energy"
    inputs = ("position", "velocity", "mass", "spring_constant")
    outputs = ("kinetic_energy", "spring_energy", "total_energy")

    def compute(self, q):
        kinetic_energy = 0.5 * q["mass"] * q["velocity"] ** 2
        spring_energy = 0.5 * q["spring_constant"] * q["position"] ** 2
        return {
            "kinetic_energy": kinetic_energy,
            "spring_energy": spring_energy,
            "total_energy": kinetic_energy + spring_energy,
        }
