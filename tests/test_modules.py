"""Tests for the module contract and module factories."""

import pandas as pd
import pytest

import daily_modules
import standard_modules
from dynsim import (
    CompositionError,
    DifferentialModule,
    ModuleCreator,
    ModuleFactory,
    ModuleKind,
    SteadyStateModule,
    UnknownModuleError,
)


class Doubler(SteadyStateModule):
    name = "doubler"
    inputs = ("x",)
    outputs = ("y",)

    def compute(self, q):
        return {"y": 2 * q["x"]}


class Growth(DifferentialModule):
    name = "growth"
    inputs = ("mass", "rate")
    outputs = ("mass",)

    def compute(self, q):
        return {"mass": q["rate"] * q["mass"]}


def test_steady_state_module_overwrites():
    """Steady-state outputs replace the existing values."""
    outputs = {"y": 100.0}
    module = ModuleCreator(Doubler).create_module({"x": 3.0}, outputs)

    module.run()
    module.run()

    assert outputs["y"] == 6.0


def test_differential_module_accumulates():
    """Running a differential module twice doubles its contribution."""
    outputs = {"mass": 0.0}
    module = ModuleCreator(Growth).create_module(
        {"mass": 2.0, "rate": 0.5}, outputs
    )

    module.run()
    assert outputs["mass"] == 1.0

    module.run()
    assert outputs["mass"] == 2.0


def test_module_reads_live_inputs():
    """A module sees later changes to the mapping it was bound to."""
    inputs = {"x": 1.0}
    outputs = {"y": 0.0}
    module = ModuleCreator(Doubler).create_module(inputs, outputs)

    inputs["x"] = 5.0
    module.run()
    assert outputs["y"] == 10.0

    # Rebinding the caller's name does not affect the module
    inputs = {"x": -1.0}
    module.run()
    assert outputs["y"] == 10.0


def test_module_bound_to_temporary_mapping():
    """Literal mappings passed at creation stay valid."""
    outputs = {"y": 0.0}
    module = ModuleCreator(Doubler).create_module({"x": 4.0}, outputs)
    module.run()
    assert outputs["y"] == 8.0


def test_create_module_missing_quantities():
    """Missing inputs or outputs are reported when the module is created."""
    creator = ModuleCreator(Growth)

    with pytest.raises(CompositionError, match="rate") as exc_info:
        creator.create_module({"mass": 1.0}, {"mass": 0.0})
    assert exc_info.value.undefined_quantities == ["rate"]

    with pytest.raises(CompositionError, match="output quantities"):
        creator.create_module({"mass": 1.0, "rate": 1.0}, {})


def test_module_creator_properties():
    creator = ModuleCreator(Growth, library="test")

    assert creator.name == "growth"
    assert creator.qualified_name == "test:growth"
    assert creator.inputs == ("mass", "rate")
    assert creator.outputs == ("mass",)
    assert creator.kind is ModuleKind.DIFFERENTIAL
    assert creator.requires_euler_solver is False
    assert creator == ModuleCreator(Growth, library="test")
    assert creator != ModuleCreator(Growth, library="other")
    assert ModuleCreator(Growth).qualified_name == "growth"


def test_module_creator_rejects_non_modules():
    with pytest.raises(TypeError):
        ModuleCreator(dict)

    class NoName(SteadyStateModule):
        inputs = ("x",)

    with pytest.raises(TypeError, match="does not define a name"):
        ModuleCreator(NoName)


def test_factory_register_and_retrieve():
    factory = ModuleFactory("test", units={"timestep": "hour"})
    factory.register(Doubler)
    factory.register(Growth)

    assert len(factory) == 2
    assert "growth" in factory
    assert factory.get_all_modules() == ["doubler", "growth"]
    assert factory.retrieve("doubler").qualified_name == "test:doubler"
    assert factory.units == {"timestep": "hour"}

    with pytest.raises(ValueError, match="already registered"):
        factory.register(Doubler)


def test_factory_unknown_module():
    factory = ModuleFactory("test")

    with pytest.raises(UnknownModuleError) as exc_info:
        factory.retrieve("missing")

    assert exc_info.value.module_name == "missing"
    assert exc_info.value.library == "test"
    assert "'test' library" in str(exc_info.value)


def test_factory_get_all_quantities():
    factory = ModuleFactory("test")
    factory.register(Growth)

    quantities = factory.get_all_quantities()

    expected = pd.DataFrame(
        {
            "quantity_name": ["mass", "rate", "mass"],
            "module_name": ["growth", "growth", "growth"],
            "quantity_type": ["input", "input", "output"],
        }
    )
    pd.testing.assert_frame_equal(quantities, expected)


def test_module_libraries():
    """Each library builds its own independent factory."""
    standard = standard_modules.create_module_factory()
    daily = daily_modules.create_module_factory()

    assert standard.get_all_modules() == [
        "harmonic_energy",
        "harmonic_oscillator",
        "solar_position_michalsky",
        "thermal_time_linear",
    ]
    assert daily.get_all_modules() == [
        "solar_position_michalsky",
        "thermal_time_linear",
    ]
    assert standard.units == {"timestep": "hour"}
    assert daily.units == {"timestep": "day"}

    # Same name, different libraries
    assert standard.retrieve("thermal_time_linear") != daily.retrieve(
        "thermal_time_linear"
    )
    assert (
        standard.retrieve("solar_position_michalsky").outputs
        == daily.retrieve("solar_position_michalsky").outputs
    )

    # A second factory shares nothing with the first
    assert standard_modules.create_module_factory() is not standard


def test_thermal_time_linear():
    """Hourly module gives 1/24 of the daily rate, zero below tbase."""
    q = {"time": 5.0, "sowing_time": 0.0, "temp": 22.0, "tbase": 10.0}
    hourly = {"TTc": 0.0}
    daily = {"TTc": 0.0}
    standard_modules.create_module_factory().retrieve(
        "thermal_time_linear"
    ).create_module(q, hourly).run()
    daily_modules.create_module_factory().retrieve(
        "thermal_time_linear"
    ).create_module(q, daily).run()

    assert hourly["TTc"] == pytest.approx(0.5)
    assert daily["TTc"] == pytest.approx(12.0)

    # Before sowing and below the base temperature
    for changes in ({"time": -1.0}, {"temp": 9.0}):
        outputs = {"TTc": 0.0}
        standard_modules.ThermalTimeLinear(dict(q, **changes), outputs).run()
        assert outputs["TTc"] == 0.0


def test_solar_position_near_equinox_noon():
    """Near the equinox at solar noon the zenith angle is close to the latitude."""
    q = {
        "lat": 44.0,
        "longitude": -121.0,
        "time": 80.5,
        "time_zone_offset": -8.0,
        "year": 2023.0,
    }
    outputs = {"cosine_zenith_angle": 0.0, "solar_zenith_angle": 0.0}
    standard_modules.SolarPositionMichalsky(q, outputs).run()

    assert outputs["solar_zenith_angle"] == pytest.approx(44.0, abs=1.5)
    assert outputs["cosine_zenith_angle"] == pytest.approx(
        0.719, abs=0.02
    )


def test_solar_position_at_night():
    """At local midnight the sun is below the horizon."""
    q = {
        "lat": 44.0,
        "longitude": -121.0,
        "time": 172.0,
        "time_zone_offset": -8.0,
        "year": 2023.0,
    }
    outputs = {"cosine_zenith_angle": 0.0, "solar_zenith_angle": 0.0}
    standard_modules.SolarPositionMichalsky(q, outputs).run()

    assert outputs["solar_zenith_angle"] > 90
    assert outputs["cosine_zenith_angle"] < 0


def test_harmonic_modules():
    q = {
        "position": 2.0,
        "velocity": 3.0,
        "mass": 4.0,
        "spring_constant": 8.0,
        "timestep": 0.5,
    }
    derivatives = {"position": 0.0, "velocity": 0.0}
    energy = {"kinetic_energy": 0.0, "spring_energy": 0.0, "total_energy": 0.0}

    standard_modules.HarmonicOscillator(q, derivatives).run()
    standard_modules.HarmonicEnergy(q, energy).run()

    assert derivatives == {"position": 1.5, "velocity": -2.0}
    assert energy == {
        "kinetic_energy": 18.0,
        "spring_energy": 16.0,
        "total_energy": 34.0,
    }

    with pytest.raises(ValueError, match="mass must be positive"):
        standard_modules.HarmonicOscillator(
            dict(q, mass=0.0), derivatives
        ).run()
