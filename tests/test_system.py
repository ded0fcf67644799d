"""Tests for validation and the dynamical system."""

import logging

import numpy as np
import pytest

import daily_modules
import standard_modules
from dynsim import (
    CompositionError,
    DifferentialModule,
    DynamicalSystem,
    EvaluationError,
    ModuleCreator,
    SteadyStateModule,
    make_ode_solver,
    validate_system_inputs,
)
from dynsim.inputs import InterpolatedInput


class Product(SteadyStateModule):
    name = "product"
    inputs = ("a", "b")
    outputs = ("c", "d")

    def compute(self, q):
        return {"c": q["a"] * q["b"], "d": q["a"] + q["b"]}


class Constant(SteadyStateModule):
    name = "constant"
    inputs = ()
    outputs = ("a",)

    def compute(self, q):
        return {"a": 3.0}


class Drift(DifferentialModule):
    name = "drift"
    inputs = ("c",)
    outputs = ("x",)

    def compute(self, q):
        return {"x": q["c"]}


class Fragile(SteadyStateModule):
    name = "fragile"
    inputs = ("x",)
    outputs = ("root",)

    def compute(self, q):
        if q["x"] < 0:
            raise ValueError("x must not be negative")
        return {"root": np.sqrt(q["x"])}


class Rate(DifferentialModule):
    name = "rate"
    inputs = ("b",)
    outputs = ("r",)

    def compute(self, q):
        return {"r": q["b"]}


@pytest.fixture
def factory():
    return standard_modules.create_module_factory()


@pytest.fixture
def thermal_time_inputs():
    return dict(
        initial_state={"TTc": 0.0},
        parameters={"sowing_time": 0.0, "tbase": 5.0, "timestep": 1.0},
        drivers={"time": [0, 1, 2, 3], "temp": [10, 12, 15, 20]},
    )


def test_interpolated_input():
    u = InterpolatedInput([0.0, 1.0, 0.5, 0.0])

    assert len(u) == 4
    assert u(1) == 1.0
    assert u(1.5) == pytest.approx(0.75)
    assert u(2.25) == pytest.approx(0.375)

    single = InterpolatedInput([7.0])
    assert single(0) == 7.0
    assert single(0.5) == 7.0


def test_duplicate_quantities_listed_exactly():
    """Every quantity defined more than once is named, and no others."""
    errors = validate_system_inputs(
        initial_state={"x": 0.0, "c": 1.0},
        parameters={"a": 1.0, "b": 2.0, "x": 5.0},
        drivers={"time": [0, 1]},
        steady_state_modules=[ModuleCreator(Product)],
        differential_modules=[],
    )

    assert errors == [
        "The following quantities were defined more than once in the "
        "inputs: c, x"
    ]

    with pytest.raises(CompositionError) as exc_info:
        DynamicalSystem(
            {"x": 0.0, "c": 1.0},
            {"a": 1.0, "b": 2.0, "x": 5.0},
            {"time": [0, 1]},
            [ModuleCreator(Product)],
            [],
        )
    assert exc_info.value.duplicate_quantities == ["c", "x"]
    assert str(exc_info.value).startswith(
        "the supplied inputs cannot form a valid dynamical system"
    )


def test_conflicting_modules_from_two_libraries():
    """Same-named steady-state modules conflict when their outputs overlap."""
    standard = standard_modules.create_module_factory()
    daily = daily_modules.create_module_factory()

    with pytest.raises(
        CompositionError,
        match="(?s)the supplied inputs cannot form a valid dynamical system.*"
        "The following quantities were defined more than once in the inputs:",
    ) as exc_info:
        DynamicalSystem(
            {"TTc": 0.0},
            {
                "timestep": 1.0,
                "lat": 44.0,
                "longitude": -121.0,
                "time_zone_offset": -8.0,
                "year": 2023.0,
            },
            {"time": list(range(10))},
            [
                standard.retrieve("solar_position_michalsky"),
                daily.retrieve("solar_position_michalsky"),
            ],
            [],
        )

    assert exc_info.value.duplicate_quantities == [
        "cosine_zenith_angle",
        "solar_zenith_angle",
    ]


def test_undefined_input_fails_at_construction(factory, thermal_time_inputs):
    thermal_time_inputs["parameters"].pop("tbase")

    with pytest.raises(CompositionError, match="tbase") as exc_info:
        DynamicalSystem(
            steady_state_modules=[],
            differential_modules=[factory.retrieve("thermal_time_linear")],
            **thermal_time_inputs,
        )

    assert exc_info.value.undefined_quantities == ["tbase"]


def test_derivative_of_unknown_state(thermal_time_inputs, factory):
    thermal_time_inputs["initial_state"] = {"other": 0.0}

    with pytest.raises(CompositionError, match="not quantities in the initial state: TTc"):
        DynamicalSystem(
            steady_state_modules=[],
            differential_modules=[factory.retrieve("thermal_time_linear")],
            **thermal_time_inputs,
        )


@pytest.mark.parametrize(
    "drivers, message",
    [
        ({}, "At least one driver"),
        ({"time": [0, 1, 2], "temp": [1, 2]}, "same length"),
        ({"time": []}, "have no values: time"),
    ],
)
def test_driver_problems(drivers, message):
    with pytest.raises(CompositionError, match=message):
        DynamicalSystem({}, {}, drivers, [], [])


def test_all_problems_reported_together():
    errors = validate_system_inputs(
        initial_state={"x": 0.0},
        parameters={"x": 1.0},
        drivers={"time": [0, 1], "other": [0]},
        steady_state_modules=[],
        differential_modules=[ModuleCreator(Drift)],
    )

    assert len(errors) == 3
    assert "defined more than once" in errors[0]
    assert "not defined" in errors[1] and errors[1].endswith(": c")
    assert "same length" in errors[2]


def test_out_of_order_modules_warn(caplog):
    """Reading a later module's output is allowed but logged."""
    with caplog.at_level(logging.WARNING, logger="dynsim.validation"):
        system = DynamicalSystem(
            {},
            {"b": 2.0},
            {"time": [0, 1]},
            [ModuleCreator(Product), ModuleCreator(Constant)],
            [],
        )

    assert "reads 'a' before the module that computes it" in caplog.text

    # First evaluation sees a = 0, the second the value from the first
    snapshot = system.observe(0)
    assert snapshot["c"] == 0.0
    snapshot = system.observe(1)
    assert snapshot["c"] == 6.0


def test_system_properties(factory, thermal_time_inputs):
    system = DynamicalSystem(
        steady_state_modules=[],
        differential_modules=[factory.retrieve("thermal_time_linear")],
        **thermal_time_inputs,
    )

    assert system.ntimes == 4
    assert system.requires_euler_solver is False
    assert system.differential_quantity_names == ["TTc"]
    assert system.driver_names == ["time", "temp"]
    assert system.output_quantity_names == []
    assert system.initial_state == {"TTc": 0.0}

    with pytest.raises(TypeError):
        system.parameters["tbase"] = 0.0


def test_system_copies_inputs(factory, thermal_time_inputs):
    system = DynamicalSystem(
        steady_state_modules=[],
        differential_modules=[factory.retrieve("thermal_time_linear")],
        **thermal_time_inputs,
    )

    thermal_time_inputs["parameters"]["tbase"] = 100.0
    thermal_time_inputs["drivers"]["temp"][0] = -50.0

    assert system.parameters["tbase"] == 5.0
    np.testing.assert_allclose(system.evaluate(0), [5.0 / 24])


def test_evaluate_and_reset(factory, thermal_time_inputs):
    system = DynamicalSystem(
        steady_state_modules=[],
        differential_modules=[factory.retrieve("thermal_time_linear")],
        **thermal_time_inputs,
    )

    np.testing.assert_allclose(system.evaluate(1), [7.0 / 24])
    # Drivers are interpolated between time points
    np.testing.assert_allclose(system.evaluate(1.5), [8.5 / 24])

    # Evaluating again gives the same answer; derivatives are zeroed
    np.testing.assert_allclose(system.evaluate(1), [7.0 / 24])

    system.set_differential_quantities([3.0])
    assert system.get_current_state() == {"TTc": 3.0}

    system.reset()
    assert system.get_current_state() == {"TTc": 0.0}
    system.reset()
    assert system.get_current_state() == {"TTc": 0.0}

    with pytest.raises(ValueError, match="Expected 1 values"):
        system.set_differential_quantities([1.0, 2.0])


def test_additive_differential_modules(factory, thermal_time_inputs):
    """Contributions to the same derivative are summed."""
    system = DynamicalSystem(
        steady_state_modules=[],
        differential_modules=[
            factory.retrieve("thermal_time_linear"),
            daily_modules.create_module_factory().retrieve("thermal_time_linear"),
        ],
        **thermal_time_inputs,
    )

    np.testing.assert_allclose(system.evaluate(0), [5.0 * 25 / 24])


def test_module_failure_raises_evaluation_error():
    system = DynamicalSystem(
        {"x": -1.0},
        {},
        {"time": [0, 1]},
        [ModuleCreator(Fragile)],
        [],
    )

    with pytest.raises(EvaluationError, match="'fragile' failed at time index 0"):
        system.evaluate(0)


def test_modules_in_wrong_set():
    """A module's kind must match the set it is supplied in."""
    with pytest.raises(CompositionError, match="module set of the other kind: rate, constant"):
        DynamicalSystem(
            {"a": 0.0},
            {"b": 2.0},
            {"time": [0, 1, 2]},
            [ModuleCreator(Rate)],
            [ModuleCreator(Constant)],
        )


def test_reset_after_integration(factory, thermal_time_inputs):
    """Integration followed by reset restores the initial state."""
    system = DynamicalSystem(
        steady_state_modules=[],
        differential_modules=[factory.retrieve("thermal_time_linear")],
        **thermal_time_inputs,
    )

    result = make_ode_solver("euler").integrate(system)
    assert system.get_current_state() == {"TTc": result["TTc"][-1]}
    assert result["TTc"][-1] > 0

    system.reset()
    assert system.get_current_state() == {"TTc": 0.0}

    # A second integration after reset repeats the first
    assert make_ode_solver("euler").integrate(system) == result


def test_reset_clears_steady_state_outputs():
    """Outputs read before they are computed are 0 again after reset."""
    system = DynamicalSystem(
        {},
        {"b": 2.0},
        {"time": [0, 1]},
        [ModuleCreator(Product), ModuleCreator(Constant)],
        [],
    )
    assert system.observe(0)["c"] == 0.0
    assert system.observe(1)["c"] == 6.0

    system.reset()

    assert system.observe(0)["c"] == 0.0
