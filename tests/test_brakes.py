"""Tests for brake distribution, heat, fade, damage and ABS."""

import numpy as np
import pytest

from drivecore.car.brakes import BrakeConfig, Brakes
from drivecore.car.car import Car, CarConfig, CarInputs
from drivecore.errors import ConfigurationError

DT = 1 / 120
NO_SLIP = [0.0, 0.0, 0.0, 0.0]


def _run(brakes: Brakes, seconds: float, pedal: float, speed: float) -> np.ndarray:
    forces = np.zeros(4)
    for _ in range(int(round(seconds / DT))):
        forces = brakes.update(DT, pedal, NO_SLIP, speed)
    return forces


class TestBrakeDistribution:
    """Test the pedal force split."""

    def test_bias_split(self):
        """Test the front/rear split follows the bias."""
        brakes = Brakes()
        forces = brakes.base_forces(1.0)
        assert forces == pytest.approx([7500.0, 7500.0, 5000.0, 5000.0])
        assert forces.sum() == pytest.approx(brakes.config.max_force_n)

    def test_cold_brakes_apply_full_force(self):
        """Test cold, intact brakes pass the pedal force through."""
        brakes = Brakes()
        forces = brakes.update(DT, 0.5, NO_SLIP, 20.0)
        assert forces == pytest.approx(brakes.base_forces(0.5))

    def test_no_pedal_no_force(self):
        """Test a released pedal gives no force."""
        brakes = Brakes()
        assert np.all(brakes.update(DT, 0.0, NO_SLIP, 20.0) == 0.0)


class TestBrakeHeat:
    """Test disc heating and fade."""

    def test_braking_heats_discs(self):
        """Test braking at speed heats the harder-working front discs most."""
        brakes = Brakes()
        _run(brakes, 1.0, 1.0, 30.0)
        temps = brakes.temperatures
        assert temps[0] > temps[2] > brakes.config.initial_temp_c
        assert temps[0] == pytest.approx(temps[1])

    def test_no_heat_at_standstill(self):
        """Test holding the brake while stopped does not heat the discs."""
        brakes = Brakes()
        _run(brakes, 2.0, 1.0, 0.0)
        assert brakes.temperatures == pytest.approx([25.0] * 4)

    def test_discs_cool_toward_ambient(self):
        """Test hot discs cool off the pedal but never below ambient."""
        brakes = Brakes()
        _run(brakes, 2.0, 1.0, 30.0)
        hot = brakes.temperatures
        _run(brakes, 10.0, 0.0, 30.0)
        cooled = brakes.temperatures
        assert np.all(cooled < hot)
        assert np.all(cooled >= 25.0)

    def test_fade_curve(self):
        """Test fade is linear between the fade temperatures."""
        brakes = Brakes()
        assert brakes.fade_factor(300.0) == 1.0
        assert brakes.fade_factor(500.0) == pytest.approx(0.65)
        assert brakes.fade_factor(700.0) == pytest.approx(0.3)

    def test_overheated_brakes_fade(self):
        """Test sustained hard braking fades the brakes to their minimum."""
        brakes = Brakes(BrakeConfig(heat_per_kj=2.0))
        forces = _run(brakes, 3.0, 1.0, 50.0)
        assert brakes.is_overheating
        assert brakes.temperatures == pytest.approx([800.0] * 4)
        assert forces == pytest.approx(brakes.base_forces(1.0) * 0.3)


class TestBrakeDamage:
    """Test damage effects."""

    def test_wheel_damage(self):
        """Test a damaged brake loses force."""
        brakes = Brakes()
        brakes.set_wheel_damage(0, 1.0)
        forces = brakes.update(DT, 1.0, NO_SLIP, 10.0)
        assert forces[0] == pytest.approx(3750.0)
        assert forces[1] == pytest.approx(7500.0)

    def test_system_and_wheel_damage_add(self):
        """Test system damage stacks with a brake's own damage."""
        brakes = Brakes()
        brakes.apply_damage(0.5)
        brakes.apply_damage(0.5, index=2)
        forces = brakes.update(DT, 1.0, NO_SLIP, 10.0)
        assert forces[2] == pytest.approx(5000.0 * 0.5)
        assert forces[3] == pytest.approx(5000.0 * 0.75)

    def test_damage_clamped(self):
        """Test damage stays within 0-1 and force never goes negative."""
        brakes = Brakes()
        brakes.apply_damage(5.0)
        brakes.apply_damage(5.0, index=0)
        assert brakes.system_damage == 1.0
        assert brakes.wheel_damage[0] == 1.0
        forces = brakes.update(DT, 1.0, NO_SLIP, 10.0)
        assert forces[0] == 0.0

    def test_reset(self):
        """Test reset restores cold, intact brakes."""
        brakes = Brakes()
        brakes.apply_damage(0.4)
        _run(brakes, 1.0, 1.0, 30.0)
        brakes.reset()
        assert brakes.system_damage == 0.0
        assert brakes.temperatures == pytest.approx([25.0] * 4)


class TestABS:
    """Test anti-lock braking."""

    def test_disabled_by_default(self):
        """Test locked wheels keep full force without ABS."""
        brakes = Brakes()
        forces = brakes.update(DT, 1.0, [-0.5, -0.5, -0.5, -0.5], 20.0)
        assert not brakes.abs_active
        assert forces == pytest.approx(brakes.base_forces(1.0))

    def test_pulses_slipping_wheel(self):
        """Test ABS releases only the wheel past the slip threshold."""
        brakes = Brakes(BrakeConfig(abs_enabled=True))
        forces = brakes.update(DT, 1.0, [-0.3, 0.0, 0.0, 0.0], 20.0)
        assert brakes.abs_active
        assert forces[0] == pytest.approx(7500.0 * 0.3)
        assert forces[1:] == pytest.approx([7500.0, 5000.0, 5000.0])

    def test_apply_phase(self):
        """Test the second half of the cycle reapplies more force."""
        brakes = Brakes(BrakeConfig(abs_enabled=True))
        for _ in range(5):
            forces = brakes.update(DT, 1.0, [-0.3, 0.0, 0.0, 0.0], 20.0)
        assert forces[0] == pytest.approx(7500.0 * 0.8)

    def test_release_hysteresis(self):
        """Test ABS stays on until the slip falls below the release level."""
        brakes = Brakes(BrakeConfig(abs_enabled=True))
        brakes.update(DT, 1.0, [-0.3, 0.0, 0.0, 0.0], 20.0)
        brakes.update(DT, 1.0, [-0.12, 0.0, 0.0, 0.0], 20.0)
        assert brakes.abs_active
        forces = brakes.update(DT, 1.0, [-0.05, 0.0, 0.0, 0.0], 20.0)
        assert not brakes.abs_active
        assert forces[0] == pytest.approx(7500.0)

    def test_light_pedal_ignored(self):
        """Test ABS stays out of light braking."""
        brakes = Brakes(BrakeConfig(abs_enabled=True))
        brakes.update(DT, 0.05, [-0.3, -0.3, -0.3, -0.3], 20.0)
        assert not brakes.abs_active

    def test_state(self):
        """Test telemetry state."""
        brakes = Brakes(BrakeConfig(abs_enabled=True))
        brakes.update(DT, 1.0, [-0.3, 0.0, 0.0, 0.0], 20.0)
        state = brakes.get_state()
        assert state["abs_active"]
        assert state["abs_wheels"] == [True, False, False, False]
        assert len(state["temperatures_c"]) == 4


class TestBrakesOnCar:
    """Test the brakes inside a car."""

    def test_full_brake_engages_abs(self):
        """Test a full stop from speed triggers ABS only when it is enabled."""
        def brake_from_speed(config):
            car = Car(config)
            car.step(CarInputs(), 1 / 60)
            car.velocity = (30.0, 0.0, 0.0)
            seen = False
            for _ in range(60):
                car.step(CarInputs(brake=1.0), 1 / 60)
                seen = seen or car.snapshot().abs_active
            return car, seen

        car, seen = brake_from_speed(CarConfig(brakes=BrakeConfig(abs_enabled=True)))
        assert seen
        assert car.speed < 30.0

        _, seen = brake_from_speed(CarConfig())
        assert not seen

    def test_braking_heats_car_brakes(self):
        """Test hard braking shows up in the wheel snapshots."""
        car = Car()
        car.step(CarInputs(), 1 / 60)
        car.velocity = (30.0, 0.0, 0.0)
        for _ in range(60):
            car.step(CarInputs(brake=1.0), 1 / 60)
        snap = car.snapshot()
        assert snap.wheels[0].brake_temperature > 25.0
        assert "brakes" in car.get_telemetry()

    def test_wheel_damage_reaches_brakes(self):
        """Test a damaged corner also loses brake force."""
        car = Car()
        car.step(CarInputs(), 1 / 60)
        car.damage._wheels[0] = 0.6
        car.step(CarInputs(), 1 / 60)
        assert car.brakes.wheel_damage[0] == pytest.approx(0.6)


class TestBrakeConfig:
    """Test brake configuration validation."""

    def test_invalid(self):
        """Test inconsistent brake settings are rejected."""
        with pytest.raises(ConfigurationError):
            BrakeConfig(front_bias=1.5)
        with pytest.raises(ConfigurationError):
            BrakeConfig(fade_start_c=600.0, fade_full_c=400.0)
        with pytest.raises(ConfigurationError):
            BrakeConfig(abs_release_slip=0.2, abs_slip_threshold=0.15)
        with pytest.raises(ConfigurationError):
            BrakeConfig(abs_frequency_hz=0.0)

    def test_from_dict(self):
        """Test brake settings load through the car configuration."""
        config = CarConfig.from_dict({"brakes": {"abs_enabled": True, "front_bias": 0.65}})
        assert config.brakes.abs_enabled
        assert config.brakes.front_bias == 0.65
