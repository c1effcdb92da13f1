"""Tests for the tire model and per-wheel force solution."""

import math

import numpy as np
import pytest

from drivecore.car.tires import (
    TireConfig,
    friction_circle,
    lateral_force,
    load_factor,
    longitudinal_force,
    magic_formula,
    peak_slip,
    slip_for_force,
    temperature_grip,
    temperature_rate,
)
from drivecore.car.wheel import FRONT_LEFT, REAR_RIGHT, Wheel, WheelInputs
from drivecore.errors import ConfigurationError

NOMINAL = 3500.0


class TestMagicFormula:
    """Test the slip curve."""

    def test_zero_slip_zero_force(self):
        """Test no slip gives no force."""
        assert magic_formula(0.0, 10.0, 1.9, 1.0) == 0.0

    def test_odd_symmetry(self):
        """Test the curve is odd in slip."""
        for slip in (0.02, 0.1, 0.5):
            assert magic_formula(-slip, 10.0, 1.9, 1.0) == pytest.approx(-magic_formula(slip, 10.0, 1.9, 1.0))

    def test_bounded_by_peak(self):
        """Test the curve never exceeds D."""
        slips = np.linspace(-2.0, 2.0, 401)
        values = [abs(magic_formula(s, 10.0, 1.9, 1.2)) for s in slips]
        assert max(values) <= 1.2 + 1e-9

    def test_peak_at_peak_slip(self):
        """Test the simplified curve peaks at peak_slip."""
        config = TireConfig()
        s = peak_slip(config)
        assert magic_formula(s, config.b, config.c, config.d) == pytest.approx(config.d)

    def test_curvature_changes_shape(self):
        """Test E only applies when curvature is enabled."""
        plain = TireConfig()
        curved = TireConfig(use_curvature=True)
        slip = 0.3
        assert lateral_force(slip, NOMINAL, 1.0, plain) != pytest.approx(lateral_force(slip, NOMINAL, 1.0, curved))


class TestTireForces:
    """Test force helpers."""

    def test_lateral_force_opposes_slip(self):
        """Test a wheel sliding left is pushed right."""
        config = TireConfig()
        assert lateral_force(0.05, NOMINAL, 1.0, config) < 0
        assert lateral_force(-0.05, NOMINAL, 1.0, config) > 0

    def test_longitudinal_force_follows_slip(self):
        """Test positive slip ratio drives forward."""
        config = TireConfig()
        assert longitudinal_force(0.1, NOMINAL, 1.0, config) > 0
        assert longitudinal_force(-0.1, NOMINAL, 1.0, config) < 0

    def test_no_load_no_force(self):
        """Test lifted tires transmit nothing."""
        config = TireConfig()
        assert lateral_force(0.2, 0.0, 1.0, config) == 0.0
        assert longitudinal_force(0.2, 0.0, 1.0, config) == 0.0

    def test_friction_circle_scales_uniformly(self):
        """Test combined force is limited and direction kept."""
        fx, fy = friction_circle(3000.0, 4000.0, 2500.0)
        assert math.hypot(fx, fy) == pytest.approx(2500.0)
        assert fx / fy == pytest.approx(0.75)

    def test_friction_circle_within_limit(self):
        """Test forces inside the circle are untouched."""
        assert friction_circle(100.0, -200.0, 1000.0) == (100.0, -200.0)

    def test_friction_circle_zero_limit(self):
        """Test a zero limit removes all force."""
        assert friction_circle(100.0, 100.0, 0.0) == (0.0, 0.0)


class TestLoadSensitivity:
    """Test load factor."""

    def test_nominal_load(self):
        """Test full grip at nominal load."""
        assert load_factor(NOMINAL, TireConfig()) == pytest.approx(1.0)

    def test_heavier_loads_lose_grip(self):
        """Test grip per Newton drops with load."""
        config = TireConfig()
        assert load_factor(2 * NOMINAL, config) < 1.0
        assert load_factor(0.5 * NOMINAL, config) > 1.0

    def test_clamped(self):
        """Test the factor stays in its configured range."""
        config = TireConfig()
        assert load_factor(100 * NOMINAL, config) == pytest.approx(config.min_load_factor)
        assert load_factor(1.0, config) <= config.max_load_factor

    def test_lifted(self):
        """Test zero load gives zero factor."""
        assert load_factor(0.0, TireConfig()) == 0.0


class TestTemperature:
    """Test temperature grip and heating."""

    def test_cold_tires(self):
        """Test cold tires have reduced grip."""
        config = TireConfig()
        assert temperature_grip(20.0, config) == pytest.approx(0.7)
        assert temperature_grip(35.0, config) == pytest.approx(0.85)

    def test_optimal_window(self):
        """Test full grip in the optimal window."""
        assert temperature_grip(90.0, TireConfig()) == 1.0

    def test_overheated(self):
        """Test overheating reduces grip linearly."""
        assert temperature_grip(110.0, TireConfig()) == pytest.approx(0.8)

    def test_heating_and_cooling(self):
        """Test slip heats and ambient cools."""
        config = TireConfig()
        assert temperature_rate(50.0, 0.2, 25.0, config) > 0
        assert temperature_rate(90.0, 0.0, 25.0, config) < 0
        assert temperature_rate(25.0, 0.0, 25.0, config) == 0.0


class TestSlipForForce:
    """Test the inverse curve."""

    @pytest.mark.parametrize("share", [-0.9, -0.3, 0.0, 0.4, 0.99])
    def test_inverse_within_limit(self, share):
        """Test the slip reproduces the requested force."""
        config = TireConfig()
        limit = config.d * NOMINAL
        slip = slip_for_force(share * limit, limit, config)
        assert longitudinal_force(slip, NOMINAL, 1.0, config) == pytest.approx(share * limit, abs=1e-6)

    def test_saturates_beyond_limit(self):
        """Test demands past the limit produce large, bounded slip."""
        config = TireConfig()
        slip = slip_for_force(10.0 * NOMINAL, NOMINAL, config)
        assert slip == 1.0
        assert slip_for_force(-1.5 * NOMINAL, NOMINAL, config) < -peak_slip(config)


class TestTireConfig:
    """Test tire configuration validation."""

    def test_rejects_bad_coefficients(self):
        """Test non-positive B, C, D are rejected."""
        with pytest.raises(ConfigurationError):
            TireConfig(b=0.0)
        with pytest.raises(ConfigurationError):
            TireConfig(d=-1.0)

    def test_rejects_bad_radius(self):
        """Test non-positive radius is rejected."""
        with pytest.raises(ConfigurationError):
            TireConfig(radius_m=0.0)


def _wheel(load: float = NOMINAL) -> Wheel:
    wheel = Wheel(FRONT_LEFT, np.array([1.35, 0.8, -0.5]))
    wheel.load = load
    wheel.temperature = 90.0
    return wheel


class TestWheel:
    """Test the per-wheel force solution."""

    def test_initial_state(self):
        """Test a new wheel is cold, intact and still."""
        wheel = Wheel(REAR_RIGHT, np.zeros(3))
        assert wheel.name == "RR"
        assert not wheel.is_front and not wheel.is_left
        assert wheel.damage == 0.0
        assert wheel.temperature == wheel.config.initial_temp_c
        assert wheel.is_lifted

    def test_setters_clamp(self):
        """Test load, damage and temperature are kept in range."""
        wheel = _wheel()
        wheel.load = -10.0
        wheel.damage = 2.0
        wheel.temperature = 500.0
        assert wheel.load == 0.0
        assert wheel.damage == 1.0
        assert wheel.temperature == wheel.config.max_temp_c

    def test_lifted_wheel_no_force(self):
        """Test a wheel without load produces nothing."""
        wheel = _wheel(load=0.0)
        fx, fy = wheel.solve_forces(WheelInputs(v_long=10.0, v_lat=2.0, drive_force=5000.0), 1 / 120)
        assert (fx, fy) == (0.0, 0.0)
        assert wheel.grip == 0.0

    def test_force_within_friction_circle(self):
        """Test the combined force never exceeds mu * load."""
        wheel = _wheel()
        fx, fy = wheel.solve_forces(WheelInputs(v_long=20.0, v_lat=5.0, drive_force=8000.0), 1 / 120)
        assert math.hypot(fx, fy) <= wheel.mu * wheel.load + 1e-6

    def test_lateral_force_opposes_slide(self):
        """Test sideways sliding produces a restoring force."""
        wheel = _wheel()
        _, fy = wheel.solve_forces(WheelInputs(v_long=15.0, v_lat=1.0), 1 / 120)
        assert fy < 0
        assert wheel.slip_angle > 0

    def test_lateral_force_limited_to_cancel_slip(self):
        """Test lateral force cannot reverse a tiny lateral slide."""
        wheel = _wheel()
        dt = 1 / 120
        inputs = WheelInputs(v_long=0.0, v_lat=0.001, mass_share=350.0)
        _, fy = wheel.solve_forces(inputs, dt)
        assert abs(fy) <= inputs.mass_share * abs(inputs.v_lat) / dt + 1e-9

    def test_brake_never_reverses(self):
        """Test braking at crawl speed is capped at what stops the wheel."""
        wheel = _wheel()
        dt = 1 / 120
        inputs = WheelInputs(v_long=0.05, brake_force=10000.0, mass_share=350.0)
        fx, _ = wheel.solve_forces(inputs, dt)
        assert fx < 0
        assert abs(fx) <= inputs.mass_share * inputs.v_long / dt + 1e-9

    def test_brake_at_standstill(self):
        """Test the brake does nothing to a stationary wheel."""
        wheel = _wheel()
        fx, fy = wheel.solve_forces(WheelInputs(brake_force=10000.0), 1 / 120)
        assert fx == 0.0
        assert fy == 0.0

    def test_handbrake_locks(self):
        """Test the handbrake slides against motion with full slip."""
        wheel = _wheel()
        fx, _ = wheel.solve_forces(WheelInputs(v_long=10.0, handbrake=True), 1 / 120)
        assert fx < 0
        assert wheel.slip_ratio == -1.0

    def test_handbrake_reduces_lateral_grip(self):
        """Test the locked wheel keeps only part of its lateral force."""
        free = _wheel()
        locked = _wheel()
        inputs = WheelInputs(v_long=10.0, v_lat=0.5)
        _, fy_free = free.solve_forces(inputs, 1 / 120)
        _, fy_locked = locked.solve_forces(
            WheelInputs(v_long=10.0, v_lat=0.5, handbrake=True), 1 / 120,
        )
        assert abs(fy_locked) < abs(fy_free)

    def test_damage_reduces_grip(self):
        """Test damaged wheels grip less."""
        wheel = _wheel()
        intact = wheel.effective_grip(1.0)
        wheel.damage = 1.0
        assert wheel.effective_grip(1.0) == pytest.approx(intact * 0.5)

    def test_spin_follows_ground_speed(self):
        """Test a free-rolling wheel spins at v / r."""
        wheel = _wheel()
        wheel.solve_forces(WheelInputs(v_long=10.0), 1 / 120)
        wheel.update_spin(10.0, 1 / 120)
        assert wheel.angular_velocity == pytest.approx(10.0 / wheel.radius)
        assert 0.0 <= wheel.rotation < 2 * math.pi

    def test_locked_wheel_does_not_spin(self):
        """Test a locked wheel stops."""
        wheel = _wheel()
        wheel.update_spin(10.0, 1 / 120, locked=True)
        assert wheel.angular_velocity == 0.0

    def test_sliding_heats_tire(self):
        """Test slip raises the temperature."""
        wheel = _wheel()
        wheel.temperature = 60.0
        wheel.solve_forces(WheelInputs(v_long=10.0, v_lat=4.0), 1 / 120)
        wheel.update_temperature(0.5, 25.0)
        assert wheel.temperature > 60.0
