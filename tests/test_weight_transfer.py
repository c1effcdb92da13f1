"""Tests for chassis geometry, aerodynamics and weight transfer."""

import numpy as np
import pytest

from drivecore.car.aero import Aero, AeroConfig
from drivecore.car.chassis import GRAVITY, Chassis, ChassisConfig
from drivecore.car.weight_transfer import WeightTransfer
from drivecore.errors import ConfigurationError


class TestChassis:
    """Test chassis component."""

    def test_default_mass(self):
        """Test default chassis mass."""
        assert Chassis().mass == 1400.0

    def test_weight_fractions_sum(self):
        """Test axle fractions add up to one."""
        chassis = Chassis()
        assert chassis.front_weight_fraction + chassis.rear_weight_fraction == pytest.approx(1.0)

    def test_centered_cg_splits_evenly(self):
        """Test a CG at mid-wheelbase gives 50/50."""
        assert Chassis().front_weight_fraction == pytest.approx(0.5)

    def test_wheel_offsets(self):
        """Test wheel contact points relative to the CG."""
        cfg = ChassisConfig(cg_to_front_m=1.2)
        fl, fr, rl, rr = Chassis(cfg).wheel_offsets()
        assert np.allclose(fl, [1.2, 0.8, -0.5])
        assert np.allclose(fr, [1.2, -0.8, -0.5])
        assert np.allclose(rl, [-1.5, 0.8, -0.5])
        assert np.allclose(rr, [-1.5, -0.8, -0.5])

    def test_static_loads_sum_to_weight(self):
        """Test static loads carry the full weight."""
        chassis = Chassis()
        assert chassis.static_wheel_loads().sum() == pytest.approx(chassis.mass * GRAVITY)

    @pytest.mark.parametrize("kwargs", [
        {"mass_kg": 0.0},
        {"wheelbase_m": -1.0},
        {"cg_to_front_m": 3.0},
        {"cg_to_front_m": 0.0},
        {"roll_stiffness_front": 1.5},
    ])
    def test_invalid_config(self, kwargs):
        """Test invalid chassis geometry is rejected."""
        with pytest.raises(ConfigurationError):
            ChassisConfig(**kwargs)


class TestAero:
    """Test aerodynamics component."""

    def test_no_drag_at_rest(self):
        """Test zero drag when stationary."""
        assert np.allclose(Aero().drag_force(np.zeros(3)), 0.0)

    def test_drag_opposes_motion(self):
        """Test drag points against velocity and grows with v^2."""
        aero = Aero()
        slow = aero.drag_force(np.array([10.0, 0.0, 0.0]))
        fast = aero.drag_force(np.array([20.0, 0.0, 0.0]))
        assert slow[0] < 0
        assert fast[0] == pytest.approx(4 * slow[0])

    def test_drag_magnitude(self):
        """Test drag equals 0.5 * rho * Cd * A * v^2."""
        aero = Aero()
        force = aero.drag_force(np.array([0.0, -30.0, 0.0]))
        expected = 0.5 * 1.225 * 0.32 * 2.2 * 900.0
        assert force[1] == pytest.approx(expected)
        assert aero.current_drag == pytest.approx(expected)

    def test_drag_ignores_vertical_motion(self):
        """Test vertical velocity produces no drag."""
        assert np.allclose(Aero().drag_force(np.array([0.0, 0.0, -5.0])), 0.0)

    def test_downforce_split(self):
        """Test downforce splits by the given fraction."""
        front, rear = Aero().downforce(40.0, 0.4)
        assert front / (front + rear) == pytest.approx(0.4)
        assert front + rear > 0

    def test_air_density_override(self):
        """Test thinner air reduces drag."""
        aero = Aero()
        normal = aero.drag_force(np.array([30.0, 0.0, 0.0]))[0]
        aero.air_density = 1.0
        thin = aero.drag_force(np.array([30.0, 0.0, 0.0]))[0]
        assert abs(thin) < abs(normal)

    def test_invalid_config(self):
        """Test negative coefficients are rejected."""
        with pytest.raises(ConfigurationError):
            AeroConfig(drag_coefficient=-0.1)


class TestWeightTransfer:
    """Test dynamic wheel loads."""

    def test_static_loads(self):
        """Test loads at rest equal the static distribution."""
        wt = WeightTransfer()
        assert np.allclose(wt.calculate(0.0, 0.0), Chassis().static_wheel_loads())

    def test_total_load_conserved(self):
        """Test transfer moves load without creating it."""
        wt = WeightTransfer()
        loads = wt.calculate(3.0, -4.0)
        assert loads.sum() == pytest.approx(1400.0 * GRAVITY)

    def test_acceleration_loads_rear(self):
        """Test accelerating shifts load rearward."""
        loads = WeightTransfer().calculate(5.0, 0.0)
        assert loads[2] > loads[0]
        assert loads[3] > loads[1]

    def test_braking_loads_front(self):
        """Test braking shifts load forward."""
        loads = WeightTransfer().calculate(-8.0, 0.0)
        assert loads[0] > loads[2]

    def test_lateral_loads_right(self):
        """Test leftward acceleration loads the right-hand wheels."""
        loads = WeightTransfer().calculate(0.0, 6.0)
        assert loads[1] > loads[0]
        assert loads[3] > loads[2]

    def test_front_takes_roll_share(self):
        """Test the front axle takes its roll stiffness share of lateral transfer."""
        wt = WeightTransfer()
        loads = wt.calculate(0.0, 5.0)
        front = loads[1] - loads[0]
        rear = loads[3] - loads[2]
        assert front / (front + rear) == pytest.approx(0.55)

    def test_loads_never_negative(self):
        """Test extreme accelerations lift wheels but never pull them."""
        loads = WeightTransfer().calculate(0.0, 40.0)
        assert np.all(loads >= 0.0)
        assert loads[0] == 0.0

    def test_lifted_wheel_breaks_load_sum(self):
        """Test clipping a lifted wheel adds back the load it would have lost."""
        wt = WeightTransfer()
        loads = wt.calculate(0.0, 40.0)
        assert loads[0] == 0.0 and loads[2] == 0.0
        assert loads.sum() > 1400.0 * GRAVITY

    def test_downforce_adds_load(self):
        """Test aero load is added per axle."""
        wt = WeightTransfer()
        base = wt.calculate(0.0, 0.0)
        loaded = wt.calculate(0.0, 0.0, front_downforce=400.0, rear_downforce=600.0)
        assert loaded[0] - base[0] == pytest.approx(200.0)
        assert loaded[2] - base[2] == pytest.approx(300.0)

    def test_limits(self):
        """Test rollover and longitudinal limits."""
        wt = WeightTransfer()
        assert wt.rollover_threshold == pytest.approx(GRAVITY * 1.6 / 1.0)
        assert wt.max_braking_deceleration == pytest.approx(GRAVITY * 1.35 / 0.5)
        assert wt.max_acceleration == pytest.approx(GRAVITY * 1.35 / 0.5)

    def test_state(self):
        """Test state reports the front fraction."""
        wt = WeightTransfer()
        wt.calculate(0.0, 0.0)
        assert wt.get_state()["front_fraction"] == pytest.approx(0.5)
