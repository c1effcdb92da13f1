"""Tests for the complete car: driving scenarios, collisions and configuration."""

import math

import numpy as np
import pytest

from drivecore.car.car import Car, CarConfig, CarInputs
from drivecore.car.chassis import GRAVITY, ChassisConfig
from drivecore.car.aero import AeroConfig
from drivecore.car.damage import DamageZone
from drivecore.car.differential import DifferentialConfig, DrivetrainLayout
from drivecore.car.transmission import TransmissionConfig
from drivecore.car.weight_transfer import WeightTransfer
from drivecore.errors import ConfigurationError
from drivecore.simulation.shapes import Shape
from drivecore.simulation.surfaces import Surface, SurfaceMap
from drivecore.simulation.world import World

FRAME = 1 / 60


def _drive(car: Car, inputs: CarInputs, seconds: float, frames: list | None = None) -> None:
    """Step the car for a number of seconds, optionally collecting snapshots."""
    for _ in range(int(round(seconds / FRAME))):
        car.step(inputs, FRAME)
        if frames is not None:
            frames.append(car.snapshot())


def _beta(car: Car) -> float:
    v_long, v_lat = car.local_velocity
    return math.atan2(v_lat, v_long)


class TestCarBasics:
    """Test car construction and state."""

    def test_initial_state(self):
        """Test a new car sits at the origin in first gear."""
        car = Car()
        assert car.position == (0.0, 0.0)
        assert car.speed == 0.0
        assert car.transmission.current_gear == 1
        assert car.world is None

    def test_step_creates_world(self):
        """Test stepping a detached car gives it a private world."""
        car = Car()
        assert car.step(CarInputs(), FRAME) == 2
        assert car.world is not None
        assert car.body_id >= 0

    def test_attach_twice_raises(self):
        """Test a car cannot join two worlds."""
        car = Car()
        World().add_car(car)
        with pytest.raises(RuntimeError):
            car.attach(World())

    def test_detach(self):
        """Test removing a car removes its body."""
        world = World()
        car = Car()
        car_id = world.add_car(car)
        assert world.physics.body_count == 1
        world.remove_car(car_id)
        assert world.physics.body_count == 0
        assert car.world is None

    def test_reset_pose(self):
        """Test reset places the car at the requested pose."""
        car = Car()
        car.reset(5.0, -3.0, math.pi / 2)
        assert car.position == pytest.approx((5.0, -3.0))
        assert car.heading == pytest.approx(math.pi / 2)

    def test_reset_keeps_spawn(self):
        """Test reset without arguments returns to the last spawn point."""
        car = Car()
        car.reset(10.0, 2.0, 0.0)
        _drive(car, CarInputs(throttle=1.0), 1.0)
        car.reset()
        assert car.position == pytest.approx((10.0, 2.0))
        assert car.speed == 0.0

    def test_velocity_stays_planar(self):
        """Test setting velocity drops the vertical component."""
        car = Car()
        car.velocity = (3.0, 1.0, 5.0)
        assert car.velocity[2] == 0.0
        assert car.speed == pytest.approx(math.hypot(3.0, 1.0))

    def test_telemetry(self):
        """Test telemetry groups component state."""
        car = Car()
        _drive(car, CarInputs(throttle=0.5), 0.5)
        telemetry = car.get_telemetry()
        assert telemetry["state"]["speed"] > 0
        assert len(telemetry["wheels"]) == 4
        assert {"engine", "transmission", "drift", "scoring", "damage"} <= set(telemetry)


class TestInputs:
    """Test input handling."""

    def test_inputs_are_smoothed(self):
        """Test steering approaches the request over several steps."""
        car = Car()
        car.step(CarInputs(steering=1.0), FRAME)
        assert 0.0 < car.steering < 1.0

    def test_shift_edge_triggered(self):
        """Test a held shift request only shifts once."""
        car = Car(CarConfig(transmission=TransmissionConfig(auto_shift=False)))
        held = CarInputs(shift_up=True)
        _drive(car, held, 0.5)
        assert car.transmission.current_gear == 2
        _drive(car, held, 0.5)
        assert car.transmission.current_gear == 2
        _drive(car, CarInputs(), 0.1)
        _drive(car, held, 0.5)
        assert car.transmission.current_gear == 3

    def test_reset_input(self):
        """Test the reset input returns the car to its spawn point."""
        car = Car()
        _drive(car, CarInputs(throttle=1.0), 1.0)
        assert car.position[0] > 0.5
        car.set_inputs(CarInputs(reset=True))
        assert car.position == pytest.approx((0.0, 0.0))


class TestScenarios:
    """Test end-to-end driving scenarios."""

    def test_idle(self):
        """Test a car with no inputs stays put at idle."""
        car = Car(CarConfig(chassis=ChassisConfig(mass_kg=1500.0)))
        _drive(car, CarInputs(), 5.0)
        snap = car.snapshot()
        assert snap.speed < 0.05
        assert snap.rpm == pytest.approx(800.0)
        assert snap.gear == 1
        assert snap.damage.total == 0.0
        assert snap.drift.angle_deg == 0.0

    def test_straight_line_acceleration(self, monkeypatch):
        """Test full throttle accelerates straight and upshifts near the shift point."""
        car = Car()
        upshifts = []
        shift_up = car.transmission.shift_up

        def recording_shift_up():
            upshifts.append((car.transmission.current_gear, car.engine.rpm))
            return shift_up()

        monkeypatch.setattr(car.transmission, "shift_up", recording_shift_up)
        frames = []
        _drive(car, CarInputs(throttle=1.0), 5.0, frames)

        first_gear = [f.speed for f in frames if f.gear == 1 and not f.is_shifting]
        assert all(b >= a - 1e-9 for a, b in zip(first_gear, first_gear[1:]))
        assert frames[-1].gear >= 2
        assert upshifts[0][0] == 1
        assert upshifts[0][1] >= car.config.transmission.upshift_rpm
        assert car.config.transmission.upshift_rpm == pytest.approx(6500.0)
        assert car.position[0] > 0.0
        assert abs(car.local_velocity[1]) < 0.1

    def test_hard_brake(self):
        """Test braking from speed slows the car and loads the front."""
        car = Car()
        car.step(CarInputs(), FRAME)
        car.velocity = (30.0, 0.0, 0.0)
        limit = WeightTransfer(car.config.chassis).max_braking_deceleration

        speeds = [car.speed]
        front_heavier = []
        for _ in range(120):
            car.step(CarInputs(brake=1.0), FRAME)
            speeds.append(car.speed)
            if car.speed > 1.0:
                loads = car.wheel_loads
                front_heavier.append(loads[0] + loads[1] > loads[2] + loads[3])

        assert all(b <= a + 1e-9 for a, b in zip(speeds, speeds[1:]))
        assert speeds[-1] < 30.0
        assert front_heavier and all(front_heavier[5:])
        decelerations = [(a - b) / FRAME for a, b in zip(speeds, speeds[1:])]
        assert max(decelerations) <= limit

    def test_skid_pad(self):
        """Test steady cornering stays gripped and under the rollover limit."""
        car = Car(CarConfig(differential=DifferentialConfig(layout=DrivetrainLayout.FWD)))
        _drive(car, CarInputs(steering=0.5, throttle=0.3), 10.0)

        assert car.yaw_rate < 0.0
        assert abs(math.degrees(_beta(car))) < 15.0
        lateral = abs(car.g_force[1]) * GRAVITY
        assert lateral <= WeightTransfer(car.config.chassis).rollover_threshold

    def test_handbrake_drift(self):
        """Test a handbrake turn starts a drift that scores and banks."""
        car = Car()
        car.step(CarInputs(), FRAME)
        car.velocity = (20.0, 0.0, 0.0)

        peak_beta = 0.0
        previous = None
        drift_inputs = CarInputs(steering=0.7, handbrake=True, throttle=0.8)
        for _ in range(180):
            car.step(drift_inputs, FRAME)
            snap = car.snapshot()
            peak_beta = max(peak_beta, abs(_beta(car)))
            if previous is not None and previous.drift.is_drifting and snap.drift.is_drifting \
                    and previous.drift.drift_count == snap.drift.drift_count:
                assert snap.drift.current_score > previous.drift.current_score
            previous = snap

        assert car.drift.drift_count >= 1
        assert peak_beta > car.config.drift.angle_threshold

        _drive(car, CarInputs(brake=1.0), 6.0)
        assert not car.drift.is_drifting
        assert car.scorer.banked_score > 0

    def test_wall_impact(self):
        """Test a head-on hit damages the front, bounces and separates."""
        world = World()
        world.add_obstacle(Shape.box(1.0, 10.0, 0.75), (3.7, 0.0, 0.5))
        car = Car()
        world.add_car(car)
        car.velocity = (25.0, 0.0, 0.0)

        impacts = []
        events = []
        car.add_collision_sink(events.append)

        def record(manifold):
            if manifold.normal_impulse > 0:
                impacts.append((manifold.impact_speed, car.velocity[0], manifold.depth))

        world.physics.add_collision_callback(record)
        for _ in range(30):
            car.set_inputs(CarInputs())
            world.physics.step(FRAME)

        assert impacts
        speed_before, v_after, depth = impacts[0]
        restitution = min(car.config.body_restitution, 0.3)
        assert v_after < 0.0
        assert abs(v_after) <= restitution * speed_before + 1e-6
        assert depth < world.physics.config.slop + 1e-3

        snap = car.snapshot()
        assert snap.damage.front > 0.0
        assert snap.damage.engine == pytest.approx(0.5 * snap.damage.front)
        assert snap.damage.rear == 0.0
        assert events and events[0].zone is DamageZone.FRONT
        assert events[0].impact_magnitude > car.config.damage.threshold

    def test_coasting_conserves_energy(self):
        """Test a car on a frictionless surface keeps its kinetic energy."""
        config = CarConfig(aero=AeroConfig(drag_coefficient=0.0), rolling_resistance=0.0)
        world = World(surfaces=SurfaceMap(Surface("glass", grip=0.0)))
        car = Car(config)
        world.add_car(car)
        car.velocity = (15.0, 2.0, 0.0)
        frames_per_second = int(round(1.0 / FRAME))
        energy = car.body.kinetic_energy()
        for _ in range(3):
            for _ in range(frames_per_second):
                car.set_inputs(CarInputs())
                world.physics.step(FRAME)
            current = car.body.kinetic_energy()
            assert current <= energy * 1.005
            assert current >= energy * 0.995
            energy = current

    def test_reverse_gear_rolling_forward_does_not_accelerate(self):
        """Test engaging reverse while rolling forward never pushes the car on."""
        car = Car()
        car.step(CarInputs(), FRAME)
        car.transmission.set_gear(-1)
        car.velocity = (10.0, 0.0, 0.0)

        speeds = []
        for _ in range(180):
            car.step(CarInputs(), FRAME)
            speeds.append(car.speed)
        assert max(speeds) <= 10.0 + 1e-3
        assert speeds[-1] < 10.0

    def test_reverse_gear_engine_brakes_backwards(self):
        """Test coasting backwards in reverse slows the car."""
        car = Car()
        car.step(CarInputs(), FRAME)
        car.transmission.set_gear(-1)
        car.velocity = (-10.0, 0.0, 0.0)
        _drive(car, CarInputs(), 3.0)
        assert car.speed < 10.0
        assert car.local_velocity[0] < 0.0

    def test_handbrake_tap_without_slide_ends_drift(self):
        """Test a straight handbrake tap does not leave the car drifting."""
        car = Car()
        car.step(CarInputs(), FRAME)
        car.velocity = (20.0, 0.0, 0.0)
        _drive(car, CarInputs(throttle=0.8, handbrake=True), 0.25)
        assert car.drift.drift_count >= 1

        _drive(car, CarInputs(throttle=0.6), 3.0)
        assert not car.drift.is_drifting


class TestInvariants:
    """Test physical invariants hold through aggressive driving."""

    def test_state_ranges(self):
        """Test loads, grip, RPM and orientation stay valid."""
        car = Car()
        engine = car.config.engine
        for steering in (0.8, -0.8, 0.3):
            for _ in range(90):
                car.step(CarInputs(throttle=1.0, steering=steering, handbrake=steering < 0), FRAME)
                assert np.all(car.wheel_loads >= 0.0)
                assert all(w.grip <= 2.0 for w in car.wheels)
                assert engine.idle_rpm <= car.engine.rpm <= engine.redline_rpm
                assert np.linalg.norm(car.body.orientation) == pytest.approx(1.0)
                assert car.body.position[2] == pytest.approx(car.config.chassis.cg_height_m)

    def test_deterministic(self):
        """Test identical cars with identical inputs stay identical."""
        def run():
            car = Car()
            frames = []
            _drive(car, CarInputs(throttle=0.9, steering=0.4), 2.0)
            _drive(car, CarInputs(throttle=0.5, steering=-0.6, handbrake=True), 1.0, frames)
            return frames[-1]

        assert run() == run()


class TestSnapshot:
    """Test immutable per-frame state."""

    def test_snapshot_contents(self):
        """Test the snapshot mirrors the car."""
        car = Car()
        _drive(car, CarInputs(throttle=0.6), 1.0)
        snap = car.snapshot()
        assert snap.speed == pytest.approx(car.speed)
        assert snap.speed_kph == pytest.approx(car.speed * 3.6)
        assert len(snap.wheels) == 4
        assert snap.surface == "asphalt"
        assert snap.time == pytest.approx(car.world.time)

    def test_snapshot_is_frozen(self):
        """Test snapshots cannot be modified."""
        snap = Car().snapshot()
        with pytest.raises(AttributeError):
            snap.speed = 5.0


class TestCarConfig:
    """Test configuration loading."""

    def test_round_trip(self):
        """Test to_dict output rebuilds an equal configuration."""
        config = CarConfig(differential=DifferentialConfig(layout=DrivetrainLayout.AWD))
        assert CarConfig.from_dict(config.to_dict()) == config

    def test_partial_dict(self):
        """Test missing keys keep their defaults and enums parse by name."""
        config = CarConfig.from_dict({
            "chassis": {"mass_kg": 1200.0},
            "differential": {"layout": "fwd"},
        })
        assert config.chassis.mass_kg == 1200.0
        assert config.chassis.wheelbase_m == 2.7
        assert config.differential.layout is DrivetrainLayout.FWD

    def test_unknown_key(self):
        """Test unknown keys are rejected."""
        with pytest.raises(ConfigurationError):
            CarConfig.from_dict({"chassis": {"mass": 1200.0}})

    def test_bad_enum(self):
        """Test unknown enum names are rejected."""
        with pytest.raises(ConfigurationError):
            CarConfig.from_dict({"differential": {"layout": "six_wheel"}})

    def test_validation_applies(self):
        """Test nested validation still runs."""
        with pytest.raises(ConfigurationError):
            CarConfig.from_dict({"chassis": {"mass_kg": -1.0}})
