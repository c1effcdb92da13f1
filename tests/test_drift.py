"""Tests for the drift controller."""

import logging
import math

import pytest

from drivecore.car.drift import DriftConfig, DriftController
from drivecore.errors import ConfigurationError

DT = 1 / 120


def _start_left_drift(controller: DriftController, steering: float = 0.0) -> None:
    # Nose left of the path: negative slip angle
    controller.update(DT, 10.0, -3.0, steering, 0.0, False)


class TestDriftDetection:
    """Test drift start and end."""

    def test_no_drift_when_straight(self):
        """Test straight driving never drifts."""
        controller = DriftController()
        for _ in range(20):
            controller.update(DT, 20.0, 0.0, 0.0, 1.0, False)
        assert not controller.is_drifting
        assert controller.drift_angle == 0.0

    def test_slip_angle_sign(self):
        """Test a car sliding right relative to its nose has a negative angle."""
        controller = DriftController()
        assert controller.measure_angle(10.0, -3.0) == pytest.approx(math.atan2(-3.0, 10.0))
        assert controller.measure_angle(10.0, 3.0) > 0

    def test_no_angle_at_crawl(self):
        """Test the slip angle is zero below 1 m/s."""
        assert DriftController().measure_angle(0.3, 0.5) == 0.0

    def test_starts_above_thresholds(self):
        """Test a drift starts past the angle and speed thresholds."""
        controller = DriftController()
        directions = []
        controller.add_drift_start_callback(directions.append)
        _start_left_drift(controller)
        assert controller.is_drifting
        assert controller.direction == -1.0
        assert directions == [-1.0]
        assert controller.drift_count == 1

    def test_no_drift_below_speed(self):
        """Test slow sliding is not a drift."""
        controller = DriftController()
        controller.update(DT, 3.0, -1.5, 0.0, 0.0, False)
        assert not controller.is_drifting

    def test_no_start_beyond_max_angle(self):
        """Test a car already spinning does not start a drift."""
        controller = DriftController()
        controller.update(DT, 2.0, -6.0, 0.0, 0.0, False)
        assert not controller.is_drifting

    def test_handbrake_initiation(self):
        """Test handbrake with throttle starts a drift at small angles."""
        controller = DriftController()
        controller.update(DT, 10.0, 0.0, -0.5, 0.8, True)
        assert controller.is_drifting
        assert controller.direction == -1.0

    def test_handbrake_drift_without_slide_ends(self):
        """Test a handbrake start that never slides ends once the handbrake is released."""
        controller = DriftController()
        durations = []
        controller.add_drift_end_callback(durations.append)
        controller.update(DT, 10.0, 0.0, -0.5, 0.8, True)
        assert controller.is_drifting
        controller.update(DT, 10.0, 0.0, -0.5, 0.0, False)
        assert not controller.is_drifting
        assert durations == [pytest.approx(DT)]
        for _ in range(120):
            controller.update(DT, 20.0, 0.0, 0.0, 0.0, False)
        assert not controller.is_drifting
        assert controller.drift_count == 1

    def test_ends_when_angle_recovers(self):
        """Test the drift ends once the angle falls inside the exit band."""
        controller = DriftController()
        durations = []
        controller.add_drift_end_callback(durations.append)
        _start_left_drift(controller)
        for _ in range(controller.config.history_size):
            controller.update(DT, 10.0, 0.0, 0.0, 0.0, False)
        assert not controller.is_drifting
        assert len(durations) == 1
        assert durations[0] == pytest.approx(controller.config.history_size * DT)

    def test_ends_when_slow(self):
        """Test the drift ends below half the speed threshold."""
        controller = DriftController()
        _start_left_drift(controller)
        controller.update(DT, 2.0, -0.6, 0.0, 0.0, False)
        assert not controller.is_drifting

    def test_spinout(self):
        """Test exceeding the maximum angle ends the drift as a spinout."""
        controller = DriftController()
        spins = []
        ends = []
        controller.add_spinout_callback(lambda: spins.append(True))
        controller.add_drift_end_callback(ends.append)
        _start_left_drift(controller)
        controller.update(DT, -10.0, -1.0, 0.0, 0.0, False)
        assert not controller.is_drifting
        assert spins == [True]
        assert len(ends) == 1

    def test_spinout_warning(self):
        """Test the warning fires once near the maximum angle."""
        controller = DriftController()
        warnings = []
        controller.add_spinout_warning_callback(lambda: warnings.append(True))
        _start_left_drift(controller)
        for _ in range(10):
            controller.update(DT, 4.0, -6.0, 0.0, 0.0, False)
        assert controller.is_drifting
        assert warnings == [True]


class TestCounterSteer:
    """Test counter-steer detection and assists."""

    def test_counter_steer_detected(self):
        """Test steering against the drift direction counts as counter-steer."""
        controller = DriftController()
        _start_left_drift(controller, steering=0.6)
        assert controller.counter_steering
        assert controller.counter_steer_amount == pytest.approx(0.6)

    def test_steering_into_drift(self):
        """Test steering with the drift is not counter-steer."""
        controller = DriftController()
        _start_left_drift(controller, steering=-0.6)
        assert not controller.counter_steering

    def test_corrective_torque_opposes_rotation(self):
        """Test counter-steer yields a torque against the drift direction."""
        controller = DriftController()
        _start_left_drift(controller)
        modifiers = controller.update(DT, 10.0, -3.0, 1.0, 0.0, False)
        assert modifiers.corrective_torque < 0
        assert modifiers.initiation_torque == 0.0

    def test_throttle_sustains_drift(self):
        """Test throttle above half adds torque into the drift."""
        controller = DriftController()
        _start_left_drift(controller)
        modifiers = controller.update(DT, 10.0, -3.0, 0.0, 1.0, False)
        expected = 1.0 * 2.0 * 0.95 * 1000.0
        assert modifiers.initiation_torque == pytest.approx(expected)
        assert modifiers.yaw_torque == pytest.approx(expected)

    def test_no_torque_without_drift(self):
        """Test no assists outside a drift."""
        modifiers = DriftController().update(DT, 20.0, 0.0, 1.0, 1.0, False)
        assert modifiers.yaw_torque == 0.0

    def test_stability_bounds(self):
        """Test stability rises with counter-steer and stays in range."""
        controller = DriftController()
        _start_left_drift(controller)
        for _ in range(600):
            controller.update(DT, 10.0, -3.0, 1.0, 0.0, False)
        assert controller.stability == pytest.approx(controller.config.max_stability)
        for _ in range(600):
            controller.update(DT, 10.0, -3.0, 0.0, 0.0, False)
        assert controller.stability == pytest.approx(controller.config.min_stability)


class TestDriftController:
    """Test controller housekeeping."""

    def test_reset_keeps_count(self):
        """Test reset clears state but keeps the drift counter."""
        controller = DriftController()
        _start_left_drift(controller)
        controller.reset()
        assert not controller.is_drifting
        assert controller.drift_angle == 0.0
        assert controller.drift_count == 1

    def test_failing_callback_is_logged(self, caplog):
        """Test a raising callback does not break the controller."""
        controller = DriftController()

        def broken(_direction):
            raise RuntimeError("boom")

        controller.add_drift_start_callback(broken)
        with caplog.at_level(logging.ERROR):
            _start_left_drift(controller)
        assert controller.is_drifting
        assert "Drift callback" in caplog.text

    def test_state(self):
        """Test state reports the angle in radians."""
        controller = DriftController()
        _start_left_drift(controller)
        state = controller.get_state()
        assert state["is_drifting"]
        assert state["angle_rad"] == pytest.approx(math.atan2(-3.0, 10.0))

    @pytest.mark.parametrize("kwargs", [
        {"angle_threshold": 0.0},
        {"max_drift_angle": 0.1},
        {"history_size": 0},
        {"min_stability": 2.0},
    ])
    def test_invalid_config(self, kwargs):
        """Test invalid thresholds are rejected."""
        with pytest.raises(ConfigurationError):
            DriftConfig(**kwargs)
