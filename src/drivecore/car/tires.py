"""
Tire model - Slip-based tire forces.

Provides:
- Simplified Pacejka "magic formula" curve
- Lateral and longitudinal force from slip, load and grip
- Friction circle for combined slip
- Load sensitivity (grip per Newton falls as load rises)
- Temperature grip window and heating/cooling rate

Everything here is a pure function of its arguments; per-wheel state lives
in drivecore.car.wheel.
"""

from dataclasses import dataclass
import math

import numpy as np

from drivecore.errors import ConfigurationError


@dataclass
class TireConfig:
    """Tire model coefficients.

    Slip angles are in radians, so the stiffness factor B is per radian.
    """
    # Magic formula coefficients
    b: float = 10.0                  # Stiffness factor
    c: float = 1.9                   # Shape factor
    d: float = 1.0                   # Peak factor (friction coefficient)
    e: float = 0.97                  # Curvature factor
    use_curvature: bool = False      # Apply E; off gives D*sin(C*atan(B*s))

    # Load sensitivity
    nominal_load_n: float = 3500.0
    load_sensitivity: float = 0.1
    min_load_factor: float = 0.7
    max_load_factor: float = 1.1

    # Temperature window (Celsius)
    min_temp_c: float = 20.0
    max_temp_c: float = 120.0
    optimal_low_c: float = 80.0
    optimal_high_c: float = 100.0
    cold_threshold_c: float = 50.0
    initial_temp_c: float = 50.0
    heating_rate: float = 50.0       # C/s per unit of combined slip
    cooling_rate: float = 0.05       # 1/s toward ambient

    # Damage
    damage_grip_loss: float = 0.5    # Grip lost at full wheel damage

    # Geometry
    radius_m: float = 0.33

    def __post_init__(self):
        if self.b <= 0 or self.c <= 0 or self.d <= 0:
            raise ConfigurationError("Tire coefficients B, C and D must be positive")
        if self.nominal_load_n <= 0:
            raise ConfigurationError("Nominal tire load must be positive")
        if self.radius_m <= 0:
            raise ConfigurationError("Tire radius must be positive")
        if self.min_temp_c >= self.max_temp_c:
            raise ConfigurationError("Tire temperature range is empty")


def magic_formula(slip: float, b: float, c: float, d: float, e: float = 0.0) -> float:
    """Normalised magic formula curve.

    Args:
        slip: Slip angle (rad) or slip ratio
        b: Stiffness factor
        c: Shape factor
        d: Peak factor
        e: Curvature factor (0 for the simplified curve)

    Returns:
        Force coefficient with the same sign as slip, bounded by d
    """
    bs = b * slip
    return d * math.sin(c * math.atan(bs - e * (bs - math.atan(bs))))


def _curve(slip: float, config: TireConfig) -> float:
    e = config.e if config.use_curvature else 0.0
    return magic_formula(slip, config.b, config.c, config.d, e)


def lateral_force(slip_angle: float, load: float, grip: float, config: TireConfig) -> float:
    """Lateral tire force in N.

    The force opposes the lateral slip, so a wheel sliding toward +y gets
    a negative force.

    Args:
        slip_angle: Slip angle in radians
        load: Vertical load in N
        grip: Combined grip multiplier
        config: Tire coefficients

    Returns:
        Lateral force in N
    """
    if load <= 0.0:
        return 0.0
    return -_curve(slip_angle, config) * load * grip


def longitudinal_force(slip_ratio: float, load: float, grip: float, config: TireConfig) -> float:
    """Longitudinal tire force in N, same sign as the slip ratio."""
    if load <= 0.0:
        return 0.0
    return _curve(slip_ratio, config) * load * grip


def friction_circle(fx: float, fy: float, limit: float) -> tuple[float, float]:
    """Scale (fx, fy) uniformly so their magnitude does not exceed limit.

    Args:
        fx: Longitudinal force
        fy: Lateral force
        limit: Maximum combined force (mu * load)

    Returns:
        Tuple (fx, fy) after scaling
    """
    if limit <= 0.0:
        return 0.0, 0.0
    magnitude = math.hypot(fx, fy)
    if magnitude > limit:
        scale = limit / magnitude
        return fx * scale, fy * scale
    return fx, fy


def load_factor(load: float, config: TireConfig) -> float:
    """Grip multiplier from load sensitivity.

    Returns 1.0 at nominal load, less above it and more below it, clamped
    to the configured range. A lifted wheel (load <= 0) returns 0.
    """
    if load <= 0.0:
        return 0.0
    factor = 1.0 - config.load_sensitivity * (load / config.nominal_load_n - 1.0)
    return float(np.clip(factor, config.min_load_factor, config.max_load_factor))


def temperature_grip(temperature: float, config: TireConfig) -> float:
    """Grip multiplier from tire temperature.

    Cold tires ramp from 0.7 at 20 C to full grip at 50 C, grip stays full
    through the optimal window and falls off linearly above it.
    """
    if temperature > config.optimal_high_c:
        return max(0.0, 1.0 - (temperature - config.optimal_high_c) / 50.0)
    if temperature < config.cold_threshold_c:
        return max(0.7, 0.7 + (temperature - config.min_temp_c) / 100.0)
    return 1.0


def temperature_rate(
    temperature: float,
    slip: float,
    ambient: float,
    config: TireConfig,
) -> float:
    """Rate of change of tire temperature in C/s.

    Args:
        temperature: Current tire temperature
        slip: Combined slip magnitude
        ambient: Ambient temperature
        config: Tire coefficients
    """
    return config.heating_rate * abs(slip) - config.cooling_rate * (temperature - ambient)


def peak_slip(config: TireConfig) -> float:
    """Slip at which the simplified curve reaches its peak."""
    return math.tan(math.pi / (2.0 * config.c)) / config.b


def slip_for_force(force: float, limit: float, config: TireConfig) -> float:
    """Invert the simplified curve: slip needed to transmit force.

    Beyond the limit the tire is spinning or locking; the slip grows past
    the peak in proportion to the excess and saturates at 1.

    Args:
        force: Requested force in N
        limit: Force limit (mu * load) in N
        config: Tire coefficients

    Returns:
        Signed slip ratio in [-1, 1]
    """
    if limit <= 0.0:
        return float(np.sign(force)) if force != 0.0 else 0.0
    ratio = force / limit
    if abs(ratio) <= 1.0:
        return math.tan(math.asin(ratio) / config.c) / config.b
    return math.copysign(min(1.0, peak_slip(config) * abs(ratio)), force)
