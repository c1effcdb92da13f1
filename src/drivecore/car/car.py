"""
Car - Complete vehicle simulation.

Integrates all car components:
- Chassis, aerodynamics and weight transfer
- Engine, transmission and drivetrain
- Brakes with heat, fade and ABS
- Four wheels with the tire model
- Drift controller and drift scoring
- Collision damage

The car's body lives in a PhysicsWorld. Every fixed step the car applies
its tire, aero and rolling forces before integration (apply_forces) and
updates its powertrain, wheels and drift state afterwards (post_step).
"""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
import logging
import math
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import numpy as np

from drivecore.car.aero import Aero, AeroConfig
from drivecore.car.brakes import BrakeConfig, Brakes
from drivecore.car.chassis import GRAVITY, Chassis, ChassisConfig
from drivecore.car.damage import CollisionEvent, DamageConfig, DamageModel, DamageZone
from drivecore.car.differential import DifferentialConfig, Drivetrain
from drivecore.car.drift import DriftConfig, DriftController, DriftModifiers
from drivecore.car.engine import Engine, EngineConfig
from drivecore.car.snapshot import CarSnapshot, DamageSnapshot, DriftSnapshot, WheelSnapshot
from drivecore.car.tires import TireConfig
from drivecore.car.transmission import Transmission, TransmissionConfig
from drivecore.car.weight_transfer import WeightTransfer
from drivecore.car.wheel import Wheel, WheelInputs
from drivecore.core import quaternion as quat
from drivecore.core.mathutils import clamp, smooth_towards
from drivecore.errors import ConfigurationError
from drivecore.scoring.drift_scorer import DriftScorer, ScoringConfig
from drivecore.simulation.collision import ContactManifold
from drivecore.simulation.rigid_body import (
    GROUP_VEHICLE,
    PLANAR_ANGULAR,
    PLANAR_LINEAR,
    BodyConfig,
    RigidBody,
)
from drivecore.simulation.shapes import Shape

if TYPE_CHECKING:
    from drivecore.simulation.world import World

logger = logging.getLogger(__name__)


@dataclass
class SteeringConfig:
    """Steering and pedal response."""
    max_angle_rad: float = 0.6
    full_lock_speed: float = 50.0      # Speed (m/s) at which lock reaches its minimum
    min_speed_factor: float = 0.3
    steering_rate: float = 8.0         # 1/s input smoothing
    pedal_rate: float = 15.0           # 1/s input smoothing

    def __post_init__(self):
        if self.max_angle_rad <= 0 or self.full_lock_speed <= 0:
            raise ConfigurationError("Steering angle and lock speed must be positive")
        if self.steering_rate <= 0 or self.pedal_rate <= 0:
            raise ConfigurationError("Input smoothing rates must be positive")


@dataclass
class CarConfig:
    """Complete car configuration.

    Default values create a rear-driven sports coupe.
    """
    chassis: ChassisConfig = field(default_factory=ChassisConfig)
    aero: AeroConfig = field(default_factory=AeroConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    transmission: TransmissionConfig = field(default_factory=TransmissionConfig)
    differential: DifferentialConfig = field(default_factory=DifferentialConfig)
    tires: TireConfig = field(default_factory=TireConfig)
    brakes: BrakeConfig = field(default_factory=BrakeConfig)
    steering: SteeringConfig = field(default_factory=SteeringConfig)
    drift: DriftConfig = field(default_factory=DriftConfig)
    damage: DamageConfig = field(default_factory=DamageConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    # Body
    rolling_resistance: float = 0.015
    body_friction: float = 0.5
    body_restitution: float = 0.2
    angular_damping: float = 0.05

    def __post_init__(self):
        if self.rolling_resistance < 0:
            raise ConfigurationError("Rolling resistance must not be negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CarConfig":
        """Build a configuration from a nested mapping.

        Enum values may be given by name or value. Unknown keys raise
        ConfigurationError.
        """
        return _build_config(cls, data)

    def to_dict(self) -> Dict[str, Any]:
        """Nested plain-data form accepted by from_dict."""
        return _config_to_dict(self)


def _build_config(cls, data: Dict[str, Any]):
    known = {f.name: f for f in fields(cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ConfigurationError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")
    kwargs = {}
    for name, value in data.items():
        ftype = known[name].type
        if isinstance(ftype, type) and is_dataclass(ftype) and isinstance(value, dict):
            value = _build_config(ftype, value)
        elif isinstance(ftype, type) and issubclass(ftype, Enum) and not isinstance(value, ftype):
            try:
                value = ftype[str(value).upper()]
            except KeyError:
                raise ConfigurationError(f"Invalid {ftype.__name__}: {value!r}") from None
        kwargs[name] = value
    return cls(**kwargs)


def _config_to_dict(config) -> Dict[str, Any]:
    out = {}
    for f in fields(config):
        value = getattr(config, f.name)
        if is_dataclass(value):
            value = _config_to_dict(value)
        elif isinstance(value, Enum):
            value = value.name
        elif isinstance(value, (list, tuple)):
            value = list(value)
        out[f.name] = value
    return out


@dataclass
class CarInputs:
    """Driver control inputs for the car."""
    throttle: float = 0.0      # 0.0 to 1.0
    brake: float = 0.0         # 0.0 to 1.0
    steering: float = 0.0      # -1.0 (left) to 1.0 (right)
    handbrake: bool = False
    shift_up: bool = False     # Request upshift (edge triggered)
    shift_down: bool = False   # Request downshift (edge triggered)
    reset: bool = False        # Reset the car (edge triggered)


CollisionSink = Callable[[CollisionEvent], None]


class Car:
    """Four-wheeled vehicle driven through a PhysicsWorld.

    The body is planar: it slides in the ground plane and yaws, while
    pitch and roll only appear as load transfer between the wheels.

    Usage:
        car = Car()
        world.add_car(car)
        car.set_inputs(CarInputs(throttle=0.5, steering=0.1))
        world.physics.step(1 / 60)
        snapshot = car.snapshot()

    For quick experiments car.step(inputs, dt) creates a private world.
    """

    def __init__(self, config: CarConfig | None = None, car_id: int = 0):
        """Initialize car with optional configuration.

        Args:
            config: Car configuration. Uses defaults if None.
            car_id: Unique identifier for this car instance
        """
        self.config = config or CarConfig()
        self.car_id = car_id

        self.chassis = Chassis(self.config.chassis)
        self.aero = Aero(self.config.aero)
        self.weight_transfer = WeightTransfer(self.config.chassis)
        self.engine = Engine(self.config.engine)
        self.transmission = Transmission(self.config.transmission)
        self.brakes = Brakes(self.config.brakes)
        self.drivetrain = Drivetrain(self.config.differential)
        self.wheels = [
            Wheel(i, offset, self.config.tires)
            for i, offset in enumerate(self.chassis.wheel_offsets())
        ]
        self.damage = DamageModel(self.config.damage, self.config.chassis.length_m)
        self.drift = DriftController(self.config.drift)
        self.scorer = DriftScorer(self.config.scoring)
        self.drift.add_drift_start_callback(lambda _direction: self.scorer.start_drift())
        self.drift.add_drift_end_callback(lambda _duration: self.scorer.end_drift())

        self.body = RigidBody(
            Shape.box(*self.chassis.half_extents),
            BodyConfig(
                mass=self.chassis.mass,
                friction=self.config.body_friction,
                restitution=self.config.body_restitution,
                linear_damping=0.0,
                angular_damping=self.config.angular_damping,
                group=GROUP_VEHICLE,
                linear_factor=PLANAR_LINEAR,
                angular_factor=PLANAR_ANGULAR,
            ),
        )
        self.body.user_data = self

        self._world: Optional["World"] = None
        self._collision_sinks: List[CollisionSink] = []
        self._spawn = (0.0, 0.0, 0.0)
        self._inputs = CarInputs()

        self.reset()

    # ------------------------------------------------------------------
    # Attachment

    @property
    def world(self) -> Optional["World"]:
        """World the car drives in."""
        return self._world

    @property
    def body_id(self) -> int:
        """Id of the car body in the physics world (-1 when detached)."""
        return self.body.body_id

    def attach(self, world: "World") -> None:
        """Add the car body to a world and hook into its physics steps."""
        if self._world is not None:
            raise RuntimeError(f"Car {self.car_id} is already in a world")
        self._world = world
        self.aero.air_density = world.environment.air_density
        world.physics.add_body(self.body)
        world.physics.add_pre_step_callback(self.apply_forces)
        world.physics.add_post_step_callback(self.post_step)
        world.physics.add_collision_callback(self.on_contact)

    def detach(self) -> None:
        """Remove the car body and callbacks from its world."""
        if self._world is None:
            return
        physics = self._world.physics
        physics.remove_body(self.body.body_id)
        for callback in (self.apply_forces, self.post_step, self.on_contact):
            physics.remove_callback(callback)
        self._world = None
        self.body.body_id = -1

    def add_collision_sink(self, sink: CollisionSink) -> None:
        """Add sink(event) called for every damaging collision."""
        self._collision_sinks.append(sink)

    # ------------------------------------------------------------------
    # State

    @property
    def inputs(self) -> CarInputs:
        """Inputs held for the current frame."""
        return self._inputs

    @property
    def position(self) -> tuple[float, float]:
        """Current (x, y) position."""
        return (float(self.body.position[0]), float(self.body.position[1]))

    @property
    def heading(self) -> float:
        """Current heading in radians (0 = +X)."""
        return self.body.heading

    @property
    def velocity(self) -> np.ndarray:
        """World-frame velocity (m/s)."""
        return self.body.linear_velocity.copy()

    @velocity.setter
    def velocity(self, value) -> None:
        """Set the world-frame velocity, keeping it in the ground plane."""
        self.body.linear_velocity = np.asarray(value, dtype=float) * self.body.linear_factor
        self.body.wake()

    @property
    def yaw_rate(self) -> float:
        """Angular velocity about +Z (rad/s)."""
        return float(self.body.angular_velocity[2])

    @property
    def speed(self) -> float:
        """Current speed in m/s."""
        v = self.body.linear_velocity
        return math.hypot(v[0], v[1])

    @property
    def speed_kph(self) -> float:
        """Current speed in km/h."""
        return self.speed * 3.6

    @property
    def local_velocity(self) -> tuple[float, float]:
        """Body-frame velocity (forward, left) in m/s."""
        r = self.body.rotation_matrix
        v = self.body.linear_velocity
        return float(np.dot(v, r[:, 0])), float(np.dot(v, r[:, 1]))

    @property
    def wheel_loads(self) -> np.ndarray:
        """Current wheel loads in N (FL, FR, RL, RR)."""
        return np.array([w.load for w in self.wheels])

    @property
    def g_force(self) -> np.ndarray:
        """Body-frame acceleration in g (longitudinal, lateral, vertical)."""
        return self._g_force.copy()

    @property
    def max_g(self) -> float:
        """Largest horizontal g-force seen since reset."""
        return self._max_g

    @property
    def steering(self) -> float:
        """Smoothed steering input."""
        return self._steering

    @property
    def throttle(self) -> float:
        """Smoothed throttle input."""
        return self._throttle

    @property
    def brake(self) -> float:
        """Smoothed brake input."""
        return self._brake

    def reset(
        self,
        x: float | None = None,
        y: float | None = None,
        heading: float | None = None,
    ) -> None:
        """Reset car to its spawn state, or to a new pose.

        Args:
            x: Starting X position (keeps the spawn point if None)
            y: Starting Y position
            heading: Starting heading in radians
        """
        sx, sy, sh = self._spawn
        self._spawn = (
            sx if x is None else float(x),
            sy if y is None else float(y),
            sh if heading is None else float(heading),
        )
        sx, sy, sh = self._spawn

        self.engine.reset()
        self.transmission.reset()
        self.brakes.reset()
        self.aero.reset()
        for wheel in self.wheels:
            wheel.reset()
        self.damage.reset()
        self.drift.reset()
        self.scorer.reset()

        body = self.body
        body.position = np.array([sx, sy, self.config.chassis.cg_height_m])
        body.orientation = quat.from_yaw(sh)
        body.linear_velocity = np.zeros(3)
        body.angular_velocity = np.zeros(3)
        body.clear_forces()
        body.wake()

        self._inputs = CarInputs()
        self._steering = 0.0
        self._throttle = 0.0
        self._brake = 0.0
        self._accel = np.zeros(2)
        self._g_force = np.zeros(3)
        self._max_g = 0.0
        self._modifiers = DriftModifiers()
        self._wheel_v_long = np.zeros(4)
        self._surface_name = "asphalt"
        self._update_loads(0.0)
        if self._world is not None:
            logger.info("Car %d reset at (%.1f, %.1f)", self.car_id, sx, sy)

    def set_inputs(self, inputs: CarInputs) -> None:
        """Set the inputs held for the next frame.

        Shift and reset requests act on their rising edge.
        """
        previous = self._inputs
        if inputs.reset and not previous.reset:
            self.reset()
        if inputs.shift_up and not previous.shift_up:
            self.transmission.shift_up()
        if inputs.shift_down and not previous.shift_down:
            self.transmission.shift_down()
        self._inputs = inputs

    def step(self, inputs: CarInputs, dt: float) -> int:
        """Set inputs and advance the car's world by dt.

        Attaches the car to a private world first if it has none.

        Returns:
            Number of fixed steps run
        """
        if self._world is None:
            from drivecore.simulation.world import World
            World().add_car(self, *self._spawn)
        self.set_inputs(inputs)
        return self._world.physics.step(dt)

    # ------------------------------------------------------------------
    # Per-step dynamics

    def _update_loads(self, speed: float) -> None:
        front, rear = self.aero.downforce(speed, self.chassis.front_weight_fraction)
        loads = self.weight_transfer.calculate(self._accel[0], self._accel[1], front, rear)
        for wheel, load in zip(self.wheels, loads):
            wheel.load = load
            wheel.damage = self.damage.wheel_damage(wheel.index)
            self.brakes.set_wheel_damage(wheel.index, wheel.damage)

    def apply_forces(self, dt: float) -> None:
        """Apply tire, aero, rolling and drift forces for one fixed step."""
        cfg = self.config
        body = self.body
        inputs = self._inputs

        self._steering = smooth_towards(self._steering, clamp(inputs.steering, -1.0, 1.0), cfg.steering.steering_rate, dt)
        self._throttle = smooth_towards(self._throttle, clamp(inputs.throttle, 0.0, 1.0), cfg.steering.pedal_rate, dt)
        self._brake = smooth_towards(self._brake, clamp(inputs.brake, 0.0, 1.0), cfg.steering.pedal_rate, dt)

        rot = body.rotation_matrix
        forward = rot[:, 0]
        left = rot[:, 1]
        velocity = body.linear_velocity
        speed = math.hypot(velocity[0], velocity[1])
        v_long = float(np.dot(velocity, forward))

        speed_factor = max(cfg.steering.min_speed_factor, 1.0 - speed / cfg.steering.full_lock_speed)
        steer_angle = -self._steering * cfg.steering.max_angle_rad * speed_factor

        surface = self._world.surface_at(body.position[0], body.position[1])
        self._surface_name = surface.name
        self._update_loads(speed)

        self.engine.throttle = self._throttle
        # Engine braking only when the wheels back-drive the selected gear
        gear_ratio = self.transmission.get_gear_ratio()
        driven_by_wheels = abs(v_long) > 0.5 and v_long * gear_ratio > 0.0
        engine_torque = self.engine.get_torque(driven_by_wheels=driven_by_wheels)
        gearbox_torque = self.transmission.get_output_torque(engine_torque)
        wheel_speeds = np.array([w.angular_velocity for w in self.wheels])
        wheel_torques = self.drivetrain.split(gearbox_torque, wheel_speeds)

        brake_forces = self.brakes.update(
            dt,
            self._brake,
            [w.slip_ratio for w in self.wheels],
            speed,
            self._world.environment.ambient_temp_c,
        )
        handbrake_lateral_factor = cfg.brakes.handbrake_lateral_factor
        mass_share = self.chassis.mass / 4
        contact_force = np.zeros(3)
        for wheel in self.wheels:
            steer = steer_angle if wheel.is_front else 0.0
            wheel.steer_angle = steer
            c = math.cos(steer)
            s = math.sin(steer)
            wheel_forward = forward * c + left * s
            wheel_left = left * c - forward * s

            arm = rot @ wheel.offset
            contact_velocity = body.point_velocity(body.position + arm)
            wheel_v_long = float(np.dot(contact_velocity, wheel_forward))
            self._wheel_v_long[wheel.index] = wheel_v_long

            locked = inputs.handbrake and not wheel.is_front
            fx, fy = wheel.solve_forces(
                WheelInputs(
                    v_long=wheel_v_long,
                    v_lat=float(np.dot(contact_velocity, wheel_left)),
                    drive_force=0.0 if locked else wheel_torques[wheel.index] / wheel.radius,
                    brake_force=float(brake_forces[wheel.index]),
                    surface_grip=surface.grip,
                    mass_share=mass_share,
                    handbrake=locked,
                    handbrake_lateral_factor=handbrake_lateral_factor,
                ),
                dt,
            )
            force = wheel_forward * fx + wheel_left * fy
            body.apply_force(force, body.position + arm)
            contact_force += force

        drag = self.aero.drag_force(velocity)
        body.apply_force(drag)
        contact_force += drag

        if speed > 0.1:
            rolling = cfg.rolling_resistance * surface.rolling_resistance * self.chassis.mass * GRAVITY
            resist = -rolling * np.array([velocity[0], velocity[1], 0.0]) / speed
            body.apply_force(resist)
            contact_force += resist

        if self._modifiers.yaw_torque != 0.0:
            body.apply_torque(np.array([0.0, 0.0, self._modifiers.yaw_torque]))

        accel = contact_force / self.chassis.mass
        self._accel = np.array([float(np.dot(accel, forward)), float(np.dot(accel, left))])

    def post_step(self, dt: float) -> None:
        """Update wheels, powertrain, drift and scoring after integration."""
        locked_rear = self._inputs.handbrake
        ambient = self._world.environment.ambient_temp_c
        for wheel in self.wheels:
            wheel.update_spin(self._wheel_v_long[wheel.index], dt, locked=locked_rear and not wheel.is_front)
            wheel.update_temperature(dt, ambient)

        if self.drivetrain.is_locked:
            for left, right in ((0, 1), (2, 3)):
                if left in self.drivetrain.driven_wheels:
                    mean = (self.wheels[left].angular_velocity + self.wheels[right].angular_velocity) / 2
                    self.wheels[left].angular_velocity = mean
                    self.wheels[right].angular_velocity = mean

        trans = self.transmission
        wheel_speeds = np.array([w.angular_velocity for w in self.wheels])
        engaged = trans.current_gear != 0 and trans.clutch > 0.5
        self.engine.update(dt, self.drivetrain.driven_wheel_speed(wheel_speeds), trans.get_total_ratio(), engaged)
        trans.update(dt, self.engine.rpm)

        self.engine.damage = self.damage.engine
        trans.damage = self.damage.total

        v_long, v_lat = self.local_velocity
        self._modifiers = self.drift.update(dt, v_long, v_lat, self._steering, self._throttle, self._inputs.handbrake)

        wall_distance = None
        if self.drift.is_drifting:
            wall_distance = self._world.nearest_obstacle_distance(
                self.body.position, self.config.scoring.wall_distance_m + max(self.chassis.half_extents),
            )
        self.scorer.update(
            dt,
            self.drift.is_drifting,
            self.drift.drift_angle,
            self.speed,
            self.drift.counter_steering,
            wall_distance,
        )

        self._g_force = np.array([self._accel[0], self._accel[1], 0.0]) / GRAVITY
        self._max_g = max(self._max_g, float(np.hypot(self._g_force[0], self._g_force[1])))

    def on_contact(self, manifold: ContactManifold) -> None:
        """Turn a resolved contact involving this car into damage."""
        if self.body.body_id == manifold.body_a:
            other = manifold.body_b
            normal = -manifold.normal
        elif self.body.body_id == manifold.body_b:
            other = manifold.body_a
            normal = manifold.normal
        else:
            return

        local_point = self.body.to_local(manifold.point)
        local_normal = self.body.rotation_matrix.T @ normal
        zone, increment = self.damage.apply_impact(manifold.kinetic_loss, local_point, local_normal)
        if increment <= 0.0:
            return

        self.scorer.on_collision()
        event = CollisionEvent(
            zone=zone,
            damage_increment=increment,
            impact_magnitude=manifold.kinetic_loss,
            point=manifold.point.copy(),
            normal=normal,
            other_body_id=other,
        )
        for sink in list(self._collision_sinks):
            try:
                sink(event)
            except Exception:
                logger.exception("Collision sink %r failed", sink)

    # ------------------------------------------------------------------
    # Output

    def snapshot(self) -> CarSnapshot:
        """Immutable state of the car for this frame."""
        body = self.body
        zones = self.damage.zones
        brake_temps = self.brakes.temperatures
        return CarSnapshot(
            car_id=self.car_id,
            time=self._world.time if self._world is not None else 0.0,
            position=tuple(float(v) for v in body.position),
            orientation=tuple(float(v) for v in body.orientation),
            heading=self.heading,
            velocity=tuple(float(v) for v in body.linear_velocity),
            angular_velocity=tuple(float(v) for v in body.angular_velocity),
            speed=self.speed,
            speed_kph=self.speed_kph,
            rpm=self.engine.rpm,
            gear=self.transmission.current_gear,
            gear_name=self.transmission.gear_name,
            is_shifting=self.transmission.is_shifting,
            throttle=self._throttle,
            brake=self._brake,
            steering=self._steering,
            handbrake=self._inputs.handbrake,
            abs_active=self.brakes.abs_active,
            wheels=tuple(
                WheelSnapshot(
                    grip=w.grip,
                    temperature=w.temperature,
                    slip_angle=w.slip_angle,
                    slip_ratio=w.slip_ratio,
                    rotation=w.rotation,
                    steer_angle=w.steer_angle,
                    load=w.load,
                    damage=w.damage,
                    brake_temperature=float(brake_temps[w.index]),
                )
                for w in self.wheels
            ),
            damage=DamageSnapshot(
                front=zones[DamageZone.FRONT],
                rear=zones[DamageZone.REAR],
                left=zones[DamageZone.LEFT],
                right=zones[DamageZone.RIGHT],
                engine=self.damage.engine,
                total=self.damage.total,
            ),
            drift=DriftSnapshot(
                is_drifting=self.drift.is_drifting,
                angle_deg=math.degrees(self.drift.drift_angle),
                current_score=self.scorer.current_score,
                banked_score=self.scorer.banked_score,
                combo=self.scorer.combo,
                best=self.scorer.best_drift,
                counter_steering=self.drift.counter_steering,
                drift_count=self.drift.drift_count,
                total_drifts=self.scorer.total_drifts,
            ),
            g_force=tuple(float(v) for v in self._g_force),
            max_g=self._max_g,
            surface=self._surface_name,
        )

    def get_telemetry(self) -> dict:
        """Get complete telemetry data as nested dictionaries."""
        v_long, v_lat = self.local_velocity
        return {
            "car_id": self.car_id,
            "state": {
                "x": float(self.body.position[0]),
                "y": float(self.body.position[1]),
                "heading": self.heading,
                "speed": self.speed,
                "speed_kph": self.speed_kph,
                "v_long": v_long,
                "v_lat": v_lat,
                "yaw_rate": self.yaw_rate,
                "longitudinal_g": float(self._g_force[0]),
                "lateral_g": float(self._g_force[1]),
            },
            "inputs": {
                "throttle": self._throttle,
                "brake": self._brake,
                "steering": self._steering,
                "handbrake": self._inputs.handbrake,
            },
            "engine": self.engine.get_state(),
            "transmission": self.transmission.get_state(),
            "brakes": self.brakes.get_state(),
            "aero": self.aero.get_state(),
            "chassis": self.chassis.get_state(),
            "loads": self.weight_transfer.get_state(),
            "wheels": [w.get_state() for w in self.wheels],
            "damage": self.damage.get_state(),
            "drift": self.drift.get_state(),
            "scoring": self.scorer.get_state(),
        }
