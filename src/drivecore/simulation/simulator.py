"""
Simulator - Main simulation loop and controller.

Provides:
- High-level simulation control
- Frame stepping on top of the fixed-step physics world
- Multi-car management
- Telemetry recording
"""

from dataclasses import dataclass, field
import logging
from typing import Callable, Dict, List, Optional, Any

from drivecore.car.car import Car, CarInputs
from drivecore.car.snapshot import CarSnapshot
from drivecore.simulation.physics import PhysicsConfig, PhysicsWorld
from drivecore.simulation.rigid_body import GROUP_VEHICLE
from drivecore.simulation.surfaces import SurfaceMap
from drivecore.simulation.world import EnvironmentConditions, World
from drivecore.telemetry.recorder import RecorderConfig, TelemetryRecorder

logger = logging.getLogger(__name__)

FrameCallback = Callable[["Simulator", float], None]


@dataclass
class SimulatorConfig:
    """Simulator configuration."""
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    environment: EnvironmentConditions = field(default_factory=EnvironmentConditions)

    # Simulation limits
    max_time: float = 600.0          # Simulated seconds per run (0 = unlimited)

    # Multi-car
    allow_car_collision: bool = True

    # Telemetry
    enable_telemetry: bool = False
    recorder: RecorderConfig = field(default_factory=RecorderConfig)


class Simulator:
    """Main driving simulator.

    Each frame the simulator hands every car its inputs once, advances
    the physics world by the frame time (which runs as many fixed steps
    as fit) and returns one snapshot per car.

    Usage:
        sim = Simulator()
        car_id = sim.add_car(Car(), x=0.0, y=0.0)
        sim.start()

        while sim.is_running:
            snapshots = sim.step(1 / 60, {car_id: CarInputs(throttle=1.0)})
    """

    def __init__(
        self,
        config: SimulatorConfig | None = None,
        surfaces: SurfaceMap | None = None,
    ):
        """Initialize simulator.

        Args:
            config: Simulator configuration. Uses defaults if None.
            surfaces: Ground surfaces. All asphalt if None.
        """
        self.config = config or SimulatorConfig()
        self.world = World(
            PhysicsWorld(self.config.physics),
            self.config.environment,
            surfaces,
        )

        self._running: bool = False
        self._start_time: float = 0.0
        self._recorders: Dict[int, TelemetryRecorder] = {}

        self._pre_step_callbacks: List[FrameCallback] = []
        self._post_step_callbacks: List[FrameCallback] = []

    @property
    def physics(self) -> PhysicsWorld:
        """Physics world stepped by the simulator."""
        return self.world.physics

    @property
    def is_running(self) -> bool:
        """Check if simulation is running."""
        return self._running

    @property
    def is_paused(self) -> bool:
        """Check if simulation is paused."""
        return self.world.physics.paused

    @property
    def time(self) -> float:
        """Current simulation time."""
        return self.world.time

    @property
    def time_scale(self) -> float:
        """Simulated seconds per real second."""
        return self.world.physics.time_scale

    @time_scale.setter
    def time_scale(self, value: float) -> None:
        """Set the time scale (never negative)."""
        self.world.physics.time_scale = max(0.0, float(value))

    @property
    def cars(self) -> List[Car]:
        """List of all cars."""
        return self.world.cars

    def add_car(
        self,
        car: Car | None = None,
        x: float = 0.0,
        y: float = 0.0,
        heading: float = 0.0,
    ) -> int:
        """Add a car to the simulation.

        Args:
            car: Car to add. A default car is created if None.
            x: Starting X position
            y: Starting Y position
            heading: Starting heading in radians

        Returns:
            Car ID
        """
        car = car or Car()
        if not self.config.allow_car_collision:
            car.body.config.mask &= ~GROUP_VEHICLE
        car_id = self.world.add_car(car, x, y, heading)
        if self.config.enable_telemetry:
            self._recorders[car_id] = TelemetryRecorder(self.config.recorder, car)
        return car_id

    def remove_car(self, car_id: int) -> bool:
        """Remove a car from the simulation."""
        self._recorders.pop(car_id, None)
        return self.world.remove_car(car_id)

    def get_car(self, car_id: int) -> Optional[Car]:
        """Get car by ID.

        Args:
            car_id: Car identifier

        Returns:
            Car if found, None otherwise
        """
        return self.world.get_car(car_id)

    def get_recorder(self, car_id: int) -> Optional[TelemetryRecorder]:
        """Telemetry recorder of a car, when telemetry is enabled."""
        return self._recorders.get(car_id)

    def add_pre_step_callback(self, callback: FrameCallback) -> None:
        """Add callback(simulator, dt) run before every frame."""
        self._pre_step_callbacks.append(callback)

    def add_post_step_callback(self, callback: FrameCallback) -> None:
        """Add callback(simulator, dt) run after every frame."""
        self._post_step_callbacks.append(callback)

    def _run_callbacks(self, callbacks: List[FrameCallback], dt: float) -> None:
        for callback in list(callbacks):
            try:
                callback(self, dt)
            except Exception:
                logger.exception("Simulator callback %r failed", callback)

    def start(self) -> None:
        """Start the simulation."""
        self._running = True
        self._start_time = self.time
        self.world.physics.paused = False
        logger.info("Simulation started with %d cars", self.world.car_count)

    def stop(self) -> None:
        """Stop the simulation."""
        self._running = False
        logger.info("Simulation stopped at t=%.2fs", self.time)

    def pause(self) -> None:
        """Pause the simulation. Frames return snapshots without advancing."""
        self.world.physics.paused = True

    def resume(self) -> None:
        """Resume the simulation."""
        self.world.physics.paused = False

    def step(
        self,
        delta_time: float,
        actions: Dict[int, CarInputs] | None = None,
    ) -> Dict[int, CarSnapshot]:
        """Advance simulation by one frame.

        Cars without an entry in actions keep the inputs of the previous
        frame.

        Args:
            delta_time: Frame time in seconds
            actions: Dictionary mapping car_id to CarInputs

        Returns:
            Dictionary mapping car_id to snapshots
        """
        if not self._running:
            raise RuntimeError("Simulator is not running; call start() first")

        self._run_callbacks(self._pre_step_callbacks, delta_time)

        for car_id, inputs in (actions or {}).items():
            car = self.world.get_car(car_id)
            if car is None:
                logger.debug("Ignoring inputs for unknown car %d", car_id)
                continue
            car.set_inputs(inputs)

        if not self.is_paused:
            self.world.physics.step(delta_time)
            self.world.advance_frame()
            for recorder in self._recorders.values():
                recorder.record(self.time)

        if self.config.max_time > 0 and self.time - self._start_time >= self.config.max_time:
            self.stop()

        self._run_callbacks(self._post_step_callbacks, delta_time)
        return self.get_snapshots()

    def step_until(
        self,
        condition: Callable[["Simulator"], bool],
        delta_time: float = 1.0 / 60.0,
        action_provider: Callable[[Dict[int, CarSnapshot]], Dict[int, CarInputs]] | None = None,
        max_steps: int = 100000,
    ) -> int:
        """Step simulation until condition is met.

        Args:
            condition: Function returning True when should stop
            delta_time: Frame time in seconds
            action_provider: Function providing actions from snapshots
            max_steps: Maximum frames to run

        Returns:
            Number of frames run
        """
        steps = 0
        snapshots = self.get_snapshots()

        while self._running and steps < max_steps:
            if condition(self):
                break
            actions = action_provider(snapshots) if action_provider else None
            snapshots = self.step(delta_time, actions)
            steps += 1

        return steps

    def get_snapshots(self) -> Dict[int, CarSnapshot]:
        """Current snapshot of every car."""
        return {car.car_id: car.snapshot() for car in self.world.cars}

    def get_all_telemetry(self) -> Dict[int, Dict[str, Any]]:
        """Get current telemetry for all cars.

        Returns:
            Dictionary mapping car_id to telemetry dicts
        """
        return {car.car_id: car.get_telemetry() for car in self.world.cars}

    def reset(self) -> None:
        """Reset cars to their spawn points and clear telemetry."""
        self.world.reset()
        for recorder in self._recorders.values():
            recorder.clear()
        self._running = False
        self.world.physics.paused = False

    def get_state(self) -> Dict[str, Any]:
        """Get complete simulation state.

        Returns:
            Dictionary containing simulation state
        """
        return {
            "config": {
                "fixed_dt": self.config.physics.fixed_dt,
                "max_time": self.config.max_time,
                "allow_car_collision": self.config.allow_car_collision,
            },
            "running": self._running,
            "paused": self.is_paused,
            "time_scale": self.time_scale,
            "world": self.world.get_state(),
            "physics": self.world.physics.get_state(),
        }
