#!/usr/bin/env python3
"""
Basic Simulation Example

This example demonstrates how to:
1. Build a small walled arena with a gravel patch
2. Create a car and place it in the arena
3. Run a simulation loop with scripted inputs (launch, handbrake drift, brake)
4. Read snapshots, scores and recorded telemetry

Run with: python run_simulation.py
"""

from drivecore import Car, Simulator, SimulatorConfig
from drivecore.car import CarInputs
from drivecore.simulation import Shape, SurfaceMap


def scripted_inputs(step: int) -> CarInputs:
    """Inputs for the given frame of the demo run."""
    if step < 180:
        return CarInputs(throttle=1.0)
    if step < 360:
        return CarInputs(throttle=0.8, steering=0.7, handbrake=step < 200)
    return CarInputs(brake=0.6)


def main():
    print("=" * 60)
    print("drivecore Basic Simulation Example")
    print("=" * 60)

    # Step 1: Build the arena
    print("\n1. Building arena...")
    surfaces = SurfaceMap()
    surfaces.add_zone(60, -20, 90, 20, "gravel")
    sim = Simulator(SimulatorConfig(enable_telemetry=True), surfaces=surfaces)
    walls = sim.world.set_bounds(-100, -100, 100, 100)
    sim.world.add_obstacle(Shape.box(1.0, 15.0, 1.0), (45.0, 25.0, 1.0))

    print(f"   Walls: {len(walls)}")
    print(f"   Surface zones: {len(surfaces.zones)}")

    # Step 2: Spawn a car
    print("\n2. Spawning car...")
    car_id = sim.add_car(Car(), x=-60.0, y=0.0)
    print(f"   Spawned car with ID: {car_id}")

    # Step 3: Run simulation
    print("\n3. Running simulation (600 frames at 60Hz = 10 seconds)...")
    sim.start()
    for step in range(600):
        snapshots = sim.step(1 / 60, {car_id: scripted_inputs(step)})
        snap = snapshots[car_id]

        if (step + 1) % 120 == 0:
            drift = "drifting" if snap.drift.is_drifting else "gripping"
            print(f"   Frame {step + 1}: Speed = {snap.speed_kph:.1f} km/h, "
                  f"Gear = {snap.gear_name}, RPM = {snap.rpm:.0f}, "
                  f"{drift} at {snap.drift.angle_deg:.1f} deg on {snap.surface}")

    # Step 4: Final state
    print("\n4. Final snapshot:")
    car = sim.get_car(car_id)
    telemetry = car.get_telemetry()

    print(f"   Position: ({telemetry['state']['x']:.1f}, {telemetry['state']['y']:.1f})")
    print(f"   Speed: {telemetry['state']['speed_kph']:.1f} km/h")
    print(f"   Gear: {telemetry['transmission']['gear_name']}")
    print(f"   Max G: {car.max_g:.2f}g")
    print(f"   Banked score: {telemetry['scoring']['banked_score']}")
    print(f"   Best drift: {telemetry['scoring']['best_drift']}")
    print(f"   Damage: {telemetry['damage']['total']:.3f}")

    # Step 5: Recorded telemetry
    print("\n5. Telemetry summary:")
    recorder = sim.get_recorder(car_id)
    summary = recorder.get_summary()
    for name in ("speed_kph", "rpm", "drift_angle", "lateral_g"):
        stats = summary[name]
        print(f"   {name}: min={stats['min']} max={stats['max']} mean={stats['mean']}")
    print(f"   Samples: {recorder.sample_count}")

    sim.stop()
    print("\n" + "=" * 60)
    print("Simulation complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
