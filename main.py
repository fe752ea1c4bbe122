# main.py
import numpy as np
import pygame
import os
import psutil # For memory monitoring
import logging
import cProfile
import argparse
from typing import List, Optional

from config import config, ConfigurationError
from gravity import GravityField
from orbit_predictor import OrbitPredictor
from physics_utils import PhysicsError, safe_divide
from simulation import LensingSimulation
from visualization import Visualization

class LensingApp:
    """Runs the interactive lensing sandbox.

    Owns the live `LensingSimulation`, an `OrbitPredictor` sharing its gravity
    field, and the `Visualization`. Each frame:

    1.  **Event Handling**: drag motion triggers a fresh prediction from a
        snapshot of the live bodies; drag release spawns a black hole; keys
        toggle pause (Space) and reset (R).
    2.  **Simulation Step**: the measured frame time, clamped to
        `[0, Physics.MAX_FRAME_DT]`, advances the live simulation once.
    3.  **Rendering**: the lensed frame and the preview line are drawn.
    4.  **Monitoring**: periodic memory and (optionally) energy logging.

    Attributes:
        simulation (LensingSimulation): Authoritative black hole state.
        predictor (OrbitPredictor): Throw preview.
        visualization (Visualization): Renderer and input source.
        predicted_points (List[np.ndarray]): Latest preview, empty when not dragging.
        paused (bool): When True the live simulation is not stepped.
        running (bool): Main loop flag.
    """

    def __init__(self, background_path: Optional[str] = None, headless: bool = False):
        try:
            field = GravityField()
            self.simulation = LensingSimulation(field)
            self.predictor = OrbitPredictor(field)
            self.visualization = Visualization(background_path=background_path, headless=headless)
        except ConfigurationError as e:
            logging.critical(f"Failed to initialize LensingApp due to ConfigurationError: {e}", exc_info=True)
            raise

        self.predicted_points: List[np.ndarray] = []
        self.paused = False
        self.running = True
        self.process = psutil.Process(os.getpid())
        self.initial_energy: Optional[float] = None
        logging.info("LensingApp initialized successfully.")

    @staticmethod
    def clamp_dt(dt: float) -> float:
        return float(min(max(dt, 0.0), config.Physics.MAX_FRAME_DT))

    def on_drag_move(self, launch_position, launch_vector):
        """Recomputes the preview for the current drag, or clears it when cancelled."""
        if launch_position is None or np.linalg.norm(launch_vector) < config.Input.MIN_DRAG_DISTANCE:
            self.predicted_points = []
            return
        self.predicted_points = self.predictor.predict(
            launch_position,
            np.asarray(launch_vector) * config.Input.VELOCITY_SCALE,
            self.simulation.snapshot(),
        )

    def on_drag_release(self, launch_position, launch_vector):
        """Spawns the thrown black hole and clears the preview."""
        self.predicted_points = []
        try:
            self.simulation.spawn(launch_position, launch_vector)
        except PhysicsError as e_spawn:
            logging.warning(f"Ignoring throw with degenerate input: {e_spawn}")

    def on_key(self, key: int):
        if key == pygame.K_SPACE:
            self.paused = not self.paused
            logging.info("Simulation paused." if self.paused else "Simulation resumed.")
        elif key == pygame.K_r:
            self.simulation.reset()
            self.predicted_points = []
            self.initial_energy = None
            logging.info("Simulation reset to the central black hole.")

    def advance(self, dt: float) -> int:
        """Steps the live simulation once unless paused. Returns merges this frame."""
        if self.paused:
            return 0
        merges = self.simulation.step(self.clamp_dt(dt))
        if merges:
            self.initial_energy = None # Energy baseline restarts after a merge
        return merges

    def _monitor(self, frame: int):
        if frame > 0 and frame % config.Monitoring.MEMORY_CHECK_INTERVAL_FRAMES == 0:
            try:
                memory_mb = self.process.memory_info().rss / (1024 * 1024)
                if memory_mb > config.Monitoring.MEMORY_USAGE_WARN_MB:
                    logging.warning(f"High memory usage: {memory_mb:.2f} MB at frame {frame}")
                elif config.Debug.DEBUG_MODE:
                    logging.debug(f"Memory usage: {memory_mb:.2f} MB at frame {frame}")
            except psutil.Error as e_psutil:
                logging.error(f"Could not retrieve memory usage: {e_psutil}", exc_info=True)

        if config.Debug.MONITOR_ENERGY and frame % config.Debug.ENERGY_CHECK_INTERVAL_FRAMES == 0:
            current_energy = self.simulation.total_energy()
            if self.initial_energy is None:
                self.initial_energy = current_energy
                return
            energy_change = current_energy - self.initial_energy
            energy_change_percent = safe_divide(energy_change * 100.0, abs(self.initial_energy), default_on_zero_denom=0.0)
            logging.info(f"ENERGY CHECK (Frame {frame}): Current: {current_energy:.6e}, Initial: {self.initial_energy:.6e}, "
                         f"Delta: {energy_change:.6e} ({energy_change_percent:.4f}%), bodies: {len(self.simulation)}")

    def run(self, max_frames: Optional[int] = None) -> int:
        """Main loop. Returns the number of frames rendered."""
        frame = 0
        logging.info("Starting main loop. Drag with the left mouse button to throw a black hole.")
        while self.running and (max_frames is None or frame < max_frames):
            if not self.visualization.handle_events(self.on_drag_move, self.on_drag_release, self.on_key):
                self.running = False
                break
            dt = self.visualization.tick()
            self.advance(dt)
            self.visualization.render(self.simulation, self.predicted_points, self.paused)
            self._monitor(frame)
            frame += 1
        logging.info(f"Main loop finished after {frame} frames, {self.simulation.merge_count} merges.")
        return frame

    def close(self):
        self.visualization.close()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the gravitational lensing sandbox.")
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable profiling. Statistics will be saved to 'simulation_profile.prof'."
    )
    parser.add_argument("--background", default=None, help="Image file to distort instead of the starfield.")
    parser.add_argument("--frames", type=int, default=None, help="Stop after this many frames.")
    args = parser.parse_args()

    profiler = None
    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        logging.info("cProfile profiling enabled. Output will be saved to simulation_profile.prof upon completion.")

    app = None
    try:
        logging.info("Initializing LensingApp...")
        app = LensingApp(background_path=args.background)
        app.run(max_frames=args.frames)
    except ConfigurationError as e_config_main:
        logging.critical(f"LensingApp could not be initialized or run due to a ConfigurationError: {e_config_main}", exc_info=True)
        print(f"FATAL CONFIGURATION ERROR: {e_config_main}. Check logs for details.")
    except KeyboardInterrupt:
        logging.info("Interrupted by user.")
    finally:
        if app is not None:
            app.close()
        if profiler:
            profiler.disable()
            stats_file = "simulation_profile.prof"
            try:
                profiler.dump_stats(stats_file)
                logging.info(f"Profiling data successfully saved to {stats_file}")
            except OSError as e_profile_dump:
                logging.error(f"Failed to save profiling data to {stats_file}: {e_profile_dump}", exc_info=True)
