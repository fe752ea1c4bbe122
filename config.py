# config.py
import logging

# Configure basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(module)s - %(message)s')

class ConfigurationError(Exception):
    """Custom exception for simulation configuration errors.

    Raised by `SimulationConfig.validate()` when settings are invalid or
    inconsistent in a way that would make the physics or the renderer misbehave
    (non-positive radii, a zero softening term, an empty prediction budget...).

    Attributes:
        message (str): A human-readable explanation of the configuration error.
                       This is the first argument passed to the exception constructor.
    """
    pass

class SimulationConfig:
    """Centralized, hierarchical configuration for the lensing sandbox.

    Parameters are grouped into nested static classes (`SimulationConfig.Physics`,
    `SimulationConfig.Bodies`, `SimulationConfig.Prediction`, ...). An instance
    named `config` is created at the end of this module, so every component reads
    its settings via `from config import config`.

    Simulation space is 2D with the origin at the centre of the window, `+y` up,
    and one unit equal to half the window height. All lengths and velocities
    below are expressed in those units.

    `__init__` derives the lensing calibration constant from the reference
    radius/strength pair and then calls `validate()`, which raises
    `ConfigurationError` for anything that cannot work.

    Example Usage:
        >>> from config import config
        >>> print(f"G: {config.Physics.GRAVITATIONAL_CONSTANT}")
        >>> print(f"Prediction steps: {config.Prediction.STEPS}")
    """

    # --- Physics Configuration ---
    class Physics:
        """Configuration for the N-body integrator.

        Attributes:
            GRAVITATIONAL_CONSTANT (float): G in sim units (mass is radius squared).
            SOFTENING (float): Epsilon added to the squared separation in the
                               gravity law. Bounds acceleration at zero distance.
            MAX_FRAME_DT (float): Upper clamp for a frame's elapsed time in seconds.
                                  Keeps a stalled window from producing a huge step.
        """
        GRAVITATIONAL_CONSTANT = 2.0
        SOFTENING = 1e-4
        MAX_FRAME_DT = 1.0 / 20.0

    # --- Black Hole Configuration ---
    class Bodies:
        """Sizes of the permanent anchor and of thrown black holes.

        Attributes:
            ANCHOR_RADIUS (float): Radius of the immovable central black hole.
            NEW_BODY_RADIUS (float): Radius given to every thrown black hole, also
                                     used as the radius of the predicted test body.
            CAP_SPAWNS_AT_DISPLAY_LIMIT (bool): If True, throwing is refused once the
                                                live list holds `Visualization.MAX_LENSES`
                                                bodies. Physics itself never drops bodies.
        """
        ANCHOR_RADIUS = 0.06
        NEW_BODY_RADIUS = 0.02
        CAP_SPAWNS_AT_DISPLAY_LIMIT = False

    # --- Lensing Configuration ---
    class Lensing:
        """Calibration of the visual distortion.

        Strength is derived as `k * radius**2`, with `k` chosen so that a black hole
        of `REFERENCE_RADIUS` has exactly `REFERENCE_STRENGTH`.

        Attributes:
            REFERENCE_RADIUS (float): Radius used for calibration.
            REFERENCE_STRENGTH (float): Lensing strength at `REFERENCE_RADIUS`.
            STRENGTH_CONSTANT (float): `k`, derived in `SimulationConfig.__init__`.
            DOWNSAMPLE (int): The displacement field is evaluated on a grid this many
                              times coarser than the screen and scaled back up.
            EVENT_HORIZON_COLOR (Tuple[int, int, int]): Fill inside each radius.
        """
        REFERENCE_RADIUS = 0.02
        REFERENCE_STRENGTH = 0.004
        STRENGTH_CONSTANT = None # Derived
        DOWNSAMPLE = 2
        EVENT_HORIZON_COLOR = (0, 0, 0)

    # --- Input Configuration ---
    class Input:
        """Translation of drag gestures into launches.

        Attributes:
            VELOCITY_SCALE (float): Launch velocity = drag vector (sim units) * this.
            MIN_DRAG_DISTANCE (float): Drags shorter than this (sim units) still spawn
                                       a body but no prediction line is computed.
        """
        VELOCITY_SCALE = 1.5
        MIN_DRAG_DISTANCE = 0.005

    # --- Prediction Configuration ---
    class Prediction:
        """Orbit preview settings.

        Attributes:
            STEPS (int): Maximum number of predicted points.
            STEP_DT (float): Fixed time step of the preview integration in seconds.
            LINE_COLOR (Tuple[int, int, int]): Overlay colour.
            LINE_WIDTH (int): Overlay width in pixels.
        """
        STEPS = 300
        STEP_DT = 1.0 / 60.0
        LINE_COLOR = (120, 200, 255)
        LINE_WIDTH = 2

    # --- Visualization Configuration ---
    class Visualization:
        """Configuration for the pygame window and the lens renderer.

        Attributes:
            SCREEN_WIDTH_PX (int): Width of the display window in pixels.
            SCREEN_HEIGHT_PX (int): Height of the display window in pixels.
            FPS (int): Target frames per second.
            MAX_LENSES (int): Maximum number of black holes passed to the lens pass.
                              Bodies beyond this are still simulated.
            BACKGROUND_IMAGE (str | None): Path of an image to distort. A procedural
                                           starfield is used when None or unreadable.
            STAR_COUNT (int): Stars in the procedural background.
            SHOW_BODY_OUTLINES (bool): Draw a thin ring at each black hole's radius.
            BACKGROUND_COLOR (Tuple[int, int, int]): Clear colour of the starfield.
            OUTLINE_COLOR (Tuple[int, int, int]): Ring colour.
            ANCHOR_OUTLINE_COLOR (Tuple[int, int, int]): Ring colour of the anchor.
            DRAG_LINE_COLOR (Tuple[int, int, int]): Sling line colour while dragging.
        """
        SCREEN_WIDTH_PX = 1280
        SCREEN_HEIGHT_PX = 800
        FPS = 60
        MAX_LENSES = 32
        BACKGROUND_IMAGE = None
        STAR_COUNT = 900
        SHOW_BODY_OUTLINES = True
        BACKGROUND_COLOR = (6, 6, 18)
        OUTLINE_COLOR = (255, 140, 60)
        ANCHOR_OUTLINE_COLOR = (255, 200, 90)
        DRAG_LINE_COLOR = (200, 200, 200)

    # --- Monitoring Configuration ---
    class Monitoring:
        """Configuration for system resource monitoring.

        Attributes:
            MEMORY_USAGE_WARN_MB (int): Memory usage threshold in Megabytes. If exceeded,
                                        a warning is logged.
            MEMORY_CHECK_INTERVAL_FRAMES (int): Frequency (in frames) at which
                                                memory usage is checked.
        """
        MEMORY_USAGE_WARN_MB = 1024
        MEMORY_CHECK_INTERVAL_FRAMES = 600

    # --- Debug Configuration ---
    class Debug:
        """Configuration for debugging features and logging verbosity.

        Attributes:
            DEBUG_MODE (bool): Master toggle; also lowers the root log level to DEBUG.
            MONITOR_ENERGY (bool): If True, periodically logs total system energy.
            ENERGY_CHECK_INTERVAL_FRAMES (int): Frequency (frames) for energy checks.
            LOG_MERGES (bool): Log every merge with the resulting radius.
            LOG_PREDICTION_FAILURES (bool): Log predictions that ended on a numeric error.
        """
        DEBUG_MODE = False
        MONITOR_ENERGY = False
        ENERGY_CHECK_INTERVAL_FRAMES = 300
        LOG_MERGES = True
        LOG_PREDICTION_FAILURES = True

    def __init__(self):
        """Derives dependent values and validates the configuration.

        1.  Computes `Lensing.STRENGTH_CONSTANT` from the reference pair (left as
            None for a non-positive reference radius, which `validate()` rejects).
        2.  Switches the root logger to DEBUG when `Debug.DEBUG_MODE` is set.
        3.  Calls `validate()`.

        Raises:
            ConfigurationError: If any value is invalid.
        """
        if self.Lensing.REFERENCE_RADIUS > 0:
            self.Lensing.STRENGTH_CONSTANT = self.Lensing.REFERENCE_STRENGTH / self.Lensing.REFERENCE_RADIUS ** 2

        if self.Debug.DEBUG_MODE:
            logging.getLogger().setLevel(logging.DEBUG)

        self.validate()

    def validate(self):
        """Checks every section for values the simulation cannot run with.

        Raises:
            ConfigurationError: On the first invalid setting found.
        """
        # Physics validation
        if self.Physics.GRAVITATIONAL_CONSTANT < 0:
            raise ConfigurationError("Physics.GRAVITATIONAL_CONSTANT must be non-negative.")
        if self.Physics.SOFTENING <= 0:
            raise ConfigurationError("Physics.SOFTENING must be positive to keep accelerations finite.")
        if self.Physics.MAX_FRAME_DT <= 0:
            raise ConfigurationError("Physics.MAX_FRAME_DT must be positive.")

        # Bodies validation
        if self.Bodies.ANCHOR_RADIUS <= 0 or self.Bodies.NEW_BODY_RADIUS <= 0:
            raise ConfigurationError(
                f"Black hole radii must be positive (ANCHOR_RADIUS={self.Bodies.ANCHOR_RADIUS}, "
                f"NEW_BODY_RADIUS={self.Bodies.NEW_BODY_RADIUS})."
            )
        if self.Bodies.ANCHOR_RADIUS < self.Bodies.NEW_BODY_RADIUS:
            logging.warning(
                f"Bodies.ANCHOR_RADIUS ({self.Bodies.ANCHOR_RADIUS}) is smaller than "
                f"NEW_BODY_RADIUS ({self.Bodies.NEW_BODY_RADIUS}). The anchor is usually the larger body."
            )

        # Lensing validation
        if self.Lensing.REFERENCE_RADIUS <= 0:
            raise ConfigurationError("Lensing.REFERENCE_RADIUS must be positive.")
        if self.Lensing.REFERENCE_STRENGTH < 0:
            raise ConfigurationError("Lensing.REFERENCE_STRENGTH must be non-negative.")
        if not (isinstance(self.Lensing.DOWNSAMPLE, int) and self.Lensing.DOWNSAMPLE >= 1):
            raise ConfigurationError("Lensing.DOWNSAMPLE must be an integer >= 1.")

        # Input validation
        if self.Input.VELOCITY_SCALE < 0:
            raise ConfigurationError("Input.VELOCITY_SCALE must be non-negative.")
        if self.Input.MIN_DRAG_DISTANCE < 0:
            raise ConfigurationError("Input.MIN_DRAG_DISTANCE must be non-negative.")

        # Prediction validation
        if not (isinstance(self.Prediction.STEPS, int) and self.Prediction.STEPS > 0):
            raise ConfigurationError(f"Prediction.STEPS ({self.Prediction.STEPS}) must be a positive integer.")
        if self.Prediction.STEP_DT <= 0:
            raise ConfigurationError("Prediction.STEP_DT must be positive.")

        # Visualization
        if self.Visualization.SCREEN_WIDTH_PX <= 0 or self.Visualization.SCREEN_HEIGHT_PX <= 0:
            raise ConfigurationError("Visualization screen dimensions (SCREEN_WIDTH_PX, SCREEN_HEIGHT_PX) must be positive.")
        if self.Visualization.FPS <= 0:
            raise ConfigurationError("Visualization.FPS must be positive.")
        if self.Visualization.MAX_LENSES <= 0:
            raise ConfigurationError("Visualization.MAX_LENSES must be positive.")

        # Monitoring and debug intervals
        if self.Monitoring.MEMORY_CHECK_INTERVAL_FRAMES <= 0:
            raise ConfigurationError("Monitoring.MEMORY_CHECK_INTERVAL_FRAMES must be positive.")
        if self.Debug.ENERGY_CHECK_INTERVAL_FRAMES <= 0:
            raise ConfigurationError("Debug.ENERGY_CHECK_INTERVAL_FRAMES must be positive.")

        logging.info("Configuration validated successfully.")


# --- Instantiate the configuration ---
# e.g., from config import config
try:
    config = SimulationConfig()
except ConfigurationError as e:
    logging.error(f"FATAL CONFIGURATION ERROR: {e}", exc_info=True)
    raise
