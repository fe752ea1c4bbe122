# orbit_predictor.py
import logging
import numpy as np
from typing import List, Sequence
from config import config
from blackholes import BlackHole
from gravity import GravityField
from physics_utils import PhysicsError, as_vector, distance, require_finite
from simulation import integrate_bodies

class OrbitPredictor:
    """Previews the path of a black hole before it is thrown.

    The test body is massless and integrated with classic 4th-order Runge-Kutta,
    while the background black holes in a private snapshot move with the same
    semi-implicit Euler step the live simulation uses. Predictions are
    best-effort: a numeric failure ends the preview early instead of raising.

    Attributes:
        field (GravityField): Gravity law, normally shared with the live simulation.
        test_radius (float): Radius of the test body for collision checks.
    """

    def __init__(self, field: GravityField = None, test_radius: float = None):
        self.field = field if field is not None else GravityField()
        self.test_radius = config.Bodies.NEW_BODY_RADIUS if test_radius is None else float(test_radius)

    def predict(self, start_position, start_velocity, bodies: Sequence[BlackHole],
                steps: int = None, step_dt: float = None) -> List[np.ndarray]:
        """
        Predicts the positions a thrown body would pass through.

        Args:
            start_position: Launch position in sim units.
            start_velocity: Initial velocity in sim units per second (already scaled).
            bodies: Current black holes. They are deep-copied; the caller's
                    objects are never touched.
            steps: Maximum number of points, defaults to `Prediction.STEPS`.
            step_dt: Integration step in seconds, defaults to `Prediction.STEP_DT`.

        Returns:
            List[np.ndarray]: Up to `steps` positions. The last one is the position
            at which a collision was detected, if any. Empty if any input,
            including `steps` and `step_dt`, is degenerate.
        """
        points: List[np.ndarray] = []

        try:
            steps = config.Prediction.STEPS if steps is None else int(steps)
            h = config.Prediction.STEP_DT if step_dt is None else float(step_dt)
            with np.errstate(over='raise', invalid='raise', divide='raise'):
                position = require_finite(as_vector(start_position, "start_position"), "start_position")
                velocity = require_finite(as_vector(start_velocity, "start_velocity"), "start_velocity")
                snapshot = [body.copy() for body in bodies]

                for _ in range(steps):
                    if self._collides(position, snapshot):
                        points.append(position.copy())
                        break
                    points.append(position.copy())

                    frozen = [body.copy() for body in snapshot]
                    integrate_bodies(snapshot, h, self.field)
                    position, velocity = self._rk4_step(position, velocity, frozen, h)
                    require_finite(position, "predicted position")
                    require_finite(velocity, "predicted velocity")

        except (PhysicsError, ArithmeticError, ValueError, TypeError) as e_predict:
            if config.Debug.LOG_PREDICTION_FAILURES:
                logging.debug(f"Prediction stopped after {len(points)} points: {e_predict}")

        return points

    def _collides(self, position: np.ndarray, bodies: Sequence[BlackHole]) -> bool:
        for body in bodies:
            if distance(position, body.position) < body.radius + self.test_radius:
                return True
        return False

    def _rk4_step(self, x: np.ndarray, v: np.ndarray, sources: Sequence[BlackHole], h: float):
        accel = self.field.acceleration_at

        k1_x = v
        k1_v = accel(x, sources)

        k2_x = v + 0.5 * h * k1_v
        k2_v = accel(x + 0.5 * h * k1_x, sources)

        k3_x = v + 0.5 * h * k2_v
        k3_v = accel(x + 0.5 * h * k2_x, sources)

        k4_x = v + h * k3_v
        k4_v = accel(x + h * k3_x, sources)

        x_next = x + (h / 6.0) * (k1_x + 2.0 * k2_x + 2.0 * k3_x + k4_x)
        v_next = v + (h / 6.0) * (k1_v + 2.0 * k2_v + 2.0 * k3_v + k4_v)
        return x_next, v_next
