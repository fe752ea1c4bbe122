# gravity.py
import numpy as np
from typing import List, Optional, Sequence
from config import config
from blackholes import BlackHole
from physics_utils import normalize_vector

class GravityField:
    """Softened Newtonian attraction between black holes.

    The acceleration of a point due to a source is

        -G * m_source / (d**2 + eps) * unit(point - source)

    which points from the point toward the source. The softening term keeps the
    magnitude below G * m / eps, so the field is finite even at zero separation;
    a point exactly on top of a source gets no contribution from it because the
    unit vector of a zero offset is the zero vector.
    """

    def __init__(self, gravitational_constant: float = None, softening: float = None):
        self.G = config.Physics.GRAVITATIONAL_CONSTANT if gravitational_constant is None else float(gravitational_constant)
        self.softening = config.Physics.SOFTENING if softening is None else float(softening)

    def acceleration_at(self, point: np.ndarray, sources: Sequence[BlackHole],
                        exclude: Optional[BlackHole] = None) -> np.ndarray:
        """
        Sums the acceleration contributions of `sources` at `point`.

        Args:
            point: Target position in sim units.
            sources: Bodies exerting attraction.
            exclude: A body to skip (compared by identity), used when `point` is
                     that body's own position.

        Returns:
            np.ndarray: Acceleration in sim units per second squared.
        """
        total_accel = np.zeros(2, dtype=np.float64)
        for source in sources:
            if source is exclude:
                continue
            offset = point - source.position
            dist_sq = float(np.dot(offset, offset))
            magnitude = self.G * source.mass / (dist_sq + self.softening)
            total_accel -= magnitude * normalize_vector(offset)
        return total_accel

    def accelerations(self, bodies: List[BlackHole]) -> List[np.ndarray]:
        """
        Acceleration of every body against all the others, from current positions.

        All values are computed before anything moves, so the update that consumes
        them is synchronous. Anchored bodies get a zero vector.
        """
        return [
            np.zeros(2, dtype=np.float64) if body.is_anchored
            else self.acceleration_at(body.position, bodies, exclude=body)
            for body in bodies
        ]

    def potential_energy(self, bodies: List[BlackHole]) -> float:
        """
        Pairwise potential energy matching the softened force law.

        With s = sqrt(eps), U(d) = -G m_i m_j (pi/2 - atan(d/s)) / s, whose radial
        derivative is G m_i m_j / (d**2 + eps) and which tends to -G m_i m_j / d
        at large separation.
        """
        s = np.sqrt(self.softening)
        total = 0.0
        for i in range(len(bodies)):
            for j in range(i + 1, len(bodies)):
                d = np.linalg.norm(bodies[j].position - bodies[i].position)
                total -= self.G * bodies[i].mass * bodies[j].mass * (np.pi / 2 - np.arctan(d / s)) / s
        return float(total)
