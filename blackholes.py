# blackholes.py
import numpy as np
from dataclasses import dataclass, field
from config import config
from physics_utils import as_vector

def lensing_strength(radius: float) -> float:
    """Lensing strength for a black hole of `radius`: k * radius**2."""
    return config.Lensing.STRENGTH_CONSTANT * radius ** 2

@dataclass(eq=False)
class BlackHole:
    """A point mass in simulation space.

    Mass and lensing strength are derived from the radius on every access, so
    `mass == radius**2` holds for the lifetime of the object and a merge only
    has to produce a new radius.
    """
    radius: float
    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0], dtype=np.float64)) # [x, y] in sim units
    velocity: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0], dtype=np.float64)) # [vx, vy] in sim units per second
    is_anchored: bool = False

    def __post_init__(self):
        self.radius = float(self.radius)
        if not self.radius > 0:
            raise ValueError(f"BlackHole radius must be positive, got {self.radius}.")
        self.position = as_vector(self.position, "position")
        self.velocity = as_vector(self.velocity, "velocity")

    @property
    def mass(self) -> float:
        # Area-proportional, not volumetric
        return self.radius ** 2

    @property
    def strength(self) -> float:
        return lensing_strength(self.radius)

    def copy(self) -> 'BlackHole':
        """Returns an independent copy; the arrays are not shared."""
        return BlackHole(self.radius, self.position.copy(), self.velocity.copy(), self.is_anchored)

def create_anchor(radius: float = None) -> BlackHole:
    """The permanent central black hole, at rest at the origin."""
    return BlackHole(radius if radius is not None else config.Bodies.ANCHOR_RADIUS, is_anchored=True)
