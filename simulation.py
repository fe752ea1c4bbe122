# simulation.py
import logging
import numpy as np
from typing import Callable, List, Optional, Tuple
from config import config
from blackholes import BlackHole, create_anchor
from gravity import GravityField
from merge import merge_black_holes
from physics_utils import as_vector, distance, require_finite

def integrate_bodies(bodies: List[BlackHole], dt: float, field: GravityField):
    """
    Advances every non-anchored body by one semi-implicit Euler step.

    Accelerations are computed for all bodies from the pre-step positions before
    any body moves. Velocity is updated first and the new velocity then moves the
    position.
    """
    accelerations = field.accelerations(bodies)
    for body, accel in zip(bodies, accelerations):
        if body.is_anchored:
            continue
        body.velocity = body.velocity + accel * dt
        body.position = body.position + body.velocity * dt

def find_first_collision(bodies: List[BlackHole]) -> Optional[Tuple[int, int]]:
    """
    Returns the first colliding pair as (lower, higher) indices, or None.

    Scan order: the highest index is checked against every lower index
    (descending) before moving down to the next one.
    """
    for i in range(len(bodies) - 1, 0, -1):
        for j in range(i - 1, -1, -1):
            separation = distance(bodies[i].position, bodies[j].position)
            if separation < bodies[i].radius + bodies[j].radius:
                return j, i
    return None

def resolve_collisions(bodies: List[BlackHole]) -> int:
    """
    Merges colliding pairs in place until none remain.

    The merged body takes the lower slot and the higher slot is removed, then the
    scan starts over on the shortened list. Chains (A+B now overlapping C) are
    therefore fully collapsed within one call. Returns the number of merges.
    """
    merges = 0
    pair = find_first_collision(bodies)
    while pair is not None:
        j, i = pair
        merged = merge_black_holes(bodies[j], bodies[i])
        if config.Debug.LOG_MERGES:
            logging.debug(f"Merged bodies {j} and {i} -> radius {merged.radius:.4f}"
                          f"{' (anchor)' if merged.is_anchored else ''}. {len(bodies) - 1} bodies remain.")
        bodies[j] = merged
        del bodies[i]
        merges += 1
        pair = find_first_collision(bodies)
    return merges

class LensingSimulation:
    """Owns the live list of black holes and advances it once per frame.

    The anchored black hole is created at construction time and always sits at
    index 0. Nothing outside this class mutates `bodies`; the orbit predictor and
    the renderer read copies or derived tuples.

    Attributes:
        bodies (List[BlackHole]): Live state, anchor first.
        field (GravityField): Gravity law shared with the orbit predictor.
        frame_count (int): Number of `step()` calls since the last reset.
        merge_count (int): Total merges since the last reset.
    """

    def __init__(self, field: GravityField = None, anchor_radius: float = None):
        self.field = field if field is not None else GravityField()
        self.anchor_radius = anchor_radius if anchor_radius is not None else config.Bodies.ANCHOR_RADIUS
        self.bodies: List[BlackHole] = []
        self.frame_count = 0
        self.merge_count = 0
        self.reset()
        logging.info(f"LensingSimulation initialized (G={self.field.G}, softening={self.field.softening}, "
                     f"anchor radius={self.anchor_radius}).")

    def reset(self):
        """Drops every thrown body and restores a fresh anchor."""
        self.bodies = [create_anchor(self.anchor_radius)]
        self.frame_count = 0
        self.merge_count = 0

    def step(self, dt: float) -> int:
        """
        Advances the simulation by `dt` seconds.

        1. Synchronous semi-implicit Euler step of all free bodies.
        2. Collision pass, restarted after every merge.

        Returns:
            int: Number of merges performed this frame.
        """
        integrate_bodies(self.bodies, dt, self.field)
        merges = resolve_collisions(self.bodies)
        self.merge_count += merges
        self.frame_count += 1
        return merges

    def spawn(self, launch_position, launch_velocity, radius: float = None) -> Optional[BlackHole]:
        """
        Adds a thrown black hole.

        Args:
            launch_position: Drag start in sim units.
            launch_velocity: Drag vector in sim units; scaled by `Input.VELOCITY_SCALE`.
            radius: Defaults to `Bodies.NEW_BODY_RADIUS`.

        Returns:
            BlackHole | None: The new body, or None when spawning is capped.

        Raises:
            PhysicsError: If the launch pair is not two finite 2D vectors.
        """
        position = require_finite(as_vector(launch_position, "launch_position"), "launch_position")
        velocity = require_finite(as_vector(launch_velocity, "launch_velocity"), "launch_velocity")

        if config.Bodies.CAP_SPAWNS_AT_DISPLAY_LIMIT and len(self.bodies) >= config.Visualization.MAX_LENSES:
            logging.warning(f"Spawn refused: {len(self.bodies)} bodies already at display limit "
                            f"({config.Visualization.MAX_LENSES}).")
            return None

        body = BlackHole(radius if radius is not None else config.Bodies.NEW_BODY_RADIUS,
                         position, velocity * config.Input.VELOCITY_SCALE)
        self.bodies.append(body)
        logging.info(f"Spawned black hole #{len(self.bodies) - 1} at {position.round(3).tolist()} "
                     f"with velocity {body.velocity.round(3).tolist()}.")
        return body

    def snapshot(self) -> List[BlackHole]:
        """Deep copy of the live bodies for non-destructive use."""
        return [body.copy() for body in self.bodies]

    def render_data(self, project: Callable[[np.ndarray], Tuple] = None) -> List[Tuple[Tuple, float, float]]:
        """
        Renderer-facing (position, radius, strength) tuples, anchor first.

        Args:
            project: Optional mapping from a sim-space position to renderer
                     coordinates. Without it, positions are sim-space tuples.
        """
        data = []
        for body in self.bodies:
            position = project(body.position) if project is not None else tuple(body.position.tolist())
            data.append((position, body.radius, body.strength))
        return data

    @property
    def anchor(self) -> BlackHole:
        return self.bodies[0]

    def total_momentum(self) -> np.ndarray:
        """Sum of mass * velocity over the free bodies."""
        momentum = np.zeros(2, dtype=np.float64)
        for body in self.bodies:
            if not body.is_anchored:
                momentum += body.mass * body.velocity
        return momentum

    def total_energy(self) -> float:
        """Kinetic energy of the free bodies plus softened potential energy of all pairs."""
        kinetic = sum(0.5 * body.mass * float(np.dot(body.velocity, body.velocity))
                      for body in self.bodies if not body.is_anchored)
        return kinetic + self.field.potential_energy(self.bodies)

    def __len__(self):
        return len(self.bodies)
