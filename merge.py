# merge.py
import numpy as np
from blackholes import BlackHole

def merge_black_holes(a: BlackHole, b: BlackHole) -> BlackHole:
    """
    Combines two colliding black holes into a new one.

    Areas add, so with mass = radius**2 the merged radius is sqrt(r1**2 + r2**2).
    If either input is the anchor, the result is the anchor again: at the origin,
    at rest, with the combined radius. Otherwise position and velocity are the
    mass-weighted averages of the inputs, which conserves momentum.

    Neither input is modified.
    """
    merged_radius = float(np.sqrt(a.radius ** 2 + b.radius ** 2))

    if a.is_anchored or b.is_anchored:
        return BlackHole(merged_radius, is_anchored=True)

    total_mass = a.mass + b.mass
    position = (a.mass * a.position + b.mass * b.position) / total_mass
    velocity = (a.mass * a.velocity + b.mass * b.velocity) / total_mass
    return BlackHole(merged_radius, position, velocity)
