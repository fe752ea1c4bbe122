# physics_utils.py

import numpy as np

class PhysicsError(Exception):
    """Custom exception for physics-related errors, including non-finite state."""
    pass

def as_vector(value, name="vector"):
    """
    Converts a 2-element sequence into a float64 NumPy vector.

    Args:
        value (Sequence[float] or np.ndarray): The input coordinates.
        name (str): Label used in the error message.

    Returns:
        np.ndarray: A new array of shape (2,). The input is never aliased.

    Raises:
        PhysicsError: If the input cannot be read as exactly two numbers.
    """
    try:
        vector = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise PhysicsError(f"{name} could not be converted to a 2D vector: {value!r}") from e
    if vector.shape != (2,):
        raise PhysicsError(f"{name} must have shape (2,), got {vector.shape}.")
    return vector

def require_finite(vector, name="vector"):
    """Raises PhysicsError if any component of `vector` is NaN or infinite."""
    if not np.all(np.isfinite(vector)):
        raise PhysicsError(f"{name} is not finite: {vector}")
    return vector

def distance(a, b):
    """Euclidean distance between two points."""
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)))

def safe_divide(numerator, denominator, epsilon=1e-12, default_on_zero_denom=0.0):
    """
    Divides two scalars or arrays, returning a default where the denominator is ~0.

    Args:
        numerator (float or np.ndarray): The number(s) to be divided.
        denominator (float or np.ndarray): The number(s) to divide by.
        epsilon (float): Threshold below which the denominator is considered zero.
        default_on_zero_denom (float): Value used where the denominator is effectively zero.

    Returns:
        float or np.ndarray: The quotient, with `default_on_zero_denom` substituted
        where `abs(denominator) < epsilon`.
    """
    if isinstance(denominator, np.ndarray):
        is_zero = np.abs(denominator) < epsilon
        result = np.divide(numerator, denominator,
                           out=np.full(np.broadcast(numerator, denominator).shape, default_on_zero_denom, dtype=np.float64),
                           where=~is_zero)
        return result
    if abs(denominator) < epsilon:
        return default_on_zero_denom
    return numerator / denominator

def normalize_vector(vector, epsilon=1e-12):
    """
    Normalizes a vector to unit length.

    Args:
        vector (np.ndarray): The vector to normalize.
        epsilon (float): Threshold below which the vector's magnitude is considered zero.

    Returns:
        np.ndarray: The unit vector, or a zero vector of the same shape if the
                    magnitude is below `epsilon`.
    """
    if not isinstance(vector, np.ndarray):
        vector = np.array(vector, dtype=float)

    norm = np.linalg.norm(vector)
    if norm < epsilon:
        return np.zeros_like(vector)
    return vector / norm
