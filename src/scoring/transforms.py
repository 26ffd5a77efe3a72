"""
Scoring transformation functions.

Elementwise helpers shared by the powder score. All accept a scalar or a
numpy array and return the same kind.

Transformation types:
1. clamp - bound a value to [min, max]
2. linear - normalize a value range onto [0, 1] with clipping
3. angle_difference - shortest angular distance between bearings, in [0, 180]
4. leeward_alignment - cosine falloff from 1 (aligned) to 0 (opposed)
"""

from typing import Union

import numpy as np

# Type alias for values that can be scalar or array
NumericType = Union[float, np.ndarray]


def _like_input(result: np.ndarray) -> NumericType:
    # Return scalar if input was scalar
    if result.ndim == 0:
        return float(result)
    return result


def clamp(value: NumericType, min_value: float, max_value: float) -> NumericType:
    """
    Bound a value to [min_value, max_value].

    Example:
        >>> clamp(12.0, 0, 1)
        1.0
    """
    return _like_input(np.clip(np.asarray(value, dtype=float), min_value, max_value))


def linear(
    value: NumericType,
    value_range: tuple[float, float],
    clip: tuple[float, float] = (0.0, 1.0),
) -> NumericType:
    """
    Linear normalization of value_range onto [0, 1], then clipped.

    Args:
        value: Input value(s)
        value_range: (low, high) mapped to 0 and 1
        clip: Output bounds applied after normalization

    Returns:
        Normalized score

    Example:
        >>> linear(3.0, value_range=(0, 6))
        0.5
        >>> linear(3.0, value_range=(0, 30), clip=(0.2, 1.0))
        0.2
    """
    low, high = value_range
    if high == low:
        raise ValueError(f"value_range must not be empty, got {value_range}")
    normalized = (np.asarray(value, dtype=float) - low) / (high - low)
    return clamp(normalized, *clip)


def angle_difference(a: NumericType, b: NumericType) -> NumericType:
    """
    Shortest angular distance between two bearings.

    Symmetric in its arguments and always in [0, 180].

    Example:
        >>> angle_difference(350.0, 10.0)
        20.0
    """
    diff = np.abs(np.mod(np.asarray(a, dtype=float) - np.asarray(b, dtype=float), 360.0))
    diff = np.where(diff > 180.0, 360.0 - diff, diff)
    return _like_input(diff)


def leeward_alignment(diff_deg: NumericType) -> NumericType:
    """
    Alignment score from an angular distance.

    (cos(diff) + 1) / 2: 1.0 at 0°, 0.5 at 90°, 0.0 at 180°.
    """
    return _like_input((np.cos(np.radians(np.asarray(diff_deg, dtype=float))) + 1.0) / 2.0)
