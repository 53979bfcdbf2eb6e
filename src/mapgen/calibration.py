"""Shift height fields so that a chosen quantile lands on a target value."""

import numpy as np
from numpy.typing import NDArray


def array_quantile(sorted_values: NDArray[np.float32], fraction: float) -> float:
    """Linearly interpolated quantile of an already sorted 1D array.

    Args:
        sorted_values: Values in ascending order.
        fraction: Quantile in [0, 1]; values outside are clamped.

    Returns:
        The interpolated value at position fraction * (n - 1).

    Raises:
        ValueError: If the array is empty.
    """
    count = len(sorted_values)
    if count == 0:
        raise ValueError("Cannot take the quantile of an empty array")
    position = fraction * (count - 1)
    if position <= 0:
        return float(sorted_values[0])
    if position >= count - 1:
        return float(sorted_values[-1])
    low = int(position)
    weight = position - low
    return float(sorted_values[low] * (1.0 - weight) + sorted_values[low + 1] * weight)


def calibrate_height(
    field: NDArray[np.float32], target: float, fraction: float
) -> NDArray[np.float32]:
    """Return field shifted so its fraction-quantile equals target.

    Calibrating to target 0 at fraction 1 - x leaves exactly a fraction x of
    the cells at or above zero (up to ties).
    """
    adjustment = target - array_quantile(np.sort(field, axis=None), fraction)
    return (field + adjustment).astype(field.dtype)


def calibrate_height_in_place(field: NDArray[np.float32], target: float, fraction: float) -> None:
    """Shift field in place so its fraction-quantile equals target."""
    field += np.asarray(target - array_quantile(np.sort(field, axis=None), fraction), dtype=field.dtype)
