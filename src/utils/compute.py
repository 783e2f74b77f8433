"""Numeric guards shared by the simulation modules.

Provides:
    - round_half_up(): browser-style rounding (0.5 → 1), unlike Python's round()
    - finite_or(): substitute a default for NaN/Inf scalars
    - clamp_finite(): replace NaN/Inf in arrays, then clamp

The renderer must never emit NaN into a raster: scalar inputs pass through
finite_or() and float video frames through clamp_finite() before use.
"""

import logging
import math
from typing import Union

import numpy as np

logger = logging.getLogger(__name__)

Number = Union[int, float]


def round_half_up(x: Union[Number, np.ndarray]) -> Union[int, np.ndarray]:
    """Round to nearest integer with halves rounded up.

    Parameters
    ----------
    x : float or np.ndarray
        Value(s) to round

    Returns
    -------
    int or np.ndarray
        Python int for scalar input, int64 array otherwise

    Notes
    -----
    Python's round() uses banker's rounding (round(2.5) == 2). Grid sizes and
    LED diameters follow floor(x + 0.5) instead.
    """
    if np.ndim(x) == 0:
        return int(math.floor(float(x) + 0.5))
    return np.floor(np.asarray(x, dtype=np.float64) + 0.5).astype(np.int64)


def finite_or(value: Number, default: Number, name: str = "value") -> float:
    """Return value as float, or default if it is NaN/Inf or not numeric.

    Parameters
    ----------
    value : float
        Candidate value
    default : float
        Substitute for non-finite input
    name : str
        Label used in the warning message

    Returns
    -------
    float
        Finite value
    """
    try:
        v = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Non-numeric {name}={value!r}; using {default}")
        return float(default)
    if not math.isfinite(v):
        logger.warning(f"Non-finite {name}={v}; using {default}")
        return float(default)
    return v


def clamp_finite(
    x: np.ndarray,
    min_val: float = 0.0,
    max_val: float = 1.0,
    nan: float = 0.0
) -> np.ndarray:
    """Replace NaN/Inf with finite values and clamp to range.

    Parameters
    ----------
    x : np.ndarray
        Input array
    min_val : float
        Lower bound (also replaces -Inf)
    max_val : float
        Upper bound (also replaces +Inf)
    nan : float
        Replacement for NaN

    Returns
    -------
    np.ndarray
        Finite array within [min_val, max_val]

    Notes
    -----
    Logs a warning if non-finite values were present.
    """
    x = np.asarray(x, dtype=np.float64)
    if not np.isfinite(x).all():
        logger.warning(
            f"Non-finite values detected: {int(np.isnan(x).sum())} NaNs, "
            f"{int(np.isinf(x).sum())} Infs"
        )
        x = np.nan_to_num(x, nan=nan, posinf=max_val, neginf=min_val)
    return np.clip(x, min_val, max_val)
