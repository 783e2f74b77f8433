"""Color space conversions and 8-bit encoding for LED rendering.

Provides:
    - HSL → RGB (hexagonal-prism construction, hue in degrees)
    - RGB → HSL (achromatic-safe, hue in degrees [0, 360))
    - Per-channel gamma with clamping on both sides
    - Round-half-up quantization to uint8

Used by:
    - Compositor: cell colors → gamma-corrected LED bytes
    - Video sampler: decoded RGB frames → HSL cells

All functions accept Python scalars or numpy arrays and broadcast like numpy
ufuncs. Color triples are returned stacked on the last axis, shape (..., 3),
so scalar input yields shape (3,).

Invariants:
    - Hue in degrees; wrapped modulo 360 on input, [0, 360) on output
    - Saturation, lightness and RGB channels normalized to [0, 1]
    - No error cases: callers pre-clamp inputs
"""

from typing import Union

import numpy as np

ArrayLike = Union[float, np.ndarray]


def hsl_to_rgb(h: ArrayLike, s: ArrayLike, l: ArrayLike) -> np.ndarray:
    """Convert HSL to RGB.

    Parameters
    ----------
    h : float or np.ndarray
        Hue in degrees, any real value (wrapped modulo 360, negatives included)
    s : float or np.ndarray
        Saturation, range [0, 1]
    l : float or np.ndarray
        Lightness, range [0, 1]

    Returns
    -------
    np.ndarray
        RGB, shape broadcast(h, s, l).shape + (3,), range [0, 1]

    Notes
    -----
    Chroma c = (1 - |2l - 1|) * s, x = c * (1 - |((h / 60) mod 2) - 1|),
    sector chosen from h / 60 in [0, 6), then m = l - c / 2 added to each channel.
    """
    h = np.mod(np.mod(np.asarray(h, dtype=np.float64), 360.0) + 360.0, 360.0)
    s = np.asarray(s, dtype=np.float64)
    l = np.asarray(l, dtype=np.float64)
    h, s, l = np.broadcast_arrays(h, s, l)

    c = (1.0 - np.abs(2.0 * l - 1.0)) * s
    hp = h / 60.0
    x = c * (1.0 - np.abs(np.mod(hp, 2.0) - 1.0))
    zero = np.zeros_like(c)

    sector = np.floor(hp)
    conditions = [sector == 0, sector == 1, sector == 2, sector == 3, sector == 4]
    # Anything outside [0, 5) lands in the last sector
    r1 = np.select(conditions, [c, x, zero, zero, x], default=c)
    g1 = np.select(conditions, [x, c, c, x, zero], default=zero)
    b1 = np.select(conditions, [zero, zero, x, c, c], default=x)

    m = l - c / 2.0
    return np.stack([r1 + m, g1 + m, b1 + m], axis=-1)


def rgb_to_hsl(r: ArrayLike, g: ArrayLike, b: ArrayLike) -> np.ndarray:
    """Convert RGB to HSL.

    Parameters
    ----------
    r, g, b : float or np.ndarray
        Channels, range [0, 1]

    Returns
    -------
    np.ndarray
        HSL stacked on the last axis: hue in degrees [0, 360),
        saturation and lightness in [0, 1]

    Notes
    -----
    Achromatic pixels (max == min) get h = 0, s = 0.
    Saturation uses d / (2 - max - min) when l > 0.5, else d / (max + min).
    When several channels share the maximum, red wins, then green.
    """
    r = np.asarray(r, dtype=np.float64)
    g = np.asarray(g, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    r, g, b = np.broadcast_arrays(r, g, b)

    cmax = np.maximum(np.maximum(r, g), b)
    cmin = np.minimum(np.minimum(r, g), b)
    l = (cmax + cmin) / 2.0
    d = cmax - cmin
    chromatic = d > 0

    # Guard denominators; achromatic entries are overwritten below
    safe_d = np.where(chromatic, d, 1.0)
    denom = np.where(l > 0.5, 2.0 - cmax - cmin, cmax + cmin)
    s = np.where(chromatic, d / np.where(chromatic, denom, 1.0), 0.0)

    h_r = (g - b) / safe_d + np.where(g < b, 6.0, 0.0)
    h_g = (b - r) / safe_d + 2.0
    h_b = (r - g) / safe_d + 4.0
    h = np.where(cmax == r, h_r, np.where(cmax == g, h_g, h_b))
    h = np.where(chromatic, h * 60.0, 0.0)
    h = np.mod(h, 360.0)

    return np.stack([h, s, l], axis=-1)


def apply_gamma(rgb: np.ndarray, gamma: float) -> np.ndarray:
    """Apply per-channel gamma exponent, clamping before and after.

    Parameters
    ----------
    rgb : np.ndarray
        RGB values, any shape
    gamma : float
        Exponent; 1 leaves values unchanged, > 1 darkens

    Returns
    -------
    np.ndarray
        Gamma-corrected values, range [0, 1]
    """
    out = np.clip(np.asarray(rgb, dtype=np.float64), 0.0, 1.0)
    out = np.power(out, gamma)
    return np.clip(out, 0.0, 1.0)


def quantize_u8(rgb: np.ndarray) -> np.ndarray:
    """Quantize [0, 1] values to bytes, rounding halves up."""
    scaled = np.floor(np.clip(np.asarray(rgb, dtype=np.float64), 0.0, 1.0) * 255.0 + 0.5)
    return scaled.astype(np.uint8)
