"""Optical response: brightness → gamma/bleed, viewer distance → blending.

Brightness model:
    A physical panel cannot exceed its native output (baseline_nits). Below the
    baseline the panel darkens through a gamma exponent (dark_gamma at 0 nits,
    1 at the baseline). Above it, LEDs stay at gamma 1 and the extra requested
    brightness becomes a soft halo: a blurred copy of the lit LEDs composited
    at bleed_alpha under the crisp layer.

Distance model:
    Beyond blend_threshold, discrete LEDs start merging into a continuous
    field. Lightness moves toward a background floor (up to max_blend of the
    way at max_blend_distance), and a small sharpness-loss blur is added to the
    bleed blur.

Invariants:
    - gamma >= 1, 0 <= bleed_alpha <= bleed_alpha_cap, blur_radius_px >= 0
    - compute_brightness_params(baseline) == (1, 0, 0) exactly
    - attenuate_lightness() is the identity for distance <= blend_threshold
    - Non-finite inputs never reach the raster (neutral defaults substituted)
"""

import logging
import math
from typing import NamedTuple, Optional, Union

import numpy as np

from src.utils.compute import finite_or
from src.utils.validators import DistanceConfig, OpticsConfig

logger = logging.getLogger(__name__)

_DEFAULT_OPTICS = OpticsConfig()
_DEFAULT_DISTANCE = DistanceConfig()


class BrightnessParams(NamedTuple):
    """Per-frame optical response derived from brightness."""
    gamma: float
    bleed_alpha: float
    blur_radius_px: float


# ============================================================================
# BRIGHTNESS
# ============================================================================

def compute_brightness_params(
    nits: float,
    cfg: Optional[OpticsConfig] = None
) -> BrightnessParams:
    """Map brightness (nits) to gamma, bleed alpha and blur radius.

    Parameters
    ----------
    nits : float
        Requested brightness. Non-finite values are treated as the baseline;
        negative values as 0.
    cfg : OpticsConfig, optional
        Optical constants, defaults to baseline 450 / max 6000 nits

    Returns
    -------
    BrightnessParams
        (gamma, bleed_alpha, blur_radius_px)

    Examples
    --------
    >>> compute_brightness_params(0)
    BrightnessParams(gamma=3.0, bleed_alpha=0.0, blur_radius_px=0.0)
    >>> compute_brightness_params(6000)
    BrightnessParams(gamma=1.0, bleed_alpha=0.8, blur_radius_px=20.0)
    """
    cfg = cfg or _DEFAULT_OPTICS
    baseline = cfg.baseline_nits
    nits = max(0.0, finite_or(nits, baseline, name="brightness_nits"))

    if nits <= baseline:
        frac = nits / baseline
        gamma = 1.0 + (1.0 - frac) * (cfg.dark_gamma - 1.0)
        return BrightnessParams(gamma=gamma, bleed_alpha=0.0, blur_radius_px=0.0)

    over = min(1.0, max(0.0, (nits - baseline) / (cfg.max_nits - baseline)))
    bleed_alpha = min(cfg.bleed_alpha_cap, over * cfg.max_bleed_alpha)
    blur_radius_px = over * cfg.max_blur_px
    return BrightnessParams(gamma=1.0, bleed_alpha=bleed_alpha, blur_radius_px=blur_radius_px)


def compute_emissive_intensity(
    nits: float,
    cfg: Optional[OpticsConfig] = None,
    max_intensity: float = 10.0
) -> float:
    """Material emissive intensity a 3D harness should pair with the texture.

    1 at or below the baseline, nits / baseline above it (capped at
    max_intensity). Non-finite or non-positive results fall back to 1.
    """
    cfg = cfg or _DEFAULT_OPTICS
    try:
        nits = float(nits)
    except (TypeError, ValueError):
        return 1.0
    if not math.isfinite(nits) or nits <= cfg.baseline_nits:
        return 1.0
    emissive = min(max_intensity, nits / cfg.baseline_nits)
    if not math.isfinite(emissive) or emissive <= 0:
        return 1.0
    return emissive


# ============================================================================
# DISTANCE
# ============================================================================

def distance_blend(
    camera_distance: float,
    cfg: Optional[DistanceConfig] = None
) -> float:
    """Blend factor in [0, 1]: 0 up to blend_threshold, 1 at max_blend_distance."""
    cfg = cfg or _DEFAULT_DISTANCE
    d = finite_or(camera_distance, 0.0, name="camera_distance")
    if d <= cfg.blend_threshold:
        return 0.0
    span = cfg.max_blend_distance - cfg.blend_threshold
    return min(1.0, max(0.0, (d - cfg.blend_threshold) / span))


def attenuate_lightness(
    lightness: Union[float, np.ndarray],
    camera_distance: float,
    floor: Optional[float] = None,
    cfg: Optional[DistanceConfig] = None
) -> Union[float, np.ndarray]:
    """Move lightness toward the background floor as the viewer backs away.

    Parameters
    ----------
    lightness : float or np.ndarray
        Lightness on either the percent (0-100) or normalized (0-1) scale
    camera_distance : float
        Viewer distance
    floor : float, optional
        Floor on the same scale as lightness; defaults to the percent floor
        (25). Pass cfg.floor_lightness_pct / 100 for normalized input.
    cfg : DistanceConfig, optional
        Distance constants

    Returns
    -------
    float or np.ndarray
        l * (1 - blend * max_blend) + floor * blend * max_blend
    """
    cfg = cfg or _DEFAULT_DISTANCE
    blend = distance_blend(camera_distance, cfg)
    if blend == 0.0:
        return lightness
    if floor is None:
        floor = cfg.floor_lightness_pct
    k = blend * cfg.max_blend
    return lightness * (1.0 - k) + floor * k


def distance_pixel_blur(
    camera_distance: float,
    cfg: Optional[DistanceConfig] = None
) -> float:
    """Sharpness-loss blur (px), additive with the brightness bleed blur."""
    cfg = cfg or _DEFAULT_DISTANCE
    return distance_blend(camera_distance, cfg) * cfg.max_pixel_blur_px
