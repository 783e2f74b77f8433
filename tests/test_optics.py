"""Test the brightness and distance optical response.

Test suites:
1. Brightness → (gamma, bleed_alpha, blur_radius_px)
2. Distance blend, lightness attenuation, pixel blur
3. Emissive intensity helper
"""

import math

import numpy as np
import pytest

from src.led_wall_simulator import optics
from src.utils.validators import DistanceConfig, OpticsConfig


# ============================================================================
# TEST SUITE 1: Brightness
# ============================================================================

def test_baseline_is_neutral():
    """At exactly the baseline: gamma 1, no bleed, no blur."""
    params = optics.compute_brightness_params(450.0)
    assert params == (1.0, 0.0, 0.0)
    assert params.gamma == 1.0
    assert params.bleed_alpha == 0.0
    assert params.blur_radius_px == 0.0


def test_zero_nits_is_darkest():
    assert optics.compute_brightness_params(0.0) == (3.0, 0.0, 0.0)


def test_gamma_interpolates_below_baseline():
    assert optics.compute_brightness_params(225.0).gamma == pytest.approx(2.0)
    gammas = [optics.compute_brightness_params(n).gamma for n in np.linspace(0, 450, 10)]
    assert all(a > b for a, b in zip(gammas, gammas[1:]))


def test_max_nits_bleed_and_blur():
    """6000 nits: bleed at the 0.8 ramp end (not the 0.9 cap), blur 20 px."""
    params = optics.compute_brightness_params(6000.0)
    assert params.gamma == 1.0
    assert params.bleed_alpha == pytest.approx(0.8)
    assert params.blur_radius_px == pytest.approx(20.0)


def test_over_baseline_ramp():
    over = (1000.0 - 450.0) / (6000.0 - 450.0)
    params = optics.compute_brightness_params(1000.0)
    assert params.gamma == 1.0
    assert params.bleed_alpha == pytest.approx(over * 0.8)
    assert params.blur_radius_px == pytest.approx(over * 20.0)


def test_beyond_max_is_clamped():
    assert optics.compute_brightness_params(1e6) == optics.compute_brightness_params(6000.0)


def test_bleed_cap_applies():
    cfg = OpticsConfig(max_bleed_alpha=1.0, bleed_alpha_cap=0.9)
    assert optics.compute_brightness_params(6000.0, cfg).bleed_alpha == pytest.approx(0.9)


@pytest.mark.parametrize("bad", [float('nan'), float('inf'), float('-inf'), "bright"])
def test_non_finite_nits_is_baseline(bad):
    assert optics.compute_brightness_params(bad) == (1.0, 0.0, 0.0)


def test_negative_nits_clamped_to_zero():
    assert optics.compute_brightness_params(-100.0) == (3.0, 0.0, 0.0)


def test_params_always_finite():
    for nits in np.linspace(-1000, 20000, 101):
        params = optics.compute_brightness_params(nits)
        assert all(math.isfinite(v) for v in params)
        assert params.gamma >= 1.0
        assert 0.0 <= params.bleed_alpha <= 0.9
        assert params.blur_radius_px >= 0.0


# ============================================================================
# TEST SUITE 2: Distance
# ============================================================================

def test_distance_blend_ramp():
    assert optics.distance_blend(0.0) == 0.0
    assert optics.distance_blend(8.0) == 0.0
    assert optics.distance_blend(14.0) == pytest.approx(0.5)
    assert optics.distance_blend(20.0) == pytest.approx(1.0)
    assert optics.distance_blend(100.0) == 1.0
    assert optics.distance_blend(float('nan')) == 0.0


def test_attenuation_identity_when_near():
    lightness = np.array([0.0, 25.0, 55.0, 100.0])
    for d in (0.0, 3.0, 6.0, 8.0):
        np.testing.assert_array_equal(optics.attenuate_lightness(lightness, d), lightness)


def test_attenuation_at_max_distance():
    """At distance 20 lightness moves 60% of the way toward the floor."""
    assert optics.attenuate_lightness(80.0, 20.0) == pytest.approx(80.0 - 0.6 * (80.0 - 25.0))
    assert optics.attenuate_lightness(10.0, 20.0) == pytest.approx(10.0 + 0.6 * (25.0 - 10.0))
    assert optics.attenuate_lightness(0.8, 20.0, floor=0.25) == pytest.approx(0.47)


def test_attenuation_fixed_point():
    assert optics.attenuate_lightness(25.0, 15.0) == pytest.approx(25.0)


def test_attenuation_custom_config():
    cfg = DistanceConfig(blend_threshold=2.0, max_blend_distance=4.0, max_blend=1.0,
                         floor_lightness_pct=0.0)
    assert optics.attenuate_lightness(50.0, 4.0, cfg=cfg) == pytest.approx(0.0)
    assert optics.attenuate_lightness(50.0, 3.0, cfg=cfg) == pytest.approx(25.0)


def test_distance_pixel_blur():
    assert optics.distance_pixel_blur(5.0) == 0.0
    assert optics.distance_pixel_blur(14.0) == pytest.approx(1.5)
    assert optics.distance_pixel_blur(20.0) == pytest.approx(3.0)
    assert optics.distance_pixel_blur(40.0) == pytest.approx(3.0)


# ============================================================================
# TEST SUITE 3: Emissive Intensity
# ============================================================================

def test_emissive_intensity():
    assert optics.compute_emissive_intensity(0.0) == 1.0
    assert optics.compute_emissive_intensity(450.0) == 1.0
    assert optics.compute_emissive_intensity(900.0) == pytest.approx(2.0)
    assert optics.compute_emissive_intensity(4000.0) == pytest.approx(4000.0 / 450.0)
    assert optics.compute_emissive_intensity(6000.0) == 10.0
    assert optics.compute_emissive_intensity(1e9) == 10.0


@pytest.mark.parametrize("bad", [float('nan'), float('inf'), None, "x", -5.0])
def test_emissive_intensity_fallback(bad):
    assert optics.compute_emissive_intensity(bad) == 1.0
