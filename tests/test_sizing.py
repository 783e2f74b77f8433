"""Test grid dimensions and canvas scale policy.

Test suites:
1. Grid dimensions from panel size and pitch
2. Canvas scale bound
3. GridSpec construction and advisory
"""

import logging

import pytest

from src.led_wall_simulator import sizing
from src.utils.validators import CanvasConfig, PanelConfig


# ============================================================================
# TEST SUITE 1: Grid Dimensions
# ============================================================================

def test_grid_dims_reference_panel():
    """3 m × 2 m at 8.9 mm → 337 × 225."""
    assert sizing.compute_grid_dims(3.0, 2.0, 0.0089) == (337, 225)


def test_grid_dims_floor_at_one():
    assert sizing.compute_grid_dims(0.001, 0.001, 1.0) == (1, 1)


@pytest.mark.parametrize("pitch", [0.0, -0.01, float('nan'), float('inf')])
def test_grid_dims_rejects_bad_pitch(pitch):
    with pytest.raises(ValueError, match="pixel_pitch_m"):
        sizing.compute_grid_dims(3.0, 2.0, pitch)


# ============================================================================
# TEST SUITE 2: Canvas Scale
# ============================================================================

def test_scale_base_when_fits():
    assert sizing.compute_canvas_scale(337, 225) == 10


def test_scale_reduced_for_wide_grid():
    assert sizing.compute_canvas_scale(820, 547) == 9


def test_scale_reduced_for_tall_grid():
    assert sizing.compute_canvas_scale(100, 2000) == 4


def test_scale_floor_is_one():
    assert sizing.compute_canvas_scale(20000, 10) == 1


def test_scale_never_exceeds_max():
    for px in range(1, 9000, 97):
        for py in (1, 225, 819, 820, 4000):
            scale = sizing.compute_canvas_scale(px, py)
            assert scale >= 1
            if scale > 1:
                assert px * scale <= 8192 and py * scale <= 8192


def test_fine_pitch_drops_below_base():
    """A pitch fine enough to push the raster past 8192 px reduces the scale."""
    px, py = sizing.compute_grid_dims(3.0, 2.0, 0.0035)
    assert px > 800
    assert sizing.compute_canvas_scale(px, py) < 10


# ============================================================================
# TEST SUITE 3: GridSpec
# ============================================================================

def test_build_grid_spec_defaults():
    grid = sizing.build_grid_spec(PanelConfig(), CanvasConfig())
    assert (grid.pixels_x, grid.pixels_y) == (337, 225)
    assert grid.scale == 10
    assert grid.shape == (2250, 3370)
    assert grid.led_size_px == 3
    assert not grid.degraded
    assert grid.advisory is None


def test_build_grid_spec_pitch_override():
    grid = sizing.build_grid_spec(PanelConfig(), CanvasConfig(), pixel_pitch_mm=15.0)
    assert (grid.pixels_x, grid.pixels_y) == (200, 133)
    assert grid.led_size_px == 2


def test_build_grid_spec_degraded(caplog):
    with caplog.at_level(logging.WARNING):
        grid = sizing.build_grid_spec(PanelConfig(), CanvasConfig(max_canvas_dim=2000))
    assert grid.scale == 5
    assert grid.degraded
    assert grid.advisory == "Canvas scale reduced to 5 to limit memory usage."
    assert "Canvas scale reduced" in caplog.text
    assert grid.width_px <= 2000 and grid.height_px <= 2000


def test_build_grid_spec_bad_pitch():
    with pytest.raises(ValueError):
        sizing.build_grid_spec(PanelConfig(), CanvasConfig(), pixel_pitch_mm=0.0)


@pytest.mark.parametrize("pitch_mm", [0.366, 0.05, 1e-6])
def test_extreme_pitch_is_coarsened_to_fit(pitch_mm, caplog):
    """Grids wider than max_canvas_dim cells even at scale 1 get a coarser pitch."""
    with caplog.at_level(logging.WARNING):
        grid = sizing.build_grid_spec(PanelConfig(), CanvasConfig(), pixel_pitch_mm=pitch_mm)
    assert grid.scale == 1
    assert grid.width_px <= 8192 and grid.height_px <= 8192
    assert grid.pixels_x == 8192
    assert grid.requested_pitch_mm == pitch_mm
    assert grid.pixel_pitch_mm == pytest.approx(3000.0 / 8192)
    assert grid.degraded
    assert "exceeds the canvas limit" in grid.advisory
    assert "Canvas scale reduced to 1" in grid.advisory
    assert "exceeds the canvas limit" in caplog.text


def test_pitch_that_fits_is_not_coarsened():
    grid = sizing.build_grid_spec(PanelConfig(), CanvasConfig(), pixel_pitch_mm=0.37)
    assert grid.requested_pitch_mm is None
    assert grid.pixel_pitch_mm == 0.37
    assert grid.pixels_x <= 8192


def test_finest_fitting_pitch():
    assert sizing.finest_fitting_pitch_mm(3.0, 2.0, 100) == pytest.approx(30.0)
    assert sizing.finest_fitting_pitch_mm(1.0, 4.0, 400) == pytest.approx(10.0)


def test_canvas_advisory():
    assert sizing.canvas_advisory(10, 10) is None
    assert sizing.canvas_advisory(3, 10) == "Canvas scale reduced to 3 to limit memory usage."
    note = sizing.canvas_advisory(10, 10, requested_pitch_mm=0.05, pixel_pitch_mm=0.3662)
    assert note == "Pixel pitch 0.05 mm exceeds the canvas limit; rendering at 0.366 mm."


def test_led_size_px():
    assert sizing.compute_led_size_px(2.7, 8.9, 10) == 3
    assert sizing.compute_led_size_px(2.7, 2.7, 10) == 10
    assert sizing.compute_led_size_px(5.0, 10.0, 9) == 5
