"""Test YAML schema validation and config loading.

Tests for src.utils.validators:
    - Load the shipped led_wall.v1.yaml
    - Defaults for every section (empty file is valid)
    - Reject invalid configs with actionable messages
    - Cross-field checks (nits range, distance range, driver brightness)

Run:
    pytest tests/test_schemas.py -v
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from src.utils import validators


@pytest.fixture(scope="module")
def project_root():
    """Project root directory."""
    return Path(__file__).parent.parent


def _write(tmp_path, data, name="led_wall.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


# ============================================================================
# VALID CONFIGS
# ============================================================================

def test_load_shipped_config(project_root):
    cfg = validators.load_led_wall_config(project_root / "configs/led_wall.v1.yaml")
    assert cfg.schema_version == "led_wall.v1"
    assert cfg.panel.pixel_pitch_mm == 8.9
    assert cfg.canvas.max_canvas_dim == 8192
    assert cfg.optics.baseline_nits == 450
    assert cfg.distance.blend_threshold == 8
    assert cfg.driver.time_step_s == pytest.approx(0.016)
    assert cfg.randomness.seed is None


def test_empty_config_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    cfg = validators.load_led_wall_config(path)
    assert cfg == validators.LEDWallV1()
    assert cfg.highlight.cap_pct == 95.0
    assert cfg.video.interpolation == "area"


def test_partial_override(tmp_path):
    path = _write(tmp_path, {"schema": "led_wall.v1", "panel": {"pixel_pitch_mm": 3.9}})
    cfg = validators.load_led_wall_config(path)
    assert cfg.panel.pixel_pitch_mm == 3.9
    assert cfg.panel.screen_width_m == 3.0


def test_populate_by_field_name():
    cfg = validators.LEDWallV1(schema_version="led_wall.v1")
    assert cfg.schema_version == "led_wall.v1"


# ============================================================================
# INVALID CONFIGS
# ============================================================================

def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="not found"):
        validators.load_led_wall_config(tmp_path / "missing.yaml")


def test_wrong_schema(tmp_path):
    path = _write(tmp_path, {"schema": "led_wall.v2"})
    with pytest.raises(ValueError, match="validation failed"):
        validators.load_led_wall_config(path)


@pytest.mark.parametrize("section,values,needle", [
    ("panel", {"pixel_pitch_mm": 0.0}, "pixel_pitch_mm"),
    ("panel", {"screen_width_m": -1.0}, "screen_width_m"),
    ("canvas", {"base_scale": 0}, "base_scale"),
    ("optics", {"max_nits": 400.0}, "max_nits"),
    ("optics", {"bleed_alpha_cap": 1.5}, "bleed_alpha_cap"),
    ("distance", {"max_blend_distance": 5.0}, "max_blend_distance"),
    ("video", {"interpolation": "cubic"}, "interpolation"),
    ("randomness", {"seed": -1}, "seed"),
])
def test_invalid_values_rejected(tmp_path, section, values, needle):
    path = _write(tmp_path, {section: values})
    with pytest.raises(ValueError, match=needle):
        validators.load_led_wall_config(path)


def test_driver_brightness_above_max():
    with pytest.raises(ValidationError, match="brightness_nits"):
        validators.LEDWallV1(driver={"brightness_nits": 7000.0})


def test_driver_brightness_follows_custom_max():
    cfg = validators.LEDWallV1(
        optics={"max_nits": 10000.0},
        driver={"brightness_nits": 7000.0}
    )
    assert cfg.driver.brightness_nits == 7000.0
