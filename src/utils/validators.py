"""YAML schema validation and config loading.

Provides centralized validation for the LED wall configuration using pydantic:
    - Panel (led_wall.v1.yaml `panel`): physical size, pixel pitch, LED size
    - Canvas (`canvas`): base render scale and maximum raster dimension
    - Optics (`optics`): brightness → gamma / bleed / blur mapping constants
    - Distance (`distance`): viewer-distance blending constants
    - Highlight (`highlight`): LED dome glare disc geometry and boost
    - Video (`video`): frame resampling mode
    - Randomness (`randomness`): seed for the static pattern's noise
    - Driver (`driver`): frame-loop defaults used by the CLI harness

All entrypoints load configs through load_led_wall_config() for fail-fast error
detection with actionable messages (offending keys, expected ranges).

Units:
    - Panel size: meters (m)
    - Pixel pitch and LED size: millimeters (mm)
    - Brightness: nits
    - Camera distance: scene units (same as the harness camera)
    - Blur: raster pixels

Usage:
    from src.utils import validators

    cfg = validators.load_led_wall_config("configs/led_wall.v1.yaml")
    cfg.panel.pixel_pitch_mm  # 8.9
"""

from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# LED WALL SCHEMA V1
# ============================================================================

class PanelConfig(BaseModel):
    """Physical panel geometry."""
    screen_width_m: float = Field(3.0, gt=0.0, description="Panel width (m)")
    screen_height_m: float = Field(2.0, gt=0.0, description="Panel height (m)")
    pixel_pitch_mm: float = Field(8.9, gt=0.0, description="LED center spacing (mm)")
    led_size_mm: float = Field(2.7, gt=0.0, description="LED package diameter (mm)")


class CanvasConfig(BaseModel):
    """Render raster sizing."""
    base_scale: int = Field(10, ge=1, description="Default raster pixels per LED cell")
    max_canvas_dim: int = Field(8192, ge=1, description="Max raster width/height (px)")


class OpticsConfig(BaseModel):
    """Brightness (nits) → gamma, bleed alpha, blur radius."""
    baseline_nits: float = Field(450.0, gt=0.0, description="Nits at full native LED output")
    max_nits: float = Field(6000.0, gt=0.0, description="UI brightness ceiling (nits)")
    dark_gamma: float = Field(3.0, ge=1.0, description="Gamma at 0 nits")
    max_bleed_alpha: float = Field(0.8, ge=0.0, le=1.0, description="Bleed alpha at max_nits")
    bleed_alpha_cap: float = Field(0.9, ge=0.0, le=1.0, description="Hard cap on bleed alpha")
    max_blur_px: float = Field(20.0, ge=0.0, description="Bleed blur radius at max_nits (px)")
    min_bleed_alpha: float = Field(0.01, ge=0.0, le=1.0, description="Bleed layer skipped at or below this")

    @model_validator(mode='after')
    def validate_nits_range(self) -> 'OpticsConfig':
        if self.max_nits <= self.baseline_nits:
            raise ValueError(
                f"max_nits ({self.max_nits}) must be > baseline_nits ({self.baseline_nits})"
            )
        return self


class DistanceConfig(BaseModel):
    """Viewer distance → LED-to-field blending."""
    blend_threshold: float = Field(8.0, ge=0.0, description="No blending at or below this distance")
    max_blend_distance: float = Field(20.0, gt=0.0, description="Full blending at this distance")
    max_blend: float = Field(0.6, ge=0.0, le=1.0, description="Max fraction moved toward the floor")
    floor_lightness_pct: float = Field(25.0, ge=0.0, le=100.0, description="Blended-into-background lightness (%)")
    max_pixel_blur_px: float = Field(3.0, ge=0.0, description="Sharpness-loss blur at full blend (px)")

    @model_validator(mode='after')
    def validate_distance_range(self) -> 'DistanceConfig':
        if self.max_blend_distance <= self.blend_threshold:
            raise ValueError(
                f"max_blend_distance ({self.max_blend_distance}) must be > "
                f"blend_threshold ({self.blend_threshold})"
            )
        return self


class HighlightConfig(BaseModel):
    """LED dome glare disc."""
    offset_frac: float = Field(0.3, ge=0.0, le=1.0, description="Up-left offset as fraction of LED radius")
    radius_frac: float = Field(0.4, ge=0.0, le=1.0, description="Highlight radius as fraction of LED radius")
    boost_pct: float = Field(20.0, ge=0.0, le=100.0, description="Lightness boost for patterns (%)")
    cap_pct: float = Field(95.0, ge=0.0, le=100.0, description="Boosted lightness cap for patterns (%)")
    video_boost: float = Field(0.2, ge=0.0, le=1.0, description="Lightness boost for video (normalized)")


class VideoConfig(BaseModel):
    """Video frame resampling."""
    interpolation: str = Field("area", description="'area' (box) or 'nearest'")

    @field_validator('interpolation')
    @classmethod
    def validate_interpolation(cls, v: str) -> str:
        allowed = {'area', 'nearest'}
        if v not in allowed:
            raise ValueError(f"interpolation must be one of {allowed}, got {v}")
        return v


class RandomnessConfig(BaseModel):
    """Entropy for the static pattern (None = reseed from OS every run)."""
    seed: Optional[int] = Field(default=None, ge=0)


class DriverConfig(BaseModel):
    """Frame-loop defaults for harnesses (not read by the core renderer)."""
    pattern: str = Field("static", description="Initial pattern name")
    time_step_s: float = Field(0.016, gt=0.0, description="Clock advance per frame (s)")
    camera_distance: float = Field(6.0, ge=0.0, description="Initial viewer distance")
    brightness_nits: float = Field(1000.0, ge=0.0, description="Initial brightness (nits)")


class LEDWallV1(BaseModel):
    """LED wall simulator configuration (led_wall.v1.yaml schema).

    Every section has defaults, so an empty mapping is a valid config.
    """
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("led_wall.v1", alias="schema", description="Schema version")
    panel: PanelConfig = Field(default_factory=PanelConfig)
    canvas: CanvasConfig = Field(default_factory=CanvasConfig)
    optics: OpticsConfig = Field(default_factory=OpticsConfig)
    distance: DistanceConfig = Field(default_factory=DistanceConfig)
    highlight: HighlightConfig = Field(default_factory=HighlightConfig)
    video: VideoConfig = Field(default_factory=VideoConfig)
    randomness: RandomnessConfig = Field(default_factory=RandomnessConfig)
    driver: DriverConfig = Field(default_factory=DriverConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "led_wall.v1":
            raise ValueError(f"Expected schema 'led_wall.v1', got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_driver_brightness(self) -> 'LEDWallV1':
        """Initial brightness must sit inside the UI range."""
        if self.driver.brightness_nits > self.optics.max_nits:
            raise ValueError(
                f"driver.brightness_nits ({self.driver.brightness_nits}) exceeds "
                f"optics.max_nits ({self.optics.max_nits})"
            )
        return self


# ============================================================================
# PUBLIC API
# ============================================================================

def load_led_wall_config(path: Union[str, Path]) -> LEDWallV1:
    """Load and validate LED wall config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to led_wall.v1.yaml file

    Returns
    -------
    LEDWallV1
        Validated configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"LED wall config not found: {path}")

    data = fs.load_yaml(path) or {}
    try:
        return LEDWallV1(**data)
    except Exception as e:
        raise ValueError(f"LED wall config validation failed at {path}: {e}") from e
