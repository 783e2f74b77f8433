"""LED wall pixel simulation and compositing engine.

Turns (grid, pattern or video frame, time, camera distance, brightness) into a
composited RGB raster.

Modules:
    - sizing: grid dimensions and bounded render scale
    - optics: brightness → gamma/bleed/blur, distance → attenuation/blur
    - patterns: procedural per-cell color patterns
    - video: decoded RGB frame → per-cell HSL
    - context: RenderContext / FrameResult
    - compositor: LEDWallRenderer

Used by:
    - scripts/render_frames.py: offline frame driver
    - Any display harness that uploads FrameResult.image as a texture
"""

from .compositor import FrameBufferPool, LEDWallRenderer
from .context import FrameResult, RenderContext
from .optics import (
    BrightnessParams,
    attenuate_lightness,
    compute_brightness_params,
    compute_emissive_intensity,
    distance_blend,
    distance_pixel_blur,
)
from .patterns import PATTERNS, PatternName, evaluate_pattern, get_pattern
from .sizing import GridSpec, build_grid_spec, compute_canvas_scale, compute_grid_dims
from .video import VideoFrameSampler

__all__ = [
    'LEDWallRenderer',
    'FrameBufferPool',
    'RenderContext',
    'FrameResult',
    'BrightnessParams',
    'compute_brightness_params',
    'compute_emissive_intensity',
    'distance_blend',
    'attenuate_lightness',
    'distance_pixel_blur',
    'PATTERNS',
    'PatternName',
    'evaluate_pattern',
    'get_pattern',
    'GridSpec',
    'build_grid_spec',
    'compute_canvas_scale',
    'compute_grid_dims',
    'VideoFrameSampler',
]
