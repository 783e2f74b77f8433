"""Per-frame inputs and outputs of the renderer.

Everything that may change between frames (pitch, pattern, clock, camera
distance, brightness, video frame, entropy) travels in a RenderContext. The
renderer reads it once at the start of render_frame(), so a change never tears
a frame.
"""

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .optics import BrightnessParams
from .patterns import PatternName
from .sizing import GridSpec


@dataclass
class RenderContext:
    """Inputs for one render_frame() call.

    Attributes
    ----------
    pixel_pitch_mm : float, optional
        LED spacing; None uses the configured panel pitch
    pattern : str or PatternName
        Active source (`video` samples video_frame)
    time : float
        Animation clock (s)
    camera_distance : float
        Viewer distance (scene units)
    brightness_nits : float
        Requested brightness
    video_frame : np.ndarray, optional
        Decoded RGB frame for the `video` source
    rng : np.random.RandomState, optional
        Entropy for stochastic patterns; None uses the renderer's generator
    """
    pixel_pitch_mm: Optional[float] = None
    pattern: Union[str, PatternName] = PatternName.STATIC
    time: float = 0.0
    camera_distance: float = 6.0
    brightness_nits: float = 450.0
    video_frame: Optional[np.ndarray] = None
    rng: Optional[np.random.RandomState] = None


@dataclass
class FrameResult:
    """Output of one render_frame() call.

    Attributes
    ----------
    image : np.ndarray
        RGB uint8, shape (grid.height_px, grid.width_px, 3). Owned by the
        renderer's buffer pool and overwritten by the next frame; copy it to keep it.
    dirty : bool
        Always True: the consumer must re-upload the texture
    advisory : str, optional
        Degraded-quality notice when the render scale was reduced
    grid : GridSpec
        Geometry the frame was rendered with
    params : BrightnessParams
        Optical response used for the frame
    pixel_blur_px : float
        Distance-driven blur added to the bleed blur
    """
    image: np.ndarray
    grid: GridSpec
    params: BrightnessParams
    pixel_blur_px: float = 0.0
    advisory: Optional[str] = None
    dirty: bool = True

    @property
    def total_blur_px(self) -> float:
        return self.params.blur_radius_px + self.pixel_blur_px
