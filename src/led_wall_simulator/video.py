"""Resample decoded video frames onto the LED grid.

The sampler box-filters (or nearest-samples) an RGB frame of any resolution to
exactly one sample per LED cell and converts the samples to HSL on the
normalized scale: hue in degrees [0, 360), saturation and lightness in [0, 1].
This differs from the percent scale used by patterns; the compositor converts
explicitly.

Decoding is not done here. Frames arrive as arrays from whatever harness owns
the video file (scripts/render_frames.py uses cv2.VideoCapture).

Accepted frames:
    - (h, w, 3) RGB uint8, or float in [0, 1]
    - (h, w) grayscale
    - (h, w, 4) RGBA (alpha ignored)
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from src.utils.color import rgb_to_hsl
from src.utils.compute import clamp_finite

logger = logging.getLogger(__name__)

HSL = Tuple[np.ndarray, np.ndarray, np.ndarray]

_INTERPOLATION = {
    'area': cv2.INTER_AREA,
    'nearest': cv2.INTER_NEAREST,
}


def as_rgb_frame(frame: np.ndarray) -> np.ndarray:
    """Normalize a frame to float32 RGB in [0, 1], shape (h, w, 3).

    Raises
    ------
    ValueError
        If the frame is empty or not 2D/3D with 1, 3 or 4 channels
    """
    frame = np.asarray(frame)
    if frame.size == 0:
        raise ValueError(f"Empty video frame, shape {frame.shape}")

    if frame.ndim == 2:
        frame = frame[:, :, None]
    if frame.ndim != 3 or frame.shape[2] not in (1, 3, 4):
        raise ValueError(f"Video frame must be (H, W), (H, W, 3) or (H, W, 4), got {frame.shape}")

    if frame.shape[2] == 1:
        frame = np.repeat(frame, 3, axis=2)
    elif frame.shape[2] == 4:
        frame = frame[:, :, :3]

    if frame.dtype == np.uint8:
        rgb = frame.astype(np.float32) / 255.0
    else:
        rgb = clamp_finite(frame, 0.0, 1.0).astype(np.float32)
    return np.ascontiguousarray(rgb)


class VideoFrameSampler:
    """Grid resampler for external RGB frames.

    Parameters
    ----------
    interpolation : str
        'area' (box filter, default) or 'nearest'
    """

    def __init__(self, interpolation: str = 'area'):
        if interpolation not in _INTERPOLATION:
            raise ValueError(
                f"Unknown interpolation '{interpolation}'. Use one of {sorted(_INTERPOLATION)}"
            )
        self.interpolation = interpolation
        self._cv_flag = _INTERPOLATION[interpolation]

    def resample(self, frame: np.ndarray, pixels_x: int, pixels_y: int) -> np.ndarray:
        """Resample to float32 RGB (pixels_y, pixels_x, 3) in [0, 1]."""
        rgb = as_rgb_frame(frame)
        h, w = rgb.shape[:2]
        if (w, h) == (pixels_x, pixels_y):
            return rgb
        return cv2.resize(rgb, (pixels_x, pixels_y), interpolation=self._cv_flag)

    def sample(
        self,
        frame: Optional[np.ndarray],
        pixels_x: int,
        pixels_y: int
    ) -> Optional[HSL]:
        """Sample one HSL color per LED cell.

        Parameters
        ----------
        frame : np.ndarray or None
            Decoded RGB frame; None means no frame is available yet
        pixels_x, pixels_y : int
            Target grid dimensions

        Returns
        -------
        tuple of np.ndarray or None
            (hue, saturation, lightness), each (pixels_y, pixels_x), normalized
            scale; None if frame is None or empty

        Raises
        ------
        ValueError
            If the frame has an unsupported shape
        """
        if frame is None or np.size(frame) == 0:
            return None

        rgb = self.resample(frame, pixels_x, pixels_y)
        hsl = rgb_to_hsl(rgb[..., 0], rgb[..., 1], rgb[..., 2])
        return hsl[..., 0], hsl[..., 1], hsl[..., 2]
