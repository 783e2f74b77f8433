"""Grid and canvas sizing policy.

Derives the logical LED grid from physical panel size and pixel pitch, and a
render scale (raster pixels per LED cell) that keeps the raster bounded.

Invariants:
    - pixels_x = round(screen_width_m / pitch_m), likewise Y, floored at 1
    - pixels_x * scale <= max_canvas_dim and pixels_y * scale <= max_canvas_dim
    - A pitch whose grid exceeds max_canvas_dim even at scale 1 is coarsened to
      the finest pitch that fits (reported through GridSpec.advisory)
    - scale == base_scale whenever the base fits
    - Any pitch change produces a new GridSpec (buffers keyed on its size)
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from src.utils.compute import round_half_up
from src.utils.validators import CanvasConfig, PanelConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridSpec:
    """Immutable per-frame grid geometry.

    Attributes
    ----------
    pixels_x, pixels_y : int
        Logical LED columns and rows
    scale : int
        Raster pixels per LED cell
    base_scale : int
        Scale used when the raster fits
    pixel_pitch_mm : float
        LED center spacing (mm)
    led_size_px : int
        LED disc diameter in raster pixels
    requested_pitch_mm : float, optional
        Pitch asked for when it was coarsened to fit the canvas, else None
    """
    pixels_x: int
    pixels_y: int
    scale: int
    base_scale: int
    pixel_pitch_mm: float
    led_size_px: int
    requested_pitch_mm: Optional[float] = None

    @property
    def width_px(self) -> int:
        return self.pixels_x * self.scale

    @property
    def height_px(self) -> int:
        return self.pixels_y * self.scale

    @property
    def shape(self) -> Tuple[int, int]:
        """Raster (height, width)."""
        return (self.height_px, self.width_px)

    @property
    def pitch_clamped(self) -> bool:
        return self.requested_pitch_mm is not None

    @property
    def degraded(self) -> bool:
        return self.scale < self.base_scale or self.pitch_clamped

    @property
    def advisory(self) -> Optional[str]:
        return canvas_advisory(self.scale, self.base_scale, self.requested_pitch_mm,
                               self.pixel_pitch_mm)


def compute_grid_dims(
    screen_width_m: float,
    screen_height_m: float,
    pixel_pitch_m: float
) -> Tuple[int, int]:
    """Number of LED columns and rows for a panel.

    Parameters
    ----------
    screen_width_m, screen_height_m : float
        Physical panel size (m)
    pixel_pitch_m : float
        LED spacing (m), must be finite and > 0

    Returns
    -------
    tuple of int
        (pixels_x, pixels_y), each at least 1

    Raises
    ------
    ValueError
        If pitch is non-finite or non-positive
    """
    if not math.isfinite(pixel_pitch_m) or pixel_pitch_m <= 0:
        raise ValueError(f"pixel_pitch_m must be finite and > 0, got {pixel_pitch_m}")

    pixels_x = max(1, round_half_up(screen_width_m / pixel_pitch_m))
    pixels_y = max(1, round_half_up(screen_height_m / pixel_pitch_m))
    return pixels_x, pixels_y


def compute_canvas_scale(
    pixels_x: int,
    pixels_y: int,
    base_scale: int = 10,
    max_dim: int = 8192
) -> int:
    """Raster pixels per cell, bounded by max_dim.

    Parameters
    ----------
    pixels_x, pixels_y : int
        Grid dimensions
    base_scale : int
        Preferred scale, default 10
    max_dim : int
        Max raster width/height, default 8192

    Returns
    -------
    int
        Scale >= 1

    Examples
    --------
    >>> compute_canvas_scale(337, 225)
    10
    >>> compute_canvas_scale(820, 547)
    9
    """
    scale = base_scale
    if pixels_x * scale > max_dim:
        scale = max_dim // pixels_x
    if pixels_y * scale > max_dim:
        scale = max_dim // pixels_y
    return max(1, scale)


def canvas_advisory(
    scale: int,
    base_scale: int,
    requested_pitch_mm: Optional[float] = None,
    pixel_pitch_mm: Optional[float] = None
) -> Optional[str]:
    """User-facing degraded-quality notice, or None at full scale."""
    notes = []
    if scale < base_scale:
        notes.append(f"Canvas scale reduced to {scale} to limit memory usage.")
    if requested_pitch_mm is not None:
        notes.append(
            f"Pixel pitch {requested_pitch_mm:g} mm exceeds the canvas limit; "
            f"rendering at {pixel_pitch_mm:.3f} mm."
        )
    return " ".join(notes) if notes else None


def finest_fitting_pitch_mm(
    screen_width_m: float,
    screen_height_m: float,
    max_dim: int
) -> float:
    """Smallest pitch (mm) whose grid fits max_dim cells on both axes at scale 1.

    Examples
    --------
    >>> finest_fitting_pitch_mm(3.0, 2.0, 8192)  # doctest: +ELLIPSIS
    0.366...
    """
    return max(screen_width_m, screen_height_m) * 1000.0 / max_dim


def compute_led_size_px(led_size_mm: float, pixel_pitch_mm: float, scale: int) -> int:
    """LED disc diameter in raster pixels: round(led_size / pitch * scale)."""
    return max(0, round_half_up(led_size_mm / pixel_pitch_mm * scale))


def build_grid_spec(
    panel: PanelConfig,
    canvas: CanvasConfig,
    pixel_pitch_mm: Optional[float] = None
) -> GridSpec:
    """Build the GridSpec for a pitch (defaults to panel.pixel_pitch_mm).

    A pitch so fine that the grid would exceed max_canvas_dim cells on either
    axis is replaced by finest_fitting_pitch_mm(); the GridSpec records the
    requested pitch and carries an advisory.

    Raises
    ------
    ValueError
        If pitch is non-finite or non-positive
    """
    pitch_mm = panel.pixel_pitch_mm if pixel_pitch_mm is None else float(pixel_pitch_mm)
    pixels_x, pixels_y = compute_grid_dims(
        panel.screen_width_m, panel.screen_height_m, pitch_mm / 1000.0
    )

    requested_pitch_mm = None
    max_dim = canvas.max_canvas_dim
    if pixels_x > max_dim or pixels_y > max_dim:
        requested_pitch_mm = pitch_mm
        pitch_mm = finest_fitting_pitch_mm(panel.screen_width_m, panel.screen_height_m, max_dim)
        pixels_x, pixels_y = compute_grid_dims(
            panel.screen_width_m, panel.screen_height_m, pitch_mm / 1000.0
        )
        # Guard against float rounding landing one cell over
        pixels_x, pixels_y = min(pixels_x, max_dim), min(pixels_y, max_dim)

    scale = compute_canvas_scale(pixels_x, pixels_y, canvas.base_scale, max_dim)
    led_size_px = compute_led_size_px(panel.led_size_mm, pitch_mm, scale)

    grid = GridSpec(
        pixels_x=pixels_x,
        pixels_y=pixels_y,
        scale=scale,
        base_scale=canvas.base_scale,
        pixel_pitch_mm=pitch_mm,
        led_size_px=led_size_px,
        requested_pitch_mm=requested_pitch_mm
    )
    if grid.degraded:
        logger.warning(grid.advisory)
    return grid
