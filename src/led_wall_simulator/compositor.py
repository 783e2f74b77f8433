"""LED wall compositor: cell colors → discs → bleed + crisp layers.

Architecture:
    - Per frame: brightness → (gamma, bleed_alpha, blur) and distance → pixel
      blur, computed once
    - Cell colors from a pattern (percent HSL) or the video sampler
      (normalized HSL), evaluated over the whole grid with numpy
    - Distance attenuation → clamp → HSL→RGB → gamma → 8-bit quantize
    - One disc coverage stamp (and one highlight stamp) per geometry,
      rasterized with OpenCV at 8x supersampling and box-downsampled
    - On-canvas layer: premultiplied RGB + coverage alpha, filled by
      broadcasting cell colors over the stamps (no per-cell Python loop).
      LEDs wider than the pitch overlap their neighbours, later cells
      (row-major) painted over earlier ones
    - Output: black, then the Gaussian-blurred on-canvas layer at bleed_alpha,
      then the crisp on-canvas layer on top (premultiplied source-over)

Invariants:
    - Raster is (pixels_y * scale, pixels_x * scale, 3) uint8 RGB and never
      exceeds max_canvas_dim per side (too fine a pitch is coarsened)
    - bleed_alpha <= min_bleed_alpha → no blurred layer at all
    - Missing video frame → black grid, never an exception
    - Buffers are reused while (width, height) is unchanged, replaced on resize
    - Per-frame painting and compositing reuse pooled buffers

Usage:
    from src.led_wall_simulator import LEDWallRenderer, RenderContext
    from src.utils import validators

    cfg = validators.load_led_wall_config("configs/led_wall.v1.yaml")
    renderer = LEDWallRenderer(cfg)
    result = renderer.render_frame(RenderContext(pattern="chase", time=0.5,
                                                 camera_distance=6.0,
                                                 brightness_nits=1000.0))
    result.image  # (2250, 3370, 3) uint8
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np

from src.utils import color as color_utils
from src.utils.compute import finite_or
from src.utils.profiler import TimerAccumulator
from src.utils.validators import LEDWallV1, load_led_wall_config

from . import optics, patterns
from .context import FrameResult, RenderContext
from .sizing import GridSpec, build_grid_spec
from .video import VideoFrameSampler

logger = logging.getLogger(__name__)

SUPERSAMPLE = 8
_SUBPIXEL_SHIFT = 4


# ============================================================================
# STAMPS
# ============================================================================

def disc_stamp(
    cell_px: int,
    center: Tuple[float, float],
    radius: float,
    supersample: int = SUPERSAMPLE
) -> np.ndarray:
    """Anti-aliased coverage of a filled disc inside a square stamp.

    Parameters
    ----------
    cell_px : int
        Stamp side in raster pixels
    center : tuple of float
        Disc center (x, y) in continuous stamp coordinates, where (0, 0) is the
        top-left corner and (cell_px, cell_px) the bottom-right
    radius : float
        Disc radius in raster pixels
    supersample : int
        Rasterization factor before box downsampling

    Returns
    -------
    np.ndarray
        Coverage in [0, 1], shape (cell_px, cell_px), float32

    Notes
    -----
    Parts of the disc outside the stamp are dropped.
    """
    coverage = np.zeros((cell_px, cell_px), dtype=np.float32)
    if radius <= 0 or cell_px <= 0:
        return coverage

    hi = cell_px * supersample
    mask = np.zeros((hi, hi), dtype=np.uint8)
    fixed = 1 << _SUBPIXEL_SHIFT
    # Pixel i spans [i, i + 1) so its center sits at i + 0.5
    cx = int(round((center[0] * supersample - 0.5) * fixed))
    cy = int(round((center[1] * supersample - 0.5) * fixed))
    r = int(round(radius * supersample * fixed))
    cv2.circle(mask, (cx, cy), r, 255, thickness=-1, lineType=cv2.LINE_8, shift=_SUBPIXEL_SHIFT)

    coverage = cv2.resize(
        mask.astype(np.float32) / 255.0, (cell_px, cell_px), interpolation=cv2.INTER_AREA
    )
    return np.clip(coverage, 0.0, 1.0).reshape(cell_px, cell_px)


@dataclass
class CellStamps:
    """Disc and highlight coverage for one cell geometry.

    Stamps span the LED's own cell plus `margin` neighbouring cells on each
    side, so an LED wider than the pitch spills onto its neighbours. With
    margin 0 they are exactly one cell.

    disc_weight is the disc coverage left visible under the highlight,
    disc * (1 - highlight); alpha is the combined coverage of both.
    """
    disc: np.ndarray
    highlight: np.ndarray
    disc_weight: np.ndarray
    alpha: np.ndarray
    scale: int = 1
    margin: int = 0

    def offsets(self) -> List[Tuple[int, int]]:
        """(dy, dx) from source cell to painted cell, in paint order.

        A pixel receives the LEDs of earlier cells (row-major) first, so
        later cells overlap earlier ones.
        """
        span = range(self.margin, -self.margin - 1, -1)
        return [(dy, dx) for dy in span for dx in span]

    def tile(self, stamp: np.ndarray, dy: int, dx: int) -> np.ndarray:
        """Part of a stamp that lands in the cell at offset (dy, dx)."""
        s, m = self.scale, self.margin
        return stamp[(m + dy) * s:(m + dy + 1) * s, (m + dx) * s:(m + dx + 1) * s]


def build_cell_stamps(
    scale: int,
    led_size_px: int,
    offset_frac: float = 0.3,
    radius_frac: float = 0.4
) -> CellStamps:
    """Stamps for an LED of diameter led_size_px centered in a scale-px cell.

    The highlight is centered at (-offset_frac * r, -offset_frac * r) from
    the LED center with radius radius_frac * r.
    """
    radius = led_size_px / 2.0
    margin = max(0, int(math.ceil((radius - scale / 2.0) / scale))) if scale > 0 else 0
    size = (2 * margin + 1) * scale
    center = margin * scale + scale / 2.0

    disc = disc_stamp(size, (center, center), radius)
    hl_center = center - radius * offset_frac
    highlight = disc_stamp(size, (hl_center, hl_center), radius * radius_frac)
    disc_weight = disc * (1.0 - highlight)
    alpha = highlight + disc_weight
    return CellStamps(disc=disc, highlight=highlight, disc_weight=disc_weight, alpha=alpha,
                      scale=scale, margin=margin)


def _pad_cells(cells: np.ndarray, margin: int) -> np.ndarray:
    """Zero-pad a (py, px, ...) cell array by margin cells on each side."""
    pad = [(margin, margin), (margin, margin)] + [(0, 0)] * (cells.ndim - 2)
    return np.pad(cells, pad)


def _shift_cells(
    padded: np.ndarray,
    dy: int,
    dx: int,
    margin: int,
    shape: Tuple[int, int]
) -> np.ndarray:
    """View of cells[r - dy, c - dx] over the grid, zero outside it."""
    py, px = shape
    return padded[margin - dy:margin - dy + py, margin - dx:margin - dx + px]


# ============================================================================
# BUFFERS
# ============================================================================

class FrameBuffers:
    """Storage for one raster size.

    Attributes
    ----------
    premult : np.ndarray
        On-canvas premultiplied RGB, (H, W, 3) float32
    alpha : np.ndarray
        On-canvas coverage, (H, W) float32
    inv_alpha : np.ndarray
        1 - alpha, (H, W, 1) float32
    composite : np.ndarray
        Float scratch for painting and the output composite, (H, W, 3) float32
    coverage_scratch : np.ndarray
        Float scratch for per-layer coverage, (H, W) float32
    output : np.ndarray
        Final raster, (H, W, 3) uint8
    geometry_key : tuple or None
        Cell geometry the alpha planes were filled for
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.premult = np.zeros((height, width, 3), dtype=np.float32)
        self.alpha = np.zeros((height, width), dtype=np.float32)
        self.inv_alpha = np.ones((height, width, 1), dtype=np.float32)
        self.composite = np.zeros((height, width, 3), dtype=np.float32)
        self.coverage_scratch = np.zeros((height, width), dtype=np.float32)
        self.output = np.zeros((height, width, 3), dtype=np.uint8)
        self.geometry_key: Optional[Tuple] = None

    @property
    def nbytes(self) -> int:
        return sum(a.nbytes for a in (self.premult, self.alpha, self.inv_alpha,
                                      self.composite, self.coverage_scratch, self.output))


class FrameBufferPool:
    """Frame buffers keyed by (width, height).

    Holds a single entry: asking for a new size drops the previous buffers so
    resizes never accumulate memory.
    """

    def __init__(self):
        self._key: Optional[Tuple[int, int]] = None
        self._buffers: Optional[FrameBuffers] = None
        self.allocations = 0

    def get(self, width: int, height: int) -> FrameBuffers:
        key = (width, height)
        if self._key != key:
            if self._buffers is not None:
                logger.debug(f"Releasing frame buffers {self._key[0]}x{self._key[1]}")
            self._buffers = None
            self._buffers = FrameBuffers(width, height)
            self._key = key
            self.allocations += 1
            logger.debug(
                f"Allocated frame buffers {width}x{height} "
                f"({self._buffers.nbytes / 1e6:.1f} MB)"
            )
        return self._buffers

    def clear(self) -> None:
        self._key = None
        self._buffers = None


# ============================================================================
# RENDERER
# ============================================================================

class LEDWallRenderer:
    """Frame-synchronous LED wall renderer.

    Holds only configuration and caches (grid, stamps, buffers, default RNG,
    timers); all per-frame state arrives in a RenderContext.

    Attributes
    ----------
    cfg : LEDWallV1
        Validated configuration
    grid : GridSpec or None
        Geometry of the last rendered frame
    pool : FrameBufferPool
        Raster storage
    sampler : VideoFrameSampler
        Video → grid resampler
    rng : np.random.RandomState
        Default entropy for stochastic patterns
    frame_timer : TimerAccumulator
        Wall-clock time per render_frame()
    """

    def __init__(self, cfg: Optional[LEDWallV1] = None):
        self.cfg = cfg if cfg is not None else LEDWallV1()
        self.pool = FrameBufferPool()
        self.sampler = VideoFrameSampler(self.cfg.video.interpolation)
        self.rng = np.random.RandomState(self.cfg.randomness.seed)
        self.frame_timer = TimerAccumulator("render_frame")

        self.grid: Optional[GridSpec] = None
        self._stamps: Optional[CellStamps] = None
        self._stamps_key: Optional[Tuple] = None
        self._coords: Optional[Tuple[np.ndarray, np.ndarray]] = None

        panel = self.cfg.panel
        logger.info(
            f"LEDWallRenderer initialized: panel={panel.screen_width_m}x{panel.screen_height_m} m, "
            f"pitch={panel.pixel_pitch_mm} mm, base_scale={self.cfg.canvas.base_scale}, "
            f"max_canvas_dim={self.cfg.canvas.max_canvas_dim}"
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'LEDWallRenderer':
        """Build a renderer from a led_wall.v1.yaml file."""
        return cls(load_led_wall_config(path))

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def update_grid(self, pixel_pitch_mm: Optional[float] = None) -> GridSpec:
        """Recompute the grid for a pitch; invalid pitch keeps the previous grid.

        Parameters
        ----------
        pixel_pitch_mm : float, optional
            Requested pitch; None uses the configured panel pitch

        Returns
        -------
        GridSpec
            Active geometry
        """
        pitch = self.cfg.panel.pixel_pitch_mm if pixel_pitch_mm is None else pixel_pitch_mm
        if self.grid is not None and pitch in (self.grid.pixel_pitch_mm, self.grid.requested_pitch_mm):
            return self.grid

        try:
            grid = build_grid_spec(self.cfg.panel, self.cfg.canvas, pitch)
        except (TypeError, ValueError) as e:
            if self.grid is not None:
                logger.warning(f"Ignoring invalid pixel pitch {pixel_pitch_mm!r}: {e}")
                return self.grid
            logger.warning(
                f"Invalid pixel pitch {pixel_pitch_mm!r} ({e}); "
                f"using panel pitch {self.cfg.panel.pixel_pitch_mm} mm"
            )
            grid = build_grid_spec(self.cfg.panel, self.cfg.canvas)

        if grid != self.grid:
            logger.info(
                f"Grid {grid.pixels_x}x{grid.pixels_y} @ {grid.pixel_pitch_mm} mm, "
                f"scale={grid.scale}, raster={grid.width_px}x{grid.height_px}, "
                f"led={grid.led_size_px} px"
            )
            if self.grid is None or (grid.pixels_x, grid.pixels_y) != (self.grid.pixels_x, self.grid.pixels_y):
                self._coords = None
            self.grid = grid
        return self.grid

    def _cell_stamps(self, grid: GridSpec) -> CellStamps:
        hl = self.cfg.highlight
        key = (grid.scale, grid.led_size_px, hl.offset_frac, hl.radius_frac)
        if self._stamps_key != key:
            self._stamps = build_cell_stamps(grid.scale, grid.led_size_px, hl.offset_frac, hl.radius_frac)
            self._stamps_key = key
        return self._stamps

    def _buffers(self, grid: GridSpec, stamps: CellStamps) -> FrameBuffers:
        buffers = self.pool.get(grid.width_px, grid.height_px)
        if buffers.geometry_key != self._stamps_key:
            if stamps.margin == 0:
                buffers.alpha[...] = np.tile(stamps.alpha, (grid.pixels_y, grid.pixels_x))
            else:
                self._overlap_coverage(buffers, grid, stamps)
            np.subtract(1.0, buffers.alpha[..., None], out=buffers.inv_alpha)
            buffers.geometry_key = self._stamps_key
        return buffers

    def _overlap_coverage(self, buffers: FrameBuffers, grid: GridSpec, stamps: CellStamps) -> None:
        """Union coverage of LEDs that spill onto neighbouring cells."""
        shape = (grid.pixels_y, grid.pixels_x)
        s, m = grid.scale, stamps.margin
        valid = _pad_cells(np.ones(shape, dtype=np.float32), m)
        layer = buffers.coverage_scratch
        layer_view = layer.reshape(grid.pixels_y, s, grid.pixels_x, s)

        # alpha holds transparency until the end
        transparency = buffers.alpha
        transparency.fill(1.0)
        for dy, dx in stamps.offsets():
            np.multiply(
                _shift_cells(valid, dy, dx, m, shape)[:, None, :, None],
                stamps.tile(stamps.alpha, dy, dx)[None, :, None, :],
                out=layer_view
            )
            np.subtract(1.0, layer, out=layer)
            transparency *= layer
        np.subtract(1.0, transparency, out=buffers.alpha)

    @property
    def coverage(self) -> Optional[np.ndarray]:
        """On-canvas coverage alpha of the last frame, (H, W) float32."""
        if self.grid is None:
            return None
        return self.pool.get(self.grid.width_px, self.grid.height_px).alpha

    # ------------------------------------------------------------------
    # Cell colors
    # ------------------------------------------------------------------

    def _gamma_bytes(self, hue, saturation, lightness, gamma: float) -> np.ndarray:
        """Normalized HSL → gamma-corrected RGB on the 8-bit grid, as float32."""
        rgb = color_utils.hsl_to_rgb(hue, saturation, lightness)
        rgb = color_utils.apply_gamma(rgb, gamma)
        return color_utils.quantize_u8(rgb).astype(np.float32) / 255.0

    def _pattern_colors(
        self,
        name: patterns.PatternName,
        grid: GridSpec,
        time: float,
        camera_distance: float,
        gamma: float,
        rng: np.random.RandomState
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Disc and highlight colors for a procedural pattern, (py, px, 3) each."""
        if self._coords is None:
            self._coords = patterns.grid_coordinates(grid)

        hue, sat, light = patterns.evaluate_pattern(name, grid, time, rng, self._coords)
        light = optics.attenuate_lightness(
            light, camera_distance, self.cfg.distance.floor_lightness_pct, self.cfg.distance
        )
        s_norm = np.clip(sat / 100.0, 0.0, 1.0)
        l_norm = np.clip(light / 100.0, 0.0, 1.0)
        disc_rgb = self._gamma_bytes(hue, s_norm, l_norm, gamma)

        if name in patterns.STOCHASTIC_PATTERNS:
            # Highlight gets its own noise sample
            _, hl_sat, _ = patterns.evaluate_pattern(name, grid, time, rng, self._coords)
            hl_s_norm = np.clip(hl_sat / 100.0, 0.0, 1.0)
        else:
            hl_s_norm = s_norm

        hl = self.cfg.highlight
        hl_l_norm = np.clip(np.minimum(light + hl.boost_pct, hl.cap_pct) / 100.0, 0.0, 1.0)
        highlight_rgb = self._gamma_bytes(hue, hl_s_norm, hl_l_norm, gamma)
        return disc_rgb, highlight_rgb

    def _video_colors(
        self,
        frame: Optional[np.ndarray],
        grid: GridSpec,
        camera_distance: float,
        gamma: float
    ) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """Disc and highlight colors sampled from a video frame, or None."""
        try:
            hsl = self.sampler.sample(frame, grid.pixels_x, grid.pixels_y)
        except ValueError as e:
            logger.warning(f"Unusable video frame, rendering black: {e}")
            return None
        if hsl is None:
            return None

        hue, sat, light = hsl
        floor = self.cfg.distance.floor_lightness_pct / 100.0
        light = optics.attenuate_lightness(light, camera_distance, floor, self.cfg.distance)
        sat = np.clip(sat, 0.0, 1.0)
        light = np.clip(light, 0.0, 1.0)
        disc_rgb = self._gamma_bytes(hue, sat, light, gamma)

        hl_light = np.minimum(1.0, light + self.cfg.highlight.video_boost)
        highlight_rgb = self._gamma_bytes(hue, sat, hl_light, gamma)
        return disc_rgb, highlight_rgb

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------

    def _paint_cells(
        self,
        buffers: FrameBuffers,
        grid: GridSpec,
        stamps: CellStamps,
        disc_rgb: np.ndarray,
        highlight_rgb: np.ndarray
    ) -> None:
        """Fill the on-canvas layer: disc, then highlight source-over, per cell."""
        if stamps.margin > 0:
            self._paint_overlapping(buffers, grid, stamps, disc_rgb, highlight_rgb)
            return

        s = grid.scale
        view = buffers.premult.reshape(grid.pixels_y, s, grid.pixels_x, s, 3)
        scratch = buffers.composite.reshape(grid.pixels_y, s, grid.pixels_x, s, 3)
        np.multiply(
            disc_rgb[:, None, :, None, :],
            stamps.disc_weight[None, :, None, :, None],
            out=view
        )
        np.multiply(
            highlight_rgb[:, None, :, None, :],
            stamps.highlight[None, :, None, :, None],
            out=scratch
        )
        view += scratch

    def _paint_overlapping(
        self,
        buffers: FrameBuffers,
        grid: GridSpec,
        stamps: CellStamps,
        disc_rgb: np.ndarray,
        highlight_rgb: np.ndarray
    ) -> None:
        """Paint LEDs wider than a cell, each source-over the cells before it."""
        shape = (grid.pixels_y, grid.pixels_x)
        s, m = grid.scale, stamps.margin
        valid = _pad_cells(np.ones(shape, dtype=np.float32), m)
        discs = _pad_cells(disc_rgb, m)
        highlights = _pad_cells(highlight_rgb, m)

        premult = buffers.premult
        premult.fill(0.0)
        layer = buffers.composite
        layer_view = layer.reshape(grid.pixels_y, s, grid.pixels_x, s, 3)
        keep = buffers.coverage_scratch
        keep_view = keep.reshape(grid.pixels_y, s, grid.pixels_x, s)

        for dy, dx in stamps.offsets():
            np.multiply(
                _shift_cells(valid, dy, dx, m, shape)[:, None, :, None],
                stamps.tile(stamps.alpha, dy, dx)[None, :, None, :],
                out=keep_view
            )
            np.subtract(1.0, keep, out=keep)
            premult *= keep[..., None]

            np.multiply(
                _shift_cells(discs, dy, dx, m, shape)[:, None, :, None, :],
                stamps.tile(stamps.disc_weight, dy, dx)[None, :, None, :, None],
                out=layer_view
            )
            premult += layer
            np.multiply(
                _shift_cells(highlights, dy, dx, m, shape)[:, None, :, None, :],
                stamps.tile(stamps.highlight, dy, dx)[None, :, None, :, None],
                out=layer_view
            )
            premult += layer

    def _composite(self, buffers: FrameBuffers, bleed_alpha: float, total_blur: float) -> np.ndarray:
        """Black → blurred on-canvas at bleed_alpha → crisp on-canvas."""
        out = buffers.composite
        if bleed_alpha > self.cfg.optics.min_bleed_alpha and total_blur > 0:
            # Transparent outside the raster
            out = cv2.GaussianBlur(
                buffers.premult, (0, 0), dst=out, sigmaX=total_blur, sigmaY=total_blur,
                borderType=cv2.BORDER_CONSTANT
            )
            out *= buffers.inv_alpha
            out *= bleed_alpha
            out += buffers.premult
        else:
            np.copyto(out, buffers.premult)

        # quantize_u8 in place: round half up on the 8-bit grid
        np.clip(out, 0.0, 1.0, out=out)
        out *= 255.0
        out += 0.5
        np.floor(out, out=out)
        buffers.output[...] = out
        return buffers.output

    def render_frame(self, ctx: RenderContext) -> FrameResult:
        """Render one frame.

        Parameters
        ----------
        ctx : RenderContext
            Per-frame inputs (pitch, pattern, time, distance, brightness,
            optional video frame and RNG)

        Returns
        -------
        FrameResult
            Raster (view into the buffer pool), dirty flag, advisory, and the
            optical parameters used

        Notes
        -----
        Expected input problems (non-finite numbers, unknown pattern, missing
        or malformed video frame, invalid pitch) are logged and substituted;
        they never raise.
        """
        with self.frame_timer.measure():
            grid = self.update_grid(ctx.pixel_pitch_mm)
            params = optics.compute_brightness_params(ctx.brightness_nits, self.cfg.optics)
            camera_distance = finite_or(ctx.camera_distance, 0.0, name="camera_distance")
            pixel_blur = optics.distance_pixel_blur(camera_distance, self.cfg.distance)
            time = finite_or(ctx.time, 0.0, name="time")
            rng = ctx.rng if ctx.rng is not None else self.rng

            stamps = self._cell_stamps(grid)
            buffers = self._buffers(grid, stamps)

            name = patterns.resolve_pattern_name(ctx.pattern)
            if name is patterns.PatternName.VIDEO:
                colors = self._video_colors(ctx.video_frame, grid, camera_distance, params.gamma)
            else:
                colors = self._pattern_colors(name, grid, time, camera_distance, params.gamma, rng)

            if colors is None:
                # No frame yet: black grid
                buffers.premult.fill(0.0)
            else:
                self._paint_cells(buffers, grid, stamps, *colors)

            image = self._composite(buffers, params.bleed_alpha, params.blur_radius_px + pixel_blur)

        logger.debug(
            f"Frame t={time:.3f} pattern={name.value} gamma={params.gamma:.3f} "
            f"bleed={params.bleed_alpha:.3f} blur={params.blur_radius_px + pixel_blur:.2f}px "
            f"in {self.frame_timer.last * 1000:.1f} ms"
        )
        return FrameResult(
            image=image,
            grid=grid,
            params=params,
            pixel_blur_px=pixel_blur,
            advisory=grid.advisory,
            dirty=True
        )
