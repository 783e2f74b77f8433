"""Procedural per-cell color patterns.

Each pattern maps grid coordinates and animation time to (hue, saturation,
lightness) on the percent scale: hue in degrees, saturation and lightness in
[0, 100]. Patterns are numpy-vectorized: x and y may be scalars or arrays of
any broadcastable shape, and every returned component has the broadcast shape.

Registry:
    PATTERNS maps a PatternName to its function. The `video` entry is None;
    video cells come from video.VideoFrameSampler, not from a pure function.

Determinism:
    Only `static` draws random numbers (per-cell saturation jitter, resampled on
    every call). The entropy source is the injected RandomState, so a seeded
    generator reproduces frames exactly.

Usage:
    from src.led_wall_simulator import patterns

    hue, sat, light = patterns.evaluate_pattern("chase", grid, time=0.5, rng=rng)
"""

import logging
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]
HSL = Tuple[np.ndarray, np.ndarray, np.ndarray]
PatternFn = Callable[..., HSL]

CHASE_BAND_CELLS = 50.0


class PatternName(str, Enum):
    """Identifiers of the animation sources."""
    STATIC = "static"
    RAINBOW = "rainbow"
    PULSE = "pulse"
    CHASE = "chase"
    WAVE = "wave"
    STROBE = "strobe"
    SCROLL = "scroll"
    VIDEO = "video"


def _position_hue(x: ArrayLike, y: ArrayLike, grid) -> np.ndarray:
    """Diagonal hue gradient: full turn across x, 60 degrees down y."""
    return np.mod((x / grid.pixels_x) * 360.0 + (y / grid.pixels_y) * 60.0, 360.0)


def _full(shape, value: float) -> np.ndarray:
    return np.full(shape, value, dtype=np.float64)


def _shape(x: ArrayLike, y: ArrayLike) -> Tuple[int, ...]:
    return np.broadcast(x, y).shape


# ============================================================================
# PATTERNS
# ============================================================================

def static(x, y, time, grid, rng) -> HSL:
    """Position hue, jittered saturation, fixed spatial lightness ripple."""
    shape = _shape(x, y)
    hue = _position_hue(x, y, grid) + np.zeros(shape)
    saturation = 85.0 + rng.uniform(0.0, 15.0, size=shape)
    lightness = 55.0 + np.sin(x * 0.02) * 8.0 + np.cos(y * 0.02) * 8.0 + np.zeros(shape)
    return hue, saturation, lightness


def rainbow(x, y, time, grid, rng) -> HSL:
    """Hue sweep scrolling at 100 degrees per second."""
    shape = _shape(x, y)
    hue = np.mod((x / grid.pixels_x) * 360.0 + (y / grid.pixels_y) * 60.0 + time * 100.0, 360.0)
    return hue + np.zeros(shape), _full(shape, 90.0), _full(shape, 50.0)


def pulse(x, y, time, grid, rng) -> HSL:
    """Whole-panel brightness oscillation between 30 and 70."""
    shape = _shape(x, y)
    lightness = 30.0 + np.sin(time * 3.0) * 20.0 + 20.0
    return _position_hue(x, y, grid) + np.zeros(shape), _full(shape, 85.0), _full(shape, lightness)


def chase(x, y, time, grid, rng) -> HSL:
    """Bright band sweeping along x once per second.

    Lightness peaks at 80 on the band center and falls linearly to 50 at the
    band edge; cells further than CHASE_BAND_CELLS away sit at 20.
    """
    shape = _shape(x, y)
    chase_pos = np.mod(time * grid.pixels_x, grid.pixels_x)
    distance = np.abs(x - chase_pos) + np.zeros(shape)
    hue = np.mod(200.0 + distance * 2.0, 360.0)
    lightness = np.where(
        distance < CHASE_BAND_CELLS,
        50.0 + (1.0 - distance / CHASE_BAND_CELLS) * 30.0,
        20.0
    )
    return hue, _full(shape, 80.0), lightness


def wave(x, y, time, grid, rng) -> HSL:
    """Horizontal sine of lightness (50 +/- 30) travelling with time."""
    shape = _shape(x, y)
    lightness = 50.0 + np.sin((x / grid.pixels_x) * np.pi * 2.0 + time * 3.0) * 30.0
    return (
        _position_hue(x, y, grid) + np.zeros(shape),
        _full(shape, 85.0),
        lightness + np.zeros(shape)
    )


def strobe(x, y, time, grid, rng) -> HSL:
    """Lightness toggles 60/20 on each quarter second."""
    shape = _shape(x, y)
    phase = int(np.floor(time * 4.0)) % 2
    lightness = 60.0 if phase == 0 else 20.0
    return _position_hue(x, y, grid) + np.zeros(shape), _full(shape, 85.0), _full(shape, lightness)


def scroll(x, y, time, grid, rng) -> HSL:
    """Hue bands drifting right at half a panel width per second."""
    shape = _shape(x, y)
    scroll_pos = np.mod(time * grid.pixels_x * 0.5, grid.pixels_x)
    # np.mod keeps the result in [0, 360) for cells left of scroll_pos
    hue = np.mod((x - scroll_pos) / grid.pixels_x * 360.0, 360.0)
    return hue + np.zeros(shape), _full(shape, 90.0), _full(shape, 50.0)


PATTERNS: Dict[PatternName, Optional[PatternFn]] = {
    PatternName.STATIC: static,
    PatternName.RAINBOW: rainbow,
    PatternName.PULSE: pulse,
    PatternName.CHASE: chase,
    PatternName.WAVE: wave,
    PatternName.STROBE: strobe,
    PatternName.SCROLL: scroll,
    PatternName.VIDEO: None,
}

# Patterns whose output differs between two calls with identical inputs
STOCHASTIC_PATTERNS = frozenset({PatternName.STATIC})


# ============================================================================
# PUBLIC API
# ============================================================================

def resolve_pattern_name(name: Union[str, PatternName]) -> PatternName:
    """Map a name to a PatternName, falling back to static for unknown names."""
    if isinstance(name, PatternName):
        return name
    try:
        return PatternName(str(name).strip().lower())
    except ValueError:
        logger.warning(f"Unknown pattern '{name}'; falling back to '{PatternName.STATIC.value}'")
        return PatternName.STATIC


def get_pattern(name: Union[str, PatternName]) -> Optional[PatternFn]:
    """Look up a pattern function (None for video).

    Parameters
    ----------
    name : str or PatternName
        Pattern identifier; unknown names resolve to `static`

    Returns
    -------
    callable or None
        pattern(x, y, time, grid, rng) -> (hue, saturation, lightness)
    """
    return PATTERNS[resolve_pattern_name(name)]


def grid_coordinates(grid) -> Tuple[np.ndarray, np.ndarray]:
    """Integer cell coordinates as float arrays of shape (pixels_y, pixels_x)."""
    xs = np.arange(grid.pixels_x, dtype=np.float64)
    ys = np.arange(grid.pixels_y, dtype=np.float64)
    return np.meshgrid(xs, ys, indexing='xy')


def evaluate_pattern(
    name: Union[str, PatternName],
    grid,
    time: float,
    rng: np.random.RandomState,
    coords: Optional[Tuple[np.ndarray, np.ndarray]] = None
) -> HSL:
    """Evaluate a pattern over every cell of the grid.

    Parameters
    ----------
    name : str or PatternName
        Pattern identifier (not `video`)
    grid : GridSpec
        Provides pixels_x and pixels_y
    time : float
        Animation time (s)
    rng : np.random.RandomState
        Entropy for stochastic patterns
    coords : tuple of np.ndarray, optional
        Precomputed grid_coordinates(grid)

    Returns
    -------
    tuple of np.ndarray
        (hue, saturation, lightness), each shape (pixels_y, pixels_x), percent scale

    Raises
    ------
    ValueError
        If name resolves to `video`
    """
    fn = get_pattern(name)
    if fn is None:
        raise ValueError("The video source has no procedural pattern; use VideoFrameSampler")
    xx, yy = coords if coords is not None else grid_coordinates(grid)
    return fn(xx, yy, time, grid, rng)
