"""LED Wall Simulator: pixel simulation and compositing for LED video walls.

This package renders what an LED panel looks like to a viewer: procedural or
video-driven cell colors, distance-based blending of discrete LEDs, and
brightness-driven bleed when requested nits exceed native panel output.

Architecture layers (strict one-way dependency):
    scripts/ → src/led_wall_simulator/ → src/utils/

Key invariants:
    - Panel size in meters, pixel pitch and LED size in millimeters
    - Rasters are RGB uint8 of shape (pixels_y * scale, pixels_x * scale, 3)
    - YAML-only configs, no JSON
    - One render_frame() per display tick; no state outside RenderContext
"""

__version__ = "1.0.0"
