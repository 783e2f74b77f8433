"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - Numeric guards: finite substitution, clamping, rounding (compute)
    - Color science: HSL ↔ RGB, gamma, byte quantization (color)
    - Atomic I/O (fs)
    - Frame timing (profiler)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (led_wall_simulator, scripts).

Convenience imports:
    from src.utils import color, compute, fs, validators
    from src.utils.logging_config import setup_logging, get_logger
"""

from . import color
from . import compute
from . import fs
from . import logging_config
from . import profiler
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'compute',
    'fs',
    'logging_config',
    'profiler',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
