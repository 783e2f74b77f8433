"""Test numeric guards.

Tests for src.utils.compute:
    - round_half_up differs from banker's rounding
    - finite_or substitutes defaults and warns
    - clamp_finite replaces NaN/Inf and clamps

Run:
    pytest tests/test_compute.py -v
"""

import logging

import numpy as np

from src.utils import compute


def test_round_half_up_scalars():
    assert compute.round_half_up(2.5) == 3
    assert compute.round_half_up(0.5) == 1
    assert compute.round_half_up(-2.5) == -2
    assert compute.round_half_up(337.078) == 337
    assert isinstance(compute.round_half_up(1.2), int)


def test_round_half_up_arrays():
    out = compute.round_half_up(np.array([0.5, 1.5, 2.49, -0.5]))
    assert out.dtype == np.int64
    assert out.tolist() == [1, 2, 2, 0]


def test_finite_or(caplog):
    assert compute.finite_or(3, 0.0) == 3.0
    with caplog.at_level(logging.WARNING):
        assert compute.finite_or(float('nan'), 450.0, name="brightness") == 450.0
    assert "brightness" in caplog.text
    assert compute.finite_or(float('inf'), 1.0) == 1.0
    assert compute.finite_or("abc", 2.0) == 2.0
    assert compute.finite_or(None, 2.0) == 2.0



def test_clamp_finite():
    x = np.array([np.nan, np.inf, -np.inf, 0.5, 7.0])
    out = compute.clamp_finite(x, 0.0, 1.0, nan=0.25)
    np.testing.assert_array_equal(out, [0.25, 1.0, 0.0, 0.5, 1.0])


