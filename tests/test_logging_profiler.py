"""Test logging configuration and frame profiling.

Test suites:
1. setup_logging idempotency, JSON file output, context fields
2. Profiler timer and TimerAccumulator
"""

import contextlib
import io
import json
import logging
import time

import pytest

from src.utils import logging_config, profiler


@pytest.fixture
def clean_logging():
    """Drop handlers installed by setup_logging and reset context."""
    root = logging.getLogger()
    saved_level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, logging_config.ContextFormatter):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
    logging_config.pop_context()


# ============================================================================
# TEST SUITE 1: Logging
# ============================================================================

def test_logging_idempotency(tmp_path, clean_logging):
    """Repeated setup replaces handlers; JSON lines carry context."""
    log_path = tmp_path / "render.log"

    errbuf = io.StringIO()
    with contextlib.redirect_stderr(errbuf):
        handlers = logging_config.setup_logging(
            log_level="INFO",
            log_file=str(log_path),
            json=True,
            to_stderr=False,
            context={"app": "test"}
        )
        assert len(handlers) == 1
        logger = logging_config.get_logger("led_wall_test")
        logger.info("hello")

        logging_config.setup_logging(
            log_level="INFO",
            log_file=str(log_path),
            json=True,
            to_stderr=False,
            context={"app": "test"}
        )
        logger.info("world")

    lines = log_path.read_text().strip().splitlines()
    assert len(lines) == 2

    rec = json.loads(lines[0])
    assert rec["msg"] == "hello"
    assert rec["lvl"] == "INFO"
    assert rec.get("app") == "test"


def test_log_context_scoped(tmp_path, clean_logging):
    log_path = tmp_path / "ctx.log"
    logging_config.setup_logging(log_file=str(log_path), json=True, to_stderr=False,
                                 context={"app": "render"})
    logger = logging_config.get_logger("led_wall_test")

    with logging_config.log_context(frame=12):
        logger.info("inside")
        assert logging_config.get_context() == {"app": "render", "frame": 12}
    logger.info("outside")

    inside, outside = [json.loads(line) for line in log_path.read_text().splitlines()]
    assert inside["frame"] == 12
    assert "frame" not in outside
    assert outside["app"] == "render"


def test_push_pop_context(clean_logging):
    logging_config.push_context(pattern="chase", frame=1)
    logging_config.pop_context(["frame"])
    assert logging_config.get_context() == {"pattern": "chase"}
    logging_config.pop_context()
    assert logging_config.get_context() == {}


def test_human_format_includes_context(clean_logging):
    formatter = logging_config.ContextFormatter("human", use_color=False)
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "degraded", None, None)
    with logging_config.log_context(app="render"):
        line = formatter.format(record)
    assert "WARNING" in line
    assert "app=render" in line
    assert line.endswith("degraded")


def test_set_level(clean_logging):
    logging_config.set_level("debug")
    assert logging.getLogger().level == logging.DEBUG


def test_bad_rotation_mode(tmp_path, clean_logging):
    with pytest.raises(ValueError, match="rotation mode"):
        logging_config.setup_logging(log_file=str(tmp_path / "x.log"), to_stderr=False,
                                     rotate={"mode": "weekly"})


# ============================================================================
# TEST SUITE 2: Profiler
# ============================================================================

def test_profiler_timer_sink():
    times = []
    with profiler.timer("render", sink=lambda name, t: times.append((name, t))):
        time.sleep(0.001)
    assert len(times) == 1
    assert times[0][0] == "render" and times[0][1] > 0


def test_profiler_timer_logs_without_sink(caplog):
    with caplog.at_level(logging.DEBUG, logger="src.utils.profiler"):
        with profiler.timer("decode"):
            pass
    assert "decode" in caplog.text


def test_timer_accumulator():
    acc = profiler.TimerAccumulator("frame")
    assert acc.mean() == 0.0 and acc.fps() == 0.0
    for _ in range(3):
        with acc.measure():
            time.sleep(0.001)
    assert acc.count == 3
    assert acc.last > 0
    assert acc.mean() == pytest.approx(acc.total_time / 3)
    assert acc.fps() == pytest.approx(1.0 / acc.mean())
    assert "frame" in repr(acc)

    acc.reset()
    assert acc.count == 0 and acc.total_time == 0.0
