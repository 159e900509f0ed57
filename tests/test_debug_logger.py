from pathlib import Path

from keel.debug_logger import DebugLogger, prune_old_logs


def test_plain_logging_helpers_write_when_enabled(tmp_path: Path):
    logger = DebugLogger.initialize(enabled=True, log_dir=tmp_path)

    logger.info("info message")
    logger.warning("warn %s", "message")
    logger.error("error message")
    logger.debug("debug message")
    logger.close()

    log_file = logger.log_file_path
    assert log_file is not None
    assert log_file.exists()

    content = log_file.read_text()
    assert "keel.general" in content
    assert "info message" in content
    assert "warn message" in content
    assert "error message" in content
    assert "debug message" in content


def test_plain_logging_helpers_are_noops_when_disabled(tmp_path: Path):
    logger = DebugLogger.initialize(enabled=False, log_dir=tmp_path)

    logger.info("info message")
    logger.log("executor", "BATCH_START", {"calls": ["read_file"]})

    assert logger.log_file_path is None
    assert not any(tmp_path.iterdir())


def test_structured_events_and_tool_execution(tmp_path: Path):
    logger = DebugLogger.initialize(enabled=True, log_dir=tmp_path)

    logger.log("executor", "BATCH_START", {"calls": ["read_file"]}, "DEBUG")
    logger.log_tool_execution("read_file", {"path": "a.py"}, "1: x", duration_ms=1.234)
    logger.log_tool_execution("write_file", {"path": "b.py"}, error="disk full")
    logger.log_error("executor", ValueError("bad"), {"tool": "edit_file"})
    logger.close()

    content = logger.log_file_path.read_text()
    assert "keel.executor" in content
    assert "[BATCH_START]" in content
    assert '"duration_ms": 1.23' in content
    assert '"error": "disk full"' in content
    assert '"error_type": "ValueError"' in content


def test_prune_old_logs_keeps_newest(tmp_path: Path):
    import os

    for n in range(4):
        path = tmp_path / f"keel_debug_{n}.log"
        path.write_text("x")
        os.utime(path, (1000 + n, 1000 + n))

    prune_old_logs(tmp_path, keep=2)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["keel_debug_2.log", "keel_debug_3.log"]


def test_initialize_returns_singleton(tmp_path: Path):
    first = DebugLogger.initialize(enabled=False, log_dir=tmp_path)
    second = DebugLogger.initialize(enabled=True, log_dir=tmp_path)

    assert first is second
    assert second.enabled is False
