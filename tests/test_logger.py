import logging

from rich.console import Console

from ai_agent.logger import get_log_history, log_fatal, set_log_level, setup_logging


def test_file_log_lines_are_timestamped(tmp_path):
    log_file = tmp_path / "agent.log"
    setup_logging("info", str(log_file), console=Console(quiet=True))
    log = logging.getLogger("ai_agent.tests")
    log.debug("hidden")
    log.warning("disk almost full")
    log.info("process started")

    lines = get_log_history(str(log_file), 10)
    assert len(lines) == 2
    assert lines[0].endswith("[WARN] disk almost full")
    assert lines[1].endswith("[INFO] process started")
    assert lines[0][:4].isdigit() and "Z [" in lines[0]


def test_log_level_none_silences_and_history_is_tail(tmp_path):
    log_file = tmp_path / "agent.log"
    setup_logging("debug", str(log_file), console=Console(quiet=True))
    log = logging.getLogger("ai_agent.tests")
    for idx in range(12):
        log.debug("line %d", idx)
    set_log_level("none")
    log.error("suppressed")

    lines = get_log_history(str(log_file), 10)
    assert len(lines) == 10
    assert lines[-1].endswith("line 11")
    assert not any("suppressed" in line for line in lines)
    assert get_log_history(str(tmp_path / "missing.log")) == []


def test_log_fatal_appends_traceback(tmp_path):
    error_log = tmp_path / "errors.log"
    try:
        raise RuntimeError("kaboom")
    except RuntimeError as exc:
        log_fatal(exc, error_log)
    text = error_log.read_text(encoding="utf-8")
    assert " - Fatal error: " in text
    assert "RuntimeError: kaboom" in text
