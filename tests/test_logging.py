import logging

import pytest

from power_ratings.core.logging import (
    PACKAGE_LOGGER,
    ProgressLogger,
    get_logger,
    log_timing,
    setup_logging,
)


def test_get_logger_prefixes_names():
    assert get_logger("engine").name == "power_ratings.engine"
    assert get_logger("power_ratings.ratings.store").name == "power_ratings.ratings.store"


def test_setup_logging_configures_package_logger(tmp_path):
    log_file = tmp_path / "run.log"
    logger = setup_logging(level="debug", log_file=log_file, format_style="simple")
    assert logger.name == PACKAGE_LOGGER
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    get_logger("test").debug("hello file")
    for handler in logger.handlers:
        handler.flush()
    assert "DEBUG: hello file" in log_file.read_text()


def test_log_timing_success(caplog):
    caplog.set_level(logging.INFO, logger=PACKAGE_LOGGER)
    with log_timing(get_logger("test"), "replaying season"):
        pass
    assert any("Starting replaying season" in m for m in caplog.messages)
    assert any("Completed replaying season" in m for m in caplog.messages)


def test_log_timing_failure_reraises(caplog):
    caplog.set_level(logging.INFO, logger=PACKAGE_LOGGER)
    with pytest.raises(ValueError):
        with log_timing(get_logger("test"), "bad step"):
            raise ValueError("boom")
    assert any("Failed bad step" in m for m in caplog.messages)


def test_progress_logger_reports_at_interval(caplog):
    caplog.set_level(logging.INFO, logger=PACKAGE_LOGGER)
    with ProgressLogger(get_logger("test"), "games", total=5, update_interval=2) as p:
        for i in range(1, 6):
            p.update(i)
    progress = [m for m in caplog.messages if m.startswith("games:")]
    assert len(progress) == 3
    assert progress[-1].startswith("games: 5/5 (100.0%)")


def test_level_and_format_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("POWER_RATINGS_LOG_LEVEL", "warning")
    monkeypatch.setenv("POWER_RATINGS_LOG_FORMAT", "json")
    logger = setup_logging()
    assert logger.level == logging.WARNING
    assert logger.handlers[0].formatter._fmt.startswith('{"timestamp"')


@pytest.mark.parametrize("kwargs", [{"level": "chatty"}, {"format_style": "xml"}])
def test_setup_logging_rejects_unknown_values(kwargs):
    with pytest.raises(ValueError):
        setup_logging(**kwargs)


def test_setup_logging_replaces_handlers():
    setup_logging(level="info", format_style="simple")
    logger = setup_logging(level="info", format_style="detailed", include_timestamp=False)
    assert len(logger.handlers) == 1
    assert "%(asctime)s" not in logger.handlers[0].formatter._fmt
