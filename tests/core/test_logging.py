"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from tarp.config.models import LoggingConfig, LogOutputConfig
from tarp.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    run_scope,
    set_run_id,
)


class TestRunIdCorrelation:
    """Run ID context variable tests."""

    def setup_method(self) -> None:
        clear_run_id()

    def test_given_run_id_when_set_then_can_retrieve(self) -> None:
        # Given
        run_id = "test-123"

        # When
        result = set_run_id(run_id)

        # Then
        assert result == run_id
        assert get_run_id() == run_id

    def test_given_no_id_when_set_then_generates_uuid(self) -> None:
        rid = set_run_id()
        assert len(rid) == 12  # uuid4().hex[:12]

    def test_given_set_id_when_clear_then_removes_id(self) -> None:
        set_run_id("to-clear")
        clear_run_id()
        assert get_run_id() is None

    def test_given_scope_when_exited_then_previous_id_restored(self) -> None:
        # Given
        set_run_id("outer")

        # When
        with run_scope("inner") as rid:
            inside = get_run_id()

        # Then
        assert rid == "inner"
        assert inside == "inner"
        assert get_run_id() == "outer"

    def test_scope_generates_id(self) -> None:
        with run_scope() as rid:
            assert len(rid) == 12
        assert get_run_id() is None


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()
        clear_run_id()

    def teardown_method(self) -> None:
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, logging.FileHandler):
                handler.close()
                root.removeHandler(handler)

    def test_given_json_file_output_when_log_then_valid_json(self, tmp_path: Path) -> None:
        # Given
        log_file = tmp_path / "run.log"
        config = LoggingConfig(
            level="INFO",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )
        configure_logging(config=config)
        set_run_id("abc123")

        # When
        get_logger("test").info("profiles_merged", units=3)

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["event"] == "profiles_merged"
        assert data["units"] == 3
        assert data["level"] == "info"
        assert data["logger"] == "test"
        assert data["run_id"] == "abc123"
        assert "timestamp" in data

    def test_given_default_level_when_info_logged_then_suppressed(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging()
        get_logger("test").info("quiet")
        get_logger("test").warning("loud")

        captured = capsys.readouterr()
        assert "quiet" not in captured.err
        assert "loud" in captured.err

    def test_given_config_object_when_configure_then_takes_precedence(self, tmp_path: Path) -> None:
        # Given
        log_file = tmp_path / "test.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )

        # When - config's DEBUG overrides the level="ERROR" param
        configure_logging(config=config, json_format=False, level="ERROR")
        get_logger().debug("debug msg")

        # Then
        assert "debug msg" in log_file.read_text()

    def test_given_multi_output_config_when_configure_then_levels_respected(
        self, tmp_path: Path
    ) -> None:
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="console", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content

        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_given_output_below_top_level_when_debug_logged_then_output_receives_it(
        self, tmp_path: Path
    ) -> None:
        # Given
        debug_file = tmp_path / "debug.log"
        config = LoggingConfig(
            level="WARNING",
            outputs=[LogOutputConfig(format="json", destination=str(debug_file), level="DEBUG")],
        )

        # When
        configure_logging(config=config)
        get_logger("test").debug("block_folded")

        # Then
        assert "block_folded" in debug_file.read_text()


class TestLogOutputConfig:
    def test_relative_file_destination_rejected(self) -> None:
        with pytest.raises(ValueError, match="absolute"):
            LogOutputConfig(destination="relative.log")
