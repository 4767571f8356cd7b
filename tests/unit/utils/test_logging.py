"""Unit tests for logging utilities."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from nanogit.utils._logging import (
    _create_logger,  # pyright: ignore[reportPrivateUsage]
    _log_level_from_string,  # pyright: ignore[reportPrivateUsage]
    create_cli_logger,
)

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem
    from pytest_mock import MockerFixture


def _rotating_handlers(prefix: str) -> list[RotatingFileHandler]:
    return [
        handler
        for name in logging.root.manager.loggerDict
        if name.startswith(prefix)
        for handler in logging.getLogger(name).handlers
        if isinstance(handler, RotatingFileHandler)
    ]


class TestCreateLogger:
    def test_creates_log_directory_if_missing(self, fs: FakeFilesystem) -> None:
        log_path = Path("/logs/test.log")
        assert not log_path.parent.exists()

        _ = _create_logger(str(log_path))

        assert log_path.parent.exists()

    def test_default_format_is_json(self, fs: FakeFilesystem) -> None:
        logger = _create_logger("/logs/test.log")

        logger.info("test_event", key="value")

        log_content = Path("/logs/test.log").read_text()
        assert '"event": "test_event"' in log_content
        assert '"key": "value"' in log_content
        assert '"level": "info"' in log_content

    def test_text_format(self, fs: FakeFilesystem) -> None:
        logger = _create_logger("/logs/test.log", log_format="text")

        logger.info("test_event", key="value")

        log_content = Path("/logs/test.log").read_text()
        assert "test_event" in log_content
        assert "key=value" in log_content

    def test_filters_below_level(self, fs: FakeFilesystem) -> None:
        logger = _create_logger("/logs/test.log", log_level=logging.WARNING)

        logger.info("quiet")
        logger.warning("loud")

        log_content = Path("/logs/test.log").read_text()
        assert "quiet" not in log_content
        assert "loud" in log_content

    def test_with_rotation_uses_stdlib_logger(self, fs: FakeFilesystem) -> None:
        _ = _create_logger("/logs/rotated.log", max_bytes=1000, backup_count=3)

        handlers = _rotating_handlers("nanogit.rotated.")
        assert handlers
        assert handlers[-1].maxBytes == 1000
        assert handlers[-1].backupCount == 3


class TestLogLevelFromString:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [
            ("debug", logging.DEBUG),
            ("WARNING", logging.WARNING),
            ("error", logging.ERROR),
            ("nonsense", logging.INFO),
        ],
    )
    def test_maps_names(self, level: str, expected: int) -> None:
        assert _log_level_from_string(level) == expected

    def test_debug_env_overrides_when_respected(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("NANOGIT_DEBUG", "1")

        assert _log_level_from_string("error", respect_env=True) == logging.DEBUG
        assert _log_level_from_string("error") == logging.ERROR


class TestCreateCliLogger:
    def test_writes_to_explicit_file_with_command(self, fs: FakeFilesystem) -> None:
        logger = create_cli_logger(log_file="/logs/cli.log", command="status")

        logger.info("command_started")

        log_content = Path("/logs/cli.log").read_text()
        assert '"command": "status"' in log_content
        assert '"event": "command_started"' in log_content

    def test_respects_level(self, fs: FakeFilesystem) -> None:
        logger = create_cli_logger(level="error", log_file="/logs/cli.log")

        logger.debug("debug_level_message")
        logger.error("error_level_message")

        log_content = Path("/logs/cli.log").read_text()
        assert "debug_level_message" not in log_content
        assert "error_level_message" in log_content

    def test_default_file_rotates(
        self, fs: FakeFilesystem, mocker: MockerFixture
    ) -> None:
        _ = mocker.patch(
            "nanogit.utils._logging.get_nanogit_cli_log_file",
            return_value=Path("/state/log/cli.log"),
        )

        logger = create_cli_logger()
        logger.info("rotating")

        assert Path("/state/log/cli.log").exists()
        handlers = _rotating_handlers("nanogit.cli.")
        assert handlers
        assert handlers[-1].backupCount == 3
