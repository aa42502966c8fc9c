"""
Tests for the readroute logger, logging config and LoggingNotifier.
"""

import os

import msgspec
import pytest

from readroute.logging import Logger, LoggingConfig, LogLevel
from readroute.logging.readroute_logging_models import (
    CircuitWarning,
    HealthInfo,
    RouterDebug,
)
from readroute.notifier import AlertDispatcher, LoggingNotifier, notify

from tests.unit.mocks import BrokenNotifier, RecordingNotifier, SlowNotifier


def read_lines(path: str) -> list[dict]:
    with open(path, "rb") as logfile:
        return [msgspec.json.decode(line) for line in logfile.read().splitlines() if line]


# =============================================================================
# LoggingConfig
# =============================================================================


class TestLoggingConfig:
    def test_level_filtering(self) -> None:
        config = LoggingConfig()
        config.update(log_level="warn")

        assert config.enabled("default", LogLevel.ERROR)
        assert config.enabled("default", LogLevel.WARN)
        assert not config.enabled("default", LogLevel.INFO)

    def test_disabled_loggers(self) -> None:
        config = LoggingConfig()
        config.update(log_level="trace", disabled_loggers=["noisy"])

        try:
            assert not config.enabled("noisy", LogLevel.CRITICAL)
            assert config.enabled("default", LogLevel.TRACE)

        finally:
            config.update(disabled_loggers=[])

    def test_unknown_level_is_ignored(self) -> None:
        config = LoggingConfig()
        config.update(log_level="error")
        config.update(log_level="verbose")

        assert config.level == LogLevel.ERROR

    def test_to_level_is_case_insensitive(self) -> None:
        assert LogLevel.to_level("Debug") == LogLevel.DEBUG
        assert LogLevel.to_level("nope") is None


# =============================================================================
# Logger
# =============================================================================


class TestLogger:
    @pytest.mark.asyncio
    async def test_writes_template_to_stdout(self, capsys) -> None:
        LoggingConfig().update(log_level="info")
        logger = Logger()

        await logger.log(
            HealthInfo(
                message="Replica responsive",
                replica="replica-1",
                healthy=True,
                lag_seconds=1.5,
            ),
            template="{level} {replica} {message}",
        )

        assert capsys.readouterr().out == "INFO replica-1 Replica responsive\n"

    @pytest.mark.asyncio
    async def test_below_level_is_dropped(self, capsys) -> None:
        LoggingConfig().update(log_level="info")

        await Logger().log(
            RouterDebug(
                message="Routing decision",
                feature="default",
                stable_id="abc",
                percentage=50,
                target="replica",
                reason="rollout_bucket",
            )
        )

        assert capsys.readouterr().out == ""

    @pytest.mark.asyncio
    async def test_filter(self, capsys) -> None:
        LoggingConfig().update(log_level="info")

        await Logger().log(
            CircuitWarning(message="open", replica="replica-1", failure_count=5),
            filter=lambda entry: entry.replica != "replica-1",
        )

        assert capsys.readouterr().out == ""

    @pytest.mark.asyncio
    async def test_writes_json_lines_to_file(self, temp_log_directory: str) -> None:
        LoggingConfig().update(log_level="info")
        logger = Logger()
        path = os.path.join(temp_log_directory, "readroute.json")

        await logger.log(
            CircuitWarning(message="Circuit OPEN", replica="replica-1", failure_count=5),
            path=path,
        )
        await logger.log(
            CircuitWarning(message="Circuit OPEN", replica="replica-2", failure_count=6),
            path=path,
        )
        await logger.close()

        lines = read_lines(path)
        assert [line["entry"]["replica"] for line in lines] == ["replica-1", "replica-2"]
        assert lines[0]["entry"]["level"] == "WARN"
        assert lines[0]["function_name"] == "test_writes_json_lines_to_file"
        assert lines[0]["logger"] == "readroute"

    @pytest.mark.asyncio
    async def test_configured_name_writes_to_its_file(self, temp_log_directory: str, capsys) -> None:
        LoggingConfig().update(log_level="info")
        logger = Logger()
        path = os.path.join(temp_log_directory, "circuits.json")
        logger.configure(name="circuits", path=path)

        await logger.log(
            CircuitWarning(message="Circuit OPEN", replica="replica-1", failure_count=5),
            name="circuits",
        )
        await logger.close()

        assert capsys.readouterr().out == ""
        assert read_lines(path)[0]["logger"] == "circuits"

    @pytest.mark.asyncio
    async def test_disabled_logger_is_silent(self, capsys) -> None:
        config = LoggingConfig()
        config.update(log_level="info", disabled_loggers=["readroute"])

        try:
            await Logger().log(
                CircuitWarning(message="open", replica="replica-1", failure_count=5)
            )

        finally:
            config.update(disabled_loggers=[])

        assert capsys.readouterr().out == ""

    @pytest.mark.asyncio
    async def test_file_path_must_be_json(self, temp_log_directory: str) -> None:
        LoggingConfig().update(log_level="info")

        with pytest.raises(ValueError):
            await Logger().log(
                CircuitWarning(message="x", replica="r", failure_count=1),
                path=os.path.join(temp_log_directory, "readroute.txt"),
            )


# =============================================================================
# Notifier
# =============================================================================


class TestLoggingNotifier:
    @pytest.mark.asyncio
    async def test_alert_is_logged(self, capsys) -> None:
        LoggingConfig().update(log_level="info")
        notifier = LoggingNotifier()

        await notifier.alert(
            "Circuit OPEN",
            {"replica": "replica-1", "error": ValueError("bad"), "count": 5},
        )

        out = capsys.readouterr().out
        assert "Circuit OPEN" in out
        assert "WARN" in out

    @pytest.mark.asyncio
    async def test_notify_contains_broken_sink(self) -> None:
        await notify(BrokenNotifier(), Logger(), "Circuit OPEN", {"replica": "r"})


class TestAlertDispatcher:
    @pytest.mark.asyncio
    async def test_send_returns_before_delivery(self) -> None:
        notifier = RecordingNotifier()
        alerts = AlertDispatcher(notifier)

        alerts.send("Circuit OPEN", {"replica": "replica-1"})

        assert alerts.pending == 1
        assert notifier.alerts == []

        await alerts.drain()

        assert alerts.pending == 0
        assert notifier.messages() == ["Circuit OPEN"]

    @pytest.mark.asyncio
    async def test_close_cancels_undelivered(self) -> None:
        notifier = SlowNotifier(delay=5.0)
        alerts = AlertDispatcher(notifier)

        alerts.send("Circuit OPEN", {"replica": "replica-1"})
        alerts.close()
        await alerts.drain()

        assert alerts.pending == 0
        assert notifier.alerts == []
