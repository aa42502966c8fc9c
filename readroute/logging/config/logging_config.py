import contextvars
from dataclasses import dataclass, replace
from typing import Iterable, Literal

from readroute.logging.models import LogLevel, LogLevelName

from .stream_type import StreamType

LogOutput = Literal["stdout", "stderr"]


@dataclass(frozen=True, slots=True)
class LoggingSettings:
    level: LogLevel = LogLevel.INFO
    output: StreamType = StreamType.STDOUT
    directory: str | None = None
    disabled_loggers: frozenset[str] = frozenset()


_settings: contextvars.ContextVar[LoggingSettings] = contextvars.ContextVar(
    "readroute_logging_settings",
    default=LoggingSettings(),
)


class LoggingConfig:
    """
    Logging settings shared by every Logger in the current context.

    Settings live in a ContextVar, so tasks spawned after an ``update``
    inherit it while tasks that were already running keep their copy.
    """

    def update(
        self,
        log_directory: str | None = None,
        log_level: LogLevelName | None = None,
        log_output: LogOutput | None = None,
        disabled_loggers: Iterable[str] | None = None,
    ) -> None:
        changes = {}

        if log_directory:
            changes["directory"] = log_directory

        if log_level and (level := LogLevel.to_level(log_level)):
            changes["level"] = level

        if log_output:
            changes["output"] = StreamType(log_output)

        if disabled_loggers is not None:
            changes["disabled_loggers"] = frozenset(disabled_loggers)

        if changes:
            _settings.set(replace(_settings.get(), **changes))

    def enabled(self, logger_name: str, log_level: LogLevel) -> bool:
        settings = _settings.get()

        return (
            logger_name not in settings.disabled_loggers
            and log_level.rank >= settings.level.rank
        )

    @property
    def settings(self) -> LoggingSettings:
        return _settings.get()

    @property
    def level(self) -> LogLevel:
        return _settings.get().level

    @property
    def output(self) -> StreamType:
        return _settings.get().output

    @property
    def directory(self) -> str | None:
        return _settings.get().directory
