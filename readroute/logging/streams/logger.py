import sys
from typing import Callable, TypeVar

from readroute.logging.models import Entry, Log

from .logger_stream import LoggerStream

T = TypeVar("T", bound=Entry)


class Logger:
    """
    Async structured logger.

    Each logger name maps to one ``LoggerStream``. Streams are created on
    first use with console output, or up front with ``configure`` to
    give a name its own template or JSON log file.
    """

    def __init__(self, default_name: str = "readroute") -> None:
        self._default_name = default_name
        self._streams: dict[str, LoggerStream] = {}

    def __getitem__(self, name: str) -> LoggerStream:
        return self.stream(name)

    def stream(self, name: str | None = None) -> LoggerStream:
        name = name or self._default_name

        if (stream := self._streams.get(name)) is None:
            stream = LoggerStream(name)
            self._streams[name] = stream

        return stream

    def configure(
        self,
        name: str | None = None,
        template: str | None = None,
        path: str | None = None,
    ) -> LoggerStream:
        stream = self.stream(name)

        if template:
            stream.template = template

        if path:
            stream.path = path

        return stream

    async def log(
        self,
        entry: T,
        name: str | None = None,
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ) -> None:
        stream = self.stream(name)
        if not stream.accepts(entry, filter):
            return

        caller = sys._getframe(1)

        await stream.write(
            Log(
                entry=entry,
                logger=stream.name,
                filename=caller.f_code.co_filename,
                function_name=caller.f_code.co_name,
                line_number=caller.f_lineno,
            ),
            template=template,
            path=path,
        )

    async def close(self) -> None:
        for stream in self._streams.values():
            await stream.close()
