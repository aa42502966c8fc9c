"""
Output side of a named readroute logger.

A stream renders each ``Log`` either as a template line on stdout/stderr
or as one msgspec JSON document per line in a ``.json`` file. File I/O
runs in the default executor so logging never blocks the event loop on
disk writes, and each file path has its own lock so concurrent writers
never interleave partial lines.
"""

import asyncio
import datetime
import io
import os
import pathlib
import sys
from collections import defaultdict
from typing import Callable, TypeVar

import msgspec

from readroute.logging.config import LoggingConfig, StreamType
from readroute.logging.models import Entry, Log

T = TypeVar("T", bound=Entry)

DEFAULT_TEMPLATE = (
    "{timestamp} - {level} - {logger} - {filename}:{function_name}.{line_number} - {message}"
)


class LoggerStream:
    def __init__(
        self,
        name: str,
        template: str | None = None,
        path: str | None = None,
    ) -> None:
        self.name = name
        self.template = template or DEFAULT_TEMPLATE
        self.path = path

        self._config = LoggingConfig()
        self._encoder = msgspec.json.Encoder()
        self._files: dict[str, io.BufferedRandom] = {}
        self._file_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def accepts(self, entry: Entry, filter: Callable[[T], bool] | None = None) -> bool:
        if not self._config.enabled(self.name, entry.level):
            return False

        return filter is None or filter(entry)

    async def write(
        self,
        log: Log,
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ) -> None:
        if not self.accepts(log.entry, filter):
            return

        if target := path or self.path:
            await self._append_json(log, self._resolve_path(target))

        else:
            self._emit(log, template or self.template)

    def _emit(self, log: Log, template: str) -> None:
        stream = sys.stdout if self._config.output == StreamType.STDOUT else sys.stderr

        try:
            stream.write(log.entry.to_template(template, context=log.context()) + "\n")
            stream.flush()

        except (KeyError, IndexError, ValueError, OSError) as err:
            sys.stderr.write(
                f"{datetime.datetime.now(datetime.UTC).isoformat()} - ERROR - {self.name} - "
                f"could not render {type(log.entry).__name__}: {err}\n"
            )

    def _resolve_path(self, target: str) -> str:
        logfile = pathlib.Path(target)

        if logfile.suffix != ".json":
            raise ValueError(f"Log file {target} must be a .json file")

        if directory := self._config.directory:
            logfile = pathlib.Path(directory) / logfile.name

        return str(logfile.absolute())

    async def _append_json(self, log: Log, logfile_path: str) -> None:
        loop = asyncio.get_running_loop()

        async with self._file_locks[logfile_path]:
            await loop.run_in_executor(
                None,
                self._write_line,
                logfile_path,
                self._encoder.encode(log),
            )

    def _write_line(self, logfile_path: str, line: bytes) -> None:
        logfile = self._files.get(logfile_path)

        if logfile is None or logfile.closed:
            os.makedirs(os.path.dirname(logfile_path), exist_ok=True)
            logfile = open(logfile_path, "ab+")
            self._files[logfile_path] = logfile

        logfile.write(line + b"\n")
        logfile.flush()

    async def close(self) -> None:
        loop = asyncio.get_running_loop()

        for logfile_path, logfile in list(self._files.items()):
            async with self._file_locks[logfile_path]:
                await loop.run_in_executor(None, logfile.close)

        self._files.clear()
