import asyncio
from typing import Any

from readroute.logging import Logger
from readroute.logging.readroute_logging_models import NotifierAlert, NotifierError
from readroute.protocols import Notifier


def _scalar(value: Any) -> str | int | float | bool | None:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    return str(value)


class LoggingNotifier:
    """Default alert sink: writes alerts through the readroute logger."""

    def __init__(self, logger: Logger | None = None, name: str = "readroute") -> None:
        self._logger = logger or Logger()
        self._name = name

    async def alert(self, message: str, context: dict[str, Any]) -> None:
        await self._logger.log(
            NotifierAlert(
                message=message,
                context={key: _scalar(value) for key, value in context.items()},
            ),
            name=self._name,
        )


async def notify(
    notifier: Notifier,
    logger: Logger,
    message: str,
    context: dict[str, Any],
) -> None:
    """Send an alert without letting a broken sink reach the caller."""
    try:
        await notifier.alert(message, context)

    except Exception as err:
        await logger.log(
            NotifierError(
                message=f"Notifier failed to deliver alert: {message}",
                error=str(err),
            )
        )


class AlertDispatcher:
    """
    Delivers alerts as tracked background tasks.

    ``send`` returns at once, so a slow or hung sink never holds up the
    request or health tick that raised the alert. Each delivery is bounded
    by ``timeout``. Failures and timeouts are logged and dropped.
    """

    def __init__(
        self,
        notifier: Notifier,
        logger: Logger | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._notifier = notifier
        self._logger = logger or Logger()
        self._timeout = timeout
        self._tasks: set[asyncio.Task] = set()

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def send(self, message: str, context: dict[str, Any]) -> None:
        task = asyncio.create_task(self._deliver(message, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, message: str, context: dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(
                notify(self._notifier, self._logger, message, context),
                timeout=self._timeout,
            )

        except asyncio.TimeoutError:
            await self._logger.log(
                NotifierError(
                    message=f"Notifier timed out delivering alert: {message}",
                    error=f"No response after {self._timeout}s",
                )
            )

    async def drain(self) -> None:
        """Wait for every in-flight alert to be delivered or time out."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
