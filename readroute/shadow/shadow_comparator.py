"""
Shadow (dual-execution) validation.

``shadow_run`` executes an operation on the primary and returns the
primary's result. The same operation starts on a replica as a supervised
background task before the primary is awaited, so both reads run
concurrently. Once both finish, the results are compared for structural
equality. Divergences, replica errors and the latency delta are reported
to the notifier.

The shadow path never raises into, blocks, or alters the primary path.
Shadow tasks are bounded by ``shadow_timeout`` and are cancelled, not
awaited, when the comparator closes. A primary error cancels the
shadow task.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import msgspec

from readroute.env import Env
from readroute.errors import ConfigurationError
from readroute.logging import Logger
from readroute.logging.readroute_logging_models import ShadowInfo, ShadowWarning
from readroute.models import ShadowReport
from readroute.notifier import notify
from readroute.protocols import Executor, Notifier


def structurally_equal(left: Any, right: Any) -> bool:
    """Compare results by value, normalising structs/dataclasses/tuples first."""
    try:
        return msgspec.to_builtins(left) == msgspec.to_builtins(right)

    except TypeError:
        return left == right


@dataclass(slots=True)
class ShadowStats:
    runs: int = 0
    matches: int = 0
    divergences: int = 0
    errors: int = 0
    cancelled: int = 0


class ShadowComparator:
    def __init__(
        self,
        primary: str,
        replicas: list[str],
        executor: Executor,
        notifier: Notifier,
        shadow_timeout: float = 30.0,
        logger: Logger | None = None,
    ) -> None:
        self._primary = primary
        self._replicas = list(replicas)
        self._executor = executor
        self._notifier = notifier
        self._shadow_timeout = shadow_timeout
        self._logger = logger or Logger()

        self._tasks: set[asyncio.Task] = set()
        self._stats = ShadowStats()
        self._closed = False

    @classmethod
    def from_env(
        cls,
        env: Env,
        executor: Executor,
        notifier: Notifier,
        logger: Logger | None = None,
    ) -> "ShadowComparator":
        config = env.get_shadow_config()
        return cls(
            config["primary"],
            env.replicas,
            executor,
            notifier,
            shadow_timeout=config["shadow_timeout"],
            logger=logger,
        )

    @property
    def stats(self) -> ShadowStats:
        return self._stats

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def shadow_run(self, operation: Any, replica: str | None = None) -> Any:
        if replica is None:
            if not self._replicas:
                raise ConfigurationError("Shadow execution requires a replica")

            replica = self._replicas[0]

        elif replica not in self._replicas:
            raise ConfigurationError(f"Unknown replica: {replica}")

        primary_result: asyncio.Future = asyncio.get_running_loop().create_future()
        task = None if self._closed else self._schedule(replica, operation, primary_result)

        start = time.monotonic()
        try:
            value = await self._executor.execute(self._primary, operation)

        except BaseException:
            if task is not None:
                task.cancel()

            raise

        # close() may have cancelled the shadow, and with it this future.
        if not primary_result.done():
            primary_result.set_result((value, time.monotonic() - start))

        return value

    def _schedule(
        self,
        replica: str,
        operation: Any,
        primary_result: asyncio.Future,
    ) -> asyncio.Task:
        task = asyncio.create_task(self._run_shadow(replica, operation, primary_result))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self._stats.cancelled += 1

    async def _run_shadow(
        self,
        replica: str,
        operation: Any,
        primary_result: asyncio.Future,
    ) -> ShadowReport:
        self._stats.runs += 1
        start = time.monotonic()
        replica_value = None
        replica_error: str | None = None

        try:
            replica_value = await asyncio.wait_for(
                self._executor.execute(replica, operation),
                timeout=self._shadow_timeout,
            )

        except asyncio.TimeoutError:
            replica_error = f"Shadow execution timed out after {self._shadow_timeout}s"

        except Exception as err:
            replica_error = f"{type(err).__name__}: {err}"

        replica_duration = time.monotonic() - start

        # Cancelled by shadow_run if the primary raises.
        primary_value, primary_duration = await primary_result

        if replica_error is not None:
            report = ShadowReport(
                replica=replica,
                matched=False,
                primary_duration=primary_duration,
                replica_duration=replica_duration,
                replica_error=replica_error,
            )
            await self._record_error(report)
            return report

        report = ShadowReport(
            replica=replica,
            matched=structurally_equal(primary_value, replica_value),
            primary_duration=primary_duration,
            replica_duration=replica_duration,
        )

        if report.matched:
            self._stats.matches += 1
            await self._logger.log(
                ShadowInfo(
                    message=f"Shadow result from replica {replica} matched primary",
                    replica=replica,
                    matched=True,
                    latency_delta=report.latency_delta,
                )
            )

        else:
            self._stats.divergences += 1
            await notify(
                self._notifier,
                self._logger,
                f"Shadow divergence on replica {replica}",
                {
                    "replica": replica,
                    "primary_duration": report.primary_duration,
                    "replica_duration": report.replica_duration,
                    "latency_delta": report.latency_delta,
                },
            )

        return report

    async def _record_error(self, report: ShadowReport) -> None:
        self._stats.errors += 1
        await self._logger.log(
            ShadowWarning(
                message=f"Shadow execution on replica {report.replica} failed",
                replica=report.replica,
                error=report.replica_error or "",
            )
        )
        await notify(
            self._notifier,
            self._logger,
            f"Shadow execution failed on replica {report.replica}",
            {
                "replica": report.replica,
                "error": report.replica_error,
                "latency_delta": report.latency_delta,
            },
        )

    def close(self) -> None:
        """Abandon every in-flight shadow execution without waiting."""
        self._closed = True
        for task in list(self._tasks):
            task.cancel()

    def snapshot(self) -> dict:
        return {
            "pending": self.pending,
            "runs": self._stats.runs,
            "matches": self._stats.matches,
            "divergences": self._stats.divergences,
            "errors": self._stats.errors,
            "cancelled": self._stats.cancelled,
        }
