"""
Tests for ShadowComparator.

Covers:
- The primary result is returned regardless of the shadow outcome
- The replica read runs concurrently with the primary
- Match, divergence, error and timeout reporting
- close() cancels in-flight shadow tasks without awaiting them
- Replica selection and validation
"""

import asyncio

import msgspec
import pytest

from readroute.errors import ConfigurationError
from readroute.shadow import ShadowComparator, structurally_equal

from tests.unit.mocks import BrokenNotifier

REPLICAS = ["replica-1", "replica-2"]


class Row(msgspec.Struct):
    id: int
    name: str


@pytest.fixture
def comparator(executor, notifier) -> ShadowComparator:
    return ShadowComparator("primary", REPLICAS, executor, notifier, shadow_timeout=0.2)


async def drain(comparator: ShadowComparator) -> None:
    for _ in range(50):
        if comparator.pending == 0:
            return

        await asyncio.sleep(0.01)


# =============================================================================
# structurally_equal
# =============================================================================


class TestStructurallyEqual:
    def test_equal_structs(self) -> None:
        assert structurally_equal(Row(1, "a"), Row(1, "a"))

    def test_struct_and_dict(self) -> None:
        assert structurally_equal(Row(1, "a"), {"id": 1, "name": "a"})

    def test_nested_structs(self) -> None:
        assert structurally_equal([Row(1, "a"), Row(2, "b")], [{"id": 1, "name": "a"}, Row(2, "b")])

    def test_different_values(self) -> None:
        assert not structurally_equal([Row(1, "a")], [Row(1, "b")])

    def test_unsupported_types_fall_back_to_equality(self) -> None:
        marker = object()

        assert structurally_equal(marker, marker)
        assert not structurally_equal(marker, object())


# =============================================================================
# shadow_run
# =============================================================================


class TestShadowRun:
    @pytest.mark.asyncio
    async def test_match_is_logged_not_alerted(self, comparator, executor, notifier) -> None:
        executor.succeed("primary", [1, 2])
        executor.succeed("replica-1", [1, 2])

        value = await comparator.shadow_run("SELECT")
        await drain(comparator)

        assert value == [1, 2]
        assert notifier.alerts == []
        assert comparator.stats.matches == 1
        assert executor.targets_called() == ["primary", "replica-1"]

    @pytest.mark.asyncio
    async def test_divergence_is_alerted(self, comparator, executor, notifier) -> None:
        executor.succeed("primary", [1, 2])
        executor.succeed("replica-1", [1])

        value = await comparator.shadow_run("SELECT")
        await drain(comparator)

        assert value == [1, 2]
        assert comparator.stats.divergences == 1
        message, context = notifier.alerts[0]
        assert "divergence" in message
        assert context["replica"] == "replica-1"
        assert "latency_delta" in context

    @pytest.mark.asyncio
    async def test_replica_error_never_reaches_caller(self, comparator, executor, notifier) -> None:
        executor.succeed("primary", "ok")
        executor.fail("replica-1", RuntimeError("replica exploded"))

        value = await comparator.shadow_run("SELECT")
        await drain(comparator)

        assert value == "ok"
        assert comparator.stats.errors == 1
        _, context = notifier.alerts[0]
        assert context["error"] == "RuntimeError: replica exploded"

    @pytest.mark.asyncio
    async def test_replica_timeout_is_reported(self, comparator, executor, notifier) -> None:
        async def hang(operation):
            await asyncio.sleep(5)

        executor.on("replica-1", hang)

        await comparator.shadow_run("SELECT")
        await drain(comparator)

        assert comparator.stats.errors == 1
        assert "timed out" in notifier.alerts[0][1]["error"]

    @pytest.mark.asyncio
    async def test_primary_error_propagates(self, comparator, executor) -> None:
        executor.fail("primary", RuntimeError("primary down"))

        with pytest.raises(RuntimeError, match="primary down"):
            await comparator.shadow_run("SELECT")

        await drain(comparator)
        assert comparator.pending == 0
        assert comparator.stats.cancelled == 1
        assert comparator.stats.runs == 0
        assert executor.targets_called() == ["primary"]

    @pytest.mark.asyncio
    async def test_primary_error_cancels_running_shadow(
        self, comparator, executor, notifier
    ) -> None:
        async def failing_primary(operation):
            await asyncio.sleep(0.01)
            raise RuntimeError("primary down")

        async def hang(operation):
            await asyncio.sleep(5)

        executor.on("primary", failing_primary)
        executor.on("replica-1", hang)

        with pytest.raises(RuntimeError, match="primary down"):
            await comparator.shadow_run("SELECT")

        await drain(comparator)
        assert comparator.pending == 0
        assert comparator.stats.cancelled == 1
        assert notifier.alerts == []
        assert executor.targets_called() == ["primary", "replica-1"]

    @pytest.mark.asyncio
    async def test_replica_runs_while_primary_is_in_flight(self, comparator, executor) -> None:
        replica_started = asyncio.Event()

        async def primary(operation):
            await asyncio.wait_for(replica_started.wait(), timeout=1.0)
            return "rows"

        async def replica(operation):
            replica_started.set()
            return "rows"

        executor.on("primary", primary)
        executor.on("replica-1", replica)

        assert await comparator.shadow_run("SELECT") == "rows"
        await drain(comparator)

        assert comparator.stats.matches == 1

    @pytest.mark.asyncio
    async def test_returns_before_slow_replica(self, comparator, executor) -> None:
        release = asyncio.Event()

        async def blocked(operation):
            await release.wait()
            return "primary"

        executor.on("replica-1", blocked)

        await comparator.shadow_run("SELECT")

        assert comparator.pending == 1
        release.set()
        await drain(comparator)
        assert comparator.pending == 0

    @pytest.mark.asyncio
    async def test_explicit_replica(self, comparator, executor) -> None:
        await comparator.shadow_run("SELECT", replica="replica-2")
        await drain(comparator)

        assert executor.targets_called() == ["primary", "replica-2"]

    @pytest.mark.asyncio
    async def test_unknown_replica(self, comparator, executor) -> None:
        with pytest.raises(ConfigurationError):
            await comparator.shadow_run("SELECT", replica="replica-9")

        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_no_replicas(self, executor, notifier) -> None:
        comparator = ShadowComparator("primary", [], executor, notifier)

        with pytest.raises(ConfigurationError):
            await comparator.shadow_run("SELECT")

    @pytest.mark.asyncio
    async def test_broken_notifier_is_contained(self, executor) -> None:
        comparator = ShadowComparator("primary", REPLICAS, executor, BrokenNotifier())
        executor.succeed("primary", 1)
        executor.succeed("replica-1", 2)

        assert await comparator.shadow_run("SELECT") == 1
        await drain(comparator)

        assert comparator.stats.divergences == 1


# =============================================================================
# close
# =============================================================================


class TestShadowClose:
    @pytest.mark.asyncio
    async def test_close_cancels_pending(self, comparator, executor) -> None:
        async def hang(operation):
            await asyncio.sleep(5)

        executor.on("replica-1", hang)

        await comparator.shadow_run("SELECT")
        await comparator.shadow_run("SELECT")
        await asyncio.sleep(0)
        assert comparator.pending == 2

        comparator.close()
        await drain(comparator)

        snapshot = comparator.snapshot()
        assert snapshot["pending"] == 0
        assert snapshot["cancelled"] == 2

    @pytest.mark.asyncio
    async def test_closed_comparator_skips_shadow(self, comparator, executor) -> None:
        comparator.close()

        value = await comparator.shadow_run("SELECT")

        assert value == ("primary", "SELECT")
        assert comparator.pending == 0
        assert executor.targets_called() == ["primary"]
