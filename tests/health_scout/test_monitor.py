"""
Unit tests for the Monitor class.

This module contains tests for the check orchestration: the per cycle fan
out, sequential retries, the order of published results, notification on
status transitions, cancellation and shutdown. Probes and gates are
replaced by in-memory stubs so no network is involved.

The tests follow the Arrange-Act-Assert (AAA) pattern.
"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence, Tuple

import pytest

from health_scout.config.services_loader import MonitorConfig
from health_scout.contracts import NotificationGate, Probe
from health_scout.domain import CheckResult, Service, Status, utc_now
from health_scout.errors import DuplicateServiceError, ProbeError, UnknownCheckTypeError
from health_scout.monitor import Monitor
from health_scout.probe.registry import ProbeRegistry
from health_scout.stream import ResultStream


class ScriptedProbe(Probe):
    """
    Probe stub returning a scripted sequence of statuses.

    The last status repeats once the script is exhausted.
    """

    def __init__(self, statuses: Sequence[Status] = (Status.HEALTHY,)) -> None:
        self.statuses: List[Status] = list(statuses)
        self.calls: List[str] = []
        self.closed = False

    async def check(self, service: Service) -> CheckResult:
        self.calls.append(service.name)
        status = self.statuses[min(len(self.calls), len(self.statuses)) - 1]
        return CheckResult(
            service_name=service.name,
            status=status,
            error=None if status is Status.HEALTHY else ProbeError("scripted failure"),
            checked_at=utc_now(),
            message="HTTP 200" if status is Status.HEALTHY else "HTTP 503",
        )

    async def close(self) -> None:
        self.closed = True


class BlockingProbe(Probe):
    """Probe stub that never completes on its own."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.cancelled = False

    async def check(self, service: Service) -> CheckResult:
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


class SlowProbe(Probe):
    """Probe stub that takes a while and counts overlapping checks."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    async def check(self, service: Service) -> CheckResult:
        self.calls.append(service.name)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return CheckResult(
            service_name=service.name, status=Status.HEALTHY, checked_at=utc_now()
        )


class RaisingProbe(Probe):
    """Probe stub breaking the contract by raising."""

    async def check(self, service: Service) -> CheckResult:
        raise RuntimeError("probe exploded")


class RecordingGate(NotificationGate):
    """Gate stub recording every transition it is called with."""

    def __init__(self, delay: float = 0.0, error: Optional[Exception] = None) -> None:
        self.transitions: List[Tuple[str, Status, Status]] = []
        self.delay = delay
        self.error = error

    async def on_transition(self, result: CheckResult, previous: Status) -> bool:
        self.transitions.append((result.service_name, previous, result.status))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return True


async def take(stream: ResultStream, count: int, timeout: float = 5.0) -> List[CheckResult]:
    """Reads exactly ``count`` results from the stream."""
    results = []
    for _ in range(count):
        results.append(await asyncio.wait_for(stream.__anext__(), timeout=timeout))
    return results


def _service(name: str = "api", check_type: str = "http") -> Service:
    return Service(name=name, target=f"https://{name}.example.com", check_type=check_type)


def test_monitor_should_reject_duplicate_service_names() -> None:
    """
    Tests that two services sharing a name are rejected at construction.
    """
    # Arrange
    registry = ProbeRegistry({"http": ScriptedProbe()})

    # Act & Assert
    with pytest.raises(DuplicateServiceError):
        Monitor([_service("api"), _service("api")], registry)


def test_from_config_should_parse_durations_and_attempts() -> None:
    """
    Tests that the monitor takes interval and attempts from the loaded configuration.
    """
    # Arrange
    config = MonitorConfig(
        check_interval="1m30s", timeout="5s", retry_attempts=5, services=(_service(),)
    )

    # Act
    monitor = Monitor.from_config(config, registry=ProbeRegistry({"http": ScriptedProbe()}))

    # Assert
    assert monitor.check_interval == 90.0
    assert monitor.retry_attempts == 5
    assert [s.name for s in monitor.services] == ["api"]


def test_from_config_should_fall_back_on_unparsable_interval() -> None:
    """
    Tests that an invalid interval falls back to the 30 second default.
    """
    # Arrange
    config = MonitorConfig(check_interval="soon", timeout="5s", retry_attempts=0, services=())

    # Act
    monitor = Monitor.from_config(config, registry=ProbeRegistry({}))

    # Assert
    assert monitor.check_interval == 30.0
    assert monitor.retry_attempts == 1


@pytest.mark.asyncio
async def test_check_all_should_publish_checking_then_terminal_result_per_service() -> None:
    """
    Tests that every service publishes a "checking" result before its terminal result.
    """
    # Arrange
    probe = ScriptedProbe()
    monitor = Monitor([_service("api"), _service("web")], ProbeRegistry({"http": probe}))

    # Act
    await monitor.check_all()
    results = await take(monitor.results, 4)

    # Assert
    for name in ("api", "web"):
        own = [r for r in results if r.service_name == name]
        assert [r.status for r in own] == [Status.CHECKING, Status.HEALTHY]
        assert own[0].message == "Checking..."
    assert sorted(probe.calls) == ["api", "web"]
    assert await monitor.statuses() == {"api": Status.HEALTHY, "web": Status.HEALTHY}


@pytest.mark.asyncio
async def test_check_all_should_retry_until_success_with_fixed_delay() -> None:
    """
    Tests that a failing probe is retried with a one second pause and only the final outcome is published.
    """
    # Arrange
    probe = ScriptedProbe([Status.UNHEALTHY, Status.UNHEALTHY, Status.HEALTHY])
    monitor = Monitor([_service()], ProbeRegistry({"http": probe}), retry_attempts=3)

    # Act
    started = time.monotonic()
    await monitor.check_all()
    elapsed = time.monotonic() - started
    results = await take(monitor.results, 2)

    # Assert
    assert len(probe.calls) == 3
    assert elapsed >= 2.0
    assert [r.status for r in results] == [Status.CHECKING, Status.HEALTHY]
    assert monitor.results.qsize() == 0


@pytest.mark.asyncio
async def test_check_all_should_report_last_failure_after_exhausting_attempts() -> None:
    """
    Tests that the last failed attempt becomes the terminal result.
    """
    # Arrange
    probe = ScriptedProbe([Status.UNHEALTHY])
    monitor = Monitor([_service()], ProbeRegistry({"http": probe}), retry_attempts=2, retry_delay=0.01)

    # Act
    await monitor.check_all()
    results = await take(monitor.results, 2)

    # Assert
    assert len(probe.calls) == 2
    terminal = results[-1]
    assert terminal.status == Status.UNHEALTHY
    assert terminal.error is not None
    assert await monitor.statuses() == {"api": Status.UNHEALTHY}


@pytest.mark.asyncio
async def test_check_all_should_report_unknown_type_without_retrying() -> None:
    """
    Tests that a service with an unregistered type gets a single UNKNOWN result.
    """
    # Arrange
    gate = RecordingGate()
    probe = ScriptedProbe()
    monitor = Monitor(
        [_service("rpc", check_type="grpc")],
        ProbeRegistry({"http": probe}),
        gate=gate,
        retry_attempts=3,
    )

    # Act
    started = time.monotonic()
    await monitor.check_all()
    elapsed = time.monotonic() - started
    results = await take(monitor.results, 2)

    # Assert
    terminal = results[-1]
    assert terminal.status == Status.UNKNOWN
    assert terminal.message == "Unknown checker type"
    assert isinstance(terminal.error, UnknownCheckTypeError)
    assert elapsed < 1.0
    assert probe.calls == []
    assert gate.transitions == []


@pytest.mark.asyncio
async def test_check_all_should_turn_probe_exception_into_unhealthy_result() -> None:
    """
    Tests that a probe raising instead of returning still yields a terminal result.
    """
    # Arrange
    monitor = Monitor([_service()], ProbeRegistry({"http": RaisingProbe()}), retry_attempts=1)

    # Act
    await monitor.check_all()
    results = await take(monitor.results, 2)

    # Assert
    terminal = results[-1]
    assert terminal.status == Status.UNHEALTHY
    assert isinstance(terminal.error, ProbeError)
    assert "probe exploded" in str(terminal.error)


@pytest.mark.asyncio
async def test_check_all_should_notify_only_on_notifiable_transitions() -> None:
    """
    Tests that the gate sees failure and recovery once each and nothing while the status is unchanged.
    """
    # Arrange
    gate = RecordingGate()
    probe = ScriptedProbe(
        [Status.HEALTHY, Status.UNHEALTHY, Status.UNHEALTHY, Status.HEALTHY, Status.HEALTHY]
    )
    monitor = Monitor([_service()], ProbeRegistry({"http": probe}), gate=gate, retry_attempts=1)

    # Act
    for _ in range(5):
        await monitor.check_all()
        await take(monitor.results, 2)

    # Assert
    assert gate.transitions == [
        ("api", Status.HEALTHY, Status.UNHEALTHY),
        ("api", Status.UNHEALTHY, Status.HEALTHY),
    ]


@pytest.mark.asyncio
async def test_check_all_should_publish_even_when_gate_fails(caplog: pytest.LogCaptureFixture) -> None:
    """
    Tests that a gate raising an error is logged and does not affect publication.
    """
    # Arrange
    gate = RecordingGate(error=RuntimeError("smtp down"))
    probe = ScriptedProbe([Status.UNHEALTHY])
    monitor = Monitor([_service()], ProbeRegistry({"http": probe}), gate=gate, retry_attempts=1)

    # Act
    with caplog.at_level(logging.ERROR):
        await monitor.check_all()
    results = await take(monitor.results, 2)

    # Assert
    assert results[-1].status == Status.UNHEALTHY
    assert len(gate.transitions) == 1
    assert "smtp down" in caplog.text


@pytest.mark.asyncio
async def test_check_all_should_bound_a_slow_gate(caplog: pytest.LogCaptureFixture) -> None:
    """
    Tests that a gate exceeding the notification timeout is abandoned with a warning.
    """
    # Arrange
    gate = RecordingGate(delay=10.0)
    probe = ScriptedProbe([Status.UNHEALTHY])
    monitor = Monitor(
        [_service()],
        ProbeRegistry({"http": probe}),
        gate=gate,
        retry_attempts=1,
        notification_timeout=0.05,
    )

    # Act
    with caplog.at_level(logging.WARNING):
        await asyncio.wait_for(monitor.check_all(), timeout=2.0)
    results = await take(monitor.results, 2)

    # Assert
    assert results[-1].status == Status.UNHEALTHY
    assert "timed out" in caplog.text


@pytest.mark.asyncio
async def test_start_should_run_cycles_until_stopped() -> None:
    """
    Tests that cycles repeat on the interval and stop() closes the stream and the probes.
    """
    # Arrange
    probe = ScriptedProbe()
    monitor = Monitor([_service()], ProbeRegistry({"http": probe}), check_interval=0.05, retry_attempts=1)
    runner = asyncio.create_task(monitor.start())

    # Act
    terminal = []
    async for result in monitor.results:
        if result.is_terminal:
            terminal.append(result)
        if len(terminal) == 3:
            break
    await asyncio.wait_for(monitor.stop(), timeout=2.0)
    await runner

    # Assert
    assert len(probe.calls) >= 3
    assert monitor.done.is_set()
    assert monitor.results.closed
    assert probe.closed


@pytest.mark.asyncio
async def test_start_should_refuse_a_second_start() -> None:
    """
    Tests that a monitor cannot be started twice.
    """
    # Arrange
    monitor = Monitor([_service()], ProbeRegistry({"http": ScriptedProbe()}), check_interval=10)
    runner = asyncio.create_task(monitor.start())
    await take(monitor.results, 2)

    # Act & Assert
    with pytest.raises(RuntimeError):
        await monitor.start()

    await monitor.stop()
    await runner


@pytest.mark.asyncio
async def test_cancelling_start_should_abort_blocked_probes_and_close_stream() -> None:
    """
    Tests that cancelling the running monitor aborts in-flight probes promptly and ends the stream.
    """
    # Arrange
    probe = BlockingProbe()
    monitor = Monitor([_service()], ProbeRegistry({"http": probe}))
    runner = asyncio.create_task(monitor.start())
    first = await take(monitor.results, 1)
    await asyncio.wait_for(probe.started.wait(), timeout=2.0)

    # Act
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner
    remaining = [result async for result in monitor.results]

    # Assert
    assert first[0].status == Status.CHECKING
    assert probe.cancelled
    assert remaining == []
    assert monitor.done.is_set()
    assert monitor.results.closed


@pytest.mark.asyncio
async def test_stop_before_start_should_release_resources() -> None:
    """
    Tests that stopping a monitor that never ran still closes the stream and the probes.
    """
    # Arrange
    probe = ScriptedProbe()
    monitor = Monitor([_service()], ProbeRegistry({"http": probe}))

    # Act
    await monitor.stop()

    # Assert
    assert monitor.done.is_set()
    assert monitor.results.closed
    assert probe.closed


@pytest.mark.asyncio
async def test_submit_service_should_check_immediately_and_join_later_cycles() -> None:
    """
    Tests that a service added at runtime is checked ad hoc and included in the next cycle.
    """
    # Arrange
    probe = ScriptedProbe()
    monitor = Monitor([_service("api")], ProbeRegistry({"http": probe}))

    # Act
    task = monitor.submit_service(_service("web"))
    await task
    ad_hoc = await take(monitor.results, 2)
    await monitor.check_all()
    cycle = await take(monitor.results, 4)

    # Assert
    assert [r.service_name for r in ad_hoc] == ["web", "web"]
    assert ad_hoc[-1].status == Status.HEALTHY
    assert {r.service_name for r in cycle} == {"api", "web"}


@pytest.mark.asyncio
async def test_submit_service_should_reject_duplicates_and_submissions_after_stop() -> None:
    """
    Tests that a duplicate name, or a submission during shutdown, is refused.
    """
    # Arrange
    monitor = Monitor([_service("api")], ProbeRegistry({"http": ScriptedProbe()}))

    # Act & Assert
    with pytest.raises(DuplicateServiceError):
        monitor.submit_service(_service("api"))

    await monitor.stop()
    with pytest.raises(RuntimeError):
        monitor.submit_service(_service("web"))


@pytest.mark.asyncio
async def test_submit_service_should_grow_stream_for_cycles_without_consumer() -> None:
    """
    Tests that a full cycle over added services fits in the stream when nobody reads it.
    """
    # Arrange
    monitor = Monitor([_service("api")], ProbeRegistry({"http": ScriptedProbe()}))
    for name in ("web", "db"):
        await monitor.submit_service(_service(name))
        await take(monitor.results, 2)

    # Act
    await asyncio.wait_for(monitor.check_all(), timeout=2.0)

    # Assert
    assert monitor.results.maxsize == 6
    assert monitor.results.qsize() == 6


@pytest.mark.asyncio
async def test_submit_service_should_grow_stream_of_monitor_without_services() -> None:
    """
    Tests that a monitor built with no services makes room for the first one it is given.
    """
    # Arrange
    monitor = Monitor([], ProbeRegistry({"http": ScriptedProbe()}))

    # Act
    await asyncio.wait_for(monitor.submit_service(_service("web")), timeout=2.0)

    # Assert
    assert monitor.results.maxsize == 2
    assert [r.status for r in await take(monitor.results, 2)] == [
        Status.CHECKING,
        Status.HEALTHY,
    ]


@pytest.mark.asyncio
async def test_check_all_should_not_overlap_a_running_ad_hoc_check() -> None:
    """
    Tests that a cycle waits for a still running ad hoc check instead of checking the service twice.
    """
    # Arrange
    probe = SlowProbe(delay=0.2)
    monitor = Monitor([], ProbeRegistry({"http": probe}))
    ad_hoc = monitor.submit_service(_service("web"))
    await asyncio.sleep(0.05)

    # Act
    await asyncio.wait_for(monitor.check_all(), timeout=2.0)

    # Assert
    assert ad_hoc.done()
    assert probe.max_active == 1
    assert probe.calls == ["web"]
    assert [r.status for r in await take(monitor.results, 2)] == [
        Status.CHECKING,
        Status.HEALTHY,
    ]


@pytest.mark.asyncio
async def test_check_all_should_check_again_once_the_ad_hoc_check_finished() -> None:
    """
    Tests that a finished ad hoc check does not stop the next cycle from checking the service.
    """
    # Arrange
    probe = SlowProbe(delay=0.0)
    monitor = Monitor([], ProbeRegistry({"http": probe}))
    await monitor.submit_service(_service("web"))
    await take(monitor.results, 2)

    # Act
    await monitor.check_all()

    # Assert
    assert probe.calls == ["web", "web"]
    assert probe.max_active == 1


@pytest.mark.asyncio
async def test_submit_service_should_report_new_service_as_unknown_until_checked() -> None:
    """
    Tests that a service added at runtime appears in the statuses before its first result.
    """
    # Arrange
    probe = BlockingProbe()
    monitor = Monitor([_service("api")], ProbeRegistry({"http": probe}))

    # Act
    monitor.submit_service(_service("web"))
    await asyncio.wait_for(probe.started.wait(), timeout=2.0)
    statuses = await monitor.statuses()

    # Assert
    assert statuses == {"api": Status.UNKNOWN, "web": Status.UNKNOWN}
    await monitor.stop()
    assert probe.cancelled
