"""
Check orchestration for the health scout system.

This module provides the Monitor class, which runs the periodic check cycles.
Every cycle fans out one task per configured service, each task retries its
probe sequentially, publishes the outcome on the result stream and feeds the
status tracker, which decides when the notification gate is consulted.
"""

import asyncio
import functools
import logging
from asyncio import Task
from typing import Dict, Iterable, List, Optional

from .config.constants import (
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_NOTIFICATION_TIMEOUT_SECONDS,
    DEFAULT_RETRY_DELAY_SECONDS,
)
from .config.durations import parse_duration
from .config.services_loader import MonitorConfig
from .contracts import NotificationGate, Probe
from .domain import CheckResult, Service, Status, checking_result, utc_now
from .errors import DuplicateServiceError, ProbeError, UnknownCheckTypeError
from .probe.base import chain
from .probe.registry import ProbeRegistry
from .stream import ResultStream
from .tracker import StatusTracker, is_notifiable_transition

_FALLBACK_CHECK_INTERVAL_SECONDS = parse_duration(DEFAULT_CHECK_INTERVAL, 30.0)


class Monitor:
    """
    Runs health checks for all configured services on a fixed interval.

    The monitor owns the probe registry, the status tracker and the result
    stream. Consumers drain ``results`` and can wait on ``done`` to learn
    that the monitor has fully stopped.
    """

    def __init__(
        self,
        services: Iterable[Service],
        registry: ProbeRegistry,
        gate: Optional[NotificationGate] = None,
        check_interval: float = _FALLBACK_CHECK_INTERVAL_SECONDS,
        retry_attempts: int = 3,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        notification_timeout: float = DEFAULT_NOTIFICATION_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initializes a new Monitor instance.

        Args:
            services: The services to check. Names must be unique.
            registry: Probes per check type. Closed by the monitor at shutdown.
            gate: Consulted on notifiable status transitions, if given.
            check_interval: Seconds between the starts of two check cycles.
            retry_attempts: Attempts per service per cycle. Values below 1 mean 1.
            retry_delay: Fixed pause in seconds between two attempts.
            notification_timeout: Seconds a single gate call may take.

        Raises:
            DuplicateServiceError: If two services share a name.
        """
        self._services: List[Service] = []
        for service in services:
            self._ensure_unique(service)
            self._services.append(service)

        self._registry: ProbeRegistry = registry
        self._gate: Optional[NotificationGate] = gate
        self._check_interval: float = (
            check_interval if check_interval > 0 else _FALLBACK_CHECK_INTERVAL_SECONDS
        )
        self._retry_attempts: int = max(1, retry_attempts)
        self._retry_delay: float = retry_delay
        self._notification_timeout: float = notification_timeout
        self._logger: logging.Logger = logging.getLogger(__name__)

        self._tracker: StatusTracker = StatusTracker(s.name for s in self._services)
        self._results: ResultStream = ResultStream(maxsize=self._stream_capacity())
        # At most one in-flight check per service name.
        self._tasks: Dict[str, Task] = {}
        self._stopping: asyncio.Event = asyncio.Event()
        self._done: asyncio.Event = asyncio.Event()
        self._started: bool = False

    @classmethod
    def from_config(
        cls,
        config: MonitorConfig,
        registry: ProbeRegistry,
        gate: Optional[NotificationGate] = None,
    ) -> "Monitor":
        """Builds a monitor from the loaded configuration, tolerating unparsable durations."""
        return cls(
            services=config.services,
            registry=registry,
            gate=gate,
            check_interval=parse_duration(config.check_interval, _FALLBACK_CHECK_INTERVAL_SECONDS),
            retry_attempts=config.retry_attempts,
        )

    @property
    def services(self) -> List[Service]:
        return list(self._services)

    @property
    def results(self) -> ResultStream:
        """The stream every check result is published on. Closed at shutdown."""
        return self._results

    @property
    def done(self) -> asyncio.Event:
        """Set once all tasks are joined and the result stream is closed."""
        return self._done

    @property
    def check_interval(self) -> float:
        return self._check_interval

    @property
    def retry_attempts(self) -> int:
        return self._retry_attempts

    async def statuses(self) -> Dict[str, Status]:
        """Returns the last observed terminal status of every service."""
        return await self._tracker.snapshot()

    def _stream_capacity(self) -> int:
        # Room for one "checking" and one terminal result per service.
        return 2 * len(self._services)

    def _ensure_unique(self, service: Service) -> None:
        if any(existing.name == service.name for existing in self._services):
            raise DuplicateServiceError(f"service with name '{service.name}' already exists")

    async def start(self) -> None:
        """
        Runs check cycles until stopped or cancelled.

        The first cycle starts immediately. Later cycles start every
        ``check_interval`` seconds; a cycle that overruns the interval is
        followed by the next one right away. On exit, in-flight checks are
        cancelled, the result stream is closed, probe resources are released
        and ``done`` is set.

        Raises:
            RuntimeError: If the monitor was already started.
            asyncio.CancelledError: When the task running the monitor is cancelled.
        """
        if self._started:
            raise RuntimeError("Monitor already started")
        self._started = True

        self._logger.info(
            f"Starting monitor for {len(self._services)} services "
            f"(interval: {self._check_interval}s, attempts: {self._retry_attempts})."
        )
        loop = asyncio.get_running_loop()
        next_cycle = loop.time()

        try:
            while not self._stopping.is_set():
                await self.check_all()

                next_cycle += self._check_interval
                delay = next_cycle - loop.time()
                if delay < 0:
                    self._logger.warning(
                        f"Check cycle overran the {self._check_interval}s interval by {-delay:.2f}s"
                    )
                    next_cycle = loop.time()
                    delay = 0

                if await self._wait_for_stop(delay):
                    break
        finally:
            await self._shutdown()

    async def stop(self) -> None:
        """
        Stops scheduling, cancels in-flight checks and waits for the shutdown to finish.
        """
        self._logger.info("Initiating graceful shutdown...")
        self._stopping.set()
        for task in list(self._tasks.values()):
            task.cancel()

        if self._started:
            await self._done.wait()
        else:
            await self._shutdown()

    async def check_all(self) -> None:
        """
        Runs one check cycle: a task per service, returning when every task has finished.

        A service whose previous check is still running is not checked twice;
        the cycle waits for that check instead.
        """
        services = list(self._services)
        self._logger.debug(f"Check cycle started for {len(services)} services.")
        tasks = [self._spawn(service) for service in services]
        await asyncio.gather(*tasks, return_exceptions=True)
        self._logger.debug("Check cycle complete.")

    def submit_service(self, service: Service) -> Task:
        """
        Adds a service and checks it right away, outside the regular cycle.

        From then on the service is part of every cycle and the result stream
        grows to keep room for it. It is reported as UNKNOWN by ``statuses()``
        until its first check completes. Must be called from the event loop
        running the monitor.

        Args:
            service: The new service.

        Returns:
            Task: The task running the ad hoc check.

        Raises:
            DuplicateServiceError: If a service with the same name is configured.
            RuntimeError: If the monitor is shutting down.
        """
        if self._stopping.is_set():
            raise RuntimeError("Monitor is stopping; no new services are accepted")
        self._ensure_unique(service)
        self._services.append(service)
        self._results.grow(self._stream_capacity())
        self._logger.info(f"Service '{service.name}' added; scheduling an immediate check.")
        return self._spawn(service, first_check=True)

    def _spawn(self, service: Service, first_check: bool = False) -> Task:
        running = self._tasks.get(service.name)
        if running is not None and not running.done():
            self._logger.debug(f"Check of '{service.name}' still in flight; waiting for it.")
            return running

        if first_check:
            check = self._check_new_service(service)
        else:
            check = self._check_service(service)
        task = asyncio.create_task(check, name=f"check-{service.name}")
        self._tasks[service.name] = task
        task.add_done_callback(functools.partial(self._forget, service.name))
        return task

    def _forget(self, service_name: str, task: Task) -> None:
        if self._tasks.get(service_name) is task:
            del self._tasks[service_name]

    async def _wait_for_stop(self, delay: float) -> bool:
        """Sleeps up to ``delay`` seconds. Returns True if a stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    async def _check_new_service(self, service: Service) -> None:
        await self._tracker.register(service.name)
        await self._check_service(service)

    async def _check_service(self, service: Service) -> None:
        """
        Runs one cycle for one service: publish "checking", probe with retries, record.
        """
        try:
            if not await self._publish(checking_result(service)):
                return

            try:
                probe = self._registry.resolve(service.check_type)
            except UnknownCheckTypeError as e:
                # A static misconfiguration: reported once, never retried.
                self._logger.error(f"Service '{service.name}': {e}")
                result = CheckResult(
                    service_name=service.name,
                    status=Status.UNKNOWN,
                    error=e,
                    checked_at=utc_now(),
                    message="Unknown checker type",
                )
            else:
                result = await self._run_attempts(probe, service)

            await self._record(result)
        except asyncio.CancelledError:
            self._logger.debug(f"Check of '{service.name}' cancelled.")
            raise
        except Exception as e:
            self._logger.exception(f"Check pipeline failed for service '{service.name}': {e}")

    async def _run_attempts(self, probe: Probe, service: Service) -> CheckResult:
        result = await self._attempt(probe, service)
        attempt = 1
        while result.status is not Status.HEALTHY and attempt < self._retry_attempts:
            self._logger.info(
                f"Service '{service.name}' attempt {attempt}/{self._retry_attempts} "
                f"failed ({result.message}); retrying in {self._retry_delay}s."
            )
            await asyncio.sleep(self._retry_delay)
            attempt += 1
            result = await self._attempt(probe, service)
        return result

    async def _attempt(self, probe: Probe, service: Service) -> CheckResult:
        try:
            return await probe.check(service)
        except Exception as e:
            self._logger.exception(f"Probe '{type(probe).__name__}' raised for '{service.name}'")
            return CheckResult(
                service_name=service.name,
                status=Status.UNHEALTHY,
                error=chain(ProbeError(f"probe failed: {e}"), e),
                checked_at=utc_now(),
                message="Check failed",
            )

    async def _publish(self, result: CheckResult) -> bool:
        published = await self._results.publish(result)
        if published and self._results.qsize() > self._results.maxsize * 0.9:
            self._logger.warning(
                f"Result stream size ({self._results.qsize()}) is above 90% of capacity "
                f"({self._results.maxsize})"
            )
        return published

    async def _record(self, result: CheckResult) -> None:
        """
        Publishes a terminal result, then updates the tracker and notifies on transitions.

        The gate runs after publication so it can never delay the result.
        """
        await self._publish(result)
        previous = await self._tracker.swap(result.service_name, result.status)
        self._logger.debug(
            f"Service '{result.service_name}': {previous.value} -> {result.status.value}"
        )
        if is_notifiable_transition(previous, result.status):
            await self._notify(result, previous)

    async def _notify(self, result: CheckResult, previous: Status) -> None:
        if self._gate is None:
            return
        try:
            notified = await asyncio.wait_for(
                self._gate.on_transition(result, previous), timeout=self._notification_timeout
            )
            self._logger.debug(f"Notification for '{result.service_name}' sent: {notified}")
        except asyncio.TimeoutError:
            self._logger.warning(
                f"Notification gate timed out after {self._notification_timeout}s "
                f"for '{result.service_name}'"
            )
        except Exception as e:
            self._logger.exception(
                f"Notification gate failed for '{result.service_name}' with error: {e}"
            )

    async def _shutdown(self) -> None:
        self._stopping.set()

        pending = list(self._tasks.values())
        if pending:
            self._logger.info(f"Cancelling {len(pending)} in-flight checks...")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        self._results.close()
        self._logger.info("Result stream closed. Releasing probe resources...")
        await self._registry.close()
        self._done.set()
        self._logger.info("Monitor shutdown complete")
