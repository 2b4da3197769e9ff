"""
Core interfaces for the health scout system.

This module defines the abstract base classes that form the foundation of the
monitoring system's architecture. These interfaces establish a clear contract
for implementations and enable a modular, pluggable design.
"""

import abc

from .domain import CheckResult, Service, Status


class Probe(abc.ABC):
    """
    Abstract interface for a component that performs the check for a single service.

    Each implementation covers one protocol family. Its responsibility is to
    encapsulate the network I/O for a given Service and return a structured
    result. Implementations share no state with each other.
    """

    @abc.abstractmethod
    async def check(self, service: Service) -> CheckResult:
        """
        Performs one health check attempt on the given service.

        The network work is bounded by the probe's timeout. Cancelling the
        awaiting task aborts the attempt promptly.

        Args:
            service: The Service to check.

        Returns:
            CheckResult: A terminal result (healthy, unhealthy or unknown).

        Raises:
            asyncio.CancelledError: When the awaiting task is cancelled.
                Implementations should handle network errors internally and
                include them in the CheckResult rather than raising them.
        """
        pass

    async def close(self) -> None:
        """
        Releases resources retained between checks, such as idle connections.

        Called once at engine shutdown. Probes without retained resources can
        rely on this no-op.
        """
        return None


class NotificationGate(abc.ABC):
    """
    Abstract interface for the decision point that turns status transitions into alerts.

    The engine calls it once per notifiable transition. How alerts are
    delivered is up to the implementation.
    """

    @abc.abstractmethod
    async def on_transition(self, result: CheckResult, previous: Status) -> bool:
        """
        Handles a status transition of a service.

        Args:
            result: The terminal result that caused the transition.
            previous: The status the service had before this result.

        Returns:
            bool: True if a notification was produced.
        """
        pass


class ResultProcessor(abc.ABC):
    """
    Abstract interface for a component that consumes results drained from the stream.

    This enables a pipeline pattern where multiple processors can act on the
    outcome of a check to perform tasks like logging or keeping a status board.
    """

    @abc.abstractmethod
    async def process(self, result: CheckResult) -> None:
        """
        Processes a single CheckResult object.

        Args:
            result: A result drained from the monitor's result stream, either
                an interim "checking" signal or a terminal outcome.

        Returns:
            None
        """
        pass

    @abc.abstractmethod
    async def flush(self) -> None:
        """
        Called once the result stream has closed.

        For processors that do not buffer data, this method can be a no-op.

        Returns:
            None
        """
        pass
