"""
Tracking of the last observed status per service.

The tracker exists to detect status transitions; it keeps nothing but the
most recent terminal status of each service.
"""

import asyncio
from typing import Dict, Iterable

from .domain import Status


def is_notifiable_transition(previous: Status, current: Status) -> bool:
    """
    Decides whether a status change deserves a notification.

    Entering UNHEALTHY from any other status, or recovering from UNHEALTHY to
    HEALTHY, is notifiable. CHECKING never takes part in a transition, and
    nothing that ends in UNKNOWN is notified.

    Args:
        previous: The status before the latest terminal result.
        current: The status of the latest terminal result.

    Returns:
        bool: True for a notifiable transition.
    """
    if previous == current:
        return False
    if Status.CHECKING in (previous, current):
        return False
    if current is Status.UNHEALTHY:
        return True
    return current is Status.HEALTHY and previous is Status.UNHEALTHY


class StatusTracker:
    """
    Lock protected mapping of service name to last observed status.

    Only atomic operations are exposed; callers never see the mapping itself.
    """

    def __init__(self, service_names: Iterable[str] = ()) -> None:
        self._statuses: Dict[str, Status] = {name: Status.UNKNOWN for name in service_names}
        self._lock = asyncio.Lock()

    async def register(self, service_name: str) -> None:
        """Starts tracking a service as UNKNOWN unless it is already tracked."""
        async with self._lock:
            self._statuses.setdefault(service_name, Status.UNKNOWN)

    async def swap(self, service_name: str, status: Status) -> Status:
        """
        Records a new status and returns the one it replaces.

        Read and write happen under the same lock, so concurrent callers
        observe a consistent sequence of transitions.

        Returns:
            Status: The previous status, UNKNOWN for an untracked service.
        """
        async with self._lock:
            previous = self._statuses.get(service_name, Status.UNKNOWN)
            self._statuses[service_name] = status
            return previous

    async def get(self, service_name: str) -> Status:
        async with self._lock:
            return self._statuses.get(service_name, Status.UNKNOWN)

    async def snapshot(self) -> Dict[str, Status]:
        """Returns a copy of the current statuses."""
        async with self._lock:
            return dict(self._statuses)
