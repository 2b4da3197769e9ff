"""
Notification gate turning status transitions into alerts.

Delivering alerts to a desktop, chat or pager is left to whatever consumes
the dedicated alert logger; this module only decides when an alert is due
and what it says.
"""

import logging
from typing import NamedTuple, Optional

from .contracts import NotificationGate
from .domain import CheckResult, Status

# Module logger
logger = logging.getLogger(__name__)

ALERT_LOGGER_NAME = "health_scout.alerts"


class Alert(NamedTuple):
    """A user facing alert about a service."""

    service_name: str
    title: str
    message: str
    recovered: bool


def build_failure_alert(result: CheckResult) -> Alert:
    message = result.message
    if result.error is not None:
        message = f"{result.message}: {result.error}" if result.message else str(result.error)
    return Alert(
        service_name=result.service_name,
        title=f"{result.service_name} - Health Check Failed",
        message=message,
        recovered=False,
    )


def build_recovery_alert(result: CheckResult) -> Alert:
    milliseconds = result.response_time.total_seconds() * 1000
    return Alert(
        service_name=result.service_name,
        title=f"{result.service_name} - Health Check Recovered",
        message=f"Response time: {milliseconds:.0f}ms",
        recovered=True,
    )


class LoggingNotificationGate(NotificationGate):
    """
    Emits failure and recovery alerts on a dedicated logger.

    Failure alerts are produced when a service becomes unhealthy, recovery
    alerts when it goes from unhealthy back to healthy. Anything else is
    ignored.
    """

    def __init__(self, enabled: bool = True, alert_logger: Optional[logging.Logger] = None) -> None:
        """
        Args:
            enabled: When False, no alert is ever produced.
            alert_logger: Where alerts are written. Defaults to the "health_scout.alerts" logger.
        """
        self._enabled: bool = enabled
        self._alert_logger: logging.Logger = alert_logger or logging.getLogger(ALERT_LOGGER_NAME)
        self.last_alert: Optional[Alert] = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def on_transition(self, result: CheckResult, previous: Status) -> bool:
        if not self._enabled:
            return False

        if result.status is Status.HEALTHY and previous is Status.UNHEALTHY:
            alert = build_recovery_alert(result)
            self._alert_logger.info(f"{alert.title}: {alert.message}")
        elif result.status is Status.UNHEALTHY and previous is not Status.UNHEALTHY:
            alert = build_failure_alert(result)
            self._alert_logger.warning(f"{alert.title}: {alert.message}")
        else:
            logger.debug(
                f"No alert for {result.service_name}: {previous.value} -> {result.status.value}"
            )
            return False

        self.last_alert = alert
        return True
