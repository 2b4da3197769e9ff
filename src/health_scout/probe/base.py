"""
Shared helpers for probe implementations.
"""

import time
from datetime import datetime, timedelta
from typing import Optional, Tuple

from health_scout.contracts import Probe
from health_scout.domain import CheckResult, Service, Status


def strip_target(target: str) -> str:
    """
    Removes the scheme and any path from a target, keeping host[:port].

    Args:
        target: A URL such as "https://example.com:8443/health" or a bare host.

    Returns:
        str: The authority part, e.g. "example.com:8443".
    """
    host = target.strip()
    if "://" in host:
        host = host.split("://", 1)[1]
    return host.split("/", 1)[0]


def split_host_port(address: str, default_port: Optional[int] = None) -> Tuple[str, int]:
    """
    Splits "host:port" into its parts.

    Bracketed IPv6 literals ("[::1]:443") are supported.

    Raises:
        ValueError: If the port is missing and no default is given, or is not a number.
    """
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port_text = rest[1:] if rest.startswith(":") else ""
    elif address.count(":") == 1:
        host, port_text = address.split(":", 1)
    else:
        host, port_text = address, ""

    if not port_text:
        if default_port is None:
            raise ValueError(f"missing port in address {address!r}")
        return host, default_port
    return host, int(port_text)


class BaseProbe(Probe):
    """
    Base class holding the probe timeout and result construction.

    Attributes:
        _timeout: Maximum seconds a single attempt may spend on network I/O.
    """

    def __init__(self, timeout: float) -> None:
        self._timeout: float = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    @staticmethod
    def _result(
        service: Service,
        status: Status,
        started: float,
        checked_at: datetime,
        message: str,
        error: Optional[Exception] = None,
        status_code: int = 0,
        finished: Optional[float] = None,
    ) -> CheckResult:
        """
        Packages the outcome of an attempt.

        Args:
            started: time.monotonic() reading taken before the network operation.
            finished: time.monotonic() reading taken after it. Defaults to now.
        """
        elapsed = (finished if finished is not None else time.monotonic()) - started
        return CheckResult(
            service_name=service.name,
            status=status,
            response_time=timedelta(seconds=max(elapsed, 0.0)),
            status_code=status_code,
            error=error,
            checked_at=checked_at,
            message=message,
        )


def chain(error: Exception, cause: BaseException) -> Exception:
    """Attaches the library error that caused a reported failure."""
    error.__cause__ = cause
    return error
