"""
Domain models for the health scout system.

This module defines the core data structures used throughout the application,
including service descriptors, check types, statuses and check results.
These models serve as the foundation for the monitoring system's data flow.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple


class Status(str, Enum):
    """
    The health status of a service.

    CHECKING is an interim signal published when a check is dispatched; the
    other three are terminal.
    """

    CHECKING = "checking"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class CheckType(str, Enum):
    """Supported probe families."""

    HTTP = "http"
    TCP = "tcp"
    TLS = "tls"
    DNS = "dns"
    LATENCY = "latency"


class HttpMethod(str, Enum):
    """
    Defines supported HTTP methods as a type-safe enumeration.

    Inheriting from 'str' allows enum members to behave like strings,
    making them compatible with libraries expecting string values.
    """

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"


class AuthType(str, Enum):
    NONE = "none"
    BEARER = "bearer"
    BASIC = "basic"


class Auth(NamedTuple):
    """
    Authentication settings applied to HTTP-family requests.

    Attributes:
        type: Which scheme to use.
        token: The bearer token, used when type is BEARER.
        username: The basic-auth user name, used when type is BASIC.
        password: The basic-auth password, used when type is BASIC.
    """

    type: AuthType = AuthType.NONE
    token: str = ""
    username: str = ""
    password: str = ""


class JsonAssertion(NamedTuple):
    """
    A single check against a leaf of a JSON response body.

    Attributes:
        path: Dot separated path into the document, e.g. "checks.database".
        value: The expected value.
        operator: One of ==, equals, !=, not_equals, >, <, >=, <=, contains.
    """

    path: str
    value: Any
    operator: str = "=="


class Service(NamedTuple):
    """
    Represents a single service to monitor with its complete configuration.

    Instances are immutable and owned by the configuration layer; the
    engine only reads them.

    Attributes:
        name: Unique identifier, the key for all tracking.
        target: A URL or host:port, depending on the check type.
        check_type: The declared probe family. Empty means http.
        method: HTTP method for HTTP-family probes.
        health_path: Appended to the target URL when set.
        expected_status_code: Status code an HTTP probe treats as healthy.
        headers: Extra request headers.
        auth: Optional authentication settings.
        json_assertions: Assertions evaluated against a JSON response body.
        tls_warning_days: Days before certificate expiry to report unhealthy. 0 means default.
        latency_threshold_ms: Round-trip budget for latency probes. 0 means default.
    """

    name: str
    target: str
    check_type: str = CheckType.HTTP.value
    method: str = HttpMethod.GET.value
    health_path: str = ""
    expected_status_code: int = 200
    headers: Optional[Dict[str, str]] = None
    auth: Optional[Auth] = None
    json_assertions: Tuple[JsonAssertion, ...] = ()
    tls_warning_days: int = 0
    latency_threshold_ms: int = 0


class CheckResult(NamedTuple):
    """
    A data structure holding the result of a single health check.

    Attributes:
        service_name: Name of the service that was checked.
        status: Outcome of the check.
        response_time: Time spent on the network operation.
        status_code: The HTTP status code received, or 0 when not applicable.
        error: The failure detail. Set on every terminal non-healthy result.
        checked_at: When the check started (UTC).
        message: A short human readable summary.
    """

    service_name: str
    status: Status
    response_time: timedelta = timedelta(0)
    status_code: int = 0
    error: Optional[Exception] = None
    checked_at: Optional[datetime] = None
    message: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status is not Status.CHECKING


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def checking_result(service: Service) -> CheckResult:
    """Build the interim result published when a check is dispatched."""
    return CheckResult(
        service_name=service.name,
        status=Status.CHECKING,
        checked_at=utc_now(),
        message="Checking...",
    )
