"""
Exception hierarchy for the health scout system.

Every terminal result that is not healthy carries one of these exceptions in
its ``error`` field. Transport failures chain the underlying library error
as ``__cause__``.
"""


class HealthScoutError(Exception):
    """Base class for all errors raised or reported by health scout."""


class ConfigurationError(HealthScoutError):
    """The configuration could not be loaded or is invalid."""


class DuplicateServiceError(ConfigurationError):
    """A service with the same name is already configured."""


class UnknownCheckTypeError(ConfigurationError):
    """No probe is registered for the declared check type."""

    def __init__(self, check_type: str) -> None:
        super().__init__(f"unknown checker type: {check_type}")
        self.check_type = check_type


class ProbeError(HealthScoutError):
    """A transport level failure: timeout, refusal, handshake or lookup error."""


class ConnectionFailedError(ProbeError):
    pass


class TlsHandshakeError(ProbeError):
    pass


class DnsResolutionError(ProbeError):
    pass


class CheckFailedError(HealthScoutError):
    """The endpoint answered but the answer did not satisfy the check."""


class StatusCodeMismatchError(CheckFailedError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class JsonAssertionError(CheckFailedError):
    pass


class CertificateExpiryError(CheckFailedError):
    pass


class LatencyThresholdError(CheckFailedError):
    def __init__(self, latency_ms: int, threshold_ms: int) -> None:
        super().__init__(f"latency {latency_ms}ms exceeds threshold of {threshold_ms}ms")
        self.latency_ms = latency_ms
        self.threshold_ms = threshold_ms
