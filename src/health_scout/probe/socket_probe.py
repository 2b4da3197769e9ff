"""
Socket level probes: TCP connect, TLS certificate expiry and DNS resolution.

All network operations go through asyncio so that a probe waiting on the
network never blocks other checks, and are bounded by the probe timeout.
"""

import asyncio
import logging
import socket
import ssl
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from health_scout.config.constants import DEFAULT_TLS_PORT, DEFAULT_TLS_WARNING_DAYS
from health_scout.domain import CheckResult, Service, Status, utc_now
from health_scout.errors import (
    CertificateExpiryError,
    ConnectionFailedError,
    DnsResolutionError,
    TlsHandshakeError,
)
from health_scout.probe.base import BaseProbe, chain, split_host_port, strip_target

# Module logger
logger = logging.getLogger(__name__)


async def _close_writer(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except (ssl.SSLError, OSError) as e:
        logger.debug(f"Error while closing connection: {e!r}")


class TcpProbe(BaseProbe):
    """Checks that a TCP connection to host:port can be established."""

    async def check(self, service: Service) -> CheckResult:
        checked_at = utc_now()
        started = time.monotonic()

        try:
            host, port = split_host_port(service.target.strip())
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=self._timeout
            )
        except (OSError, ValueError, asyncio.TimeoutError) as e:
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message="Connection refused",
                error=chain(ConnectionFailedError(str(e) or type(e).__name__), e),
            )

        finished = time.monotonic()
        await _close_writer(writer)
        return self._result(
            service, Status.HEALTHY, started, checked_at, message="Port open", finished=finished
        )


class TlsProbe(BaseProbe):
    """
    Checks the expiry of a server's leaf certificate.

    The handshake always verifies the certificate chain and host name. A
    certificate closer to expiry than the warning threshold is reported as
    unhealthy even though it is still valid.
    """

    def __init__(self, timeout: float, ssl_context: Optional[ssl.SSLContext] = None) -> None:
        """
        Args:
            timeout: Seconds allowed for connect and handshake.
            ssl_context: Context used for the handshake. Defaults to the system trust store.
        """
        super().__init__(timeout)
        self._ssl_context: ssl.SSLContext = ssl_context or ssl.create_default_context()

    async def check(self, service: Service) -> CheckResult:
        checked_at = utc_now()
        started = time.monotonic()

        try:
            host, port = split_host_port(strip_target(service.target), DEFAULT_TLS_PORT)
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port, ssl=self._ssl_context, server_hostname=host),
                timeout=self._timeout,
            )
        except (OSError, ValueError, asyncio.TimeoutError) as e:
            # ssl.SSLError is an OSError subclass.
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message="TLS connection failed",
                error=chain(TlsHandshakeError(f"TLS connection failed: {e}"), e),
            )

        finished = time.monotonic()
        try:
            certificate = writer.get_extra_info("peercert")
        finally:
            await _close_writer(writer)

        if not certificate or "notAfter" not in certificate:
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message="No certificates found",
                error=TlsHandshakeError("no certificates found"),
                finished=finished,
            )

        not_after = datetime.fromtimestamp(
            ssl.cert_time_to_seconds(certificate["notAfter"]), tz=timezone.utc
        )
        now = utc_now()
        expiry_days = int((not_after - now) / timedelta(hours=1)) // 24 if not_after > now else 0
        warning_days = service.tls_warning_days or DEFAULT_TLS_WARNING_DAYS
        message = f"Certificate expires in {expiry_days} days"

        if now > not_after:
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message=message,
                error=CertificateExpiryError(f"certificate expired on {not_after:%Y-%m-%d}"),
                finished=finished,
            )

        if expiry_days < warning_days:
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message=message,
                error=CertificateExpiryError(
                    f"certificate expires in {expiry_days} days (warning threshold: {warning_days} days)"
                ),
                finished=finished,
            )

        return self._result(
            service, Status.HEALTHY, started, checked_at, message=message, finished=finished
        )


class DnsProbe(BaseProbe):
    """Checks that a host name resolves through the system resolver."""

    async def check(self, service: Service) -> CheckResult:
        checked_at = utc_now()
        started = time.monotonic()
        host = ""

        try:
            host, _ = split_host_port(strip_target(service.target), 0)
            if not host:
                raise ValueError(f"no host in target {service.target!r}")
            loop = asyncio.get_running_loop()
            infos = await asyncio.wait_for(
                loop.getaddrinfo(host, None, type=socket.SOCK_STREAM), timeout=self._timeout
            )
        except (OSError, ValueError, UnicodeError, asyncio.TimeoutError) as e:
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message="DNS resolution failed",
                error=chain(DnsResolutionError(f"DNS resolution failed: {e}"), e),
            )

        finished = time.monotonic()
        # getaddrinfo repeats addresses per protocol; keep the first occurrence of each.
        addresses: List[str] = list(dict.fromkeys(info[4][0] for info in infos))

        if not addresses:
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message="No IP addresses found",
                error=DnsResolutionError(f"no IP addresses found for {host}"),
                finished=finished,
            )

        return self._result(
            service,
            Status.HEALTHY,
            started,
            checked_at,
            message=f"Resolved to {addresses[0]}",
            finished=finished,
        )
