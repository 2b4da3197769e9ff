"""
HTTP-family probes implemented with the aiohttp library.

This module provides the HTTP probe, which validates status codes and JSON
assertions, and the latency probe, which judges a service only by its round
trip time. Both share request construction and a single aiohttp ClientSession,
so connections are reused across checks until the engine shuts down.
"""

import asyncio
import base64
import logging
import time
from typing import Tuple

import aiohttp
from aiohttp import hdrs
from multidict import CIMultiDict

from health_scout.config.constants import DEFAULT_LATENCY_THRESHOLD_MS
from health_scout.domain import AuthType, CheckResult, Service, Status, utc_now
from health_scout.errors import (
    ConnectionFailedError,
    JsonAssertionError,
    LatencyThresholdError,
    StatusCodeMismatchError,
)
from health_scout.probe.base import BaseProbe, chain
from health_scout.probe.json_assertions import evaluate_assertions

# Module logger
logger = logging.getLogger(__name__)

# Transport level failures that are reported as an unhealthy result.
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError)


def build_request(service: Service) -> Tuple[str, str, "CIMultiDict[str]"]:
    """
    Builds the method, URL and headers for an HTTP-family check.

    Custom headers are applied first and authentication second, so an
    Authorization value derived from the auth settings wins over a custom
    header of the same name.

    Args:
        service: The service to build the request for.

    Returns:
        Tuple[str, str, CIMultiDict[str]]: Method, full URL and request headers.
    """
    url = service.target
    if service.health_path:
        url = service.target.rstrip("/") + service.health_path

    method = (service.method or "GET").upper()

    headers: "CIMultiDict[str]" = CIMultiDict()
    for key, value in (service.headers or {}).items():
        headers[key] = str(value)

    auth = service.auth
    if auth is not None:
        if auth.type == AuthType.BEARER and auth.token:
            headers[hdrs.AUTHORIZATION] = f"Bearer {auth.token}"
        elif auth.type == AuthType.BASIC and auth.username and auth.password:
            credentials = f"{auth.username}:{auth.password}".encode("utf-8")
            headers[hdrs.AUTHORIZATION] = "Basic " + base64.b64encode(credentials).decode("ascii")

    return method, url, headers


class _AiohttpProbe(BaseProbe):
    """
    Common base for probes issuing HTTP requests through a shared session.

    Redirects are never followed: the immediate response is authoritative.
    """

    def __init__(self, session: aiohttp.ClientSession, timeout: float) -> None:
        """
        Initializes the probe with a shared aiohttp ClientSession.

        Args:
            session: An active aiohttp.ClientSession used for every request.
            timeout: Total seconds allowed for one request, body included.
        """
        super().__init__(timeout)
        self._session: aiohttp.ClientSession = session

    def _request(self, service: Service):
        method, url, headers = build_request(service)
        logger.debug(f"{method} {url} for service {service.name}")
        return self._session.request(
            method,
            url,
            headers=headers,
            allow_redirects=False,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        )

    async def close(self) -> None:
        """Closes the shared session and its idle connection pool."""
        if not self._session.closed:
            await self._session.close()


class HttpProbe(_AiohttpProbe):
    """
    Checks that an endpoint answers with the expected status code.

    When JSON assertions are configured and the status code matches, the
    response body is decoded and every assertion must hold.
    """

    async def check(self, service: Service) -> CheckResult:
        checked_at = utc_now()
        started = time.monotonic()

        try:
            async with self._request(service) as response:
                status_code = response.status
                try:
                    # The body is always read so the connection can be reused.
                    body = await response.read()
                except TRANSPORT_ERRORS as e:
                    return self._result(
                        service,
                        Status.UNHEALTHY,
                        started,
                        checked_at,
                        message="Failed to read response body",
                        error=chain(ConnectionFailedError(f"failed to read response body: {e}"), e),
                        status_code=status_code,
                    )
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Request for service {service.name} failed: {e!r}")
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message="Connection failed",
                error=chain(ConnectionFailedError(str(e) or type(e).__name__), e),
            )

        finished = time.monotonic()
        expected = service.expected_status_code or 200

        if status_code != expected:
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message=f"Expected {expected}, got {status_code}",
                error=StatusCodeMismatchError(expected, status_code),
                status_code=status_code,
                finished=finished,
            )

        if service.json_assertions:
            try:
                evaluate_assertions(body, service.json_assertions)
            except JsonAssertionError as e:
                return self._result(
                    service,
                    Status.UNHEALTHY,
                    started,
                    checked_at,
                    message="JSON assertion failed",
                    error=e,
                    status_code=status_code,
                    finished=finished,
                )

        return self._result(
            service,
            Status.HEALTHY,
            started,
            checked_at,
            message=f"HTTP {status_code}",
            status_code=status_code,
            finished=finished,
        )


class LatencyProbe(_AiohttpProbe):
    """
    Checks that an endpoint answers within a latency budget.

    The status code and body content are ignored; only the round trip time
    until the response arrives counts.
    """

    async def check(self, service: Service) -> CheckResult:
        checked_at = utc_now()
        started = time.monotonic()

        try:
            async with self._request(service) as response:
                finished = time.monotonic()
                status_code = response.status
                try:
                    await response.read()
                except TRANSPORT_ERRORS as e:
                    logger.debug(f"Ignoring body read failure for service {service.name}: {e!r}")
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Request for service {service.name} failed: {e!r}")
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message="Connection failed",
                error=chain(ConnectionFailedError(str(e) or type(e).__name__), e),
            )

        latency_ms = int((finished - started) * 1000)
        threshold_ms = service.latency_threshold_ms or DEFAULT_LATENCY_THRESHOLD_MS
        message = f"Latency: {latency_ms}ms"

        if latency_ms > threshold_ms:
            return self._result(
                service,
                Status.UNHEALTHY,
                started,
                checked_at,
                message=message,
                error=LatencyThresholdError(latency_ms, threshold_ms),
                status_code=status_code,
                finished=finished,
            )

        return self._result(
            service,
            Status.HEALTHY,
            started,
            checked_at,
            message=message,
            status_code=status_code,
            finished=finished,
        )
