"""
Registry mapping declared check types to probe implementations.
"""

import asyncio
import logging
from typing import Dict, Mapping

import aiohttp

from health_scout.contracts import Probe
from health_scout.domain import CheckType
from health_scout.errors import UnknownCheckTypeError
from health_scout.probe.aiohttp_probe import HttpProbe, LatencyProbe
from health_scout.probe.socket_probe import DnsProbe, TcpProbe, TlsProbe

# Module logger
logger = logging.getLogger(__name__)


class ProbeRegistry:
    """
    Maps a service's declared check type to the probe that handles it.

    A registry is built once and handed to the monitor, which owns it from
    then on and closes it at shutdown.
    """

    def __init__(self, probes: Mapping[str, Probe]) -> None:
        """
        Args:
            probes: Probe per check type name. Names are matched case insensitively.
        """
        self._probes: Dict[str, Probe] = {
            str(getattr(name, "value", name)).lower(): probe for name, probe in probes.items()
        }

    @classmethod
    def default(cls, session: aiohttp.ClientSession, timeout: float) -> "ProbeRegistry":
        """
        Builds the registry with the five built-in probe families.

        Args:
            session: The session shared by the HTTP and latency probes.
            timeout: Seconds allowed for one probe attempt.

        Returns:
            ProbeRegistry: A registry covering http, tcp, tls, dns and latency.
        """
        return cls(
            {
                CheckType.HTTP: HttpProbe(session, timeout),
                CheckType.TCP: TcpProbe(timeout),
                CheckType.TLS: TlsProbe(timeout),
                CheckType.DNS: DnsProbe(timeout),
                CheckType.LATENCY: LatencyProbe(session, timeout),
            }
        )

    def resolve(self, check_type: str) -> Probe:
        """
        Finds the probe for a check type. An empty type means http.

        Raises:
            UnknownCheckTypeError: If no probe is registered for the type.
        """
        key = (check_type or CheckType.HTTP.value).strip().lower()
        try:
            return self._probes[key]
        except KeyError:
            raise UnknownCheckTypeError(check_type) from None

    def __contains__(self, check_type: object) -> bool:
        return isinstance(check_type, str) and check_type.strip().lower() in self._probes

    async def close(self) -> None:
        """Releases the resources retained by every probe."""
        results = await asyncio.gather(
            *(probe.close() for probe in self._probes.values()), return_exceptions=True
        )
        for probe, result in zip(self._probes.values(), results):
            if isinstance(result, Exception):
                logger.error(f"Failed to close probe '{type(probe).__name__}': {result}")
