"""
HTTP client configuration module for the health scout system.

This module provides functionality to create the aiohttp client session
shared by the HTTP-family probes.
"""

import logging

import aiohttp

# Module logger
logger = logging.getLogger(__name__)


def get_http_session(timeout: float) -> aiohttp.ClientSession:
    """
    Create the HTTP client session used by the HTTP and latency probes.

    Using a shared session keeps connections alive between checks. The session
    must be created inside a running event loop and is closed by the probe
    registry at shutdown.

    Args:
        timeout: Default total timeout in seconds for a request.

    Returns:
        aiohttp.ClientSession: A configured HTTP client session.
    """
    logger.debug(f"Creating HTTP session with a {timeout}s timeout")
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout))
