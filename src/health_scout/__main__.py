"""
Main entry point for the health scout application.

This module initializes and runs the monitoring system. It sets up logging,
loads the services configuration, creates the HTTP session and probes,
starts the monitor, drains its results and handles graceful shutdown when
the application is terminated.
"""

import asyncio
import logging
import sys

import aiohttp

from health_scout.config import MonitoringContext, get_context
from health_scout.config.constants import DEFAULT_TIMEOUT
from health_scout.config.durations import parse_duration
from health_scout.config.http_config import get_http_session
from health_scout.config.logging_config import configure_logging
from health_scout.config.services_loader import MonitorConfig, apply_overrides, load_config
from health_scout.contracts import ResultProcessor
from health_scout.errors import ConfigurationError
from health_scout.monitor import Monitor
from health_scout.notifier import LoggingNotificationGate
from health_scout.probe.registry import ProbeRegistry
from health_scout.processor.delegating_processor import DelegatingResultProcessor
from health_scout.processor.logging_processor import LoggingResultProcessor
from health_scout.processor.status_board_processor import StatusBoardProcessor


async def drain(monitor: Monitor, processor: ResultProcessor) -> None:
    """
    Hands every result of the monitor's stream to the processor until the stream closes.

    Args:
        monitor: The monitor whose results are consumed.
        processor: Receives each result, then a final flush.
    """
    async for result in monitor.results:
        await processor.process(result)
    await processor.flush()


async def main(context: MonitoringContext, config: MonitorConfig) -> None:
    """
    Set up and run the monitoring application.

    This function initializes all components of the monitoring system:
    1. Creates an HTTP session for the HTTP-family probes
    2. Builds the probe registry and the notification gate
    3. Initializes the monitor and a consumer draining its results
    4. Handles graceful shutdown when the application is terminated

    Args:
        context: Process level settings.
        config: The services and engine settings to run with.
    """
    logger: logging.Logger = logging.getLogger(__name__)
    logger.info("Starting application...")

    timeout: float = parse_duration(config.timeout, parse_duration(DEFAULT_TIMEOUT, 5.0))

    # Initialize HTTP session shared by the HTTP and latency probes
    http_session: aiohttp.ClientSession = get_http_session(timeout)
    logger.info("configured: http_session")

    monitor: Monitor = Monitor.from_config(
        config,
        registry=ProbeRegistry.default(http_session, timeout),
        gate=LoggingNotificationGate(enabled=context.notifications_enabled),
    )
    processor = DelegatingResultProcessor([LoggingResultProcessor(), StatusBoardProcessor()])
    consumer = asyncio.create_task(drain(monitor, processor))

    try:
        logger.info("Monitor initialized. Starting monitoring loop...")
        await monitor.start()
    except asyncio.CancelledError:
        logger.info("Application shutdown requested.")
    finally:
        # Ensure all resources are properly closed during shutdown
        logger.info("Shutting down resources...")
        await monitor.stop()
        await consumer
        if not http_session.closed:
            await http_session.close()
        logger.info("Shutdown complete.")


def run() -> None:
    try:
        # Parse command-line arguments and environment variables
        health_scout_context: MonitoringContext = get_context()

        # Configure logging based on the context
        configure_logging(health_scout_context)

        config = apply_overrides(load_config(health_scout_context.config_file), health_scout_context)

        # Run the main application
        asyncio.run(main(health_scout_context, config))
    except ConfigurationError as e:
        logging.error(f"Configuration error: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        logging.info("Shutdown initiated by user (Ctrl+C).")


if __name__ == "__main__":
    run()
