"""
Configuration module for the health scout system.

This module provides functionality to parse command-line arguments and environment
variables to create a configuration context for the monitoring system. It defines
default values and help text for all configurable parameters.
"""

import argparse
import os
from typing import Any, List, Optional
from uuid import uuid4

from health_scout.config.constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_INSTANCE_ID_PREFIX,
    DEFAULT_LOGGING_CONFIG_FILE,
    DEFAULT_LOGGING_TYPE,
    DEFAULT_NOTIFICATIONS_ENABLED,
)
from health_scout.config.monitoring_context import MonitoringContext


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def get_context(argv: Optional[List[str]] = None) -> MonitoringContext:
    """
    Parse command-line arguments and environment variables to create a configuration context.

    For each option, it first checks for a command-line argument, then falls back
    to an environment variable, and finally uses a default value. Engine settings
    without any of these are left as None so the services file can provide them.

    Args:
        argv: Arguments to parse. Defaults to sys.argv[1:].

    Returns:
        MonitoringContext: A configuration context object containing all parsed settings.
    """
    parser = argparse.ArgumentParser(
        prog="health-scout",
        description="Periodically checks the health of the configured services.",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=os.getenv("HEALTH_SCOUT_CONFIG", DEFAULT_CONFIG_FILE),
        help="Path to the YAML file describing the services to monitor.\n"
        "If not provided, the value is read from the HEALTH_SCOUT_CONFIG environment variable.\n"
        f"If that is also absent, the default is {DEFAULT_CONFIG_FILE}.",
    )

    parser.add_argument(
        "-id",
        "--instance-id",
        type=str,
        default=os.getenv("HEALTH_SCOUT_INSTANCE_ID", f"{DEFAULT_INSTANCE_ID_PREFIX}{uuid4()}"),
        help="Specifies the identifier of this process, added to every log record.\n"
        "If not provided, the value is read from the HEALTH_SCOUT_INSTANCE_ID environment variable.\n"
        f"If that is also absent, the default value will be {DEFAULT_INSTANCE_ID_PREFIX}uuid4().",
    )

    parser.add_argument(
        "-i",
        "--check-interval",
        type=str,
        default=os.getenv("HEALTH_SCOUT_CHECK_INTERVAL"),
        help="Interval between two check cycles, e.g. 30s or 1m.\n"
        "Overrides check_interval from the configuration file.",
    )

    parser.add_argument(
        "-t",
        "--timeout",
        type=str,
        default=os.getenv("HEALTH_SCOUT_TIMEOUT"),
        help="Maximum duration of a single probe attempt, e.g. 5s.\n"
        "Overrides timeout from the configuration file.",
    )

    parser.add_argument(
        "-r",
        "--retry-attempts",
        type=int,
        default=_optional_int(os.getenv("HEALTH_SCOUT_RETRY_ATTEMPTS")),
        help="Number of attempts made for a service within one cycle.\n"
        "Overrides retry_attempts from the configuration file.",
    )

    parser.add_argument(
        "-n",
        "--notifications",
        type=str,
        default=os.getenv("HEALTH_SCOUT_NOTIFICATIONS", DEFAULT_NOTIFICATIONS_ENABLED),
        help="Whether status transitions produce alerts (true/false).\n"
        "If not provided, the value is read from the HEALTH_SCOUT_NOTIFICATIONS environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_NOTIFICATIONS_ENABLED} is used.",
    )

    parser.add_argument(
        "-lt",
        "--logging-type",
        type=str,
        default=os.getenv("HEALTH_SCOUT_LOGGING_TYPE", DEFAULT_LOGGING_TYPE),
        help="Specifies the logging configuration type to use.\n"
        "Allowed values: dev, prod, custom (case insensitive).\n"
        "For 'dev' and 'prod', system will use built-in configurations.\n"
        "For 'custom', the --logging-config-file argument is required.",
    )

    parser.add_argument(
        "-lcf",
        "--logging-config-file",
        type=str,
        default=os.getenv("HEALTH_SCOUT_LOGGING_CONFIG_FILE", DEFAULT_LOGGING_CONFIG_FILE),
        help="Path to custom logging configuration file.\n"
        "Required when --logging-type is set to 'custom'.",
    )

    # Parse the command-line arguments
    args: Any = parser.parse_args(argv)

    return MonitoringContext(
        config_file=os.path.expanduser(args.config),
        instance_id=args.instance_id,
        logging_type=args.logging_type,
        logging_config_file=args.logging_config_file,
        check_interval=args.check_interval,
        timeout=args.timeout,
        retry_attempts=args.retry_attempts,
        notifications_enabled=str(args.notifications).lower() == "true",
    )
