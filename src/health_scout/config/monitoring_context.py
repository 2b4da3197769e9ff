"""
Configuration context for the health scout system.

This module defines a data structure that holds all process level
configuration parameters. It serves as a central point for passing
configuration throughout the application.
"""

from typing import NamedTuple, Optional


class MonitoringContext(NamedTuple):
    """
    A data structure containing the process level configuration.

    This class is immutable and is created by parsing command-line arguments
    and environment variables. The engine settings left as None fall back to
    the values of the services configuration file.

    Attributes:
        config_file: Path to the YAML file describing the services.
        instance_id: Unique identifier for this process, injected into every log record.
        logging_type: Type of logging configuration to use (dev, prod, or custom).
        logging_config_file: Path to custom logging configuration file (if logging_type is 'custom').
        check_interval: Override for the interval between check cycles, e.g. "30s".
        timeout: Override for the per-attempt probe timeout, e.g. "5s".
        retry_attempts: Override for the number of attempts per cycle.
        notifications_enabled: Whether status transitions produce alerts.
    """

    config_file: str
    instance_id: str
    logging_type: str
    logging_config_file: str
    check_interval: Optional[str] = None
    timeout: Optional[str] = None
    retry_attempts: Optional[int] = None
    notifications_enabled: bool = True
