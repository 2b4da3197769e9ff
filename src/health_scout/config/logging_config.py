"""
Sets up the ``logging`` tree from a dictConfig JSON file.

Two files ship with the package: a readable console setup for development
and a JSON-lines setup for production. Operators can point at their own file
instead. Every record leaving a root handler carries the scout instance ID.
"""

import json
import logging.config
import os
from typing import Any, Dict

from health_scout.config.monitoring_context import MonitoringContext

# Logging types backed by a file inside this package.
_PACKAGED_CONFIGS: Dict[str, str] = {
    "dev": "logging-config-dev.json",
    "prod": "logging-config-prod.json",
}


def configure_logging(context: MonitoringContext) -> None:
    """
    Applies the logging setup selected by ``context.logging_type``.

    ``dev`` and ``prod`` pick a packaged file, ``custom`` reads
    ``context.logging_config_file``. The type is matched case insensitively.

    Args:
        context: Runtime settings of this scout instance.

    Raises:
        ValueError: On an empty or unknown type, or ``custom`` without a file.
        RuntimeError: If the chosen file cannot be applied.
    """
    logging_type: str = context.logging_type.lower()
    if not logging_type:
        raise ValueError("Logging type must be provided.")

    if logging_type in _PACKAGED_CONFIGS:
        config_file = _get_local_package_file_path(_PACKAGED_CONFIGS[logging_type])
    elif logging_type == "custom":
        if not context.logging_config_file:
            raise ValueError("Custom logging configuration file must be provided.")
        config_file = context.logging_config_file
    else:
        raise ValueError(
            f"Invalid logging type: {context.logging_type}. Allowed values are: dev, prod, custom"
        )
    _load_logging_config(config_file)

    # Handler filters see records propagated from child loggers, logger filters do not.
    instance_filter = _InstanceIdFilter(instance_id=context.instance_id)
    for handler in logging.getLogger().handlers:
        handler.addFilter(instance_filter)

    logging.debug(f"Logging configured from {config_file} for instance {context.instance_id}.")


def _load_logging_config(config_file: str) -> None:
    """
    Feeds a JSON document to ``logging.config.dictConfig``.

    Raises:
        RuntimeError: Wrapping the missing file, JSON or dictConfig error.
    """
    try:
        with open(config_file) as f:
            config: Dict[str, Any] = json.load(f)
            logging.config.dictConfig(config)
    except FileNotFoundError as err:
        raise RuntimeError(f"Logging config file not found: {config_file}") from err
    except json.JSONDecodeError as err:
        raise RuntimeError(f"Invalid JSON format in logging config file: {config_file}") from err
    except Exception as err:
        raise RuntimeError(f"Error loading logging config: {str(err)}") from err


def _get_local_package_file_path(config_file: str) -> str:
    return os.path.join(os.path.dirname(__file__), config_file)


class _InstanceIdFilter(logging.Filter):
    """Stamps ``instance_id`` on records so formatters can reference ``%(instance_id)s``."""

    def __init__(self, instance_id: str) -> None:
        super().__init__()
        self._instance_id: str = instance_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.instance_id = self._instance_id
        return True
