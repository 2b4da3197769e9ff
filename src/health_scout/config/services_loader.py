"""YAML loader for the services configuration, with environment variable interpolation."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

import yaml

from health_scout.config.constants import (
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_EXPECTED_STATUS_CODE,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_TIMEOUT,
)
from health_scout.config.monitoring_context import MonitoringContext
from health_scout.domain import Auth, AuthType, CheckType, JsonAssertion, Service
from health_scout.errors import ConfigurationError

# Module logger
logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class MonitorConfig(NamedTuple):
    """
    The engine settings and services read from the configuration file.

    Durations are kept as written; the engine parses them and falls back to
    its defaults when they are unparsable.
    """

    check_interval: str = DEFAULT_CHECK_INTERVAL
    timeout: str = DEFAULT_TIMEOUT
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    services: Tuple[Service, ...] = ()


def _interpolate_env(value: str) -> str:
    """Replace ${VAR} and ${VAR:-default} patterns with environment values."""

    def _replace(match: "re.Match[str]") -> str:
        expr = match.group(1)
        if ":-" in expr:
            var_name, default = expr.split(":-", 1)
            return os.environ.get(var_name.strip(), default)
        return os.environ.get(expr.strip(), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(data: Any) -> Any:
    """Walk a nested data structure and interpolate env vars in strings."""
    if isinstance(data, str):
        return _interpolate_env(data)
    if isinstance(data, dict):
        return {k: _interpolate_recursive(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_interpolate_recursive(item) for item in data]
    return data


def _parse_auth(raw: Optional[Dict[str, Any]], service_name: str) -> Optional[Auth]:
    if not raw:
        return None
    auth_type = str(raw.get("type") or AuthType.NONE.value).lower()
    try:
        parsed_type = AuthType(auth_type)
    except ValueError:
        raise ConfigurationError(
            f"service '{service_name}': unsupported auth type '{auth_type}'"
        ) from None
    return Auth(
        type=parsed_type,
        token=str(raw.get("token") or ""),
        username=str(raw.get("username") or ""),
        password=str(raw.get("password") or ""),
    )


def _parse_assertion(raw: Dict[str, Any], service_name: str) -> JsonAssertion:
    if not isinstance(raw, dict) or not raw.get("path"):
        raise ConfigurationError(f"service '{service_name}': every JSON assertion needs a path")
    return JsonAssertion(
        path=str(raw["path"]),
        value=raw.get("value"),
        operator=str(raw.get("operator") or "=="),
    )


def parse_service(raw: Dict[str, Any]) -> Service:
    """
    Builds a Service from one entry of the "services" list.

    Raises:
        ConfigurationError: If the entry lacks a name or url, or has malformed fields.
    """
    if not isinstance(raw, dict):
        raise ConfigurationError(f"invalid service entry: {raw!r}")
    name = str(raw.get("name") or "").strip()
    if not name:
        raise ConfigurationError("every service needs a name")
    target = str(raw.get("url") or "").strip()
    if not target:
        raise ConfigurationError(f"service '{name}' needs a url")

    headers = raw.get("headers") or {}
    if not isinstance(headers, dict):
        raise ConfigurationError(f"service '{name}': headers must be a mapping")

    try:
        return Service(
            name=name,
            target=target,
            check_type=str(raw.get("type") or CheckType.HTTP.value).lower(),
            method=str(raw.get("method") or "GET").upper(),
            health_path=str(raw.get("health_endpoint") or ""),
            expected_status_code=int(raw.get("expected_status") or DEFAULT_EXPECTED_STATUS_CODE),
            headers={str(k): str(v) for k, v in headers.items()},
            auth=_parse_auth(raw.get("auth"), name),
            json_assertions=tuple(
                _parse_assertion(item, name) for item in raw.get("json_assertions") or []
            ),
            tls_warning_days=int(raw.get("tls_warning_days") or 0),
            latency_threshold_ms=int(raw.get("latency_threshold") or 0),
        )
    except (TypeError, ValueError) as err:
        raise ConfigurationError(f"service '{name}': {err}") from err


def parse_config(data: Dict[str, Any]) -> MonitorConfig:
    """
    Builds a MonitorConfig from the decoded YAML document.

    Raises:
        ConfigurationError: If service names are duplicated or an entry is invalid.
    """
    services: List[Service] = []
    seen = set()
    for raw in data.get("services") or []:
        service = parse_service(raw)
        if service.name in seen:
            raise ConfigurationError(f"service with name '{service.name}' already exists")
        seen.add(service.name)
        services.append(service)

    try:
        retry_attempts = int(data.get("retry_attempts") or DEFAULT_RETRY_ATTEMPTS)
    except (TypeError, ValueError):
        logger.warning(
            f"Invalid retry_attempts {data.get('retry_attempts')!r}, using {DEFAULT_RETRY_ATTEMPTS}"
        )
        retry_attempts = DEFAULT_RETRY_ATTEMPTS

    return MonitorConfig(
        check_interval=str(data.get("check_interval") or DEFAULT_CHECK_INTERVAL),
        timeout=str(data.get("timeout") or DEFAULT_TIMEOUT),
        retry_attempts=retry_attempts,
        services=tuple(services),
    )


def load_config(path: Union[str, Path]) -> MonitorConfig:
    """
    Load and validate the services file, applying env-var interpolation.

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML, or is invalid.
    """
    config_path = Path(path).expanduser()
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except FileNotFoundError as err:
        raise ConfigurationError(f"Config file not found: {config_path}") from err
    except yaml.YAMLError as err:
        raise ConfigurationError(f"Invalid YAML in config file {config_path}: {err}") from err

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    config = parse_config(_interpolate_recursive(raw))
    logger.info(f"Loaded {len(config.services)} services from {config_path}")
    return config


def apply_overrides(config: MonitorConfig, context: MonitoringContext) -> MonitorConfig:
    """Replaces file values with the ones given on the command line or in the environment."""
    overrides: Dict[str, Any] = {}
    if context.check_interval:
        overrides["check_interval"] = context.check_interval
    if context.timeout:
        overrides["timeout"] = context.timeout
    if context.retry_attempts is not None:
        overrides["retry_attempts"] = context.retry_attempts
    return config._replace(**overrides)
