"""
Result processor writing every check result to the log.
"""

import logging

from health_scout.contracts import ResultProcessor
from health_scout.domain import CheckResult, Status

# Module logger
logger = logging.getLogger(__name__)


def format_result(result: CheckResult) -> str:
    """
    Renders a result as a single log line.

    Args:
        result: The result to render.

    Returns:
        str: e.g. "api: healthy (HTTP 200) in 42ms".
    """
    line = f"{result.service_name}: {result.status.value}"
    if result.message:
        line += f" ({result.message})"
    if result.status is not Status.CHECKING:
        line += f" in {result.response_time.total_seconds() * 1000:.0f}ms"
    if result.error is not None:
        line += f" - {result.error}"
    return line


class LoggingResultProcessor(ResultProcessor):
    """
    Logs every terminal result; interim "checking" results are logged at debug level.

    Unhealthy and unknown results are logged as warnings.
    """

    async def process(self, result: CheckResult) -> None:
        if result.status is Status.CHECKING:
            logger.debug(format_result(result))
        elif result.status is Status.HEALTHY:
            logger.info(format_result(result))
        else:
            logger.warning(format_result(result))

    async def flush(self) -> None:
        pass
