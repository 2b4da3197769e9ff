"""
Result processor keeping the latest result of every service.
"""

import logging
from typing import Dict, Optional

from health_scout.contracts import ResultProcessor
from health_scout.domain import CheckResult, Status

# Module logger
logger = logging.getLogger(__name__)


class StatusBoardProcessor(ResultProcessor):
    """
    Keeps the most recent result per service, the way a dashboard would show it.

    Nothing older than the latest result is retained. On flush, a summary of
    the board is logged.
    """

    def __init__(self) -> None:
        self._latest: Dict[str, CheckResult] = {}

    async def process(self, result: CheckResult) -> None:
        self._latest[result.service_name] = result

    def latest(self, service_name: str) -> Optional[CheckResult]:
        return self._latest.get(service_name)

    def counts(self) -> Dict[Status, int]:
        """Number of services currently in each status."""
        counts = {status: 0 for status in Status}
        for result in self._latest.values():
            counts[result.status] += 1
        return counts

    async def flush(self) -> None:
        if not self._latest:
            return
        counts = self.counts()
        logger.info(
            f"Final status of {len(self._latest)} services: "
            + ", ".join(f"{counts[status]} {status.value}" for status in Status)
        )
