"""
Delegating result processor implementation.

This module provides a composite implementation of the ResultProcessor interface
that delegates processing to multiple child processors concurrently. It ensures
that failures in one processor don't affect the others.
"""

import asyncio
import logging
from typing import List

from health_scout.contracts import ResultProcessor
from health_scout.domain import CheckResult

# Module logger
logger = logging.getLogger(__name__)


class DelegatingResultProcessor(ResultProcessor):
    """
    A concrete implementation of ResultProcessor that follows the Composite pattern.

    This class holds a list of other ResultProcessor instances and delegates the
    'process' and 'flush' calls to each of them concurrently. If one processor
    fails, the others are still executed.
    """

    def __init__(self, processors: List[ResultProcessor]) -> None:
        """
        Initializes the delegator with a list of processors to delegate to.

        Args:
            processors: A list of objects that adhere to the ResultProcessor interface.
                These will be called concurrently when processing a result.
        """
        self._processors: List[ResultProcessor] = processors

    async def _process_with_one(self, processor: ResultProcessor, result: CheckResult) -> None:
        """
        A helper method to safely run a single processor.

        All exceptions are caught and logged, but not propagated.
        """
        try:
            await processor.process(result)
        except Exception as e:
            logger.exception(
                f"Processor '{type(processor).__name__}' failed for service {result.service_name} with error: {e}",
            )

    async def _flush_one(self, processor: ResultProcessor) -> None:
        try:
            await processor.flush()
        except Exception as e:
            logger.exception(f"Processor '{type(processor).__name__}' failed to flush: {e}")

    async def process(self, result: CheckResult) -> None:
        """
        Processes a single CheckResult by delegating to all child processors.

        If there are no processors configured, it returns immediately.

        Args:
            result: The check result to be processed by all child processors.
        """
        if not self._processors:
            return

        # Create a task for each processor to run concurrently
        tasks = [self._process_with_one(processor, result) for processor in self._processors]

        # Wait for all processors to complete
        await asyncio.gather(*tasks)

    async def flush(self) -> None:
        await asyncio.gather(*(self._flush_one(processor) for processor in self._processors))
