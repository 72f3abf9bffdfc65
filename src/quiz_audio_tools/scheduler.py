from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, List, Sequence

from .content import ContentRecord

logger = logging.getLogger(__name__)

CHUNK_SIZE = 2
BATCH_DELAY = 10.0


def chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


class BatchScheduler:
    """Run records in fixed-size chunks, concurrently within a chunk, with a pause between chunks."""

    def __init__(
        self,
        process: Callable,
        chunk_size: int = CHUNK_SIZE,
        batch_delay: float = BATCH_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.process = process
        self.chunk_size = chunk_size
        self.batch_delay = batch_delay
        self.sleep = sleep

    def run(self, records: Sequence[ContentRecord]) -> List[ContentRecord]:
        results: List[ContentRecord] = []
        if not records:
            return results

        chunks = list(chunked(records, self.chunk_size))
        for number, chunk in enumerate(chunks, start=1):
            logger.info("Processing batch %d/%d (%d items)", number, len(chunks), len(chunk))
            with ThreadPoolExecutor(max_workers=len(chunk)) as executor:
                futures = [executor.submit(self.process, record, index) for index, record in enumerate(chunk)]
            # The pool has drained here; result() re-raises the first failure in record order.
            outcomes = [future.result() for future in futures]
            results.extend(outcome.record for outcome in outcomes if outcome is not None and outcome.committed)

            if number < len(chunks):
                logger.info("Waiting %ss before the next batch", self.batch_delay)
                self.sleep(self.batch_delay)

        logger.info("Processed %d of %d records", len(results), len(records))
        return results
