from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

from .content import (
    CONTENT_KINDS,
    FLASHCARD_ANSWERS,
    FLASHCARD_QUESTIONS,
    QUIZ_FEEDBACKS,
    QUIZ_QUESTIONS,
    ContentKind,
    ContentRecord,
)
from .db import is_connection_failure
from .errors import DatabaseConnectionError
from .scheduler import BATCH_DELAY, CHUNK_SIZE, BatchScheduler

logger = logging.getLogger(__name__)


class PipelineRunner:
    """Select the records of a content kind that lack audio and narrate them."""

    def __init__(
        self,
        database,
        processor_factory: Callable[[ContentKind], Callable],
        *,
        chunk_size: int = CHUNK_SIZE,
        batch_delay: float = BATCH_DELAY,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.database = database
        self.processor_factory = processor_factory
        self.chunk_size = chunk_size
        self.batch_delay = batch_delay
        self.sleep = sleep

    def _scheduler(self, kind: ContentKind) -> BatchScheduler:
        kwargs = {"chunk_size": self.chunk_size, "batch_delay": self.batch_delay}
        if self.sleep is not None:
            kwargs["sleep"] = self.sleep
        return BatchScheduler(self.processor_factory(kind), **kwargs)

    def run(self, kind: ContentKind, level: str, subject: Optional[str] = None) -> List[ContentRecord]:
        logger.info("Running %s for level %s%s", kind.name, level, f" and subject {subject}" if subject else "")
        sql, params = kind.select_pending(level, subject)
        try:
            rows = self.database.fetch_all(sql, params)
        except Exception as exc:
            if is_connection_failure(exc):
                logger.error("Database connection failed: %s", exc)
                raise DatabaseConnectionError("Database connection failed") from exc
            logger.error("%s query failed: %s", kind.name, exc)
            raise

        records = [ContentRecord.from_row(kind, row) for row in rows]
        if not records:
            logger.info("No %s without audio for these criteria", kind.name)
            return []
        logger.info("Found %d %s without audio", len(records), kind.name)
        # Record-level errors propagate unchanged.
        results = self._scheduler(kind).run(records)
        logger.info("%s done: %d records narrated", kind.name, len(results))
        return results

    def flashcards_questions(self, level: str, subject: Optional[str] = None) -> List[ContentRecord]:
        return self.run(FLASHCARD_QUESTIONS, level, subject)

    def flashcards_responses(self, level: str, subject: Optional[str] = None) -> List[ContentRecord]:
        return self.run(FLASHCARD_ANSWERS, level, subject)

    def quizzes_feedbacks(self, level: str, subject: Optional[str] = None) -> List[ContentRecord]:
        return self.run(QUIZ_FEEDBACKS, level, subject)

    def quizzes_questions(self, level: str, subject: Optional[str] = None) -> List[ContentRecord]:
        return self.run(QUIZ_QUESTIONS, level, subject)

    def run_all(self, level: str, subject: Optional[str] = None) -> Dict[str, List[ContentRecord]]:
        """Run every content kind concurrently; the first failure (in kind order) is raised."""
        with ThreadPoolExecutor(max_workers=len(CONTENT_KINDS)) as executor:
            futures = {kind.name: executor.submit(self.run, kind, level, subject) for kind in CONTENT_KINDS}
        return {name: future.result() for name, future in futures.items()}
