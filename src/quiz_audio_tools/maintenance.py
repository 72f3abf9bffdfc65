"""Bulk clean-up helpers for narration columns and the stories document."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .content import PROCESSING
from .db import execute
from .storage import extract_key

logger = logging.getLogger(__name__)

# (table, column, counter name) for every narration column
AUDIO_COLUMNS = (
    ("question", "question_audio", "questions"),
    ("question", "feedback_audio", "feedbacks"),
    ("answer", "answer_audio", "answers"),
)

STORIES_KEY = "stories.json"

_COUNT_AUDIO = """
    SELECT
      (SELECT COUNT(*) FROM question WHERE question_audio IS NOT NULL) AS questions,
      (SELECT COUNT(*) FROM question WHERE feedback_audio IS NOT NULL) AS feedbacks,
      (SELECT COUNT(*) FROM answer WHERE answer_audio IS NOT NULL) AS answers"""

_QUIZ_QUESTIONS_FROM = """
    FROM question q
    JOIN quiz qui ON q.quiz_id = qui.id
    JOIN course c ON qui.course_id = c.id
    JOIN subject s ON c.subject_id = s.id
    JOIN level l ON l.id = c.level_id
    WHERE l.level_name = %s
    AND qui.type = 'QUIZ'"""


@dataclass
class ClearReport:
    cancelled: bool = False
    initial: Dict[str, int] = field(default_factory=dict)
    remaining: Dict[str, int] = field(default_factory=dict)
    deleted_from_storage: int = 0
    failed_deletes: List[str] = field(default_factory=list)
    cleared: int = 0


def _counts(row) -> Dict[str, int]:
    return {name: int(row[name]) for _, _, name in AUDIO_COLUMNS}


def _audio_urls(database) -> List[str]:
    urls: List[str] = []
    for table, column, _ in AUDIO_COLUMNS:
        rows = database.fetch_all(f"SELECT {column} AS url FROM {table} WHERE {column} IS NOT NULL")
        urls.extend(row["url"] for row in rows if row["url"])
    return urls


def clear_audio(database, storage, confirm: Callable[[str], bool]) -> ClearReport:
    """Delete every narration object from storage and null all audio columns."""
    initial = _counts(database.fetch_all(_COUNT_AUDIO)[0])
    if sum(initial.values()) == 0:
        logger.info("No audio files to delete")
        return ClearReport(initial=initial, remaining=initial)

    urls = _audio_urls(database)
    summary = ", ".join(f"{name}: {count}" for name, count in initial.items())
    if not confirm(f"Delete these audio files ({summary}, {len(urls)} objects) from the database and S3?"):
        logger.info("Clear audio cancelled")
        return ClearReport(cancelled=True, initial=initial)

    report = ClearReport(initial=initial)
    with database.connection() as conn:
        try:
            for url in urls:
                if url == PROCESSING:
                    continue
                key = extract_key(url)
                try:
                    storage.delete(key)
                    report.deleted_from_storage += 1
                except Exception as exc:  # noqa: BLE001
                    logger.error("Could not delete %s: %s", url, exc)
                    report.failed_deletes.append(url)
            for table, column, name in AUDIO_COLUMNS:
                if initial[name] > 0:
                    execute(conn, f"UPDATE {table} SET {column} = NULL WHERE {column} IS NOT NULL")
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    report.remaining = _counts(database.fetch_all(_COUNT_AUDIO)[0])
    logger.info("Deleted %d/%d objects from S3", report.deleted_from_storage, len(urls))
    return report


def _level_filter(level: str, subject: Optional[str]) -> Tuple[str, list]:
    sql = _QUIZ_QUESTIONS_FROM
    params: list = [level]
    if subject:
        sql += "\n    AND s.title = %s"
        params.append(subject)
    return sql, params


def clear_quiz_questions(database, level: str, subject: Optional[str], confirm: Callable[[str], bool]) -> ClearReport:
    """Null the question_audio of quiz questions in a level (and optionally a subject)."""
    where, params = _level_filter(level, subject)
    rows = database.fetch_all(f"SELECT COUNT(*) AS count{where}\n    AND q.question_audio IS NOT NULL", params)
    count = int(rows[0]["count"])
    if count == 0:
        logger.info("No quiz question with audio found")
        return ClearReport()

    if not confirm(f"Remove the audio references of {count} quiz questions?"):
        logger.info("Clear quiz questions cancelled")
        return ClearReport(cancelled=True)

    with database.connection() as conn:
        try:
            cleared = execute(
                conn,
                f"UPDATE question SET question_audio = NULL WHERE id IN (SELECT q.id{where}) RETURNING id",
                params,
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
    logger.info("Cleared %d quiz questions", cleared)
    return ClearReport(cleared=cleared)


def update_stories(storage, path: Path) -> str:
    """Upload the local stories document, replacing the published one."""
    data = Path(path).read_bytes()
    url = storage.put(STORIES_KEY, data, "application/json")
    logger.info("Stories updated from %s", path)
    return url


def find_pending_markers(database) -> Dict[str, int]:
    """Count audio columns still holding the PROCESSING marker; any non-zero value is an anomaly."""
    found: Dict[str, int] = {}
    for table, column, name in AUDIO_COLUMNS:
        rows = database.fetch_all(f"SELECT COUNT(*) AS count FROM {table} WHERE {column} = %s", [PROCESSING])
        found[name] = int(rows[0]["count"])
    if any(found.values()):
        logger.warning("Records left in %s state: %s", PROCESSING, found)
    return found
