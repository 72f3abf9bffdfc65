"""Content kinds that carry a narration column, and the records read from them."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

PROCESSING = "PROCESSING"
AUDIO_CONTENT_TYPE = "audio/mpeg"
DEFAULT_KEY_ROOT = "audios-bewize"

_FROM_QUESTIONS = """
    FROM subject s
    JOIN course c ON s.id = c.subject_id
    JOIN level l ON l.id = c.level_id
    JOIN quiz qui ON c.id = qui.course_id
    JOIN question que ON qui.id = que.quiz_id"""

_FROM_ANSWERS = (
    _FROM_QUESTIONS
    + """
    JOIN sub_question sub_q ON que.id = sub_q.question_id
    JOIN answer ans ON sub_q.id = ans.sub_question_id"""
)


class AudioState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    READY = "ready"


def audio_state(value: Optional[str]) -> AudioState:
    if value is None or not value.strip():
        return AudioState.IDLE
    if value == PROCESSING:
        return AudioState.PENDING
    return AudioState.READY


@dataclass(frozen=True)
class ContentKind:
    name: str
    table: str
    alias: str
    text_column: str
    audio_column: str
    id_field: str
    quiz_type: str
    key_prefix: str
    from_clause: str

    def storage_key(self, record_id: str, root: str = DEFAULT_KEY_ROOT) -> str:
        return f"{root}/{self.key_prefix}/{record_id}.mp3"

    def select_pending(self, level: str, subject: Optional[str] = None) -> Tuple[str, List[Any]]:
        """Build the query listing records of this kind without audio."""
        a = self.alias
        sql = f"""
    SELECT {a}.id AS record_id, s.title AS language, {a}.{self.text_column} AS text,
           {a}.{self.audio_column} AS audio_ref{self.from_clause}
    WHERE l.level_name = %s
    AND qui.type = %s
    AND ({a}.{self.audio_column} IS NULL OR TRIM({a}.{self.audio_column}) = '')"""
        params: List[Any] = [level, self.quiz_type]
        if subject:
            sql += "\n    AND s.title = %s"
            params.append(subject)
        return sql, params

    def mark_processing_sql(self) -> str:
        return f"UPDATE {self.table} SET {self.audio_column} = '{PROCESSING}' WHERE id = %s RETURNING id"

    def set_audio_sql(self) -> str:
        return f"UPDATE {self.table} SET {self.audio_column} = %s WHERE id = %s RETURNING id"

    def reset_audio_sql(self) -> str:
        return f"UPDATE {self.table} SET {self.audio_column} = NULL WHERE id = %s"


FLASHCARD_QUESTIONS = ContentKind(
    name="flashcards/questions",
    table="question",
    alias="que",
    text_column="question",
    audio_column="question_audio",
    id_field="questionid",
    quiz_type="FLASHCARD",
    key_prefix="flashcards/questions",
    from_clause=_FROM_QUESTIONS,
)
FLASHCARD_ANSWERS = ContentKind(
    name="flashcards/responses",
    table="answer",
    alias="ans",
    text_column="answer",
    audio_column="answer_audio",
    id_field="answerid",
    quiz_type="FLASHCARD",
    key_prefix="flashcards/answers",
    from_clause=_FROM_ANSWERS,
)
QUIZ_FEEDBACKS = ContentKind(
    name="quizzes/feedbacks",
    table="question",
    alias="que",
    text_column="feedback",
    audio_column="feedback_audio",
    id_field="questionid",
    quiz_type="QUIZ",
    key_prefix="quizzes/feedbacks",
    from_clause=_FROM_QUESTIONS,
)
QUIZ_QUESTIONS = ContentKind(
    name="quizzes/questions",
    table="question",
    alias="que",
    text_column="question",
    audio_column="question_audio",
    id_field="questionid",
    quiz_type="QUIZ",
    key_prefix="quizzes/questions",
    from_clause=_FROM_QUESTIONS,
)

CONTENT_KINDS = (FLASHCARD_QUESTIONS, FLASHCARD_ANSWERS, QUIZ_FEEDBACKS, QUIZ_QUESTIONS)


@dataclass
class ContentRecord:
    kind: ContentKind
    record_id: str
    language: Optional[str]
    text: Optional[str]
    audio_ref: Optional[str] = None

    @classmethod
    def from_row(cls, kind: ContentKind, row: Mapping[str, Any]) -> "ContentRecord":
        return cls(
            kind=kind,
            record_id=str(row["record_id"]),
            language=row.get("language"),
            text=row.get("text"),
            audio_ref=row.get("audio_ref"),
        )

    @property
    def state(self) -> AudioState:
        return audio_state(self.audio_ref)

    def to_dict(self) -> Dict[str, Any]:
        return {
            self.kind.id_field: self.record_id,
            "language": self.language,
            self.kind.text_column: self.text,
            self.kind.audio_column: self.audio_ref,
        }
