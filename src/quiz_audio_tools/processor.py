"""Per-record narration: validate, synthesize, mark, upload, persist.

A record either ends with its audio column pointing at an uploaded object, or
with the column back in its original empty state. The ``PROCESSING`` marker is
written inside the record's transaction and never outlives it.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional

from .content import AUDIO_CONTENT_TYPE, DEFAULT_KEY_ROOT, ContentKind, ContentRecord
from .db import execute
from .errors import EmptyAudioError, InitialUpdateError, PersistenceError, PipelineError, UploadError
from .sanitize import is_blank, sanitize
from .voices import resolve_tts_params

logger = logging.getLogger(__name__)

STAGGER_SECONDS = 0.1


class ProcessingState(str, Enum):
    START = "start"
    VALIDATING = "validating"
    SYNTHESIZING = "synthesizing"
    MARKING = "marking"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    COMMITTED = "committed"
    REJECTED = "rejected"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ItemOutcome:
    state: ProcessingState
    record: ContentRecord

    @property
    def committed(self) -> bool:
        return self.state is ProcessingState.COMMITTED


class _Transaction:
    def __init__(self, conn):
        self.conn = conn
        self.open = True

    def commit(self):
        self.conn.commit()
        self.open = False

    def rollback(self):
        if self.open:
            self.open = False
            self.conn.rollback()


def _rollback_quietly(conn) -> None:
    try:
        conn.rollback()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Rollback after failed reset also failed: %s", exc)


class ItemProcessor:
    def __init__(
        self,
        kind: ContentKind,
        database,
        tts,
        storage,
        *,
        key_root: str = DEFAULT_KEY_ROOT,
        sleep: Callable[[float], None] = time.sleep,
        stagger: float = STAGGER_SECONDS,
    ):
        self.kind = kind
        self.database = database
        self.tts = tts
        self.storage = storage
        self.key_root = key_root
        self.sleep = sleep
        self.stagger = stagger

    def __call__(self, record: ContentRecord, index: int = 0) -> ItemOutcome:
        return self.process(record, index)

    def process(self, record: ContentRecord, index: int = 0) -> ItemOutcome:
        """Run one record through the pipeline.

        Returns a COMMITTED or REJECTED outcome; any abort is raised with
        ``stage`` set to the state the record was in.
        """
        rid = record.record_id
        state = ProcessingState.START
        with self.database.connection() as conn:
            tx = _Transaction(conn)
            logger.info("Begin transaction for %s %s", self.kind.name, rid)
            try:
                state = ProcessingState.VALIDATING
                text = self._validate(record)
                if text is None:
                    tx.rollback()
                    return ItemOutcome(ProcessingState.REJECTED, record)

                self.sleep(index * self.stagger)

                state = ProcessingState.SYNTHESIZING
                params = resolve_tts_params(record.language, text)
                logger.info("Synthesizing %s: %s", rid, text)
                audio = self.tts.text_to_audio(params, record_id=rid)
                if not audio:
                    raise EmptyAudioError("No audio data received from ElevenLabs", record_id=rid)

                state = ProcessingState.MARKING
                if execute(conn, self.kind.mark_processing_sql(), [rid]) != 1:
                    raise InitialUpdateError(f"Initial SQL update failed for ID: {rid}", record_id=rid)

                state = ProcessingState.UPLOADING
                key = self.kind.storage_key(rid, self.key_root)
                self._upload(tx, rid, key, audio)

                state = ProcessingState.PERSISTING
                self._persist(tx, rid, key)
            except Exception as exc:
                tx.rollback()
                if isinstance(exc, PipelineError):
                    if exc.stage is None:
                        exc.stage = state
                    if exc.record_id is None:
                        exc.record_id = rid
                logger.error("Aborted %s %s while %s: %s", self.kind.name, rid, state.value, exc)
                raise

        logger.info("Committed %s for %s", key, rid)
        return ItemOutcome(ProcessingState.COMMITTED, replace(record, audio_ref=key))

    def _validate(self, record: ContentRecord) -> Optional[str]:
        if is_blank(record.text):
            logger.warning("Empty %s text for ID %s, skipped", self.kind.text_column, record.record_id)
            return None
        text = sanitize(record.text)
        if not text:
            logger.warning("Invalid %s text for ID %s, skipped", self.kind.text_column, record.record_id)
            return None
        return text

    def _upload(self, tx: _Transaction, rid: str, key: str, audio: bytes) -> None:
        try:
            self.storage.put(key, audio, AUDIO_CONTENT_TYPE)
        except Exception as exc:
            logger.error("Upload failed for %s: %s", rid, exc)
            tx.rollback()
            raise UploadError(f"S3 upload failed for {rid}", record_id=rid) from exc

    def _persist(self, tx: _Transaction, rid: str, key: str) -> None:
        cause = None
        try:
            if execute(tx.conn, self.kind.set_audio_sql(), [key, rid]) == 1:
                tx.commit()
                return
        except Exception as exc:  # noqa: BLE001
            cause = exc
        logger.error("Final update failed for %s: %s", rid, cause or "no row updated")
        tx.rollback()
        self._compensate(tx.conn, rid, key)
        raise PersistenceError(f"Final SQL update failed for ID: {rid}", record_id=rid) from cause

    def _compensate(self, conn, rid: str, key: str) -> None:
        # The main transaction is already rolled back; this reset commits on its own.
        try:
            execute(conn, self.kind.reset_audio_sql(), [rid])
            conn.commit()
            logger.info("%s reset to NULL for %s", self.kind.audio_column, rid)
        except Exception as exc:  # noqa: BLE001
            logger.error("Could not reset %s for %s: %s", self.kind.audio_column, rid, exc)
            _rollback_quietly(conn)

        try:
            self.storage.delete(key)
            logger.info("Deleted orphaned object %s", key)
        except Exception as exc:  # noqa: BLE001
            logger.error("Could not delete orphaned object %s: %s", key, exc)
