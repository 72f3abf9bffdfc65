import math
import threading
from unittest import mock

import pytest

from quiz_audio_tools.content import FLASHCARD_QUESTIONS, ContentRecord
from quiz_audio_tools.errors import SynthesisError
from quiz_audio_tools.processor import ItemOutcome, ItemProcessor, ProcessingState
from quiz_audio_tools.scheduler import BatchScheduler, chunked


def _records(n):
    return [ContentRecord(FLASHCARD_QUESTIONS, f"q{i}", "ENGLISH", f"Question {i}?") for i in range(n)]


def _commit_all(record, index):
    return ItemOutcome(ProcessingState.COMMITTED, record)


def test_chunked():
    assert [list(c) for c in chunked([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]


def test_empty_input_returns_immediately():
    sleep = mock.MagicMock()
    process = mock.MagicMock()
    assert BatchScheduler(process, sleep=sleep).run([]) == []
    process.assert_not_called()
    sleep.assert_not_called()


@pytest.mark.parametrize("n,chunk_size", [(1, 2), (4, 2), (5, 2), (7, 3)])
def test_batch_pacing(n, chunk_size):
    sleep = mock.MagicMock()
    results = BatchScheduler(_commit_all, chunk_size=chunk_size, batch_delay=10, sleep=sleep).run(_records(n))

    assert [r.record_id for r in results] == [f"q{i}" for i in range(n)]
    assert sleep.call_count == math.ceil(n / chunk_size) - 1
    for call in sleep.call_args_list:
        assert call == mock.call(10)


def test_index_restarts_in_each_chunk():
    seen = []
    lock = threading.Lock()

    def process(record, index):
        with lock:
            seen.append((record.record_id, index))
        return ItemOutcome(ProcessingState.COMMITTED, record)

    BatchScheduler(process, chunk_size=2, sleep=mock.MagicMock()).run(_records(3))
    assert sorted(seen) == [("q0", 0), ("q1", 1), ("q2", 0)]


def test_partial_batch_drops_rejected(fake_db, tts, storage):
    records = [
        ContentRecord(FLASHCARD_QUESTIONS, "ok", "ENGLISH", "What is the capital of France?"),
        ContentRecord(FLASHCARD_QUESTIONS, "blank", "ENGLISH", "  "),
    ]
    processor = ItemProcessor(FLASHCARD_QUESTIONS, fake_db, tts, storage, sleep=mock.MagicMock())

    results = BatchScheduler(processor, chunk_size=2, sleep=mock.MagicMock()).run(records)

    assert [r.record_id for r in results] == ["ok"]
    assert results[0].audio_ref == "audios-bewize/flashcards/questions/ok.mp3"
    assert storage.put.call_count == 1


def test_failure_aborts_remaining_chunks():
    calls = []

    def process(record, index):
        calls.append(record.record_id)
        if record.record_id == "q1":
            raise SynthesisError("Too many requests", status_code=429)
        return ItemOutcome(ProcessingState.COMMITTED, record)

    sleep = mock.MagicMock()
    with pytest.raises(SynthesisError) as excinfo:
        BatchScheduler(process, chunk_size=2, sleep=sleep).run(_records(5))

    assert excinfo.value.status_code == 429
    assert sorted(calls) == ["q0", "q1"]
    sleep.assert_not_called()


def test_chunk_settles_before_failure_is_raised():
    finished = []

    def process(record, index):
        if index == 0:
            raise SynthesisError("server error", status_code=500)
        finished.append(record.record_id)
        return ItemOutcome(ProcessingState.COMMITTED, record)

    with pytest.raises(SynthesisError):
        BatchScheduler(process, chunk_size=3, sleep=mock.MagicMock()).run(_records(3))
    assert sorted(finished) == ["q1", "q2"]
