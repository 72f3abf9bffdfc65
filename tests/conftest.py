from contextlib import contextmanager
from unittest import mock

import pytest

from quiz_audio_tools.content import FLASHCARD_QUESTIONS, PROCESSING, ContentRecord


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = -1

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.conn.events.append(("execute", sql, params))
        self.rowcount = self.conn.db.apply(self.conn, sql, params)


class FakeConnection:
    """Connection whose writes only reach FakeDatabase.audio on commit."""

    def __init__(self, db):
        self.db = db
        self.events = []
        self.pending = {}
        self.autocommit = True

    def cursor(self, **kwargs):
        return FakeCursor(self)

    def commit(self):
        self.events.append("commit")
        self.db.audio.update(self.pending)
        self.pending = {}

    def rollback(self):
        self.events.append("rollback")
        self.pending = {}

    @property
    def executed(self):
        return [e[1] for e in self.events if isinstance(e, tuple)]


class FakeDatabase:
    """In-memory stand-in for the pool handle.

    ``failures`` maps "mark", "set", "reset" or "other" to a row count or an exception
    returned/raised for that kind of UPDATE.
    """

    def __init__(self, rows=None, failures=None):
        self.rows = rows if rows is not None else []
        self.failures = failures or {}
        self.audio = {}
        self.connections = []
        self.released = 0
        self.queries = []

    @contextmanager
    def connection(self):
        conn = FakeConnection(self)
        self.connections.append(conn)
        try:
            conn.autocommit = False
            yield conn
        finally:
            self.released += 1

    def fetch_all(self, sql, params=None):
        self.queries.append((sql, params))
        if isinstance(self.rows, Exception):
            raise self.rows
        if callable(self.rows):
            return self.rows(sql, params)
        return list(self.rows)

    def apply(self, conn, sql, params):
        if f"'{PROCESSING}'" in sql:
            op, record_id, value = "mark", params[0], PROCESSING
        elif "= NULL WHERE id = %s" in sql:
            op, record_id, value = "reset", params[0], None
        elif "= %s WHERE id = %s" in sql:
            op, record_id, value = "set", params[1], params[0]
        else:
            op, record_id, value = "other", None, None
        outcome = self.failures.get(op, 1)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome == 1 and op != "other":
            conn.pending[record_id] = value
        return outcome

    def close(self):
        pass


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def storage():
    client = mock.MagicMock()
    client.put.side_effect = lambda key, data, content_type: f"https://bucket.s3.amazonaws.com/{key}"
    client.delete.return_value = True
    return client


@pytest.fixture
def tts():
    engine = mock.MagicMock()
    engine.text_to_audio.return_value = b"ID3fake-mp3-bytes"
    return engine


@pytest.fixture
def question():
    return ContentRecord(
        kind=FLASHCARD_QUESTIONS,
        record_id="c7c04ac8-d86e-4041-927b-191dc5850a2e",
        language="ENGLISH",
        text="What is the capital of France?",
    )
