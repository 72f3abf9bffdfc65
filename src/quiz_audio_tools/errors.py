from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for errors raised while generating narration audio."""

    def __init__(self, message: str, *, record_id: Optional[str] = None, stage=None):
        super().__init__(message)
        self.record_id = record_id
        self.stage = stage


class ConfigError(PipelineError):
    pass


class SynthesisError(PipelineError):
    """The text-to-speech API answered with an error status or could not be reached."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class SynthesisCancelled(SynthesisError):
    """The synthesis request was aborted after its timeout."""


class EmptyAudioError(SynthesisError):
    pass


class StorageError(PipelineError):
    pass


class InitialUpdateError(PipelineError):
    pass


class UploadError(PipelineError):
    pass


class PersistenceError(PipelineError):
    pass


class DatabaseConnectionError(PipelineError):
    pass
