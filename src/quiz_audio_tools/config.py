from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .content import DEFAULT_KEY_ROOT
from .errors import ConfigError

DEFAULT_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech"


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if not value:
        raise ConfigError(f"{name} is not set in the environment variables.")
    return value


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    elevenlabs_api_key: str
    aws_bucket: str
    pg_database: str
    elevenlabs_api_url: str = DEFAULT_TTS_URL
    aws_access_key: Optional[str] = None
    aws_secret_key: Optional[str] = None
    aws_region: Optional[str] = None
    pg_user: Optional[str] = None
    pg_password: Optional[str] = None
    pg_host: Optional[str] = None
    pg_port: int = 5432
    pg_pool_max: int = 10
    audio_key_root: str = DEFAULT_KEY_ROOT
    chunk_size: int = 2
    batch_delay: float = 10.0
    tts_timeout: float = 60.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read settings from the process environment (after load_dotenv)."""
        env = os.environ if env is None else env
        settings = cls(
            elevenlabs_api_key=_required(env, "ELEVENLABS_API_KEY"),
            aws_bucket=_required(env, "AWS_BUCKET"),
            pg_database=_required(env, "PG_DATABASE"),
            elevenlabs_api_url=env.get("ELEVENLABS_API_URL") or DEFAULT_TTS_URL,
            aws_access_key=env.get("AWS_ACCESS_KEY"),
            aws_secret_key=env.get("AWS_SECRET_KEY"),
            aws_region=env.get("AWS_REGION"),
            pg_user=env.get("PG_USER"),
            pg_password=env.get("PG_PASSWORD"),
            pg_host=env.get("PG_HOST"),
            pg_port=_number(env, "PG_PORT", 5432, int),
            pg_pool_max=_number(env, "PG_POOL_MAX", 10, int),
            audio_key_root=env.get("AUDIO_KEY_ROOT") or DEFAULT_KEY_ROOT,
            chunk_size=_number(env, "CHUNK_SIZE", 2, int),
            batch_delay=_number(env, "BATCH_DELAY", 10.0, float),
            tts_timeout=_number(env, "TTS_TIMEOUT", 60.0, float),
        )
        if settings.chunk_size < 1:
            raise ConfigError("CHUNK_SIZE must be at least 1")
        return settings
