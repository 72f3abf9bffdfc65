import pytest

from quiz_audio_tools.config import DEFAULT_TTS_URL, Settings
from quiz_audio_tools.errors import ConfigError

BASE_ENV = {"ELEVENLABS_API_KEY": "key", "AWS_BUCKET": "bucket", "PG_DATABASE": "bewize"}


def test_defaults():
    settings = Settings.from_env(BASE_ENV)
    assert settings.elevenlabs_api_url == DEFAULT_TTS_URL
    assert settings.chunk_size == 2
    assert settings.batch_delay == 10.0
    assert settings.tts_timeout == 60.0
    assert settings.pg_port == 5432
    assert settings.audio_key_root == "audios-bewize"


def test_overrides():
    env = dict(BASE_ENV, CHUNK_SIZE="5", BATCH_DELAY="0.5", PG_PORT="6543", AUDIO_KEY_ROOT="staging")
    settings = Settings.from_env(env)
    assert (settings.chunk_size, settings.batch_delay, settings.pg_port) == (5, 0.5, 6543)
    assert settings.audio_key_root == "staging"


@pytest.mark.parametrize("missing", sorted(BASE_ENV))
def test_required_variables(missing):
    env = {k: v for k, v in BASE_ENV.items() if k != missing}
    with pytest.raises(ConfigError, match=missing):
        Settings.from_env(env)


@pytest.mark.parametrize("env", [{"CHUNK_SIZE": "two"}, {"CHUNK_SIZE": "0"}])
def test_invalid_numbers(env):
    with pytest.raises(ConfigError):
        Settings.from_env(dict(BASE_ENV, **env))
