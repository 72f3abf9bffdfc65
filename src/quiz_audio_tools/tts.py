import logging

import requests

from .config import DEFAULT_TTS_URL
from .errors import EmptyAudioError, SynthesisCancelled, SynthesisError

logger = logging.getLogger(__name__)

TTS_TIMEOUT = 60.0

_STATUS_MESSAGES = {
    401: "Unauthorized: check ELEVENLABS_API_KEY",
    404: "Not found: invalid voice or endpoint",
    429: "Too many requests: rate limit exceeded",
    500: "Internal server error on the text-to-speech side",
}


class ElevenLabsEngine(object):
    """Blocking client for the ElevenLabs text-to-speech endpoint."""

    def __init__(self, api_key, base_url=DEFAULT_TTS_URL, timeout=TTS_TIMEOUT, session=None):
        if not api_key:
            raise ValueError("ElevenLabs API key is missing")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def text_to_audio(self, params, record_id=None):
        """POST the synthesis parameters and return the mp3 bytes.

        No retries: HTTP errors, timeouts and empty payloads are raised to the caller.
        """
        url = f"{self.base_url}/{params.voice_id}"
        headers = {
            "xi-api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }
        try:
            response = self.session.post(url, headers=headers, json=params.payload(), timeout=self.timeout)
        except requests.Timeout as exc:
            logger.error("Synthesis request for %s was cancelled after %ss", record_id, self.timeout)
            raise SynthesisCancelled(
                f"Synthesis request cancelled after {self.timeout}s", record_id=record_id
            ) from exc
        except requests.RequestException as exc:
            logger.error("Synthesis request for %s failed: %s", record_id, exc)
            raise SynthesisError(f"Text-to-speech request failed: {exc}", record_id=record_id) from exc

        if response.status_code >= 400:
            reason = _STATUS_MESSAGES.get(response.status_code, "text-to-speech request failed")
            logger.error("%s (HTTP %s) for %s", reason, response.status_code, record_id)
            raise SynthesisError(
                f"{reason} (HTTP {response.status_code})",
                status_code=response.status_code,
                record_id=record_id,
            )

        audio = response.content
        if not audio:
            raise EmptyAudioError("No audio data received from ElevenLabs", record_id=record_id)
        logger.info("Received %d bytes of audio for %s", len(audio), record_id)
        return audio
