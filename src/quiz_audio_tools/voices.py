from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

DEFAULT_MODEL_ID = "eleven_multilingual_v2"


class Subject(str, Enum):
    ENGLISH = "ENGLISH"
    ARABE = "ARABE"
    FRENSH = "FRENSH"
    MATH = "MATH"


_VOICE_IDS = {
    Subject.ENGLISH: "9BWtsMINqrJLrRacOk9x",
    Subject.ARABE: "tavIIPLplRB883FzWU0V",
    Subject.FRENSH: "pFZP5JQG7iQjIQuC4Bku",
    Subject.MATH: "pFZP5JQG7iQjIQuC4Bku",
}
DEFAULT_VOICE_ID = _VOICE_IDS[Subject.FRENSH]


def _default_voice_settings() -> Dict[str, float]:
    return {"stability": 0.5, "similarity_boost": 0.75, "speed": 1.0}


@dataclass(frozen=True)
class SynthesisParams:
    text: str
    voice_id: str
    model_id: str = DEFAULT_MODEL_ID
    voice_settings: Dict[str, float] = field(default_factory=_default_voice_settings)

    def payload(self) -> Dict[str, Any]:
        """JSON body expected by the text-to-speech endpoint."""
        return {
            "text": self.text,
            "model_id": self.model_id,
            "voice_settings": dict(self.voice_settings),
        }


def voice_for(language: Optional[str]) -> str:
    if language is None:
        return DEFAULT_VOICE_ID
    try:
        subject = Subject(str(language).strip().upper())
    except ValueError:
        return DEFAULT_VOICE_ID
    return _VOICE_IDS[subject]


def resolve_tts_params(language: Optional[str], text: str) -> SynthesisParams:
    """Map a subject language and text to synthesis parameters.

    Unknown languages use the French voice.
    """
    return SynthesisParams(text=text, voice_id=voice_for(language))
