from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime, timezone
import uuid


def _utcnow() -> datetime:
    """Timezone-aware UTC datetime (replaces deprecated datetime.utcnow)."""
    return datetime.now(timezone.utc)


class Voice(BaseModel):
    id: str     # Gemini prebuilt voice name, e.g. "Kore"
    name: str   # Display name shown in the UI
    gender: Literal["Female", "Male"]


VOICES: List[Voice] = [
    Voice(id="Kore", name="Elena (Natural)", gender="Female"),
    Voice(id="Zephyr", name="Sofia (Calmada)", gender="Female"),
]


def find_voice(voice_id: str) -> Optional[Voice]:
    return next((v for v in VOICES if v.id == voice_id), None)


class HistoryItem(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    text: str
    voice_id: str
    voice_name: str
    duration_seconds: float = 0.0
    duration_label: str = "00:00"
    size_bytes: int = 0
    digest: str = ""
    created_at: datetime = Field(default_factory=_utcnow)


# ── HTTP request/response models ──────────────────────────────────────────────

class TranscriptionRequest(BaseModel):
    audio: str           # base64, optionally with a data: URI prefix
    mime_type: str = "audio/webm"

    @field_validator("mime_type")
    @classmethod
    def check_mime_type(cls, value: str) -> str:
        value = value.strip().lower()
        if not value.startswith(("audio/", "video/")):
            raise ValueError("mime_type must be an audio/* or video/* type")
        return value


class TranscriptionResponse(BaseModel):
    text: str


class ImproveTextRequest(BaseModel):
    text: str


class ImproveTextResponse(BaseModel):
    text: str


class SpeechRequest(BaseModel):
    text: str
    voice_id: Optional[str] = None  # falls back to settings.default_voice
