import base64
from typing import Optional

import pytest

from services.gemini_service import SynthesizedSpeech
from services.history_service import HistoryService


class FakeGeminiService:
    """Stands in for GeminiService; records calls and returns canned answers."""

    def __init__(
        self,
        pcm: bytes = b"\x00\x00" * 2400,
        mime_type: str = "audio/L16;codec=pcm;rate=24000",
        error: Optional[Exception] = None,
    ):
        self.speech = SynthesizedSpeech(base64.b64encode(pcm).decode("ascii"), mime_type)
        self.error = error
        self.calls = []

    async def transcribe_audio(self, audio: bytes, mime_type: str) -> str:
        self.calls.append(("transcribe", audio, mime_type))
        if self.error:
            raise self.error
        return "hola mundo"

    async def improve_text_for_speech(self, text: str) -> str:
        self.calls.append(("improve", text))
        if self.error:
            raise self.error
        return text.strip().capitalize() + "."

    async def generate_speech_from_text(self, text: str, voice_id: Optional[str] = None) -> SynthesizedSpeech:
        self.calls.append(("tts", text, voice_id))
        if self.error:
            raise self.error
        return self.speech


@pytest.fixture
def fake_gemini():
    return FakeGeminiService()


@pytest.fixture
def history():
    return HistoryService(max_items=3)


@pytest.fixture
def make_fake_gemini():
    return FakeGeminiService
