"""
Gemini API calls: transcription, text polishing for speech, and TTS.

All calls go through client.aio so the event loop is never blocked.
Each upstream call is retried settings.gemini_max_retries times; the last
failure is wrapped in a service-level error for the router to translate.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from google import genai
from google.genai import types

from config import settings
from utils.audio import pcm_to_base64

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSCRIPTION_PROMPT = """Please transcribe the following audio.
- If it is speech, transcribe it verbatim.
- If there are multiple speakers, try to label them (Speaker 1, Speaker 2).
- Output ONLY the transcription text, no preamble or markdown formatting like 'Here is the transcription:'."""

IMPROVE_PROMPT = """Actúa como un editor experto en guiones de locución. Mejora el siguiente texto para que suene natural, fluido y profesional al ser leído por una IA de texto a voz.

Instrucciones:
1. Corrige gramática y puntuación (crucial para las pausas de la IA).
2. Mejora el flujo de las oraciones sin cambiar el significado original.
3. Elimina repeticiones innecesarias.
4. Mantén el mismo idioma del texto original.
5. Devuelve SOLO el texto mejorado, sin introducciones ni explicaciones.

Texto original:
"{text}\""""

NO_TRANSCRIPTION = "No transcription generated."


class GeminiServiceError(Exception):
    """Base class for upstream Gemini failures."""


class GeminiNotConfiguredError(GeminiServiceError):
    pass


class TranscriptionError(GeminiServiceError):
    pass


class TextImprovementError(GeminiServiceError):
    pass


class SpeechGenerationError(GeminiServiceError):
    pass


@dataclass(frozen=True)
class SynthesizedSpeech:
    """Audio part of a TTS response: base64 data plus the MIME type it was labelled with."""

    audio_b64: str
    mime_type: str = ""


class GeminiService:
    """Thin async wrapper around google-genai for the three audio features."""

    def __init__(self, client: Optional[Any] = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not settings.gemini_api_key:
                raise GeminiNotConfiguredError("GEMINI_API_KEY not set")
            self._client = genai.Client(api_key=settings.gemini_api_key)
        return self._client

    async def _with_retries(
        self,
        label: str,
        call: Callable[[], Awaitable[T]],
        error_cls: type,
    ) -> T:
        max_retries = max(1, settings.gemini_max_retries)
        last_exc: Optional[Exception] = None
        for attempt in range(max_retries):
            try:
                return await call()
            except GeminiServiceError:
                raise
            except Exception as exc:
                last_exc = exc
                logger.warning("[%s] Attempt %d/%d failed: %s", label, attempt + 1, max_retries, exc)
                if attempt < max_retries - 1:
                    await asyncio.sleep(settings.gemini_retry_delay_seconds)
        raise error_cls(f"{label} failed after {max_retries} attempts") from last_exc

    async def transcribe_audio(self, audio: bytes, mime_type: str) -> str:
        """Transcribe encoded audio verbatim. mime_type is the container, e.g. audio/webm."""
        client = self.client

        async def call() -> str:
            response = await client.aio.models.generate_content(
                model=settings.transcription_model,
                contents=types.Content(
                    role="user",
                    parts=[
                        types.Part(inline_data=types.Blob(mime_type=mime_type, data=audio)),
                        types.Part(text=TRANSCRIPTION_PROMPT),
                    ],
                ),
            )
            return (response.text or "").strip() or NO_TRANSCRIPTION

        return await self._with_retries("transcribe", call, TranscriptionError)

    async def improve_text_for_speech(self, text: str) -> str:
        client = self.client

        async def call() -> str:
            response = await client.aio.models.generate_content(
                model=settings.text_model,
                contents=IMPROVE_PROMPT.format(text=text),
            )
            return (response.text or "").strip() or text

        return await self._with_retries("improve", call, TextImprovementError)

    async def generate_speech_from_text(self, text: str, voice_id: Optional[str] = None) -> SynthesizedSpeech:
        """
        Synthesize speech. The audio is usually raw PCM (audio/L16;codec=pcm;rate=24000),
        sometimes an already wrapped WAV; the MIME type tells which.
        Raises SpeechGenerationError if the model returns no audio part.
        """
        client = self.client
        voice = voice_id or settings.default_voice

        async def call() -> SynthesizedSpeech:
            response = await client.aio.models.generate_content(
                model=settings.tts_model,
                contents=text,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(
                                voice_name=voice,
                            )
                        )
                    ),
                ),
            )
            return _extract_audio(response)

        return await self._with_retries("tts", call, SpeechGenerationError)


def _extract_audio(response: Any) -> SynthesizedSpeech:
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            idata = getattr(part, "inline_data", None)
            if not idata or not idata.data:
                continue
            mime_type = getattr(idata, "mime_type", "") or ""
            # SDK returns bytes; older versions hand back the base64 string
            if isinstance(idata.data, bytes):
                return SynthesizedSpeech(pcm_to_base64(idata.data), mime_type)
            return SynthesizedSpeech(idata.data, mime_type)
    raise SpeechGenerationError("No audio content generated.")


_gemini_service: Optional[GeminiService] = None


def get_gemini_service() -> GeminiService:
    """Lazy singleton; use as a FastAPI dependency: Depends(get_gemini_service)."""
    global _gemini_service
    if _gemini_service is None:
        _gemini_service = GeminiService()
    return _gemini_service
