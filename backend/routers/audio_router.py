"""
Audio HTTP endpoints.

Routes:
  GET    /api/voices                      — Available TTS voices
  POST   /api/transcriptions              — Speech → text (base64 audio in, text out)
  POST   /api/text/improve                — Rewrite text so it reads well aloud
  POST   /api/speech                      — Text → speech, returns audio/wav
  GET    /api/history                     — Recent generated clips (metadata only)
  GET    /api/history/{item_id}/audio     — Replay/download a clip as audio/wav
  DELETE /api/history/{item_id}           — Forget one clip
  DELETE /api/history                     — Forget all clips
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from config import settings
from models.audio import (
    VOICES, Voice, HistoryItem, find_voice,
    TranscriptionRequest, TranscriptionResponse,
    ImproveTextRequest, ImproveTextResponse,
    SpeechRequest,
)
from services.gemini_service import (
    GeminiService, GeminiServiceError, GeminiNotConfiguredError, SynthesizedSpeech,
    get_gemini_service,
)
from services.history_service import HistoryService, get_history_service
from utils.audio import (
    FormatProfile, WavContainer,
    decode_base64, is_wav_mime, pcm_base64_to_wav, profile_from_mime, strip_data_uri,
    wav_container_from_bytes,
)
from utils.errors import AudioEncodingError, MalformedEncodingError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["audio"])


def _tts_profile() -> FormatProfile:
    return FormatProfile(
        sample_rate=settings.tts_sample_rate,
        channel_count=settings.tts_channels,
        bits_per_sample=settings.tts_bits_per_sample,
    )


def _speech_to_wav(speech: SynthesizedSpeech) -> WavContainer:
    """Wrap raw PCM in a WAV header; pass through audio that is already WAV."""
    if is_wav_mime(speech.mime_type):
        return wav_container_from_bytes(decode_base64(speech.audio_b64))
    return pcm_base64_to_wav(speech.audio_b64, profile_from_mime(speech.mime_type, _tts_profile()))


def _too_large() -> HTTPException:
    limit_mb = settings.max_upload_bytes // (1024 * 1024)
    return HTTPException(
        status_code=413,
        detail=f"File is too large. Please upload a file smaller than {limit_mb}MB.",
    )


def _upstream_error(exc: GeminiServiceError) -> HTTPException:
    if isinstance(exc, GeminiNotConfiguredError):
        return HTTPException(status_code=503, detail="Gemini is not configured. Check GEMINI_API_KEY.")
    return HTTPException(status_code=502, detail=str(exc))


def _wav_response(container: WavContainer, filename: str, **headers: str) -> Response:
    return Response(
        content=container.data,
        media_type=container.mime_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Audio-Digest": container.digest,
            **headers,
        },
    )


@router.get("/voices", response_model=List[Voice])
async def list_voices():
    return VOICES


@router.post("/transcriptions", response_model=TranscriptionResponse)
async def transcribe(body: TranscriptionRequest, gemini: GeminiService = Depends(get_gemini_service)):
    """Transcribe recorded or uploaded audio. Accepts raw base64 or a data: URI."""
    encoded = strip_data_uri(body.audio)
    # base64 carries 3 bytes per 4 characters; reject before decoding
    if len(encoded) * 3 // 4 > settings.max_upload_bytes:
        raise _too_large()
    try:
        audio = decode_base64(encoded)
    except MalformedEncodingError:
        raise HTTPException(status_code=400, detail="Audio is not valid base64")
    if not audio:
        raise HTTPException(status_code=400, detail="Audio is empty")
    if len(audio) > settings.max_upload_bytes:
        raise _too_large()

    try:
        text = await gemini.transcribe_audio(audio, body.mime_type)
    except GeminiServiceError as exc:
        logger.warning("Transcription failed (%s, %d bytes): %s", body.mime_type, len(audio), exc)
        raise _upstream_error(exc)
    return TranscriptionResponse(text=text)


@router.post("/text/improve", response_model=ImproveTextResponse)
async def improve_text(body: ImproveTextRequest, gemini: GeminiService = Depends(get_gemini_service)):
    if not body.text.strip():
        raise HTTPException(status_code=422, detail="Text is empty")
    try:
        improved = await gemini.improve_text_for_speech(body.text)
    except GeminiServiceError as exc:
        logger.warning("Text improvement failed: %s", exc)
        raise _upstream_error(exc)
    return ImproveTextResponse(text=improved)


@router.post("/speech")
async def synthesize_speech(
    body: SpeechRequest,
    gemini: GeminiService = Depends(get_gemini_service),
    history: HistoryService = Depends(get_history_service),
):
    """
    Generate speech with Gemini TTS and return it as a playable WAV file.
    The clip is also stored in the history so it can be fetched again.
    """
    if not body.text.strip():
        raise HTTPException(status_code=422, detail="Text is empty")
    if len(body.text) > settings.max_tts_chars:
        raise HTTPException(
            status_code=422,
            detail=f"Text exceeds {settings.max_tts_chars} characters",
        )
    voice_id = body.voice_id or settings.default_voice
    voice = find_voice(voice_id)
    if voice is None:
        raise HTTPException(status_code=404, detail=f"Unknown voice: {voice_id}")

    try:
        speech = await gemini.generate_speech_from_text(body.text, voice.id)
    except GeminiServiceError as exc:
        logger.warning("Speech generation failed for voice %s: %s", voice.id, exc)
        raise _upstream_error(exc)

    try:
        container = _speech_to_wav(speech)
    except AudioEncodingError as exc:
        logger.error("TTS returned unusable audio for voice %s: %s", voice.id, exc)
        raise HTTPException(status_code=502, detail=f"Speech service returned invalid audio: {exc}")

    item = history.add(body.text, voice.id, voice.name, container)
    logger.info(
        "Generated %.2fs of speech (%d bytes, voice=%s, id=%s)",
        container.duration_seconds, container.size, voice.id, item.id,
    )
    return _wav_response(container, f"speech-{item.id}.wav", **{"X-History-Id": item.id})


@router.get("/history", response_model=List[HistoryItem])
async def list_history(
    limit: int = Query(10, ge=1, le=100),
    history: HistoryService = Depends(get_history_service),
):
    return history.list(limit)


@router.get("/history/{item_id}/audio")
async def history_audio(item_id: str, history: HistoryService = Depends(get_history_service)):
    container = history.get_audio(item_id)
    if container is None:
        raise HTTPException(status_code=404, detail="Clip not found")
    return _wav_response(container, f"speech-{item_id}.wav")


@router.delete("/history/{item_id}", status_code=204)
async def delete_history_item(item_id: str, history: HistoryService = Depends(get_history_service)):
    if not history.delete(item_id):
        raise HTTPException(status_code=404, detail="Clip not found")
    return Response(status_code=204)


@router.delete("/history", status_code=204)
async def clear_history(history: HistoryService = Depends(get_history_service)):
    history.clear()
    return Response(status_code=204)
