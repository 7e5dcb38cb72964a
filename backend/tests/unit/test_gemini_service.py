import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from services import gemini_service
from services.gemini_service import (
    GeminiNotConfiguredError,
    GeminiService,
    NO_TRANSCRIPTION,
    SpeechGenerationError,
    TranscriptionError,
)


def _response(*, text=None, parts=()):
    candidates = [SimpleNamespace(content=SimpleNamespace(parts=list(parts)))] if parts else []
    return SimpleNamespace(text=text, candidates=candidates)


def _audio_part(data, mime_type="audio/L16;codec=pcm;rate=24000"):
    return SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type))


def _client(*results):
    generate = AsyncMock(side_effect=list(results))
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate))), generate


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    monkeypatch.setattr(gemini_service.settings, "gemini_max_retries", 3)
    monkeypatch.setattr(gemini_service.settings, "gemini_retry_delay_seconds", 0)


@pytest.mark.asyncio
async def test_tts_returns_base64_of_raw_bytes():
    pcm = b"\x01\x00\x02\x00"
    client, generate = _client(_response(parts=[SimpleNamespace(inline_data=None), _audio_part(pcm)]))

    result = await GeminiService(client).generate_speech_from_text("Hola", "Zephyr")

    assert base64.b64decode(result.audio_b64) == pcm
    assert result.mime_type == "audio/L16;codec=pcm;rate=24000"
    kwargs = generate.await_args.kwargs
    assert kwargs["model"] == gemini_service.settings.tts_model
    assert kwargs["contents"] == "Hola"
    voice_cfg = kwargs["config"].speech_config.voice_config.prebuilt_voice_config
    assert voice_cfg.voice_name == "Zephyr"


@pytest.mark.asyncio
async def test_tts_passes_through_base64_string():
    client, _ = _client(_response(parts=[_audio_part("AAAA")]))

    result = await GeminiService(client).generate_speech_from_text("Hola")
    assert result.audio_b64 == "AAAA"


@pytest.mark.asyncio
async def test_tts_keeps_wav_mime_type():
    wav = b"RIFF\x00\x00\x00\x00WAVE"
    client, _ = _client(_response(parts=[_audio_part(wav, mime_type="audio/wav")]))

    result = await GeminiService(client).generate_speech_from_text("Hola")

    assert result.mime_type == "audio/wav"
    assert base64.b64decode(result.audio_b64) == wav


@pytest.mark.asyncio
async def test_tts_without_audio_raises():
    client, generate = _client(_response(text="sorry"))

    with pytest.raises(SpeechGenerationError):
        await GeminiService(client).generate_speech_from_text("Hola")
    assert generate.await_count == 1


@pytest.mark.asyncio
async def test_transient_failures_are_retried():
    client, generate = _client(RuntimeError("503"), _response(text=" hola mundo \n"))

    text = await GeminiService(client).transcribe_audio(b"webm", "audio/webm")

    assert text == "hola mundo"
    assert generate.await_count == 2


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    client, generate = _client(RuntimeError("a"), RuntimeError("b"), RuntimeError("c"))

    with pytest.raises(TranscriptionError) as excinfo:
        await GeminiService(client).transcribe_audio(b"webm", "audio/webm")

    assert generate.await_count == 3
    assert isinstance(excinfo.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_empty_transcription_has_placeholder():
    client, _ = _client(_response(text=None))

    assert await GeminiService(client).transcribe_audio(b"x", "audio/mp4") == NO_TRANSCRIPTION


@pytest.mark.asyncio
async def test_improve_falls_back_to_original_text():
    client, generate = _client(_response(text=""))

    assert await GeminiService(client).improve_text_for_speech("hola que tal") == "hola que tal"
    assert "hola que tal" in generate.await_args.kwargs["contents"]


@pytest.mark.asyncio
async def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(gemini_service.settings, "gemini_api_key", "")

    with pytest.raises(GeminiNotConfiguredError):
        await GeminiService().generate_speech_from_text("Hola")
