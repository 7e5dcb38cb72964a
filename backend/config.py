from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    gemini_api_key: str = ""
    transcription_model: str = "gemini-2.5-flash"
    text_model: str = "gemini-2.5-flash"
    tts_model: str = "gemini-2.5-flash-preview-tts"  # returns raw L16 PCM
    default_voice: str = "Kore"
    # PCM profile of the TTS response; override if the upstream model changes
    tts_sample_rate: int = 24000
    tts_channels: int = 1
    tts_bits_per_sample: int = 16
    max_tts_chars: int = 8000
    max_upload_bytes: int = 25 * 1024 * 1024
    history_max_items: int = 50
    gemini_max_retries: int = 3
    gemini_retry_delay_seconds: float = 1.0
    # CORS origins: set ALLOWED_ORIGINS env var for production (JSON list)
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )


settings = Settings()
