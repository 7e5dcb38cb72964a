"""
Raw PCM → RIFF/WAVE container encoding.

Gemini TTS answers with headerless 16-bit LE mono PCM at 24 kHz, base64
encoded. Browsers and media players need a RIFF header in front of it:

  decode_base64 → build_wav_header → assemble_wav → WavContainer

Everything here is synchronous and pure. Network and UI layers live elsewhere.
"""
import base64
import binascii
import hashlib
import io
import math
import re
import struct
import wave
from dataclasses import dataclass, field
from typing import Optional, Union

from utils.errors import (
    EmptyPayloadError,
    InvalidFormatProfileError,
    MalformedEncodingError,
    MisalignedPayloadError,
)

# ── Constants ──────────────────────────────────────────────────────────────────

WAV_MIME_TYPE = "audio/wav"
WAV_HEADER_SIZE = 44
DEFAULT_SAMPLE_RATE = 24000   # Gemini TTS output
DEFAULT_CHANNELS = 1
DEFAULT_BITS_PER_SAMPLE = 16
SUPPORTED_BIT_DEPTHS = (8, 16, 24, 32)

_PCM_FORMAT_TAG = 1
_FMT_CHUNK_SIZE = 16
_HEADER_LAYOUT = "<4sI4s4sIHHIIHH4sI"
_U16_MAX = 0xFFFF
_U32_MAX = 0xFFFFFFFF

_DATA_URI_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)
_LINEAR_PCM_SUBTYPE = re.compile(r"^audio/l(8|16|24|32)$", re.IGNORECASE)


@dataclass(frozen=True)
class FormatProfile:
    """Sample layout of a PCM stream."""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    channel_count: int = DEFAULT_CHANNELS
    bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE

    @property
    def frame_size(self) -> int:
        """Bytes per sample frame across all channels (BlockAlign)."""
        return self.channel_count * self.bits_per_sample // 8

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.frame_size


@dataclass(frozen=True)
class WavContainer:
    """A complete WAV file, ready to stream to a player or save as .wav."""

    data: bytes
    profile: FormatProfile = field(default_factory=FormatProfile)
    mime_type: str = WAV_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def payload(self) -> bytes:
        return self.data[WAV_HEADER_SIZE:]

    @property
    def payload_size(self) -> int:
        return self.size - WAV_HEADER_SIZE

    @property
    def duration_seconds(self) -> float:
        return self.payload_size / self.profile.byte_rate

    @property
    def digest(self) -> str:
        """SHA-256 of the container bytes; identical audio gives an identical digest."""
        return hashlib.sha256(self.data).hexdigest()

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")


# ── Base64 ────────────────────────────────────────────────────────────────────

def decode_base64(b64: Union[str, bytes]) -> bytes:
    """Decode standard-alphabet base64, rejecting stray characters and bad padding."""
    try:
        return base64.b64decode(b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedEncodingError(f"invalid base64 audio payload: {exc}") from exc


def pcm_to_base64(pcm_bytes: bytes) -> str:
    """Encode raw PCM bytes to base64 string for JSON transport."""
    return base64.b64encode(pcm_bytes).decode("utf-8")


def strip_data_uri(value: str) -> str:
    """Drop a leading ``data:<mime>;base64,`` prefix as produced by FileReader.readAsDataURL."""
    return _DATA_URI_PREFIX.sub("", value.strip(), count=1)


# ── Header ────────────────────────────────────────────────────────────────────

def _require_positive(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidFormatProfileError(f"{name} must be a positive integer, got {value!r}")


def build_wav_header(
    payload_length: int,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channel_count: int = DEFAULT_CHANNELS,
    bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE,
) -> bytes:
    """Return the 44-byte canonical RIFF/WAVE header for a PCM payload of the given length."""
    if isinstance(payload_length, bool) or not isinstance(payload_length, int) or payload_length < 0:
        raise InvalidFormatProfileError(
            f"payload_length must be a non-negative integer, got {payload_length!r}"
        )
    _require_positive("sample_rate", sample_rate)
    _require_positive("channel_count", channel_count)
    _require_positive("bits_per_sample", bits_per_sample)
    if bits_per_sample not in SUPPORTED_BIT_DEPTHS:
        raise InvalidFormatProfileError(
            f"bits_per_sample must be one of {SUPPORTED_BIT_DEPTHS}, got {bits_per_sample}"
        )

    block_align = channel_count * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    chunk_size = 36 + payload_length

    if channel_count > _U16_MAX or block_align > _U16_MAX:
        raise InvalidFormatProfileError("channel_count too large for a 16-bit header field")
    if sample_rate > _U32_MAX or byte_rate > _U32_MAX:
        raise InvalidFormatProfileError("sample_rate too large for a 32-bit header field")
    if chunk_size > _U32_MAX:
        raise InvalidFormatProfileError("payload too large for a RIFF container (4 GiB limit)")

    return struct.pack(
        _HEADER_LAYOUT,
        b"RIFF", chunk_size, b"WAVE",
        b"fmt ", _FMT_CHUNK_SIZE, _PCM_FORMAT_TAG, channel_count, sample_rate,
        byte_rate, block_align, bits_per_sample,
        b"data", payload_length,
    )


# ── Container ─────────────────────────────────────────────────────────────────

def assemble_wav(pcm_data: bytes, profile: FormatProfile = FormatProfile()) -> WavContainer:
    """
    Wrap raw PCM bytes in a RIFF/WAV container.

    Empty payloads raise EmptyPayloadError. Payloads that do not hold a whole
    number of frames raise MisalignedPayloadError; they are never padded or
    truncated.
    """
    header = build_wav_header(
        len(pcm_data),
        profile.sample_rate,
        profile.channel_count,
        profile.bits_per_sample,
    )
    if not pcm_data:
        raise EmptyPayloadError("PCM payload is empty")
    if len(pcm_data) % profile.frame_size:
        raise MisalignedPayloadError(
            f"PCM payload of {len(pcm_data)} bytes is not a multiple of "
            f"the {profile.frame_size}-byte frame size"
        )
    return WavContainer(data=header + bytes(pcm_data), profile=profile)


def pcm_base64_to_wav(b64: Union[str, bytes], profile: FormatProfile = FormatProfile()) -> WavContainer:
    """Decode a base64 PCM string (as returned by Gemini TTS) into a WAV container."""
    return assemble_wav(decode_base64(b64), profile)


# ── Upstream MIME types ───────────────────────────────────────────────────────

def is_wav_mime(mime_type: Optional[str]) -> bool:
    return "wav" in (mime_type or "").lower()


def profile_from_mime(mime_type: Optional[str], default: FormatProfile = FormatProfile()) -> FormatProfile:
    """
    Read the PCM layout from a linear-PCM MIME type such as
    ``audio/L16;codec=pcm;rate=24000``. Missing parts keep the default.
    """
    if not mime_type:
        return default
    subtype, *params = [p.strip() for p in mime_type.split(";")]
    values = {}
    for param in params:
        if "=" in param:
            key, value = param.split("=", 1)
            values[key.strip().lower()] = value.strip()
    match = _LINEAR_PCM_SUBTYPE.match(subtype)
    try:
        return FormatProfile(
            sample_rate=int(values.get("rate", default.sample_rate)),
            channel_count=int(values.get("channels", default.channel_count)),
            bits_per_sample=int(match.group(1)) if match else default.bits_per_sample,
        )
    except ValueError as exc:
        raise InvalidFormatProfileError(f"unreadable audio MIME type {mime_type!r}") from exc


def wav_container_from_bytes(data: bytes) -> WavContainer:
    """Adopt an upstream payload that is already a WAV file, without re-wrapping it."""
    try:
        with wave.open(io.BytesIO(data), "rb") as wav:
            profile = FormatProfile(
                sample_rate=wav.getframerate(),
                channel_count=wav.getnchannels(),
                bits_per_sample=wav.getsampwidth() * 8,
            )
            frames = wav.getnframes()
    except (wave.Error, EOFError) as exc:
        raise MalformedEncodingError(f"audio labelled as WAV is not a RIFF/WAVE file: {exc}") from exc
    if not frames:
        raise EmptyPayloadError("WAV payload has no frames")
    return WavContainer(data=bytes(data), profile=profile)


# ── Display ───────────────────────────────────────────────────────────────────

def format_time(seconds: float) -> str:
    """Format a duration as mm:ss; non-finite or negative input gives 00:00."""
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return "00:00"
    mins, secs = divmod(int(seconds), 60)
    return f"{mins:02d}:{secs:02d}"
