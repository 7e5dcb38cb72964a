class AudioEncodingError(ValueError):
    """Base class for failures while turning raw PCM into a WAV container."""


class MalformedEncodingError(AudioEncodingError):
    """Input is not valid standard-alphabet base64."""


class InvalidFormatProfileError(AudioEncodingError):
    """Sample rate, channel count, bit depth or payload length is unusable."""


class EmptyPayloadError(AudioEncodingError):
    """Decoded payload has no samples."""


class MisalignedPayloadError(AudioEncodingError):
    """Payload length is not a whole number of sample frames."""
