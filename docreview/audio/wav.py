"""Wraps raw speech PCM from the generation service in a WAV container.

The service returns base64 signed 16-bit little-endian mono PCM and a MIME
descriptor such as ``audio/L16;codec=pcm;rate=24000``. The container is the
canonical 44-byte RIFF header (one ``fmt `` and one ``data`` subchunk)
followed by the samples verbatim.
"""

import base64
import binascii
import io
import re
import wave
from dataclasses import dataclass

from docreview.audio.exceptions import AudioDecodeError
from docreview.gateway.models import SpeechPayload

DEFAULT_SAMPLE_RATE = 16000
SAMPLE_WIDTH_BYTES = 2
CHANNELS = 1
WAV_HEADER_BYTES = 44

_RATE_PATTERN = re.compile(r"rate=(\d+)")


@dataclass(frozen=True)
class WavClip:
    """A playable mono 16-bit WAV clip."""

    wav_bytes: bytes
    sample_rate: int

    @property
    def pcm(self) -> bytes:
        return self.wav_bytes[WAV_HEADER_BYTES:]

    @property
    def sample_count(self) -> int:
        return len(self.pcm) // SAMPLE_WIDTH_BYTES

    @property
    def duration_seconds(self) -> float:
        return self.sample_count / self.sample_rate


def parse_sample_rate(mime_type: str | None) -> int:
    """Read ``rate=<digits>`` from a MIME descriptor, defaulting to 16000."""
    match = _RATE_PATTERN.search(mime_type or "")
    if match is None:
        return DEFAULT_SAMPLE_RATE
    return int(match.group(1))


def decode_pcm(data: str) -> bytes:
    """Decode base64 PCM.

    Raises:
        AudioDecodeError: on invalid base64, no samples, or a trailing half sample.
    """
    try:
        pcm = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AudioDecodeError(f"Invalid base64 audio: {exc}") from exc
    if not pcm:
        raise AudioDecodeError("Audio payload contains no samples")
    if len(pcm) % SAMPLE_WIDTH_BYTES:
        raise AudioDecodeError(
            f"Audio payload has {len(pcm)} bytes, not a whole number of 16-bit samples"
        )
    return pcm


def pcm_to_wav(pcm: bytes, sample_rate: int) -> bytes:
    """Prefix 16-bit mono PCM with a 44-byte WAV header."""
    if sample_rate <= 0:
        raise AudioDecodeError(f"Invalid sample rate: {sample_rate}")
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as writer:
        writer.setnchannels(CHANNELS)
        writer.setsampwidth(SAMPLE_WIDTH_BYTES)
        writer.setframerate(sample_rate)
        writer.setnframes(len(pcm) // SAMPLE_WIDTH_BYTES)
        writer.writeframesraw(pcm)
    return buffer.getvalue()


def render_clip(payload: SpeechPayload) -> WavClip:
    sample_rate = parse_sample_rate(payload.mime_type)
    pcm = decode_pcm(payload.data)
    return WavClip(wav_bytes=pcm_to_wav(pcm, sample_rate), sample_rate=sample_rate)
