class AudioError(Exception):
    """Base exception for speech playback errors."""


class AudioDecodeError(AudioError):
    """Raised when a speech payload cannot be turned into a WAV clip."""


class AudioPlaybackError(AudioError):
    """Raised when the output device fails to play a clip."""
