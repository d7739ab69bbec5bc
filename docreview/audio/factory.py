from docreview.audio.base import BaseAudioPlayer
from docreview.audio.silent_adapter import SilentPlayer
from docreview.audio.sounddevice_adapter import SoundDevicePlayer
from docreview.config.settings import Settings


class AudioPlayerFactory:
    """Creates the audio output adapter named by ``settings.audio_backend``."""

    ADAPTERS: dict[str, type[BaseAudioPlayer]] = {
        "silent": SilentPlayer,
        "sounddevice": SoundDevicePlayer,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseAudioPlayer:
        backend = settings.audio_backend.lower()
        adapter_cls = cls.ADAPTERS.get(backend)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown audio backend '{backend}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
