import asyncio
from types import ModuleType

import numpy as np

from docreview.audio.base import BaseAudioPlayer
from docreview.audio.exceptions import AudioPlaybackError
from docreview.audio.wav import WavClip


def _import_sounddevice() -> ModuleType:
    # Importing sounddevice loads the PortAudio shared library.
    import sounddevice

    return sounddevice


class SoundDevicePlayer(BaseAudioPlayer):
    """Plays clips on the default (or given) PortAudio output device.

    PortAudio is loaded on the first ``play``, so a host without it only
    fails when speech is actually requested.
    """

    def __init__(self, device: int | str | None = None) -> None:
        self._device = device
        self._sd: ModuleType | None = None

    async def play(self, clip: WavClip) -> None:
        sd = self._load()
        samples = np.frombuffer(clip.pcm, dtype="<i2")
        try:
            sd.play(samples, samplerate=clip.sample_rate, device=self._device)
        except Exception as exc:
            raise AudioPlaybackError(f"Audio device error: {exc}") from exc
        await asyncio.sleep(clip.duration_seconds)

    def stop(self) -> None:
        if self._sd is not None:
            self._sd.stop()

    def _load(self) -> ModuleType:
        if self._sd is None:
            try:
                self._sd = _import_sounddevice()
            except OSError as exc:
                raise AudioPlaybackError(f"PortAudio is not available: {exc}") from exc
        return self._sd
