import asyncio

from docreview.audio.base import BaseAudioPlayer
from docreview.audio.wav import WavClip
from docreview.logging.logger import Log


class SilentPlayer(BaseAudioPlayer):
    """Player for headless runs: waits out the clip's duration without output."""

    def __init__(self, speed: float = 1.0) -> None:
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        self._speed = speed

    async def play(self, clip: WavClip) -> None:
        Log.debug(f"Silent playback of {clip.duration_seconds:.2f}s clip")
        await asyncio.sleep(clip.duration_seconds / self._speed)

    def stop(self) -> None:
        pass
