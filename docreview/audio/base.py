from abc import ABC, abstractmethod

from docreview.audio.wav import WavClip


class BaseAudioPlayer(ABC):
    """Contract for audio output adapters."""

    @abstractmethod
    async def play(self, clip: WavClip) -> None:
        """Play ``clip`` and return once it has finished.

        Cancelling the awaiting task abandons the clip; the renderer calls
        ``stop`` first so output is already silent by then.

        Raises:
            AudioPlaybackError: if the output device fails.
        """

    @abstractmethod
    def stop(self) -> None:
        """Silence output immediately. Safe to call when nothing is playing."""
