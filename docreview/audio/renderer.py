"""Single-flight speech playback."""

import asyncio
import functools
from collections.abc import Callable
from dataclasses import dataclass

from docreview.audio.base import BaseAudioPlayer
from docreview.audio.wav import WavClip, render_clip
from docreview.gateway.models import SpeechPayload
from docreview.logging.logger import Log


@dataclass(frozen=True)
class PlaybackEnded:
    """Fired exactly once per clip, whether it finished, was stopped, or failed."""

    clip: WavClip
    completed: bool
    error: BaseException | None = None


EndedListener = Callable[[PlaybackEnded], None]


class AudioRenderer:
    """Turns speech payloads into clips and owns the one active playback task.

    Starting a clip stops the player and cancels the previous task before the
    new task is created, so two clips never overlap. ``is_playing`` is true
    exactly while a started clip has neither ended nor been superseded.
    """

    def __init__(self, player: BaseAudioPlayer) -> None:
        self._player = player
        self._current: asyncio.Task[None] | None = None
        self._listeners: list[EndedListener] = []

    @property
    def is_playing(self) -> bool:
        return self._current is not None

    def add_listener(self, listener: EndedListener) -> None:
        self._listeners.append(listener)

    def start(self, payload: SpeechPayload) -> WavClip:
        """Decode ``payload`` and begin playing it in place of any current clip.

        Must be called from a running event loop.

        Raises:
            AudioDecodeError: if the payload is not valid PCM; the current
                clip, if any, keeps playing and ``is_playing`` keeps tracking
                it until that clip ends.
        """
        clip = render_clip(payload)
        self.stop()
        task = asyncio.get_running_loop().create_task(self._player.play(clip))
        self._current = task
        task.add_done_callback(functools.partial(self._on_done, clip))
        Log.info(
            f"Playing {clip.duration_seconds:.2f}s clip at {clip.sample_rate} Hz"
        )
        return clip

    def stop(self) -> None:
        """Stop the current clip, if any. Its ended notification still fires."""
        task = self._current
        if task is None:
            return
        self._current = None
        self._player.stop()
        task.cancel()

    async def wait(self) -> None:
        """Return once nothing is playing, including clips started meanwhile."""
        while self._current is not None:
            await asyncio.wait({self._current})

    def _on_done(self, clip: WavClip, task: asyncio.Task[None]) -> None:
        if self._current is task:
            self._current = None
        if task.cancelled():
            ended = PlaybackEnded(clip=clip, completed=False)
        else:
            error = task.exception()
            if error is not None:
                Log.error(f"Audio playback failed: {error}")
            ended = PlaybackEnded(clip=clip, completed=error is None, error=error)
        for listener in list(self._listeners):
            listener(ended)
