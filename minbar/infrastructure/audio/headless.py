"""Audio sink for running the listener outside a browser."""

from __future__ import annotations

from typing import Any

from minbar.domains.live.interfaces import AudioSink, AutoplayBlocked, PlaybackAborted
from minbar.utils.logger import get_logger

logger = get_logger()


class HeadlessAudioSink(AudioSink):
    """
    Holds the remote stream and tracks play/pause/mute state.

    With autoplay_allowed=False the first play() is refused the way a browser
    refuses unmuted autoplay; later calls count as user-initiated and succeed.
    """

    def __init__(self, autoplay_allowed: bool = True) -> None:
        self.autoplay_allowed = autoplay_allowed
        self.stream: Any = None
        self.playing = False
        self.muted = True
        self.volume = 1.0

    def attach(self, stream: Any) -> None:
        self.stream = stream
        self.playing = False

    def play(self) -> None:
        if self.stream is None:
            raise PlaybackAborted("no stream attached")
        if not self.autoplay_allowed:
            self.autoplay_allowed = True
            raise AutoplayBlocked("playback requires a user gesture")
        self.playing = True
        logger.debug("Headless sink playing (muted=%s, volume=%.2f)", self.muted, self.volume)

    def pause(self) -> None:
        self.playing = False

    def detach(self) -> None:
        self.stream = None
        self.playing = False
