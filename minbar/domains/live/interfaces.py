"""
Collaborators of the listener session, expressed as interfaces so the signaling
transport, the audio output and the backend can be swapped or mocked.

The callback shapes follow the Janus JavaScript API (connect/attach with
success and error callbacks, per-handle on_message and on_remote_track).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

VIDEOROOM_PLUGIN = "janus.plugin.videoroom"

# Receive-only audio: what a listener negotiates in its SDP answer.
LISTEN_ONLY_MEDIA: dict[str, bool] = {
    "audioSend": False,
    "videoSend": False,
    "audioRecv": True,
    "videoRecv": False,
}

Jsep = dict[str, Any]
MessageCallback = Callable[[dict[str, Any], Optional[Jsep]], None]


class SignalingError(RuntimeError):
    """Signaling server refused a request or could not be reached."""


class AutoplayBlocked(RuntimeError):
    """Playback needs a user gesture before it may start."""


class PlaybackAborted(RuntimeError):
    """Playback was interrupted because the sink was torn down."""


@dataclass(frozen=True)
class RemoteTrack:
    """A media track delivered by the peer connection."""

    kind: str
    mid: str
    on: bool
    stream: Any = None


class PluginHandle(ABC):
    """One attachment to a server-side plugin (a discovery or subscriber handle)."""

    on_message: Optional[MessageCallback] = None
    on_remote_track: Optional[Callable[[RemoteTrack], None]] = None

    @property
    @abstractmethod
    def handle_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def send(self, message: dict[str, Any], jsep: Optional[Jsep] = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def create_answer(
        self,
        jsep: Jsep,
        media: dict[str, bool],
        success: Callable[[Jsep], None],
        error: Callable[[Exception], None],
    ) -> None:
        raise NotImplementedError


class SignalingClient(ABC):
    """Room-based publish/subscribe signaling session."""

    @abstractmethod
    def connect(
        self,
        server: str,
        success: Callable[[], None],
        error: Callable[[Exception], None],
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def attach(
        self,
        plugin: str,
        success: Callable[[PluginHandle], None],
        error: Callable[[Exception], None],
        on_message: Optional[MessageCallback] = None,
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def destroy(self) -> None:
        raise NotImplementedError


class AudioSink(ABC):
    """Playback element for the remote stream (the web client's <audio> tag)."""

    muted: bool = True
    volume: float = 1.0

    @abstractmethod
    def attach(self, stream: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def play(self) -> None:
        """Start playback. Raises AutoplayBlocked or PlaybackAborted."""
        raise NotImplementedError

    @abstractmethod
    def pause(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def detach(self) -> None:
        raise NotImplementedError


class StreamStatusSource(ABC):
    """Backend view of a live stream: lifecycle state plus listener accounting."""

    @abstractmethod
    def get_info(self, live_stream_id: int) -> Any:
        raise NotImplementedError

    @abstractmethod
    def notify_join(self, live_stream_id: int, user_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def notify_leave(self, live_stream_id: int, user_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_listener_count(self, live_stream_id: int) -> int:
        raise NotImplementedError


def extract_publishers(msg: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Pull the publisher list out of a videoroom message.

    Servers report publishers in three places depending on the event:
    top-level "publishers", nested plugindata, or "participants" flagged as
    publishers.
    """
    if isinstance(msg.get("publishers"), list):
        return msg["publishers"]
    nested = ((msg.get("plugindata") or {}).get("data") or {}).get("publishers")
    if isinstance(nested, list) and nested:
        return nested
    if isinstance(msg.get("participants"), list):
        return [p for p in msg["participants"] if isinstance(p, dict) and p.get("publisher")]
    return []
