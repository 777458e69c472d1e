"""
Listener side of a live khotba broadcast.

ListenerSession walks idle -> connecting -> live -> ended: it checks the stream
is still on air, registers the listener with the backend, discovers the
broadcaster's feed through a silent publisher handle, subscribes to it and
hands the remote audio to an AudioSink. A background poll watches for the
broadcaster ending the stream.
"""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from minbar.domains.live.interfaces import (
    LISTEN_ONLY_MEDIA,
    VIDEOROOM_PLUGIN,
    AudioSink,
    Jsep,
    PlaybackAborted,
    PluginHandle,
    RemoteTrack,
    SignalingClient,
    StreamStatusSource,
    extract_publishers,
)
from minbar.utils.logger import get_logger

logger = get_logger()

DEFAULT_POLL_INTERVAL = 5.0


class ListenerStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    LIVE = "live"
    ENDED = "ended"


@dataclass(frozen=True)
class ListenerSnapshot:
    """Everything a front end needs to render the listen page."""

    status: ListenerStatus
    status_text: str
    listener_count: int
    total_views: int
    show_play_button: bool
    muted: bool
    volume: float
    subscribed: bool
    stream_info: Any = None
    last_error: str | None = None


class ListenerSession:
    """
    One listener attached to one broadcast room.

    Construct it when the listen page mounts, call start(), and call close()
    (or use it as a context manager) when the page goes away.
    """

    def __init__(
        self,
        room_id: int | None,
        live_stream_id: int | None = None,
        *,
        status_source: StreamStatusSource,
        signaling: SignalingClient,
        audio: AudioSink,
        server: str,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        user_id: int | None = None,
    ) -> None:
        self.room_id = int(room_id or 0)
        self.live_stream_id = int(live_stream_id or 0) or self.room_id
        self.user_id = user_id if user_id is not None else random.randint(0, 999_999)

        self._source = status_source
        self._signaling = signaling
        self._audio = audio
        self._server = server
        self._poll_interval = poll_interval

        self._lock = threading.RLock()
        self._status = ListenerStatus.IDLE
        self._status_text = "Waiting to connect..."
        self._listener_count = 0
        self._total_views = 0
        self._stream_info: Any = None
        self._show_play_button = False
        self._volume = 0.8
        self._last_error: str | None = None

        self._subscribed = False
        self._subscribing = False
        self._signaling_started = False
        self._closing = False
        self._closed = False
        self._discovery: Optional[PluginHandle] = None
        self._subscriber: Optional[PluginHandle] = None

        self._stop_polling = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None

    # --- state accessors ---

    @property
    def status(self) -> ListenerStatus:
        return self._status

    @property
    def status_text(self) -> str:
        return self._status_text

    @property
    def has_ids(self) -> bool:
        return bool(self.room_id and self.live_stream_id)

    @property
    def status_source(self) -> StreamStatusSource:
        return self._source

    @property
    def is_polling(self) -> bool:
        t = self._poll_thread
        return t is not None and t.is_alive() and not self._stop_polling.is_set()

    def snapshot(self) -> ListenerSnapshot:
        with self._lock:
            return ListenerSnapshot(
                status=self._status,
                status_text=self._status_text,
                listener_count=self._listener_count,
                total_views=self._total_views,
                show_play_button=self._show_play_button,
                muted=bool(getattr(self._audio, "muted", True)),
                volume=self._volume,
                subscribed=self._subscribed,
                stream_info=self._stream_info,
                last_error=self._last_error,
            )

    def _set(self, status: ListenerStatus | None = None, text: str | None = None) -> None:
        with self._lock:
            if status is not None:
                self._status = status
            if text is not None:
                self._status_text = text

    def _fail(self, text: str, err: Exception | str) -> None:
        logger.error("Listener room %s: %s (%s)", self.room_id, text, err)
        with self._lock:
            if self._status is ListenerStatus.ENDED:
                return
            self._last_error = str(err)
            self._status = ListenerStatus.IDLE
            self._status_text = text

    # --- lifecycle ---

    def start(self) -> ListenerStatus:
        """Check the stream, announce the listener, begin signaling and polling."""
        if not self.has_ids:
            logger.warning("Listener start without room id (room=%s stream=%s)", self.room_id, self.live_stream_id)
            self._set(ListenerStatus.IDLE, "Missing room ID - scan a QR code first")
            return self._status

        logger.info("Initializing listener for room %s, stream %s", self.room_id, self.live_stream_id)
        self._set(ListenerStatus.CONNECTING, "Checking stream status...")

        if not self.check_stream_status():
            return self._status

        self._notify_join()
        self._start_signaling()
        self.start_polling()
        return self._status

    def __enter__(self) -> "ListenerSession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        """
        Tear down on unmount: stop polling, release audio, destroy signaling,
        and attempt one leave notification. Later calls are no-ops.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._closing = True
        self.stop_polling()
        try:
            self._audio.pause()
            self._audio.detach()
        except Exception as e:
            logger.warning("Audio cleanup failed: %s", e)
        self._destroy_signaling()
        self._notify_leave()

    def before_unload(self) -> None:
        """Browser-unload hook: leave is re-sent even if close() also sends it."""
        self._notify_leave()

    # --- backend status ---

    def check_stream_status(self) -> bool:
        """
        Poll the backend once. Returns False once the stream is over.

        Read failures count as "still active" so a flaky backend never ends a
        session on its own.
        """
        if not self.live_stream_id or self._status is ListenerStatus.ENDED:
            return False
        try:
            info = self._source.get_info(self.live_stream_id)
        except Exception as e:
            logger.warning("Error checking stream status for %s: %s", self.live_stream_id, e)
            return True

        with self._lock:
            self._stream_info = info
        if getattr(info, "is_ended", False):
            self._handle_stream_ended(getattr(info, "total_views", 0))
            return False
        with self._lock:
            self._listener_count = int(getattr(info, "listener_count", 0) or 0)
        return True

    def refresh_listener_count(self) -> int:
        """Ask the backend for the current listener count between polls."""
        if not self.live_stream_id or self._status is ListenerStatus.ENDED:
            return self._listener_count
        try:
            count = int(self._source.get_listener_count(self.live_stream_id) or 0)
        except Exception as e:
            logger.warning("Listener count refresh failed for %s: %s", self.live_stream_id, e)
            return self._listener_count
        with self._lock:
            self._listener_count = count
        return count

    def start_polling(self) -> None:
        if self.is_polling:
            return
        self._stop_polling.clear()
        self._poll_thread = threading.Thread(
            target=self._poll_loop,
            name=f"stream-poll-{self.live_stream_id}",
            daemon=True,
        )
        self._poll_thread.start()

    def stop_polling(self) -> None:
        self._stop_polling.set()
        t = self._poll_thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=self._poll_interval + 1)

    def _poll_loop(self) -> None:
        while not self._stop_polling.wait(self._poll_interval):
            if not self.check_stream_status():
                break
        logger.debug("Stream poll loop for %s stopped", self.live_stream_id)

    def _handle_stream_ended(self, total_views: int) -> None:
        with self._lock:
            if self._status is ListenerStatus.ENDED:
                return
            self._status = ListenerStatus.ENDED
            self._status_text = "Stream Ended"
            self._total_views = int(total_views or 0)
            self._show_play_button = False
        logger.info("Stream %s ended by broadcaster", self.live_stream_id)
        self.stop_polling()
        try:
            self._audio.pause()
        except Exception as e:
            logger.warning("Audio pause on stream end failed: %s", e)
        self._destroy_signaling()
        self._notify_leave()

    def _notify_join(self) -> None:
        try:
            self._source.notify_join(self.live_stream_id, self.user_id)
        except Exception as e:
            logger.error("Failed to notify join: %s", e)

    def _notify_leave(self) -> None:
        if not self.live_stream_id:
            return
        try:
            self._source.notify_leave(self.live_stream_id, self.user_id)
        except Exception as e:
            logger.error("Failed to notify leave: %s", e)

    # --- signaling ---

    def _start_signaling(self) -> None:
        self._set(ListenerStatus.CONNECTING, "Connecting to server...")
        self._signaling_started = True
        try:
            self._signaling.connect(self._server, success=self._attach_discovery_handle, error=self._on_connect_error)
        except Exception as e:
            self._on_connect_error(e)

    def _destroy_signaling(self) -> None:
        with self._lock:
            if not self._signaling_started:
                return
            self._signaling_started = False
            self._discovery = None
            self._subscriber = None
            self._subscribed = False
            self._subscribing = False
        try:
            self._signaling.destroy()
        except Exception as e:
            logger.warning("Signaling destroy failed: %s", e)

    def _on_connect_error(self, err: Exception) -> None:
        self._fail("Connection error", err)

    def _attach_discovery_handle(self) -> None:
        if self._closing:
            return
        self._set(ListenerStatus.CONNECTING, "Joining room...")
        self._signaling.attach(
            VIDEOROOM_PLUGIN,
            success=self._on_discovery_attached,
            error=lambda err: self._fail("Failed to join", err),
            on_message=self._on_discovery_message,
        )

    def _send(self, handle: PluginHandle, message: dict[str, Any], failure_text: str, jsep: Optional[Jsep] = None) -> bool:
        try:
            handle.send(message, jsep=jsep)
        except Exception as e:
            self._fail(failure_text, e)
            return False
        return True

    def _on_discovery_attached(self, handle: PluginHandle) -> None:
        self._discovery = handle
        logger.info("Discovery handle attached: %s", handle.handle_id)
        sent = self._send(handle, {
            "request": "join",
            "room": self.room_id,
            "ptype": "publisher",
            "display": "Listener",
            "audio": False,
            "video": False,
        }, "Failed to join")
        if sent and not self._subscribed:
            self._set(text="Waiting for broadcaster...")

    def _on_discovery_message(self, msg: dict[str, Any], jsep: Optional[Jsep] = None) -> None:
        publishers = extract_publishers(msg or {})
        if not publishers:
            if not self._subscribed:
                self._set(text="Waiting for broadcaster...")
            return
        feed_id = publishers[0].get("id")
        logger.info("Found publisher feed: %s", feed_id)
        self._subscribe_to_feed(feed_id)

    def _subscribe_to_feed(self, feed_id: Any) -> None:
        with self._lock:
            if self._subscribed or self._subscribing or self._closing:
                return
            self._subscribing = True
            self._status_text = "Connecting to stream..."
        self._signaling.attach(
            VIDEOROOM_PLUGIN,
            success=lambda handle: self._on_subscriber_attached(handle, feed_id),
            error=self._on_subscriber_error,
        )

    def _on_subscriber_error(self, err: Exception) -> None:
        with self._lock:
            self._subscribing = False
        self._fail("Failed to subscribe", err)

    def _on_subscriber_attached(self, handle: PluginHandle, feed_id: Any) -> None:
        self._subscriber = handle
        logger.info("Subscriber handle attached: %s (feed %s)", handle.handle_id, feed_id)
        handle.on_message = lambda msg, jsep=None: self._on_subscriber_message(handle, msg, jsep)
        handle.on_remote_track = self._on_remote_track
        if not self._send(handle, {
            "request": "join",
            "room": self.room_id,
            "ptype": "subscriber",
            "feed": feed_id,
            "offer_audio": True,
            "offer_video": False,
        }, "Failed to subscribe"):
            with self._lock:
                self._subscribing = False

    def _on_subscriber_message(self, handle: PluginHandle, msg: dict[str, Any], jsep: Optional[Jsep]) -> None:
        if not jsep:
            return
        handle.create_answer(
            jsep,
            dict(LISTEN_ONLY_MEDIA),
            success=lambda answer: self._send(handle, {"request": "start"}, "Connection error", jsep=answer),
            error=lambda err: self._fail("Connection error", err),
        )

    def _on_remote_track(self, track: RemoteTrack) -> None:
        if track is None or track.kind != "audio" or not track.on:
            return
        stream = track.stream if track.stream is not None else track
        self._attach_remote_stream(stream)
        with self._lock:
            self._subscribed = True
            self._subscribing = False

    # --- playback ---

    def _attach_remote_stream(self, stream: Any) -> None:
        if self._closing:
            return
        self._audio.attach(stream)
        logger.info("Attached remote stream to audio sink")
        try:
            self._audio.play()
        except PlaybackAborted:
            logger.debug("Audio play aborted (session closing)")
            return
        except Exception as e:
            logger.warning("Autoplay prevented: %s", e)
            with self._lock:
                if self._closing or self._status is ListenerStatus.ENDED:
                    return
                self._status = ListenerStatus.LIVE
                self._status_text = "Ready to play - tap button"
                self._show_play_button = True
            return
        with self._lock:
            if self._closing or self._status is ListenerStatus.ENDED:
                return
            self._audio.muted = False
            self._status = ListenerStatus.LIVE
            self._status_text = "Playing live audio"
            self._show_play_button = False

    @property
    def _inactive(self) -> bool:
        return self._closing or self._status is ListenerStatus.ENDED

    def manual_play(self) -> bool:
        """User tapped play after autoplay was refused. No-op once the stream is over."""
        if self._inactive:
            return False
        self._audio.muted = False
        self._audio.volume = self._volume
        try:
            self._audio.play()
        except Exception as e:
            logger.error("Failed to play: %s", e)
            return False
        self._set(ListenerStatus.LIVE, "Playing live audio")
        with self._lock:
            self._show_play_button = False
        return True

    def toggle_mute(self) -> bool:
        """Flip mute; returns the new muted state. Ended or closed sessions stay as they are."""
        if self._inactive:
            return bool(self._audio.muted)
        muted = not self._audio.muted
        self._audio.muted = muted
        if not muted:
            try:
                self._audio.play()
            except Exception as e:
                logger.error("Failed to resume playback: %s", e)
        return muted

    def set_volume(self, volume: float) -> float:
        v = min(1.0, max(0.0, float(volume)))
        self._volume = v
        self._audio.volume = v
        return v
