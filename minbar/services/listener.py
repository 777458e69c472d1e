"""
Builds ListenerSession instances from AppConfig with the concrete HTTP clients.
"""

from __future__ import annotations

import weakref
from typing import Any, MutableMapping, Optional

import requests

from minbar.domains.live.interfaces import AudioSink, SignalingClient, StreamStatusSource
from minbar.domains.live.session import ListenerSession
from minbar.infrastructure.audio.headless import HeadlessAudioSink
from minbar.infrastructure.signaling.janus_rest import JanusRestSignaling, MediaEngine
from minbar.infrastructure.stream.stream_api import StreamApiClient
from minbar.utils.config import AppConfig
from minbar.utils.logger import get_logger

logger = get_logger()


def parse_room_param(raw: object) -> Optional[int]:
    """Query-string value -> positive int id, or None."""
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        raw = raw[0] if raw else None
        if raw is None:
            return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value > 0 else None


def build_listener_session(
    config: AppConfig,
    room_id: Optional[int],
    live_stream_id: Optional[int] = None,
    *,
    audio: AudioSink | None = None,
    media_engine: MediaEngine | None = None,
    status_source: StreamStatusSource | None = None,
    signaling: SignalingClient | None = None,
    http: requests.Session | None = None,
) -> ListenerSession:
    """
    Wire one listener session. Every collaborator can be overridden; the
    defaults talk to the stream API and Janus over HTTP and play into a
    headless sink.
    """
    if status_source is None:
        status_source = StreamApiClient(
            base_url=config.stream_api_base,
            token=config.api_token,
            timeout=config.request_timeout,
            session=http,
        )
    if signaling is None:
        signaling = JanusRestSignaling(
            media_engine=media_engine,
            timeout=config.request_timeout,
            session=http,
        )
    logger.info("Listener session for room=%s stream=%s", room_id, live_stream_id or room_id)
    return ListenerSession(
        room_id,
        live_stream_id,
        status_source=status_source,
        signaling=signaling,
        audio=audio or HeadlessAudioSink(),
        server=config.janus_server,
        poll_interval=config.poll_interval,
    )


def _send_leave(source: StreamStatusSource, live_stream_id: int, user_id: int) -> None:
    try:
        source.notify_leave(live_stream_id, user_id)
    except Exception as e:
        logger.error("Failed to notify leave on session end: %s", e)


def install_unload_hook(session: ListenerSession) -> weakref.finalize:
    """
    Best-effort leave when the hosting session goes away without closing the
    listener (browser tab closed, server shutdown). Fires on garbage collection
    or interpreter exit, whichever comes first.
    """
    return weakref.finalize(
        session, _send_leave, session.status_source, session.live_stream_id, session.user_id
    )


def leave_listen_page(state: MutableMapping[str, Any]) -> None:
    """Close the stored listener when the listen page is no longer shown."""
    hook = state.get("listener_unload")
    if hook is not None:
        hook.detach()
        state["listener_unload"] = None
    listener = state.get("listener")
    if listener is None:
        return
    logger.info("Leaving listen page for room %s", listener.room_id)
    listener.close()
    state["listener"] = None
