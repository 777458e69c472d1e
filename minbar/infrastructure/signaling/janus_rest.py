"""
Janus gateway signaling over its plain HTTP (REST) transport.

Session and handle management, plugin messages and the long-poll event loop
live here. Negotiating the actual WebRTC peer connection (SDP answer, ICE,
remote tracks) belongs to a media stack, injected as a MediaEngine.
"""

from __future__ import annotations

import itertools
import secrets
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import requests

from minbar.domains.live.interfaces import (
    Jsep,
    MessageCallback,
    PluginHandle,
    RemoteTrack,
    SignalingClient,
    SignalingError,
)
from minbar.utils.config import request_timeout
from minbar.utils.logger import get_logger

logger = get_logger()

# Server holds a long-poll open for up to 30s before answering with a keepalive.
LONG_POLL_TIMEOUT = 60
MAX_EVENTS_PER_POLL = 10
MAX_POLL_FAILURES = 3


class MediaEngine(ABC):
    """WebRTC stack able to answer a server offer and surface remote tracks."""

    @abstractmethod
    def create_answer(
        self,
        offer: Jsep,
        media: dict[str, bool],
        on_track: Callable[[RemoteTrack], None],
    ) -> Jsep:
        raise NotImplementedError

    def close(self) -> None:
        """Release peer connections. Default: nothing to release."""


def _transaction() -> str:
    return secrets.token_hex(6)


class JanusRestHandle(PluginHandle):
    def __init__(self, client: "JanusRestSignaling", handle_id: int, plugin: str) -> None:
        self._client = client
        self._id = handle_id
        self.plugin = plugin
        self.on_message: Optional[MessageCallback] = None
        self.on_remote_track: Optional[Callable[[RemoteTrack], None]] = None

    @property
    def handle_id(self) -> int:
        return self._id

    def send(self, message: dict[str, Any], jsep: Optional[Jsep] = None) -> None:
        body: dict[str, Any] = {"janus": "message", "body": message}
        if jsep:
            body["jsep"] = jsep
        reply = self._client._post(self._client._handle_url(self._id), body)
        # Synchronous plugin replies carry their payload inline instead of via the event loop.
        if reply.get("janus") == "success" and reply.get("plugindata"):
            self._client._dispatch(dict(reply, sender=self._id))

    def create_answer(
        self,
        jsep: Jsep,
        media: dict[str, bool],
        success: Callable[[Jsep], None],
        error: Callable[[Exception], None],
    ) -> None:
        engine = self._client.media_engine
        if engine is None:
            error(SignalingError("No media engine configured to answer the offer"))
            return
        try:
            answer = engine.create_answer(jsep, media, self._deliver_track)
        except Exception as e:
            error(e)
            return
        success(answer)

    def _deliver_track(self, track: RemoteTrack) -> None:
        if self.on_remote_track is not None:
            self.on_remote_track(track)


class JanusRestSignaling(SignalingClient):
    """
    SignalingClient backed by the Janus HTTP API.

    connect() creates a session and starts a daemon thread that long-polls the
    session for events; attach() creates plugin handles; destroy() tears the
    session down. Callbacks fire on the caller's thread for synchronous
    replies and on the event thread for asynchronous events.
    """

    def __init__(
        self,
        media_engine: MediaEngine | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.media_engine = media_engine
        self._timeout = timeout if timeout is not None else request_timeout()
        self._http = session or requests.Session()
        self._server = ""
        self._session_id: int | None = None
        self._handles: dict[int, JanusRestHandle] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._on_fatal: Callable[[Exception], None] | None = None
        self._rid = itertools.count(int(time.time() * 1000))

    @property
    def session_id(self) -> int | None:
        return self._session_id

    def _session_url(self) -> str:
        return f"{self._server}/{self._session_id}"

    def _handle_url(self, handle_id: int) -> str:
        return f"{self._session_url()}/{handle_id}"

    def _post(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        payload = dict(body, transaction=_transaction())
        try:
            r = self._http.post(url, json=payload, timeout=self._timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise SignalingError(f"Janus request {body.get('janus')} failed: {e}") from e
        if data.get("janus") == "error":
            err = data.get("error") or {}
            raise SignalingError(f"Janus error {err.get('code')}: {err.get('reason')}")
        return data

    def connect(
        self,
        server: str,
        success: Callable[[], None],
        error: Callable[[Exception], None],
    ) -> None:
        self._server = server.rstrip("/")
        try:
            data = self._post(self._server, {"janus": "create"})
            self._session_id = int(data["data"]["id"])
        except (SignalingError, KeyError, TypeError, ValueError) as e:
            logger.error("Janus session create failed on %s: %s", self._server, e)
            error(e if isinstance(e, SignalingError) else SignalingError(str(e)))
            return
        logger.info("Janus session %s created on %s", self._session_id, self._server)
        self._on_fatal = error
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._event_loop,
            name=f"janus-events-{self._session_id}",
            daemon=True,
        )
        self._thread.start()
        success()

    def attach(
        self,
        plugin: str,
        success: Callable[[PluginHandle], None],
        error: Callable[[Exception], None],
        on_message: Optional[MessageCallback] = None,
    ) -> None:
        if self._session_id is None:
            error(SignalingError("attach() before connect()"))
            return
        try:
            data = self._post(self._session_url(), {"janus": "attach", "plugin": plugin})
            handle_id = int(data["data"]["id"])
        except (SignalingError, KeyError, TypeError, ValueError) as e:
            logger.error("Janus attach to %s failed: %s", plugin, e)
            error(e if isinstance(e, SignalingError) else SignalingError(str(e)))
            return
        handle = JanusRestHandle(self, handle_id, plugin)
        handle.on_message = on_message
        with self._lock:
            self._handles[handle_id] = handle
        success(handle)

    def destroy(self) -> None:
        self._stop.set()
        session_id = self._session_id
        if session_id is not None:
            try:
                self._post(self._session_url(), {"janus": "destroy"})
            except SignalingError as e:
                logger.warning("Janus session %s destroy failed: %s", session_id, e)
        if self.media_engine is not None:
            self.media_engine.close()
        with self._lock:
            self._handles.clear()
        self._session_id = None
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=1)
        logger.info("Janus session %s destroyed", session_id)

    def poll_events(self) -> list[dict[str, Any]]:
        """One long-poll round trip. Returns the events the server released."""
        r = self._http.get(
            self._session_url(),
            params={"rid": next(self._rid), "maxev": MAX_EVENTS_PER_POLL},
            timeout=LONG_POLL_TIMEOUT,
        )
        r.raise_for_status()
        data = r.json()
        if isinstance(data, list):
            return [e for e in data if isinstance(e, dict)]
        return [data] if isinstance(data, dict) else []

    def _event_loop(self) -> None:
        failures = 0
        while not self._stop.is_set():
            try:
                events = self.poll_events()
            except (requests.RequestException, ValueError) as e:
                if self._stop.is_set():
                    break
                failures += 1
                logger.warning("Janus long-poll failed (%d/%d): %s", failures, MAX_POLL_FAILURES, e)
                if failures >= MAX_POLL_FAILURES:
                    if self._on_fatal is not None:
                        self._on_fatal(SignalingError(f"Lost connection to signaling server: {e}"))
                    break
                self._stop.wait(1)
                continue
            failures = 0
            for event in events:
                if self._stop.is_set():
                    break
                self._dispatch(event)

    def _dispatch(self, event: dict[str, Any]) -> None:
        kind = event.get("janus")
        if kind == "keepalive":
            return
        with self._lock:
            handle = self._handles.get(event.get("sender"))
        if handle is None:
            logger.debug("Janus %s event for unknown handle %s", kind, event.get("sender"))
            return
        if kind in ("event", "success"):
            data = (event.get("plugindata") or {}).get("data") or {}
            if handle.on_message is not None:
                try:
                    handle.on_message(data, event.get("jsep"))
                except Exception:
                    logger.exception("Handle %s on_message callback failed", handle.handle_id)
        elif kind == "hangup":
            logger.info("Janus hangup on handle %s: %s", handle.handle_id, event.get("reason"))
        elif kind == "detached":
            with self._lock:
                self._handles.pop(handle.handle_id, None)
        else:
            logger.debug("Janus %s event on handle %s", kind, handle.handle_id)
