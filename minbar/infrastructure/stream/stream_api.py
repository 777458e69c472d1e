"""
Streaming backend client: stream info, listener accounting (join/leave), listener counts.

Talks to the same backend the web client reached through its /api/stream proxy.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import requests

from minbar.domains.live.interfaces import StreamStatusSource
from minbar.utils.config import api_token, request_timeout, stream_api_base
from minbar.utils.logger import get_logger

logger = get_logger()

STATUS_ACTIVE = "ACTIVE"
STATUS_ENDED = "ENDED"
STATUS_PENDING = "PENDING"


class StreamApiError(RuntimeError):
    """Raised when the streaming backend answers with an error or unreadable body."""

    def __init__(self, message: str, status_code: int = 0, error_code: str = "UNKNOWN_ERROR") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


@dataclass(frozen=True)
class StreamInfo:
    status: str
    listener_count: int = 0
    mosque_name: str = "Mosque"
    preacher_name: str = "Preacher"
    topic: str = "Khotba"
    title: str = ""
    started_at: str | None = None
    total_views: int = 0

    @property
    def is_ended(self) -> bool:
        return self.status == STATUS_ENDED


def _int_or_zero(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def parse_stream_info(data: dict[str, Any]) -> StreamInfo:
    """Normalise the backend's info payload, which names some fields two ways."""
    mosque = data.get("mosque") or {}
    creator = data.get("creator") or {}
    return StreamInfo(
        status=str(data.get("status") or STATUS_ACTIVE).upper(),
        listener_count=_int_or_zero(data.get("listenerCount")),
        mosque_name=data.get("mosqueName") or mosque.get("name") or "Mosque",
        preacher_name=data.get("preacherName") or creator.get("displayName") or "Preacher",
        topic=data.get("topic") or data.get("title") or "Khotba",
        title=data.get("title") or "",
        started_at=data.get("startedAt"),
        total_views=_int_or_zero(data.get("totalViews")),
    )


class StreamApiClient(StreamStatusSource):
    """
    REST wrapper for /stream/{id}/... endpoints.

    get_info raises StreamApiError on failure; join/leave notifications are
    fire-and-forget and only log failures.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._base = (base_url or stream_api_base()).rstrip("/")
        self._token = token if token is not None else api_token()
        self._timeout = timeout if timeout is not None else request_timeout()
        self._http = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _url(self, live_stream_id: int, suffix: str) -> str:
        return f"{self._base}/stream/{live_stream_id}/{suffix}"

    def _json_or_raise(self, response: requests.Response) -> Any:
        status = response.status_code
        if not 200 <= status < 300:
            message = response.reason or "An error occurred"
            error_code = "UNKNOWN_ERROR"
            try:
                body = response.json()
                if isinstance(body, dict):
                    message = body.get("message") or body.get("error") or message
                    error_code = body.get("error") or error_code
            except ValueError:
                pass
            raise StreamApiError(
                f"Stream API Error: {message} (Status: {status})", status, str(error_code)
            )
        try:
            return response.json()
        except ValueError as e:
            preview = (response.text or "")[:100]
            raise StreamApiError(f"Invalid JSON from stream API: {preview!r}", status, "INVALID_JSON") from e

    def get_info(self, live_stream_id: int) -> StreamInfo:
        """
        Fetch current stream state.

        Raises:
            StreamApiError: On transport failure, non-2xx status or non-JSON body.
        """
        url = self._url(live_stream_id, "info")
        try:
            r = self._http.get(url, headers=self._headers(), timeout=self._timeout)
        except requests.RequestException as e:
            raise StreamApiError(f"Stream info request failed: {e}", 0, type(e).__name__) from e
        data = self._json_or_raise(r)
        if not isinstance(data, dict):
            raise StreamApiError(f"Unexpected stream info payload: {json.dumps(data)[:100]}", r.status_code, "INVALID_JSON")
        return parse_stream_info(data)

    def _notify(self, live_stream_id: int, action: str, user_id: int) -> bool:
        url = self._url(live_stream_id, action)
        try:
            r = self._http.post(
                url,
                params={"userId": user_id},
                headers=self._headers(),
                timeout=self._timeout,
            )
            r.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Failed to notify %s for stream %s: %s", action, live_stream_id, e)
            return False
        logger.info("Notified backend: user %s %s stream %s", user_id, action, live_stream_id)
        return True

    def notify_join(self, live_stream_id: int, user_id: int) -> bool:
        return self._notify(live_stream_id, "join", user_id)

    def notify_leave(self, live_stream_id: int, user_id: int) -> bool:
        return self._notify(live_stream_id, "leave", user_id)

    def get_listener_count(self, live_stream_id: int) -> int:
        """Current listener count; 0 when the backend cannot be read."""
        try:
            r = self._http.get(
                self._url(live_stream_id, "listeners"),
                headers=self._headers(),
                timeout=self._timeout,
            )
            data = self._json_or_raise(r)
        except (requests.RequestException, StreamApiError) as e:
            logger.warning("Listener count unavailable for stream %s: %s", live_stream_id, e)
            return 0
        if isinstance(data, dict):
            return _int_or_zero(data.get("listeners", data.get("listenerCount")))
        return _int_or_zero(data)
