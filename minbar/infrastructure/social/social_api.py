"""
Posts, comments and follow endpoints of the community backend.
"""

from __future__ import annotations

from typing import Any

import requests

from minbar.utils.config import api_token, request_timeout, social_api_base
from minbar.utils.logger import get_logger

logger = get_logger()


class SocialApiError(RuntimeError):
    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class SocialApiClient:
    """Thin requests wrapper. Every call raises SocialApiError on failure."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._base = (base_url or social_api_base()).rstrip("/")
        self._token = token if token is not None else api_token()
        self._timeout = timeout if timeout is not None else request_timeout()
        self._http = session or requests.Session()

    def _headers(self, token: str | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        bearer = token or self._token
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    def _request(self, method: str, path: str, token: str | None = None, body: dict[str, Any] | None = None) -> Any:
        url = f"{self._base}{path}"
        try:
            r = self._http.request(method, url, headers=self._headers(token), json=body, timeout=self._timeout)
        except requests.RequestException as e:
            raise SocialApiError(f"{method} {path} failed: {e}") from e
        if not 200 <= r.status_code < 300:
            text = (r.text or "")[:200]
            raise SocialApiError(f"{method} {path} failed: {r.status_code} {text}", r.status_code)
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError:
            logger.debug("Non-JSON body from %s %s", method, path)
            return {}

    def like_post(self, post_id: str, token: str | None = None) -> Any:
        return self._request("POST", f"/posts/{post_id}/like", token, {"post_id": post_id})

    def unlike_post(self, post_id: str, token: str | None = None) -> Any:
        return self._request("DELETE", f"/posts/{post_id}/like", token)

    def follow_user(self, user_id: str, token: str | None = None) -> Any:
        return self._request("POST", f"/follow/{user_id}", token)

    def unfollow_user(self, user_id: str, token: str | None = None) -> Any:
        return self._request("DELETE", f"/follow/{user_id}", token)

    def add_comment(self, post_id: str, content: str, token: str | None = None) -> Any:
        return self._request("POST", f"/posts/{post_id}/comments", token, {"content": content})
