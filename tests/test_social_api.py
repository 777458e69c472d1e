"""
Tests for SocialApiClient: endpoints, auth header, error mapping.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from minbar.infrastructure.social.social_api import SocialApiClient, SocialApiError

BASE = "http://social.test"


def _response(status: int = 200, payload: object = None, content: bytes = b"{}", text: str = "") -> MagicMock:
    r = MagicMock()
    r.status_code = status
    r.content = content
    r.text = text
    r.json.return_value = payload
    return r


@pytest.fixture
def http() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(http: MagicMock) -> SocialApiClient:
    return SocialApiClient(base_url=BASE, token="tok", timeout=2, session=http)


def test_like_post(client: SocialApiClient, http: MagicMock) -> None:
    http.request.return_value = _response(200, {"likesCount": 4})
    assert client.like_post("p1") == {"likesCount": 4}
    method, url = http.request.call_args[0]
    assert (method, url) == ("POST", f"{BASE}/posts/p1/like")
    assert http.request.call_args[1]["headers"]["Authorization"] == "Bearer tok"


def test_unlike_uses_delete_and_per_call_token(client: SocialApiClient, http: MagicMock) -> None:
    http.request.return_value = _response(204, content=b"")
    assert client.unlike_post("p1", token="other") == {}
    method, url = http.request.call_args[0]
    assert (method, url) == ("DELETE", f"{BASE}/posts/p1/like")
    assert http.request.call_args[1]["headers"]["Authorization"] == "Bearer other"


def test_follow_and_unfollow(client: SocialApiClient, http: MagicMock) -> None:
    http.request.return_value = _response(200, {"followersCount": 10})
    client.follow_user("u9")
    assert http.request.call_args[0] == ("POST", f"{BASE}/follow/u9")
    client.unfollow_user("u9")
    assert http.request.call_args[0] == ("DELETE", f"{BASE}/follow/u9")


def test_add_comment_sends_content(client: SocialApiClient, http: MagicMock) -> None:
    http.request.return_value = _response(201, {"id": "c1", "content": "Ameen"})
    assert client.add_comment("p1", "Ameen")["id"] == "c1"
    assert http.request.call_args[1]["json"] == {"content": "Ameen"}


def test_error_status_raises(client: SocialApiClient, http: MagicMock) -> None:
    http.request.return_value = _response(401, text="unauthorized")
    with pytest.raises(SocialApiError) as exc:
        client.like_post("p1")
    assert exc.value.status_code == 401


def test_transport_error_raises(client: SocialApiClient, http: MagicMock) -> None:
    http.request.side_effect = requests.ConnectionError("down")
    with pytest.raises(SocialApiError):
        client.follow_user("u1")
