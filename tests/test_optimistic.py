"""
Tests for optimistic social commands and the CommandRunner.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from minbar.domains.social.optimistic import (
    AddComment,
    CommandRunner,
    FollowState,
    PostState,
    ToggleFollow,
    ToggleLike,
)
from minbar.infrastructure.social.social_api import SocialApiError
from minbar.services.community import CommunityService


@pytest.fixture
def api() -> MagicMock:
    return MagicMock()


@pytest.fixture
def runner() -> CommandRunner:
    return CommandRunner()


def test_like_is_visible_before_server_answers(api: MagicMock, runner: CommandRunner) -> None:
    """The local count is already bumped while the request is in flight; server count wins after."""
    post = PostState(post_id="p1", liked=False, like_count=4)
    seen: dict[str, Any] = {}

    def like(post_id: str, token: str | None = None) -> dict[str, Any]:
        seen["liked"], seen["count"] = post.liked, post.like_count
        return {"likesCount": 9}

    api.like_post.side_effect = like
    outcome = runner.run(ToggleLike(post, api, token="t"))

    assert seen == {"liked": True, "count": 5}
    assert outcome.ok
    assert post.liked is True
    assert post.like_count == 9
    api.like_post.assert_called_once_with("p1", token="t")


def test_failed_unlike_rolls_back(api: MagicMock, runner: CommandRunner) -> None:
    post = PostState(post_id="p1", liked=True, like_count=3)
    api.unlike_post.side_effect = SocialApiError("nope", 500)
    outcome = runner.run(ToggleLike(post, api))

    assert not outcome.ok
    assert "nope" in (outcome.error or "")
    assert (post.liked, post.like_count) == (True, 3)
    assert runner.history[-1][0] == "toggle_like"


def test_unlike_never_goes_negative(api: MagicMock, runner: CommandRunner) -> None:
    post = PostState(post_id="p1", liked=True, like_count=0)
    api.unlike_post.return_value = {}
    runner.run(ToggleLike(post, api))
    assert (post.liked, post.like_count) == (False, 0)


def test_follow_adopts_server_count(api: MagicMock, runner: CommandRunner) -> None:
    state = FollowState(user_id="u1", following=False, follower_count=10)
    api.follow_user.return_value = {"followersCount": 42}
    assert runner.run(ToggleFollow(state, api)).ok
    assert (state.following, state.follower_count) == (True, 42)


def test_failed_unfollow_rolls_back(api: MagicMock, runner: CommandRunner) -> None:
    state = FollowState(user_id="u1", following=True, follower_count=10)
    api.unfollow_user.side_effect = SocialApiError("offline")
    assert not runner.run(ToggleFollow(state, api)).ok
    assert (state.following, state.follower_count) == (True, 10)


def test_comment_placeholder_replaced_by_saved_copy(api: MagicMock, runner: CommandRunner) -> None:
    post = PostState(post_id="p1", comments=[{"id": "old", "content": "first"}])
    seen: list[Any] = []

    def add(post_id: str, content: str, token: str | None = None) -> dict[str, Any]:
        seen.append(post.comments[0])
        return {"comment": {"id": "c9", "content": content}}

    api.add_comment.side_effect = add
    cmd = AddComment(post, "  Jazak Allahu khayran ", api, author={"name": "Aisha"})
    assert runner.run(cmd).ok

    assert seen[0]["id"] == cmd.temp_id and seen[0]["pending"] is True
    assert post.comments[0] == {"id": "c9", "content": "Jazak Allahu khayran", "pending": False}
    assert post.comments[1]["id"] == "old"


def test_comment_removed_on_failure(api: MagicMock, runner: CommandRunner) -> None:
    post = PostState(post_id="p1")
    api.add_comment.side_effect = SocialApiError("rejected", 400)
    assert not runner.run(AddComment(post, "hello", api)).ok
    assert post.comments == []


def test_unusable_response_keeps_optimistic_state(api: MagicMock, runner: CommandRunner) -> None:
    post = PostState(post_id="p1", like_count=1)
    api.like_post.return_value = {"likesCount": "many"}
    assert runner.run(ToggleLike(post, api)).ok
    assert post.like_count == 2


def test_community_service_rejects_blank_comment(api: MagicMock) -> None:
    svc = CommunityService(api)
    post = PostState(post_id="p1")
    assert not svc.add_comment(post, "   ").ok
    api.add_comment.assert_not_called()
    assert post.comments == []


def test_community_service_routes_through_runner(api: MagicMock) -> None:
    api.like_post.return_value = {"likesCount": 1}
    svc = CommunityService(api, token="t")
    post = PostState(post_id="p1")
    assert svc.toggle_like(post).ok
    assert [name for name, _ in svc.runner.history] == ["toggle_like"]


def test_community_service_from_config(tmp_path) -> None:
    from minbar.infrastructure.social.social_api import SocialApiClient
    from minbar.utils.config import AppConfig

    cfg = AppConfig(
        janus_server="http://janus.test/janus",
        stream_api_base="http://api.test/v1",
        social_api_base="http://social.test/",
        api_token="tok",
        poll_interval=5.0,
        request_timeout=3.0,
        store_path=tmp_path / "s.json",
        log_level=20,
    )
    svc = CommunityService.from_config(cfg)
    assert isinstance(svc._api, SocialApiClient)
    assert svc._api._base == "http://social.test"
