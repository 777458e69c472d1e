"""
Likes, follows and comments with optimistic view updates.
"""

from __future__ import annotations

from typing import Any

from minbar.domains.social.optimistic import (
    AddComment,
    CommandOutcome,
    CommandRunner,
    FollowState,
    PostState,
    ToggleFollow,
    ToggleLike,
)
from minbar.infrastructure.social.social_api import SocialApiClient
from minbar.utils.config import AppConfig


class CommunityService:
    def __init__(self, api: Any, token: str | None = None, runner: CommandRunner | None = None) -> None:
        self._api = api
        self._token = token
        self.runner = runner or CommandRunner()

    @classmethod
    def from_config(cls, config: AppConfig) -> "CommunityService":
        api = SocialApiClient(
            base_url=config.social_api_base,
            token=config.api_token,
            timeout=config.request_timeout,
        )
        return cls(api, token=config.api_token)

    def toggle_like(self, post: PostState) -> CommandOutcome:
        return self.runner.run(ToggleLike(post, self._api, self._token))

    def toggle_follow(self, state: FollowState) -> CommandOutcome:
        return self.runner.run(ToggleFollow(state, self._api, self._token))

    def add_comment(self, post: PostState, content: str, author: dict[str, Any] | None = None) -> CommandOutcome:
        """Blank comments are rejected before anything is shown."""
        if not (content or "").strip():
            return CommandOutcome(ok=False, error="comment is empty")
        return self.runner.run(AddComment(post, content, self._api, author=author, token=self._token))
