"""
Optimistic UI updates as commands: apply locally, call the backend, then
either reconcile with the server's answer or compensate.

Feed cards, comment threads and profile headers mutate their view state first
so taps feel instant; the command keeps the undo logic next to the change.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from minbar.utils.logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class CommandOutcome:
    ok: bool
    result: Any = None
    error: str | None = None


class OptimisticCommand(ABC):
    name: str = "command"

    @abstractmethod
    def apply(self) -> None:
        """Change local state as if the remote call already succeeded."""

    @abstractmethod
    def execute(self) -> Any:
        """Perform the remote call. Raise on failure."""

    @abstractmethod
    def compensate(self) -> None:
        """Undo apply()."""

    def reconcile(self, result: Any) -> None:
        """Adopt authoritative values from the server response. Default: keep local state."""


class CommandRunner:
    """Runs commands and records what happened to each."""

    def __init__(self) -> None:
        self.history: list[tuple[str, CommandOutcome]] = []

    def run(self, command: OptimisticCommand) -> CommandOutcome:
        command.apply()
        try:
            result = command.execute()
        except Exception as e:
            logger.warning("%s failed, rolling back: %s", command.name, e)
            command.compensate()
            outcome = CommandOutcome(ok=False, error=str(e))
        else:
            try:
                command.reconcile(result)
            except Exception as e:
                logger.warning("%s succeeded but response was unusable: %s", command.name, e)
            outcome = CommandOutcome(ok=True, result=result)
        self.history.append((command.name, outcome))
        return outcome


# --- view state ---

@dataclass
class PostState:
    post_id: str
    liked: bool = False
    like_count: int = 0
    comments: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class FollowState:
    user_id: str
    following: bool = False
    follower_count: int = 0


# --- commands ---

class ToggleLike(OptimisticCommand):
    name = "toggle_like"

    def __init__(self, post: PostState, api: Any, token: str | None = None) -> None:
        self.post = post
        self._api = api
        self._token = token
        self._prev_liked = post.liked
        self._prev_count = post.like_count

    def apply(self) -> None:
        self._prev_liked = self.post.liked
        self._prev_count = self.post.like_count
        self.post.liked = not self._prev_liked
        if self._prev_liked:
            self.post.like_count = max(0, self._prev_count - 1)
        else:
            self.post.like_count = self._prev_count + 1

    def execute(self) -> Any:
        if self._prev_liked:
            return self._api.unlike_post(self.post.post_id, token=self._token)
        return self._api.like_post(self.post.post_id, token=self._token)

    def compensate(self) -> None:
        self.post.liked = self._prev_liked
        self.post.like_count = self._prev_count

    def reconcile(self, result: Any) -> None:
        if isinstance(result, dict) and result.get("likesCount") is not None:
            self.post.like_count = int(result["likesCount"])


class ToggleFollow(OptimisticCommand):
    name = "toggle_follow"

    def __init__(self, state: FollowState, api: Any, token: str | None = None) -> None:
        self.state = state
        self._api = api
        self._token = token
        self._prev_following = state.following
        self._prev_count = state.follower_count

    def apply(self) -> None:
        self._prev_following = self.state.following
        self._prev_count = self.state.follower_count
        self.state.following = not self._prev_following
        delta = -1 if self._prev_following else 1
        self.state.follower_count = max(0, self._prev_count + delta)

    def execute(self) -> Any:
        if self._prev_following:
            return self._api.unfollow_user(self.state.user_id, token=self._token)
        return self._api.follow_user(self.state.user_id, token=self._token)

    def compensate(self) -> None:
        self.state.following = self._prev_following
        self.state.follower_count = self._prev_count

    def reconcile(self, result: Any) -> None:
        if isinstance(result, dict):
            count = result.get("followersCount", result.get("followerCount"))
            if count is not None:
                self.state.follower_count = int(count)


_temp_ids = itertools.count(1)


class AddComment(OptimisticCommand):
    """Shows the comment at the top of the thread before the backend confirms it."""

    name = "add_comment"

    def __init__(self, post: PostState, content: str, api: Any, author: dict[str, Any] | None = None,
                 token: str | None = None) -> None:
        self.post = post
        self.content = content.strip()
        self._api = api
        self._token = token
        self.temp_id = f"temp-{next(_temp_ids)}"
        self.placeholder: dict[str, Any] = {
            "id": self.temp_id,
            "content": self.content,
            "author": author or {},
            "pending": True,
        }

    def apply(self) -> None:
        self.post.comments.insert(0, self.placeholder)

    def execute(self) -> Any:
        if not self.content:
            raise ValueError("comment is empty")
        return self._api.add_comment(self.post.post_id, self.content, token=self._token)

    def compensate(self) -> None:
        self.post.comments = [c for c in self.post.comments if c.get("id") != self.temp_id]

    def reconcile(self, result: Any) -> None:
        if not isinstance(result, dict):
            return
        saved = result.get("comment") if isinstance(result.get("comment"), dict) else result
        if not saved.get("id"):
            return
        for i, c in enumerate(self.post.comments):
            if c.get("id") == self.temp_id:
                self.post.comments[i] = dict(saved, pending=False)
                break
