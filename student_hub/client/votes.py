"""Optimistic like and vote counters with rollback.

Vote state is kept on the client only, per client identity; the server
holds nothing but the shared signed counters. Every mutating call returns a
``VoteOutcome`` so the caller needs a single branch to handle failure.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from student_hub.client.api_client import APIClient
from student_hub.client.exceptions import ClientError
from student_hub.shared.errors import ErrorKind

logger = logging.getLogger(__name__)


class VoteState(str, Enum):
    UP = "up"
    DOWN = "down"
    NONE = "none"


_VOTE_VALUE = {VoteState.UP: 1, VoteState.NONE: 0, VoteState.DOWN: -1}


def toggle_like(liked: bool, count: int) -> Tuple[bool, int]:
    """Flip a discussion like: liking adds one, unliking removes one."""
    if liked:
        return False, count - 1
    return True, count + 1


def apply_reply_vote(
    state: Union[VoteState, str, None],
    count: int,
    direction: Union[VoteState, str]
) -> Tuple[VoteState, int]:
    """Apply an up or down vote to a reply.

    Voting the same direction again withdraws the vote. Switching direction
    moves the shared counter by two.

    Args:
        state: Current vote of this client
        count: Displayed counter
        direction: ``up`` or ``down``

    Returns:
        Tuple[VoteState, int]: New vote state and counter
    """
    state = VoteState(state) if state else VoteState.NONE
    direction = VoteState(direction)
    if direction is VoteState.NONE:
        raise ValueError("Vote direction must be up or down")

    new_state = VoteState.NONE if state is direction else direction
    return new_state, count + _VOTE_VALUE[new_state] - _VOTE_VALUE[state]


def reply_vote_events(delta: int) -> List[str]:
    """Server events that move a reply counter by ``delta``."""
    if delta == 0:
        return ["neutral"]
    event = "like" if delta > 0 else "dislike"
    return [event] * abs(delta)


@dataclass(frozen=True)
class VoteOutcome:
    """Result of an optimistic vote after the server answered.

    On success ``state`` and ``count`` are the confirmed values. On failure
    they equal ``previous_state`` and ``previous_count`` and ``error_kind``
    says why.
    """

    confirmed: bool
    state: Union[VoteState, bool]
    count: int
    previous_state: Union[VoteState, bool]
    previous_count: int
    error_kind: Optional[ErrorKind] = None


class LocalVoteStore:
    """Liked discussions and reply votes of one client identity.

    With a ``path`` the store is saved as JSON after every change and several
    identities can share one file.
    """

    def __init__(self, identity: str = "default", path: Optional[Union[str, Path]] = None):
        self.identity = identity
        self.path = Path(path) if path is not None else None
        self._liked: Set[str] = set()
        self._reply_votes: Dict[str, VoteState] = {}
        if self.path is not None:
            self._load()

    def is_liked(self, discussion_id: str) -> bool:
        return str(discussion_id) in self._liked

    def set_liked(self, discussion_id: str, liked: bool) -> None:
        if liked:
            self._liked.add(str(discussion_id))
        else:
            self._liked.discard(str(discussion_id))
        self._save()

    def reply_vote(self, reply_id: str) -> VoteState:
        return self._reply_votes.get(str(reply_id), VoteState.NONE)

    def set_reply_vote(self, reply_id: str, state: Union[VoteState, str]) -> None:
        state = VoteState(state)
        if state is VoteState.NONE:
            self._reply_votes.pop(str(reply_id), None)
        else:
            self._reply_votes[str(reply_id)] = state
        self._save()

    def clear(self) -> None:
        self._liked.clear()
        self._reply_votes.clear()
        self._save()

    def _read_file(self) -> dict:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable vote store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _load(self) -> None:
        record = self._read_file().get(self.identity, {})
        self._liked = set(record.get("likedThreads", []))
        self._reply_votes = {}
        for reply_id, state in record.get("replyVotes", {}).items():
            try:
                self._reply_votes[reply_id] = VoteState(state)
            except ValueError:
                continue

    def _save(self) -> None:
        if self.path is None:
            return
        data = self._read_file()
        data[self.identity] = {
            "likedThreads": sorted(self._liked),
            "replyVotes": {reply_id: state.value for reply_id, state in self._reply_votes.items()},
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")


PendingCallback = Callable[[Union[VoteState, bool], int], None]


class ThreadLikeCounter:
    """Optimistic like toggling for discussions."""

    def __init__(self, api_client: APIClient, store: LocalVoteStore):
        self.api_client = api_client
        self.store = store

    async def toggle(
        self,
        discussion_id: str,
        current_count: int,
        on_pending: Optional[PendingCallback] = None
    ) -> VoteOutcome:
        """Toggle this client's like on a discussion.

        Args:
            discussion_id: Discussion to like or unlike
            current_count: Counter as currently displayed
            on_pending: Called with the optimistic state and count before the
                server is contacted

        Returns:
            VoteOutcome: Confirmed values, or the reverted ones on failure
        """
        previous = self.store.is_liked(discussion_id)
        liked, count = toggle_like(previous, current_count)

        self.store.set_liked(discussion_id, liked)
        if on_pending is not None:
            on_pending(liked, count)

        try:
            discussion = await self.api_client.like_discussion(discussion_id, "like" if liked else "unlike")
        except ClientError as e:
            self.store.set_liked(discussion_id, previous)
            logger.warning(f"Like failed, reverted: {e}", extra={"discussion_id": discussion_id})
            return VoteOutcome(
                confirmed=False,
                state=previous,
                count=current_count,
                previous_state=previous,
                previous_count=current_count,
                error_kind=e.kind,
            )

        return VoteOutcome(
            confirmed=True,
            state=liked,
            count=discussion.likes,
            previous_state=previous,
            previous_count=current_count,
        )


class ReplyVoteCounter:
    """Optimistic up and down votes for replies.

    The server counter only moves by one per event, so a vote that switches
    direction is sent as two events.
    """

    def __init__(self, api_client: APIClient, store: LocalVoteStore):
        self.api_client = api_client
        self.store = store

    async def vote(
        self,
        reply_id: str,
        current_count: int,
        direction: Union[VoteState, str],
        on_pending: Optional[PendingCallback] = None
    ) -> VoteOutcome:
        """Vote a reply up or down, or withdraw a vote by repeating it.

        Returns:
            VoteOutcome: Confirmed values, or the reverted ones on failure
        """
        previous = self.store.reply_vote(reply_id)
        state, count = apply_reply_vote(previous, current_count, direction)

        self.store.set_reply_vote(reply_id, state)
        if on_pending is not None:
            on_pending(state, count)

        confirmed_count = count
        try:
            for event in reply_vote_events(count - current_count):
                reply = await self.api_client.like_reply(reply_id, event)
                confirmed_count = reply.likes
        except ClientError as e:
            self.store.set_reply_vote(reply_id, previous)
            logger.warning(f"Reply vote failed, reverted: {e}", extra={"reply_id": reply_id})
            return VoteOutcome(
                confirmed=False,
                state=previous,
                count=current_count,
                previous_state=previous,
                previous_count=current_count,
                error_kind=e.kind,
            )

        return VoteOutcome(
            confirmed=True,
            state=state,
            count=confirmed_count,
            previous_state=previous,
            previous_count=current_count,
        )
